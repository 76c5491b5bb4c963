# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_authority

"""
Data models for the coreason-authority package.
"""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from coreason_authority.exceptions import MetadataParseError


class AuthorityType(StrEnum):
    AAD = "aad"
    B2C = "b2c"
    ADFS = "adfs"


class DiscoveryMetadata(BaseModel):
    """
    OpenID-Connect discovery metadata for a single authority.

    All three endpoints are required, so a partially populated instance cannot exist.
    The model is frozen (immutable) so cached values can be shared safely.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        json_schema_extra={
            "example": {
                "authorization_endpoint": "https://login.microsoftonline.com/{tenant}/oauth2/v2.0/authorize",
                "end_session_endpoint": "https://login.microsoftonline.com/{tenant}/oauth2/v2.0/logout",
                "issuer": "https://login.microsoftonline.com/{tenantid}/v2.0",
            }
        },
    )

    authorization_endpoint: str = Field(..., min_length=1, description="The OAuth2 authorization endpoint URL.")
    end_session_endpoint: str = Field(..., min_length=1, description="The OIDC end-session (logout) endpoint URL.")
    issuer: str = Field(..., min_length=1, description="The issuer identifier of the authority.")


class DiscoveryHint(BaseModel):
    """
    Variant hint handed to a discovery client alongside the canonical authority.

    Attributes:
        authority_type (AuthorityType): The classified authority variant.
        instance_discovery (bool): Whether the authority instance must be validated
            by the cloud instance discovery endpoint before fetching its document.
    """

    model_config = ConfigDict(frozen=True)

    authority_type: AuthorityType
    instance_discovery: bool = False


class IngestOutcome(StrEnum):
    INGESTED = "ingested"
    NOT_SUPPLIED = "not_supplied"
    IGNORED_PARSE_ERROR = "ignored_parse_error"


class IngestResult(BaseModel):
    """
    Outcome of ingesting pre-supplied metadata into the metadata cache.

    A parse failure is reported here, never raised.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    outcome: IngestOutcome
    metadata: DiscoveryMetadata | None = None
    error: MetadataParseError | None = None

    @property
    def ingested(self) -> bool:
        return self.outcome == IngestOutcome.INGESTED
