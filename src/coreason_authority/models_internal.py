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
Internal data models for the coreason-authority package.
These are not exposed in the public API.
"""

from pydantic import BaseModel, ConfigDict, Field


class UrlComponents(BaseModel):
    """
    Decomposition of a canonical authority URL.
    """

    model_config = ConfigDict(frozen=True)

    scheme: str
    host: str
    port: int | None = None
    path_segments: tuple[str, ...] = ()


class InstanceDiscoveryResponse(BaseModel):
    """
    Response of the Azure AD cloud instance discovery endpoint.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    tenant_discovery_endpoint: str = Field(
        ..., min_length=1, description="The OIDC configuration URL for the validated authority."
    )
