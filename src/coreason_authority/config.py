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
Configuration for the coreason-authority package.
"""

from urllib.parse import urlparse

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from coreason_authority.discovery_client import DEFAULT_INSTANCE_DISCOVERY_ENDPOINT
from coreason_authority.transport import DEFAULT_MAX_RESPONSE_BYTES


class CoreasonAuthorityConfig(BaseSettings):
    """
    Configuration settings for coreason-authority.

    Attributes:
        authority (str | None): The default authority URL.
        validate_authority (bool): Whether authority hosts are validated before discovery.
        known_authorities (list[str]): Trusted B2C hostnames.
        authority_metadata (str | None): Pre-supplied discovery metadata (JSON).
        http_timeout (float): Timeout in seconds for discovery requests.
        max_response_bytes (int): Maximum accepted size of a discovery response.
        instance_discovery_endpoint (str): Azure AD cloud instance discovery URL.
        unsafe_local_dev (bool): Allow http authorities and disable SSRF protection.
    """

    model_config = SettingsConfigDict(
        env_prefix="COREASON_AUTHORITY_",
        case_sensitive=False,
    )

    authority: str | None = None
    validate_authority: bool = True
    known_authorities: list[str] = Field(default_factory=list)
    authority_metadata: str | None = None
    http_timeout: float = Field(default=10.0, gt=0, description="Timeout in seconds for discovery requests.")
    max_response_bytes: int = Field(default=DEFAULT_MAX_RESPONSE_BYTES, gt=0)
    unsafe_local_dev: bool = False
    instance_discovery_endpoint: str = DEFAULT_INSTANCE_DISCOVERY_ENDPOINT

    @field_validator("known_authorities")
    @classmethod
    def normalize_known_authorities(cls, v: list[str]) -> list[str]:
        """
        Reduces each entry to a bare lower-case hostname.
        Strips scheme and path if present and drops blank entries.
        """
        hosts: list[str] = []
        for entry in v:
            value = entry.strip().lower()
            if not value:
                continue
            if "://" not in value:
                value = f"https://{value}"
            host = urlparse(value).hostname
            if host and host not in hosts:
                hosts.append(host)
        return hosts

    @field_validator("instance_discovery_endpoint", mode="after")
    @classmethod
    def validate_https(cls, v: str, info: ValidationInfo) -> str:
        """
        Ensures that the instance discovery endpoint uses HTTPS, unless strictly opted out for local dev.
        """
        if v.startswith("http://") and not info.data.get("unsafe_local_dev", False):
            raise ValueError("HTTPS is required for production. Set 'unsafe_local_dev=True' only for local testing.")
        return v
