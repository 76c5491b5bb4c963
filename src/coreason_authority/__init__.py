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
Authority resolution and OpenID-Connect discovery metadata caching for AAD, B2C and ADFS authorities.
"""

__version__ = "0.1.0"
__author__ = "Gowtham A Rao"
__email__ = "gowtham.rao@coreason.ai"

from .authority import AadAuthority, AdfsAuthority, Authority, B2cAuthority
from .config import CoreasonAuthorityConfig
from .discovery_client import DiscoveryClient, HttpDiscoveryClient
from .exceptions import (
    ConfigurationError,
    CoreasonAuthorityError,
    DiscoveryError,
    DiscoveryNetworkError,
    HostValidationError,
    InvalidAuthorityTypeError,
    MetadataParseError,
)
from .factory import AuthorityContext, AuthorityFactory, get_default_context
from .metadata_cache import AuthorityMetadataCache
from .models import AuthorityType, DiscoveryHint, DiscoveryMetadata, IngestOutcome, IngestResult
from .trusted_hosts import TrustedHostRegistry
from .url import canonicalize_uri

__all__ = [
    "AadAuthority",
    "AdfsAuthority",
    "Authority",
    "AuthorityContext",
    "AuthorityFactory",
    "AuthorityMetadataCache",
    "AuthorityType",
    "B2cAuthority",
    "ConfigurationError",
    "CoreasonAuthorityConfig",
    "CoreasonAuthorityError",
    "DiscoveryClient",
    "DiscoveryError",
    "DiscoveryHint",
    "DiscoveryMetadata",
    "DiscoveryNetworkError",
    "HostValidationError",
    "HttpDiscoveryClient",
    "IngestOutcome",
    "IngestResult",
    "InvalidAuthorityTypeError",
    "MetadataParseError",
    "TrustedHostRegistry",
    "canonicalize_uri",
    "get_default_context",
]
