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
Custom exceptions for the coreason-authority package.
"""


class CoreasonAuthorityError(Exception):
    """Base exception for all coreason-authority errors."""


class ConfigurationError(CoreasonAuthorityError):
    """Raised when an authority URL is empty or cannot be parsed."""


class InvalidAuthorityTypeError(CoreasonAuthorityError):
    """Raised when an authority URL classifies to a type with no known implementation."""


class MetadataParseError(CoreasonAuthorityError):
    """
    Raised (internally) when pre-supplied authority metadata is malformed.
    `AuthorityMetadataCache.try_ingest` captures it in its result instead of raising.
    """


class AuthorityValidationError(CoreasonAuthorityError):
    """Base class for authorities that fail validation before any network call."""


class HostValidationError(AuthorityValidationError):
    """Raised when the authority host is not trusted and validation is required."""


class InsecureAuthorityError(AuthorityValidationError):
    """Raised when the authority does not use HTTPS."""


class InvalidAuthorityPathError(AuthorityValidationError):
    """Raised when the authority URL carries no tenant path segment."""


class AuthorityNotResolvedError(CoreasonAuthorityError):
    """Raised when endpoints are read from an authority that has not been resolved yet."""


class DiscoveryError(CoreasonAuthorityError):
    """Base class for failures reported by a discovery client."""


class DiscoveryNetworkError(DiscoveryError):
    """Raised when the discovery document cannot be fetched (transport, timeout, HTTP status)."""


class DiscoveryDocumentError(DiscoveryError):
    """Raised when the discovery endpoint returns a document that is not usable metadata."""


class OversizedResponseError(DiscoveryError):
    """Raised when an HTTP response is too large."""
