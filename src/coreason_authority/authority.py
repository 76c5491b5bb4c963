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
Authority variants (AAD, B2C, ADFS) and their endpoint resolution.
"""

import re
from abc import ABC
from typing import ClassVar

from coreason_authority.discovery_client import DiscoveryClient
from coreason_authority.exceptions import (
    AuthorityNotResolvedError,
    HostValidationError,
    InsecureAuthorityError,
    InvalidAuthorityPathError,
)
from coreason_authority.metadata_cache import AuthorityMetadataCache
from coreason_authority.models import AuthorityType, DiscoveryHint, DiscoveryMetadata
from coreason_authority.models_internal import UrlComponents
from coreason_authority.trusted_hosts import AAD_TRUSTED_HOSTS, TrustedHostRegistry
from coreason_authority.url import build_canonical, get_url_components
from coreason_authority.utils.logger import logger

TENANT_PLACEHOLDER = re.compile(r"\{tenant\}|\{tenantid\}", re.IGNORECASE)


class Authority(ABC):
    """
    An identity-provider authority and its discovery metadata.

    Subclasses fix `authority_type` and decide how the host is validated and which
    discovery hint is sent. Metadata is read from the shared cache when present,
    otherwise fetched once through the discovery client and cached.
    """

    authority_type: ClassVar[AuthorityType]

    def __init__(
        self,
        authority_url: str,
        validate_authority: bool,
        *,
        cache: AuthorityMetadataCache,
        registry: TrustedHostRegistry,
        discovery_client: DiscoveryClient,
        metadata: DiscoveryMetadata | None = None,
        allow_insecure: bool = False,
    ) -> None:
        """
        Initialize the Authority.

        Args:
            authority_url: The authority URL (raw or canonical).
            validate_authority: Whether the authority host must be validated before discovery.
            cache: The metadata cache shared by all authorities of a context.
            registry: The trusted host registry shared by all authorities of a context.
            discovery_client: The collaborator performing network discovery.
            metadata: Metadata to seed the authority with, usually from the cache.
            allow_insecure: Accept ``http`` authorities. Local testing only.

        Raises:
            ConfigurationError: If the URL is empty or unparsable.
            InsecureAuthorityError: If the URL does not use HTTPS.
            InvalidAuthorityPathError: If the URL has no tenant path segment.
        """
        self._components: UrlComponents = get_url_components(authority_url)
        self._canonical_authority = build_canonical(self._components)
        self.validate_authority = validate_authority
        self._cache = cache
        self._registry = registry
        self._discovery_client = discovery_client
        self._metadata = metadata

        if self._components.scheme != "https" and not allow_insecure:
            raise InsecureAuthorityError(f"Authority must use HTTPS: {self._canonical_authority}")
        if not self._components.path_segments:
            raise InvalidAuthorityPathError(
                f"Authority must contain a tenant path segment: {self._canonical_authority}"
            )

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(canonical_authority={self._canonical_authority!r}, "
            f"validate_authority={self.validate_authority!r}, resolved={self.is_resolved!r})"
        )

    @property
    def canonical_authority(self) -> str:
        return self._canonical_authority

    @property
    def url_components(self) -> UrlComponents:
        return self._components

    @property
    def host(self) -> str:
        return self._components.host

    @property
    def tenant(self) -> str:
        """The first path segment of the authority (tenant name, id or ``adfs``)."""
        return self._components.path_segments[0]

    @property
    def metadata(self) -> DiscoveryMetadata | None:
        return self._metadata

    @property
    def is_resolved(self) -> bool:
        return self._metadata is not None

    def _resolved_metadata(self) -> DiscoveryMetadata:
        if self._metadata is None:
            raise AuthorityNotResolvedError(f"Authority {self._canonical_authority} has not been resolved")
        return self._metadata

    def _replace_tenant(self, endpoint: str) -> str:
        return TENANT_PLACEHOLDER.sub(self.tenant, endpoint)

    @property
    def authorization_endpoint(self) -> str:
        return self._replace_tenant(self._resolved_metadata().authorization_endpoint)

    @property
    def end_session_endpoint(self) -> str:
        return self._replace_tenant(self._resolved_metadata().end_session_endpoint)

    @property
    def issuer(self) -> str:
        return self._replace_tenant(self._resolved_metadata().issuer)

    def validate_host(self) -> None:
        """
        Validates the authority host before any network access.
        The default accepts every host.

        Raises:
            HostValidationError: If the host is not trusted.
        """

    def discovery_hint(self) -> DiscoveryHint:
        return DiscoveryHint(authority_type=self.authority_type)

    async def resolve_endpoints(self) -> DiscoveryMetadata:
        """
        Resolves the discovery metadata of this authority.

        Host validation runs first. A seeded or cached entry is returned without network
        access. Otherwise discovery runs under the per-authority lock, so concurrent callers
        for the same authority share a single successful fetch.

        Returns:
            DiscoveryMetadata: The resolved metadata.

        Raises:
            HostValidationError: If host validation fails. Nothing is fetched or cached.
            DiscoveryError: Propagated from the discovery client. Nothing is cached.
        """
        self.validate_host()

        if self._metadata is not None:
            return self._metadata

        key = self._canonical_authority
        cached = self._cache.get(key)
        if cached is not None:
            self._metadata = cached
            return cached

        async with self._cache.lock_for(key):
            # Another task may have resolved the authority while we waited
            cached = self._cache.get(key)
            if cached is not None:
                self._metadata = cached
                return cached

            metadata = await self._discovery_client.fetch_discovery_document(key, self.discovery_hint())
            self._cache.put(key, metadata)
            self._metadata = metadata

        logger.info(f"Resolved {self.authority_type.value} authority {key}")
        return metadata


class AadAuthority(Authority):
    """Azure AD authority. Hosts outside the well-known clouds go through instance discovery."""

    authority_type = AuthorityType.AAD

    def discovery_hint(self) -> DiscoveryHint:
        requires_instance_discovery = self.validate_authority and self.host not in AAD_TRUSTED_HOSTS
        return DiscoveryHint(authority_type=self.authority_type, instance_discovery=requires_instance_discovery)


class B2cAuthority(Authority):
    """B2C authority. Its host must be registered in the trusted host registry when validating."""

    authority_type = AuthorityType.B2C

    def validate_host(self) -> None:
        if self.validate_authority and not self._registry.contains(self.host):
            logger.warning(f"Rejected B2C authority {self.canonical_authority}: host is not a known authority")
            raise HostValidationError(
                f"Host '{self.host}' is not in the list of known authorities. "
                "Configure known authorities or disable authority validation."
            )


class AdfsAuthority(Authority):
    """ADFS authority, detected by its ``/adfs`` path."""

    authority_type = AuthorityType.ADFS


AUTHORITY_VARIANTS: dict[AuthorityType, type[Authority]] = {
    AuthorityType.AAD: AadAuthority,
    AuthorityType.B2C: B2cAuthority,
    AuthorityType.ADFS: AdfsAuthority,
}
