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
AuthorityFactory component for creating and resolving authorities.
"""

from collections.abc import Iterable
from typing import Any

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from coreason_authority.authority import AUTHORITY_VARIANTS, Authority
from coreason_authority.classifier import detect_authority_type
from coreason_authority.config import CoreasonAuthorityConfig
from coreason_authority.discovery_client import DiscoveryClient, HttpDiscoveryClient
from coreason_authority.exceptions import ConfigurationError, CoreasonAuthorityError, InvalidAuthorityTypeError
from coreason_authority.metadata_cache import AuthorityMetadataCache
from coreason_authority.models import DiscoveryMetadata
from coreason_authority.trusted_hosts import TrustedHostRegistry
from coreason_authority.url import build_canonical, get_url_components
from coreason_authority.utils.logger import logger

tracer = trace.get_tracer(__name__)


class AuthorityContext:
    """
    Shared state for all authorities created through the same factory:
    the trusted host registry and the metadata cache.
    """

    def __init__(
        self,
        trusted_hosts: TrustedHostRegistry | None = None,
        metadata_cache: AuthorityMetadataCache | None = None,
    ) -> None:
        self.trusted_hosts = trusted_hosts if trusted_hosts is not None else TrustedHostRegistry()
        self.metadata_cache = metadata_cache if metadata_cache is not None else AuthorityMetadataCache()


_default_context = AuthorityContext()


def get_default_context() -> AuthorityContext:
    """Returns the process-wide context used when a factory is created without one."""
    return _default_context


class AuthorityFactory:
    """
    Creates authorities of the right variant and resolves their discovery metadata.
    Handles an internally created discovery client via async context manager.
    """

    def __init__(
        self,
        context: AuthorityContext | None = None,
        discovery_client: DiscoveryClient | None = None,
        *,
        allow_insecure: bool = False,
    ) -> None:
        """
        Initialize the AuthorityFactory.

        Args:
            context: The registry and cache to use. Defaults to the process-wide context.
            discovery_client: The network collaborator. If not provided, an `HttpDiscoveryClient` is created.
            allow_insecure: Accept ``http`` authorities. Local testing only.
        """
        self.context = context if context is not None else get_default_context()
        self._internal_client = discovery_client is None
        self.discovery_client: DiscoveryClient = (
            discovery_client if discovery_client is not None else HttpDiscoveryClient()
        )
        self.allow_insecure = allow_insecure
        self.config: CoreasonAuthorityConfig | None = None

    @classmethod
    def from_config(
        cls,
        config: CoreasonAuthorityConfig,
        context: AuthorityContext | None = None,
        discovery_client: DiscoveryClient | None = None,
    ) -> "AuthorityFactory":
        """
        Builds a factory from settings and registers the configured known authorities.

        Args:
            config: The configuration object.
            context: The registry and cache to use. Defaults to the process-wide context.
            discovery_client: The network collaborator. If not provided, one is built from `config`.
        """
        factory = cls(
            context=context,
            discovery_client=discovery_client
            or HttpDiscoveryClient(
                timeout=config.http_timeout,
                max_response_bytes=config.max_response_bytes,
                instance_discovery_endpoint=config.instance_discovery_endpoint,
                unsafe_local_dev=config.unsafe_local_dev,
            ),
            allow_insecure=config.unsafe_local_dev,
        )
        factory._internal_client = discovery_client is None
        factory.config = config
        if config.known_authorities:
            factory.set_known_authorities(config.validate_authority, config.known_authorities)
        return factory

    async def __aenter__(self) -> "AuthorityFactory":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._internal_client and isinstance(self.discovery_client, HttpDiscoveryClient):
            await self.discovery_client.aclose()

    def set_known_authorities(self, validate_authority: bool, known_authorities: Iterable[str]) -> bool:
        """
        Registers the trusted B2C hosts. Only the first populating call has any effect.

        Returns:
            bool: True if this call populated the registry.
        """
        return self.context.trusted_hosts.set_known_authorities(validate_authority, known_authorities)

    def create_instance(
        self,
        authority_url: str | None,
        validate_authority: bool,
        metadata_json: str | bytes | None = None,
    ) -> Authority | None:
        """
        Creates an authority of the variant detected from its URL.

        Args:
            authority_url: The authority URL.
            validate_authority: Whether the authority host must be validated.
            metadata_json: Pre-supplied discovery metadata. Malformed input is ignored.

        Returns:
            Authority | None: The authority, or None if the URL is empty or unparsable.

        Raises:
            InvalidAuthorityTypeError: If the detected type has no implementation.
            AuthorityValidationError: If the URL is not HTTPS or lacks a tenant segment.
        """
        if not authority_url or not authority_url.strip():
            return None

        try:
            components = get_url_components(authority_url)
        except ConfigurationError as e:
            logger.warning(f"Ignoring invalid authority URL: {e}")
            return None

        canonical = build_canonical(components)
        cache = self.context.metadata_cache

        if metadata_json:
            cache.try_ingest(canonical, metadata_json)

        authority_type = detect_authority_type(components, self.context.trusted_hosts)
        variant = AUTHORITY_VARIANTS.get(authority_type)
        if variant is None:
            raise InvalidAuthorityTypeError(f"Unsupported authority type: {authority_type}")

        return variant(
            canonical,
            validate_authority,
            cache=cache,
            registry=self.context.trusted_hosts,
            discovery_client=self.discovery_client,
            metadata=cache.get(canonical),
            allow_insecure=self.allow_insecure,
        )

    def create_configured_instance(self) -> Authority | None:
        """
        Creates the authority named by the factory's configuration.

        The configured ``authority_metadata`` is ingested into the cache first, so a
        valid document makes the authority resolved without any network access.

        Returns:
            Authority | None: The authority, or None if no authority is configured.

        Raises:
            ConfigurationError: If the factory was not built with `from_config`.
        """
        if self.config is None:
            raise ConfigurationError("Factory has no configuration; build it with from_config().")
        return self.create_instance(
            self.config.authority,
            self.config.validate_authority,
            self.config.authority_metadata,
        )

    async def resolve_authority(self, authority: Authority) -> DiscoveryMetadata:
        """
        Resolves the discovery metadata of an authority and caches it.

        Args:
            authority: An authority created by this factory.

        Returns:
            DiscoveryMetadata: The resolved metadata.

        Raises:
            HostValidationError: If the authority host is not trusted.
            DiscoveryError: If discovery fails. Nothing is cached.
        """
        with tracer.start_as_current_span("resolve_authority") as span:
            span.set_attribute("authority.canonical", authority.canonical_authority)
            span.set_attribute("authority.type", authority.authority_type.value)
            try:
                metadata = await authority.resolve_endpoints()
            except CoreasonAuthorityError as e:
                logger.error(f"Failed to resolve authority {authority.canonical_authority}: {e}")
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, str(e)))
                raise

        self.context.metadata_cache.put(authority.canonical_authority, metadata)
        return metadata
