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
Discovery clients fetching OpenID-Connect metadata for an authority.
"""

from typing import Any, Protocol

import httpx
from opentelemetry import trace
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.trace import Status, StatusCode
from pydantic import ValidationError

from coreason_authority.exceptions import (
    CoreasonAuthorityError,
    DiscoveryDocumentError,
    DiscoveryNetworkError,
    HostValidationError,
)
from coreason_authority.models import AuthorityType, DiscoveryHint, DiscoveryMetadata
from coreason_authority.models_internal import InstanceDiscoveryResponse
from coreason_authority.transport import DEFAULT_MAX_RESPONSE_BYTES, SafeAsyncTransport, safe_json_fetch
from coreason_authority.utils.logger import logger

tracer = trace.get_tracer(__name__)

DEFAULT_INSTANCE_DISCOVERY_ENDPOINT = "https://login.microsoftonline.com/common/discovery/instance"
OPENID_CONFIGURATION_SUFFIX = ".well-known/openid-configuration"
AAD_V2_PREFIX = "v2.0/"


class DiscoveryClient(Protocol):
    """Protocol for collaborators fetching discovery metadata over the network."""

    async def fetch_discovery_document(
        self, canonical_authority: str, variant_hint: DiscoveryHint
    ) -> DiscoveryMetadata:
        """
        Fetches and maps the discovery document of an authority.

        Raises:
            DiscoveryError: If the document cannot be fetched or is not usable.
        """
        ...


def openid_configuration_endpoint(canonical_authority: str, authority_type: AuthorityType) -> str:
    """
    Returns the default OIDC configuration URL of an authority.

    ADFS publishes its document directly under the authority, AAD and B2C under ``v2.0/``.
    """
    if authority_type == AuthorityType.ADFS:
        return f"{canonical_authority}{OPENID_CONFIGURATION_SUFFIX}"
    return f"{canonical_authority}{AAD_V2_PREFIX}{OPENID_CONFIGURATION_SUFFIX}"


class HttpDiscoveryClient:
    """
    Fetches discovery documents over HTTPS using httpx.

    Attributes:
        timeout (float): Timeout in seconds for each request.
        max_response_bytes (int): Maximum accepted response size.
        instance_discovery_endpoint (str): The Azure AD cloud instance discovery URL.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
        max_response_bytes: int = DEFAULT_MAX_RESPONSE_BYTES,
        instance_discovery_endpoint: str = DEFAULT_INSTANCE_DISCOVERY_ENDPOINT,
        unsafe_local_dev: bool = False,
    ) -> None:
        """
        Initialize the HttpDiscoveryClient.

        Args:
            client: External async client (optional). If not provided, a client using
                `SafeAsyncTransport` is created and owned by this instance.
            timeout: Timeout in seconds for the internally created client.
            max_response_bytes: Maximum accepted response size in bytes.
            instance_discovery_endpoint: The cloud instance discovery URL for AAD validation.
            unsafe_local_dev: Use the default transport (no SSRF protection). Local testing only.
        """
        self.timeout = timeout
        self.max_response_bytes = max_response_bytes
        self.instance_discovery_endpoint = instance_discovery_endpoint
        self._internal_client = client is None

        if client is not None:
            self._client = client
        else:
            transport = None if unsafe_local_dev else SafeAsyncTransport()
            self._client = httpx.AsyncClient(transport=transport, timeout=timeout)
            HTTPXClientInstrumentor().instrument_client(self._client)

    async def __aenter__(self) -> "HttpDiscoveryClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._internal_client:
            await self._client.aclose()

    async def _get_json(self, url: str, **kwargs: Any) -> Any:
        try:
            return await safe_json_fetch(self._client, url, max_bytes=self.max_response_bytes, **kwargs)
        except CoreasonAuthorityError:
            raise
        except httpx.HTTPError as e:
            raise DiscoveryNetworkError(f"Failed to fetch {url}: {e}") from e
        except ValueError as e:
            raise DiscoveryDocumentError(f"Response from {url} is not valid JSON: {e}") from e

    async def _discover_instance(self, canonical_authority: str) -> str:
        """
        Validates an AAD authority with the cloud instance discovery endpoint.

        Returns:
            str: The tenant discovery (OIDC configuration) endpoint for the authority.

        Raises:
            HostValidationError: If the endpoint rejects the authority.
        """
        params = {
            "api-version": "1.0",
            "authorization_endpoint": f"{canonical_authority}oauth2/v2.0/authorize",
        }
        try:
            data = await self._get_json(self.instance_discovery_endpoint, params=params)
        except DiscoveryNetworkError as e:
            cause = e.__cause__
            if isinstance(cause, httpx.HTTPStatusError) and cause.response.status_code == 400:
                raise HostValidationError(
                    f"Authority {canonical_authority} was rejected by instance discovery"
                ) from e
            raise

        try:
            return InstanceDiscoveryResponse.model_validate(data).tenant_discovery_endpoint
        except ValidationError as e:
            raise HostValidationError(
                f"Instance discovery returned no tenant discovery endpoint for {canonical_authority}"
            ) from e

    async def fetch_discovery_document(
        self, canonical_authority: str, variant_hint: DiscoveryHint
    ) -> DiscoveryMetadata:
        """
        Fetches the OIDC discovery document for an authority.

        Args:
            canonical_authority: The canonical authority URL (ends with a slash).
            variant_hint: The authority variant and whether instance discovery is required.

        Returns:
            DiscoveryMetadata: The mapped discovery metadata.

        Raises:
            HostValidationError: If AAD instance discovery rejects the authority.
            DiscoveryNetworkError: On transport, timeout or HTTP status failures.
            DiscoveryDocumentError: If the document is not JSON or lacks required fields.
            OversizedResponseError: If a response exceeds `max_response_bytes`.
        """
        with tracer.start_as_current_span("fetch_discovery_document") as span:
            span.set_attribute("authority.canonical", canonical_authority)
            span.set_attribute("authority.type", str(variant_hint.authority_type))
            try:
                if variant_hint.instance_discovery:
                    endpoint = await self._discover_instance(canonical_authority)
                else:
                    endpoint = openid_configuration_endpoint(canonical_authority, variant_hint.authority_type)

                logger.debug(f"Fetching discovery document from {endpoint}")
                data = await self._get_json(endpoint)
                try:
                    return DiscoveryMetadata.model_validate(data)
                except ValidationError as e:
                    raise DiscoveryDocumentError(f"Invalid discovery document from {endpoint}: {e}") from e
            except CoreasonAuthorityError as e:
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, str(e)))
                raise
