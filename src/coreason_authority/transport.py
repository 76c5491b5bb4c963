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
Secure HTTP transport and bounded JSON fetching for discovery requests.
"""

import ipaddress
import json
import socket
from typing import Any

import anyio
import httpx

from coreason_authority.exceptions import DiscoveryNetworkError, OversizedResponseError
from coreason_authority.utils.logger import logger

DEFAULT_MAX_RESPONSE_BYTES = 1024 * 1024


class SecurityError(DiscoveryNetworkError):
    """Raised when a discovery request targets a blocked address."""


class SafeAsyncTransport(httpx.AsyncHTTPTransport):
    """
    An HTTP transport that pins DNS resolution to prevent SSRF / DNS rebinding.

    The hostname is resolved once, the resulting IP is checked against blocked ranges
    (private, loopback, link-local, reserved, multicast) and the connection is forced
    to that IP while the Host header and SNI keep the original hostname.
    """

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        hostname = request.url.host

        try:
            ip_obj = ipaddress.ip_address(hostname)
        except ValueError:
            ip_obj = None

        if ip_obj is not None:
            self._validate_ip(ip_obj, hostname)
            return await super().handle_async_request(request)

        try:
            addr_infos = await anyio.to_thread.run_sync(
                socket.getaddrinfo, hostname, None, 0, socket.SOCK_STREAM
            )
        except socket.gaierror as e:
            logger.error(f"DNS resolution failed for {hostname}: {e}")
            raise SecurityError(f"DNS resolution failed for {hostname}") from e

        target_ip: str | None = None
        for _, _, _, _, sockaddr in addr_infos:
            try:
                candidate = ipaddress.ip_address(sockaddr[0])
                self._validate_ip(candidate, hostname)
            except (SecurityError, ValueError):
                continue
            target_ip = str(candidate)
            break

        if not target_ip:
            logger.error(f"Security violation: No valid public IP found for {hostname}")
            raise SecurityError(f"Security violation: No valid public IP found for {hostname}")

        request.extensions["sni_hostname"] = hostname
        if "Host" not in request.headers:
            request.headers["Host"] = request.url.netloc.decode("ascii")
        request.url = request.url.copy_with(host=target_ip)

        logger.debug(f"DNS Pinned: {hostname} -> {target_ip}")
        return await super().handle_async_request(request)

    def _validate_ip(self, ip_obj: Any, hostname: str) -> None:
        if (
            ip_obj.is_private
            or ip_obj.is_loopback
            or ip_obj.is_link_local
            or ip_obj.is_reserved
            or ip_obj.is_multicast
        ):
            logger.warning(f"Security violation: Blocked access to {hostname} ({ip_obj})")
            raise SecurityError(f"SSRF Protection: Blocked access to {hostname} ({ip_obj})")


async def safe_json_fetch(
    client: httpx.AsyncClient,
    url: str,
    method: str = "GET",
    max_bytes: int = DEFAULT_MAX_RESPONSE_BYTES,
    **kwargs: Any,
) -> Any:
    """
    Fetches a JSON document while enforcing a maximum response size.

    The body is streamed and the request is aborted as soon as the limit is exceeded.

    Args:
        client: The async HTTP client.
        url: The URL to fetch.
        method: The HTTP method. Defaults to GET.
        max_bytes: Maximum accepted body size in bytes.
        **kwargs: Passed through to `client.stream`.

    Returns:
        Any: The decoded JSON document.

    Raises:
        OversizedResponseError: If the body exceeds `max_bytes`.
        httpx.HTTPStatusError: If the response status is 4xx/5xx.
        httpx.HTTPError: On transport failures.
        ValueError: If the body is not valid JSON.
    """
    async with client.stream(method, url, **kwargs) as response:
        response.raise_for_status()

        content_length = response.headers.get("Content-Length")
        if content_length and content_length.isdigit() and int(content_length) > max_bytes:
            raise OversizedResponseError(f"Response from {url} exceeds {max_bytes} bytes")

        body = bytearray()
        async for chunk in response.aiter_bytes():
            body.extend(chunk)
            if len(body) > max_bytes:
                raise OversizedResponseError(f"Response from {url} exceeds {max_bytes} bytes")

    return json.loads(bytes(body))
