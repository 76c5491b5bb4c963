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
Tests for the SafeAsyncTransport component and bounded JSON fetching.
"""

import socket
from collections.abc import AsyncGenerator, Generator
from contextlib import asynccontextmanager
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from coreason_authority.exceptions import DiscoveryNetworkError, OversizedResponseError
from coreason_authority.transport import SafeAsyncTransport, SecurityError, safe_json_fetch


@pytest.fixture
def mock_getaddrinfo() -> Generator[MagicMock, None, None]:
    with patch("socket.getaddrinfo") as mock:
        yield mock


def mock_stream_of(response: MagicMock) -> Any:
    @asynccontextmanager
    async def mock_stream(*_args: Any, **_kwargs: Any) -> AsyncGenerator[MagicMock, None]:
        yield response

    return mock_stream


def chunked_response(*chunks: bytes, headers: dict[str, str] | None = None) -> MagicMock:
    async def content_stream() -> AsyncGenerator[bytes, None]:
        for chunk in chunks:
            yield chunk

    response = MagicMock()
    response.headers = headers or {}
    response.aiter_bytes = content_stream
    response.raise_for_status = MagicMock()
    return response


def test_security_error_is_network_error() -> None:
    assert issubclass(SecurityError, DiscoveryNetworkError)


@pytest.mark.asyncio
async def test_safe_transport_blocks_private_ip(mock_getaddrinfo: MagicMock) -> None:
    mock_getaddrinfo.return_value = [(socket.AF_INET, socket.SOCK_STREAM, 6, "", ("192.168.1.1", 443))]

    transport = SafeAsyncTransport()
    request = httpx.Request("GET", "https://internal.local/adfs/.well-known/openid-configuration")

    with pytest.raises(SecurityError, match="No valid public IP"):
        await transport.handle_async_request(request)


@pytest.mark.asyncio
async def test_safe_transport_blocks_ip_literal() -> None:
    transport = SafeAsyncTransport()
    request = httpx.Request("GET", "https://169.254.169.254/latest/meta-data")

    with pytest.raises(SecurityError, match="SSRF Protection: Blocked"):
        await transport.handle_async_request(request)


@pytest.mark.asyncio
async def test_safe_transport_blocks_loopback_ipv6(mock_getaddrinfo: MagicMock) -> None:
    mock_getaddrinfo.return_value = [(socket.AF_INET6, socket.SOCK_STREAM, 6, "", ("::1", 443, 0, 0))]

    transport = SafeAsyncTransport()
    request = httpx.Request("GET", "https://localhost/")

    with pytest.raises(SecurityError):
        await transport.handle_async_request(request)


@pytest.mark.asyncio
async def test_safe_transport_dns_error(mock_getaddrinfo: MagicMock) -> None:
    mock_getaddrinfo.side_effect = socket.gaierror("DNS Error")

    transport = SafeAsyncTransport()
    request = httpx.Request("GET", "https://login.example.com/tenant/")

    with pytest.raises(SecurityError, match="DNS resolution failed"):
        await transport.handle_async_request(request)


@pytest.mark.asyncio
async def test_safe_transport_pins_public_ip(mock_getaddrinfo: MagicMock) -> None:
    mock_getaddrinfo.return_value = [
        (socket.AF_INET, socket.SOCK_STREAM, 6, "", ("10.0.0.1", 443)),
        (socket.AF_INET, socket.SOCK_STREAM, 6, "", ("8.8.8.8", 443)),
    ]

    transport = SafeAsyncTransport()
    with patch("httpx.AsyncHTTPTransport.handle_async_request", new_callable=AsyncMock) as mock_super:
        mock_super.return_value = httpx.Response(200)

        request = httpx.Request("GET", "https://login.microsoftonline.com/common/")
        await transport.handle_async_request(request)

        assert request.url.host == "8.8.8.8"
        assert request.headers["host"] == "login.microsoftonline.com"
        assert request.extensions["sni_hostname"] == "login.microsoftonline.com"
        mock_super.assert_awaited_once()


@pytest.mark.asyncio
async def test_safe_json_fetch_returns_document() -> None:
    client = httpx.AsyncClient()
    response = chunked_response(b'{"issuer": ', b'"https://issuer/"}')

    with patch.object(client, "stream", side_effect=mock_stream_of(response)):
        assert await safe_json_fetch(client, "https://test.com") == {"issuer": "https://issuer/"}


@pytest.mark.asyncio
async def test_safe_json_fetch_exact_limit() -> None:
    client = httpx.AsyncClient()
    response = chunked_response(b'{"a": 123}', headers={"Content-Length": "10"})

    with patch.object(client, "stream", side_effect=mock_stream_of(response)):
        assert await safe_json_fetch(client, "https://test.com", max_bytes=10) == {"a": 123}


@pytest.mark.asyncio
async def test_safe_json_fetch_content_length_limit() -> None:
    client = httpx.AsyncClient()
    response = chunked_response(b"{}", headers={"Content-Length": str(2 * 1024 * 1024)})

    with (
        patch.object(client, "stream", side_effect=mock_stream_of(response)),
        pytest.raises(OversizedResponseError, match="exceeds"),
    ):
        await safe_json_fetch(client, "https://test.com", max_bytes=1_000_000)


@pytest.mark.asyncio
async def test_safe_json_fetch_chunked_limit_exceeded() -> None:
    client = httpx.AsyncClient()
    response = chunked_response(b"12345", b"67890", b"1")

    with (
        patch.object(client, "stream", side_effect=mock_stream_of(response)),
        pytest.raises(OversizedResponseError),
    ):
        await safe_json_fetch(client, "https://test.com", max_bytes=10)


@pytest.mark.asyncio
async def test_safe_json_fetch_invalid_content_length_ignored() -> None:
    client = httpx.AsyncClient()
    response = chunked_response(b"{}", headers={"Content-Length": "invalid"})

    with patch.object(client, "stream", side_effect=mock_stream_of(response)):
        assert await safe_json_fetch(client, "https://test.com") == {}


@pytest.mark.asyncio
async def test_safe_json_fetch_invalid_json() -> None:
    client = httpx.AsyncClient()
    response = chunked_response(b"invalid json")

    with (
        patch.object(client, "stream", side_effect=mock_stream_of(response)),
        pytest.raises(ValueError),
    ):
        await safe_json_fetch(client, "https://test.com")
