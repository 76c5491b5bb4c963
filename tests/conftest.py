# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_authority

import socket
from collections.abc import Generator
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from coreason_authority.factory import AuthorityContext, AuthorityFactory
from coreason_authority.models import DiscoveryMetadata


@pytest.fixture(autouse=True)
def mock_dns_resolution() -> Generator[MagicMock, None, None]:
    """
    Globally patches socket.getaddrinfo to return a safe public IP by default.

    Tests that need to verify SSRF logic should explicitly patch socket.getaddrinfo
    again or configure this mock's return value.
    """
    safe_response = [(socket.AF_INET, socket.SOCK_STREAM, 6, "", ("8.8.8.8", 443))]

    with patch("socket.getaddrinfo", return_value=safe_response) as mock:
        yield mock


@pytest.fixture
def metadata() -> DiscoveryMetadata:
    return DiscoveryMetadata(
        authorization_endpoint="https://login.microsoftonline.com/{tenant}/oauth2/v2.0/authorize",
        end_session_endpoint="https://login.microsoftonline.com/{tenant}/oauth2/v2.0/logout",
        issuer="https://login.microsoftonline.com/{tenantid}/v2.0",
    )


@pytest.fixture
def context() -> AuthorityContext:
    """An isolated registry and cache, so tests never share process-wide state."""
    return AuthorityContext()


@pytest.fixture
def discovery_client(metadata: DiscoveryMetadata) -> AsyncMock:
    client = AsyncMock()
    client.fetch_discovery_document.return_value = metadata
    return client


@pytest.fixture
def factory(context: AuthorityContext, discovery_client: AsyncMock) -> AuthorityFactory:
    return AuthorityFactory(context=context, discovery_client=discovery_client)
