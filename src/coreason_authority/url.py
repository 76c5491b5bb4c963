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
Canonicalization of authority URLs.

The canonical form is used as the key of the metadata cache, so it must be stable:
canonicalizing an already canonical URL returns it unchanged.
"""

from urllib.parse import SplitResult, urlsplit

from coreason_authority.exceptions import ConfigurationError
from coreason_authority.models_internal import UrlComponents

SUPPORTED_SCHEMES = ("https", "http")
DEFAULT_PORTS = {"https": 443, "http": 80}


def _split(url: str) -> SplitResult:
    """
    Lower-cases the URL, enforces a scheme and splits it.

    Raises:
        ConfigurationError: If the URL is empty or not a usable http(s) URL.
    """
    if url is None or not url.strip():
        raise ConfigurationError("Authority URL is empty.")

    value = url.strip().lower()
    if "://" not in value:
        value = f"https://{value}"

    try:
        parsed = urlsplit(value)
        hostname = parsed.hostname
        parsed.port
    except ValueError as e:
        # Malformed IPv6 brackets or a non-numeric / out-of-range port
        raise ConfigurationError(f"Authority URL cannot be parsed: '{url}': {e}") from e

    if parsed.scheme not in SUPPORTED_SCHEMES:
        raise ConfigurationError(f"Unsupported scheme in authority URL: '{parsed.scheme}'")
    if not hostname:
        raise ConfigurationError(f"Authority URL has no host: '{url}'")
    if parsed.username is not None or parsed.password is not None:
        raise ConfigurationError("Authority URL must not embed credentials.")

    return parsed


def get_url_components(url: str) -> UrlComponents:
    """
    Decomposes an authority URL into scheme, host, port and non-empty path segments.

    Args:
        url: The raw or canonical authority URL.

    Returns:
        UrlComponents: The decomposed URL. The default port of the scheme is dropped.

    Raises:
        ConfigurationError: If the URL is empty or unparsable.
    """
    parsed = _split(url)
    port = parsed.port
    if port == DEFAULT_PORTS[parsed.scheme]:
        port = None

    segments = tuple(segment for segment in parsed.path.split("/") if segment)
    return UrlComponents(
        scheme=parsed.scheme,
        host=parsed.hostname or "",
        port=port,
        path_segments=segments,
    )


def canonicalize_uri(url: str) -> str:
    """
    Returns the canonical form of an authority URL.

    The canonical form is lower-case, always carries a scheme (https when absent),
    drops the default port, the query and the fragment, collapses empty path
    segments and ends with exactly one slash.

    Args:
        url: The raw authority URL.

    Returns:
        str: The canonical authority (e.g. ``https://login.microsoftonline.com/common/``).

    Raises:
        ConfigurationError: If the URL is empty or unparsable.
    """
    components = get_url_components(url)
    return build_canonical(components)


def build_canonical(components: UrlComponents) -> str:
    """Reassembles canonical URL text from its components."""
    host = components.host
    if ":" in host:
        # IPv6 literal
        host = f"[{host}]"
    netloc = host if components.port is None else f"{host}:{components.port}"
    path = "".join(f"{segment}/" for segment in components.path_segments)
    return f"{components.scheme}://{netloc}/{path}"
