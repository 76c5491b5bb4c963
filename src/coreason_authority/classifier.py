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
Detection of the authority variant from its URL.
"""

from coreason_authority.models import AuthorityType
from coreason_authority.models_internal import UrlComponents
from coreason_authority.trusted_hosts import TrustedHostRegistry
from coreason_authority.url import get_url_components
from coreason_authority.utils.logger import logger

ADFS_PATH_SEGMENT = "adfs"


def detect_authority_type(components: UrlComponents, registry: TrustedHostRegistry) -> AuthorityType:
    """
    Decides the authority variant. The first matching rule wins:

    1. The first path segment is ``adfs``: ADFS.
    2. Any B2C host has been registered: B2C.
    3. Otherwise: AAD.

    Rule 2 checks registry presence, not membership of this URL's host. Once a B2C
    host is registered, every non-ADFS authority in the same context is B2C and is
    subject to B2C host validation.
    """
    segments = components.path_segments
    if segments and segments[0] == ADFS_PATH_SEGMENT:
        return AuthorityType.ADFS

    if not registry.is_empty():
        if not registry.contains(components.host):
            logger.debug(f"Classifying unregistered host {components.host} as B2C (trusted hosts configured)")
        return AuthorityType.B2C

    return AuthorityType.AAD


def classify(url: str, registry: TrustedHostRegistry) -> AuthorityType:
    """
    Canonicalizes `url` and detects its authority variant.

    Raises:
        ConfigurationError: If the URL is empty or unparsable.
    """
    return detect_authority_type(get_url_components(url), registry)
