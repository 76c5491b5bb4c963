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
Registry of trusted B2C hosts.
"""

import threading
from collections.abc import Iterable

from coreason_authority.utils.logger import logger

# Well-known Azure AD cloud instances. Authorities on these hosts need no instance discovery.
AAD_TRUSTED_HOSTS: frozenset[str] = frozenset(
    {
        "login.windows.net",
        "login.chinacloudapi.cn",
        "login.cloudgovapi.us",
        "login.microsoftonline.com",
        "login.microsoftonline.de",
        "login.microsoftonline.us",
    }
)


def normalize_host(host: str) -> str:
    return host.strip().lower()


class TrustedHostRegistry:
    """
    Set of hostnames permitted as B2C authorities.

    The registry is populated at most once: the first call to `set_known_authorities`
    that actually inserts hosts wins, every later call is a no-op. There is no removal.
    """

    def __init__(self) -> None:
        self._hosts: set[str] = set()
        self._lock = threading.Lock()

    def is_empty(self) -> bool:
        with self._lock:
            return not self._hosts

    def contains(self, host: str) -> bool:
        normalized = normalize_host(host)
        with self._lock:
            return normalized in self._hosts

    def __contains__(self, host: object) -> bool:
        return isinstance(host, str) and self.contains(host)

    def __len__(self) -> int:
        with self._lock:
            return len(self._hosts)

    @property
    def hosts(self) -> frozenset[str]:
        """Snapshot of the registered hosts."""
        with self._lock:
            return frozenset(self._hosts)

    def set_known_authorities(self, validate: bool, hosts: Iterable[str]) -> bool:
        """
        Populates the registry if validation is enabled and it is still empty.

        The emptiness check and the insert happen atomically, so concurrent first
        callers produce exactly one winner and the others insert nothing.

        Args:
            validate: Whether authority validation is enabled. Nothing is registered otherwise.
            hosts: The hostnames to trust. Blank entries are skipped.

        Returns:
            bool: True if this call populated the registry, False if it was a no-op.
        """
        if not validate:
            return False

        normalized = {normalize_host(host) for host in hosts if host and host.strip()}
        if not normalized:
            return False

        with self._lock:
            if self._hosts:
                logger.debug("Trusted host registry already populated; ignoring known authorities.")
                return False
            self._hosts.update(normalized)

        logger.info(f"Registered {len(normalized)} trusted B2C host(s).")
        return True
