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
Cache of discovery metadata keyed by canonical authority.
"""

import threading

import anyio
from pydantic import ValidationError

from coreason_authority.exceptions import MetadataParseError
from coreason_authority.models import DiscoveryMetadata, IngestOutcome, IngestResult
from coreason_authority.utils.logger import logger


class AuthorityMetadataCache:
    """
    Maps canonical authorities to their discovery metadata.

    Only complete `DiscoveryMetadata` values are ever stored. Entries are never evicted.
    """

    def __init__(self) -> None:
        self._entries: dict[str, DiscoveryMetadata] = {}
        self._locks: dict[str, anyio.Lock] = {}
        self._mutex = threading.Lock()

    def get(self, canonical_authority: str) -> DiscoveryMetadata | None:
        return self._entries.get(canonical_authority)

    def put(self, canonical_authority: str, metadata: DiscoveryMetadata) -> None:
        """
        Stores metadata for an authority, replacing any previous entry.

        Raises:
            TypeError: If `metadata` is not a `DiscoveryMetadata` instance.
        """
        if not isinstance(metadata, DiscoveryMetadata):
            raise TypeError(f"Expected DiscoveryMetadata, got {type(metadata).__name__}")
        with self._mutex:
            self._entries[canonical_authority] = metadata

    def __contains__(self, canonical_authority: object) -> bool:
        return canonical_authority in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def lock_for(self, canonical_authority: str) -> anyio.Lock:
        """
        Returns the lock serializing discovery for one authority.
        """
        with self._mutex:
            lock = self._locks.get(canonical_authority)
            if lock is None:
                lock = anyio.Lock()
                self._locks[canonical_authority] = lock
            return lock

    def try_ingest(self, canonical_authority: str, raw_json: str | bytes | None) -> IngestResult:
        """
        Parses pre-supplied discovery metadata and caches it on success.

        Malformed input is not an error for the caller: the result reports
        `IGNORED_PARSE_ERROR` and any existing entry for the authority is left untouched.

        Args:
            canonical_authority: The cache key.
            raw_json: JSON object with `authorization_endpoint`, `end_session_endpoint` and `issuer`.

        Returns:
            IngestResult: What happened to the supplied metadata.
        """
        if not raw_json:
            return IngestResult(outcome=IngestOutcome.NOT_SUPPLIED)

        try:
            metadata = DiscoveryMetadata.model_validate_json(raw_json)
        except ValidationError as e:
            error = MetadataParseError(f"Ignoring malformed authority metadata for {canonical_authority}: {e}")
            logger.warning(str(error))
            return IngestResult(outcome=IngestOutcome.IGNORED_PARSE_ERROR, error=error)

        self.put(canonical_authority, metadata)
        logger.debug(f"Ingested pre-supplied metadata for {canonical_authority}")
        return IngestResult(outcome=IngestOutcome.INGESTED, metadata=metadata)
