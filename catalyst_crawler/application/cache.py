"""In-memory dedup cache of retrieved assets, persisted wholesale."""

import logging
from typing import Dict, List

from .domain import CacheEntry, CacheStorage, Fingerprint
from .exceptions import CacheError


class ContentCache:
    """Maps a fingerprint to the URL it was retrieved from."""

    def __init__(self, storage: CacheStorage):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.storage = storage
        self._entries: Dict[Fingerprint, str] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def has(self, fingerprint: Fingerprint) -> bool:
        return fingerprint in self._entries

    def remember(self, fingerprint: Fingerprint, source_url: str):
        """Records a verified retrieval; the last URL for a fingerprint wins."""
        self._entries[fingerprint] = source_url

    def entries(self) -> List[CacheEntry]:
        return [
            CacheEntry(fingerprint=fp, source_url=url)
            for fp, url in self._entries.items()
        ]

    def load(self):
        """
        Populate the cache from durable storage.

        Entries already in memory are kept unless the stored mapping has the
        same fingerprint.

        Raises:
            CacheError: If the stored mapping holds an invalid fingerprint.
        """

        mapping = self.storage.read()
        for key, url in mapping.items():
            try:
                fingerprint = Fingerprint.from_hex(key)
            except ValueError as e:
                raise CacheError(f"Invalid fingerprint {key!r}: {e}") from e
            self._entries[fingerprint] = url

        self.logger.info(f"Loaded {len(mapping)} cache entries.")

    def save(self):
        """Write every entry to durable storage, replacing its contents."""
        self.storage.write(
            {str(entry.fingerprint): entry.source_url for entry in self.entries()}
        )
        self.logger.info(f"Cache saved with {len(self._entries)} entries.")
