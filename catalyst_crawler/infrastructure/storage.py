"""Filesystem implementations of the CacheStorage and ArtifactStore ports."""

import asyncio
import contextlib
import json
import logging
from pathlib import Path
from typing import Dict, Generator

from ..application.domain import ArtifactStore, CacheStorage, Fingerprint
from ..application.exceptions import ArtifactStoreError, CacheError


@contextlib.contextmanager
def _atomic_target(destination: Path) -> Generator[Path, None, None]:
    """Provides a temporary '.part' path and ensures cleanup."""
    part_path = destination.with_suffix(destination.suffix + ".part")
    destination.parent.mkdir(parents=True, exist_ok=True)
    try:
        yield part_path
    finally:
        part_path.unlink(missing_ok=True)


class JsonCacheStorage(CacheStorage):
    """Keeps the cache mapping in a single indented JSON object."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self.logger = logging.getLogger(self.__class__.__name__)

    def read(self) -> Dict[str, str]:
        """
        Read the persisted mapping.

        A missing file is an empty cache.

        Raises:
            CacheError: If the file is unreadable or not a JSON object of
                        strings.
        """

        if not self.path.exists():
            self.logger.info(f"No cache file at {self.path}, starting empty.")
            return {}

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise CacheError(f"Cannot read cache file {self.path}: {e}") from e

        if not isinstance(data, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in data.items()
        ):
            raise CacheError(f"Cache file {self.path} is not a string mapping")
        return data

    def write(self, mapping: Dict[str, str]):
        try:
            with _atomic_target(self.path) as part_path:
                part_path.write_text(
                    json.dumps(mapping, indent=2, sort_keys=True), encoding="utf-8"
                )
                part_path.replace(self.path)
        except OSError as e:
            raise CacheError(f"Cannot write cache file {self.path}: {e}") from e


class FileArtifactStore(ArtifactStore):
    """Stores each artifact in a file named after its fingerprint."""

    def __init__(self, root: Path):
        self.root = Path(root)
        self.logger = logging.getLogger(self.__class__.__name__)

    def path_for(self, fingerprint: Fingerprint) -> Path:
        digest = str(fingerprint)
        return self.root / digest[:2] / digest

    def contains(self, fingerprint: Fingerprint) -> bool:
        return self.path_for(fingerprint).is_file()

    def _write_atomic(self, destination: Path, payload: bytes):
        with _atomic_target(destination) as part_path:
            part_path.write_bytes(payload)
            written = part_path.stat().st_size
            if written != len(payload):
                raise ArtifactStoreError(
                    f"Size mismatch: {written} != {len(payload)}"
                )
            part_path.replace(destination)

    async def store(self, fingerprint: Fingerprint, payload: bytes):
        """
        Write an artifact atomically.

        Raises:
            ArtifactStoreError: If the file cannot be written.
        """

        destination = self.path_for(fingerprint)
        try:
            await asyncio.to_thread(self._write_atomic, destination, payload)
        except OSError as e:
            raise ArtifactStoreError(f"Cannot write {destination}: {e}") from e
        self.logger.debug(f"Stored {len(payload)} bytes at {destination}")
