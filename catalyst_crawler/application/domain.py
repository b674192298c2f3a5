"""
This module defines the core domain models for the application.

These classes represent the pure, technology-agnostic entities and data
structures that the crawler's business logic operates on, together with the
ports (interfaces) the infrastructure layer implements.
"""

import dataclasses
import enum
import hashlib

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple, Union

_FINGERPRINT_BYTES = 16
_KEY_SEPARATOR = "\x00"


# --- Domain Models ---

@dataclasses.dataclass(frozen=True)
class Fingerprint:
    """
    A 128-bit content identity derived from a composite key.

    Equal ``(version, path)`` keys always produce equal fingerprints. The key
    parts are joined with a NUL separator so that moving characters between
    the version and the path yields a different fingerprint.
    """

    digest: str

    @classmethod
    def of(cls, version: str, path: str) -> "Fingerprint":
        key = f"{version}{_KEY_SEPARATOR}{path}".encode("utf-8")
        hasher = hashlib.blake2b(key, digest_size=_FINGERPRINT_BYTES)
        return cls(digest=hasher.hexdigest())

    @classmethod
    def from_hex(cls, value: str) -> "Fingerprint":
        """Rebuilds a fingerprint from its persisted hex form."""
        raw = bytes.fromhex(value)
        if len(raw) != _FINGERPRINT_BYTES:
            raise ValueError(
                f"Fingerprint must be {_FINGERPRINT_BYTES} bytes, got {len(raw)}"
            )
        return cls(digest=raw.hex())

    def __str__(self) -> str:
        return self.digest


@dataclasses.dataclass(frozen=True)
class Snapshot:
    """A point-in-time catalog listing reference."""

    hash: str
    entity_count: int


@dataclasses.dataclass(frozen=True)
class Entity:
    """A catalog entity; only its kind matters to the crawl."""

    id: str
    kind: str


@dataclasses.dataclass(frozen=True)
class Manifest:
    """Per-entity descriptor listing candidate asset files."""

    version_tag: str
    files: Tuple[str, ...]


@dataclasses.dataclass(frozen=True)
class AssetReference:
    """A transient handle for one asset download attempt."""

    fingerprint: Fingerprint
    source_url: str


@dataclasses.dataclass(frozen=True)
class CacheEntry:
    """A persisted record of an already retrieved asset."""

    fingerprint: Fingerprint
    source_url: str


@dataclasses.dataclass
class Counters:
    """Mutable progress counters owned by a single pipeline run."""

    completed_downloads: int = 0
    active_requests: int = 0
    peak_active_requests: int = 0
    total_downloaded: int = 0
    attempted: int = 0
    succeeded: int = 0
    failed: int = 0
    cancelled: int = 0
    skipped: int = 0
    cache_hits: int = 0

    def reset(self):
        for field in dataclasses.fields(self):
            setattr(self, field.name, field.default)

    def request_started(self):
        self.active_requests += 1
        self.peak_active_requests = max(
            self.peak_active_requests, self.active_requests
        )

    def request_finished(self):
        self.active_requests -= 1
        self.completed_downloads += 1

    def summary(self) -> Dict[str, int]:
        return dataclasses.asdict(self)


# --- Fetch requests and outcomes ---

@dataclasses.dataclass(frozen=True)
class PlainRequest:
    """A retrieval of an arbitrary URL, as text or as bytes."""

    url: str
    binary: bool = False


@dataclasses.dataclass(frozen=True)
class IntegrityRequest:
    """A binary retrieval bound to the fingerprint it is stored under."""

    url: str
    fingerprint: Fingerprint


FetchRequest = Union[PlainRequest, IntegrityRequest]


class OutcomeStatus(enum.Enum):
    SUCCESS = "success"
    PROTOCOL_ERROR = "protocol_error"
    CONNECTION_ERROR = "connection_error"
    CANCELLED = "cancelled"


@dataclasses.dataclass(frozen=True)
class FetchOutcome:
    """The uniform result of a single fetch; never raised, always returned."""

    status: OutcomeStatus
    payload: Union[str, bytes, None] = None
    message: Optional[str] = None
    from_store: bool = False

    @property
    def ok(self) -> bool:
        return self.status is OutcomeStatus.SUCCESS

    @classmethod
    def success(cls, payload, from_store: bool = False) -> "FetchOutcome":
        return cls(OutcomeStatus.SUCCESS, payload=payload, from_store=from_store)

    @classmethod
    def protocol_error(cls, message: str) -> "FetchOutcome":
        return cls(OutcomeStatus.PROTOCOL_ERROR, message=message)

    @classmethod
    def connection_error(cls, message: str) -> "FetchOutcome":
        return cls(OutcomeStatus.CONNECTION_ERROR, message=message)

    @classmethod
    def cancelled(cls) -> "FetchOutcome":
        return cls(OutcomeStatus.CANCELLED)


@dataclasses.dataclass(frozen=True)
class TransportResponse:
    """The raw result of a transport call that reached the server."""

    status_code: int
    content: bytes
    reason: str = ""

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")


# --- Ports (Interfaces) ---

class Transport(ABC):
    """A port for the HTTP capability the fetcher calls through."""

    @abstractmethod
    async def get(self, url: str) -> TransportResponse:
        """
        Retrieves a URL.
        Raises TransportFailure when the server could not be reached.
        """
        pass


class CatalogSource(ABC):
    """A port for the remote content catalog."""

    @abstractmethod
    async def list_snapshots(self) -> List[Snapshot]:
        """Fetches and parses the snapshot listing."""
        pass

    @abstractmethod
    async def get_snapshot_body(self, snapshot: Snapshot) -> str:
        """Fetches the raw content of a snapshot."""
        pass

    @abstractmethod
    async def get_entity(self, entity_id: str) -> Entity:
        """Fetches the metadata of a single entity."""
        pass

    @abstractmethod
    async def get_manifest(self, entity_id: str) -> Manifest:
        """Fetches the asset manifest of a single entity."""
        pass

    @abstractmethod
    def asset_url(self, version: str, filename: str) -> str:
        """Builds the download URL of one manifest file."""
        pass


class CacheStorage(ABC):
    """A port for the durable form of the content cache."""

    @abstractmethod
    def read(self) -> Dict[str, str]:
        """Returns the persisted fingerprint -> source URL mapping."""
        pass

    @abstractmethod
    def write(self, mapping: Dict[str, str]):
        """Replaces the persisted mapping wholesale."""
        pass


class ArtifactStore(ABC):
    """A port for the local storage of downloaded artifacts."""

    @abstractmethod
    def contains(self, fingerprint: Fingerprint) -> bool:
        """Tells whether an artifact is already stored locally."""
        pass

    @abstractmethod
    async def store(self, fingerprint: Fingerprint, payload: bytes):
        """
        Persists an artifact under its fingerprint.
        Raises ArtifactStoreError on failure.
        """
        pass
