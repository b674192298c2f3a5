"""Shared fakes for the crawler's ports."""

from __future__ import annotations

import asyncio
import json
from typing import Callable, Dict, List, Union

import pytest

from catalyst_crawler.application.cache import ContentCache
from catalyst_crawler.application.cancellation import CancellationScope
from catalyst_crawler.application.domain import (
    ArtifactStore,
    CacheStorage,
    Counters,
    Fingerprint,
    Transport,
    TransportResponse,
)
from catalyst_crawler.application.exceptions import TransportFailure
from catalyst_crawler.application.fetcher import Fetcher
from catalyst_crawler.application.throttle import ThrottleGate

Route = Union[TransportResponse, Exception, Callable[[str], TransportResponse]]

CATALYST = "https://catalyst.test"
CDN = "https://cdn.test"


class FakeTransport(Transport):
    """Serves canned responses and records concurrency and call order."""

    def __init__(self, routes: Dict[str, Route] | None = None, delay_ticks: int = 1):
        self.routes: Dict[str, Route] = dict(routes or {})
        self.delay_ticks = delay_ticks
        self.calls: List[str] = []
        self.events: List[tuple] = []
        self.active = 0
        self.peak = 0

    def add_json(self, url: str, data) -> None:
        self.routes[url] = TransportResponse(200, json.dumps(data).encode("utf-8"))

    async def get(self, url: str) -> TransportResponse:
        self.calls.append(url)
        self.events.append(("start", url))
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            for _ in range(self.delay_ticks):
                await asyncio.sleep(0)
            route = self.routes.get(url, TransportResponse(404, b"", "Not Found"))
            if callable(route) and not isinstance(route, TransportResponse):
                route = route(url)
            if isinstance(route, Exception):
                raise route
            return route
        finally:
            self.active -= 1
            self.events.append(("end", url))


class MemoryArtifactStore(ArtifactStore):
    def __init__(self):
        self.blobs: Dict[Fingerprint, bytes] = {}

    def contains(self, fingerprint: Fingerprint) -> bool:
        return fingerprint in self.blobs

    async def store(self, fingerprint: Fingerprint, payload: bytes):
        self.blobs[fingerprint] = payload


class MemoryCacheStorage(CacheStorage):
    def __init__(self, mapping: Dict[str, str] | None = None):
        self.mapping = dict(mapping or {})
        self.writes = 0

    def read(self) -> Dict[str, str]:
        return dict(self.mapping)

    def write(self, mapping: Dict[str, str]):
        self.writes += 1
        self.mapping = dict(mapping)


def ok(body: bytes | str = b"ok") -> TransportResponse:
    if isinstance(body, str):
        body = body.encode("utf-8")
    return TransportResponse(200, body, "OK")


def connection_refused() -> TransportFailure:
    return TransportFailure("ConnectError: connection refused")


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def counters() -> Counters:
    return Counters()


@pytest.fixture
def scope() -> CancellationScope:
    return CancellationScope()


@pytest.fixture
def artifact_store() -> MemoryArtifactStore:
    return MemoryArtifactStore()


@pytest.fixture
def cache_storage() -> MemoryCacheStorage:
    return MemoryCacheStorage()


@pytest.fixture
def cache(cache_storage) -> ContentCache:
    return ContentCache(cache_storage)


@pytest.fixture
def gate() -> ThrottleGate:
    return ThrottleGate(15)


@pytest.fixture
def fetcher(transport, gate, scope, counters, artifact_store) -> Fetcher:
    return Fetcher(
        transport=transport,
        gate=gate,
        scope=scope,
        counters=counters,
        artifact_store=artifact_store,
    )
