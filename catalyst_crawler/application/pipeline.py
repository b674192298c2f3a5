"""
The snapshot-driven crawl.

The pipeline walks the catalog from a snapshot down to asset bundles:
select a snapshot, extract its entity ids, keep the target entities, read
their manifests, filter the files, and download every asset the content
cache does not already know about.
"""

import asyncio
import logging
import re
from typing import List, Sequence, Set, Tuple

from tqdm.asyncio import tqdm_asyncio

from .cache import ContentCache
from .cancellation import CancellationScope
from .domain import (
    AssetReference,
    CatalogSource,
    Counters,
    FetchOutcome,
    Fingerprint,
    IntegrityRequest,
    Manifest,
    OutcomeStatus,
    Snapshot,
)
from .exceptions import (
    CacheError,
    FetchCancelled,
    InfrastructureError,
    ParseFailure,
    PolicyExclusion,
    SnapshotUnavailableError,
)
from .fetcher import Fetcher
from .policy import CrawlPolicy

_ENTITY_ID_PATTERN = re.compile(r'"entityId"\s*:\s*"(.*?)"')


def select_snapshot(
    snapshots: Sequence[Snapshot], band: Tuple[int, int]
) -> Snapshot:
    """
    Pick the first snapshot whose entity count lies inside ``band``.

    Falls back to the snapshot with the most entities (the first one on
    ties) when none is in band.

    Raises:
        SnapshotUnavailableError: If there are no snapshots at all.
    """

    if not snapshots:
        raise SnapshotUnavailableError("No entity data available")

    low, high = band
    for snapshot in snapshots:
        if low <= snapshot.entity_count <= high:
            return snapshot

    return max(snapshots, key=lambda snapshot: snapshot.entity_count)


def extract_entity_ids(text: str) -> List[str]:
    """Find every entity id marker in a snapshot body, in source order."""
    return _ENTITY_ID_PATTERN.findall(text)


class CrawlPipeline:
    """Resolves and downloads the assets referenced by one catalog snapshot."""

    def __init__(
        self,
        catalog: CatalogSource,
        fetcher: Fetcher,
        cache: ContentCache,
        policy: CrawlPolicy,
        scope: CancellationScope,
        counters: Counters,
        snapshot_band: Tuple[int, int] = (19_000, 22_000),
        entity_batch_size: int = 20,
        target_download_count: int = 13_000,
        show_progress: bool = True,
    ):
        """Initializes the pipeline with its collaborators and limits."""
        self.logger = logging.getLogger(self.__class__.__name__)
        self.catalog = catalog
        self.fetcher = fetcher
        self.cache = cache
        self.policy = policy
        self.scope = scope
        self.counters = counters
        self.snapshot_band = tuple(snapshot_band)
        self.entity_batch_size = entity_batch_size
        self.target_download_count = target_download_count
        self.show_progress = show_progress
        self._in_flight: Set[Fingerprint] = set()
        self._shutdown_done = False

    async def run(self):
        """
        Execute the crawl until the entity list is exhausted or cancelled.

        Raises:
            SnapshotUnavailableError: If no snapshot can be chosen or its
                                      content cannot be fetched.
        """

        if self.scope.cancelled:
            return

        try:
            snapshot = await self._select_snapshot()
            if self.scope.cancelled:
                return
            entity_ids = await self._fetch_entity_ids(snapshot)
        except FetchCancelled:
            return

        self.logger.info(
            f"Processing {len(entity_ids)} entities from snapshot {snapshot.hash}"
        )
        await self._process_entities(entity_ids)

        self.logger.info(
            f"Crawl finished: {self.counters.total_downloaded} downloaded, "
            f"{self.counters.cache_hits} cache hits, "
            f"{self.counters.skipped} skipped, {self.counters.failed} failed."
        )

    # --- Stage 1 and 2: snapshot ---

    async def _select_snapshot(self) -> Snapshot:
        self.logger.info("Getting snapshot listing")
        try:
            snapshots = await self.catalog.list_snapshots()
        except (InfrastructureError, ParseFailure) as e:
            raise SnapshotUnavailableError(f"Snapshot listing unavailable: {e}") from e

        snapshot = select_snapshot(snapshots, self.snapshot_band)
        self.logger.info(
            f"Selected snapshot {snapshot.hash} with {snapshot.entity_count} entities"
        )
        return snapshot

    async def _fetch_entity_ids(self, snapshot: Snapshot) -> List[str]:
        self.logger.info("Getting snapshot content")
        try:
            body = await self.catalog.get_snapshot_body(snapshot)
        except InfrastructureError as e:
            raise SnapshotUnavailableError(
                f"Snapshot {snapshot.hash} content unavailable: {e}"
            ) from e
        return extract_entity_ids(body)

    # --- Stage 3: entities ---

    async def _process_entities(self, entity_ids: List[str]):
        for start in range(0, len(entity_ids), self.entity_batch_size):
            if self.scope.cancelled:
                self.logger.info("Cancelled, no further entities dispatched.")
                return

            batch = entity_ids[start:start + self.entity_batch_size]
            tasks = [
                asyncio.create_task(self._process_entity(entity_id))
                for entity_id in batch
            ]
            await tqdm_asyncio.gather(
                *tasks,
                desc=f"Entities {start + 1}-{start + len(batch)}",
                unit="entity",
                disable=not self.show_progress,
            )

    async def _process_entity(self, entity_id: str):
        """Resolve one entity down to its assets; failures only skip it."""
        try:
            self.scope.raise_if_cancelled()
            entity = await self.catalog.get_entity(entity_id)
            self.policy.check_entity(entity)

            self.scope.raise_if_cancelled()
            manifest = await self.catalog.get_manifest(entity_id)
            self.policy.check_manifest(manifest)

            await self._download_assets(manifest)
        except FetchCancelled:
            return
        except PolicyExclusion as e:
            self.counters.skipped += 1
            self.logger.debug(f"Skipping {entity_id}: {e}")
        except (InfrastructureError, ParseFailure) as e:
            self.counters.skipped += 1
            self.logger.warning(f"Skipping {entity_id}: {e}")

    # --- Stage 3e/4: assets ---

    def _pending_assets(self, manifest: Manifest) -> List[AssetReference]:
        assets = []
        for filename in manifest.files:
            if not self.policy.accepts_file(filename):
                continue
            fingerprint = Fingerprint.of(manifest.version_tag, filename)
            if self.cache.has(fingerprint) or fingerprint in self._in_flight:
                self.counters.cache_hits += 1
                continue
            self._in_flight.add(fingerprint)
            assets.append(
                AssetReference(
                    fingerprint=fingerprint,
                    source_url=self.catalog.asset_url(manifest.version_tag, filename),
                )
            )
        return assets

    async def _download_assets(self, manifest: Manifest):
        assets = self._pending_assets(manifest)
        if assets:
            await asyncio.gather(*(self._download_asset(asset) for asset in assets))

    async def _download_asset(self, asset: AssetReference):
        try:
            if self.scope.cancelled:
                self.counters.cancelled += 1
                return
            self.counters.attempted += 1
            outcome = await self.fetcher.fetch(
                IntegrityRequest(url=asset.source_url, fingerprint=asset.fingerprint)
            )
            self._record(asset, outcome)
        finally:
            self._in_flight.discard(asset.fingerprint)

    def _record(self, asset: AssetReference, outcome: FetchOutcome):
        if outcome.status is OutcomeStatus.CANCELLED:
            self.counters.cancelled += 1
            return

        if not outcome.ok:
            self.counters.failed += 1
            self.logger.warning(
                f"Asset download failed: {asset.source_url} ({outcome.message})"
            )
            return

        self.cache.remember(asset.fingerprint, asset.source_url)
        self.counters.succeeded += 1
        if outcome.from_store:
            self.counters.cache_hits += 1
            return

        self.counters.total_downloaded += 1
        self.logger.info(
            f"Successfully downloaded asset bundle from {asset.source_url} "
            f"{self.counters.total_downloaded}"
        )
        if self.counters.total_downloaded >= self.target_download_count:
            self.shutdown(f"reached {self.target_download_count} downloads")

    # --- Shutdown ---

    def shutdown(self, reason: str):
        """Persist the cache and stop issuing new work. Runs once."""
        if self._shutdown_done:
            return
        self._shutdown_done = True

        try:
            self.cache.save()
        except CacheError as e:
            self.logger.error(f"Failed to save cache: {e}")
        self.scope.cancel(reason)
        self.logger.info(f"Download finished for {self.counters.total_downloaded}")
