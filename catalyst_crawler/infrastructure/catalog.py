"""Catalyst content server implementation of the CatalogSource port."""

import logging
from typing import List

from pydantic import ValidationError

from ..application.domain import (
    CatalogSource,
    Entity,
    FetchOutcome,
    Manifest,
    OutcomeStatus,
    PlainRequest,
    Snapshot,
)
from ..application.exceptions import (
    FetchCancelled,
    ParseFailure,
    ProtocolFailure,
    TransportFailure,
)
from ..application.fetcher import Fetcher

from .api_models import EntityRecord, ManifestRecord, SnapshotListing, SnapshotRecord

_SNAPSHOTS_ENDPOINT = "/content/snapshots"
_CONTENTS_ENDPOINT = "/content/contents/"
_MANIFEST_TEMPLATE = "/manifest/{entity_id}_windows.json"
_ASSET_TEMPLATE = "/{version}/{filename}"


class CatalystCatalog(CatalogSource):
    """A catalog that reads snapshots, entities and manifests over HTTP."""

    def __init__(self, fetcher: Fetcher, catalyst_url: str, cdn_url: str):
        """Initializes the catalog adapter."""
        self.logger = logging.getLogger(self.__class__.__name__)
        self.fetcher = fetcher
        self.catalyst_url = catalyst_url.rstrip("/")
        self.cdn_url = cdn_url.rstrip("/")

    def _contents_url(self, content_hash: str) -> str:
        return self.catalyst_url + _CONTENTS_ENDPOINT + content_hash

    def _manifest_url(self, entity_id: str) -> str:
        return self.cdn_url + _MANIFEST_TEMPLATE.format(entity_id=entity_id)

    def asset_url(self, version: str, filename: str) -> str:
        return self.cdn_url + _ASSET_TEMPLATE.format(version=version, filename=filename)

    async def _get_text(self, url: str) -> str:
        """Fetches a text body, turning a failed outcome into an exception."""
        outcome = await self.fetcher.fetch(PlainRequest(url=url))
        self._raise_for_outcome(outcome, url)
        return outcome.payload

    @staticmethod
    def _raise_for_outcome(outcome: FetchOutcome, url: str):
        if outcome.status is OutcomeStatus.CANCELLED:
            raise FetchCancelled(url)
        if outcome.status is OutcomeStatus.PROTOCOL_ERROR:
            raise ProtocolFailure(f"{outcome.message} {url}")
        if outcome.status is OutcomeStatus.CONNECTION_ERROR:
            raise TransportFailure(f"{outcome.message} {url}")

    def _map_snapshot(self, dto: SnapshotRecord) -> Snapshot:
        return Snapshot(hash=dto.hash, entity_count=dto.number_of_entities)

    async def list_snapshots(self) -> List[Snapshot]:
        """
        Fetch and validate the snapshot listing.

        Raises:
            ParseFailure: If the listing is not a JSON array of snapshots.
            ProtocolFailure, TransportFailure: If the listing cannot be fetched.
        """

        url = self.catalyst_url + _SNAPSHOTS_ENDPOINT
        body = await self._get_text(url)
        try:
            dtos = SnapshotListing.validate_json(body)
        except ValidationError as e:
            raise ParseFailure(f"Malformed snapshot listing: {e}") from e

        snapshots = [self._map_snapshot(dto) for dto in dtos]
        self.logger.info(f"Listed {len(snapshots)} snapshots.")
        return snapshots

    async def get_snapshot_body(self, snapshot: Snapshot) -> str:
        return await self._get_text(self._contents_url(snapshot.hash))

    async def get_entity(self, entity_id: str) -> Entity:
        body = await self._get_text(self._contents_url(entity_id))
        try:
            dto = EntityRecord.model_validate_json(body)
        except ValidationError as e:
            raise ParseFailure(f"Malformed entity {entity_id}: {e}") from e
        return Entity(id=entity_id, kind=dto.type)

    async def get_manifest(self, entity_id: str) -> Manifest:
        url = self._manifest_url(entity_id)
        self.logger.debug(f"Downloading manifest: {url}")
        body = await self._get_text(url)
        try:
            dto = ManifestRecord.model_validate_json(body)
        except ValidationError as e:
            raise ParseFailure(f"Malformed manifest {url}: {e}") from e
        return Manifest(version_tag=dto.version, files=tuple(dto.files))
