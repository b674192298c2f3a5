"""
Pydantic models for validating responses from the Catalyst content server
and the asset-bundle CDN.

Each model declares only the fields the crawler consumes; unknown fields are
ignored so that schema additions upstream never break a crawl.
"""

from typing import List

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class SnapshotRecord(BaseModel):
    """One entry of the snapshot listing."""

    model_config = ConfigDict(extra="ignore")

    hash: str
    number_of_entities: int = Field(alias="numberOfEntities")


class EntityRecord(BaseModel):
    """The part of an entity's metadata that decides whether to follow it."""

    model_config = ConfigDict(extra="ignore")

    type: str


class ManifestRecord(BaseModel):
    """
    An asset-bundle manifest.

    ``files`` defaults to empty because converters publish manifests for
    entities that produced no bundles.
    """

    model_config = ConfigDict(extra="ignore")

    version: str
    files: List[str] = []


SnapshotListing = TypeAdapter(List[SnapshotRecord])
