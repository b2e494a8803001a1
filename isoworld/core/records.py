"""Pydantic models for persisted chunk and world records."""

from __future__ import annotations

from pydantic import BaseModel, Field

CHUNK_SCHEMA_VERSION = 1


class TileRecord(BaseModel):
    type: str
    elevation: int = 0
    walkable: bool = False
    structure_id: str | None = Field(None, alias="structureId")

    class Config:
        populate_by_name = True
        extra = "forbid"


class ChunkRecord(BaseModel):
    schema_version: int = Field(alias="schemaVersion")
    chunk_x: int = Field(alias="chunkX")
    chunk_y: int = Field(alias="chunkY")
    chunk_size: int = Field(alias="chunkSize", gt=0)
    tiles: list[TileRecord]

    class Config:
        populate_by_name = True


class WorldMetadataRecord(BaseModel):
    world_id: str = Field(alias="worldId")
    seed: int
    created_at_iso: str = Field(alias="createdAtIso")
    last_saved_at_iso: str | None = Field(None, alias="lastSavedAtIso")

    class Config:
        populate_by_name = True
