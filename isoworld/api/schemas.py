"""Pydantic request/response models for the REST API."""

from __future__ import annotations

from pydantic import BaseModel, Field


# --- Tiles & chunks ---

class TileSchema(BaseModel):
    x: int
    y: int
    terrain_type: str
    elevation: int
    walkable: bool
    structure_id: str | None = None
    entity_ids: list[int] = Field(default_factory=list)
    occupancy: str = "empty"


class TileUpdateRequest(BaseModel):
    """Only fields present in the request body are changed."""

    terrain_type: str | None = None
    elevation: int | None = None
    walkable: bool | None = None
    structure_id: str | None = None


class ChunkSchema(BaseModel):
    chunk_x: int
    chunk_y: int
    size: int
    dirty: bool
    origin: list[int] = Field(description="Top-left grid coordinate [x, y]")
    tiles: list[TileSchema] = Field(description="Row-major, size * size tiles")


# --- Streaming ---

class MoveRequest(BaseModel):
    x: int
    y: int


class TickResponse(BaseModel):
    tick: int
    center: list[int]
    loaded: list[list[int]] = Field(default_factory=list)
    generated: list[list[int]] = Field(default_factory=list)
    evicted: list[list[int]] = Field(default_factory=list)
    failed: list[list[int]] = Field(default_factory=list)
    pending: int = 0
    resident: int = 0


class WorldStatusResponse(BaseModel):
    world_id: str
    seed: int
    created_at: str | None = None
    last_saved_at: str | None = None
    tick: int
    known: int
    resident: int
    dirty: int
    pending_loads: int
    tracked: list[int]
    active_chunks: list[list[int]] = Field(default_factory=list)


class WorldInfoSchema(BaseModel):
    world_id: str
    seed: int
    created_at: str
    last_saved_at: str | None = None
    chunk_count: int = 0


# --- Persistence ---

class GenerateRequest(BaseModel):
    seed: int | None = None
    clear_storage: bool = False


class SaveResponse(BaseModel):
    status: str
    saved: int = 0
    failed: list[list[int]] = Field(default_factory=list)


class ControlResponse(BaseModel):
    status: str
    message: str
    tick: int = 0


# --- Coordinates ---

class PointSchema(BaseModel):
    x: float
    y: float


class ConvertResponse(BaseModel):
    grid: PointSchema
    world: PointSchema
    chunk: list[int]
    snapped_tile: list[int] | None = None
    containing_tile: list[int] | None = None


# --- Events & config ---

class EventSchema(BaseModel):
    tick: int
    category: str
    message: str
    chunk: list[int] | None = None


class WorldConfigResponse(BaseModel):
    world_id: str
    world_seed: int
    tile_width: int
    tile_height: int
    chunk_size: int
    load_distance: int
    unload_distance: int
    generate_distance: int
    world_limit_min_x: int | None = None
    world_limit_max_x: int | None = None
    world_limit_min_y: int | None = None
    world_limit_max_y: int | None = None
    persist_chunks: bool
    auto_save: bool
    auto_save_interval_ms: int
    storage_backend: str
    max_stored_chunks: int
    io_workers: int
