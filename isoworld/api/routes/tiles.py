"""Tile and chunk access — GET/PATCH /api/v1/tiles/{x}/{y}, GET /api/v1/chunks/{cx}/{cy}."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from isoworld.api.dependencies import get_session
from isoworld.api.schemas import ChunkSchema, TileSchema, TileUpdateRequest
from isoworld.api.session import WorldSession
from isoworld.core.chunk import Chunk
from isoworld.core.models import Tile

router = APIRouter()


def serialize_tile(tile: Tile) -> TileSchema:
    return TileSchema(
        x=tile.grid_x,
        y=tile.grid_y,
        terrain_type=tile.terrain_type,
        elevation=tile.elevation,
        walkable=tile.walkable,
        structure_id=tile.structure_id,
        entity_ids=sorted(tile.entity_ids),
        occupancy=tile.occupancy.name.lower(),
    )


def serialize_chunk(chunk: Chunk) -> ChunkSchema:
    return ChunkSchema(
        chunk_x=chunk.chunk_x,
        chunk_y=chunk.chunk_y,
        size=chunk.size,
        dirty=chunk.is_dirty,
        origin=[chunk.chunk_x * chunk.size, chunk.chunk_y * chunk.size],
        tiles=[serialize_tile(t) for t in chunk.tiles()],
    )


@router.get("/tiles/{x}/{y}", response_model=TileSchema)
def get_tile(x: int, y: int, session: WorldSession = Depends(get_session)) -> TileSchema:
    tile = session.facade.get_tile(x, y)
    if tile is None:
        raise HTTPException(status_code=404, detail=f"Tile ({x}, {y}) is not resident.")
    return serialize_tile(tile)


@router.patch("/tiles/{x}/{y}", response_model=TileSchema)
def update_tile(
    x: int,
    y: int,
    body: TileUpdateRequest,
    session: WorldSession = Depends(get_session),
) -> TileSchema:
    changes = body.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=422, detail="No tile fields given.")
    if not session.facade.update_tile(x, y, **changes):
        raise HTTPException(status_code=404, detail=f"Tile ({x}, {y}) is outside the world.")
    return serialize_tile(session.facade.get_tile(x, y))


@router.get("/chunks/{chunk_x}/{chunk_y}", response_model=ChunkSchema)
def get_chunk(chunk_x: int, chunk_y: int, session: WorldSession = Depends(get_session)) -> ChunkSchema:
    chunk = session.facade.get_or_create_chunk(chunk_x, chunk_y)
    if chunk is None:
        raise HTTPException(status_code=404, detail=f"Chunk ({chunk_x}, {chunk_y}) is unavailable.")
    return serialize_chunk(chunk)
