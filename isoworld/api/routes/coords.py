"""GET /api/v1/coords/* — coordinate conversions for clients without their own math."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from isoworld.api.dependencies import get_session
from isoworld.api.schemas import ConvertResponse, PointSchema
from isoworld.api.session import WorldSession

router = APIRouter()


@router.get("/coords/grid-to-world", response_model=ConvertResponse)
def grid_to_world(x: float, y: float, session: WorldSession = Depends(get_session)) -> ConvertResponse:
    transform = session.facade.transform
    world = transform.grid_to_world(x, y)
    chunk = transform.grid_to_chunk(x, y)
    return ConvertResponse(
        grid=PointSchema(x=x, y=y),
        world=PointSchema(x=world.x, y=world.y),
        chunk=[chunk.x, chunk.y],
    )


@router.get("/coords/world-to-grid", response_model=ConvertResponse)
def world_to_grid(x: float, y: float, session: WorldSession = Depends(get_session)) -> ConvertResponse:
    transform = session.facade.transform
    grid = transform.world_to_grid(x, y)
    chunk = transform.world_to_chunk(x, y)
    return ConvertResponse(
        grid=PointSchema(x=grid.x, y=grid.y),
        world=PointSchema(x=x, y=y),
        chunk=[chunk.x, chunk.y],
        snapped_tile=list(transform.snap_to_tile(x, y)),
        containing_tile=list(transform.containing_tile(x, y)),
    )
