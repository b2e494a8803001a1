"""GET /api/v1/config — expose world configuration."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from isoworld.api.dependencies import get_session
from isoworld.api.schemas import WorldConfigResponse
from isoworld.api.session import WorldSession

router = APIRouter()


@router.get("/config", response_model=WorldConfigResponse)
def get_config(session: WorldSession = Depends(get_session)) -> WorldConfigResponse:
    cfg = session.config
    return WorldConfigResponse(
        world_id=cfg.world_id,
        world_seed=cfg.world_seed,
        tile_width=cfg.tile_width,
        tile_height=cfg.tile_height,
        chunk_size=cfg.chunk_size,
        load_distance=cfg.load_distance,
        unload_distance=cfg.unload_distance,
        generate_distance=cfg.generate_distance,
        world_limit_min_x=cfg.world_limit_min_x,
        world_limit_max_x=cfg.world_limit_max_x,
        world_limit_min_y=cfg.world_limit_min_y,
        world_limit_max_y=cfg.world_limit_max_y,
        persist_chunks=cfg.persist_chunks,
        auto_save=cfg.auto_save,
        auto_save_interval_ms=cfg.auto_save_interval_ms,
        storage_backend=cfg.storage_backend,
        max_stored_chunks=cfg.max_stored_chunks,
        io_workers=cfg.io_workers,
    )
