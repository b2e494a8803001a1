"""World lifecycle — actor movement, status, save/load/clear/generate."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from isoworld.api.dependencies import get_session
from isoworld.api.schemas import (
    ControlResponse,
    GenerateRequest,
    MoveRequest,
    SaveResponse,
    TickResponse,
    WorldInfoSchema,
    WorldStatusResponse,
)
from isoworld.api.session import WorldSession
from isoworld.core.errors import StorageUnavailable

router = APIRouter()


def _pairs(coords) -> list[list[int]]:
    return [[c.x, c.y] for c in coords]


@router.get("/world", response_model=WorldStatusResponse)
def get_world(session: WorldSession = Depends(get_session)) -> WorldStatusResponse:
    manager = session.facade.manager
    stats = manager.stats()
    meta = manager.metadata
    return WorldStatusResponse(
        world_id=stats["world_id"],
        seed=stats["seed"],
        created_at=meta.created_at.isoformat() if meta else None,
        last_saved_at=meta.last_saved_at.isoformat() if meta and meta.last_saved_at else None,
        tick=stats["tick"],
        known=stats["known"],
        resident=stats["resident"],
        dirty=stats["dirty"],
        pending_loads=stats["pending_loads"],
        tracked=list(manager.tracked_position),
        active_chunks=_pairs(sorted(manager.active_chunks, key=lambda c: (c.y, c.x))),
    )


@router.get("/worlds", response_model=list[WorldInfoSchema])
def list_worlds(session: WorldSession = Depends(get_session)) -> list[WorldInfoSchema]:
    store = session.facade.manager.store
    return [
        WorldInfoSchema(
            world_id=m.world_id,
            seed=m.seed,
            created_at=m.created_at.isoformat(),
            last_saved_at=m.last_saved_at.isoformat() if m.last_saved_at else None,
            chunk_count=store.world_chunk_count(m.world_id),
        )
        for m in session.facade.list_saved_worlds()
    ]


@router.post("/actor/move", response_model=TickResponse)
def move_actor(body: MoveRequest, session: WorldSession = Depends(get_session)) -> TickResponse:
    report = session.move_actor(body.x, body.y)
    return TickResponse(
        tick=report.tick,
        center=[report.center.x, report.center.y],
        loaded=_pairs(report.loaded),
        generated=_pairs(report.generated),
        evicted=_pairs(report.evicted),
        failed=_pairs(report.failed),
        pending=report.pending,
        resident=len(session.facade.manager.active_chunks),
    )


@router.post("/world/save", response_model=SaveResponse)
def save_world(session: WorldSession = Depends(get_session)) -> SaveResponse:
    try:
        report = session.facade.save_world_state()
    except StorageUnavailable as exc:
        raise HTTPException(status_code=503, detail=f"Save failed: {exc}") from exc
    return SaveResponse(status="ok", saved=len(report.saved), failed=_pairs(report.failed))


@router.post("/world/load", response_model=ControlResponse)
def load_world(session: WorldSession = Depends(get_session)) -> ControlResponse:
    try:
        found = session.facade.load_world_state()
    except StorageUnavailable as exc:
        raise HTTPException(status_code=503, detail=f"Load failed: {exc}") from exc
    tick = session.facade.manager.tick_count
    if not found:
        return ControlResponse(status="noop", message="No saved world.", tick=tick)
    return ControlResponse(status="ok", message="World loaded.", tick=tick)


@router.post("/world/clear", response_model=ControlResponse)
def clear_world(session: WorldSession = Depends(get_session)) -> ControlResponse:
    removed = session.facade.clear_saved_data()
    return ControlResponse(
        status="ok",
        message=f"Removed {removed} stored record(s).",
        tick=session.facade.manager.tick_count,
    )


@router.post("/world/generate", response_model=ControlResponse)
def generate_world(body: GenerateRequest, session: WorldSession = Depends(get_session)) -> ControlResponse:
    meta = session.facade.generate_world(seed=body.seed, clear_storage=body.clear_storage)
    return ControlResponse(
        status="ok",
        message=f"World generated with seed {meta.seed}.",
        tick=session.facade.manager.tick_count,
    )
