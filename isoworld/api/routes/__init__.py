"""Versioned API route modules."""

from fastapi import APIRouter

from isoworld.api.routes.config import router as config_router
from isoworld.api.routes.coords import router as coords_router
from isoworld.api.routes.events import router as events_router
from isoworld.api.routes.tiles import router as tiles_router
from isoworld.api.routes.world import router as world_router

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(world_router, tags=["World"])
api_router.include_router(tiles_router, tags=["Tiles"])
api_router.include_router(coords_router, tags=["Coordinates"])
api_router.include_router(events_router, tags=["Events"])
api_router.include_router(config_router, tags=["Config"])

__all__ = ["api_router"]
