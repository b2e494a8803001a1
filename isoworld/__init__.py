"""Chunked isometric world: coordinates, chunk streaming and persistence."""

from isoworld.config import WorldConfig
from isoworld.world import WorldFacade

__all__ = ["WorldConfig", "WorldFacade"]

__version__ = "0.1.0"
