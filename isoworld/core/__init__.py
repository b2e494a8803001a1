"""Core data models and coordinate math."""

from isoworld.core.chunk import Chunk
from isoworld.core.coords import CoordinateTransform
from isoworld.core.enums import ChunkState, Occupancy
from isoworld.core.errors import ChunkGenerationError, MalformedChunkData, StorageUnavailable, WorldError
from isoworld.core.models import ChunkCoord, GridPoint, Tile, WorldMetadata, WorldPoint

__all__ = [
    "Chunk",
    "ChunkCoord",
    "ChunkGenerationError",
    "ChunkState",
    "CoordinateTransform",
    "GridPoint",
    "MalformedChunkData",
    "Occupancy",
    "StorageUnavailable",
    "Tile",
    "WorldError",
    "WorldMetadata",
    "WorldPoint",
]
