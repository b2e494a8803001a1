"""Core data models: coordinates, Tile, WorldMetadata."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from isoworld.core.enums import Occupancy

EMPTY_TERRAIN = "empty"


@dataclass(frozen=True, slots=True)
class ChunkCoord:
    """Immutable chunk-grid address."""

    x: int = 0
    y: int = 0

    def chebyshev(self, other: ChunkCoord) -> int:
        return max(abs(self.x - other.x), abs(self.y - other.y))

    def __repr__(self) -> str:
        return f"[{self.x}, {self.y}]"


@dataclass(frozen=True, slots=True)
class GridPoint:
    """Tile-grid position; fractional when produced by ``world_to_grid``."""

    x: float = 0
    y: float = 0


@dataclass(frozen=True, slots=True)
class WorldPoint:
    """Continuous isometric render-space position."""

    x: float = 0.0
    y: float = 0.0


@dataclass(slots=True)
class Tile:
    """One cell of the world.

    The occupant is a tagged union read through ``occupancy``: a tile owns at
    most one structure reference, and only stores the *ids* of transient
    entities standing on it. Entity ids are not persisted. A structure wins
    over entities when both are present.
    """

    grid_x: int
    grid_y: int
    terrain_type: str = EMPTY_TERRAIN
    elevation: int = 0
    walkable: bool = False
    structure_id: str | None = None
    entity_ids: set[int] = field(default_factory=set)

    @property
    def occupancy(self) -> Occupancy:
        if self.structure_id is not None:
            return Occupancy.STRUCTURE
        if self.entity_ids:
            return Occupancy.ENTITIES
        return Occupancy.EMPTY

    @classmethod
    def empty(cls, grid_x: int, grid_y: int) -> Tile:
        return cls(grid_x=grid_x, grid_y=grid_y)

    def to_record(self) -> dict[str, Any]:
        return {
            "type": self.terrain_type,
            "elevation": self.elevation,
            "walkable": self.walkable,
            "structureId": self.structure_id,
        }

    def persisted_fields(self) -> tuple[str, int, bool, str | None]:
        return self.terrain_type, self.elevation, self.walkable, self.structure_id

    def copy(self) -> Tile:
        return Tile(
            grid_x=self.grid_x,
            grid_y=self.grid_y,
            terrain_type=self.terrain_type,
            elevation=self.elevation,
            walkable=self.walkable,
            structure_id=self.structure_id,
            entity_ids=set(self.entity_ids),
        )


@dataclass(slots=True)
class WorldMetadata:
    """World-level record, one per world id."""

    world_id: str
    seed: int
    created_at: datetime
    last_saved_at: datetime | None = None

    @classmethod
    def create(cls, world_id: str, seed: int) -> WorldMetadata:
        return cls(world_id=world_id, seed=seed, created_at=datetime.now(timezone.utc))

    def touch_saved(self) -> None:
        self.last_saved_at = datetime.now(timezone.utc)

    def to_record(self) -> dict[str, Any]:
        return {
            "worldId": self.world_id,
            "seed": self.seed,
            "createdAtIso": self.created_at.isoformat(),
            "lastSavedAtIso": self.last_saved_at.isoformat() if self.last_saved_at else None,
        }
