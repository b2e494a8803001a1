"""Coordinate conversions between the tile grid, isometric render space and chunks."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from isoworld.core.models import ChunkCoord, GridPoint, WorldPoint

if TYPE_CHECKING:
    from isoworld.config import WorldConfig


class CoordinateTransform:
    """Stateless conversions over fixed tile/chunk dimensions.

    Grid → world is the standard 2:1 isometric projection::

        iso_x = grid_x - grid_y
        iso_y = grid_x + grid_y
        world = (iso_x * tile_width / 2, iso_y * tile_height / 2)

    ``world_to_grid`` is its exact inverse and returns fractional grid
    positions. Turning those into a tile address is left to the caller:
    ``snap_to_tile`` rounds (placement preview centres on the closest tile)
    while ``containing_tile`` floors (movement and containment tests).
    """

    __slots__ = ("tile_width", "tile_height", "chunk_size", "_limits")

    def __init__(
        self,
        tile_width: int = 64,
        tile_height: int = 32,
        chunk_size: int = 16,
        limits: tuple[int | None, int | None, int | None, int | None] = (None, None, None, None),
    ) -> None:
        self.tile_width = tile_width
        self.tile_height = tile_height
        self.chunk_size = chunk_size
        self._limits = limits

    @classmethod
    def from_config(cls, config: WorldConfig) -> CoordinateTransform:
        return cls(
            tile_width=config.tile_width,
            tile_height=config.tile_height,
            chunk_size=config.chunk_size,
            limits=(
                config.world_limit_min_x,
                config.world_limit_max_x,
                config.world_limit_min_y,
                config.world_limit_max_y,
            ),
        )

    # -- grid <-> world --

    def grid_to_world(self, grid_x: float, grid_y: float) -> WorldPoint:
        half_w = self.tile_width / 2
        half_h = self.tile_height / 2
        return WorldPoint((grid_x - grid_y) * half_w, (grid_x + grid_y) * half_h)

    def world_to_grid(self, world_x: float, world_y: float) -> GridPoint:
        iso_x = world_x / (self.tile_width / 2)
        iso_y = world_y / (self.tile_height / 2)
        return GridPoint((iso_y + iso_x) / 2, (iso_y - iso_x) / 2)

    def snap_to_tile(self, world_x: float, world_y: float) -> tuple[int, int]:
        """Nearest tile to a render-space point (placement preview)."""
        g = self.world_to_grid(world_x, world_y)
        return _round_half_up(g.x), _round_half_up(g.y)

    def containing_tile(self, world_x: float, world_y: float) -> tuple[int, int]:
        """Tile whose cell contains a render-space point (movement, containment)."""
        g = self.world_to_grid(world_x, world_y)
        return math.floor(g.x), math.floor(g.y)

    # -- grid <-> chunk --

    def grid_to_chunk(self, grid_x: float, grid_y: float) -> ChunkCoord:
        # Floor, not truncation: -1 // 16 == -1
        return ChunkCoord(
            math.floor(grid_x) // self.chunk_size,
            math.floor(grid_y) // self.chunk_size,
        )

    def chunk_to_grid(self, chunk_x: int, chunk_y: int) -> GridPoint:
        return GridPoint(chunk_x * self.chunk_size, chunk_y * self.chunk_size)

    def grid_to_local(self, grid_x: int, grid_y: int) -> tuple[int, int]:
        return grid_x % self.chunk_size, grid_y % self.chunk_size

    def world_to_chunk(self, world_x: float, world_y: float) -> ChunkCoord:
        g = self.world_to_grid(world_x, world_y)
        return self.grid_to_chunk(g.x, g.y)

    # -- limits --

    def is_chunk_outside_world_limits(self, chunk_x: int, chunk_y: int) -> bool:
        min_x, max_x, min_y, max_y = self._limits
        if min_x is not None and chunk_x < min_x:
            return True
        if max_x is not None and chunk_x > max_x:
            return True
        if min_y is not None and chunk_y < min_y:
            return True
        if max_y is not None and chunk_y > max_y:
            return True
        return False


def _round_half_up(value: float) -> int:
    # round() uses banker's rounding; tile picking wants .5 to go up consistently
    return math.floor(value + 0.5)
