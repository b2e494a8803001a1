"""Default chunk generator: smooth value noise over a hashed lattice.

The real game plugs in its own generator; this one exists so the service and
CLI can stream a world on their own. Any callable with the signature
``(chunk_x, chunk_y, chunk_size, seed) -> Sequence[Tile]`` can replace it.
"""

from __future__ import annotations

import math
from typing import Callable, Sequence

from isoworld.core.enums import Domain
from isoworld.core.models import Tile
from isoworld.systems.rng import DeterministicRNG

ChunkGenerator = Callable[[int, int, int, int], Sequence[Tile]]

TERRAIN_TYPES = ("water", "sand", "dirt", "grass", "stone", "snow")
_UNWALKABLE = frozenset({"water"})


class TerrainGenerator:
    """Deterministic terrain: identical (seed, chunk) always yields identical tiles."""

    __slots__ = ("lattice", "_rngs")

    def __init__(self, lattice: int = 8) -> None:
        self.lattice = lattice  # Tiles between noise lattice points
        self._rngs: dict[int, DeterministicRNG] = {}

    def __call__(self, chunk_x: int, chunk_y: int, chunk_size: int, seed: int) -> list[Tile]:
        rng = self._rngs.get(seed)
        if rng is None:
            rng = self._rngs[seed] = DeterministicRNG(seed)

        origin_x, origin_y = chunk_x * chunk_size, chunk_y * chunk_size
        tiles: list[Tile] = []
        for ly in range(chunk_size):
            for lx in range(chunk_size):
                gx, gy = origin_x + lx, origin_y + ly
                elevation = self._noise(rng, Domain.ELEVATION, gx, gy)
                moisture = self._noise(rng, Domain.MOISTURE, gx, gy)
                terrain = classify(elevation, moisture)
                tiles.append(Tile(
                    grid_x=gx, grid_y=gy, terrain_type=terrain,
                    elevation=math.floor(elevation * 3) * 8,
                    walkable=terrain not in _UNWALKABLE,
                ))
        return tiles

    def _noise(self, rng: DeterministicRNG, domain: Domain, gx: int, gy: int) -> float:
        """Bilinear interpolation between hashed lattice corners, in [0, 1)."""
        step = self.lattice
        x0, y0 = gx // step, gy // step
        fx = (gx - x0 * step) / step
        fy = (gy - y0 * step) / step
        # smoothstep
        fx = fx * fx * (3 - 2 * fx)
        fy = fy * fy * (3 - 2 * fy)
        v00 = rng.next_float(domain, x0, y0)
        v10 = rng.next_float(domain, x0 + 1, y0)
        v01 = rng.next_float(domain, x0, y0 + 1)
        v11 = rng.next_float(domain, x0 + 1, y0 + 1)
        top = v00 + (v10 - v00) * fx
        bottom = v01 + (v11 - v01) * fx
        return top + (bottom - top) * fy


def classify(elevation: float, moisture: float) -> str:
    if elevation < 0.2:
        return "water"
    if elevation < 0.3:
        return "sand" if moisture > 0.6 else "water"
    if elevation < 0.7:
        if moisture < 0.2:
            return "dirt"
        if moisture < 0.6:
            return "grass"
        return "stone"
    if elevation < 0.85:
        return "stone"
    return "snow"
