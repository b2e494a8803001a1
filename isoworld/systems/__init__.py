"""Generation systems: deterministic RNG and the default terrain generator."""

from isoworld.systems.rng import DeterministicRNG
from isoworld.systems.terrain import TerrainGenerator

__all__ = ["DeterministicRNG", "TerrainGenerator"]
