"""Enumerations used throughout the world subsystem."""

from __future__ import annotations

from enum import IntEnum, unique


@unique
class ChunkState(IntEnum):
    """Lifecycle state of one chunk coordinate in the registry."""

    ABSENT = 0       # Known coordinate, nothing in memory
    LOADING = 1      # Store read in flight
    GENERATING = 2   # Generator running
    RESIDENT = 3     # In memory with a full tile grid
    PERSISTING = 4   # Resident, store write in flight


@unique
class Occupancy(IntEnum):
    """What currently occupies a tile."""

    EMPTY = 0
    STRUCTURE = 1
    ENTITIES = 2


@unique
class Domain(IntEnum):
    """RNG domain separators for deterministic generation."""

    ELEVATION = 0
    MOISTURE = 1
    DETAIL = 2
