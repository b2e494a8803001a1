"""Chunk: a fixed-size square block of tiles, the unit of loading and persistence."""

from __future__ import annotations

from typing import Any, Iterator, Sequence

from pydantic import ValidationError

from isoworld.core.errors import ChunkGenerationError, MalformedChunkData
from isoworld.core.models import ChunkCoord, Tile
from isoworld.core.records import CHUNK_SCHEMA_VERSION, ChunkRecord

_PERSISTED_FIELDS = frozenset({"terrain_type", "elevation", "walkable", "structure_id"})


class Chunk:
    """chunk_size × chunk_size tiles backed by a flat row-major list.

    ``revision`` increases on every persisted-field mutation. A save captures
    the revision it serialized and ``mark_clean`` only clears the dirty flag
    if nothing changed in between.
    """

    __slots__ = ("chunk_x", "chunk_y", "size", "_tiles", "is_loaded", "is_dirty", "revision")

    def __init__(self, chunk_x: int, chunk_y: int, size: int) -> None:
        self.chunk_x = chunk_x
        self.chunk_y = chunk_y
        self.size = size
        origin_x, origin_y = chunk_x * size, chunk_y * size
        self._tiles: list[Tile] = [
            Tile.empty(origin_x + lx, origin_y + ly) for ly in range(size) for lx in range(size)
        ]
        self.is_loaded = False
        self.is_dirty = False
        self.revision = 0

    @property
    def coord(self) -> ChunkCoord:
        return ChunkCoord(self.chunk_x, self.chunk_y)

    @classmethod
    def from_tiles(cls, chunk_x: int, chunk_y: int, size: int, tiles: Sequence[Tile]) -> Chunk:
        """Build a loaded chunk from generator output (row-major, size² tiles).

        Tiles are copied, so a generator may return shared instances. Grid
        coordinates come from the chunk position, not from the given tiles.
        """
        if len(tiles) != size * size:
            raise ChunkGenerationError(
                f"generator returned {len(tiles)} tiles for chunk ({chunk_x}, {chunk_y}), "
                f"expected {size * size}"
            )
        chunk = cls(chunk_x, chunk_y, size)
        origin_x, origin_y = chunk_x * size, chunk_y * size
        for i, source in enumerate(tiles):
            tile = source.copy()
            tile.grid_x = origin_x + i % size
            tile.grid_y = origin_y + i // size
            chunk._tiles[i] = tile
        chunk.is_loaded = True
        return chunk

    # -- access --

    def _idx(self, local_x: int, local_y: int) -> int:
        return local_y * self.size + local_x

    def in_bounds(self, local_x: int, local_y: int) -> bool:
        return 0 <= local_x < self.size and 0 <= local_y < self.size

    def get_tile(self, local_x: int, local_y: int) -> Tile | None:
        if not self.in_bounds(local_x, local_y):
            return None
        return self._tiles[self._idx(local_x, local_y)]

    def tiles(self) -> Iterator[Tile]:
        return iter(self._tiles)

    # -- mutation --

    def _touch(self) -> None:
        self.is_dirty = True
        self.revision += 1

    def set_tile(self, local_x: int, local_y: int, tile: Tile) -> bool:
        if not self.in_bounds(local_x, local_y):
            return False
        tile.grid_x = self.chunk_x * self.size + local_x
        tile.grid_y = self.chunk_y * self.size + local_y
        self._tiles[self._idx(local_x, local_y)] = tile
        self._touch()
        return True

    def update_tile(self, local_x: int, local_y: int, **changes: Any) -> bool:
        """Change persisted fields of one tile in place."""
        unknown = set(changes) - _PERSISTED_FIELDS
        if unknown:
            raise TypeError(f"cannot update tile fields: {sorted(unknown)}")
        tile = self.get_tile(local_x, local_y)
        if tile is None:
            return False
        for name, value in changes.items():
            setattr(tile, name, value)
        self._touch()
        return True

    def remove_tile(self, local_x: int, local_y: int) -> bool:
        """Reset a cell to an empty placeholder; the grid never has holes."""
        tile = self.get_tile(local_x, local_y)
        if tile is None:
            return False
        self._tiles[self._idx(local_x, local_y)] = Tile.empty(tile.grid_x, tile.grid_y)
        self._touch()
        return True

    def add_entity(self, local_x: int, local_y: int, entity_id: int) -> bool:
        # Entity ids are transient and never make the chunk dirty.
        tile = self.get_tile(local_x, local_y)
        if tile is None:
            return False
        tile.entity_ids.add(entity_id)
        return True

    def remove_entity(self, local_x: int, local_y: int, entity_id: int) -> bool:
        tile = self.get_tile(local_x, local_y)
        if tile is None or entity_id not in tile.entity_ids:
            return False
        tile.entity_ids.discard(entity_id)
        return True

    def mark_dirty(self) -> None:
        self._touch()

    def mark_clean(self, revision: int) -> bool:
        """Clear the dirty flag after a write of *revision* succeeded."""
        if self.revision != revision:
            return False
        self.is_dirty = False
        return True

    # -- persistence --

    def serialize(self) -> dict[str, Any]:
        return {
            "schemaVersion": CHUNK_SCHEMA_VERSION,
            "chunkX": self.chunk_x,
            "chunkY": self.chunk_y,
            "chunkSize": self.size,
            "tiles": [t.to_record() for t in self._tiles],
        }

    @classmethod
    def deserialize(cls, record: dict[str, Any], chunk_size: int) -> Chunk:
        try:
            parsed = ChunkRecord.model_validate(record)
        except ValidationError as exc:
            raise MalformedChunkData(f"invalid chunk record: {exc.error_count()} error(s)") from exc

        where = f"chunk ({parsed.chunk_x}, {parsed.chunk_y})"
        if parsed.schema_version != CHUNK_SCHEMA_VERSION:
            raise MalformedChunkData(f"{where}: unsupported schema version {parsed.schema_version}")
        if parsed.chunk_size != chunk_size:
            raise MalformedChunkData(
                f"{where}: declared chunk size {parsed.chunk_size} != configured {chunk_size}"
            )
        if len(parsed.tiles) != chunk_size * chunk_size:
            raise MalformedChunkData(
                f"{where}: {len(parsed.tiles)} tiles, expected {chunk_size * chunk_size}"
            )

        chunk = cls(parsed.chunk_x, parsed.chunk_y, chunk_size)
        for i, rec in enumerate(parsed.tiles):
            tile = chunk._tiles[i]
            tile.terrain_type = rec.type
            tile.elevation = rec.elevation
            tile.walkable = rec.walkable
            tile.structure_id = rec.structure_id
        chunk.is_loaded = True
        return chunk

    def __repr__(self) -> str:
        flags = "loaded" if self.is_loaded else "unloaded"
        if self.is_dirty:
            flags += ",dirty"
        return f"Chunk({self.chunk_x}, {self.chunk_y}, {flags})"
