"""Tests for Chunk and Tile: tile access, dirty tracking and (de)serialization."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest

from isoworld.core.chunk import Chunk
from isoworld.core.enums import Occupancy
from isoworld.core.errors import ChunkGenerationError, MalformedChunkData
from isoworld.core.models import EMPTY_TERRAIN, Tile
from isoworld.systems.terrain import TerrainGenerator


def _generated(cx=0, cy=0, size=4, seed=1):
    tiles = TerrainGenerator(lattice=2)(cx, cy, size, seed)
    return Chunk.from_tiles(cx, cy, size, tiles)


class TestTileAccess:

    def test_new_chunk_is_all_placeholders(self):
        chunk = Chunk(1, -1, 4)
        tiles = list(chunk.tiles())
        assert len(tiles) == 16
        assert all(t.terrain_type == EMPTY_TERRAIN and not t.walkable for t in tiles)
        assert not chunk.is_loaded
        assert not chunk.is_dirty

    def test_tiles_carry_global_grid_coords(self):
        chunk = Chunk(1, -1, 4)
        tile = chunk.get_tile(3, 2)
        assert (tile.grid_x, tile.grid_y) == (7, -2)

    def test_out_of_bounds_returns_none(self):
        chunk = Chunk(0, 0, 4)
        assert chunk.get_tile(4, 0) is None
        assert chunk.get_tile(0, -1) is None
        assert chunk.update_tile(9, 9, walkable=True) is False
        assert not chunk.is_dirty

    def test_from_tiles_rewrites_coordinates(self):
        tiles = [Tile(grid_x=99, grid_y=99, terrain_type="grass", walkable=True) for _ in range(4)]
        chunk = Chunk.from_tiles(-1, 2, 2, tiles)
        assert chunk.is_loaded
        assert [(t.grid_x, t.grid_y) for t in chunk.tiles()] == [(-2, 4), (-1, 4), (-2, 5), (-1, 5)]

    def test_from_tiles_copies_shared_instances(self):
        shared = Tile(grid_x=0, grid_y=0, terrain_type="grass", walkable=True)
        chunk = Chunk.from_tiles(0, 0, 2, [shared] * 4)
        chunk.update_tile(0, 0, terrain_type="road")
        assert [t.terrain_type for t in chunk.tiles()] == ["road", "grass", "grass", "grass"]
        assert shared.terrain_type == "grass"

    def test_from_tiles_wrong_count(self):
        with pytest.raises(ChunkGenerationError):
            Chunk.from_tiles(0, 0, 4, [Tile(0, 0)] * 3)


class TestMutation:

    def test_update_tile_marks_dirty(self):
        chunk = _generated()
        assert chunk.update_tile(1, 1, walkable=False, structure_id="wall-1")
        tile = chunk.get_tile(1, 1)
        assert tile.walkable is False
        assert tile.occupancy == Occupancy.STRUCTURE
        assert chunk.is_dirty
        assert chunk.revision == 1

    def test_update_rejects_unknown_fields(self):
        chunk = _generated()
        with pytest.raises(TypeError):
            chunk.update_tile(0, 0, entity_ids={1})

    def test_set_tile_places_at_cell(self):
        chunk = Chunk(2, 0, 4)
        assert chunk.set_tile(1, 3, Tile(0, 0, terrain_type="stone", elevation=8))
        tile = chunk.get_tile(1, 3)
        assert (tile.grid_x, tile.grid_y, tile.terrain_type) == (9, 3, "stone")
        assert chunk.is_dirty

    def test_remove_tile_leaves_placeholder(self):
        chunk = _generated()
        chunk.update_tile(2, 2, structure_id="tower")
        assert chunk.remove_tile(2, 2)
        tile = chunk.get_tile(2, 2)
        assert tile.terrain_type == EMPTY_TERRAIN
        assert tile.structure_id is None
        assert (tile.grid_x, tile.grid_y) == (2, 2)

    def test_entities_do_not_dirty(self):
        chunk = _generated()
        assert chunk.add_entity(0, 0, 42)
        assert chunk.get_tile(0, 0).occupancy == Occupancy.ENTITIES
        assert not chunk.is_dirty
        assert chunk.remove_entity(0, 0, 42)
        assert not chunk.remove_entity(0, 0, 42)
        assert chunk.get_tile(0, 0).occupancy == Occupancy.EMPTY

    def test_structure_wins_over_entities(self):
        tile = Tile(0, 0, structure_id="hut", entity_ids={1, 2})
        assert tile.occupancy == Occupancy.STRUCTURE

    def test_mark_clean_requires_matching_revision(self):
        chunk = _generated()
        chunk.update_tile(0, 0, elevation=3)
        snapshot = chunk.revision
        chunk.update_tile(0, 0, elevation=4)
        assert chunk.mark_clean(snapshot) is False
        assert chunk.is_dirty
        assert chunk.mark_clean(chunk.revision) is True
        assert not chunk.is_dirty


class TestSerialization:

    def test_round_trip_preserves_persisted_fields(self):
        chunk = _generated(cx=-3, cy=5, size=4, seed=9)
        chunk.update_tile(3, 0, structure_id="well", walkable=False)
        chunk.add_entity(1, 1, 7)

        restored = Chunk.deserialize(chunk.serialize(), chunk_size=4)

        assert (restored.chunk_x, restored.chunk_y) == (-3, 5)
        assert restored.is_loaded
        assert not restored.is_dirty
        assert [t.persisted_fields() for t in restored.tiles()] == [
            t.persisted_fields() for t in chunk.tiles()
        ]
        assert [(t.grid_x, t.grid_y) for t in restored.tiles()] == [
            (t.grid_x, t.grid_y) for t in chunk.tiles()
        ]
        assert restored.get_tile(1, 1).entity_ids == set()

    def test_record_shape(self):
        record = _generated(size=2).serialize()
        assert set(record) == {"schemaVersion", "chunkX", "chunkY", "chunkSize", "tiles"}
        assert record["chunkSize"] == 2
        assert set(record["tiles"][0]) == {"type", "elevation", "walkable", "structureId"}

    def test_wrong_tile_count(self):
        record = _generated(size=4).serialize()
        record["tiles"].pop()
        with pytest.raises(MalformedChunkData):
            Chunk.deserialize(record, chunk_size=4)

    def test_chunk_size_mismatch(self):
        record = _generated(size=4).serialize()
        with pytest.raises(MalformedChunkData):
            Chunk.deserialize(record, chunk_size=8)

    def test_unknown_schema_version(self):
        record = _generated(size=2).serialize()
        record["schemaVersion"] = 99
        with pytest.raises(MalformedChunkData):
            Chunk.deserialize(record, chunk_size=2)

    @pytest.mark.parametrize("mutate", [
        lambda r: r.pop("chunkX"),
        lambda r: r.__setitem__("tiles", "nope"),
        lambda r: r["tiles"][0].__setitem__("elevation", "high"),
        lambda r: r["tiles"][0].pop("type"),
        lambda r: r["tiles"][0].__setitem__("colour", "red"),
    ])
    def test_invalid_records(self, mutate):
        record = _generated(size=2).serialize()
        mutate(record)
        with pytest.raises(MalformedChunkData):
            Chunk.deserialize(record, chunk_size=2)
