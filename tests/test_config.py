"""Tests for WorldConfig validation and the EventLog ring buffer."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import dataclasses

import pytest

from isoworld.config import WorldConfig
from isoworld.utils.event_log import EventLog, WorldEvent


class TestWorldConfig:

    def test_defaults(self):
        cfg = WorldConfig()
        assert (cfg.tile_width, cfg.tile_height, cfg.chunk_size) == (64, 32, 16)
        assert (cfg.load_distance, cfg.unload_distance, cfg.generate_distance) == (2, 3, 1)
        assert cfg.auto_save_interval_ms == 60000
        assert cfg.persist_chunks

    def test_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            WorldConfig().chunk_size = 8

    @pytest.mark.parametrize("overrides", [
        {"load_distance": 4},                           # unload < load
        {"generate_distance": 3},                       # load < generate
        {"generate_distance": -1},
        {"chunk_size": 0},
        {"tile_width": 0},
        {"storage_backend": "s3"},
        {"auto_save_interval_ms": 0},
        {"io_workers": -1},
        {"max_stored_chunks": -5},
    ])
    def test_rejects_invalid(self, overrides):
        with pytest.raises(ValueError):
            WorldConfig(**overrides)

    def test_equal_distances_allowed(self):
        cfg = WorldConfig(load_distance=2, unload_distance=2, generate_distance=2)
        assert cfg.unload_distance == 2


class TestEventLog:

    def test_capacity_drops_oldest(self):
        log = EventLog(capacity=3)
        for i in range(5):
            log.append(WorldEvent(tick=i, category="load", message=str(i)))
        assert len(log) == 3
        assert [e.tick for e in log.latest(10)] == [2, 3, 4]

    def test_filters(self):
        log = EventLog()
        log.append(WorldEvent(1, "generate", "g", (0, 0)))
        log.append(WorldEvent(2, "evict", "e", (0, 0)))
        log.append(WorldEvent(3, "generate", "g2", (1, 0)))
        assert [e.tick for e in log.since_tick(2)] == [2, 3]
        assert [e.message for e in log.by_category("generate")] == ["g", "g2"]
        assert log.latest(0) == []
        log.clear()
        assert len(log) == 0
