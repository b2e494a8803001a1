"""Tests for PersistenceQueue: inline completion and per-chunk FIFO on the thread pool."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import threading
import time

import pytest

from isoworld.core.chunk import Chunk
from isoworld.core.errors import StorageUnavailable
from isoworld.core.models import ChunkCoord
from isoworld.engine.persistence import PersistenceQueue
from isoworld.storage.backends import MemoryBackend
from isoworld.storage.chunk_store import ChunkStore
from tests.helpers.world_fixtures import FlakyBackend

SIZE = 2


def _record(cx, cy, terrain):
    chunk = Chunk(cx, cy, SIZE)
    for t in chunk.tiles():
        t.terrain_type = terrain
    return chunk.serialize()


class RecordingBackend(MemoryBackend):
    """Slows writes down and logs the order in which they land."""

    def __init__(self, delay=0.0):
        super().__init__()
        self.delay = delay
        self.order = []
        self.order_lock = threading.Lock()

    def set(self, key, value):
        time.sleep(self.delay)
        super().set(key, value)
        with self.order_lock:
            self.order.append(key)


class TestInline:

    def test_futures_already_done(self):
        queue = PersistenceQueue(ChunkStore(MemoryBackend(), SIZE))
        assert queue.immediate
        save = queue.save("w", ChunkCoord(0, 0), _record(0, 0, "grass"))
        assert save.done()
        load = queue.load("w", ChunkCoord(0, 0))
        assert load.done()
        assert load.result().get_tile(0, 0).terrain_type == "grass"
        assert queue.pending == 0

    def test_missing_chunk_resolves_none(self):
        queue = PersistenceQueue(ChunkStore(MemoryBackend(), SIZE))
        assert queue.load("w", ChunkCoord(4, 4)).result() is None

    def test_errors_land_in_future(self):
        backend = FlakyBackend()
        backend.fail_writes = True
        queue = PersistenceQueue(ChunkStore(backend, SIZE))
        future = queue.save("w", ChunkCoord(0, 0), _record(0, 0, "grass"))
        with pytest.raises(StorageUnavailable):
            future.result()


class TestThreaded:

    def test_same_chunk_writes_apply_in_order(self):
        backend = RecordingBackend(delay=0.01)
        store = ChunkStore(backend, SIZE)
        queue = PersistenceQueue(store, io_workers=4)
        try:
            coord = ChunkCoord(1, -1)
            for terrain in ("sand", "dirt", "grass", "stone", "snow"):
                queue.save("w", coord, _record(1, -1, terrain))
            assert queue.drain(timeout=5.0)
            assert store.load_chunk("w", 1, -1).get_tile(0, 0).terrain_type == "snow"
        finally:
            queue.shutdown()

    def test_load_after_save_sees_the_save(self):
        store = ChunkStore(RecordingBackend(delay=0.02), SIZE)
        queue = PersistenceQueue(store, io_workers=2)
        try:
            queue.save("w", ChunkCoord(0, 0), _record(0, 0, "stone"))
            loaded = queue.load("w", ChunkCoord(0, 0)).result(timeout=5.0)
            assert loaded.get_tile(1, 1).terrain_type == "stone"
        finally:
            queue.shutdown()

    def test_different_chunks_all_written(self):
        backend = RecordingBackend(delay=0.005)
        store = ChunkStore(backend, SIZE)
        queue = PersistenceQueue(store, io_workers=3)
        try:
            for x in range(6):
                queue.save("w", ChunkCoord(x, 0), _record(x, 0, "grass"))
            assert queue.drain(timeout=5.0)
            assert queue.pending == 0
            assert store.world_chunk_count("w") == 6
        finally:
            queue.shutdown()

    def test_shutdown_finishes_queued_saves(self):
        store = ChunkStore(RecordingBackend(delay=0.01), SIZE)
        queue = PersistenceQueue(store, io_workers=1)
        for x in range(3):
            queue.save("w", ChunkCoord(x, x), _record(x, x, "dirt"))
        queue.shutdown()
        assert store.world_chunk_count("w") == 3
        assert queue.immediate
