"""ChunkManager — decides which chunks are resident as the tracked actor moves.

Per-coordinate lifecycle::

    ABSENT -> LOADING | GENERATING -> RESIDENT -> PERSISTING -> ABSENT (evicted)
                                                          \\-> RESIDENT (save failed, retried)

All chunks ever touched live in one arena (``ChunkCoord -> ChunkSlot``);
the resident set is only a set of keys into that arena. Evicted coordinates
keep their slot with ``chunk=None``.

Every load carries the slot's sequence token. Evicting a coordinate or
issuing a newer request for it bumps the token, so a load that completes
afterwards is discarded. A load whose chunk merely drifted out of range is
still applied when it completes; the next tick evicts it like any other
far chunk.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, wait
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from isoworld.core.chunk import Chunk
from isoworld.core.coords import CoordinateTransform
from isoworld.core.enums import ChunkState
from isoworld.core.errors import MalformedChunkData, StorageUnavailable
from isoworld.core.models import ChunkCoord, Tile, WorldMetadata
from isoworld.engine.persistence import PersistenceQueue
from isoworld.utils.event_log import EventLog, WorldEvent

if TYPE_CHECKING:
    from isoworld.config import WorldConfig
    from isoworld.storage.chunk_store import ChunkStore
    from isoworld.systems.terrain import ChunkGenerator

logger = logging.getLogger(__name__)

_IN_MEMORY = (ChunkState.RESIDENT, ChunkState.PERSISTING)
_HELD = (ChunkState.LOADING, ChunkState.RESIDENT, ChunkState.PERSISTING)


@dataclass(slots=True)
class ChunkSlot:
    """Registry entry for one chunk coordinate."""

    state: ChunkState = ChunkState.ABSENT
    chunk: Chunk | None = None
    seq: int = 0
    pending: tuple[int, Future] | None = None

    def has_current_load(self) -> bool:
        return self.pending is not None and self.pending[0] == self.seq


@dataclass(slots=True)
class TickReport:
    """What one ``tick()`` (or synchronous request) changed."""

    tick: int
    center: ChunkCoord
    loaded: list[ChunkCoord] = field(default_factory=list)
    generated: list[ChunkCoord] = field(default_factory=list)
    evicted: list[ChunkCoord] = field(default_factory=list)
    retained: list[ChunkCoord] = field(default_factory=list)   # dirty, could not be evicted
    failed: list[ChunkCoord] = field(default_factory=list)
    discarded: list[ChunkCoord] = field(default_factory=list)  # stale load completions
    pending: int = 0

    @property
    def changed(self) -> bool:
        return bool(self.loaded or self.generated or self.evicted or self.failed or self.discarded)


@dataclass(slots=True)
class SaveReport:
    saved: list[ChunkCoord] = field(default_factory=list)
    failed: list[ChunkCoord] = field(default_factory=list)
    metadata_saved: bool = False

    @property
    def ok(self) -> bool:
        return not self.failed and self.metadata_saved


class ChunkManager:
    """Owns the chunk registry and streams chunks in and out around the actor.

    Public operations take a re-entrant lock so the auto-save thread and the
    host thread calling ``tick()`` never interleave registry changes.
    """

    def __init__(
        self,
        config: WorldConfig,
        store: ChunkStore,
        generator: ChunkGenerator,
        event_log: EventLog | None = None,
        transform: CoordinateTransform | None = None,
    ) -> None:
        self._config = config
        self._transform = transform or CoordinateTransform.from_config(config)
        self._store = store
        self._io = PersistenceQueue(store, config.io_workers)
        self._generator = generator
        self._events = event_log if event_log is not None else EventLog()

        self._world_id = config.world_id
        self._metadata: WorldMetadata | None = None

        self._slots: dict[ChunkCoord, ChunkSlot] = {}
        self._active: set[ChunkCoord] = set()
        self._tick = 0
        self._tracked: tuple[int, int] = (0, 0)
        self._lock = threading.RLock()
        store.set_protected(self._holds_record)

    # -- public properties --

    @property
    def config(self) -> WorldConfig:
        return self._config

    @property
    def transform(self) -> CoordinateTransform:
        return self._transform

    @property
    def store(self) -> ChunkStore:
        return self._store

    @property
    def events(self) -> EventLog:
        return self._events

    @property
    def world_id(self) -> str:
        return self._world_id

    @property
    def metadata(self) -> WorldMetadata | None:
        return self._metadata

    @property
    def seed(self) -> int:
        return self._metadata.seed if self._metadata is not None else self._config.world_seed

    @property
    def tick_count(self) -> int:
        return self._tick

    @property
    def tracked_position(self) -> tuple[int, int]:
        return self._tracked

    @property
    def active_chunks(self) -> frozenset[ChunkCoord]:
        with self._lock:
            return frozenset(self._active)

    @property
    def known_chunks(self) -> frozenset[ChunkCoord]:
        with self._lock:
            return frozenset(self._slots)

    def state_of(self, chunk_x: int, chunk_y: int) -> ChunkState:
        with self._lock:
            slot = self._slots.get(ChunkCoord(chunk_x, chunk_y))
            return slot.state if slot is not None else ChunkState.ABSENT

    def is_resident(self, chunk_x: int, chunk_y: int) -> bool:
        with self._lock:
            return ChunkCoord(chunk_x, chunk_y) in self._active

    def get_chunk(self, chunk_x: int, chunk_y: int) -> Chunk | None:
        """Resident chunk at the coordinate, never triggering a load."""
        with self._lock:
            slot = self._slots.get(ChunkCoord(chunk_x, chunk_y))
            if slot is None or slot.state not in _IN_MEMORY:
                return None
            return slot.chunk

    def stats(self) -> dict[str, Any]:
        with self._lock:
            dirty = sum(1 for c in self._active if self._slots[c].chunk.is_dirty)
            return {
                "world_id": self._world_id,
                "seed": self.seed,
                "tick": self._tick,
                "known": len(self._slots),
                "resident": len(self._active),
                "dirty": dirty,
                "pending_loads": sum(1 for s in self._slots.values() if s.has_current_load()),
            }

    # -- streaming --

    def tick(self, grid_x: int, grid_y: int) -> TickReport:
        """Bring residency in line with the actor standing at (grid_x, grid_y)."""
        with self._lock:
            self._tick += 1
            self._tracked = (grid_x, grid_y)
            center = self._transform.grid_to_chunk(grid_x, grid_y)
            report = TickReport(tick=self._tick, center=center)

            self._collect_completed(report)

            generate_distance = self._config.generate_distance
            for coord in self._desired(center):
                slot = self._slots.get(coord)
                if slot is not None and slot.state in _IN_MEMORY:
                    continue
                must_finish = coord.chebyshev(center) <= generate_distance
                if slot is not None and slot.has_current_load():
                    if must_finish:
                        self._finish_load(coord, slot, report, block=True)
                    continue
                self._begin_load(coord, report, block=must_finish)

            self._evict_far(center, report)
            report.pending = sum(1 for s in self._slots.values() if s.has_current_load())

            if report.changed:
                logger.debug(
                    "Tick %d @ %s: +%d loaded, +%d generated, -%d evicted, %d failed, %d pending",
                    report.tick, center, len(report.loaded), len(report.generated),
                    len(report.evicted), len(report.failed), report.pending,
                )
            return report

    def wait_for_pending(self, timeout: float | None = None) -> TickReport:
        """Block until queued store I/O finishes and apply completed loads."""
        self._io.drain(timeout)
        with self._lock:
            center = self._transform.grid_to_chunk(*self._tracked)
            report = TickReport(tick=self._tick, center=center)
            self._collect_completed(report)
            report.pending = sum(1 for s in self._slots.values() if s.has_current_load())
            return report

    def get_or_create_chunk(self, chunk_x: int, chunk_y: int) -> Chunk | None:
        """Load or generate a chunk right now, ignoring distance thresholds.

        Returns None for coordinates outside the world limits and when the
        store or generator failed (the next request retries).
        """
        with self._lock:
            coord = ChunkCoord(chunk_x, chunk_y)
            if self._transform.is_chunk_outside_world_limits(chunk_x, chunk_y):
                logger.debug("Chunk %s is outside world limits", coord)
                return None
            slot = self._slots.get(coord)
            if slot is not None and slot.state in _IN_MEMORY:
                return slot.chunk

            report = TickReport(tick=self._tick, center=coord)
            if slot is not None and slot.has_current_load():
                self._finish_load(coord, slot, report, block=True)
            else:
                self._begin_load(coord, report, block=True)

            slot = self._slots[coord]
            return slot.chunk if slot.state in _IN_MEMORY else None

    # -- tile access --

    def get_tile(self, grid_x: int, grid_y: int) -> Tile | None:
        """Tile at a grid address if its chunk is resident; never loads."""
        with self._lock:
            coord = self._transform.grid_to_chunk(grid_x, grid_y)
            chunk = self.get_chunk(coord.x, coord.y)
            if chunk is None:
                return None
            return chunk.get_tile(*self._transform.grid_to_local(grid_x, grid_y))

    def _owning_chunk(self, grid_x: int, grid_y: int) -> tuple[Chunk | None, int, int]:
        coord = self._transform.grid_to_chunk(grid_x, grid_y)
        local_x, local_y = self._transform.grid_to_local(grid_x, grid_y)
        return self.get_or_create_chunk(coord.x, coord.y), local_x, local_y

    def update_tile(self, grid_x: int, grid_y: int, **changes: Any) -> bool:
        with self._lock:
            chunk, lx, ly = self._owning_chunk(grid_x, grid_y)
            return chunk is not None and chunk.update_tile(lx, ly, **changes)

    def set_tile(self, grid_x: int, grid_y: int, tile: Tile) -> bool:
        with self._lock:
            chunk, lx, ly = self._owning_chunk(grid_x, grid_y)
            return chunk is not None and chunk.set_tile(lx, ly, tile)

    def remove_tile(self, grid_x: int, grid_y: int) -> bool:
        with self._lock:
            chunk, lx, ly = self._owning_chunk(grid_x, grid_y)
            return chunk is not None and chunk.remove_tile(lx, ly)

    def add_entity(self, grid_x: int, grid_y: int, entity_id: int) -> bool:
        with self._lock:
            coord = self._transform.grid_to_chunk(grid_x, grid_y)
            chunk = self.get_chunk(coord.x, coord.y)
            lx, ly = self._transform.grid_to_local(grid_x, grid_y)
            return chunk is not None and chunk.add_entity(lx, ly, entity_id)

    def remove_entity(self, grid_x: int, grid_y: int, entity_id: int) -> bool:
        with self._lock:
            coord = self._transform.grid_to_chunk(grid_x, grid_y)
            chunk = self.get_chunk(coord.x, coord.y)
            lx, ly = self._transform.grid_to_local(grid_x, grid_y)
            return chunk is not None and chunk.remove_entity(lx, ly, entity_id)

    # -- world persistence --

    def save_world(self, strict: bool = True) -> SaveReport:
        """Write every dirty resident chunk, then the world metadata.

        With ``strict`` (user-triggered saves) a storage failure is raised as
        ``StorageUnavailable`` after every chunk has been attempted. Auto-save
        passes ``strict=False``: failures are logged and retried next time.
        """
        with self._lock:
            meta = self._ensure_metadata()
            dirty = sorted(
                (c for c in self._active if self._slots[c].chunk.is_dirty),
                key=lambda c: (c.y, c.x),
            )
            report = SaveReport()
            report.failed = self._persist_many(dirty)
            report.saved = [c for c in dirty if c not in report.failed]

            if report.failed:
                logger.warning(
                    "World %r: %d of %d dirty chunks could not be saved",
                    self._world_id, len(report.failed), len(dirty),
                )
                if strict:
                    raise StorageUnavailable(
                        f"{len(report.failed)} chunk(s) of world {self._world_id!r} could not be saved"
                    )
                return report

            previous = meta.last_saved_at
            meta.touch_saved()
            try:
                self._store.save_world_metadata(meta)
            except StorageUnavailable:
                meta.last_saved_at = previous
                logger.warning("World %r: metadata could not be saved", self._world_id)
                if strict:
                    raise
                return report
            report.metadata_saved = True
            self._emit("save", f"World saved ({len(report.saved)} chunks)")
            logger.info("World %r saved (%d chunks written)", self._world_id, len(report.saved))
            return report

    def auto_save(self) -> SaveReport | None:
        """Background save; never raises storage errors."""
        if not self._config.persist_chunks:
            return None
        with self._lock:
            return self.save_world(strict=False)

    def load_world(self) -> bool:
        """Replace the in-memory world with the saved one for the current world id.

        Returns False when no saved metadata exists. Unsaved edits of the
        current session are discarded. Chunks around the tracked position
        are made resident again before returning.
        """
        with self._lock:
            self._clear_resident()
            try:
                meta = self._store.load_world_metadata(self._world_id)
            except MalformedChunkData as exc:
                logger.warning("World %r has unreadable metadata: %s", self._world_id, exc)
                meta = None
            if meta is None:
                logger.info("No saved world %r", self._world_id)
                return False
            self._metadata = meta
            self._emit("load", f"World {self._world_id!r} loaded (seed={meta.seed})")
            logger.info("World %r loaded (seed=%d)", self._world_id, meta.seed)
            self.tick(*self._tracked)
            return True

    def reset_world(self, seed: int | None = None, clear_storage: bool = False) -> WorldMetadata:
        """Start a fresh world under the current id, optionally wiping its storage."""
        with self._lock:
            self._clear_resident()
            if clear_storage:
                self._store.delete_world(self._world_id)
            self._metadata = WorldMetadata.create(
                self._world_id, self._config.world_seed if seed is None else seed,
            )
            logger.info("World %r reset (seed=%d)", self._world_id, self._metadata.seed)
            self._emit("generate", f"World {self._world_id!r} generated (seed={self._metadata.seed})")
            self.tick(*self._tracked)
            return self._metadata

    def switch_world(self, world_id: str) -> bool:
        """Save the current world and load *world_id*; False if it has no save yet."""
        with self._lock:
            if self._metadata is not None:
                self.save_world(strict=True)
            self._clear_resident()
            self._world_id = world_id
            self._metadata = None
            return self.load_world()

    def clear_saved_data(self) -> int:
        with self._lock:
            return self._store.delete_world(self._world_id)

    def close(self) -> None:
        """Shut down store I/O; queued saves always complete first."""
        self._io.shutdown()

    # -- internals --

    def _desired(self, center: ChunkCoord) -> list[ChunkCoord]:
        d = self._config.load_distance
        coords = [
            ChunkCoord(center.x + dx, center.y + dy)
            for dy in range(-d, d + 1)
            for dx in range(-d, d + 1)
            if not self._transform.is_chunk_outside_world_limits(center.x + dx, center.y + dy)
        ]
        coords.sort(key=lambda c: (c.chebyshev(center), c.y, c.x))
        return coords

    def _holds_record(self, world_id: str, chunk_x: int, chunk_y: int) -> bool:
        # Runs on I/O threads; must not take self._lock.
        if world_id != self._world_id:
            return False
        slot = self._slots.get(ChunkCoord(chunk_x, chunk_y))
        return slot is not None and slot.state in _HELD

    def _ensure_metadata(self) -> WorldMetadata:
        if self._metadata is None:
            self._metadata = WorldMetadata.create(self._world_id, self._config.world_seed)
            logger.info("Created world %r (seed=%d)", self._world_id, self._metadata.seed)
        return self._metadata

    def _emit(self, category: str, message: str, coord: ChunkCoord | None = None) -> None:
        self._events.append(WorldEvent(
            tick=self._tick,
            category=category,
            message=message,
            chunk=(coord.x, coord.y) if coord is not None else None,
        ))

    def _begin_load(self, coord: ChunkCoord, report: TickReport, block: bool) -> None:
        slot = self._slots.setdefault(coord, ChunkSlot())
        if not self._config.persist_chunks:
            self._generate_into(coord, slot, report)
            return

        if slot.pending is not None:
            # A stale load is still in flight; it will never be applied.
            report.discarded.append(coord)
        slot.seq += 1
        slot.state = ChunkState.LOADING
        future = self._io.load(self._world_id, coord)
        slot.pending = (slot.seq, future)
        if block or future.done():
            self._finish_load(coord, slot, report, block=True)

    def _collect_completed(self, report: TickReport) -> None:
        for coord, slot in list(self._slots.items()):
            if slot.pending is not None and slot.pending[1].done():
                self._finish_load(coord, slot, report, block=False)

    def _finish_load(self, coord: ChunkCoord, slot: ChunkSlot, report: TickReport, block: bool) -> None:
        token, future = slot.pending
        if block:
            wait([future])
        if not future.done():
            return
        slot.pending = None

        if token != slot.seq:
            logger.debug("Discarding stale load of chunk %s (token %d < %d)", coord, token, slot.seq)
            report.discarded.append(coord)
            return

        try:
            chunk = future.result()
        except MalformedChunkData as exc:
            # The corrupt record stays in storage until the regenerated chunk is saved over it.
            logger.warning("Chunk %s has a corrupt record, regenerating: %s", coord, exc)
            self._emit("corrupt", str(exc), coord)
            chunk = None
        except StorageUnavailable as exc:
            logger.warning("Loading chunk %s failed, will retry: %s", coord, exc)
            self._emit("load_failed", str(exc), coord)
            slot.state = ChunkState.ABSENT
            report.failed.append(coord)
            return

        if chunk is None:
            self._generate_into(coord, slot, report)
            return

        self._make_resident(coord, slot, chunk)
        report.loaded.append(coord)
        self._emit("load", f"Loaded chunk {coord}", coord)

    def _generate_into(self, coord: ChunkCoord, slot: ChunkSlot, report: TickReport) -> None:
        slot.state = ChunkState.GENERATING
        size = self._config.chunk_size
        seed = self._ensure_metadata().seed
        try:
            tiles = self._generator(coord.x, coord.y, size, seed)
            chunk = Chunk.from_tiles(coord.x, coord.y, size, tiles)
        except Exception:
            logger.exception("Generator failed for chunk %s — will retry", coord)
            self._emit("generate_failed", f"Generation failed for chunk {coord}", coord)
            slot.state = ChunkState.ABSENT
            report.failed.append(coord)
            return

        # Never persisted yet: dirty so the first save writes it.
        if self._config.persist_chunks:
            chunk.mark_dirty()
        self._make_resident(coord, slot, chunk)
        report.generated.append(coord)
        self._emit("generate", f"Generated chunk {coord}", coord)

    def _make_resident(self, coord: ChunkCoord, slot: ChunkSlot, chunk: Chunk) -> None:
        chunk.is_loaded = True
        slot.chunk = chunk
        slot.state = ChunkState.RESIDENT
        self._active.add(coord)

    def _evict_far(self, center: ChunkCoord, report: TickReport) -> None:
        limit = self._config.unload_distance
        far = sorted(
            (c for c in self._active if c.chebyshev(center) > limit),
            key=lambda c: (c.y, c.x),
        )

        to_save = []
        for coord in far:
            if self._slots[coord].chunk.is_dirty:
                if not self._config.persist_chunks:
                    # Nowhere to write it: keep edits in memory rather than lose them.
                    report.retained.append(coord)
                    continue
                to_save.append(coord)
        failed = set(self._persist_many(to_save))

        for coord in far:
            if coord in report.retained:
                continue
            if coord in failed:
                report.retained.append(coord)
                report.failed.append(coord)
                continue
            self._evict(coord)
            report.evicted.append(coord)

    def _evict(self, coord: ChunkCoord) -> None:
        slot = self._slots[coord]
        self._active.discard(coord)
        slot.chunk = None
        slot.state = ChunkState.ABSENT
        slot.seq += 1
        self._emit("evict", f"Evicted chunk {coord}", coord)

    def _persist_many(self, coords: list[ChunkCoord]) -> list[ChunkCoord]:
        """Save the given resident chunks in parallel; return the ones that failed."""
        submitted: list[tuple[ChunkCoord, ChunkSlot, Chunk, int, Future]] = []
        for coord in coords:
            slot = self._slots[coord]
            chunk = slot.chunk
            revision = chunk.revision
            slot.state = ChunkState.PERSISTING
            future = self._io.save(self._world_id, coord, chunk.serialize())
            submitted.append((coord, slot, chunk, revision, future))

        failed: list[ChunkCoord] = []
        for coord, slot, chunk, revision, future in submitted:
            try:
                future.result()
            except StorageUnavailable as exc:
                logger.warning("Saving chunk %s failed, keeping it dirty: %s", coord, exc)
                self._emit("save_failed", str(exc), coord)
                failed.append(coord)
            else:
                chunk.mark_clean(revision)
                self._emit("persist", f"Saved chunk {coord}", coord)
            finally:
                slot.state = ChunkState.RESIDENT
        return failed

    def _clear_resident(self) -> None:
        dropped = sum(1 for c in self._active if self._slots[c].chunk.is_dirty)
        if dropped:
            logger.info("Discarding %d unsaved chunk(s) of world %r", dropped, self._world_id)
        # Pending loads lose their slot and are never applied.
        self._slots.clear()
        self._active.clear()
