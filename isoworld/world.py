"""WorldFacade — the surface rendering, combat, building and UI code talk to.

Thin coordinator over ``ChunkManager`` and ``CoordinateTransform``; it owns
wiring (store, generator, auto-save) but no streaming logic of its own.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from isoworld.engine.auto_save import AutoSaver
from isoworld.engine.chunk_manager import ChunkManager
from isoworld.storage.backends import create_backend
from isoworld.storage.chunk_store import ChunkStore
from isoworld.systems.terrain import TerrainGenerator

if TYPE_CHECKING:
    from isoworld.config import WorldConfig
    from isoworld.core.chunk import Chunk
    from isoworld.core.coords import CoordinateTransform
    from isoworld.core.models import ChunkCoord, GridPoint, Tile, WorldMetadata, WorldPoint
    from isoworld.engine.chunk_manager import SaveReport, TickReport
    from isoworld.systems.terrain import ChunkGenerator
    from isoworld.utils.event_log import EventLog

logger = logging.getLogger(__name__)


def build_store(config: WorldConfig) -> ChunkStore:
    backend = create_backend(config.storage_backend, config.storage_path)
    return ChunkStore(
        backend,
        chunk_size=config.chunk_size,
        prefix=config.storage_prefix,
        max_chunks=config.max_stored_chunks,
    )


class WorldFacade:
    """Entry point for everything outside the chunk subsystem."""

    def __init__(
        self,
        config: WorldConfig,
        store: ChunkStore | None = None,
        generator: ChunkGenerator | None = None,
        event_log: EventLog | None = None,
    ) -> None:
        self._config = config
        self._manager = ChunkManager(
            config,
            store if store is not None else build_store(config),
            generator if generator is not None else TerrainGenerator(),
            event_log=event_log,
        )
        self._auto_saver: AutoSaver | None = None
        if config.auto_save and config.persist_chunks:
            self._auto_saver = AutoSaver(self._manager, config.auto_save_interval_ms / 1000.0)

    # -- lifecycle --

    @property
    def config(self) -> WorldConfig:
        return self._config

    @property
    def manager(self) -> ChunkManager:
        return self._manager

    @property
    def transform(self) -> CoordinateTransform:
        return self._manager.transform

    @property
    def auto_saver(self) -> AutoSaver | None:
        return self._auto_saver

    def start(self) -> None:
        if self._auto_saver is not None:
            self._auto_saver.start()

    def close(self) -> None:
        if self._auto_saver is not None:
            self._auto_saver.stop()
            self._manager.auto_save()
        self._manager.close()

    def __enter__(self) -> WorldFacade:
        self.start()
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    # -- streaming --

    def tick(self, grid_x: int, grid_y: int) -> TickReport:
        return self._manager.tick(grid_x, grid_y)

    def get_or_create_chunk(self, chunk_x: int, chunk_y: int) -> Chunk | None:
        return self._manager.get_or_create_chunk(chunk_x, chunk_y)

    # -- tiles --

    def get_tile(self, grid_x: int, grid_y: int) -> Tile | None:
        return self._manager.get_tile(grid_x, grid_y)

    def tile_at_world(self, world_x: float, world_y: float) -> Tile | None:
        """Resident tile containing a render-space point."""
        return self._manager.get_tile(*self.transform.containing_tile(world_x, world_y))

    def set_tile(self, grid_x: int, grid_y: int, tile: Tile) -> bool:
        return self._manager.set_tile(grid_x, grid_y, tile)

    def update_tile(self, grid_x: int, grid_y: int, **changes: Any) -> bool:
        return self._manager.update_tile(grid_x, grid_y, **changes)

    def remove_tile(self, grid_x: int, grid_y: int) -> bool:
        return self._manager.remove_tile(grid_x, grid_y)

    def add_entity(self, grid_x: int, grid_y: int, entity_id: int) -> bool:
        return self._manager.add_entity(grid_x, grid_y, entity_id)

    def remove_entity(self, grid_x: int, grid_y: int, entity_id: int) -> bool:
        return self._manager.remove_entity(grid_x, grid_y, entity_id)

    # -- coordinates --

    def grid_to_world(self, grid_x: float, grid_y: float) -> WorldPoint:
        return self.transform.grid_to_world(grid_x, grid_y)

    def world_to_grid(self, world_x: float, world_y: float) -> GridPoint:
        return self.transform.world_to_grid(world_x, world_y)

    def grid_to_chunk(self, grid_x: float, grid_y: float) -> ChunkCoord:
        return self.transform.grid_to_chunk(grid_x, grid_y)

    def world_to_chunk(self, world_x: float, world_y: float) -> ChunkCoord:
        return self.transform.world_to_chunk(world_x, world_y)

    def snap_to_tile(self, world_x: float, world_y: float) -> tuple[int, int]:
        return self.transform.snap_to_tile(world_x, world_y)

    def containing_tile(self, world_x: float, world_y: float) -> tuple[int, int]:
        return self.transform.containing_tile(world_x, world_y)

    # -- persistence --

    def save_world_state(self) -> SaveReport:
        """User-triggered save; raises ``StorageUnavailable`` on failure."""
        return self._manager.save_world(strict=True)

    def load_world_state(self) -> bool:
        return self._manager.load_world()

    def clear_saved_data(self) -> int:
        return self._manager.clear_saved_data()

    def generate_world(self, seed: int | None = None, clear_storage: bool = False) -> WorldMetadata:
        return self._manager.reset_world(seed=seed, clear_storage=clear_storage)

    def switch_world(self, world_id: str) -> bool:
        return self._manager.switch_world(world_id)

    def list_saved_worlds(self) -> list[WorldMetadata]:
        return self._manager.store.list_worlds()
