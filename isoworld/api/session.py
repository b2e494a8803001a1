"""WorldSession — singleton wrapper owning the facade behind the API.

Request handlers run on the server's worker threads; the ChunkManager's own
lock serializes them against each other and against the auto-save thread.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from isoworld.utils.event_log import EventLog
from isoworld.world import WorldFacade

if TYPE_CHECKING:
    from isoworld.config import WorldConfig
    from isoworld.engine.chunk_manager import TickReport
    from isoworld.storage.chunk_store import ChunkStore
    from isoworld.systems.terrain import ChunkGenerator

logger = logging.getLogger(__name__)


class WorldSession:
    """Builds the world from config and tracks the actor driving residency."""

    def __init__(
        self,
        config: WorldConfig,
        store: ChunkStore | None = None,
        generator: ChunkGenerator | None = None,
    ) -> None:
        self.config = config
        self._event_log = EventLog()
        self._facade = WorldFacade(config, store=store, generator=generator, event_log=self._event_log)
        self._started = False

    @property
    def facade(self) -> WorldFacade:
        return self._facade

    @property
    def event_log(self) -> EventLog:
        return self._event_log

    @property
    def started(self) -> bool:
        return self._started

    def start(self) -> None:
        if self._started:
            return
        self._facade.start()
        if not self._facade.load_world_state():
            self._facade.tick(*self._facade.manager.tracked_position)
        self._started = True
        logger.info("World session started (world=%r)", self.config.world_id)

    def stop(self) -> None:
        if not self._started:
            return
        self._facade.close()
        self._started = False
        logger.info("World session stopped.")

    def move_actor(self, grid_x: int, grid_y: int) -> TickReport:
        return self._facade.tick(grid_x, grid_y)
