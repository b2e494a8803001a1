"""AutoSaver — periodic background save on a wall-clock interval, independent of ticks."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from isoworld.engine.chunk_manager import ChunkManager, SaveReport

logger = logging.getLogger(__name__)


class AutoSaver:
    """Runs ``ChunkManager.auto_save`` every ``interval`` seconds on a daemon thread.

    Failures never stop the loop; dirty chunks simply stay dirty and are
    retried on the next interval.
    """

    def __init__(self, manager: ChunkManager, interval: float) -> None:
        self._manager = manager
        self._interval = interval
        self._thread: threading.Thread | None = None
        self._stop_requested = threading.Event()
        self._runs = 0

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def runs(self) -> int:
        return self._runs

    def start(self) -> None:
        if self.running:
            return
        self._stop_requested.clear()
        self._thread = threading.Thread(target=self._run_loop, name="auto-save", daemon=True)
        self._thread.start()
        logger.info("Auto-save every %.1fs", self._interval)

    def stop(self) -> None:
        self._stop_requested.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)
        self._thread = None

    def run_once(self) -> SaveReport | None:
        self._runs += 1
        try:
            report = self._manager.auto_save()
        except Exception:
            logger.exception("Auto-save failed — retrying next interval")
            return None
        if report is not None and not report.ok:
            logger.warning(
                "Auto-save incomplete: %d chunk(s) still dirty, metadata saved=%s",
                len(report.failed), report.metadata_saved,
            )
        return report

    def _run_loop(self) -> None:
        while not self._stop_requested.wait(self._interval):
            self.run_once()
