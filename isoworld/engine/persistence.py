"""PersistenceQueue — per-coordinate serialized store I/O.

Store calls either run inline (``io_workers == 0``; the returned future is
already completed) or on a thread pool. Operations for the same
``(world_id, chunk)`` are chained: each one starts only after the previous
one for that key finished, so a save can never overtake an earlier save or
a load. Different chunks proceed independently.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import TYPE_CHECKING, Any, Callable

if TYPE_CHECKING:
    from isoworld.core.chunk import Chunk
    from isoworld.core.models import ChunkCoord
    from isoworld.storage.chunk_store import ChunkStore

logger = logging.getLogger(__name__)

_Key = tuple[str, int, int]


class PersistenceQueue:
    """Queues ChunkStore reads and writes, FIFO per chunk coordinate."""

    __slots__ = ("_store", "_executor", "_tails", "_lock")

    def __init__(self, store: ChunkStore, io_workers: int = 0) -> None:
        self._store = store
        self._executor: ThreadPoolExecutor | None = None
        if io_workers > 0:
            self._executor = ThreadPoolExecutor(max_workers=io_workers, thread_name_prefix="chunk-io")
        self._tails: dict[_Key, Future] = {}
        self._lock = threading.Lock()

    @property
    def store(self) -> ChunkStore:
        return self._store

    @property
    def immediate(self) -> bool:
        return self._executor is None

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._tails)

    def load(self, world_id: str, coord: ChunkCoord) -> Future[Chunk | None]:
        return self._submit((world_id, coord.x, coord.y), self._store.load_chunk, world_id, coord.x, coord.y)

    def save(self, world_id: str, coord: ChunkCoord, record: dict[str, Any]) -> Future[None]:
        # The record is serialized by the caller so later edits cannot leak into this write.
        return self._submit((world_id, coord.x, coord.y), self._store.save_chunk, world_id, coord.x, coord.y, record)

    def _submit(self, key: _Key, fn: Callable[..., Any], *args: Any) -> Future:
        if self._executor is None:
            future: Future = Future()
            try:
                future.set_result(fn(*args))
            except Exception as exc:
                future.set_exception(exc)
            return future

        with self._lock:
            previous = self._tails.get(key)
            future = self._executor.submit(_run_after, previous, fn, *args)
            self._tails[key] = future
        future.add_done_callback(lambda f, k=key: self._release(k, f))
        return future

    def _release(self, key: _Key, future: Future) -> None:
        with self._lock:
            if self._tails.get(key) is future:
                del self._tails[key]

    def drain(self, timeout: float | None = None) -> bool:
        """Wait for every queued operation; True if all finished in time."""
        with self._lock:
            futures = list(self._tails.values())
        if not futures:
            return True
        _done, not_done = wait(futures, timeout=timeout)
        return not not_done

    def shutdown(self) -> None:
        """Stop accepting work. Queued saves are always allowed to finish."""
        if self._executor is not None:
            self._executor.shutdown(wait=True, cancel_futures=False)
            self._executor = None
            logger.debug("Persistence queue shut down")


def _run_after(previous: Future | None, fn: Callable[..., Any], *args: Any) -> Any:
    if previous is not None:
        # Earlier failures belong to their own caller; only ordering matters here.
        wait([previous])
    return fn(*args)
