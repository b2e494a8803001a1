"""ChunkStore — chunk and world-metadata persistence over a key-value backend.

Key scheme (world ids are percent-quoted, coordinates carry explicit signs)::

    {prefix}chunk/{world}/{+cx}/{+cy}    serialized chunk record
    {prefix}world/{world}                world metadata record

Explicit separators and signs make the encoding collision free: ``(1, -23)``
becomes ``+1/-23`` and can never be confused with ``(-1, 23)`` or ``(12, 3)``.
"""

from __future__ import annotations

import itertools
import json
import logging
import threading
from datetime import datetime
from typing import Any, Callable
from urllib.parse import quote, unquote

from pydantic import ValidationError

from isoworld.core.chunk import Chunk
from isoworld.core.errors import MalformedChunkData, StorageUnavailable
from isoworld.core.models import ChunkCoord, WorldMetadata
from isoworld.core.records import WorldMetadataRecord
from isoworld.storage.backends import KeyValueBackend

logger = logging.getLogger(__name__)


class ChunkStore:
    """Serializes chunks and world metadata into a ``KeyValueBackend``."""

    __slots__ = (
        "_backend", "_prefix", "_chunk_size", "_max_chunks", "_access", "_clock", "_lock", "_protected",
    )

    def __init__(
        self,
        backend: KeyValueBackend,
        chunk_size: int,
        prefix: str = "isoworld/",
        max_chunks: int = 0,
    ) -> None:
        self._backend = backend
        self._prefix = prefix
        self._chunk_size = chunk_size
        self._max_chunks = max_chunks
        # Logical access clock for LRU trimming (key -> last access stamp)
        self._access: dict[str, int] = {}
        self._clock = itertools.count(1)
        self._lock = threading.Lock()
        self._protected: Callable[[str, int, int], bool] | None = None

    @property
    def backend(self) -> KeyValueBackend:
        return self._backend

    def set_protected(self, predicate: Callable[[str, int, int], bool] | None) -> None:
        """Exempt chunks from cap trimming; called as ``predicate(world_id, cx, cy)``."""
        self._protected = predicate

    # -- keys --

    def _world_part(self, world_id: str) -> str:
        return quote(world_id, safe="")

    def chunk_prefix(self, world_id: str) -> str:
        return f"{self._prefix}chunk/{self._world_part(world_id)}/"

    def chunk_key(self, world_id: str, chunk_x: int, chunk_y: int) -> str:
        return f"{self.chunk_prefix(world_id)}{chunk_x:+d}/{chunk_y:+d}"

    def world_key(self, world_id: str) -> str:
        return f"{self._prefix}world/{self._world_part(world_id)}"

    def _parse_chunk_key(self, world_id: str, key: str) -> ChunkCoord | None:
        rest = key[len(self.chunk_prefix(world_id)):]
        parts = rest.split("/")
        if len(parts) != 2:
            return None
        try:
            return ChunkCoord(int(parts[0]), int(parts[1]))
        except ValueError:
            return None

    def _touch(self, key: str) -> None:
        with self._lock:
            self._access[key] = next(self._clock)

    def _forget(self, key: str) -> None:
        with self._lock:
            self._access.pop(key, None)

    # -- chunks --

    def save_chunk(self, world_id: str, chunk_x: int, chunk_y: int, chunk: Chunk | dict[str, Any]) -> None:
        """Write a chunk (or an already serialized record); overwrites any prior value."""
        record = chunk.serialize() if isinstance(chunk, Chunk) else chunk
        key = self.chunk_key(world_id, chunk_x, chunk_y)
        self._backend.set(key, json.dumps(record, separators=(",", ":")))
        self._touch(key)
        if self._max_chunks > 0:
            self._enforce_limit(world_id, keep=key)

    def load_chunk(self, world_id: str, chunk_x: int, chunk_y: int) -> Chunk | None:
        """Return the stored chunk, or None when nothing is stored.

        Raises ``MalformedChunkData`` for undecodable or invalid records and
        ``StorageUnavailable`` when the backend fails.
        """
        key = self.chunk_key(world_id, chunk_x, chunk_y)
        raw = self._backend.get(key)
        if raw is None:
            return None
        self._touch(key)
        try:
            record = json.loads(raw)
        except ValueError as exc:
            raise MalformedChunkData(f"{key}: not valid JSON ({exc})") from exc
        if not isinstance(record, dict):
            raise MalformedChunkData(f"{key}: record is not an object")
        chunk = Chunk.deserialize(record, self._chunk_size)
        if (chunk.chunk_x, chunk.chunk_y) != (chunk_x, chunk_y):
            raise MalformedChunkData(
                f"{key}: record is for chunk ({chunk.chunk_x}, {chunk.chunk_y})"
            )
        return chunk

    def chunk_exists(self, world_id: str, chunk_x: int, chunk_y: int) -> bool:
        return self._backend.get(self.chunk_key(world_id, chunk_x, chunk_y)) is not None

    def delete_chunk(self, world_id: str, chunk_x: int, chunk_y: int) -> bool:
        key = self.chunk_key(world_id, chunk_x, chunk_y)
        self._forget(key)
        return self._backend.delete(key)

    def list_world_chunks(self, world_id: str) -> list[ChunkCoord]:
        coords = []
        for key in self._backend.keys(self.chunk_prefix(world_id)):
            coord = self._parse_chunk_key(world_id, key)
            if coord is not None:
                coords.append(coord)
        return sorted(coords, key=lambda c: (c.y, c.x))

    def world_chunk_count(self, world_id: str) -> int:
        return len(self._backend.keys(self.chunk_prefix(world_id)))

    def world_storage_size(self, world_id: str) -> int:
        """Approximate stored size of a world in bytes (UTF-8 encoded values)."""
        total = 0
        keys = self._backend.keys(self.chunk_prefix(world_id)) + [self.world_key(world_id)]
        for key in keys:
            raw = self._backend.get(key)
            if raw is not None:
                total += len(raw.encode("utf-8"))
        return total

    def _enforce_limit(self, world_id: str, keep: str) -> None:
        """Drop least recently accessed chunk records of *world_id* until under the cap.

        The cap is per world: saving one world never trims another. Chunks the
        protected predicate claims (resident ones) are skipped, so the world
        may stay above the cap until they are evicted.
        """
        keys = self._backend.keys(self.chunk_prefix(world_id))
        excess = len(keys) - self._max_chunks
        if excess <= 0:
            return
        candidates = []
        for key in keys:
            if key == keep:
                continue
            coord = self._parse_chunk_key(world_id, key)
            if coord is not None and self._protected is not None and self._protected(world_id, coord.x, coord.y):
                continue
            candidates.append(key)
        with self._lock:
            candidates.sort(key=lambda k: self._access.get(k, 0))
        for key in candidates[:excess]:
            self._backend.delete(key)
            self._forget(key)
            logger.debug("Storage cap %d reached for %r, dropped %s", self._max_chunks, world_id, key)

    # -- world metadata --

    def save_world_metadata(self, metadata: WorldMetadata) -> None:
        self._backend.set(self.world_key(metadata.world_id), json.dumps(metadata.to_record()))

    def load_world_metadata(self, world_id: str) -> WorldMetadata | None:
        raw = self._backend.get(self.world_key(world_id))
        if raw is None:
            return None
        try:
            rec = WorldMetadataRecord.model_validate_json(raw)
            created = datetime.fromisoformat(rec.created_at_iso)
            saved = datetime.fromisoformat(rec.last_saved_at_iso) if rec.last_saved_at_iso else None
        except (ValidationError, ValueError) as exc:
            raise MalformedChunkData(f"invalid metadata for world {world_id!r}: {exc}") from exc
        return WorldMetadata(world_id=rec.world_id, seed=rec.seed, created_at=created, last_saved_at=saved)

    def list_worlds(self) -> list[WorldMetadata]:
        """All stored worlds, most recently saved first."""
        prefix = f"{self._prefix}world/"
        worlds: list[WorldMetadata] = []
        for key in self._backend.keys(prefix):
            world_id = unquote(key[len(prefix):])
            try:
                meta = self.load_world_metadata(world_id)
            except MalformedChunkData as exc:
                logger.warning("Skipping unreadable world record %s: %s", key, exc)
                continue
            if meta is not None:
                worlds.append(meta)
        worlds.sort(key=lambda m: m.last_saved_at or m.created_at, reverse=True)
        return worlds

    def delete_world(self, world_id: str) -> int:
        """Best-effort removal of every key of *world_id*; returns keys removed."""
        try:
            keys = self._backend.keys(self.chunk_prefix(world_id)) + [self.world_key(world_id)]
        except StorageUnavailable as exc:
            logger.warning("Cannot list keys of world %r: %s", world_id, exc)
            return 0
        removed = 0
        for key in keys:
            try:
                if self._backend.delete(key):
                    removed += 1
            except StorageUnavailable as exc:
                logger.warning("Failed to delete %s: %s", key, exc)
                continue
            self._forget(key)
        logger.info("Deleted world %r (%d keys)", world_id, removed)
        return removed
