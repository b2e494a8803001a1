"""Exceptions raised by the world subsystem.

A missing chunk record is not an error: stores return ``None`` and the
manager falls back to generation. Chunks outside the world limits are
skipped silently.
"""

from __future__ import annotations


class WorldError(Exception):
    """Base class for all world subsystem errors."""


class MalformedChunkData(WorldError):
    """A persisted chunk record failed validation."""


class StorageUnavailable(WorldError):
    """The backing key-value store could not be read or written."""


class ChunkGenerationError(WorldError):
    """The chunk generator produced unusable output."""
