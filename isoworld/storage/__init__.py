"""Durable storage: key-value backends and the chunk store."""

from isoworld.storage.backends import FileBackend, KeyValueBackend, MemoryBackend, create_backend
from isoworld.storage.chunk_store import ChunkStore

__all__ = ["ChunkStore", "FileBackend", "KeyValueBackend", "MemoryBackend", "create_backend"]
