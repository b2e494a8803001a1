"""Engine layer: chunk lifecycle, persistence queue, auto-save."""

from isoworld.engine.auto_save import AutoSaver
from isoworld.engine.chunk_manager import ChunkManager, SaveReport, TickReport
from isoworld.engine.persistence import PersistenceQueue

__all__ = ["AutoSaver", "ChunkManager", "PersistenceQueue", "SaveReport", "TickReport"]
