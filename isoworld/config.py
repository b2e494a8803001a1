"""World configuration with sensible defaults."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class WorldConfig:
    """Immutable configuration for a chunked world."""

    # World
    world_id: str = "default"
    world_seed: int = 42

    # Tiles (render-space size of one isometric tile)
    tile_width: int = 64
    tile_height: int = 32

    # Chunks
    chunk_size: int = 16
    load_distance: int = 2        # Chunks kept resident around the actor
    unload_distance: int = 3      # Resident chunks beyond this are evicted
    generate_distance: int = 1    # Resolved synchronously every tick

    # World limits in chunk coordinates (None = unbounded in that direction)
    world_limit_min_x: int | None = None
    world_limit_max_x: int | None = None
    world_limit_min_y: int | None = None
    world_limit_max_y: int | None = None

    # Persistence
    persist_chunks: bool = True
    auto_save: bool = True
    auto_save_interval_ms: int = 60000
    storage_backend: str = "memory"       # "memory" or "file"
    storage_path: str = "saves"
    storage_prefix: str = "isoworld/"
    max_stored_chunks: int = 0            # 0 = unlimited
    io_workers: int = 0                   # 0 = run store calls inline

    # Logging
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {self.chunk_size}")
        if self.tile_width <= 0 or self.tile_height <= 0:
            raise ValueError("tile dimensions must be positive")
        if not (self.unload_distance >= self.load_distance >= self.generate_distance >= 0):
            raise ValueError(
                "expected unload_distance >= load_distance >= generate_distance >= 0, got "
                f"{self.unload_distance}, {self.load_distance}, {self.generate_distance}"
            )
        if self.storage_backend not in ("memory", "file"):
            raise ValueError(f"unknown storage backend {self.storage_backend!r}")
        if self.auto_save_interval_ms <= 0:
            raise ValueError("auto_save_interval_ms must be positive")
        if self.io_workers < 0 or self.max_stored_chunks < 0:
            raise ValueError("io_workers and max_stored_chunks must not be negative")
