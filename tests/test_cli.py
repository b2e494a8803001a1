"""Tests for the ``python -m isoworld`` command line."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from isoworld.__main__ import _build_parser, _config_from_args, main
from isoworld.storage.backends import FileBackend
from isoworld.storage.chunk_store import ChunkStore


def test_walk_arguments_build_config():
    args = _build_parser().parse_args(["walk", "--world", "w1", "--seed", "9", "--chunk-size", "8"])
    cfg = _config_from_args(args, auto_save=False)
    assert (cfg.world_id, cfg.world_seed, cfg.chunk_size) == ("w1", 9, 8)
    assert cfg.auto_save is False


def test_walk_saves_world_to_disk(tmp_path, monkeypatch):
    monkeypatch.setattr(sys, "argv", [
        "isoworld", "walk",
        "--world", "cli-world",
        "--steps", "40", "--dx", "2",
        "--storage", "file", "--storage-path", str(tmp_path),
        "--log-level", "WARNING",
    ])
    main()

    store = ChunkStore(FileBackend(tmp_path), chunk_size=16)
    meta = store.load_world_metadata("cli-world")
    assert meta is not None
    assert meta.seed == 42
    assert store.world_chunk_count("cli-world") >= 25
