"""Entry point: ``python -m isoworld``.

Supports two modes:
  - ``python -m isoworld``          → Launch the FastAPI chunk service
  - ``python -m isoworld walk``     → Headless walk: stream chunks along a path, then save
"""

from __future__ import annotations

import argparse
import logging

logger = logging.getLogger(__name__)


def _add_world_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--world", type=str, default="default", help="World id")
    p.add_argument("--seed", type=int, default=42)
    p.add_argument("--chunk-size", type=int, default=16)
    p.add_argument("--load-distance", type=int, default=2)
    p.add_argument("--unload-distance", type=int, default=3)
    p.add_argument("--generate-distance", type=int, default=1)
    p.add_argument("--storage", type=str, default="memory", choices=["memory", "file"])
    p.add_argument("--storage-path", type=str, default="saves")
    p.add_argument("--io-workers", type=int, default=0)
    p.add_argument("--log-level", type=str, default="INFO", choices=["DEBUG", "INFO", "WARNING"])


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Chunked isometric world service")
    sub = parser.add_subparsers(dest="command")

    # --- Server mode (default) ---
    srv = sub.add_parser("serve", help="Start the FastAPI chunk service (default)")
    srv.add_argument("--host", type=str, default="127.0.0.1")
    srv.add_argument("--port", type=int, default=8000)
    srv.add_argument("--auto-save-ms", type=int, default=60000)
    _add_world_args(srv)

    # --- Headless walk ---
    walk = sub.add_parser("walk", help="Walk an actor through the world headlessly")
    walk.add_argument("--steps", type=int, default=200)
    walk.add_argument("--dx", type=int, default=1, help="Grid tiles moved along x per step")
    walk.add_argument("--dy", type=int, default=0, help="Grid tiles moved along y per step")
    walk.add_argument("--start-x", type=int, default=0)
    walk.add_argument("--start-y", type=int, default=0)
    _add_world_args(walk)

    return parser


def _config_from_args(args: argparse.Namespace, **extra):
    from isoworld.config import WorldConfig

    return WorldConfig(
        world_id=args.world,
        world_seed=args.seed,
        chunk_size=args.chunk_size,
        load_distance=args.load_distance,
        unload_distance=args.unload_distance,
        generate_distance=args.generate_distance,
        storage_backend=args.storage,
        storage_path=args.storage_path,
        io_workers=args.io_workers,
        log_level=args.log_level,
        **extra,
    )


def _run_server(args: argparse.Namespace) -> None:
    import uvicorn

    from isoworld.api.app import create_app

    config = _config_from_args(args, auto_save_interval_ms=args.auto_save_ms)
    app = create_app(config)
    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level.lower())


def _run_walk(args: argparse.Namespace) -> None:
    from isoworld.utils.logging import setup_logging
    from isoworld.world import WorldFacade

    config = _config_from_args(args, auto_save=False)
    setup_logging(config.log_level)

    with WorldFacade(config) as world:
        if world.load_world_state():
            logger.info("Resuming saved world %r", config.world_id)

        x, y = args.start_x, args.start_y
        generated = loaded = evicted = 0
        for step in range(args.steps):
            report = world.tick(x, y)
            generated += len(report.generated)
            loaded += len(report.loaded)
            evicted += len(report.evicted)
            if (step + 1) % 50 == 0:
                stats = world.manager.stats()
                logger.info(
                    "Step %d at (%d, %d): %d resident, %d known, %d dirty",
                    step + 1, x, y, stats["resident"], stats["known"], stats["dirty"],
                )
            x += args.dx
            y += args.dy

        report = world.save_world_state()
        logger.info(
            "Walk finished: %d generated, %d loaded, %d evicted, %d saved on exit",
            generated, loaded, evicted, len(report.saved),
        )


def main() -> None:
    parser = _build_parser()
    args = parser.parse_args()

    # Default to serve mode if no subcommand given
    if args.command is None:
        args = parser.parse_args(["serve"])
    if args.command == "serve":
        _run_server(args)
    elif args.command == "walk":
        _run_walk(args)


if __name__ == "__main__":
    main()
