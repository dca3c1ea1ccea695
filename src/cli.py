#!/usr/bin/env python3
"""
CLI for watching directory trees.

Usage:
    python -m src.cli watch /path/to/folder --depth 2
    python -m src.cli watch ./a ./b --depth 1 --events created deleted
"""

import argparse
import logging
import signal
import sys
import time
from dataclasses import replace
from pathlib import Path

from dotenv import load_dotenv

from src.treewatch import (
    EventKind,
    TreeWatcher,
    WatchEvent,
    WatcherConfig,
    WatcherError,
    WalkStats,
)


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("cli")


class GracefulShutdown:
    """Handle graceful shutdown on SIGINT/SIGTERM."""

    def __init__(self):
        self.should_exit = False
        signal.signal(signal.SIGINT, self._handler)
        signal.signal(signal.SIGTERM, self._handler)

    def _handler(self, signum, frame):
        logger.info("Received shutdown signal, stopping...")
        self.should_exit = True


def load_config(args) -> WatcherConfig:
    """Build the watcher configuration from .env, the environment and flags."""
    env_file = Path.cwd() / ".env"
    if env_file.exists():
        load_dotenv(env_file)
    else:
        load_dotenv()

    overrides = {}
    if args.sweep_interval is not None:
        overrides["sweep_interval_ms"] = args.sweep_interval
    if args.max_watches is not None:
        overrides["max_watches"] = args.max_watches
    if args.polling:
        overrides["use_polling"] = True
    if args.no_follow_symlinks:
        overrides["follow_symlinks"] = False

    # replace() re-runs validation on the overridden values
    return replace(WatcherConfig.from_env(), **overrides)


def log_event(path: Path, event: WatchEvent) -> None:
    """Callback that logs every event."""
    logger.info(f"{event.kind.value:>8}: {path}")


def cmd_watch(args):
    """Watch directory trees until interrupted."""
    try:
        config = load_config(args)
    except WatcherError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    roots = [Path(r).resolve() for r in args.roots]
    for root in roots:
        if not root.exists():
            logger.error(f"Root path does not exist: {root}")
            sys.exit(1)
        if not root.is_dir():
            logger.error(f"Root path is not a directory: {root}")
            sys.exit(1)

    shutdown = GracefulShutdown()

    with TreeWatcher(config=config) as watcher:
        total = WalkStats()
        for root in roots:
            try:
                total.merge(watcher.register(root, args.depth, args.events, log_event))
            except WatcherError as e:
                logger.error(f"Cannot watch {root}: {e}")
                sys.exit(1)

        logger.info(
            f"Watching {len(watcher.registered_paths())} director(ies) under "
            f"{len(roots)} root(s), max depth {args.depth}"
        )
        if total.failed_visits:
            logger.warning(f"{total.failed_visits} path(s) could not be visited")
        logger.info("Press Ctrl+C to stop")

        while not shutdown.should_exit:
            time.sleep(0.5)

        events = watcher.triggered_events()

    logger.info(f"Observed events on {len(events)} path(s)")
    for path in sorted(events, key=str):
        kinds = events[path]
        summary = ", ".join(
            f"{kind.value}={kinds.count(kind)}" for kind in EventKind if kind in kinds
        )
        logger.info(f"  {path}: {summary}")


def main():
    parser = argparse.ArgumentParser(
        description="Depth-bounded recursive directory watcher",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Watch a folder and two levels of subfolders
  python -m src.cli watch ./documents --depth 2

  # Only report creations and deletions
  python -m src.cli watch ./documents --events created deleted

  # Use the polling observer (network shares, containers)
  python -m src.cli watch ./documents --polling
        """,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # Watch command
    watch_parser = subparsers.add_parser("watch", help="Watch directory trees")
    watch_parser.add_argument("roots", nargs="+", help="Root directories to watch")
    watch_parser.add_argument("--depth", type=int, default=0, help="Subdirectory levels to watch (default: 0)")
    watch_parser.add_argument(
        "--events",
        nargs="+",
        default=["created", "deleted", "modified"],
        choices=[kind.value for kind in EventKind],
        help="Event kinds to watch, at most 4 (default: created deleted modified)",
    )
    watch_parser.add_argument("--sweep-interval", type=int, default=None, help="Pause between sweeps in ms")
    watch_parser.add_argument("--max-watches", type=int, default=None, help="Maximum number of watched directories")
    watch_parser.add_argument("--polling", action="store_true", help="Use the polling observer")
    watch_parser.add_argument("--no-follow-symlinks", action="store_true", help="Do not follow symlinked directories")
    watch_parser.set_defaults(func=cmd_watch)

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    args.func(args)


if __name__ == "__main__":
    main()
