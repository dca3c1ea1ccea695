"""Public entry point owning the registry, the event log and the dispatcher."""

import logging
import threading
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from .config import WatcherConfig
from .dispatcher import BackgroundDispatcher
from .event_log import EventLog
from .exceptions import DispatcherStoppedError, InvalidArgumentError, PathNotADirectoryError
from .fs_watcher import ObserverBackend
from .models import EventCallback, EventKind, WalkStats
from .paths import PathLike, absolute_path, closest_existing_ancestor, is_sub_path
from .registrar import DirectoryRegistrar, DirectoryTreeRegistrar
from .registry import WatchRegistry

logger = logging.getLogger(__name__)


class TreeWatcher:
    """
    Depth-bounded recursive watching of directory trees.

    Registering a directory puts a non-recursive watch on it and on every
    subdirectory up to the requested depth. A single background dispatcher,
    started by the first registration, delivers the events, watches
    directories created later within the depth budget and drops the watches
    of deleted directories. Every event is recorded in a log that callers can
    read and clear.
    """

    is_sub_path = staticmethod(is_sub_path)
    closest_existing_ancestor = staticmethod(closest_existing_ancestor)

    def __init__(
        self,
        config: Optional[WatcherConfig] = None,
        backend=None,
    ):
        """
        Initialize the watcher.

        Args:
            config: Watcher configuration
            backend: Source of watch handles (default: ObserverBackend)
        """
        self.config = config or WatcherConfig()
        self.backend = backend if backend is not None else ObserverBackend(self.config)
        self.registry = WatchRegistry()
        self.event_log = EventLog()

        self._registrar = DirectoryRegistrar(self.registry, self.backend, self.config)
        self._tree_registrar = DirectoryTreeRegistrar(self._registrar, self.config)
        self.dispatcher = BackgroundDispatcher(
            self.registry,
            self.event_log,
            propagate=self._tree_registrar.register_tree,
            deregister=self.deregister,
            config=self.config,
        )
        self._closed = False

    def register(
        self,
        path: PathLike,
        max_depth: int,
        event_kinds: Iterable[Union[EventKind, str]],
        callback: EventCallback,
    ) -> WalkStats:
        """
        Watch a directory and its subdirectories up to max_depth levels down.

        Starts the dispatcher if it has never been started.

        Args:
            path: Directory to watch
            max_depth: Directory levels below path to watch (0 = path only)
            event_kinds: One to four of created, deleted, modified, overflow
            callback: Called as callback(changed_path, event) from the
                dispatcher thread; it must return quickly

        Returns:
            Counters of the directory walk

        Raises:
            InvalidArgumentError: If an argument is missing or out of range
            PathNotFoundError: If path does not exist
            PathNotADirectoryError: If path is not a directory
            DispatcherStoppedError: If the watcher has been shut down
        """
        if self._closed:
            raise DispatcherStoppedError("Tree watcher has been shut down")

        stats = self._tree_registrar.register_tree(path, max_depth, event_kinds, callback)

        if self.dispatcher.ensure_started():
            logger.debug("Dispatcher started by first registration")
        return stats

    def deregister(self, path: PathLike) -> int:
        """
        Stop watching a directory and every registered directory below it.

        Deregistering a path that is not registered only logs a warning.

        Args:
            path: Registered directory

        Returns:
            Number of watches removed

        Raises:
            InvalidArgumentError: If path is None
            PathNotADirectoryError: If path exists and is not a directory
        """
        if path is None:
            raise InvalidArgumentError("path must not be None")

        target = absolute_path(path)
        if target.exists() and not target.is_dir():
            raise PathNotADirectoryError(f"Path is not a directory: {target}")

        if target not in self.registry:
            logger.warning(f"Deregistering path that is not registered: {target}")
            return 0

        removed = 0
        for registered in sorted(self.registry.keys_snapshot(), key=str):
            if not is_sub_path(target, registered):
                continue

            registration = self.registry.remove(registered)
            if registration is None:
                continue
            logger.debug(f"Deregistering watch: {registered}")
            registration.handle.close()
            removed += 1

        return removed

    def triggered_events(self) -> Dict[Path, List[EventKind]]:
        """
        Get a copy of the events recorded so far.

        Returns:
            Dict of changed path to event kinds in arrival order
        """
        return self.event_log.snapshot()

    def clear_triggered_events(self) -> None:
        """Forget all recorded events."""
        self.event_log.clear()

    def registered_paths(self) -> List[Path]:
        """
        Get the currently watched directories.

        Returns:
            Sorted list of absolute directory paths
        """
        return sorted(self.registry.keys_snapshot(), key=str)

    def is_registered(self, path: PathLike) -> bool:
        """Check if a directory is currently watched."""
        return absolute_path(path) in self.registry

    @property
    def is_running(self) -> bool:
        """Check if the dispatcher thread is running."""
        return self.dispatcher.is_running

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None) -> None:
        """
        Stop the dispatcher and release every watch.

        Args:
            wait: Wait for the dispatcher thread to exit
            timeout: Maximum time to wait for it
        """
        if self._closed:
            return
        self._closed = True

        self.dispatcher.stop(wait=wait, timeout=timeout)

        for registration in self.registry.clear().values():
            registration.handle.close()

        stop_backend = getattr(self.backend, "stop", None)
        if stop_backend is not None:
            stop_backend()
        logger.info("Tree watcher shut down")

    def close(self) -> None:
        """Close the watcher and release all resources."""
        self.shutdown()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


_default_watcher: Optional[TreeWatcher] = None
_default_lock = threading.Lock()


def get_default_watcher() -> TreeWatcher:
    """
    Get the process-wide watcher, creating it on first use.

    The configuration is read from TREEWATCH_* environment variables.
    """
    global _default_watcher

    with _default_lock:
        if _default_watcher is None:
            _default_watcher = TreeWatcher(WatcherConfig.from_env())
        return _default_watcher
