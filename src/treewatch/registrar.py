"""Registration of watches on a directory and on a whole directory tree."""

import logging
import os
from pathlib import Path
from typing import FrozenSet, Iterable, List, Optional, Set, Tuple, Union

from .config import WatcherConfig
from .exceptions import (
    InvalidArgumentError,
    PathNotADirectoryError,
    PathNotFoundError,
    WatcherError,
    WatchLimitError,
)
from .models import EventCallback, EventKind, WalkStats, WatchRegistration
from .paths import PathLike, absolute_path
from .registry import WatchRegistry

logger = logging.getLogger(__name__)


MAX_EVENT_KINDS = 4


def normalize_event_kinds(
    event_kinds: Optional[Iterable[Union[EventKind, str]]],
) -> FrozenSet[EventKind]:
    """
    Validate and convert the event kinds passed to a registration.

    Args:
        event_kinds: One to four event kinds (members or string values)

    Returns:
        Frozen set of EventKind

    Raises:
        InvalidArgumentError: If None, empty, longer than four or unknown
    """
    if event_kinds is None:
        raise InvalidArgumentError("event_kinds must not be None")
    if isinstance(event_kinds, (str, EventKind)):
        event_kinds = [event_kinds]

    kinds = list(event_kinds)
    if not kinds:
        raise InvalidArgumentError("At least one event kind must be watched")
    if len(kinds) > MAX_EVENT_KINDS:
        raise InvalidArgumentError(
            f"At most {MAX_EVENT_KINDS} event kinds can be watched, got {kinds}"
        )
    return frozenset(EventKind.parse(kind) for kind in kinds)


class DirectoryRegistrar:
    """
    Registers a watch on a single directory.

    This is the one place where registrations are created; both the initial
    tree walk and the dispatcher's propagation go through it.
    """

    def __init__(self, registry: WatchRegistry, backend, config: Optional[WatcherConfig] = None):
        """
        Initialize the registrar.

        Args:
            registry: Registry that receives the registrations
            backend: Object whose open(directory, event_kinds) returns a watch handle
            config: Watcher configuration
        """
        self.registry = registry
        self.backend = backend
        self.config = config or WatcherConfig()

    def register_directory(
        self,
        path: PathLike,
        remaining_depth: int,
        event_kinds: FrozenSet[EventKind],
        callback: EventCallback,
    ) -> bool:
        """
        Register a watch on one directory unless it is already registered.

        Args:
            path: Directory to watch
            remaining_depth: Depth budget left below this directory
            event_kinds: Event kinds to watch
            callback: Handler for events under this directory

        Returns:
            True if the directory is registered after the call, False if it
            was skipped because the budget is exhausted

        Raises:
            PathNotFoundError: If the directory no longer exists
            PathNotADirectoryError: If the path is not a directory
            WatchLimitError: If config.max_watches has been reached
            OSError: If the platform refuses the watch
        """
        directory = absolute_path(path)

        if remaining_depth < 0:
            logger.debug(f"Skipping registration past max depth: {directory} ({remaining_depth})")
            return False

        if directory in self.registry:
            logger.debug(f"Skipping registration, already registered: {directory}")
            return True

        if not directory.exists():
            raise PathNotFoundError(f"Directory does not exist: {directory}")
        if not directory.is_dir():
            raise PathNotADirectoryError(f"Path is not a directory: {directory}")

        limit = self.config.max_watches
        if limit is not None and len(self.registry) >= limit:
            raise WatchLimitError(f"Watch limit of {limit} reached, not watching {directory}")

        handle = self.backend.open(directory, event_kinds)
        registration = WatchRegistration(
            path=directory,
            handle=handle,
            remaining_depth=remaining_depth,
            event_kinds=event_kinds,
            callback=callback,
        )

        if not self.registry.put_if_absent(registration):
            # Another thread registered the directory first; its registration wins.
            handle.close()
            logger.debug(f"Directory registered concurrently, keeping first watch: {directory}")
            return True

        logger.debug(f"Registered watch: {directory} (remaining depth {remaining_depth})")
        return True


class DirectoryTreeRegistrar:
    """
    Registers a watch on every directory of a tree up to a maximum depth.

    The walk is depth-first. Each directory gets a budget of max_depth minus
    its distance from the root and is registered both when it is entered and
    after its children have been visited, so directories that show up while
    the walk is running are still covered.
    """

    def __init__(self, registrar: DirectoryRegistrar, config: Optional[WatcherConfig] = None):
        """
        Initialize the tree registrar.

        Args:
            registrar: Single-directory registration primitive
            config: Watcher configuration
        """
        self.registrar = registrar
        self.config = config or registrar.config

    def register_tree(
        self,
        root: PathLike,
        max_depth: int,
        event_kinds: Iterable[Union[EventKind, str]],
        callback: EventCallback,
    ) -> WalkStats:
        """
        Register watches on a directory and its subdirectories.

        Args:
            root: Directory to walk
            max_depth: Number of directory levels below root to watch
            event_kinds: One to four event kinds to watch
            callback: Handler invoked for every event under root

        Returns:
            Counters of the walk

        Raises:
            InvalidArgumentError: If an argument is missing or out of range
            PathNotFoundError: If root does not exist
            PathNotADirectoryError: If root is not a directory
        """
        if root is None:
            raise InvalidArgumentError("path must not be None")
        if callback is None:
            raise InvalidArgumentError("callback must not be None")
        kinds = normalize_event_kinds(event_kinds)
        if max_depth is None or isinstance(max_depth, bool) or not isinstance(max_depth, int):
            raise InvalidArgumentError(f"max_depth must be an integer: {max_depth!r}")
        if max_depth < 0:
            raise InvalidArgumentError(f"max_depth must be >= 0: {max_depth}")

        root_path = absolute_path(root)
        if not root_path.exists():
            raise PathNotFoundError(f"Path does not exist: {root_path}")
        if not root_path.is_dir():
            raise PathNotADirectoryError(f"Path is not a directory: {root_path}")

        logger.info(f"Registering watches under {root_path} (max depth {max_depth})")
        stats = self._walk(root_path, max_depth, kinds, callback)
        logger.info(
            f"Finished walking {root_path}: {stats.directory_visits} directories, "
            f"{stats.file_visits} files, {stats.failed_visits} failed visits"
        )
        return stats

    def _walk(
        self,
        root: Path,
        max_depth: int,
        kinds: FrozenSet[EventKind],
        callback: EventCallback,
    ) -> WalkStats:
        stats = WalkStats()
        visited: Set[Tuple[int, int]] = set()
        # (directory, distance from root, children already visited)
        stack: List[Tuple[Path, int, bool]] = [(root, 0, False)]

        while stack:
            directory, distance, finished = stack.pop()
            budget = max_depth - distance

            if finished:
                if self._attach(directory, budget, kinds, callback, stats):
                    stats.directory_visits += 1
                continue

            if self.config.follow_symlinks and not self._first_visit(directory, visited, stats):
                continue

            if not self._attach(directory, budget, kinds, callback, stats):
                continue

            children: List[Path] = []
            if budget > 0:
                try:
                    children = self._child_directories(directory, stats)
                except OSError as e:
                    self._fail(directory, e, stats)
                    continue

            stack.append((directory, distance, True))
            for child in reversed(children):
                stack.append((child, distance + 1, False))

        return stats

    def _attach(
        self,
        directory: Path,
        budget: int,
        kinds: FrozenSet[EventKind],
        callback: EventCallback,
        stats: WalkStats,
    ) -> bool:
        try:
            return self.registrar.register_directory(directory, budget, kinds, callback)
        except (WatcherError, OSError) as e:
            self._fail(directory, e, stats)
            return False

    def _first_visit(self, directory: Path, visited: Set[Tuple[int, int]], stats: WalkStats) -> bool:
        """Record a directory's identity, False if this walk has already seen it."""
        try:
            st = os.stat(directory)
        except OSError as e:
            self._fail(directory, e, stats)
            return False

        key = (st.st_dev, st.st_ino)
        if key in visited:
            logger.debug(f"Skipping directory already visited through another path: {directory}")
            stats.failed_visits += 1
            stats.failed_paths.append(directory)
            return False
        visited.add(key)
        return True

    def _child_directories(self, directory: Path, stats: WalkStats) -> List[Path]:
        """List the subdirectories of a directory, counting the other entries."""
        children = []
        with os.scandir(directory) as entries:
            for entry in sorted(entries, key=lambda e: e.name):
                try:
                    is_dir = entry.is_dir(follow_symlinks=self.config.follow_symlinks)
                except OSError as e:
                    self._fail(Path(entry.path), e, stats)
                    continue

                if is_dir:
                    children.append(directory / entry.name)
                else:
                    stats.file_visits += 1
        return children

    @staticmethod
    def _fail(path: Path, error: Exception, stats: WalkStats) -> None:
        logger.debug(f"Failed to visit {path}: {error!r}")
        stats.failed_visits += 1
        stats.failed_paths.append(path)
