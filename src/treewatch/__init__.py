"""
Tree Watcher Package

Depth-bounded recursive change notification over directory trees, built on
non-recursive single-directory watches.

Features:
- One watch per directory, registered up to a configurable depth
- Single background dispatcher draining every watch in path order
- Automatic watches on new subdirectories within the depth budget
- Automatic removal of watches when a watched directory is deleted
- Per-path log of every observed event
"""

from .models import (
    EventKind,
    WatchEvent,
    WatchRegistration,
    WalkStats,
)

from .config import WatcherConfig

from .exceptions import (
    WatcherError,
    InvalidArgumentError,
    PathNotFoundError,
    PathNotADirectoryError,
    NativeWatchError,
    WatchHandleClosedError,
    WatchLimitError,
    DispatcherStoppedError,
)

from .paths import absolute_path, is_sub_path, closest_existing_ancestor
from .registry import WatchRegistry
from .event_log import EventLog
from .fs_watcher import WatchHandle, ObserverBackend
from .registrar import DirectoryRegistrar, DirectoryTreeRegistrar
from .dispatcher import BackgroundDispatcher
from .service import TreeWatcher, get_default_watcher


__all__ = [
    # Models
    "EventKind",
    "WatchEvent",
    "WatchRegistration",
    "WalkStats",
    # Config
    "WatcherConfig",
    # Exceptions
    "WatcherError",
    "InvalidArgumentError",
    "PathNotFoundError",
    "PathNotADirectoryError",
    "NativeWatchError",
    "WatchHandleClosedError",
    "WatchLimitError",
    "DispatcherStoppedError",
    # Path helpers
    "absolute_path",
    "is_sub_path",
    "closest_existing_ancestor",
    # Components
    "WatchRegistry",
    "EventLog",
    "WatchHandle",
    "ObserverBackend",
    "DirectoryRegistrar",
    "DirectoryTreeRegistrar",
    "BackgroundDispatcher",
    # Service
    "TreeWatcher",
    "get_default_watcher",
]

__version__ = "0.1.0"
