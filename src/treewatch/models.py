"""Data models for the treewatch package."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Callable, FrozenSet, List, Optional, Union

from .exceptions import InvalidArgumentError

if TYPE_CHECKING:
    from .fs_watcher import WatchHandle


class EventKind(Enum):
    """Kinds of events reported by a directory watch."""
    CREATED = "created"
    DELETED = "deleted"
    MODIFIED = "modified"
    OVERFLOW = "overflow"

    @classmethod
    def parse(cls, value: Union["EventKind", str]) -> "EventKind":
        """
        Convert an EventKind or its string value to an EventKind.

        Args:
            value: EventKind member or name/value such as "created"

        Returns:
            The matching EventKind

        Raises:
            InvalidArgumentError: If the value is not a known event kind
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise InvalidArgumentError(f"Unknown event kind: {value!r}")


@dataclass(frozen=True)
class WatchEvent:
    """
    A single event drained from a watch handle.

    Attributes:
        kind: The kind of event
        name: Path of the changed entry relative to the watched directory,
            None for OVERFLOW events
    """
    kind: EventKind
    name: Optional[Path] = None

    def resolve(self, directory: Path) -> Path:
        """Return the absolute path this event refers to."""
        if self.name is None:
            return directory
        return directory / self.name


EventCallback = Callable[[Path, WatchEvent], None]


@dataclass
class WatchRegistration:
    """
    One directory under active observation.

    Attributes:
        path: Absolute, normalized directory path (registry key)
        handle: Native watch handle bound to path, owned by this registration
        remaining_depth: Depth budget left for subdirectories created below path
        event_kinds: Event kinds this registration reacts to
        callback: Handler invoked for every event under this subtree
    """
    path: Path
    handle: "WatchHandle"
    remaining_depth: int
    event_kinds: FrozenSet[EventKind]
    callback: EventCallback

    def __post_init__(self):
        if not self.path.is_absolute():
            raise InvalidArgumentError(f"path must be absolute: {self.path}")
        if self.remaining_depth < 0:
            raise InvalidArgumentError(f"remaining_depth must be >= 0: {self.remaining_depth}")
        self.event_kinds = frozenset(self.event_kinds)


@dataclass
class WalkStats:
    """
    Counters collected while walking a directory tree.

    Attributes:
        directory_visits: Directories visited and registered
        file_visits: Non-directory entries visited
        failed_visits: Entries that vanished, changed type or could not be read
        failed_paths: Paths whose visit failed
    """
    directory_visits: int = 0
    file_visits: int = 0
    failed_visits: int = 0
    failed_paths: List[Path] = field(default_factory=list)

    def merge(self, other: "WalkStats") -> None:
        """Add the counters of another walk to this one."""
        self.directory_visits += other.directory_visits
        self.file_visits += other.file_visits
        self.failed_visits += other.failed_visits
        self.failed_paths.extend(other.failed_paths)

    def to_dict(self) -> dict:
        """Convert to dictionary for logging and serialization."""
        return {
            "directory_visits": self.directory_visits,
            "file_visits": self.file_visits,
            "failed_visits": self.failed_visits,
            "failed_paths": [str(p) for p in self.failed_paths],
        }
