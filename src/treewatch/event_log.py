"""Thread-safe log of triggered events per path."""

import threading
from collections import deque
from pathlib import Path
from typing import Deque, Dict, List

from .models import EventKind


class EventLog:
    """
    Records every observed event kind against the path it happened to.

    Queues are created on the first event for a path, keep arrival order and
    keep duplicates. Only the whole log can be cleared.
    """

    def __init__(self):
        """Initialize an empty log."""
        self._events: Dict[Path, Deque[EventKind]] = {}
        self._lock = threading.Lock()

    def append(self, path: Path, kind: EventKind) -> None:
        """
        Append an event kind to the queue of a path.

        Args:
            path: Absolute path the event happened to
            kind: Kind of the event
        """
        with self._lock:
            queue = self._events.get(path)
            if queue is None:
                queue = self._events[path] = deque()
            queue.append(kind)

    def events_for(self, path: Path) -> List[EventKind]:
        """
        Get the recorded events of one path.

        Args:
            path: Absolute path

        Returns:
            Event kinds in arrival order (empty if none were recorded)
        """
        with self._lock:
            return list(self._events.get(path, ()))

    def snapshot(self) -> Dict[Path, List[EventKind]]:
        """
        Get a copy of the whole log.

        Returns:
            Dict of path to event kinds in arrival order
        """
        with self._lock:
            return {path: list(queue) for path, queue in self._events.items()}

    def clear(self) -> int:
        """
        Remove all recorded events.

        Returns:
            Number of paths that had events
        """
        with self._lock:
            count = len(self._events)
            self._events.clear()
            return count

    def __len__(self) -> int:
        """Return the number of paths with recorded events."""
        with self._lock:
            return len(self._events)

    def __contains__(self, path: Path) -> bool:
        """Check if a path has recorded events."""
        with self._lock:
            return path in self._events
