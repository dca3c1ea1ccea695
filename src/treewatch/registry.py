"""Thread-safe registry of watched directories."""

import threading
from pathlib import Path
from typing import Dict, FrozenSet, Iterator, Mapping, Optional

from .models import WatchRegistration


class WatchRegistry:
    """
    Thread-safe mapping from absolute directory path to its registration.

    Each operation is atomic on its own. Sequences of operations are not;
    use put_if_absent() instead of a contains()/put pair.
    """

    def __init__(self):
        """Initialize an empty registry."""
        self._registrations: Dict[Path, WatchRegistration] = {}
        self._lock = threading.RLock()

    def put_if_absent(self, registration: WatchRegistration) -> bool:
        """
        Insert a registration unless its path is already registered.

        Args:
            registration: Registration to insert

        Returns:
            True if inserted, False if the path was already registered
        """
        with self._lock:
            if registration.path in self._registrations:
                return False
            self._registrations[registration.path] = registration
            return True

    def get(self, path: Path) -> Optional[WatchRegistration]:
        """
        Get the registration for a path.

        Args:
            path: Absolute directory path

        Returns:
            The registration, or None if the path is not registered
        """
        with self._lock:
            return self._registrations.get(path)

    def remove(self, path: Path) -> Optional[WatchRegistration]:
        """
        Remove the registration for a path.

        Args:
            path: Absolute directory path

        Returns:
            The removed registration, or None if the path was not registered
        """
        with self._lock:
            return self._registrations.pop(path, None)

    def contains(self, path: Path) -> bool:
        """Check if a path is registered."""
        with self._lock:
            return path in self._registrations

    def keys_snapshot(self) -> FrozenSet[Path]:
        """
        Get a point-in-time copy of the registered paths.

        Returns:
            Frozen set of registered paths
        """
        with self._lock:
            return frozenset(self._registrations)

    def snapshot(self) -> Dict[Path, WatchRegistration]:
        """
        Get a point-in-time copy of the whole registry.

        Returns:
            Dict of path to registration, safe to iterate while others mutate
        """
        with self._lock:
            return dict(self._registrations)

    def clear(self) -> Dict[Path, WatchRegistration]:
        """
        Remove all registrations.

        Returns:
            The registrations that were removed
        """
        with self._lock:
            removed = self._registrations
            self._registrations = {}
            return removed

    def __len__(self) -> int:
        """Return the number of registered paths."""
        with self._lock:
            return len(self._registrations)

    def __contains__(self, path: Path) -> bool:
        """Check if a path is registered."""
        return self.contains(path)

    def __iter__(self) -> Iterator[Path]:
        """Iterate over a snapshot of the registered paths."""
        return iter(sorted(self.keys_snapshot(), key=str))


def nearest_registered_ancestor(
    path: Path,
    registrations: Mapping[Path, WatchRegistration],
) -> Optional[Path]:
    """
    Find the closest registered path at or above a path.

    Args:
        path: Absolute path to start from
        registrations: Registry snapshot to search

    Returns:
        The nearest registered path, or None if no ancestor is registered
    """
    current = path
    while current not in registrations:
        parent = current.parent
        if parent == current:
            return None
        current = parent
    return current
