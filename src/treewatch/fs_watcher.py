"""Single-directory watch handles using the watchdog library."""

import logging
import os
import threading
from collections import deque
from pathlib import Path
from typing import Deque, Dict, FrozenSet, Iterable, List, Optional, Set

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver, ObservedWatch
from watchdog.observers.polling import PollingObserver

from .config import WatcherConfig
from .exceptions import WatchHandleClosedError
from .models import EventKind, WatchEvent

logger = logging.getLogger(__name__)


class WatchHandle(FileSystemEventHandler):
    """
    Non-recursive watch on exactly one directory.

    watchdog events for direct children of the directory are translated to
    WatchEvents and buffered until drained with poll(). A handle that returned
    events stays signalled, and poll() returns None, until reset() is called.
    """

    def __init__(
        self,
        directory: Path,
        event_kinds: Iterable[EventKind],
        max_pending_events: int = 1024,
        backend: Optional["ObserverBackend"] = None,
    ):
        """
        Initialize the handle.

        Args:
            directory: Absolute path of the watched directory
            event_kinds: Event kinds to report (OVERFLOW is always reported)
            max_pending_events: Buffered events before dropping with OVERFLOW
            backend: Backend that scheduled the handle and releases it on close
        """
        super().__init__()
        self.directory = directory
        self.event_kinds: FrozenSet[EventKind] = frozenset(event_kinds)
        self.max_pending_events = max_pending_events
        self.watch: Optional[ObservedWatch] = None
        self._backend = backend
        self._pending: Deque[WatchEvent] = deque()
        self._overflowed = False
        self._signalled = False
        self._closed = False
        self._lock = threading.Lock()

    def _child_name(self, path) -> Optional[Path]:
        """Return the name of a direct child of the directory, else None."""
        if isinstance(path, bytes):
            path = os.fsdecode(path)
        child = Path(path)
        if child.parent != self.directory or child == self.directory:
            return None
        return Path(child.name)

    def _push(self, kind: EventKind, name: Optional[Path]) -> None:
        if name is None or kind not in self.event_kinds:
            return

        with self._lock:
            if self._closed:
                return
            if len(self._pending) >= self.max_pending_events:
                self._overflowed = True
                return
            self._pending.append(WatchEvent(kind, name))

    def on_created(self, event: FileSystemEvent):
        self._push(EventKind.CREATED, self._child_name(event.src_path))

    def on_deleted(self, event: FileSystemEvent):
        self._push(EventKind.DELETED, self._child_name(event.src_path))

    def on_modified(self, event: FileSystemEvent):
        self._push(EventKind.MODIFIED, self._child_name(event.src_path))

    def on_moved(self, event: FileSystemEvent):
        # A rename is reported as a deletion of the old name and a creation
        # of the new one, each only if it lives in this directory.
        self._push(EventKind.DELETED, self._child_name(event.src_path))
        self._push(EventKind.CREATED, self._child_name(event.dest_path))

    def poll(self) -> Optional[List[WatchEvent]]:
        """
        Drain pending events without blocking.

        Returns:
            Pending events in arrival order, or None if nothing is pending or
            the handle is signalled and has not been reset

        Raises:
            WatchHandleClosedError: If the handle has been closed
        """
        with self._lock:
            if self._closed:
                raise WatchHandleClosedError(f"Watch handle is closed: {self.directory}")
            if self._signalled or (not self._pending and not self._overflowed):
                return None

            events = list(self._pending)
            self._pending.clear()
            if self._overflowed:
                events.append(WatchEvent(EventKind.OVERFLOW))
                self._overflowed = False
            self._signalled = True
            return events

    def reset(self) -> None:
        """
        Re-arm the handle so poll() reports further events.

        Raises:
            WatchHandleClosedError: If the handle has been closed
        """
        with self._lock:
            if self._closed:
                raise WatchHandleClosedError(f"Watch handle is closed: {self.directory}")
            self._signalled = False

    def close(self) -> bool:
        """
        Release the native watch.

        Returns:
            True if the handle was closed by this call, False if already closed
        """
        with self._lock:
            if self._closed:
                return False
            self._closed = True
            self._pending.clear()

        if self._backend is not None:
            self._backend.release(self)
        return True

    @property
    def closed(self) -> bool:
        """Check if the handle has been closed."""
        return self._closed

    def pending_count(self) -> int:
        """Return the number of buffered events."""
        with self._lock:
            return len(self._pending)


class ObserverBackend:
    """
    Opens watch handles on a single shared watchdog observer.

    The observer is created and started on the first open() and each handle
    gets its own non-recursive watch on it.
    """

    def __init__(self, config: Optional[WatcherConfig] = None):
        """
        Initialize the backend.

        Args:
            config: Watcher configuration
        """
        self.config = config or WatcherConfig()
        self._observer: Optional[BaseObserver] = None
        self._handles: Dict[Path, Set[WatchHandle]] = {}
        self._lock = threading.Lock()

    def _ensure_observer(self) -> BaseObserver:
        if self._observer is None:
            if self.config.use_polling:
                observer = PollingObserver(timeout=self.config.polling_interval_s)
            else:
                observer = Observer()
            observer.daemon = True
            observer.start()
            self._observer = observer
            logger.debug(f"Started {type(observer).__name__}")
        return self._observer

    def open(self, directory: Path, event_kinds: Iterable[EventKind]) -> WatchHandle:
        """
        Open a non-recursive watch on a directory.

        Args:
            directory: Absolute path of the directory to watch
            event_kinds: Event kinds to report

        Returns:
            The new watch handle

        Raises:
            OSError: If the platform refuses the watch (missing path, limits)
        """
        handle = WatchHandle(
            directory,
            event_kinds,
            max_pending_events=self.config.max_pending_events,
            backend=self,
        )

        with self._lock:
            observer = self._ensure_observer()
            handle.watch = observer.schedule(handle, str(directory), recursive=False)
            self._handles.setdefault(directory, set()).add(handle)
        return handle

    def release(self, handle: WatchHandle) -> None:
        """
        Detach a handle from the observer.

        watchdog keys watches by path, so the watch itself is only unscheduled
        once no other handle on the same directory remains.
        """
        with self._lock:
            siblings = self._handles.get(handle.directory, set())
            siblings.discard(handle)
            if not siblings:
                self._handles.pop(handle.directory, None)

            if self._observer is None or handle.watch is None:
                return
            try:
                if siblings:
                    self._observer.remove_handler_for_watch(handle, handle.watch)
                else:
                    self._observer.unschedule(handle.watch)
            except (KeyError, OSError) as e:
                logger.debug(f"Watch for {handle.directory} already released: {e!r}")

    def stop(self) -> None:
        """Stop the observer and forget all handles."""
        with self._lock:
            observer = self._observer
            self._observer = None
            self._handles.clear()

        if observer is not None:
            observer.stop()
            observer.join(timeout=self.config.join_timeout_s)
            logger.debug(f"Stopped {type(observer).__name__}")

    def __len__(self) -> int:
        """Return the number of open handles."""
        with self._lock:
            return sum(len(handles) for handles in self._handles.values())
