"""Shared fixtures for treewatch tests."""

import time
from pathlib import Path

import pytest
from watchdog.events import (
    DirCreatedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
)

from src.treewatch.config import WatcherConfig
from src.treewatch.fs_watcher import WatchHandle
from src.treewatch.models import EventKind
from src.treewatch.service import TreeWatcher


_WATCHDOG_EVENTS = {
    EventKind.CREATED: FileCreatedEvent,
    EventKind.DELETED: FileDeletedEvent,
    EventKind.MODIFIED: FileModifiedEvent,
}


class FakeBackend:
    """
    Backend handing out real WatchHandles that are never scheduled.

    Tests fire events into the handles by hand with emit().
    """

    def __init__(self, max_pending_events: int = 1024, fail_on=()):
        self.max_pending_events = max_pending_events
        self.fail_on = {Path(p) for p in fail_on}
        self.handles = {}
        self.opened = []
        self.released = []
        self.stopped = False

    def open(self, directory, event_kinds):
        if directory in self.fail_on:
            raise OSError(f"cannot watch {directory}")
        handle = WatchHandle(
            directory,
            event_kinds,
            max_pending_events=self.max_pending_events,
            backend=self,
        )
        self.handles[directory] = handle
        self.opened.append(directory)
        return handle

    def release(self, handle):
        self.released.append(handle.directory)

    def stop(self):
        self.stopped = True

    def emit(self, directory, kind, name):
        """Fire a watchdog event for a child of a watched directory."""
        directory = Path(directory)
        path = str(directory / name)
        if kind is EventKind.CREATED and (directory / name).is_dir():
            event = DirCreatedEvent(path)
        else:
            event = _WATCHDOG_EVENTS[kind](path)
        self.handles[directory].dispatch(event)


class CallbackRecorder:
    """Callback collecting (path, event) pairs."""

    def __init__(self):
        self.calls = []

    def __call__(self, path, event):
        self.calls.append((path, event))

    @property
    def paths(self):
        return [path for path, _ in self.calls]


def wait_for(predicate, timeout: float = 3.0, interval: float = 0.02) -> bool:
    """Poll a predicate until it is true or the timeout expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


ALL_KINDS = [EventKind.CREATED, EventKind.DELETED, EventKind.MODIFIED]


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture
def recorder():
    return CallbackRecorder()


@pytest.fixture
def manual_watcher(fake_backend):
    """TreeWatcher whose dispatcher thread exits at once; tests call sweep()."""
    config = WatcherConfig(dispatcher_enabled=False)
    watcher = TreeWatcher(config=config, backend=fake_backend)
    yield watcher
    watcher.shutdown()


@pytest.fixture
def tree(tmp_path):
    """
    Directory tree used by most tests:

        root/
            a/
                b/
                    c/
                a.txt
            x/
            root.txt
    """
    root = tmp_path / "root"
    (root / "a" / "b" / "c").mkdir(parents=True)
    (root / "x").mkdir()
    (root / "root.txt").write_text("root")
    (root / "a" / "a.txt").write_text("a")
    return root
