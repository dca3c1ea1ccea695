"""Tests for watch registry module."""

import threading
from pathlib import Path
from unittest.mock import Mock

from src.treewatch.models import EventKind, WatchRegistration
from src.treewatch.registry import WatchRegistry, nearest_registered_ancestor


def make_registration(path: Path, depth: int = 0) -> WatchRegistration:
    return WatchRegistration(
        path=path,
        handle=Mock(),
        remaining_depth=depth,
        event_kinds=[EventKind.CREATED],
        callback=Mock(),
    )


class TestWatchRegistry:
    """Tests for WatchRegistry class."""

    def test_create_empty_registry(self):
        registry = WatchRegistry()
        assert len(registry) == 0
        assert registry.keys_snapshot() == frozenset()

    def test_put_if_absent(self, tmp_path):
        registry = WatchRegistry()
        registration = make_registration(tmp_path)

        assert registry.put_if_absent(registration) is True
        assert len(registry) == 1
        assert registry.get(tmp_path) is registration
        assert tmp_path in registry

    def test_put_if_absent_keeps_first(self, tmp_path):
        registry = WatchRegistry()
        first = make_registration(tmp_path, depth=1)
        second = make_registration(tmp_path, depth=5)

        registry.put_if_absent(first)
        result = registry.put_if_absent(second)

        assert result is False
        assert registry.get(tmp_path) is first
        assert len(registry) == 1

    def test_get_missing(self, tmp_path):
        registry = WatchRegistry()
        assert registry.get(tmp_path) is None

    def test_remove(self, tmp_path):
        registry = WatchRegistry()
        registration = make_registration(tmp_path)
        registry.put_if_absent(registration)

        removed = registry.remove(tmp_path)

        assert removed is registration
        assert tmp_path not in registry
        assert len(registry) == 0

    def test_remove_missing(self, tmp_path):
        registry = WatchRegistry()
        assert registry.remove(tmp_path) is None

    def test_keys_snapshot_is_a_copy(self, tmp_path):
        registry = WatchRegistry()
        registry.put_if_absent(make_registration(tmp_path / "a"))

        keys = registry.keys_snapshot()
        registry.put_if_absent(make_registration(tmp_path / "b"))

        assert keys == frozenset({tmp_path / "a"})
        assert len(registry.keys_snapshot()) == 2

    def test_snapshot_survives_removal(self, tmp_path):
        registry = WatchRegistry()
        registration = make_registration(tmp_path)
        registry.put_if_absent(registration)

        snapshot = registry.snapshot()
        registry.remove(tmp_path)

        assert snapshot[tmp_path] is registration
        assert tmp_path not in registry

    def test_clear(self, tmp_path):
        registry = WatchRegistry()
        registry.put_if_absent(make_registration(tmp_path / "a"))
        registry.put_if_absent(make_registration(tmp_path / "b"))

        removed = registry.clear()

        assert set(removed) == {tmp_path / "a", tmp_path / "b"}
        assert len(registry) == 0

    def test_iter_is_sorted(self, tmp_path):
        registry = WatchRegistry()
        for name in ["c", "a", "b"]:
            registry.put_if_absent(make_registration(tmp_path / name))

        assert list(registry) == [tmp_path / "a", tmp_path / "b", tmp_path / "c"]

    def test_concurrent_put_if_absent_single_winner(self, tmp_path):
        registry = WatchRegistry()
        results = []
        lock = threading.Lock()
        barrier = threading.Barrier(10)

        def put():
            barrier.wait()
            result = registry.put_if_absent(make_registration(tmp_path))
            with lock:
                results.append(result)

        threads = [threading.Thread(target=put) for _ in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(True) == 1
        assert results.count(False) == 9
        assert len(registry) == 1

    def test_concurrent_distinct_paths(self, tmp_path):
        registry = WatchRegistry()

        def put(start):
            for i in range(start, start + 50):
                registry.put_if_absent(make_registration(tmp_path / str(i)))

        threads = [threading.Thread(target=put, args=(i * 50,)) for i in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(registry) == 200


class TestNearestRegisteredAncestor:
    """Tests for nearest_registered_ancestor."""

    def test_path_itself_registered(self, tmp_path):
        registrations = {tmp_path: make_registration(tmp_path)}
        assert nearest_registered_ancestor(tmp_path, registrations) == tmp_path

    def test_closest_ancestor_wins(self, tmp_path):
        registrations = {
            tmp_path: make_registration(tmp_path),
            tmp_path / "a": make_registration(tmp_path / "a"),
        }
        result = nearest_registered_ancestor(tmp_path / "a" / "b" / "c", registrations)
        assert result == tmp_path / "a"

    def test_no_ancestor(self, tmp_path):
        registrations = {tmp_path / "a": make_registration(tmp_path / "a")}
        assert nearest_registered_ancestor(tmp_path / "b", registrations) is None
