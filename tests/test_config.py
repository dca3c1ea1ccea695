"""Tests for config module."""

import pytest

from src.treewatch.config import WatcherConfig
from src.treewatch.exceptions import InvalidArgumentError


class TestWatcherConfig:
    """Tests for WatcherConfig class."""

    def test_default_values(self):
        config = WatcherConfig()
        assert config.dispatcher_enabled is True
        assert config.sweep_interval_ms == 50
        assert config.max_pending_events == 1024
        assert config.max_watches is None
        assert config.follow_symlinks is True
        assert config.use_polling is False
        assert config.polling_interval_s == 1.0
        assert config.join_timeout_s == 5.0

    def test_custom_values(self):
        config = WatcherConfig(
            dispatcher_enabled=False,
            sweep_interval_ms=10,
            max_watches=100,
            use_polling=True,
        )
        assert config.dispatcher_enabled is False
        assert config.sweep_interval_ms == 10
        assert config.max_watches == 100
        assert config.use_polling is True

    def test_sweep_interval_seconds(self):
        config = WatcherConfig(sweep_interval_ms=250)
        assert config.sweep_interval == 0.25

    def test_zero_sweep_interval_allowed(self):
        config = WatcherConfig(sweep_interval_ms=0)
        assert config.sweep_interval == 0.0

    @pytest.mark.parametrize("kwargs", [
        {"sweep_interval_ms": -1},
        {"max_pending_events": 0},
        {"max_watches": 0},
        {"polling_interval_s": 0},
    ])
    def test_invalid_values_raise(self, kwargs):
        with pytest.raises(InvalidArgumentError):
            WatcherConfig(**kwargs)

    def test_invalid_value_is_value_error(self):
        with pytest.raises(ValueError):
            WatcherConfig(max_pending_events=-5)


class TestWatcherConfigFromEnv:
    """Tests for WatcherConfig.from_env."""

    def test_empty_environment_gives_defaults(self):
        assert WatcherConfig.from_env({}) == WatcherConfig()

    def test_reads_all_variables(self):
        config = WatcherConfig.from_env({
            "TREEWATCH_DISPATCHER_ENABLED": "false",
            "TREEWATCH_SWEEP_INTERVAL_MS": "5",
            "TREEWATCH_MAX_PENDING_EVENTS": "16",
            "TREEWATCH_MAX_WATCHES": "200",
            "TREEWATCH_FOLLOW_SYMLINKS": "no",
            "TREEWATCH_USE_POLLING": "1",
            "TREEWATCH_POLLING_INTERVAL_S": "0.5",
        })
        assert config.dispatcher_enabled is False
        assert config.sweep_interval_ms == 5
        assert config.max_pending_events == 16
        assert config.max_watches == 200
        assert config.follow_symlinks is False
        assert config.use_polling is True
        assert config.polling_interval_s == 0.5

    def test_blank_values_are_ignored(self):
        config = WatcherConfig.from_env({"TREEWATCH_MAX_WATCHES": "  "})
        assert config.max_watches is None

    @pytest.mark.parametrize("value", ["TRUE", "yes", "On", "1"])
    def test_boolean_spellings(self, value):
        config = WatcherConfig.from_env({"TREEWATCH_USE_POLLING": value})
        assert config.use_polling is True

    def test_invalid_boolean_raises(self):
        with pytest.raises(InvalidArgumentError):
            WatcherConfig.from_env({"TREEWATCH_DISPATCHER_ENABLED": "maybe"})

    def test_invalid_integer_raises(self):
        with pytest.raises(InvalidArgumentError):
            WatcherConfig.from_env({"TREEWATCH_SWEEP_INTERVAL_MS": "fast"})

    def test_out_of_range_value_raises(self):
        with pytest.raises(InvalidArgumentError):
            WatcherConfig.from_env({"TREEWATCH_MAX_PENDING_EVENTS": "0"})

    def test_reads_os_environ_by_default(self, monkeypatch):
        monkeypatch.setenv("TREEWATCH_SWEEP_INTERVAL_MS", "7")
        assert WatcherConfig.from_env().sweep_interval_ms == 7
