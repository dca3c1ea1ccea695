"""Configuration for the treewatch package."""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .exceptions import InvalidArgumentError


ENV_PREFIX = "TREEWATCH_"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise InvalidArgumentError(f"{name} must be a boolean, got {value!r}")


@dataclass
class WatcherConfig:
    """
    Configuration options for the tree watcher.

    Attributes:
        dispatcher_enabled: Control switch, read before every sweep
        sweep_interval_ms: Pause between two sweeps of the dispatcher
        max_pending_events: Events buffered per handle before OVERFLOW
        max_watches: Optional ceiling on registered directories (None = unlimited)
        follow_symlinks: Whether tree walks follow symbolic links to directories
        use_polling: Use the watchdog polling observer instead of OS events
        polling_interval_s: Interval of the polling observer
        join_timeout_s: Time to wait for background threads on shutdown
    """
    dispatcher_enabled: bool = True
    sweep_interval_ms: int = 50
    max_pending_events: int = 1024
    max_watches: Optional[int] = None
    follow_symlinks: bool = True
    use_polling: bool = False
    polling_interval_s: float = 1.0
    join_timeout_s: float = 5.0

    def __post_init__(self):
        if self.sweep_interval_ms < 0:
            raise InvalidArgumentError(
                f"sweep_interval_ms must be >= 0: {self.sweep_interval_ms}"
            )
        if self.max_pending_events < 1:
            raise InvalidArgumentError(
                f"max_pending_events must be >= 1: {self.max_pending_events}"
            )
        if self.max_watches is not None and self.max_watches < 1:
            raise InvalidArgumentError(
                f"max_watches must be >= 1 or None: {self.max_watches}"
            )
        if self.polling_interval_s <= 0:
            raise InvalidArgumentError(
                f"polling_interval_s must be > 0: {self.polling_interval_s}"
            )

    @property
    def sweep_interval(self) -> float:
        """Sweep interval in seconds."""
        return self.sweep_interval_ms / 1000.0

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "WatcherConfig":
        """
        Build a configuration from TREEWATCH_* environment variables.

        Unset variables keep their default value.

        Args:
            environ: Mapping to read from (default: os.environ)

        Returns:
            WatcherConfig instance

        Raises:
            InvalidArgumentError: If a variable cannot be parsed
        """
        if environ is None:
            environ = os.environ

        kwargs = {}
        for field_name, parser in (
            ("dispatcher_enabled", _parse_bool),
            ("sweep_interval_ms", int),
            ("max_pending_events", int),
            ("max_watches", int),
            ("follow_symlinks", _parse_bool),
            ("use_polling", _parse_bool),
            ("polling_interval_s", float),
        ):
            name = f"{ENV_PREFIX}{field_name.upper()}"
            raw = environ.get(name)
            if raw is None or raw.strip() == "":
                continue
            try:
                if parser is _parse_bool:
                    kwargs[field_name] = _parse_bool(name, raw)
                else:
                    kwargs[field_name] = parser(raw)
            except ValueError as e:
                raise InvalidArgumentError(f"Invalid value for {name}: {raw!r}") from e

        return cls(**kwargs)
