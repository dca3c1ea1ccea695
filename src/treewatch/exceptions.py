"""Custom exceptions for the treewatch package."""


class WatcherError(Exception):
    """Base exception for all watcher errors."""
    pass


class InvalidArgumentError(WatcherError, ValueError):
    """A required argument is missing or out of range."""
    pass


class PathNotFoundError(WatcherError, FileNotFoundError):
    """Specified path does not exist."""
    pass


class PathNotADirectoryError(WatcherError, NotADirectoryError):
    """Specified path exists but is not a directory."""
    pass


class NativeWatchError(WatcherError):
    """Error raised by a native watch handle."""
    pass


class WatchHandleClosedError(NativeWatchError):
    """Watch handle was used after being closed."""
    pass


class WatchLimitError(WatcherError):
    """Configured maximum number of watches has been reached."""
    pass


class DispatcherStoppedError(WatcherError):
    """Dispatcher was stopped and cannot be started again."""
    pass
