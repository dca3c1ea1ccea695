"""Path relationship helpers."""

import os
from pathlib import Path
from typing import Optional, Union

from .exceptions import InvalidArgumentError, PathNotADirectoryError


PathLike = Union[str, os.PathLike]


def absolute_path(path: PathLike) -> Path:
    """
    Return the absolute, lexically normalized form of a path.

    Symbolic links are not resolved, so a directory reached through a link
    keeps the path it was reached by.
    """
    if path is None:
        raise InvalidArgumentError("path must not be None")
    return Path(os.path.abspath(os.fspath(path)))


def is_sub_path(parent: PathLike, candidate: PathLike) -> bool:
    """
    Check if one path is equal to or below another.

    Args:
        parent: Directory path to check against
        candidate: Path that may be inside parent

    Returns:
        True if candidate equals parent or lives below it

    Raises:
        InvalidArgumentError: If either path is None
        PathNotADirectoryError: If parent exists and is not a directory
    """
    if parent is None or candidate is None:
        raise InvalidArgumentError("parent and candidate must not be None")

    parent_path = absolute_path(parent)
    if parent_path.exists() and not parent_path.is_dir():
        raise PathNotADirectoryError(f"Path is not a directory: {parent_path}")

    candidate_path = absolute_path(candidate)
    if parent_path == candidate_path:
        return True

    prefix = str(parent_path)
    if not prefix.endswith(os.sep):
        prefix += os.sep
    return str(candidate_path).startswith(prefix)


def closest_existing_ancestor(path: PathLike) -> Optional[Path]:
    """
    Find the closest existing entry at or above a path.

    Args:
        path: Path to start from

    Returns:
        The path itself if it exists, else its nearest existing ancestor,
        or None if not even the filesystem root exists
    """
    current = absolute_path(path)
    while not current.exists():
        parent = current.parent
        if parent == current:
            return None
        current = parent
    return current


def relative_depth(ancestor: Path, path: Path) -> int:
    """Number of path segments between an ancestor and a path below it."""
    return len(path.relative_to(ancestor).parts)
