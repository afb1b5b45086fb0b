"""
Helper utilities for tailwatch.

Path functions shared by the watcher, the watch set and the orchestrator.
"""

from pathlib import Path
from typing import Union


def normalise_path(path: Union[str, Path]) -> Path:
    """Return a resolved version of ``path`` without forcing existence."""

    path = Path(path)
    try:
        return path.expanduser().resolve()
    except (FileNotFoundError, RuntimeError):
        return path.expanduser().absolute()


def file_identity(path: Union[str, Path]) -> str:
    """
    Canonical identity used for watch set membership.

    Symlinks and relative spellings of the same file collapse to one
    absolute path.
    """
    return str(normalise_path(path))


def is_regular_file(path: Union[str, Path]) -> bool:
    """Check if path currently references a regular file (dangling links are not)."""
    try:
        return Path(path).is_file()
    except OSError:
        return False
