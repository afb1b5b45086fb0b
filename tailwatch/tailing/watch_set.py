"""Set of file identities currently admitted for tailing."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Iterator, Set, Union

from tailwatch.utils.helpers import file_identity


class WatchedFileSet:
    """
    Thread-safe set of canonical file identities.

    Membership is granted through ``try_admit`` only. Entries are never
    removed, so a path that disappears and comes back is not re-admitted.
    """

    def __init__(self) -> None:
        self._members: Set[str] = set()
        self._lock = threading.Lock()

    def try_admit(self, path: Union[str, Path]) -> bool:
        """
        Atomically test membership and insert if absent.

        Args:
            path: Any spelling of the file path

        Returns:
            True if the caller is now responsible for tailing the file,
            False if it was already admitted
        """
        identity = file_identity(path)
        with self._lock:
            if identity in self._members:
                return False
            self._members.add(identity)
            return True

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, Path)):
            return False
        identity = file_identity(path)
        with self._lock:
            return identity in self._members

    def __len__(self) -> int:
        with self._lock:
            return len(self._members)

    def __iter__(self) -> Iterator[str]:
        with self._lock:
            snapshot = sorted(self._members)
        return iter(snapshot)
