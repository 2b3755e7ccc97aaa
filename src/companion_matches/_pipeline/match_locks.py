# Area: Pipeline
# PRD: docs/prd-match-lifecycle.md
"""Per-match locks serializing writes and recovery finalization."""

import threading
import weakref
from contextlib import contextmanager
from typing import Iterator

from .._store.records import MatchKey


class _MatchLock:
    __slots__ = ("lock", "__weakref__")

    def __init__(self) -> None:
        self.lock = threading.Lock()


class MatchLockRegistry:
    """
    One lock per (pack_id, subpack, external_match_id).

    Locks are created on demand and dropped once no caller holds them,
    so the registry does not grow with the number of matches ever seen.
    Different matches never contend.
    """

    def __init__(self) -> None:
        self._locks: "weakref.WeakValueDictionary[MatchKey, _MatchLock]" = (
            weakref.WeakValueDictionary()
        )
        self._guard = threading.Lock()

    def _lock_for(self, key: MatchKey) -> _MatchLock:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = _MatchLock()
                self._locks[key] = entry
            return entry

    @contextmanager
    def held(self, key: MatchKey) -> Iterator[None]:
        """Hold the lock of one match for the duration of the block."""
        entry = self._lock_for(key)
        with entry.lock:
            yield

    def __len__(self) -> int:
        return len(self._locks)
