"""
Keyed in-process locks

One mutex per key, created lazily and dropped once nobody holds or
waits on it. ``hold`` acquires several keys in sorted order so two
callers asking for the same pair of keys never deadlock.
"""

from contextlib import contextmanager
from typing import Dict, Hashable, Iterable, Iterator, Tuple
import logging
import threading

logger = logging.getLogger(__name__)


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = threading.Lock()
        self.users = 0


class KeyedLockRegistry:
    """Registry of per-key mutexes."""

    def __init__(self):
        self._guard = threading.Lock()
        self._entries: Dict[Hashable, _Entry] = {}

    def _checkout(self, key: Hashable) -> _Entry:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = _Entry()
            entry.users += 1
            return entry

    def _checkin(self, key: Hashable, entry: _Entry) -> None:
        with self._guard:
            entry.users -= 1
            if entry.users == 0:
                self._entries.pop(key, None)

    @contextmanager
    def hold(self, keys: Iterable[Hashable]) -> Iterator[Tuple[Hashable, ...]]:
        ordered = tuple(sorted(set(keys)))
        acquired = []
        try:
            for key in ordered:
                entry = self._checkout(key)
                entry.lock.acquire()
                acquired.append((key, entry))
            yield ordered
        finally:
            for key, entry in reversed(acquired):
                entry.lock.release()
                self._checkin(key, entry)

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)


# Process-wide registry for booking slot keys
slot_locks = KeyedLockRegistry()
