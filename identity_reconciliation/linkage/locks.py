"""
Per-attribute advisory locks.

A reconciliation holds one lock per email and per phone number it touches,
keyed by the normalized value (see ``normalizers.lock_keys``). Locks are
acquired in sorted key order, so two requests touching overlapping
attributes cannot deadlock. Registry entries are reference counted and
dropped once no request holds or waits on them.
"""

import threading
from contextlib import contextmanager
from typing import Dict, Iterable, Iterator, List
import logging

logger = logging.getLogger(__name__)


class _Entry:
    __slots__ = ("lock", "refs")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.refs = 0


class AttributeLockManager:
    """Process-local registry of keyed mutexes."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: Dict[str, _Entry] = {}

    def _checkout(self, key: str) -> _Entry:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = _Entry()
            entry.refs += 1
            return entry

    def _checkin(self, key: str, entry: _Entry) -> None:
        with self._guard:
            entry.refs -= 1
            if entry.refs == 0:
                del self._entries[key]

    @contextmanager
    def hold(self, keys: Iterable[str]) -> Iterator[List[str]]:
        """
        Hold the locks for all keys for the duration of the block.

        Released in reverse order on every exit path.
        """
        ordered = sorted(set(keys))
        acquired = []
        try:
            for key in ordered:
                entry = self._checkout(key)
                try:
                    entry.lock.acquire()
                except BaseException:
                    self._checkin(key, entry)
                    raise
                acquired.append((key, entry))
            logger.debug(f"Holding attribute locks: {ordered}")
            yield ordered
        finally:
            for key, entry in reversed(acquired):
                entry.lock.release()
                self._checkin(key, entry)

    def active_keys(self) -> List[str]:
        """Keys currently held or waited on."""
        with self._guard:
            return sorted(self._entries)


# Shared by every reconciliation in this process
default_lock_manager = AttributeLockManager()
