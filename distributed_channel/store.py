"""
Thread-safe in-memory store used for single-process channels and tests.

The store implements the subset of Redis commands the channel and lock rely
on, with the same return conventions as redis-py: values come back as
``bytes`` and key expiry is honored lazily on access.
"""

from __future__ import annotations

import time
from collections import deque
from threading import RLock
from typing import Any

from .exceptions import WrongTypeError


def _to_bytes(value: Any) -> bytes:
    """Encode one value the way redis-py sends command arguments."""
    if isinstance(value, bytes):
        return value
    if isinstance(value, str):
        return value.encode("utf-8")
    if isinstance(value, bool):
        raise TypeError("Invalid input of type 'bool'. Convert to bytes, str, int or float first.")
    if isinstance(value, (int, float)):
        return repr(value).encode("utf-8")
    raise TypeError(
        f"Invalid input of type {type(value).__name__!r}. "
        "Convert to bytes, str, int or float first."
    )


class MemoryListStore:
    """
    Process-local stand-in for a Redis server.

    Notes
    -----
    * String keys and list keys share one namespace; using a list command on
      a string key raises :class:`WrongTypeError`.
    * Empty lists are removed, matching Redis.
    """

    def __init__(self) -> None:
        """Create empty key containers and initialize lock state."""
        self._strings: dict[str, bytes] = {}
        self._lists: dict[str, deque[bytes]] = {}
        self._deadlines: dict[str, float] = {}
        self._lock = RLock()

    def _expire_unlocked(self, name: str) -> None:
        """Drop a key whose deadline has passed (caller must hold the lock)."""
        deadline = self._deadlines.get(name)
        if deadline is None or deadline > time.monotonic():
            return
        self._deadlines.pop(name, None)
        self._strings.pop(name, None)
        self._lists.pop(name, None)

    def _exists_unlocked(self, name: str) -> bool:
        self._expire_unlocked(name)
        return name in self._strings or name in self._lists

    def _list_unlocked(self, name: str, *, create: bool = False) -> deque[bytes] | None:
        self._expire_unlocked(name)
        if name in self._strings:
            raise WrongTypeError(
                f"WRONGTYPE Operation against key {name!r} holding the wrong kind of value"
            )
        items = self._lists.get(name)
        if items is None and create:
            items = self._lists[name] = deque()
        return items

    def ping(self) -> bool:
        return True

    def set(
        self,
        name: str,
        value: Any,
        *,
        nx: bool = False,
        px: int | None = None,
        ex: int | None = None,
    ) -> bool | None:
        """
        Store a string value.

        Returns ``True`` when written and ``None`` when ``nx`` found the key
        already present.
        """
        encoded = _to_bytes(value)
        with self._lock:
            if nx and self._exists_unlocked(name):
                return None
            self._lists.pop(name, None)
            self._strings[name] = encoded
            self._deadlines.pop(name, None)
            ttl_seconds = None
            if px is not None:
                ttl_seconds = int(px) / 1000.0
            elif ex is not None:
                ttl_seconds = float(ex)
            if ttl_seconds is not None:
                self._deadlines[name] = time.monotonic() + ttl_seconds
            return True

    def get(self, name: str) -> bytes | None:
        with self._lock:
            self._expire_unlocked(name)
            if name in self._lists:
                raise WrongTypeError(
                    f"WRONGTYPE Operation against key {name!r} holding the wrong kind of value"
                )
            return self._strings.get(name)

    def exists(self, *names: str) -> int:
        with self._lock:
            return sum(1 for name in names if self._exists_unlocked(name))

    def delete(self, *names: str) -> int:
        removed = 0
        with self._lock:
            for name in names:
                if self._exists_unlocked(name):
                    removed += 1
                self._strings.pop(name, None)
                self._lists.pop(name, None)
                self._deadlines.pop(name, None)
        return removed

    def delete_if_value(self, name: str, value: Any) -> int:
        """
        Delete a string key only while it still holds ``value``.

        This is the compare-and-delete step used by fenced lock release.
        """
        encoded = _to_bytes(value)
        with self._lock:
            self._expire_unlocked(name)
            if self._strings.get(name) != encoded:
                return 0
            return self.delete(name)

    def pttl(self, name: str) -> int:
        """Return remaining lifetime in ms, ``-1`` without expiry, ``-2`` when missing."""
        with self._lock:
            if not self._exists_unlocked(name):
                return -2
            deadline = self._deadlines.get(name)
            if deadline is None:
                return -1
            return max(0, int((deadline - time.monotonic()) * 1000))

    def llen(self, name: str) -> int:
        with self._lock:
            items = self._list_unlocked(name)
            return 0 if items is None else len(items)

    def lpush(self, name: str, *values: Any) -> int:
        if not values:
            raise TypeError("lpush requires at least one value.")
        encoded = [_to_bytes(value) for value in values]
        with self._lock:
            items = self._list_unlocked(name, create=True)
            for value in encoded:
                items.appendleft(value)
            return len(items)

    def rpop(self, name: str) -> bytes | None:
        with self._lock:
            items = self._list_unlocked(name)
            if not items:
                return None
            value = items.pop()
            if not items:
                self._lists.pop(name, None)
                self._deadlines.pop(name, None)
            return value

    def lrange(self, name: str, start: int, end: int) -> list[bytes]:
        """Return list items from ``start`` to ``end`` inclusive (Redis indexing)."""
        with self._lock:
            items = self._list_unlocked(name)
            if not items:
                return []
            values = list(items)
        stop = None if end == -1 else end + 1
        return values[start:stop]
