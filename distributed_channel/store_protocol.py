"""
Store protocol used by :class:`distributed_channel.channel.BoundedChannel`.

The channel and lock depend on this small command surface rather than on a
specific client, so a ``redis.Redis`` / ``redis.cluster.RedisCluster``
instance and the in-process :class:`distributed_channel.store.MemoryListStore`
are interchangeable.
"""

from __future__ import annotations

from typing import Any, Protocol


class ListStore(Protocol):
    """
    Behavioral contract for channel backends.

    Method names and return values follow redis-py. Implementations are
    expected to be safe for concurrent access from several threads.
    """

    def ping(self) -> bool:
        """Return true when the store is reachable."""

    def set(
        self,
        name: str,
        value: Any,
        *,
        nx: bool = False,
        px: int | None = None,
    ) -> bool | None:
        """Set a string key; with ``nx`` only when absent. ``None`` when not set."""

    def exists(self, *names: str) -> int:
        """Return how many of ``names`` exist."""

    def delete(self, *names: str) -> int:
        """Delete keys and return how many existed."""

    def llen(self, name: str) -> int:
        """Return list length, ``0`` for a missing key."""

    def lpush(self, name: str, *values: Any) -> int:
        """Insert values at the list head and return the new length."""

    def rpop(self, name: str) -> Any:
        """Remove and return the list tail, ``None`` when empty."""
