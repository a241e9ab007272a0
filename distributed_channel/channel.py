"""
Bounded FIFO channel stored as a list in a shared store.

Producers insert at the list head (``LPUSH``) and consumers remove from the
tail (``RPOP``), so items come out in the order they went in. Every mutating
operation holds the channel's :class:`DistributedLock` for its whole duration,
which keeps the length check and the insert of a push atomic across
processes. ``length`` reads without the lock and is advisory only.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from .config import ChannelConfig, Serializer
from .exceptions import (
    ChannelDecodeError,
    ChannelFullError,
    ChannelTimeoutError,
    DistributedChannelError,
    StoreOperationError,
)
from .lock import DistributedLock

if TYPE_CHECKING:  # pragma: no cover - typing-only import
    from .store_protocol import ListStore

_LOGGER = logging.getLogger(__name__)

_STAT_NAMES = (
    "pushed",
    "popped",
    "rejected_full",
    "empty_polls",
    "cleared",
    "timeouts",
    "store_errors",
    "decode_errors",
)


class BoundedChannel:
    """
    Multi-process producer/consumer queue with an optional capacity.

    Parameters
    ----------
    store:
        Redis client or any :class:`ListStore` implementation shared by all
        processes using the channel.
    config:
        Key names, capacity, timeout and serializer. Defaults to
        :class:`ChannelConfig` defaults.
    lock:
        Optional preconfigured lock. Built from ``config`` when omitted.
    """

    def __init__(
        self,
        store: "ListStore",
        config: ChannelConfig | None = None,
        *,
        lock: DistributedLock | None = None,
    ) -> None:
        self._config = config or ChannelConfig()
        self._store = store
        self._lock = lock or DistributedLock(
            store,
            self._config.lock_name,
            config=self._config.lock,
        )
        self._stats = dict.fromkeys(_STAT_NAMES, 0)
        self._stats_lock = threading.Lock()

    @property
    def name(self) -> str:
        """Return the channel list key."""
        return self._config.channel_name

    @property
    def config(self) -> ChannelConfig:
        return self._config

    @property
    def lock(self) -> DistributedLock:
        """Return the lock serializing this channel's mutations."""
        return self._lock

    # ------------------------------------------------------------------ #
    # Serialization helpers
    # ------------------------------------------------------------------ #

    def _encode(self, value: Any) -> Any:
        if self._config.serializer is Serializer.RAW:
            # Argument types redis-py accepts.
            if isinstance(value, bool) or not isinstance(value, (bytes, str, int, float)):
                raise TypeError(
                    f"Serializer.RAW accepts bytes, str, int or float, not {type(value).__name__!r}."
                )
            return value
        return json.dumps(value, separators=(",", ":"), sort_keys=True)

    def _decode(self, raw: bytes | str) -> Any:
        if self._config.serializer is Serializer.RAW:
            if isinstance(raw, bytes):
                try:
                    return raw.decode("utf-8")
                except UnicodeDecodeError:
                    return raw
            return raw
        try:
            return json.loads(raw)
        except ValueError as exc:
            # JSONDecodeError and UnicodeDecodeError are both ValueError.
            self._inc_stat("decode_errors")
            raise ChannelDecodeError(self.name, raw, str(exc)) from exc

    # ------------------------------------------------------------------ #
    # Store call helpers
    # ------------------------------------------------------------------ #

    def _inc_stat(self, key: str) -> None:
        with self._stats_lock:
            self._stats[key] += 1

    @contextmanager
    def _store_call(self, command: str) -> Iterator[None]:
        """Translate client failures for one store command into library errors."""
        try:
            yield
        except DistributedChannelError:
            self._inc_stat("store_errors")
            raise
        except (RedisTimeoutError, TimeoutError) as exc:
            self._inc_stat("timeouts")
            raise ChannelTimeoutError(
                f"{command} on channel {self.name!r} exceeded "
                f"{self._config.timeout_seconds}s."
            ) from exc
        except RedisError as exc:
            self._inc_stat("store_errors")
            raise StoreOperationError(f"{command} on channel {self.name!r} failed: {exc}") from exc

    def _check_deadline(self, deadline: float, command: str) -> None:
        if time.monotonic() > deadline:
            self._inc_stat("timeouts")
            raise ChannelTimeoutError(
                f"Timeout budget of {self._config.timeout_seconds}s for channel "
                f"{self.name!r} exhausted before {command}."
            )

    # ------------------------------------------------------------------ #
    # Channel API
    # ------------------------------------------------------------------ #

    def push(self, value: Any) -> int:
        """
        Insert one value at the channel head.

        Returns
        -------
        int
            Channel length after the insert.

        Raises
        ------
        ChannelFullError
            The channel already holds ``max_length`` items. Nothing is
            written and no retry is attempted.
        ChannelTimeoutError
            The length check and insert did not finish within
            ``timeout_seconds``.
        """
        payload = self._encode(value)
        with self._lock:
            deadline = time.monotonic() + self._config.timeout_seconds
            with self._store_call("LLEN"):
                length = int(self._store.llen(self.name))
            if self._config.bounded and length >= self._config.max_length:
                self._inc_stat("rejected_full")
                raise ChannelFullError(self.name, self._config.max_length)
            self._check_deadline(deadline, "LPUSH")
            with self._store_call("LPUSH"):
                new_length = int(self._store.lpush(self.name, payload))
        self._inc_stat("pushed")
        return new_length

    def pop(self) -> Any:
        """
        Remove and return the oldest value.

        When the channel is empty this waits ``empty_poll_delay_seconds``
        and returns ``None``, so a caller polling in a loop does not hammer
        the store. An empty channel is a normal outcome, not an error.

        Raises
        ------
        ChannelDecodeError
            The item is not valid for the JSON serializer. It has already been
            removed from the channel and is carried on the error's
            ``payload``.
        """
        with self._lock:
            with self._store_call("RPOP"):
                raw = self._store.rpop(self.name)
        if raw is None:
            self._inc_stat("empty_polls")
            time.sleep(self._config.empty_poll_delay_seconds)
            return None
        self._inc_stat("popped")
        return self._decode(raw)

    def length(self) -> int:
        """
        Return the current channel length.

        Reads without the lock, so the value may already be stale. Use it
        for monitoring, not to decide whether a push will fit.
        """
        with self._store_call("LLEN"):
            return int(self._store.llen(self.name))

    def clear(self) -> int:
        """
        Delete the channel and all its items.

        Returns
        -------
        int
            ``1`` when the list existed, ``0`` otherwise.
        """
        with self._lock:
            with self._store_call("DEL"):
                removed = int(self._store.delete(self.name))
        self._inc_stat("cleared")
        _LOGGER.debug("Channel cleared name=%s removed=%s", self.name, removed)
        return removed

    # ------------------------------------------------------------------ #
    # Diagnostics
    # ------------------------------------------------------------------ #

    def stats(self) -> dict[str, Any]:
        """Return cumulative operation counters for this channel instance."""
        with self._stats_lock:
            payload: dict[str, Any] = dict(self._stats)
        payload["channel"] = self.name
        payload["max_length"] = self._config.max_length
        return payload

    def metrics_text(self) -> str:
        """
        Return Prometheus-style metrics payload as text.
        """
        lines = []
        for key, value in sorted(self.stats().items()):
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                lines.append(f'distributed_channel_{key}{{channel="{self.name}"}} {value}')
        return "\n".join(lines) + "\n"

    def __len__(self) -> int:
        return self.length()

    def __repr__(self) -> str:
        return (
            f"BoundedChannel(name={self.name!r}, lock={self._lock.name!r}, "
            f"max_length={self._config.max_length})"
        )
