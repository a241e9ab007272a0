"""
Backend factory helpers for easy store switching.

This module gives application developers a uniform way to build a channel
from a :class:`ChannelConfig` without writing connection wiring by hand.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum

from .channel import BoundedChannel
from .config import ChannelConfig, RedisClusterTarget, RedisTarget
from .connection import connect
from .exceptions import BackendConfigurationError
from .store import MemoryListStore
from .store_protocol import ListStore

_LOGGER = logging.getLogger(__name__)


class StoreBackend(str, Enum):
    """
    Built-in backend names supported by the factory helpers.

    MEMORY
        In-process store; only threads of one process share the channel.
    REDIS
        Single Redis server.
    REDIS_CLUSTER
        Redis Cluster.
    """

    MEMORY = "memory"
    REDIS = "redis"
    REDIS_CLUSTER = "redis-cluster"


def _normalize_backend(backend: str | StoreBackend) -> StoreBackend:
    """
    Normalize backend name into :class:`StoreBackend` enum value.
    """
    if isinstance(backend, StoreBackend):
        return backend
    lowered = str(backend).strip().lower()
    try:
        return StoreBackend(lowered)
    except ValueError as exc:
        valid = ", ".join(item.value for item in StoreBackend)
        raise BackendConfigurationError(
            f"Unknown backend {backend!r}. Supported values: {valid}."
        ) from exc


def backend_for(config: ChannelConfig) -> StoreBackend:
    """Return the backend implied by ``config.target``."""
    if isinstance(config.target, RedisClusterTarget):
        return StoreBackend.REDIS_CLUSTER
    if isinstance(config.target, RedisTarget):
        return StoreBackend.REDIS
    return StoreBackend.MEMORY


def create_store(
    config: ChannelConfig,
    *,
    backend: str | StoreBackend | None = None,
    stop_event: threading.Event | None = None,
) -> ListStore:
    """
    Create a store for ``config``.

    Redis backends block until the server answers ``PING`` (see
    :func:`distributed_channel.connection.connect`).

    Parameters
    ----------
    config:
        Channel configuration carrying the store target.
    backend:
        Explicit backend selector. Inferred from ``config.target`` when
        omitted.
    stop_event:
        Cancels a Redis bring-up wait.
    """
    selected = backend_for(config) if backend is None else _normalize_backend(backend)
    if selected is StoreBackend.MEMORY:
        if config.target is not None:
            raise BackendConfigurationError(
                "Memory backend does not accept a store target."
            )
        return MemoryListStore()
    expected = RedisTarget if selected is StoreBackend.REDIS else RedisClusterTarget
    if not isinstance(config.target, expected):
        raise BackendConfigurationError(
            f"Backend {selected.value!r} requires ChannelConfig.target of type "
            f"{expected.__name__}, got {type(config.target).__name__}."
        )
    return connect(
        config.target,
        timeout_seconds=config.timeout_seconds,
        retry=config.connect,
        stop_event=stop_event,
    )


def create_channel(
    config: ChannelConfig | None = None,
    *,
    backend: str | StoreBackend | None = None,
    store: ListStore | None = None,
    stop_event: threading.Event | None = None,
) -> BoundedChannel:
    """
    Build a ready :class:`BoundedChannel` in one step.

    ``channel = create_channel(ChannelConfig(target=RedisTarget.from_url("redis://...")))``

    An explicit ``store`` skips backend selection and bring-up.
    """
    config = config or ChannelConfig()
    if store is None:
        store = create_store(config, backend=backend, stop_event=stop_event)
    elif backend is not None:
        raise BackendConfigurationError("Pass either backend or store, not both.")
    channel = BoundedChannel(store, config)
    _LOGGER.debug("Channel ready %r", channel)
    return channel
