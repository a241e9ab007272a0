"""
Redis client bring-up.

A channel must not be handed out while its store is unreachable, so
:func:`connect` keeps building a client and sending ``PING`` until one
answers. By default it never gives up; a bounded attempt count or a stop
event turns the wait into a cancellable initialization step.
"""

from __future__ import annotations

import logging
import threading
import time

from redis import Redis
from redis.cluster import ClusterNode, RedisCluster
from redis.exceptions import RedisClusterException, RedisError

from .config import ConnectConfig, RedisClusterTarget, RedisTarget
from .exceptions import BackendConfigurationError, StoreUnavailableError

_LOGGER = logging.getLogger(__name__)


def build_client(
    target: RedisTarget | RedisClusterTarget,
    *,
    timeout_seconds: float = 3.0,
) -> Redis | RedisCluster:
    """
    Create a client for ``target`` without checking connectivity.

    ``timeout_seconds`` becomes the client socket timeout, which bounds every
    command the channel sends.
    """
    if isinstance(target, RedisTarget):
        return Redis(
            host=target.address.host,
            port=target.address.port,
            password=target.password,
            db=target.db,
            socket_timeout=timeout_seconds,
            socket_connect_timeout=timeout_seconds,
        )
    if isinstance(target, RedisClusterTarget):
        return RedisCluster(
            startup_nodes=[ClusterNode(address.host, address.port) for address in target.addresses],
            password=target.password,
            socket_timeout=timeout_seconds,
            socket_connect_timeout=timeout_seconds,
        )
    raise BackendConfigurationError(f"Unsupported store target: {target!r}")


def _describe(target: RedisTarget | RedisClusterTarget) -> str:
    if isinstance(target, RedisTarget):
        return f"{target.address.host}:{target.address.port}/{target.db}"
    return ",".join(f"{item.host}:{item.port}" for item in target.addresses)


def _close_quietly(client: Redis | RedisCluster | None) -> None:
    if client is None:
        return
    try:
        client.close()
    except RedisError as exc:
        _LOGGER.debug("Ignoring close failure on discarded client error=%s", exc)


def connect(
    target: RedisTarget | RedisClusterTarget,
    *,
    timeout_seconds: float = 3.0,
    retry: ConnectConfig | None = None,
    stop_event: threading.Event | None = None,
) -> Redis | RedisCluster:
    """
    Build a client for ``target`` and wait until it answers ``PING``.

    Parameters
    ----------
    target:
        Single-node or cluster target.
    timeout_seconds:
        Client socket timeout.
    retry:
        Interval between attempts and optional attempt limit.
    stop_event:
        When set, the wait is abandoned.

    Raises
    ------
    StoreUnavailableError
        The attempt limit was reached or ``stop_event`` was set.
    """
    retry = retry or ConnectConfig()
    description = _describe(target)
    attempts = 0
    while True:
        if stop_event is not None and stop_event.is_set():
            raise StoreUnavailableError(
                f"Connection to redis {description} cancelled after {attempts} attempt(s)."
            )
        attempts += 1
        client = None
        try:
            client = build_client(target, timeout_seconds=timeout_seconds)
            if client.ping():
                _LOGGER.debug("Connected to redis target=%s attempts=%s", description, attempts)
                return client
            error: object = "unexpected PING reply"
        except (RedisError, RedisClusterException) as exc:
            error = exc
        _close_quietly(client)

        if retry.max_attempts is not None and attempts >= retry.max_attempts:
            raise StoreUnavailableError(
                f"Redis {description} unreachable after {attempts} attempt(s): {error}"
            )
        _LOGGER.warning(
            "Redis connection failed target=%s attempt=%s error=%s; retrying in %ss",
            description,
            attempts,
            error,
            retry.retry_interval_seconds,
        )
        if stop_event is not None:
            stop_event.wait(retry.retry_interval_seconds)
        else:
            time.sleep(retry.retry_interval_seconds)
