"""
distributed_channel
===================

Bounded FIFO channel shared by many processes through Redis.

The package layers two small primitives over a Redis server (or cluster):

* :class:`distributed_channel.lock.DistributedLock`, a spin lock held as a
  single key set with ``SET NX PX`` and released with ``DEL``
* :class:`distributed_channel.channel.BoundedChannel`, a list-backed queue
  whose ``push``/``pop``/``clear`` all run under that lock, so the capacity
  check and the insert of a push cannot interleave across processes

Items are pushed at the list head and popped from the tail, giving FIFO
order. A push against a full channel raises
:class:`distributed_channel.exceptions.ChannelFullError`; a pop against an
empty channel pauses briefly and returns ``None``.

Typical usage::

    from distributed_channel import ChannelConfig, RedisTarget, create_channel

    channel = create_channel(
        ChannelConfig(
            channel_name="orders:queue",
            lock_name="orders:lock",
            max_length=1000,
            target=RedisTarget.from_url("redis://127.0.0.1:6379/0"),
        )
    )
    channel.push({"order_id": 17})
    item = channel.pop()

``create_channel`` blocks until Redis answers ``PING``. Bound the wait with
``ConnectConfig(max_attempts=...)`` or pass a ``stop_event``.

Without a target the channel uses an in-process memory store, which is useful
for tests and single-process pipelines.
"""

from .backends import StoreBackend, backend_for, create_channel, create_store
from .channel import BoundedChannel
from .config import (
    DEFAULT_CHANNEL_NAME,
    DEFAULT_LOCK_NAME,
    ChannelConfig,
    ConnectConfig,
    LockConfig,
    RedisClusterTarget,
    RedisTarget,
    Serializer,
    StoreAddress,
)
from .connection import build_client, connect
from .exceptions import (
    BackendConfigurationError,
    ChannelDecodeError,
    ChannelFullError,
    ChannelTimeoutError,
    DistributedChannelError,
    StoreOperationError,
    StoreUnavailableError,
    WrongTypeError,
)
from .lock import DistributedLock
from .store import MemoryListStore
from .store_protocol import ListStore

__all__ = [
    "DEFAULT_CHANNEL_NAME",
    "DEFAULT_LOCK_NAME",
    "BackendConfigurationError",
    "BoundedChannel",
    "ChannelConfig",
    "ChannelDecodeError",
    "ChannelFullError",
    "ChannelTimeoutError",
    "ConnectConfig",
    "DistributedChannelError",
    "DistributedLock",
    "ListStore",
    "LockConfig",
    "MemoryListStore",
    "RedisClusterTarget",
    "RedisTarget",
    "Serializer",
    "StoreAddress",
    "StoreBackend",
    "StoreOperationError",
    "StoreUnavailableError",
    "WrongTypeError",
    "backend_for",
    "build_client",
    "connect",
    "create_channel",
    "create_store",
]
