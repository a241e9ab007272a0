"""
Configuration models for distributed channels.

This module centralizes all tunable settings used by a channel instance:

* channel and lock key names
* capacity and per-operation timeout
* lock lease and spin interval
* store connection target and bring-up retry behavior

Every class is a frozen dataclass, so a configuration cannot change after a
channel has been built from it. Several channels with different key names can
therefore live side by side in one process.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from urllib.parse import unquote, urlparse

DEFAULT_CHANNEL_NAME = "system:redis-channel:list"
DEFAULT_LOCK_NAME = "system:redis-channel:lock"
DEFAULT_REDIS_PORT = 6379


@dataclass(frozen=True, slots=True)
class StoreAddress:
    """
    TCP endpoint of one Redis server.

    Parameters
    ----------
    host:
        DNS name or IP address of the server.
    port:
        TCP port where the server listens.
    """

    host: str
    port: int = DEFAULT_REDIS_PORT

    def __post_init__(self) -> None:
        """Validate the host/port pair at construction time."""
        if not self.host:
            raise ValueError("StoreAddress.host must be a non-empty string.")
        if not (1 <= int(self.port) <= 65535):
            raise ValueError("StoreAddress.port must be in range 1..65535.")

    @classmethod
    def parse(cls, raw: str) -> "StoreAddress":
        """
        Create an address from ``host`` or ``host:port`` text.

        Raises
        ------
        ValueError
            If the port part is not an integer.
        """
        entry = raw.strip()
        if ":" not in entry:
            return cls(host=entry)
        host, raw_port = entry.rsplit(":", 1)
        try:
            port = int(raw_port)
        except ValueError as exc:
            raise ValueError(f"Invalid store address port in {raw!r}.") from exc
        return cls(host=host, port=port)


@dataclass(frozen=True, slots=True)
class RedisTarget:
    """
    Single-node Redis connection target.

    Parameters
    ----------
    address:
        Server endpoint.
    password:
        Optional ``AUTH`` password.
    db:
        Logical database index selected after connecting.
    """

    address: StoreAddress = field(default_factory=lambda: StoreAddress("127.0.0.1"))
    password: str | None = None
    db: int = 0

    def __post_init__(self) -> None:
        if self.db < 0:
            raise ValueError("RedisTarget.db must be >= 0.")

    @classmethod
    def from_url(cls, url: str) -> "RedisTarget":
        """
        Build a target from a ``redis://[:password@]host[:port][/db]`` URL.
        """
        parsed = urlparse(url)
        if parsed.scheme not in {"redis", ""}:
            raise ValueError(f"Unsupported Redis URL scheme in {url!r}.")
        db = 0
        path = parsed.path.strip("/")
        if path:
            try:
                db = int(path)
            except ValueError as exc:
                raise ValueError(f"Invalid Redis database index in {url!r}.") from exc
        password = unquote(parsed.password) if parsed.password else None
        return cls(
            address=StoreAddress(parsed.hostname or "127.0.0.1", parsed.port or DEFAULT_REDIS_PORT),
            password=password,
            db=db,
        )


@dataclass(frozen=True, slots=True)
class RedisClusterTarget:
    """
    Redis Cluster connection target.

    Parameters
    ----------
    addresses:
        Startup nodes used to discover the cluster topology.
    password:
        Optional ``AUTH`` password shared by all nodes.
    """

    addresses: tuple[StoreAddress, ...]
    password: str | None = None

    def __post_init__(self) -> None:
        if not self.addresses:
            raise ValueError("RedisClusterTarget.addresses must not be empty.")
        object.__setattr__(self, "addresses", tuple(self.addresses))


class Serializer(str, Enum):
    """
    Value encodings used for channel items.

    JSON
        Compact JSON text; any JSON-compatible value round-trips.
    RAW
        Values are handed to the store unchanged and popped back as text.
    """

    JSON = "json"
    RAW = "raw"


@dataclass(frozen=True, slots=True)
class LockConfig:
    """
    Distributed lock tuning.

    Parameters
    ----------
    lease_seconds:
        Expiry set on the lock key so a crashed holder cannot block the
        channel forever.
    retry_interval_seconds:
        Sleep between failed acquisition attempts.
    fenced:
        When true, each acquisition stores a unique token and release only
        deletes the key while it still holds that token. When false, release
        deletes the key unconditionally, which can drop a lock that a newer
        holder took over after the lease expired.
    """

    lease_seconds: float = 60.0
    retry_interval_seconds: float = 0.1
    fenced: bool = False

    def __post_init__(self) -> None:
        if self.lease_seconds <= 0:
            raise ValueError("LockConfig.lease_seconds must be > 0.")
        if self.retry_interval_seconds < 0:
            raise ValueError("LockConfig.retry_interval_seconds must be >= 0.")

    @property
    def lease_milliseconds(self) -> int:
        """Lease rounded to whole milliseconds, as sent with ``SET PX``."""
        return max(1, int(self.lease_seconds * 1000))


@dataclass(frozen=True, slots=True)
class ConnectConfig:
    """
    Store bring-up retry behavior.

    Parameters
    ----------
    retry_interval_seconds:
        Wait between failed ``PING`` attempts.
    max_attempts:
        Attempts before giving up. ``None`` retries until the store answers.
    """

    retry_interval_seconds: float = 5.0
    max_attempts: int | None = None

    def __post_init__(self) -> None:
        if self.retry_interval_seconds < 0:
            raise ValueError("ConnectConfig.retry_interval_seconds must be >= 0.")
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ValueError("ConnectConfig.max_attempts must be >= 1 or None.")


@dataclass(frozen=True, slots=True)
class ChannelConfig:
    """
    Top-level configuration for one bounded channel.

    Parameters
    ----------
    channel_name:
        Store key of the backing list.
    lock_name:
        Store key used as the channel mutex. Must differ from
        ``channel_name``.
    timeout_seconds:
        Budget for the store calls of one channel operation. Lock
        acquisition is not bounded by it.
    max_length:
        Maximum number of queued items. ``0`` disables the bound.
    empty_poll_delay_seconds:
        Pause taken by ``pop`` when the channel is empty, throttling callers
        that poll in a tight loop.
    serializer:
        Encoding applied to pushed values.
    lock:
        Lock lease and retry settings.
    connect:
        Bring-up retry settings used when a store is built from ``target``.
    target:
        Redis or Redis Cluster target. ``None`` selects the in-process memory
        store when built through :func:`distributed_channel.create_channel`.
    """

    channel_name: str = DEFAULT_CHANNEL_NAME
    lock_name: str = DEFAULT_LOCK_NAME
    timeout_seconds: float = 3.0
    max_length: int = 0
    empty_poll_delay_seconds: float = 0.1
    serializer: Serializer = Serializer.JSON
    lock: LockConfig = field(default_factory=LockConfig)
    connect: ConnectConfig = field(default_factory=ConnectConfig)
    target: RedisTarget | RedisClusterTarget | None = None

    def __post_init__(self) -> None:
        if not self.channel_name:
            raise ValueError("ChannelConfig.channel_name must be a non-empty string.")
        if not self.lock_name:
            raise ValueError("ChannelConfig.lock_name must be a non-empty string.")
        if self.channel_name == self.lock_name:
            raise ValueError("ChannelConfig.lock_name must differ from channel_name.")
        if self.timeout_seconds <= 0:
            raise ValueError("ChannelConfig.timeout_seconds must be > 0.")
        if self.max_length < 0:
            raise ValueError("ChannelConfig.max_length must be >= 0 (0 = unbounded).")
        if self.empty_poll_delay_seconds < 0:
            raise ValueError("ChannelConfig.empty_poll_delay_seconds must be >= 0.")
        object.__setattr__(self, "serializer", Serializer(self.serializer))

    @property
    def bounded(self) -> bool:
        """Return whether pushes are checked against ``max_length``."""
        return self.max_length > 0

    def with_options(self, **changes: object) -> "ChannelConfig":
        """Return a copy of this configuration with ``changes`` applied."""
        return dataclasses.replace(self, **changes)
