"""
Spin lock held as a single key in the shared store.

Acquisition is a conditional set with a lease (``SET name value NX PX ttl``),
retried after a fixed sleep until it succeeds. Release deletes the key. The
lease recovers the lock when a holder dies without releasing it.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from typing import TYPE_CHECKING

from redis.exceptions import RedisError

from .config import DEFAULT_LOCK_NAME, LockConfig

if TYPE_CHECKING:  # pragma: no cover - typing-only import
    from .store_protocol import ListStore

_LOGGER = logging.getLogger(__name__)

LOCK_SENTINEL = "1"

_RELEASE_IF_OWNER_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
  return redis.call('DEL', KEYS[1])
end
return 0
"""


class DistributedLock:
    """
    Mutual exclusion across processes sharing one store, scoped to a key.

    The lock is not reentrant: a holder that acquires again waits for its own
    lease to expire.

    Parameters
    ----------
    store:
        Redis client or any :class:`ListStore` implementation.
    name:
        Lock key.
    config:
        Lease, retry interval and fencing mode.
    """

    def __init__(
        self,
        store: "ListStore",
        name: str = DEFAULT_LOCK_NAME,
        *,
        config: LockConfig | None = None,
    ) -> None:
        if not name:
            raise ValueError("Lock name must be a non-empty string.")
        self._store = store
        self._name = name
        self.config = config or LockConfig()
        self._local = threading.local()
        self._release_script = None
        if self.config.fenced and hasattr(store, "register_script"):
            self._release_script = store.register_script(_RELEASE_IF_OWNER_LUA)

    @property
    def name(self) -> str:
        """Return the lock key."""
        return self._name

    @property
    def token(self) -> str | None:
        """Return the value written by this thread's current acquisition, if any."""
        return getattr(self._local, "token", None)

    def _try_set(self, token: str) -> bool:
        try:
            return bool(
                self._store.set(
                    self._name,
                    token,
                    nx=True,
                    px=self.config.lease_milliseconds,
                )
            )
        except RedisError as exc:
            _LOGGER.warning("Lock attempt failed name=%s error=%s", self._name, exc)
            return False

    def acquire(self, *, blocking: bool = True, timeout_seconds: float | None = None) -> bool:
        """
        Acquire the lock.

        With the defaults this retries every ``retry_interval_seconds`` until
        the key is free and only ever returns ``True``. There is no way to
        interrupt that wait.

        Parameters
        ----------
        blocking:
            When false, make a single attempt.
        timeout_seconds:
            Maximum wait when ``blocking`` is true; ``None`` waits forever.

        Returns
        -------
        bool
            ``True`` when acquired, ``False`` when a non-blocking or bounded
            attempt did not get the lock.
        """
        deadline = None if timeout_seconds is None else time.monotonic() + timeout_seconds
        interval = self.config.retry_interval_seconds
        attempts = 0
        while True:
            attempts += 1
            token = uuid.uuid4().hex if self.config.fenced else LOCK_SENTINEL
            if self._try_set(token):
                self._local.token = token
                _LOGGER.debug("Lock acquired name=%s attempts=%s", self._name, attempts)
                return True
            if not blocking:
                return False
            if deadline is not None and time.monotonic() + interval > deadline:
                _LOGGER.debug("Lock wait timed out name=%s attempts=%s", self._name, attempts)
                return False
            time.sleep(interval)

    def try_acquire(self) -> bool:
        """Try to acquire the lock once without blocking."""
        return self.acquire(blocking=False)

    def release(self) -> bool:
        """
        Release the lock.

        In the default mode the key is deleted unconditionally, even when the
        lease already expired and another process holds it now. With
        ``fenced=True`` only a key still holding this handle's token is
        deleted.

        Store failures are logged and reported as ``False``; the key then
        disappears when its lease runs out.
        """
        token = self.token
        self._local.token = None
        try:
            if not self.config.fenced:
                deleted = self._store.delete(self._name)
            elif token is None:
                return False
            elif self._release_script is not None:
                deleted = self._release_script(keys=[self._name], args=[token])
            else:
                deleted = self._store.delete_if_value(self._name, token)
        except RedisError as exc:
            _LOGGER.warning("Lock release failed name=%s error=%s", self._name, exc)
            return False
        _LOGGER.debug("Lock released name=%s deleted=%s", self._name, deleted)
        return bool(deleted)

    def locked(self) -> bool:
        """Return ``True`` when any holder currently owns the lock key."""
        return bool(self._store.exists(self._name))

    def __enter__(self) -> "DistributedLock":
        self.acquire()
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> bool:
        self.release()
        return False
