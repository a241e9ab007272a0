"""
Distributed lock tests against the in-process store.

Two lock handles on one store stand in for two processes sharing Redis.
"""

from __future__ import annotations

import threading
import time
import unittest
from unittest import mock

from redis.exceptions import ConnectionError as RedisConnectionError

from distributed_channel import DistributedLock, LockConfig, MemoryListStore
from distributed_channel.lock import LOCK_SENTINEL

FAST = LockConfig(retry_interval_seconds=0.01)


class DistributedLockTests(unittest.TestCase):
    def setUp(self) -> None:
        self.store = MemoryListStore()

    def test_sequential_cycles_succeed(self) -> None:
        lock = DistributedLock(self.store, "chan:lock", config=FAST)
        for _ in range(2):
            self.assertTrue(lock.acquire())
            self.assertTrue(lock.locked())
            self.assertTrue(lock.release())
            self.assertFalse(lock.locked())

    def test_acquire_sets_sentinel_with_lease(self) -> None:
        lock = DistributedLock(self.store, "chan:lock", config=FAST)
        lock.acquire()
        self.assertEqual(self.store.get("chan:lock"), LOCK_SENTINEL.encode())
        remaining = self.store.pttl("chan:lock")
        self.assertGreater(remaining, 59000)
        self.assertLessEqual(remaining, 60000)
        lock.release()

    def test_second_acquire_blocks_until_release(self) -> None:
        holder = DistributedLock(self.store, "chan:lock", config=FAST)
        waiter = DistributedLock(self.store, "chan:lock", config=FAST)
        holder.acquire()
        release_after = 0.3
        timer = threading.Timer(release_after, holder.release)
        started = time.monotonic()
        timer.start()
        try:
            self.assertTrue(waiter.acquire())
            elapsed = time.monotonic() - started
        finally:
            timer.join()
        self.assertGreaterEqual(elapsed, release_after - 0.05)
        self.assertTrue(waiter.release())

    def test_try_acquire_and_bounded_wait_fail_while_held(self) -> None:
        holder = DistributedLock(self.store, "chan:lock", config=FAST)
        other = DistributedLock(self.store, "chan:lock", config=FAST)
        holder.acquire()
        self.assertFalse(other.try_acquire())
        started = time.monotonic()
        self.assertFalse(other.acquire(timeout_seconds=0.1))
        self.assertLess(time.monotonic() - started, 1.0)
        holder.release()
        self.assertTrue(other.try_acquire())
        other.release()

    def test_lease_expiry_frees_abandoned_lock(self) -> None:
        config = LockConfig(lease_seconds=0.2, retry_interval_seconds=0.01)
        crashed = DistributedLock(self.store, "chan:lock", config=config)
        survivor = DistributedLock(self.store, "chan:lock", config=config)
        crashed.acquire()
        started = time.monotonic()
        self.assertTrue(survivor.acquire())
        self.assertGreaterEqual(time.monotonic() - started, 0.15)
        survivor.release()

    def test_unfenced_release_deletes_newer_holders_lock(self) -> None:
        config = LockConfig(lease_seconds=0.05, retry_interval_seconds=0.01)
        stale = DistributedLock(self.store, "chan:lock", config=config)
        fresh = DistributedLock(self.store, "chan:lock", config=LockConfig(retry_interval_seconds=0.01))
        stale.acquire()
        time.sleep(0.08)
        fresh.acquire()
        self.assertTrue(stale.release())
        self.assertFalse(fresh.locked())

    def test_fenced_release_keeps_newer_holders_lock(self) -> None:
        config = LockConfig(lease_seconds=0.05, retry_interval_seconds=0.01, fenced=True)
        stale = DistributedLock(self.store, "chan:lock", config=config)
        fresh = DistributedLock(
            self.store,
            "chan:lock",
            config=LockConfig(retry_interval_seconds=0.01, fenced=True),
        )
        stale.acquire()
        stale_token = stale.token
        time.sleep(0.08)
        fresh.acquire()
        self.assertNotEqual(stale_token, fresh.token)
        self.assertFalse(stale.release())
        self.assertTrue(fresh.locked())
        self.assertTrue(fresh.release())
        self.assertFalse(fresh.locked())

    def test_fenced_release_without_acquire_is_noop(self) -> None:
        lock = DistributedLock(self.store, "chan:lock", config=LockConfig(fenced=True))
        self.assertFalse(lock.release())

    def test_context_manager_releases_on_error(self) -> None:
        lock = DistributedLock(self.store, "chan:lock", config=FAST)
        with self.assertRaises(RuntimeError):
            with lock:
                self.assertTrue(lock.locked())
                raise RuntimeError("boom")
        self.assertFalse(lock.locked())

    def test_store_errors_during_acquire_are_retried(self) -> None:
        store = mock.Mock()
        store.set.side_effect = [RedisConnectionError("down"), None, True]
        lock = DistributedLock(store, "chan:lock", config=FAST)
        with self.assertLogs("distributed_channel.lock", level="WARNING"):
            self.assertTrue(lock.acquire())
        self.assertEqual(store.set.call_count, 3)
        store.set.assert_called_with("chan:lock", LOCK_SENTINEL, nx=True, px=60000)

    def test_release_failure_is_logged_and_reported(self) -> None:
        store = mock.Mock()
        store.set.return_value = True
        store.delete.side_effect = RedisConnectionError("down")
        lock = DistributedLock(store, "chan:lock", config=FAST)
        lock.acquire()
        with self.assertLogs("distributed_channel.lock", level="WARNING"):
            self.assertFalse(lock.release())

    def test_fenced_lock_uses_compare_and_delete_script_on_redis(self) -> None:
        store = mock.Mock()
        store.set.return_value = True
        script = store.register_script.return_value
        script.return_value = 1
        lock = DistributedLock(store, "chan:lock", config=LockConfig(fenced=True))
        lock.acquire()
        token = lock.token
        self.assertTrue(lock.release())
        script.assert_called_once_with(keys=["chan:lock"], args=[token])
        store.delete.assert_not_called()

    def test_rejects_empty_name(self) -> None:
        with self.assertRaises(ValueError):
            DistributedLock(self.store, "")


if __name__ == "__main__":
    unittest.main()
