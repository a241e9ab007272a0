"""
Validation and parsing tests for channel configuration models.
"""

from __future__ import annotations

import dataclasses
import unittest

from distributed_channel import (
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


class ChannelConfigTests(unittest.TestCase):
    def test_defaults_match_system_wide_keys(self) -> None:
        config = ChannelConfig()
        self.assertEqual(config.channel_name, DEFAULT_CHANNEL_NAME)
        self.assertEqual(config.lock_name, DEFAULT_LOCK_NAME)
        self.assertEqual(config.timeout_seconds, 3.0)
        self.assertEqual(config.max_length, 0)
        self.assertFalse(config.bounded)
        self.assertEqual(config.lock.lease_seconds, 60.0)
        self.assertEqual(config.lock.retry_interval_seconds, 0.1)
        self.assertFalse(config.lock.fenced)
        self.assertEqual(config.connect.retry_interval_seconds, 5.0)
        self.assertIsNone(config.connect.max_attempts)
        self.assertIsNone(config.target)

    def test_lock_and_channel_keys_must_differ(self) -> None:
        with self.assertRaises(ValueError):
            ChannelConfig(channel_name="jobs", lock_name="jobs")

    def test_rejects_invalid_numbers(self) -> None:
        with self.assertRaises(ValueError):
            ChannelConfig(max_length=-1)
        with self.assertRaises(ValueError):
            ChannelConfig(timeout_seconds=0)
        with self.assertRaises(ValueError):
            ChannelConfig(empty_poll_delay_seconds=-0.1)
        with self.assertRaises(ValueError):
            ChannelConfig(channel_name="")

    def test_configuration_is_immutable(self) -> None:
        config = ChannelConfig(max_length=3)
        with self.assertRaises(dataclasses.FrozenInstanceError):
            config.max_length = 4  # type: ignore[misc]

    def test_with_options_returns_modified_copy(self) -> None:
        config = ChannelConfig(max_length=3)
        changed = config.with_options(max_length=10, channel_name="other:list")
        self.assertEqual(config.max_length, 3)
        self.assertEqual(changed.max_length, 10)
        self.assertEqual(changed.channel_name, "other:list")
        self.assertTrue(changed.bounded)

    def test_serializer_accepts_plain_string(self) -> None:
        config = ChannelConfig(serializer="raw")  # type: ignore[arg-type]
        self.assertIs(config.serializer, Serializer.RAW)


class LockAndConnectConfigTests(unittest.TestCase):
    def test_lease_is_sent_in_milliseconds(self) -> None:
        self.assertEqual(LockConfig().lease_milliseconds, 60000)
        self.assertEqual(LockConfig(lease_seconds=0.25).lease_milliseconds, 250)

    def test_invalid_lock_and_connect_values(self) -> None:
        with self.assertRaises(ValueError):
            LockConfig(lease_seconds=0)
        with self.assertRaises(ValueError):
            ConnectConfig(max_attempts=0)
        with self.assertRaises(ValueError):
            ConnectConfig(retry_interval_seconds=-1)


class TargetTests(unittest.TestCase):
    def test_parse_address(self) -> None:
        self.assertEqual(StoreAddress.parse("10.0.0.5:7000"), StoreAddress("10.0.0.5", 7000))
        self.assertEqual(StoreAddress.parse("cache"), StoreAddress("cache", 6379))
        with self.assertRaises(ValueError):
            StoreAddress.parse("cache:abc")
        with self.assertRaises(ValueError):
            StoreAddress("cache", 70000)

    def test_target_from_url(self) -> None:
        target = RedisTarget.from_url("redis://:s3cret@192.168.1.222:6380/2")
        self.assertEqual(target.address, StoreAddress("192.168.1.222", 6380))
        self.assertEqual(target.password, "s3cret")
        self.assertEqual(target.db, 2)

        plain = RedisTarget.from_url("redis://localhost")
        self.assertEqual(plain.address.port, 6379)
        self.assertIsNone(plain.password)
        self.assertEqual(plain.db, 0)

    def test_target_from_url_rejects_other_schemes(self) -> None:
        with self.assertRaises(ValueError):
            RedisTarget.from_url("http://localhost:6379/0")

    def test_cluster_target_normalizes_addresses(self) -> None:
        target = RedisClusterTarget(
            addresses=[StoreAddress("a", 7000), StoreAddress("b", 7001)],  # type: ignore[arg-type]
        )
        self.assertIsInstance(target.addresses, tuple)
        with self.assertRaises(ValueError):
            RedisClusterTarget(addresses=())


if __name__ == "__main__":
    unittest.main()
