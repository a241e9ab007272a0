"""
Runnable producer/consumer demo for a distributed channel.

The demo starts three threads against one channel:

* a producer pushing the current UNIX time as fast as the capacity allows
* a consumer popping one item every half second
* a monitor logging the channel length once per second

Run after installing the package:

    channel-demo --max-length 2
    channel-demo --backend redis --redis-url redis://127.0.0.1:6379/0

Start several copies against the same Redis server to see producers and
consumers in different processes share the channel.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import threading
import time
import uuid

from distributed_channel import (
    BoundedChannel,
    ChannelConfig,
    ChannelFullError,
    ConnectConfig,
    RedisTarget,
    StoreUnavailableError,
    create_channel,
)

_LOGGER = logging.getLogger("channel_example.demo")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="distributed-python-channel example")
    parser.add_argument("--backend", choices=("memory", "redis"), default="memory")
    parser.add_argument("--redis-url", default="redis://127.0.0.1:6379/0")
    parser.add_argument("--channel-name", default=f"channel-demo:{uuid.uuid4().hex[:8]}:list")
    parser.add_argument("--lock-name", default=None)
    parser.add_argument("--max-length", type=int, default=2)
    parser.add_argument("--duration", type=float, default=5.0)
    parser.add_argument("--consume-interval", type=float, default=0.5)
    parser.add_argument("--monitor-interval", type=float, default=1.0)
    parser.add_argument("--keep", action="store_true", help="Leave remaining items in the channel.")
    parser.add_argument(
        "--connect-attempts",
        type=int,
        default=None,
        help="Give up after this many failed PINGs (default: retry forever).",
    )
    return parser


def _channel_config(args: argparse.Namespace) -> ChannelConfig:
    lock_name = args.lock_name or f"{args.channel_name}:lock"
    target = RedisTarget.from_url(args.redis_url) if args.backend == "redis" else None
    return ChannelConfig(
        channel_name=args.channel_name,
        lock_name=lock_name,
        max_length=args.max_length,
        connect=ConnectConfig(retry_interval_seconds=5.0, max_attempts=args.connect_attempts),
        target=target,
    )


def _produce(channel: BoundedChannel, stop: threading.Event, accepted: list[int]) -> None:
    while not stop.is_set():
        try:
            length = channel.push(int(time.time()))
        except ChannelFullError:
            stop.wait(0.05)
            continue
        accepted.append(length)
        print("push success", length)


def _consume(channel: BoundedChannel, stop: threading.Event, interval: float, received: list) -> None:
    while not stop.is_set():
        value = channel.pop()
        if value is not None:
            received.append(value)
            print(value)
        stop.wait(interval)


def _monitor(channel: BoundedChannel, stop: threading.Event, interval: float) -> None:
    while not stop.is_set():
        _LOGGER.info("channel.length: %s", channel.length())
        stop.wait(interval)


def run_demo(args: argparse.Namespace) -> int:
    channel = create_channel(_channel_config(args))
    stop = threading.Event()
    accepted: list[int] = []
    received: list = []
    workers = [
        threading.Thread(target=_produce, args=(channel, stop, accepted), name="demo-producer"),
        threading.Thread(
            target=_consume,
            args=(channel, stop, args.consume_interval, received),
            name="demo-consumer",
        ),
        threading.Thread(
            target=_monitor,
            args=(channel, stop, args.monitor_interval),
            name="demo-monitor",
        ),
    ]
    try:
        for worker in workers:
            worker.start()
        stop.wait(args.duration)
    finally:
        stop.set()
        for worker in workers:
            worker.join()

    summary = {
        "accepted": len(accepted),
        "received": len(received),
        "max_observed_length": max(accepted, default=0),
        "remaining": channel.length(),
        "stats": channel.stats(),
    }
    print(json.dumps(summary, indent=2, sort_keys=True))
    if not args.keep:
        channel.clear()
    return 0


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(threadName)s %(message)s")
    parser = _build_parser()
    args = parser.parse_args()
    try:
        return run_demo(args)
    except StoreUnavailableError as exc:
        print(f"Redis not available: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
