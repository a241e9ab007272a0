"""
FastAPI application exposing one distributed channel over HTTP.

Run several instances against the same Redis server and channel name, then
push through one instance and pop from another.

Environment variables:

* ``CHAN_BACKEND``: ``memory`` (default) or ``redis``
* ``CHAN_REDIS_URL``: Redis URL for the redis backend
* ``CHAN_NAME`` / ``CHAN_LOCK_NAME``: channel and lock keys
* ``CHAN_MAX_LENGTH``: capacity, ``0`` for unbounded
* ``CHAN_TIMEOUT_SECONDS``: per-operation timeout
* ``CHAN_API_HOST`` / ``CHAN_API_PORT``: HTTP bind address
"""

from __future__ import annotations

import argparse
import logging
import os
from typing import Any

import uvicorn
from distributed_channel import (
    DEFAULT_CHANNEL_NAME,
    DEFAULT_LOCK_NAME,
    BoundedChannel,
    ChannelConfig,
    ChannelDecodeError,
    ChannelFullError,
    ChannelTimeoutError,
    RedisTarget,
    StoreOperationError,
    create_channel,
)
from fastapi import FastAPI, HTTPException
from fastapi.responses import PlainTextResponse

app = FastAPI(title="distributed-python-channel FastAPI example", version="0.1.0")
_LOGGER = logging.getLogger(__name__)

_channel: BoundedChannel | None = None


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, "").strip()
    return value if value else default


def _parse_int(name: str, default: int) -> int:
    raw = _get_env(name, str(default))
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"Environment variable {name} must be an integer.") from exc


def _parse_float(name: str, default: float) -> float:
    raw = _get_env(name, str(default))
    try:
        return float(raw)
    except ValueError as exc:
        raise RuntimeError(f"Environment variable {name} must be a number.") from exc


def _build_channel_config() -> ChannelConfig:
    backend = _get_env("CHAN_BACKEND", "memory").lower()
    target = None
    if backend == "redis":
        target = RedisTarget.from_url(_get_env("CHAN_REDIS_URL", "redis://127.0.0.1:6379/0"))
    elif backend != "memory":
        raise RuntimeError("CHAN_BACKEND must be memory or redis.")
    return ChannelConfig(
        channel_name=_get_env("CHAN_NAME", DEFAULT_CHANNEL_NAME),
        lock_name=_get_env("CHAN_LOCK_NAME", DEFAULT_LOCK_NAME),
        max_length=_parse_int("CHAN_MAX_LENGTH", 0),
        timeout_seconds=_parse_float("CHAN_TIMEOUT_SECONDS", 3.0),
        target=target,
    )


def _require_channel() -> BoundedChannel:
    if _channel is None:
        raise HTTPException(status_code=503, detail="Channel not initialized.")
    return _channel


@app.on_event("startup")
def on_startup() -> None:
    global _channel
    if _channel is not None:
        return
    _channel = create_channel(_build_channel_config())


@app.on_event("shutdown")
def on_shutdown() -> None:
    global _channel
    _channel = None


@app.get("/healthz")
def healthz() -> dict[str, Any]:
    channel = _require_channel()
    return {
        "status": "ok",
        "channel": channel.name,
        "lock": channel.lock.name,
        "locked": channel.lock.locked(),
    }


@app.get("/stats")
def stats() -> dict[str, Any]:
    return _require_channel().stats()


@app.get("/metrics", response_class=PlainTextResponse)
def metrics() -> str:
    return _require_channel().metrics_text()


@app.post("/channel/push")
def channel_push(payload: dict[str, Any]) -> dict[str, Any]:
    if "value" not in payload:
        raise HTTPException(status_code=400, detail="Payload must include 'value'.")
    channel = _require_channel()
    try:
        length = channel.push(payload["value"])
    except ChannelFullError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except ChannelTimeoutError as exc:
        raise HTTPException(status_code=504, detail=str(exc)) from exc
    except StoreOperationError as exc:
        _LOGGER.warning("Push failed channel=%s error=%s", channel.name, exc)
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return {"length": length}


@app.post("/channel/pop")
def channel_pop() -> dict[str, Any]:
    channel = _require_channel()
    try:
        value = channel.pop()
    except ChannelTimeoutError as exc:
        raise HTTPException(status_code=504, detail=str(exc)) from exc
    except ChannelDecodeError as exc:
        _LOGGER.warning("Dropped undecodable item channel=%s payload=%r", channel.name, exc.payload)
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    except StoreOperationError as exc:
        _LOGGER.warning("Pop failed channel=%s error=%s", channel.name, exc)
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return {"value": value, "empty": value is None}


@app.get("/channel/length")
def channel_length() -> dict[str, Any]:
    return {"length": _require_channel().length()}


@app.delete("/channel")
def channel_clear() -> dict[str, Any]:
    return {"removed": _require_channel().clear()}


def main(port: int) -> int:
    host = _get_env("CHAN_API_HOST", "0.0.0.0")
    port = _parse_int("CHAN_API_PORT", port)
    uvicorn.run("channel_example.fastapi_app:app", host=host, port=port, reload=False)
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Serve one distributed channel over HTTP.")
    parser.add_argument("--port", type=int, default=8000, help="The port number to use")
    args = parser.parse_args()
    raise SystemExit(main(args.port))
