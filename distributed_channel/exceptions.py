"""
Custom exceptions used by the distributed channel runtime.

Keeping library-specific errors in one module gives users a predictable
import surface for catching and handling operational edge cases.
"""


class DistributedChannelError(Exception):
    """Base error type for all library-level exceptions."""


class ChannelFullError(DistributedChannelError):
    """
    Raised when a push finds the channel at its configured maximum length.

    The condition is recoverable: nothing was written and the lock has been
    released, so callers may retry once consumers have drained the channel.
    """

    def __init__(self, channel_name: str, max_length: int) -> None:
        super().__init__(f"Channel {channel_name!r} is full (max_length={max_length}).")
        self.channel_name = channel_name
        self.max_length = max_length


class ChannelTimeoutError(DistributedChannelError, TimeoutError):
    """
    Raised when a store call exceeds the per-operation timeout.

    The channel lock is released before this error reaches the caller.
    """


class ChannelDecodeError(DistributedChannelError):
    """
    Raised when a popped item cannot be decoded with the channel serializer.

    The item has already left the channel, so the undecoded store reply is
    kept on ``payload`` for the caller to inspect, log or push elsewhere.
    """

    def __init__(self, channel_name: str, payload: bytes | str, reason: str) -> None:
        super().__init__(f"Item popped from channel {channel_name!r} could not be decoded: {reason}")
        self.channel_name = channel_name
        self.payload = payload


class StoreOperationError(DistributedChannelError):
    """
    Raised when the backing store rejects or fails a command.

    Redis client errors are chained as ``__cause__``.
    """


class WrongTypeError(StoreOperationError):
    """
    Raised by the memory store when a key holds the wrong kind of value.

    This mirrors Redis ``WRONGTYPE`` replies, for example when a list command
    targets a plain string key.
    """


class StoreUnavailableError(DistributedChannelError):
    """
    Raised when store bring-up gives up before a successful ``PING``.

    Bring-up only gives up when a bounded attempt count is configured or a
    stop event is set; the default contract retries until the store answers.
    """


class BackendConfigurationError(DistributedChannelError):
    """Raised when backend selection or backend options are invalid."""
