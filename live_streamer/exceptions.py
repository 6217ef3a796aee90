"""
Exceptions raised by the live streamer.
"""

from typing import Optional


class StreamerError(Exception):
    """Base class for live streamer errors."""


class EmptyPlaylistError(StreamerError):
    """Raised when a current source is requested from an empty playlist."""

    def __init__(self, message: str = "no video streaming"):
        super().__init__(message)


class SpawnError(StreamerError):
    """The encoder process could not be started."""

    def __init__(self, path: str, cause: Optional[BaseException] = None):
        self.path = path
        self.cause = cause
        message = f"failed to start encoder for {path}"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class StreamReadError(StreamerError):
    """Reading the encoder diagnostics stream failed before EOF."""
