"""
In-memory output buffer for supervisor and encoder activity.
"""

import logging
import threading
from typing import List

logger = logging.getLogger(__name__)

DEFAULT_MAX_SIZE = 1024 * 1024


class OutputSink:
    """
    Append-only text log with a size ceiling.

    Writes never trim on their own; the owner calls ``truncate()`` to cut
    the buffer back to the newest ``max_size`` characters.
    """

    def __init__(self, max_size: int = DEFAULT_MAX_SIZE):
        if max_size <= 0:
            raise ValueError("max_size must be positive")

        self.max_size = max_size
        self._chunks: List[str] = []
        self._size = 0
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return self._size

    def write(self, text: str) -> None:
        if not text:
            return
        with self._lock:
            self._chunks.append(text)
            self._size += len(text)

    def snapshot(self) -> str:
        """Return the current buffer contents."""
        with self._lock:
            if len(self._chunks) > 1:
                self._chunks = ["".join(self._chunks)]
            return self._chunks[0] if self._chunks else ""

    def truncate(self) -> int:
        """
        Keep only the newest ``max_size`` characters if the buffer is larger.

        Returns:
            Size of the buffer before truncation
        """
        with self._lock:
            previous_size = self._size
            if previous_size > self.max_size:
                content = "".join(self._chunks)[-self.max_size:]
                self._chunks = [content]
                self._size = len(content)
                logger.debug(f"Output buffer truncated from {previous_size} to {self._size}")
            return previous_size

    def clear(self) -> None:
        with self._lock:
            self._chunks = []
            self._size = 0
