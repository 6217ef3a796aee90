"""
Playlist store.

Ordered, mutable list of sources plus the cursor pointing at the source
that is streaming (or about to stream).
"""

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional

from live_streamer.exceptions import EmptyPlaylistError

logger = logging.getLogger(__name__)


class SourceKind(str, Enum):
    """How a source got into the playlist."""

    FILE = "file"
    DIRECTORY = "dir"  # discovered in a watched directory


@dataclass(frozen=True)
class SourceDescriptor:
    """A single playlist entry. Two descriptors are equal when their paths are."""

    path: str
    start: Optional[str] = field(default=None, compare=False)
    end: Optional[str] = field(default=None, compare=False)
    kind: SourceKind = field(default=SourceKind.FILE, compare=False)


@dataclass(frozen=True)
class RemovalResult:
    """Outcome of removing a path from the playlist."""

    removed: bool
    was_current: bool = False
    index: Optional[int] = None


class PlaylistStore:
    """
    Thread-safe ordered playlist with a wrapping cursor.

    Invariant: when the playlist is non-empty, ``0 <= cursor < len``;
    when it is empty the cursor is ``None``.
    """

    def __init__(self, sources: Optional[Iterable[SourceDescriptor]] = None):
        self._sources: List[SourceDescriptor] = list(sources or [])
        self._cursor: Optional[int] = 0 if self._sources else None
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sources)

    def __contains__(self, source: object) -> bool:
        with self._lock:
            return source in self._sources

    @property
    def cursor(self) -> Optional[int]:
        with self._lock:
            return self._cursor

    def current_source(self) -> SourceDescriptor:
        """
        Get the source under the cursor.

        Raises:
            EmptyPlaylistError: If the playlist is empty
        """
        with self._lock:
            if not self._sources:
                raise EmptyPlaylistError()
            return self._sources[self._cursor]

    def sources(self) -> List[SourceDescriptor]:
        """Copy of the playlist in streaming order."""
        with self._lock:
            return list(self._sources)

    def paths(self) -> List[str]:
        with self._lock:
            return [source.path for source in self._sources]

    def append(self, source: SourceDescriptor) -> None:
        """Add a source at the end. The cursor does not move."""
        with self._lock:
            self._sources.append(source)
            if self._cursor is None:
                self._cursor = 0
        logger.debug(f"Appended to playlist: {source.path}")

    def remove_by_path(self, path: str) -> RemovalResult:
        """
        Remove the first entry with the given path.

        The cursor keeps tracking the same entry when an earlier entry is
        removed. When the entry under the cursor is removed, the cursor
        stays on the same index (its successor), wrapping to 0.

        Args:
            path: Path of the entry to remove

        Returns:
            RemovalResult telling whether something was removed and
            whether it was the entry under the cursor
        """
        with self._lock:
            index = next(
                (i for i, source in enumerate(self._sources) if source.path == path),
                None,
            )
            if index is None:
                return RemovalResult(removed=False)

            was_current = index == self._cursor
            del self._sources[index]

            if not self._sources:
                self._cursor = None
            elif index < self._cursor:
                self._cursor -= 1
            elif self._cursor >= len(self._sources):
                self._cursor = 0

        logger.debug(f"Removed from playlist: {path} (index {index})")
        return RemovalResult(removed=True, was_current=was_current, index=index)

    def advance(self) -> None:
        with self._lock:
            if self._sources:
                self._cursor = (self._cursor + 1) % len(self._sources)

    def retreat(self) -> None:
        with self._lock:
            if self._sources:
                self._cursor = (self._cursor - 1 + len(self._sources)) % len(self._sources)
