"""
Playlist-driven streamer.

Owns the playback loop and the control operations (next, prev, add,
remove, close). Playlist, cursor and the manual-control flag are only
touched under one lock; stopping the encoder always happens outside it
because it can take up to the kill timeout.
"""

import asyncio
import logging
from typing import List, Optional

from live_streamer.config import StreamerConfig
from live_streamer.output_sink import OutputSink
from live_streamer.playlist import PlaylistStore, SourceDescriptor, SourceKind
from live_streamer.process_supervisor import ProcessSupervisor, RunOutcome

logger = logging.getLogger(__name__)


class Streamer:
    """
    Streams the playlist one source at a time, forever.

    Example:
        >>> output = OutputSink(config.supervisor.output_max_bytes)
        >>> streamer = Streamer(
        ...     config,
        ...     PlaylistStore(config.build_playlist()),
        ...     ProcessSupervisor(config, output),
        ...     output,
        ... )
        >>> await streamer.stream()
    """

    def __init__(
        self,
        config: StreamerConfig,
        playlist: PlaylistStore,
        supervisor: ProcessSupervisor,
        output: OutputSink,
    ):
        self.config = config
        self.playlist = playlist
        self.supervisor = supervisor
        self.output = output

        self._lock = asyncio.Lock()
        self._manual_control = False
        self._closed = asyncio.Event()
        self._retry_delay = config.supervisor.retry_delay

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    async def stream(self) -> None:
        """Run the playback loop until ``close()`` is called."""
        logger.info("Playback loop started")

        while not self._closed.is_set():
            async with self._lock:
                if self._closed.is_set():
                    break
                source = self._next_source()
                # A flag set while nothing was running belongs to no run
                self._manual_control = False

            if source is None:
                await self._wait(self.config.supervisor.idle_interval)
                continue

            outcome = await self.supervisor.run(source)
            self.output.truncate()

            if self._closed.is_set():
                break

            delay = await self._after_run(outcome)
            if delay:
                await self._wait(delay)

        logger.info("Playback loop stopped")

    def _next_source(self) -> Optional[SourceDescriptor]:
        if len(self.playlist) == 0:
            return None
        return self.playlist.current_source()

    async def _after_run(self, outcome: RunOutcome) -> float:
        """
        Apply the advance policy for a finished run.

        Returns:
            Seconds to wait before the next run
        """
        async with self._lock:
            if self._manual_control:
                self._manual_control = False
                return 0.0

            if outcome == RunOutcome.SPAWN_FAILED:
                delay = self._retry_delay
                self._retry_delay = min(delay * 2, self.config.supervisor.max_retry_delay)
                logger.warning(f"Encoder could not be started, retrying in {delay:.1f}s")
                return delay

            self._retry_delay = self.config.supervisor.retry_delay

            self.playlist.advance()

            if outcome == RunOutcome.FAILED:
                return self.config.supervisor.retry_delay

            return 0.0

    async def _wait(self, seconds: float) -> None:
        try:
            await asyncio.wait_for(self._closed.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    async def next(self) -> None:
        """Skip to the next source."""
        async with self._lock:
            self._manual_control = True
            self.playlist.advance()
        logger.info("Skipping to next source")
        await self.supervisor.stop()

    async def prev(self) -> None:
        """Go back to the previous source."""
        async with self._lock:
            self._manual_control = True
            self.playlist.retreat()
        logger.info("Going back to previous source")
        await self.supervisor.stop()

    async def add(self, path: str, kind: SourceKind = SourceKind.DIRECTORY) -> None:
        """Append a source to the playlist without interrupting playback."""
        async with self._lock:
            self.playlist.append(SourceDescriptor(path=path, kind=kind))
        logger.info(f"Video added: {path}")

    async def remove(self, path: str) -> bool:
        """
        Remove a source from the playlist.

        Stops the encoder when the removed entry is the one streaming.

        Args:
            path: Path of the source to remove

        Returns:
            True if an entry was removed
        """
        async with self._lock:
            result = self.playlist.remove_by_path(path)

        if not result.removed:
            logger.debug(f"Removed path not in playlist: {path}")
            return False

        logger.info(f"Video removed: {path}")
        if result.was_current:
            await self.supervisor.stop()

        return True

    async def close(self) -> None:
        """Stop the encoder and end the playback loop for good."""
        logger.info("Closing streamer")
        self._closed.set()
        await self.supervisor.stop()

    async def list_sources(self) -> List[SourceDescriptor]:
        async with self._lock:
            return self.playlist.sources()

    async def list_paths(self) -> List[str]:
        async with self._lock:
            return self.playlist.paths()

    async def current_path(self) -> str:
        """
        Path of the current source.

        Raises:
            EmptyPlaylistError: If the playlist is empty
        """
        async with self._lock:
            return self.playlist.current_source().path

    async def current_index(self) -> Optional[int]:
        async with self._lock:
            return self.playlist.cursor

    def get_output(self) -> str:
        return self.output.snapshot()

    def truncate_output(self) -> int:
        return self.output.truncate()
