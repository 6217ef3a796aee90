"""
Directory watcher.

Polls the watched playlist directories and mirrors file creation and
removal into the streamer.
"""

import asyncio
import logging
from pathlib import Path
from typing import Dict, Iterable, Set

from live_streamer.streamer import Streamer
from live_streamer.utils import is_supported_video

logger = logging.getLogger(__name__)


class DirectoryWatcher:
    """
    Polling watcher for playlist directories.

    New supported videos are added to the playlist; any file that
    disappears is removed from it, whatever its extension.
    """

    def __init__(self, streamer: Streamer, directories: Iterable[str], interval: float = 2.0):
        """
        Initialize directory watcher.

        Args:
            streamer: Streamer receiving add/remove calls
            directories: Directories to watch
            interval: Seconds between polls
        """
        self.streamer = streamer
        self.directories = [Path(d) for d in directories]
        self.interval = interval
        self._snapshots: Dict[Path, Set[str]] = {}

    def _scan(self, directory: Path) -> Set[str]:
        return {str(entry) for entry in directory.iterdir() if entry.is_file()}

    def prime(self) -> None:
        """Take the initial snapshot of every watched directory."""
        for directory in self.directories:
            try:
                self._snapshots[directory] = self._scan(directory)
                logger.info(f"watching dir: {directory}")
            except OSError as e:
                logger.error(f"Failed to watch directory {directory}: {e}")
                self._snapshots[directory] = set()

    async def poll(self) -> None:
        """Diff every watched directory against its last snapshot."""
        for directory in self.directories:
            try:
                current = await asyncio.to_thread(self._scan, directory)
            except OSError as e:
                logger.warning(f"Cannot list watched directory {directory}: {e}")
                continue

            previous = self._snapshots.get(directory, set())

            for path in sorted(current - previous):
                if is_supported_video(path):
                    logger.info(f"new video added: {path}")
                    await self.streamer.add(path)

            for path in sorted(previous - current):
                logger.info(f"video removed: {path}")
                await self.streamer.remove(path)

            self._snapshots[directory] = current

    async def run(self) -> None:
        """Poll until the streamer is closed or the task is cancelled."""
        if not self.directories:
            logger.debug("No directories to watch")
            return

        self.prime()
        while not self.streamer.closed:
            await asyncio.sleep(self.interval)
            try:
                await self.poll()
            except Exception as e:
                logger.error(f"Watcher error: {e}", exc_info=True)
