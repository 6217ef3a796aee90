"""
Interactive command reader.

Reads one command per line (normally from stdin) and drives the
streamer: ``prev``, ``next``, ``quit``, ``list``, ``current``, ``status``.
"""

import asyncio
import logging
import sys
from typing import Callable, Optional

from live_streamer.exceptions import EmptyPlaylistError
from live_streamer.streamer import Streamer

logger = logging.getLogger(__name__)


async def open_stdin() -> Optional[asyncio.StreamReader]:
    """
    Attach an asyncio stream reader to stdin.

    Returns:
        StreamReader, or None if stdin is not a pipe or terminal
    """
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader()
    protocol = asyncio.StreamReaderProtocol(reader)
    try:
        await loop.connect_read_pipe(lambda: protocol, sys.stdin)
    except (ValueError, OSError) as e:
        logger.warning(f"Interactive commands disabled, cannot read stdin: {e}")
        return None
    return reader


class CommandReader:
    """Dispatches operator commands to a streamer."""

    def __init__(
        self,
        streamer: Streamer,
        stream: asyncio.StreamReader,
        echo: Callable[[str], None] = print,
    ):
        self.streamer = streamer
        self.stream = stream
        self.echo = echo

    async def run(self) -> None:
        """Read commands until EOF or ``quit``."""
        while True:
            line = await self.stream.readline()
            if not line:
                logger.debug("Command input closed")
                return

            command = line.decode("utf-8", errors="replace").strip()
            if not command:
                continue

            if not await self.handle(command):
                return

    async def handle(self, command: str) -> bool:
        """
        Execute a single command.

        Args:
            command: Command text without the line terminator

        Returns:
            False once the reader should stop (after ``quit``)
        """
        if command == "prev":
            await self.streamer.prev()
        elif command == "next":
            await self.streamer.next()
        elif command == "quit":
            await self.streamer.close()
            return False
        elif command == "list":
            paths = await self.streamer.list_paths()
            self.echo("video list:\n" + "\n".join(paths))
        elif command == "current":
            try:
                path = await self.streamer.current_path()
            except EmptyPlaylistError as e:
                self.echo(f"current video: {e}")
            else:
                self.echo(f"current video: {path}")
        elif command == "status":
            status = self.streamer.supervisor.get_status()
            self.echo("\n".join(f"{key}: {value}" for key, value in status.items()))
        else:
            logger.warning(f"unknown command: {command}")
            self.echo(f"unknown command: {command}")

        return True
