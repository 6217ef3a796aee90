"""
Command-line entry point.

Loads the configuration, checks the encoder, wires the streamer
components together and runs the playback loop until ``quit``.
"""

import argparse
import asyncio
import logging
import signal
import sys
from typing import List, Optional

from pydantic import ValidationError

from live_streamer.commands import CommandReader, open_stdin
from live_streamer.config import StreamerConfig
from live_streamer.logging_config import setup_logging
from live_streamer.output_sink import OutputSink
from live_streamer.playlist import PlaylistStore
from live_streamer.process_supervisor import ProcessSupervisor
from live_streamer.streamer import Streamer
from live_streamer.utils import has_ffmpeg
from live_streamer.watcher import DirectoryWatcher

logger = logging.getLogger(__name__)


def build_streamer(config: StreamerConfig) -> Streamer:
    """Create the streamer and its collaborators from configuration."""
    output = OutputSink(config.supervisor.output_max_bytes)
    playlist = PlaylistStore(config.build_playlist())
    supervisor = ProcessSupervisor(config, output)
    return Streamer(config, playlist, supervisor, output)


async def run(config: StreamerConfig, interactive: bool = True) -> None:
    """
    Stream until the operator quits or a termination signal arrives.

    Args:
        config: Streamer configuration
        interactive: Read operator commands from stdin
    """
    streamer = build_streamer(config)
    loop = asyncio.get_running_loop()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, lambda: asyncio.ensure_future(streamer.close()))
        except NotImplementedError:
            logger.debug(f"Signal handlers not supported for {sig}")

    watcher = DirectoryWatcher(
        streamer,
        config.watched_directories(),
        interval=config.supervisor.watch_interval,
    )
    tasks = [asyncio.create_task(watcher.run())]

    if interactive:
        stream = await open_stdin()
        if stream is not None:
            tasks.append(asyncio.create_task(CommandReader(streamer, stream).run()))

    try:
        await streamer.stream()
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        await streamer.close()


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Stream a playlist of videos to an RTMP server with FFmpeg",
    )
    parser.add_argument(
        "-c",
        "--config",
        default="config.yaml",
        help="Path to the YAML configuration file (default: config.yaml)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Override the configured log level",
    )
    parser.add_argument(
        "--no-input",
        action="store_true",
        help="Do not read interactive commands from stdin",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point; returns the process exit status."""
    args = parse_args(argv)

    try:
        config = StreamerConfig.from_yaml(args.config)
    except (OSError, ValueError, ValidationError) as e:
        logging.basicConfig(level=logging.INFO)
        logger.error(f"Failed to load configuration: {e}")
        return 1

    setup_logging(config.log, args.log_level)

    if not has_ffmpeg(config.supervisor.ffmpeg_binary):
        logger.error("ffmpeg not found")
        return 1

    asyncio.run(run(config, interactive=not args.no_input))
    return 0


if __name__ == "__main__":
    sys.exit(main())
