"""
FFmpeg command builder.

Constructs the encoder invocation for one playlist source: realtime
input pacing, optional trim markers, the configured output encoding and
the RTMP destination.
"""

import logging
from typing import List, Optional

from live_streamer.config import StreamerConfig
from live_streamer.playlist import SourceDescriptor

logger = logging.getLogger(__name__)


class FFmpegCommandBuilder:
    """
    Builds FFmpeg commands for streaming a single source to the RTMP server.

    Argument order matters: ``-ss`` goes before the input so that seeking
    happens on the input side, ``-to`` goes after it.
    """

    def __init__(self, config: StreamerConfig):
        """
        Initialize command builder.

        Args:
            config: Streamer configuration
        """
        self.config = config

    def build_command(self, source: SourceDescriptor) -> List[str]:
        """
        Build complete FFmpeg command for streaming.

        Args:
            source: Playlist source to stream

        Returns:
            List of command arguments for subprocess

        Raises:
            ValueError: If the source path is empty
        """
        if not source.path or not source.path.strip():
            raise ValueError("source path cannot be empty")

        cmd = [self.config.supervisor.ffmpeg_binary]
        cmd.extend(self._build_input(source))
        cmd.extend(self._build_encoding())
        cmd.extend(["-stats", "-loglevel", "info"])
        cmd.extend(self._build_custom_args())
        cmd.append(self.config.output.destination)

        logger.debug(f"Built FFmpeg command: {' '.join(cmd)}")
        return cmd

    def _build_input(self, source: SourceDescriptor) -> List[str]:
        options = ["-re"]  # Read input at native frame rate

        if source.start:
            options.extend(["-ss", source.start])

        options.extend(["-i", source.path])

        if source.end:
            options.extend(["-to", source.end])

        return options

    def _build_encoding(self) -> List[str]:
        play = self.config.play
        return [
            "-c:v", play.video_codec,
            "-preset", play.preset,
            "-crf", str(play.crf),
            "-maxrate", play.max_rate,
            "-bufsize", play.buf_size,
            "-vf", f"scale={play.scale}",
            "-r", str(play.frame_rate),
            "-c:a", play.audio_codec,
            "-b:a", play.audio_bitrate,
            "-ar", str(play.audio_sample_rate),
            "-f", play.output_format,
        ]

    def _build_custom_args(self) -> List[str]:
        return self.config.play.custom_args.split()

    def get_command_string(self, source: SourceDescriptor) -> str:
        """
        Get FFmpeg command as a single string (useful for logging).

        Args:
            source: Playlist source to stream

        Returns:
            Space-separated command string
        """
        return " ".join(self.build_command(source))


def create_command_builder(config: Optional[StreamerConfig] = None) -> FFmpegCommandBuilder:
    """
    Factory function to create a command builder.

    Args:
        config: Optional configuration (loaded from the environment if not provided)

    Returns:
        FFmpegCommandBuilder instance
    """
    if config is None:
        from live_streamer.config import get_config

        config = get_config()

    return FFmpegCommandBuilder(config)
