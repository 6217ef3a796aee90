"""
Tests for FFmpeg command builder.
"""

import pytest

from live_streamer.command_builder import FFmpegCommandBuilder, create_command_builder
from live_streamer.config import StreamerConfig
from live_streamer.playlist import SourceDescriptor


class TestFFmpegCommandBuilder:
    """Test FFmpeg command builder."""

    def test_build_basic_command(self, test_config: StreamerConfig):
        """Test the full argument list for an untrimmed source."""
        builder = FFmpegCommandBuilder(test_config)

        cmd = builder.build_command(SourceDescriptor(path="/videos/a.mp4"))

        assert cmd == [
            "ffmpeg",
            "-re",
            "-i", "/videos/a.mp4",
            "-c:v", "libx264",
            "-preset", "veryfast",
            "-crf", "23",
            "-maxrate", "3000k",
            "-bufsize", "6000k",
            "-vf", "scale=1280:720",
            "-r", "30",
            "-c:a", "aac",
            "-b:a", "160k",
            "-ar", "44100",
            "-f", "flv",
            "-stats", "-loglevel", "info",
            "rtmp://test-server:1935/live/test-key",
        ]

    def test_trim_markers_around_input(self, test_config: StreamerConfig):
        """Start offset goes before the input, end offset after it."""
        builder = FFmpegCommandBuilder(test_config)
        source = SourceDescriptor(path="/videos/a.mp4", start="00:01:00", end="00:05:00")

        cmd = builder.build_command(source)

        input_index = cmd.index("-i")
        assert cmd[1] == "-re"
        assert cmd[input_index - 2:input_index] == ["-ss", "00:01:00"]
        assert cmd[input_index + 2:input_index + 4] == ["-to", "00:05:00"]

    def test_custom_args_before_destination(self, test_config: StreamerConfig):
        test_config.play.custom_args = "  -g 60   -tune zerolatency "
        builder = FFmpegCommandBuilder(test_config)

        cmd = builder.build_command(SourceDescriptor(path="/videos/a.mp4"))

        assert cmd[-5:] == [
            "-g", "60", "-tune", "zerolatency", "rtmp://test-server:1935/live/test-key",
        ]
        assert cmd.index("-g") > cmd.index("-stats")

    def test_custom_binary(self, test_config: StreamerConfig):
        test_config.supervisor.ffmpeg_binary = "/opt/ffmpeg/bin/ffmpeg"
        builder = FFmpegCommandBuilder(test_config)

        cmd = builder.build_command(SourceDescriptor(path="/videos/a.mp4"))

        assert cmd[0] == "/opt/ffmpeg/bin/ffmpeg"

    def test_empty_path(self, test_config: StreamerConfig):
        builder = FFmpegCommandBuilder(test_config)

        with pytest.raises(ValueError, match="source path cannot be empty"):
            builder.build_command(SourceDescriptor(path="  "))

    def test_get_command_string(self, test_config: StreamerConfig):
        builder = FFmpegCommandBuilder(test_config)

        cmd_str = builder.get_command_string(SourceDescriptor(path="/videos/a.mp4"))

        assert cmd_str.startswith("ffmpeg -re -i /videos/a.mp4")
        assert cmd_str.endswith("rtmp://test-server:1935/live/test-key")


def test_create_command_builder(test_config: StreamerConfig):
    builder = create_command_builder(test_config)

    assert isinstance(builder, FFmpegCommandBuilder)
    assert builder.config is test_config
