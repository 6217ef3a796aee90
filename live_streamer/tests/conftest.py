"""
Pytest configuration and fixtures for live streamer tests.
"""

import tempfile
from pathlib import Path
from typing import Generator, List

import pytest

from live_streamer.config import (
    LogConfig,
    OutputConfig,
    PlayConfig,
    StreamerConfig,
    SupervisorConfig,
)
from live_streamer.output_sink import OutputSink
from live_streamer.playlist import SourceDescriptor
from live_streamer.tests.doubles import FakeSupervisor


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def test_config() -> StreamerConfig:
    """Create a test configuration with short timings."""
    return StreamerConfig(
        play=PlayConfig(
            video_codec="libx264",
            preset="veryfast",
            crf=23,
            max_rate="3000k",
            buf_size="6000k",
            scale="1280:720",
            frame_rate=30,
            audio_codec="aac",
            audio_bitrate="160k",
            audio_sample_rate=44100,
            output_format="flv",
        ),
        output=OutputConfig(rtmp_server="rtmp://test-server:1935/live", stream_key="test-key"),
        log=LogConfig(play_state=True),
        supervisor=SupervisorConfig(
            ffmpeg_binary="ffmpeg",
            kill_timeout=0.5,
            idle_interval=0.05,
            retry_delay=0.2,
            max_retry_delay=0.8,
            watch_interval=0.05,
        ),
    )


@pytest.fixture
def sources() -> List[SourceDescriptor]:
    """Three-entry playlist: a, b, c."""
    return [
        SourceDescriptor(path="/videos/a.mp4"),
        SourceDescriptor(path="/videos/b.mp4"),
        SourceDescriptor(path="/videos/c.mp4"),
    ]


@pytest.fixture
def output_sink() -> OutputSink:
    return OutputSink(max_size=4096)


@pytest.fixture
def fake_supervisor() -> FakeSupervisor:
    return FakeSupervisor()
