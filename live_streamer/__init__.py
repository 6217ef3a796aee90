"""
Live Streamer

Streams a playlist of video files to an RTMP server by running FFmpeg one
source at a time, with skip controls and watched playlist directories.

Version: 1.0.0
"""

__version__ = "1.0.0"

from live_streamer.config import StreamerConfig
from live_streamer.exceptions import EmptyPlaylistError, SpawnError, StreamerError
from live_streamer.output_sink import OutputSink
from live_streamer.playlist import PlaylistStore, SourceDescriptor, SourceKind
from live_streamer.process_supervisor import ProcessState, ProcessSupervisor, RunOutcome
from live_streamer.streamer import Streamer

__all__ = [
    "StreamerConfig",
    "EmptyPlaylistError",
    "SpawnError",
    "StreamerError",
    "OutputSink",
    "PlaylistStore",
    "SourceDescriptor",
    "SourceKind",
    "ProcessState",
    "ProcessSupervisor",
    "RunOutcome",
    "Streamer",
]
