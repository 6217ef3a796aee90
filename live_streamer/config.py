"""
Live streamer configuration.

Settings are read from a YAML file and may be overridden through
environment variables (``STREAMER_`` prefix, ``__`` between nested keys,
e.g. ``STREAMER_OUTPUT__STREAM_KEY``).
"""

import logging
from contextvars import ContextVar
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Type, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import (
    BaseSettings,
    InitSettingsSource,
    PydanticBaseSettingsSource,
)

from live_streamer.playlist import SourceDescriptor, SourceKind
from live_streamer.utils import is_supported_video

logger = logging.getLogger(__name__)

# Values read by StreamerConfig.from_yaml, ranked below environment variables
_yaml_values: ContextVar[Optional[Dict[str, Any]]] = ContextVar("yaml_values", default=None)


class PlaylistItem(BaseModel):
    """One configured playlist entry: a video file or a watched directory."""

    path: str = Field(..., description="Video file or directory path")
    start: Optional[str] = Field(
        default=None,
        description="Start offset passed to the encoder (-ss), e.g. 00:01:30",
    )
    end: Optional[str] = Field(
        default=None,
        description="End offset passed to the encoder (-to)",
    )
    item_type: SourceKind = Field(
        default=SourceKind.FILE,
        alias="type",
        description="'file' for a single video, 'dir' for a watched directory",
    )

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("path")
    @classmethod
    def _path_not_empty(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("playlist item path cannot be empty")
        return value


class PlayConfig(BaseModel):
    """Encoder output parameters."""

    video_codec: str = Field(default="libx264", description="Video codec (-c:v)")
    preset: str = Field(default="veryfast", description="Encoder preset")
    crf: int = Field(default=23, ge=0, le=51, description="Constant rate factor")
    max_rate: str = Field(default="3000k", description="Maximum video bitrate")
    buf_size: str = Field(default="6000k", description="Rate control buffer size")
    scale: str = Field(default="1280:720", description="Output resolution for the scale filter")
    frame_rate: int = Field(default=30, ge=1, le=240, description="Output frame rate")
    audio_codec: str = Field(default="aac", description="Audio codec (-c:a)")
    audio_bitrate: str = Field(default="160k", description="Audio bitrate")
    audio_sample_rate: int = Field(default=44100, ge=8000, le=192000)
    output_format: str = Field(default="flv", description="Container format (-f)")
    custom_args: str = Field(
        default="",
        description="Extra encoder arguments, split on whitespace and appended verbatim",
    )


class OutputConfig(BaseModel):
    """Streaming destination."""

    rtmp_server: str = Field(
        default="rtmp://localhost:1935/live",
        description="RTMP server URL",
    )
    stream_key: str = Field(default="", description="Stream key appended to the server URL")

    @property
    def destination(self) -> str:
        """Full output URL handed to the encoder."""
        return f"{self.rtmp_server}/{self.stream_key}"


class LogConfig(BaseModel):
    """Application and encoder logging."""

    play_state: bool = Field(
        default=False,
        description="Capture encoder diagnostics into the output buffer",
    )
    level: str = Field(default="INFO", description="Application log level")
    path: Optional[str] = Field(
        default=None,
        description="Directory for the rotating JSON log file (console only when unset)",
    )
    max_bytes: int = Field(default=10 * 1024 * 1024, ge=1024)  # 10 MB
    backup_count: int = Field(default=5, ge=0, le=100)

    @field_validator("level")
    @classmethod
    def _valid_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid log level: {value}")
        return level


class SupervisorConfig(BaseModel):
    """Process supervision and playback loop timing."""

    ffmpeg_binary: str = Field(default="ffmpeg", description="Path to the encoder binary")
    kill_timeout: float = Field(
        default=3.0,
        gt=0.0,
        le=60.0,
        description="Seconds to wait for a graceful exit before killing the encoder",
    )
    idle_interval: float = Field(
        default=1.0,
        gt=0.0,
        le=60.0,
        description="Seconds between checks while the playlist is empty",
    )
    retry_delay: float = Field(
        default=1.0,
        gt=0.0,
        le=60.0,
        description="Initial delay after a failed encoder start",
    )
    max_retry_delay: float = Field(
        default=30.0,
        gt=0.0,
        le=600.0,
        description="Upper bound for the spawn failure backoff",
    )
    output_max_bytes: int = Field(
        default=1024 * 1024,
        ge=1024,
        description="Ceiling for the in-memory output buffer (characters)",
    )
    watch_interval: float = Field(
        default=2.0,
        gt=0.0,
        le=300.0,
        description="Seconds between directory watcher polls",
    )


class StreamerConfig(BaseSettings):
    """Top-level live streamer configuration."""

    playlist: List[PlaylistItem] = Field(default_factory=list)
    play: PlayConfig = Field(default_factory=PlayConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    log: LogConfig = Field(default_factory=LogConfig)
    supervisor: SupervisorConfig = Field(default_factory=SupervisorConfig)

    model_config = ConfigDict(
        env_prefix="STREAMER_",
        env_nested_delimiter="__",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        sources = [init_settings, env_settings, dotenv_settings]
        yaml_values = _yaml_values.get()
        if yaml_values is not None:
            sources.append(InitSettingsSource(settings_cls, init_kwargs=yaml_values))
        sources.append(file_secret_settings)
        return tuple(sources)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "StreamerConfig":
        """
        Load configuration from a YAML file.

        Environment variables still take precedence over values in the file.

        Args:
            path: Path to the YAML file

        Returns:
            StreamerConfig: Validated configuration

        Raises:
            FileNotFoundError: If the file does not exist
            pydantic.ValidationError: If a value is invalid
        """
        path = Path(path)
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError(f"Config file must contain a mapping: {path}")

        token = _yaml_values.set(data)
        try:
            config = cls()
        finally:
            _yaml_values.reset(token)

        logger.info(f"Loaded configuration from {path}")
        return config

    def watched_directories(self) -> List[str]:
        """Paths of the playlist items that are watched directories."""
        return [item.path for item in self.playlist if item.item_type == SourceKind.DIRECTORY]

    def build_playlist(self) -> List[SourceDescriptor]:
        """
        Expand the configured items into streamable sources.

        Directory items expand to the supported videos directly inside
        them, sorted by name.

        Returns:
            Ordered list of source descriptors
        """
        sources: List[SourceDescriptor] = []

        for item in self.playlist:
            if item.item_type == SourceKind.FILE:
                sources.append(
                    SourceDescriptor(
                        path=item.path,
                        start=item.start,
                        end=item.end,
                        kind=SourceKind.FILE,
                    )
                )
                continue

            directory = Path(item.path)
            if not directory.is_dir():
                logger.warning(f"Playlist directory does not exist: {directory}")
                continue

            for entry in sorted(directory.iterdir()):
                if entry.is_file() and is_supported_video(str(entry)):
                    sources.append(SourceDescriptor(path=str(entry), kind=SourceKind.DIRECTORY))

        logger.info(f"Playlist built with {len(sources)} source(s)")
        return sources


def get_config(path: Optional[Union[str, Path]] = None) -> StreamerConfig:
    """
    Get streamer configuration.

    Args:
        path: Optional YAML file; environment only when omitted

    Returns:
        StreamerConfig: Configuration instance
    """
    if path is None:
        return StreamerConfig()
    return StreamerConfig.from_yaml(path)
