"""
Helpers for the collaborators around the streamer core.
"""

import logging
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)

SUPPORTED_VIDEO_EXTENSIONS = frozenset(
    {
        ".mp4",
        ".mkv",
        ".avi",
        ".mov",
        ".flv",
        ".webm",
        ".wmv",
        ".ts",
        ".m4v",
        ".mpg",
        ".mpeg",
    }
)


def has_ffmpeg(binary: str = "ffmpeg") -> bool:
    """
    Check whether the encoder binary can be found.

    Args:
        binary: Executable name or path

    Returns:
        True if the binary is on PATH (or is an executable path)
    """
    found = shutil.which(binary)
    if found is None:
        logger.error(f"Encoder binary not found: {binary}")
        return False

    logger.debug(f"Encoder binary: {found}")
    return True


def is_supported_video(path: str) -> bool:
    """Return True if the file extension is a recognized video container."""
    return Path(path).suffix.lower() in SUPPORTED_VIDEO_EXTENSIONS
