"""
FFmpeg progress parser.

Parses the encoder's ``-stats`` output to keep the latest encoding
metrics and to spot error lines.
"""

import logging
import re
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Deque, Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class ProgressMetrics:
    """Latest metrics reported by the encoder."""

    frame_count: int = 0
    fps: float = 0.0
    bitrate: str = "0kbits/s"
    speed: float = 0.0
    time: str = "00:00:00.00"
    dup_frames: int = 0
    drop_frames: int = 0
    last_update: Optional[datetime] = None


class ProgressParser:
    """
    Incremental parser for encoder diagnostics.

    Progress lines end in ``\\r`` and other messages in ``\\n``; chunks
    may split a line anywhere, so the unterminated tail is kept until the
    next chunk arrives.
    """

    METRICS_PATTERN = re.compile(
        r"frame=\s*(\d+)\s+"
        r"fps=\s*([\d.]+)\s+"
        r".*?size=.*?"
        r"time=\s*(-?[\d:.]+)\s+"
        r"bitrate=\s*(N/A|[\d.]+\w+/s)\s+"
        r"(?:dup=\s*(\d+)\s+)?"
        r"(?:drop=\s*(\d+)\s+)?"
        r"speed=\s*([\d.]+)x"
    )

    ERROR_PATTERN = re.compile(
        r"\berror\b|\bfailed\b|no such file|connection refused|invalid data",
        re.IGNORECASE,
    )

    MAX_TAIL = 4096
    MAX_ERRORS = 100

    def __init__(self):
        self.metrics = ProgressMetrics()
        self.errors: Deque[str] = deque(maxlen=self.MAX_ERRORS)
        self.error_count = 0
        self._tail = ""

    def feed(self, chunk: str) -> List[str]:
        """
        Consume a chunk of diagnostics.

        Args:
            chunk: Decoded text as read from the encoder

        Returns:
            Error lines found in the completed lines of this chunk
        """
        data = self._tail + chunk
        lines = re.split(r"[\r\n]", data)
        self._tail = lines.pop()[-self.MAX_TAIL:]

        found = []
        for line in lines:
            error = self.parse_line(line)
            if error:
                found.append(error)
        return found

    def parse_line(self, line: str) -> Optional[str]:
        """Parse one complete line; return it if it reports an error."""
        line = line.strip()
        if not line:
            return None

        if self._update_metrics(line):
            return None

        if self.ERROR_PATTERN.search(line):
            self.errors.append(line)
            self.error_count += 1
            return line

        return None

    def _update_metrics(self, line: str) -> bool:
        match = self.METRICS_PATTERN.search(line)
        if not match:
            return False

        try:
            self.metrics.frame_count = int(match.group(1))
            self.metrics.fps = float(match.group(2))
            self.metrics.time = match.group(3)
            self.metrics.bitrate = match.group(4)
            if match.group(5):
                self.metrics.dup_frames = int(match.group(5))
            if match.group(6):
                self.metrics.drop_frames = int(match.group(6))
            self.metrics.speed = float(match.group(7))
            self.metrics.last_update = datetime.now()
        except ValueError as e:
            logger.debug(f"Failed to parse progress line: {e}")
            return False

        return True

    def get_metrics_summary(self) -> Dict:
        """
        Get summary of current metrics.

        Returns:
            Dictionary with metric values
        """
        return {
            "frame_count": self.metrics.frame_count,
            "fps": self.metrics.fps,
            "bitrate": self.metrics.bitrate,
            "speed": self.metrics.speed,
            "time": self.metrics.time,
            "dup_frames": self.metrics.dup_frames,
            "drop_frames": self.metrics.drop_frames,
            "last_update": (
                self.metrics.last_update.isoformat() if self.metrics.last_update else None
            ),
            "total_errors": self.error_count,
        }
