"""
Encoder process supervisor.

Runs one FFmpeg process per playlist source, captures its diagnostics
and guarantees bounded-time shutdown (SIGTERM, then SIGKILL after the
kill timeout).
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Optional

import psutil

from live_streamer.command_builder import FFmpegCommandBuilder
from live_streamer.config import StreamerConfig
from live_streamer.exceptions import SpawnError, StreamReadError
from live_streamer.output_sink import OutputSink
from live_streamer.playlist import SourceDescriptor
from live_streamer.progress_parser import ProgressParser

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 1024
READER_DRAIN_TIMEOUT = 1.0


class ProcessState(str, Enum):
    """Supervisor states for a single run."""

    IDLE = "idle"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"


class RunOutcome(str, Enum):
    """How a run ended."""

    SPAWN_FAILED = "spawn_failed"
    COMPLETED = "completed"
    FAILED = "failed"
    STOPPED = "stopped"


@dataclass
class ProcessInfo:
    """Information about the running encoder process."""

    pid: int
    source: SourceDescriptor
    started_at: datetime
    process: Optional[asyncio.subprocess.Process] = None
    parser: ProgressParser = field(default_factory=ProgressParser)
    stop_requested: bool = False


class ProcessSupervisor:
    """
    Supervises the encoder process for the streamer.

    At most one process exists at any time. ``run()`` blocks until the
    process exits or is stopped; ``stop()`` may be called from any other
    task and only returns once the supervisor is idle again, so the next
    ``run()`` can never overlap a process that has not been reaped.
    """

    def __init__(
        self,
        config: StreamerConfig,
        output: OutputSink,
        command_builder: Optional[FFmpegCommandBuilder] = None,
    ):
        """
        Initialize process supervisor.

        Args:
            config: Streamer configuration
            output: Sink receiving activity and encoder diagnostics
            command_builder: Command builder instance (creates default if not provided)
        """
        self.config = config
        self.output = output

        if command_builder is None:
            command_builder = FFmpegCommandBuilder(config)

        self.command_builder = command_builder

        self._state = ProcessState.IDLE
        self._current: Optional[ProcessInfo] = None
        self._stop_pending = False
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def state(self) -> ProcessState:
        return self._state

    @property
    def current_source(self) -> Optional[SourceDescriptor]:
        return self._current.source if self._current else None

    def is_running(self) -> bool:
        """
        Check if an encoder process is currently running.

        Returns:
            True if a process is running
        """
        return self._current is not None and self._state == ProcessState.RUNNING

    async def run(self, source: SourceDescriptor) -> RunOutcome:
        """
        Stream one source until the encoder exits or is stopped.

        Args:
            source: Playlist source to stream

        Returns:
            RunOutcome describing how the run ended
        """
        await self._idle.wait()
        self._idle.clear()
        self._state = ProcessState.STARTING

        capture = self.config.log.play_state
        try:
            cmd = self.command_builder.build_command(source)
            self.output.write(f"start stream: {source.path}\n")
            logger.info(f"Starting stream: {source.path}")

            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE if capture else asyncio.subprocess.DEVNULL,
            )
        except (OSError, ValueError) as e:
            error = SpawnError(source.path, e)
            self.output.write(f"starting ffmpeg error: {e}\n")
            logger.error(str(error))
            self._stop_pending = False
            self._release(None)
            return RunOutcome.SPAWN_FAILED
        except asyncio.CancelledError:
            self._stop_pending = False
            self._release(None)
            raise

        info = ProcessInfo(
            pid=process.pid,
            source=source,
            started_at=datetime.now(),
            process=process,
        )
        self._current = info
        self._state = ProcessState.RUNNING
        logger.info(f"FFmpeg started (PID: {process.pid})")

        reader = None
        if process.stderr is not None:
            reader = asyncio.create_task(self._read_diagnostics(info))

        if self._stop_pending:
            # stop() arrived while the process was being spawned
            self._stop_pending = False
            await self.stop()

        try:
            returncode = await process.wait()
        except asyncio.CancelledError:
            await self.stop()
            raise
        finally:
            if reader is not None:
                await self._finish_reader(reader)
            if self._state == ProcessState.STOPPING:
                await self._idle.wait()
            elif self._current is info:
                self._release(info)

        self.output.write(f"stop stream: {source.path}\n")

        if info.stop_requested:
            logger.info(f"Stream stopped: {source.path}")
            return RunOutcome.STOPPED

        if returncode == 0:
            logger.info(f"Stream finished: {source.path}")
            return RunOutcome.COMPLETED

        self.output.write(f"ffmpeg exited with code {returncode}: {source.path}\n")
        logger.warning(f"FFmpeg exited with code {returncode} while streaming {source.path}")
        return RunOutcome.FAILED

    async def stop(self) -> None:
        """
        Stop the running encoder, if any.

        Sends SIGTERM and waits up to the kill timeout before sending
        SIGKILL. Idempotent; a no-op when idle.
        """
        if self._state == ProcessState.IDLE:
            return

        if self._state == ProcessState.STARTING:
            self._stop_pending = True
            await self._idle.wait()
            return

        if self._state == ProcessState.STOPPING:
            await self._idle.wait()
            return

        info = self._current
        self._state = ProcessState.STOPPING
        info.stop_requested = True
        logger.info(f"Stopping FFmpeg stream (PID: {info.pid})")

        try:
            await self._terminate(info)
        finally:
            self._release(info)

    async def _terminate(self, info: ProcessInfo) -> None:
        process = info.process
        if process.returncode is not None:
            logger.debug(f"Process {info.pid} already terminated")
            return

        timeout = self.config.supervisor.kill_timeout
        try:
            process.terminate()
        except ProcessLookupError:
            return

        try:
            await asyncio.wait_for(process.wait(), timeout=timeout)
            logger.debug(f"Process {info.pid} terminated")
        except asyncio.TimeoutError:
            logger.warning(
                f"Process {info.pid} did not terminate within {timeout}s, force killing"
            )
            self.output.write(f"ffmpeg did not stop within {timeout}s, killed: {info.source.path}\n")
            self._kill(process)
            await process.wait()
        except asyncio.CancelledError:
            self._kill(process)
            raise

    @staticmethod
    def _kill(process: asyncio.subprocess.Process) -> None:
        try:
            process.kill()
        except ProcessLookupError:
            pass

    def _release(self, info: Optional[ProcessInfo]) -> None:
        if info is not None and self._current is info:
            self._current = None
        self._state = ProcessState.IDLE
        self._idle.set()

    async def _read_diagnostics(self, info: ProcessInfo) -> None:
        """Copy encoder stderr into the output sink until EOF."""
        stream = info.process.stderr
        path = info.source.path

        try:
            while True:
                data = await stream.read(READ_CHUNK_SIZE)
                if not data:
                    break

                text = data.decode("utf-8", errors="replace")
                self.output.write(f"{path}{text}")
                self.output.truncate()

                for line in info.parser.feed(text):
                    logger.warning(f"FFmpeg [{path}]: {line}")
        except Exception as e:
            error = StreamReadError(str(e))
            self.output.write(f"reading ffmpeg output error: {error}\n")
            logger.error(f"Error reading FFmpeg output for {path}: {error}")

    async def _finish_reader(self, reader: asyncio.Task) -> None:
        try:
            await asyncio.wait_for(reader, timeout=READER_DRAIN_TIMEOUT)
        except asyncio.TimeoutError:
            logger.debug("Diagnostics reader still open after exit, cancelled")

    def get_status(self) -> Dict:
        """
        Get current status of the encoder process.

        Returns:
            Dictionary with process status information
        """
        info = self._current
        if info is None:
            return {
                "state": self._state,
                "pid": None,
                "path": None,
                "uptime_seconds": 0,
                "metrics": None,
            }

        status = {
            "state": self._state,
            "pid": info.pid,
            "path": info.source.path,
            "uptime_seconds": (datetime.now() - info.started_at).total_seconds(),
            "metrics": info.parser.get_metrics_summary(),
        }

        try:
            proc = psutil.Process(info.pid)
            status["cpu_percent"] = proc.cpu_percent(interval=None)
            status["memory_mb"] = proc.memory_info().rss / 1024 / 1024
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            pass

        return status
