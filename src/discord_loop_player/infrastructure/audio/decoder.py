"""
FFmpeg Decoder Supervisor

Infrastructure component that spawns one ffmpeg process per playback
iteration and guarantees its termination.
"""

from __future__ import annotations

import asyncio
import io
import logging
import os
import subprocess
import sys
import threading
from pathlib import Path
from typing import IO, Any

from pydantic import BaseModel, ConfigDict

from discord_loop_player.application.interfaces.audio_decoder import AudioDecoder, DecodeResult
from discord_loop_player.domain.shared.messages import LogTemplates
from discord_loop_player.domain.shared.types import ChannelCount, NonEmptyStr, SampleRate

logger = logging.getLogger(__name__)
ffmpeg_logger = logging.getLogger("discord_loop_player.ffmpeg")

KILL_WAIT_TIMEOUT: float = 1.0
CREATE_NO_WINDOW: int = subprocess.CREATE_NO_WINDOW if sys.platform == "win32" else 0


class DecoderOptions(BaseModel):
    """Arguments for the ffmpeg invocation."""

    model_config = ConfigDict(frozen=True)

    executable: NonEmptyStr = "ffmpeg"
    realtime: bool = True
    disable_video: bool = True
    sample_format: NonEmptyStr = "s16le"
    sample_rate: SampleRate = 48000
    channels: ChannelCount = 2
    log_level: NonEmptyStr = "warning"

    def build_args(self, source_path: Path) -> list[str]:
        """Build the full argument vector for decoding *source_path* to stdout."""
        args = [self.executable]
        if self.realtime:
            args.append("-re")
        args += ["-i", str(source_path), "-analyzeduration", "0", "-loglevel", self.log_level]
        if self.disable_video:
            args.append("-vn")
        args += [
            "-f", self.sample_format,
            "-ar", str(self.sample_rate),
            "-ac", str(self.channels),
            "pipe:1",
        ]
        return args


class DecoderSupervisor(AudioDecoder):
    """Spawns ffmpeg processes that emit raw PCM on stdout.

    Spawn failures never raise: they surface as an empty stream so the
    playback loop sees an instantly finished track.
    """

    def __init__(self, options: DecoderOptions | None = None, *, debug: bool = False) -> None:
        self._options = options or DecoderOptions()
        self._debug = debug
        self._live: set[subprocess.Popen[bytes]] = set()

    @property
    def options(self) -> DecoderOptions:
        return self._options

    @property
    def active_count(self) -> int:
        """Number of spawned processes not yet killed."""
        return len(self._live)

    def source_exists(self, source_path: Path) -> bool:
        path = Path(source_path)
        return path.is_file() and os.access(path, os.R_OK)

    async def start_decode(self, source_path: Path) -> DecodeResult:
        if not self.source_exists(source_path):
            logger.warning(LogTemplates.DECODER_SOURCE_MISSING, source_path)
            return DecodeResult(stream=io.BytesIO(b""), process=None, ok=False)

        args = self._options.build_args(Path(source_path))
        try:
            process = await asyncio.to_thread(self._spawn, args)
        except OSError as e:
            logger.error(LogTemplates.DECODER_SPAWN_FAILED, e)
            return DecodeResult(stream=io.BytesIO(b""), process=None, ok=False)

        logger.debug(LogTemplates.DECODER_SPAWNED, process.pid, source_path)

        if self._debug and process.stderr is not None:
            threading.Thread(
                target=self._pipe_stderr,
                args=(process.stderr,),
                name=f"ffmpeg-stderr-{process.pid}",
                daemon=True,
            ).start()

        return DecodeResult(stream=process.stdout, process=process)

    def kill_decode(self, process: Any) -> None:
        if process is None:
            return

        self._live.discard(process)
        try:
            process.kill()
        except ProcessLookupError:
            pass
        except Exception as e:
            logger.debug(LogTemplates.DECODER_KILL_ERROR, process.pid, e)

        if process.stdout is not None:
            try:
                process.stdout.close()
            except Exception as e:
                logger.debug(LogTemplates.DECODER_KILL_ERROR, process.pid, e)

        if process.poll() is None:
            threading.Thread(
                target=self._reap,
                args=(process,),
                name=f"ffmpeg-reap-{process.pid}",
                daemon=True,
            ).start()
        else:
            logger.debug(LogTemplates.DECODER_KILLED, process.pid)

    def kill_all(self) -> None:
        for process in list(self._live):
            self.kill_decode(process)

    def _spawn(self, args: list[str]) -> subprocess.Popen[bytes]:
        """Runs in a worker thread; the handle is tracked even if the caller was cancelled."""
        process = subprocess.Popen(
            args,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE if self._debug else subprocess.DEVNULL,
            creationflags=CREATE_NO_WINDOW,
        )
        self._live.add(process)
        return process

    @staticmethod
    def _reap(process: subprocess.Popen[bytes]) -> None:
        try:
            process.wait(timeout=KILL_WAIT_TIMEOUT)
            logger.debug(LogTemplates.DECODER_KILLED, process.pid)
        except Exception as e:
            logger.debug(LogTemplates.DECODER_KILL_ERROR, process.pid, e)

    @staticmethod
    def _pipe_stderr(stderr: IO[bytes]) -> None:
        try:
            for line in iter(stderr.readline, b""):
                text = line.decode("utf-8", errors="replace").strip()
                if text:
                    ffmpeg_logger.debug(LogTemplates.DECODER_STDERR, text)
        except (OSError, ValueError):
            pass
