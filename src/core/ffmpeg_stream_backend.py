"""
Stream backend playing the target through an ``ffmpeg`` subprocess.

The stream is copied (no decoding) at its native rate into a throwaway muxer
while ``-progress`` reports the number of bytes written once per second. The
delta between two reports is the demux bitrate of the stream.
"""
import asyncio
import logging
import os
import time

from abstractions.backends import StreamBackend, StreamSession
from config.config import Config
from core.errors import ProbeBackendFailure

logger = logging.getLogger(__name__)

STOP_GRACE_SECONDS = 5.0
STDERR_TAIL_BYTES = 4096
STDERR_READ_SIZE = 65536


def build_ffmpeg_command(binary: str, target: str, stats_period: float) -> list[str]:
    return [
        binary,
        "-hide_banner",
        "-nostdin",
        "-loglevel",
        "error",
        "-progress",
        "pipe:1",
        "-stats_period",
        f"{stats_period:g}",
        "-re",
        "-i",
        target,
        "-map",
        "0",
        "-c",
        "copy",
        "-f",
        "nut",
        "-y",
        os.devnull,
    ]


class FfmpegStreamSession(StreamSession):
    def __init__(self, process: asyncio.subprocess.Process, target: str, clock=time.monotonic):
        self._process = process
        self._target = target
        self._clock = clock
        self._playing = asyncio.Event()
        self._total_bytes = 0
        self._last_bytes = 0
        self._last_read = clock()
        self._stderr = b""
        self._reader = asyncio.create_task(self._read_progress())
        self._stderr_reader = asyncio.create_task(self._drain_stderr())

    async def _read_progress(self):
        async for raw in self._process.stdout:
            key, _, value = raw.decode(errors="replace").strip().partition("=")
            if key == "total_size" and value.isdigit():
                self._total_bytes = int(value)
            elif key == "out_time_us" and value.isdigit() and int(value) > 0:
                self._playing.set()
        logger.debug(f"ffmpeg progress stream closed for {self._target}")

    async def _drain_stderr(self):
        # Read continuously so a chatty ffmpeg never blocks on a full pipe
        if self._process.stderr is None:
            return
        while True:
            chunk = await self._process.stderr.read(STDERR_READ_SIZE)
            if not chunk:
                break
            self._stderr = (self._stderr + chunk)[-STDERR_TAIL_BYTES:]

    @property
    def stderr_tail(self) -> str:
        return self._stderr.decode(errors="replace").strip()[-500:]

    async def wait_until_playing(self, timeout: float):
        waiter = asyncio.create_task(self._playing.wait())
        try:
            await asyncio.wait(
                {waiter, self._reader}, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            waiter.cancel()

        if not self._playing.is_set():
            if self._reader.done():
                await self._process.wait()
                await asyncio.wait({self._stderr_reader}, timeout=STOP_GRACE_SECONDS)
                reason = self.stderr_tail or f"exit code {self._process.returncode}"
                raise ProbeBackendFailure(f"ffmpeg exited before playback of {self._target}: {reason}")
            raise ProbeBackendFailure(
                f"playback of {self._target} did not start within {timeout:g}s"
            )
        self._last_bytes = self._total_bytes
        self._last_read = self._clock()

    @property
    def is_playing(self) -> bool:
        return self._playing.is_set() and not self._reader.done()

    def current_bitrate_kbps(self) -> float:
        now = self._clock()
        elapsed = now - self._last_read
        delta = self._total_bytes - self._last_bytes
        self._last_read = now
        self._last_bytes = self._total_bytes
        if elapsed <= 0 or delta <= 0:
            return 0.0
        return delta * 8 / 1000 / elapsed

    async def close(self):
        if self._process.returncode is None:
            try:
                self._process.terminate()
            except ProcessLookupError:
                pass
            try:
                await asyncio.wait_for(self._process.wait(), timeout=STOP_GRACE_SECONDS)
            except asyncio.TimeoutError:
                logger.warning(f"ffmpeg for {self._target} ignored SIGTERM, killing it")
                self._process.kill()
                await self._process.wait()
        self._reader.cancel()
        self._stderr_reader.cancel()
        await asyncio.gather(self._reader, self._stderr_reader, return_exceptions=True)


class FfmpegStreamBackend(StreamBackend):
    def __init__(
        self,
        binary: str = Config.FFMPEG_BINARY,
        stats_period: float = Config.SAMPLE_INTERVAL_SECONDS,
    ):
        self.binary = binary
        self.stats_period = stats_period

    async def open(self, target: str) -> FfmpegStreamSession:
        cmd = build_ffmpeg_command(self.binary, target, self.stats_period)
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ProbeBackendFailure(f"cannot start {self.binary}: {e}") from e
        logger.debug(f"Started ffmpeg (pid {process.pid}) for {target}")
        return FfmpegStreamSession(process, target)
