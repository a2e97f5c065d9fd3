import asyncio
import logging
from statistics import mean

from abstractions.backends import StreamBackend
from abstractions.probes import BitrateProbe
from config.config import Config
from core.errors import NoSignal

logger = logging.getLogger(__name__)


class DemuxBitrateProbe(BitrateProbe):
    """
    Plays a stream and averages its demux bitrate over a fixed number of seconds.
    """

    def __init__(
        self,
        backend: StreamBackend,
        playback_timeout: float = Config.PLAYBACK_START_TIMEOUT,
        sample_interval: float = Config.SAMPLE_INTERVAL_SECONDS,
    ):
        self.backend = backend
        self.playback_timeout = playback_timeout
        self.sample_interval = sample_interval

    async def measure(self, target: str, streaming_seconds: int) -> float:
        """
        Sample one bitrate reading per elapsed second once playback has begun.

        The startup delay is excluded from the window. Zero readings are
        treated as demuxer hiccups and dropped; the result is the mean of the
        remaining samples.

        Raises:
            NoSignal: If every reading in the window was zero.
            ProbeBackendFailure: If the stream could not be played.
        """
        session = await self.backend.open(target)
        try:
            await session.wait_until_playing(self.playback_timeout)
            samples = []
            for second in range(streaming_seconds):
                if not session.is_playing:
                    logger.warning(
                        f"Stream {target} stopped after {second}s of {streaming_seconds}s"
                    )
                    break
                await asyncio.sleep(self.sample_interval)
                kbps = session.current_bitrate_kbps()
                if kbps == 0:
                    logger.debug(f"Dropped zero bitrate sample for {target}")
                    continue
                samples.append(kbps)
        finally:
            await session.close()

        if not samples:
            raise NoSignal(
                f"no bitrate measured for {target} within {streaming_seconds}s"
            )
        average = mean(samples)
        logger.info(
            f"Bitrate for {target}: {average:.1f} kbit/s over {len(samples)} samples"
        )
        return average
