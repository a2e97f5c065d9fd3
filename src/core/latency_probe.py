import logging
import math
from urllib.parse import urlsplit

from abstractions.backends import EchoBackend
from abstractions.probes import LatencyProbe
from core.errors import InvalidTarget

logger = logging.getLogger(__name__)


def parse_hostname(target: str) -> str:
    """
    Extract the bare host name from the authority component of a URI.

    Raises:
        InvalidTarget: If the target has no parseable host.
    """
    try:
        hostname = urlsplit(target).hostname
    except ValueError as e:
        raise InvalidTarget(f"cannot parse target {target!r}: {e}") from e
    if not hostname:
        raise InvalidTarget(f"target {target!r} has no host")
    return hostname


class IcmpLatencyProbe(LatencyProbe):
    """
    Resolves the stream host and reports one echo round trip in whole milliseconds.
    """

    def __init__(self, backend: EchoBackend):
        self.backend = backend

    async def measure(self, target: str) -> float:
        hostname = parse_hostname(target)
        address = await self.backend.resolve(hostname)
        rtt_ms = await self.backend.echo(address)
        latency = float(math.floor(rtt_ms))
        logger.info(f"Latency for {hostname} ({address}): {latency:.0f} ms")
        return latency
