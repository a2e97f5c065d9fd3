import ipaddress
import logging

import dns.asyncresolver
import dns.exception
from icmplib import ICMPLibError, async_ping

from abstractions.backends import EchoBackend
from config.config import Config
from core.errors import ProbeBackendFailure, ResolutionFailure

logger = logging.getLogger(__name__)


class IcmpEchoBackend(EchoBackend):
    """
    Resolves host names over DNS and measures round trips with a single ICMP echo.
    """

    def __init__(
        self,
        timeout: float = Config.PING_TIMEOUT,
        privileged: bool = Config.ICMP_PRIVILEGED,
    ):
        self.timeout = timeout
        self.privileged = privileged

    async def resolve(self, hostname: str) -> str:
        try:
            address = ipaddress.ip_address(hostname)
        except ValueError:
            pass
        else:
            if address.version == 6:
                raise ResolutionFailure(f"IPv6 targets are not supported: {hostname}")
            return str(address)

        try:
            resolver = dns.asyncresolver.Resolver()
            resolver.lifetime = self.timeout
            answer = await resolver.resolve(hostname, "A")
        except dns.exception.DNSException as e:
            raise ResolutionFailure(f"cannot resolve {hostname}: {e}") from e
        address = str(answer[0])
        logger.debug(f"Resolved {hostname} to {address}")
        return address

    async def echo(self, address: str) -> float:
        try:
            host = await async_ping(
                address, count=1, timeout=self.timeout, privileged=self.privileged
            )
        except (ICMPLibError, OSError) as e:
            raise ProbeBackendFailure(f"echo request to {address} failed: {e}") from e
        if not host.is_alive:
            raise ProbeBackendFailure(
                f"no echo reply from {address} within {self.timeout:g}s"
            )
        return host.avg_rtt
