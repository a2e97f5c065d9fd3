from abc import ABC, abstractmethod


class StreamSession(ABC):
    """
    An open connection to a media stream, as seen by the bitrate probe.
    """

    @abstractmethod
    async def wait_until_playing(self, timeout: float):
        """
        Block until playback has started.

        Args:
            timeout (float): Maximum time to wait, in seconds.

        Raises:
            ProbeBackendFailure: If playback did not start in time or the player exited.
        """

    @property
    @abstractmethod
    def is_playing(self) -> bool:
        """
        Whether the stream is still delivering data.
        """

    @abstractmethod
    def current_bitrate_kbps(self) -> float:
        """
        Return the demux bitrate observed since the previous call, in kbit/s.
        A reading of zero means no data arrived in that interval.
        """

    @abstractmethod
    async def close(self):
        """
        Stop playback and release every resource held by the session.
        """


class StreamBackend(ABC):
    """
    Factory of stream sessions.
    """

    @abstractmethod
    async def open(self, target: str) -> StreamSession:
        """
        Start playing the stream at the given URI.

        Raises:
            ProbeBackendFailure: If the player could not be started.
        """


class EchoBackend(ABC):
    """
    Name resolution and echo requests used by the latency probe.
    """

    @abstractmethod
    async def resolve(self, hostname: str) -> str:
        """
        Resolve a host name to an IPv4 address.

        Raises:
            ResolutionFailure: If the name does not resolve.
        """

    @abstractmethod
    async def echo(self, address: str) -> float:
        """
        Send one echo request and return the round trip time in milliseconds.

        Raises:
            ProbeBackendFailure: If no reply arrived or the request could not be sent.
        """
