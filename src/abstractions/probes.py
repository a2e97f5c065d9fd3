from abc import ABC, abstractmethod


class BitrateProbe(ABC):
    """
    Abstract base class for probes measuring the bitrate of a media stream.
    """

    @abstractmethod
    async def measure(self, target: str, streaming_seconds: int) -> float:
        """
        Sample the stream and return its average bitrate.

        Args:
            target (str): Stream URI.
            streaming_seconds (int): Number of whole seconds to sample for.

        Returns:
            float: Average bitrate in kbit/s.

        Raises:
            ProbeError: If no usable measurement could be taken.
        """


class LatencyProbe(ABC):
    """
    Abstract base class for probes measuring the network latency to a stream host.
    """

    @abstractmethod
    async def measure(self, target: str) -> float:
        """
        Measure the round trip time to the host of the target.

        Args:
            target (str): Stream URI whose host is probed.

        Returns:
            float: Round trip time in milliseconds.

        Raises:
            ProbeError: If the host cannot be parsed, resolved or reached.
        """
