import logging

from prometheus_client.core import GaugeMetricFamily
from prometheus_client.registry import Collector

from config.config import Config
from contracts.probe_result import ProbeResult

logger = logging.getLogger(__name__)

SUCCESS_HELP = "Was the last measurement for the probe successful."
BITRATE_HELP = "Bitrate of the stream in kbit/s."
LATENCY_HELP = "Latency of the target in ms."


class MetricsSnapshot(Collector):
    """
    Request-scoped collector exposing one ProbeResult as gauges.

    A snapshot is rendered exactly once; register it in a fresh
    CollectorRegistry per request and discard it afterwards.
    """

    def __init__(self, result: ProbeResult, namespace: str = Config.METRICS_NAMESPACE):
        self.result = result
        self.success_name = f"{namespace}_success"
        self.bitrate_name = f"{namespace}_bitrate"
        self.latency_name = f"{namespace}_latency"
        self._rendered = False

    def describe(self):
        # Without describe() the registry would call collect() at registration
        return [
            GaugeMetricFamily(self.success_name, SUCCESS_HELP),
            GaugeMetricFamily(self.bitrate_name, BITRATE_HELP),
            GaugeMetricFamily(self.latency_name, LATENCY_HELP),
        ]

    def render(self) -> list[tuple[str, str, float]]:
        """
        Return the (name, help, value) triples for the wrapped result.

        Bitrate and latency are only present for a successful cycle; a failed
        cycle yields the success gauge alone, set to 0.
        """
        if self._rendered:
            raise RuntimeError("MetricsSnapshot has already been rendered")
        self._rendered = True

        if not self.result.success:
            return [(self.success_name, SUCCESS_HELP, 0.0)]
        return [
            (self.success_name, SUCCESS_HELP, 1.0),
            (self.bitrate_name, BITRATE_HELP, float(self.result.bitrate_kbps)),
            (self.latency_name, LATENCY_HELP, float(self.result.latency_ms)),
        ]

    def collect(self):
        for name, documentation, value in self.render():
            yield GaugeMetricFamily(name, documentation, value=value)
