import logging
import platform

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Info, Summary

from config.config import Config

logger = logging.getLogger(__name__)


class SelfMetrics:
    """
    Process-wide metrics about the exporter itself, independent of any single probe.

    Create exactly one instance at startup. prometheus_client metrics are
    internally locked, so concurrent requests may update them without extra
    synchronization.
    """

    def __init__(
        self,
        registry: CollectorRegistry = REGISTRY,
        namespace: str = Config.METRICS_NAMESPACE,
    ):
        """
        Register the exporter metrics.

        Args:
            registry: Registry to register into. Tests pass a private
                CollectorRegistry to avoid duplicated timeseries.
            namespace: Metric name prefix.
        """
        self.registry = registry
        self.DURATION = Summary(
            "duration_seconds",
            "Duration of collections by the Stream Stats Exporter.",
            namespace=namespace,
            subsystem="exporter",
            registry=registry,
        )
        self.ERRORS = Counter(
            "errors_total",
            "Errors raised by the Stream Stats Exporter.",
            namespace=namespace,
            subsystem="exporter",
            registry=registry,
        )
        self.BUILD_INFO = Info(
            "stream_stats_exporter_build",
            "Build information of the Stream Stats Exporter.",
            registry=registry,
        )
        self.BUILD_INFO.info(
            {"version": Config.VERSION, "python_version": platform.python_version()}
        )
        logger.info("SelfMetrics initialized.")

    def observe_duration(self, seconds: float):
        self.DURATION.observe(seconds)

    def record_error(self):
        self.ERRORS.inc()
