import logging
import re
from datetime import timedelta
from typing import Mapping

from fastapi import Response
from fastapi.responses import PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest

from abstractions.probes import BitrateProbe, LatencyProbe
from config.config import Config
from contracts.probe_request import ProbeRequest
from core.errors import InvalidParameter
from core.metrics_snapshot import MetricsSnapshot
from core.orchestrator import ProbeOrchestrator
from core.profiler import Profiler
from core.self_metrics import SelfMetrics

logger = logging.getLogger(__name__)

# Seconds per unit, as accepted by Go's time.ParseDuration
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+\.?\d*|\.\d+)(ns|us|µs|μs|ms|s|m|h)", re.ASCII)
_INTEGER = re.compile(r"[+-]?\d+", re.ASCII)


def parse_duration(text: str) -> timedelta:
    """
    Parse a duration string such as ``300ms``, ``5s`` or ``1h2m3.5s``.

    Raises:
        ValueError: On empty input, unknown units, trailing garbage or a
            duration too large to represent.
    """
    value = text.strip()
    sign = 1.0
    if value[:1] in ("+", "-"):
        sign = -1.0 if value[0] == "-" else 1.0
        value = value[1:]
    if value == "0":
        return timedelta(0)
    if not value:
        raise ValueError(f"invalid duration {text!r}")

    seconds = 0.0
    position = 0
    while position < len(value):
        match = _DURATION_PART.match(value, position)
        if not match:
            raise ValueError(f"invalid duration {text!r}")
        number, unit = match.groups()
        seconds += float(number) * _DURATION_UNITS[unit]
        position = match.end()
    try:
        return timedelta(seconds=sign * seconds)
    except OverflowError as e:
        raise ValueError(f"invalid duration {text!r}") from e


class RequestHandler:
    """
    Validates probe queries and turns each one into a fresh probe cycle.
    """

    def __init__(
        self,
        bitrate_probe: BitrateProbe,
        latency_probe: LatencyProbe,
        self_metrics: SelfMetrics,
    ):
        self.bitrate_probe = bitrate_probe
        self.latency_probe = latency_probe
        self.self_metrics = self_metrics

    def parse_request(self, query: Mapping[str, str]) -> ProbeRequest:
        """
        Build a ProbeRequest from query parameters, checked in order:
        ``target``, ``period``, ``streamingTime``.

        Raises:
            InvalidParameter: On the first malformed parameter.
        """
        target = query.get("target") or ""
        if not target:
            raise InvalidParameter("'target' parameter must be specified")

        period = timedelta(0)
        raw_period = query.get("period") or ""
        if raw_period:
            try:
                period = parse_duration(raw_period)
            except ValueError as e:
                raise InvalidParameter(f"'period' parameter must be a duration: {e}") from e
            if period < timedelta(0):
                raise InvalidParameter(
                    f"'period' parameter must be a duration: negative duration {raw_period!r}"
                )

        streaming_seconds = 0
        raw_streaming = query.get("streamingTime") or ""
        if raw_streaming:
            if not _INTEGER.fullmatch(raw_streaming):
                raise InvalidParameter(
                    f"'streamingTime' parameter must be an integer: invalid value {raw_streaming!r}"
                )
            streaming_seconds = int(raw_streaming)
            if streaming_seconds < 0:
                raise InvalidParameter(
                    f"'streamingTime' parameter must be an integer: negative value {raw_streaming!r}"
                )
        if streaming_seconds == 0:
            streaming_seconds = Config.DEFAULT_STREAMING_SECONDS

        return ProbeRequest(
            target=target, period=period, streaming_seconds=streaming_seconds
        )

    @Profiler.profile
    async def handle(self, query: Mapping[str, str]) -> Response:
        try:
            request = self.parse_request(query)
        except InvalidParameter as e:
            self.self_metrics.record_error()
            logger.warning(f"Rejected probe request: {e}")
            return PlainTextResponse(f"{e}\n", status_code=400)

        logger.info(
            f"Probing {request.target} for {request.streaming_seconds}s "
            f"(deadline {request.deadline_seconds:.1f}s)"
        )
        orchestrator = ProbeOrchestrator(
            self.bitrate_probe, self.latency_probe, self.self_metrics
        )
        result = await orchestrator.run(request)

        registry = CollectorRegistry()
        registry.register(MetricsSnapshot(result))
        return Response(generate_latest(registry), media_type=CONTENT_TYPE_LATEST)
