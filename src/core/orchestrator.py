import asyncio
import logging
import time

from abstractions.probes import BitrateProbe, LatencyProbe
from contracts.probe_request import ProbeRequest
from contracts.probe_result import ProbeResult
from core.errors import ProbeBackendFailure, ProbeError, ProbeTimeout
from core.profiler import Profiler
from core.self_metrics import SelfMetrics

logger = logging.getLogger(__name__)


class ProbeOrchestrator:
    """
    Runs the bitrate and latency probes of one probe cycle concurrently and
    merges them into a single all-or-nothing ProbeResult.

    When both probes fail, the bitrate error is the one reported; both are logged.
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

    @Profiler.profile
    async def run(self, request: ProbeRequest) -> ProbeResult:
        start = time.perf_counter()
        try:
            result = await self._run_cycle(request)
        finally:
            self.self_metrics.observe_duration(time.perf_counter() - start)

        if not result.success:
            self.self_metrics.record_error()
            logger.error(f"Failed to run network analysis for {request.target}: {result.error}")
        return result

    async def _run_cycle(self, request: ProbeRequest) -> ProbeResult:
        # Insertion order is the tie-break order for the reported error
        tasks = {
            "bitrate": asyncio.create_task(
                self.bitrate_probe.measure(request.target, request.streaming_seconds),
                name=f"bitrate:{request.target}",
            ),
            "latency": asyncio.create_task(
                self.latency_probe.measure(request.target),
                name=f"latency:{request.target}",
            ),
        }
        deadline = request.deadline_seconds
        try:
            _, pending = await asyncio.wait(tasks.values(), timeout=deadline)
        finally:
            # Nothing outlives the request: cancel stragglers and wait for their cleanup
            for task in tasks.values():
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks.values(), return_exceptions=True)

        values = {}
        errors = []
        for name, task in tasks.items():
            if task in pending:
                error = ProbeTimeout(f"{name} probe did not finish within {deadline:.1f}s")
            elif task.cancelled():
                error = ProbeBackendFailure(f"{name} probe was cancelled")
            else:
                error = task.exception()
            if error is None:
                values[name] = task.result()
                continue
            if not isinstance(error, ProbeError):
                logger.error(f"Unexpected {name} probe error for {request.target}", exc_info=error)
                error = ProbeBackendFailure(f"{name} probe crashed: {error!r}")
            logger.warning(f"{name} probe failed for {request.target}: {error.kind.value}: {error}")
            errors.append(error)

        if errors:
            return ProbeResult.failed(errors[0].detail())
        return ProbeResult.ok(bitrate_kbps=values["bitrate"], latency_ms=values["latency"])
