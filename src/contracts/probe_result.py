from enum import Enum
from typing import Optional

from pydantic import BaseModel, model_validator


class ErrorKind(str, Enum):
    INVALID_TARGET = "InvalidTarget"
    RESOLUTION_FAILURE = "ResolutionFailure"
    NO_SIGNAL = "NoSignal"
    PROBE_BACKEND_FAILURE = "ProbeBackendFailure"
    TIMEOUT = "Timeout"
    INVALID_PARAMETER = "InvalidParameter"


class ErrorDetail(BaseModel):
    """
    Why a probe cycle failed. Logged server side, never rendered to the scrape.
    """

    kind: ErrorKind
    message: str

    def __str__(self):
        return f"{self.kind.value}: {self.message}"


class ProbeResult(BaseModel):
    """
    Merged outcome of one probe cycle.

    The numeric fields only carry a measurement when ``success`` is true.
    """

    success: bool
    bitrate_kbps: float = 0.0
    latency_ms: float = 0.0
    error: Optional[ErrorDetail] = None

    @model_validator(mode="after")
    def _success_matches_error(self):
        if self.success != (self.error is None):
            raise ValueError("success must be true exactly when no error is set")
        return self

    @classmethod
    def ok(cls, bitrate_kbps: float, latency_ms: float) -> "ProbeResult":
        return cls(success=True, bitrate_kbps=bitrate_kbps, latency_ms=latency_ms)

    @classmethod
    def failed(cls, error: ErrorDetail) -> "ProbeResult":
        return cls(success=False, error=error)
