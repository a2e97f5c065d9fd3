from contracts.probe_result import ErrorDetail, ErrorKind


class ProbeError(Exception):
    """
    Base class for every failure a probe cycle can report.
    """

    kind: ErrorKind = ErrorKind.PROBE_BACKEND_FAILURE

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def detail(self) -> ErrorDetail:
        return ErrorDetail(kind=self.kind, message=self.message)


class InvalidTarget(ProbeError):
    kind = ErrorKind.INVALID_TARGET


class ResolutionFailure(ProbeError):
    kind = ErrorKind.RESOLUTION_FAILURE


class NoSignal(ProbeError):
    kind = ErrorKind.NO_SIGNAL


class ProbeBackendFailure(ProbeError):
    kind = ErrorKind.PROBE_BACKEND_FAILURE


class ProbeTimeout(ProbeError):
    kind = ErrorKind.TIMEOUT


class InvalidParameter(ProbeError):
    """Malformed query parameter; answered with 400 instead of a probe cycle."""

    kind = ErrorKind.INVALID_PARAMETER
