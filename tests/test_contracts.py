import unittest
from datetime import timedelta

from pydantic import ValidationError

from contracts.probe_request import ProbeRequest
from contracts.probe_result import ErrorDetail, ErrorKind, ProbeResult


class TestProbeRequestContract(unittest.TestCase):
    def test_probe_request_fields(self):
        r = ProbeRequest(
            target="rtmp://good.example/live",
            period=timedelta(seconds=3),
            streaming_seconds=7,
        )
        self.assertEqual(r.target, "rtmp://good.example/live")
        self.assertEqual(r.period, timedelta(seconds=3))
        self.assertEqual(r.streaming_seconds, 7)

    def test_defaults(self):
        r = ProbeRequest(target="rtmp://good.example/live")
        self.assertEqual(r.period, timedelta(seconds=5))
        self.assertEqual(r.streaming_seconds, 5)

    def test_zero_period_replaced_by_default(self):
        r = ProbeRequest(target="t", period=timedelta(0))
        self.assertEqual(r.period, timedelta(seconds=5))

    def test_deadline_covers_window_and_period(self):
        r = ProbeRequest(target="t", period=timedelta(seconds=2), streaming_seconds=3)
        self.assertEqual(r.deadline_seconds, 5.0)

    def test_validation(self):
        with self.assertRaises(ValidationError):
            ProbeRequest(target="")
        with self.assertRaises(ValidationError):
            ProbeRequest(target="t", streaming_seconds=0)
        with self.assertRaises(ValidationError):
            ProbeRequest(target="t", period=timedelta(seconds=-1))

    def test_immutable(self):
        r = ProbeRequest(target="t")
        with self.assertRaises(ValidationError):
            r.target = "other"


class TestProbeResultContract(unittest.TestCase):
    def test_ok(self):
        r = ProbeResult.ok(bitrate_kbps=2500.0, latency_ms=12.0)
        self.assertTrue(r.success)
        self.assertIsNone(r.error)
        self.assertEqual(r.bitrate_kbps, 2500.0)
        self.assertEqual(r.latency_ms, 12.0)

    def test_failed(self):
        detail = ErrorDetail(kind=ErrorKind.NO_SIGNAL, message="silence")
        r = ProbeResult.failed(detail)
        self.assertFalse(r.success)
        self.assertEqual(r.error.kind, ErrorKind.NO_SIGNAL)
        self.assertEqual(str(r.error), "NoSignal: silence")

    def test_success_must_match_error(self):
        with self.assertRaises(ValidationError):
            ProbeResult(success=True, error=ErrorDetail(kind=ErrorKind.TIMEOUT, message="x"))
        with self.assertRaises(ValidationError):
            ProbeResult(success=False)


if __name__ == "__main__":
    unittest.main()
