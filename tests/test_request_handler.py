import unittest
from datetime import timedelta

from prometheus_client import CollectorRegistry

from core.errors import InvalidParameter, NoSignal, ResolutionFailure
from core.request_handler import RequestHandler, parse_duration
from core.self_metrics import SelfMetrics
from fakes import FakeBitrateProbe, FakeLatencyProbe

TARGET = "rtmp://good.example/live"


class TestParseDuration(unittest.TestCase):
    def test_valid_durations(self):
        cases = {
            "5s": timedelta(seconds=5),
            "300ms": timedelta(milliseconds=300),
            "1m30s": timedelta(seconds=90),
            "1h": timedelta(hours=1),
            "1.5s": timedelta(seconds=1.5),
            "2us": timedelta(microseconds=2),
            "0": timedelta(0),
            "-2s": timedelta(seconds=-2),
        }
        for text, expected in cases.items():
            with self.subTest(text=text):
                self.assertEqual(parse_duration(text), expected)

    def test_invalid_durations(self):
        for text in ("notaduration", "5", "5x", "s", "", "-", "1h 2m", "5s!", "\u0663s"):
            with self.subTest(text=text):
                with self.assertRaises(ValueError):
                    parse_duration(text)

    def test_out_of_range_durations(self):
        for text in ("99999999999h", "9" * 400 + "s", "-99999999999h"):
            with self.subTest(text=text):
                with self.assertRaises(ValueError):
                    parse_duration(text)


class TestRequestHandler(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.registry = CollectorRegistry()
        self.self_metrics = SelfMetrics(registry=self.registry)
        self.bitrate = FakeBitrateProbe(value=2500.0)
        self.latency = FakeLatencyProbe(value=12.0)
        self.handler = RequestHandler(self.bitrate, self.latency, self.self_metrics)

    def _errors(self):
        return self.registry.get_sample_value("monitoring_exporter_errors_total")

    def test_parse_defaults(self):
        request = self.handler.parse_request({"target": TARGET})
        self.assertEqual(request.target, TARGET)
        self.assertEqual(request.period, timedelta(seconds=5))
        self.assertEqual(request.streaming_seconds, 5)

    def test_parse_zero_values_use_defaults(self):
        request = self.handler.parse_request({"target": TARGET, "period": "0s", "streamingTime": "0"})
        self.assertEqual(request.period, timedelta(seconds=5))
        self.assertEqual(request.streaming_seconds, 5)

    def test_parse_explicit_values(self):
        request = self.handler.parse_request({"target": TARGET, "period": "10s", "streamingTime": "3"})
        self.assertEqual(request.period, timedelta(seconds=10))
        self.assertEqual(request.streaming_seconds, 3)

    def test_parse_signed_streaming_time(self):
        request = self.handler.parse_request({"target": TARGET, "streamingTime": "+3"})
        self.assertEqual(request.streaming_seconds, 3)

    def test_parse_rejections(self):
        cases = [
            ({}, "'target'"),
            ({"target": ""}, "'target'"),
            ({"target": TARGET, "period": "notaduration"}, "'period'"),
            ({"target": TARGET, "period": "-5s"}, "'period'"),
            ({"target": TARGET, "streamingTime": "five"}, "'streamingTime'"),
            ({"target": TARGET, "streamingTime": "-1"}, "'streamingTime'"),
            ({"target": TARGET, "streamingTime": "1_0"}, "'streamingTime'"),
            ({"target": TARGET, "streamingTime": " 5 "}, "'streamingTime'"),
            ({"target": TARGET, "streamingTime": "٥"}, "'streamingTime'"),
            ({"target": TARGET, "period": "99999999999h"}, "'period'"),
            # target is checked before period
            ({"target": "", "period": "bad"}, "'target'"),
        ]
        for query, parameter in cases:
            with self.subTest(query=query):
                with self.assertRaises(InvalidParameter) as ctx:
                    self.handler.parse_request(query)
                self.assertIn(parameter, str(ctx.exception))

    async def test_handle_success(self):
        response = await self.handler.handle({"target": TARGET})
        self.assertEqual(response.status_code, 200)
        self.assertIn("text/plain", response.media_type)
        body = response.body.decode()
        self.assertIn("monitoring_success 1.0", body)
        self.assertIn("monitoring_bitrate 2500.0", body)
        self.assertIn("monitoring_latency 12.0", body)
        self.assertEqual(self._errors(), 0.0)

    async def test_handle_empty_target(self):
        response = await self.handler.handle({"target": ""})
        self.assertEqual(response.status_code, 400)
        self.assertIn(b"'target' parameter must be specified", response.body)
        self.assertEqual(self._errors(), 1.0)
        self.assertEqual(self.bitrate.calls, [])
        self.assertEqual(self.latency.calls, [])

    async def test_handle_bad_period(self):
        response = await self.handler.handle({"target": TARGET, "period": "notaduration"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(self._errors(), 1.0)
        self.assertEqual(self.bitrate.calls, [])

    async def test_handle_oversized_period(self):
        for period in ("99999999999h", "9" * 400 + "s"):
            with self.subTest(period=period):
                response = await self.handler.handle({"target": TARGET, "period": period})
                self.assertEqual(response.status_code, 400)
                self.assertIn(b"'period' parameter must be a duration", response.body)
        self.assertEqual(self._errors(), 2.0)
        self.assertEqual(self.bitrate.calls, [])

    async def test_handle_measured_failure_is_200(self):
        handler = RequestHandler(
            FakeBitrateProbe(error=NoSignal("silence")), FakeLatencyProbe(), self.self_metrics
        )
        response = await handler.handle({"target": TARGET, "streamingTime": "5"})
        self.assertEqual(response.status_code, 200)
        body = response.body.decode()
        self.assertIn("monitoring_success 0.0", body)
        self.assertNotIn("monitoring_bitrate", body)
        self.assertNotIn("monitoring_latency", body)
        self.assertEqual(self._errors(), 1.0)

    async def test_handle_unresolvable_host(self):
        handler = RequestHandler(
            FakeBitrateProbe(value=2500.0),
            FakeLatencyProbe(error=ResolutionFailure("NXDOMAIN")),
            self.self_metrics,
        )
        body = (await handler.handle({"target": "rtmp://missing.example/live"})).body.decode()
        self.assertIn("monitoring_success 0.0", body)
        self.assertNotIn("monitoring_bitrate", body)

    async def test_fresh_snapshot_per_request(self):
        await self.handler.handle({"target": TARGET})
        self.latency.error = ResolutionFailure("gone")
        body = (await self.handler.handle({"target": TARGET})).body.decode()
        self.assertIn("monitoring_success 0.0", body)
        self.assertNotIn("monitoring_bitrate", body)


if __name__ == "__main__":
    unittest.main()
