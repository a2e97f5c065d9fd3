import argparse
import logging
import platform
import sys
from contextlib import asynccontextmanager
from typing import Optional, Sequence

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.responses import HTMLResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from abstractions.probes import BitrateProbe, LatencyProbe
from config.config import Config
from config.logging_config import setup_logging
from core.bitrate_probe import DemuxBitrateProbe
from core.ffmpeg_stream_backend import FfmpegStreamBackend
from core.icmp_echo_backend import IcmpEchoBackend
from core.latency_probe import IcmpLatencyProbe
from core.request_handler import RequestHandler
from core.self_metrics import SelfMetrics

logger = logging.getLogger(__name__)

LANDING_PAGE = """<html>
    <head><title>Stream Stats Exporter</title></head>
    <body>
    <h1>Stream Stats Exporter</h1>
    <p><a href='{metrics_path}'>Metrics</a></p>
    <p><a href="{probe_path}">Probe</a></p>
    </body>
    </html>"""


def parse_listen_address(address: str) -> tuple[str, int]:
    """
    Split ``host:port`` into its parts; an empty host listens on every interface.
    """
    host, sep, port = address.rpartition(":")
    if not sep or not port.isdigit():
        raise ValueError(f"invalid listen address {address!r}, expected [host]:port")
    return host.strip("[]") or "0.0.0.0", int(port)


def create_app(
    bitrate_probe: Optional[BitrateProbe] = None,
    latency_probe: Optional[LatencyProbe] = None,
    self_metrics: Optional[SelfMetrics] = None,
    metrics_path: str = Config.METRICS_PATH,
) -> FastAPI:
    """
    Build the exporter application. Call once per process: SelfMetrics
    registers into the global registry unless one is injected.
    """
    self_metrics = self_metrics or SelfMetrics()
    bitrate_probe = bitrate_probe or DemuxBitrateProbe(FfmpegStreamBackend())
    latency_probe = latency_probe or IcmpLatencyProbe(IcmpEchoBackend())
    handler = RequestHandler(bitrate_probe, latency_probe, self_metrics)

    @asynccontextmanager
    async def lifespan(app):
        logger.info(f"Starting Stream Stats Exporter (version={Config.VERSION})")
        logger.info(
            f"Build context (python={platform.python_version()}, "
            f"implementation={platform.python_implementation()})"
        )
        yield
        logger.info("Stream Stats Exporter stopped.")

    app = FastAPI(title="Stream Stats Exporter", version=Config.VERSION, lifespan=lifespan)
    app.state.self_metrics = self_metrics

    @app.get("/", response_class=HTMLResponse)
    async def landing_page():
        return LANDING_PAGE.format(metrics_path=metrics_path, probe_path=Config.PROBE_PATH)

    @app.get(metrics_path)
    def metrics():
        return Response(generate_latest(self_metrics.registry), media_type=CONTENT_TYPE_LATEST)

    @app.get(Config.PROBE_PATH)
    async def probe(request: Request):
        return await handler.handle(request.query_params)

    return app


def _parse_args(argv: Optional[Sequence[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="stream_stats_exporter")
    parser.add_argument(
        "--web.listen-address",
        dest="listen_address",
        default=Config.LISTEN_ADDRESS,
        help="Address to listen on for web interface and telemetry.",
    )
    parser.add_argument(
        "--web.telemetry-path",
        dest="metrics_path",
        default=Config.METRICS_PATH,
        help="Path under which to expose metrics.",
    )
    parser.add_argument(
        "--log.level",
        dest="log_level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Only log messages with the given severity or above.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"stream_stats_exporter {Config.VERSION}",
    )
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None):
    args = _parse_args(sys.argv[1:] if argv is None else argv)
    setup_logging(args.log_level)

    try:
        host, port = parse_listen_address(args.listen_address)
    except ValueError as e:
        logger.critical(str(e))
        sys.exit(1)

    app = create_app(metrics_path=args.metrics_path)
    server = uvicorn.Server(
        uvicorn.Config(app, host=host, port=port, log_config=None, timeout_keep_alive=60)
    )
    logger.info(f"Listening on {args.listen_address}")
    try:
        server.run()
    except (OSError, SystemExit) as e:
        logger.critical(f"Listener on {args.listen_address} failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
