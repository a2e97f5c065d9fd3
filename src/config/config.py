import os


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    """
    Configuration class for environment variables and default settings.
    """

    VERSION = "0.3.0"

    # Web interface; CLI flags take precedence over these
    LISTEN_ADDRESS = os.environ.get("LISTEN_ADDRESS", ":8080")
    METRICS_PATH = os.environ.get("METRICS_PATH", "/metrics")
    PROBE_PATH = "/probe"

    METRICS_NAMESPACE = "monitoring"

    # Per-request defaults used when a query parameter is absent or zero
    DEFAULT_PERIOD_SECONDS = float(os.environ.get("DEFAULT_PERIOD_SECONDS", "5"))
    DEFAULT_STREAMING_SECONDS = int(os.environ.get("DEFAULT_STREAMING_SECONDS", "5"))

    # Bitrate probe
    PLAYBACK_START_TIMEOUT = float(os.environ.get("PLAYBACK_START_TIMEOUT", "10"))
    SAMPLE_INTERVAL_SECONDS = float(os.environ.get("SAMPLE_INTERVAL_SECONDS", "1"))
    FFMPEG_BINARY = os.environ.get("FFMPEG_BINARY", "ffmpeg")

    # Latency probe
    PING_TIMEOUT = float(os.environ.get("PING_TIMEOUT", "1"))
    # Raw ICMP sockets need root or CAP_NET_RAW; unprivileged mode relies on
    # net.ipv4.ping_group_range instead.
    ICMP_PRIVILEGED = _env_bool("ICMP_PRIVILEGED", "false")
