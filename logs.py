"""Tiny print-based logger shared by the API server and the CLI."""

from __future__ import annotations

from datetime import datetime, timezone

LOG_PREFIX_SYSTEM = "SYSTEM"
LOG_PREFIX_API = "API"
LOG_PREFIX_DATA = "DATA"
LOG_PREFIX_SEED = "SEED"
LOG_PREFIX_WARN = "WARN"
LOG_PREFIX_ERROR = "ERROR"


def log(prefix: str, message: str) -> None:
    """Print structured log messages so tests can verify behaviour."""

    timestamp = datetime.now(timezone.utc).isoformat(timespec="seconds")
    print(f"[{prefix.upper()}][{timestamp}] {message}", flush=True)
