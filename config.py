"""Runtime settings for the telemetry API and CLI.

Everything the server needs to start is collected in one frozen
``Settings`` value. The app factory and the CLI receive it explicitly, so
tests can build as many independent configurations as they like.

ENVIRONMENT VARIABLES:
----------------------
- TELEMETRY_DATABASE_URL: SQLAlchemy URL (default: sqlite:///./telemetry.db)
- TELEMETRY_HOST:         interface uvicorn binds to (default: 0.0.0.0)
- TELEMETRY_PORT:         port uvicorn listens on (default: 8000)
- TELEMETRY_CORS_ORIGINS: comma separated list of allowed browser origins
- TELEMETRY_DEBUG:        "1", "true", "yes" or "on" enables extra logs
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Tuple

DEFAULT_DATABASE_URL = "sqlite:///./telemetry.db"
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8000
DEFAULT_CORS_ORIGINS = ("http://localhost:5173", "http://localhost:5174")

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    """Immutable bundle of runtime options."""

    database_url: str = DEFAULT_DATABASE_URL
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    cors_origins: Tuple[str, ...] = DEFAULT_CORS_ORIGINS
    debug: bool = False


def _parse_origins(raw: str) -> Tuple[str, ...]:
    return tuple(origin.strip() for origin in raw.split(",") if origin.strip())


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build ``Settings`` from environment variables, falling back to defaults."""

    if environ is None:
        environ = os.environ

    raw_port = environ.get("TELEMETRY_PORT", "").strip()
    if raw_port:
        try:
            port = int(raw_port)
        except ValueError as exc:
            raise ValueError(
                f"TELEMETRY_PORT must be an integer, got '{raw_port}'"
            ) from exc
    else:
        port = DEFAULT_PORT

    raw_origins = environ.get("TELEMETRY_CORS_ORIGINS")
    origins = _parse_origins(raw_origins) if raw_origins is not None else DEFAULT_CORS_ORIGINS

    return Settings(
        database_url=environ.get("TELEMETRY_DATABASE_URL") or DEFAULT_DATABASE_URL,
        host=environ.get("TELEMETRY_HOST") or DEFAULT_HOST,
        port=port,
        cors_origins=origins,
        debug=environ.get("TELEMETRY_DEBUG", "").strip().lower() in _TRUE_VALUES,
    )
