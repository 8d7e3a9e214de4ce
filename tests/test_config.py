"""Tests for environment-driven settings."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import config  # noqa: E402


def test_defaults_when_environment_is_empty() -> None:
    settings = config.load_settings({})

    assert settings == config.Settings()
    assert settings.database_url == config.DEFAULT_DATABASE_URL
    assert settings.port == 8000
    assert settings.debug is False


def test_environment_overrides() -> None:
    settings = config.load_settings(
        {
            "TELEMETRY_DATABASE_URL": "sqlite:///./other.db",
            "TELEMETRY_HOST": "127.0.0.1",
            "TELEMETRY_PORT": "9001",
            "TELEMETRY_CORS_ORIGINS": "http://a.test, http://b.test,",
            "TELEMETRY_DEBUG": "Yes",
        }
    )

    assert settings.database_url == "sqlite:///./other.db"
    assert settings.host == "127.0.0.1"
    assert settings.port == 9001
    assert settings.cors_origins == ("http://a.test", "http://b.test")
    assert settings.debug is True


def test_bad_port_is_reported() -> None:
    with pytest.raises(ValueError, match="TELEMETRY_PORT"):
        config.load_settings({"TELEMETRY_PORT": "eighty"})


def test_reads_process_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TELEMETRY_PORT", "8123")

    assert config.load_settings().port == 8123
