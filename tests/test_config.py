"""
Tests for environment-driven settings.
"""

import pytest
from pydantic import ValidationError

from config import Settings, configure_logging


def test_defaults(monkeypatch):
    monkeypatch.delenv("ALERTS_TICK_INTERVAL_SECONDS", raising=False)
    settings = Settings(_env_file=None)

    assert settings.tick_interval_seconds == 30.0
    assert settings.api_prefix == "/api"


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("ALERTS_DB_PATH", "/tmp/other.db")
    monkeypatch.setenv("ALERTS_TICK_INTERVAL_SECONDS", "5")
    monkeypatch.setenv("ALERTS_LOG_FORMAT", "JSON")

    settings = Settings(_env_file=None)

    assert settings.db_path == "/tmp/other.db"
    assert settings.tick_interval_seconds == 5.0
    assert settings.log_format == "json"


@pytest.mark.parametrize("field, value", [
    ("tick_interval_seconds", 0),
    ("buffer_size", -1),
    ("log_format", "xml"),
])
def test_invalid_values_rejected(field, value):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **{field: value})


def test_configure_logging_accepts_both_formats():
    configure_logging("DEBUG", "json")
    configure_logging("INFO", "console")
