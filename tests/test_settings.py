"""Tests for settings and shared helpers."""

from datetime import UTC, datetime

import pytest

from campus.config.settings import Settings
from campus.utils.dates import ensure_utc_aware, format_long_date_es, utc_now


@pytest.mark.parametrize(
    ("environment", "expected"),
    [
        ("production", "https://estudiante.ineeoficial.com"),
        ("staging", "https://estudiante-qa.ineeoficial.com"),
        ("development", "http://localhost:5173"),
        ("testing", "http://localhost:5173"),
    ],
)
def test_certificate_base_url_per_environment(environment, expected) -> None:
    settings = Settings(environment=environment)
    assert settings.certificate_public_base_url == expected


def test_certificate_base_url_trailing_slash() -> None:
    settings = Settings(
        environment="production",
        certificate_public_url_production="https://campus.example.com/",
    )
    assert settings.certificate_public_base_url == "https://campus.example.com"


def test_long_date_in_spanish() -> None:
    assert format_long_date_es(datetime(2026, 10, 18)) == "18 de octubre de 2026"
    assert format_long_date_es(datetime(2025, 1, 1)) == "1 de enero de 2025"


def test_ensure_utc_aware() -> None:
    assert ensure_utc_aware(None) is None
    assert ensure_utc_aware(datetime(2026, 1, 1)).tzinfo is UTC


def test_utc_now_millisecond_precision() -> None:
    assert utc_now().microsecond % 1000 == 0
