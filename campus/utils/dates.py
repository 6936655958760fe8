"""Datetime helpers shared by the Cassandra entity classes."""

from datetime import UTC, datetime


SPANISH_MONTHS = (
    "enero",
    "febrero",
    "marzo",
    "abril",
    "mayo",
    "junio",
    "julio",
    "agosto",
    "septiembre",
    "octubre",
    "noviembre",
    "diciembre",
)


def utc_now() -> datetime:
    """Current time, UTC-aware, truncated to milliseconds (Cassandra precision)."""
    now = datetime.now(UTC)
    return now.replace(microsecond=now.microsecond - now.microsecond % 1000)


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware (Cassandra returns naive datetimes)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def format_long_date_es(dt: datetime) -> str:
    """Format a date as ``18 de octubre de 2026``."""
    return f"{dt.day} de {SPANISH_MONTHS[dt.month - 1]} de {dt.year}"
