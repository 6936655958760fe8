"""Utility modules for the campus API."""

from campus.utils.dates import ensure_utc_aware, format_long_date_es, utc_now


__all__ = ["ensure_utc_aware", "format_long_date_es", "utc_now"]
