"""Tests for log context and sensitive-data masking."""

from campus.core.context import (
    clear_context,
    get_context,
    set_request_id,
    set_user_id,
)
from campus.core.logging import filter_sensitive_data


def test_national_id_masked() -> None:
    event = filter_sensitive_data(None, "info", {"event": "x", "national_id": "30111222"})
    assert event["national_id"] == "30****22"
    assert event["event"] == "x"


def test_short_secret_fully_masked() -> None:
    event = filter_sensitive_data(None, "info", {"token": "abc"})
    assert event["token"] == "***"


def test_nested_values_masked() -> None:
    event = filter_sensitive_data(
        None, "info", {"user": {"dni": "30111222", "name": "Ana"}}
    )
    assert event["user"] == {"dni": "30****22", "name": "Ana"}


def test_context_round_trip() -> None:
    request_id = set_request_id()
    set_user_id("user-1")
    assert get_context() == {"request_id": request_id, "user_id": "user-1"}

    clear_context()
    assert get_context() == {}
