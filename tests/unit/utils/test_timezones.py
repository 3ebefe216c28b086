"""Unit tests for timezone helpers."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from qbtui.utils.exceptions import TimezoneError
from qbtui.utils.timezones import (
    COMMON_TIMEZONES,
    format_timestamp,
    is_valid_timezone,
    known_timezones,
    resolve_timezone,
    validate_timezone,
)

pytestmark = [pytest.mark.unit]


class TestTimezones:
    """Tests for validation and formatting in named zones."""

    def test_common_names_are_known(self):
        for name in COMMON_TIMEZONES:
            assert is_valid_timezone(name), name
        assert "UTC" in known_timezones()

    @pytest.mark.parametrize("name", ["", "Mars/Olympus", "Europe/Nowhere", "../etc/passwd"])
    def test_invalid_names(self, name):
        assert not is_valid_timezone(name)

    def test_validate_returns_name(self):
        assert validate_timezone("Europe/Amsterdam") == "Europe/Amsterdam"

    def test_validate_raises(self):
        with pytest.raises(TimezoneError) as exc_info:
            validate_timezone("Mars/Olympus")
        assert "Mars/Olympus" in exc_info.value.message
        assert exc_info.value.details["hint"] == "run with --list-timezones"

    def test_resolve_falls_back_to_utc(self):
        assert resolve_timezone(None) is timezone.utc
        assert resolve_timezone("Mars/Olympus") is timezone.utc
        assert str(resolve_timezone("Asia/Tokyo")) == "Asia/Tokyo"

    def test_format_timestamp(self):
        moment = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        assert format_timestamp("Asia/Tokyo", moment) == "2024-01-01 21:00:00 JST"
        assert format_timestamp(None, moment) == "2024-01-01 12:00:00 UTC"

    def test_naive_datetime_is_utc(self):
        moment = datetime(2024, 7, 1, 12, 0)
        assert format_timestamp("Europe/Paris", moment, "%H:%M %Z") == "14:00 CEST"
