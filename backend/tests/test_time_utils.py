# Overview: Pytest coverage for UTC clock and ISO-8601 helpers.

from datetime import datetime, timedelta, timezone

import pytest

from junkshop.time_utils import parse_iso_datetime, to_utc_z, utcnow


class TestTimeUtils:
    def test_utcnow_is_naive(self):
        assert utcnow().tzinfo is None

    @pytest.mark.parametrize("text,expected", [
        ("2025-01-31", datetime(2025, 1, 31)),
        ("2025-01-31T08:00:00Z", datetime(2025, 1, 31, 8)),
        ("2025-01-31T08:00:00z", datetime(2025, 1, 31, 8)),
        ("2025-01-31T10:00:00+02:00", datetime(2025, 1, 31, 8)),
    ])
    def test_parse(self, text, expected):
        assert parse_iso_datetime(text) == expected

    @pytest.mark.parametrize("text", [None, "", "   "])
    def test_parse_blank(self, text):
        assert parse_iso_datetime(text) is None

    def test_parse_garbage(self):
        with pytest.raises(ValueError):
            parse_iso_datetime("last tuesday")

    def test_to_utc_z(self):
        aware = datetime(2025, 1, 31, 10, 0, 0, 999, tzinfo=timezone(timedelta(hours=2)))

        assert to_utc_z(aware) == "2025-01-31T08:00:00Z"
        assert to_utc_z(datetime(2025, 1, 31, 8, 30)) == "2025-01-31T08:30:00Z"
        assert to_utc_z(None) is None
