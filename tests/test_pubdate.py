"""Tests for RSS publish date normalization."""

from datetime import datetime

import pytest

from podkeeper.podcast.pubdate import DATE_LAYOUTS, parse_pub_date


class TestParsePubDate:
    """Tests for parse_pub_date."""

    @pytest.mark.parametrize(
        "value",
        [
            "Mon, 01 Jan 2024 12:00:00 +0000",
            "Mon, 01 Jan 2024 12:00:00 GMT",
            "Mon, 1 Jan 2024 12:00:00 GMT",
            "Mon, 1 Jan 2024 12:00:00 +0000",
        ],
    )
    def test_all_layouts_yield_same_instant(self, value):
        """Zero-padded and short days, named and numeric zones agree."""
        assert parse_pub_date(value) == datetime(2024, 1, 1, 12, 0, 0)

    def test_result_is_naive(self):
        assert parse_pub_date("Mon, 01 Jan 2024 12:00:00 +0000").tzinfo is None

    def test_numeric_offset_converted_to_utc(self):
        assert parse_pub_date("Mon, 01 Jan 2024 13:30:00 +0130") == datetime(2024, 1, 1, 12, 0)
        assert parse_pub_date("Mon, 01 Jan 2024 04:00:00 -0800") == datetime(2024, 1, 1, 12, 0)

    @pytest.mark.parametrize(
        "zone,local_hour",
        [("EST", 7), ("EDT", 8), ("CST", 6), ("PST", 4), ("PDT", 5), ("UT", 12), ("Z", 12)],
    )
    def test_named_zones(self, zone, local_hour):
        value = f"Mon, 01 Jan 2024 {local_hour:02d}:00:00 {zone}"
        assert parse_pub_date(value) == datetime(2024, 1, 1, 12, 0)

    def test_unknown_zone_read_as_utc(self):
        assert parse_pub_date("Mon, 01 Jan 2024 12:00:00 XYZ") == datetime(2024, 1, 1, 12, 0)

    def test_offset_crosses_day_boundary(self):
        assert parse_pub_date("Mon, 01 Jan 2024 23:30:00 -0100") == datetime(2024, 1, 2, 0, 30)

    def test_case_insensitive(self):
        assert parse_pub_date("mon, 01 jan 2024 12:00:00 gmt") == datetime(2024, 1, 1, 12, 0)

    def test_extra_whitespace_collapsed(self):
        assert parse_pub_date("  Mon,  01 Jan 2024   12:00:00 GMT ") == datetime(2024, 1, 1, 12, 0)

    @pytest.mark.parametrize(
        "value",
        [
            None,
            "",
            "2024-01-01T12:00:00Z",
            "01 Jan 2024 12:00:00 GMT",
            "yesterday",
            "Mon, 31 Feb 2024 12:00:00 GMT",
        ],
    )
    def test_unparseable_returns_none(self, value):
        assert parse_pub_date(value) is None

    def test_layout_order(self):
        names = [name for name, _ in DATE_LAYOUTS]
        assert names == ["rfc1123z", "rfc1123", "rfc1123-short-day", "rfc1123z-short-day"]
