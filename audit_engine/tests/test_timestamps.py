"""
Timestamp Utility Test Module

Tests tolerant timestamp parsing and M:SS formatting in
audit_engine/services/timestamps.py.

Test Coverage:
- Display forms: "1:05", "[1:05]", "(1:05)", "01:01:05"
- Seconds forms: "45", "45s", "45 seconds", plain numbers
- Ranges resolve to their start ("0:20-0:49" -> 20)
- Unparseable input: 0 for position math, +infinity for sorting
- Evidence text with embedded [M:SS] tokens
"""

import math

import pytest

from audit_engine.services.timestamps import (
    extract_evidence_timestamp,
    format_seconds,
    is_display_timestamp,
    parse_sort_seconds,
    parse_timestamp,
    try_parse_timestamp,
)


# =============================================================================
# Parsing
# =============================================================================

class TestParseTimestamp:
    """Tests for parse_timestamp (position math, 0 default)."""

    @pytest.mark.parametrize("value,expected", [
        ("1:05", 65.0),
        ("[1:05]", 65.0),
        ("(1:05)", 65.0),
        ("01:01:05", 3665.0),
        ("12:00", 720.0),
        ("45", 45.0),
        ("45s", 45.0),
        ("45 seconds", 45.0),
        (30, 30.0),
        (12.5, 12.5),
    ])
    def test_supported_forms(self, value, expected):
        assert parse_timestamp(value) == expected

    def test_range_uses_start(self):
        """A range such as 0:20-0:49 resolves to its start."""
        assert parse_timestamp("0:20-0:49") == 20.0
        assert parse_timestamp("[1:10 – 1:30]") == 70.0

    @pytest.mark.parametrize("value", [None, "", "   ", "garbage", "n/a", -5, float("nan")])
    def test_unparseable_defaults_to_zero(self, value):
        assert parse_timestamp(value) == 0.0

    def test_bool_is_not_a_timestamp(self):
        assert try_parse_timestamp(True) is None


class TestParseSortSeconds:
    """Tests for parse_sort_seconds (ordering, +infinity default)."""

    def test_parseable_value(self):
        assert parse_sort_seconds("2:00") == 120.0

    def test_unparseable_sorts_last(self):
        assert math.isinf(parse_sort_seconds("unknown"))
        assert math.isinf(parse_sort_seconds(None))

    def test_sorting_puts_unresolved_last(self):
        values = ["unknown", "1:00", "0:10"]
        assert sorted(values, key=parse_sort_seconds) == ["0:10", "1:00", "unknown"]


# =============================================================================
# Display Helpers
# =============================================================================

class TestDisplayTimestamp:
    """Tests for is_display_timestamp and format_seconds."""

    @pytest.mark.parametrize("value,expected", [
        ("1:05", True),
        ("12:30", True),
        (" 0:04 ", True),
        ("0:20-0:49", False),
        ("1:01:05", False),
        ("45s", False),
        (45, False),
        (None, False),
    ])
    def test_is_display_timestamp(self, value, expected):
        assert is_display_timestamp(value) is expected

    @pytest.mark.parametrize("seconds,expected", [
        (0, "0:00"),
        (4, "0:04"),
        (65, "1:05"),
        (65.9, "1:05"),
        (3600, "60:00"),
    ])
    def test_format_seconds(self, seconds, expected):
        assert format_seconds(seconds) == expected

    @pytest.mark.parametrize("seconds", [None, -1, float("nan"), float("inf"), "1:05"])
    def test_format_invalid_input(self, seconds):
        assert format_seconds(seconds) == "0:00"


class TestExtractEvidenceTimestamp:
    """Tests for [M:SS] tokens embedded in evidence text."""

    def test_first_token_wins(self):
        text = "Agent said [0:42] 'recorded line' and again at [1:10]"
        assert extract_evidence_timestamp(text) == 42.0

    def test_hour_form(self):
        assert extract_evidence_timestamp("at [1:02:03] consent given") == 3723.0

    def test_no_token(self):
        assert extract_evidence_timestamp("no timestamp here") is None
        assert extract_evidence_timestamp("(0:42) parentheses are not evidence tokens") is None
        assert extract_evidence_timestamp(None) is None
