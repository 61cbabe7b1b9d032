"""
Checklist Normalizer Test Module

Tests the ChecklistNormalizer in audit_engine/services/checklist.py.

Test Coverage:
- Array, mapping and JSON-string payload shapes
- Status classes (met / not met / n/a, unknown -> FAIL)
- Timestamp resolution priority (numeric seconds > strict M:SS > tolerant parse)
- Stable ordering with unresolved items last
- Provided confidence normalization and estimator fallback
- Malformed payloads never raise
"""

import json

import pytest

from audit_engine.models.enums import ItemStatus, WeightCategory
from audit_engine.services.checklist import (
    build_item,
    humanize_key,
    is_empty_checklist,
    normalize_checklist,
    normalize_confidence,
    normalize_status,
    resolve_item_time,
)


# =============================================================================
# Status and Label Helpers
# =============================================================================

class TestNormalizeStatus:
    """Tests for status class mapping."""

    @pytest.mark.parametrize("value", ["met", "MET", "pass", "Yes", "true", " pass "])
    def test_met_spellings(self, value):
        assert normalize_status(value) == ItemStatus.PASS

    @pytest.mark.parametrize("value", ["not_met", "fail", "No", "false"])
    def test_not_met_spellings(self, value):
        assert normalize_status(value) == ItemStatus.FAIL

    @pytest.mark.parametrize("value", ["n/a", "N/A", "na", "not_applicable", "Not Applicable"])
    def test_na_spellings(self, value):
        assert normalize_status(value) == ItemStatus.NA

    @pytest.mark.parametrize("value", ["partial", "unclear", "", None])
    def test_unknown_status_is_fail(self, value):
        """Only the met spellings earn points; anything unrecognised is FAIL-class."""
        assert normalize_status(value) == ItemStatus.FAIL


class TestHumanizeKey:

    @pytest.mark.parametrize("key,expected", [
        ("recorded_line_disclosure", "Recorded Line Disclosure"),
        ("verbalConsent", "Verbal Consent"),
        ("handoff", "Handoff"),
    ])
    def test_humanize(self, key, expected):
        assert humanize_key(key) == expected


# =============================================================================
# Confidence Normalization
# =============================================================================

class TestNormalizeConfidence:
    """Tests for provided-confidence normalization."""

    @pytest.mark.parametrize("value,expected", [
        (0.95, 95),
        (1, 100),
        (85, 85),
        ("88", 88),
        (10.6, 11),
        (150, 100),
    ])
    def test_valid_values(self, value, expected):
        assert normalize_confidence(value) == expected

    @pytest.mark.parametrize("value", [0, 0.05, 0.1, 10, None, True, "abc", float("nan")])
    def test_untrusted_or_invalid_values(self, value):
        """Values at or below 10 after scaling fall back to the estimator."""
        assert normalize_confidence(value) is None

    def test_zero_confidence_uses_estimator(self):
        item = build_item({"name": "Verbal Consent", "status": "met", "confidence": 0})
        assert item.confidenceEstimated is True
        assert 50 <= item.confidence <= 100

    def test_fractional_confidence_is_scaled(self):
        item = build_item({"name": "Verbal Consent", "status": "met", "confidence": 0.95})
        assert item.confidence == 95
        assert item.confidenceEstimated is False

    def test_confidence_score_alias(self):
        item = build_item({"name": "Verbal Consent", "status": "met", "confidenceScore": 72})
        assert item.confidence == 72


# =============================================================================
# Timestamp Resolution
# =============================================================================

class TestResolveItemTime:
    """Tests for the per-item timestamp priority list."""

    def test_numeric_seconds_first(self):
        assert resolve_item_time({"time_seconds": 15, "time": "0:20"}) == (15.0, "0:20")

    def test_numeric_seconds_without_display(self):
        assert resolve_item_time({"timeSeconds": 12, "time": "bad"}) == (12.0, "0:12")

    def test_sentinel_is_skipped(self):
        """-1 means "no timestamp"; the display string is used instead."""
        assert resolve_item_time({"time_seconds": -1, "time": "0:30"}) == (30.0, "0:30")

    def test_strict_display_over_other_fields(self):
        assert resolve_item_time({"time": "bad", "timestamp": "1:05"}) == (65.0, "1:05")

    def test_range_resolves_to_start(self):
        assert resolve_item_time({"time": "0:20-0:49"}) == (20.0, "0:20")

    def test_unresolved(self):
        assert resolve_item_time({}) == (None, None)
        assert resolve_item_time({"time": "whenever"}) == (None, None)


# =============================================================================
# Payload Shapes
# =============================================================================

class TestNormalizeArrayChecklist:
    """Tests for array-shaped payloads."""

    def test_order_and_statuses(self, sample_checklist_array):
        items = normalize_checklist(sample_checklist_array)

        assert [item.name for item in items] == [
            "Recorded Line Disclosure",
            "Eligibility Verification",
            "Verbal Consent",
            "Benefit Mention",
        ]
        assert [item.timeSeconds for item in items] == [4.0, 45.0, 70.0, None]
        assert [item.status for item in items] == [
            ItemStatus.PASS, ItemStatus.FAIL, ItemStatus.PASS, ItemStatus.PASS,
        ]

    def test_string_elements_pass(self, sample_checklist_array):
        items = normalize_checklist(sample_checklist_array)
        benefit = items[-1]
        assert benefit.name == "Benefit Mention"
        assert benefit.status == ItemStatus.PASS
        assert benefit.time is None

    def test_fields_carried(self, sample_checklist_array):
        items = {item.name: item for item in normalize_checklist(sample_checklist_array)}

        assert items["Verbal Consent"].weightCategory == WeightCategory.CRITICAL
        assert items["Recorded Line Disclosure"].quote == "This call is on a recorded line"
        assert items["Recorded Line Disclosure"].time == "0:04"
        assert items["Eligibility Verification"].rawStatus == "not_met"

    def test_positional_name_fallback(self):
        items = normalize_checklist([{"status": "met"}, {"requirement_name": "Benefit Mention"}])
        assert [item.name for item in items] == ["Item 1", "Benefit Mention"]

    def test_unresolved_items_keep_input_order(self):
        items = normalize_checklist(["Zeta", "Alpha", {"name": "Timed", "time": "0:10"}])
        assert [item.name for item in items] == ["Timed", "Zeta", "Alpha"]

    def test_reasoning_fills_notes(self):
        items = normalize_checklist([{"name": "Verbal Consent", "status": "fail", "reasoning": "No consent"}])
        assert items[0].notes == "No consent"

    def test_sub_checks_and_quote_aliases(self):
        items = normalize_checklist([{
            "name": "Eligibility Verification",
            "status": "met",
            "sub_checks": {"medicare": "PASS", "medicaid": "YES"},
            "evidence_quote": "I have Medicare parts A and B",
        }])
        assert items[0].subChecks == {"medicare": "PASS", "medicaid": "YES"}
        assert items[0].quote == "I have Medicare parts A and B"


class TestNormalizeMappingChecklist:
    """Tests for mapping-shaped payloads."""

    def test_keys_become_labels(self, sample_checklist_mapping):
        items = normalize_checklist(sample_checklist_mapping)

        assert [item.name for item in items] == [
            "Recorded Line Disclosure",
            "Company Identification",
            "Handoff Execution",
            "Geographic Verification",
        ]
        assert [item.status for item in items] == [
            ItemStatus.PASS, ItemStatus.FAIL, ItemStatus.PASS, ItemStatus.NA,
        ]
        assert items[2].timeSeconds == 150.0

    def test_provided_confidence(self, sample_checklist_mapping):
        items = normalize_checklist(sample_checklist_mapping)
        assert items[0].confidence == 95
        assert items[0].confidenceEstimated is False
        assert items[1].confidenceEstimated is True

    def test_missing_status_defaults_to_pass(self):
        items = normalize_checklist({"verbal_consent": {"time": "1:00"}, "benefit_mention": None})
        assert all(item.status == ItemStatus.PASS for item in items)


class TestNormalizeJsonChecklist:
    """Tests for JSON-string payloads and malformed input."""

    def test_json_string_matches_decoded(self, sample_checklist_array):
        from_json = normalize_checklist(json.dumps(sample_checklist_array))
        from_list = normalize_checklist(sample_checklist_array)
        assert [item.model_dump() for item in from_json] == [item.model_dump() for item in from_list]

    @pytest.mark.parametrize("payload", [None, "", "{not json", "42", 42, []])
    def test_malformed_or_empty_payloads(self, payload):
        assert normalize_checklist(payload) == []

    def test_is_empty_checklist(self):
        assert is_empty_checklist(None)
        assert is_empty_checklist("[]")
        assert is_empty_checklist({})
        assert is_empty_checklist([1, 2])
        assert not is_empty_checklist(["Verbal Consent"])

    def test_deterministic(self, sample_checklist_mapping):
        first = normalize_checklist(sample_checklist_mapping)
        second = normalize_checklist(sample_checklist_mapping)
        assert first == second
