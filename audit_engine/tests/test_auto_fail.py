"""
Auto-Fail Evaluator Test Module

Tests reason normalization, critical/warning partitioning and the triggered flag in
audit_engine/services/auto_fail.py.

Test Coverage:
- String reasons with and without an AF-NN code prefix
- Structured reasons with code aliases, severity and timestamps
- Warning-only codes (AF-13) regardless of declared severity
- Triggered only when flagged AND a critical reason remains
- Manual auto-fail reason records
"""

import pytest

from audit_engine.models.enums import AutoFailSeverity
from audit_engine.services.auto_fail import (
    build_manual_auto_fail_reason,
    evaluate_auto_fail,
    normalize_reason,
)


# =============================================================================
# Reason Normalization
# =============================================================================

class TestNormalizeReason:
    """Tests for normalize_reason."""

    def test_string_with_code(self):
        reason = normalize_reason("AF-09: Recorded line disclosure missing")
        assert reason.code == "AF-09"
        assert reason.violation == "Recorded line disclosure missing"
        assert reason.severity == AutoFailSeverity.CRITICAL

    def test_string_code_only(self):
        reason = normalize_reason("af-02")
        assert reason.code == "AF-02"
        assert reason.violation == "AF-02"

    def test_uncoded_string(self):
        reason = normalize_reason("Agent was rude", index=2)
        assert reason.code == "REASON-3"
        assert reason.violation == "Agent was rude"

    def test_structured_reason(self):
        reason = normalize_reason({
            "code": "AF-05",
            "violation": "Hung up on customer",
            "evidence": "[2:14] Agent disconnected",
            "timestamp": "2:14",
            "time_seconds": 134,
            "speaker": "agent",
        })
        assert reason.code == "AF-05"
        assert reason.violation == "Hung up on customer"
        assert reason.timestamp == "2:14"
        assert reason.timeSeconds == 134.0
        assert reason.speaker == "agent"

    def test_structured_aliases(self):
        reason = normalize_reason({"af_code": "af-07", "reason": "Misrepresentation", "time": "1:00"})
        assert reason.code == "AF-07"
        assert reason.violation == "Misrepresentation"
        assert reason.timestamp == "1:00"

    def test_warning_severity(self):
        reason = normalize_reason({"code": "AF-11", "severity": "Warning"})
        assert reason.severity == AutoFailSeverity.WARNING

    @pytest.mark.parametrize("raw", ["", "   ", None, 42, ["AF-01"]])
    def test_unsupported_entries(self, raw):
        assert normalize_reason(raw) is None


# =============================================================================
# Evaluation
# =============================================================================

class TestEvaluateAutoFail:
    """Tests for evaluate_auto_fail."""

    def test_flagged_with_critical_reason(self):
        result = evaluate_auto_fail(True, ["AF-09: Recorded line disclosure missing"])
        assert result.triggered is True
        assert result.flagged is True
        assert [r.code for r in result.critical] == ["AF-09"]
        assert result.warnings == []

    def test_warning_only_code_never_triggers(self):
        """AF-13 is a warning even when declared critical."""
        result = evaluate_auto_fail(
            True,
            [{"code": "AF-13", "violation": "Poor call quality", "severity": "critical"}],
        )
        assert result.triggered is False
        assert result.critical == []
        assert [r.code for r in result.warnings] == ["AF-13"]
        assert result.warnings[0].severity == AutoFailSeverity.WARNING

    def test_mixed_reasons(self):
        result = evaluate_auto_fail(True, ["AF-13: Poor call quality", "AF-02: No consent"])
        assert result.triggered is True
        assert [r.code for r in result.critical] == ["AF-02"]
        assert [r.code for r in result.warnings] == ["AF-13"]

    def test_not_flagged(self):
        result = evaluate_auto_fail(False, ["AF-02: No consent"])
        assert result.triggered is False
        assert len(result.critical) == 1

    def test_flagged_without_reasons(self):
        result = evaluate_auto_fail(True, [])
        assert result.triggered is False

    def test_override_does_not_change_triggered(self):
        result = evaluate_auto_fail(True, ["AF-02: No consent"], overridden=True)
        assert result.triggered is True
        assert result.overridden is True

    def test_custom_warning_codes(self):
        result = evaluate_auto_fail(True, ["AF-02: No consent"], warning_only_codes=["af-02"])
        assert result.triggered is False
        assert [r.code for r in result.warnings] == ["AF-02"]

    def test_none_reasons(self):
        result = evaluate_auto_fail(False, None)
        assert result.critical == [] and result.warnings == []


class TestManualAutoFailReason:

    def test_record_fields(self):
        reason = build_manual_auto_fail_reason("AF-04", "Agent misquoted benefits", "jordan")
        assert reason["code"] == "AF-04"
        assert reason["violation"] == "AF-04"
        assert reason["evidence"] == "Manually flagged by QA reviewer"
        assert reason["time_seconds"] == -1
        assert reason["speaker"] == "system"
        assert reason["additional_info"] == "Manual auto-fail by jordan: Agent misquoted benefits"

    def test_manual_reason_normalizes_as_critical(self):
        raw = build_manual_auto_fail_reason("AF-04", "Misquote", "jordan", violation="Misquoted benefits")
        result = evaluate_auto_fail(True, [raw])
        assert result.triggered is True
        assert result.critical[0].violation == "Misquoted benefits"
        assert result.critical[0].timeSeconds == -1.0
