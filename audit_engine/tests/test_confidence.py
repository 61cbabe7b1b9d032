"""
Confidence Estimator Test Module

Tests the heuristic confidence estimator and the checklist evidence summary in
audit_engine/services/confidence.py.

Test Coverage:
- Base value and each additive adjustment
- Clamping to [50, 100]
- Average confidence rounding
- Evidence summary counts, percentages and review list
"""

from audit_engine.models.enums import ItemStatus, WeightCategory
from audit_engine.models.schemas import ChecklistItem
from audit_engine.services.confidence import (
    average_confidence,
    estimate_confidence,
    summarize_confidence,
)


def make_item(**overrides) -> ChecklistItem:
    """Create a ChecklistItem with neutral defaults."""
    fields = {"name": "Verbal Consent", "status": ItemStatus.PASS}
    fields.update(overrides)
    return ChecklistItem(**fields)


# =============================================================================
# Estimator
# =============================================================================

class TestEstimateConfidence:
    """Tests for estimate_confidence adjustments."""

    def test_no_evidence_no_notes(self):
        """Base 70, -10 for missing evidence."""
        assert estimate_confidence(make_item()) == 60

    def test_evidence_length_bonuses(self):
        assert estimate_confidence(make_item(evidence="x" * 21)) == 75
        assert estimate_confidence(make_item(evidence="x" * 51)) == 80
        assert estimate_confidence(make_item(evidence="x" * 101)) == 85
        assert estimate_confidence(make_item(evidence="x" * 20)) == 70

    def test_notes_length_bonuses(self):
        evidence = "x" * 10
        assert estimate_confidence(make_item(evidence=evidence, notes="short")) == 73
        assert estimate_confidence(make_item(evidence=evidence, notes="n" * 41)) == 77
        assert estimate_confidence(make_item(evidence=evidence, notes="n" * 81)) == 80

    def test_mixed_sub_checks_penalty(self):
        item = make_item(evidence="x" * 30, subChecks={"medicare": "PASS", "medicaid": "FAIL"})
        assert estimate_confidence(item) == 65

    def test_consistent_sub_checks_bonus(self):
        item = make_item(evidence="x" * 30, subChecks={"medicare": "PASS", "medicaid": "YES"})
        assert estimate_confidence(item) == 80

    def test_na_majority_penalty(self):
        item = make_item(
            evidence="x" * 30,
            subChecks={"a": "N/A", "b": "PARTIAL", "c": "PASS"},
        )
        assert estimate_confidence(item) == 70

    def test_weight_bonuses(self):
        evidence = "x" * 30
        assert estimate_confidence(make_item(evidence=evidence, weightCategory=WeightCategory.CRITICAL)) == 78
        assert estimate_confidence(make_item(evidence=evidence, weightCategory=WeightCategory.HIGH)) == 77
        assert estimate_confidence(make_item(evidence=evidence, weightCategory=WeightCategory.LOW)) == 75

    def test_auto_fail_note_bonus(self):
        item = make_item(notes="AUTO-FAIL: agent hung up")
        assert estimate_confidence(item) == 68

    def test_partial_penalty(self):
        item = make_item(evidence="partial match of disclosure")
        assert estimate_confidence(item) == 70

    def test_clamped_to_range(self):
        strong = make_item(
            evidence="x" * 120,
            notes="n" * 90,
            subChecks={"a": "PASS"},
            weightCategory=WeightCategory.CRITICAL,
        )
        weak = make_item(notes="partial", subChecks={"a": "PASS", "b": "FAIL"})

        assert estimate_confidence(strong) == 100
        assert estimate_confidence(weak) == 50

    def test_deterministic(self):
        item = make_item(evidence="Customer agreed", notes="Clear consent")
        assert estimate_confidence(item) == estimate_confidence(item)


class TestAverageConfidence:

    def test_empty(self):
        assert average_confidence([]) == 0

    def test_rounds_half_up(self):
        items = [make_item(confidence=80), make_item(confidence=91)]
        assert average_confidence(items) == 86

    def test_includes_na_items(self):
        items = [make_item(confidence=90), make_item(status=ItemStatus.NA, confidence=60)]
        assert average_confidence(items) == 75


# =============================================================================
# Evidence Summary
# =============================================================================

class TestSummarizeConfidence:
    """Tests for summarize_confidence."""

    def test_empty_checklist(self):
        summary = summarize_confidence([], review_threshold=90)
        assert summary.total == 0
        assert summary.evidencePercent == 0
        assert summary.itemsNeedingReview == []

    def test_counts_and_lists(self):
        items = [
            make_item(
                name="Recorded Line Disclosure",
                quote="This call is on a recorded line",
                notes="Disclosure read verbatim at the very start of the call.",
                confidence=95,
                subChecks={"a": "PASS", "b": "PASS"},
            ),
            make_item(name="Benefit Mention", confidence=70),
            make_item(
                name="Eligibility Verification",
                status=ItemStatus.FAIL,
                notes="Agent never asked about Medicaid coverage.",
                confidence=80,
                subChecks={"medicare": "PASS", "medicaid": "FAIL"},
            ),
            make_item(
                name="Verbal Consent",
                status=ItemStatus.FAIL,
                notes="AUTO-FAIL",
                evidence="partial consent",
                confidence=60,
            ),
        ]

        summary = summarize_confidence(items, review_threshold=90)

        assert summary.total == 4
        assert summary.strongEvidenceCount == 1
        assert summary.detailedNotesCount == 2
        assert summary.consistentSubChecksCount == 1
        assert summary.mixedSubChecksCount == 1
        assert summary.hasAutoFail is True
        assert summary.hasPartialMatches is True
        assert summary.evidencePercent == 25
        assert summary.notesPercent == 50
        assert summary.averageConfidence == 76
        assert summary.itemsMissingQuotes == ["Benefit Mention", "Verbal Consent"]
        assert summary.itemsWithBriefNotes == ["Benefit Mention", "Verbal Consent"]
        assert summary.itemsNeedingReview == [
            "Benefit Mention", "Eligibility Verification", "Verbal Consent",
        ]

    def test_reviewed_items_not_flagged(self):
        items = [make_item(name="Benefit Mention", confidence=60)]
        summary = summarize_confidence(items, reviewed_keys={"benefit mention"}, review_threshold=90)
        assert summary.itemsNeedingReview == []

    def test_default_threshold_from_settings(self):
        items = [make_item(confidence=89), make_item(name="Handoff Execution", confidence=90)]
        summary = summarize_confidence(items)
        assert summary.itemsNeedingReview == ["Verbal Consent"]
