"""
Confidence Estimation Service

Heuristic 50-100 confidence per checklist item, derived from how well the automated
decision is evidenced: evidence length, notes detail, sub-check consistency, declared
weight and explicit AUTO-FAIL / PARTIAL markers in the text.

This is a reproducible heuristic for triaging manual review, not a probability.
All adjustments are additive, so their order does not matter.

Also provides the checklist-level evidence summary shown next to the score.
"""

from typing import Iterable, List, Optional, Sequence

from audit_engine.core.config import get_settings
from audit_engine.models.enums import ItemStatus, WeightCategory
from audit_engine.models.schemas import ChecklistItem, ConfidenceSummary


# =============================================================================
# Constants
# =============================================================================

BASE_CONFIDENCE = 70
MIN_CONFIDENCE = 50
MAX_CONFIDENCE = 100

# (minimum exclusive length, bonus), checked in order
EVIDENCE_LENGTH_BONUSES = ((100, 15), (50, 10), (20, 5))
NOTES_LENGTH_BONUSES = ((80, 10), (40, 7), (0, 3))
NO_EVIDENCE_PENALTY = -10

MIXED_SUB_CHECKS_PENALTY = -10
NA_MAJORITY_PENALTY = -5
CONSISTENT_SUB_CHECKS_BONUS = 5

WEIGHT_BONUSES = {
    WeightCategory.CRITICAL: 3,
    WeightCategory.HIGH: 2,
}

AUTO_FAIL_NOTE_BONUS = 5
PARTIAL_PENALTY = -5

AUTO_FAIL_MARKERS = ("AUTO-FAIL", "AUTO FAIL")

# Evidence summary thresholds
QUOTE_MIN_LENGTH = 5
DETAILED_NOTES_MIN_LENGTH = 40
FAIL_REASONING_MIN_LENGTH = 20


def _length_bonus(length: int, table) -> int:
    for threshold, bonus in table:
        if length > threshold:
            return bonus
    return 0


def _has_auto_fail_marker(text: str) -> bool:
    upper = text.upper()
    return any(marker in upper for marker in AUTO_FAIL_MARKERS)


def _sub_check_adjustment(sub_checks: dict) -> int:
    """
    Score sub-check consistency.

    Values are classified by substring: PASS/YES, FAIL/NO, N/A/PARTIAL.
    Mixed pass and fail results are penalised hardest.
    """
    values = [value.upper() for value in sub_checks.values()]
    pass_count = sum(1 for v in values if "PASS" in v or "YES" in v)
    fail_count = sum(1 for v in values if "FAIL" in v or "NO" in v)
    na_count = sum(1 for v in values if "N/A" in v or "PARTIAL" in v)

    if pass_count > 0 and fail_count > 0:
        return MIXED_SUB_CHECKS_PENALTY
    if na_count > pass_count + fail_count:
        return NA_MAJORITY_PENALTY
    return CONSISTENT_SUB_CHECKS_BONUS


def estimate_confidence(item: ChecklistItem) -> int:
    """
    Estimate an item's confidence from its evidence quality.

    Args:
        item: Normalized checklist item

    Returns:
        Integer confidence clamped to [50, 100]
    """
    confidence = BASE_CONFIDENCE
    evidence = item.evidence or ""
    notes = item.notes or ""

    if not evidence:
        confidence += NO_EVIDENCE_PENALTY
    else:
        confidence += _length_bonus(len(evidence), EVIDENCE_LENGTH_BONUSES)

    confidence += _length_bonus(len(notes), NOTES_LENGTH_BONUSES)

    if item.subChecks:
        confidence += _sub_check_adjustment(item.subChecks)

    if item.weightCategory is not None:
        confidence += WEIGHT_BONUSES.get(item.weightCategory, 0)

    if _has_auto_fail_marker(notes):
        confidence += AUTO_FAIL_NOTE_BONUS

    if "PARTIAL" in notes.upper() or "PARTIAL" in evidence.upper():
        confidence += PARTIAL_PENALTY

    return max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, confidence))


def average_confidence(items: Sequence[ChecklistItem]) -> int:
    """Rounded mean item confidence; 0 for an empty checklist."""
    if not items:
        return 0
    return int(sum(item.confidence for item in items) / len(items) + 0.5)


def summarize_confidence(
    items: Sequence[ChecklistItem],
    reviewed_keys: Optional[Iterable[str]] = None,
    review_threshold: Optional[int] = None,
) -> ConfidenceSummary:
    """
    Summarize evidence quality across the checklist.

    An item counts as strongly evidenced when it carries an explicit quote. Items
    missing quotes are passing items without one, or failing items whose notes
    are too brief to explain the failure.

    Args:
        items: Normalized checklist items
        reviewed_keys: Lowercased names of items a reviewer has already handled
        review_threshold: Items below this confidence need manual review
            (defaults to settings.confidence_review_threshold)

    Returns:
        ConfidenceSummary; all zeros for an empty checklist
    """
    if review_threshold is None:
        review_threshold = get_settings().confidence_review_threshold
    reviewed = {key.lower() for key in (reviewed_keys or [])}

    if not items:
        return ConfidenceSummary()

    strong_evidence = 0
    detailed_notes = 0
    consistent_sub_checks = 0
    mixed_sub_checks = 0
    has_auto_fail = False
    has_partial = False
    missing_quotes: List[str] = []
    brief_notes: List[str] = []
    needing_review: List[str] = []

    for item in items:
        notes = item.notes or ""
        evidence = item.evidence or ""

        if item.quote and len(item.quote) > QUOTE_MIN_LENGTH:
            strong_evidence += 1
        elif item.status == ItemStatus.PASS:
            missing_quotes.append(item.name)
        elif len(notes) < FAIL_REASONING_MIN_LENGTH:
            missing_quotes.append(item.name)

        if len(notes) > DETAILED_NOTES_MIN_LENGTH:
            detailed_notes += 1
        else:
            brief_notes.append(item.name)

        if item.subChecks:
            values = [value.upper() for value in item.subChecks.values()]
            passes = sum(1 for v in values if "PASS" in v)
            fails = sum(1 for v in values if "FAIL" in v)
            if passes > 0 and fails > 0:
                mixed_sub_checks += 1
            elif passes > 0 or fails > 0:
                consistent_sub_checks += 1

        if _has_auto_fail_marker(notes):
            has_auto_fail = True
        if "PARTIAL" in notes.upper() or "PARTIAL" in evidence.upper():
            has_partial = True

        if item.confidence < review_threshold and item.name.lower() not in reviewed:
            needing_review.append(item.name)

    total = len(items)
    return ConfidenceSummary(
        total=total,
        strongEvidenceCount=strong_evidence,
        detailedNotesCount=detailed_notes,
        consistentSubChecksCount=consistent_sub_checks,
        mixedSubChecksCount=mixed_sub_checks,
        hasAutoFail=has_auto_fail,
        hasPartialMatches=has_partial,
        evidencePercent=int(strong_evidence / total * 100 + 0.5),
        notesPercent=int(detailed_notes / total * 100 + 0.5),
        averageConfidence=average_confidence(items),
        itemsMissingQuotes=missing_quotes,
        itemsWithBriefNotes=brief_notes,
        itemsNeedingReview=needing_review,
    )
