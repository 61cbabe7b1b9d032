"""
Scoring Engine Service

Weighted compliance scoring with an auditable, step-by-step breakdown.

Each non-N/A checklist item contributes its weight to `possible`; met items also
contribute it to `earned`. Weights come from a static table keyed by requirement
category; unmatched items fall back to the default weight, never to exclusion.

Effective status per item follows the override resolution order
(session > persisted > original). An item is met iff its effective status is one
of met/pass/yes/true.

Auto-fail semantics:
- Triggered and not overridden: display score is 0 (score locked).
- Triggered and overridden: display score is the weighted score, labelled "(Override)".

Status bands (used for the stored call status and risk level):
- >= 90: Compliant / Low
- 75-89: Requires Review / Medium
- < 75: Non-Compliant / High
"""

import logging
from typing import Dict, Mapping, Optional, Sequence, Tuple

from audit_engine.core.config import get_settings
from audit_engine.models.enums import (
    ComplianceStatus,
    ItemStatus,
    OverrideSource,
    RiskLevel,
    StepType,
)
from audit_engine.models.schemas import (
    AutoFailEvaluation,
    ChecklistItem,
    Override,
    ScoreResult,
    ScoreStep,
)
from audit_engine.services.confidence import average_confidence
from audit_engine.services.overrides import SessionOverrides, resolve_status

logger = logging.getLogger(__name__)


# =============================================================================
# Weight Table
# Checked in definition order; first match wins.
# =============================================================================

SCORING_WEIGHTS: Dict[str, int] = {
    "recorded line disclosure": 20,
    "company identification": 15,
    "geographic verification": 15,
    "eligibility verification": 20,
    "verbal consent": 15,
    "handoff execution": 10,
    "benefit mention": 5,
}

# Leading words shorter than this never match a table key on their own
MIN_LEADING_WORD_LENGTH = 3

COMPLIANT_MIN_SCORE = 90
REVIEW_MIN_SCORE = 75

OVERRIDE_LABEL_SUFFIX = " (Override)"


def get_item_weight(
    item_name: str,
    weight_table: Optional[Mapping[str, int]] = None,
    default_weight: Optional[int] = None,
) -> int:
    """
    Look up an item's weight.

    A table key matches when the lowercased item name contains it, or when the key
    contains the item name's leading word (e.g. "Eligibility check" matches
    "eligibility verification").

    Args:
        item_name: Item name as displayed
        weight_table: Category to points mapping (defaults to SCORING_WEIGHTS)
        default_weight: Weight for unmatched items (defaults to settings)

    Returns:
        Points for the item
    """
    table = SCORING_WEIGHTS if weight_table is None else weight_table
    if default_weight is None:
        default_weight = get_settings().default_item_weight

    name = item_name.strip().lower()
    words = name.split()
    leading_word = words[0] if words else ""

    for key, weight in table.items():
        if key in name:
            return weight
        if len(leading_word) >= MIN_LEADING_WORD_LENGTH and leading_word in key:
            return weight

    return default_weight


def classify_compliance(score: int) -> Tuple[ComplianceStatus, RiskLevel]:
    """Map a 0-100 score onto its compliance status band and risk level."""
    if score >= COMPLIANT_MIN_SCORE:
        return ComplianceStatus.COMPLIANT, RiskLevel.LOW
    if score >= REVIEW_MIN_SCORE:
        return ComplianceStatus.REQUIRES_REVIEW, RiskLevel.MEDIUM
    return ComplianceStatus.NON_COMPLIANT, RiskLevel.HIGH


def _build_step(
    item: ChecklistItem,
    weight: int,
    met: bool,
    source: OverrideSource,
) -> ScoreStep:
    overridden = source != OverrideSource.ORIGINAL
    if met:
        return ScoreStep(
            label=f"{item.name} (Verified)" if overridden else item.name,
            itemName=item.name,
            earnedValue=weight,
            possibleValue=weight,
            type=StepType.POSITIVE,
            description="Manually verified by QA" if overridden else "Compliance verified",
            overridden=overridden,
            overrideSource=source,
        )
    return ScoreStep(
        label=item.name,
        itemName=item.name,
        earnedValue=0,
        possibleValue=weight,
        type=StepType.NEGATIVE,
        description="Marked not met by QA" if overridden else "Not verified in call",
        overridden=overridden,
        overrideSource=source,
    )


def calculate_score(
    items: Sequence[ChecklistItem],
    session_overrides: Optional[SessionOverrides] = None,
    persisted_overrides: Optional[Mapping[str, Override]] = None,
    auto_fail: Optional[AutoFailEvaluation] = None,
    auto_fail_overridden: Optional[bool] = None,
    weight_table: Optional[Mapping[str, int]] = None,
    default_weight: Optional[int] = None,
) -> ScoreResult:
    """
    Score a normalized checklist.

    Args:
        items: Normalized checklist items
        session_overrides: Unsaved reviewer overrides, item key to PASS/FAIL
        persisted_overrides: Stored overrides parsed from qaNotes
        auto_fail: Auto-fail evaluation for the call
        auto_fail_overridden: Reviewer override of the auto-fail; defaults to
            the evaluation's own `overridden` flag
        weight_table: Category weights (defaults to SCORING_WEIGHTS)
        default_weight: Weight for unmatched items (defaults to settings)

    Returns:
        ScoreResult with steps, totals, raw and display score. An empty checklist
        yields possible=0 and score 0.
    """
    steps = []
    earned = 0
    possible = 0

    for item in items:
        if item.status == ItemStatus.NA:
            continue

        status, source = resolve_status(
            item.name, item.status, session_overrides, persisted_overrides
        )
        met = status == ItemStatus.PASS
        weight = get_item_weight(item.name, weight_table, default_weight)

        possible += weight
        if met:
            earned += weight
        steps.append(_build_step(item, weight, met, source))

    score_percent = int(earned / possible * 100 + 0.5) if possible > 0 else 0

    triggered = bool(auto_fail and auto_fail.triggered)
    if auto_fail_overridden is None:
        auto_fail_overridden = bool(auto_fail and auto_fail.overridden)

    locked = triggered and not auto_fail_overridden
    display = 0 if locked else score_percent
    label = f"{display}%"
    if triggered and auto_fail_overridden:
        label += OVERRIDE_LABEL_SUFFIX

    status_band, risk = classify_compliance(display)

    logger.debug(
        f"Scored {len(steps)} items: {earned}/{possible} = {score_percent}% "
        f"(display {label})"
    )

    return ScoreResult(
        steps=steps,
        earned=earned,
        possible=possible,
        scorePercent=score_percent,
        displayScore=display,
        displayLabel=label,
        autoFailLocked=locked,
        autoFailOverridden=triggered and bool(auto_fail_overridden),
        averageConfidence=average_confidence(items),
        complianceStatus=status_band,
        riskLevel=risk,
    )


def needs_score_sync(
    calculated: int,
    stored: int,
    possible: int,
    tolerance: Optional[int] = None,
) -> bool:
    """
    Decide whether a recomputed score should be written back to the store.

    A sync is needed only when something was scored (possible > 0), the score
    is non-zero, and it differs from the stored value by at least the tolerance.
    """
    if tolerance is None:
        tolerance = get_settings().score_sync_tolerance
    if possible <= 0 or calculated == 0:
        return False
    return abs(calculated - stored) >= tolerance
