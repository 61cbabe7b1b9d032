"""
Auto-Fail Evaluator Service

Partitions auto-fail reasons into critical violations and warning-only notes, and
decides whether auto-fail is active for a call.

Rules:
- A reason is a warning if its `severity` field says so, or if its code is in the
  warning-only code set (AF-13, poor call quality) regardless of declared severity.
- Auto-fail is triggered only when the upstream flag is set AND at least one critical
  reason remains. A flag backed solely by warnings is not a hard fail.
- A reviewer's auto-fail override is carried alongside `triggered` without changing
  it; scoring decides how to display an overridden auto-fail.

Reasons arrive either as plain strings ("AF-09: Recorded line disclosure missing")
or as structured records with code/violation/evidence/timestamp fields.
"""

import re
from typing import Any, Dict, Iterable, List, Optional

from audit_engine.core.config import get_settings
from audit_engine.models.enums import AutoFailSeverity
from audit_engine.models.schemas import AutoFailEvaluation, AutoFailReason
from audit_engine.services.timestamps import NO_TIMESTAMP_SENTINEL

CODE_PREFIX_PATTERN = re.compile(r"^\s*(AF-\d+)\s*[:\-–—]?\s*(.*)$", re.IGNORECASE)

MANUAL_EVIDENCE_DEFAULT = "Manually flagged by QA reviewer"
MANUAL_SPEAKER = "system"


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _seconds(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def normalize_reason(raw: Any, index: int = 0) -> Optional[AutoFailReason]:
    """
    Normalize one raw auto-fail reason.

    Args:
        raw: String or structured record
        index: Position in the reason list, used for uncoded string reasons

    Returns:
        AutoFailReason, or None for empty/unsupported entries
    """
    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            return None
        match = CODE_PREFIX_PATTERN.match(text)
        if match:
            return AutoFailReason(
                code=match.group(1).upper(),
                violation=match.group(2).strip() or match.group(1).upper(),
            )
        return AutoFailReason(code=f"REASON-{index + 1}", violation=text)

    if not isinstance(raw, dict):
        return None

    code = _text(raw.get("code") or raw.get("af_code") or raw.get("afCode"))
    violation = _text(
        raw.get("violation") or raw.get("name") or raw.get("reason") or raw.get("description")
    )
    severity_text = (_text(raw.get("severity")) or "").lower()

    return AutoFailReason(
        code=(code or f"REASON-{index + 1}").upper(),
        violation=violation or code or "",
        description=_text(raw.get("description")),
        evidence=_text(raw.get("evidence")),
        timestamp=_text(raw.get("timestamp") or raw.get("time")),
        timeSeconds=_seconds(raw.get("time_seconds", raw.get("timeSeconds"))),
        severity=(
            AutoFailSeverity.WARNING
            if severity_text == AutoFailSeverity.WARNING.value
            else AutoFailSeverity.CRITICAL
        ),
        speaker=_text(raw.get("speaker")),
    )


def evaluate_auto_fail(
    flagged: bool,
    reasons: Optional[Iterable[Any]],
    overridden: bool = False,
    warning_only_codes: Optional[Iterable[str]] = None,
) -> AutoFailEvaluation:
    """
    Partition reasons and determine whether auto-fail is active.

    Args:
        flagged: Upstream auto-fail flag
        reasons: Raw reason list (strings or records)
        overridden: Reviewer marked the auto-fail as a false positive
        warning_only_codes: Codes never treated as critical
            (defaults to settings.warning_only_codes)

    Returns:
        AutoFailEvaluation with critical/warning partitions and `triggered`
    """
    if warning_only_codes is None:
        warning_only_codes = get_settings().warning_only_codes
    warning_codes = {code.upper() for code in warning_only_codes}

    critical: List[AutoFailReason] = []
    warnings: List[AutoFailReason] = []

    for index, raw in enumerate(reasons or []):
        reason = normalize_reason(raw, index)
        if reason is None:
            continue
        if reason.severity == AutoFailSeverity.WARNING or reason.code in warning_codes:
            warnings.append(reason.model_copy(update={"severity": AutoFailSeverity.WARNING}))
        else:
            critical.append(reason)

    return AutoFailEvaluation(
        flagged=bool(flagged),
        triggered=bool(flagged) and len(critical) > 0,
        overridden=bool(overridden),
        critical=critical,
        warnings=warnings,
    )


def build_manual_auto_fail_reason(
    code: str,
    reason: str,
    reviewed_by: str,
    violation: Optional[str] = None,
    evidence: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Build the reason record appended when a reviewer flags an auto-fail by hand.

    The record has no position on the recording: `time_seconds` carries the -1
    sentinel so the timeline skips it.
    """
    return {
        "code": code,
        "violation": violation or code,
        "evidence": evidence or MANUAL_EVIDENCE_DEFAULT,
        "timestamp": None,
        "time_seconds": NO_TIMESTAMP_SENTINEL,
        "speaker": MANUAL_SPEAKER,
        "additional_info": f"Manual auto-fail by {reviewed_by}: {reason}",
    }
