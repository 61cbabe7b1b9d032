"""
Checklist Normalizer Service

Converts the compliance checklist produced by upstream analysis into one canonical,
ordered list of ChecklistItem models. Upstream payloads arrive in three shapes:

- Array: `[{"name": ..., "status": ...}, "Recorded Line Disclosure", ...]`
  String elements become passing items; objects keep their fields and get a name
  from `name` / `requirement` / `requirement_name` / positional index.
- Mapping: `{"recorded_line": {"status": "met", ...}, "verbal_consent": "fail"}`
  Keys become Title Case labels unless the value carries its own `name`.
- JSON string of either of the above.

Everything downstream of this module works on ChecklistItem only.

Timestamp resolution uses one ordered priority list per item (see TIME_SECONDS_FIELDS
and TIME_STRING_FIELDS); items without a resolvable timestamp sort last while keeping
their relative input order.
"""

import json
import logging
import math
import re
from typing import Any, Dict, List, Optional, Tuple

from audit_engine.models.enums import ItemStatus, WeightCategory
from audit_engine.models.schemas import ChecklistItem
from audit_engine.services.confidence import estimate_confidence
from audit_engine.services.timestamps import (
    NO_TIMESTAMP_SENTINEL,
    format_seconds,
    is_display_timestamp,
    parse_sort_seconds,
    try_parse_timestamp,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Field Priority Lists
# =============================================================================

NAME_FIELDS: Tuple[str, ...] = ("name", "requirement", "requirement_name")

# Explicit numeric seconds, highest priority
TIME_SECONDS_FIELDS: Tuple[str, ...] = ("time_seconds", "timeSeconds", "seconds")

# Display strings, checked for the strict M:SS form first, then tolerantly
TIME_STRING_FIELDS: Tuple[str, ...] = (
    "time",
    "timestamp",
    "start_time",
    "startTime",
    "time_stamp",
    "start",
)

CONFIDENCE_FIELDS: Tuple[str, ...] = ("confidence", "confidence_score", "confidenceScore")
SUB_CHECK_FIELDS: Tuple[str, ...] = ("sub_checks", "subChecks")
QUOTE_FIELDS: Tuple[str, ...] = ("quote", "evidence_quote", "transcript_quote")


# =============================================================================
# Status Classes
# =============================================================================

MET_STATUSES = frozenset({"met", "pass", "yes", "true"})
NOT_MET_STATUSES = frozenset({"not_met", "fail", "no", "false"})
NA_STATUSES = frozenset({"n/a", "na", "not_applicable", "not applicable"})

# Confidence values at or below this (after normalization) are not trusted
MIN_TRUSTED_CONFIDENCE = 10


def normalize_status(value: Any) -> ItemStatus:
    """
    Map an upstream status value onto its canonical class.

    Unrecognised values are FAIL-class: only the met spellings earn points.
    """
    text = str(value).strip().lower() if value is not None else ""
    if text in MET_STATUSES:
        return ItemStatus.PASS
    if text in NA_STATUSES:
        return ItemStatus.NA
    return ItemStatus.FAIL


def humanize_key(key: str) -> str:
    """
    Convert a snake_case or camelCase mapping key into a Title Case label.

    Examples:
        >>> humanize_key("recorded_line_disclosure")
        'Recorded Line Disclosure'
        >>> humanize_key("verbalConsent")
        'Verbal Consent'
    """
    label = key.replace("_", " ")
    label = re.sub(r"([a-z])([A-Z])", r"\1 \2", label)
    label = re.sub(r"\b\w", lambda match: match.group(0).upper(), label)
    return label.strip()


def normalize_confidence(value: Any) -> Optional[int]:
    """
    Normalize a provided confidence value to an integer percentage.

    Values at or below 1 are fractions and are scaled by 100. A normalized value
    at or below 10 is untrustworthy and yields None, so the caller falls back to
    the estimator.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None

    if number <= 1:
        number *= 100
    rounded = int(math.floor(number + 0.5))
    if rounded <= MIN_TRUSTED_CONFIDENCE:
        return None
    return min(100, rounded)


# =============================================================================
# Field Helpers
# =============================================================================

def _first_present(raw: Dict[str, Any], fields: Tuple[str, ...]) -> Any:
    for field in fields:
        value = raw.get(field)
        if value is not None and value != "":
            return value
    return None


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, list):
        return " ".join(str(part) for part in value if part is not None)
    return str(value)


def _sub_checks(raw: Dict[str, Any]) -> Dict[str, str]:
    value = _first_present(raw, SUB_CHECK_FIELDS)
    if not isinstance(value, dict):
        return {}
    return {str(label): _as_text(status) for label, status in value.items()}


def _weight_category(raw: Dict[str, Any]) -> Optional[WeightCategory]:
    weight = raw.get("weight")
    if not isinstance(weight, str):
        return None
    try:
        return WeightCategory(weight.strip().upper())
    except ValueError:
        return None


def resolve_item_time(raw: Dict[str, Any]) -> Tuple[Optional[float], Optional[str]]:
    """
    Resolve an item's timestamp using the field priority list.

    Priority:
        1. Explicit numeric seconds field (non-negative, not the -1 sentinel)
        2. A display string in strict M:SS form
        3. Any other parseable time string (e.g. a "0:20-0:49" range)

    Returns:
        Tuple of (seconds or None, display string or None)
    """
    display = None
    for field in TIME_STRING_FIELDS:
        candidate = raw.get(field)
        if is_display_timestamp(candidate):
            display = candidate.strip()
            break

    for field in TIME_SECONDS_FIELDS:
        candidate = raw.get(field)
        if isinstance(candidate, bool) or not isinstance(candidate, (int, float)):
            continue
        if candidate == NO_TIMESTAMP_SENTINEL or candidate < 0 or math.isnan(candidate):
            continue
        return float(candidate), display or format_seconds(candidate)

    if display is not None:
        return try_parse_timestamp(display), display

    for field in TIME_STRING_FIELDS:
        candidate = raw.get(field)
        if not isinstance(candidate, str):
            continue
        seconds = try_parse_timestamp(candidate)
        if seconds is not None:
            return seconds, format_seconds(seconds)

    return None, None


# =============================================================================
# Shape Normalization
# =============================================================================

def _coerce_payload(raw_checklist: Any) -> Any:
    if isinstance(raw_checklist, (bytes, bytearray)):
        raw_checklist = raw_checklist.decode("utf-8", errors="replace")
    if isinstance(raw_checklist, str):
        text = raw_checklist.strip()
        if not text:
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            logger.warning("Checklist payload is not valid JSON; treating as empty")
            return None
    return raw_checklist


def _raw_entries(payload: Any) -> List[Dict[str, Any]]:
    """Flatten an array or mapping payload into raw dicts that all carry a name."""
    entries: List[Dict[str, Any]] = []

    if isinstance(payload, list):
        for idx, element in enumerate(payload):
            if isinstance(element, str):
                entries.append({"name": element, "status": "PASS"})
            elif isinstance(element, dict):
                name = _first_present(element, NAME_FIELDS) or f"Item {idx + 1}"
                entries.append({**element, "name": str(name)})
            else:
                logger.debug(f"Skipping checklist element {idx} of type {type(element).__name__}")
        return entries

    if isinstance(payload, dict):
        for key, value in payload.items():
            label = humanize_key(str(key))
            if isinstance(value, dict):
                entries.append({
                    **value,
                    "name": str(value.get("name") or label),
                    "status": value.get("status") or "PASS",
                })
            elif value is None:
                entries.append({"name": label, "status": "PASS"})
            else:
                entries.append({"name": label, "status": _as_text(value)})
        return entries

    if payload is not None:
        logger.warning(f"Unsupported checklist payload type: {type(payload).__name__}")
    return entries


def build_item(raw: Dict[str, Any]) -> ChecklistItem:
    """Build one ChecklistItem from a raw dict that already carries a name."""
    seconds, display = resolve_item_time(raw)
    status_text = _as_text(raw.get("status")).strip().lower()

    item = ChecklistItem(
        name=str(raw.get("name") or "Requirement"),
        status=normalize_status(status_text),
        rawStatus=status_text,
        evidence=_as_text(raw.get("evidence")),
        notes=_as_text(raw.get("notes") or raw.get("reasoning")),
        quote=_as_text(_first_present(raw, QUOTE_FIELDS)) or None,
        subChecks=_sub_checks(raw),
        weightCategory=_weight_category(raw),
        timeSeconds=seconds,
        time=display,
    )

    provided = normalize_confidence(_first_present(raw, CONFIDENCE_FIELDS))
    if provided is not None:
        return item.model_copy(update={"confidence": provided, "confidenceEstimated": False})
    return item.model_copy(update={"confidence": estimate_confidence(item)})


def normalize_checklist(raw_checklist: Any) -> List[ChecklistItem]:
    """
    Normalize a raw checklist payload into ordered ChecklistItem models.

    Args:
        raw_checklist: Array, mapping, JSON string or None

    Returns:
        Items sorted ascending by resolved seconds; items without a timestamp
        come last in their original relative order. Never raises.
    """
    payload = _coerce_payload(raw_checklist)
    items = [build_item(raw) for raw in _raw_entries(payload)]

    # sorted() is stable, so unresolved items keep input order behind +infinity
    return sorted(
        items,
        key=lambda item: parse_sort_seconds(item.timeSeconds),
    )


def is_empty_checklist(raw_checklist: Any) -> bool:
    """True when a payload would normalize to no items."""
    return not _raw_entries(_coerce_payload(raw_checklist))
