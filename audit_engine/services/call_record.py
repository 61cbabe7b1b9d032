"""
Call Record Transformation Service

Turns a raw storage row (snake_case columns, JSON stored either as text or as
already-decoded JSONB) into the CallRecord the derivation services consume.

Older rows keep their analysis payload nested under `call_analysis`; newer rows
promote it to top-level columns. Every field therefore resolves top-level first
and falls back to the nested payload:

- checklist:         `checklist`, then `call_analysis.checklist` when empty or malformed
- auto-fail flag:    `auto_fail_triggered`, then `call_analysis.auto_fail_triggered`;
                     a `call_status` containing "auto_fail" also flags the call
- auto-fail reasons: `auto_fail_reasons`, then `call_analysis.auto_fail_reasons`
- timeline markers:  `timeline_markers`, then `call_analysis.timeline_markers`
- chapters:          `chapters`, then `call_analysis.chapters`
"""

import json
import logging
import math
import re
from typing import Any, List, Mapping, Optional

from audit_engine.models.schemas import UNKNOWN_AGENT_NAME, CallRecord
from audit_engine.services.checklist import is_empty_checklist

logger = logging.getLogger(__name__)

AUTO_FAIL_STATUS_MARKER = "auto_fail"
SCORE_PATTERN = re.compile(r"(\d+)")


def parse_json_field(value: Any, fallback: Any) -> Any:
    """
    Decode a JSON column that may hold text or an already-decoded value.

    Empty values and undecodable text yield `fallback`.
    """
    if value is None or value == "":
        return fallback
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8", errors="replace")
    if isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            logger.debug("Column value is not valid JSON; using fallback")
            return fallback
    return value


def parse_stored_score(value: Any) -> int:
    """
    Parse a stored score: 85, 85.4, "85" and "85%" all give 85.

    Missing or unparseable values give 0; results are clamped to 0-100.
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        if isinstance(value, float) and math.isnan(value):
            return 0
        return max(0, min(100, int(value + 0.5)))
    match = SCORE_PATTERN.search(str(value))
    if not match:
        return 0
    return max(0, min(100, int(match.group(1))))


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def _text(value: Any) -> Optional[str]:
    return str(value) if value not in (None, "") else None


def _media_duration(row: Mapping[str, Any]) -> Optional[float]:
    for column in ("media_duration", "media_duration_seconds", "audio_duration_seconds"):
        value = row.get(column)
        if isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0:
            return float(value)
    return None


def build_call_record(row: Mapping[str, Any]) -> CallRecord:
    """
    Build a CallRecord from a raw storage row.

    Args:
        row: Mapping of column name to value (dict or asyncpg Record)

    Returns:
        CallRecord with every field resolved; never raises on malformed JSON.
    """
    row = dict(row)
    analysis = parse_json_field(row.get("call_analysis"), {})
    if not isinstance(analysis, dict):
        analysis = {}

    checklist = parse_json_field(row.get("checklist"), None)
    if is_empty_checklist(checklist) and analysis.get("checklist") is not None:
        logger.info(f"Call {row.get('id')}: using checklist from call_analysis")
        checklist = analysis.get("checklist")

    flag_column = row.get("auto_fail_triggered")
    if flag_column is not None:
        flagged = bool(flag_column)
    else:
        flagged = bool(analysis.get("auto_fail_triggered"))
    if AUTO_FAIL_STATUS_MARKER in str(row.get("call_status") or "").lower():
        flagged = True

    reasons = parse_json_field(row.get("auto_fail_reasons"), None)
    if not reasons:
        reasons = analysis.get("auto_fail_reasons")

    markers = parse_json_field(row.get("timeline_markers"), None)
    if not markers:
        markers = analysis.get("timeline_markers")

    chapters = parse_json_field(row.get("chapters"), None)
    if not chapters:
        chapters = analysis.get("chapters")

    stored_score = 0 if flagged else parse_stored_score(
        row.get("compliance_score") if row.get("compliance_score") is not None else row.get("call_score")
    )

    record_id = str(row.get("id") if row.get("id") is not None else "")
    return CallRecord(
        id=record_id,
        callId=row.get("call_id") or (f"CALL-{record_id}" if record_id else None),
        agentName=row.get("agent_name") or UNKNOWN_AGENT_NAME,
        transcript=row.get("transcript") or "",
        checklist=checklist,
        autoFailTriggered=flagged,
        autoFailReasons=_as_list(reasons),
        autoFailOverridden=bool(row.get("auto_fail_overridden")),
        autoFailOverrideReason=_text(row.get("auto_fail_override_reason")),
        autoFailOverrideAt=_text(row.get("auto_fail_override_at")),
        autoFailOverrideBy=_text(row.get("auto_fail_override_by")),
        chapters=_as_list(chapters),
        timelineMarkers=_as_list(markers),
        duration=str(row.get("call_duration") or ""),
        mediaDuration=_media_duration(row),
        storedScore=stored_score,
        qaNotes=row.get("qa_notes"),
    )

