"""
Call Record Repository

Thin asyncpg adapters between the API layer and the call-record store:

- fetch_call_row(): load one raw row for build_call_record()
- save_override(): upsert a reviewer override into the row's qaNotes JSON
- update_score(): score-sync write (score plus derived status and risk level)
- append_auto_fail_reason(): record a manual auto-fail

The derivation services never import this module; everything here is I/O.

Table: qa_results
    id (serial), call_id (text), agent_name, transcript, checklist (jsonb),
    call_analysis (jsonb), auto_fail_triggered (bool), auto_fail_reasons (jsonb),
    auto_fail_overridden (bool), auto_fail_override_reason, auto_fail_override_at,
    auto_fail_override_by, timeline_markers (jsonb), chapters (jsonb),
    call_duration (text), media_duration (numeric), compliance_score (int),
    call_status (text), risk_level (text), qa_status (text), qa_notes (text)
"""

import json
import logging
from typing import Any, Dict, Optional

from audit_engine.core.database import execute_command, execute_query_one, get_db_pool
from audit_engine.models.enums import ItemStatus, RiskLevel
from audit_engine.models.schemas import Override
from audit_engine.services.overrides import upsert_override
from audit_engine.services.scoring import classify_compliance

logger = logging.getLogger(__name__)

CALL_MATCH = "(id::text = $1 OR call_id = $1)"


def _rows_affected(status: str) -> int:
    try:
        return int(status.split()[-1])
    except (ValueError, IndexError):
        return 0


async def fetch_call_row(call_id: str) -> Optional[Dict[str, Any]]:
    """
    Load one call row by numeric id or call id.

    Returns:
        Column mapping, or None if the call does not exist.
    """
    row = await execute_query_one(
        f"SELECT * FROM qa_results WHERE {CALL_MATCH} LIMIT 1",
        str(call_id),
    )
    return dict(row) if row is not None else None


async def save_override(call_id: str, override: Override) -> Optional[str]:
    """
    Persist a reviewer override into the call's qaNotes JSON.

    The read-modify-write runs in one transaction with the row locked, so
    concurrent overrides for the same call are not lost.

    Returns:
        The new qaNotes JSON, or None if the call does not exist.
    """
    pool = await get_db_pool()

    async with pool.acquire() as conn:
        async with conn.transaction():
            row = await conn.fetchrow(
                f"SELECT id, qa_notes FROM qa_results WHERE {CALL_MATCH} LIMIT 1 FOR UPDATE",
                str(call_id),
            )
            if row is None:
                return None

            qa_notes = upsert_override(row["qa_notes"], override)
            await conn.execute(
                "UPDATE qa_results SET qa_notes = $1, qa_status = $2 WHERE id = $3",
                qa_notes,
                "approved" if override.status == ItemStatus.PASS else "rejected",
                row["id"],
            )

    logger.info(
        f"Saved override for call {call_id}: {override.itemKey} -> "
        f"{override.status.value} by {override.reviewer}"
    )
    return qa_notes


async def update_score(call_id: str, new_score: int, reason: Optional[str] = None) -> bool:
    """
    Write a recalculated score with its compliance status and risk level.

    Returns:
        True if the call existed and was updated.
    """
    status, risk = classify_compliance(new_score)
    result = await execute_command(
        f"""
        UPDATE qa_results
        SET compliance_score = $2, call_status = $3, risk_level = $4
        WHERE {CALL_MATCH}
        """,
        str(call_id),
        new_score,
        status.value,
        risk.value,
    )

    updated = _rows_affected(result) > 0
    if updated:
        logger.info(f"Updated score for call {call_id} to {new_score}% ({reason or 'no reason given'})")
    else:
        logger.warning(f"Score update for call {call_id} matched no rows")
    return updated


async def append_auto_fail_reason(call_id: str, reason: Dict[str, Any]) -> bool:
    """
    Append a manual auto-fail reason and lock the call's score at 0.

    Any previous auto-fail override is cleared.

    Returns:
        True if the call existed and was updated.
    """
    result = await execute_command(
        f"""
        UPDATE qa_results
        SET auto_fail_triggered = TRUE,
            auto_fail_reasons = COALESCE(auto_fail_reasons, '[]'::jsonb) || $2::jsonb,
            compliance_score = 0,
            call_status = 'auto_fail',
            risk_level = $3,
            auto_fail_overridden = FALSE,
            auto_fail_override_reason = NULL,
            auto_fail_override_at = NULL,
            auto_fail_override_by = NULL
        WHERE {CALL_MATCH}
        """,
        str(call_id),
        json.dumps([reason]),
        RiskLevel.HIGH.value,
    )

    updated = _rows_affected(result) > 0
    if updated:
        logger.info(f"Manual auto-fail {reason.get('code')} recorded for call {call_id}")
    return updated
