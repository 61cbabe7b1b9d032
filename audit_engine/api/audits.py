"""
FastAPI router module for call audit derivation and review.

Key Endpoints:
- POST /audits/analyze - Full derivation for a posted call record (no database)
- POST /audits/score - Weighted score with breakdown
- POST /audits/timeline - Positioned, de-overlapped markers and clusters
- POST /audits/diarize - Speaker-resolved transcript turns and talk-time metrics
- GET /audits/{call_id} - Full derivation for a stored call
- POST /audits/{call_id}/overrides - Persist a reviewer override, return the new score
- POST /audits/{call_id}/score - Score sync write ({newScore, reason})
- POST /audits/{call_id}/auto-fail - Record a manual auto-fail

The derivation endpoints are pure and work without DATABASE_URL. Endpoints under
/{call_id} depend on require_database and answer 503 when no store is configured.

Error Handling:
- 400 for missing or invalid request fields
- 404 when the call does not exist
- 500 for database failures (logged with traceback)
- 503 when the call-record store is not configured
"""

import logging
import re
from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Query

from audit_engine.core.dependencies import DatabaseSettingsDep, SettingsDep
from audit_engine.models.enums import ItemStatus
from audit_engine.models.schemas import (
    AnalyzeRequest,
    CallAnalysis,
    DiarizeRequest,
    DiarizeResponse,
    ManualAutoFailRequest,
    ManualAutoFailResponse,
    OverrideRequest,
    OverrideResponse,
    ScoreRequest,
    ScoreResult,
    ScoreSyncRequest,
    ScoreSyncResponse,
    TimelineRequest,
    TimelineResponse,
)
from audit_engine.services import repository
from audit_engine.services.analysis import analyze_call
from audit_engine.services.auto_fail import build_manual_auto_fail_reason, evaluate_auto_fail
from audit_engine.services.call_record import build_call_record
from audit_engine.services.checklist import normalize_checklist
from audit_engine.services.diarization import compute_speaker_metrics, diarize_transcript
from audit_engine.services.overrides import make_override, parse_qa_notes_overrides
from audit_engine.services.scoring import calculate_score, classify_compliance, needs_score_sync
from audit_engine.services.timeline import cluster_markers, resolve_duration, synthesize_timeline


# =============================================================================
# Module Configuration
# =============================================================================

logger = logging.getLogger(__name__)

VALID_OVERRIDE_STATUSES = (ItemStatus.PASS.value, ItemStatus.FAIL.value)
LEADING_INTEGER = re.compile(r"^\s*(-?\d+)")


# =============================================================================
# Router Definition
# =============================================================================

router = APIRouter()


def parse_score_value(value: Any) -> Optional[int]:
    """Parse a submitted score the way a leading-integer parse would; None if invalid."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    match = LEADING_INTEGER.match(str(value))
    return int(match.group(1)) if match else None


async def _load_record(call_id: str):
    try:
        row = await repository.fetch_call_row(call_id)
    except Exception:
        logger.exception(f"Error loading call {call_id}")
        raise HTTPException(status_code=500, detail="Failed to load call record")

    if row is None:
        raise HTTPException(status_code=404, detail=f"Call {call_id} not found")
    return build_call_record(row)


# =============================================================================
# Derivation Endpoints
# =============================================================================

@router.post("/analyze", response_model=CallAnalysis)
async def analyze(request: AnalyzeRequest) -> CallAnalysis:
    """
    Run the full derivation for a posted call record.

    The record is recomputed from scratch; post again with a revised
    mediaDuration or sessionOverrides to get updated positions and scores.
    """
    return analyze_call(
        request.record,
        session_overrides=request.sessionOverrides,
        media_duration=request.mediaDuration,
        auto_fail_overridden=request.autoFailOverridden,
    )


@router.post("/score", response_model=ScoreResult)
async def score(request: ScoreRequest, settings: SettingsDep) -> ScoreResult:
    """Score a checklist with session and persisted overrides applied."""
    items = normalize_checklist(request.checklist)
    auto_fail = evaluate_auto_fail(
        request.autoFailTriggered,
        request.autoFailReasons,
        overridden=request.autoFailOverridden,
        warning_only_codes=settings.warning_only_codes,
    )
    return calculate_score(
        items,
        session_overrides=request.sessionOverrides,
        persisted_overrides=parse_qa_notes_overrides(request.qaNotes),
        auto_fail=auto_fail,
        default_weight=settings.default_item_weight,
    )


@router.post("/timeline", response_model=TimelineResponse)
async def timeline(request: TimelineRequest, settings: SettingsDep) -> TimelineResponse:
    """Build positioned timeline markers and clusters for a recording."""
    duration = resolve_duration(request.mediaDuration, request.duration)
    auto_fail = evaluate_auto_fail(
        request.autoFailTriggered,
        request.autoFailReasons,
        warning_only_codes=settings.warning_only_codes,
    )
    markers = synthesize_timeline(
        duration,
        items=normalize_checklist(request.checklist),
        chapters=request.chapters,
        markers=request.timelineMarkers,
        auto_fail=auto_fail,
        session_overrides=request.sessionOverrides,
        persisted_overrides=parse_qa_notes_overrides(request.qaNotes),
        min_seconds=settings.min_marker_seconds,
        overlap_threshold=settings.marker_overlap_threshold,
    )
    return TimelineResponse(
        durationSeconds=duration,
        markers=markers,
        clusters=cluster_markers(markers, settings.marker_cluster_threshold),
    )


@router.post("/diarize", response_model=DiarizeResponse)
async def diarize(request: DiarizeRequest, settings: SettingsDep) -> DiarizeResponse:
    """Resolve speaker roles for every transcript line."""
    turns = diarize_transcript(
        request.transcript,
        request.agentName,
        request.markers,
        agent_threshold=settings.agent_score_threshold,
        prospect_threshold=settings.prospect_score_threshold,
        last_turn_padding=settings.last_turn_padding_seconds,
    )
    return DiarizeResponse(turns=turns, speakerMetrics=compute_speaker_metrics(turns))


# =============================================================================
# Stored Call Endpoints
# =============================================================================

@router.get("/{call_id}", response_model=CallAnalysis)
async def get_call_analysis(
    call_id: str,
    settings: DatabaseSettingsDep,
    media_duration: Optional[float] = Query(None, alias="mediaDuration", ge=0),
) -> CallAnalysis:
    """
    Load a stored call and return its full derivation.

    Raises:
        HTTPException(404) if the call does not exist
    """
    record = await _load_record(call_id)
    return analyze_call(record, media_duration=media_duration)


@router.post("/{call_id}/overrides", response_model=OverrideResponse)
async def save_item_override(
    call_id: str,
    request: OverrideRequest,
    settings: DatabaseSettingsDep,
) -> OverrideResponse:
    """
    Persist a reviewer override and return the recomputed score.

    The stored score is synced when the override moves it.
    """
    item_key = request.itemKey.strip()
    status = request.overrideStatus.strip().upper()
    if not item_key or not status:
        raise HTTPException(
            status_code=400,
            detail="Missing required fields: itemKey, overrideStatus"
        )
    if status not in VALID_OVERRIDE_STATUSES:
        raise HTTPException(
            status_code=400,
            detail="overrideStatus must be PASS or FAIL"
        )

    override = make_override(item_key, status, request.reviewedBy, request.notes)

    try:
        qa_notes = await repository.save_override(call_id, override)
    except Exception:
        logger.exception(f"Error saving override for call {call_id}")
        raise HTTPException(status_code=500, detail="Failed to save override")

    if qa_notes is None:
        raise HTTPException(status_code=404, detail=f"Call {call_id} not found")

    record = await _load_record(call_id)
    analysis = analyze_call(record)

    if needs_score_sync(analysis.score.displayScore, record.storedScore, analysis.score.possible):
        try:
            await repository.update_score(
                call_id,
                analysis.score.displayScore,
                f"Override: {override.itemKey} -> {override.status.value}",
            )
        except Exception:
            logger.exception(f"Error syncing score after override for call {call_id}")
            raise HTTPException(status_code=500, detail="Failed to update score")

    return OverrideResponse(success=True, override=override, score=analysis.score)


@router.post("/{call_id}/score", response_model=ScoreSyncResponse)
async def sync_score(
    call_id: str,
    request: ScoreSyncRequest,
    settings: DatabaseSettingsDep,
) -> ScoreSyncResponse:
    """
    Score sync contract: store {newScore, reason} with its status band.

    Raises:
        HTTPException(400) if newScore is missing or outside 0-100
        HTTPException(404) if the call does not exist
    """
    if request.newScore is None:
        raise HTTPException(status_code=400, detail="Missing required field: newScore")

    new_score = parse_score_value(request.newScore)
    if new_score is None or new_score < 0 or new_score > 100:
        raise HTTPException(
            status_code=400,
            detail="Score must be a number between 0 and 100"
        )

    try:
        updated = await repository.update_score(call_id, new_score, request.reason)
    except Exception:
        logger.exception(f"Error updating score for call {call_id}")
        raise HTTPException(status_code=500, detail="Failed to update score")

    if not updated:
        raise HTTPException(status_code=404, detail=f"No record found with id {call_id}")

    status, risk = classify_compliance(new_score)
    return ScoreSyncResponse(
        success=True,
        newScore=new_score,
        newStatus=status,
        newRiskLevel=risk,
        reason=request.reason,
    )


@router.post("/{call_id}/auto-fail", response_model=ManualAutoFailResponse)
async def manual_auto_fail(
    call_id: str,
    request: ManualAutoFailRequest,
    settings: DatabaseSettingsDep,
) -> ManualAutoFailResponse:
    """Record a reviewer-confirmed auto-fail; the call's score is locked at 0."""
    if not request.afCode.strip() or not request.reason.strip() or not request.reviewedBy.strip():
        raise HTTPException(
            status_code=400,
            detail="Missing required fields: afCode, reason, reviewedBy"
        )

    reason = build_manual_auto_fail_reason(
        request.afCode.strip(),
        request.reason.strip(),
        request.reviewedBy.strip(),
        violation=request.violation,
        evidence=request.evidence,
    )

    try:
        updated = await repository.append_auto_fail_reason(call_id, reason)
    except Exception:
        logger.exception(f"Error recording manual auto-fail for call {call_id}")
        raise HTTPException(status_code=500, detail="Failed to record auto-fail")

    if not updated:
        raise HTTPException(status_code=404, detail=f"Call {call_id} not found")

    return ManualAutoFailResponse(
        success=True,
        message=f"Call {call_id} manually auto-failed with {reason['code']}",
        reason=reason,
    )
