"""
Call Analysis Orchestration

Runs the full derivation for one call, from scratch, in data-flow order:

    normalize checklist -> confidence -> auto-fail -> score -> timeline
        -> diarize -> speaker metrics -> confidence summary

Every input change (checklist, overrides, duration, transcript) is handled by calling
analyze_call again; no intermediate state is cached between calls. When the
authoritative media duration arrives after the metadata display string, the second
call simply recomputes every position.
"""

import logging
from typing import Optional

from audit_engine.models.schemas import UNKNOWN_AGENT_NAME, CallAnalysis, CallRecord
from audit_engine.services.auto_fail import evaluate_auto_fail
from audit_engine.services.checklist import normalize_checklist
from audit_engine.services.confidence import summarize_confidence
from audit_engine.services.diarization import compute_speaker_metrics, diarize_transcript
from audit_engine.services.overrides import (
    SessionOverrides,
    normalize_session_overrides,
    parse_qa_notes_overrides,
)
from audit_engine.services.scoring import calculate_score, needs_score_sync
from audit_engine.services.timeline import (
    cluster_markers,
    resolve_duration,
    synthesize_timeline,
)

logger = logging.getLogger(__name__)


def analyze_call(
    record: CallRecord,
    session_overrides: Optional[SessionOverrides] = None,
    media_duration: Optional[float] = None,
    auto_fail_overridden: Optional[bool] = None,
) -> CallAnalysis:
    """
    Derive score, timeline, diarization and confidence for a call record.

    Args:
        record: Call record from the storage collaborator (or posted directly)
        session_overrides: Unsaved reviewer overrides, item key to PASS/FAIL
        media_duration: Authoritative duration measured from the recording;
            falls back to record.mediaDuration, then the display duration
        auto_fail_overridden: Reviewer's auto-fail override; falls back to the
            record's stored flag

    Returns:
        CallAnalysis. Pure function of its inputs.
    """
    items = normalize_checklist(record.checklist)
    persisted = parse_qa_notes_overrides(record.qaNotes)

    if auto_fail_overridden is None:
        auto_fail_overridden = record.autoFailOverridden
    auto_fail = evaluate_auto_fail(
        record.autoFailTriggered,
        record.autoFailReasons,
        overridden=auto_fail_overridden,
    )

    score = calculate_score(items, session_overrides, persisted, auto_fail)

    duration = resolve_duration(
        media_duration if media_duration is not None else record.mediaDuration,
        record.duration,
    )
    markers = synthesize_timeline(
        duration,
        items=items,
        chapters=record.chapters,
        markers=record.timelineMarkers,
        auto_fail=auto_fail,
        session_overrides=session_overrides,
        persisted_overrides=persisted,
    )
    clusters = cluster_markers(markers)

    # The display placeholder is not a name to match speaker labels against
    agent_name = None if record.agentName == UNKNOWN_AGENT_NAME else record.agentName
    turns = diarize_transcript(record.transcript, agent_name, markers)
    speaker_metrics = compute_speaker_metrics(turns)

    reviewed_keys = set(persisted) | set(normalize_session_overrides(session_overrides))
    confidence_summary = summarize_confidence(items, reviewed_keys)

    sync_needed = needs_score_sync(score.displayScore, record.storedScore, score.possible)

    logger.info(
        f"Analyzed call {record.callId or record.id}: score {score.displayLabel}, "
        f"{len(items)} items, {len(markers)} markers, {len(turns)} turns"
    )

    return CallAnalysis(
        callId=record.callId or record.id,
        durationSeconds=duration,
        checklist=items,
        autoFail=auto_fail,
        score=score,
        markers=markers,
        clusters=clusters,
        turns=turns,
        speakerMetrics=speaker_metrics,
        confidenceSummary=confidence_summary,
        persistedOverrides=list(persisted.values()),
        scoreSyncNeeded=sync_needed,
    )
