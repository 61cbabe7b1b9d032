"""
Call Audit Services Module

This module contains the derivation services of the call audit engine. Each
derivation service is a pure, stateless function of its inputs; only the
repository performs I/O and only the score-sync scheduler holds (session-owned)
state.

Services:
- timestamps: Tolerant timestamp parsing and M:SS formatting
- checklist: ChecklistNormalizer (array/mapping/JSON payloads -> ChecklistItem)
- confidence: ConfidenceEstimator and checklist evidence summary
- auto_fail: AutoFailEvaluator (critical vs warning-only reasons)
- overrides: Session/persisted override resolution and qaNotes upserts
- scoring: ScoringEngine (weight table, breakdown, status bands)
- timeline: TimelineSynthesizer (positions, anti-overlap, clustering)
- diarization: TranscriptDiarizer and speaker metrics
- call_record: Storage row -> CallRecord transformation
- analysis: Full per-call derivation in data-flow order
- score_sync: Debounced, cancellable score write-back
- repository: asyncpg adapters for the call-record store

All services are designed to be consumed by the API layer (audit_engine/api/).
"""

# =============================================================================
# Checklist Normalizer Exports
# =============================================================================

from audit_engine.services.checklist import (
    normalize_checklist,
    normalize_status,
    normalize_confidence,
    humanize_key,
    MET_STATUSES,
)

# =============================================================================
# Confidence Estimator Exports
# =============================================================================

from audit_engine.services.confidence import (
    estimate_confidence,
    average_confidence,
    summarize_confidence,
)

# =============================================================================
# Auto-Fail Evaluator Exports
# =============================================================================

from audit_engine.services.auto_fail import (
    evaluate_auto_fail,
    normalize_reason,
    build_manual_auto_fail_reason,
)

# =============================================================================
# Override Resolution Exports
# =============================================================================

from audit_engine.services.overrides import (
    parse_qa_notes_overrides,
    resolve_status,
    make_override,
    upsert_override,
)

# =============================================================================
# Scoring Engine Exports
# =============================================================================

from audit_engine.services.scoring import (
    calculate_score,
    classify_compliance,
    get_item_weight,
    needs_score_sync,
    SCORING_WEIGHTS,
)

# =============================================================================
# Timeline Synthesizer Exports
# =============================================================================

from audit_engine.services.timeline import (
    synthesize_timeline,
    apply_anti_overlap,
    cluster_markers,
    resolve_duration,
    MARKER_COLORS,
)

# =============================================================================
# Transcript Diarizer Exports
# =============================================================================

from audit_engine.services.diarization import (
    diarize_transcript,
    compute_speaker_metrics,
    semantic_score,
)

# =============================================================================
# Call Record and Analysis Exports
# =============================================================================

from audit_engine.services.call_record import (
    build_call_record,
    parse_json_field,
    parse_stored_score,
)
from audit_engine.services.analysis import analyze_call

# =============================================================================
# Score Sync Exports
# =============================================================================

from audit_engine.services.score_sync import (
    ScoreSyncScheduler,
    ScoreWriter,
)


__all__ = [
    # Checklist
    "normalize_checklist",
    "normalize_status",
    "normalize_confidence",
    "humanize_key",
    "MET_STATUSES",
    # Confidence
    "estimate_confidence",
    "average_confidence",
    "summarize_confidence",
    # Auto-fail
    "evaluate_auto_fail",
    "normalize_reason",
    "build_manual_auto_fail_reason",
    # Overrides
    "parse_qa_notes_overrides",
    "resolve_status",
    "make_override",
    "upsert_override",
    # Scoring
    "calculate_score",
    "classify_compliance",
    "get_item_weight",
    "needs_score_sync",
    "SCORING_WEIGHTS",
    # Timeline
    "synthesize_timeline",
    "apply_anti_overlap",
    "cluster_markers",
    "resolve_duration",
    "MARKER_COLORS",
    # Diarization
    "diarize_transcript",
    "compute_speaker_metrics",
    "semantic_score",
    # Call record / analysis
    "build_call_record",
    "parse_json_field",
    "parse_stored_score",
    "analyze_call",
    # Score sync
    "ScoreSyncScheduler",
    "ScoreWriter",
]
