"""
Package initialization file for the call audit models.

This module exports all Pydantic schemas and enumerations from schemas.py and enums.py,
making them importable from audit_engine.models directly.

Usage:
    from audit_engine.models import (
        ChecklistItem,
        ItemStatus,
        ScoreResult,
        TimelineMarker,
        # ... etc
    )
"""

# =============================================================================
# Enums - Import and re-export all enumerations from enums.py
# =============================================================================

from audit_engine.models.enums import (
    ItemStatus,
    WeightCategory,
    AutoFailSeverity,
    MarkerType,
    SpeakerRole,
    OverrideSource,
    ComplianceStatus,
    RiskLevel,
    StepType,
)


# =============================================================================
# Schemas - Import and re-export all Pydantic models from schemas.py
# =============================================================================

from audit_engine.models.schemas import (
    # -------------------------------------------------------------------------
    # Derived structures
    # -------------------------------------------------------------------------
    ChecklistItem,
    AutoFailReason,
    AutoFailEvaluation,
    Override,
    ScoreStep,
    ScoreResult,
    TimelineMarker,
    MarkerCluster,
    TranscriptTurn,
    RoleMetrics,
    SpeakerMetrics,
    ConfidenceSummary,
    CallRecord,
    CallAnalysis,

    # -------------------------------------------------------------------------
    # API contracts
    # -------------------------------------------------------------------------
    AnalyzeRequest,
    ScoreRequest,
    TimelineRequest,
    TimelineResponse,
    DiarizeRequest,
    DiarizeResponse,
    OverrideRequest,
    OverrideResponse,
    ScoreSyncRequest,
    ScoreSyncResponse,
    ManualAutoFailRequest,
    ManualAutoFailResponse,
)


__all__ = [
    # Enums
    "ItemStatus",
    "WeightCategory",
    "AutoFailSeverity",
    "MarkerType",
    "SpeakerRole",
    "OverrideSource",
    "ComplianceStatus",
    "RiskLevel",
    "StepType",
    # Derived structures
    "ChecklistItem",
    "AutoFailReason",
    "AutoFailEvaluation",
    "Override",
    "ScoreStep",
    "ScoreResult",
    "TimelineMarker",
    "MarkerCluster",
    "TranscriptTurn",
    "RoleMetrics",
    "SpeakerMetrics",
    "ConfidenceSummary",
    "CallRecord",
    "CallAnalysis",
    # API contracts
    "AnalyzeRequest",
    "ScoreRequest",
    "TimelineRequest",
    "TimelineResponse",
    "DiarizeRequest",
    "DiarizeResponse",
    "OverrideRequest",
    "OverrideResponse",
    "ScoreSyncRequest",
    "ScoreSyncResponse",
    "ManualAutoFailRequest",
    "ManualAutoFailResponse",
]
