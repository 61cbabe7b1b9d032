"""
Pydantic request/response models for the call audit engine.

This module provides type-safe data validation and serialization for every structure
the derivation services produce (normalized checklist items, auto-fail evaluations,
score breakdowns, timeline markers and clusters, diarized transcript turns) and for
the API contracts that carry them.

Field names are camelCase because the dashboard consumes these payloads directly.
Upstream payloads (checklists, chapters, marker records, auto-fail reasons) arrive
in inconsistent shapes and stay `Any` on the request side; the services normalize
them into the models below.

All models use Pydantic v2 syntax.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from audit_engine.models.enums import (
    AutoFailSeverity,
    ComplianceStatus,
    ItemStatus,
    MarkerType,
    OverrideSource,
    RiskLevel,
    SpeakerRole,
    StepType,
    WeightCategory,
)

# Display placeholder for calls stored without an agent name
UNKNOWN_AGENT_NAME = "Unknown Agent"


# =============================================================================
# Checklist Models
# =============================================================================


class ChecklistItem(BaseModel):
    """
    One normalized compliance requirement.

    Produced by the checklist normalizer from array, mapping or string-keyed
    payloads. `timeSeconds` is None when no timestamp could be resolved; the
    timeline then estimates a position for the item.
    """
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Recorded Line Disclosure",
                "status": "PASS",
                "rawStatus": "met",
                "evidence": "This call is on a recorded line.",
                "notes": "",
                "subChecks": {},
                "weightCategory": "CRITICAL",
                "timeSeconds": 4.0,
                "time": "0:04",
                "confidence": 88
            }
        }
    )

    name: str = Field(
        ...,
        description="Human-readable requirement name"
    )
    status: ItemStatus = Field(
        ...,
        description="Canonical status class (PASS, FAIL, N/A)"
    )
    rawStatus: str = Field(
        default="",
        description="Lowercased status string as supplied upstream"
    )
    evidence: str = Field(
        default="",
        description="Supporting evidence text"
    )
    notes: str = Field(
        default="",
        description="Reviewer or model notes"
    )
    quote: Optional[str] = Field(
        default=None,
        description="Explicit transcript quote, when supplied"
    )
    subChecks: Dict[str, str] = Field(
        default_factory=dict,
        description="Sub-label to status string"
    )
    weightCategory: Optional[WeightCategory] = Field(
        default=None,
        description="Declared importance category"
    )
    timeSeconds: Optional[float] = Field(
        default=None,
        ge=0.0,
        description="Resolved timestamp in seconds, None when unresolved"
    )
    time: Optional[str] = Field(
        default=None,
        description="Display timestamp (M:SS)"
    )
    confidence: int = Field(
        default=0,
        ge=0,
        le=100,
        description="Confidence 0-100, provided or estimated"
    )
    confidenceEstimated: bool = Field(
        default=True,
        description="Whether confidence came from the heuristic estimator"
    )


# =============================================================================
# Auto-Fail Models
# =============================================================================


class AutoFailReason(BaseModel):
    """A single auto-fail reason, normalized from a string or structured record."""
    code: str = Field(..., description="Violation code, e.g. AF-09")
    violation: str = Field(default="", description="Violation name")
    description: Optional[str] = Field(default=None)
    evidence: Optional[str] = Field(default=None)
    timestamp: Optional[str] = Field(
        default=None,
        description="Display timestamp where the violation occurred"
    )
    timeSeconds: Optional[float] = Field(
        default=None,
        description="Numeric timestamp; -1 marks a reason with no timestamp"
    )
    severity: AutoFailSeverity = Field(default=AutoFailSeverity.CRITICAL)
    speaker: Optional[str] = Field(default=None)


class AutoFailEvaluation(BaseModel):
    """
    Result of partitioning auto-fail reasons.

    `triggered` is True only when the upstream flag is set and at least one
    critical reason remains. `overridden` is the reviewer's false-positive flag;
    it never changes `triggered`, only how scoring consumes it.
    """
    flagged: bool = Field(default=False, description="Upstream auto-fail flag")
    triggered: bool = Field(default=False)
    overridden: bool = Field(default=False)
    critical: List[AutoFailReason] = Field(default_factory=list)
    warnings: List[AutoFailReason] = Field(default_factory=list)


# =============================================================================
# Override Models
# =============================================================================


class Override(BaseModel):
    """A reviewer correction to one checklist item's status."""
    itemKey: str = Field(..., description="Lowercased item name")
    status: ItemStatus = Field(..., description="PASS or FAIL")
    source: OverrideSource = Field(default=OverrideSource.PERSISTED)
    reviewer: Optional[str] = Field(default=None)
    notes: Optional[str] = Field(default=None)
    timestamp: Optional[str] = Field(default=None)


# =============================================================================
# Scoring Models
# =============================================================================


class ScoreStep(BaseModel):
    """One line of the auditable score breakdown."""
    label: str
    itemName: str
    earnedValue: int = Field(..., ge=0)
    possibleValue: int = Field(..., ge=0)
    type: StepType
    description: str
    overridden: bool = False
    overrideSource: OverrideSource = OverrideSource.ORIGINAL


class ScoreResult(BaseModel):
    """
    Weighted compliance score with its breakdown.

    `scorePercent` is the raw weighted percentage; `displayScore` applies the
    auto-fail lock (0 when auto-fail is triggered and not overridden).
    """
    steps: List[ScoreStep] = Field(default_factory=list)
    earned: int = Field(default=0, ge=0)
    possible: int = Field(default=0, ge=0)
    scorePercent: int = Field(default=0, ge=0, le=100)
    displayScore: int = Field(default=0, ge=0, le=100)
    displayLabel: str = Field(default="0%")
    autoFailLocked: bool = False
    autoFailOverridden: bool = False
    averageConfidence: int = Field(default=0, ge=0, le=100)
    complianceStatus: ComplianceStatus = ComplianceStatus.NON_COMPLIANT
    riskLevel: RiskLevel = RiskLevel.HIGH


# =============================================================================
# Timeline Models
# =============================================================================


class TimelineMarker(BaseModel):
    """A positioned event on the call's normalized 0-100 timeline."""
    title: str
    time: str = Field(..., description="Display timestamp (M:SS)")
    seconds: float = Field(..., ge=0.0)
    position: float = Field(..., ge=0.0, le=100.0)
    type: MarkerType
    color: str
    estimated: bool = False
    code: Optional[str] = Field(default=None, description="Auto-fail code, when applicable")


class MarkerCluster(BaseModel):
    """Markers close enough in position to render as one aggregate badge."""
    anchorPosition: float
    anchorSeconds: float
    members: List[TimelineMarker] = Field(default_factory=list)


# =============================================================================
# Transcript Models
# =============================================================================


class TranscriptTurn(BaseModel):
    """One transcript line with its resolved speaker role and time span."""
    index: int
    speakerLabel: str = Field(..., description="Raw (carried-forward) speaker label")
    role: SpeakerRole
    content: str
    time: str = Field(..., description="Display start timestamp")
    startSeconds: float = Field(..., ge=0.0)
    endSeconds: float
    semanticScore: int = 0
    labelDefinitive: bool = False
    associatedMarkers: List[TimelineMarker] = Field(default_factory=list)


class RoleMetrics(BaseModel):
    """Talk-time totals for one speaker role."""
    turnCount: int = 0
    speakingTimeSeconds: float = 0.0
    speakingTimeFormatted: str = "0:00"
    speakingPercentage: int = 0


class SpeakerMetrics(BaseModel):
    """Per-role and total talk-time metrics derived from diarized turns."""
    agent: RoleMetrics = Field(default_factory=RoleMetrics)
    prospect: RoleMetrics = Field(default_factory=RoleMetrics)
    total: RoleMetrics = Field(default_factory=RoleMetrics)


# =============================================================================
# Confidence Summary
# =============================================================================


class ConfidenceSummary(BaseModel):
    """Aggregate evidence-quality indicators across the checklist."""
    total: int = 0
    strongEvidenceCount: int = 0
    detailedNotesCount: int = 0
    consistentSubChecksCount: int = 0
    mixedSubChecksCount: int = 0
    hasAutoFail: bool = False
    hasPartialMatches: bool = False
    evidencePercent: int = 0
    notesPercent: int = 0
    averageConfidence: int = 0
    itemsMissingQuotes: List[str] = Field(default_factory=list)
    itemsWithBriefNotes: List[str] = Field(default_factory=list)
    itemsNeedingReview: List[str] = Field(default_factory=list)


# =============================================================================
# Call Record and Analysis
# =============================================================================


class CallRecord(BaseModel):
    """
    A call record as handed over by the storage collaborator.

    Built from a raw storage row by services.call_record.build_call_record, or
    posted directly to the analyze endpoint.
    """
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "1042",
                "agentName": "Dana Whitfield",
                "duration": "3:12",
                "transcript": "[0:01] Dana: Hi, this call is on a recorded line.",
                "checklist": {"recorded_line": {"status": "met", "time": "0:01"}},
                "autoFailTriggered": False,
                "autoFailReasons": [],
                "storedScore": 0
            }
        }
    )

    id: str = Field(default="")
    callId: Optional[str] = Field(default=None)
    agentName: str = Field(default=UNKNOWN_AGENT_NAME)
    transcript: str = Field(default="")
    checklist: Any = Field(default=None, description="Array, mapping or JSON string")
    autoFailTriggered: bool = Field(default=False)
    autoFailReasons: List[Any] = Field(default_factory=list)
    autoFailOverridden: bool = Field(default=False)
    autoFailOverrideReason: Optional[str] = Field(default=None)
    autoFailOverrideAt: Optional[str] = Field(default=None)
    autoFailOverrideBy: Optional[str] = Field(default=None)
    chapters: List[Any] = Field(default_factory=list)
    timelineMarkers: List[Any] = Field(default_factory=list)
    duration: str = Field(default="", description="Display duration from metadata")
    mediaDuration: Optional[float] = Field(
        default=None,
        description="Authoritative duration measured from the recording"
    )
    storedScore: int = Field(default=0, ge=0, le=100)
    qaNotes: Optional[Any] = Field(default=None)


class CallAnalysis(BaseModel):
    """Everything derived for one call in a single recomputation."""
    callId: str = ""
    durationSeconds: float = 0.0
    checklist: List[ChecklistItem] = Field(default_factory=list)
    autoFail: AutoFailEvaluation = Field(default_factory=AutoFailEvaluation)
    score: ScoreResult = Field(default_factory=ScoreResult)
    markers: List[TimelineMarker] = Field(default_factory=list)
    clusters: List[MarkerCluster] = Field(default_factory=list)
    turns: List[TranscriptTurn] = Field(default_factory=list)
    speakerMetrics: SpeakerMetrics = Field(default_factory=SpeakerMetrics)
    confidenceSummary: ConfidenceSummary = Field(default_factory=ConfidenceSummary)
    persistedOverrides: List[Override] = Field(default_factory=list)
    scoreSyncNeeded: bool = False


# =============================================================================
# API Request / Response Models
# =============================================================================


class AnalyzeRequest(BaseModel):
    """Body of POST /audits/analyze."""
    record: CallRecord
    sessionOverrides: Dict[str, str] = Field(
        default_factory=dict,
        description="Unsaved reviewer overrides, item key to PASS/FAIL"
    )
    mediaDuration: Optional[float] = Field(default=None, ge=0.0)
    autoFailOverridden: Optional[bool] = Field(default=None)


class ScoreRequest(BaseModel):
    """Body of POST /audits/score."""
    checklist: Any = None
    sessionOverrides: Dict[str, str] = Field(default_factory=dict)
    qaNotes: Optional[Any] = None
    autoFailTriggered: bool = False
    autoFailReasons: List[Any] = Field(default_factory=list)
    autoFailOverridden: bool = False


class TimelineRequest(BaseModel):
    """Body of POST /audits/timeline."""
    duration: str = ""
    mediaDuration: Optional[float] = Field(default=None, ge=0.0)
    chapters: List[Any] = Field(default_factory=list)
    timelineMarkers: List[Any] = Field(default_factory=list)
    checklist: Any = None
    sessionOverrides: Dict[str, str] = Field(default_factory=dict)
    qaNotes: Optional[Any] = None
    autoFailTriggered: bool = False
    autoFailReasons: List[Any] = Field(default_factory=list)


class TimelineResponse(BaseModel):
    durationSeconds: float
    markers: List[TimelineMarker]
    clusters: List[MarkerCluster]


class DiarizeRequest(BaseModel):
    """Body of POST /audits/diarize."""
    transcript: str = ""
    agentName: str = ""
    markers: List[TimelineMarker] = Field(default_factory=list)


class DiarizeResponse(BaseModel):
    turns: List[TranscriptTurn]
    speakerMetrics: SpeakerMetrics


class OverrideRequest(BaseModel):
    """Body of POST /audits/{call_id}/overrides."""
    itemKey: str = ""
    overrideStatus: str = ""
    reviewedBy: Optional[str] = None
    notes: Optional[str] = None


class OverrideResponse(BaseModel):
    success: bool
    override: Override
    score: ScoreResult


class ScoreSyncRequest(BaseModel):
    """Body of POST /audits/{call_id}/score."""
    newScore: Any = None
    reason: Optional[str] = None


class ScoreSyncResponse(BaseModel):
    success: bool
    newScore: int
    newStatus: ComplianceStatus
    newRiskLevel: RiskLevel
    reason: Optional[str] = None


class ManualAutoFailRequest(BaseModel):
    """Body of POST /audits/{call_id}/auto-fail."""
    afCode: str = ""
    reason: str = ""
    reviewedBy: str = ""
    violation: Optional[str] = None
    evidence: Optional[str] = None


class ManualAutoFailResponse(BaseModel):
    success: bool
    message: str
    reason: Dict[str, Any]
