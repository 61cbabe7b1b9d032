"""
Enumeration definitions for the call audit engine.

All enums inherit from both `str` and `Enum` to ensure JSON serialization compatibility
with Pydantic models, enabling automatic serialization/deserialization in API responses.

Upstream analysis writes statuses in many spellings (met, pass, yes, true, ...); the
canonical forms live here and the normalizers map onto them.
"""

from enum import Enum


class ItemStatus(str, Enum):
    """
    Canonical checklist item status class.

    - PASS: met / pass / yes / true
    - FAIL: not_met / fail / no / false (and anything unrecognised)
    - NA: n/a, excluded from scoring and from the timeline
    """
    PASS = "PASS"
    FAIL = "FAIL"
    NA = "N/A"


class WeightCategory(str, Enum):
    """
    Importance category declared by the upstream checklist (`weight` field).

    Only CRITICAL and HIGH influence confidence; scoring uses the weight table.
    """
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class AutoFailSeverity(str, Enum):
    """
    Severity of an auto-fail reason.

    - critical: forces the call score to 0 unless overridden
    - warning: surfaced for review only, never forces a fail
    """
    CRITICAL = "critical"
    WARNING = "warning"


class MarkerType(str, Enum):
    """
    Timeline marker classification.

    - pass / fail: checklist outcomes and explicit pass/fail markers
    - transfer: transfer and informational events
    - chapter: chapter boundaries
    - note: warning-only auto-fail reasons
    """
    PASS = "pass"
    FAIL = "fail"
    TRANSFER = "transfer"
    CHAPTER = "chapter"
    NOTE = "note"


class SpeakerRole(str, Enum):
    """Resolved speaker role of a transcript turn."""
    AGENT = "Agent"
    PROSPECT = "Prospect"


class OverrideSource(str, Enum):
    """
    Where an effective status came from.

    Resolution order: session > persisted > original.
    """
    SESSION = "session"
    PERSISTED = "persisted"
    ORIGINAL = "original"


class ComplianceStatus(str, Enum):
    """
    Call status band derived from the final score.

    - Compliant: >= 90
    - Requires Review: 75-89
    - Non-Compliant: < 75
    """
    COMPLIANT = "Compliant"
    REQUIRES_REVIEW = "Requires Review"
    NON_COMPLIANT = "Non-Compliant"


class RiskLevel(str, Enum):
    """Risk level paired with each compliance status band."""
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class StepType(str, Enum):
    """Direction of a score breakdown step."""
    POSITIVE = "positive"
    NEGATIVE = "negative"
