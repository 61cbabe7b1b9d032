"""
Timeline Synthesizer Service

Merges every timed event of a call into one position-normalized list of timeline
markers for a recording of known duration:

- chapters                  -> chapter
- explicit marker records   -> transfer (transfer/info events) or pass/fail by status
- checklist items           -> pass/fail by effective (override-aware) status
- auto-fail reasons         -> fail for critical violations, note for warning-only codes

Seconds are resolved per event by priority: explicit numeric seconds field (not the
-1 sentinel) > parseable display string > `[M:SS]` embedded in evidence text >
positional estimate (checklist items only). Positions are seconds / duration * 100.

Two independent passes follow:
1. Anti-overlap: markers sorted by seconds are shifted right so that consecutive
   positions are at least `overlap_threshold` apart, then clamped to 100.
2. Clustering: a single left-to-right sweep groups markers within
   `cluster_threshold` of their cluster's first member (the anchor).

Everything is recomputed from scratch for each duration; nothing is cached, so a
revised (authoritative) duration simply produces a new marker list.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from audit_engine.core.config import get_settings
from audit_engine.models.enums import ItemStatus, MarkerType
from audit_engine.models.schemas import (
    AutoFailEvaluation,
    AutoFailReason,
    ChecklistItem,
    MarkerCluster,
    Override,
    TimelineMarker,
)
from audit_engine.services.checklist import MET_STATUSES
from audit_engine.services.overrides import SessionOverrides, resolve_status
from audit_engine.services.timestamps import (
    NO_TIMESTAMP_SENTINEL,
    extract_evidence_timestamp,
    format_seconds,
    parse_timestamp,
    try_parse_timestamp,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Display Colors
# =============================================================================

MARKER_COLORS: Dict[MarkerType, str] = {
    MarkerType.PASS: "emerald",
    MarkerType.FAIL: "rose",
    MarkerType.TRANSFER: "sky",
    MarkerType.CHAPTER: "indigo",
    MarkerType.NOTE: "amber",
}

# Positional estimate for untimed checklist items: 10% offset, spread over 80%
ESTIMATE_OFFSET_RATIO = 0.10
ESTIMATE_SPAN_RATIO = 0.80

CHAPTER_TIME_FIELDS = ("startTime", "start_time", "time", "timestamp", "start")


@dataclass
class TimedEvent:
    """A timeline candidate before position math."""
    title: str
    seconds: float
    estimated: bool
    type: MarkerType
    order: int
    code: Optional[str] = None


# =============================================================================
# Duration and Seconds Resolution
# =============================================================================

def resolve_duration(media_duration: Optional[float], display_duration: Any = None) -> float:
    """
    Pick the recording duration in seconds.

    A positive, finite media-derived duration is authoritative; otherwise the
    metadata display string is parsed. Returns 0 when neither is usable.
    """
    if (
        isinstance(media_duration, (int, float))
        and not isinstance(media_duration, bool)
        and math.isfinite(media_duration)
        and media_duration > 0
    ):
        return float(media_duration)
    return parse_timestamp(display_duration)


def resolve_event_seconds(
    numeric: Any = None,
    display: Any = None,
    evidence: Any = None,
) -> Optional[float]:
    """
    Resolve an event's seconds from its explicit sources, or None.

    Priority: numeric seconds (>= 0, not the -1 sentinel) > display string >
    `[M:SS]` in evidence text.
    """
    if (
        isinstance(numeric, (int, float))
        and not isinstance(numeric, bool)
        and numeric != NO_TIMESTAMP_SENTINEL
        and numeric >= 0
        and math.isfinite(numeric)
    ):
        return float(numeric)

    if display is not None and display != "":
        seconds = try_parse_timestamp(display)
        if seconds is not None:
            return seconds

    return extract_evidence_timestamp(evidence if isinstance(evidence, str) else None)


def estimate_item_seconds(index: int, count: int, duration: float) -> float:
    """Positional estimate for an untimed checklist item."""
    ratio = index / (count - 1) if count > 1 else 0.0
    return duration * (ESTIMATE_OFFSET_RATIO + ratio * ESTIMATE_SPAN_RATIO)


# =============================================================================
# Classification
# =============================================================================

def classify_marker_record(record: Mapping[str, Any]) -> MarkerType:
    """
    Classify an explicit marker record.

    Transfer if its type or status mentions a transfer, or is "info"; otherwise
    pass when its status is a met spelling (or its type is "pass"), else fail.
    """
    marker_type = str(record.get("type") or "").strip().lower()
    status = str(record.get("status") or "").strip().lower()

    if "transfer" in marker_type or "transfer" in status or "info" in (marker_type, status):
        return MarkerType.TRANSFER
    if status in MET_STATUSES or marker_type == MarkerType.PASS.value:
        return MarkerType.PASS
    return MarkerType.FAIL


# =============================================================================
# Candidate Collection
# =============================================================================

def _chapter_events(chapters: Iterable[Any], start_order: int) -> List[TimedEvent]:
    events = []
    for idx, chapter in enumerate(chapters or []):
        if not isinstance(chapter, dict):
            continue
        display = next(
            (chapter.get(field) for field in CHAPTER_TIME_FIELDS if chapter.get(field) not in (None, "")),
            None,
        )
        seconds = resolve_event_seconds(
            chapter.get("time_seconds", chapter.get("seconds")), display
        )
        if seconds is None:
            continue
        events.append(TimedEvent(
            title=str(chapter.get("title") or chapter.get("name") or f"Chapter {idx + 1}"),
            seconds=seconds,
            estimated=False,
            type=MarkerType.CHAPTER,
            order=start_order + len(events),
        ))
    return events


def _marker_record_events(records: Iterable[Any], start_order: int) -> List[TimedEvent]:
    events = []
    for record in records or []:
        if not isinstance(record, dict):
            continue
        seconds = resolve_event_seconds(
            record.get("time_seconds", record.get("timeSeconds")),
            record.get("time") or record.get("timestamp"),
            record.get("evidence"),
        )
        if seconds is None:
            continue
        title = record.get("title") or record.get("event") or record.get("item_key") or "Event"
        events.append(TimedEvent(
            title=str(title),
            seconds=seconds,
            estimated=False,
            type=classify_marker_record(record),
            order=start_order + len(events),
        ))
    return events


def _auto_fail_events(auto_fail: Optional[AutoFailEvaluation], start_order: int) -> List[TimedEvent]:
    if auto_fail is None:
        return []

    tagged: List[Tuple[AutoFailReason, MarkerType]] = (
        [(reason, MarkerType.FAIL) for reason in auto_fail.critical]
        + [(reason, MarkerType.NOTE) for reason in auto_fail.warnings]
    )

    events = []
    for reason, marker_type in tagged:
        seconds = resolve_event_seconds(reason.timeSeconds, reason.timestamp, reason.evidence)
        if seconds is None:
            continue
        title = f"{reason.code}: {reason.violation}" if reason.violation else reason.code
        events.append(TimedEvent(
            title=title,
            seconds=seconds,
            estimated=False,
            type=marker_type,
            order=start_order + len(events),
            code=reason.code,
        ))
    return events


def _checklist_events(
    items: Sequence[ChecklistItem],
    duration: float,
    session_overrides: Optional[SessionOverrides],
    persisted_overrides: Optional[Mapping[str, Override]],
    start_order: int,
) -> List[TimedEvent]:
    events = []
    count = len(items)
    for idx, item in enumerate(items):
        if item.status == ItemStatus.NA:
            continue

        estimated = False
        seconds = item.timeSeconds
        if seconds is None:
            seconds = extract_evidence_timestamp(item.evidence)
        if seconds is None:
            seconds = estimate_item_seconds(idx, count, duration)
            estimated = True

        status, _ = resolve_status(item.name, item.status, session_overrides, persisted_overrides)
        events.append(TimedEvent(
            title=item.name,
            seconds=seconds,
            estimated=estimated,
            type=MarkerType.PASS if status == ItemStatus.PASS else MarkerType.FAIL,
            order=start_order + len(events),
        ))
    return events


# =============================================================================
# Passes
# =============================================================================

def _keep_event(event: TimedEvent, position: float, min_seconds: float) -> bool:
    if math.isnan(position) or position > 100:
        return False
    if event.estimated:
        return event.seconds >= min_seconds
    return event.seconds > 0


def _dedupe(events: List[TimedEvent]) -> List[TimedEvent]:
    seen = set()
    unique = []
    for event in events:
        key = (event.type, event.title.strip().lower(), event.seconds)
        if key in seen:
            continue
        seen.add(key)
        unique.append(event)
    return unique


def apply_anti_overlap(
    markers: Sequence[TimelineMarker],
    threshold: Optional[float] = None,
) -> List[TimelineMarker]:
    """
    Shift markers so consecutive positions are at least `threshold` apart.

    Markers are walked in ascending seconds order; each one closer than the
    threshold to the previous (already shifted) marker moves to previous +
    threshold. Final positions are clamped to 100.
    """
    if threshold is None:
        threshold = get_settings().marker_overlap_threshold

    shifted: List[TimelineMarker] = []
    previous: Optional[float] = None
    for marker in sorted(markers, key=lambda m: (m.seconds, m.position)):
        position = marker.position
        if previous is not None and position - previous < threshold:
            position = previous + threshold
        previous = position
        shifted.append(marker.model_copy(update={"position": min(100.0, round(position, 6))}))
    return shifted


def cluster_markers(
    markers: Sequence[TimelineMarker],
    threshold: Optional[float] = None,
) -> List[MarkerCluster]:
    """
    Group markers into clusters for aggregate-badge rendering.

    Markers are sorted by position (ties broken by seconds, type and title, so
    the result does not depend on input order) and swept left to right. A marker
    joins the active cluster while its position is within `threshold` of the
    cluster anchor (its first member); otherwise it starts a new cluster.
    """
    if threshold is None:
        threshold = get_settings().marker_cluster_threshold

    ordered = sorted(
        markers,
        key=lambda m: (m.position, m.seconds, m.type.value, m.title),
    )

    clusters: List[MarkerCluster] = []
    for marker in ordered:
        if clusters and marker.position - clusters[-1].anchorPosition <= threshold:
            clusters[-1].members.append(marker)
            continue
        clusters.append(MarkerCluster(
            anchorPosition=marker.position,
            anchorSeconds=marker.seconds,
            members=[marker],
        ))
    return clusters


def synthesize_timeline(
    duration: float,
    items: Sequence[ChecklistItem] = (),
    chapters: Iterable[Any] = (),
    markers: Iterable[Any] = (),
    auto_fail: Optional[AutoFailEvaluation] = None,
    session_overrides: Optional[SessionOverrides] = None,
    persisted_overrides: Optional[Mapping[str, Override]] = None,
    min_seconds: Optional[float] = None,
    overlap_threshold: Optional[float] = None,
) -> List[TimelineMarker]:
    """
    Build the positioned, de-overlapped marker list for a call.

    Args:
        duration: Recording duration in seconds (see resolve_duration)
        items: Normalized checklist items
        chapters: Raw chapter records ({title, startTime})
        markers: Raw explicit marker records
        auto_fail: Auto-fail evaluation (critical reasons and warnings)
        session_overrides: Unsaved reviewer overrides
        persisted_overrides: Stored overrides from qaNotes
        min_seconds: Minimum-time floor for estimated positions (defaults to settings)
        overlap_threshold: Anti-overlap spacing in position units (defaults to settings)

    Returns:
        Markers sorted by seconds with positions in [0, 100]. Empty when the
        duration is unknown.
    """
    settings = get_settings()
    if min_seconds is None:
        min_seconds = settings.min_marker_seconds
    if overlap_threshold is None:
        overlap_threshold = settings.marker_overlap_threshold

    if not duration or duration <= 0 or not math.isfinite(duration):
        return []

    events: List[TimedEvent] = []
    events += _chapter_events(chapters, len(events))
    events += _marker_record_events(markers, len(events))
    events += _auto_fail_events(auto_fail, len(events))
    events += _checklist_events(items, duration, session_overrides, persisted_overrides, len(events))

    positioned: List[Tuple[TimedEvent, float]] = []
    for event in _dedupe(events):
        position = event.seconds / duration * 100
        if _keep_event(event, position, min_seconds):
            positioned.append((event, max(0.0, position)))

    positioned.sort(key=lambda pair: (pair[0].seconds, pair[0].order))

    resolved = [
        TimelineMarker(
            title=event.title,
            time=format_seconds(event.seconds),
            seconds=event.seconds,
            position=position,
            type=event.type,
            color=MARKER_COLORS[event.type],
            estimated=event.estimated,
            code=event.code,
        )
        for event, position in positioned
    ]

    logger.debug(f"Synthesized {len(resolved)} of {len(events)} timeline events")
    return apply_anti_overlap(resolved, overlap_threshold)
