"""
Timestamp Utilities

Tolerant parsing and formatting of the timestamps that appear throughout call-audit
payloads: checklist `time` fields, chapter start times, marker records, evidence text
and transcript line prefixes.

Upstream data writes the same instant in many forms:
- "1:05", "[1:05]", "(1:05)", "01:01:05"
- "45s", "45 seconds", "45"
- ranges such as "0:20-0:49" (the start of the range is used)
- plain numbers (already seconds)

Parsing never raises. Positional contexts default to 0 when nothing matches; sorting
contexts use +infinity so that unresolved items sort last.
"""

import math
import re
from typing import Any, Optional


# =============================================================================
# Patterns
# =============================================================================

HMS_PATTERN = re.compile(r"(\d{1,2}):(\d{2}):(\d{2})")
MS_PATTERN = re.compile(r"(\d{1,3}):(\d{2})")
SECONDS_PATTERN = re.compile(
    r"^(\d+(?:\.\d+)?)\s*(?:s|sec|secs|second|seconds)?$",
    re.IGNORECASE,
)
RANGE_SEPARATOR = re.compile(r"\s*[-–—]\s*")
EVIDENCE_TIMESTAMP_PATTERN = re.compile(r"\[(\d{1,2}:\d{2}(?::\d{2})?)\]")
DISPLAY_TIMESTAMP_PATTERN = re.compile(r"^\d{1,2}:\d{2}$")

# Sentinel used by upstream records for "no timestamp"
NO_TIMESTAMP_SENTINEL = -1


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _parse_seconds(value: Any) -> Optional[float]:
    """
    Resolve a timestamp to seconds, or None when nothing recognisable is present.

    Args:
        value: Number (seconds) or string in any of the supported forms

    Returns:
        Seconds as a float, or None
    """
    if value is None:
        return None

    if _is_number(value):
        if math.isnan(value) or math.isinf(value) or value < 0:
            return None
        return float(value)

    if not isinstance(value, str):
        return None

    text = value.strip().strip("[]()").strip()
    if not text:
        return None

    # Ranges: "0:20-0:49" -> "0:20"
    text = RANGE_SEPARATOR.split(text, maxsplit=1)[0].strip().strip("[]()").strip()
    if not text:
        return None

    seconds_match = SECONDS_PATTERN.match(text)
    if seconds_match:
        return float(seconds_match.group(1))

    hms_match = HMS_PATTERN.search(text)
    if hms_match:
        hours, minutes, seconds = (int(part) for part in hms_match.groups())
        return float(hours * 3600 + minutes * 60 + seconds)

    ms_match = MS_PATTERN.search(text)
    if ms_match:
        minutes, seconds = (int(part) for part in ms_match.groups())
        return float(minutes * 60 + seconds)

    return None


# =============================================================================
# Public API
# =============================================================================

def parse_timestamp(value: Any) -> float:
    """
    Parse a timestamp for position math. Unparseable input yields 0.

    Examples:
        >>> parse_timestamp("0:20-0:49")
        20.0
        >>> parse_timestamp("[1:05]")
        65.0
        >>> parse_timestamp("garbage")
        0.0
    """
    seconds = _parse_seconds(value)
    return seconds if seconds is not None else 0.0


def parse_sort_seconds(value: Any) -> float:
    """Parse a timestamp for ordering. Unparseable input yields +infinity."""
    seconds = _parse_seconds(value)
    return seconds if seconds is not None else math.inf


def try_parse_timestamp(value: Any) -> Optional[float]:
    """Parse a timestamp, returning None when nothing recognisable is present."""
    return _parse_seconds(value)


def is_display_timestamp(value: Any) -> bool:
    """True for strings of the exact `M:SS` / `MM:SS` display form."""
    return isinstance(value, str) and bool(DISPLAY_TIMESTAMP_PATTERN.match(value.strip()))


def format_seconds(seconds: Optional[float]) -> str:
    """
    Format seconds as `M:SS`.

    Missing, NaN, infinite or negative input formats as "0:00".
    """
    if seconds is None or not _is_number(seconds):
        return "0:00"
    if math.isnan(seconds) or math.isinf(seconds) or seconds < 0:
        return "0:00"
    whole = int(seconds)
    return f"{whole // 60}:{whole % 60:02d}"


def extract_evidence_timestamp(text: Optional[str]) -> Optional[float]:
    """Return the first `[M:SS]` timestamp embedded in evidence text, if any."""
    if not text or not isinstance(text, str):
        return None
    match = EVIDENCE_TIMESTAMP_PATTERN.search(text)
    if not match:
        return None
    return _parse_seconds(match.group(1))
