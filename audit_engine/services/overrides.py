"""
Override Resolution Service

Reviewer corrections to checklist item statuses come from two places:

- Session overrides: an explicit `{item_key: "PASS" | "FAIL"}` mapping owned by the
  reviewing session and threaded into every scoring/timeline call. Never global state.
- Persisted overrides: stored by the call-record collaborator inside the `qaNotes`
  field as a JSON blob `{"overrides": [{"itemKey", "overrideStatus", "reviewedBy",
  "timestamp", "notes"}]}`.

Resolution order: session override > persisted override > original status.

`qaNotes` is free text in older records: plain-text notes
yield no overrides, malformed JSON objects are logged and yield no overrides.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Tuple

from audit_engine.models.enums import ItemStatus, OverrideSource
from audit_engine.models.schemas import Override

logger = logging.getLogger(__name__)

DEFAULT_REVIEWER = "QA Agent"

SessionOverrides = Mapping[str, Any]
PersistedOverrides = Mapping[str, Override]


# =============================================================================
# Parsing
# =============================================================================

def override_status(value: Any) -> ItemStatus:
    """Map an override status value to PASS or FAIL. Anything but a pass is FAIL."""
    if isinstance(value, ItemStatus):
        return ItemStatus.PASS if value == ItemStatus.PASS else ItemStatus.FAIL
    text = str(value).strip().lower() if value is not None else ""
    return ItemStatus.PASS if text in ("pass", "met") else ItemStatus.FAIL


def _load_qa_notes(qa_notes: Any) -> Optional[Dict[str, Any]]:
    """
    Decode a qaNotes value into a dict, or None when it holds no JSON object.

    Plain-text notes are expected and return None quietly.
    """
    if qa_notes is None:
        return None
    if isinstance(qa_notes, dict):
        return qa_notes
    if not isinstance(qa_notes, str):
        return None

    text = qa_notes.strip()
    if not text.startswith("{"):
        return None

    try:
        decoded = json.loads(text)
    except json.JSONDecodeError as e:
        logger.warning(f"Malformed qaNotes JSON, ignoring persisted overrides: {e}")
        return None

    return decoded if isinstance(decoded, dict) else None


def parse_qa_notes_overrides(qa_notes: Any) -> Dict[str, Override]:
    """
    Extract persisted overrides from a qaNotes value.

    Args:
        qa_notes: JSON string, already-decoded dict, plain text or None

    Returns:
        Mapping of lowercased item key to Override; later entries for the same key win.
    """
    blob = _load_qa_notes(qa_notes)
    if not blob:
        return {}

    records = blob.get("overrides")
    if not isinstance(records, list):
        return {}

    overrides: Dict[str, Override] = {}
    for record in records:
        if not isinstance(record, dict):
            continue
        item_key = str(record.get("itemKey") or "").strip().lower()
        if not item_key:
            continue
        overrides[item_key] = Override(
            itemKey=item_key,
            status=override_status(record.get("overrideStatus")),
            source=OverrideSource.PERSISTED,
            reviewer=record.get("reviewedBy"),
            notes=record.get("notes") or None,
            timestamp=record.get("timestamp"),
        )

    return overrides


# =============================================================================
# Resolution
# =============================================================================

def normalize_session_overrides(session_overrides: Optional[SessionOverrides]) -> Dict[str, ItemStatus]:
    """Lowercase session override keys and map their values to PASS/FAIL."""
    if not session_overrides:
        return {}
    return {
        str(key).strip().lower(): override_status(value)
        for key, value in session_overrides.items()
        if str(key).strip()
    }


def find_persisted_override(
    item_key: str,
    persisted_overrides: Optional[PersistedOverrides],
) -> Optional[Override]:
    """
    Find the persisted override for an item.

    An exact key match wins; otherwise the first override whose key contains, or
    is contained in, the item key. Empty keys never match.
    """
    if not persisted_overrides or not item_key:
        return None

    exact = persisted_overrides.get(item_key)
    if exact is not None:
        return exact

    for key, override in persisted_overrides.items():
        if key and (key in item_key or item_key in key):
            return override
    return None


def resolve_status(
    item_name: str,
    original_status: ItemStatus,
    session_overrides: Optional[SessionOverrides] = None,
    persisted_overrides: Optional[PersistedOverrides] = None,
) -> Tuple[ItemStatus, OverrideSource]:
    """
    Resolve an item's effective status.

    Args:
        item_name: Item name as displayed
        original_status: Status from the checklist
        session_overrides: Unsaved reviewer overrides (exact lowercased key match)
        persisted_overrides: Stored overrides from qaNotes

    Returns:
        Tuple of (effective status, where it came from)
    """
    item_key = item_name.strip().lower()

    session = normalize_session_overrides(session_overrides)
    if item_key in session:
        return session[item_key], OverrideSource.SESSION

    persisted = find_persisted_override(item_key, persisted_overrides)
    if persisted is not None:
        return persisted.status, OverrideSource.PERSISTED

    return original_status, OverrideSource.ORIGINAL


# =============================================================================
# Writing
# =============================================================================

def make_override(
    item_key: str,
    status: Any,
    reviewed_by: Optional[str] = None,
    notes: Optional[str] = None,
) -> Override:
    """Create a persisted override record stamped with the current UTC time."""
    return Override(
        itemKey=item_key.strip().lower(),
        status=override_status(status),
        source=OverrideSource.PERSISTED,
        reviewer=reviewed_by or DEFAULT_REVIEWER,
        notes=notes or None,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


def upsert_override(qa_notes: Any, override: Override) -> str:
    """
    Produce the new qaNotes JSON with `override` added.

    Any previous override for the same key (case-insensitive) is replaced. Other
    keys of an existing JSON blob are preserved; plain-text notes are kept under
    a `notes` key.

    Returns:
        Serialized qaNotes JSON string
    """
    blob = _load_qa_notes(qa_notes)
    if blob is None:
        blob = {}
        if isinstance(qa_notes, str) and qa_notes.strip():
            blob["notes"] = qa_notes
    else:
        blob = dict(blob)

    existing = blob.get("overrides")
    if not isinstance(existing, list):
        existing = []

    key = override.itemKey.lower()
    kept = [
        record for record in existing
        if not (isinstance(record, dict) and str(record.get("itemKey") or "").lower() == key)
    ]
    kept.append({
        "itemKey": override.itemKey,
        "overrideStatus": override.status.value,
        "reviewedBy": override.reviewer or DEFAULT_REVIEWER,
        "timestamp": override.timestamp,
        "notes": override.notes or "",
    })
    blob["overrides"] = kept

    return json.dumps(blob)
