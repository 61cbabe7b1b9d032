"""
Call Audit Engine Package.

FastAPI service layer that turns loosely structured call-audit data (compliance
checklist, auto-fail flags, transcript text, chapter and event markers) into a
weighted compliance score, per-item confidence, a position-normalized timeline and
speaker-resolved transcript turns.

Subpackages:
    - api: FastAPI route handlers
    - core: Configuration, database, and dependencies
    - models: Pydantic schemas and enums
    - services: Derivation services and call-record repository
"""

__version__ = "1.0.0"
