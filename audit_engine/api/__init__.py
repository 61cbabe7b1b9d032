"""
Call audit API package initialization.

This package contains FastAPI router modules for the call audit engine:
- audits: Score, timeline and diarization derivation plus stored-call review
"""

from fastapi import APIRouter

# Import router modules
from audit_engine.api.audits import router as audits_router

# Create main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(audits_router, prefix="/audits", tags=["audits"])

# Export all routers for selective imports
__all__ = [
    "api_router",
    "audits_router",
]
