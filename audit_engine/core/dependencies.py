"""
FastAPI dependency injection module for the call audit engine.

Key Dependencies Provided:
- get_settings_dependency: Returns the cached Settings singleton
- require_database: Guards database-backed routes when DATABASE_URL is unset
- SettingsDep: Type alias for injecting Settings into endpoints

The derivation routes only need settings; the routes that load or persist call
records additionally depend on require_database so that a deployment without a
database answers 503 instead of failing deep inside asyncpg.

Usage Examples:
    @router.post("/score")
    async def score(request: ScoreRequest, settings: SettingsDep) -> ScoreResult:
        ...

    In tests:
        app.dependency_overrides[get_settings_dependency] = lambda: test_settings
"""

from typing import Annotated

from fastapi import Depends, HTTPException

from audit_engine.core.config import Settings, get_settings


# =============================================================================
# Settings Dependency
# =============================================================================

def get_settings_dependency() -> Settings:
    """
    Return the Settings singleton instance.

    This is a thin wrapper around get_settings() to enable FastAPI's
    dependency override mechanism for testing:

        app.dependency_overrides[get_settings_dependency] = lambda: mock_settings

    Returns:
        Settings: The cached Settings instance with all configuration values.
    """
    return get_settings()


def require_database(
    settings: Annotated[Settings, Depends(get_settings_dependency)],
) -> Settings:
    """
    Reject database-backed requests when no DATABASE_URL is configured.

    Raises:
        HTTPException 503: If the call-record store is not configured.
    """
    if not settings.database_url:
        raise HTTPException(
            status_code=503,
            detail="Call record store is not configured"
        )
    return settings


# =============================================================================
# Type Aliases for Dependency Injection
# =============================================================================

# Usage: async def endpoint(settings: SettingsDep)
SettingsDep = Annotated[Settings, Depends(get_settings_dependency)]

# Usage: async def endpoint(settings: DatabaseSettingsDep)
DatabaseSettingsDep = Annotated[Settings, Depends(require_database)]
