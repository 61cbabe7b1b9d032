"""
Core infrastructure package for the call audit engine.

Provides:
- Configuration management via pydantic-settings
- Async PostgreSQL connectivity via asyncpg for the call-record store
- FastAPI dependency injection utilities

This module re-exports key components from submodules for convenient importing:

    from audit_engine.core import get_settings, get_db_pool, SettingsDep

Components Re-exported:
    Settings: Pydantic settings class with all configuration parameters
    get_settings: Function returning the cached Settings singleton
    init_db / close_db / get_db_pool: Connection pool lifecycle
    get_settings_dependency / require_database: FastAPI dependencies
    SettingsDep / DatabaseSettingsDep: Type aliases for dependency injection
"""

# =============================================================================
# Re-exports from audit_engine.core.config
# =============================================================================
from audit_engine.core.config import Settings, get_settings

# =============================================================================
# Re-exports from audit_engine.core.database
# =============================================================================
from audit_engine.core.database import (
    DatabaseNotConfiguredError,
    init_db,
    close_db,
    get_db_pool,
)

# =============================================================================
# Re-exports from audit_engine.core.dependencies
# =============================================================================
from audit_engine.core.dependencies import (
    get_settings_dependency,
    require_database,
    SettingsDep,
    DatabaseSettingsDep,
)

__all__ = [
    # Configuration management (from config.py)
    'Settings',
    'get_settings',
    # Database pool lifecycle (from database.py)
    'DatabaseNotConfiguredError',
    'init_db',
    'close_db',
    'get_db_pool',
    # FastAPI dependency injection (from dependencies.py)
    'get_settings_dependency',
    'require_database',
    'SettingsDep',
    'DatabaseSettingsDep',
]
