"""
FastAPI application entry point for the Call Audit Engine API.

This module configures logging and CORS, registers the API routers, and manages the
optional call-record store connection pool.

The derivation endpoints never need a database; the pool is opened in the lifespan
only when DATABASE_URL is configured.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from audit_engine.api import api_router
from audit_engine.core.config import get_settings
from audit_engine.core.database import close_db, init_db

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

API_TITLE = "Call Audit Engine API"
API_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Lifespan context manager for FastAPI application startup and shutdown events.

    On startup:
        - Initialize the database connection pool when DATABASE_URL is set

    On shutdown:
        - Close the database connection pool
    """
    logger.info(f"{API_TITLE} starting")
    settings = get_settings()

    if settings.database_url:
        try:
            await init_db()
            logger.info("Database connection pool initialized")
        except Exception as e:
            logger.error(f"Failed to initialize database: {e}")
            # Derivation endpoints keep working without the store
    else:
        logger.info("DATABASE_URL not set; stored-call endpoints are disabled")

    yield

    logger.info(f"{API_TITLE} shutting down")
    try:
        await close_db()
    except Exception as e:
        logger.error(f"Error closing database pool: {e}")


# Create FastAPI application
app = FastAPI(
    title=API_TITLE,
    version=API_VERSION,
    description=(
        "Derives weighted compliance scores, evidence confidence, call timelines "
        "and speaker roles from call-audit data."
    ),
    lifespan=lifespan,
)

# Configure CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register API routers
app.include_router(api_router)


@app.get("/health")
async def health_check():
    """
    Health check endpoint for monitoring and load balancer probes.

    Returns:
        Dict with status 'healthy'
    """
    return {"status": "healthy"}


@app.get("/")
async def root():
    """
    Root endpoint providing API information.

    Returns:
        Dict with API name and version
    """
    return {
        "name": API_TITLE,
        "version": API_VERSION,
        "docs": "/docs",
        "openapi": "/openapi.json",
    }


# Run with uvicorn when executed directly
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "audit_engine.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
