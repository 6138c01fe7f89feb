"""
FastAPI application for the assessment session engine.

Provides REST API for:
- Diagnostic sessions (sequential, untimed)
- Mock test sessions (free navigation, time-boxed)
- Report lookup by report token
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from assessment import __version__
from assessment.core.log_config import configure_logging
from assessment.db.database import check_connection, init_db
from assessment.engine.timer import utcnow
from config import get_settings

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    # Startup
    configure_logging(settings)
    logger.info("Starting assessment engine service...")
    init_db()
    logger.info(f"Service started on {settings.api_host}:{settings.api_port}")

    yield

    # Shutdown
    logger.info("Shutting down assessment engine service...")


app = FastAPI(
    title="Assessment Session Engine",
    description="""
    Runs timed and untimed assessment sessions against a question bank.

    ## Flows

    - **Diagnostic**: short, strictly sequential, concept-diverse selection
    - **Mock test**: full-length, freely navigable, hard time budget with autosave
    - **Report**: finished-attempt summary unlocked by an opaque report token
    """,
    version=__version__,
    lifespan=lifespan,
)

# CORS middleware for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ========================================
# Health & Status Endpoints
# ========================================


@app.get("/", tags=["Health"])
def root() -> dict[str, str]:
    """Root endpoint returning service info."""
    return {
        "service": "assessment-engine",
        "version": __version__,
        "status": "ok",
    }


@app.get("/health", tags=["Health"])
def health_check() -> dict[str, Any]:
    """Health check with an actual database round trip."""
    db_status, db_error = check_connection()

    result: dict[str, Any] = {
        "status": "healthy" if db_status == "ok" else "unhealthy",
        "timestamp": utcnow().isoformat(),
        "components": {"database": db_status},
    }
    if db_error:
        result["errors"] = {"database": db_error}
    return result


# ========================================
# Import and mount routers
# ========================================

from assessment.api.routers import (  # noqa: E402
    diagnostic_router,
    mock_test_router,
    report_router,
)

app.include_router(diagnostic_router.router, prefix="/api/diagnostic", tags=["Diagnostic"])
app.include_router(mock_test_router.router, prefix="/api/mock-test", tags=["Mock Test"])
app.include_router(report_router.router, prefix="/api/report", tags=["Report"])
