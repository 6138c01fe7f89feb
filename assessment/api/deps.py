"""
Shared FastAPI dependencies.

One lock registry is shared by every manager in the process so all
transitions on an attempt serialize regardless of which route they enter.
"""
from __future__ import annotations

from functools import lru_cache

from fastapi import HTTPException
from loguru import logger

from config import get_settings
from assessment.core.errors import AssessmentError, IntegrityFaultError
from assessment.engine.diagnostic import DiagnosticAttemptManager
from assessment.engine.locks import AttemptLocks
from assessment.engine.mock_test import MockTestAttemptManager
from assessment.engine.report import ReportService


@lru_cache(maxsize=1)
def get_attempt_locks() -> AttemptLocks:
    return AttemptLocks(get_settings().attempt_lock_timeout_seconds)


@lru_cache(maxsize=1)
def get_diagnostic_manager() -> DiagnosticAttemptManager:
    return DiagnosticAttemptManager(locks=get_attempt_locks())


@lru_cache(maxsize=1)
def get_mock_test_manager() -> MockTestAttemptManager:
    return MockTestAttemptManager(locks=get_attempt_locks())


@lru_cache(maxsize=1)
def get_report_service() -> ReportService:
    return ReportService()


def http_error(exc: AssessmentError) -> HTTPException:
    """Map an engine error to its HTTP response."""
    if isinstance(exc, IntegrityFaultError):
        logger.error(f"Integrity fault: {exc.detail}")
    headers = {"Retry-After": "1"} if exc.retryable else None
    return HTTPException(status_code=exc.status_code, detail=exc.to_dict(), headers=headers)
