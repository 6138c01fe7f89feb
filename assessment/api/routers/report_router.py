"""
Report API Router.

Finished-attempt summaries, unlocked by the report token.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from loguru import logger

from assessment.api.deps import get_report_service, http_error
from assessment.core.errors import AssessmentError
from assessment.engine.report import ReportService

router = APIRouter()


@router.get("/{token}", summary="Get a finished attempt's report")
def get_report(
    token: str,
    service: ReportService = Depends(get_report_service),
) -> dict[str, Any]:
    try:
        return service.get_report(token)
    except AssessmentError as exc:
        raise http_error(exc) from exc
    except Exception:
        logger.exception("Failed to build report")
        raise HTTPException(status_code=500, detail="Failed to build report")
