"""
Diagnostic API Router.

Endpoints for the sequential diagnostic flow:
- Start a session
- Fetch the current question
- Answer or skip the current question
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from loguru import logger
from pydantic import BaseModel, Field

from assessment.api.deps import get_diagnostic_manager, http_error
from assessment.core.errors import AssessmentError
from assessment.engine.diagnostic import DiagnosticAttemptManager

router = APIRouter()


# ========================================
# Request/Response Models
# ========================================


class StartRequest(BaseModel):
    """Request model for starting a diagnostic."""

    lead_id: str | None = Field(None, max_length=64, description="Originating lead or session reference")


class StartResponse(BaseModel):
    attempt_id: str
    total_questions: int
    requested: int
    shortfall_by_subject: dict[str, int]


class CurrentResponse(BaseModel):
    """Current question, or the terminal status and report token."""

    attempt_id: str
    status: str
    current_index: int
    total_questions: int
    correct_count: int
    incorrect_count: int
    skipped_count: int
    question: dict[str, Any] | None = None
    report_token: str | None = None


class AnswerRequest(BaseModel):
    """Request model for answering the current question."""

    item_id: str = Field(..., description="Id of the question being answered")
    answer: str = Field(..., min_length=1, description="Selected option or value")
    time_seconds: int = Field(0, ge=0, description="Time spent on the question")


class StepResponse(BaseModel):
    attempt_id: str
    current_index: int
    total_questions: int
    completed: bool
    skipped: bool
    is_correct: bool | None
    correct_answer: str | None
    solution: str | None
    report_token: str | None


# ========================================
# Endpoints
# ========================================


@router.post("/start", response_model=StartResponse, summary="Start a diagnostic")
def start_diagnostic(
    request: StartRequest,
    manager: DiagnosticAttemptManager = Depends(get_diagnostic_manager),
) -> StartResponse:
    try:
        started = manager.start(lead_id=request.lead_id)
        return StartResponse(
            attempt_id=started.attempt_id,
            total_questions=started.total_questions,
            requested=started.requested,
            shortfall_by_subject=started.shortfall_by_subject,
        )
    except AssessmentError as exc:
        raise http_error(exc) from exc
    except Exception:
        logger.exception("Failed to start diagnostic")
        raise HTTPException(status_code=500, detail="Failed to start diagnostic")


@router.get("/{attempt_id}", response_model=CurrentResponse, summary="Get the current question")
def get_current(
    attempt_id: str,
    manager: DiagnosticAttemptManager = Depends(get_diagnostic_manager),
) -> CurrentResponse:
    try:
        view = manager.get_current(attempt_id)
        return CurrentResponse(
            attempt_id=view.attempt_id,
            status=view.status,
            current_index=view.current_index,
            total_questions=view.total_questions,
            correct_count=view.correct_count,
            incorrect_count=view.incorrect_count,
            skipped_count=view.skipped_count,
            question=view.question,
            report_token=view.report_token,
        )
    except AssessmentError as exc:
        raise http_error(exc) from exc
    except Exception:
        logger.exception(f"Failed to fetch diagnostic {attempt_id}")
        raise HTTPException(status_code=500, detail="Failed to fetch diagnostic")


@router.post("/{attempt_id}/answer", response_model=StepResponse, summary="Answer the current question")
def submit_answer(
    attempt_id: str,
    request: AnswerRequest,
    manager: DiagnosticAttemptManager = Depends(get_diagnostic_manager),
) -> StepResponse:
    try:
        step = manager.answer(attempt_id, request.item_id, request.answer, request.time_seconds)
        return StepResponse(**vars(step))
    except AssessmentError as exc:
        raise http_error(exc) from exc
    except Exception:
        logger.exception(f"Failed to record answer for diagnostic {attempt_id}")
        raise HTTPException(status_code=500, detail="Failed to record answer")


@router.post("/{attempt_id}/skip", response_model=StepResponse, summary="Skip the current question")
def skip_question(
    attempt_id: str,
    manager: DiagnosticAttemptManager = Depends(get_diagnostic_manager),
) -> StepResponse:
    try:
        step = manager.skip(attempt_id)
        return StepResponse(**vars(step))
    except AssessmentError as exc:
        raise http_error(exc) from exc
    except Exception:
        logger.exception(f"Failed to skip question for diagnostic {attempt_id}")
        raise HTTPException(status_code=500, detail="Failed to skip question")
