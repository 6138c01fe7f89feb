"""
Mock Test API Router.

Endpoints for timed, freely navigable mock tests:
- List test definitions and start an attempt
- Fetch state (questions, saved answers, remaining time)
- Save single answers and autosave batches
- Submit early or force completion after expiry

A write arriving after the time budget is exhausted is refused with 409
and ``must_force_complete: true``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from loguru import logger
from pydantic import BaseModel, Field

from assessment.api.deps import get_mock_test_manager, http_error
from assessment.core.errors import AssessmentError
from assessment.engine.mock_test import BatchAnswer, MockCompletion, MockTestAttemptManager

router = APIRouter()


# ========================================
# Request/Response Models
# ========================================


class MockTestResponse(BaseModel):
    id: str
    name: str
    description: str | None
    duration_seconds: int
    total_questions: int


class StartRequest(BaseModel):
    """Request model for starting a mock test."""

    mock_test_id: str | None = Field(None, description="Test definition (first active test when omitted)")
    lead_id: str | None = Field(None, max_length=64, description="Originating lead or session reference")


class StartResponse(BaseModel):
    attempt_id: str
    mock_test_id: str
    total_questions: int
    duration_seconds: int
    remaining_seconds: int
    questions_per_subject: dict[str, int]


class CompletionResponse(BaseModel):
    attempt_id: str
    status: str
    report_token: str
    completion_reason: str | None
    total_time_seconds: int
    correct_count: int
    incorrect_count: int
    unanswered_count: int
    already_completed: bool = False


class StateResponse(BaseModel):
    attempt_id: str
    status: str
    mock_test_name: str
    duration_seconds: int
    remaining_seconds: int
    total_questions: int
    unanswered_count: int
    questions: dict[str, list[dict[str, Any]]]
    answers: dict[str, dict[str, Any]]
    visited: list[str]
    marked_for_review: list[str]
    warnings: list[int]
    warning_thresholds: list[int]
    completion: CompletionResponse | None = None


class SaveAnswerRequest(BaseModel):
    """Request model for saving one answer."""

    question_id: str
    answer: str | None = Field(None, description="Answer value (null clears the answer)")
    time_spent: int = Field(0, ge=0, description="Seconds spent since the last save of this question")


class SaveAnswerResponse(BaseModel):
    question_id: str
    saved_at: datetime
    remaining_seconds: int
    unanswered_count: int
    time_spent: int


class BatchAnswerModel(BaseModel):
    answer: str | None = None
    time_spent: int = Field(0, ge=0)


class AutosaveRequest(BaseModel):
    """Request model for a batched autosave."""

    answers: dict[str, BatchAnswerModel] = Field(default_factory=dict)
    visited: list[str] = Field(default_factory=list)
    marked_for_review: list[str] = Field(default_factory=list)


class AutosaveResponse(BaseModel):
    saved_at: datetime
    remaining_seconds: int
    unanswered_count: int
    saved_questions: int


class SubmitRequest(BaseModel):
    """Final answers are optional; the navigation sets are kept when omitted."""

    answers: dict[str, BatchAnswerModel] = Field(default_factory=dict)
    visited: list[str] | None = None
    marked_for_review: list[str] | None = None


def _batch(answers: dict[str, BatchAnswerModel]) -> dict[str, BatchAnswer]:
    return {qid: BatchAnswer(answer=a.answer, time_delta=a.time_spent) for qid, a in answers.items()}


def _completion(completion: MockCompletion) -> CompletionResponse:
    return CompletionResponse(**vars(completion))


# ========================================
# Endpoints
# ========================================


@router.get("", response_model=list[MockTestResponse], summary="List mock tests")
def list_mock_tests(
    manager: MockTestAttemptManager = Depends(get_mock_test_manager),
) -> list[MockTestResponse]:
    try:
        return [MockTestResponse(**vars(test)) for test in manager.list_tests()]
    except AssessmentError as exc:
        raise http_error(exc) from exc
    except Exception:
        logger.exception("Failed to list mock tests")
        raise HTTPException(status_code=500, detail="Failed to list mock tests")


@router.post("/start", response_model=StartResponse, summary="Start a mock test")
def start_mock_test(
    request: StartRequest,
    manager: MockTestAttemptManager = Depends(get_mock_test_manager),
) -> StartResponse:
    try:
        started = manager.start(test_id=request.mock_test_id, lead_id=request.lead_id)
        return StartResponse(**vars(started))
    except AssessmentError as exc:
        raise http_error(exc) from exc
    except Exception:
        logger.exception("Failed to start mock test")
        raise HTTPException(status_code=500, detail="Failed to start mock test")


@router.get("/{attempt_id}", response_model=StateResponse, summary="Get mock test state")
def get_state(
    attempt_id: str,
    manager: MockTestAttemptManager = Depends(get_mock_test_manager),
) -> StateResponse:
    try:
        state = manager.get_state(attempt_id)
        return StateResponse(
            attempt_id=state.attempt_id,
            status=state.status,
            mock_test_name=state.mock_test_name,
            duration_seconds=state.duration_seconds,
            remaining_seconds=state.remaining_seconds,
            total_questions=state.total_questions,
            unanswered_count=state.unanswered_count,
            questions=state.questions,
            answers=state.answers,
            visited=state.visited,
            marked_for_review=state.marked_for_review,
            warnings=state.warnings,
            warning_thresholds=state.warning_thresholds,
            completion=_completion(state.completion) if state.completion else None,
        )
    except AssessmentError as exc:
        raise http_error(exc) from exc
    except Exception:
        logger.exception(f"Failed to fetch mock test attempt {attempt_id}")
        raise HTTPException(status_code=500, detail="Failed to fetch mock test")


@router.post("/{attempt_id}/answer", response_model=SaveAnswerResponse, summary="Save one answer")
def save_answer(
    attempt_id: str,
    request: SaveAnswerRequest,
    manager: MockTestAttemptManager = Depends(get_mock_test_manager),
) -> SaveAnswerResponse:
    try:
        result = manager.save_answer(attempt_id, request.question_id, request.answer, request.time_spent)
        return SaveAnswerResponse(**vars(result))
    except AssessmentError as exc:
        raise http_error(exc) from exc
    except Exception:
        logger.exception(f"Failed to save answer for attempt {attempt_id}")
        raise HTTPException(status_code=500, detail="Failed to save answer")


@router.post("/{attempt_id}/autosave", response_model=AutosaveResponse, summary="Autosave a batch")
def autosave(
    attempt_id: str,
    request: AutosaveRequest,
    manager: MockTestAttemptManager = Depends(get_mock_test_manager),
) -> AutosaveResponse:
    try:
        result = manager.autosave(
            attempt_id,
            _batch(request.answers),
            visited=request.visited,
            marked=request.marked_for_review,
        )
        return AutosaveResponse(**vars(result))
    except AssessmentError as exc:
        raise http_error(exc) from exc
    except Exception:
        logger.exception(f"Failed to autosave attempt {attempt_id}")
        raise HTTPException(status_code=500, detail="Failed to autosave")


@router.post("/{attempt_id}/submit", response_model=CompletionResponse, summary="Submit the mock test")
def submit(
    attempt_id: str,
    request: SubmitRequest,
    manager: MockTestAttemptManager = Depends(get_mock_test_manager),
) -> CompletionResponse:
    try:
        completion = manager.submit(
            attempt_id,
            _batch(request.answers),
            visited=request.visited,
            marked=request.marked_for_review,
        )
        return _completion(completion)
    except AssessmentError as exc:
        raise http_error(exc) from exc
    except Exception:
        logger.exception(f"Failed to submit attempt {attempt_id}")
        raise HTTPException(status_code=500, detail="Failed to submit mock test")


@router.post(
    "/{attempt_id}/force-complete",
    response_model=CompletionResponse,
    summary="Complete an expired mock test",
)
def force_complete(
    attempt_id: str,
    manager: MockTestAttemptManager = Depends(get_mock_test_manager),
) -> CompletionResponse:
    try:
        return _completion(manager.force_complete(attempt_id))
    except AssessmentError as exc:
        raise http_error(exc) from exc
    except Exception:
        logger.exception(f"Failed to force-complete attempt {attempt_id}")
        raise HTTPException(status_code=500, detail="Failed to complete mock test")
