"""
Error taxonomy for the assessment engine.

Every error carries a stable ``code`` for clients, an HTTP status hint used by
the API layer and a ``retryable`` flag. Callers resynchronize on
InvalidState, invoke completion on Expired and retry on AttemptBusy.
"""

from __future__ import annotations

from typing import Any


class AssessmentError(Exception):
    """Base class for all engine errors."""

    code = "assessment_error"
    status_code = 400
    retryable = False

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        """Client-facing payload."""
        payload: dict[str, Any] = {"error": self.message, "code": self.code}
        if self.retryable:
            payload["retryable"] = True
        payload.update(self.details)
        return payload


class NotFoundError(AssessmentError):
    """Attempt, item, test definition or report token does not exist."""

    code = "not_found"
    status_code = 404


class InvalidStateError(AssessmentError):
    """Operation is not legal in the attempt's current state."""

    code = "invalid_state"
    status_code = 409


class ItemMismatchError(InvalidStateError):
    """Submitted item is not the one at the attempt's current index."""

    code = "item_mismatch"


class UnknownQuestionError(InvalidStateError):
    """Question id is not part of the attempt's fixed question set."""

    code = "unknown_question"


class AttemptAbandonedError(InvalidStateError):
    """The attempt has been abandoned and can no longer be used."""

    code = "abandoned"
    status_code = 410


class ExpiredError(AssessmentError):
    """The attempt's time budget is exhausted; the caller must force completion."""

    code = "expired"
    status_code = 409

    def __init__(self, message: str = "Test time has expired", **details: Any):
        details.setdefault("must_force_complete", True)
        super().__init__(message, **details)

    @property
    def must_force_complete(self) -> bool:
        return bool(self.details.get("must_force_complete"))


class SupplyShortageError(AssessmentError):
    """The item store cannot supply enough active items to start a session."""

    code = "no_questions_available"
    status_code = 503


class IntegrityFaultError(AssessmentError):
    """
    Internal consistency fault for one attempt.

    The detail is kept for logging only; ``to_dict`` never exposes it.
    """

    code = "integrity_fault"
    status_code = 500

    def __init__(self, detail: str):
        super().__init__("Internal error processing this attempt")
        self.detail = detail

    def __str__(self) -> str:
        return self.detail


class AttemptBusyError(AssessmentError):
    """Another request holds this attempt; the whole request may be retried."""

    code = "attempt_busy"
    status_code = 423
    retryable = True


class QuotaError(ValueError):
    """Selection quota is malformed (partitions do not sum to the total)."""
