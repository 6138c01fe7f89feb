"""Shared enums, errors and logging setup."""

from assessment.core.enums import AttemptKind, AttemptStatus, Difficulty, QuestionType, Subject
from assessment.core.errors import (
    AssessmentError,
    AttemptAbandonedError,
    AttemptBusyError,
    ExpiredError,
    IntegrityFaultError,
    InvalidStateError,
    ItemMismatchError,
    NotFoundError,
    QuotaError,
    SupplyShortageError,
    UnknownQuestionError,
)

__all__ = [
    # Enums
    "AttemptKind",
    "AttemptStatus",
    "Difficulty",
    "QuestionType",
    "Subject",
    # Errors
    "AssessmentError",
    "AttemptAbandonedError",
    "AttemptBusyError",
    "ExpiredError",
    "IntegrityFaultError",
    "InvalidStateError",
    "ItemMismatchError",
    "NotFoundError",
    "QuotaError",
    "SupplyShortageError",
    "UnknownQuestionError",
]
