"""Enumerations shared by the item store, selectors and attempt managers."""

from __future__ import annotations

from enum import Enum


class Subject(str, Enum):
    """Subjects in fixed iteration order."""

    PHYSICS = "PHYSICS"
    CHEMISTRY = "CHEMISTRY"
    MATHEMATICS = "MATHEMATICS"


class Difficulty(str, Enum):
    """Item difficulty levels in fixed iteration order."""

    EASY = "EASY"
    MEDIUM = "MEDIUM"
    HARD = "HARD"


class QuestionType(str, Enum):
    """Item formats carried by the item store."""

    MCQ_SINGLE = "MCQ_SINGLE"
    MCQ_MULTIPLE = "MCQ_MULTIPLE"
    NUMERICAL = "NUMERICAL"
    INTEGER = "INTEGER"
    MATCH_THE_COLUMN = "MATCH_THE_COLUMN"
    ASSERTION_REASON = "ASSERTION_REASON"
    COMPREHENSION = "COMPREHENSION"

    @property
    def is_numeric(self) -> bool:
        return self in (QuestionType.NUMERICAL, QuestionType.INTEGER)


class AttemptStatus(str, Enum):
    """Attempt lifecycle states. COMPLETED and ABANDONED are terminal."""

    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    ABANDONED = "ABANDONED"

    @property
    def is_terminal(self) -> bool:
        return self is not AttemptStatus.IN_PROGRESS


class AttemptKind(str, Enum):
    """Session flavours."""

    DIAGNOSTIC = "diagnostic"
    MOCK_TEST = "mock_test"


SUBJECT_ORDER: tuple[Subject, ...] = (Subject.PHYSICS, Subject.CHEMISTRY, Subject.MATHEMATICS)
DIFFICULTY_ORDER: tuple[Difficulty, ...] = (Difficulty.EASY, Difficulty.MEDIUM, Difficulty.HARD)
