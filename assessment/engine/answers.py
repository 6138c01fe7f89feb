"""
Answer entries and derived counters.

The per-attempt answer map (question id -> entry) is the source of truth.
Re-submitting for the same question adds the reported time to what is
already recorded and replaces the answer value and correctness. Counters are
always rebuilt from the map with :func:`tally`.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any

from assessment.core.enums import QuestionType


@dataclass(frozen=True)
class AnswerEntry:
    """One question's recorded response."""

    answer: str | None
    is_correct: bool | None = None
    skipped: bool = False
    time_spent: int = 0
    saved_at: str | None = None

    @property
    def has_answer(self) -> bool:
        return bool(self.answer and self.answer.strip())

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AnswerEntry":
        return cls(
            answer=data.get("answer"),
            is_correct=data.get("is_correct"),
            skipped=bool(data.get("skipped", False)),
            time_spent=int(data.get("time_spent") or 0),
            saved_at=data.get("saved_at"),
        )


@dataclass(frozen=True)
class AnswerTally:
    correct: int = 0
    incorrect: int = 0
    skipped: int = 0
    answered: int = 0
    time_spent: int = 0


def load_entries(raw: Mapping[str, Any] | None) -> dict[str, AnswerEntry]:
    return {qid: AnswerEntry.from_dict(data) for qid, data in (raw or {}).items()}


def dump_entries(entries: Mapping[str, AnswerEntry]) -> dict[str, dict[str, Any]]:
    # A fresh dict so the ORM sees the JSON column as changed
    return {qid: entry.to_dict() for qid, entry in entries.items()}


def merge_entry(
    existing: AnswerEntry | None,
    *,
    answer: str | None,
    time_delta: int,
    saved_at: datetime,
    is_correct: bool | None = None,
    skipped: bool = False,
) -> AnswerEntry:
    """Add ``time_delta`` to the accumulated time and replace everything else."""
    if time_delta < 0:
        raise ValueError("time delta must not be negative")
    previous_time = existing.time_spent if existing else 0
    return AnswerEntry(
        answer=answer,
        is_correct=is_correct,
        skipped=skipped,
        time_spent=previous_time + time_delta,
        saved_at=saved_at.isoformat(),
    )


def tally(entries: Mapping[str, AnswerEntry], question_ids: Iterable[str] | None = None) -> AnswerTally:
    """
    Rebuild counters from the answer map.

    When ``question_ids`` is given, entries for ids outside that set are
    ignored.
    """
    scope = set(question_ids) if question_ids is not None else None
    correct = incorrect = skipped = answered = time_spent = 0
    for qid, entry in entries.items():
        if scope is not None and qid not in scope:
            continue
        time_spent += entry.time_spent
        if entry.skipped:
            skipped += 1
            continue
        if entry.has_answer:
            answered += 1
        if entry.is_correct is True:
            correct += 1
        elif entry.is_correct is False:
            incorrect += 1
    return AnswerTally(
        correct=correct,
        incorrect=incorrect,
        skipped=skipped,
        answered=answered,
        time_spent=time_spent,
    )


# ========================================
# Answer checking
# ========================================


def answers_match(correct_answer: str, given: str) -> bool:
    """Case-insensitive equality (option ids and short text keys)."""
    return correct_answer.lower() == given.lower()


def check_answer(question_type: str | QuestionType, correct_answer: str, given: str) -> bool:
    """
    Grade one response.

    Numerical and integer keys are compared as numbers: integer keys require
    the response to round to the key, decimal keys accept a tolerance of
    max(1% of the key, 0.01). Anything that does not parse falls back to
    trimmed string equality. Other formats use :func:`answers_match`.
    """
    correct_answer = correct_answer.strip()
    given = given.strip()
    if QuestionType(question_type).is_numeric:
        return _check_numeric(correct_answer, given)
    return answers_match(correct_answer, given)


def _check_numeric(correct_answer: str, given: str) -> bool:
    try:
        correct = float(correct_answer)
        value = float(given)
    except ValueError:
        return correct_answer == given
    if not (math.isfinite(correct) and math.isfinite(value)):
        return False

    if correct.is_integer():
        # float.__round__ rounds half to even
        return math.floor(value + 0.5) == int(correct)

    tolerance = max(abs(correct * 0.01), 0.01)
    return abs(correct - value) <= tolerance
