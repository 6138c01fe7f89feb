"""
Diagnostic attempt manager.

A diagnostic is a short, strictly sequential session: the item order is
fixed at start and ``current_index`` moves forward by exactly one per
accepted answer or skip. Submissions for any item other than the one at
the current index are rejected so a replayed or cached payload can never be
applied twice. Diagnostics are untimed.
"""
from __future__ import annotations

import random
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from loguru import logger
from sqlalchemy.orm import Session, sessionmaker

from config import Settings
from assessment.core.enums import AttemptStatus
from assessment.core.errors import (
    AttemptAbandonedError,
    IntegrityFaultError,
    InvalidStateError,
    ItemMismatchError,
    SupplyShortageError,
)
from assessment.db.models import DiagnosticAttempt
from assessment.engine.answers import AnswerTally, answers_match, dump_entries, load_entries, merge_entry, tally
from assessment.engine.base import AttemptManagerBase
from assessment.engine.item_store import SqlItemStore, client_safe
from assessment.engine.locks import AttemptLocks
from assessment.engine.selector import QuestionSelector, SelectionQuota
from assessment.engine.timer import Clock, utcnow


@dataclass
class DiagnosticStart:
    attempt_id: str
    total_questions: int
    requested: int
    shortfall_by_subject: dict[str, int] = field(default_factory=dict)


@dataclass
class DiagnosticView:
    """GetCurrent result: either the current question or the terminal state."""

    attempt_id: str
    status: str
    current_index: int
    total_questions: int
    correct_count: int = 0
    incorrect_count: int = 0
    skipped_count: int = 0
    question: dict[str, Any] | None = None
    report_token: str | None = None


@dataclass
class DiagnosticStep:
    """Result of an accepted answer or skip."""

    attempt_id: str
    current_index: int
    total_questions: int
    completed: bool
    skipped: bool = False
    is_correct: bool | None = None
    correct_answer: str | None = None
    solution: str | None = None
    report_token: str | None = None


class DiagnosticAttemptManager(AttemptManagerBase):
    """Start, advance and complete diagnostic attempts."""

    def __init__(
        self,
        session_factory: sessionmaker[Session] | None = None,
        locks: AttemptLocks | None = None,
        settings: Settings | None = None,
        clock: Clock = utcnow,
        rng: random.Random | None = None,
    ):
        super().__init__(session_factory, locks, settings, clock)
        self._selector = QuestionSelector(rng)

    def start(self, lead_id: str | None = None, quota: SelectionQuota | None = None) -> DiagnosticStart:
        """
        Select items and create a new attempt.

        Args:
            lead_id: Originating lead or session reference
            quota: Selection quota (defaults to the configured one)

        Returns:
            DiagnosticStart with the attempt id and question count

        Raises:
            SupplyShortageError: No active items could be selected
        """
        quota = quota or SelectionQuota.default(self._settings)
        with self._transaction() as session:
            store = SqlItemStore(session)
            result = self._selector.select(store.load_active_candidates(), quota)
            if result.is_empty:
                logger.warning("Diagnostic start refused: no active items")
                raise SupplyShortageError("No questions available")

            now = self._clock()
            attempt = DiagnosticAttempt(
                lead_id=lead_id,
                selected_items=list(result.item_ids),
                current_index=0,
                status=AttemptStatus.IN_PROGRESS.value,
                answers={},
                correct_count=0,
                incorrect_count=0,
                skipped_count=0,
                total_time_seconds=0,
                started_at=now,
                updated_at=now,
                report_token=self._new_report_token(),
            )
            session.add(attempt)
            session.flush()

            logger.info(f"Diagnostic attempt {attempt.id} started with {len(result)} items")
            return DiagnosticStart(
                attempt_id=attempt.id,
                total_questions=len(result),
                requested=result.requested,
                shortfall_by_subject={s.value: n for s, n in result.shortfall_by_subject.items()},
            )

    def get_current(self, attempt_id: str) -> DiagnosticView:
        with self._transaction() as session:
            attempt = self._load(session, DiagnosticAttempt, attempt_id)
            status = AttemptStatus(attempt.status)
            if status is AttemptStatus.ABANDONED:
                raise AttemptAbandonedError("Attempt has been abandoned", attempt_id=attempt_id)

            counts = tally(load_entries(attempt.answers))
            view = DiagnosticView(
                attempt_id=attempt.id,
                status=status.value,
                current_index=attempt.current_index,
                total_questions=len(attempt.selected_items),
                correct_count=counts.correct,
                incorrect_count=counts.incorrect,
                skipped_count=counts.skipped,
            )
            if status is AttemptStatus.COMPLETED:
                view.report_token = attempt.report_token
                return view

            item_id = self._current_item_id(attempt)
            item = SqlItemStore(session).get_item(item_id)
            if item is None:
                raise self._fault(attempt, f"item {item_id} at index {attempt.current_index} is missing")
            view.question = client_safe(item)
            return view

    def answer(self, attempt_id: str, item_id: str, answer: str, time_seconds: int = 0) -> DiagnosticStep:
        """
        Grade the answer for the current item and advance.

        Raises:
            NotFoundError: Unknown attempt
            InvalidStateError: Attempt is not in progress
            ItemMismatchError: ``item_id`` is not the current item
        """
        with self._transaction(attempt_id) as session:
            attempt = self._load(session, DiagnosticAttempt, attempt_id)
            self._require_in_progress(attempt)
            expected = self._current_item_id(attempt)
            if item_id != expected:
                raise ItemMismatchError(
                    "Item is not the current question",
                    attempt_id=attempt_id,
                    current_index=attempt.current_index,
                )

            item = SqlItemStore(session).get_item(item_id)
            if item is None:
                raise self._fault(attempt, f"item {item_id} at index {attempt.current_index} is missing")

            now = self._clock()
            answer = answer.strip()
            is_correct = answers_match(item.correct_answer.strip(), answer)
            entries = load_entries(attempt.answers)
            entries[item_id] = merge_entry(
                entries.get(item_id),
                answer=answer,
                time_delta=time_seconds,
                saved_at=now,
                is_correct=is_correct,
            )
            self._advance(attempt, entries, now)

            return DiagnosticStep(
                attempt_id=attempt.id,
                current_index=attempt.current_index,
                total_questions=len(attempt.selected_items),
                completed=attempt.status == AttemptStatus.COMPLETED.value,
                is_correct=is_correct,
                correct_answer=item.correct_answer,
                solution=item.solution,
                report_token=self._token_if_completed(attempt),
            )

    def skip(self, attempt_id: str) -> DiagnosticStep:
        with self._transaction(attempt_id) as session:
            attempt = self._load(session, DiagnosticAttempt, attempt_id)
            self._require_in_progress(attempt)
            item_id = self._current_item_id(attempt)

            now = self._clock()
            entries = load_entries(attempt.answers)
            entries[item_id] = merge_entry(
                entries.get(item_id),
                answer=None,
                time_delta=0,
                saved_at=now,
                is_correct=False,
                skipped=True,
            )
            self._advance(attempt, entries, now)

            return DiagnosticStep(
                attempt_id=attempt.id,
                current_index=attempt.current_index,
                total_questions=len(attempt.selected_items),
                completed=attempt.status == AttemptStatus.COMPLETED.value,
                skipped=True,
                report_token=self._token_if_completed(attempt),
            )

    def abandon(self, attempt_id: str, idle_before: datetime | None = None) -> bool:
        """
        Mark an in-progress attempt abandoned.

        When ``idle_before`` is given, the attempt is only abandoned if it
        has not been touched since then. Returns whether the status changed.
        """
        with self._transaction(attempt_id) as session:
            attempt = self._load(session, DiagnosticAttempt, attempt_id)
            status = AttemptStatus(attempt.status)
            if status is AttemptStatus.ABANDONED:
                return False
            if status is AttemptStatus.COMPLETED:
                raise InvalidStateError("Attempt already completed", attempt_id=attempt_id)
            if idle_before is not None and attempt.updated_at >= idle_before:
                return False

            attempt.status = AttemptStatus.ABANDONED.value
            attempt.updated_at = self._clock()
            logger.info(f"Diagnostic attempt {attempt_id} abandoned at index {attempt.current_index}")
            return True

    # ========================================
    # Internals
    # ========================================

    def _current_item_id(self, attempt: DiagnosticAttempt) -> str:
        items = attempt.selected_items or []
        if not 0 <= attempt.current_index < len(items):
            raise self._fault(
                attempt, f"current index {attempt.current_index} out of bounds for {len(items)} items"
            )
        return items[attempt.current_index]

    def _advance(self, attempt: DiagnosticAttempt, entries: dict, now: datetime) -> None:
        attempt.answers = dump_entries(entries)
        attempt.current_index += 1
        attempt.updated_at = now

        counts = tally(entries, attempt.selected_items)
        self._apply_counts(attempt, counts)

        if attempt.current_index >= len(attempt.selected_items):
            attempt.status = AttemptStatus.COMPLETED.value
            attempt.completed_at = now
            attempt.total_time_seconds = counts.time_spent
            logger.info(
                f"Diagnostic attempt {attempt.id} completed: "
                f"{counts.correct} correct, {counts.incorrect} incorrect, {counts.skipped} skipped"
            )

    @staticmethod
    def _apply_counts(attempt: DiagnosticAttempt, counts: AnswerTally) -> None:
        attempt.correct_count = counts.correct
        attempt.incorrect_count = counts.incorrect
        attempt.skipped_count = counts.skipped

    @staticmethod
    def _token_if_completed(attempt: DiagnosticAttempt) -> str | None:
        if attempt.status == AttemptStatus.COMPLETED.value:
            return attempt.report_token
        return None

    @staticmethod
    def _fault(attempt: DiagnosticAttempt, detail: str) -> IntegrityFaultError:
        logger.error(f"Integrity fault on diagnostic attempt {attempt.id}: {detail}")
        return IntegrityFaultError(detail)
