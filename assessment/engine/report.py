"""
Report boundary.

Looks up a finished attempt of either kind by its report token and builds
the summary handed to the report renderer. The token is the only credential;
attempts that are not COMPLETED are reported as not found.
"""
from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from assessment.core.enums import SUBJECT_ORDER, AttemptKind, AttemptStatus
from assessment.core.errors import NotFoundError
from assessment.db.database import SessionLocal, session_scope
from assessment.db.models import DiagnosticAttempt, MockTestAttempt
from assessment.engine.answers import load_entries
from assessment.engine.item_store import SqlItemStore


def readiness_label(score: float) -> str:
    if score >= 80:
        return "Excellent"
    if score >= 60:
        return "Good"
    if score >= 40:
        return "Needs Improvement"
    return "Foundation Required"


def _percentage(correct: int, total: int) -> float:
    return round(correct / total * 100, 1) if total else 0.0


class ReportService:
    """Summaries of completed attempts, keyed by report token."""

    def __init__(self, session_factory: sessionmaker[Session] | None = None):
        self._session_factory = session_factory or SessionLocal

    def get_report(self, token: str) -> dict[str, Any]:
        """
        Build the summary for a completed attempt.

        Raises:
            NotFoundError: Unknown token or attempt not completed
        """
        with session_scope(self._session_factory) as session:
            diagnostic = session.scalars(
                select(DiagnosticAttempt).where(DiagnosticAttempt.report_token == token)
            ).first()
            if diagnostic is not None and diagnostic.status == AttemptStatus.COMPLETED.value:
                return self._diagnostic_summary(session, diagnostic)

            mock = session.scalars(
                select(MockTestAttempt).where(MockTestAttempt.report_token == token)
            ).first()
            if mock is not None and mock.status == AttemptStatus.COMPLETED.value:
                return self._mock_summary(mock)

        raise NotFoundError("Report not found")

    def _diagnostic_summary(self, session: Session, attempt: DiagnosticAttempt) -> dict[str, Any]:
        items = SqlItemStore(session).get_items(attempt.selected_items)
        entries = load_entries(attempt.answers)

        subjects = {s.value: {"total": 0, "correct": 0, "incorrect": 0, "skipped": 0} for s in SUBJECT_ORDER}
        strengths: list[str] = []
        weaknesses: list[str] = []
        for item_id in attempt.selected_items:
            item = items.get(item_id)
            if item is None:
                continue
            entry = entries.get(item_id)
            stats = subjects.setdefault(item.subject, {"total": 0, "correct": 0, "incorrect": 0, "skipped": 0})
            stats["total"] += 1
            if entry is not None and entry.skipped:
                stats["skipped"] += 1
            elif entry is not None and entry.is_correct:
                stats["correct"] += 1
            else:
                stats["incorrect"] += 1

            if entry is not None and entry.is_correct:
                if item.concept not in strengths:
                    strengths.append(item.concept)
            elif item.concept not in weaknesses:
                weaknesses.append(item.concept)

        for stats in subjects.values():
            stats["percentage"] = _percentage(stats["correct"], stats["total"])

        total = len(attempt.selected_items)
        score = _percentage(attempt.correct_count, total)
        return {
            "kind": AttemptKind.DIAGNOSTIC.value,
            "attempt_id": attempt.id,
            "lead_id": attempt.lead_id,
            "started_at": attempt.started_at,
            "completed_at": attempt.completed_at,
            "total_questions": total,
            "correct_count": attempt.correct_count,
            "incorrect_count": attempt.incorrect_count,
            "skipped_count": attempt.skipped_count,
            "total_time_seconds": attempt.total_time_seconds,
            "readiness_score": round(score),
            "readiness_label": readiness_label(score),
            "subjects": subjects,
            "strength_concepts": strengths,
            "weakness_concepts": [c for c in weaknesses if c not in strengths],
        }

    def _mock_summary(self, attempt: MockTestAttempt) -> dict[str, Any]:
        question_ids = attempt.all_question_ids()
        entries = load_entries(attempt.answers)

        subjects: dict[str, dict[str, Any]] = {}
        answered_time = 0
        answered = 0
        for subject, ids in attempt.question_sets.items():
            stats = {"total": len(ids), "correct": 0, "incorrect": 0, "unanswered": 0}
            for qid in ids:
                entry = entries.get(qid)
                if entry is None or not entry.has_answer:
                    stats["unanswered"] += 1
                    continue
                answered += 1
                answered_time += entry.time_spent
                stats["correct" if entry.is_correct else "incorrect"] += 1
            stats["percentage"] = _percentage(stats["correct"], stats["total"])
            subjects[subject] = stats

        total = len(question_ids)
        score = _percentage(attempt.correct_count, total)
        return {
            "kind": AttemptKind.MOCK_TEST.value,
            "attempt_id": attempt.id,
            "lead_id": attempt.lead_id,
            "mock_test_name": attempt.mock_test.name,
            "started_at": attempt.started_at,
            "completed_at": attempt.completed_at,
            "completion_reason": attempt.completion_reason,
            "duration_seconds": attempt.duration_seconds,
            "total_questions": total,
            "correct_count": attempt.correct_count,
            "incorrect_count": attempt.incorrect_count,
            "unanswered_count": attempt.unanswered_count,
            "total_time_seconds": attempt.total_time_seconds,
            "average_time_per_answer": round(answered_time / answered, 1) if answered else 0.0,
            "readiness_score": round(score),
            "readiness_label": readiness_label(score),
            "subjects": subjects,
        }
