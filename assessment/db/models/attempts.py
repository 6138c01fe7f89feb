"""
Attempt records.

Implements:
- DiagnosticAttempt: strictly sequential session over ``selected_items``
- MockTestAttempt: freely navigable, time-boxed session over ``question_sets``

The ``answers`` JSON map (question id -> answer entry) is the source of truth;
the count columns are a cache rebuilt on every write. Both tables carry a
``version`` column used by the ORM for optimistic concurrency, so a write
based on a stale read fails instead of overwriting.
"""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import JSON

from .base import Base, new_id
from .items import MockTest


class DiagnosticAttempt(Base):
    """One diagnostic session."""

    __tablename__ = "diagnostic_attempts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    lead_id: Mapped[str | None] = mapped_column(String(64), index=True)

    # Immutable question order
    selected_items: Mapped[list] = mapped_column(JSON, nullable=False)
    current_index: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="IN_PROGRESS", nullable=False)

    answers: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)

    # Derived counters
    correct_count: Mapped[int] = mapped_column(Integer, default=0)
    incorrect_count: Mapped[int] = mapped_column(Integer, default=0)
    skipped_count: Mapped[int] = mapped_column(Integer, default=0)
    total_time_seconds: Mapped[int] = mapped_column(Integer, default=0)

    started_at: Mapped[datetime] = mapped_column(nullable=False)
    updated_at: Mapped[datetime] = mapped_column(nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column()

    report_token: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("idx_diagnostic_attempts_status", "status", "updated_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<DiagnosticAttempt {self.id} status={self.status} "
            f"index={self.current_index}/{len(self.selected_items or [])}>"
        )


class MockTestAttempt(Base):
    """One timed mock test session."""

    __tablename__ = "mock_test_attempts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    lead_id: Mapped[str | None] = mapped_column(String(64), index=True)
    mock_test_id: Mapped[str] = mapped_column(ForeignKey("mock_tests.id"), nullable=False)

    # subject -> ordered question ids; the union is the immutable question set
    question_sets: Mapped[dict] = mapped_column(JSON, nullable=False)
    # Copied from the test definition at creation
    duration_seconds: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[str] = mapped_column(String(20), default="IN_PROGRESS", nullable=False)
    answers: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    visited_questions: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    marked_for_review: Mapped[list] = mapped_column(JSON, default=list, nullable=False)

    # Derived counters
    unanswered_count: Mapped[int] = mapped_column(Integer, default=0)
    correct_count: Mapped[int] = mapped_column(Integer, default=0)
    incorrect_count: Mapped[int] = mapped_column(Integer, default=0)
    total_time_seconds: Mapped[int] = mapped_column(Integer, default=0)

    started_at: Mapped[datetime] = mapped_column(nullable=False)
    updated_at: Mapped[datetime] = mapped_column(nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column()
    completion_reason: Mapped[str | None] = mapped_column(Text)

    report_token: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    mock_test: Mapped[MockTest] = relationship(lazy="joined")

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("idx_mock_test_attempts_status", "status", "started_at"),
    )

    def __repr__(self) -> str:
        return f"<MockTestAttempt {self.id} status={self.status} test={self.mock_test_id}>"

    def all_question_ids(self) -> list[str]:
        """Union of the subject partitions, in subject order."""
        ids: list[str] = []
        for question_ids in (self.question_sets or {}).values():
            ids.extend(question_ids)
        return ids
