"""
Item store models.

Implements:
- Item: an assessable question with ranking signals
- MockTest: a timed test definition (duration and size)

Items are read-only for the engine; authoring and bulk import live elsewhere.
"""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, Float, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import JSON

from .base import Base, new_id


class Item(Base):
    """
    Assessable question.

    ``options`` holds a list of ``{"id": "A", "text": "..."}`` objects for
    MCQ formats and is null for numerical items. ``correct_answer`` is the
    option id or the numeric key as text.
    """

    __tablename__ = "items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    subject: Mapped[str] = mapped_column(String(20), nullable=False)
    chapter: Mapped[str] = mapped_column(Text, nullable=False, default="")
    concept: Mapped[str] = mapped_column(Text, nullable=False)
    question_type: Mapped[str] = mapped_column(String(30), nullable=False, default="MCQ_SINGLE")
    difficulty: Mapped[str] = mapped_column(String(10), nullable=False)

    question_text: Mapped[str] = mapped_column(Text, nullable=False, default="")
    options: Mapped[list | None] = mapped_column(JSON)
    correct_answer: Mapped[str] = mapped_column(Text, nullable=False)
    solution: Mapped[str | None] = mapped_column(Text)
    hint: Mapped[str | None] = mapped_column(Text)

    # Ranking signals (higher first)
    frequency_weight: Mapped[float] = mapped_column(Float, default=1.0)
    priority_score: Mapped[float] = mapped_column(Float, default=1.0)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(default=func.now())

    __table_args__ = (
        Index("idx_items_active_bucket", "is_active", "subject", "difficulty"),
    )

    def __repr__(self) -> str:
        return f"<Item {self.id} {self.subject}/{self.difficulty} concept={self.concept!r}>"


class MockTest(Base):
    """Timed test definition."""

    __tablename__ = "mock_tests"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    duration_seconds: Mapped[int] = mapped_column(Integer, nullable=False, default=10800)
    total_questions: Mapped[int] = mapped_column(Integer, nullable=False, default=90)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(default=func.now())

    def __repr__(self) -> str:
        return f"<MockTest {self.id} {self.name!r} duration={self.duration_seconds}s>"
