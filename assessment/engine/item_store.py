"""
Read-only access to the item store.

The selectors work on :class:`ItemCandidate` values; the managers look items
up by id to grade answers and to render client-safe question payloads.
"""
from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from assessment.core.enums import Difficulty, QuestionType, Subject
from assessment.db.models import Item, MockTest
from assessment.engine.selector import ItemCandidate


def to_candidate(item: Item) -> ItemCandidate:
    return ItemCandidate(
        id=item.id,
        subject=Subject(item.subject),
        difficulty=Difficulty(item.difficulty),
        concept=item.concept,
        chapter=item.chapter or "",
        question_type=QuestionType(item.question_type),
        frequency_weight=item.frequency_weight if item.frequency_weight is not None else 1.0,
        priority_score=item.priority_score if item.priority_score is not None else 1.0,
    )


def client_safe(item: Item) -> dict[str, Any]:
    """Question fields that may be shown while the attempt is in progress."""
    return {
        "id": item.id,
        "subject": item.subject,
        "chapter": item.chapter,
        "concept": item.concept,
        "difficulty": item.difficulty,
        "question_type": item.question_type,
        "question_text": item.question_text,
        "options": item.options,
        "hint": item.hint,
    }


class SqlItemStore:
    """Item lookups bound to one session."""

    def __init__(self, session: Session):
        self._session = session

    def load_active_candidates(self) -> list[ItemCandidate]:
        """All active items, highest frequency weight then priority first."""
        stmt = (
            select(Item)
            .where(Item.is_active.is_(True))
            .order_by(Item.frequency_weight.desc(), Item.priority_score.desc(), Item.id)
        )
        return [to_candidate(item) for item in self._session.scalars(stmt)]

    def get_item(self, item_id: str) -> Item | None:
        return self._session.get(Item, item_id)

    def get_items(self, item_ids: Iterable[str]) -> dict[str, Item]:
        ids = list(item_ids)
        if not ids:
            return {}
        stmt = select(Item).where(Item.id.in_(ids))
        return {item.id: item for item in self._session.scalars(stmt)}

    def list_mock_tests(self, active_only: bool = True) -> list[MockTest]:
        stmt = select(MockTest).order_by(MockTest.created_at, MockTest.name)
        if active_only:
            stmt = stmt.where(MockTest.is_active.is_(True))
        return list(self._session.scalars(stmt))

    def get_mock_test(self, test_id: str) -> MockTest | None:
        return self._session.get(MockTest, test_id)
