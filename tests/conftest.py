"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import os
import random
import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest

# Keep the default engine off PostgreSQL and the log sink off disk
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("LOG_FILE", "")

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from sqlalchemy import create_engine  # noqa: E402

from assessment.core.enums import Difficulty, QuestionType, Subject  # noqa: E402
from assessment.db.database import init_db, make_session_factory, session_scope  # noqa: E402
from assessment.db.models import Item, MockTest  # noqa: E402
from assessment.engine.locks import AttemptLocks  # noqa: E402
from config import Settings  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (temporary SQLite database)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


class FakeClock:
    """Manually advanced clock returning naive UTC datetimes."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2025, 1, 6, 9, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


def _add_items(session, subject, difficulty, count, *, question_type=QuestionType.MCQ_SINGLE,
              prefix=None, chapter=None, correct_answer="A", weight=1.0):
    """Insert ``count`` active items with distinct concepts; returns their ids."""
    prefix = prefix or f"{subject.value[:3]}-{difficulty.value[:1]}-{question_type.value}"
    ids = []
    for n in range(count):
        item = Item(
            subject=subject.value,
            difficulty=difficulty.value,
            concept=f"{prefix}-concept-{n}",
            chapter=chapter or f"{prefix}-chapter-{n}",
            question_type=question_type.value,
            question_text=f"{prefix} question {n}",
            options=[{"id": k, "text": k.lower()} for k in "ABCD"] if not question_type.is_numeric else None,
            correct_answer=correct_answer,
            solution=f"{prefix} solution {n}",
            frequency_weight=weight,
            priority_score=1.0,
            is_active=True,
        )
        session.add(item)
        session.flush()
        ids.append(item.id)
    return ids


@pytest.fixture
def add_items():
    """Item factory: ``add_items(session, subject, difficulty, count, **fields)``."""
    return _add_items


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def settings():
    """Default settings without a log file."""
    return Settings(log_file=None)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def locks():
    return AttemptLocks(timeout_seconds=0.2)


@pytest.fixture
def engine(tmp_path):
    """Fresh SQLite database per test."""
    engine = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'assessment.db'}",
        connect_args={"check_same_thread": False},
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def diagnostic_bank(session_factory):
    """Two items per (subject, difficulty) bucket for 6 per subject, all concepts distinct."""
    ids = {}
    with session_scope(session_factory) as session:
        for subject in Subject:
            for difficulty in Difficulty:
                ids[(subject, difficulty)] = _add_items(session, subject, difficulty, 2)
    return ids


@pytest.fixture
def mock_bank(session_factory):
    """
    Enough items for a full default mock test.

    Per subject: 20 MCQ (5/10/5) and 10 numerical (2/5/3), every item in
    its own chapter, plus an active test definition.
    """
    with session_scope(session_factory) as session:
        for subject in Subject:
            for difficulty, count in zip(Difficulty, (5, 10, 5)):
                _add_items(session, subject, difficulty, count)
            for difficulty, count in zip(Difficulty, (2, 5, 3)):
                _add_items(session, subject, difficulty, count, question_type=QuestionType.NUMERICAL,
                          correct_answer="42")
        test = MockTest(name="Full Mock", duration_seconds=10800, total_questions=90, is_active=True)
        session.add(test)
        session.flush()
        return test.id
