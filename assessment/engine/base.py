"""
Shared plumbing for the attempt managers.

Every transition runs inside :meth:`AttemptManagerBase._transaction`: the
per-attempt lock is held, a session is opened with ``session_scope`` (commit
on success, rollback on any error) and an optimistic-version conflict from a
writer in another process surfaces as a retryable ``AttemptBusyError``.
"""
from __future__ import annotations

import secrets
from collections.abc import Iterator
from contextlib import contextmanager, nullcontext
from typing import TypeVar

from loguru import logger
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from config import Settings, get_settings
from assessment.core.enums import AttemptStatus
from assessment.core.errors import (
    AttemptAbandonedError,
    AttemptBusyError,
    InvalidStateError,
    NotFoundError,
)
from assessment.db.database import SessionLocal, session_scope
from assessment.engine.locks import AttemptLocks
from assessment.engine.timer import Clock, utcnow

AttemptT = TypeVar("AttemptT")


class AttemptManagerBase:
    """Session, lock and clock wiring common to both session flavours."""

    def __init__(
        self,
        session_factory: sessionmaker[Session] | None = None,
        locks: AttemptLocks | None = None,
        settings: Settings | None = None,
        clock: Clock = utcnow,
    ):
        self._settings = settings or get_settings()
        self._session_factory = session_factory or SessionLocal
        self._locks = locks or AttemptLocks(self._settings.attempt_lock_timeout_seconds)
        self._clock = clock

    @property
    def locks(self) -> AttemptLocks:
        return self._locks

    @property
    def session_factory(self) -> sessionmaker[Session]:
        return self._session_factory

    @contextmanager
    def _transaction(self, attempt_id: str | None = None) -> Iterator[Session]:
        guard = self._locks.hold(attempt_id) if attempt_id else nullcontext()
        with guard:
            try:
                with session_scope(self._session_factory) as session:
                    yield session
            except StaleDataError as e:
                logger.warning(f"Attempt {attempt_id} was modified concurrently: {e}")
                raise AttemptBusyError(
                    "Attempt was modified by another request, please retry",
                    attempt_id=attempt_id,
                ) from e

    def _new_report_token(self) -> str:
        return secrets.token_urlsafe(self._settings.report_token_bytes)

    @staticmethod
    def _load(session: Session, model: type[AttemptT], attempt_id: str) -> AttemptT:
        attempt = session.get(model, attempt_id)
        if attempt is None:
            raise NotFoundError("Attempt not found", attempt_id=attempt_id)
        return attempt

    @staticmethod
    def _require_in_progress(attempt) -> None:
        status = AttemptStatus(attempt.status)
        if status is AttemptStatus.ABANDONED:
            raise AttemptAbandonedError("Attempt has been abandoned", attempt_id=attempt.id)
        if status is not AttemptStatus.IN_PROGRESS:
            raise InvalidStateError(
                "Attempt is not in progress",
                attempt_id=attempt.id,
                status=status.value,
            )
