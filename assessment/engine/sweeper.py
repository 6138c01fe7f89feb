"""
Periodic sweep over in-progress attempts.

Nothing drives attempts forward in the background; expiry is evaluated
lazily on the next read or write. A deployment may additionally run this
sweep (``assessment sweep``) to abandon idle diagnostics and complete mock
tests whose time ran out without the client coming back.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from loguru import logger
from sqlalchemy import select

from config import Settings, get_settings
from assessment.core.enums import AttemptStatus
from assessment.core.errors import AttemptBusyError, InvalidStateError
from assessment.db.database import session_scope
from assessment.db.models import DiagnosticAttempt, MockTestAttempt
from assessment.engine.diagnostic import DiagnosticAttemptManager
from assessment.engine.mock_test import MockTestAttemptManager
from assessment.engine.timer import Clock, is_expired, utcnow


@dataclass
class SweepReport:
    abandoned: list[str] = field(default_factory=list)
    completed: list[str] = field(default_factory=list)
    busy: list[str] = field(default_factory=list)

    @property
    def touched(self) -> int:
        return len(self.abandoned) + len(self.completed)


class AttemptSweeper:
    """Abandon idle diagnostics and force-complete expired mock tests."""

    def __init__(
        self,
        diagnostics: DiagnosticAttemptManager,
        mock_tests: MockTestAttemptManager,
        settings: Settings | None = None,
        clock: Clock = utcnow,
    ):
        self._diagnostics = diagnostics
        self._mock_tests = mock_tests
        self._settings = settings or get_settings()
        self._clock = clock

    def run(self, now: datetime | None = None) -> SweepReport:
        now = now or self._clock()
        idle_before = now - timedelta(hours=self._settings.abandon_after_hours)
        report = SweepReport()

        with session_scope(self._diagnostics.session_factory) as session:
            idle = list(
                session.scalars(
                    select(DiagnosticAttempt.id).where(
                        DiagnosticAttempt.status == AttemptStatus.IN_PROGRESS.value,
                        DiagnosticAttempt.updated_at < idle_before,
                    )
                )
            )
            running = session.execute(
                select(
                    MockTestAttempt.id, MockTestAttempt.started_at, MockTestAttempt.duration_seconds
                ).where(MockTestAttempt.status == AttemptStatus.IN_PROGRESS.value)
            ).all()
        expired = [row.id for row in running if is_expired(row.started_at, row.duration_seconds, now)]

        for attempt_id in idle:
            try:
                if self._diagnostics.abandon(attempt_id, idle_before=idle_before):
                    report.abandoned.append(attempt_id)
            except AttemptBusyError:
                report.busy.append(attempt_id)
            except InvalidStateError:
                logger.debug(f"Diagnostic attempt {attempt_id} completed before the sweep reached it")

        for attempt_id in expired:
            try:
                completion = self._mock_tests.force_complete(attempt_id)
            except AttemptBusyError:
                report.busy.append(attempt_id)
                continue
            except InvalidStateError:
                logger.debug(f"Mock test attempt {attempt_id} not expired by the manager clock; skipped")
                continue
            if not completion.already_completed:
                report.completed.append(attempt_id)

        logger.info(
            f"Sweep finished: {len(report.abandoned)} abandoned, "
            f"{len(report.completed)} completed, {len(report.busy)} busy"
        )
        return report
