"""
Integration tests for the mock test attempt manager.

Covers the timed flow: start, save, autosave merge, expiry precedence,
lazy completion on read, submit and force-complete.

Run: pytest tests/integration/test_mock_test_flow.py -v
"""

import pytest

from assessment.core.enums import AttemptStatus
from assessment.core.errors import (
    AttemptBusyError,
    ExpiredError,
    InvalidStateError,
    NotFoundError,
    SupplyShortageError,
    UnknownQuestionError,
)
from assessment.db.database import session_scope
from assessment.db.models import MockTest, MockTestAttempt
from assessment.engine.mock_test import DEFAULT_TEST_NAME, BatchAnswer, MockTestAttemptManager


@pytest.fixture
def manager(session_factory, locks, settings, clock, rng):
    return MockTestAttemptManager(
        session_factory=session_factory, locks=locks, settings=settings, clock=clock, rng=rng
    )


@pytest.fixture
def short_test(session_factory, mock_bank):
    """A 60 second test definition over the full bank."""
    with session_scope(session_factory) as session:
        test = MockTest(name="Sprint", duration_seconds=60, total_questions=90, is_active=True)
        session.add(test)
        session.flush()
        return test.id


def load_attempt(session_factory, attempt_id):
    with session_scope(session_factory) as session:
        return session.get(MockTestAttempt, attempt_id)


def sections(session_factory, attempt_id):
    """(first MCQ id, first numerical id) of the physics partition."""
    physics = load_attempt(session_factory, attempt_id).question_sets["PHYSICS"]
    return physics[0], physics[20]


class TestStart:
    def test_start_selects_full_blueprint(self, manager, mock_bank, session_factory):
        started = manager.start(mock_bank, lead_id="lead-9")

        assert started.total_questions == 90
        assert started.questions_per_subject == {"PHYSICS": 30, "CHEMISTRY": 30, "MATHEMATICS": 30}
        assert started.duration_seconds == 10800
        attempt = load_attempt(session_factory, started.attempt_id)
        assert attempt.status == AttemptStatus.IN_PROGRESS.value
        assert attempt.unanswered_count == 90
        assert attempt.duration_seconds == 10800
        assert len(set(attempt.all_question_ids())) == 90

    def test_start_without_test_id_uses_active_test(self, manager, mock_bank):
        assert manager.start().mock_test_id == mock_bank

    def test_unknown_test(self, manager, mock_bank):
        with pytest.raises(NotFoundError):
            manager.start("no-such-test")

    def test_refuses_without_enough_questions(self, manager, session_factory):
        with pytest.raises(SupplyShortageError) as exc_info:
            manager.start()
        assert exc_info.value.to_dict()["required"] == 30
        with session_scope(session_factory) as session:
            assert session.query(MockTestAttempt).count() == 0

    def test_list_creates_default_test(self, manager):
        tests = manager.list_tests()
        assert len(tests) == 1
        assert tests[0].name == DEFAULT_TEST_NAME
        assert tests[0].duration_seconds == 10800
        assert tests[0].total_questions == 90
        assert manager.list_tests()[0].id == tests[0].id

    def test_list_existing_tests(self, manager, mock_bank):
        assert [t.id for t in manager.list_tests()] == [mock_bank]


class TestSaveAnswer:
    def test_save_trims_and_marks_visited(self, manager, mock_bank, session_factory, clock):
        started = manager.start(mock_bank)
        mcq, _ = sections(session_factory, started.attempt_id)
        clock.advance(30)

        result = manager.save_answer(started.attempt_id, mcq, "  B ", 12)
        assert result.unanswered_count == 89
        assert result.remaining_seconds == 10800 - 30
        assert result.time_spent == 12

        attempt = load_attempt(session_factory, started.attempt_id)
        assert attempt.answers[mcq]["answer"] == "B"
        assert attempt.answers[mcq]["is_correct"] is None
        assert attempt.visited_questions == [mcq]

    def test_time_additivity(self, manager, mock_bank, session_factory):
        """5 then 7 seconds on the same question leave 12."""
        started = manager.start(mock_bank)
        mcq, _ = sections(session_factory, started.attempt_id)
        manager.save_answer(started.attempt_id, mcq, "A", 5)
        result = manager.save_answer(started.attempt_id, mcq, "D", 7)

        assert result.time_spent == 12
        assert load_attempt(session_factory, started.attempt_id).answers[mcq]["answer"] == "D"

    def test_clearing_an_answer(self, manager, mock_bank, session_factory):
        started = manager.start(mock_bank)
        mcq, _ = sections(session_factory, started.attempt_id)
        manager.save_answer(started.attempt_id, mcq, "A", 5)
        result = manager.save_answer(started.attempt_id, mcq, None, 2)
        assert result.unanswered_count == 90
        assert result.time_spent == 7

    def test_unknown_question(self, manager, mock_bank):
        started = manager.start(mock_bank)
        with pytest.raises(UnknownQuestionError):
            manager.save_answer(started.attempt_id, "not-in-this-attempt", "A", 1)

    def test_scenario_b_late_save_rejected(self, manager, short_test, session_factory, clock):
        """Save at 5s succeeds; save at 61s is Expired and stored time stays 10."""
        started = manager.start(short_test)
        mcq, _ = sections(session_factory, started.attempt_id)

        clock.advance(5)
        manager.save_answer(started.attempt_id, mcq, "A", 10)
        clock.advance(56)
        with pytest.raises(ExpiredError) as exc_info:
            manager.save_answer(started.attempt_id, mcq, "B", 8)

        assert exc_info.value.must_force_complete
        entry = load_attempt(session_factory, started.attempt_id).answers[mcq]
        assert entry["time_spent"] == 10
        assert entry["answer"] == "A"

    def test_expiry_takes_precedence(self, manager, short_test, clock):
        """After the deadline even an otherwise invalid call reports Expired."""
        started = manager.start(short_test)
        clock.advance(60)
        with pytest.raises(ExpiredError):
            manager.save_answer(started.attempt_id, "not-in-this-attempt", "A", 1)


class TestAutosave:
    def test_scenario_c_merge_adds_time(self, manager, mock_bank, session_factory):
        """20s recorded plus a 15s batch delta gives 35s and the batch's answer."""
        started = manager.start(mock_bank)
        mcq, _ = sections(session_factory, started.attempt_id)
        manager.save_answer(started.attempt_id, mcq, "A", 20)

        manager.autosave(started.attempt_id, {mcq: BatchAnswer(answer="C", time_delta=15)})

        entry = load_attempt(session_factory, started.attempt_id).answers[mcq]
        assert entry["time_spent"] == 35
        assert entry["answer"] == "C"

    def test_navigation_sets_replaced_wholesale(self, manager, mock_bank, session_factory):
        started = manager.start(mock_bank)
        ids = load_attempt(session_factory, started.attempt_id).all_question_ids()

        manager.autosave(started.attempt_id, {}, visited=ids[:5], marked=ids[:2])
        manager.autosave(started.attempt_id, {}, visited=[ids[7], ids[7]], marked=[])

        attempt = load_attempt(session_factory, started.attempt_id)
        assert attempt.visited_questions == [ids[7]]
        assert attempt.marked_for_review == []

    def test_batch_updates_unanswered(self, manager, mock_bank, session_factory):
        started = manager.start(mock_bank)
        ids = load_attempt(session_factory, started.attempt_id).all_question_ids()
        batch = {qid: BatchAnswer(answer="A", time_delta=1) for qid in ids[:10]}

        result = manager.autosave(started.attempt_id, batch)
        assert result.unanswered_count == 80
        assert result.saved_questions == 10

    def test_unknown_ids_rejected_without_writing(self, manager, mock_bank, session_factory):
        started = manager.start(mock_bank)
        mcq, _ = sections(session_factory, started.attempt_id)

        with pytest.raises(UnknownQuestionError) as exc_info:
            manager.autosave(started.attempt_id, {mcq: BatchAnswer("A", 3)}, visited=["ghost"])
        assert exc_info.value.to_dict()["question_ids"] == ["ghost"]
        assert load_attempt(session_factory, started.attempt_id).answers == {}

    def test_autosave_after_expiry_signals_force_complete(self, manager, short_test, session_factory, clock):
        started = manager.start(short_test)
        mcq, _ = sections(session_factory, started.attempt_id)
        clock.advance(75)

        with pytest.raises(ExpiredError) as exc_info:
            manager.autosave(started.attempt_id, {mcq: BatchAnswer("A", 30)})
        assert exc_info.value.to_dict()["must_force_complete"] is True
        assert load_attempt(session_factory, started.attempt_id).answers == {}


class TestCompletion:
    def test_force_complete_refused_while_time_remains(self, manager, mock_bank):
        started = manager.start(mock_bank)
        with pytest.raises(InvalidStateError):
            manager.force_complete(started.attempt_id)

    def test_force_complete_is_idempotent(self, manager, short_test, session_factory, clock):
        started = manager.start(short_test)
        mcq, numeric = sections(session_factory, started.attempt_id)
        manager.save_answer(started.attempt_id, mcq, "a", 10)
        manager.save_answer(started.attempt_id, numeric, "41.7", 10)
        clock.advance(90)

        first = manager.force_complete(started.attempt_id)
        second = manager.force_complete(started.attempt_id)

        assert first.report_token == second.report_token
        assert not first.already_completed
        assert second.already_completed
        assert first.completion_reason == "time_expired"
        assert first.total_time_seconds == 60
        assert first.correct_count == 2
        assert first.unanswered_count == 88

    def test_submit_grades_answers(self, manager, mock_bank, session_factory, clock):
        started = manager.start(mock_bank)
        mcq, numeric = sections(session_factory, started.attempt_id)
        wrong = load_attempt(session_factory, started.attempt_id).question_sets["CHEMISTRY"][0]
        manager.save_answer(started.attempt_id, mcq, "A", 30)
        manager.save_answer(started.attempt_id, wrong, "B", 30)
        clock.advance(120)

        completion = manager.submit(started.attempt_id, {numeric: BatchAnswer("42.2", 20)})

        assert completion.status == AttemptStatus.COMPLETED.value
        assert completion.completion_reason == "submitted"
        assert completion.total_time_seconds == 120
        assert (completion.correct_count, completion.incorrect_count, completion.unanswered_count) == (2, 1, 87)

        attempt = load_attempt(session_factory, started.attempt_id)
        assert attempt.answers[mcq]["is_correct"] is True
        assert attempt.answers[wrong]["is_correct"] is False
        assert attempt.answers[numeric]["time_spent"] == 20
        assert attempt.completed_at == clock.now

    def test_submit_twice_returns_existing_token(self, manager, mock_bank):
        started = manager.start(mock_bank)
        first = manager.submit(started.attempt_id)
        second = manager.submit(started.attempt_id)
        assert second.already_completed
        assert second.report_token == first.report_token

    def test_submit_after_expiry_discards_batch(self, manager, short_test, session_factory, clock):
        started = manager.start(short_test)
        mcq, _ = sections(session_factory, started.attempt_id)
        clock.advance(61)

        completion = manager.submit(started.attempt_id, {mcq: BatchAnswer("A", 50)})
        assert completion.completion_reason == "time_expired"
        assert completion.total_time_seconds == 60
        assert mcq not in load_attempt(session_factory, started.attempt_id).answers

    def test_no_writes_after_completion(self, manager, mock_bank, session_factory):
        started = manager.start(mock_bank)
        mcq, _ = sections(session_factory, started.attempt_id)
        manager.submit(started.attempt_id)

        with pytest.raises(InvalidStateError):
            manager.save_answer(started.attempt_id, mcq, "A", 1)
        with pytest.raises(InvalidStateError):
            manager.autosave(started.attempt_id, {})


class TestGetState:
    def test_state_is_client_safe(self, manager, mock_bank, session_factory, clock):
        started = manager.start(mock_bank)
        mcq, _ = sections(session_factory, started.attempt_id)
        manager.save_answer(started.attempt_id, mcq, "A", 4)
        clock.advance(10)

        state = manager.get_state(started.attempt_id)
        assert state.status == AttemptStatus.IN_PROGRESS.value
        assert state.remaining_seconds == 10790
        assert [len(qs) for qs in state.questions.values()] == [30, 30, 30]
        for questions in state.questions.values():
            for question in questions:
                assert "correct_answer" not in question
                assert "solution" not in question
        assert state.answers[mcq] == {
            "answer": "A",
            "time_spent": 4,
            "saved_at": state.answers[mcq]["saved_at"],
        }
        assert state.visited == [mcq]
        assert state.warnings == []
        assert state.warning_thresholds == [1800, 600, 300]

    def test_warnings_crossed(self, manager, mock_bank, clock):
        started = manager.start(mock_bank)
        clock.advance(10800 - 600)
        assert manager.get_state(started.attempt_id).warnings == [1800, 600]

    def test_expired_attempt_completes_on_read(self, manager, short_test, session_factory, clock):
        started = manager.start(short_test)
        clock.advance(300)

        state = manager.get_state(started.attempt_id)
        assert state.status == AttemptStatus.COMPLETED.value
        assert state.remaining_seconds == 0
        assert state.completion.completion_reason == "time_expired"
        assert state.completion.total_time_seconds == 60
        assert load_attempt(session_factory, started.attempt_id).status == AttemptStatus.COMPLETED.value

    def test_unknown_attempt(self, manager):
        with pytest.raises(NotFoundError):
            manager.get_state("missing")

    def test_busy_attempt(self, manager, mock_bank, locks, session_factory):
        started = manager.start(mock_bank)
        mcq, _ = sections(session_factory, started.attempt_id)
        with locks.hold(started.attempt_id):
            with pytest.raises(AttemptBusyError):
                manager.save_answer(started.attempt_id, mcq, "A", 1)
