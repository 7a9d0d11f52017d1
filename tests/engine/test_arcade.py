from __future__ import annotations

import random
from datetime import datetime, timezone

import pytest

from fixtures import make_question

from quizmaster.engine.arcade import ArcadeSession, base_points_for, speed_bonus
from quizmaster.engine.models import SessionStatus
from quizmaster.errors import QuestionValidationError

FIXED_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def make_game(questions, clock, timers, **kwargs) -> ArcadeSession:
    kwargs.setdefault("now", lambda: FIXED_NOW)
    return ArcadeSession(questions, scheduler=timers, clock=clock, **kwargs)


def test_base_points_and_bonus_formula() -> None:
    assert base_points_for(10) == 10
    assert base_points_for(8) == 13
    assert base_points_for(3) == 33
    assert base_points_for(500) == 1
    assert speed_bonus(15000, 8000) == 1
    assert speed_bonus(15000, 0) == 3
    assert speed_bonus(15000, 20000) == 0


def test_correct_answer_with_seven_seconds_left_scores_eleven(clock, timers) -> None:
    items = [make_question(str(i)) for i in range(1, 11)]
    game = make_game(items, clock, timers, rng=random.Random(1))
    game.start()

    timers.advance(8000)
    assert game.submit_answer("A")

    answer = game.snapshot().last_answer
    assert answer.is_correct
    assert answer.time_taken_ms == 8000
    assert answer.points == 11
    assert game.snapshot().score == 11


def test_multi_select_matches_in_any_order(clock, timers) -> None:
    game = make_game([make_question("1", correct=["D", "B"])], clock, timers)
    game.start()

    game.submit_answer(["B", "D"])

    assert game.snapshot().last_answer.is_correct


def test_full_game_scores_streaks_and_rank(clock, timers) -> None:
    items = [make_question(str(i)) for i in range(1, 5)]
    game = make_game(items, clock, timers)
    game.start()

    for elapsed, letter in [(1000, "A"), (5000, "A"), (0, "B"), (14000, "A")]:
        timers.advance(elapsed)
        assert game.submit_answer(letter)
        assert game.status is SessionStatus.FEEDBACK
        timers.advance(1500)

    attempt = game.attempt
    assert game.status is SessionStatus.COMPLETED
    assert [a.points for a in attempt.answers] == [27, 27, 0, 25]
    assert attempt.score == 79
    assert attempt.correct == 3
    assert attempt.wrong == 1
    assert attempt.total == 4
    assert attempt.accuracy == 75.0
    assert attempt.max_streak == 2
    assert attempt.rank == "Proficient"
    assert attempt.duration_ms == 26000
    assert attempt.date == FIXED_NOW.isoformat()


def test_question_expiry_auto_submits_and_resets_streak(clock, timers) -> None:
    items = [make_question("1"), make_question("2"), make_question("3")]
    game = make_game(items, clock, timers)
    game.start()
    game.submit_answer("A")
    timers.advance(1500)
    assert game.snapshot().streak == 1

    timers.advance(15000)

    snap = game.snapshot()
    assert snap.status is SessionStatus.FEEDBACK
    assert snap.streak == 0
    assert snap.last_answer.time_expired
    assert snap.last_answer.selected is None
    assert snap.last_answer.points == 0
    assert snap.last_answer.time_taken_ms == 15000

    timers.advance(1500)
    assert game.snapshot().index == 2
    assert game.snapshot().question_remaining_ms == 15000


def test_manual_empty_submission_is_rejected(clock, timers) -> None:
    game = make_game([make_question("1")], clock, timers)
    game.start()

    assert game.submit_answer(None) is False
    assert game.submit_answer([]) is False
    assert game.status is SessionStatus.ACTIVE


def test_disabled_timer_never_expires_but_bonus_still_applies(clock, timers) -> None:
    game = make_game(
        [make_question("1"), make_question("2")], clock, timers, timer_enabled=False
    )
    game.start()

    timers.advance(60_000)
    assert game.status is SessionStatus.ACTIVE
    assert game.snapshot().question_remaining_ms is None
    game.submit_answer("A")
    assert game.snapshot().last_answer.points == 50

    timers.advance(1500)
    game.submit_answer("A")
    assert game.snapshot().last_answer.points == 53


def test_submit_during_feedback_is_rejected(clock, timers) -> None:
    game = make_game([make_question("1"), make_question("2")], clock, timers)
    game.start()
    game.submit_answer("A")

    assert game.submit_answer("A") is False
    assert len(game.state.answers) == 1


def test_zero_dwell_advances_immediately(clock, timers) -> None:
    game = make_game(
        [make_question("1"), make_question("2")], clock, timers, feedback_dwell_ms=0
    )
    game.start()

    game.submit_answer("A")
    assert game.status is SessionStatus.ACTIVE
    game.submit_answer("B")
    assert game.status is SessionStatus.COMPLETED


def test_abort_cancels_timers_and_is_idempotent(clock, timers) -> None:
    completed: list = []
    game = make_game(
        [make_question("1"), make_question("2")],
        clock,
        timers,
        on_complete=completed.append,
    )
    game.start()

    assert game.abort()
    assert game.abort() is False
    timers.advance(60_000)

    assert game.status is SessionStatus.ABORTED
    assert game.attempt is None
    assert completed == []
    assert timers.pending == 0


def test_retake_reshuffles_pool_and_keeps_count(clock, timers) -> None:
    pool = [make_question(str(i)) for i in range(1, 9)]
    game = make_game(
        pool[:3], clock, timers, pool=pool, feedback_dwell_ms=0, rng=random.Random(5)
    )
    game.start()
    for _ in range(3):
        game.submit_answer("A")
    first = game.attempt

    assert game.retake()

    assert game.status is SessionStatus.ACTIVE
    assert len(game.state.questions) == 3
    assert {q.id for q in game.state.questions} <= {q.id for q in pool}
    assert game.snapshot().score == 0
    assert game.state.max_streak == 0
    assert game.attempt is None
    assert first.max_streak == 3


def test_construction_rejects_invalid_input(clock, timers) -> None:
    with pytest.raises(QuestionValidationError):
        make_game([], clock, timers)
    with pytest.raises(QuestionValidationError):
        make_game([make_question("1", correct="E")], clock, timers)
    with pytest.raises(ValueError):
        make_game([make_question("1")], clock, timers, time_per_question_ms=0)
