from __future__ import annotations

from quizmaster.engine.analytics import (
    attempt_stats,
    bank_game_stats,
    bank_stats,
    game_stats,
    overall_game_totals,
    overall_totals,
    result_message,
    score_distribution,
)
from quizmaster.engine.models import Attempt, Bank, GameAttempt


def attempt(score: int, total: int, percentage: float) -> Attempt:
    return Attempt(
        date="2024-01-01",
        score=score,
        total=total,
        percentage=percentage,
        duration_ms=1000,
    )


def game(score: int, accuracy: float, max_streak: int) -> GameAttempt:
    return GameAttempt(
        date="2024-01-01",
        score=score,
        correct=0,
        wrong=0,
        total=10,
        accuracy=accuracy,
        max_streak=max_streak,
        duration_ms=1000,
    )


def test_histogram_boundaries() -> None:
    attempts = [attempt(0, 0, p) for p in (85, 84.9, 70, 49)]

    assert score_distribution(attempts) == {
        "Excellent": 1,
        "Good": 2,
        "Fair": 0,
        "NeedsImprovement": 1,
    }


def test_histogram_edges_and_empty_input() -> None:
    attempts = [attempt(0, 0, p) for p in (100, 69.9, 50, 0)]

    assert score_distribution(attempts) == {
        "Excellent": 1,
        "Good": 0,
        "Fair": 2,
        "NeedsImprovement": 1,
    }
    assert score_distribution([]) == {
        "Excellent": 0,
        "Good": 0,
        "Fair": 0,
        "NeedsImprovement": 0,
    }


def test_attempt_stats_average_best_worst() -> None:
    history = [attempt(3, 5, 60.0), attempt(5, 5, 100.0), attempt(1, 3, 33.3)]

    stats = attempt_stats(history)

    assert stats.attempt_count == 3
    assert stats.average == 64.4
    assert stats.best == 100.0
    assert stats.worst == 33.3
    assert stats.last_attempt is history[-1]


def test_attempt_stats_empty_history() -> None:
    stats = bank_stats(Bank(title="Empty"))

    assert stats.attempt_count == 0
    assert stats.average == 0.0
    assert stats.last_attempt is None


def test_overall_totals_sum_across_banks() -> None:
    banks = [
        Bank(title="A", attempts=(attempt(3, 5, 60.0), attempt(4, 5, 80.0))),
        Bank(title="B", attempts=(attempt(1, 2, 50.0),)),
        Bank(title="C"),
    ]

    totals = overall_totals(banks)

    assert totals.bank_count == 3
    assert totals.attempt_count == 3
    assert totals.total_correct == 8
    assert totals.total_questions == 12
    assert totals.percentage == 66.7
    assert overall_totals([]).percentage == 0.0


def test_game_stats_mirror_exam_stats() -> None:
    bank = Bank(
        title="G",
        game_attempts=(game(120, 90.0, 5), game(80, 70.0, 7), game(40, 45.0, 1)),
    )

    stats = bank_game_stats(bank)

    assert stats.games_played == 3
    assert stats.average_score == 80.0
    assert stats.best_score == 120
    assert stats.best_streak == 7
    assert stats.average_accuracy == 68.3
    assert game_stats([]).games_played == 0


def test_overall_game_totals() -> None:
    banks = [
        Bank(title="A", game_attempts=(game(50, 60.0, 2),)),
        Bank(title="B", game_attempts=(game(70, 80.0, 4), game(10, 10.0, 0))),
    ]

    totals = overall_game_totals(banks)

    assert totals.bank_count == 2
    assert totals.games_played == 3
    assert totals.total_score == 130
    assert totals.best_score == 70
    assert totals.best_streak == 4
    assert totals.average_accuracy == 50.0
    assert overall_game_totals([]).best_score == 0


def test_result_message_tiers() -> None:
    assert result_message(0) == "Keep Practicing!"
    assert result_message(40) == "Keep Practicing!"
    assert result_message(40.1) == "Study more, you're almost there!"
    assert result_message(70) == "Study more, you're almost there!"
    assert result_message(85) == "Great Job! I know you can do better!"
    assert result_message(85.1) == "Excellent!"
