"""Summary statistics over stored exam and arcade attempts.

Everything here is a pure function of its arguments.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from .models import (
    Attempt,
    Bank,
    GameAttempt,
    percent,
    rank_for_accuracy,
    round_half_up,
)

__all__ = [
    "DISTRIBUTION_BUCKETS",
    "AttemptStats",
    "GameStats",
    "OverallGameTotals",
    "OverallTotals",
    "attempt_stats",
    "bank_game_stats",
    "bank_stats",
    "game_stats",
    "overall_game_totals",
    "overall_totals",
    "rank_for_accuracy",
    "result_message",
    "score_distribution",
]

# (label, inclusive lower bound), best first; the top bucket also includes 100.
DISTRIBUTION_BUCKETS: tuple[tuple[str, float], ...] = (
    ("Excellent", 85),
    ("Good", 70),
    ("Fair", 50),
    ("NeedsImprovement", 0),
)

_RESULT_MESSAGES: tuple[tuple[float, str], ...] = (
    (40, "Keep Practicing!"),
    (70, "Study more, you're almost there!"),
    (85, "Great Job! I know you can do better!"),
)


@dataclass(frozen=True)
class AttemptStats:
    attempt_count: int
    average: float
    best: float
    worst: float
    last_attempt: Optional[Attempt] = None


@dataclass(frozen=True)
class OverallTotals:
    bank_count: int
    attempt_count: int
    total_correct: int
    total_questions: int
    percentage: float


@dataclass(frozen=True)
class GameStats:
    games_played: int
    average_score: float
    best_score: int
    best_streak: int
    average_accuracy: float
    last_game: Optional[GameAttempt] = None


@dataclass(frozen=True)
class OverallGameTotals:
    bank_count: int
    games_played: int
    total_score: int
    best_score: int
    best_streak: int
    average_accuracy: float


def _mean(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return round_half_up(sum(values) / len(values), 1)


def attempt_stats(attempts: Sequence[Attempt]) -> AttemptStats:
    """Average, best and worst percentage over ``attempts``.

    An empty history reports zeros rather than raising.
    """
    percentages = [attempt.percentage for attempt in attempts]
    if not percentages:
        return AttemptStats(attempt_count=0, average=0.0, best=0.0, worst=0.0)
    return AttemptStats(
        attempt_count=len(percentages),
        average=_mean(percentages),
        best=max(percentages),
        worst=min(percentages),
        last_attempt=attempts[-1],
    )


def bank_stats(bank: Bank) -> AttemptStats:
    return attempt_stats(bank.attempts)


def overall_totals(banks: Iterable[Bank]) -> OverallTotals:
    bank_count = attempt_count = correct = questions = 0
    for bank in banks:
        bank_count += 1
        for attempt in bank.attempts:
            attempt_count += 1
            correct += attempt.score
            questions += attempt.total
    return OverallTotals(
        bank_count=bank_count,
        attempt_count=attempt_count,
        total_correct=correct,
        total_questions=questions,
        percentage=percent(correct, questions),
    )


def _bucket_for(percentage: float) -> str:
    for label, lower in DISTRIBUTION_BUCKETS:
        if percentage >= lower:
            return label
    return DISTRIBUTION_BUCKETS[-1][0]


def score_distribution(attempts: Iterable[Attempt]) -> dict[str, int]:
    """Count attempts per bucket; every bucket is present, zeros included."""
    counts = {label: 0 for label, _ in DISTRIBUTION_BUCKETS}
    for attempt in attempts:
        counts[_bucket_for(attempt.percentage)] += 1
    return counts


def game_stats(game_attempts: Sequence[GameAttempt]) -> GameStats:
    if not game_attempts:
        return GameStats(
            games_played=0,
            average_score=0.0,
            best_score=0,
            best_streak=0,
            average_accuracy=0.0,
        )
    return GameStats(
        games_played=len(game_attempts),
        average_score=_mean([game.score for game in game_attempts]),
        best_score=max(game.score for game in game_attempts),
        best_streak=max(game.max_streak for game in game_attempts),
        average_accuracy=_mean([game.accuracy for game in game_attempts]),
        last_game=game_attempts[-1],
    )


def bank_game_stats(bank: Bank) -> GameStats:
    return game_stats(bank.game_attempts)


def overall_game_totals(banks: Iterable[Bank]) -> OverallGameTotals:
    bank_count = 0
    games: list[GameAttempt] = []
    for bank in banks:
        bank_count += 1
        games.extend(bank.game_attempts)
    return OverallGameTotals(
        bank_count=bank_count,
        games_played=len(games),
        total_score=sum(game.score for game in games),
        best_score=max((game.score for game in games), default=0),
        best_streak=max((game.max_streak for game in games), default=0),
        average_accuracy=_mean([game.accuracy for game in games]),
    )


def result_message(percentage: float) -> str:
    """End-of-exam verdict shown next to the score."""
    for ceiling, message in _RESULT_MESSAGES:
        if percentage <= ceiling:
            return message
    return "Excellent!"
