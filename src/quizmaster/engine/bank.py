"""Value-level helpers over ``Bank``: selection, search and history updates.

Each helper returns a new value; callers keep ownership of the bank and
decide when to persist it.
"""

from __future__ import annotations

import random
from dataclasses import replace
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence

from .merge import DuplicatePolicy, apply_merge
from .models import Attempt, Bank, GameAttempt, Question

__all__ = [
    "add_questions",
    "clear_attempts",
    "clear_game_attempts",
    "new_bank",
    "record_attempt",
    "record_game_attempt",
    "search_questions",
    "select_questions",
    "shuffled",
]


def new_bank(
    title: str,
    questions: Iterable[Question] = (),
    *,
    created_at: Optional[str] = None,
) -> Bank:
    title = title.strip()
    if not title:
        raise ValueError("Bank title must be a non-empty string.")
    return Bank(
        title=title,
        questions=tuple(questions),
        created_at=created_at or datetime.now(timezone.utc).isoformat(),
    )


def shuffled(
    questions: Sequence[Question], rng: Optional[random.Random] = None
) -> List[Question]:
    items = list(questions)
    (rng or random.Random()).shuffle(items)
    return items


def select_questions(
    questions: Sequence[Question],
    count: Optional[int] = None,
    *,
    shuffle: bool = True,
    rng: Optional[random.Random] = None,
) -> List[Question]:
    """Pick the questions for one session.

    ``count`` of ``None`` or ``0`` means the whole bank; larger counts are
    capped at the bank size. Shuffling happens before slicing so a partial
    run draws a random subset.
    """
    if count is not None and count < 0:
        raise ValueError("count must be >= 0")
    items = shuffled(questions, rng) if shuffle else list(questions)
    if not count:
        return items
    return items[: min(count, len(items))]


def search_questions(
    questions: Sequence[Question], term: str
) -> List[Question]:
    """Case-insensitive match on text, any option, or 1-based position."""
    needle = term.strip().lower()
    if not needle:
        return list(questions)
    matches: list[Question] = []
    for position, question in enumerate(questions, start=1):
        if (
            needle in question.text.lower()
            or any(needle in option.lower() for option in question.options)
            or needle in str(position)
        ):
            matches.append(question)
    return matches


def add_questions(
    bank: Bank,
    incoming: Sequence[Question],
    policy: DuplicatePolicy = DuplicatePolicy.DISCARD,
) -> Bank:
    merged = apply_merge(bank.questions, incoming, policy)
    return replace(bank, questions=tuple(merged))


def record_attempt(bank: Bank, attempt: Attempt) -> Bank:
    return replace(bank, attempts=bank.attempts + (attempt,))


def record_game_attempt(bank: Bank, attempt: GameAttempt) -> Bank:
    return replace(bank, game_attempts=bank.game_attempts + (attempt,))


def clear_attempts(bank: Bank) -> Bank:
    return replace(bank, attempts=())


def clear_game_attempts(bank: Bank) -> Bank:
    return replace(bank, game_attempts=())
