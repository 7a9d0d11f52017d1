"""Duplicate detection when newly parsed questions join an existing bank."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Sequence

from .models import Question

__all__ = [
    "DuplicatePolicy",
    "MergeResult",
    "apply_merge",
    "classify_merge",
    "is_duplicate",
]


class DuplicatePolicy(Enum):
    """How the caller resolves incoming questions that duplicate the bank."""

    OVERWRITE = "overwrite"
    DISCARD = "discard"

    @classmethod
    def from_value(cls, value: str) -> "DuplicatePolicy":
        normalized = value.strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        expected = ", ".join(member.value for member in cls)
        raise ValueError(
            f"Unknown duplicate policy '{value}'. Expected one of: {expected}."
        )


@dataclass(frozen=True)
class MergeResult:
    """Incoming questions split into new ones and duplicates of the bank."""

    to_keep: tuple[Question, ...]
    duplicates: tuple[Question, ...]


def _text_key(question: Question) -> str:
    return question.text.strip().casefold()


def is_duplicate(left: Question, right: Question) -> bool:
    """Same question text ignoring case/padding and identical option list."""
    return _text_key(left) == _text_key(right) and tuple(left.options) == tuple(
        right.options
    )


def classify_merge(
    existing: Sequence[Question], incoming: Sequence[Question]
) -> MergeResult:
    keys = {(_text_key(q), tuple(q.options)) for q in existing}
    to_keep: list[Question] = []
    duplicates: list[Question] = []
    for question in incoming:
        if (_text_key(question), tuple(question.options)) in keys:
            duplicates.append(question)
        else:
            to_keep.append(question)
    return MergeResult(to_keep=tuple(to_keep), duplicates=tuple(duplicates))


def apply_merge(
    existing: Sequence[Question],
    incoming: Sequence[Question],
    policy: DuplicatePolicy,
) -> List[Question]:
    """Return the merged question list according to ``policy``.

    OVERWRITE drops every existing question that an incoming one duplicates
    and appends all incoming questions; DISCARD keeps the bank as is and
    appends only the non-duplicates.
    """
    result = classify_merge(existing, incoming)
    if policy is DuplicatePolicy.DISCARD:
        return list(existing) + list(result.to_keep)
    kept = [
        question
        for question in existing
        if not any(is_duplicate(question, dup) for dup in result.duplicates)
    ]
    return kept + list(incoming)
