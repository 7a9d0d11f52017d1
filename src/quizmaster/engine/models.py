"""Immutable records exchanged between the engine and its collaborators.

Every record is a frozen dataclass. ``to_dict`` returns the camelCase shape
the persistence collaborator stores and ``from_dict`` rebuilds the record from
that shape; the engine itself never reads or writes storage.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Union

from ..errors import QuestionValidationError

__all__ = [
    "LETTERS",
    "OPTION_COUNT",
    "RANK_THRESHOLDS",
    "AnswerKey",
    "AnsweredQuestion",
    "Attempt",
    "Bank",
    "GameAnswer",
    "GameAttempt",
    "Question",
    "SessionStatus",
    "coerce_selection",
    "percent",
    "rank_for_accuracy",
    "round_half_up",
    "validate_question",
]

LETTERS: tuple[str, ...] = ("A", "B", "C", "D")
OPTION_COUNT = len(LETTERS)

# Lower accuracy bound (inclusive) for each arcade rank, best first.
RANK_THRESHOLDS: tuple[tuple[float, str], ...] = (
    (90, "Master"),
    (80, "Expert"),
    (70, "Proficient"),
    (60, "Competent"),
    (0, "Learner"),
)

AnswerKey = Union[str, tuple[str, ...]]


class SessionStatus(Enum):
    """Lifecycle states shared by exam and arcade sessions."""

    CONFIGURING = "configuring"
    ACTIVE = "active"
    FEEDBACK = "feedback"
    COMPLETED = "completed"
    ABORTED = "aborted"

    @property
    def is_running(self) -> bool:
        return self in (SessionStatus.ACTIVE, SessionStatus.FEEDBACK)

    @property
    def is_terminal(self) -> bool:
        return self in (SessionStatus.COMPLETED, SessionStatus.ABORTED)


def round_half_up(value: float, digits: int = 0) -> float:
    """Round like a calculator does: 12.5 -> 13, 6.25 -> 6.3 (1 digit)."""

    quantum = Decimal(1).scaleb(-digits)
    rounded = Decimal(repr(float(value))).quantize(
        quantum, rounding=ROUND_HALF_UP
    )
    return float(rounded)


def percent(part: float, whole: float) -> float:
    if not whole:
        return 0.0
    return round_half_up(part / whole * 100, 1)


def rank_for_accuracy(accuracy: float) -> str:
    for threshold, label in RANK_THRESHOLDS:
        if accuracy >= threshold:
            return label
    return RANK_THRESHOLDS[-1][1]


def coerce_selection(selected: object) -> tuple[str, ...] | None:
    """Normalize a submitted answer into a sorted tuple of letters.

    ``None``, ``""`` and empty collections mean "no selection". Raises
    ``ValueError`` for anything that is not one of the option letters.
    """

    if selected is None:
        return None
    if isinstance(selected, str):
        raw: Iterable[object] = [selected] if selected.strip() else []
    elif isinstance(selected, Iterable):
        raw = selected
    else:
        raise ValueError(f"Unsupported selection type: {type(selected)!r}")
    letters: set[str] = set()
    for item in raw:
        letter = str(item).strip().upper()
        if letter not in LETTERS:
            raise ValueError(f"'{item}' is not an option letter (A-D).")
        letters.add(letter)
    if not letters:
        return None
    return tuple(sorted(letters))


def _letters_from(value: object) -> tuple[str, ...]:
    if isinstance(value, str):
        return (value.strip().upper(),)
    if isinstance(value, Iterable):
        return tuple(sorted({str(item).strip().upper() for item in value}))
    raise QuestionValidationError(
        f"Correct answer must be a letter or list of letters, got {value!r}."
    )


def _shape(letters: tuple[str, ...] | None, multi: bool) -> Any:
    if letters is None:
        return None
    if not multi and len(letters) == 1:
        return letters[0]
    return list(letters)


@dataclass(frozen=True)
class Question:
    """A four-option multiple-choice question.

    ``correct`` always holds the sorted correct letters; ``multi_select``
    tags whether more than one of them is expected.
    """

    id: str
    text: str
    options: tuple[str, ...]
    correct: tuple[str, ...]
    multi_select: bool = False

    @classmethod
    def create(
        cls,
        id: str,
        text: str,
        options: Sequence[str],
        correct: str | Iterable[str],
    ) -> "Question":
        letters = _letters_from(correct)
        return cls(
            id=str(id),
            text=text,
            options=tuple(options),
            correct=letters,
            multi_select=len(letters) > 1,
        )

    @property
    def answer_key(self) -> AnswerKey:
        if self.multi_select:
            return self.correct
        return self.correct[0]

    def option_for(self, letter: str) -> str | None:
        try:
            return self.options[LETTERS.index(letter.strip().upper())]
        except (ValueError, IndexError):
            return None

    def is_correct(self, selection: tuple[str, ...] | None) -> bool:
        if not selection:
            return False
        return tuple(sorted(selection)) == self.correct

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "options": list(self.options),
            "correct": _shape(self.correct, self.multi_select),
            "multiSelect": self.multi_select,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Question":
        raw_options = data.get("options")
        if isinstance(raw_options, (str, bytes)) or not isinstance(
            raw_options, Iterable
        ):
            raise QuestionValidationError(
                f"Question {data.get('id')!r}: options must be a list."
            )
        text = data.get("text", data.get("question", ""))
        question = cls.create(
            id=str(data.get("id", "")),
            text=str(text),
            options=[str(option) for option in raw_options],
            correct=data.get("correct", ()),
        )
        validate_question(question)
        declared = data.get("multiSelect")
        if declared is not None and bool(declared) != question.multi_select:
            raise QuestionValidationError(
                f"Question {question.id!r}: multiSelect={declared!r} does not "
                f"match {len(question.correct)} correct letter(s)."
            )
        return question


def validate_question(question: Question) -> None:
    """Raise ``QuestionValidationError`` unless ``question`` is well formed."""

    label = f"Question {question.id!r}"
    if len(question.options) != OPTION_COUNT:
        raise QuestionValidationError(
            f"{label} must have exactly {OPTION_COUNT} options, "
            f"found {len(question.options)}."
        )
    if not question.correct:
        raise QuestionValidationError(f"{label} has no correct answer.")
    unknown = [letter for letter in question.correct if letter not in LETTERS]
    if unknown:
        raise QuestionValidationError(
            f"{label} has out-of-range correct letter(s): {', '.join(unknown)}."
        )
    if len(set(question.correct)) != len(question.correct):
        raise QuestionValidationError(
            f"{label} repeats a correct letter."
        )
    if question.multi_select != (len(question.correct) > 1):
        raise QuestionValidationError(
            f"{label}: multi_select must be true exactly when more than one "
            "letter is correct."
        )


@dataclass(frozen=True)
class AnsweredQuestion:
    """One scored exam response."""

    question_id: str
    selected: tuple[str, ...] | None
    correct_answer: tuple[str, ...]
    is_correct: bool

    def to_dict(self) -> dict[str, Any]:
        multi = len(self.correct_answer) > 1
        return {
            "questionId": self.question_id,
            "selected": _shape(self.selected, multi),
            "correctAnswer": _shape(self.correct_answer, multi),
            "isCorrect": self.is_correct,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AnsweredQuestion":
        selected = data.get("selected")
        return cls(
            question_id=str(data.get("questionId", "")),
            selected=_letters_from(selected) if selected else None,
            correct_answer=_letters_from(
                data.get("correctAnswer", data.get("correct", ()))
            ),
            is_correct=bool(data.get("isCorrect")),
        )


@dataclass(frozen=True)
class Attempt:
    """Result of a completed (or time-expired) exam session."""

    date: str
    score: int
    total: int
    percentage: float
    duration_ms: int
    answers: tuple[AnsweredQuestion, ...] = ()

    @classmethod
    def from_answers(
        cls,
        answers: Sequence[AnsweredQuestion],
        *,
        date: str,
        duration_ms: int,
    ) -> "Attempt":
        score = sum(1 for answer in answers if answer.is_correct)
        total = len(answers)
        return cls(
            date=date,
            score=score,
            total=total,
            percentage=percent(score, total),
            duration_ms=int(duration_ms),
            answers=tuple(answers),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "score": self.score,
            "total": self.total,
            "percentage": self.percentage,
            "durationMs": self.duration_ms,
            "answers": [answer.to_dict() for answer in self.answers],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Attempt":
        return cls(
            date=str(data.get("date", "")),
            score=int(data.get("score", 0)),
            total=int(data.get("total", 0)),
            percentage=float(data.get("percentage", 0.0)),
            duration_ms=int(data.get("durationMs", data.get("duration", 0))),
            answers=tuple(
                AnsweredQuestion.from_dict(item)
                for item in data.get("answers", ()) or ()
            ),
        )


@dataclass(frozen=True)
class GameAnswer:
    """One scored arcade response, including timing and awarded points."""

    question_id: str
    selected: tuple[str, ...] | None
    correct_answer: tuple[str, ...]
    is_correct: bool
    time_taken_ms: int
    time_expired: bool = False
    points: int = 0

    def to_dict(self) -> dict[str, Any]:
        multi = len(self.correct_answer) > 1
        return {
            "questionId": self.question_id,
            "selected": _shape(self.selected, multi),
            "correctAnswer": _shape(self.correct_answer, multi),
            "isCorrect": self.is_correct,
            "timeTakenMs": self.time_taken_ms,
            "timeExpired": self.time_expired,
            "points": self.points,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "GameAnswer":
        selected = data.get("selected")
        return cls(
            question_id=str(data.get("questionId", "")),
            selected=_letters_from(selected) if selected else None,
            correct_answer=_letters_from(
                data.get("correctAnswer", data.get("correct", ()))
            ),
            is_correct=bool(data.get("isCorrect")),
            time_taken_ms=int(data.get("timeTakenMs", data.get("timeTaken", 0))),
            time_expired=bool(data.get("timeExpired", False)),
            points=int(data.get("points", 0)),
        )


@dataclass(frozen=True)
class GameAttempt:
    """Result of a completed arcade session."""

    date: str
    score: int
    correct: int
    wrong: int
    total: int
    accuracy: float
    max_streak: int
    duration_ms: int
    answers: tuple[GameAnswer, ...] = ()

    @property
    def rank(self) -> str:
        return rank_for_accuracy(self.accuracy)

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "score": self.score,
            "correct": self.correct,
            "wrong": self.wrong,
            "total": self.total,
            "accuracy": self.accuracy,
            "maxStreak": self.max_streak,
            "durationMs": self.duration_ms,
            "answers": [answer.to_dict() for answer in self.answers],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "GameAttempt":
        return cls(
            date=str(data.get("date", "")),
            score=int(data.get("score", 0)),
            correct=int(data.get("correct", 0)),
            wrong=int(data.get("wrong", 0)),
            total=int(data.get("total", 0)),
            accuracy=float(data.get("accuracy", 0.0)),
            max_streak=int(data.get("maxStreak", 0)),
            duration_ms=int(data.get("durationMs", data.get("duration", 0))),
            answers=tuple(
                GameAnswer.from_dict(item)
                for item in data.get("answers", ()) or ()
            ),
        )


@dataclass(frozen=True)
class Bank:
    """A titled question bank with its exam and arcade history."""

    title: str
    questions: tuple[Question, ...] = ()
    attempts: tuple[Attempt, ...] = ()
    game_attempts: tuple[GameAttempt, ...] = ()
    created_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "questions": [question.to_dict() for question in self.questions],
            "attempts": [attempt.to_dict() for attempt in self.attempts],
            "gameAttempts": [
                attempt.to_dict() for attempt in self.game_attempts
            ],
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Bank":
        return cls(
            title=str(data.get("title", "")),
            questions=tuple(
                Question.from_dict(item)
                for item in data.get("questions", ()) or ()
            ),
            attempts=tuple(
                Attempt.from_dict(item)
                for item in data.get("attempts", ()) or ()
            ),
            game_attempts=tuple(
                GameAttempt.from_dict(item)
                for item in data.get("gameAttempts", ()) or ()
            ),
            created_at=str(data.get("createdAt", "")),
        )
