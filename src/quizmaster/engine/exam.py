"""Exam-mode session state machine.

``CONFIGURING -> ACTIVE -> (FEEDBACK)* -> COMPLETED`` with ``ABORTED``
reachable from ``ACTIVE``/``FEEDBACK``. Every accepted transition replaces
the session's ``ExamState`` with a new frozen value; calls that are not valid
in the current state return ``False`` and leave it untouched.

Timers never mutate the session directly. A firing timer posts an event
tagged with the run it was armed for, and the session drops events whose run
or expected state no longer match (stale firings after an abort, a
completion or a retake).
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Callable, Optional, Sequence, Union

from ..errors import QuestionValidationError
from .bank import shuffled
from .lock import ExamLock
from .models import (
    AnsweredQuestion,
    Attempt,
    Question,
    SessionStatus,
    coerce_selection,
    validate_question,
)
from .timers import Clock, Scheduler, TimerHandle, TimerQueue, monotonic_ms

__all__ = [
    "DEFAULT_FEEDBACK_DWELL_MS",
    "AssessmentSession",
    "ExamSnapshot",
    "ExamState",
]

DEFAULT_FEEDBACK_DWELL_MS = 2000

Selection = Union[str, Sequence[str], None]


def validate_session_questions(questions: Sequence[Question]) -> tuple[Question, ...]:
    """Fail fast on a malformed question list before any state exists."""

    items = tuple(questions)
    if not items:
        raise QuestionValidationError("A session needs at least one question.")
    for question in items:
        if not isinstance(question, Question):
            raise QuestionValidationError(
                f"Expected Question records, got {type(question).__name__}."
            )
        validate_question(question)
    return items


@dataclass(frozen=True)
class ExamState:
    """One immutable step of an exam run."""

    status: SessionStatus
    questions: tuple[Question, ...]
    index: int = 0
    answers: tuple[AnsweredQuestion, ...] = ()
    run_id: int = 0
    started_at_ms: int = 0
    ended_at_ms: Optional[int] = None
    attempt: Optional[Attempt] = None

    @property
    def current(self) -> Optional[Question]:
        if not self.status.is_running or self.index >= len(self.questions):
            return None
        return self.questions[self.index]

    @property
    def score(self) -> int:
        return sum(1 for answer in self.answers if answer.is_correct)

    @property
    def exhausted(self) -> bool:
        return self.index >= len(self.questions)

    def begun(self, questions: tuple[Question, ...], now_ms: int) -> "ExamState":
        return ExamState(
            status=SessionStatus.ACTIVE,
            questions=questions,
            run_id=self.run_id + 1,
            started_at_ms=now_ms,
        )

    def answered(self, answer: AnsweredQuestion, *, hold: bool) -> "ExamState":
        if hold:
            return replace(
                self,
                status=SessionStatus.FEEDBACK,
                answers=self.answers + (answer,),
            )
        return replace(
            self,
            answers=self.answers + (answer,),
            index=self.index + 1,
        )

    def advanced(self) -> "ExamState":
        return replace(self, status=SessionStatus.ACTIVE, index=self.index + 1)

    def finished(self, attempt: Attempt, now_ms: int) -> "ExamState":
        return replace(
            self,
            status=SessionStatus.COMPLETED,
            ended_at_ms=now_ms,
            attempt=attempt,
        )

    def aborted(self, now_ms: int) -> "ExamState":
        return replace(self, status=SessionStatus.ABORTED, ended_at_ms=now_ms)


@dataclass(frozen=True)
class ExamSnapshot:
    """What a presentation collaborator needs to render the exam."""

    status: SessionStatus
    index: int
    total_questions: int
    question: Optional[Question]
    answered: int
    score: int
    elapsed_ms: int
    remaining_ms: Optional[int]
    immediate_feedback: bool
    last_answer: Optional[AnsweredQuestion]
    attempt: Optional[Attempt]

    @property
    def progress(self) -> float:
        if not self.total_questions:
            return 0.0
        return min(self.index + 1, self.total_questions) / self.total_questions


@dataclass(frozen=True)
class _CountdownExpired:
    run_id: int


@dataclass(frozen=True)
class _FeedbackElapsed:
    run_id: int
    index: int


class AssessmentSession:
    """Drive one exam over a caller-selected list of questions.

    ``pool`` is the full question set that ``retake()`` reshuffles; it
    defaults to ``questions``. ``on_complete`` is called with the finished
    ``Attempt``, including completions triggered by the countdown.
    """

    def __init__(
        self,
        questions: Sequence[Question],
        *,
        time_limit_ms: Optional[int] = None,
        immediate_feedback: bool = False,
        pool: Optional[Sequence[Question]] = None,
        lock: Optional[ExamLock] = None,
        feedback_dwell_ms: int = DEFAULT_FEEDBACK_DWELL_MS,
        scheduler: Optional[Scheduler] = None,
        clock: Optional[Clock] = None,
        now: Optional[Callable[[], datetime]] = None,
        rng: Optional[random.Random] = None,
        on_complete: Optional[Callable[[Attempt], None]] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        items = validate_session_questions(questions)
        self._pool = (
            validate_session_questions(pool) if pool is not None else items
        )
        if time_limit_ms is not None and time_limit_ms <= 0:
            raise ValueError("time_limit_ms must be positive when provided.")
        self.time_limit_ms = time_limit_ms
        self.immediate_feedback = immediate_feedback
        self.feedback_dwell_ms = max(0, int(feedback_dwell_ms))
        self._lock = lock
        self._timers = scheduler or TimerQueue(clock or monotonic_ms)
        self._clock: Clock = clock or getattr(self._timers, "clock", monotonic_ms)
        self._now = now or (lambda: datetime.now(timezone.utc))
        self._rng = rng or random.Random()
        self._on_complete = on_complete
        self._logger = logger or logging.getLogger(__name__)
        self._countdown: Optional[TimerHandle] = None
        self._dwell: Optional[TimerHandle] = None
        self._state = ExamState(SessionStatus.CONFIGURING, items)

    # -- read side -----------------------------------------------------

    @property
    def state(self) -> ExamState:
        return self._state

    @property
    def status(self) -> SessionStatus:
        return self._state.status

    @property
    def attempt(self) -> Optional[Attempt]:
        return self._state.attempt

    def snapshot(self) -> ExamSnapshot:
        state = self._state
        elapsed = self._elapsed_ms()
        remaining = None
        if self.time_limit_ms is not None:
            remaining = max(0, self.time_limit_ms - elapsed)
        return ExamSnapshot(
            status=state.status,
            index=state.index,
            total_questions=len(state.questions),
            question=state.current,
            answered=len(state.answers),
            score=state.score,
            elapsed_ms=elapsed,
            remaining_ms=remaining,
            immediate_feedback=self.immediate_feedback,
            last_answer=state.answers[-1] if state.answers else None,
            attempt=state.attempt,
        )

    def poll(self) -> int:
        """Run due timers when the session owns a ``TimerQueue``."""
        run_due = getattr(self._timers, "run_due", None)
        return run_due() if callable(run_due) else 0

    # -- transitions ---------------------------------------------------

    def start(self) -> bool:
        if self._state.status is not SessionStatus.CONFIGURING:
            return self._reject("start")
        self._begin(self._state.questions)
        self._logger.info(
            "Exam started",
            extra={
                "question_count": len(self._state.questions),
                "time_limit_ms": self.time_limit_ms,
                "immediate_feedback": self.immediate_feedback,
            },
        )
        return True

    def submit_answer(self, selected: Selection) -> bool:
        state = self._state
        question = state.current
        if state.status is not SessionStatus.ACTIVE or question is None:
            return self._reject("submit_answer")
        try:
            letters = coerce_selection(selected)
        except ValueError as exc:
            return self._reject("submit_answer", reason=str(exc))
        if letters is None and self.immediate_feedback:
            return self._reject("submit_answer", reason="no option selected")

        answer = AnsweredQuestion(
            question_id=question.id,
            selected=letters,
            correct_answer=question.correct,
            is_correct=question.is_correct(letters),
        )
        hold = self.immediate_feedback and self.feedback_dwell_ms > 0
        self._state = state.answered(answer, hold=hold)
        if hold:
            self._arm_dwell()
            return True
        if self._state.exhausted:
            self._complete()
        return True

    def abort(self) -> bool:
        if not self._state.status.is_running:
            return self._reject("abort")
        self._cancel_timers()
        self._state = self._state.aborted(self._clock())
        self._release_lock()
        self._logger.info(
            "Exam aborted",
            extra={"answered": len(self._state.answers)},
        )
        return True

    def retake(self) -> bool:
        if self._state.status is not SessionStatus.COMPLETED:
            return self._reject("retake")
        self._begin(tuple(shuffled(self._pool, self._rng)))
        self._logger.info(
            "Exam retake started",
            extra={"question_count": len(self._state.questions)},
        )
        return True

    # -- internals -----------------------------------------------------

    def _begin(self, questions: tuple[Question, ...]) -> None:
        if self._lock is not None:
            self._lock.acquire(self)
        self._state = self._state.begun(questions, self._clock())
        if self.time_limit_ms is not None:
            event = _CountdownExpired(self._state.run_id)
            self._countdown = self._timers.call_later(
                self.time_limit_ms, lambda: self._dispatch(event)
            )

    def _arm_dwell(self) -> None:
        event = _FeedbackElapsed(self._state.run_id, self._state.index)
        self._dwell = self._timers.call_later(
            self.feedback_dwell_ms, lambda: self._dispatch(event)
        )

    def _dispatch(self, event: object) -> None:
        state = self._state
        if isinstance(event, _CountdownExpired):
            if event.run_id == state.run_id and state.status.is_running:
                self._logger.info(
                    "Exam time limit reached",
                    extra={"answered": len(state.answers)},
                )
                self._complete()
        elif isinstance(event, _FeedbackElapsed):
            if (
                event.run_id == state.run_id
                and event.index == state.index
                and state.status is SessionStatus.FEEDBACK
            ):
                self._dwell = None
                self._state = state.advanced()
                if self._state.exhausted:
                    self._complete()

    def _complete(self) -> None:
        self._cancel_timers()
        state = self._state
        now_ms = self._clock()
        attempt = Attempt.from_answers(
            state.answers,
            date=self._now().isoformat(),
            duration_ms=now_ms - state.started_at_ms,
        )
        self._state = state.finished(attempt, now_ms)
        self._release_lock()
        self._logger.info(
            "Exam completed",
            extra={
                "score": attempt.score,
                "total": attempt.total,
                "percentage": attempt.percentage,
                "duration_ms": attempt.duration_ms,
            },
        )
        if self._on_complete is not None:
            self._on_complete(attempt)

    def _elapsed_ms(self) -> int:
        state = self._state
        if state.status is SessionStatus.CONFIGURING:
            return 0
        end = state.ended_at_ms if state.ended_at_ms is not None else self._clock()
        return max(0, end - state.started_at_ms)

    def _cancel_timers(self) -> None:
        for handle in (self._countdown, self._dwell):
            if handle is not None:
                handle.cancel()
        self._countdown = None
        self._dwell = None

    def _release_lock(self) -> None:
        if self._lock is not None:
            self._lock.release(self)

    def _reject(self, action: str, *, reason: str = "") -> bool:
        self._logger.debug(
            "Ignoring exam %s",
            action,
            extra={"status": self._state.status.value, "reason": reason},
        )
        return False
