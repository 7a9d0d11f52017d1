"""Arcade (game) mode: per-question countdowns, streaks and speed bonuses."""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Callable, Optional, Sequence

from .bank import shuffled
from .exam import Selection, validate_session_questions
from .models import (
    GameAnswer,
    GameAttempt,
    Question,
    SessionStatus,
    coerce_selection,
    percent,
    round_half_up,
)
from .timers import Clock, Scheduler, TimerHandle, TimerQueue, monotonic_ms

__all__ = [
    "BONUS_STEP_SECONDS",
    "DEFAULT_ARCADE_DWELL_MS",
    "DEFAULT_TIME_PER_QUESTION_MS",
    "ArcadeSession",
    "ArcadeSnapshot",
    "ArcadeState",
    "base_points_for",
    "speed_bonus",
]

DEFAULT_TIME_PER_QUESTION_MS = 15000
DEFAULT_ARCADE_DWELL_MS = 1500
BONUS_STEP_SECONDS = 5


def base_points_for(question_count: int) -> int:
    if question_count <= 0:
        raise ValueError("question_count must be positive")
    return max(1, int(round_half_up(100 / question_count)))


def speed_bonus(time_per_question_ms: int, elapsed_ms: int) -> int:
    """One bonus point per full five seconds left on the question clock."""
    seconds_remaining = max(0.0, (time_per_question_ms - elapsed_ms) / 1000)
    return math.floor(seconds_remaining / BONUS_STEP_SECONDS)


@dataclass(frozen=True)
class ArcadeState:
    status: SessionStatus
    questions: tuple[Question, ...]
    base_points: int
    index: int = 0
    answers: tuple[GameAnswer, ...] = ()
    score: int = 0
    streak: int = 0
    max_streak: int = 0
    run_id: int = 0
    started_at_ms: int = 0
    question_started_at_ms: int = 0
    ended_at_ms: Optional[int] = None
    attempt: Optional[GameAttempt] = None

    @property
    def current(self) -> Optional[Question]:
        if not self.status.is_running or self.index >= len(self.questions):
            return None
        return self.questions[self.index]

    @property
    def correct(self) -> int:
        return sum(1 for answer in self.answers if answer.is_correct)

    def begun(self, questions: tuple[Question, ...], now_ms: int) -> "ArcadeState":
        return ArcadeState(
            status=SessionStatus.ACTIVE,
            questions=questions,
            base_points=base_points_for(len(questions)),
            run_id=self.run_id + 1,
            started_at_ms=now_ms,
            question_started_at_ms=now_ms,
        )

    def scored(self, answer: GameAnswer) -> "ArcadeState":
        streak = self.streak + 1 if answer.is_correct else 0
        return replace(
            self,
            status=SessionStatus.FEEDBACK,
            answers=self.answers + (answer,),
            score=self.score + answer.points,
            streak=streak,
            max_streak=max(self.max_streak, streak),
        )

    def advanced(self, now_ms: int) -> "ArcadeState":
        return replace(
            self,
            status=SessionStatus.ACTIVE,
            index=self.index + 1,
            question_started_at_ms=now_ms,
        )

    def finished(self, attempt: GameAttempt, now_ms: int) -> "ArcadeState":
        return replace(
            self,
            status=SessionStatus.COMPLETED,
            index=len(self.questions),
            ended_at_ms=now_ms,
            attempt=attempt,
        )

    def aborted(self, now_ms: int) -> "ArcadeState":
        return replace(self, status=SessionStatus.ABORTED, ended_at_ms=now_ms)


@dataclass(frozen=True)
class ArcadeSnapshot:
    status: SessionStatus
    index: int
    total_questions: int
    question: Optional[Question]
    score: int
    streak: int
    max_streak: int
    correct: int
    wrong: int
    question_remaining_ms: Optional[int]
    elapsed_ms: int
    last_answer: Optional[GameAnswer]
    attempt: Optional[GameAttempt]

    @property
    def progress(self) -> float:
        if not self.total_questions:
            return 0.0
        return min(self.index + 1, self.total_questions) / self.total_questions


@dataclass(frozen=True)
class _QuestionExpired:
    run_id: int
    index: int


@dataclass(frozen=True)
class _FeedbackElapsed:
    run_id: int
    index: int


class ArcadeSession:
    """Drive one arcade game.

    Every question gets ``time_per_question_ms`` on its own clock. When the
    clock runs out the session submits an empty, expired answer on the
    player's behalf. With ``timer_enabled=False`` nothing expires, but the
    speed bonus is still measured against ``time_per_question_ms``.
    """

    def __init__(
        self,
        questions: Sequence[Question],
        *,
        time_per_question_ms: int = DEFAULT_TIME_PER_QUESTION_MS,
        timer_enabled: bool = True,
        pool: Optional[Sequence[Question]] = None,
        feedback_dwell_ms: int = DEFAULT_ARCADE_DWELL_MS,
        scheduler: Optional[Scheduler] = None,
        clock: Optional[Clock] = None,
        now: Optional[Callable[[], datetime]] = None,
        rng: Optional[random.Random] = None,
        on_complete: Optional[Callable[[GameAttempt], None]] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        items = validate_session_questions(questions)
        self._pool = (
            validate_session_questions(pool) if pool is not None else items
        )
        if time_per_question_ms <= 0:
            raise ValueError("time_per_question_ms must be positive.")
        self.time_per_question_ms = int(time_per_question_ms)
        self.timer_enabled = timer_enabled
        self.feedback_dwell_ms = max(0, int(feedback_dwell_ms))
        self._timers = scheduler or TimerQueue(clock or monotonic_ms)
        self._clock: Clock = clock or getattr(self._timers, "clock", monotonic_ms)
        self._now = now or (lambda: datetime.now(timezone.utc))
        self._rng = rng or random.Random()
        self._on_complete = on_complete
        self._logger = logger or logging.getLogger(__name__)
        self._question_timer: Optional[TimerHandle] = None
        self._dwell: Optional[TimerHandle] = None
        self._state = ArcadeState(
            SessionStatus.CONFIGURING, items, base_points_for(len(items))
        )

    @property
    def state(self) -> ArcadeState:
        return self._state

    @property
    def status(self) -> SessionStatus:
        return self._state.status

    @property
    def attempt(self) -> Optional[GameAttempt]:
        return self._state.attempt

    def snapshot(self) -> ArcadeSnapshot:
        state = self._state
        remaining = None
        if self.timer_enabled and state.status is SessionStatus.ACTIVE:
            spent = self._clock() - state.question_started_at_ms
            remaining = max(0, self.time_per_question_ms - spent)
        if state.status is SessionStatus.CONFIGURING:
            elapsed = 0
        else:
            end = state.ended_at_ms if state.ended_at_ms is not None else self._clock()
            elapsed = max(0, end - state.started_at_ms)
        return ArcadeSnapshot(
            status=state.status,
            index=state.index,
            total_questions=len(state.questions),
            question=state.current,
            score=state.score,
            streak=state.streak,
            max_streak=state.max_streak,
            correct=state.correct,
            wrong=len(state.answers) - state.correct,
            question_remaining_ms=remaining,
            elapsed_ms=elapsed,
            last_answer=state.answers[-1] if state.answers else None,
            attempt=state.attempt,
        )

    def poll(self) -> int:
        run_due = getattr(self._timers, "run_due", None)
        return run_due() if callable(run_due) else 0

    def start(self) -> bool:
        if self._state.status is not SessionStatus.CONFIGURING:
            return self._reject("start")
        self._begin(self._state.questions)
        self._logger.info(
            "Game started",
            extra={
                "question_count": len(self._state.questions),
                "time_per_question_ms": self.time_per_question_ms,
                "timer_enabled": self.timer_enabled,
            },
        )
        return True

    def submit_answer(
        self, selected: Selection, *, time_expired: bool = False
    ) -> bool:
        state = self._state
        question = state.current
        if state.status is not SessionStatus.ACTIVE or question is None:
            return self._reject("submit_answer")
        try:
            letters = coerce_selection(selected)
        except ValueError as exc:
            return self._reject("submit_answer", reason=str(exc))
        if letters is None and not time_expired:
            return self._reject("submit_answer", reason="no option selected")

        now_ms = self._clock()
        if time_expired:
            taken = self.time_per_question_ms
        else:
            taken = max(0, now_ms - state.question_started_at_ms)
        is_correct = not time_expired and question.is_correct(letters)
        points = 0
        if is_correct:
            points = state.base_points + speed_bonus(
                self.time_per_question_ms, taken
            )
        answer = GameAnswer(
            question_id=question.id,
            selected=letters,
            correct_answer=question.correct,
            is_correct=is_correct,
            time_taken_ms=taken,
            time_expired=time_expired,
            points=points,
        )
        self._cancel(self._question_timer)
        self._question_timer = None
        self._state = state.scored(answer)
        self._logger.debug(
            "Game answer scored",
            extra={
                "question_id": question.id,
                "is_correct": is_correct,
                "points": points,
                "time_expired": time_expired,
            },
        )
        if self.feedback_dwell_ms > 0:
            event = _FeedbackElapsed(self._state.run_id, self._state.index)
            self._dwell = self._timers.call_later(
                self.feedback_dwell_ms, lambda: self._dispatch(event)
            )
        else:
            self._next_question()
        return True

    def abort(self) -> bool:
        if not self._state.status.is_running:
            return self._reject("abort")
        self._cancel_timers()
        self._state = self._state.aborted(self._clock())
        self._logger.info(
            "Game aborted",
            extra={"answered": len(self._state.answers), "score": self._state.score},
        )
        return True

    def retake(self) -> bool:
        if self._state.status is not SessionStatus.COMPLETED:
            return self._reject("retake")
        count = len(self._state.questions)
        questions = tuple(shuffled(self._pool, self._rng)[:count])
        self._begin(questions)
        self._logger.info(
            "Game restarted", extra={"question_count": len(questions)}
        )
        return True

    def _begin(self, questions: tuple[Question, ...]) -> None:
        self._state = self._state.begun(questions, self._clock())
        self._arm_question_timer()

    def _arm_question_timer(self) -> None:
        if not self.timer_enabled:
            return
        event = _QuestionExpired(self._state.run_id, self._state.index)
        self._question_timer = self._timers.call_later(
            self.time_per_question_ms, lambda: self._dispatch(event)
        )

    def _dispatch(self, event: object) -> None:
        state = self._state
        if isinstance(event, _QuestionExpired):
            if (
                event.run_id == state.run_id
                and event.index == state.index
                and state.status is SessionStatus.ACTIVE
            ):
                self._question_timer = None
                self.submit_answer(None, time_expired=True)
        elif isinstance(event, _FeedbackElapsed):
            if (
                event.run_id == state.run_id
                and event.index == state.index
                and state.status is SessionStatus.FEEDBACK
            ):
                self._dwell = None
                self._next_question()

    def _next_question(self) -> None:
        state = self._state
        if state.index + 1 >= len(state.questions):
            self._complete()
            return
        self._state = state.advanced(self._clock())
        self._arm_question_timer()

    def _complete(self) -> None:
        self._cancel_timers()
        state = self._state
        now_ms = self._clock()
        total = len(state.answers)
        correct = state.correct
        attempt = GameAttempt(
            date=self._now().isoformat(),
            score=state.score,
            correct=correct,
            wrong=total - correct,
            total=total,
            accuracy=percent(correct, total),
            max_streak=state.max_streak,
            duration_ms=now_ms - state.started_at_ms,
            answers=state.answers,
        )
        self._state = state.finished(attempt, now_ms)
        self._logger.info(
            "Game completed",
            extra={
                "score": attempt.score,
                "accuracy": attempt.accuracy,
                "max_streak": attempt.max_streak,
                "rank": attempt.rank,
            },
        )
        if self._on_complete is not None:
            self._on_complete(attempt)

    def _cancel_timers(self) -> None:
        self._cancel(self._question_timer)
        self._cancel(self._dwell)
        self._question_timer = None
        self._dwell = None

    @staticmethod
    def _cancel(handle: Optional[TimerHandle]) -> None:
        if handle is not None:
            handle.cancel()

    def _reject(self, action: str, *, reason: str = "") -> bool:
        self._logger.debug(
            "Ignoring game %s",
            action,
            extra={"status": self._state.status.value, "reason": reason},
        )
        return False
