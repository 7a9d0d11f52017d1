"""Rich console front end for exam and arcade sessions.

The runners here are presentation collaborators: they only call a session's
public transitions and render its snapshots. Input is read with a blocking
``input_provider``, so expiry is noticed when the session's timers are polled
right after each line of input rather than while the prompt is open.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Callable, Literal, Optional, Union

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .engine.analytics import result_message
from .engine.arcade import ArcadeSession
from .engine.exam import AssessmentSession
from .engine.models import (
    LETTERS,
    Attempt,
    GameAttempt,
    Question,
    SessionStatus,
)

InputProvider = Callable[[], str]
Waiter = Callable[[int], None]
ExitAction = Literal["completed", "quit"]


@dataclass(frozen=True)
class AnswerCommand:
    """Normalized console input: a quit request or a set of letters."""

    type: Literal["answer", "quit", "skip"]
    letters: tuple[str, ...] = ()


@dataclass(frozen=True)
class RunResult:
    exit_action: ExitAction
    attempt: Optional[Union[Attempt, GameAttempt]]


def parse_answer_input(raw: str | None) -> AnswerCommand | None:
    """Parse ``"b"``, ``"A,C"``, ``"a c"``, ``"skip"`` or ``"quit"``.

    Returns ``None`` for anything that is not a command or a run of option
    letters.
    """

    if raw is None:
        return None
    text = raw.strip()
    if not text:
        return None
    lowered = text.lower()
    if lowered in {"quit", "q", "exit"}:
        return AnswerCommand("quit")
    if lowered in {"skip", "s", "-"}:
        return AnswerCommand("skip")
    letters = [ch.upper() for ch in text if ch not in " ,;/"]
    if not letters or any(letter not in LETTERS for letter in letters):
        return None
    return AnswerCommand("answer", tuple(sorted(set(letters))))


def _sleep_ms(ms: int) -> None:
    time.sleep(max(0, ms) / 1000)


def run_exam(
    session: AssessmentSession,
    console: Console,
    input_provider: InputProvider,
    *,
    wait: Waiter = _sleep_ms,
) -> RunResult:
    """Run an exam session interactively and print its summary."""

    if session.status is SessionStatus.CONFIGURING:
        session.start()
    questions = {q.id: q for q in session.state.questions}
    shown_feedback = -1

    while session.status.is_running:
        session.poll()
        snap = session.snapshot()
        if snap.status is SessionStatus.FEEDBACK:
            if snap.index != shown_feedback and snap.last_answer is not None:
                _render_feedback(
                    console,
                    questions.get(snap.last_answer.question_id),
                    snap.last_answer.selected,
                    snap.last_answer.is_correct,
                )
                shown_feedback = snap.index
            wait(session.feedback_dwell_ms)
            continue
        if snap.status is not SessionStatus.ACTIVE or snap.question is None:
            continue

        _render_question(
            console,
            snap.question,
            index=snap.index,
            total=snap.total_questions,
            footer=_exam_footer(snap.answered, snap.remaining_ms),
        )
        try:
            raw = input_provider()
        except (EOFError, KeyboardInterrupt, StopIteration):
            console.print("\n[bold yellow]Session interrupted.[/]")
            session.abort()
            break

        session.poll()
        if session.status is not SessionStatus.ACTIVE or (
            session.snapshot().index != snap.index
        ):
            console.print("[bold red]Time's up![/]")
            continue

        command = parse_answer_input(raw)
        if command is None:
            console.print("[red]Enter option letters (e.g. B or A,C) or quit.[/]")
            continue
        if command.type == "quit":
            console.print("\n[bold yellow]Exam aborted; no attempt recorded.[/]")
            session.abort()
            break
        selection = command.letters if command.type == "answer" else None
        if not session.submit_answer(selection):
            console.print("[red]Please select an answer.[/]")

    attempt = session.attempt
    if session.status is SessionStatus.COMPLETED and attempt is not None:
        render_exam_summary(console, attempt, questions)
        return RunResult("completed", attempt)
    return RunResult("quit", None)


def run_game(
    session: ArcadeSession,
    console: Console,
    input_provider: InputProvider,
    *,
    wait: Waiter = _sleep_ms,
) -> RunResult:
    """Run an arcade session interactively and print its summary."""

    if session.status is SessionStatus.CONFIGURING:
        session.start()
    questions = {q.id: q for q in session.state.questions}
    shown_feedback = -1

    while session.status.is_running:
        session.poll()
        snap = session.snapshot()
        if snap.status is SessionStatus.FEEDBACK:
            answer = snap.last_answer
            if snap.index != shown_feedback and answer is not None:
                if answer.time_expired:
                    console.print("[bold red]Time's up![/]")
                _render_feedback(
                    console,
                    questions.get(answer.question_id),
                    answer.selected,
                    answer.is_correct,
                    points=answer.points,
                    streak=snap.streak,
                )
                shown_feedback = snap.index
            wait(session.feedback_dwell_ms)
            continue
        if snap.status is not SessionStatus.ACTIVE or snap.question is None:
            continue

        _render_question(
            console,
            snap.question,
            index=snap.index,
            total=snap.total_questions,
            footer=_game_footer(
                snap.score, snap.streak, snap.question_remaining_ms
            ),
        )
        try:
            raw = input_provider()
        except (EOFError, KeyboardInterrupt, StopIteration):
            console.print("\n[bold yellow]Game interrupted.[/]")
            session.abort()
            break

        session.poll()
        if session.status is not SessionStatus.ACTIVE or (
            session.snapshot().index != snap.index
        ):
            continue

        command = parse_answer_input(raw)
        if command is None or command.type == "skip":
            console.print("[red]Pick at least one option letter (or quit).[/]")
            continue
        if command.type == "quit":
            console.print("\n[bold yellow]Game aborted.[/]")
            session.abort()
            break
        session.submit_answer(command.letters)

    attempt = session.attempt
    if session.status is SessionStatus.COMPLETED and attempt is not None:
        render_game_summary(console, attempt)
        return RunResult("completed", attempt)
    return RunResult("quit", None)


def _exam_footer(answered: int, remaining_ms: Optional[int]) -> str:
    parts = [f"Answered {answered}"]
    if remaining_ms is not None:
        parts.append(f"Time left {_format_clock(remaining_ms)}")
    parts.append("Commands: letters (e.g. B or A,C), skip, quit")
    return " | ".join(parts)


def _game_footer(score: int, streak: int, remaining_ms: Optional[int]) -> str:
    parts = [f"Score {score}", f"Streak {streak}"]
    if remaining_ms is not None:
        parts.append(f"{remaining_ms // 1000}s left")
    parts.append("Commands: letters, quit")
    return " | ".join(parts)


def _format_clock(ms: int) -> str:
    seconds = max(0, ms) // 1000
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


def _render_question(
    console: Console,
    question: Question,
    *,
    index: int,
    total: int,
    footer: str,
) -> None:
    header = Text.assemble(
        (f"Question {index + 1}", "bold cyan"),
        (f" / {total}", "dim"),
    )
    console.print()
    console.rule(header)
    console.print(Text(question.text, style="bold"))
    if question.multi_select:
        console.print(Text("Select all that apply.", style="italic yellow"))

    table = Table(show_header=False, box=box.SIMPLE, expand=True)
    table.add_column("Key", justify="center", style="cyan")
    table.add_column("Choice")
    for letter, option in zip(LETTERS, question.options):
        table.add_row(letter, Text(option))
    console.print(table)
    console.print(Text(footer, style="dim"))


def _render_feedback(
    console: Console,
    question: Optional[Question],
    selected: Optional[Sequence[str]],
    is_correct: bool,
    *,
    points: Optional[int] = None,
    streak: Optional[int] = None,
) -> None:
    correct = ", ".join(question.correct) if question else "?"
    lines = [
        f"Your answer: {', '.join(selected) if selected else '—'}",
        f"Correct answer: {correct}",
    ]
    if points is not None:
        lines.append(f"Points: +{points}")
    if streak:
        lines.append(f"Streak: {streak}")
    console.print(
        Panel(
            "\n".join(lines),
            title="Correct!" if is_correct else "Incorrect",
            border_style="green" if is_correct else "red",
        )
    )


def render_exam_summary(
    console: Console,
    attempt: Attempt,
    questions: dict[str, Question],
) -> None:
    console.print()
    console.rule(Text("Exam Summary", style="bold magenta"))

    overview = Table(show_header=False, box=box.MINIMAL_DOUBLE_HEAD, expand=False)
    overview.add_column("Metric", style="bold")
    overview.add_column("Value", justify="right")
    overview.add_row("Answered", str(attempt.total))
    overview.add_row("Correct", str(attempt.score))
    overview.add_row("Score", f"{attempt.percentage:.1f}%")
    overview.add_row("Time", _format_clock(attempt.duration_ms))
    console.print(overview)
    console.print(Text(result_message(attempt.percentage), style="bold"))

    if not attempt.answers:
        return
    responses = Table(title="Responses", box=box.SIMPLE, expand=True)
    responses.add_column("#", justify="right")
    responses.add_column("Question", overflow="fold")
    responses.add_column("Your answer")
    responses.add_column("Correct answer")
    responses.add_column("Result", justify="center")
    for idx, answer in enumerate(attempt.answers, start=1):
        question = questions.get(answer.question_id)
        responses.add_row(
            str(idx),
            question.text if question else f"Question {idx}",
            ", ".join(answer.selected) if answer.selected else "—",
            ", ".join(answer.correct_answer),
            "✅" if answer.is_correct else "❌",
        )
    console.print(responses)


def render_game_summary(console: Console, attempt: GameAttempt) -> None:
    console.print()
    console.rule(Text("Game Over", style="bold magenta"))

    overview = Table(show_header=False, box=box.MINIMAL_DOUBLE_HEAD, expand=False)
    overview.add_column("Metric", style="bold")
    overview.add_column("Value", justify="right")
    overview.add_row("Score", str(attempt.score))
    overview.add_row("Correct", str(attempt.correct))
    overview.add_row("Wrong", str(attempt.wrong))
    overview.add_row("Accuracy", f"{attempt.accuracy:.1f}%")
    overview.add_row("Best streak", str(attempt.max_streak))
    overview.add_row("Rank", attempt.rank)
    console.print(overview)
