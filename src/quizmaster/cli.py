"""CLI entry point for quizmaster."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional, Sequence

from rich.console import Console

from .config import (
    CONFIG_FILENAME,
    ConfigOverrides,
    EngineConfig,
    load_config,
    write_default_config,
)
from .console import run_exam, run_game
from .core.logging import configure_logger
from .engine.arcade import ArcadeSession
from .engine.bank import add_questions, new_bank, select_questions
from .engine.exam import AssessmentSession
from .engine.lock import ExamLock
from .engine.merge import DuplicatePolicy, classify_merge
from .engine.models import Bank
from .engine.parser import parse_report, renumber_questions
from .errors import ConfigError, GenerationError
from .generator import DEFAULT_DIFFICULTY, generate_question_text


def _build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        type=Path,
        help=(
            f"Path to a TOML config file (defaults to $QUIZMASTER_CONFIG or "
            f"./{CONFIG_FILENAME})."
        ),
    )
    common.add_argument(
        "--log-level",
        help="Set the logging level for the run (defaults to INFO).",
    )
    common.add_argument(
        "--verbose",
        action="store_true",
        default=None,
        help="Mirror log records to stderr.",
    )

    parser = argparse.ArgumentParser(
        prog="quizmaster",
        description="Parse question banks and run timed exams or arcade games.",
        epilog=(
            "Run `quizmaster config init` to scaffold the default "
            f"{CONFIG_FILENAME} template."
        ),
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    parse_cmd = subparsers.add_parser(
        "parse",
        parents=[common],
        help="Report the questions recognised in a text file.",
    )
    parse_cmd.add_argument("file", help="Question text file ('-' for stdin).")
    parse_cmd.add_argument(
        "--json",
        action="store_true",
        help="Print one JSON object per recognised question.",
    )

    exam_cmd = subparsers.add_parser(
        "exam",
        parents=[common],
        help="Take an exam over the questions in a text file.",
    )
    exam_cmd.add_argument("file", help="Question text file ('-' for stdin).")
    exam_cmd.add_argument(
        "--num",
        type=int,
        help="Number of questions to ask (defaults to all).",
    )
    exam_cmd.add_argument(
        "--no-shuffle",
        action="store_true",
        help="Keep the file order instead of shuffling.",
    )
    exam_cmd.add_argument(
        "--time-limit",
        type=float,
        metavar="MIN",
        help="Exam time limit in minutes (0 disables the countdown).",
    )
    exam_cmd.add_argument(
        "--feedback",
        action="store_true",
        help="Show right/wrong after every answer.",
    )

    game_cmd = subparsers.add_parser(
        "game",
        parents=[common],
        help="Play an arcade round with per-question countdowns.",
    )
    game_cmd.add_argument("file", help="Question text file ('-' for stdin).")
    game_cmd.add_argument(
        "--num",
        type=int,
        help="Number of questions to play (defaults to all).",
    )
    game_cmd.add_argument(
        "--seconds",
        type=float,
        help="Seconds allowed per question.",
    )
    game_cmd.add_argument(
        "--no-timer",
        action="store_true",
        help="Disable question expiry (the speed bonus still applies).",
    )

    gen_cmd = subparsers.add_parser(
        "generate",
        parents=[common],
        help="Ask an AI model for questions on a topic.",
    )
    gen_cmd.add_argument("topic", help="Topic to generate questions about.")
    gen_cmd.add_argument(
        "--count",
        type=int,
        default=10,
        help="Number of questions to request (default: 10).",
    )
    gen_cmd.add_argument(
        "--difficulty",
        default=DEFAULT_DIFFICULTY,
        help=f"Difficulty level (default: {DEFAULT_DIFFICULTY}).",
    )
    gen_cmd.add_argument(
        "--output",
        type=Path,
        help="Write the generated text here instead of stdout.",
    )

    merge_cmd = subparsers.add_parser(
        "merge",
        parents=[common],
        help="Add the questions in a text file to a JSON question bank.",
    )
    merge_cmd.add_argument(
        "bank", type=Path, help="Bank JSON file (created if missing)."
    )
    merge_cmd.add_argument("file", help="Question text file ('-' for stdin).")
    merge_cmd.add_argument(
        "--duplicates",
        choices=[policy.value for policy in DuplicatePolicy],
        help="Resolve duplicates by overwriting or discarding (defaults to config).",
    )
    merge_cmd.add_argument(
        "--title",
        help="Title for a new bank (defaults to the file name).",
    )

    config_cmd = subparsers.add_parser(
        "config", help="Manage the quizmaster configuration file."
    )
    config_sub = config_cmd.add_subparsers(dest="config_command", required=True)
    init_cmd = config_sub.add_parser(
        "init", help=f"Write the default {CONFIG_FILENAME} template."
    )
    init_cmd.add_argument(
        "--path",
        type=Path,
        help=f"Destination for the config TOML (defaults to ./{CONFIG_FILENAME}).",
    )
    init_cmd.add_argument(
        "--force",
        action="store_true",
        help="Overwrite the destination if a config already exists.",
    )
    return parser


def main(
    argv: Sequence[str] | None = None, *, console: Optional[Console] = None
) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    console = console or Console()

    if args.command == "config":
        return _cmd_config_init(args, console)

    try:
        config = load_config(args.config, overrides=_overrides_from_args(args))
    except ConfigError as exc:
        parser.error(str(exc))

    logger, log_path = configure_logger(
        "quizmaster",
        log_dir=config.logging.dir,
        level=config.logging.level,
        verbose=config.logging.verbose,
    )
    logger.debug(
        "quizmaster CLI invoked",
        extra={"command": args.command, "config_path": str(config.config_path)},
    )

    handlers = {
        "parse": _cmd_parse,
        "exam": _cmd_exam,
        "game": _cmd_game,
        "generate": _cmd_generate,
        "merge": _cmd_merge,
    }
    code = handlers[args.command](args, config, console, logger)
    if args.command in {"exam", "game"}:
        console.print(f"[dim]Log file: {log_path}[/]")
    return code


def _overrides_from_args(args: argparse.Namespace) -> ConfigOverrides:
    return ConfigOverrides(
        time_limit_minutes=getattr(args, "time_limit", None),
        immediate_feedback=True if getattr(args, "feedback", False) else None,
        shuffle=False if getattr(args, "no_shuffle", False) else None,
        time_per_question_seconds=getattr(args, "seconds", None),
        timer_enabled=False if getattr(args, "no_timer", False) else None,
        duplicates=(
            DuplicatePolicy.from_value(args.duplicates)
            if getattr(args, "duplicates", None)
            else None
        ),
        log_level=args.log_level,
        verbose=args.verbose,
    )


def _read_source(name: str) -> str:
    if name == "-":
        return sys.stdin.read()
    return Path(name).expanduser().read_text(encoding="utf-8")


def _load_report(args: argparse.Namespace, console: Console):
    try:
        text = _read_source(args.file)
    except OSError as exc:
        console.print(f"[red]Cannot read {args.file}: {exc}[/]")
        return None
    return parse_report(text)


def _cmd_parse(
    args: argparse.Namespace,
    config: EngineConfig,
    console: Console,
    logger: logging.Logger,
) -> int:
    report = _load_report(args, console)
    if report is None:
        return 1
    logger.info(
        "Parsed question text",
        extra={"found": report.found, "dropped": report.dropped},
    )
    if args.json:
        for question in report.questions:
            sys.stdout.write(json.dumps(question.to_dict()) + "\n")
        return 0 if report.found else 1
    console.print(f"{report.found} question(s) found")
    if report.dropped:
        console.print(
            f"[yellow]{report.dropped} block(s) skipped: each question needs "
            "four options A-D and at least one *-marked answer.[/]"
        )
    return 0 if report.found else 1


def _session_questions(
    args: argparse.Namespace,
    console: Console,
    *,
    shuffle: bool,
):
    report = _load_report(args, console)
    if report is None:
        return None, None
    if not report.found:
        console.print("[red]No valid questions found in the input.[/]")
        return None, None
    if args.num is not None and args.num < 0:
        console.print("[red]--num must be >= 0.[/]")
        return None, None
    pool = renumber_questions(report.questions)
    return select_questions(pool, args.num, shuffle=shuffle), pool


def _cmd_exam(
    args: argparse.Namespace,
    config: EngineConfig,
    console: Console,
    logger: logging.Logger,
) -> int:
    questions, pool = _session_questions(
        args, console, shuffle=config.exam.shuffle
    )
    if not questions:
        return 1
    session = AssessmentSession(
        questions,
        time_limit_ms=config.exam.time_limit_ms,
        immediate_feedback=config.exam.immediate_feedback,
        feedback_dwell_ms=config.exam.feedback_dwell_ms,
        pool=pool,
        lock=ExamLock(),
        logger=logger,
    )
    result = run_exam(session, console, lambda: console.input("> "))
    return 0 if result.exit_action == "completed" else 1


def _cmd_game(
    args: argparse.Namespace,
    config: EngineConfig,
    console: Console,
    logger: logging.Logger,
) -> int:
    questions, pool = _session_questions(args, console, shuffle=True)
    if not questions:
        return 1
    session = ArcadeSession(
        questions,
        time_per_question_ms=config.arcade.time_per_question_ms,
        timer_enabled=config.arcade.timer_enabled,
        feedback_dwell_ms=config.arcade.feedback_dwell_ms,
        pool=pool,
        logger=logger,
    )
    result = run_game(session, console, lambda: console.input("> "))
    return 0 if result.exit_action == "completed" else 1


def _cmd_generate(
    args: argparse.Namespace,
    config: EngineConfig,
    console: Console,
    logger: logging.Logger,
) -> int:
    if args.count <= 0:
        console.print("[red]--count must be positive.[/]")
        return 2
    try:
        text = generate_question_text(
            args.topic,
            args.count,
            args.difficulty,
            model=config.ai.model,
            temperature=config.ai.temperature,
            max_tokens=config.ai.max_tokens,
            logger=logger,
        )
    except GenerationError as exc:
        console.print(f"[red]Error: {exc}[/]")
        return 1

    report = parse_report(text)
    if args.output is not None:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(text + "\n", encoding="utf-8")
        console.print(f"Wrote generated questions -> {args.output}")
    else:
        sys.stdout.write(text + "\n")
    console.print(
        f"{report.found} of {args.count} requested question(s) parsed"
    )
    return 0 if report.found else 1


def _read_bank(path: Path, title: Optional[str]) -> Bank:
    path = path.expanduser()
    if not path.exists():
        return new_bank(title or path.stem)
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"{path} does not hold a question bank object.")
    return Bank.from_dict(data)


def _cmd_merge(
    args: argparse.Namespace,
    config: EngineConfig,
    console: Console,
    logger: logging.Logger,
) -> int:
    report = _load_report(args, console)
    if report is None:
        return 1
    if not report.found:
        console.print("[red]No valid questions found in the input.[/]")
        return 1
    try:
        bank = _read_bank(args.bank, args.title)
    except (OSError, ValueError) as exc:
        console.print(f"[red]Cannot load bank {args.bank}: {exc}[/]")
        return 1

    policy = config.duplicates
    result = classify_merge(bank.questions, report.questions)
    merged = add_questions(bank, report.questions, policy)
    merged = replace(
        merged, questions=tuple(renumber_questions(merged.questions))
    )

    target = args.bank.expanduser()
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(
        json.dumps(merged.to_dict(), indent=2) + "\n", encoding="utf-8"
    )
    logger.info(
        "Merged questions into bank",
        extra={
            "bank": str(target),
            "added": len(result.to_keep),
            "duplicates": len(result.duplicates),
            "policy": policy.value,
            "total": len(merged.questions),
        },
    )
    verb = "overwritten" if policy is DuplicatePolicy.OVERWRITE else "discarded"
    console.print(
        f"{len(result.to_keep)} new question(s) added, "
        f"{len(result.duplicates)} duplicate(s) {verb}; "
        f"'{merged.title}' now holds {len(merged.questions)} question(s)."
    )
    return 0


def _cmd_config_init(args: argparse.Namespace, console: Console) -> int:
    target = args.path or Path.cwd() / CONFIG_FILENAME
    try:
        written = write_default_config(target.expanduser(), overwrite=args.force)
    except ConfigError as exc:
        console.print(f"[red]{exc}[/]")
        return 1
    console.print(f"Wrote quizmaster config to {written}")
    return 0


if __name__ == "__main__":  # pragma: no cover - module CLI guard
    raise SystemExit(main())
