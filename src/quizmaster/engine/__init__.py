"""Quiz engine: parsing, bank merging, exam/arcade sessions and analytics."""

from .analytics import (
    AttemptStats,
    GameStats,
    OverallGameTotals,
    OverallTotals,
    attempt_stats,
    bank_game_stats,
    bank_stats,
    game_stats,
    overall_game_totals,
    overall_totals,
    result_message,
    score_distribution,
)
from .arcade import ArcadeSession, ArcadeSnapshot, ArcadeState
from .bank import (
    add_questions,
    clear_attempts,
    clear_game_attempts,
    new_bank,
    record_attempt,
    record_game_attempt,
    search_questions,
    select_questions,
    shuffled,
)
from .exam import AssessmentSession, ExamSnapshot, ExamState
from .lock import ExamLock
from .merge import DuplicatePolicy, MergeResult, apply_merge, classify_merge
from .models import (
    AnsweredQuestion,
    Attempt,
    Bank,
    GameAnswer,
    GameAttempt,
    Question,
    SessionStatus,
    rank_for_accuracy,
)
from .parser import ParseReport, parse_questions, parse_report, renumber_questions
from .timers import ManualClock, TimerQueue

__all__ = [
    "AnsweredQuestion",
    "ArcadeSession",
    "ArcadeSnapshot",
    "ArcadeState",
    "AssessmentSession",
    "Attempt",
    "AttemptStats",
    "Bank",
    "DuplicatePolicy",
    "ExamLock",
    "ExamSnapshot",
    "ExamState",
    "GameAnswer",
    "GameAttempt",
    "GameStats",
    "ManualClock",
    "MergeResult",
    "OverallGameTotals",
    "OverallTotals",
    "ParseReport",
    "Question",
    "SessionStatus",
    "TimerQueue",
    "add_questions",
    "apply_merge",
    "attempt_stats",
    "bank_game_stats",
    "bank_stats",
    "classify_merge",
    "clear_attempts",
    "clear_game_attempts",
    "game_stats",
    "new_bank",
    "overall_game_totals",
    "overall_totals",
    "parse_questions",
    "parse_report",
    "rank_for_accuracy",
    "record_attempt",
    "record_game_attempt",
    "renumber_questions",
    "result_message",
    "score_distribution",
    "search_questions",
    "select_questions",
    "shuffled",
]
