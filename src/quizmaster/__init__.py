"""quizmaster: turn pasted text into question banks and run exams or games."""

from .engine import (
    ArcadeSession,
    AssessmentSession,
    Attempt,
    Bank,
    DuplicatePolicy,
    ExamLock,
    GameAttempt,
    Question,
    SessionStatus,
    parse_questions,
    parse_report,
)
from .errors import (
    ConfigError,
    ExamLockedError,
    GenerationError,
    QuestionValidationError,
    QuizmasterError,
)

__all__ = [
    "ArcadeSession",
    "AssessmentSession",
    "Attempt",
    "Bank",
    "ConfigError",
    "DuplicatePolicy",
    "ExamLock",
    "ExamLockedError",
    "GameAttempt",
    "GenerationError",
    "Question",
    "QuestionValidationError",
    "QuizmasterError",
    "SessionStatus",
    "parse_questions",
    "parse_report",
]
