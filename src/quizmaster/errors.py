"""Exception hierarchy shared by the quizmaster engine and its host CLI."""

from __future__ import annotations

__all__ = [
    "QuizmasterError",
    "QuestionValidationError",
    "ExamLockedError",
    "GenerationError",
    "ConfigError",
]


class QuizmasterError(RuntimeError):
    """Base class for errors raised by quizmaster."""


class QuestionValidationError(QuizmasterError, ValueError):
    """Raised when a question violates the four-option/answer-key invariants."""


class ExamLockedError(QuizmasterError):
    """Raised when an exam starts while another session holds the lock."""


class GenerationError(QuizmasterError):
    """Raised when the text-generation collaborator cannot produce output."""


class ConfigError(QuizmasterError):
    """Raised when configuration parsing or validation fails."""
