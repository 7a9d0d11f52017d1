"""Shared testing fixtures for the quizmaster test suite."""

from .chat import FakeChatClient  # noqa: F401
from .questions import SAMPLE_TEXT, make_question  # noqa: F401

__all__ = [
    "FakeChatClient",
    "SAMPLE_TEXT",
    "make_question",
]
