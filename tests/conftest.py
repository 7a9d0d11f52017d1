from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Iterator

import pytest

TESTS_DIR = Path(__file__).resolve().parent
if str(TESTS_DIR) not in sys.path:
    sys.path.insert(0, str(TESTS_DIR))

# Make src/ importable when the package is not installed in editable mode.
ROOT = TESTS_DIR.parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from fixtures import FakeChatClient, make_question  # noqa: E402

from quizmaster.engine.timers import ManualClock, TimerQueue  # noqa: E402


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def timers(clock: ManualClock) -> TimerQueue:
    return TimerQueue(clock)


@pytest.fixture
def questions():
    """Five single-answer questions whose correct letter cycles A..D."""

    return [
        make_question(str(i), correct="ABCDA"[i - 1]) for i in range(1, 6)
    ]


@pytest.fixture
def chat_client() -> FakeChatClient:
    return FakeChatClient()


@pytest.fixture(autouse=True)
def _reset_quizmaster_logger() -> Iterator[None]:
    yield
    logger = logging.getLogger("quizmaster")
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
