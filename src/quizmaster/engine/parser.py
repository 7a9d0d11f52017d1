"""Turn pasted or generated text into validated ``Question`` records.

Expected shape (one block per question, blocks separated by blank lines)::

    Q1: Which gas do plants absorb?
    A. Oxygen
    *B. Carbon dioxide
    C. Nitrogen
    D. Helium

Parsing is lenient per line and strict per block: lines that are not option
lines are ignored, but a block only becomes a question when exactly four
options were recognised and at least one of them carries the ``*`` marker.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Iterator, List, Optional, Sequence

from .models import OPTION_COUNT, Question

__all__ = [
    "ParseReport",
    "parse_questions",
    "parse_report",
    "renumber_questions",
]

_HEADER_RE = re.compile(r"^(?:Q)?(\d+)[:.]\s*(.+)$", re.IGNORECASE)
# Leading markers, letter, then a separator or at least one space.
_OPTION_RE = re.compile(
    r"^(\**)\s*([A-D])(?:\s*[.):]\s*|\s+)(.+)$", re.IGNORECASE
)


@dataclass(frozen=True)
class ParseReport:
    """Parsed questions plus block counts for "N questions found" messages."""

    questions: tuple[Question, ...]
    blocks: int
    dropped: int

    @property
    def found(self) -> int:
        return len(self.questions)


def parse_questions(text: str) -> List[Question]:
    """Parse ``text`` and return the accepted questions in input order."""
    return list(parse_report(text).questions)


def parse_report(text: str) -> ParseReport:
    questions: list[Question] = []
    blocks = 0
    for block in _iter_blocks(text or ""):
        blocks += 1
        question = _parse_block(block)
        if question is not None:
            questions.append(question)
    return ParseReport(
        questions=tuple(questions),
        blocks=blocks,
        dropped=blocks - len(questions),
    )


def renumber_questions(
    questions: Sequence[Question], start: int = 1
) -> List[Question]:
    """Replace provisional ids with ``start``, ``start + 1``, ... in order."""
    return [
        replace(question, id=str(number))
        for number, question in enumerate(questions, start=start)
    ]


def _iter_blocks(text: str) -> Iterator[list[str]]:
    current: list[str] = []
    for raw in text.strip().splitlines():
        line = raw.strip()
        if line:
            current.append(line)
            continue
        if current:
            yield current
            current = []
    if current:
        yield current


def _parse_block(lines: list[str]) -> Optional[Question]:
    header = _HEADER_RE.match(lines[0])
    if not header:
        return None
    qid, body = header.group(1), header.group(2)

    options: list[str] = []
    correct: set[str] = set()
    for line in lines[1:]:
        match = _OPTION_RE.match(line)
        if not match:
            continue
        markers, letter, option_text = match.groups()
        options.append(option_text.strip())
        if markers:
            correct.add(letter.upper())

    if len(options) != OPTION_COUNT or not correct:
        return None
    return Question.create(id=qid, text=body, options=options, correct=correct)
