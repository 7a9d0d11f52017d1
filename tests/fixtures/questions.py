from __future__ import annotations

from quizmaster.engine.models import Question

SAMPLE_TEXT = """\
Q1: Which planet is known as the Red Planet?
A. Venus
*B. Mars
C. Jupiter
D. Saturn

Q2: Which of these are prime numbers?
*A. 2
B. 4
*C. 5
D. 9

Q3: This block is missing an option
A. one
*B. two
C. three
"""


def make_question(
    qid: str = "1",
    *,
    text: str | None = None,
    options=("Alpha", "Bravo", "Charlie", "Delta"),
    correct="A",
) -> Question:
    return Question.create(
        id=qid,
        text=text or f"Question {qid}?",
        options=options,
        correct=correct,
    )
