from __future__ import annotations

import pytest

from fixtures import make_question

from quizmaster.engine.models import (
    AnsweredQuestion,
    Attempt,
    Bank,
    GameAnswer,
    GameAttempt,
    Question,
    coerce_selection,
    percent,
    rank_for_accuracy,
    round_half_up,
    validate_question,
)
from quizmaster.errors import QuestionValidationError


def test_round_half_up_matches_calculator_rounding() -> None:
    assert round_half_up(12.5) == 13
    assert round_half_up(2.5) == 3
    assert round_half_up(66.66666, 1) == 66.7
    assert round_half_up(0.05, 1) == 0.1


def test_percent_handles_zero_total() -> None:
    assert percent(3, 5) == 60.0
    assert percent(2, 3) == 66.7
    assert percent(0, 0) == 0.0


@pytest.mark.parametrize(
    ("accuracy", "rank"),
    [
        (100, "Master"),
        (90, "Master"),
        (89.9, "Expert"),
        (80, "Expert"),
        (70, "Proficient"),
        (60, "Competent"),
        (59.9, "Learner"),
        (0, "Learner"),
    ],
)
def test_rank_thresholds(accuracy, rank) -> None:
    assert rank_for_accuracy(accuracy) == rank


def test_coerce_selection_normalizes_letters() -> None:
    assert coerce_selection("b") == ("B",)
    assert coerce_selection(["D", "b", "d"]) == ("B", "D")
    assert coerce_selection(None) is None
    assert coerce_selection("") is None
    assert coerce_selection([]) is None
    with pytest.raises(ValueError):
        coerce_selection("E")
    with pytest.raises(ValueError):
        coerce_selection(3)


def test_multi_select_comparison_is_order_insensitive() -> None:
    question = make_question("1", correct=["D", "B"])

    assert question.correct == ("B", "D")
    assert question.multi_select
    assert question.is_correct(("B", "D"))
    assert question.is_correct(("D", "B"))
    assert not question.is_correct(("B",))
    assert not question.is_correct(None)


def test_option_for_maps_letters() -> None:
    question = make_question("1")

    assert question.option_for("c") == "Charlie"
    assert question.option_for("Z") is None


def test_validate_question_rejects_bad_shapes() -> None:
    with pytest.raises(QuestionValidationError):
        validate_question(make_question("1", options=("a", "b", "c")))
    with pytest.raises(QuestionValidationError):
        validate_question(make_question("1", correct="E"))
    with pytest.raises(QuestionValidationError):
        validate_question(make_question("1", correct=[]))
    with pytest.raises(QuestionValidationError):
        validate_question(
            Question("1", "Q?", ("a", "b", "c", "d"), ("A",), multi_select=True)
        )


def test_question_dict_shape_and_legacy_keys() -> None:
    single = make_question("1", text="Pick one")
    multi = make_question("2", correct=["C", "A"])

    assert single.to_dict()["correct"] == "A"
    assert single.to_dict()["multiSelect"] is False
    assert multi.to_dict()["correct"] == ["A", "C"]
    assert Question.from_dict(multi.to_dict()) == multi

    legacy = Question.from_dict(
        {"id": 7, "question": "Old?", "options": ["a", "b", "c", "d"], "correct": "b"}
    )
    assert legacy.text == "Old?"
    assert legacy.correct == ("B",)


def test_question_from_dict_rejects_inconsistent_flags() -> None:
    data = make_question("1").to_dict()
    data["multiSelect"] = True

    with pytest.raises(QuestionValidationError):
        Question.from_dict(data)
    with pytest.raises(QuestionValidationError):
        Question.from_dict({"id": "1", "options": "abcd", "correct": "A"})


def test_attempt_from_answers_scores_percentage() -> None:
    answers = [
        AnsweredQuestion(str(i), ("A",), ("A",) if i < 3 else ("B",), i < 3)
        for i in range(5)
    ]

    attempt = Attempt.from_answers(answers, date="2024-05-01", duration_ms=1234)

    assert attempt.score == 3
    assert attempt.total == 5
    assert attempt.percentage == 60.0
    assert Attempt.from_dict(attempt.to_dict()) == attempt


def test_bank_dict_keeps_camel_case_and_reads_legacy_duration() -> None:
    game = GameAttempt(
        date="d",
        score=11,
        correct=1,
        wrong=0,
        total=1,
        accuracy=100.0,
        max_streak=1,
        duration_ms=900,
        answers=(
            GameAnswer("1", ("A",), ("A",), True, 4000, points=11),
        ),
    )
    bank = Bank(title="T", questions=(make_question("1"),), game_attempts=(game,))

    data = bank.to_dict()

    assert set(data) == {"title", "questions", "attempts", "gameAttempts", "createdAt"}
    assert data["gameAttempts"][0]["maxStreak"] == 1
    assert data["gameAttempts"][0]["answers"][0]["timeTakenMs"] == 4000
    assert Bank.from_dict(data) == bank
    assert Attempt.from_dict({"duration": 500}).duration_ms == 500
