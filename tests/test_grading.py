"""Tests for answer grading and score rounding."""

import pytest

from edutest.core.errors import InvalidInputError
from edutest.schemas.quiz import AnswerSubmit, QuestionData
from edutest.services.grading import grade, score_percent

QUESTIONS = [
    QuestionData(
        question_text=f"Question {i}?",
        options=[f"right {i}", f"wrong {i}", f"other {i}", f"none {i}"],
        correct_option=f"right {i}",
    )
    for i in range(10)
]


def _answers(correct: int) -> list[AnswerSubmit]:
    return [
        AnswerSubmit(
            question_text=q.question_text,
            selected_option=q.correct_option if i < correct else q.options[1],
        )
        for i, q in enumerate(QUESTIONS)
    ]


def test_all_correct():
    result = grade(QUESTIONS, _answers(10))
    assert (result.total_questions, result.correct_answers, result.score_percent) == (10, 10, 100)
    assert result.wrong_answers == []


def test_all_wrong():
    result = grade(QUESTIONS, _answers(0))
    assert result.score_percent == 0
    assert len(result.wrong_answers) == 10


def test_answers_matched_by_text_not_position():
    answers = list(reversed(_answers(6)))
    result = grade(QUESTIONS, answers)
    assert result.correct_answers == 6
    # results follow stored question order
    assert [a.question.question_text for a in result.answers] == [q.question_text for q in QUESTIONS]


def test_exact_match_only():
    answers = _answers(10)
    answers[0] = AnswerSubmit(question_text=QUESTIONS[0].question_text, selected_option="RIGHT 0")
    assert grade(QUESTIONS, answers).correct_answers == 9


def test_answer_count_mismatch():
    with pytest.raises(InvalidInputError) as exc:
        grade(QUESTIONS, _answers(10)[:9])
    assert exc.value.message == "Expected 10 answers, received 9"


def test_missing_answer_for_question():
    answers = _answers(10)
    answers[4] = AnswerSubmit(question_text="Something else?", selected_option="x")
    with pytest.raises(InvalidInputError) as exc:
        grade(QUESTIONS, answers)
    assert exc.value.message == 'Missing answer for question: "Question 4?"'


@pytest.mark.parametrize(
    "correct, total, expected",
    [(6, 10, 60), (1, 3, 33), (2, 3, 67), (1, 8, 13), (1, 200, 1), (0, 0, 0)],
)
def test_score_rounds_half_up(correct: int, total: int, expected: int):
    assert score_percent(correct, total) == expected
