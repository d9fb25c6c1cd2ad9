"""Grading of submitted multiple-choice answers.

Answers are matched to stored questions by exact question text, not by
position, because the client may submit them in any order. An answer is
correct only when the selected option is the exact stored correct option:
no normalisation, no partial credit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from edutest.core.errors import InvalidInputError
from edutest.schemas.quiz import AnswerSubmit, QuestionData

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GradedAnswer:
    question: QuestionData
    selected_option: str
    is_correct: bool


@dataclass(frozen=True)
class GradedAttempt:
    answers: list[GradedAnswer]  # stored question order
    total_questions: int
    correct_answers: int
    score_percent: int

    @property
    def wrong_answers(self) -> list[GradedAnswer]:
        return [a for a in self.answers if not a.is_correct]


def score_percent(correct: int, total: int) -> int:
    """``round(correct / total * 100)`` with halves rounded up."""
    if total <= 0:
        return 0
    return (200 * correct + total) // (2 * total)


def grade_answer(question: QuestionData, selected_option: str) -> bool:
    return selected_option == question.correct_option


def grade(questions: list[QuestionData], answers: list[AnswerSubmit]) -> GradedAttempt:
    """Grade *answers* against *questions*.

    Raises ``InvalidInputError`` when the answer count differs from the question
    count or when a stored question has no answer with the same text.
    """
    if len(answers) != len(questions):
        raise InvalidInputError(
            f"Expected {len(questions)} answers, received {len(answers)}",
            {"expected": len(questions), "received": len(answers)},
        )

    by_text: dict[str, AnswerSubmit] = {}
    for a in answers:
        by_text.setdefault(a.question_text, a)

    graded: list[GradedAnswer] = []
    for q in questions:
        submitted = by_text.get(q.question_text)
        if submitted is None:
            raise InvalidInputError(
                f'Missing answer for question: "{q.question_text}"',
                {"question": q.question_text},
            )
        graded.append(
            GradedAnswer(
                question=q,
                selected_option=submitted.selected_option,
                is_correct=grade_answer(q, submitted.selected_option),
            )
        )

    correct = sum(1 for g in graded if g.is_correct)
    total = len(questions)
    logger.debug("Graded attempt: %d/%d", correct, total)
    return GradedAttempt(
        answers=graded,
        total_questions=total,
        correct_answers=correct,
        score_percent=score_percent(correct, total),
    )
