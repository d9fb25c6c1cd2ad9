"""Score summary and per-mistake feedback for a graded attempt.

Pure functions: no I/O, no AI call. Each mistake points the learner back to
the book, chapter and pages the question was traced to at generation time.
"""

from dataclasses import dataclass

from edutest.schemas.quiz import Feedback, Mistake, WhereToRead
from edutest.services.content import WHOLE_BOOK_LABEL
from edutest.services.grading import GradedAnswer, GradedAttempt


@dataclass(frozen=True)
class FeedbackContext:
    book_title: str
    chapter_title: str | None = None  # None → whole-book test

    @property
    def chapter_label(self) -> str:
        return self.chapter_title or WHOLE_BOOK_LABEL


_EXCELLENT = (
    "Excellent work! You answered {correct} of {total} questions correctly ({percent}%). "
    'You show a strong understanding of "{book}".'
)
_GOOD = (
    "Good result! You answered {correct} of {total} questions correctly ({percent}%). "
    "Review the topics where you made mistakes."
)
_NEEDS_REVIEW = (
    "You answered {correct} of {total} questions correctly ({percent}%). "
    "The material needs a closer look; focus on the sections listed in the mistakes below."
)
_RETRY = (
    "You answered {correct} of {total} questions correctly ({percent}%). "
    'Re-read "{scope}" in full and take the test again.'
)


def summary_template(percent: int) -> str:
    if percent >= 90:
        return _EXCELLENT
    if percent >= 70:
        return _GOOD
    if percent >= 50:
        return _NEEDS_REVIEW
    return _RETRY


def build_mistake(answer: GradedAnswer, ctx: FeedbackContext) -> Mistake:
    q = answer.question
    explanation = (
        f'You chose "{answer.selected_option}", but the correct answer is '
        f'"{q.correct_option}".'
    )
    if q.explanation:
        explanation = f"{explanation} {q.explanation}"
    return Mistake(
        question=q.question_text,
        explanation=explanation,
        where_to_read=WhereToRead(
            book_title=ctx.book_title,
            chapter_title=ctx.chapter_label,
            pages=list(q.related_content.pages),
        ),
    )


def synthesize_feedback(graded: GradedAttempt, ctx: FeedbackContext) -> Feedback:
    mistakes = [build_mistake(a, ctx) for a in graded.wrong_answers]
    summary = summary_template(graded.score_percent).format(
        correct=graded.correct_answers,
        total=graded.total_questions,
        percent=graded.score_percent,
        book=ctx.book_title,
        scope=ctx.chapter_title or ctx.book_title,
    )
    if mistakes:
        summary += f" Mistakes: {len(mistakes)}. A detailed breakdown follows below."
    return Feedback(summary=summary, mistakes=mistakes)
