"""Review projection: a completed attempt joined back to the quiz's questions."""
import logging
from typing import List, Optional

from readdash.models.base import CamelModel
from readdash.models.question import (
    FillBlanksQuestion,
    MultipleChoiceQuestion,
    Question,
    SentenceCompletionQuestion,
    TrueFalseNotGivenQuestion,
    YesNoNotGivenQuestion,
)
from readdash.models.quiz import Quiz
from readdash.models.result import QuizResult
from readdash.services.reconciliation import match_results, orphaned_result_ids
from readdash.utils.text import humanize_tag

logger = logging.getLogger(__name__)

NO_ANSWER_DATA = "No answer data"


class ReviewEntry(CamelModel):
    question_id: str
    question_type: str
    question_text: str
    user_answer_display: str
    correct_answer_display: str
    is_correct: bool = False
    has_answer_data: bool = True
    explanation: Optional[str] = None


def display_answer(question: Question, raw: str) -> str:
    """Human-readable form of a stored raw answer."""
    if not raw:
        return ""
    if isinstance(question, MultipleChoiceQuestion):
        text = question.option_text(raw)
        return raw if text is None else text
    if isinstance(question, (TrueFalseNotGivenQuestion, YesNoNotGivenQuestion)):
        return humanize_tag(raw)
    return raw


def correct_answer_display(question: Question) -> str:
    if isinstance(question, MultipleChoiceQuestion):
        return display_answer(question, question.correct_answer)
    if isinstance(question, (TrueFalseNotGivenQuestion, YesNoNotGivenQuestion)):
        return humanize_tag(question.correct_answer)
    if isinstance(question, FillBlanksQuestion):
        return ", ".join(blank.answer for blank in question.blanks)
    if isinstance(question, SentenceCompletionQuestion):
        return " / ".join(answer.text for answer in question.answers if answer.text)
    return ""


def build_review(quiz: Quiz, result: QuizResult) -> List[ReviewEntry]:
    """One review entry per current question of `quiz`.

    Questions without matching result data are reported with
    `has_answer_data=False` instead of failing the review.
    """
    matched = match_results(quiz.questions, result.question_results)
    entries = []
    for question, question_result in zip(quiz.questions, matched):
        entry = ReviewEntry(
            question_id=question.result_id,
            question_type=question.type,
            question_text=question.text,
            user_answer_display=NO_ANSWER_DATA,
            correct_answer_display=correct_answer_display(question),
            explanation=question.reason or None,
        )
        if question_result is None:
            entry.has_answer_data = False
        else:
            entry.user_answer_display = display_answer(question, question_result.user_answer)
            entry.is_correct = question_result.is_correct
        entries.append(entry)

    orphans = orphaned_result_ids(quiz.questions, result.question_results)
    if orphans:
        logger.warning(
            "Result %s for quiz %s has answers for unknown questions: %s",
            result.id, quiz.id, ", ".join(orphans),
        )
    return entries
