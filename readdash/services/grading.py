"""Grading engine.

Functions:
- is_answer_correct: check one raw answer against a question's answer key.
- grade: grade a full submission and return a `GradeOutcome`.
- compute_score: integer percentage, rounded half up.
- best_attempt: highest-scoring result among several attempts.
"""
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from readdash.models.question import (
    FillBlanksQuestion,
    MultipleChoiceQuestion,
    Question,
    SentenceCompletionQuestion,
    TrueFalseNotGivenQuestion,
    YesNoNotGivenQuestion,
)
from readdash.models.result import QuestionResult, QuizResult
from readdash.utils.text import split_blank_answers

FILL_BLANKS_BY_TEXT = "text"
FILL_BLANKS_BY_BLANK_ID = "blank-id"
FILL_BLANKS_MODES = (FILL_BLANKS_BY_TEXT, FILL_BLANKS_BY_BLANK_ID)


@dataclass
class GradeOutcome:
    score: int
    correct_count: int
    total_questions: int
    question_results: List[QuestionResult] = field(default_factory=list)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def compute_score(correct_count: int, total_questions: int) -> int:
    if total_questions <= 0:
        raise ValueError("Cannot score a quiz without questions")
    return round_half_up(correct_count / total_questions * 100)


def _fill_blanks_correct(question: FillBlanksQuestion, answer: str, mode: str) -> bool:
    if not question.blanks:
        return False
    if mode == FILL_BLANKS_BY_BLANK_ID:
        return answer == question.blanks[0].id
    parts = split_blank_answers(answer)
    if len(parts) != len(question.blanks):
        return False
    return all(part == blank.answer for part, blank in zip(parts, question.blanks))


def is_answer_correct(question: Question, answer: Optional[str], fill_blanks_mode: str = FILL_BLANKS_BY_TEXT) -> bool:
    """Exact comparison of `answer` with the answer key of `question`.

    No case folding or trimming is applied, except that each typed
    fill-blanks entry is stripped before comparison.
    """
    if answer is None or answer == "":
        return False
    if isinstance(question, (MultipleChoiceQuestion, TrueFalseNotGivenQuestion, YesNoNotGivenQuestion)):
        return answer == question.correct_answer
    if isinstance(question, FillBlanksQuestion):
        return _fill_blanks_correct(question, answer, fill_blanks_mode)
    if isinstance(question, SentenceCompletionQuestion):
        return any(answer == accepted.text for accepted in question.answers)
    raise ValueError(f"Unsupported question type: {getattr(question, 'type', None)}")


def grade(
    questions: Sequence[Question],
    answers: Dict[str, str],
    fill_blanks_mode: str = FILL_BLANKS_BY_TEXT,
) -> GradeOutcome:
    """Grade a submission.

    Args:
        questions: The quiz's normalized questions
        answers: Raw answers keyed by result identifier
        fill_blanks_mode: "text" or "blank-id"

    Returns:
        GradeOutcome with one question result per question, in question order

    Raises:
        ValueError: No questions, or an unknown fill-blanks mode
    """
    if fill_blanks_mode not in FILL_BLANKS_MODES:
        raise ValueError(f"Unknown fill-blanks grading mode: {fill_blanks_mode}")

    question_results = []
    correct_count = 0
    for question in questions:
        answer = answers.get(question.result_id) or ""
        correct = is_answer_correct(question, answer, fill_blanks_mode)
        if correct:
            correct_count += 1
        question_results.append(
            QuestionResult(question_id=question.result_id, user_answer=answer, is_correct=correct)
        )

    total = len(questions)
    return GradeOutcome(
        score=compute_score(correct_count, total),
        correct_count=correct_count,
        total_questions=total,
        question_results=question_results,
    )


def best_attempt(results: Sequence[QuizResult]) -> Optional[QuizResult]:
    """First result with the highest score; None when there are no results."""
    best = None
    for result in results:
        if best is None or result.score > best.score:
            best = result
    return best
