"""Joining stored question results back to the quiz's questions.

Results identify questions by a positional result identifier `q-<index>`
where the index counts question components only, in authoring order.
Quizzes saved with the component key scheme use the component id instead,
so matching tries the question's own id before the positional key.
"""
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from readdash.models.question import Question, result_id_for
from readdash.models.result import QuestionResult

logger = logging.getLogger(__name__)

RESULT_ID_PATTERN = re.compile(r"^q-(\d+)$")


def parse_result_id(result_id: str) -> Optional[int]:
    """Question index encoded in a positional result identifier, or None."""
    match = RESULT_ID_PATTERN.match(result_id or "")
    if not match:
        return None
    return int(match.group(1))


@dataclass
class ResultIndex:
    """Lookup tables built from one result's question results."""

    by_id: Dict[str, QuestionResult] = field(default_factory=dict)
    index_to_result_id: Dict[int, str] = field(default_factory=dict)
    result_id_to_index: Dict[str, int] = field(default_factory=dict)


def build_result_index(question_results: Sequence[QuestionResult]) -> ResultIndex:
    index = ResultIndex()
    for question_result in question_results:
        index.by_id[question_result.question_id] = question_result
        position = parse_result_id(question_result.question_id)
        if position is not None:
            index.index_to_result_id[position] = question_result.question_id
            index.result_id_to_index[question_result.question_id] = position
    return index


def resolve_join_key(question: Question, position: int, index: ResultIndex) -> Optional[str]:
    """Result identifier that holds the answer to `question`, if any."""
    if question.result_id in index.by_id:
        return question.result_id
    key = index.index_to_result_id.get(position, result_id_for(position))
    if key in index.by_id:
        return key
    return None


def match_results(
    questions: Sequence[Question], question_results: Sequence[QuestionResult]
) -> List[Optional[QuestionResult]]:
    """Question result for each question, in question order; None when missing."""
    index = build_result_index(question_results)
    matched: List[Optional[QuestionResult]] = []
    for position, question in enumerate(questions):
        key = resolve_join_key(question, position, index)
        if key is None:
            logger.warning("No result data for question %s at position %d", question.result_id, position)
            matched.append(None)
        else:
            matched.append(index.by_id[key])
    return matched


def orphaned_result_ids(
    questions: Sequence[Question], question_results: Sequence[QuestionResult]
) -> List[str]:
    """Result identifiers that no longer correspond to any question."""
    index = build_result_index(question_results)
    used = {
        resolve_join_key(question, position, index)
        for position, question in enumerate(questions)
    }
    return [qr.question_id for qr in question_results if qr.question_id not in used]
