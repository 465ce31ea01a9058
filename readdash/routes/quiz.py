"""Quiz taking routes."""
from datetime import datetime
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import Field

from readdash.core.exceptions import ReadDashError, to_http_exception
from readdash.core.security import get_current_user
from readdash.db.store import DocumentStore, get_store
from readdash.models.base import CamelModel
from readdash.models.quiz import Quiz
from readdash.models.result import QuizResult
from readdash.models.user import UserProfile
from readdash.services.attempts import AttemptService
from readdash.services.progress import Achievement
from readdash.services.quizzes import QuizService, learner_view
from readdash.services.review import ReviewEntry


router = APIRouter(prefix="/api/quizzes", tags=["Quizzes"])


# Request/Response schemas
class QuizSummaryResponse(CamelModel):
    id: str
    title: str
    reading_level: str
    category: str
    question_count: int
    is_recommended: bool = False
    created_at: Optional[datetime] = None

    @classmethod
    def from_quiz(cls, quiz: Quiz) -> "QuizSummaryResponse":
        return cls(
            id=quiz.id,
            title=quiz.title,
            reading_level=quiz.reading_level,
            category=quiz.category,
            question_count=quiz.question_count,
            is_recommended=quiz.is_recommended,
            created_at=quiz.created_at,
        )


class SubmitQuizRequest(CamelModel):
    # Raw answers keyed by question id ("q-0", "q-1", ...)
    answers: Dict[str, str] = Field(default_factory=dict)
    time_spent: int = Field(default=0, ge=0)


class SubmitQuizResponse(CamelModel):
    result: QuizResult
    knowledge_points: int
    new_achievements: List[Achievement]


class QuizResultsResponse(CamelModel):
    best: QuizResult
    attempts: int


class ReviewResponse(CamelModel):
    quiz_id: str
    result_id: Optional[str]
    title: str
    score: int
    entries: List[ReviewEntry]


class ResetResponse(CamelModel):
    deleted: int


@router.get("", response_model=List[QuizSummaryResponse])
def list_quizzes(
    reading_level: Optional[str] = None,
    category: Optional[str] = None,
    current_user: UserProfile = Depends(get_current_user),
    store: DocumentStore = Depends(get_store)
):
    """List published quizzes, optionally filtered by reading level and category."""
    quizzes = QuizService(store).list_quizzes(reading_level=reading_level, category=category)
    return [QuizSummaryResponse.from_quiz(q) for q in quizzes]


@router.get("/recommended", response_model=List[QuizSummaryResponse])
def recommended_quizzes(
    limit: int = 6,
    current_user: UserProfile = Depends(get_current_user),
    store: DocumentStore = Depends(get_store)
):
    """List quizzes flagged as recommended."""
    quizzes = QuizService(store).recommended_quizzes(limit=limit)
    return [QuizSummaryResponse.from_quiz(q) for q in quizzes]


@router.get("/{quiz_id}")
def get_quiz(
    quiz_id: str,
    current_user: UserProfile = Depends(get_current_user),
    store: DocumentStore = Depends(get_store)
) -> Dict[str, Any]:
    """
    Get a quiz for taking (without answer key).

    Raises:
        HTTPException 404: Quiz not found
    """
    try:
        quiz = QuizService(store).get_quiz(quiz_id)
    except ReadDashError as e:
        raise to_http_exception(e)
    return learner_view(quiz)


@router.post("/{quiz_id}/submit", response_model=SubmitQuizResponse, status_code=status.HTTP_201_CREATED)
def submit_quiz(
    quiz_id: str,
    request: SubmitQuizRequest,
    current_user: UserProfile = Depends(get_current_user),
    store: DocumentStore = Depends(get_store)
):
    """
    Submit answers for a quiz.

    This endpoint:
    1. Grades every question against the stored answer key
    2. Appends a new result (earlier attempts are kept)
    3. Awards new achievements and synchronises knowledge points

    Args:
        quiz_id: Quiz being answered
        request: Answers keyed by question id and time spent in seconds
        current_user: Authenticated user
        store: Document store

    Returns:
        SubmitQuizResponse with the stored result

    Raises:
        HTTPException 404: Quiz not found
        HTTPException 400: Quiz has no questions
    """
    try:
        submission = AttemptService(store).submit(
            user_id=current_user.uid,
            quiz_id=quiz_id,
            answers=request.answers,
            time_spent=request.time_spent,
        )
    except ReadDashError as e:
        raise to_http_exception(e)

    return SubmitQuizResponse(
        result=submission.result,
        knowledge_points=submission.knowledge_points,
        new_achievements=submission.new_achievements,
    )


@router.get("/{quiz_id}/results", response_model=QuizResultsResponse)
def get_results(
    quiz_id: str,
    current_user: UserProfile = Depends(get_current_user),
    store: DocumentStore = Depends(get_store)
):
    """Get the best attempt of the current user on a quiz."""
    attempts = AttemptService(store)
    try:
        best = attempts.best_result(current_user.uid, quiz_id)
    except ReadDashError as e:
        raise to_http_exception(e)
    return QuizResultsResponse(best=best, attempts=len(attempts.attempts(current_user.uid, quiz_id)))


@router.get("/{quiz_id}/review", response_model=ReviewResponse)
def review_quiz(
    quiz_id: str,
    result_id: Optional[str] = None,
    current_user: UserProfile = Depends(get_current_user),
    store: DocumentStore = Depends(get_store)
):
    """
    Review an attempt question by question.

    Reviews the best attempt unless `result_id` is given. Questions edited
    since the attempt are reported without answer data.
    """
    try:
        review = AttemptService(store).review(current_user.uid, quiz_id, result_id)
    except ReadDashError as e:
        raise to_http_exception(e)

    return ReviewResponse(
        quiz_id=quiz_id,
        result_id=review.result.id,
        title=review.quiz.title,
        score=review.result.score,
        entries=review.entries,
    )


@router.delete("/{quiz_id}/results", response_model=ResetResponse)
def reset_results(
    quiz_id: str,
    current_user: UserProfile = Depends(get_current_user),
    store: DocumentStore = Depends(get_store)
):
    """Delete the current user's attempts on a quiz so it can be retaken from scratch."""
    try:
        QuizService(store).get_quiz(quiz_id)
    except ReadDashError as e:
        raise to_http_exception(e)
    deleted = AttemptService(store).reset(current_user.uid, quiz_id=quiz_id)
    if deleted == 0:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No results to reset")
    return ResetResponse(deleted=deleted)
