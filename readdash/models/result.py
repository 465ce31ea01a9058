"""Quiz attempt result models."""
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from readdash.models.base import CamelModel


class QuestionResult(CamelModel):
    question_id: str
    user_answer: str = ""
    is_correct: bool = False


class QuizResult(CamelModel):
    """One learner submission, as stored in the `quizResults` collection."""

    id: Optional[str] = None
    user_id: str
    quiz_id: str
    score: int = Field(ge=0, le=100)
    correct_count: int = 0
    total_questions: int = 0
    time_spent: int = 0
    question_results: List[QuestionResult] = Field(default_factory=list)
    completed_at: Optional[datetime] = None
    title: Optional[str] = None
    reading_level: Optional[str] = None
    category: Optional[str] = None
    points_earned: Optional[int] = None
