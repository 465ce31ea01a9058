"""Quiz document models."""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field, model_validator

from readdash.models.base import CamelModel
from readdash.models.question import Question, result_id_for


class QuizMetadata(CamelModel):
    """Administrator-supplied fields of a quiz."""

    title: str = "New Quiz"
    reading_level: str = "8B"
    category: str = "Science"
    is_recommended: bool = False


class Quiz(CamelModel):
    """Persisted quiz aggregate, as stored in the `quizzes` collection."""

    id: Optional[str] = None
    title: str
    passage: str = ""
    reading_level: str = ""
    category: str = ""
    question_count: int = 0
    is_published: bool = True
    is_recommended: bool = False
    # Storage form: tables are flattened, see quiz_builder.serialize_for_storage
    components: List[Dict[str, Any]] = Field(default_factory=list)
    questions: List[Question] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    last_updated: Optional[datetime] = None

    @model_validator(mode="after")
    def fill_result_ids(self) -> "Quiz":
        # questions saved without an identifier are keyed by position
        for position, question in enumerate(self.questions):
            if not question.result_id:
                question.result_id = result_id_for(position)
        return self

    @property
    def metadata(self) -> QuizMetadata:
        return QuizMetadata(
            title=self.title,
            reading_level=self.reading_level,
            category=self.category,
            is_recommended=self.is_recommended,
        )
