"""Quiz persistence: save, update, load and list quizzes."""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from readdash.core.config import settings
from readdash.core.exceptions import NotFoundError, QuizValidationError
from readdash.db.collections import QUIZZES
from readdash.db.store import SERVER_TIMESTAMP, DocumentStore, Filter
from readdash.models.components import Component, TABLE
from readdash.models.quiz import Quiz, QuizMetadata
from readdash.services.quiz_builder import (
    deserialize_from_storage,
    restore_table,
    serialize_for_storage,
)

logger = logging.getLogger(__name__)

MISSING_TITLE = "Please enter a quiz title"

# Answer-key fields removed from components served to learners
_ANSWER_KEY_FIELDS = ("correctOption", "correctAnswer", "answers", "reason")


@dataclass
class SavedQuiz:
    quiz: Quiz
    warnings: List[str] = field(default_factory=list)


def _learner_component(stored: Dict[str, Any]) -> Dict[str, Any]:
    component = {k: v for k, v in stored.items() if k not in _ANSWER_KEY_FIELDS}
    if component.get("type") == TABLE:
        component = restore_table(component)
    if "blanks" in component:
        component["blanks"] = [{"id": blank.get("id")} for blank in component["blanks"]]
    return component


def learner_view(quiz: Quiz) -> Dict[str, Any]:
    """Quiz as served for taking: no correct answers, no explanations."""
    questions = []
    for question in quiz.questions:
        entry = {
            "resultId": question.result_id,
            "componentId": question.component_id,
            "type": question.type,
            "text": question.text,
        }
        if question.type == "multiple-choice":
            entry["options"] = [option.to_document() for option in question.options]
        elif question.type == "fill-blanks":
            entry["blankCount"] = len(question.blanks)
            entry["blankIds"] = [blank.id for blank in question.blanks]
        elif question.type == "sentence-completion":
            entry["wordLimit"] = question.word_limit
        questions.append(entry)

    return {
        "id": quiz.id,
        "title": quiz.title,
        "passage": quiz.passage,
        "readingLevel": quiz.reading_level,
        "category": quiz.category,
        "questionCount": quiz.question_count,
        "components": [_learner_component(c) for c in quiz.components],
        "questions": questions,
    }


class QuizService:
    """Reads and writes the `quizzes` collection."""

    def __init__(self, store: DocumentStore, key_scheme: Optional[str] = None):
        self.store = store
        self.key_scheme = key_scheme or settings.RESULT_KEY_SCHEME

    def _build_document(
        self, metadata: QuizMetadata, components: List[Component]
    ) -> Tuple[Dict[str, Any], List[str]]:
        errors = []
        if not metadata.title.strip():
            errors.append(MISSING_TITLE)
        try:
            payload = serialize_for_storage(components, key_scheme=self.key_scheme)
        except QuizValidationError as e:
            raise QuizValidationError(errors + e.errors) from e
        if errors:
            raise QuizValidationError(errors)

        doc = {
            "title": metadata.title.strip(),
            "readingLevel": metadata.reading_level,
            "category": metadata.category,
            "isPublished": True,
            "isRecommended": metadata.is_recommended,
            "lastUpdated": SERVER_TIMESTAMP,
        }
        doc.update(payload.to_document())
        return doc, payload.warnings

    def save_quiz(self, metadata: QuizMetadata, components: List[Component]) -> SavedQuiz:
        """
        Validate and store a new quiz.

        Args:
            metadata: Title, reading level, category and recommendation flag
            components: Authored components in any order

        Returns:
            SavedQuiz with the stored quiz and non-fatal warnings

        Raises:
            QuizValidationError: Nothing was stored
        """
        doc, warnings = self._build_document(metadata, components)
        doc["createdAt"] = SERVER_TIMESTAMP
        quiz_id = self.store.add(QUIZZES, doc)
        logger.info("Quiz %s saved with %d questions", quiz_id, doc["questionCount"])
        return SavedQuiz(quiz=self.get_quiz(quiz_id), warnings=warnings)

    def update_quiz(self, quiz_id: str, metadata: QuizMetadata, components: List[Component]) -> SavedQuiz:
        """Overwrite a quiz's components and questions wholesale.

        Raises:
            NotFoundError: The quiz does not exist
            QuizValidationError: Nothing was changed
        """
        existing = self.store.get(QUIZZES, quiz_id)
        if existing is None:
            raise NotFoundError("Quiz", quiz_id)
        doc, warnings = self._build_document(metadata, components)
        doc["createdAt"] = existing.get("createdAt", SERVER_TIMESTAMP)
        doc["isPublished"] = existing.get("isPublished", True)

        batch = self.store.batch()
        batch.set(QUIZZES, quiz_id, doc)
        batch.commit()
        logger.info("Quiz %s updated with %d questions", quiz_id, doc["questionCount"])
        return SavedQuiz(quiz=self.get_quiz(quiz_id), warnings=warnings)

    def get_quiz(self, quiz_id: str) -> Quiz:
        doc = self.store.get(QUIZZES, quiz_id)
        if doc is None:
            raise NotFoundError("Quiz", quiz_id)
        return Quiz.model_validate(doc)

    def list_quizzes(
        self,
        reading_level: Optional[str] = None,
        category: Optional[str] = None,
        published_only: bool = True,
        limit: Optional[int] = None,
    ) -> List[Quiz]:
        filters: List[Filter] = []
        if published_only:
            filters.append(("isPublished", "==", True))
        if reading_level:
            filters.append(("readingLevel", "==", reading_level))
        if category:
            filters.append(("category", "==", category))
        docs = self.store.query(QUIZZES, filters, order_by="-createdAt", limit=limit)
        return [Quiz.model_validate(doc) for doc in docs]

    def recommended_quizzes(self, limit: Optional[int] = None) -> List[Quiz]:
        docs = self.store.query(
            QUIZZES,
            [("isPublished", "==", True), ("isRecommended", "==", True)],
            order_by="-createdAt",
            limit=limit,
        )
        return [Quiz.model_validate(doc) for doc in docs]

    def delete_quiz(self, quiz_id: str) -> None:
        if self.store.get(QUIZZES, quiz_id) is None:
            raise NotFoundError("Quiz", quiz_id)
        self.store.delete(QUIZZES, quiz_id)
        logger.info("Quiz %s deleted", quiz_id)

    def load_for_edit(self, quiz_id: str) -> List[Component]:
        """Authoring components of a stored quiz, tables restored to grids."""
        quiz = self.get_quiz(quiz_id)
        return deserialize_from_storage(quiz.components)
