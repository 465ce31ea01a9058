"""Database and document models."""
from readdash.models.document import StoredDocument
from readdash.models.components import Component, parse_component, parse_components
from readdash.models.question import Question
from readdash.models.quiz import Quiz, QuizMetadata
from readdash.models.result import QuestionResult, QuizResult
from readdash.models.user import Identity, UserProfile

__all__ = [
    "StoredDocument",
    "Component",
    "parse_component",
    "parse_components",
    "Question",
    "Quiz",
    "QuizMetadata",
    "QuestionResult",
    "QuizResult",
    "Identity",
    "UserProfile",
]
