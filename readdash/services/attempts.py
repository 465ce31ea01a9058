"""Quiz attempts: submission, best result, review and reset."""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from readdash.core.config import settings
from readdash.core.exceptions import NotFoundError, QuizValidationError
from readdash.db.collections import RESULTS, USERS
from readdash.db.store import SERVER_TIMESTAMP, DocumentStore
from readdash.models.quiz import Quiz
from readdash.models.result import QuizResult
from readdash.services.grading import best_attempt, grade
from readdash.services.progress import Achievement, ProgressService, points_for_attempt
from readdash.services.quizzes import QuizService
from readdash.services.review import ReviewEntry, build_review

logger = logging.getLogger(__name__)


@dataclass
class Submission:
    result: QuizResult
    knowledge_points: int
    new_achievements: List[Achievement] = field(default_factory=list)


@dataclass
class QuizReview:
    quiz: Quiz
    result: QuizResult
    entries: List[ReviewEntry]


class AttemptService:
    """Records and reads learner attempts in the `quizResults` collection."""

    def __init__(self, store: DocumentStore, fill_blanks_mode: Optional[str] = None):
        self.store = store
        self.fill_blanks_mode = fill_blanks_mode or settings.FILL_BLANKS_GRADING
        self.quizzes = QuizService(store)
        self.progress = ProgressService(store)

    def submit(
        self,
        user_id: str,
        quiz_id: str,
        answers: Dict[str, str],
        time_spent: int = 0,
    ) -> Submission:
        """
        Grade answers and append a new result.

        Args:
            user_id: Learner uid
            quiz_id: Quiz being answered
            answers: Raw answers keyed by result identifier
            time_spent: Seconds spent on the attempt

        Returns:
            Submission with the stored result, updated points and new achievements

        Raises:
            NotFoundError: Quiz does not exist
            QuizValidationError: Quiz has no questions
        """
        quiz = self.quizzes.get_quiz(quiz_id)
        if not quiz.questions:
            raise QuizValidationError(["Quiz has no questions"])

        outcome = grade(quiz.questions, answers, self.fill_blanks_mode)
        result = QuizResult(
            user_id=user_id,
            quiz_id=quiz_id,
            score=outcome.score,
            correct_count=outcome.correct_count,
            total_questions=outcome.total_questions,
            time_spent=max(0, time_spent),
            question_results=outcome.question_results,
            title=quiz.title,
            reading_level=quiz.reading_level,
            category=quiz.category,
            points_earned=points_for_attempt(quiz.reading_level, outcome.score),
        )
        doc = result.to_document()
        doc["completedAt"] = SERVER_TIMESTAMP
        result_id = self.store.add(RESULTS, doc)
        logger.info(
            "Result %s recorded for user %s on quiz %s: %d%%",
            result_id, user_id, quiz_id, outcome.score,
        )

        results = self.progress.user_results(user_id)
        new_achievements = self.progress.evaluate_achievements(user_id, results)
        points = self.progress.sync_points(user_id, results)
        return Submission(
            result=self.get_result(result_id),
            knowledge_points=points,
            new_achievements=new_achievements,
        )

    def get_result(self, result_id: str) -> QuizResult:
        doc = self.store.get(RESULTS, result_id)
        if doc is None:
            raise NotFoundError("Result", result_id)
        return QuizResult.model_validate(doc)

    def attempts(self, user_id: str, quiz_id: str) -> List[QuizResult]:
        return self.progress.user_results(user_id, quiz_id)

    def best_result(self, user_id: str, quiz_id: str) -> QuizResult:
        best = best_attempt(self.attempts(user_id, quiz_id))
        if best is None:
            raise NotFoundError("Result for quiz", quiz_id)
        return best

    def review(self, user_id: str, quiz_id: str, result_id: Optional[str] = None) -> QuizReview:
        """Review of one attempt against the quiz as it is now.

        Without `result_id` the best attempt is reviewed.
        """
        quiz = self.quizzes.get_quiz(quiz_id)
        if result_id is None:
            result = self.best_result(user_id, quiz_id)
        else:
            result = self.get_result(result_id)
            if result.user_id != user_id or result.quiz_id != quiz_id:
                raise NotFoundError("Result", result_id)
        return QuizReview(quiz=quiz, result=result, entries=build_review(quiz, result))

    def reset(self, user_id: str, quiz_id: Optional[str] = None, zero_points: bool = False) -> int:
        """Delete a user's results, optionally for one quiz only.

        With `zero_points` the user's knowledge points are cleared in the
        same batch; otherwise they are recomputed from what remains.
        """
        filters = [("userId", "==", user_id)]
        if quiz_id is not None:
            filters.append(("quizId", "==", quiz_id))
        ids = [doc["id"] for doc in self.store.query(RESULTS, filters)]

        batch = self.store.batch()
        for result_id in ids:
            batch.delete(RESULTS, result_id)
        if zero_points and self.store.get(USERS, user_id) is not None:
            batch.set(
                USERS, user_id, {"knowledgePoints": 0, "lastPointsSync": SERVER_TIMESTAMP}, merge=True
            )
        batch.commit()
        logger.info(
            "Reset %d results for user %s%s", len(ids), user_id,
            f" on quiz {quiz_id}" if quiz_id else "",
        )

        if not zero_points:
            self.progress.sync_points(user_id)
        return len(ids)
