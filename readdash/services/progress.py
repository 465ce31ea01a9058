"""Knowledge points, levels, achievements, history and daily goals."""
import logging
from collections import OrderedDict
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, Dict, List, Optional, Sequence

from pydantic import Field

from readdash.core.config import settings
from readdash.db.collections import ACHIEVEMENTS as ACHIEVEMENTS_COLLECTION, RESULTS, USER_PREFERENCES, USERS
from readdash.db.store import SERVER_TIMESTAMP, DocumentStore, utcnow
from readdash.models.base import CamelModel
from readdash.models.result import QuizResult
from readdash.services.grading import best_attempt, round_half_up
from readdash.utils.text import reading_level_number

logger = logging.getLogger(__name__)


def points_for_attempt(reading_level: Optional[str], score: int) -> int:
    """Knowledge points earned by one attempt."""
    return 10 + 2 * reading_level_number(reading_level) + round_half_up(score / 10)


def result_points(result: QuizResult) -> int:
    if result.points_earned is not None:
        return result.points_earned
    return points_for_attempt(result.reading_level, result.score)


def knowledge_points(results: Sequence[QuizResult]) -> int:
    """Sum of the points of the best attempt of every quiz taken."""
    by_quiz: Dict[str, List[QuizResult]] = OrderedDict()
    for result in results:
        by_quiz.setdefault(result.quiz_id, []).append(result)
    return sum(result_points(best_attempt(attempts)) for attempts in by_quiz.values())


def level_progress(points: int, points_per_level: int = 100) -> int:
    """Percentage of the way to the next level."""
    return round_half_up((points % points_per_level) / points_per_level * 100)


def _completion_dates(results: Sequence[QuizResult]) -> List[date]:
    return sorted({r.completed_at.astimezone(timezone.utc).date() for r in results if r.completed_at})


def longest_streak(results: Sequence[QuizResult]) -> int:
    """Longest run of consecutive calendar days with at least one result."""
    longest = current = 0
    previous = None
    for day in _completion_dates(results):
        current = current + 1 if previous and day - previous == timedelta(days=1) else 1
        longest = max(longest, current)
        previous = day
    return longest


def _newest_first(results: Sequence[QuizResult]) -> List[QuizResult]:
    floor = datetime.min.replace(tzinfo=timezone.utc)
    return sorted(results, key=lambda r: r.completed_at or floor, reverse=True)


@dataclass(frozen=True)
class AchievementDefinition:
    id: str
    title: str
    description: str
    check: Callable[[Sequence[QuizResult]], bool]


ACHIEVEMENTS = (
    AchievementDefinition(
        "streak-5", "5-Day Streak", "Completed quizzes for 5 days in a row",
        lambda results: longest_streak(results) >= 5,
    ),
    AchievementDefinition(
        "perfect-5", "Knowledge Master", "Scored 100% on 5 consecutive quizzes",
        lambda results: len(results) >= 5 and all(r.score == 100 for r in _newest_first(results)[:5]),
    ),
    AchievementDefinition(
        "passages-20", "Bookworm", "Completed 20 reading passages",
        lambda results: len({r.quiz_id for r in results}) >= 20,
    ),
    AchievementDefinition(
        "quizzes-100", "Completionist", "Complete 100 quizzes",
        lambda results: len(results) >= 100,
    ),
    AchievementDefinition(
        "perfect-50", "Golden Reader", "Earn 50 perfect scores",
        lambda results: sum(1 for r in results if r.score == 100) >= 50,
    ),
)


class Achievement(CamelModel):
    user_id: str
    achievement_id: str
    title: str
    description: str
    earned_at: Optional[datetime] = None


class HistorySummary(CamelModel):
    results: List[QuizResult] = Field(default_factory=list)
    total_attempts: int = 0
    unique_quizzes: int = 0
    knowledge_points: int = 0
    by_month: Dict[str, List[QuizResult]] = Field(default_factory=dict)


class DashboardStats(CamelModel):
    quizzes_completed: int = 0
    quizzes_this_week: int = 0
    knowledge_points: int = 0
    level_progress: int = 0
    achievements: List[Achievement] = Field(default_factory=list)


class DailyGoalStatus(CamelModel):
    daily_goal: int
    daily_goal_set: bool = False
    hide_daily_goal_dialog: bool = False
    completed_today: int = 0
    achieved: bool = False


def achievement_doc_id(user_id: str, achievement_id: str) -> str:
    return f"{user_id}_{achievement_id}"


class ProgressService:
    """Per-learner progress derived from the `quizResults` collection."""

    def __init__(self, store: DocumentStore):
        self.store = store

    def user_results(self, user_id: str, quiz_id: Optional[str] = None) -> List[QuizResult]:
        """All results of a user, newest first."""
        filters = [("userId", "==", user_id)]
        if quiz_id is not None:
            filters.append(("quizId", "==", quiz_id))
        docs = self.store.query(RESULTS, filters, order_by="-completedAt")
        return [QuizResult.model_validate(doc) for doc in docs]

    def sync_points(self, user_id: str, results: Optional[List[QuizResult]] = None) -> int:
        """Recompute knowledge points and store them when they differ."""
        if results is None:
            results = self.user_results(user_id)
        points = knowledge_points(results)
        user = self.store.get(USERS, user_id)
        stored = (user or {}).get("knowledgePoints", 0)
        if user is not None and stored != points:
            self.store.set(
                USERS,
                user_id,
                {"knowledgePoints": points, "lastPointsSync": SERVER_TIMESTAMP},
                merge=True,
            )
            logger.info("Synchronised knowledge points for %s: %s -> %s", user_id, stored, points)
        return points

    def earned_achievements(self, user_id: str) -> List[Achievement]:
        docs = self.store.query(
            ACHIEVEMENTS_COLLECTION, [("userId", "==", user_id)], order_by="earnedAt"
        )
        return [Achievement.model_validate(doc) for doc in docs]

    def evaluate_achievements(
        self, user_id: str, results: Optional[List[QuizResult]] = None
    ) -> List[Achievement]:
        """Award every achievement the user now qualifies for and has not earned yet."""
        if results is None:
            results = self.user_results(user_id)
        earned = {a.achievement_id for a in self.earned_achievements(user_id)}

        awarded = []
        batch = self.store.batch()
        for definition in ACHIEVEMENTS:
            if definition.id in earned or not definition.check(results):
                continue
            achievement = Achievement(
                user_id=user_id,
                achievement_id=definition.id,
                title=definition.title,
                description=definition.description,
            )
            doc = achievement.to_document()
            doc["earnedAt"] = SERVER_TIMESTAMP
            batch.set(ACHIEVEMENTS_COLLECTION, achievement_doc_id(user_id, definition.id), doc)
            awarded.append(achievement)
        batch.commit()

        for achievement in awarded:
            logger.info("Awarded achievement %s to %s", achievement.achievement_id, user_id)
        return awarded

    def history(self, user_id: str) -> HistorySummary:
        results = self.user_results(user_id)
        by_month: Dict[str, List[QuizResult]] = OrderedDict()
        for result in results:
            key = result.completed_at.strftime("%Y-%m") if result.completed_at else "undated"
            by_month.setdefault(key, []).append(result)
        return HistorySummary(
            results=results,
            total_attempts=len(results),
            unique_quizzes=len({r.quiz_id for r in results}),
            knowledge_points=knowledge_points(results),
            by_month=by_month,
        )

    def stats(self, user_id: str) -> DashboardStats:
        results = self.user_results(user_id)
        week_ago = utcnow() - timedelta(days=7)
        points = knowledge_points(results)
        return DashboardStats(
            quizzes_completed=len(results),
            quizzes_this_week=sum(1 for r in results if r.completed_at and r.completed_at >= week_ago),
            knowledge_points=points,
            level_progress=level_progress(points, settings.POINTS_PER_LEVEL),
            achievements=self.earned_achievements(user_id),
        )

    def completed_today(self, user_id: str) -> int:
        start_of_day = datetime.combine(utcnow().date(), time.min, tzinfo=timezone.utc)
        docs = self.store.query(
            RESULTS,
            [("userId", "==", user_id), ("completedAt", ">=", start_of_day)],
        )
        return len(docs)

    def daily_goal(self, user_id: str) -> DailyGoalStatus:
        prefs = self.store.get(USER_PREFERENCES, user_id) or {}
        goal = prefs.get("dailyGoal") or settings.DEFAULT_DAILY_GOAL
        completed = self.completed_today(user_id)
        return DailyGoalStatus(
            daily_goal=goal,
            daily_goal_set=bool(prefs.get("dailyGoalSet", False)),
            hide_daily_goal_dialog=bool(prefs.get("hideDailyGoalDialog", False)),
            completed_today=completed,
            achieved=completed >= goal,
        )

    def set_daily_goal(
        self, user_id: str, daily_goal: int, hide_dialog: Optional[bool] = None
    ) -> DailyGoalStatus:
        if daily_goal < 1:
            raise ValueError("Daily goal must be at least 1")
        doc = {"dailyGoal": daily_goal, "dailyGoalSet": True, "updatedAt": SERVER_TIMESTAMP}
        if hide_dialog is not None:
            doc["hideDailyGoalDialog"] = hide_dialog
        if self.store.get(USER_PREFERENCES, user_id) is None:
            doc["createdAt"] = SERVER_TIMESTAMP
        self.store.set(USER_PREFERENCES, user_id, doc, merge=True)
        logger.info("Daily goal for %s set to %d", user_id, daily_goal)
        return self.daily_goal(user_id)
