"""Learner progress routes."""
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import Field

from readdash.core.security import get_current_user
from readdash.db.store import DocumentStore, get_store
from readdash.models.base import CamelModel
from readdash.models.user import UserProfile
from readdash.services.progress import (
    Achievement,
    DailyGoalStatus,
    DashboardStats,
    HistorySummary,
    ProgressService,
)


router = APIRouter(prefix="/api/user", tags=["Progress"])


# Request/Response schemas
class DailyGoalRequest(CamelModel):
    daily_goal: int = Field(ge=1, le=20)
    hide_daily_goal_dialog: Optional[bool] = None


class PointsResponse(CamelModel):
    knowledge_points: int


@router.get("/stats", response_model=DashboardStats)
def get_stats(
    current_user: UserProfile = Depends(get_current_user),
    store: DocumentStore = Depends(get_store)
):
    """Dashboard statistics: completed quizzes, points, level progress and achievements."""
    return ProgressService(store).stats(current_user.uid)


@router.get("/history", response_model=HistorySummary)
def get_history(
    current_user: UserProfile = Depends(get_current_user),
    store: DocumentStore = Depends(get_store)
):
    """All attempts, newest first, grouped by month."""
    return ProgressService(store).history(current_user.uid)


@router.get("/achievements", response_model=List[Achievement])
def get_achievements(
    current_user: UserProfile = Depends(get_current_user),
    store: DocumentStore = Depends(get_store)
):
    """Achievements earned by the current user."""
    return ProgressService(store).earned_achievements(current_user.uid)


@router.get("/daily-goal", response_model=DailyGoalStatus)
def get_daily_goal(
    current_user: UserProfile = Depends(get_current_user),
    store: DocumentStore = Depends(get_store)
):
    """Daily goal and the number of quizzes completed today."""
    return ProgressService(store).daily_goal(current_user.uid)


@router.put("/daily-goal", response_model=DailyGoalStatus)
def set_daily_goal(
    request: DailyGoalRequest,
    current_user: UserProfile = Depends(get_current_user),
    store: DocumentStore = Depends(get_store)
):
    """Set the daily goal."""
    try:
        return ProgressService(store).set_daily_goal(
            current_user.uid, request.daily_goal, hide_dialog=request.hide_daily_goal_dialog
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/points/sync", response_model=PointsResponse)
def sync_points(
    current_user: UserProfile = Depends(get_current_user),
    store: DocumentStore = Depends(get_store)
):
    """Recompute knowledge points from the best attempt of every quiz."""
    return PointsResponse(knowledge_points=ProgressService(store).sync_points(current_user.uid))
