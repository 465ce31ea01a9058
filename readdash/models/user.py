"""User profile models."""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from readdash.models.base import CamelModel


class Identity(BaseModel):
    """Tuple supplied by the identity provider when a session is established."""

    uid: str
    email: EmailStr
    display_name: Optional[str] = None
    photo_url: Optional[str] = None


class UserProfile(CamelModel):
    """User document in the `users` collection, keyed by uid."""

    uid: str
    email: str
    display_name: Optional[str] = None
    photo_url: Optional[str] = Field(default=None, alias="photoURL")
    role: str = "user"
    reading_level: str = "1A"
    knowledge_points: int = 0
    daily_goal: Optional[int] = None
    created_at: Optional[datetime] = None
    last_login: Optional[datetime] = None
    last_points_sync: Optional[datetime] = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"
