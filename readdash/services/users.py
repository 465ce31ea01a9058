"""User profiles and quiz categories."""
import logging
from typing import Any, Dict, List, Optional

from readdash.core.config import settings
from readdash.core.exceptions import NotFoundError, PermissionDeniedError
from readdash.db.collections import ACHIEVEMENTS, CATEGORIES, RESULTS, USER_PREFERENCES, USERS
from readdash.db.store import SERVER_TIMESTAMP, DocumentStore
from readdash.models.base import CamelModel
from readdash.models.user import Identity, UserProfile

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = {
    "display_name": "displayName",
    "role": "role",
    "reading_level": "readingLevel",
    "knowledge_points": "knowledgePoints",
}
ROLES = ("user", "admin")


def ensure_admin(user: UserProfile) -> None:
    if not user.is_admin:
        raise PermissionDeniedError("Administrator access required")


class UserUpdate(CamelModel):
    display_name: Optional[str] = None
    role: Optional[str] = None
    reading_level: Optional[str] = None
    knowledge_points: Optional[int] = None


class UserService:
    """Reads and writes the `users` collection."""

    def __init__(self, store: DocumentStore):
        self.store = store

    def upsert_from_identity(self, identity: Identity) -> UserProfile:
        """Create the user on first sign-in, refresh identity fields afterwards."""
        existing = self.store.get(USERS, identity.uid)
        doc: Dict[str, Any] = {
            "uid": identity.uid,
            "email": identity.email,
            "lastLogin": SERVER_TIMESTAMP,
        }
        if identity.display_name:
            doc["displayName"] = identity.display_name
        if identity.photo_url:
            doc["photoURL"] = identity.photo_url

        if existing is None:
            is_admin = identity.email.lower() in {e.lower() for e in settings.ADMIN_EMAILS}
            doc.update({
                "role": "admin" if is_admin else "user",
                "readingLevel": "1A",
                "knowledgePoints": 0,
                "createdAt": SERVER_TIMESTAMP,
            })
            logger.info("Creating user %s (role %s)", identity.uid, doc["role"])
        self.store.set(USERS, identity.uid, doc, merge=True)
        return self.get_user(identity.uid)

    def get_user(self, uid: str) -> UserProfile:
        doc = self.store.get(USERS, uid)
        if doc is None:
            raise NotFoundError("User", uid)
        doc.setdefault("uid", uid)
        return UserProfile.model_validate(doc)

    def list_users(self) -> List[UserProfile]:
        docs = self.store.query(USERS, order_by="-createdAt")
        return [UserProfile.model_validate(dict(doc, uid=doc.get("uid", doc["id"]))) for doc in docs]

    def update_user(self, uid: str, update: UserUpdate) -> UserProfile:
        """
        Edit administrator-managed fields of a user.

        Raises:
            NotFoundError: User does not exist
            ValueError: Unknown role or negative points
        """
        if self.store.get(USERS, uid) is None:
            raise NotFoundError("User", uid)
        if update.role is not None and update.role not in ROLES:
            raise ValueError(f"Unknown role: {update.role}")
        if update.knowledge_points is not None and update.knowledge_points < 0:
            raise ValueError("Knowledge points cannot be negative")

        changes = {
            EDITABLE_FIELDS[name]: value
            for name, value in update.model_dump(exclude_none=True).items()
        }
        if changes:
            self.store.set(USERS, uid, changes, merge=True)
            logger.info("User %s updated: %s", uid, ", ".join(sorted(changes)))
        return self.get_user(uid)

    def delete_user(self, uid: str) -> None:
        """Delete the user document and everything stored for them."""
        if self.store.get(USERS, uid) is None:
            raise NotFoundError("User", uid)
        batch = self.store.batch()
        for collection in (RESULTS, ACHIEVEMENTS):
            for doc in self.store.query(collection, [("userId", "==", uid)]):
                batch.delete(collection, doc["id"])
        batch.delete(USER_PREFERENCES, uid)
        batch.delete(USERS, uid)
        batch.commit()
        logger.info("User %s deleted", uid)


class CategoryService:
    """Quiz categories, seeded with defaults on first use."""

    def __init__(self, store: DocumentStore):
        self.store = store

    def list_categories(self) -> List[str]:
        docs = self.store.query(CATEGORIES, order_by="name")
        if not docs:
            batch = self.store.batch()
            for name in settings.DEFAULT_CATEGORIES:
                batch.set(CATEGORIES, name.lower().replace(" ", "-"), {"name": name, "createdAt": SERVER_TIMESTAMP})
            batch.commit()
            logger.info("Seeded %d default categories", len(settings.DEFAULT_CATEGORIES))
            docs = self.store.query(CATEGORIES, order_by="name")
        return [doc["name"] for doc in docs]

    def add_category(self, name: str) -> List[str]:
        """
        Add a category.

        Raises:
            ValueError: Empty name or the category already exists
        """
        name = (name or "").strip()
        if not name:
            raise ValueError("Category name cannot be empty")
        existing = self.list_categories()
        if name.lower() in {c.lower() for c in existing}:
            raise ValueError(f"Category already exists: {name}")
        self.store.add(CATEGORIES, {"name": name, "createdAt": SERVER_TIMESTAMP})
        logger.info("Category %s added", name)
        return self.list_categories()
