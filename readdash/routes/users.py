"""User session routes."""
from fastapi import APIRouter, Depends

from readdash.core.security import get_current_user, get_identity
from readdash.db.store import DocumentStore, get_store
from readdash.models.user import Identity, UserProfile
from readdash.services.users import UserService


router = APIRouter(prefix="/api/users", tags=["Users"])


@router.post("/session", response_model=UserProfile)
def establish_session(
    identity: Identity = Depends(get_identity),
    store: DocumentStore = Depends(get_store)
):
    """
    Upsert the signed-in identity into the users collection.

    - Creates the profile on first sign-in (role, reading level, points)
    - Refreshes email, display name, photo and last login afterwards
    """
    return UserService(store).upsert_from_identity(identity)


@router.get("/me", response_model=UserProfile)
def get_me(current_user: UserProfile = Depends(get_current_user)):
    """Get the current user's profile."""
    return current_user
