"""Security utilities for identity tokens and role checks."""
from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import ValidationError

from readdash.core.config import settings
from readdash.core.exceptions import NotFoundError, PermissionDeniedError
from readdash.db.store import DocumentStore, get_store
from readdash.models.user import Identity, UserProfile
from readdash.services.users import UserService, ensure_admin


# JWT bearer token scheme
security = HTTPBearer()


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed identity token."""
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def _credentials_error(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_token(token: str) -> Identity:
    """Decode an identity token into the identity tuple it carries."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        raise _credentials_error("Could not validate credentials")

    uid = payload.get("uid") or payload.get("sub")
    if uid is None:
        raise _credentials_error("Invalid authentication credentials")
    try:
        return Identity(
            uid=uid,
            email=payload.get("email"),
            display_name=payload.get("name"),
            photo_url=payload.get("picture"),
        )
    except ValidationError:
        raise _credentials_error("Invalid authentication credentials")


def get_identity(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Identity:
    return decode_token(credentials.credentials)


def get_current_user(
    identity: Identity = Depends(get_identity),
    store: DocumentStore = Depends(get_store),
) -> UserProfile:
    """
    Dependency returning the signed-in user's profile, creating it on first use.

    Usage:
        @router.get("/protected")
        def protected_route(current_user: UserProfile = Depends(get_current_user)):
            return {"uid": current_user.uid}
    """
    users = UserService(store)
    try:
        return users.get_user(identity.uid)
    except NotFoundError:
        return users.upsert_from_identity(identity)


def require_admin(current_user: UserProfile = Depends(get_current_user)) -> UserProfile:
    try:
        ensure_admin(current_user)
    except PermissionDeniedError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    return current_user
