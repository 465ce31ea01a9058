"""Domain errors raised by services and translated to HTTP errors by routes."""
from typing import List, Optional

from fastapi import HTTPException, status


class ReadDashError(Exception):
    """Base class for every error raised by the ReadDash core."""


class QuizValidationError(ReadDashError):
    """Authoring-time validation failed; nothing was persisted."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "Invalid quiz")


class NotFoundError(ReadDashError):
    """A quiz, result or user document does not exist."""

    def __init__(self, kind: str, key: Optional[str] = None):
        self.kind = kind
        self.key = key
        msg = f"{kind} not found" if key is None else f"{kind} not found: {key}"
        super().__init__(msg)


class PermissionDeniedError(ReadDashError):
    """The caller is not allowed to perform an administrator operation."""


class GenerationError(ReadDashError):
    """The AI generation backend failed or returned an unusable payload."""


def to_http_exception(exc: ReadDashError) -> HTTPException:
    """Map a domain error to the HTTP error returned to the client."""
    if isinstance(exc, QuizValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.errors)
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, PermissionDeniedError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    if isinstance(exc, GenerationError):
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
