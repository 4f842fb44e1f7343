from __future__ import annotations

from fastapi import status


class PostServiceError(Exception):
    """
    Base class for errors surfaced to callers with a machine-readable code.
    """

    error = "PostServiceError"
    code = "INTERNAL_SERVER_ERROR"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.error, "code": self.code, "message": self.message}


# PUBLIC_INTERFACE
class NotFoundError(PostServiceError):
    """Referenced post id does not exist."""

    error = "NotFound"
    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND


# PUBLIC_INTERFACE
class ConflictError(PostServiceError):
    """A post with the requested id already exists."""

    error = "Conflict"
    code = "CONFLICT"
    status_code = status.HTTP_409_CONFLICT
