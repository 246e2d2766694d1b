"""Custom exception classes for the LMS backend.

Every error raised by a manager belongs to a closed set of kinds. The kind,
not the message, decides the HTTP status; the mapping lives in
``STATUS_BY_KIND`` and is applied once by the exception handlers in ``app``.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Machine-readable error categories."""

    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    UPSTREAM = "upstream"


# Duplicate submissions and enrollments keep answering 400, as clients expect.
STATUS_BY_KIND: Dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.AUTHENTICATION: 401,
    ErrorKind.AUTHORIZATION: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 400,
    ErrorKind.UPSTREAM: 500,
}


class LMSError(Exception):
    """Base exception for all LMS errors."""

    kind: ErrorKind = ErrorKind.VALIDATION

    def __init__(self, message: str, **context: Any):
        """Initialize the exception.

        Args:
            message: Human-readable message returned to the client.
            **context: Identifiers describing what failed, e.g. course_id.
        """
        self.message = message
        self.context: Dict[str, Any] = context
        super().__init__(message)

    @property
    def status_code(self) -> int:
        return STATUS_BY_KIND[self.kind]


class ValidationError(LMSError):
    """Raised when input is missing or malformed."""

    kind = ErrorKind.VALIDATION


class AuthenticationError(LMSError):
    """Raised when credentials are missing or invalid."""

    kind = ErrorKind.AUTHENTICATION


class AuthorizationError(LMSError):
    """Raised when the caller lacks ownership, enrollment or role."""

    kind = ErrorKind.AUTHORIZATION


class NotFoundError(LMSError):
    """Raised when an entity id does not resolve."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, entity: str, entity_id: Optional[Any] = None):
        """Initialize the exception.

        Args:
            entity: Entity name, e.g. "Assignment".
            entity_id: The id that was not found.
        """
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found", entity=entity, entity_id=entity_id)


class ConflictError(LMSError):
    """Raised on duplicate submissions, enrollments or usernames."""

    kind = ErrorKind.CONFLICT


class MediaUploadError(LMSError):
    """Raised when the media store fails to accept a file."""

    kind = ErrorKind.UPSTREAM
