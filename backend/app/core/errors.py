"""Domain error taxonomy mapped onto HTTP status codes by the app's exception handlers."""

from typing import Dict, List, Optional


class AppError(Exception):
    status_code = 500
    default_message = "An unexpected error occurred"

    def __init__(self, message: Optional[str] = None, errors: Optional[Dict[str, List[str]]] = None):
        self.message = message or self.default_message
        self.errors = errors or {}
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 422
    default_message = "Validation Error"

    @classmethod
    def for_field(cls, field: str, problem: str) -> "ValidationError":
        return cls(errors={field: [problem]})


class NotFoundError(AppError):
    status_code = 404
    default_message = "Resource not found"


class AuthenticationError(AppError):
    status_code = 401
    default_message = "Unauthenticated"


class PermissionDeniedError(AppError):
    status_code = 403
    default_message = "You do not have permission to perform this action"


class InvalidStateError(AppError):
    status_code = 422
    default_message = "Operation not allowed in the current state"

class ConflictError(AppError):
    status_code = 409
    default_message = "The resource was changed by another request"
