"""
Service errors carrying a machine-readable code.

Each subclass maps one error category to an HTTP status. They subclass
HTTPException so FastAPI propagates them out of dependencies and routes
unchanged; the handlers in main.py render them as ``{"detail", "code"}``.
"""

from fastapi import HTTPException, status


class ServiceError(HTTPException):
    """Base class for categorised API errors."""

    code = "INTERNAL_SERVER_ERROR"
    status_code_default = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str, headers: dict | None = None):
        super().__init__(status_code=self.status_code_default, detail=detail, headers=headers)


class UnauthorizedError(ServiceError):
    """Raised when the caller is not authenticated."""

    code = "UNAUTHORIZED"
    status_code_default = status.HTTP_401_UNAUTHORIZED

    def __init__(self, detail: str = "Not authenticated"):
        super().__init__(detail, headers={"WWW-Authenticate": "Bearer"})


class ForbiddenError(ServiceError):
    """Raised when the caller lacks access to a resource."""

    code = "FORBIDDEN"
    status_code_default = status.HTTP_403_FORBIDDEN


class NotFoundError(ServiceError):
    code = "NOT_FOUND"
    status_code_default = status.HTTP_404_NOT_FOUND


class BadRequestError(ServiceError):
    code = "BAD_REQUEST"
    status_code_default = status.HTTP_400_BAD_REQUEST


class ConflictError(ServiceError):
    """Raised on uniqueness conflicts."""

    code = "CONFLICT"
    status_code_default = status.HTTP_409_CONFLICT


# Codes for plain HTTPExceptions raised by FastAPI or third-party code
STATUS_CODES = {
    status.HTTP_400_BAD_REQUEST: "BAD_REQUEST",
    status.HTTP_401_UNAUTHORIZED: "UNAUTHORIZED",
    status.HTTP_403_FORBIDDEN: "FORBIDDEN",
    status.HTTP_404_NOT_FOUND: "NOT_FOUND",
    status.HTTP_405_METHOD_NOT_ALLOWED: "BAD_REQUEST",
    status.HTTP_409_CONFLICT: "CONFLICT",
    413: "BAD_REQUEST",
    422: "BAD_REQUEST",
    status.HTTP_429_TOO_MANY_REQUESTS: "RATE_LIMITED",
}


def code_for_status(status_code: int) -> str:
    if isinstance(status_code, int) and status_code < 500:
        return STATUS_CODES.get(status_code, "BAD_REQUEST")
    return "INTERNAL_SERVER_ERROR"
