"""Exceptions raised by the relation engine and its facades."""
from __future__ import annotations


class AuthzError(Exception):
    """Base exception carrying an HTTP status and a stable error code.

    Attributes:
        status: HTTP status code used by the facades
        code: Machine-readable error code
        message: Human-readable description
    """

    status = 500
    code = "internal_error"

    def __init__(self, message: str = ""):
        self.message = message or self.__class__.__doc__.strip().splitlines()[0]
        super().__init__(self.message)

    @property
    def retryable(self) -> bool:
        return False

    def to_dict(self) -> dict:
        """Convert to the JSON error body shared by HTTP and RPC."""
        return {"error": self.code, "message": self.message}


class StorageUnavailable(AuthzError):
    """Storage layer unreachable or timed out."""

    status = 503
    code = "storage_unavailable"

    @property
    def retryable(self) -> bool:
        return True

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload["retryable"] = True
        return payload


class Forbidden(AuthzError):
    """Caller is not allowed to perform this operation."""

    status = 403
    code = "forbidden"


class Unauthenticated(AuthzError):
    """Verified caller identity required."""

    status = 401
    code = "unauthorized"


class ValidationError(AuthzError):
    """Request payload is invalid."""

    status = 400
    code = "invalid_request"


class NotFound(AuthzError):
    """Resource not found."""

    status = 404
    code = "not_found"


class Conflict(AuthzError):
    """Resource already exists."""

    status = 409
    code = "conflict"
