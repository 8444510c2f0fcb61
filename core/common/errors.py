from __future__ import annotations

from typing import Any

from rest_framework.response import Response


class CrmError(Exception):
    """
    Base for every domain error. `code` is machine-readable and ends up in the
    {"error": {...}} envelope the API returns.
    """

    code = "ERROR"
    http_status = 400

    def __init__(self, message: str = "", *, details: dict[str, Any] | None = None):
        super().__init__(message or self.code)
        self.message = message or self.code
        self.details = details or {}

    def as_response(self, headers: dict | None = None) -> Response:
        return Response(
            {"error": {"code": self.code, "message": self.message, "details": self.details}},
            status=self.http_status,
            headers=headers,
        )


class ValidationError(CrmError):
    code = "VALIDATION_ERROR"
    http_status = 400


class Unauthorized(CrmError):
    code = "UNAUTHORIZED"
    http_status = 401


class WorkspaceNotSelected(CrmError):
    code = "WORKSPACE_REQUIRED"
    http_status = 400


class Forbidden(CrmError):
    code = "FORBIDDEN"
    http_status = 403


class NotFound(CrmError):
    code = "NOT_FOUND"
    http_status = 404


class RateLimited(CrmError):
    code = "RATE_LIMITED"
    http_status = 429

    def __init__(self, retry_after_seconds: int):
        super().__init__("Too many requests", details={"retry_after": retry_after_seconds})
        self.retry_after_seconds = retry_after_seconds


# The three below never reach an HTTP client: routing and notification
# problems degrade to "unassigned" / a failed activity.

class RoutingSoftFailure(CrmError):
    code = "ROUTING_SOFT_FAILURE"


class DispatchFailure(CrmError):
    code = "DISPATCH_FAILURE"


class ConcurrencyConflict(CrmError):
    code = "CONCURRENCY_CONFLICT"
    http_status = 409
