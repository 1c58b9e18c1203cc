"""
Domain error taxonomy.

Every error is an ``HTTPException`` so services can raise it directly, the
same way they raise plain HTTP errors. Each subclass carries a stable
machine-readable ``code`` that clients and the bulk review report rely on.
"""

from __future__ import annotations

from typing import Optional

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse


class DomainError(HTTPException):
    status_code: int = 400
    code: str = "DOMAIN_ERROR"
    message: str = "Request could not be completed."

    def __init__(self, message: Optional[str] = None):
        self.message = message or type(self).message
        super().__init__(status_code=type(self).status_code, detail=self.message)


class TokenNotFound(DomainError):
    status_code = 404
    code = "TOKEN_NOT_FOUND"
    message = "Invalid or expired portal link. Please request a new link from your agency."


class TokenInactive(DomainError):
    status_code = 403
    code = "TOKEN_INACTIVE"
    message = "This portal link is not currently active. Please contact your agency."


class PermissionDenied(DomainError):
    status_code = 403
    code = "PERMISSION_DENIED"
    message = "You do not have permission to perform this action."


class ValidationError(DomainError):
    status_code = 422
    code = "VALIDATION_ERROR"
    message = "Invalid request."


class AlreadyReviewed(DomainError):
    status_code = 409
    code = "ALREADY_REVIEWED"
    message = "This upload has already been reviewed."


class NotFound(DomainError):
    status_code = 404
    code = "NOT_FOUND"
    message = "Not found."


class Conflict(DomainError):
    status_code = 409
    code = "CONFLICT"
    message = "The request conflicts with the current state."


class InvitationExpired(DomainError):
    status_code = 410
    code = "INVITATION_EXPIRED"
    message = "This invitation has expired. Please ask for a new one."


class InvitationAlreadyAccepted(DomainError):
    status_code = 409
    code = "INVITATION_ALREADY_ACCEPTED"
    message = "This invitation has already been accepted."


class InvitationRevoked(DomainError):
    status_code = 410
    code = "INVITATION_REVOKED"
    message = "This invitation has been cancelled."


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    """Render a DomainError as ``{"detail": ..., "code": ...}``."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
        headers=exc.headers,
    )
