"""
Security middleware: CSRF protection and response hardening.

Portal and invitation URLs are bearer capabilities, so their responses are
never cached, never indexed and never leak through a Referer header.
"""

from __future__ import annotations

from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from agency_portal.core.auth import CSRF_COOKIE, SESSION_COOKIE

SAFE_METHODS = {"GET", "HEAD", "OPTIONS"}

# Paths whose URL itself grants access.
CAPABILITY_PATH_PREFIXES = ("/api/v1/portal/", "/api/v1/invitations/")

# Login replaces any session it finds, so a stale cookie must not block it.
CSRF_EXEMPT_PATHS = {"/auth/login"}

# ---------------------------------------------------------------------------
# Security Headers
# ---------------------------------------------------------------------------

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "0",
    "Referrer-Policy": "no-referrer",
    "Permissions-Policy": "camera=(), microphone=(), geolocation=()",
    "Content-Security-Policy": (
        "default-src 'self'; "
        "img-src 'self' data: blob:; "
        "media-src 'self' blob:; "
        "frame-ancestors 'none';"
    ),
    "Strict-Transport-Security": "max-age=63072000; includeSubDomains; preload",
    "Cache-Control": "no-store",
}

CAPABILITY_HEADERS = {
    "X-Robots-Tag": "noindex, nofollow",
}


def is_capability_path(path: str) -> bool:
    return path.startswith(CAPABILITY_PATH_PREFIXES)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Attach security headers to every response."""

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers.update(SECURITY_HEADERS)
        if is_capability_path(request.url.path):
            response.headers.update(CAPABILITY_HEADERS)
        return response


# ---------------------------------------------------------------------------
# CSRF Protection (Double-Submit Cookie)
# ---------------------------------------------------------------------------

def csrf_failure(request: Request) -> Optional[str]:
    """Why a request fails the double-submit check, or None if it passes."""
    if request.method in SAFE_METHODS or request.url.path in CSRF_EXEMPT_PATHS:
        return None
    # Bearer tokens are never sent ambiently by a browser.
    if request.headers.get("Authorization"):
        return None
    # No staff session: portal and invitation links, scripts.
    if SESSION_COOKIE not in request.cookies:
        return None

    cookie_token = request.cookies.get(CSRF_COOKIE)
    header_token = request.headers.get("X-CSRF-Token")
    if not cookie_token or not header_token:
        return "missing"
    if cookie_token != header_token:
        return "mismatch"
    return None


class CSRFMiddleware(BaseHTTPMiddleware):
    """Double-submit cookie CSRF protection for staff browser sessions."""

    async def dispatch(self, request: Request, call_next) -> Response:
        if csrf_failure(request) is None:
            return await call_next(request)
        return JSONResponse(
            status_code=403,
            content={
                "detail": "Invalid or missing CSRF token.",
                "code": "CSRF_VALIDATION_FAILED",
            },
        )
