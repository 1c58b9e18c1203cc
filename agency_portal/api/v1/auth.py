"""
Staff authentication endpoints.

- Email/password login scoped to an agency
- JWT session management (refresh, logout)
- Current member lookup

Models never log in; they use portal links.
"""

from __future__ import annotations

from typing import Optional

import jwt
import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, Response
from pydantic import BaseModel, EmailStr
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from agency_portal.core.auth import (
    CSRF_COOKIE,
    SESSION_COOKIE,
    authenticate_token,
    authorization_header,
    create_jwt,
    decode_jwt,
    extract_token,
    generate_csrf_token,
    is_jwt_revoked,
    revoke_jwt,
    verify_password,
)
from agency_portal.core.config import get_settings
from agency_portal.core.database import get_session
from agency_portal.models.agency import Agency
from agency_portal.models.base import utcnow
from agency_portal.models.team import TeamMember
from agency_portal_shared.schemas.common import AgencyStatus, MemberStatus

log = structlog.get_logger()
settings = get_settings()
router = APIRouter()

# Cookie config
COOKIE_KWARGS = {
    "httponly": True,
    "secure": not settings.debug,  # allow non-HTTPS in dev
    "samesite": "lax",
    "path": "/",
    "max_age": settings.jwt_expire_minutes * 60,
}


def _set_session_cookies(response: Response, token: str, csrf: str) -> None:
    """Set the session JWT and CSRF cookies on a response."""
    response.set_cookie(key=SESSION_COOKIE, value=token, **COOKIE_KWARGS)
    response.set_cookie(
        key=CSRF_COOKIE,
        value=csrf,
        httponly=False,  # JS must read this
        secure=not settings.debug,
        samesite="lax",
        path="/",
        max_age=settings.jwt_expire_minutes * 60,
    )


class LoginRequest(BaseModel):
    agency_slug: str
    email: EmailStr
    password: str


class AuthResponse(BaseModel):
    member_id: str
    agency_slug: str
    role: str
    message: str
    access_token: Optional[str] = None  # for non-browser clients


class MeResponse(BaseModel):
    member_id: str
    agency_id: str
    email: str
    name: str
    role: str


# ---------------------------------------------------------------------------
# Email/Password Login
# ---------------------------------------------------------------------------

@router.post("/login", response_model=AuthResponse)
async def login(
    body: LoginRequest,
    response: Response,
    session: AsyncSession = Depends(get_session),
):
    """Authenticate with email/password and receive a JWT session."""
    result = await session.execute(
        select(TeamMember, Agency)
        .join(Agency, Agency.id == TeamMember.agency_id)
        .where(
            Agency.slug == body.agency_slug,
            func.lower(TeamMember.email) == body.email.lower(),
        )
    )
    row = result.one_or_none()

    if not row or not row[0].password_hash:
        raise HTTPException(status_code=401, detail="Invalid email or password")
    member, agency = row

    if not verify_password(body.password, member.password_hash):
        log.warning("auth.login_failure", member_id=str(member.id), reason="bad_password")
        raise HTTPException(status_code=401, detail="Invalid email or password")

    if member.status != MemberStatus.ACTIVE.value:
        raise HTTPException(status_code=403, detail="Your team access is not active")
    if agency.status != AgencyStatus.ACTIVE.value:
        raise HTTPException(status_code=403, detail="This agency is suspended")

    member.last_login_at = utcnow()
    session.add(member)

    token, _jti = create_jwt(member_id=member.id, agency_id=agency.id, role=member.role)
    csrf = generate_csrf_token()
    _set_session_cookies(response, token, csrf)

    log.info("auth.login_success", member_id=str(member.id), agency_id=str(agency.id))
    return AuthResponse(
        member_id=str(member.id),
        agency_slug=agency.slug,
        role=member.role,
        message="Login successful",
        access_token=token,
    )


# ---------------------------------------------------------------------------
# Session Management
# ---------------------------------------------------------------------------

@router.get("/me", response_model=MeResponse)
async def me(
    request: Request,
    authorization: Optional[str] = Depends(authorization_header),
    session: AsyncSession = Depends(get_session),
):
    """Return the member behind the current session."""
    token = extract_token(request, authorization)
    if not token:
        raise HTTPException(status_code=401, detail="Authentication required")
    member = await authenticate_token(token, session)
    return MeResponse(
        member_id=str(member.id),
        agency_id=str(member.agency_id),
        email=member.email,
        name=member.name,
        role=member.role,
    )


@router.post("/refresh")
async def refresh_session(
    request: Request,
    response: Response,
    session: AsyncSession = Depends(get_session),
):
    """Refresh the current JWT session by issuing a new token."""
    token = request.cookies.get(SESSION_COOKIE)
    if not token:
        raise HTTPException(status_code=401, detail="No active session")

    member = await authenticate_token(token, session)
    payload = decode_jwt(token)

    new_token, _new_jti = create_jwt(
        member_id=member.id,
        agency_id=member.agency_id,
        role=member.role,
    )
    jti = payload.get("jti")
    if jti:
        await revoke_jwt(jti)

    csrf = generate_csrf_token()
    _set_session_cookies(response, new_token, csrf)
    return {"message": "Session refreshed"}


@router.post("/logout")
async def logout(
    request: Request,
    response: Response,
    authorization: Optional[str] = Depends(authorization_header),
):
    """Invalidate the current session."""
    token = extract_token(request, authorization)
    if token:
        try:
            payload = decode_jwt(token)
        except jwt.PyJWTError:
            payload = {}  # already invalid, just clear cookies
        jti = payload.get("jti")
        if jti and not await is_jwt_revoked(jti):
            await revoke_jwt(jti)
            log.info("auth.logout", member_id=payload.get("sub"))

    response.delete_cookie(SESSION_COOKIE, path="/")
    response.delete_cookie(CSRF_COOKIE, path="/")
    return {"message": "Logged out"}
