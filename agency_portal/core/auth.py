"""
Staff authentication and authorization.

Supports:
- Email/password login for team members (bcrypt hashes)
- JWT session management with Redis revocation list
- Agency-scoped member resolution from the ``{agencySlug}`` path
- Role-based authorization dependencies

Creator models never authenticate here; they use portal tokens.
"""

from __future__ import annotations

import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

import bcrypt
import jwt
import structlog
from fastapi import Depends, HTTPException, Request
from fastapi.security import APIKeyHeader
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from agency_portal.core.config import get_settings
from agency_portal.core.database import get_session
from agency_portal.core.permissions import parse_permissions
from agency_portal.core.redis import get_redis, revoked_jti_key
from agency_portal.models.agency import Agency
from agency_portal.models.team import ModelAssignment, TeamMember
from agency_portal_shared.schemas.common import AgencyStatus, MemberStatus, TeamRole

log = structlog.get_logger()
settings = get_settings()

SESSION_COOKIE = "ap_session"
CSRF_COOKIE = "ap_csrf"

authorization_header = APIKeyHeader(name="Authorization", auto_error=False)

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------

def hash_password(password: str) -> str:
    """Hash a password using bcrypt with cost factor 12."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=12)).decode()


def verify_password(password: str, hashed: str) -> bool:
    """Verify a password against a bcrypt hash."""
    return bcrypt.checkpw(password.encode(), hashed.encode())


# ---------------------------------------------------------------------------
# JWT
# ---------------------------------------------------------------------------

def create_jwt(
    member_id: uuid.UUID,
    agency_id: uuid.UUID,
    role: str,
    *,
    expires_delta: timedelta | None = None,
) -> tuple[str, str]:
    """Create a signed JWT. Returns (token, jti)."""
    jti = str(uuid.uuid4())
    now = datetime.now(timezone.utc)
    exp = now + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    payload = {
        "sub": str(member_id),
        "agency_id": str(agency_id),
        "role": role,
        "iat": now,
        "exp": exp,
        "jti": jti,
    }
    token = jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)
    return token, jti


def decode_jwt(token: str) -> dict:
    """Decode and verify a JWT. Raises jwt.PyJWTError on failure."""
    return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])


# ---------------------------------------------------------------------------
# JWT Revocation (Redis)
# ---------------------------------------------------------------------------

async def revoke_jwt(jti: str, ttl_seconds: int | None = None) -> None:
    """Add a JWT ID to the revocation list in Redis."""
    redis = await get_redis()
    ttl = ttl_seconds or settings.jwt_expire_minutes * 60
    await redis.setex(revoked_jti_key(jti), ttl, "1")


async def is_jwt_revoked(jti: str) -> bool:
    """Check if a JWT ID has been revoked."""
    redis = await get_redis()
    return await redis.exists(revoked_jti_key(jti)) > 0


# ---------------------------------------------------------------------------
# CSRF Token
# ---------------------------------------------------------------------------

def generate_csrf_token() -> str:
    """Generate a random CSRF token."""
    return secrets.token_urlsafe(32)


# ---------------------------------------------------------------------------
# Authentication dependencies
# ---------------------------------------------------------------------------

class AuthenticatedMember:
    """Container for an authenticated team member + their agency context."""

    def __init__(
        self,
        member: TeamMember,
        agency: Agency,
        assigned_model_ids: Iterable[uuid.UUID] = (),
    ):
        self.member = member
        self.agency = agency
        self.member_id = member.id
        self.agency_id = agency.id
        self.role = TeamRole(member.role)
        self.permissions = parse_permissions(member.permissions)
        self.assigned_model_ids = frozenset(assigned_model_ids)

    @property
    def is_admin(self) -> bool:
        return self.role in (TeamRole.OWNER, TeamRole.ADMIN)


def extract_token(request: Request, authorization: Optional[str]) -> Optional[str]:
    """Bearer header first, then the session cookie."""
    if authorization and authorization.startswith("Bearer "):
        return authorization[7:].strip()
    return request.cookies.get(SESSION_COOKIE)


async def resolve_agency(agency_slug: str, session: AsyncSession) -> Agency:
    """Resolve an agency by slug, raise 404 if not found."""
    result = await session.execute(select(Agency).where(Agency.slug == agency_slug))
    agency = result.scalar_one_or_none()
    if not agency:
        raise HTTPException(status_code=404, detail="Agency not found")
    return agency


async def load_assigned_model_ids(
    session: AsyncSession, member_id: uuid.UUID
) -> list[uuid.UUID]:
    result = await session.execute(
        select(ModelAssignment.model_id).where(ModelAssignment.team_member_id == member_id)
    )
    return [row[0] for row in result.all()]


async def authenticate_token(token: str, session: AsyncSession) -> TeamMember:
    """Verify a session JWT and return the active member it names."""
    try:
        payload = decode_jwt(token)
    except jwt.PyJWTError:
        raise HTTPException(status_code=401, detail="Invalid or expired session")

    jti = payload.get("jti")
    if jti and await is_jwt_revoked(jti):
        raise HTTPException(status_code=401, detail="Session has been revoked")

    try:
        member_id = uuid.UUID(payload["sub"])
    except (KeyError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid or expired session")

    member = await session.get(TeamMember, member_id)
    if not member:
        raise HTTPException(status_code=401, detail="Team member not found")
    if member.status != MemberStatus.ACTIVE.value:
        log.info("auth.inactive_member", member_id=str(member.id), status=member.status)
        raise HTTPException(status_code=403, detail="Your team access is not active")
    return member


async def get_authenticated_member(
    request: Request,
    agencySlug: str,
    authorization: Optional[str] = Depends(authorization_header),
    session: AsyncSession = Depends(get_session),
) -> AuthenticatedMember:
    """Main authentication dependency for agency-scoped staff routes."""
    agency = await resolve_agency(agencySlug, session)

    token = extract_token(request, authorization)
    if not token:
        raise HTTPException(status_code=401, detail="Authentication required")

    member = await authenticate_token(token, session)
    if member.agency_id != agency.id:
        # Do not reveal that the agency exists to members of other agencies
        raise HTTPException(status_code=404, detail="Agency not found")
    if agency.status != AgencyStatus.ACTIVE.value:
        raise HTTPException(status_code=403, detail="This agency is suspended")

    assigned = await load_assigned_model_ids(session, member.id)
    auth = AuthenticatedMember(member=member, agency=agency, assigned_model_ids=assigned)
    request.state.auth = auth
    structlog.contextvars.bind_contextvars(
        agency_id=str(agency.id), member_id=str(member.id)
    )
    return auth


# ---------------------------------------------------------------------------
# Authorization dependencies (role checks)
# ---------------------------------------------------------------------------

async def require_member(
    auth: AuthenticatedMember = Depends(get_authenticated_member),
) -> AuthenticatedMember:
    """Any active team member can access this endpoint."""
    return auth


async def require_admin(
    auth: AuthenticatedMember = Depends(get_authenticated_member),
) -> AuthenticatedMember:
    """Requires owner or admin role."""
    if not auth.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return auth


async def require_owner(
    auth: AuthenticatedMember = Depends(get_authenticated_member),
) -> AuthenticatedMember:
    """Requires the agency owner."""
    if auth.role != TeamRole.OWNER:
        raise HTTPException(status_code=403, detail="Owner access required")
    return auth
