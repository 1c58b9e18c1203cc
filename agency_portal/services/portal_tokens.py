"""
Portal token authentication.

A portal token is the only credential a creator model ever holds. Resolving
one is a single query that yields a tagged result:

- FOUND     the token names a model that is active, in an active agency
- NOT_FOUND no model holds this token
- INACTIVE  a model holds it but the model is archived or its agency suspended

Only ``authenticate_portal_token`` turns a resolution into an identity, and
every success leaves an access audit record. Tokens are logged by prefix only.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from agency_portal.core.audit import record_event
from agency_portal.core.errors import Conflict, TokenInactive, TokenNotFound
from agency_portal.core.logging import redact_token
from agency_portal.models.agency import Agency
from agency_portal.models.creator_model import CreatorModel
from agency_portal_shared.schemas.common import ActorType, AgencyStatus, ModelStatus

log = structlog.get_logger()

MAX_TOKEN_LENGTH = 128


class TokenOutcome(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    INACTIVE = "inactive"


@dataclass(frozen=True)
class TokenResolution:
    outcome: TokenOutcome
    model: Optional[CreatorModel] = None
    agency: Optional[Agency] = None


def generate_portal_token() -> str:
    """Random 122-bit UUIDv4, never derived from model data."""
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


async def resolve_portal_token(session: AsyncSession, token: str) -> TokenResolution:
    if not token or len(token) > MAX_TOKEN_LENGTH:
        return TokenResolution(TokenOutcome.NOT_FOUND)

    result = await session.execute(
        select(CreatorModel, Agency)
        .join(Agency, Agency.id == CreatorModel.agency_id)
        .where(CreatorModel.portal_token == token)
    )
    row = result.one_or_none()
    if row is None:
        return TokenResolution(TokenOutcome.NOT_FOUND)

    model, agency = row
    if model.status != ModelStatus.ACTIVE.value or agency.status != AgencyStatus.ACTIVE.value:
        return TokenResolution(TokenOutcome.INACTIVE, model=model, agency=agency)
    return TokenResolution(TokenOutcome.FOUND, model=model, agency=agency)


async def authenticate_portal_token(session: AsyncSession, token: str) -> TokenResolution:
    """Resolve ``token`` or raise TokenNotFound / TokenInactive."""
    resolution = await resolve_portal_token(session, token)
    truncated = redact_token(token)

    if resolution.outcome == TokenOutcome.NOT_FOUND:
        log.warning("portal.token_not_found", token=truncated)
        raise TokenNotFound()

    model = resolution.model
    if resolution.outcome == TokenOutcome.INACTIVE:
        log.warning(
            "portal.token_inactive",
            token=truncated,
            model_id=str(model.id),
            model_status=model.status,
            agency_status=resolution.agency.status,
        )
        raise TokenInactive()

    now = datetime.now(timezone.utc)
    await record_event(
        session,
        agency_id=model.agency_id,
        event_type="portal.accessed",
        payload={
            "model_id": str(model.id),
            "truncated_token": truncated,
            "timestamp": now.isoformat(),
        },
        actor_id=model.id,
        actor_type=ActorType.MODEL,
    )
    log.info("portal.access_granted", token=truncated, model_id=str(model.id))
    return resolution


# ---------------------------------------------------------------------------
# Issuance
# ---------------------------------------------------------------------------


async def ensure_token_unused(session: AsyncSession, token: str) -> None:
    """Reject a token some model already holds. Tokens are never reassigned."""
    result = await session.execute(
        select(CreatorModel.id).where(CreatorModel.portal_token == token)
    )
    if result.first() is not None:
        log.error("portal.token_collision", token=redact_token(token))
        raise Conflict("Portal token already in use.")


async def issue_portal_token(session: AsyncSession, token: Optional[str] = None) -> str:
    """Return a fresh token that no model holds."""
    token = token or generate_portal_token()
    await ensure_token_unused(session, token)
    return token


async def rotate_portal_token(
    session: AsyncSession,
    model: CreatorModel,
    actor_id: uuid.UUID,
) -> str:
    """Give ``model`` a new token. The old one stops resolving immediately."""
    old_token = model.portal_token
    new_token = await issue_portal_token(session)
    model.portal_token = new_token
    session.add(model)
    await session.flush()

    await record_event(
        session,
        agency_id=model.agency_id,
        event_type="model.portal_token_rotated",
        payload={
            "model_id": str(model.id),
            "old_token": redact_token(old_token),
            "new_token": redact_token(new_token),
        },
        actor_id=actor_id,
        actor_type=ActorType.TEAM_MEMBER,
    )
    log.info("portal.token_rotated", model_id=str(model.id), token=redact_token(new_token))
    return new_token
