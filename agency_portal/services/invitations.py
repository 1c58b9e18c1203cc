"""
Team and model invitations.

Both kinds share one table and one two-phase public flow:

1. validate: read-only, reports whether the token can still be accepted
2. accept:   claims the invitation with a conditional pending → accepted
             update, then creates the team member or model

Expiry is evaluated lazily from ``expires_at``; nothing writes ``expired``.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from typing import Optional

import structlog
from sqlalchemy import func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from agency_portal.core.audit import record_event
from agency_portal.core.auth import AuthenticatedMember, hash_password
from agency_portal.core.config import get_settings
from agency_portal.core.errors import (
    Conflict,
    InvitationAlreadyAccepted,
    InvitationExpired,
    InvitationRevoked,
    NotFound,
    PermissionDenied,
    ValidationError,
)
from agency_portal.core.logging import redact_token
from agency_portal.core.permissions import Action, default_permissions, ensure_can_act
from agency_portal.models.agency import Agency
from agency_portal.models.base import ensure_aware, utcnow
from agency_portal.models.creator_model import CreatorModel
from agency_portal.models.invitation import Invitation
from agency_portal.models.team import ModelAssignment, TeamMember
from agency_portal.services.creator_models import create_model, find_model_by_email
from agency_portal_shared.schemas.common import (
    ActorType,
    InvitationKind,
    InvitationStatus,
    MemberStatus,
    TeamRole,
)
from agency_portal_shared.schemas.invitations import (
    InvitationIssued,
    InvitationRead,
    InvitationValidation,
    ModelInvitationAccept,
    ModelInvitationCreate,
    TeamInvitationAccept,
    TeamInvitationCreate,
)
from agency_portal_shared.schemas.models import CreatorModelCreate

log = structlog.get_logger()
settings = get_settings()

# Roles each inviter may hand out
INVITABLE_ROLES: dict[TeamRole, frozenset[TeamRole]] = {
    TeamRole.OWNER: frozenset({TeamRole.ADMIN, TeamRole.MEMBER}),
    TeamRole.ADMIN: frozenset({TeamRole.MEMBER}),
    TeamRole.MEMBER: frozenset(),
}

INVITE_PATHS = {
    InvitationKind.TEAM: "join",
    InvitationKind.MODEL: "model-invite",
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def generate_invitation_token() -> str:
    return str(uuid.uuid4())


def invitation_status(invitation: Invitation, now: Optional[datetime] = None) -> InvitationStatus:
    """Effective status, with pending-but-past-expiry reported as expired."""
    status = InvitationStatus(invitation.status)
    if status != InvitationStatus.PENDING:
        return status
    now = now or utcnow()
    if ensure_aware(invitation.expires_at) <= now:
        return InvitationStatus.EXPIRED
    return status


def invite_url(invitation: Invitation) -> str:
    base = settings.public_base_url.rstrip("/")
    return f"{base}/{INVITE_PATHS[InvitationKind(invitation.kind)]}/{invitation.token}"


def invitation_read(invitation: Invitation) -> InvitationRead:
    return InvitationRead(
        id=invitation.id,
        kind=invitation.kind,
        email=invitation.email,
        name=invitation.name,
        role=invitation.role,
        custom_message=invitation.custom_message,
        assigned_model_ids=invitation.assigned_model_ids or [],
        status=invitation_status(invitation),
        expires_at=invitation.expires_at,
        accepted_at=invitation.accepted_at,
        created_at=invitation.created_at,
    )


def invitation_issued(invitation: Invitation) -> InvitationIssued:
    return InvitationIssued(
        **invitation_read(invitation).model_dump(),
        token=invitation.token,
        invite_url=invite_url(invitation),
    )


async def _has_pending_invitation(
    session: AsyncSession, agency_id: uuid.UUID, kind: InvitationKind, email: str
) -> bool:
    result = await session.execute(
        select(Invitation).where(
            Invitation.agency_id == agency_id,
            Invitation.kind == kind.value,
            func.lower(Invitation.email) == email.lower(),
            Invitation.status == InvitationStatus.PENDING.value,
        )
    )
    return any(
        invitation_status(inv) == InvitationStatus.PENDING for inv in result.scalars().all()
    )


async def find_member_by_email(
    session: AsyncSession, agency_id: uuid.UUID, email: str
) -> Optional[TeamMember]:
    result = await session.execute(
        select(TeamMember).where(
            TeamMember.agency_id == agency_id,
            func.lower(TeamMember.email) == email.lower(),
        )
    )
    return result.scalars().first()


async def get_invitation_or_404(
    session: AsyncSession,
    invitation_id: uuid.UUID,
    agency_id: uuid.UUID,
    kind: InvitationKind,
) -> Invitation:
    invitation = await session.get(Invitation, invitation_id)
    if not invitation or invitation.agency_id != agency_id or invitation.kind != kind.value:
        raise NotFound("Invitation not found")
    return invitation


async def _create_invitation(session: AsyncSession, invitation: Invitation) -> Invitation:
    session.add(invitation)
    await session.flush()
    await record_event(
        session,
        agency_id=invitation.agency_id,
        event_type="invitation.issued",
        payload={
            "invitation_id": str(invitation.id),
            "kind": invitation.kind,
            "email": invitation.email,
            "role": invitation.role,
            "token": redact_token(invitation.token),
        },
        actor_id=invitation.invited_by,
        actor_type=ActorType.TEAM_MEMBER,
    )
    log.info(
        "invitation.issued",
        invitation_id=str(invitation.id),
        kind=invitation.kind,
        token=redact_token(invitation.token),
    )
    return invitation


# ---------------------------------------------------------------------------
# Issue / list / revoke (staff)
# ---------------------------------------------------------------------------


async def issue_team_invitation(
    session: AsyncSession, auth: AuthenticatedMember, invite_in: TeamInvitationCreate
) -> Invitation:
    ensure_can_act(auth, Action.INVITE)
    if invite_in.role not in INVITABLE_ROLES[auth.role]:
        raise PermissionDenied(f"You cannot invite team members with the {invite_in.role.value} role.")

    email = invite_in.email.lower()
    if await find_member_by_email(session, auth.agency_id, email):
        raise Conflict("This person is already on your team.")
    if await _has_pending_invitation(session, auth.agency_id, InvitationKind.TEAM, email):
        raise Conflict("A pending invitation already exists for this email.")

    model_ids = list(dict.fromkeys(invite_in.assigned_model_ids))
    if model_ids:
        result = await session.execute(
            select(CreatorModel.id).where(
                CreatorModel.agency_id == auth.agency_id,
                CreatorModel.id.in_(model_ids),
            )
        )
        if len(result.all()) != len(model_ids):
            raise NotFound("One or more assigned models were not found.")

    invitation = Invitation(
        agency_id=auth.agency_id,
        kind=InvitationKind.TEAM.value,
        email=email,
        role=invite_in.role.value,
        token=generate_invitation_token(),
        custom_message=invite_in.custom_message,
        assigned_model_ids=[str(m) for m in model_ids],
        status=InvitationStatus.PENDING.value,
        invited_by=auth.member_id,
        expires_at=utcnow() + timedelta(days=settings.team_invitation_ttl_days),
    )
    return await _create_invitation(session, invitation)


async def issue_model_invitation(
    session: AsyncSession, auth: AuthenticatedMember, invite_in: ModelInvitationCreate
) -> Invitation:
    ensure_can_act(auth, Action.INVITE)

    email = invite_in.email.lower()
    if await find_model_by_email(session, auth.agency_id, email):
        raise Conflict("A model with this email already exists in your agency.")
    if await _has_pending_invitation(session, auth.agency_id, InvitationKind.MODEL, email):
        raise Conflict("A pending invitation already exists for this email.")

    invitation = Invitation(
        agency_id=auth.agency_id,
        kind=InvitationKind.MODEL.value,
        email=email,
        name=invite_in.name,
        token=generate_invitation_token(),
        custom_message=invite_in.custom_message,
        status=InvitationStatus.PENDING.value,
        invited_by=auth.member_id,
        expires_at=utcnow() + timedelta(days=settings.model_invitation_ttl_days),
    )
    return await _create_invitation(session, invitation)


async def list_invitations(
    session: AsyncSession, agency_id: uuid.UUID, kind: InvitationKind
) -> list[Invitation]:
    result = await session.execute(
        select(Invitation)
        .where(Invitation.agency_id == agency_id, Invitation.kind == kind.value)
        .order_by(Invitation.created_at.desc())
    )
    return list(result.scalars().all())


async def revoke_invitation(
    session: AsyncSession,
    auth: AuthenticatedMember,
    invitation_id: uuid.UUID,
    kind: InvitationKind,
) -> Invitation:
    ensure_can_act(auth, Action.INVITE)
    invitation = await get_invitation_or_404(session, invitation_id, auth.agency_id, kind)
    if invitation_status(invitation) != InvitationStatus.PENDING:
        raise Conflict(f"Only pending invitations can be cancelled (this one is {invitation_status(invitation).value}).")

    result = await session.execute(
        update(Invitation)
        .where(Invitation.id == invitation.id, Invitation.status == InvitationStatus.PENDING.value)
        .values(status=InvitationStatus.REVOKED.value, revoked_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise Conflict("This invitation is no longer pending.")
    await session.refresh(invitation)

    await record_event(
        session,
        agency_id=invitation.agency_id,
        event_type="invitation.revoked",
        payload={"invitation_id": str(invitation.id), "kind": invitation.kind},
        actor_id=auth.member_id,
        actor_type=ActorType.TEAM_MEMBER,
    )
    log.info("invitation.revoked", invitation_id=str(invitation.id), kind=invitation.kind)
    return invitation


# ---------------------------------------------------------------------------
# Validate / accept (public)
# ---------------------------------------------------------------------------


def _raise_for_status(status: InvitationStatus) -> None:
    if status == InvitationStatus.ACCEPTED:
        raise InvitationAlreadyAccepted()
    if status == InvitationStatus.REVOKED:
        raise InvitationRevoked()
    if status == InvitationStatus.EXPIRED:
        raise InvitationExpired()


async def _load_by_token(
    session: AsyncSession, kind: InvitationKind, token: str
) -> tuple[Invitation, Agency]:
    result = await session.execute(
        select(Invitation, Agency)
        .join(Agency, Agency.id == Invitation.agency_id)
        .where(Invitation.token == token, Invitation.kind == kind.value)
    )
    row = result.one_or_none()
    if row is None:
        log.warning("invitation.token_not_found", kind=kind.value, token=redact_token(token))
        raise NotFound("Invalid invitation link.")
    return row


async def validate_invitation(
    session: AsyncSession, kind: InvitationKind, token: str
) -> InvitationValidation:
    """Check an invitation token without changing anything."""
    invitation, agency = await _load_by_token(session, kind, token)
    _raise_for_status(invitation_status(invitation))
    return InvitationValidation(
        valid=True,
        kind=invitation.kind,
        email=invitation.email,
        name=invitation.name,
        role=invitation.role,
        agency_name=agency.name,
        custom_message=invitation.custom_message,
        expires_at=invitation.expires_at,
    )


async def _claim(session: AsyncSession, invitation: Invitation) -> None:
    """Move a pending invitation to accepted, exactly once."""
    _raise_for_status(invitation_status(invitation))
    result = await session.execute(
        update(Invitation)
        .where(Invitation.id == invitation.id, Invitation.status == InvitationStatus.PENDING.value)
        .values(status=InvitationStatus.ACCEPTED.value, accepted_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await session.refresh(invitation)
        _raise_for_status(invitation_status(invitation))
        raise InvitationAlreadyAccepted()
    await session.refresh(invitation)


async def accept_team_invitation(
    session: AsyncSession, token: str, accept_in: TeamInvitationAccept
) -> tuple[TeamMember, Agency]:
    invitation, agency = await _load_by_token(session, InvitationKind.TEAM, token)
    _raise_for_status(invitation_status(invitation))
    if await find_member_by_email(session, agency.id, invitation.email):
        raise Conflict("This email already belongs to a team member.")

    await _claim(session, invitation)

    role = TeamRole(invitation.role or TeamRole.MEMBER.value)
    member = TeamMember(
        agency_id=agency.id,
        email=invitation.email,
        name=accept_in.name.strip(),
        role=role.value,
        status=MemberStatus.ACTIVE.value,
        permissions=default_permissions(role).model_dump(mode="json"),
        password_hash=hash_password(accept_in.password),
    )
    session.add(member)
    await session.flush()

    # Models archived or removed since the invite are skipped
    model_ids = [uuid.UUID(m) for m in invitation.assigned_model_ids or []]
    if model_ids:
        result = await session.execute(
            select(CreatorModel.id).where(
                CreatorModel.agency_id == agency.id,
                CreatorModel.id.in_(model_ids),
            )
        )
        for (model_id,) in result.all():
            session.add(ModelAssignment(team_member_id=member.id, model_id=model_id, agency_id=agency.id))
        await session.flush()

    await record_event(
        session,
        agency_id=agency.id,
        event_type="invitation.accepted",
        payload={
            "invitation_id": str(invitation.id),
            "kind": InvitationKind.TEAM.value,
            "member_id": str(member.id),
            "role": role.value,
        },
        actor_id=member.id,
        actor_type=ActorType.TEAM_MEMBER,
    )
    log.info("invitation.accepted", kind="team", member_id=str(member.id), agency_id=str(agency.id))
    return member, agency


async def accept_model_invitation(
    session: AsyncSession, token: str, accept_in: ModelInvitationAccept
) -> CreatorModel:
    invitation, agency = await _load_by_token(session, InvitationKind.MODEL, token)
    _raise_for_status(invitation_status(invitation))
    if accept_in.email.lower() != invitation.email.lower():
        raise ValidationError("Email address does not match the invitation.")

    await _claim(session, invitation)

    model = await create_model(
        session,
        agency.id,
        CreatorModelCreate(
            name=accept_in.name.strip(),
            email=invitation.email,
            phone=accept_in.phone,
            bio=accept_in.bio,
            instagram_handle=accept_in.instagram_handle,
            twitter_handle=accept_in.twitter_handle,
            tiktok_handle=accept_in.tiktok_handle,
            onlyfans_handle=accept_in.onlyfans_handle,
        ),
        actor_type=ActorType.MODEL,
    )

    await record_event(
        session,
        agency_id=agency.id,
        event_type="invitation.accepted",
        payload={
            "invitation_id": str(invitation.id),
            "kind": InvitationKind.MODEL.value,
            "model_id": str(model.id),
        },
        actor_id=model.id,
        actor_type=ActorType.MODEL,
    )
    log.info("invitation.accepted", kind="model", model_id=str(model.id), agency_id=str(agency.id))
    return model
