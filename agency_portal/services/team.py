"""
Team management service layer.

Rules enforced here, on top of the admin-only route guard:
- nobody changes their own role or removes themselves
- the owner's role never changes, and the owner is never suspended or removed
- only the owner may change, re-permission or remove an admin
- nobody is promoted to owner through these flows
"""

from __future__ import annotations

import uuid
from typing import Sequence

import structlog
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from agency_portal.core.audit import record_event
from agency_portal.core.auth import AuthenticatedMember
from agency_portal.core.errors import NotFound, PermissionDenied, ValidationError
from agency_portal.core.permissions import Action, ensure_can_act, parse_permissions
from agency_portal.models.creator_model import CreatorModel
from agency_portal.models.team import ModelAssignment, TeamMember
from agency_portal_shared.schemas.common import ActorType, MemberStatus, TeamRole
from agency_portal_shared.schemas.team import TeamMemberRead, TeamMemberUpdate, TeamPermissions

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def get_member_or_404(
    session: AsyncSession, member_id: uuid.UUID, agency_id: uuid.UUID
) -> TeamMember:
    member = await session.get(TeamMember, member_id)
    if not member or member.agency_id != agency_id:
        raise NotFound("Team member not found")
    return member


async def _assignments(
    session: AsyncSession, member_ids: Sequence[uuid.UUID]
) -> dict[uuid.UUID, list[uuid.UUID]]:
    assigned: dict[uuid.UUID, list[uuid.UUID]] = {m: [] for m in member_ids}
    if not member_ids:
        return assigned
    result = await session.execute(
        select(ModelAssignment.team_member_id, ModelAssignment.model_id).where(
            ModelAssignment.team_member_id.in_(member_ids)
        )
    )
    for member_id, model_id in result.all():
        assigned[member_id].append(model_id)
    return assigned


def member_read(
    member: TeamMember, assigned: Sequence[uuid.UUID], *, mask_email: bool = False
) -> TeamMemberRead:
    return TeamMemberRead(
        id=member.id,
        agency_id=member.agency_id,
        email=None if mask_email else member.email,
        name=member.name,
        role=member.role,
        status=member.status,
        permissions=parse_permissions(member.permissions),
        assigned_model_ids=list(assigned),
        last_login_at=member.last_login_at,
        created_at=member.created_at,
    )


async def enrich_member(
    session: AsyncSession, member: TeamMember, auth: AuthenticatedMember
) -> TeamMemberRead:
    assigned = await _assignments(session, [member.id])
    return member_read(member, assigned[member.id], mask_email=not auth.is_admin)


def _guard_target(auth: AuthenticatedMember, target: TeamMember) -> None:
    """Checks shared by every mutation of another member."""
    ensure_can_act(auth, Action.MANAGE_TEAM)
    target_role = TeamRole(target.role)
    if target_role == TeamRole.OWNER and auth.role != TeamRole.OWNER:
        raise PermissionDenied("Only the owner can modify the owner.")
    if target_role == TeamRole.ADMIN and auth.role != TeamRole.OWNER:
        raise PermissionDenied("Only the owner can modify admins.")


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def list_team(session: AsyncSession, auth: AuthenticatedMember) -> list[TeamMemberRead]:
    result = await session.execute(
        select(TeamMember)
        .where(TeamMember.agency_id == auth.agency_id)
        .order_by(TeamMember.created_at)
    )
    members = list(result.scalars().all())
    assigned = await _assignments(session, [m.id for m in members])
    return [member_read(m, assigned[m.id], mask_email=not auth.is_admin) for m in members]


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------


async def update_member(
    session: AsyncSession,
    auth: AuthenticatedMember,
    member_id: uuid.UUID,
    update_in: TeamMemberUpdate,
) -> TeamMember:
    member = await get_member_or_404(session, member_id, auth.agency_id)
    update_data = update_in.model_dump(exclude_unset=True, exclude_none=True)
    is_self = member.id == auth.member_id

    if "role" in update_data:
        new_role = TeamRole(update_data["role"])
        if is_self:
            raise PermissionDenied("You cannot change your own role.")
        if TeamRole(member.role) == TeamRole.OWNER:
            raise PermissionDenied("The owner's role cannot be changed.")
        if new_role == TeamRole.OWNER:
            raise PermissionDenied("Ownership cannot be assigned here.")
        if new_role == TeamRole.ADMIN and auth.role != TeamRole.OWNER:
            raise PermissionDenied("Only the owner can promote members to admin.")
        update_data["role"] = new_role.value

    if "status" in update_data:
        new_status = MemberStatus(update_data["status"])
        if TeamRole(member.role) == TeamRole.OWNER and new_status != MemberStatus.ACTIVE:
            raise PermissionDenied("The owner cannot be suspended.")
        if is_self and new_status != MemberStatus.ACTIVE:
            raise PermissionDenied("You cannot suspend yourself.")
        update_data["status"] = new_status.value

    if not is_self:
        _guard_target(auth, member)

    for key, value in update_data.items():
        setattr(member, key, value)
    session.add(member)
    await session.flush()

    await record_event(
        session,
        agency_id=auth.agency_id,
        event_type="team.member_updated",
        payload={"member_id": str(member.id), "changes": update_data},
        actor_id=auth.member_id,
        actor_type=ActorType.TEAM_MEMBER,
    )
    log.info("team.member_updated", member_id=str(member.id), fields=sorted(update_data.keys()))
    return member


async def update_permissions(
    session: AsyncSession,
    auth: AuthenticatedMember,
    member_id: uuid.UUID,
    permissions: TeamPermissions,
) -> TeamMember:
    member = await get_member_or_404(session, member_id, auth.agency_id)
    _guard_target(auth, member)

    member.permissions = permissions.model_dump(mode="json")
    session.add(member)
    await session.flush()

    await record_event(
        session,
        agency_id=auth.agency_id,
        event_type="team.permissions_updated",
        payload={"member_id": str(member.id), "permissions": member.permissions},
        actor_id=auth.member_id,
        actor_type=ActorType.TEAM_MEMBER,
    )
    log.info("team.permissions_updated", member_id=str(member.id))
    return member


async def set_assignments(
    session: AsyncSession,
    auth: AuthenticatedMember,
    member_id: uuid.UUID,
    model_ids: Sequence[uuid.UUID],
) -> list[uuid.UUID]:
    member = await get_member_or_404(session, member_id, auth.agency_id)
    _guard_target(auth, member)

    model_ids = list(dict.fromkeys(model_ids))
    if model_ids:
        result = await session.execute(
            select(CreatorModel.id).where(
                CreatorModel.agency_id == auth.agency_id,
                CreatorModel.id.in_(model_ids),
            )
        )
        if len(result.all()) != len(model_ids):
            raise ValidationError("One or more models do not belong to this agency.")

    await session.execute(
        delete(ModelAssignment).where(ModelAssignment.team_member_id == member.id)
    )
    for model_id in model_ids:
        session.add(ModelAssignment(team_member_id=member.id, model_id=model_id, agency_id=auth.agency_id))
    await session.flush()

    await record_event(
        session,
        agency_id=auth.agency_id,
        event_type="team.models_assigned",
        payload={"member_id": str(member.id), "model_ids": [str(m) for m in model_ids]},
        actor_id=auth.member_id,
        actor_type=ActorType.TEAM_MEMBER,
    )
    return model_ids


async def remove_member(
    session: AsyncSession, auth: AuthenticatedMember, member_id: uuid.UUID
) -> None:
    member = await get_member_or_404(session, member_id, auth.agency_id)
    if member.id == auth.member_id:
        raise PermissionDenied("You cannot remove yourself from the team.")
    if TeamRole(member.role) == TeamRole.OWNER:
        raise PermissionDenied("The owner cannot be removed.")
    _guard_target(auth, member)

    payload = {"member_id": str(member.id), "email": member.email, "role": member.role}
    await session.execute(
        delete(ModelAssignment).where(ModelAssignment.team_member_id == member.id)
    )
    await session.delete(member)
    await session.flush()

    await record_event(
        session,
        agency_id=auth.agency_id,
        event_type="team.member_removed",
        payload=payload,
        actor_id=auth.member_id,
        actor_type=ActorType.TEAM_MEMBER,
    )
    log.info("team.member_removed", member_id=str(member.id))
