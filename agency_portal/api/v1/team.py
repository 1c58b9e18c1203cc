"""
Team management endpoints (staff).

GET    /team/                         List members (emails masked for non-admins)
GET    /team/invitations              List team invitations (owner/admin)
POST   /team/invitations              Invite a member (owner: admin|member, admin: member)
DELETE /team/invitations/{id}         Revoke a pending invitation
PATCH  /team/{member_id}              Update name/role/status
PUT    /team/{member_id}/permissions  Replace permissions
PUT    /team/{member_id}/models       Replace model assignments
DELETE /team/{member_id}              Remove from team
"""

from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from agency_portal.core.auth import AuthenticatedMember, require_admin, require_member
from agency_portal.core.database import get_session
from agency_portal.services.invitations import (
    invitation_issued,
    invitation_read,
    issue_team_invitation,
    list_invitations,
    revoke_invitation,
)
from agency_portal.services.team import (
    enrich_member,
    get_member_or_404,
    list_team,
    remove_member,
    set_assignments,
    update_member,
    update_permissions,
)
from agency_portal_shared.schemas.common import InvitationKind
from agency_portal_shared.schemas.invitations import (
    InvitationIssued,
    InvitationRead,
    TeamInvitationCreate,
)
from agency_portal_shared.schemas.team import (
    AssignmentUpdate,
    TeamMemberRead,
    TeamMemberUpdate,
    TeamPermissions,
)

router = APIRouter()


@router.get("/", response_model=List[TeamMemberRead])
async def list_team_endpoint(
    agencySlug: str,
    auth: AuthenticatedMember = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    return await list_team(session, auth)


# ---------------------------------------------------------------------------
# Invitations
# ---------------------------------------------------------------------------


@router.get("/invitations", response_model=List[InvitationRead])
async def list_team_invitations_endpoint(
    agencySlug: str,
    auth: AuthenticatedMember = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    invitations = await list_invitations(session, auth.agency_id, InvitationKind.TEAM)
    return [invitation_read(i) for i in invitations]


@router.post("/invitations", response_model=InvitationIssued, status_code=201)
async def invite_team_member_endpoint(
    agencySlug: str,
    invite_in: TeamInvitationCreate,
    auth: AuthenticatedMember = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    """Invite someone to the team. The invite link is returned once."""
    invitation = await issue_team_invitation(session, auth, invite_in)
    return invitation_issued(invitation)


@router.delete("/invitations/{invitation_id}", response_model=InvitationRead)
async def revoke_team_invitation_endpoint(
    agencySlug: str,
    invitation_id: uuid.UUID,
    auth: AuthenticatedMember = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    invitation = await revoke_invitation(session, auth, invitation_id, InvitationKind.TEAM)
    return invitation_read(invitation)


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------


@router.patch("/{member_id}", response_model=TeamMemberRead)
async def update_member_endpoint(
    agencySlug: str,
    member_id: uuid.UUID,
    update_in: TeamMemberUpdate,
    auth: AuthenticatedMember = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    member = await update_member(session, auth, member_id, update_in)
    return await enrich_member(session, member, auth)


@router.put("/{member_id}/permissions", response_model=TeamMemberRead)
async def update_permissions_endpoint(
    agencySlug: str,
    member_id: uuid.UUID,
    permissions: TeamPermissions,
    auth: AuthenticatedMember = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    member = await update_permissions(session, auth, member_id, permissions)
    return await enrich_member(session, member, auth)


@router.put("/{member_id}/models", response_model=TeamMemberRead)
async def set_assignments_endpoint(
    agencySlug: str,
    member_id: uuid.UUID,
    body: AssignmentUpdate,
    auth: AuthenticatedMember = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    await set_assignments(session, auth, member_id, body.model_ids)
    member = await get_member_or_404(session, member_id, auth.agency_id)
    return await enrich_member(session, member, auth)


@router.delete("/{member_id}")
async def remove_member_endpoint(
    agencySlug: str,
    member_id: uuid.UUID,
    auth: AuthenticatedMember = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    await remove_member(session, auth, member_id)
    return {"message": "Team member removed", "member_id": str(member_id)}
