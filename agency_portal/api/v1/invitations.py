"""
Invitation endpoints.

Staff (agency-scoped):
GET    /agencies/{agencySlug}/model-invitations/        List model invitations
POST   /agencies/{agencySlug}/model-invitations/        Invite a model
DELETE /agencies/{agencySlug}/model-invitations/{id}    Revoke a pending invitation

Public (token in path, two-phase):
GET  /invitations/team/{token}          Validate, never mutates
POST /invitations/team/{token}/accept   Accept once; creates the team member
GET  /invitations/model/{token}         Validate, never mutates
POST /invitations/model/{token}/accept  Accept once; creates the model, returns its portal link

Team invitations are issued under /agencies/{agencySlug}/team/invitations.
"""

from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from agency_portal.core.auth import AuthenticatedMember, require_admin
from agency_portal.core.config import get_settings
from agency_portal.core.database import get_session
from agency_portal.services.invitations import (
    accept_model_invitation,
    accept_team_invitation,
    invitation_issued,
    invitation_read,
    issue_model_invitation,
    list_invitations,
    revoke_invitation,
    validate_invitation,
)
from agency_portal_shared.schemas.common import InvitationKind, TeamRole
from agency_portal_shared.schemas.invitations import (
    InvitationIssued,
    InvitationRead,
    InvitationValidation,
    ModelInvitationAccept,
    ModelInvitationAccepted,
    ModelInvitationCreate,
    TeamInvitationAccept,
    TeamInvitationAccepted,
)

settings = get_settings()

router_scoped = APIRouter()
router_public = APIRouter()


# ---------------------------------------------------------------------------
# Staff: model invitations
# ---------------------------------------------------------------------------


@router_scoped.get("/", response_model=List[InvitationRead])
async def list_model_invitations_endpoint(
    agencySlug: str,
    auth: AuthenticatedMember = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    invitations = await list_invitations(session, auth.agency_id, InvitationKind.MODEL)
    return [invitation_read(i) for i in invitations]


@router_scoped.post("/", response_model=InvitationIssued, status_code=201)
async def invite_model_endpoint(
    agencySlug: str,
    invite_in: ModelInvitationCreate,
    auth: AuthenticatedMember = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    """Invite a model to self-onboard. The invite link is returned once."""
    invitation = await issue_model_invitation(session, auth, invite_in)
    return invitation_issued(invitation)


@router_scoped.delete("/{invitation_id}", response_model=InvitationRead)
async def revoke_model_invitation_endpoint(
    agencySlug: str,
    invitation_id: uuid.UUID,
    auth: AuthenticatedMember = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    invitation = await revoke_invitation(session, auth, invitation_id, InvitationKind.MODEL)
    return invitation_read(invitation)


# ---------------------------------------------------------------------------
# Public: validate / accept
# ---------------------------------------------------------------------------


@router_public.get("/team/{token}", response_model=InvitationValidation)
async def validate_team_invitation_endpoint(
    token: str, session: AsyncSession = Depends(get_session)
):
    return await validate_invitation(session, InvitationKind.TEAM, token)


@router_public.post("/team/{token}/accept", response_model=TeamInvitationAccepted, status_code=201)
async def accept_team_invitation_endpoint(
    token: str,
    body: TeamInvitationAccept,
    session: AsyncSession = Depends(get_session),
):
    """Join the team. Log in afterwards with the chosen password."""
    member, agency = await accept_team_invitation(session, token, body)
    return TeamInvitationAccepted(
        member_id=member.id, agency_slug=agency.slug, role=TeamRole(member.role)
    )


@router_public.get("/model/{token}", response_model=InvitationValidation)
async def validate_model_invitation_endpoint(
    token: str, session: AsyncSession = Depends(get_session)
):
    return await validate_invitation(session, InvitationKind.MODEL, token)


@router_public.post("/model/{token}/accept", response_model=ModelInvitationAccepted, status_code=201)
async def accept_model_invitation_endpoint(
    token: str,
    body: ModelInvitationAccept,
    session: AsyncSession = Depends(get_session),
):
    """Create the model profile and hand back its portal link."""
    model = await accept_model_invitation(session, token, body)
    return ModelInvitationAccepted(
        model_id=model.id,
        portal_token=model.portal_token,
        portal_url=f"{settings.public_base_url.rstrip('/')}/portal/{model.portal_token}",
    )
