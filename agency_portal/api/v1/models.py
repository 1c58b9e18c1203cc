"""
Creator model endpoints (staff).

GET    /models/                              List models visible to the caller (redacted per viewer)
POST   /models/                              Create (owner/admin)
GET    /models/{id}                          Detail (redacted per viewer)
PATCH  /models/{id}                          Update (owner/admin, or member with can_edit_profiles)
DELETE /models/{id}                          Archive (owner/admin)
POST   /models/{id}/rotate-portal-token      Issue a new portal token (owner/admin)
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from agency_portal.core.auth import AuthenticatedMember, require_admin, require_member
from agency_portal.core.database import get_session
from agency_portal.services.creator_models import (
    archive_model,
    create_model,
    ensure_model_visible,
    get_model_or_404,
    list_models,
    present_model_for,
    update_model,
)
from agency_portal.services.portal_tokens import rotate_portal_token
from agency_portal_shared.schemas.models import (
    CreatorModelCreate,
    CreatorModelUpdate,
    PortalTokenRotated,
)

router = APIRouter()


@router.get("/")
async def list_models_endpoint(
    agencySlug: str,
    include_archived: bool = False,
    auth: AuthenticatedMember = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """List models; non-admins only see fields the model has made visible."""
    models = await list_models(session, auth, include_archived=include_archived)
    return [present_model_for(m, auth) for m in models]


@router.post("/", status_code=201)
async def create_model_endpoint(
    agencySlug: str,
    model_in: CreatorModelCreate,
    auth: AuthenticatedMember = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    """Create a model. The response includes the portal token."""
    model = await create_model(session, auth.agency_id, model_in, actor_id=auth.member_id)
    return present_model_for(model, auth)


@router.get("/{model_id}")
async def get_model_endpoint(
    agencySlug: str,
    model_id: uuid.UUID,
    auth: AuthenticatedMember = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    model = await get_model_or_404(session, model_id, auth.agency_id)
    ensure_model_visible(auth, model)
    return present_model_for(model, auth)


@router.patch("/{model_id}")
async def update_model_endpoint(
    agencySlug: str,
    model_id: uuid.UUID,
    model_in: CreatorModelUpdate,
    auth: AuthenticatedMember = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    model = await get_model_or_404(session, model_id, auth.agency_id)
    model = await update_model(session, model, model_in, auth)
    return present_model_for(model, auth)


@router.delete("/{model_id}")
async def archive_model_endpoint(
    agencySlug: str,
    model_id: uuid.UUID,
    auth: AuthenticatedMember = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    """Archive a model. Its portal link stops working."""
    model = await get_model_or_404(session, model_id, auth.agency_id)
    await archive_model(session, model, auth)
    return {"message": "Model archived", "model_id": str(model.id)}


@router.post("/{model_id}/rotate-portal-token", response_model=PortalTokenRotated)
async def rotate_token_endpoint(
    agencySlug: str,
    model_id: uuid.UUID,
    auth: AuthenticatedMember = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    """Replace the model's portal token; the old link stops working immediately."""
    model = await get_model_or_404(session, model_id, auth.agency_id)
    token = await rotate_portal_token(session, model, auth.member_id)
    return PortalTokenRotated(model_id=str(model.id), portal_token=token)
