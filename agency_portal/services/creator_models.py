"""
Creator model service layer.

Handles:
- Model creation with default field visibility and a unique portal token
- Profile updates, split between privileged fields and profile fields
- Archival (the portal token then resolves as inactive)
- Serialisation through the visibility filter
"""

from __future__ import annotations

import re
import uuid
from typing import Any, Optional

import structlog
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from agency_portal.core.audit import record_event
from agency_portal.core.auth import AuthenticatedMember
from agency_portal.core.errors import Conflict, NotFound, PermissionDenied
from agency_portal.core.logging import redact_token
from agency_portal.core.permissions import Action, ensure_can_act, model_scope
from agency_portal.core.visibility import (
    filter_fields,
    viewer_class_for_role,
    with_default_visibility,
)
from agency_portal.models.base import utcnow
from agency_portal.models.creator_model import CreatorModel
from agency_portal.services.portal_tokens import issue_portal_token
from agency_portal_shared.schemas.common import ActorType, ModelStatus, ViewerClass
from agency_portal_shared.schemas.models import CreatorModelCreate, CreatorModelUpdate

log = structlog.get_logger()

# Only owners and admins may change these
PRIVILEGED_FIELDS = frozenset({
    "status",
    "field_visibility",
    "contract_split",
    "contract_notes",
    "internal_notes",
})


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def slugify(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug or "model"


async def _unique_slug(session: AsyncSession, agency_id: uuid.UUID, name: str) -> str:
    base = slugify(name)
    result = await session.execute(
        select(CreatorModel.slug).where(
            CreatorModel.agency_id == agency_id,
            CreatorModel.slug.startswith(base),
        )
    )
    taken = {row[0] for row in result.all()}
    if base not in taken:
        return base
    n = 2
    while f"{base}-{n}" in taken:
        n += 1
    return f"{base}-{n}"


async def get_model_or_404(
    session: AsyncSession, model_id: uuid.UUID, agency_id: uuid.UUID
) -> CreatorModel:
    model = await session.get(CreatorModel, model_id)
    if not model or model.agency_id != agency_id:
        raise NotFound("Model not found")
    return model


async def find_model_by_email(
    session: AsyncSession, agency_id: uuid.UUID, email: str
) -> Optional[CreatorModel]:
    result = await session.execute(
        select(CreatorModel).where(
            CreatorModel.agency_id == agency_id,
            func.lower(CreatorModel.email) == email.lower(),
        )
    )
    return result.scalars().first()


def serialize_model(model: CreatorModel) -> dict[str, Any]:
    return model.model_dump(mode="json")


def present_model(model: CreatorModel, viewer: ViewerClass) -> dict[str, Any]:
    """The model as ``viewer`` may see it."""
    return filter_fields(serialize_model(model), viewer, model.field_visibility)


def present_model_for(model: CreatorModel, auth: AuthenticatedMember) -> dict[str, Any]:
    return present_model(model, viewer_class_for_role(auth.role))


def ensure_model_visible(auth: AuthenticatedMember, model: CreatorModel) -> None:
    """Members restricted to assigned models may not read others."""
    scope = model_scope(auth)
    if scope is not None and model.id not in scope:
        raise PermissionDenied("This model is not assigned to you.")


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------


async def create_model(
    session: AsyncSession,
    agency_id: uuid.UUID,
    model_in: CreatorModelCreate,
    *,
    actor_id: Optional[uuid.UUID] = None,
    actor_type: ActorType = ActorType.TEAM_MEMBER,
) -> CreatorModel:
    if model_in.email and await find_model_by_email(session, agency_id, model_in.email):
        raise Conflict("A model with this email already exists in your agency.")

    data = model_in.model_dump(exclude={"field_visibility"}, exclude_none=True)
    model = CreatorModel(
        agency_id=agency_id,
        slug=await _unique_slug(session, agency_id, model_in.name),
        portal_token=await issue_portal_token(session),
        field_visibility=with_default_visibility(model_in.field_visibility),
        **data,
    )
    session.add(model)
    try:
        await session.flush()
    except IntegrityError:
        log.warning("model.create_conflict", agency_id=str(agency_id), name=model_in.name)
        raise Conflict("A model with these details already exists.")

    await record_event(
        session,
        agency_id=agency_id,
        event_type="model.created",
        payload={"model_id": str(model.id), "name": model.name},
        actor_id=actor_id,
        actor_type=actor_type,
    )
    log.info(
        "model.created",
        model_id=str(model.id),
        agency_id=str(agency_id),
        token=redact_token(model.portal_token),
    )
    return model


async def list_models(
    session: AsyncSession,
    auth: AuthenticatedMember,
    include_archived: bool = False,
) -> list[CreatorModel]:
    stmt = select(CreatorModel).where(CreatorModel.agency_id == auth.agency_id)
    if not include_archived:
        stmt = stmt.where(CreatorModel.status == ModelStatus.ACTIVE.value)
    scope = model_scope(auth)
    if scope is not None:
        if not scope:
            return []
        stmt = stmt.where(CreatorModel.id.in_(scope))
    result = await session.execute(stmt.order_by(CreatorModel.name))
    return list(result.scalars().all())


async def update_model(
    session: AsyncSession,
    model: CreatorModel,
    model_in: CreatorModelUpdate,
    auth: AuthenticatedMember,
) -> CreatorModel:
    ensure_can_act(auth, Action.EDIT_PROFILES, model.id)
    update_data = model_in.model_dump(exclude_unset=True)

    if not auth.is_admin and PRIVILEGED_FIELDS & update_data.keys():
        raise PermissionDenied("Only owners and admins can change these fields.")

    if "field_visibility" in update_data:
        update_data["field_visibility"] = with_default_visibility(
            {**model.field_visibility, **(update_data["field_visibility"] or {})}
        )
    if "status" in update_data and update_data["status"] is not None:
        status = ModelStatus(update_data["status"])
        update_data["status"] = status.value
        model.archived_at = utcnow() if status == ModelStatus.ARCHIVED else None
    if update_data.get("email") and update_data["email"].lower() != (model.email or "").lower():
        if await find_model_by_email(session, model.agency_id, update_data["email"]):
            raise Conflict("A model with this email already exists in your agency.")

    for key, value in update_data.items():
        setattr(model, key, value)

    session.add(model)
    await session.flush()
    await record_event(
        session,
        agency_id=model.agency_id,
        event_type="model.updated",
        payload={"model_id": str(model.id), "fields": sorted(update_data.keys())},
        actor_id=auth.member_id,
        actor_type=ActorType.TEAM_MEMBER,
    )
    return model


async def archive_model(
    session: AsyncSession, model: CreatorModel, auth: AuthenticatedMember
) -> CreatorModel:
    ensure_can_act(auth, Action.MANAGE_MODELS, model.id)
    if model.status == ModelStatus.ARCHIVED.value:
        return model

    model.status = ModelStatus.ARCHIVED.value
    model.archived_at = utcnow()
    session.add(model)
    await session.flush()
    await record_event(
        session,
        agency_id=model.agency_id,
        event_type="model.archived",
        payload={"model_id": str(model.id)},
        actor_id=auth.member_id,
        actor_type=ActorType.TEAM_MEMBER,
    )
    log.info("model.archived", model_id=str(model.id))
    return model
