"""
Content request service layer (staff side).

Handles:
- Request authoring and editing, gated on the author's permission over the model
- Listing scoped to the models a member may see, with per-request upload counts
- Request detail with the model redacted for the viewer
- Pending-review queue
"""

from __future__ import annotations

import uuid
from collections import defaultdict
from typing import Optional, Sequence

import structlog
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from agency_portal.core.audit import record_event
from agency_portal.core.auth import AuthenticatedMember
from agency_portal.core.errors import Conflict, NotFound
from agency_portal.core.permissions import Action, ensure_can_act, model_scope
from agency_portal.models.content import ContentRequest, Upload
from agency_portal.services.creator_models import (
    ensure_model_visible,
    get_model_or_404,
    present_model_for,
)
from agency_portal.services.lifecycle import cancel_request, recompute_request_status
from agency_portal.services.uploads import upload_read
from agency_portal_shared.schemas.common import (
    ActorType,
    ModelStatus,
    RequestStatus,
    UploadStatus,
)
from agency_portal_shared.schemas.content_requests import (
    ContentRequestCreate,
    ContentRequestDetail,
    ContentRequestRead,
    ContentRequestUpdate,
)
from agency_portal_shared.schemas.uploads import UploadRead

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def get_request_or_404(
    session: AsyncSession, request_id: uuid.UUID, agency_id: uuid.UUID
) -> ContentRequest:
    request = await session.get(ContentRequest, request_id)
    if not request or request.agency_id != agency_id:
        raise NotFound("Content request not found")
    return request


async def _upload_counts(
    session: AsyncSession, request_ids: Sequence[uuid.UUID]
) -> dict[uuid.UUID, dict[str, int]]:
    counts: dict[uuid.UUID, dict[str, int]] = defaultdict(dict)
    if not request_ids:
        return counts
    result = await session.execute(
        select(Upload.content_request_id, Upload.status, func.count())
        .where(Upload.content_request_id.in_(request_ids))
        .group_by(Upload.content_request_id, Upload.status)
    )
    for request_id, status, count in result.all():
        counts[request_id][status] = count
    return counts


def request_read(request: ContentRequest, counts: Optional[dict[str, int]] = None) -> ContentRequestRead:
    counts = counts or {}
    return ContentRequestRead(
        id=request.id,
        agency_id=request.agency_id,
        model_id=request.model_id,
        title=request.title,
        description=request.description,
        reference_urls=request.reference_urls or [],
        quantity_photo=request.quantity_photo,
        quantity_video=request.quantity_video,
        priority=request.priority,
        due_date=request.due_date,
        status=request.status,
        created_by=request.created_by,
        upload_count=sum(counts.values()),
        pending_review_count=counts.get(UploadStatus.PENDING_REVIEW.value, 0),
        approved_count=counts.get(UploadStatus.APPROVED.value, 0),
        created_at=request.created_at,
        updated_at=request.updated_at,
    )


async def enrich_request(session: AsyncSession, request: ContentRequest) -> ContentRequestRead:
    counts = await _upload_counts(session, [request.id])
    return request_read(request, counts.get(request.id))


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def list_requests(
    session: AsyncSession,
    auth: AuthenticatedMember,
    model_id: Optional[uuid.UUID] = None,
    status: Optional[RequestStatus] = None,
) -> list[ContentRequestRead]:
    stmt = select(ContentRequest).where(ContentRequest.agency_id == auth.agency_id)
    if model_id:
        stmt = stmt.where(ContentRequest.model_id == model_id)
    if status:
        stmt = stmt.where(ContentRequest.status == status.value)

    scope = model_scope(auth)
    if scope is not None:
        if not scope:
            return []
        stmt = stmt.where(ContentRequest.model_id.in_(scope))

    result = await session.execute(stmt.order_by(ContentRequest.created_at.desc()))
    requests = list(result.scalars().all())
    counts = await _upload_counts(session, [r.id for r in requests])
    return [request_read(r, counts.get(r.id)) for r in requests]


async def get_request_detail(
    session: AsyncSession, auth: AuthenticatedMember, request_id: uuid.UUID
) -> ContentRequestDetail:
    request = await get_request_or_404(session, request_id, auth.agency_id)
    model = await get_model_or_404(session, request.model_id, auth.agency_id)
    ensure_model_visible(auth, model)

    result = await session.execute(
        select(Upload)
        .where(Upload.content_request_id == request.id)
        .order_by(Upload.created_at.desc())
    )
    uploads = result.scalars().all()
    counts: dict[str, int] = defaultdict(int)
    for u in uploads:
        counts[u.status] += 1

    return ContentRequestDetail(
        **request_read(request, counts).model_dump(),
        model=present_model_for(model, auth),
        uploads=[upload_read(u) for u in uploads],
    )


async def list_pending_uploads(
    session: AsyncSession, auth: AuthenticatedMember
) -> list[UploadRead]:
    stmt = select(Upload).where(
        Upload.agency_id == auth.agency_id,
        Upload.status == UploadStatus.PENDING_REVIEW.value,
    )
    scope = model_scope(auth)
    if scope is not None:
        if not scope:
            return []
        stmt = stmt.where(Upload.model_id.in_(scope))
    result = await session.execute(stmt.order_by(Upload.created_at))
    return [upload_read(u) for u in result.scalars().all()]


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------


async def create_request(
    session: AsyncSession, auth: AuthenticatedMember, request_in: ContentRequestCreate
) -> ContentRequest:
    model = await get_model_or_404(session, request_in.model_id, auth.agency_id)
    ensure_can_act(auth, Action.AUTHOR_REQUESTS, model.id)
    if model.status != ModelStatus.ACTIVE.value:
        raise Conflict("Content cannot be requested from an archived model.")

    request = ContentRequest(
        agency_id=auth.agency_id,
        model_id=model.id,
        title=request_in.title,
        description=request_in.description,
        reference_urls=list(request_in.reference_urls),
        quantity_photo=request_in.quantity_photo,
        quantity_video=request_in.quantity_video,
        priority=request_in.priority.value,
        due_date=request_in.due_date,
        status=RequestStatus.PENDING.value,
        created_by=auth.member_id,
    )
    session.add(request)
    await session.flush()

    await record_event(
        session,
        agency_id=auth.agency_id,
        event_type="content_request.created",
        payload={
            "request_id": str(request.id),
            "model_id": str(model.id),
            "title": request.title,
            "priority": request.priority,
        },
        actor_id=auth.member_id,
        actor_type=ActorType.TEAM_MEMBER,
    )
    log.info("content_request.created", request_id=str(request.id), model_id=str(model.id))
    return request


async def update_request(
    session: AsyncSession,
    auth: AuthenticatedMember,
    request: ContentRequest,
    request_in: ContentRequestUpdate,
) -> ContentRequest:
    ensure_can_act(auth, Action.AUTHOR_REQUESTS, request.model_id)
    if request.status == RequestStatus.CANCELLED.value:
        raise Conflict("A cancelled request cannot be edited.")

    update_data = request_in.model_dump(exclude_unset=True, mode="json")
    for field in ("title", "priority", "quantity_photo", "quantity_video", "reference_urls"):
        if field in update_data and update_data[field] is None:
            del update_data[field]
    if "due_date" in update_data:
        update_data["due_date"] = request_in.due_date

    for key, value in update_data.items():
        setattr(request, key, value)
    session.add(request)
    await session.flush()

    if {"quantity_photo", "quantity_video"} & update_data.keys():
        request = await recompute_request_status(
            session, request.id, actor_id=auth.member_id, actor_type=ActorType.TEAM_MEMBER
        )

    await record_event(
        session,
        agency_id=request.agency_id,
        event_type="content_request.updated",
        payload={"request_id": str(request.id), "fields": sorted(update_data.keys())},
        actor_id=auth.member_id,
        actor_type=ActorType.TEAM_MEMBER,
    )
    return request


async def cancel(
    session: AsyncSession, auth: AuthenticatedMember, request: ContentRequest
) -> ContentRequest:
    ensure_can_act(auth, Action.AUTHOR_REQUESTS, request.model_id)
    return await cancel_request(session, request, auth.member_id)
