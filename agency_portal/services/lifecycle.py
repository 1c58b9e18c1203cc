"""
Content request lifecycle.

Status flow: pending → in_progress → delivered → approved, plus cancelled.

Status is derived from the request's linked uploads every time an upload is
created or reviewed, or the requested quantities change:

- approved    no upload is pending review and approved uploads meet the target
- delivered   pending-review + approved uploads meet the target
- in_progress at least one upload has been linked
- pending     nothing linked yet (never re-entered once left)

The target is quantity_photo + quantity_video, with a floor of one. Rejections
can therefore move a delivered or approved request back to in_progress; that
regression is recorded in the audit trail. Cancelled is terminal.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from agency_portal.core.audit import record_event
from agency_portal.core.errors import Conflict
from agency_portal.models.base import utcnow
from agency_portal.models.content import ContentRequest, Upload
from agency_portal_shared.schemas.common import ActorType, RequestStatus, UploadStatus

log = structlog.get_logger()

# Staff may cancel from these; approved and cancelled are closed.
CANCELLABLE_STATUSES = frozenset({
    RequestStatus.PENDING,
    RequestStatus.IN_PROGRESS,
    RequestStatus.DELIVERED,
})

# Requests in these states accept new uploads.
OPEN_STATUSES = CANCELLABLE_STATUSES

STATUS_RANK: dict[RequestStatus, int] = {
    RequestStatus.PENDING: 0,
    RequestStatus.IN_PROGRESS: 1,
    RequestStatus.DELIVERED: 2,
    RequestStatus.APPROVED: 3,
}


# ---------------------------------------------------------------------------
# Pure derivation
# ---------------------------------------------------------------------------


def delivery_threshold(quantity_photo: int, quantity_video: int) -> int:
    return max((quantity_photo or 0) + (quantity_video or 0), 1)


def derive_request_status(
    current: RequestStatus,
    threshold: int,
    pending_review: int,
    approved: int,
    rejected: int = 0,
) -> RequestStatus:
    """Status a request should hold given counts of its linked uploads."""
    current = RequestStatus(current)
    if current == RequestStatus.CANCELLED:
        return current
    if pending_review == 0 and approved >= threshold:
        return RequestStatus.APPROVED
    if pending_review + approved >= threshold:
        return RequestStatus.DELIVERED
    if current == RequestStatus.PENDING and pending_review + approved + rejected == 0:
        return RequestStatus.PENDING
    return RequestStatus.IN_PROGRESS


def is_regression(old: RequestStatus, new: RequestStatus) -> bool:
    if RequestStatus.CANCELLED in (old, new):
        return False
    return STATUS_RANK[RequestStatus(new)] < STATUS_RANK[RequestStatus(old)]


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


async def upload_counts(session: AsyncSession, request_id: uuid.UUID) -> dict[str, int]:
    result = await session.execute(
        select(Upload.status, func.count())
        .where(Upload.content_request_id == request_id)
        .group_by(Upload.status)
    )
    return {status: count for status, count in result.all()}


async def recompute_request_status(
    session: AsyncSession,
    request_id: uuid.UUID,
    *,
    actor_id: Optional[uuid.UUID] = None,
    actor_type: ActorType = ActorType.SYSTEM,
) -> ContentRequest:
    """Re-derive and persist a request's status from its uploads."""
    # Lock the request row so concurrent reviews serialise their recount.
    result = await session.execute(
        select(ContentRequest)
        .where(ContentRequest.id == request_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    request = result.scalar_one()
    old = RequestStatus(request.status)

    counts = await upload_counts(session, request.id)
    new = derive_request_status(
        old,
        delivery_threshold(request.quantity_photo, request.quantity_video),
        pending_review=counts.get(UploadStatus.PENDING_REVIEW.value, 0),
        approved=counts.get(UploadStatus.APPROVED.value, 0),
        rejected=counts.get(UploadStatus.REJECTED.value, 0),
    )
    if new == old:
        return request

    request.status = new.value
    session.add(request)
    await session.flush()

    payload = {
        "request_id": str(request.id),
        "model_id": str(request.model_id),
        "from": old.value,
        "to": new.value,
        "counts": counts,
    }
    await record_event(
        session, request.agency_id, "content_request.status_changed", payload,
        actor_id=actor_id, actor_type=actor_type,
    )
    if is_regression(old, new):
        # Recorded only; nothing downstream is re-notified.
        await record_event(
            session, request.agency_id, "content_request.regressed", payload,
            actor_id=actor_id, actor_type=actor_type,
        )
        log.warning("content_request.regressed", **payload)
    else:
        log.info("content_request.status_changed", **payload)
    return request


# ---------------------------------------------------------------------------
# Staff actions
# ---------------------------------------------------------------------------


def ensure_accepts_uploads(request: ContentRequest) -> None:
    if RequestStatus(request.status) not in OPEN_STATUSES:
        raise Conflict(f"This request is {request.status} and no longer accepts uploads.")


async def cancel_request(
    session: AsyncSession,
    request: ContentRequest,
    actor_id: uuid.UUID,
) -> ContentRequest:
    status = RequestStatus(request.status)
    if status not in CANCELLABLE_STATUSES:
        raise Conflict(f"A request that is {status.value} cannot be cancelled.")

    request.status = RequestStatus.CANCELLED.value
    request.cancelled_at = utcnow()
    session.add(request)
    await session.flush()
    await record_event(
        session,
        request.agency_id,
        "content_request.cancelled",
        {"request_id": str(request.id), "from": status.value},
        actor_id=actor_id,
        actor_type=ActorType.TEAM_MEMBER,
    )
    log.info("content_request.cancelled", request_id=str(request.id), previous=status.value)
    return request
