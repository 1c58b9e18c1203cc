"""
Upload review: single-item and bulk approve/reject.

An upload moves pending_review → approved or pending_review → rejected exactly
once. The transition is a conditional UPDATE guarded on the current status,
so when two reviewers race only one succeeds and the other gets
AlreadyReviewed. Approval creates a gallery item; both outcomes re-derive the
linked request's status.

Bulk review runs each id through the single-item path and reports per-id
failures in the result instead of failing the batch.
"""

from __future__ import annotations

import uuid
from typing import Iterable, Optional

import structlog
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from agency_portal.core.audit import record_event
from agency_portal.core.auth import AuthenticatedMember
from agency_portal.core.errors import AlreadyReviewed, DomainError, NotFound, ValidationError
from agency_portal.core.permissions import Action, ensure_can_act
from agency_portal.models.base import utcnow
from agency_portal.models.content import ContentRequest, Upload
from agency_portal.services.gallery import promote_upload
from agency_portal.services.lifecycle import recompute_request_status
from agency_portal_shared.schemas.common import ActorType, ReviewAction, UploadStatus
from agency_portal_shared.schemas.uploads import BulkReviewFailure, BulkReviewResult

log = structlog.get_logger()

REVIEW_OUTCOME = {
    ReviewAction.APPROVE: UploadStatus.APPROVED,
    ReviewAction.REJECT: UploadStatus.REJECTED,
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def clean_note(note: Optional[str]) -> Optional[str]:
    if note is None:
        return None
    note = note.strip()
    return note or None


def validate_review(action: ReviewAction | str, note: Optional[str]) -> tuple[ReviewAction, Optional[str]]:
    """Normalise the action and note; a rejection must carry a note."""
    try:
        action = ReviewAction(action)
    except ValueError:
        raise ValidationError("Action must be 'approve' or 'reject'.")
    note = clean_note(note)
    if action == ReviewAction.REJECT and not note:
        raise ValidationError("A rejection note is required when rejecting an upload.")
    return action, note


async def get_upload_or_404(
    session: AsyncSession, upload_id: uuid.UUID, agency_id: uuid.UUID
) -> Upload:
    upload = await session.get(Upload, upload_id)
    if not upload or upload.agency_id != agency_id:
        raise NotFound("Upload not found")
    return upload


# ---------------------------------------------------------------------------
# Single item
# ---------------------------------------------------------------------------


async def review_upload(
    session: AsyncSession,
    upload_id: uuid.UUID,
    action: ReviewAction | str,
    auth: AuthenticatedMember,
    note: Optional[str] = None,
) -> Upload:
    action, note = validate_review(action, note)
    upload = await get_upload_or_404(session, upload_id, auth.agency_id)
    ensure_can_act(auth, Action.REVIEW_UPLOADS, upload.model_id)

    outcome = REVIEW_OUTCOME[action]
    result = await session.execute(
        update(Upload)
        .where(Upload.id == upload.id, Upload.status == UploadStatus.PENDING_REVIEW.value)
        .values(
            status=outcome.value,
            rejection_note=note if action == ReviewAction.REJECT else None,
            reviewed_by=auth.member_id,
            reviewed_at=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        log.info("upload.already_reviewed", upload_id=str(upload.id), attempted=action.value)
        raise AlreadyReviewed()
    await session.refresh(upload)

    if action == ReviewAction.APPROVE:
        title = None
        if upload.content_request_id:
            request = await session.get(ContentRequest, upload.content_request_id)
            title = request.title if request else None
        await promote_upload(session, upload, title)

    if upload.content_request_id:
        await recompute_request_status(
            session,
            upload.content_request_id,
            actor_id=auth.member_id,
            actor_type=ActorType.TEAM_MEMBER,
        )

    await record_event(
        session,
        agency_id=upload.agency_id,
        event_type="upload.reviewed",
        payload={
            "upload_id": str(upload.id),
            "model_id": str(upload.model_id),
            "request_id": str(upload.content_request_id) if upload.content_request_id else None,
            "status": outcome.value,
        },
        actor_id=auth.member_id,
        actor_type=ActorType.TEAM_MEMBER,
    )
    log.info(
        "upload.reviewed",
        upload_id=str(upload.id),
        status=outcome.value,
        reviewer_id=str(auth.member_id),
    )
    return upload


# ---------------------------------------------------------------------------
# Bulk
# ---------------------------------------------------------------------------


async def bulk_review(
    session: AsyncSession,
    upload_ids: Iterable[uuid.UUID],
    action: ReviewAction | str,
    auth: AuthenticatedMember,
    note: Optional[str] = None,
) -> BulkReviewResult:
    """Review each upload independently; never aborts on a single failure.

    One note applies to the whole batch, so a reject without a note is
    refused before any upload is touched.
    """
    try:
        action = ReviewAction(action)
    except ValueError:
        raise ValidationError("Action must be 'approve' or 'reject'.")
    note = clean_note(note)
    if action == ReviewAction.REJECT and not note:
        raise ValidationError("A rejection note is required for bulk rejection.")

    result = BulkReviewResult()
    for upload_id in dict.fromkeys(upload_ids):
        try:
            await review_upload(session, upload_id, action, auth, note)
        except DomainError as exc:
            result.failed.append(
                BulkReviewFailure(upload_id=upload_id, code=exc.code, message=exc.message)
            )
            continue
        if action == ReviewAction.APPROVE:
            result.approved += 1
        else:
            result.rejected += 1

    log.info(
        "upload.bulk_reviewed",
        action=action.value,
        approved=result.approved,
        rejected=result.rejected,
        failed=len(result.failed),
    )
    return result
