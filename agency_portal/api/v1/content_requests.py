"""
Content request endpoints (staff).

GET   /content-requests/                         List (filters: model_id, status)
POST  /content-requests/                         Create (needs can_upload_content on the model)
GET   /content-requests/uploads/pending          Uploads awaiting review
POST  /content-requests/uploads/bulk-review      Approve/reject many; partial failures in body
POST  /content-requests/uploads/{id}/review      Approve/reject one; 409 if already reviewed
GET   /content-requests/{id}                     Detail with uploads, model redacted per viewer
PATCH /content-requests/{id}                     Edit; quantity changes re-derive status
POST  /content-requests/{id}/cancel              Cancel (not once approved)
"""

from __future__ import annotations

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from agency_portal.core.auth import AuthenticatedMember, require_member
from agency_portal.core.database import get_session
from agency_portal.services.content_requests import (
    cancel,
    create_request,
    enrich_request,
    get_request_detail,
    get_request_or_404,
    list_pending_uploads,
    list_requests,
    update_request,
)
from agency_portal.services.review import bulk_review, review_upload
from agency_portal.services.uploads import upload_read
from agency_portal_shared.schemas.common import RequestStatus
from agency_portal_shared.schemas.content_requests import (
    ContentRequestCreate,
    ContentRequestDetail,
    ContentRequestRead,
    ContentRequestUpdate,
)
from agency_portal_shared.schemas.uploads import (
    BulkReviewRequest,
    BulkReviewResult,
    ReviewRequest,
    UploadRead,
)

router = APIRouter()


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


@router.get("/", response_model=List[ContentRequestRead])
async def list_requests_endpoint(
    agencySlug: str,
    model_id: Optional[uuid.UUID] = None,
    status: Optional[RequestStatus] = None,
    auth: AuthenticatedMember = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """List content requests for the models the caller can see."""
    return await list_requests(session, auth, model_id=model_id, status=status)


@router.post("/", response_model=ContentRequestRead, status_code=201)
async def create_request_endpoint(
    agencySlug: str,
    request_in: ContentRequestCreate,
    auth: AuthenticatedMember = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Create a content request for a model."""
    request = await create_request(session, auth, request_in)
    return await enrich_request(session, request)


# ---------------------------------------------------------------------------
# Review
# ---------------------------------------------------------------------------


@router.get("/uploads/pending", response_model=List[UploadRead])
async def pending_uploads_endpoint(
    agencySlug: str,
    auth: AuthenticatedMember = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Uploads waiting for review, oldest first."""
    return await list_pending_uploads(session, auth)


@router.post("/uploads/bulk-review", response_model=BulkReviewResult)
async def bulk_review_endpoint(
    agencySlug: str,
    body: BulkReviewRequest,
    auth: AuthenticatedMember = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Review many uploads. Always 200; per-upload failures are listed in ``failed``."""
    return await bulk_review(session, body.upload_ids, body.action, auth, body.rejection_note)


@router.post("/uploads/{upload_id}/review", response_model=UploadRead)
async def review_upload_endpoint(
    agencySlug: str,
    upload_id: uuid.UUID,
    body: ReviewRequest,
    auth: AuthenticatedMember = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Approve or reject a single upload."""
    upload = await review_upload(session, upload_id, body.action, auth, body.rejection_note)
    return upload_read(upload)


# ---------------------------------------------------------------------------
# Single request
# ---------------------------------------------------------------------------


@router.get("/{request_id}", response_model=ContentRequestDetail)
async def get_request_endpoint(
    agencySlug: str,
    request_id: uuid.UUID,
    auth: AuthenticatedMember = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Request detail including its uploads."""
    return await get_request_detail(session, auth, request_id)


@router.patch("/{request_id}", response_model=ContentRequestRead)
async def update_request_endpoint(
    agencySlug: str,
    request_id: uuid.UUID,
    request_in: ContentRequestUpdate,
    auth: AuthenticatedMember = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Edit a request's brief, quantities, priority or due date."""
    request = await get_request_or_404(session, request_id, auth.agency_id)
    request = await update_request(session, auth, request, request_in)
    return await enrich_request(session, request)


@router.post("/{request_id}/cancel", response_model=ContentRequestRead)
async def cancel_request_endpoint(
    agencySlug: str,
    request_id: uuid.UUID,
    auth: AuthenticatedMember = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Cancel a request that has not been approved."""
    request = await get_request_or_404(session, request_id, auth.agency_id)
    request = await cancel(session, auth, request)
    return await enrich_request(session, request)
