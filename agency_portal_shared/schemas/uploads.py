"""Upload and review schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, UUID4

from .common import FileType, ReviewAction, UploadStatus


class UploadMetadata(BaseModel):
    """Free-form details a model attaches to a portal upload."""
    caption: Optional[str] = None
    platform: Optional[str] = None
    category: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    schedule_date: Optional[datetime] = None
    hashtags: List[str] = Field(default_factory=list)


class UploadRead(BaseModel):
    id: UUID4
    model_id: UUID4
    content_request_id: Optional[UUID4] = None
    file_name: str
    file_type: FileType
    mime_type: Optional[str] = None
    file_size: Optional[int] = None
    file_url: str
    thumbnail_url: Optional[str] = None
    status: UploadStatus
    rejection_note: Optional[str] = None
    metadata: dict = Field(default_factory=dict)
    gallery_item_id: Optional[UUID4] = None
    reviewed_by: Optional[UUID4] = None
    reviewed_at: Optional[datetime] = None
    created_at: datetime


# ---------------------------------------------------------------------------
# Review
# ---------------------------------------------------------------------------

class ReviewRequest(BaseModel):
    action: ReviewAction
    rejection_note: Optional[str] = None


class BulkReviewRequest(BaseModel):
    upload_ids: List[UUID4] = Field(min_length=1, max_length=200)
    action: ReviewAction
    rejection_note: Optional[str] = None


class BulkReviewFailure(BaseModel):
    upload_id: UUID4
    code: str
    message: str


class BulkReviewResult(BaseModel):
    approved: int = 0
    rejected: int = 0
    failed: List[BulkReviewFailure] = Field(default_factory=list)
