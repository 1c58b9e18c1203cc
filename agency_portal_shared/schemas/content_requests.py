"""Content request schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, UUID4

from .common import RequestPriority, RequestStatus
from .uploads import UploadRead


class ContentRequestCreate(BaseModel):
    model_id: UUID4
    title: str = Field(min_length=1, max_length=300)
    description: Optional[str] = None
    reference_urls: List[str] = Field(default_factory=list)
    quantity_photo: int = Field(default=0, ge=0)
    quantity_video: int = Field(default=0, ge=0)
    priority: RequestPriority = RequestPriority.NORMAL
    due_date: Optional[datetime] = None


class ContentRequestUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=300)
    description: Optional[str] = None
    reference_urls: Optional[List[str]] = None
    quantity_photo: Optional[int] = Field(default=None, ge=0)
    quantity_video: Optional[int] = Field(default=None, ge=0)
    priority: Optional[RequestPriority] = None
    due_date: Optional[datetime] = None


class ContentRequestRead(BaseModel):
    id: UUID4
    agency_id: UUID4
    model_id: UUID4
    title: str
    description: Optional[str] = None
    reference_urls: List[str] = Field(default_factory=list)
    quantity_photo: int
    quantity_video: int
    priority: RequestPriority
    due_date: Optional[datetime] = None
    status: RequestStatus
    created_by: Optional[UUID4] = None
    upload_count: int = 0
    pending_review_count: int = 0
    approved_count: int = 0
    created_at: datetime
    updated_at: datetime


class ContentRequestDetail(ContentRequestRead):
    model: dict = Field(default_factory=dict)  # filtered per viewer
    uploads: List[UploadRead] = Field(default_factory=list)
