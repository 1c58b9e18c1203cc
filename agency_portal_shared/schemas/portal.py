"""Schemas for the token-authenticated model portal."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, UUID4

from .common import RequestPriority, RequestStatus
from .uploads import UploadRead


class PortalAgency(BaseModel):
    name: str


class PortalRequest(BaseModel):
    id: UUID4
    title: str
    description: Optional[str] = None
    reference_urls: List[str] = Field(default_factory=list)
    quantity_photo: int
    quantity_video: int
    priority: RequestPriority
    due_date: Optional[datetime] = None
    status: RequestStatus


class PortalView(BaseModel):
    model: dict
    agency: PortalAgency
    requests: List[PortalRequest] = Field(default_factory=list)
    recent_uploads: List[UploadRead] = Field(default_factory=list)


class PortalUploadResponse(BaseModel):
    uploads: List[UploadRead]


class PortalNote(BaseModel):
    note: str = Field(min_length=1, max_length=2000)
