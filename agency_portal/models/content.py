"""Content requests and the uploads submitted against them."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field

from .base import JSONType, TimestampMixin, UUIDMixin


class ContentRequest(UUIDMixin, TimestampMixin, table=True):
    __tablename__ = "content_requests"

    agency_id: uuid.UUID = Field(foreign_key="agencies.id", nullable=False, index=True)
    model_id: uuid.UUID = Field(foreign_key="creator_models.id", nullable=False, index=True)
    title: str = Field(nullable=False)
    description: Optional[str] = None
    reference_urls: list = Field(default_factory=list, sa_type=JSONType, nullable=False)
    quantity_photo: int = Field(default=0, nullable=False)
    quantity_video: int = Field(default=0, nullable=False)
    priority: str = Field(default="normal", nullable=False)  # low | normal | high | urgent
    due_date: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
    status: str = Field(default="pending", nullable=False, index=True)
    created_by: Optional[uuid.UUID] = Field(
        default=None, foreign_key="team_members.id", ondelete="SET NULL"
    )
    cancelled_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))


class Upload(UUIDMixin, TimestampMixin, table=True):
    __tablename__ = "content_uploads"

    agency_id: uuid.UUID = Field(foreign_key="agencies.id", nullable=False, index=True)
    model_id: uuid.UUID = Field(foreign_key="creator_models.id", nullable=False, index=True)
    content_request_id: Optional[uuid.UUID] = Field(
        default=None, foreign_key="content_requests.id", index=True
    )
    file_name: str = Field(nullable=False)
    file_type: str = Field(nullable=False)  # image | video
    mime_type: Optional[str] = None
    file_size: Optional[int] = None
    file_url: str = Field(nullable=False)
    thumbnail_url: Optional[str] = None
    status: str = Field(default="pending_review", nullable=False, index=True)
    rejection_note: Optional[str] = None
    # "metadata" is reserved on declarative classes
    details: dict = Field(
        default_factory=dict,
        sa_column=sa.Column("metadata", JSONType, nullable=False),
    )
    gallery_item_id: Optional[uuid.UUID] = Field(default=None, foreign_key="gallery_items.id")
    reviewed_by: Optional[uuid.UUID] = Field(
        default=None, foreign_key="team_members.id", ondelete="SET NULL"
    )
    reviewed_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
