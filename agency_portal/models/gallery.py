"""Gallery items created when uploads are approved."""

from typing import Optional
import uuid

from sqlmodel import Field

from .base import JSONType, TimestampMixin, UUIDMixin


class GalleryItem(UUIDMixin, TimestampMixin, table=True):
    __tablename__ = "gallery_items"

    agency_id: uuid.UUID = Field(foreign_key="agencies.id", nullable=False, index=True)
    model_id: uuid.UUID = Field(foreign_key="creator_models.id", nullable=False, index=True)
    type: str = Field(nullable=False)  # image | video
    url: str = Field(nullable=False)
    thumbnail_url: Optional[str] = None
    title: Optional[str] = None
    source: str = Field(default="model_upload", nullable=False)
    tags: list = Field(default_factory=list, sa_type=JSONType, nullable=False)
