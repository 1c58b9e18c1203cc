"""Creator model profile. Holds the portal token."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field

from .base import JSONType, TimestampMixin, UUIDMixin


class CreatorModel(UUIDMixin, TimestampMixin, table=True):
    __tablename__ = "creator_models"
    __table_args__ = (sa.UniqueConstraint("agency_id", "slug", name="uq_creator_models_agency_slug"),)

    agency_id: uuid.UUID = Field(foreign_key="agencies.id", nullable=False, index=True)
    name: str = Field(nullable=False)
    slug: str = Field(nullable=False)
    status: str = Field(default="active", nullable=False)  # active | archived
    portal_token: str = Field(unique=True, index=True, nullable=False)
    field_visibility: dict = Field(default_factory=dict, sa_type=JSONType, nullable=False)

    # Profile
    email: Optional[str] = Field(default=None, index=True)
    phone: Optional[str] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    instagram_handle: Optional[str] = None
    twitter_handle: Optional[str] = None
    tiktok_handle: Optional[str] = None
    onlyfans_handle: Optional[str] = None
    joined_date: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
    contract_split: Optional[float] = None
    content_preferences: dict = Field(default_factory=dict, sa_type=JSONType, nullable=False)

    # Staff-only
    contract_notes: Optional[str] = None
    internal_notes: Optional[str] = None
    archived_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
