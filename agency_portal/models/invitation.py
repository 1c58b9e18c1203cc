"""Team and model invitations (one table, discriminated by kind)."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field

from .base import JSONType, TimestampMixin, UUIDMixin


class Invitation(UUIDMixin, TimestampMixin, table=True):
    __tablename__ = "invitations"

    agency_id: uuid.UUID = Field(foreign_key="agencies.id", nullable=False, index=True)
    kind: str = Field(nullable=False)  # team | model
    email: str = Field(nullable=False, index=True)
    name: Optional[str] = None
    role: Optional[str] = None  # team invitations only
    token: str = Field(unique=True, index=True, nullable=False)
    custom_message: Optional[str] = None
    assigned_model_ids: list = Field(default_factory=list, sa_type=JSONType, nullable=False)
    status: str = Field(default="pending", nullable=False)  # pending | accepted | revoked
    invited_by: Optional[uuid.UUID] = Field(
        default=None, foreign_key="team_members.id", ondelete="SET NULL"
    )
    expires_at: datetime = Field(nullable=False, sa_type=sa.DateTime(timezone=True))
    accepted_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
    revoked_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
