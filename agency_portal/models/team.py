"""Team members and their model assignments."""

from datetime import datetime, timezone
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import JSONType, TimestampMixin, UUIDMixin


class TeamMember(UUIDMixin, TimestampMixin, table=True):
    __tablename__ = "team_members"
    __table_args__ = (sa.UniqueConstraint("agency_id", "email", name="uq_team_members_agency_email"),)

    agency_id: uuid.UUID = Field(foreign_key="agencies.id", nullable=False, index=True)
    email: str = Field(nullable=False, index=True)
    name: str = Field(nullable=False)
    role: str = Field(default="member", nullable=False)  # owner | admin | member
    status: str = Field(default="active", nullable=False)  # invited | active | suspended
    permissions: dict = Field(default_factory=dict, sa_type=JSONType, nullable=False)
    password_hash: Optional[str] = None
    last_login_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))


class ModelAssignment(SQLModel, table=True):
    __tablename__ = "model_assignments"

    team_member_id: uuid.UUID = Field(foreign_key="team_members.id", primary_key=True)
    model_id: uuid.UUID = Field(foreign_key="creator_models.id", primary_key=True)
    agency_id: uuid.UUID = Field(foreign_key="agencies.id", nullable=False, index=True)
    assigned_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
        sa_type=sa.DateTime(timezone=True),
    )
