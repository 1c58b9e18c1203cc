"""Append-only audit trail of portal access and staff actions."""

from datetime import datetime, timezone
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import JSONType


class AuditEvent(SQLModel, table=True):
    __tablename__ = "audit_events"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    agency_id: uuid.UUID = Field(foreign_key="agencies.id", nullable=False, index=True)
    type: str = Field(nullable=False, index=True)  # e.g. portal.accessed, upload.reviewed
    actor_id: Optional[uuid.UUID] = None  # team member or model id, by actor_type
    actor_type: str = Field(nullable=False)  # team_member | model | system
    payload: dict = Field(default_factory=dict, sa_type=JSONType, nullable=False)
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
        sa_column_kwargs={"server_default": sa.text("CURRENT_TIMESTAMP")},
        sa_type=sa.DateTime(timezone=True),
    )
