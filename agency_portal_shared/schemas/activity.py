"""Audit/activity log schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, UUID4

from .common import ActorType


class AuditEventRead(BaseModel):
    id: UUID4
    agency_id: UUID4
    type: str
    actor_id: Optional[UUID4] = None
    actor_type: ActorType
    payload: dict = Field(default_factory=dict)
    timestamp: datetime
