"""Agency model (tenant root)."""

from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlmodel import Field

from .base import TimestampMixin, UUIDMixin


class Agency(UUIDMixin, TimestampMixin, table=True):
    __tablename__ = "agencies"

    name: str = Field(nullable=False)
    slug: str = Field(unique=True, index=True, nullable=False)
    status: str = Field(default="active", nullable=False)  # active | suspended
    subscription_status: str = Field(default="trial", nullable=False)
    trial_ends_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
