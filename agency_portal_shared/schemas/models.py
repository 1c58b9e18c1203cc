"""Creator model profile schemas.

Reads are not modelled here: model profiles leave the server as plain
dicts produced by the visibility filter.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, EmailStr, Field

from .common import ModelStatus


class ModelProfileFields(BaseModel):
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, pattern=r"^\+?[\d\s\-()]{7,20}$")
    bio: Optional[str] = Field(default=None, max_length=2000)
    avatar_url: Optional[str] = None
    instagram_handle: Optional[str] = None
    twitter_handle: Optional[str] = None
    tiktok_handle: Optional[str] = None
    onlyfans_handle: Optional[str] = None
    joined_date: Optional[datetime] = None
    contract_split: Optional[float] = Field(default=None, ge=0, le=100)
    contract_notes: Optional[str] = None
    internal_notes: Optional[str] = None
    content_preferences: Optional[Dict[str, object]] = None


class CreatorModelCreate(ModelProfileFields):
    name: str = Field(min_length=1, max_length=200)
    field_visibility: Optional[Dict[str, bool]] = None


class CreatorModelUpdate(ModelProfileFields):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    status: Optional[ModelStatus] = None
    field_visibility: Optional[Dict[str, bool]] = None


class PortalTokenRotated(BaseModel):
    model_id: str
    portal_token: str
