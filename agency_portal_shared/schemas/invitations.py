"""Team and model invitation schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, UUID4

from .common import InvitationKind, InvitationStatus, TeamRole


# ---------------------------------------------------------------------------
# Issue
# ---------------------------------------------------------------------------

class TeamInvitationCreate(BaseModel):
    email: EmailStr
    role: TeamRole = TeamRole.MEMBER
    custom_message: Optional[str] = Field(default=None, max_length=500)
    assigned_model_ids: List[UUID4] = Field(default_factory=list)


class ModelInvitationCreate(BaseModel):
    email: EmailStr
    name: Optional[str] = Field(default=None, max_length=200)
    custom_message: Optional[str] = Field(default=None, max_length=500)


class InvitationRead(BaseModel):
    id: UUID4
    kind: InvitationKind
    email: EmailStr
    name: Optional[str] = None
    role: Optional[TeamRole] = None
    custom_message: Optional[str] = None
    assigned_model_ids: List[UUID4] = Field(default_factory=list)
    status: InvitationStatus
    expires_at: datetime
    accepted_at: Optional[datetime] = None
    created_at: datetime


class InvitationIssued(InvitationRead):
    """Returned once on creation; carries the link to send to the invitee."""
    token: str
    invite_url: str


# ---------------------------------------------------------------------------
# Validate / accept (public)
# ---------------------------------------------------------------------------

class InvitationValidation(BaseModel):
    valid: bool
    kind: InvitationKind
    email: EmailStr
    name: Optional[str] = None
    role: Optional[TeamRole] = None
    agency_name: str
    custom_message: Optional[str] = None
    expires_at: datetime


class TeamInvitationAccept(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    password: str = Field(min_length=8, max_length=128)


class TeamInvitationAccepted(BaseModel):
    member_id: UUID4
    agency_slug: str
    role: TeamRole


class ModelInvitationAccept(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    email: EmailStr
    phone: Optional[str] = Field(default=None, pattern=r"^\+?[\d\s\-()]{7,20}$")
    bio: Optional[str] = Field(default=None, max_length=2000)
    instagram_handle: Optional[str] = None
    twitter_handle: Optional[str] = None
    tiktok_handle: Optional[str] = None
    onlyfans_handle: Optional[str] = None


class ModelInvitationAccepted(BaseModel):
    """The portal token is only ever returned here and on rotation."""
    model_id: UUID4
    portal_token: str
    portal_url: str
