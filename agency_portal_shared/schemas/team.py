"""Team member and permission schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, UUID4

from .common import MemberStatus, PermissionScope, TeamRole


# ---------------------------------------------------------------------------
# Permissions
# ---------------------------------------------------------------------------

class TeamPermissions(BaseModel):
    """Fixed permission structure for a team member.

    Every flag defaults to False and scope defaults to ``assigned``, so an
    empty object grants nothing. Unknown keys are rejected.
    """

    model_config = ConfigDict(extra="forbid")

    scope: PermissionScope = PermissionScope.ASSIGNED
    can_view_analytics: bool = False
    can_send_messages: bool = False
    can_upload_content: bool = False
    can_publish_content: bool = False
    can_view_subscribers: bool = False
    can_export_data: bool = False
    can_edit_profiles: bool = False


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class TeamMemberUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    role: Optional[TeamRole] = None
    status: Optional[MemberStatus] = None


class AssignmentUpdate(BaseModel):
    """Replace the set of models a member is assigned to."""
    model_ids: List[UUID4] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class TeamMemberRead(BaseModel):
    id: UUID4
    agency_id: UUID4
    email: Optional[EmailStr] = None  # masked for non-admin viewers
    name: str
    role: TeamRole
    status: MemberStatus
    permissions: TeamPermissions
    assigned_model_ids: List[UUID4] = Field(default_factory=list)
    last_login_at: Optional[datetime] = None
    created_at: datetime
