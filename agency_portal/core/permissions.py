"""
Team permission scope evaluation.

``can_act`` answers whether a team member may perform an action, optionally
against a specific creator model. Evaluation order:

1. owner  - always allowed
2. admin  - always allowed, including team management
3. member - never allowed team management; otherwise needs the action's
   permission flag AND (scope == all OR the model is assigned to them)

A member with ``scope=assigned`` and no assignments can act on no model.
"""

from __future__ import annotations

import uuid
from enum import Enum
from typing import TYPE_CHECKING, Any, Mapping, Optional

import structlog
from pydantic import ValidationError as PydanticValidationError

from agency_portal.core.errors import PermissionDenied
from agency_portal_shared.schemas.common import PermissionScope, TeamRole
from agency_portal_shared.schemas.team import TeamPermissions

if TYPE_CHECKING:
    from agency_portal.core.auth import AuthenticatedMember

log = structlog.get_logger()


class Action(str, Enum):
    VIEW_ANALYTICS = "view_analytics"
    SEND_MESSAGES = "send_messages"
    AUTHOR_REQUESTS = "author_requests"
    REVIEW_UPLOADS = "review_uploads"
    VIEW_SUBSCRIBERS = "view_subscribers"
    EXPORT_DATA = "export_data"
    EDIT_PROFILES = "edit_profiles"
    # Team management
    MANAGE_TEAM = "manage_team"
    MANAGE_MODELS = "manage_models"
    INVITE = "invite"
    VIEW_ACTIVITY = "view_activity"


ACTION_FLAGS: dict[Action, str] = {
    Action.VIEW_ANALYTICS: "can_view_analytics",
    Action.SEND_MESSAGES: "can_send_messages",
    Action.AUTHOR_REQUESTS: "can_upload_content",
    Action.REVIEW_UPLOADS: "can_publish_content",
    Action.VIEW_SUBSCRIBERS: "can_view_subscribers",
    Action.EXPORT_DATA: "can_export_data",
    Action.EDIT_PROFILES: "can_edit_profiles",
}

TEAM_MANAGEMENT_ACTIONS = frozenset({
    Action.MANAGE_TEAM,
    Action.MANAGE_MODELS,
    Action.INVITE,
    Action.VIEW_ACTIVITY,
})


# ---------------------------------------------------------------------------
# Role presets
# ---------------------------------------------------------------------------

_FULL_ACCESS = TeamPermissions(
    scope=PermissionScope.ALL,
    can_view_analytics=True,
    can_send_messages=True,
    can_upload_content=True,
    can_publish_content=True,
    can_view_subscribers=True,
    can_export_data=True,
    can_edit_profiles=True,
)

ROLE_DEFAULT_PERMISSIONS: dict[TeamRole, TeamPermissions] = {
    TeamRole.OWNER: _FULL_ACCESS,
    TeamRole.ADMIN: _FULL_ACCESS,
    TeamRole.MEMBER: TeamPermissions(
        scope=PermissionScope.ASSIGNED,
        can_send_messages=True,
        can_upload_content=True,
    ),
}


def default_permissions(role: str | TeamRole) -> TeamPermissions:
    """Preset for a newly joined member. Unknown roles get nothing."""
    try:
        preset = ROLE_DEFAULT_PERMISSIONS.get(TeamRole(role))
    except ValueError:
        preset = None
    return (preset or TeamPermissions()).model_copy()


def parse_permissions(raw: Optional[Mapping[str, Any]]) -> TeamPermissions:
    """Read a stored permissions blob into the typed structure.

    Unknown keys are dropped. A blob that does not validate grants nothing.
    """
    if not raw:
        return TeamPermissions()
    known = {k: v for k, v in raw.items() if k in TeamPermissions.model_fields}
    try:
        return TeamPermissions.model_validate(known)
    except PydanticValidationError:
        log.warning("permissions.invalid_blob", keys=sorted(raw.keys()))
        return TeamPermissions()


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------


def can_act(
    member: "AuthenticatedMember",
    action: Action,
    target_model_id: Optional[uuid.UUID] = None,
) -> bool:
    """Whether ``member`` may perform ``action`` (on ``target_model_id``, if given).

    ``member`` needs ``role``, ``permissions`` and ``assigned_model_ids``.
    """
    role = TeamRole(member.role)
    if role == TeamRole.OWNER:
        return True
    if role == TeamRole.ADMIN:
        return True
    if role != TeamRole.MEMBER or action in TEAM_MANAGEMENT_ACTIONS:
        return False

    permissions: TeamPermissions = member.permissions
    if not getattr(permissions, ACTION_FLAGS[action]):
        return False
    if target_model_id is None or permissions.scope == PermissionScope.ALL:
        return True
    return target_model_id in member.assigned_model_ids


def ensure_can_act(
    member: "AuthenticatedMember",
    action: Action,
    target_model_id: Optional[uuid.UUID] = None,
) -> None:
    """Raise PermissionDenied unless ``can_act`` allows it."""
    if not can_act(member, action, target_model_id):
        log.info(
            "permission.denied",
            member_id=str(member.member_id),
            action=action.value,
            model_id=str(target_model_id) if target_model_id else None,
        )
        raise PermissionDenied()


def model_scope(member: "AuthenticatedMember") -> Optional[frozenset[uuid.UUID]]:
    """Model ids a member's listings are restricted to, or None for all."""
    if TeamRole(member.role) in (TeamRole.OWNER, TeamRole.ADMIN):
        return None
    if member.permissions.scope == PermissionScope.ALL:
        return None
    return frozenset(member.assigned_model_ids)
