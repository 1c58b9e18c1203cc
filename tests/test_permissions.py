"""
Tests for team permission evaluation.

Covers:
- Owner and admin bypass
- Member flag + scope checks, including scope=assigned with no assignments
- Team management is never available to members
- Permission blob parsing (unknown keys, bad values)
- Role presets
"""

from __future__ import annotations

import uuid
from types import SimpleNamespace

import pytest
from pydantic import ValidationError as PydanticValidationError

from agency_portal.core.errors import PermissionDenied
from agency_portal.core.permissions import (
    ACTION_FLAGS,
    TEAM_MANAGEMENT_ACTIONS,
    Action,
    can_act,
    default_permissions,
    ensure_can_act,
    model_scope,
    parse_permissions,
)
from agency_portal_shared.schemas.common import PermissionScope, TeamRole
from agency_portal_shared.schemas.team import TeamPermissions

MODEL_A = uuid.uuid4()
MODEL_B = uuid.uuid4()


def member(role=TeamRole.MEMBER, assigned=(), **flags):
    return SimpleNamespace(
        member_id=uuid.uuid4(),
        role=role,
        permissions=TeamPermissions(**flags),
        assigned_model_ids=frozenset(assigned),
    )


# ---------------------------------------------------------------------------
# can_act
# ---------------------------------------------------------------------------

class TestPrivilegedRoles:
    """Owners and admins may do everything."""

    @pytest.mark.parametrize("role", [TeamRole.OWNER, TeamRole.ADMIN])
    @pytest.mark.parametrize("action", list(Action))
    def test_always_allowed(self, role, action):
        """Every action is allowed for privileged roles."""
        # No flags at all; role alone decides
        assert can_act(member(role), action, MODEL_A)


class TestMemberScope:
    """Member flags and model scope."""

    def test_flag_missing_denies(self):
        """Without the flag the action is denied."""
        m = member(scope=PermissionScope.ALL)
        assert not can_act(m, Action.REVIEW_UPLOADS, MODEL_A)

    def test_scope_all_allows_any_model(self):
        """Scope all reaches every model."""
        m = member(scope=PermissionScope.ALL, can_publish_content=True)
        assert can_act(m, Action.REVIEW_UPLOADS, MODEL_A)
        assert can_act(m, Action.REVIEW_UPLOADS, MODEL_B)

    def test_scope_assigned_allows_assigned_model_only(self):
        """Scope assigned reaches assigned models only."""
        m = member(assigned=[MODEL_A], can_publish_content=True)
        assert can_act(m, Action.REVIEW_UPLOADS, MODEL_A)
        assert not can_act(m, Action.REVIEW_UPLOADS, MODEL_B)

    def test_scope_assigned_without_assignments_denies_every_model(self):
        """Scope assigned with no assignments reaches nothing."""
        m = member(can_publish_content=True, can_upload_content=True)
        assert not can_act(m, Action.REVIEW_UPLOADS, MODEL_A)
        assert not can_act(m, Action.AUTHOR_REQUESTS, MODEL_B)

    def test_no_target_only_needs_flag(self):
        """Actions without a model only check the flag."""
        m = member(can_view_analytics=True)
        assert can_act(m, Action.VIEW_ANALYTICS)

    def test_authoring_uses_upload_flag(self):
        """Request authoring is governed by the upload flag."""
        assert ACTION_FLAGS[Action.AUTHOR_REQUESTS] == "can_upload_content"
        m = member(assigned=[MODEL_A], can_upload_content=True)
        assert can_act(m, Action.AUTHOR_REQUESTS, MODEL_A)
        assert not can_act(m, Action.REVIEW_UPLOADS, MODEL_A)

    @pytest.mark.parametrize("action", sorted(TEAM_MANAGEMENT_ACTIONS, key=lambda a: a.value))
    def test_team_management_never_for_members(self, action):
        """Members never manage the team, whatever their flags."""
        m = member(
            scope=PermissionScope.ALL,
            **{flag: True for flag in ACTION_FLAGS.values()},
        )
        assert not can_act(m, action)


class TestEnsureCanAct:
    """Raising on denied actions."""

    def test_raises_permission_denied(self):
        """A denied action raises PermissionDenied."""
        with pytest.raises(PermissionDenied) as exc:
            ensure_can_act(member(), Action.REVIEW_UPLOADS, MODEL_A)
        assert exc.value.status_code == 403
        assert exc.value.code == "PERMISSION_DENIED"

    def test_passes_silently(self):
        """An allowed action returns None."""
        ensure_can_act(member(TeamRole.ADMIN), Action.MANAGE_TEAM)


class TestModelScope:
    """Which models a member's queries are limited to."""

    def test_admin_unrestricted(self):
        """Admins are not limited."""
        assert model_scope(member(TeamRole.ADMIN)) is None

    def test_scope_all_unrestricted(self):
        """Scope all is not limited."""
        assert model_scope(member(scope=PermissionScope.ALL)) is None

    def test_assigned_restricted(self):
        """Scope assigned is limited to assigned model ids."""
        assert model_scope(member(assigned=[MODEL_A])) == frozenset({MODEL_A})


# ---------------------------------------------------------------------------
# Parsing and presets
# ---------------------------------------------------------------------------

class TestParsePermissions:
    """Reading stored permission blobs."""

    def test_empty_grants_nothing(self):
        """An empty blob grants nothing."""
        perms = parse_permissions({})
        assert perms.scope == PermissionScope.ASSIGNED
        assert not any(getattr(perms, flag) for flag in ACTION_FLAGS.values())

    def test_none_grants_nothing(self):
        """A missing blob grants nothing."""
        assert parse_permissions(None) == TeamPermissions()

    def test_unknown_keys_dropped(self):
        """Unknown keys in stored blobs are ignored."""
        perms = parse_permissions({"can_publish_content": True, "can_fly": True})
        assert perms.can_publish_content is True

    def test_invalid_blob_grants_nothing(self):
        """A malformed blob grants nothing."""
        perms = parse_permissions({"scope": "galaxy", "can_publish_content": True})
        assert perms == TeamPermissions()

    def test_unknown_keys_rejected_by_schema(self):
        """The write schema refuses unknown keys."""
        with pytest.raises(PydanticValidationError):
            TeamPermissions(can_fly=True)


class TestDefaults:
    """Permission presets per role."""

    def test_admin_preset_full(self):
        """Admins get every flag and scope all."""
        perms = default_permissions(TeamRole.ADMIN)
        assert perms.scope == PermissionScope.ALL
        assert all(getattr(perms, flag) for flag in ACTION_FLAGS.values())

    def test_member_preset_limited(self):
        """Members start with limited flags on assigned models."""
        perms = default_permissions("member")
        assert perms.scope == PermissionScope.ASSIGNED
        assert perms.can_upload_content
        assert not perms.can_publish_content

    def test_unknown_role_gets_nothing(self):
        """Unknown roles get no permissions."""
        assert default_permissions("intern") == TeamPermissions()

    def test_preset_is_a_copy(self):
        """Presets are fresh objects."""
        perms = default_permissions(TeamRole.OWNER)
        perms.can_export_data = False
        assert default_permissions(TeamRole.OWNER).can_export_data is True
