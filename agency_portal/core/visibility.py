"""
Per-field redaction of creator model profiles.

Two viewer classes exist. ``privileged`` (agency owners and admins) sees the
entity unchanged. ``public`` (the model's own portal, share links, and
non-admin team members) sees:

- the identity fields, always;
- any other field whose key, or whose group key, is ``True`` in the model's
  ``field_visibility`` map;
- never the fields in ``ALWAYS_REDACTED``, whatever the map says.

Missing or non-boolean entries count as hidden.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from agency_portal_shared.schemas.common import TeamRole, ViewerClass

IDENTITY_FIELDS = frozenset({"id", "name", "slug", "avatar_url"})

ALWAYS_REDACTED = frozenset({
    "internal_notes",
    "contract_notes",
    "field_visibility",
    "portal_token",
})

# One visibility key can cover several columns.
FIELD_GROUPS: dict[str, tuple[str, ...]] = {
    "social_media": ("instagram_handle", "twitter_handle", "tiktok_handle"),
}
_GROUP_OF = {field: group for group, fields in FIELD_GROUPS.items() for field in fields}

DEFAULT_FIELD_VISIBILITY: dict[str, bool] = {
    "email": False,
    "phone": False,
    "bio": True,
    "social_media": True,
    "onlyfans_handle": True,
    "joined_date": False,
    "contract_split": False,
    "contract_notes": False,
    "content_preferences": False,
}


def viewer_class_for_role(role: str | TeamRole) -> ViewerClass:
    """Owners and admins are privileged; everyone else gets the public view."""
    if TeamRole(role) in (TeamRole.OWNER, TeamRole.ADMIN):
        return ViewerClass.PRIVILEGED
    return ViewerClass.PUBLIC


def is_publicly_visible(field: str, visibility: Mapping[str, Any]) -> bool:
    if field in ALWAYS_REDACTED:
        return False
    if field in IDENTITY_FIELDS:
        return True
    if visibility.get(field) is True:
        return True
    group = _GROUP_OF.get(field)
    return group is not None and visibility.get(group) is True


def filter_fields(
    entity: Mapping[str, Any],
    viewer: ViewerClass,
    visibility: Optional[Mapping[str, Any]],
) -> dict[str, Any]:
    """Return a redacted copy of ``entity`` for ``viewer``. Never mutates input."""
    if viewer == ViewerClass.PRIVILEGED:
        return dict(entity)
    visibility = visibility or {}
    return {k: v for k, v in entity.items() if is_publicly_visible(k, visibility)}


def with_default_visibility(overrides: Optional[Mapping[str, bool]] = None) -> dict[str, bool]:
    """Default visibility map with ``overrides`` applied on top."""
    merged = dict(DEFAULT_FIELD_VISIBILITY)
    if overrides:
        merged.update({k: bool(v) for k, v in overrides.items()})
    return merged
