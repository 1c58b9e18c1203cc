"""
Integration tests for creator model management.

Covers:
- Creation assigns a unique slug, a portal token and default visibility
- Privileged vs public presentation to staff
- Scope-restricted listing for members
- Privileged-only fields on update
- Archival and token rotation turn old links off
"""

from __future__ import annotations

from conftest import auth_headers
from agency_portal.models.creator_model import CreatorModel
from agency_portal.services.creator_models import slugify
from agency_portal_shared.schemas.team import TeamPermissions

MODELS = "/api/v1/agencies/velvet/models"


class TestSlugify:
    """Slug generation from model names."""

    def test_basic(self):
        """Names become lowercase hyphenated slugs."""
        assert slugify("Luna Star") == "luna-star"

    def test_symbols_collapsed(self):
        """Runs of symbols collapse to one hyphen."""
        assert slugify("  Nova & Sky!! ") == "nova-sky"

    def test_empty_fallback(self):
        """Names with no usable characters get a fallback slug."""
        assert slugify("!!!") == "model"


class TestCreateModel:
    """Creating models."""

    async def test_create(self, client, seed, owner):
        """Owners create models with a portal token."""
        resp = await client.post(
            f"{MODELS}/",
            json={"name": "Nova Sky", "email": "nova@models.example.com", "field_visibility": {"email": True}},
            headers=auth_headers(owner),
        )
        assert resp.status_code == 201
        data = resp.json()
        assert data["slug"] == "nova-sky"
        assert data["portal_token"]
        assert data["field_visibility"]["email"] is True
        assert data["field_visibility"]["bio"] is True

        events = await seed.events(owner.agency_id, "model.created")
        assert data["portal_token"] not in str(events[0].payload)

    async def test_slug_deduplicated(self, client, owner, creator):
        """A taken slug gets a suffix."""
        resp = await client.post(f"{MODELS}/", json={"name": "Luna Star"}, headers=auth_headers(owner))
        assert resp.status_code == 201
        assert resp.json()["slug"] == "luna-star-2"

    async def test_duplicate_email_409(self, client, owner, creator):
        """A second model with the same email is 409."""
        resp = await client.post(
            f"{MODELS}/", json={"name": "Copy", "email": "LUNA@models.example.com"},
            headers=auth_headers(owner),
        )
        assert resp.status_code == 409

    async def test_member_cannot_create(self, client, seed, agency):
        """Members cannot create models."""
        member = await seed.member(agency)
        resp = await client.post(f"{MODELS}/", json={"name": "X"}, headers=auth_headers(member))
        assert resp.status_code == 403


class TestReadModel:
    """Reading model profiles."""

    async def test_admin_sees_everything(self, client, admin, creator):
        """Admins see the full profile."""
        resp = await client.get(f"{MODELS}/{creator.id}", headers=auth_headers(admin))
        data = resp.json()
        assert data["email"] == "luna@models.example.com"
        assert data["internal_notes"] == "Negotiating renewal"
        assert data["portal_token"] == creator.portal_token

    async def test_member_sees_public_view(self, client, seed, agency, creator):
        """Members see the public profile."""
        member = await seed.member(agency, assigned=[creator])
        resp = await client.get(f"{MODELS}/{creator.id}", headers=auth_headers(member))
        assert resp.status_code == 200
        data = resp.json()
        assert data["bio"] == "Sunset lover"
        for hidden in ("email", "phone", "internal_notes", "contract_split", "portal_token"):
            assert hidden not in data

    async def test_unassigned_member_403(self, client, seed, agency, creator):
        """Members cannot read unassigned models."""
        member = await seed.member(agency)
        resp = await client.get(f"{MODELS}/{creator.id}", headers=auth_headers(member))
        assert resp.status_code == 403

    async def test_member_list_scoped(self, client, seed, agency, creator):
        """Member listings only include assigned models."""
        other = await seed.model(agency, name="Other Model")
        member = await seed.member(agency, assigned=[other])
        resp = await client.get(f"{MODELS}/", headers=auth_headers(member))
        assert [m["name"] for m in resp.json()] == ["Other Model"]

    async def test_archived_hidden_by_default(self, client, seed, agency, owner, creator):
        """Archived models are left out unless asked for."""
        await seed.model(agency, name="Archived One", status="archived")
        headers = auth_headers(owner)
        assert [m["name"] for m in (await client.get(f"{MODELS}/", headers=headers)).json()] == ["Luna Star"]
        resp = await client.get(f"{MODELS}/", params={"include_archived": "true"}, headers=headers)
        assert len(resp.json()) == 2


class TestUpdateModel:
    """Updating model profiles."""

    async def test_admin_updates_visibility(self, client, admin, creator):
        """Admins change the visibility map."""
        resp = await client.patch(
            f"{MODELS}/{creator.id}", json={"field_visibility": {"phone": True}},
            headers=auth_headers(admin),
        )
        assert resp.status_code == 200
        visibility = resp.json()["field_visibility"]
        assert visibility["phone"] is True
        assert visibility["bio"] is True

    async def test_member_with_edit_flag_updates_profile(self, client, seed, agency, creator):
        """Members with the edit flag update profile fields."""
        member = await seed.member(
            agency, permissions=TeamPermissions(can_edit_profiles=True), assigned=[creator]
        )
        resp = await client.patch(
            f"{MODELS}/{creator.id}", json={"bio": "New bio"}, headers=auth_headers(member)
        )
        assert resp.status_code == 200
        assert (await client.get(f"{MODELS}/{creator.id}", headers=auth_headers(member))).json()["bio"] == "New bio"

    async def test_member_cannot_touch_privileged_fields(self, client, seed, agency, creator):
        """Members cannot change contract fields or visibility."""
        member = await seed.member(
            agency, permissions=TeamPermissions(can_edit_profiles=True), assigned=[creator]
        )
        resp = await client.patch(
            f"{MODELS}/{creator.id}", json={"internal_notes": "hi"}, headers=auth_headers(member)
        )
        assert resp.status_code == 403

    async def test_member_without_flag_403(self, client, seed, agency, creator):
        """Members without the edit flag are refused."""
        member = await seed.member(agency, assigned=[creator])
        resp = await client.patch(f"{MODELS}/{creator.id}", json={"bio": "x"}, headers=auth_headers(member))
        assert resp.status_code == 403


class TestLinkLifecycle:
    """Archiving models and rotating portal links."""

    async def test_archive_disables_portal(self, client, seed, owner, creator):
        """Archiving a model makes its portal link inactive."""
        resp = await client.delete(f"{MODELS}/{creator.id}", headers=auth_headers(owner))
        assert resp.status_code == 200

        stored = await seed.get(CreatorModel, creator.id)
        assert stored.status == "archived"
        assert stored.archived_at is not None

        portal = await client.get(f"/api/v1/portal/{creator.portal_token}")
        assert portal.status_code == 403
        assert portal.json()["code"] == "TOKEN_INACTIVE"

    async def test_rotate_token(self, client, seed, owner, creator):
        """Rotating issues a new token and retires the old one."""
        old = creator.portal_token
        resp = await client.post(f"{MODELS}/{creator.id}/rotate-portal-token", headers=auth_headers(owner))
        assert resp.status_code == 200
        new = resp.json()["portal_token"]
        assert new != old

        assert (await client.get(f"/api/v1/portal/{old}")).status_code == 404
        assert (await client.get(f"/api/v1/portal/{new}")).status_code == 200

        events = await seed.events(owner.agency_id, "model.portal_token_rotated")
        assert events[0].payload["old_token"] == old[:8] + "..."
