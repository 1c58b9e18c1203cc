"""
Shared fixtures.

Every test gets its own SQLite database file. The app's session dependency,
media storage and the Redis revocation check are replaced so tests need no
external services.
"""

from __future__ import annotations

import os

os.environ.setdefault("AP_DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("AP_SECRET_KEY", "test-secret-key-for-agency-portal-suite-0001")

import uuid
from typing import Iterable, Optional
from unittest.mock import AsyncMock, patch

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel, select

import agency_portal.models  # noqa: F401
from agency_portal.core.auth import AuthenticatedMember, create_jwt, hash_password
from agency_portal.core.database import get_session
from agency_portal.core.permissions import default_permissions
from agency_portal.core.visibility import with_default_visibility
from agency_portal.main import app
from agency_portal.models.agency import Agency
from agency_portal.models.audit import AuditEvent
from agency_portal.models.content import ContentRequest, Upload
from agency_portal.models.creator_model import CreatorModel
from agency_portal.models.team import ModelAssignment, TeamMember
from agency_portal.services.portal_tokens import generate_portal_token
from agency_portal.services.storage import MediaStorage, StoredMedia, get_storage
from agency_portal_shared.schemas.common import TeamRole
from agency_portal_shared.schemas.team import TeamPermissions

# Computed once; bcrypt at cost 12 is slow.
TEST_PASSWORD = "correct-horse-battery"
TEST_PASSWORD_HASH = hash_password(TEST_PASSWORD)


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class FakeStorage(MediaStorage):
    """Keeps uploaded bytes in memory."""

    def __init__(self):
        self.saved: list[dict] = []
        self.deleted: list[str] = []

    async def save(self, *, agency_id, model_id, file_name, content_type, data) -> StoredMedia:
        self.saved.append({
            "agency_id": agency_id,
            "model_id": model_id,
            "file_name": file_name,
            "content_type": content_type,
            "size": len(data),
        })
        return StoredMedia(url=f"https://cdn.test/{model_id}/{file_name}", size=len(data))

    async def delete(self, url: str) -> None:
        self.deleted.append(url)


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'portal.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    """A session for calling services directly."""
    async with session_factory() as s:
        yield s


@pytest.fixture(autouse=True)
def no_redis():
    """Sessions are never revoked; nothing talks to Redis."""
    with patch("agency_portal.core.auth.is_jwt_revoked", AsyncMock(return_value=False)), \
         patch("agency_portal.api.v1.auth.is_jwt_revoked", AsyncMock(return_value=False)), \
         patch("agency_portal.api.v1.auth.revoke_jwt", AsyncMock()) as revoke:
        yield revoke


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
async def client(session_factory, storage):
    async def override_get_session():
        async with session_factory() as s:
            try:
                yield s
                await s.commit()
            except Exception:
                await s.rollback()
                raise

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_storage] = lambda: storage
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Seeding
# ---------------------------------------------------------------------------

class Seed:
    """Commits fixture rows through short-lived sessions."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    async def add(self, *rows):
        async with self.session_factory() as s:
            for row in rows:
                s.add(row)
            await s.commit()
        return rows[0] if len(rows) == 1 else rows

    async def agency(self, slug: str = "velvet", status: str = "active") -> Agency:
        return await self.add(Agency(name=slug.title() + " Agency", slug=slug, status=status))

    async def model(self, agency: Agency, name: str = "Luna Star", **fields) -> CreatorModel:
        fields.setdefault("portal_token", generate_portal_token())
        fields.setdefault("field_visibility", with_default_visibility())
        fields.setdefault("slug", name.lower().replace(" ", "-"))
        return await self.add(CreatorModel(agency_id=agency.id, name=name, **fields))

    async def member(
        self,
        agency: Agency,
        role: TeamRole = TeamRole.MEMBER,
        email: Optional[str] = None,
        permissions: Optional[TeamPermissions] = None,
        status: str = "active",
        assigned: Iterable[CreatorModel] = (),
    ) -> TeamMember:
        member = TeamMember(
            agency_id=agency.id,
            email=email or f"{role.value}-{uuid.uuid4().hex[:6]}@velvet.example.com",
            name=f"{role.value.title()} Person",
            role=role.value,
            status=status,
            permissions=(permissions or default_permissions(role)).model_dump(mode="json"),
            password_hash=TEST_PASSWORD_HASH,
        )
        await self.add(member)
        assigned = list(assigned)
        if assigned:
            await self.add(*[
                ModelAssignment(team_member_id=member.id, model_id=m.id, agency_id=agency.id)
                for m in assigned
            ])
        return member

    async def request(
        self,
        model: CreatorModel,
        title: str = "Beach set",
        quantity_photo: int = 2,
        quantity_video: int = 0,
        **fields,
    ) -> ContentRequest:
        return await self.add(ContentRequest(
            agency_id=model.agency_id,
            model_id=model.id,
            title=title,
            quantity_photo=quantity_photo,
            quantity_video=quantity_video,
            **fields,
        ))

    async def upload(
        self,
        model: CreatorModel,
        request: Optional[ContentRequest] = None,
        status: str = "pending_review",
        file_type: str = "image",
        **fields,
    ) -> Upload:
        return await self.add(Upload(
            agency_id=model.agency_id,
            model_id=model.id,
            content_request_id=request.id if request else None,
            file_name=f"shot-{uuid.uuid4().hex[:6]}.jpg",
            file_type=file_type,
            mime_type="image/jpeg" if file_type == "image" else "video/mp4",
            file_size=1024,
            file_url="https://cdn.test/shot.jpg",
            status=status,
            **fields,
        ))

    # -- readback -----------------------------------------------------------

    async def get(self, cls, id_):
        async with self.session_factory() as s:
            return await s.get(cls, id_)

    async def events(self, agency_id: uuid.UUID, event_type: Optional[str] = None) -> list[AuditEvent]:
        async with self.session_factory() as s:
            stmt = select(AuditEvent).where(AuditEvent.agency_id == agency_id)
            if event_type:
                stmt = stmt.where(AuditEvent.type == event_type)
            result = await s.execute(stmt.order_by(AuditEvent.timestamp))
            return list(result.scalars().all())


@pytest.fixture
def seed(session_factory):
    return Seed(session_factory)


# ---------------------------------------------------------------------------
# Auth helpers
# ---------------------------------------------------------------------------

def auth_headers(member: TeamMember) -> dict[str, str]:
    token, _ = create_jwt(member.id, member.agency_id, member.role)
    return {"Authorization": f"Bearer {token}"}


def make_auth(
    member: TeamMember, agency: Agency, assigned: Iterable[CreatorModel] = ()
) -> AuthenticatedMember:
    return AuthenticatedMember(member=member, agency=agency, assigned_model_ids=[m.id for m in assigned])


@pytest.fixture
async def agency(seed):
    return await seed.agency()


@pytest.fixture
async def owner(seed, agency):
    return await seed.member(agency, TeamRole.OWNER, email="owner@velvet.example.com")


@pytest.fixture
async def admin(seed, agency):
    return await seed.member(agency, TeamRole.ADMIN, email="admin@velvet.example.com")


@pytest.fixture
async def creator(seed, agency):
    return await seed.model(
        agency,
        email="luna@models.example.com",
        phone="+1 555 0100",
        bio="Sunset lover",
        instagram_handle="@luna",
        contract_split=60.0,
        internal_notes="Negotiating renewal",
        contract_notes="Two-year term",
    )
