"""
Health check endpoint tests.
"""

from unittest.mock import patch

from httpx import ASGITransport, AsyncClient

from agency_portal.core.config import get_settings
from agency_portal.main import create_app


async def test_health_check(client: AsyncClient):
    """Health endpoint should return status ok."""
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


async def test_ready_check(client: AsyncClient):
    """Ready endpoint should return status ready."""
    response = await client.get("/ready")
    assert response.status_code == 200
    assert response.json() == {"status": "ready"}


async def test_api_root(client: AsyncClient):
    """API v1 root should return version and endpoint list."""
    response = await client.get("/api/v1/")
    assert response.status_code == 200
    data = response.json()
    assert data["api"] == "v1"
    assert "/portal/{token}" in data["endpoints"]


async def test_media_served_from_root(tmp_path):
    """Files under media_root are served at media_base_url."""
    (tmp_path / "a").mkdir()
    (tmp_path / "a" / "shot.jpg").write_bytes(b"jpeg bytes")
    with patch.object(get_settings(), "media_root", str(tmp_path)):
        app = create_app()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        response = await ac.get("/media/a/shot.jpg")
        missing = await ac.get("/media/a/none.jpg")
    assert response.status_code == 200
    assert response.content == b"jpeg bytes"
    assert missing.status_code == 404


def test_media_mount_disabled():
    """No media route when serving is turned off."""
    with patch.object(get_settings(), "serve_media", False):
        app = create_app()
    assert all(getattr(route, "name", None) != "media" for route in app.routes)
