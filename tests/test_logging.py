"""
Tests for logging setup and capability-token redaction.

Covers:
- configure_logging accepts every configured level and format, and the app builds after it
- Portal and invitation tokens in URL paths are shortened in structlog events
- uvicorn's access log never carries a full token
- The run entry point serves on the configured host and port
"""

from __future__ import annotations

import logging
import uuid
from unittest.mock import patch

import pytest
import structlog

from agency_portal.core.config import get_settings
from agency_portal.core.logging import (
    CapabilityPathFilter,
    configure_logging,
    redact_capability_paths,
    redact_event_paths,
    redact_token,
)
from agency_portal.main import create_app, run

# uvicorn.protocols.http formats access lines with this template
ACCESS_FORMAT = '%s - "%s %s HTTP/%s" %d'


@pytest.fixture(autouse=True)
def restore_structlog():
    """Leave structlog as the rest of the suite found it."""
    yield
    structlog.reset_defaults()
    configure_logging(get_settings().log_level, get_settings().log_format)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class TestConfigureLogging:
    """structlog configuration from settings."""

    @pytest.mark.parametrize("level", ["debug", "info", "warning", "error"])
    @pytest.mark.parametrize("fmt", ["json", "text"])
    def test_levels_and_formats(self, level, fmt):
        """Every level name and both formats configure without error."""
        configure_logging(level, fmt)
        structlog.get_logger().info("logging.configured")

    def test_app_builds_after_configuration(self):
        """The application factory runs once logging is configured."""
        configure_logging("info", "json")
        app = create_app()
        assert any(getattr(route, "path", None) == "/health" for route in app.routes)

    def test_filter_installed_once(self):
        """Repeated configuration does not stack access-log filters."""
        configure_logging("info", "json")
        configure_logging("info", "json")
        access = logging.getLogger("uvicorn.access")
        assert sum(isinstance(f, CapabilityPathFilter) for f in access.filters) == 1


# ---------------------------------------------------------------------------
# Redaction
# ---------------------------------------------------------------------------


class TestRedactPaths:
    """Capability path segments are shortened to a prefix."""

    def test_portal_path(self):
        """The portal token segment keeps only its prefix."""
        token = str(uuid.uuid4())
        out = redact_capability_paths(f"/api/v1/portal/{token}/upload")
        assert token not in out
        assert out == f"/api/v1/portal/{redact_token(token)}/upload"

    @pytest.mark.parametrize("kind", ["team", "model"])
    def test_invitation_paths(self, kind):
        """Team and model invitation tokens are shortened, with or without /accept."""
        token = str(uuid.uuid4())
        for suffix in ("", "/accept", "?next=1"):
            out = redact_capability_paths(f"/api/v1/invitations/{kind}/{token}{suffix}")
            assert token not in out
            assert out.endswith(suffix)

    def test_staff_paths_untouched(self):
        """Paths without a capability token are left alone."""
        path = f"/api/v1/agencies/velvet/models/{uuid.uuid4()}"
        assert redact_capability_paths(path) == path

    def test_structlog_processor(self):
        """String values in an event dict are redacted; other values pass through."""
        token = str(uuid.uuid4())
        out = redact_event_paths(None, "info", {"event": "request", "path": f"/api/v1/portal/{token}", "status": 200})
        assert token not in out["path"]
        assert out["status"] == 200


class TestAccessLog:
    """uvicorn.access records never contain a full token."""

    def test_filter_rewrites_args(self):
        """The path argument of an access record is redacted."""
        token = str(uuid.uuid4())
        record = logging.LogRecord(
            "uvicorn.access", logging.INFO, __file__, 1, ACCESS_FORMAT,
            ("127.0.0.1:5000", "GET", f"/api/v1/portal/{token}", "1.1", 200), None,
        )
        assert CapabilityPathFilter().filter(record)
        assert token not in record.getMessage()
        assert "/api/v1/portal/" in record.getMessage()

    def test_access_logger_output(self, caplog):
        """A line logged the way uvicorn logs it is captured without the token."""
        configure_logging("info", "json")
        token = str(uuid.uuid4())
        with caplog.at_level(logging.INFO, logger="uvicorn.access"):
            logging.getLogger("uvicorn.access").info(
                ACCESS_FORMAT, "127.0.0.1:5000", "POST", f"/api/v1/invitations/team/{token}/accept", "1.1", 200
            )
        assert caplog.records
        assert all(token not in r.getMessage() for r in caplog.records)
        assert token not in caplog.text


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


class TestRun:
    """The console entry point."""

    def test_serves_on_configured_address(self):
        """uvicorn receives the host and port from settings."""
        settings = get_settings()
        with patch("uvicorn.run") as uvicorn_run:
            run()
        uvicorn_run.assert_called_once()
        kwargs = uvicorn_run.call_args.kwargs
        assert kwargs["host"] == settings.host
        assert kwargs["port"] == settings.port
