"""
structlog setup and token redaction for log output.

Portal and invitation tokens travel in URL paths, so every log line that can
carry a path (structlog events and uvicorn's access log) has those path
segments shortened with ``redact_token`` before it is written.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Optional

import structlog

from agency_portal.core.config import get_settings

# /api/v1/portal/{token}[/...] and /api/v1/invitations/{team|model}/{token}[/...]
CAPABILITY_PATH = re.compile(
    r"(/api/v1/(?:portal|invitations/(?:team|model))/)([^/?#\s\"]+)"
)


def redact_token(token: Optional[str], length: Optional[int] = None) -> str:
    """Shorten a capability token to a loggable prefix.

    Portal and invitation tokens are bearer credentials; only this prefix may
    appear in logs or audit payloads.
    """
    if not token:
        return "<none>"
    if length is None:
        length = get_settings().token_log_prefix_length
    return f"{token[:length]}..."


def redact_capability_paths(text: str) -> str:
    return CAPABILITY_PATH.sub(lambda m: m.group(1) + redact_token(m.group(2)), text)


def _redact_value(value: Any) -> Any:
    if isinstance(value, str):
        return redact_capability_paths(value)
    return value


def redact_event_paths(logger, method_name: str, event_dict: dict) -> dict:
    """structlog processor: redact capability paths in string values."""
    return {key: _redact_value(value) for key, value in event_dict.items()}


class CapabilityPathFilter(logging.Filter):
    """Rewrites capability paths in stdlib records (uvicorn's access log)."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = redact_capability_paths(record.msg)
        if isinstance(record.args, tuple):
            record.args = tuple(_redact_value(arg) for arg in record.args)
        elif isinstance(record.args, dict):
            record.args = {key: _redact_value(value) for key, value in record.args.items()}
        return True


REDACTED_STDLIB_LOGGERS = ("uvicorn.access", "uvicorn.error")


def install_access_log_redaction() -> None:
    for name in REDACTED_STDLIB_LOGGERS:
        logger = logging.getLogger(name)
        if not any(isinstance(f, CapabilityPathFilter) for f in logger.filters):
            logger.addFilter(CapabilityPathFilter())


def configure_logging(level: str = "info", fmt: str = "json") -> None:
    """Configure structlog with the specified level and format."""
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        redact_event_paths,
    ]
    if fmt == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
    )
    install_access_log_redaction()
