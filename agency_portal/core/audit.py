"""Audit trail recording."""

from __future__ import annotations

from typing import Any, Optional
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from agency_portal.models.audit import AuditEvent
from agency_portal_shared.schemas.common import ActorType

log = structlog.get_logger()


async def record_event(
    session: AsyncSession,
    agency_id: UUID,
    event_type: str,
    payload: dict[str, Any],
    actor_id: UUID | None = None,
    actor_type: ActorType = ActorType.SYSTEM,
) -> AuditEvent:
    """
    Persist an audit event in the caller's transaction.

    Payloads must be JSON-serialisable and must never contain a full
    portal or invitation token.
    """
    event = AuditEvent(
        agency_id=agency_id,
        type=event_type,
        actor_id=actor_id,
        actor_type=actor_type.value,
        payload=payload,
    )
    session.add(event)
    await session.flush()
    log.debug("audit.recorded", event_type=event_type, agency_id=str(agency_id))
    return event
