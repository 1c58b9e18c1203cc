"""
Audit trail endpoint (owner/admin).

GET /activity/   Most recent events first (filters: type, limit, offset)
"""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from agency_portal.core.auth import AuthenticatedMember, require_admin
from agency_portal.core.database import get_session
from agency_portal.models.audit import AuditEvent
from agency_portal_shared.schemas.activity import AuditEventRead

router = APIRouter()


@router.get("/", response_model=List[AuditEventRead])
async def list_activity_endpoint(
    agencySlug: str,
    type: Optional[str] = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    auth: AuthenticatedMember = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    stmt = select(AuditEvent).where(AuditEvent.agency_id == auth.agency_id)
    if type:
        stmt = stmt.where(AuditEvent.type == type)
    stmt = stmt.order_by(AuditEvent.timestamp.desc()).offset(offset).limit(limit)
    result = await session.execute(stmt)
    return [
        AuditEventRead(
            id=e.id,
            agency_id=e.agency_id,
            type=e.type,
            actor_id=e.actor_id,
            actor_type=e.actor_type,
            payload=e.payload or {},
            timestamp=e.timestamp,
        )
        for e in result.scalars().all()
    ]
