"""
Model portal endpoints (portal-token authenticated, no staff session).

GET  /portal/{token}                               Portal landing view
POST /portal/{token}/upload                        Multipart upload (files[], request_id, metadata)
POST /portal/{token}/requests/{request_id}/note    Append a note to a request

An unknown token answers 404 TOKEN_NOT_FOUND; a token whose model is archived
or whose agency is suspended answers 403 TOKEN_INACTIVE.
"""

from __future__ import annotations

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from agency_portal.core.config import get_settings
from agency_portal.core.database import get_session
from agency_portal.core.errors import ValidationError
from agency_portal.services.portal_tokens import TokenResolution, authenticate_portal_token
from agency_portal.services.storage import MediaStorage, get_storage
from agency_portal.services.uploads import (
    append_model_note,
    build_portal_view,
    create_portal_uploads,
    read_incoming,
    upload_read,
)
from agency_portal_shared.schemas.portal import PortalNote, PortalUploadResponse, PortalView

settings = get_settings()
router = APIRouter()


async def get_portal_identity(
    token: str,
    session: AsyncSession = Depends(get_session),
) -> TokenResolution:
    return await authenticate_portal_token(session, token)


@router.get("/{token}", response_model=PortalView)
async def get_portal_endpoint(
    identity: TokenResolution = Depends(get_portal_identity),
    session: AsyncSession = Depends(get_session),
):
    """Everything the model sees when opening their portal link."""
    return await build_portal_view(session, identity.model, identity.agency)


@router.post("/{token}/upload", response_model=PortalUploadResponse, status_code=201)
async def upload_endpoint(
    files: List[UploadFile] = File(...),
    request_id: Optional[uuid.UUID] = Form(None),
    metadata: Optional[str] = Form(None),
    identity: TokenResolution = Depends(get_portal_identity),
    session: AsyncSession = Depends(get_session),
    storage: MediaStorage = Depends(get_storage),
):
    """Upload files for review, optionally against a content request."""
    if len(files) > settings.max_upload_files:
        raise ValidationError(f"At most {settings.max_upload_files} files can be uploaded at once.")
    incoming = []
    try:
        for f in files:
            incoming.append(await read_incoming(f))
    finally:
        for f in files:
            await f.close()

    uploads = await create_portal_uploads(
        session,
        identity.model,
        incoming,
        storage,
        request_id=request_id,
        metadata=metadata,
    )
    return PortalUploadResponse(uploads=[upload_read(u) for u in uploads])


@router.post("/{token}/requests/{request_id}/note")
async def add_note_endpoint(
    request_id: uuid.UUID,
    body: PortalNote,
    identity: TokenResolution = Depends(get_portal_identity),
    session: AsyncSession = Depends(get_session),
):
    """Let the model leave a note on one of their requests."""
    request = await append_model_note(session, identity.model, request_id, body.note)
    return {"request_id": str(request.id), "message": "Note added"}
