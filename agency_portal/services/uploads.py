"""
Portal-side upload handling and the model's portal view.

Handles:
- Validation of an upload batch (count, size, MIME type, metadata JSON)
- Handing bytes to media storage and recording pending-review uploads
- The portal landing view (filtered profile, open requests, recent uploads)
- Notes a model appends to a request

Media is written before the rows that reference it. If recording fails the
stored files are deleted again; a failure of the final commit itself can
still leave unreferenced files behind in storage.
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Sequence

import structlog
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from agency_portal.core.audit import record_event
from agency_portal.core.config import get_settings
from agency_portal.core.errors import NotFound, ValidationError
from agency_portal.models.agency import Agency
from agency_portal.models.content import ContentRequest, Upload
from agency_portal.models.creator_model import CreatorModel
from agency_portal.services.creator_models import present_model
from agency_portal.services.lifecycle import (
    OPEN_STATUSES,
    ensure_accepts_uploads,
    recompute_request_status,
)
from agency_portal.services.storage import MediaStorage
from agency_portal_shared.schemas.common import (
    PRIORITY_ORDER,
    ActorType,
    FileType,
    RequestPriority,
    RequestStatus,
    UploadStatus,
    ViewerClass,
)
from agency_portal_shared.schemas.portal import PortalAgency, PortalRequest, PortalView
from agency_portal_shared.schemas.uploads import UploadMetadata, UploadRead

log = structlog.get_logger()
settings = get_settings()

MODEL_NOTE_HEADER = "--- Model note ---"


@dataclass(frozen=True)
class IncomingFile:
    """One file from a multipart upload, already read into memory."""
    file_name: str
    content_type: str
    data: bytes


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def upload_read(upload: Upload) -> UploadRead:
    return UploadRead(
        id=upload.id,
        model_id=upload.model_id,
        content_request_id=upload.content_request_id,
        file_name=upload.file_name,
        file_type=upload.file_type,
        mime_type=upload.mime_type,
        file_size=upload.file_size,
        file_url=upload.file_url,
        thumbnail_url=upload.thumbnail_url,
        status=upload.status,
        rejection_note=upload.rejection_note,
        metadata=upload.details or {},
        gallery_item_id=upload.gallery_item_id,
        reviewed_by=upload.reviewed_by,
        reviewed_at=upload.reviewed_at,
        created_at=upload.created_at,
    )


def classify_file_type(content_type: Optional[str]) -> FileType:
    major = (content_type or "").split("/", 1)[0].lower()
    if major == "image":
        return FileType.IMAGE
    if major == "video":
        return FileType.VIDEO
    raise ValidationError(f"Unsupported file type {content_type!r}. Upload images or videos only.")


def parse_upload_metadata(raw: Optional[str]) -> dict:
    """Parse the optional metadata form field into a clean dict."""
    if raw is None or not raw.strip():
        return {}
    try:
        parsed = UploadMetadata.model_validate(json.loads(raw))
    except (json.JSONDecodeError, PydanticValidationError) as exc:
        log.info("portal.invalid_metadata", error=str(exc)[:200])
        raise ValidationError("Upload metadata must be a JSON object with valid fields.")
    return parsed.model_dump(mode="json", exclude_none=True)


async def read_incoming(upload_file, limit: Optional[int] = None) -> IncomingFile:
    """Read one multipart file, never buffering more than ``limit`` + 1 bytes."""
    limit = settings.max_upload_bytes if limit is None else limit
    name = upload_file.filename or "upload"
    if upload_file.size is not None and upload_file.size > limit:
        raise ValidationError(f"{name} exceeds the maximum upload size.")
    data = await upload_file.read(limit + 1)
    if len(data) > limit:
        raise ValidationError(f"{name} exceeds the maximum upload size.")
    return IncomingFile(file_name=name, content_type=upload_file.content_type or "", data=data)


def validate_batch(files: Sequence[IncomingFile]) -> list[FileType]:
    if not files:
        raise ValidationError("No files were uploaded.")
    if len(files) > settings.max_upload_files:
        raise ValidationError(f"At most {settings.max_upload_files} files can be uploaded at once.")
    file_types = []
    for f in files:
        if len(f.data) > settings.max_upload_bytes:
            raise ValidationError(f"{f.file_name} exceeds the maximum upload size.")
        if not f.data:
            raise ValidationError(f"{f.file_name} is empty.")
        file_types.append(classify_file_type(f.content_type))
    return file_types


async def get_model_request_or_404(
    session: AsyncSession, request_id: uuid.UUID, model: CreatorModel
) -> ContentRequest:
    request = await session.get(ContentRequest, request_id)
    if not request or request.model_id != model.id:
        raise NotFound("Content request not found")
    return request


# ---------------------------------------------------------------------------
# Upload
# ---------------------------------------------------------------------------


async def create_portal_uploads(
    session: AsyncSession,
    model: CreatorModel,
    files: Sequence[IncomingFile],
    storage: MediaStorage,
    request_id: Optional[uuid.UUID] = None,
    metadata: Optional[str] = None,
) -> list[Upload]:
    """Store ``files`` and record them as pending-review uploads."""
    file_types = validate_batch(files)
    details = parse_upload_metadata(metadata)

    request = None
    if request_id is not None:
        request = await get_model_request_or_404(session, request_id, model)
        ensure_accepts_uploads(request)

    stored_urls: list[str] = []
    try:
        uploads = await _store_and_record(
            session, model, request, files, file_types, details, storage, stored_urls
        )
    except Exception:
        # The transaction rolls back; drop the bytes it would have referenced.
        await discard_stored(storage, stored_urls)
        raise

    log.info(
        "portal.uploads_received",
        model_id=str(model.id),
        request_id=str(request.id) if request else None,
        count=len(uploads),
    )
    return uploads


async def _store_and_record(
    session: AsyncSession,
    model: CreatorModel,
    request: Optional[ContentRequest],
    files: Sequence[IncomingFile],
    file_types: Sequence[FileType],
    details: dict,
    storage: MediaStorage,
    stored_urls: list[str],
) -> list[Upload]:
    uploads: list[Upload] = []
    for incoming, file_type in zip(files, file_types):
        stored = await storage.save(
            agency_id=model.agency_id,
            model_id=model.id,
            file_name=incoming.file_name,
            content_type=incoming.content_type,
            data=incoming.data,
        )
        stored_urls.append(stored.url)
        upload = Upload(
            agency_id=model.agency_id,
            model_id=model.id,
            content_request_id=request.id if request else None,
            file_name=incoming.file_name,
            file_type=file_type.value,
            mime_type=incoming.content_type,
            file_size=stored.size,
            file_url=stored.url,
            thumbnail_url=stored.thumbnail_url,
            status=UploadStatus.PENDING_REVIEW.value,
            details=dict(details),
        )
        session.add(upload)
        uploads.append(upload)
    await session.flush()

    if request is not None:
        await recompute_request_status(
            session, request.id, actor_id=model.id, actor_type=ActorType.MODEL
        )

    await record_event(
        session,
        agency_id=model.agency_id,
        event_type="upload.received",
        payload={
            "model_id": str(model.id),
            "request_id": str(request.id) if request else None,
            "upload_ids": [str(u.id) for u in uploads],
        },
        actor_id=model.id,
        actor_type=ActorType.MODEL,
    )
    return uploads


async def discard_stored(storage: MediaStorage, urls: Sequence[str]) -> None:
    for url in urls:
        try:
            await storage.delete(url)
        except OSError as exc:
            log.error("portal.orphaned_media", url=url, error=str(exc))


# ---------------------------------------------------------------------------
# Portal view
# ---------------------------------------------------------------------------


def _request_sort_key(request: ContentRequest):
    try:
        rank = PRIORITY_ORDER.index(RequestPriority(request.priority))
    except ValueError:
        rank = len(PRIORITY_ORDER)
    due = request.due_date
    # Requests without a due date sort last within their priority
    return (rank, due is None, due.replace(tzinfo=None) if due else datetime.min)


async def build_portal_view(
    session: AsyncSession, model: CreatorModel, agency: Agency
) -> PortalView:
    result = await session.execute(
        select(ContentRequest).where(
            ContentRequest.model_id == model.id,
            ContentRequest.status.in_([s.value for s in OPEN_STATUSES]),
        )
    )
    requests = sorted(result.scalars().all(), key=_request_sort_key)

    result = await session.execute(
        select(Upload)
        .where(Upload.model_id == model.id)
        .order_by(Upload.created_at.desc())
        .limit(settings.portal_recent_uploads_limit)
    )
    recent = result.scalars().all()

    return PortalView(
        model=present_model(model, ViewerClass.PUBLIC),
        agency=PortalAgency(name=agency.name),
        requests=[
            PortalRequest(
                id=r.id,
                title=r.title,
                description=r.description,
                reference_urls=r.reference_urls or [],
                quantity_photo=r.quantity_photo,
                quantity_video=r.quantity_video,
                priority=r.priority,
                due_date=r.due_date,
                status=r.status,
            )
            for r in requests
        ],
        recent_uploads=[upload_read(u) for u in recent],
    )


# ---------------------------------------------------------------------------
# Model notes
# ---------------------------------------------------------------------------


async def append_model_note(
    session: AsyncSession,
    model: CreatorModel,
    request_id: uuid.UUID,
    note: str,
) -> ContentRequest:
    note = note.strip()
    if not note:
        raise ValidationError("Note cannot be empty.")

    request = await get_model_request_or_404(session, request_id, model)
    if RequestStatus(request.status) == RequestStatus.CANCELLED:
        raise NotFound("Content request not found")

    stamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
    block = f"{MODEL_NOTE_HEADER}\n[{stamp}] {note}"
    request.description = f"{request.description}\n\n{block}" if request.description else block
    session.add(request)
    await session.flush()

    await record_event(
        session,
        agency_id=model.agency_id,
        event_type="content_request.model_note",
        payload={"request_id": str(request.id), "model_id": str(model.id)},
        actor_id=model.id,
        actor_type=ActorType.MODEL,
    )
    log.info("portal.note_added", request_id=str(request.id), model_id=str(model.id))
    return request
