"""Promotion of approved uploads into the agency gallery."""

from __future__ import annotations

from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from agency_portal.models.content import Upload
from agency_portal.models.gallery import GalleryItem

log = structlog.get_logger()


async def promote_upload(
    session: AsyncSession, upload: Upload, title: Optional[str] = None
) -> GalleryItem:
    """Create the gallery item for an approved upload and link it back."""
    item = GalleryItem(
        agency_id=upload.agency_id,
        model_id=upload.model_id,
        type=upload.file_type,
        url=upload.file_url,
        thumbnail_url=upload.thumbnail_url,
        title=title or (upload.details or {}).get("caption") or upload.file_name,
        source="model_upload",
        tags=["model-upload"],
    )
    session.add(item)
    await session.flush()

    upload.gallery_item_id = item.id
    session.add(upload)
    await session.flush()
    log.info("gallery.item_created", gallery_item_id=str(item.id), upload_id=str(upload.id))
    return item
