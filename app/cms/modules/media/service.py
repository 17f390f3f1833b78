from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping
from datetime import date
from typing import TYPE_CHECKING, Any, BinaryIO

from werkzeug.utils import secure_filename

from app.cms.audit import CREATE, DELETE, record_event
from app.cms.constants import MEDIA_PAGE_SIZE
from app.cms.errors import Forbidden, NotFound, ValidationFailed
from app.cms.listing import Page, paginate, parse_pagination, search_clause
from app.cms.rbac import require_actor
from app.cms.storage import Storage, StorageError
from app.cms.utils import iso
from app.cms.validation import coerce_id, require_object, require_valid, take_int, take_string
from app.cms.modules.media.models import Media

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.cms.models import User

logger = logging.getLogger(__name__)

BULK_DELETE_ERROR = "Invalid request. Please provide an array of media ids."


def validate_media_payload(payload: dict) -> tuple[dict, list[dict[str, str]]]:
    """Validate media metadata payload (file already hosted elsewhere)."""
    cleaned: dict[str, Any] = {}
    errors: list[dict[str, str]] = []
    take_string(payload, "name", cleaned, errors, label="Name", required=True, max_length=255)
    take_string(payload, "url", cleaned, errors, label="URL", required=True, max_length=1024)
    take_string(payload, "type", cleaned, errors, label="Type", required=True, max_length=128)
    take_int(payload, "size", cleaned, errors, label="Size", required=True, min_value=0)
    return cleaned, errors


def serialize_media(media: Media) -> dict:
    user = media.user
    return {
        "id": media.id,
        "name": media.name,
        "url": media.url,
        "type": media.type,
        "size": media.size,
        "userId": media.user_id,
        "user": {"id": user.id, "name": user.name} if user else None,
        "createdAt": iso(media.created_at),
    }


def list_media(s: "Session", args: Mapping[str, Any], actor: "User | None") -> Page:
    """Authenticated only. Filters: search (name), type. Newest first."""
    require_actor(actor)
    page, limit = parse_pagination(args, MEDIA_PAGE_SIZE)
    q = s.query(Media)
    search = (args.get("search") or "").strip()
    if search:
        q = q.filter(search_clause(search, Media.name))
    media_type = (args.get("type") or "").strip()
    if media_type:
        q = q.filter(Media.type == media_type)
    q = q.order_by(Media.created_at.desc(), Media.id.desc())
    return paginate(q, page, limit)


def get_media(s: "Session", media_id: int, actor: "User | None") -> Media:
    require_actor(actor)
    media = s.get(Media, media_id)
    if not media:
        raise NotFound("Media not found")
    return media


def _record_upload(s: "Session", media: Media, user: "User") -> None:
    record_event(
        s,
        actor=user,
        action=CREATE,
        entity_type="Media",
        entity_id=str(media.id),
        details=f'Uploaded media "{media.name}"',
        metadata={"type": media.type, "size": media.size, "stored": bool(media.storage_key)},
    )


def create_media(s: "Session", payload: Any, actor: "User | None") -> Media:
    """Register metadata for a file hosted elsewhere."""
    user = require_actor(actor)
    cleaned, errors = validate_media_payload(require_object(payload))
    require_valid(errors)

    media = Media(
        name=cleaned["name"],
        url=cleaned["url"],
        type=cleaned["type"],
        size=cleaned["size"],
        user_id=user.id,
    )
    s.add(media)
    s.flush()
    _record_upload(s, media, user)
    return media


def build_media_storage_key(user_id: int, filename: str, upload_date: date | None = None) -> str:
    """Storage key for an uploaded file; a random prefix keeps same-named uploads apart."""
    if upload_date is None:
        upload_date = date.today()
    safe_filename = secure_filename(filename) or "upload.bin"
    return f"media/{user_id}/{upload_date.isoformat()}/{uuid.uuid4().hex[:12]}-{safe_filename}"


def upload_media(
    s: "Session",
    storage: Storage,
    file_bytes: bytes,
    filename: str,
    content_type: str | None,
    actor: "User | None",
    *,
    name: str | None = None,
    base_url: str = "",
) -> Media:
    """Store uploaded bytes, then record the media row pointing at them."""
    user = require_actor(actor)
    if not file_bytes:
        raise ValidationFailed([{"field": "file", "message": "Uploaded file is empty"}])

    storage_key = build_media_storage_key(user.id, filename)
    storage.put_bytes(storage_key, file_bytes, content_type=content_type)

    media = Media(
        name=(name or "").strip() or secure_filename(filename) or "upload.bin",
        url="",
        type=content_type or "application/octet-stream",
        size=len(file_bytes),
        storage_key=storage_key,
        user_id=user.id,
    )
    s.add(media)
    s.flush()
    media.url = f"{base_url.rstrip('/')}/{storage_key}" if base_url else f"/api/media/{media.id}/file"
    _record_upload(s, media, user)
    return media


def open_media_file(s: "Session", storage: Storage, media_id: int, actor: "User | None") -> tuple[Media, BinaryIO]:
    media = get_media(s, media_id, actor)
    if not media.storage_key:
        raise NotFound("Media file is not stored by this service")
    try:
        return media, storage.open(media.storage_key)
    except StorageError as e:
        logger.warning("Media file unavailable (id=%s): %s", media.id, e)
        raise NotFound("Media file not found") from e


def delete_media(s: "Session", media_id: int, actor: "User | None") -> list[str]:
    """Only the uploader may delete. Returns storage keys to purge after commit."""
    user = require_actor(actor)
    media = s.get(Media, media_id)
    if not media:
        raise NotFound("Media not found")
    if media.user_id != user.id:
        raise Forbidden()
    keys = [media.storage_key] if media.storage_key else []
    name = media.name
    s.delete(media)
    s.flush()

    record_event(
        s,
        actor=user,
        action=DELETE,
        entity_type="Media",
        entity_id=str(media_id),
        details=f'Deleted media "{name}"',
    )
    return keys


def parse_bulk_ids(payload: Any) -> list[int]:
    ids = payload.get("ids") if isinstance(payload, dict) else None
    if not ids or not isinstance(ids, list):
        raise ValidationFailed([{"field": "ids", "message": BULK_DELETE_ERROR}], message=BULK_DELETE_ERROR)
    parsed: list[int] = []
    for raw in ids:
        value = coerce_id(raw)
        if value is None:
            raise ValidationFailed([{"field": "ids", "message": f"Invalid media id: {raw!r}"}], message=BULK_DELETE_ERROR)
        if value not in parsed:
            parsed.append(value)
    return parsed


def bulk_delete_media(s: "Session", payload: Any, actor: "User | None") -> tuple[int, list[str]]:
    """
    Delete the listed media rows owned by the caller; others are skipped silently.
    Returns (deleted count, storage keys to purge after commit).
    """
    user = require_actor(actor)
    ids = parse_bulk_ids(payload)

    rows = (
        s.query(Media)
        .filter(Media.id.in_(ids), Media.user_id == user.id)
        .order_by(Media.id.asc())
        .all()
    )
    keys = [m.storage_key for m in rows if m.storage_key]
    deleted_ids = [m.id for m in rows]
    for m in rows:
        s.delete(m)
    s.flush()

    if deleted_ids:
        record_event(
            s,
            actor=user,
            action=DELETE,
            entity_type="Media",
            entity_id=", ".join(str(i) for i in deleted_ids),
            details=f"Deleted {len(deleted_ids)} media items",
            metadata={"requested_ids": ids},
        )
    return len(deleted_ids), keys


def purge_stored_files(storage: Storage, keys: list[str]) -> None:
    """Remove stored bytes for media rows that are already deleted."""
    for key in keys:
        try:
            storage.delete(key)
        except Exception:
            logger.exception("Failed to delete stored media file (key=%s)", key)
