from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request, send_file

from app.cms.auth import current_actor
from app.cms.db import db_session
from app.cms.storage import storage_from_config
from app.cms.modules.media.service import (
    bulk_delete_media,
    create_media,
    delete_media,
    get_media,
    list_media,
    open_media_file,
    purge_stored_files,
    serialize_media,
    upload_media,
)

bp = Blueprint("media", __name__)


# ---------- List ----------
@bp.get("/media")
def media_list():
    s = db_session()
    page = list_media(s, request.args, current_actor())
    return jsonify(page.envelope(serialize_media))


# ---------- Create / Upload ----------
@bp.post("/media")
def media_create():
    s = db_session()
    f = request.files.get("file")
    if f is not None:
        storage = storage_from_config(current_app.config)
        media = upload_media(
            s,
            storage,
            f.read(),
            f.filename or "",
            f.mimetype,
            current_actor(),
            name=request.form.get("name"),
            base_url=current_app.config.get("MEDIA_BASE_URL") or "",
        )
    else:
        media = create_media(s, request.get_json(silent=True), current_actor())
    s.commit()
    return jsonify(serialize_media(media)), 201


# ---------- Bulk delete ----------
@bp.delete("/media")
def media_bulk_delete():
    s = db_session()
    count, keys = bulk_delete_media(s, request.get_json(silent=True), current_actor())
    s.commit()
    purge_stored_files(storage_from_config(current_app.config), keys)
    return jsonify({"message": f"{count} media items deleted successfully", "count": count})


# ---------- Detail ----------
@bp.get("/media/<id:media_id>")
def media_detail(media_id: int):
    s = db_session()
    return jsonify(serialize_media(get_media(s, media_id, current_actor())))


@bp.get("/media/<id:media_id>/file")
def media_file(media_id: int):
    s = db_session()
    media, fobj = open_media_file(s, storage_from_config(current_app.config), media_id, current_actor())
    return send_file(fobj, mimetype=media.type, as_attachment=False, download_name=media.name)


# ---------- Delete ----------
@bp.delete("/media/<id:media_id>")
def media_delete(media_id: int):
    s = db_session()
    keys = delete_media(s, media_id, current_actor())
    s.commit()
    purge_stored_files(storage_from_config(current_app.config), keys)
    return jsonify({"message": "Media deleted successfully", "count": 1})
