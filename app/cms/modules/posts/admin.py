from __future__ import annotations

from flask import Blueprint, jsonify, request

from app.cms.auth import current_actor
from app.cms.db import db_session
from app.cms.modules.posts.service import (
    create_post,
    delete_post,
    get_post,
    list_posts,
    serialize_post,
    update_post,
)

bp = Blueprint("posts", __name__)


# ---------- List ----------
@bp.get("/posts")
def posts_list():
    s = db_session()
    page = list_posts(s, request.args)
    return jsonify(page.envelope(serialize_post))


# ---------- Create ----------
@bp.post("/posts")
def posts_create():
    s = db_session()
    post = create_post(s, request.get_json(silent=True), current_actor())
    s.commit()
    return jsonify(serialize_post(post)), 201


# ---------- Detail ----------
@bp.get("/posts/<id:post_id>")
def post_detail(post_id: int):
    s = db_session()
    return jsonify(serialize_post(get_post(s, post_id)))


# ---------- Edit ----------
@bp.put("/posts/<id:post_id>")
def post_update(post_id: int):
    s = db_session()
    post = update_post(s, post_id, request.get_json(silent=True), current_actor())
    s.commit()
    return jsonify(serialize_post(post))


# ---------- Delete ----------
@bp.delete("/posts/<id:post_id>")
def post_delete(post_id: int):
    s = db_session()
    delete_post(s, post_id, current_actor())
    s.commit()
    return jsonify({"message": "Post deleted successfully", "count": 1})
