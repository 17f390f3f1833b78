from __future__ import annotations

from flask import Blueprint, jsonify, request

from app.cms.auth import current_actor
from app.cms.db import db_session
from app.cms.modules.taxonomy.models import Category, Tag
from app.cms.modules.taxonomy.service import (
    create_term,
    delete_term,
    get_term,
    list_terms,
    post_counts,
    serialize_term,
    update_term,
)

bp = Blueprint("taxonomy", __name__)


def _list(model: type):
    s = db_session()
    page, counts = list_terms(s, model, request.args)
    return jsonify(page.envelope(lambda t: serialize_term(t, counts.get(t.id, 0))))


def _detail(model: type, term_id: int):
    s = db_session()
    term = get_term(s, model, term_id)
    return jsonify(serialize_term(term, post_counts(s, model, [term.id]).get(term.id, 0)))


def _create(model: type):
    s = db_session()
    term = create_term(s, model, request.get_json(silent=True), current_actor())
    s.commit()
    return jsonify(serialize_term(term)), 201


def _update(model: type, term_id: int):
    s = db_session()
    term = update_term(s, model, term_id, request.get_json(silent=True), current_actor())
    s.commit()
    return jsonify(serialize_term(term))


def _delete(model: type, term_id: int, label: str):
    s = db_session()
    delete_term(s, model, term_id, current_actor())
    s.commit()
    return jsonify({"message": f"{label} deleted successfully", "count": 1})


# ---------- Categories ----------
@bp.get("/categories")
def categories_list():
    return _list(Category)


@bp.post("/categories")
def categories_create():
    return _create(Category)


@bp.get("/categories/<id:category_id>")
def category_detail(category_id: int):
    return _detail(Category, category_id)


@bp.put("/categories/<id:category_id>")
def category_update(category_id: int):
    return _update(Category, category_id)


@bp.delete("/categories/<id:category_id>")
def category_delete(category_id: int):
    return _delete(Category, category_id, "Category")


# ---------- Tags ----------
@bp.get("/tags")
def tags_list():
    return _list(Tag)


@bp.post("/tags")
def tags_create():
    return _create(Tag)


@bp.get("/tags/<id:tag_id>")
def tag_detail(tag_id: int):
    return _detail(Tag, tag_id)


@bp.put("/tags/<id:tag_id>")
def tag_update(tag_id: int):
    return _update(Tag, tag_id)


@bp.delete("/tags/<id:tag_id>")
def tag_delete(tag_id: int):
    return _delete(Tag, tag_id, "Tag")
