from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import func

from app.cms.audit import CREATE, DELETE, UPDATE, record_event
from app.cms.constants import TAXONOMY_PAGE_SIZE
from app.cms.errors import NotFound
from app.cms.listing import Page, paginate, parse_pagination, search_clause
from app.cms.rbac import require_permission
from app.cms.utils import ensure_unique_slug, flush_or_conflict, iso, resolve_slug
from app.cms.validation import require_object, require_valid, take_string
from app.cms.modules.posts.models import PostCategory, PostTag
from app.cms.modules.taxonomy.models import Category, Tag

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.cms.models import User

# model -> (display label, permission key, post link model, link fk column)
_TERMS: dict[type, tuple[str, str, type, str]] = {
    Category: ("Category", "categories.manage", PostCategory, "category_id"),
    Tag: ("Tag", "tags.manage", PostTag, "tag_id"),
}


def validate_term_payload(payload: dict, partial: bool = False) -> tuple[dict, list[dict[str, str]]]:
    """Validate category/tag creation (or partial update) payload."""
    cleaned: dict[str, Any] = {}
    errors: list[dict[str, str]] = []
    take_string(payload, "name", cleaned, errors, label="Name", required=not partial, nonempty=True, max_length=255)
    take_string(payload, "description", cleaned, errors, label="Description")
    take_string(payload, "slug", cleaned, errors, label="Slug", max_length=255)
    return cleaned, errors


def serialize_term(term: Category | Tag, post_count: int | None = None) -> dict:
    data = {
        "id": term.id,
        "name": term.name,
        "slug": term.slug,
        "description": term.description,
        "createdAt": iso(term.created_at),
        "updatedAt": iso(term.updated_at),
    }
    if post_count is not None:
        data["postCount"] = post_count
    return data


def post_counts(s: "Session", model: type, ids: list[int]) -> dict[int, int]:
    if not ids:
        return {}
    _, _, link_model, fk = _TERMS[model]
    col = getattr(link_model, fk)
    rows = s.query(col, func.count()).filter(col.in_(ids)).group_by(col).all()
    return {int(term_id): int(cnt) for term_id, cnt in rows}


def list_terms(s: "Session", model: type, args: Mapping[str, Any]) -> tuple[Page, dict[int, int]]:
    """Search name/description; name ascending. Returns the page and per-term post counts."""
    page, limit = parse_pagination(args, TAXONOMY_PAGE_SIZE)
    q = s.query(model)
    search = (args.get("search") or "").strip()
    if search:
        q = q.filter(search_clause(search, model.name, model.description))
    q = q.order_by(model.name.asc(), model.id.asc())
    result = paginate(q, page, limit)
    return result, post_counts(s, model, [t.id for t in result.items])


def get_term(s: "Session", model: type, term_id: int) -> Category | Tag:
    term = s.get(model, term_id)
    if not term:
        raise NotFound(f"{_TERMS[model][0]} not found")
    return term


def create_term(s: "Session", model: type, payload: Any, actor: "User | None") -> Category | Tag:
    label, permission, _, _ = _TERMS[model]
    user = require_permission(actor, permission)
    cleaned, errors = validate_term_payload(require_object(payload))
    require_valid(errors)

    slug = resolve_slug(cleaned.get("slug"), cleaned["name"])
    ensure_unique_slug(s, model, slug, label=label)

    now = datetime.utcnow()
    term = model(
        name=cleaned["name"],
        slug=slug,
        description=cleaned.get("description"),
        created_at=now,
        updated_at=now,
    )
    s.add(term)
    flush_or_conflict(s, label=label)

    record_event(
        s,
        actor=user,
        action=CREATE,
        entity_type=label,
        entity_id=str(term.id),
        details=f'Created {label.lower()} "{term.name}"',
        metadata={"slug": term.slug},
    )
    return term


def update_term(s: "Session", model: type, term_id: int, payload: Any, actor: "User | None") -> Category | Tag:
    label, permission, _, _ = _TERMS[model]
    user = require_permission(actor, permission)
    term = get_term(s, model, term_id)
    cleaned, errors = validate_term_payload(require_object(payload), partial=True)
    require_valid(errors)

    changes: dict[str, dict[str, Any]] = {}
    if cleaned.get("slug"):
        new_slug = resolve_slug(cleaned["slug"], None)
    elif "name" in cleaned:
        new_slug = resolve_slug(None, cleaned["name"])
    else:
        new_slug = term.slug
    if new_slug != term.slug:
        ensure_unique_slug(s, model, new_slug, label=label, exclude_id=term.id)
        changes["slug"] = {"old": term.slug, "new": new_slug}
        term.slug = new_slug

    for field in ("name", "description"):
        if field in cleaned and cleaned[field] != getattr(term, field):
            changes[field] = {"old": getattr(term, field), "new": cleaned[field]}
            setattr(term, field, cleaned[field])

    term.updated_at = datetime.utcnow()
    flush_or_conflict(s, label=label)

    record_event(
        s,
        actor=user,
        action=UPDATE,
        entity_type=label,
        entity_id=str(term.id),
        details=f'Updated {label.lower()} "{term.name}"',
        metadata={"changes": changes},
    )
    return term


def delete_term(s: "Session", model: type, term_id: int, actor: "User | None") -> None:
    label, permission, link_model, fk = _TERMS[model]
    user = require_permission(actor, permission)
    term = get_term(s, model, term_id)
    name = term.name
    # Detach from posts first so this does not rely on ON DELETE CASCADE being enforced.
    s.query(link_model).filter(getattr(link_model, fk) == term.id).delete(synchronize_session=False)
    s.delete(term)
    s.flush()

    record_event(
        s,
        actor=user,
        action=DELETE,
        entity_type=label,
        entity_id=str(term_id),
        details=f'Deleted {label.lower()} "{name}"',
    )
