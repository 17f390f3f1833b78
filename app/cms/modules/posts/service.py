from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import TYPE_CHECKING, Any

from app.cms.audit import CREATE, DELETE, UPDATE, record_event
from app.cms.constants import POST_STATUSES, POSTS_PAGE_SIZE
from app.cms.db import replace_links
from app.cms.errors import Forbidden, NotFound, ValidationFailed
from app.cms.listing import Page, paginate, parse_pagination, search_clause
from app.cms.rbac import require_actor, user_has_permission
from app.cms.utils import ensure_unique_slug, flush_or_conflict, iso, resolve_slug
from app.cms.validation import (
    add_error,
    coerce_id,
    require_object,
    require_valid,
    take_choice,
    take_datetime,
    take_id_list,
    take_string,
)
from app.cms.modules.posts.models import Post, PostCategory, PostTag
from app.cms.modules.taxonomy.models import Category, Tag
from app.cms.modules.taxonomy.service import serialize_term

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.cms.models import User


def validate_post_payload(payload: dict, partial: bool = False) -> tuple[dict, list[dict[str, str]]]:
    """
    Validate post creation/update payload.

    Returns (cleaned, errors); `cleaned` uses model attribute names and only
    holds keys that were sent. Every failing field is reported.
    """
    cleaned: dict[str, Any] = {}
    errors: list[dict[str, str]] = []
    take_string(payload, "title", cleaned, errors, label="Title", required=not partial, nonempty=True, max_length=255)
    take_string(payload, "content", cleaned, errors, label="Content", required=not partial, nonempty=True)
    take_string(payload, "excerpt", cleaned, errors, label="Excerpt")
    take_string(payload, "featuredImage", cleaned, errors, dest="featured_image", label="Featured image", max_length=1024)
    take_choice(payload, "status", cleaned, errors, POST_STATUSES, label="Status", required=not partial)
    take_datetime(payload, "publishedAt", cleaned, errors, dest="published_at", label="Published at")
    take_id_list(payload, "categories", cleaned, errors, label="Categories")
    take_id_list(payload, "tags", cleaned, errors, label="Tags")
    take_string(payload, "metaTitle", cleaned, errors, dest="meta_title", label="Meta title", max_length=255)
    take_string(payload, "metaDescription", cleaned, errors, dest="meta_description", label="Meta description")
    take_string(payload, "slug", cleaned, errors, label="Slug", max_length=255)
    return cleaned, errors


def _check_ids_exist(s: "Session", model: type, ids: list[int], field: str, errors: list) -> None:
    if not ids:
        return
    found = {row[0] for row in s.query(model.id).filter(model.id.in_(ids)).all()}
    missing = [i for i in ids if i not in found]
    if missing:
        add_error(errors, field, f"Unknown {field} id(s): {', '.join(str(i) for i in missing)}")


def _validated(s: "Session", payload: Any, partial: bool) -> dict:
    cleaned, errors = validate_post_payload(require_object(payload), partial=partial)
    if "categories" in cleaned:
        _check_ids_exist(s, Category, cleaned["categories"], "categories", errors)
    if "tags" in cleaned:
        _check_ids_exist(s, Tag, cleaned["tags"], "tags", errors)
    require_valid(errors)
    return cleaned


def serialize_post(post: Post) -> dict:
    author = post.author
    return {
        "id": post.id,
        "title": post.title,
        "slug": post.slug,
        "content": post.content,
        "excerpt": post.excerpt,
        "featuredImage": post.featured_image,
        "status": post.status,
        "publishedAt": iso(post.published_at),
        "metaTitle": post.meta_title,
        "metaDescription": post.meta_description,
        "authorId": post.author_id,
        "author": {"id": author.id, "name": author.name, "email": author.email} if author else None,
        "categories": [serialize_term(link.category) for link in post.category_links],
        "tags": [serialize_term(link.tag) for link in post.tag_links],
        "createdAt": iso(post.created_at),
        "updatedAt": iso(post.updated_at),
    }


def _filter_id(args: Mapping[str, Any], key: str) -> int | None:
    raw = (args.get(key) or "").strip()
    if not raw:
        return None
    value = coerce_id(raw)
    if value is None:
        raise ValidationFailed([{"field": key, "message": f"{key} must be a numeric id"}])
    return value


def list_posts(s: "Session", args: Mapping[str, Any]) -> Page:
    """
    Filters: search (title, content), status, categoryId, tagId, authorId.
    Newest first.
    """
    page, limit = parse_pagination(args, POSTS_PAGE_SIZE)
    q = s.query(Post)

    status = (args.get("status") or "").strip()
    if status:
        if status not in POST_STATUSES:
            raise ValidationFailed([{"field": "status", "message": f"status must be one of: {', '.join(POST_STATUSES)}"}])
        q = q.filter(Post.status == status)

    search = (args.get("search") or "").strip()
    if search:
        q = q.filter(search_clause(search, Post.title, Post.content))

    category_id = _filter_id(args, "categoryId")
    if category_id is not None:
        q = q.filter(Post.category_links.any(PostCategory.category_id == category_id))

    tag_id = _filter_id(args, "tagId")
    if tag_id is not None:
        q = q.filter(Post.tag_links.any(PostTag.tag_id == tag_id))

    author_id = _filter_id(args, "authorId")
    if author_id is not None:
        q = q.filter(Post.author_id == author_id)

    q = q.order_by(Post.created_at.desc(), Post.id.desc())
    return paginate(q, page, limit)


def get_post(s: "Session", post_id: int) -> Post:
    post = s.get(Post, post_id)
    if not post:
        raise NotFound("Post not found")
    return post


def _require_owner_or_manager(post: Post, user: "User") -> None:
    """Only the author or a holder of posts.manage_any may change a post."""
    if post.author_id != user.id and not user_has_permission(user, "posts.manage_any"):
        raise Forbidden(permission="posts.manage_any")


def _replace_terms(s: "Session", post: Post, cleaned: dict) -> None:
    # Loaded collections are expired around the swap so the ORM never cascades to deleted link rows.
    if "categories" in cleaned:
        s.expire(post, ["category_links"])
        replace_links(s, PostCategory, "post_id", post.id, "category_id", cleaned["categories"])
        s.expire(post, ["category_links"])
    if "tags" in cleaned:
        s.expire(post, ["tag_links"])
        replace_links(s, PostTag, "post_id", post.id, "tag_id", cleaned["tags"])
        s.expire(post, ["tag_links"])


def create_post(s: "Session", payload: Any, actor: "User | None") -> Post:
    user = require_actor(actor)
    cleaned = _validated(s, payload, partial=False)

    slug = resolve_slug(cleaned.get("slug"), cleaned["title"])
    ensure_unique_slug(s, Post, slug, label="Post")

    published_at = cleaned.get("published_at")
    if cleaned["status"] == "PUBLISHED" and published_at is None:
        published_at = datetime.utcnow()

    now = datetime.utcnow()
    post = Post(
        title=cleaned["title"],
        slug=slug,
        content=cleaned["content"],
        excerpt=cleaned.get("excerpt"),
        featured_image=cleaned.get("featured_image"),
        status=cleaned["status"],
        published_at=published_at,
        meta_title=cleaned.get("meta_title"),
        meta_description=cleaned.get("meta_description"),
        author_id=user.id,
        created_at=now,
        updated_at=now,
    )
    s.add(post)
    flush_or_conflict(s, label="Post")
    _replace_terms(s, post, cleaned)

    record_event(
        s,
        actor=user,
        action=CREATE,
        entity_type="Post",
        entity_id=str(post.id),
        details=f'Created post "{post.title}"',
        metadata={"slug": post.slug, "status": post.status},
    )
    return post


_SCALAR_FIELDS = (
    "title",
    "content",
    "excerpt",
    "featured_image",
    "status",
    "published_at",
    "meta_title",
    "meta_description",
)


def update_post(s: "Session", post_id: int, payload: Any, actor: "User | None") -> Post:
    """
    Partial update. A new title without an explicit slug regenerates the slug.
    `categories`/`tags`, when sent, replace the whole association set.
    """
    user = require_actor(actor)
    post = get_post(s, post_id)
    _require_owner_or_manager(post, user)
    cleaned = _validated(s, payload, partial=True)
    original_title = post.title

    changes: dict[str, dict[str, Any]] = {}
    if cleaned.get("slug"):
        new_slug = resolve_slug(cleaned["slug"], None)
    elif cleaned.get("title"):
        new_slug = resolve_slug(None, cleaned["title"])
    else:
        new_slug = post.slug
    if new_slug != post.slug:
        ensure_unique_slug(s, Post, new_slug, label="Post", exclude_id=post.id)
        changes["slug"] = {"old": post.slug, "new": new_slug}
        post.slug = new_slug

    for field in _SCALAR_FIELDS:
        if field in cleaned and cleaned[field] != getattr(post, field):
            changes[field] = {"old": getattr(post, field), "new": cleaned[field]}
            setattr(post, field, cleaned[field])

    if "categories" in cleaned:
        changes["categories"] = {"new": cleaned["categories"]}
    if "tags" in cleaned:
        changes["tags"] = {"new": cleaned["tags"]}

    post.updated_at = datetime.utcnow()
    flush_or_conflict(s, label="Post")
    _replace_terms(s, post, cleaned)

    record_event(
        s,
        actor=user,
        action=UPDATE,
        entity_type="Post",
        entity_id=str(post.id),
        details=f'Updated post "{original_title}"',
        metadata={"changes": changes},
    )
    return post


def delete_post(s: "Session", post_id: int, actor: "User | None") -> None:
    user = require_actor(actor)
    post = get_post(s, post_id)
    _require_owner_or_manager(post, user)
    title = post.title
    s.delete(post)
    s.flush()

    record_event(
        s,
        actor=user,
        action=DELETE,
        entity_type="Post",
        entity_id=str(post_id),
        details=f'Deleted post "{title}"',
    )
