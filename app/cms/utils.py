from __future__ import annotations

import re

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.cms.errors import Conflict, ValidationFailed

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(value: str | None) -> str:
    """
    Deterministic URL slug.

    Lowercases, collapses every run of non-alphanumeric characters into a
    single hyphen and trims leading/trailing hyphens.

        >>> slugify("Tips for Healthy Aging")
        'tips-for-healthy-aging'
        >>> slugify("  Dr. Smith's -- Q&A!  ")
        'dr-smith-s-q-a'
    """
    return _NON_ALNUM.sub("-", (value or "").lower()).strip("-")


def iso(value) -> str | None:
    """ISO-8601 string for datetimes (None passes through)."""
    if value is None:
        return None
    return value.isoformat()


def resolve_slug(explicit: str | None, source: str | None) -> str:
    """Slug from an explicit value if given, else derived from `source`."""
    slug = slugify(explicit or source)
    if not slug:
        raise ValidationFailed([{"field": "slug", "message": "Could not derive a URL slug; provide a slug or a name with letters or digits."}])
    return slug


def ensure_unique_slug(s: Session, model: type, slug: str, *, label: str, exclude_id: int | None = None) -> None:
    """Conflict if another `model` row already uses `slug`."""
    q = s.query(model.id).filter(model.slug == slug)
    if exclude_id is not None:
        q = q.filter(model.id != exclude_id)
    if q.first() is not None:
        raise Conflict(f"A {label.lower()} with this slug already exists")


def flush_or_conflict(s: Session, *, label: str) -> None:
    """
    Flush pending writes; a unique-constraint hit becomes the same Conflict
    `ensure_unique_slug` raises. Covers two writers racing for one slug.
    """
    try:
        s.flush()
    except IntegrityError as e:
        raise Conflict(f"A {label.lower()} with this slug already exists") from e
