from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import func

from app.cms.audit import CREATE, DELETE, UPDATE, record_event
from app.cms.constants import TEAM_PAGE_SIZE
from app.cms.errors import NotFound
from app.cms.listing import Page, paginate, parse_bool_arg, parse_pagination, search_clause
from app.cms.rbac import require_permission
from app.cms.utils import iso
from app.cms.validation import (
    add_error,
    is_valid_email,
    is_valid_url,
    require_object,
    require_valid,
    take_bool,
    take_int,
    take_string,
)
from app.cms.modules.team.models import ContactInfo, SocialLink, TeamMember

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.cms.models import User

PERMISSION = "team.manage"


def _validate_social_links(value: Any, errors: list) -> list[dict] | None:
    if not isinstance(value, list):
        add_error(errors, "socialLinks", "socialLinks must be an array")
        return None
    links: list[dict] = []
    for idx, item in enumerate(value):
        prefix = f"socialLinks[{idx}]"
        if not isinstance(item, dict):
            add_error(errors, prefix, "Each social link must be an object")
            continue
        platform = item.get("platform")
        url = item.get("url")
        ok = True
        if not isinstance(platform, str) or not platform.strip():
            add_error(errors, f"{prefix}.platform", "Platform is required")
            ok = False
        if not isinstance(url, str) or not is_valid_url(url.strip()):
            add_error(errors, f"{prefix}.url", "Invalid URL")
            ok = False
        if ok:
            links.append({"platform": platform.strip(), "url": url.strip()})
    return links


def _validate_contact_info(value: Any, errors: list) -> dict | None:
    if not isinstance(value, dict):
        add_error(errors, "contactInfo", "contactInfo must be an object")
        return None
    info: dict[str, Any] = {}
    nested: list[dict[str, str]] = []
    take_string(value, "email", info, nested, label="Email", max_length=320)
    take_string(value, "phone", info, nested, label="Phone", max_length=64)
    if info.get("email") and not is_valid_email(info["email"]):
        add_error(nested, "email", "Invalid email")
    for err in nested:
        add_error(errors, f"contactInfo.{err['field']}", err["message"])
    return {"email": info.get("email"), "phone": info.get("phone")}


def validate_team_payload(payload: dict, partial: bool = False) -> tuple[dict, list[dict[str, str]]]:
    """Validate team member creation/update payload. Returns (cleaned, errors)."""
    cleaned: dict[str, Any] = {}
    errors: list[dict[str, str]] = []
    take_string(payload, "name", cleaned, errors, label="Name", required=not partial, nonempty=True, max_length=255)
    take_string(payload, "title", cleaned, errors, label="Title", required=not partial, nonempty=True, max_length=255)
    take_string(payload, "bio", cleaned, errors, label="Bio", required=not partial, nonempty=True)
    take_string(payload, "photo", cleaned, errors, label="Photo", max_length=1024)
    take_string(payload, "specializations", cleaned, errors, label="Specializations")
    take_int(payload, "displayOrder", cleaned, errors, dest="display_order", label="Display order", min_value=0)
    take_bool(payload, "isVisible", cleaned, errors, dest="is_visible", label="isVisible")

    if payload.get("socialLinks") is not None:
        links = _validate_social_links(payload["socialLinks"], errors)
        if links is not None:
            cleaned["social_links"] = links
    elif "socialLinks" in payload:
        cleaned["social_links"] = []

    if payload.get("contactInfo") is not None:
        info = _validate_contact_info(payload["contactInfo"], errors)
        if info is not None:
            cleaned["contact_info"] = info
    elif "contactInfo" in payload:
        cleaned["contact_info"] = None
    return cleaned, errors


def serialize_team_member(member: TeamMember) -> dict:
    contact = member.contact_info
    return {
        "id": member.id,
        "name": member.name,
        "title": member.title,
        "bio": member.bio,
        "photo": member.photo,
        "specializations": member.specializations,
        "displayOrder": member.display_order,
        "isVisible": member.is_visible,
        "socialLinks": [{"id": link.id, "platform": link.platform, "url": link.url} for link in member.social_links],
        "contactInfo": {"email": contact.email, "phone": contact.phone} if contact else None,
        "createdAt": iso(member.created_at),
        "updatedAt": iso(member.updated_at),
    }


def list_team_members(s: "Session", args: Mapping[str, Any]) -> Page:
    """
    Hidden members are excluded unless includeHidden=true.
    Search covers name, title, bio and specializations. Ordered by display order.
    """
    page, limit = parse_pagination(args, TEAM_PAGE_SIZE)
    q = s.query(TeamMember)
    if not parse_bool_arg(args.get("includeHidden")):
        q = q.filter(TeamMember.is_visible.is_(True))
    search = (args.get("search") or "").strip()
    if search:
        q = q.filter(
            search_clause(search, TeamMember.name, TeamMember.title, TeamMember.bio, TeamMember.specializations)
        )
    q = q.order_by(TeamMember.display_order.asc(), TeamMember.id.asc())
    return paginate(q, page, limit)


def get_team_member(s: "Session", member_id: int) -> TeamMember:
    member = s.get(TeamMember, member_id)
    if not member:
        raise NotFound("Team member not found")
    return member


def next_display_order(s: "Session") -> int:
    """max(display_order) + 1, or 0 when there are no members."""
    current = s.query(func.max(TeamMember.display_order)).scalar()
    return 0 if current is None else int(current) + 1


def _apply_contact_info(member: TeamMember, info: dict | None) -> None:
    if info is None:
        member.contact_info = None
        return
    # Updated in place: the one-to-one row is unique per member.
    if member.contact_info is None:
        member.contact_info = ContactInfo(email=info.get("email"), phone=info.get("phone"))
    else:
        member.contact_info.email = info.get("email")
        member.contact_info.phone = info.get("phone")


def create_team_member(s: "Session", payload: Any, actor: "User | None") -> TeamMember:
    user = require_permission(actor, PERMISSION)
    cleaned, errors = validate_team_payload(require_object(payload))
    require_valid(errors)

    display_order = cleaned.get("display_order")
    if display_order is None:
        display_order = next_display_order(s)

    now = datetime.utcnow()
    member = TeamMember(
        name=cleaned["name"],
        title=cleaned["title"],
        bio=cleaned["bio"],
        photo=cleaned.get("photo"),
        specializations=cleaned.get("specializations"),
        display_order=display_order,
        is_visible=cleaned.get("is_visible", True),
        created_at=now,
        updated_at=now,
    )
    member.social_links = [SocialLink(**link) for link in cleaned.get("social_links") or []]
    if cleaned.get("contact_info"):
        _apply_contact_info(member, cleaned["contact_info"])
    s.add(member)
    s.flush()

    record_event(
        s,
        actor=user,
        action=CREATE,
        entity_type="TeamMember",
        entity_id=str(member.id),
        details=f'Created team member "{member.name}"',
        metadata={"display_order": member.display_order, "is_visible": member.is_visible},
    )
    return member


_SCALAR_FIELDS = ("name", "title", "bio", "photo", "specializations", "display_order", "is_visible")


def update_team_member(s: "Session", member_id: int, payload: Any, actor: "User | None") -> TeamMember:
    """Partial update; socialLinks and contactInfo are replaced wholesale when sent."""
    user = require_permission(actor, PERMISSION)
    member = get_team_member(s, member_id)
    cleaned, errors = validate_team_payload(require_object(payload), partial=True)
    require_valid(errors)

    changes: dict[str, dict[str, Any]] = {}
    for field in _SCALAR_FIELDS:
        if field in cleaned and cleaned[field] != getattr(member, field):
            changes[field] = {"old": getattr(member, field), "new": cleaned[field]}
            setattr(member, field, cleaned[field])

    if "social_links" in cleaned:
        member.social_links = [SocialLink(**link) for link in cleaned["social_links"]]
        changes["social_links"] = {"new": cleaned["social_links"]}
    if "contact_info" in cleaned:
        _apply_contact_info(member, cleaned["contact_info"])
        changes["contact_info"] = {"new": cleaned["contact_info"]}

    member.updated_at = datetime.utcnow()
    s.flush()

    record_event(
        s,
        actor=user,
        action=UPDATE,
        entity_type="TeamMember",
        entity_id=str(member.id),
        details=f'Updated team member "{member.name}"',
        metadata={"changes": changes},
    )
    return member


def delete_team_member(s: "Session", member_id: int, actor: "User | None") -> None:
    user = require_permission(actor, PERMISSION)
    member = get_team_member(s, member_id)
    name = member.name
    s.delete(member)
    s.flush()

    record_event(
        s,
        actor=user,
        action=DELETE,
        entity_type="TeamMember",
        entity_id=str(member_id),
        details=f'Deleted team member "{name}"',
    )
