"""
Field-level payload coercion shared by the resource validators.

Each `take_*` helper reads one key from an untrusted payload, appends a
`{"field", "message"}` entry to `errors` on failure and otherwise stores the
coerced value in `cleaned[dest]`. Keys absent from the payload are left out of
`cleaned`, which is how partial updates tell "not sent" from "cleared".
"""
from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any
from urllib.parse import urlsplit

from app.cms.errors import ValidationFailed

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# Upper bound of a 32-bit INTEGER column; ids and stored ints stay inside it.
MAX_INT = 2**31 - 1


def add_error(errors: list[dict[str, str]], field: str, message: str) -> None:
    errors.append({"field": field, "message": message})


def require_valid(errors: list[dict[str, str]]) -> None:
    if errors:
        raise ValidationFailed(errors)


def require_object(payload: Any) -> dict:
    if not isinstance(payload, dict):
        raise ValidationFailed([{"field": "body", "message": "Expected a JSON object."}])
    return payload


def is_valid_url(value: str) -> bool:
    parts = urlsplit(value)
    return parts.scheme in ("http", "https") and bool(parts.netloc)


def is_valid_email(value: str) -> bool:
    return bool(_EMAIL_RE.match(value))


def parse_datetime(value: str) -> datetime:
    """Parse ISO-8601; a trailing 'Z' is accepted. Aware values are stored as naive UTC."""
    raw = value.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    dt = datetime.fromisoformat(raw)
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def take_string(
    payload: dict,
    key: str,
    cleaned: dict,
    errors: list,
    *,
    dest: str | None = None,
    label: str | None = None,
    required: bool = False,
    nonempty: bool = False,
    max_length: int | None = None,
) -> None:
    dest = dest or key
    label = label or key
    if key not in payload or payload[key] is None:
        if required or (nonempty and key in payload):
            add_error(errors, key, f"{label} is required")
        elif key in payload:
            cleaned[dest] = None
        return
    value = payload[key]
    if not isinstance(value, str):
        add_error(errors, key, f"{label} must be a string")
        return
    value = value.strip()
    if not value:
        if required or nonempty:
            add_error(errors, key, f"{label} is required")
            return
        cleaned[dest] = None
        return
    if max_length is not None and len(value) > max_length:
        add_error(errors, key, f"{label} must be at most {max_length} characters")
        return
    cleaned[dest] = value


def take_choice(
    payload: dict,
    key: str,
    cleaned: dict,
    errors: list,
    choices: tuple[str, ...],
    *,
    dest: str | None = None,
    label: str | None = None,
    required: bool = False,
) -> None:
    dest = dest or key
    label = label or key
    if key not in payload or payload[key] is None:
        if required:
            add_error(errors, key, f"{label} is required")
        return
    value = payload[key]
    if value not in choices:
        add_error(errors, key, f"{label} must be one of: {', '.join(choices)}")
        return
    cleaned[dest] = value


def take_int(
    payload: dict,
    key: str,
    cleaned: dict,
    errors: list,
    *,
    dest: str | None = None,
    label: str | None = None,
    required: bool = False,
    min_value: int | None = None,
) -> None:
    dest = dest or key
    label = label or key
    if key not in payload or payload[key] is None:
        if required:
            add_error(errors, key, f"{label} is required")
        return
    value = payload[key]
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int):
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        else:
            add_error(errors, key, f"{label} must be an integer")
            return
    if min_value is not None and value < min_value:
        add_error(errors, key, f"{label} must be at least {min_value}")
        return
    if value > MAX_INT:
        add_error(errors, key, f"{label} must be at most {MAX_INT}")
        return
    cleaned[dest] = value


def take_bool(payload: dict, key: str, cleaned: dict, errors: list, *, dest: str | None = None, label: str | None = None) -> None:
    dest = dest or key
    label = label or key
    if key not in payload or payload[key] is None:
        return
    value = payload[key]
    if not isinstance(value, bool):
        add_error(errors, key, f"{label} must be a boolean")
        return
    cleaned[dest] = value


def take_datetime(
    payload: dict,
    key: str,
    cleaned: dict,
    errors: list,
    *,
    dest: str | None = None,
    label: str | None = None,
) -> None:
    dest = dest or key
    label = label or key
    if key not in payload:
        return
    value = payload[key]
    if value is None or (isinstance(value, str) and not value.strip()):
        cleaned[dest] = None
        return
    if not isinstance(value, str):
        add_error(errors, key, f"{label} must be an ISO-8601 date string")
        return
    try:
        cleaned[dest] = parse_datetime(value)
    except ValueError:
        add_error(errors, key, f"{label} must be an ISO-8601 date string")


def coerce_id(value: Any) -> int | None:
    """Id in 1..MAX_INT from an int or an ASCII-digit string; None otherwise."""
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        raw = value.strip()
        if not (raw.isascii() and raw.isdigit()):
            return None
        value = int(raw)
    if not isinstance(value, int):
        return None
    return value if 1 <= value <= MAX_INT else None


def take_id_list(
    payload: dict,
    key: str,
    cleaned: dict,
    errors: list,
    *,
    dest: str | None = None,
    label: str | None = None,
) -> None:
    dest = dest or key
    label = label or key
    if key not in payload or payload[key] is None:
        return
    value = payload[key]
    if not isinstance(value, list):
        add_error(errors, key, f"{label} must be an array of ids")
        return
    ids: list[int] = []
    for item in value:
        coerced = coerce_id(item)
        if coerced is None:
            add_error(errors, key, f"{label} contains an invalid id: {item!r}")
            return
        if coerced not in ids:
            ids.append(coerced)
    cleaned[dest] = ids
