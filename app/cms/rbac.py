from __future__ import annotations

from flask import g, has_request_context
from sqlalchemy.orm import Session

from app.cms.constants import PERMISSIONS, ROLE_NAMES, ROLE_PERMISSIONS
from app.cms.errors import Forbidden, Unauthenticated
from app.cms.models import Permission, Role, User


def user_has_permission(user: User | None, permission_key: str) -> bool:
    if not user or not user.is_active:
        return False
    for role in user.roles:
        for perm in role.permissions:
            if perm.key == permission_key:
                return True
    return False


def require_actor(actor: User | None) -> User:
    """Unauthenticated (401) unless there is an active caller."""
    if not actor or not actor.is_active:
        raise Unauthenticated()
    return actor


def require_permission(actor: User | None, permission_key: str) -> User:
    """401 without a caller, 403 when the caller's roles lack `permission_key`."""
    user = require_actor(actor)
    if not user_has_permission(user, permission_key):
        if has_request_context():
            g.missing_permission = permission_key
        raise Forbidden(permission=permission_key)
    return user


def seed_roles(s: Session) -> dict[str, Role]:
    """Create the permission and role rows (idempotent). Returns roles by key."""
    perms: dict[str, Permission] = {}
    for key, name in PERMISSIONS.items():
        p = s.query(Permission).filter(Permission.key == key).one_or_none()
        if not p:
            p = Permission(key=key, name=name)
            s.add(p)
        perms[key] = p

    roles: dict[str, Role] = {}
    for role_key, perm_keys in ROLE_PERMISSIONS.items():
        role = s.query(Role).filter(Role.key == role_key).one_or_none()
        if not role:
            role = Role(key=role_key, name=ROLE_NAMES[role_key])
            s.add(role)
        for perm_key in perm_keys:
            if perms[perm_key] not in role.permissions:
                role.permissions.append(perms[perm_key])
        roles[role_key] = role
    s.flush()
    return roles
