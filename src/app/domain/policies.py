# src/app/domain/policies.py
"""
Authorization policy consulted by the routing layer.
Handlers never check roles themselves.
"""
from __future__ import annotations

from enum import Enum
from typing import Optional

from src.app.domain.errors import AuthenticationError, PermissionDeniedError
from src.app.domain.models import Role


class Access(str, Enum):
    PUBLIC = "public"
    AUTHENTICATED = "authenticated"
    ADMIN = "admin"


_ALLOWED_ROLES: dict[Access, frozenset[Optional[Role]]] = {
    Access.PUBLIC: frozenset({None, Role.USER, Role.ADMIN}),
    Access.AUTHENTICATED: frozenset({Role.USER, Role.ADMIN}),
    Access.ADMIN: frozenset({Role.ADMIN}),
}


def is_allowed(role: Optional[Role], access: Access) -> bool:
    """role is None for anonymous callers."""
    return role in _ALLOWED_ROLES[access]


def authorize(role: Optional[Role], access: Access) -> None:
    if is_allowed(role, access):
        return
    if role is None:
        raise AuthenticationError("Not authorized, no token")
    raise PermissionDeniedError()
