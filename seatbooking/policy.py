"""Maps an operation class and a caller to an access decision."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from .exceptions import Forbidden, Unauthenticated
from .models import Identity


class OperationClass(str, Enum):
    PUBLIC = "public"
    AUTHENTICATED = "authenticated"
    ADMIN = "admin"


class Decision(str, Enum):
    ALLOW = "allow"
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"


def authorize(operation: OperationClass, identity: Optional[Identity]) -> Decision:
    """Decide whether ``identity`` may perform an operation of class ``operation``."""
    if operation is OperationClass.PUBLIC:
        return Decision.ALLOW
    if identity is None:
        return Decision.UNAUTHENTICATED
    if operation is OperationClass.ADMIN and not identity.is_admin:
        return Decision.FORBIDDEN
    return Decision.ALLOW


def require(operation: OperationClass, identity: Optional[Identity]) -> Optional[Identity]:
    """Return ``identity`` when allowed, raising the matching denial otherwise."""
    decision = authorize(operation, identity)
    if decision is Decision.UNAUTHENTICATED:
        raise Unauthenticated()
    if decision is Decision.FORBIDDEN:
        raise Forbidden()
    return identity


__all__ = ["Decision", "OperationClass", "authorize", "require"]
