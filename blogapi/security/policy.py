"""
Blog API — Ownership & Role Policy
====================================

What:  Decides whether a principal may mutate a resource.
Why:   One place for every authorization rule; services call it after the
       target is loaded and before anything is changed.
How:   Pure functions, no I/O, no side effects.

Capabilities:
    OWNER_ONLY  allowed iff principal.user_id == the resource's owner field
    ADMIN_ONLY  allowed iff principal.is_admin

    Each mutating operation picks exactly one capability. They are never
    OR-combined (an admin is not implicitly an owner and vice versa).
"""

import enum
import uuid
from dataclasses import dataclass
from typing import Optional

from blogapi.exceptions import AuthenticationError, ForbiddenError
from blogapi.security.principal import Principal


class Capability(str, enum.Enum):
    OWNER_ONLY = "owner_only"
    ADMIN_ONLY = "admin_only"


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[str] = None


ALLOW = Decision(allowed=True)


def authorize(
    principal: Optional[Principal],
    capability: Capability,
    owner_id: Optional[uuid.UUID] = None,
) -> Decision:
    """
    Evaluate one capability for one principal.

    Args:
        principal: The authenticated identity, or None for an anonymous request
        capability: Which check to run
        owner_id: The resource's author/owner field (OWNER_ONLY only). A
                  resource without an owner can never pass OWNER_ONLY.
    """
    if principal is None:
        return Decision(allowed=False, reason="unauthenticated")

    if capability is Capability.OWNER_ONLY:
        if owner_id is not None and principal.user_id == owner_id:
            return ALLOW
        return Decision(allowed=False, reason="forbidden")

    if capability is Capability.ADMIN_ONLY:
        if principal.is_admin:
            return ALLOW
        return Decision(allowed=False, reason="forbidden")

    raise ValueError(f"Unknown capability: {capability!r}")


def enforce(
    principal: Optional[Principal],
    capability: Capability,
    owner_id: Optional[uuid.UUID] = None,
    *,
    action: str = "modify",
    resource: str = "resource",
) -> None:
    """Raise if `authorize()` denies; return None otherwise."""
    decision = authorize(principal, capability, owner_id)
    if decision.allowed:
        return
    if decision.reason == "unauthenticated":
        raise AuthenticationError("missing")

    context = {
        "capability": capability.value,
        "user_id": str(principal.user_id),
        "action": action,
        "resource": resource,
    }
    if capability is Capability.ADMIN_ONLY:
        raise ForbiddenError("Access denied. Admins only.", context=context)
    raise ForbiddenError(f"Only the author can {action} this {resource}", context=context)
