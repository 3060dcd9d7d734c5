# secureweb/authorization.py

"""
Ownership / role authorization check (IDOR prevention).

`authorize` decides whether a principal may view a resource. It is a pure
function of its two arguments: no store, request or clock is consulted, so it
can be tested on its own and reused for both single-record and list routes.

Policy, evaluated in order, first match wins:
1. customer, not the owner          -> denied (NOT_OWNER)
2. support, different department    -> denied (OUT_OF_DEPARTMENT)
3. customer or support otherwise    -> allowed
4. any other role                   -> denied (UNKNOWN_ROLE)
"""

from enum import Enum
from typing import Iterable, List, TypeVar

from pydantic import BaseModel, ConfigDict

from secureweb.schemas import Principal, Resource, Role


class DenialReason(str, Enum):
    NOT_OWNER = "not_owner"
    OUT_OF_DEPARTMENT = "out_of_department"
    UNKNOWN_ROLE = "unknown_role"


class AuthorizationDecision(BaseModel):
    model_config = ConfigDict(frozen=True)

    allowed: bool
    reason: DenialReason | None = None

    @classmethod
    def allow(cls) -> "AuthorizationDecision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: DenialReason) -> "AuthorizationDecision":
        return cls(allowed=False, reason=reason)


def authorize(principal: Principal, resource: Resource) -> AuthorizationDecision:
    """
    Decide whether `principal` may view `resource`.

    Args:
        principal (Principal): The authenticated caller.
        resource (Resource): The requested record.

    Returns:
        AuthorizationDecision: `allowed=True`, or `allowed=False` with a reason.
    """
    if principal.role == Role.CUSTOMER:
        if resource.owner_id != principal.id:
            return AuthorizationDecision.deny(DenialReason.NOT_OWNER)
        return AuthorizationDecision.allow()

    if principal.role == Role.SUPPORT:
        if resource.region != principal.department:
            return AuthorizationDecision.deny(DenialReason.OUT_OF_DEPARTMENT)
        return AuthorizationDecision.allow()

    # Deny unless a rule above explicitly allowed
    return AuthorizationDecision.deny(DenialReason.UNKNOWN_ROLE)


R = TypeVar("R", bound=Resource)


def visible_to(principal: Principal, resources: Iterable[R]) -> List[R]:
    """Filter `resources` down to those `principal` is allowed to view."""
    return [r for r in resources if authorize(principal, r).allowed]
