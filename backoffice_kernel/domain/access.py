"""
Access rules (``backoffice_kernel.domain.access``).

Responsibility
--------------
The session user as seen by services (``Actor``) and the pure predicates
that decide business-unit visibility and role-gated operations.  Services
call ``require_*`` at the top of every mutating operation.

Architecture position
---------------------
**Kernel domain layer** -- pure.  ZERO I/O.  ``UserModel.to_actor()``
builds an Actor from the persisted user.

Invariants enforced
-------------------
* ADMIN, HR, accounting and purchasing users see every business unit.
* Everyone else sees only their own business unit.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from backoffice_kernel.exceptions import BusinessUnitAccessError, PermissionDeniedError


class UserRole(str, Enum):
    """Application roles."""

    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    USER = "USER"
    HR = "HR"
    ACCTG = "ACCTG"
    PURCHASER = "PURCHASER"
    STOCKROOM = "STOCKROOM"
    TREASURY = "TREASURY"


GLOBAL_ACCESS_ROLES: frozenset[UserRole] = frozenset({UserRole.ADMIN, UserRole.HR})


@dataclass(frozen=True)
class Actor:
    """The authenticated user performing an operation."""

    user_id: UUID
    employee_id: str
    role: UserRole
    business_unit_id: UUID | None = None
    department_id: UUID | None = None
    is_acctg: bool = False
    is_purchaser: bool = False
    is_treasury: bool = False

    def has_role(self, *roles: UserRole) -> bool:
        return self.role in roles

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def can_purchase(self) -> bool:
        return self.is_purchaser or self.role == UserRole.PURCHASER

    @property
    def can_post(self) -> bool:
        return self.is_acctg or self.role == UserRole.ACCTG


def has_global_access(
    actor: Actor,
    global_roles: frozenset[UserRole] = GLOBAL_ACCESS_ROLES,
) -> bool:
    """True if the actor may see every business unit."""
    return actor.role in global_roles or actor.is_acctg or actor.is_purchaser


def can_access_business_unit(
    actor: Actor,
    business_unit_id: UUID,
    global_roles: frozenset[UserRole] = GLOBAL_ACCESS_ROLES,
) -> bool:
    """True if the actor may read or write data in ``business_unit_id``."""
    if has_global_access(actor, global_roles):
        return True
    return actor.business_unit_id == business_unit_id


def require_business_unit_access(
    actor: Actor,
    business_unit_id: UUID,
    global_roles: frozenset[UserRole] = GLOBAL_ACCESS_ROLES,
) -> None:
    """Raise BusinessUnitAccessError unless the actor can access the unit."""
    if not can_access_business_unit(actor, business_unit_id, global_roles):
        raise BusinessUnitAccessError(str(actor.user_id), str(business_unit_id))


def require_role(
    actor: Actor,
    operation: str,
    *roles: UserRole,
    allow_acctg: bool = False,
    allow_purchaser: bool = False,
) -> None:
    """
    Raise PermissionDeniedError unless the actor holds one of ``roles``.

    ``allow_acctg`` / ``allow_purchaser`` also admit users whose accounting or
    purchasing flag is set regardless of their role.
    """
    if actor.role in roles:
        return
    if allow_acctg and actor.can_post:
        return
    if allow_purchaser and actor.can_purchase:
        return
    required = tuple(r.value for r in roles)
    if allow_acctg:
        required += ("is_acctg",)
    if allow_purchaser:
        required += ("is_purchaser",)
    raise PermissionDeniedError(str(actor.user_id), operation, required)
