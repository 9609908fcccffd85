"""
Organization Domain Models.

Inputs for department, department-approver and user administration.
"""

from dataclasses import dataclass
from uuid import UUID

from backoffice_kernel.domain.access import UserRole
from backoffice_modules.material_requests.models import ApproverType

MANAGER_ROLES = (UserRole.MANAGER, UserRole.HR, UserRole.ADMIN)


@dataclass(frozen=True)
class DepartmentData:
    name: str
    business_unit_id: UUID
    code: str | None = None
    description: str | None = None
    is_active: bool = True


@dataclass(frozen=True)
class UserData:
    """Input for creating a user."""
    employee_id: str
    name: str
    password: str
    business_unit_id: UUID
    role: UserRole = UserRole.USER
    email: str | None = None
    department_id: UUID | None = None
    approver_id: UUID | None = None
    position: str | None = None
    classification: str | None = None
    is_acctg: bool = False
    is_purchaser: bool = False
    is_treasury: bool = False


@dataclass(frozen=True)
class UserUpdateData:
    """Changes to a user; ``None`` leaves a field unchanged."""
    name: str | None = None
    employee_id: str | None = None
    email: str | None = None
    role: UserRole | None = None
    business_unit_id: UUID | None = None
    department_id: UUID | None = None
    approver_id: UUID | None = None
    position: str | None = None
    classification: str | None = None
    is_active: bool | None = None
    is_acctg: bool | None = None
    is_purchaser: bool | None = None
    is_treasury: bool | None = None
    password: str | None = None


__all__ = [
    "MANAGER_ROLES",
    "ApproverType",
    "DepartmentData",
    "UserData",
    "UserUpdateData",
]
