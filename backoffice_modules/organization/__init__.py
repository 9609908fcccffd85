"""
Organization Module (``backoffice_modules.organization``).

Departments, department managers, department approvers for material
requests, and user administration with bcrypt-hashed passwords.
"""

from backoffice_modules.organization.models import (
    MANAGER_ROLES,
    ApproverType,
    DepartmentData,
    UserData,
    UserUpdateData,
)

__all__ = [
    "MANAGER_ROLES",
    "ApproverType",
    "DepartmentData",
    "UserData",
    "UserUpdateData",
]
