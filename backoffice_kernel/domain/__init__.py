"""
Pure domain layer.

Value objects and predicates with NO dependencies on the ORM, the
database or the wall clock (SystemClock excepted).
"""

from backoffice_kernel.domain.access import (
    Actor,
    UserRole,
    can_access_business_unit,
    has_global_access,
    require_business_unit_access,
    require_role,
)
from backoffice_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from backoffice_kernel.domain.pagination import Page
from backoffice_kernel.domain.workflow import Guard, Transition, Workflow

__all__ = [
    "Actor",
    "UserRole",
    "can_access_business_unit",
    "has_global_access",
    "require_business_unit_access",
    "require_role",
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "Page",
    "Guard",
    "Transition",
    "Workflow",
]
