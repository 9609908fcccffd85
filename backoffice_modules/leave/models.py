"""
Leave Domain Models.

Input and result DTOs for leave-balance administration and the yearly
replenishment with carry-over, and for the two-stage leave request
workflow.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID


class LeaveRequestStatus(Enum):
    PENDING_MANAGER = "PENDING_MANAGER"
    PENDING_HR = "PENDING_HR"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class LeaveSession(Enum):
    """Part of each day taken; half-day sessions count 0.5 per day."""
    FULL_DAY = "FULL_DAY"
    MORNING = "MORNING"
    AFTERNOON = "AFTERNOON"


PENDING_LEAVE_STATUSES = (LeaveRequestStatus.PENDING_MANAGER, LeaveRequestStatus.PENDING_HR)


@dataclass(frozen=True)
class LeaveTypeData:
    name: str
    default_allocated_days: Decimal = Decimal("0")
    description: str | None = None
    is_active: bool = True


@dataclass(frozen=True)
class LeaveBalanceUpdate:
    """New allocation for one balance in a bulk update."""
    balance_id: UUID
    allocated_days: Decimal


@dataclass(frozen=True)
class CarryOverInfo:
    """Remaining days one employee carries into the next year for one leave type."""
    user_id: UUID
    employee_id: str
    user_name: str
    leave_type_id: UUID
    leave_type_name: str
    remaining_days: Decimal
    carry_over_days: Decimal
    excess_days: Decimal

    @property
    def has_excess(self) -> bool:
        return self.excess_days > 0


@dataclass(frozen=True)
class ReplenishmentPreview:
    business_unit_id: UUID
    from_year: int
    to_year: int
    total_users: int
    leave_type_names: tuple[str, ...] = ()
    carry_overs: tuple[CarryOverInfo, ...] = field(default_factory=tuple)

    @property
    def excess(self) -> tuple[CarryOverInfo, ...]:
        return tuple(c for c in self.carry_overs if c.has_excess)


@dataclass(frozen=True)
class ReplenishmentResult:
    to_year: int
    balances_created: int
    users: int
    users_with_carry_over: int


@dataclass(frozen=True)
class LeaveRequestData:
    leave_type_id: UUID
    start_date: date
    end_date: date
    reason: str
    session: LeaveSession = LeaveSession.FULL_DAY
