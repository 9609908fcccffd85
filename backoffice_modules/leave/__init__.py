"""
Leave Module (``backoffice_modules.leave``).

Leave types, per-year leave balances, the yearly replenishment with
carry-over of remaining days, and manager-then-HR leave requests.
"""

from backoffice_modules.leave.models import (
    CarryOverInfo,
    LeaveBalanceUpdate,
    LeaveRequestData,
    LeaveRequestStatus,
    LeaveSession,
    LeaveTypeData,
    ReplenishmentPreview,
    ReplenishmentResult,
)

__all__ = [
    "CarryOverInfo",
    "LeaveBalanceUpdate",
    "LeaveRequestData",
    "LeaveRequestStatus",
    "LeaveSession",
    "LeaveTypeData",
    "ReplenishmentPreview",
    "ReplenishmentResult",
]
