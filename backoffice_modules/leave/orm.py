"""
Leave ORM Models (``backoffice_modules.leave.orm``).

Leave types, per-year leave balances and leave requests.

Invariants enforced:
    - Leave type name is unique.
    - One balance per (user, leave type, year).
    - Leave request statuses are stored as the ``.value`` of
      ``LeaveRequestStatus``.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice_kernel.db.base import TrackedBase
from backoffice_kernel.models.organization import User


class LeaveTypeModel(TrackedBase):
    """
    Table: ``leave_types``
    """

    __tablename__ = "leave_types"

    name: Mapped[str] = mapped_column(String(100))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    default_allocated_days: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    __table_args__ = (
        UniqueConstraint("name", name="uq_leave_types_name"),
    )

    def __repr__(self) -> str:
        return f"<LeaveTypeModel(name={self.name!r})>"


class LeaveBalanceModel(TrackedBase):
    """
    Allocated and used days of one leave type for one user and year.

    Table: ``leave_balances``
    """

    __tablename__ = "leave_balances"

    user_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"))
    leave_type_id: Mapped[UUID] = mapped_column(ForeignKey("leave_types.id"))
    year: Mapped[int]
    allocated_days: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    used_days: Mapped[Decimal] = mapped_column(default=Decimal("0"))

    user: Mapped[User] = relationship(User, foreign_keys=[user_id])
    leave_type: Mapped[LeaveTypeModel] = relationship(LeaveTypeModel)

    __table_args__ = (
        UniqueConstraint("user_id", "leave_type_id", "year", name="uq_leave_balance"),
        Index("idx_leave_balances_year", "year"),
    )

    @property
    def remaining_days(self) -> Decimal:
        return (self.allocated_days or Decimal("0")) - (self.used_days or Decimal("0"))

    def __repr__(self) -> str:
        return (
            f"<LeaveBalanceModel(user_id={self.user_id!r}, year={self.year!r}, "
            f"allocated={self.allocated_days!r}, used={self.used_days!r})>"
        )


class LeaveRequestModel(TrackedBase):
    """
    One employee's request for leave, with the manager and HR decisions.

    Table: ``leave_requests``
    """

    __tablename__ = "leave_requests"

    user_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"))
    leave_type_id: Mapped[UUID] = mapped_column(ForeignKey("leave_types.id"))
    start_date: Mapped[date]
    end_date: Mapped[date]
    session: Mapped[str] = mapped_column(String(20), default="FULL_DAY")
    reason: Mapped[str] = mapped_column(Text)
    days: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    status: Mapped[str] = mapped_column(String(20), default="PENDING_MANAGER")

    manager_action_by_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id"), nullable=True,
    )
    manager_action_at: Mapped[datetime | None]
    manager_comments: Mapped[str | None] = mapped_column(Text, nullable=True)
    hr_action_by_id: Mapped[UUID | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    hr_action_at: Mapped[datetime | None]
    hr_comments: Mapped[str | None] = mapped_column(Text, nullable=True)
    cancelled_at: Mapped[datetime | None]

    user: Mapped[User] = relationship(User, foreign_keys=[user_id])
    leave_type: Mapped[LeaveTypeModel] = relationship(LeaveTypeModel)

    __table_args__ = (
        Index("idx_leave_requests_user", "user_id"),
        Index("idx_leave_requests_status", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<LeaveRequestModel(user_id={self.user_id!r}, start={self.start_date!r}, "
            f"end={self.end_date!r}, status={self.status!r})>"
        )
