"""
Organization ORM Models (``backoffice_modules.organization.orm``).

Department approvers: which users act as recommending or final approvers
for a department's material requests.  Departments and users themselves
live in ``backoffice_kernel.models.organization``.
"""

from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice_kernel.db.base import TrackedBase
from backoffice_kernel.models.organization import Department, User


class DepartmentApproverModel(TrackedBase):
    """
    Table: ``department_approvers``
    """

    __tablename__ = "department_approvers"

    department_id: Mapped[UUID] = mapped_column(ForeignKey("departments.id"))
    user_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"))
    approver_type: Mapped[str] = mapped_column(String(20))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    department: Mapped[Department] = relationship(Department)
    user: Mapped[User] = relationship(User, foreign_keys=[user_id])

    __table_args__ = (
        UniqueConstraint(
            "department_id", "user_id", "approver_type", name="uq_department_approver",
        ),
        Index("idx_department_approvers_department_id", "department_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<DepartmentApproverModel(department_id={self.department_id!r}, "
            f"user_id={self.user_id!r}, type={self.approver_type!r})>"
        )
