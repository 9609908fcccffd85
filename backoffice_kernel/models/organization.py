"""
Module: backoffice_kernel.models.organization
Responsibility: ORM persistence for the organizational skeleton every module
    hangs off: business units, departments and users.
Architecture position: Kernel > Models.  May import from db/base.py and the
    pure domain layer only.

Invariants enforced:
    - Business unit code is unique.
    - Department name is unique within a business unit.
    - Employee ID is unique; email is unique when present.

Failure modes:
    - IntegrityError on the unique constraints above (services check first
      and raise typed errors).

Audit relevance:
    Users are the actors recorded in created_by_id / updated_by_id and in
    every approval, serving and posting stamp on material requests.
"""

from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice_kernel.db.base import Base, TrackedBase, UUIDString
from backoffice_kernel.domain.access import Actor, UserRole


class BusinessUnit(Base):
    """Tenant-like partition of departments, assets and requests."""

    __tablename__ = "business_units"

    __table_args__ = (
        UniqueConstraint("code", name="uq_business_unit_code"),
    )

    code: Mapped[str] = mapped_column(String(20), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    departments: Mapped[list["Department"]] = relationship(
        "Department",
        back_populates="business_unit",
    )

    def __repr__(self) -> str:
        return f"<BusinessUnit {self.code}: {self.name}>"


class Department(TrackedBase):
    """A department inside a business unit."""

    __tablename__ = "departments"

    __table_args__ = (
        UniqueConstraint("business_unit_id", "name", name="uq_department_name_per_unit"),
        Index("idx_department_business_unit", "business_unit_id"),
    )

    business_unit_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("business_units.id"),
        nullable=False,
    )
    code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    manager_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("users.id", use_alter=True, name="fk_department_manager"),
        nullable=True,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    business_unit: Mapped[BusinessUnit] = relationship(
        BusinessUnit,
        back_populates="departments",
    )
    members: Mapped[list["User"]] = relationship(
        "User",
        back_populates="department",
        foreign_keys="User.department_id",
    )

    def __repr__(self) -> str:
        return f"<Department {self.name}>"


class User(TrackedBase):
    """An application user and employee record."""

    __tablename__ = "users"

    __table_args__ = (
        UniqueConstraint("employee_id", name="uq_user_employee_id"),
        UniqueConstraint("email", name="uq_user_email"),
        Index("idx_user_business_unit", "business_unit_id"),
        Index("idx_user_department", "department_id"),
    )

    employee_id: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    password_hash: Mapped[str] = mapped_column(String(100), nullable=False)
    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=UserRole.USER.value,
    )
    business_unit_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("business_units.id"),
        nullable=True,
    )
    department_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("departments.id"),
        nullable=True,
    )
    # Direct approver for leave and overtime routing
    approver_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("users.id"),
        nullable=True,
    )
    position: Mapped[str | None] = mapped_column(String(100), nullable=True)
    classification: Mapped[str | None] = mapped_column(String(100), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_acctg: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_purchaser: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_treasury: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    department: Mapped[Department | None] = relationship(
        Department,
        back_populates="members",
        foreign_keys=[department_id],
    )

    def to_actor(self) -> Actor:
        """Session view of this user."""
        return Actor(
            user_id=self.id,
            employee_id=self.employee_id,
            role=UserRole(self.role),
            business_unit_id=self.business_unit_id,
            department_id=self.department_id,
            is_acctg=self.is_acctg,
            is_purchaser=self.is_purchaser,
            is_treasury=self.is_treasury,
        )

    def __repr__(self) -> str:
        return f"<User {self.employee_id}: {self.name} ({self.role})>"
