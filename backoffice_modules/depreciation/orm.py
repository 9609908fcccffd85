"""
Depreciation ORM Models (``backoffice_modules.depreciation.orm``).

Responsibility
--------------
SQLAlchemy persistence for posted depreciation records, configured
depreciation schedules, schedule executions and their per-asset rows.

Architecture position
---------------------
**Modules layer** -- persistence.  References ``assets`` and
``asset_categories`` from ``backoffice_modules.assets.orm`` by FK.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import JSON, Boolean, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice_kernel.db.base import TrackedBase


# ---------------------------------------------------------------------------
# AssetDepreciationModel
# ---------------------------------------------------------------------------

class AssetDepreciationModel(TrackedBase):
    """
    One depreciation posting for one asset and period.

    Table: ``asset_depreciations``
    """

    __tablename__ = "asset_depreciations"

    asset_id: Mapped[UUID] = mapped_column(ForeignKey("assets.id"))
    business_unit_id: Mapped[UUID] = mapped_column(ForeignKey("business_units.id"))
    execution_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("depreciation_executions.id"), nullable=True,
    )
    depreciation_date: Mapped[date]
    period_start_date: Mapped[date]
    period_end_date: Mapped[date]
    book_value_start: Mapped[Decimal]
    depreciation_amount: Mapped[Decimal]
    book_value_end: Mapped[Decimal]
    accumulated_depreciation: Mapped[Decimal]
    method: Mapped[str] = mapped_column(String(50))
    units_used: Mapped[Decimal | None]
    calculated_by_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"))
    calculated_at: Mapped[datetime]
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("idx_asset_depreciations_asset_id", "asset_id"),
        Index("idx_asset_depreciations_date", "depreciation_date"),
    )

    def __repr__(self) -> str:
        return (
            f"<AssetDepreciationModel(asset_id={self.asset_id!r}, "
            f"date={self.depreciation_date!r}, amount={self.depreciation_amount!r})>"
        )


# ---------------------------------------------------------------------------
# DepreciationScheduleModel
# ---------------------------------------------------------------------------

class DepreciationScheduleModel(TrackedBase):
    """
    A recurring depreciation run for one business unit.

    Table: ``depreciation_schedules``
    """

    __tablename__ = "depreciation_schedules"

    business_unit_id: Mapped[UUID] = mapped_column(ForeignKey("business_units.id"))
    name: Mapped[str] = mapped_column(String(100))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    schedule_type: Mapped[str] = mapped_column(String(20), default="MONTHLY")
    execution_day: Mapped[int] = mapped_column(default=30)
    # Category ids as strings
    include_categories: Mapped[list] = mapped_column(JSON, default=list)
    exclude_categories: Mapped[list] = mapped_column(JSON, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    last_executed_on: Mapped[date | None]
    next_execution_date: Mapped[date | None]

    executions: Mapped[list["DepreciationExecutionModel"]] = relationship(
        back_populates="schedule",
    )

    __table_args__ = (
        UniqueConstraint("business_unit_id", "name", name="uq_depreciation_schedule_name"),
        Index("idx_depreciation_schedules_active", "is_active"),
    )

    def __repr__(self) -> str:
        return f"<DepreciationScheduleModel(name={self.name!r}, type={self.schedule_type!r})>"


# ---------------------------------------------------------------------------
# DepreciationExecutionModel
# ---------------------------------------------------------------------------

class DepreciationExecutionModel(TrackedBase):
    """
    One run of a depreciation schedule.

    Table: ``depreciation_executions``
    """

    __tablename__ = "depreciation_executions"

    schedule_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("depreciation_schedules.id"), nullable=True,
    )
    business_unit_id: Mapped[UUID] = mapped_column(ForeignKey("business_units.id"))
    execution_date: Mapped[date]
    status: Mapped[str] = mapped_column(String(20), default="PENDING")
    started_at: Mapped[datetime | None]
    completed_at: Mapped[datetime | None]
    duration_ms: Mapped[int | None]
    total_assets_processed: Mapped[int] = mapped_column(default=0)
    successful_count: Mapped[int] = mapped_column(default=0)
    failed_count: Mapped[int] = mapped_column(default=0)
    skipped_count: Mapped[int] = mapped_column(default=0)
    total_depreciation_amount: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    executed_by_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"))

    schedule: Mapped["DepreciationScheduleModel"] = relationship(
        back_populates="executions",
    )
    asset_results: Mapped[list["DepreciationExecutionAssetModel"]] = relationship(
        back_populates="execution", cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("idx_depreciation_executions_schedule_id", "schedule_id"),
        Index("idx_depreciation_executions_date", "execution_date"),
    )


# ---------------------------------------------------------------------------
# DepreciationExecutionAssetModel
# ---------------------------------------------------------------------------

class DepreciationExecutionAssetModel(TrackedBase):
    """
    Outcome for one asset inside one execution.

    Table: ``depreciation_execution_assets``
    """

    __tablename__ = "depreciation_execution_assets"

    execution_id: Mapped[UUID] = mapped_column(ForeignKey("depreciation_executions.id"))
    asset_id: Mapped[UUID] = mapped_column(ForeignKey("assets.id"))
    status: Mapped[str] = mapped_column(String(30))
    depreciation_amount: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    book_value_before: Mapped[Decimal | None]
    book_value_after: Mapped[Decimal | None]
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    execution: Mapped["DepreciationExecutionModel"] = relationship(
        back_populates="asset_results",
    )

    __table_args__ = (
        Index("idx_depreciation_execution_assets_execution_id", "execution_id"),
    )

    def to_dto(self):
        from backoffice_modules.depreciation.models import (
            ExecutionAssetResult,
            ExecutionAssetStatus,
        )
        return ExecutionAssetResult(
            asset_id=self.asset_id,
            status=ExecutionAssetStatus(self.status),
            depreciation_amount=self.depreciation_amount,
            book_value_before=self.book_value_before,
            book_value_after=self.book_value_after,
            error_message=self.error_message,
        )
