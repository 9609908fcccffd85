"""
Asset ORM Models (``backoffice_modules.assets.orm``).

Responsibility
--------------
SQLAlchemy persistence models for the asset register -- categories,
assets, deployments, transfers, disposals, retirements and the per-asset
history trail.

Architecture position
---------------------
**Modules layer** -- persistence.  Imports from ``backoffice_kernel.db.base``
and sibling ``models.py``.  MUST NOT be imported by ``backoffice_kernel``.
Depreciation records and schedules live in
``backoffice_modules.depreciation.orm`` and reference ``assets.id``.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice_kernel.db.base import TrackedBase, UUIDString


# ---------------------------------------------------------------------------
# AssetCategoryModel
# ---------------------------------------------------------------------------

class AssetCategoryModel(TrackedBase):
    """
    ORM model for an asset category.

    Table: ``asset_categories``
    """

    __tablename__ = "asset_categories"

    code: Mapped[str] = mapped_column(String(50))
    name: Mapped[str] = mapped_column(String(200))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    business_unit_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("business_units.id"), nullable=True,
    )
    default_depreciation_method: Mapped[str | None] = mapped_column(
        String(50), nullable=True,
    )
    default_useful_life_years: Mapped[int | None]
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    assets: Mapped[list["AssetModel"]] = relationship(back_populates="category")

    __table_args__ = (
        UniqueConstraint("code", name="uq_asset_categories_code"),
    )

    def __repr__(self) -> str:
        return f"<AssetCategoryModel(id={self.id!r}, code={self.code!r})>"


# ---------------------------------------------------------------------------
# AssetModel
# ---------------------------------------------------------------------------

class AssetModel(TrackedBase):
    """
    ORM model for an asset and its running depreciation state.

    Table: ``assets``
    """

    __tablename__ = "assets"

    item_code: Mapped[str] = mapped_column(String(100))
    description: Mapped[str] = mapped_column(String(500))
    serial_number: Mapped[str | None] = mapped_column(String(200), nullable=True)
    brand: Mapped[str | None] = mapped_column(String(200), nullable=True)
    category_id: Mapped[UUID] = mapped_column(ForeignKey("asset_categories.id"))
    business_unit_id: Mapped[UUID] = mapped_column(ForeignKey("business_units.id"))
    department_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("departments.id"), nullable=True,
    )
    location: Mapped[str | None] = mapped_column(String(200), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(50), default="AVAILABLE")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    # Acquisition
    purchase_price: Mapped[Decimal | None]
    purchase_date: Mapped[date | None]

    # Depreciation setup
    useful_life_years: Mapped[int | None]
    useful_life_months: Mapped[int] = mapped_column(default=0)
    salvage_value: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    depreciation_method: Mapped[str | None] = mapped_column(String(50), nullable=True)
    depreciation_rate: Mapped[Decimal | None]
    depreciation_start_date: Mapped[date | None]
    monthly_depreciation: Mapped[Decimal | None]
    total_expected_units: Mapped[Decimal | None]
    depreciation_per_unit: Mapped[Decimal | None]
    units_used: Mapped[Decimal] = mapped_column(default=Decimal("0"))

    # Running depreciation state
    current_book_value: Mapped[Decimal | None]
    accumulated_depreciation: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    last_depreciation_date: Mapped[date | None]
    next_depreciation_date: Mapped[date | None]
    is_fully_depreciated: Mapped[bool] = mapped_column(Boolean, default=False)

    # Custody
    currently_assigned_to_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id"), nullable=True,
    )
    current_deployment_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("asset_deployments.id", use_alter=True, name="fk_asset_current_deployment"),
        nullable=True,
    )
    last_assigned_date: Mapped[date | None]

    category: Mapped["AssetCategoryModel"] = relationship(back_populates="assets")
    deployments: Mapped[list["AssetDeploymentModel"]] = relationship(
        back_populates="asset",
        foreign_keys="AssetDeploymentModel.asset_id",
        order_by="AssetDeploymentModel.created_at",
    )
    history: Mapped[list["AssetHistoryModel"]] = relationship(
        back_populates="asset", cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint("business_unit_id", "item_code", name="uq_assets_item_code_per_unit"),
        Index("idx_assets_category_id", "category_id"),
        Index("idx_assets_status", "status"),
        Index("idx_assets_next_depreciation_date", "next_depreciation_date"),
    )

    def to_terms(self):
        """Depreciation terms for the pure calculation helpers."""
        from backoffice_modules.assets.helpers import DepreciationTerms
        from backoffice_modules.assets.models import DepreciationMethod
        return DepreciationTerms(
            method=DepreciationMethod(self.depreciation_method),
            cost=self.purchase_price or Decimal("0"),
            salvage_value=self.salvage_value or Decimal("0"),
            useful_life_years=self.useful_life_years or 0,
            useful_life_months=self.useful_life_months or 0,
            start_date=self.depreciation_start_date,
            depreciation_rate=self.depreciation_rate,
            monthly_depreciation=self.monthly_depreciation,
            total_expected_units=self.total_expected_units,
        )

    def __repr__(self) -> str:
        return (
            f"<AssetModel(id={self.id!r}, item_code={self.item_code!r}, "
            f"status={self.status!r})>"
        )


# ---------------------------------------------------------------------------
# AssetDeploymentModel
# ---------------------------------------------------------------------------

class AssetDeploymentModel(TrackedBase):
    """
    ORM model for an asset handed to an employee under a transmittal.

    Table: ``asset_deployments``
    """

    __tablename__ = "asset_deployments"

    asset_id: Mapped[UUID] = mapped_column(ForeignKey("assets.id"))
    employee_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"))
    business_unit_id: Mapped[UUID] = mapped_column(ForeignKey("business_units.id"))
    transmittal_number: Mapped[str] = mapped_column(String(100))
    status: Mapped[str] = mapped_column(String(50))
    deployed_date: Mapped[date | None]
    expected_return_date: Mapped[date | None]
    returned_date: Mapped[date | None]
    deployment_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    deployment_condition: Mapped[str | None] = mapped_column(String(50), nullable=True)
    return_condition: Mapped[str | None] = mapped_column(String(50), nullable=True)
    return_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    accounting_approved_by_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id"), nullable=True,
    )
    accounting_approved_at: Mapped[datetime | None]

    asset: Mapped["AssetModel"] = relationship(
        back_populates="deployments", foreign_keys=[asset_id],
    )

    __table_args__ = (
        UniqueConstraint("transmittal_number", name="uq_asset_deployments_transmittal"),
        Index("idx_asset_deployments_asset_id", "asset_id"),
        Index("idx_asset_deployments_employee_id", "employee_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<AssetDeploymentModel(id={self.id!r}, "
            f"transmittal_number={self.transmittal_number!r}, status={self.status!r})>"
        )


# ---------------------------------------------------------------------------
# AssetTransferModel
# ---------------------------------------------------------------------------

class AssetTransferModel(TrackedBase):
    """
    ORM model for a custody or business-unit transfer.

    Table: ``asset_transfers``
    """

    __tablename__ = "asset_transfers"

    asset_id: Mapped[UUID] = mapped_column(ForeignKey("assets.id"))
    transfer_number: Mapped[str] = mapped_column(String(100))
    transfer_type: Mapped[str] = mapped_column(String(10))
    transfer_date: Mapped[date]
    from_business_unit_id: Mapped[UUID] = mapped_column(ForeignKey("business_units.id"))
    to_business_unit_id: Mapped[UUID] = mapped_column(ForeignKey("business_units.id"))
    from_employee_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id"), nullable=True,
    )
    to_employee_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id"), nullable=True,
    )
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("idx_asset_transfers_asset_id", "asset_id"),
    )


# ---------------------------------------------------------------------------
# AssetDisposalModel
# ---------------------------------------------------------------------------

class AssetDisposalModel(TrackedBase):
    """
    ORM model for the disposal of an asset.

    Table: ``asset_disposals``
    """

    __tablename__ = "asset_disposals"

    asset_id: Mapped[UUID] = mapped_column(ForeignKey("assets.id"))
    business_unit_id: Mapped[UUID] = mapped_column(ForeignKey("business_units.id"))
    disposal_date: Mapped[date]
    disposal_method: Mapped[str] = mapped_column(String(50))
    disposal_reason: Mapped[str] = mapped_column(String(50))
    disposal_location: Mapped[str | None] = mapped_column(String(200), nullable=True)
    disposal_value: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    disposal_cost: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    net_proceeds: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    book_value_at_disposal: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    gain_loss: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    approved_by: Mapped[str | None] = mapped_column(String(200), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("idx_asset_disposals_asset_id", "asset_id"),
    )


# ---------------------------------------------------------------------------
# AssetRetirementModel
# ---------------------------------------------------------------------------

class AssetRetirementModel(TrackedBase):
    """
    ORM model for the retirement of an asset.

    Table: ``asset_retirements``
    """

    __tablename__ = "asset_retirements"

    asset_id: Mapped[UUID] = mapped_column(ForeignKey("assets.id"))
    business_unit_id: Mapped[UUID] = mapped_column(ForeignKey("business_units.id"))
    retirement_date: Mapped[date]
    reason: Mapped[str] = mapped_column(String(50))
    retirement_method: Mapped[str | None] = mapped_column(String(50), nullable=True)
    condition_at_retirement: Mapped[str | None] = mapped_column(String(50), nullable=True)
    book_value_at_retirement: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    replacement_asset_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("assets.id"), nullable=True,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("idx_asset_retirements_asset_id", "asset_id"),
    )


# ---------------------------------------------------------------------------
# AssetHistoryModel
# ---------------------------------------------------------------------------

class AssetHistoryModel(TrackedBase):
    """
    ORM model for one entry of an asset's history trail.

    Table: ``asset_history``
    """

    __tablename__ = "asset_history"

    asset_id: Mapped[UUID] = mapped_column(ForeignKey("assets.id"))
    action: Mapped[str] = mapped_column(String(50))
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    previous_status: Mapped[str | None] = mapped_column(String(50), nullable=True)
    new_status: Mapped[str | None] = mapped_column(String(50), nullable=True)
    performed_by_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"))
    business_unit_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("business_units.id"), nullable=True,
    )
    performed_at: Mapped[datetime]

    asset: Mapped["AssetModel"] = relationship(back_populates="history")

    __table_args__ = (
        Index("idx_asset_history_asset_id", "asset_id"),
    )

    def to_dto(self):
        from backoffice_modules.assets.models import AssetHistoryAction, AssetHistoryEntry
        return AssetHistoryEntry(
            asset_id=self.asset_id,
            action=AssetHistoryAction(self.action),
            notes=self.notes,
            performed_by_id=self.performed_by_id,
            business_unit_id=self.business_unit_id,
            previous_status=self.previous_status,
            new_status=self.new_status,
        )
