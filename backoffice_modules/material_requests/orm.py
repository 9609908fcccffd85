"""
Material Request ORM Models (``backoffice_modules.material_requests.orm``).

Responsibility
--------------
SQLAlchemy persistence for material requests and their line items,
including every approval, serving, posting, edit and acknowledgement
stamp.

Architecture position
---------------------
**Modules layer** -- persistence.  Approver and actor columns are FKs to
``users``; statuses are stored as the ``.value`` of the enums in
``models.py``.

Invariants enforced
-------------------
* ``doc_no`` is unique.
* Items are owned by their request (delete-orphan cascade).
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice_kernel.db.base import TrackedBase


# ---------------------------------------------------------------------------
# MaterialRequestModel
# ---------------------------------------------------------------------------

class MaterialRequestModel(TrackedBase):
    """
    ORM model for a material request.

    Table: ``material_requests``
    """

    __tablename__ = "material_requests"

    doc_no: Mapped[str] = mapped_column(String(50))
    series: Mapped[str] = mapped_column(String(20))
    type: Mapped[str] = mapped_column(String(20), default="ITEM")
    status: Mapped[str] = mapped_column(String(30), default="DRAFT")
    date_prepared: Mapped[date]
    date_required: Mapped[date]
    date_approved: Mapped[datetime | None]
    date_posted: Mapped[datetime | None]
    date_received: Mapped[datetime | None]

    business_unit_id: Mapped[UUID] = mapped_column(ForeignKey("business_units.id"))
    department_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("departments.id"), nullable=True,
    )
    requested_by_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"))

    charge_to: Mapped[str | None] = mapped_column(String(200), nullable=True)
    purpose: Mapped[str | None] = mapped_column(Text, nullable=True)
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
    deliver_to: Mapped[str | None] = mapped_column(String(200), nullable=True)
    is_store_use: Mapped[bool] = mapped_column(Boolean, default=False)
    freight: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    discount: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    total: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    confirmation_no: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Supplier
    supplier_bp_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    supplier_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    purchase_order_number: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Review (store use)
    reviewer_id: Mapped[UUID | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    review_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    review_remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
    reviewed_at: Mapped[datetime | None]

    # Budget approval
    budget_approver_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id"), nullable=True,
    )
    budget_approval_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    budget_approval_remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
    budget_approval_date: Mapped[datetime | None]
    is_within_budget: Mapped[bool | None] = mapped_column(Boolean, nullable=True)

    # Recommending approval
    rec_approver_id: Mapped[UUID | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    rec_approval_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    rec_approval_remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
    rec_approval_date: Mapped[datetime | None]

    # Final approval
    final_approver_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id"), nullable=True,
    )
    final_approval_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    final_approval_remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
    final_approval_date: Mapped[datetime | None]

    # Serving and posting
    served_at: Mapped[datetime | None]
    served_by_id: Mapped[UUID | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    served_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    processed_by_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id"), nullable=True,
    )
    processed_at: Mapped[datetime | None]

    # Purchaser edit
    is_marked_for_edit: Mapped[bool] = mapped_column(Boolean, default=False)
    edit_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    marked_for_edit_by_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id"), nullable=True,
    )
    marked_for_edit_at: Mapped[datetime | None]
    edit_completed_at: Mapped[datetime | None]

    # Acknowledgement
    acknowledged_at: Mapped[datetime | None]
    acknowledged_by_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id"), nullable=True,
    )
    signature: Mapped[str | None] = mapped_column(Text, nullable=True)

    cancelled_at: Mapped[datetime | None]
    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    items: Mapped[list["MaterialRequestItemModel"]] = relationship(
        back_populates="request",
        cascade="all, delete-orphan",
        order_by="MaterialRequestItemModel.line_number",
    )

    __table_args__ = (
        UniqueConstraint("doc_no", name="uq_material_requests_doc_no"),
        Index("idx_material_requests_business_unit_id", "business_unit_id"),
        Index("idx_material_requests_status", "status"),
        Index("idx_material_requests_requested_by_id", "requested_by_id"),
    )

    def __repr__(self) -> str:
        return f"<MaterialRequestModel(doc_no={self.doc_no!r}, status={self.status!r})>"


# ---------------------------------------------------------------------------
# MaterialRequestItemModel
# ---------------------------------------------------------------------------

class MaterialRequestItemModel(TrackedBase):
    """
    ORM model for one requested line.

    Table: ``material_request_items``
    """

    __tablename__ = "material_request_items"

    request_id: Mapped[UUID] = mapped_column(ForeignKey("material_requests.id"))
    line_number: Mapped[int] = mapped_column(default=1)
    item_code: Mapped[str | None] = mapped_column(String(100), nullable=True)
    description: Mapped[str] = mapped_column(String(500))
    uom: Mapped[str] = mapped_column(String(20))
    quantity: Mapped[Decimal]
    unit_price: Mapped[Decimal | None]
    total_price: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_new_item: Mapped[bool] = mapped_column(Boolean, default=True)
    quantity_served: Mapped[Decimal] = mapped_column(default=Decimal("0"))

    request: Mapped["MaterialRequestModel"] = relationship(back_populates="items")

    __table_args__ = (
        Index("idx_material_request_items_request_id", "request_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<MaterialRequestItemModel(description={self.description!r}, "
            f"quantity={self.quantity!r}, served={self.quantity_served!r})>"
        )
