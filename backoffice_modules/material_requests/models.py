"""
Material Request Domain Models.

Statuses, approval stages and the input/result DTOs for material
requests.  ORM persistence lives in ``orm.py``.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from backoffice_kernel.domain.pagination import Page


class MaterialRequestStatus(Enum):
    DRAFT = "DRAFT"
    FOR_REVIEW = "FOR_REVIEW"
    PENDING_BUDGET_APPROVAL = "PENDING_BUDGET_APPROVAL"
    FOR_REC_APPROVAL = "FOR_REC_APPROVAL"
    FOR_FINAL_APPROVAL = "FOR_FINAL_APPROVAL"
    FOR_SERVING = "FOR_SERVING"
    FOR_POSTING = "FOR_POSTING"
    POSTED = "POSTED"
    RECEIVED = "RECEIVED"
    CANCELLED = "CANCELLED"
    DISAPPROVED = "DISAPPROVED"
    FOR_EDIT = "FOR_EDIT"


class RequestType(Enum):
    ITEM = "ITEM"
    SERVICE = "SERVICE"


class ApprovalStatus(Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    DISAPPROVED = "DISAPPROVED"


class ApproverType(Enum):
    """Department approver role on a material request."""
    RECOMMENDING = "RECOMMENDING"
    FINAL = "FINAL"


EDITABLE_STATUSES = (MaterialRequestStatus.DRAFT, MaterialRequestStatus.FOR_EDIT)

# Statuses in which the requester may no longer change anything
LOCKED_STATUSES = (
    MaterialRequestStatus.DISAPPROVED,
    MaterialRequestStatus.POSTED,
    MaterialRequestStatus.RECEIVED,
)

ACKNOWLEDGEABLE_STATUSES = (MaterialRequestStatus.POSTED, MaterialRequestStatus.RECEIVED)


@dataclass(frozen=True)
class MaterialRequestItemData:
    """One requested line."""
    description: str
    uom: str
    quantity: Decimal
    item_code: str | None = None
    unit_price: Decimal | None = None
    remarks: str | None = None
    is_new_item: bool = True


@dataclass(frozen=True)
class MaterialRequestData:
    """Input for creating or updating a material request."""
    business_unit_id: UUID
    date_prepared: date
    date_required: date
    items: tuple[MaterialRequestItemData, ...]
    series: str | None = None
    type: RequestType = RequestType.ITEM
    department_id: UUID | None = None
    charge_to: str | None = None
    purpose: str | None = None
    remarks: str | None = None
    deliver_to: str | None = None
    is_store_use: bool = False
    freight: Decimal = Decimal("0")
    discount: Decimal = Decimal("0")
    confirmation_no: str | None = None
    reviewer_id: UUID | None = None
    budget_approver_id: UUID | None = None
    rec_approver_id: UUID | None = None
    final_approver_id: UUID | None = None


@dataclass(frozen=True)
class SupplierInfo:
    """Supplier details captured when a request is served."""
    bp_code: str | None = None
    name: str | None = None
    purchase_order_number: str | None = None


@dataclass(frozen=True)
class ServeResult:
    """Outcome of ``MaterialRequestService.mark_served``."""
    request_id: UUID
    status: MaterialRequestStatus
    fully_served: bool
    served_quantities: dict[UUID, Decimal] = field(default_factory=dict)
