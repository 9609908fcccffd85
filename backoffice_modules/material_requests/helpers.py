"""
Pure material-request helpers: line validation, totals and the
serving and editability predicates.

ZERO I/O.  Every function takes plain values or duck-typed rows with
``quantity`` / ``quantity_served`` attributes.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Sequence

from backoffice_kernel.exceptions import ValidationError
from backoffice_modules.material_requests.models import (
    LOCKED_STATUSES,
    ApprovalStatus,
    MaterialRequestItemData,
    MaterialRequestStatus,
)

ZERO = Decimal("0")
CENT = Decimal("0.01")


def _q(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def validate_items(items: Sequence[MaterialRequestItemData]) -> None:
    """Raise ValidationError for the first invalid line."""
    if not items:
        raise ValidationError("At least one item is required", field="items")
    for index, item in enumerate(items, start=1):
        if not (item.description or "").strip():
            raise ValidationError(f"Item {index}: description is required", field="description")
        if not (item.uom or "").strip():
            raise ValidationError(f"Item {index}: unit of measurement is required", field="uom")
        if item.quantity is None or item.quantity <= 0:
            raise ValidationError(f"Item {index}: quantity must be positive", field="quantity")
        if not item.is_new_item and not (item.item_code or "").strip():
            raise ValidationError(
                f"Item {index}: item code is required for existing items", field="item_code",
            )
        if item.unit_price is not None and item.unit_price < 0:
            raise ValidationError(f"Item {index}: unit price cannot be negative", field="unit_price")


def line_total(quantity: Decimal, unit_price: Decimal | None) -> Decimal:
    if unit_price is None:
        return ZERO
    return _q(quantity * unit_price)


def request_total(
    items: Iterable[MaterialRequestItemData],
    freight: Decimal = ZERO,
    discount: Decimal = ZERO,
) -> Decimal:
    """Sum of ``unit_price * quantity`` plus freight minus discount."""
    subtotal = sum((line_total(i.quantity, i.unit_price) for i in items), ZERO)
    return _q(subtotal + (freight or ZERO) - (discount or ZERO))


def is_fully_served(items: Iterable[Any]) -> bool:
    """True when every line's served quantity has reached its requested quantity."""
    return all((item.quantity_served or ZERO) >= item.quantity for item in items)


def can_requester_edit(request: Any) -> bool:
    """
    True while no budget, recommending or final approval has been recorded
    and the request is not disapproved, posted or received.
    """
    if MaterialRequestStatus(request.status) in LOCKED_STATUSES:
        return False
    approved = ApprovalStatus.APPROVED.value
    return not any(
        status == approved
        for status in (
            request.budget_approval_status,
            request.rec_approval_status,
            request.final_approval_status,
        )
    )
