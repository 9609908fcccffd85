"""Pure material-request helpers: line validation, totals and predicates."""

from decimal import Decimal
from types import SimpleNamespace

import pytest
from hypothesis import given
from hypothesis import strategies as st

from backoffice_kernel.exceptions import ValidationError
from backoffice_modules.material_requests.helpers import (
    can_requester_edit,
    is_fully_served,
    line_total,
    request_total,
    validate_items,
)
from backoffice_modules.material_requests.models import MaterialRequestItemData


def _item(**overrides) -> MaterialRequestItemData:
    fields = dict(description="Bond paper", uom="ream", quantity=Decimal("2"))
    fields.update(overrides)
    return MaterialRequestItemData(**fields)


def _request(status="DRAFT", budget=None, rec=None, final=None):
    return SimpleNamespace(
        status=status,
        budget_approval_status=budget,
        rec_approval_status=rec,
        final_approval_status=final,
    )


class TestValidateItems:
    def test_valid_lines_pass(self):
        validate_items([_item(), _item(item_code="PAP-01", is_new_item=False)])

    def test_empty_list(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_items([])
        assert exc_info.value.field == "items"

    @pytest.mark.parametrize("overrides,field", [
        ({"description": "  "}, "description"),
        ({"uom": ""}, "uom"),
        ({"quantity": Decimal("0")}, "quantity"),
        ({"quantity": Decimal("-1")}, "quantity"),
        ({"is_new_item": False}, "item_code"),
        ({"unit_price": Decimal("-0.01")}, "unit_price"),
    ])
    def test_invalid_line(self, overrides, field):
        with pytest.raises(ValidationError) as exc_info:
            validate_items([_item(), _item(**overrides)])
        assert exc_info.value.field == field
        assert "Item 2" in str(exc_info.value)


class TestTotals:
    def test_line_total_without_price(self):
        assert line_total(Decimal("3"), None) == Decimal("0")

    def test_line_total_rounds_half_up(self):
        assert line_total(Decimal("3"), Decimal("0.335")) == Decimal("1.01")

    def test_request_total(self):
        items = [
            _item(quantity=Decimal("2"), unit_price=Decimal("250.00")),
            _item(quantity=Decimal("1"), unit_price=None),
            _item(quantity=Decimal("4"), unit_price=Decimal("12.50")),
        ]
        total = request_total(items, freight=Decimal("100"), discount=Decimal("50"))
        assert total == Decimal("600.00")

    @given(
        prices=st.lists(
            st.decimals(min_value=0, max_value=10_000, places=2), min_size=1, max_size=10,
        ),
    )
    def test_total_is_sum_of_lines(self, prices):
        items = [_item(quantity=Decimal("1"), unit_price=p) for p in prices]
        assert request_total(items) == sum(prices, Decimal("0"))


class TestIsFullyServed:
    def test_all_lines_served(self):
        lines = [
            SimpleNamespace(quantity=Decimal("2"), quantity_served=Decimal("2")),
            SimpleNamespace(quantity=Decimal("1"), quantity_served=Decimal("1")),
        ]
        assert is_fully_served(lines)

    def test_partial_line(self):
        lines = [
            SimpleNamespace(quantity=Decimal("2"), quantity_served=Decimal("2")),
            SimpleNamespace(quantity=Decimal("5"), quantity_served=Decimal("4")),
        ]
        assert not is_fully_served(lines)

    def test_unset_served_counts_as_zero(self):
        assert not is_fully_served([SimpleNamespace(quantity=Decimal("1"), quantity_served=None)])


class TestCanRequesterEdit:
    def test_fresh_draft(self):
        assert can_requester_edit(_request())

    def test_review_approval_does_not_lock(self):
        request = _request(status="PENDING_BUDGET_APPROVAL")
        assert can_requester_edit(request)

    @pytest.mark.parametrize("stage", ["budget", "rec", "final"])
    def test_any_approval_locks(self, stage):
        request = _request(status="FOR_FINAL_APPROVAL", **{stage: "APPROVED"})
        assert not can_requester_edit(request)

    @pytest.mark.parametrize("status", ["DISAPPROVED", "POSTED", "RECEIVED"])
    def test_locked_statuses(self, status):
        assert not can_requester_edit(_request(status=status))

    def test_pending_stage_does_not_lock(self):
        assert can_requester_edit(_request(status="FOR_REC_APPROVAL", rec="PENDING"))
