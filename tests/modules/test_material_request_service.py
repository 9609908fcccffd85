"""
Material request lifecycle through MaterialRequestService.

Covers drafting, routing through the approval stages, purchaser edits,
serving, posting, receiving, acknowledgement and the approval queues.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from backoffice_config.schema import MaterialRequestSettings
from backoffice_kernel.exceptions import (
    BusinessUnitAccessError,
    EntityNotFoundError,
    InvalidTransitionError,
    MissingApproverError,
    NotAssignedApproverError,
    NotRequestOwnerError,
    OverServedQuantityError,
    PermissionDeniedError,
    RequestNotEditableError,
    ValidationError,
)
from backoffice_kernel.services.audit_service import AuditService
from backoffice_modules.material_requests.models import (
    MaterialRequestData,
    MaterialRequestItemData,
    MaterialRequestStatus,
    SupplierInfo,
)
from backoffice_modules.material_requests.service import MaterialRequestService


@pytest.fixture
def make_data(org):
    """Build request data for head office; approvers are given as user keys."""

    def _make(*, items=None, **overrides):
        approvers = {}
        for role in ("reviewer", "budget_approver", "rec_approver", "final_approver"):
            key = overrides.pop(role, None)
            approvers[f"{role}_id"] = org.user(key).id if key else None
        if "final_approver_id" not in overrides and approvers["final_approver_id"] is None:
            approvers["final_approver_id"] = org.user("final_approver").id
        fields = dict(
            business_unit_id=org.hq.id,
            date_prepared=date(2024, 1, 31),
            date_required=date(2024, 2, 15),
            items=items or (
                MaterialRequestItemData(
                    description="Toner cartridge", uom="pc",
                    quantity=Decimal("2"), unit_price=Decimal("1500.00"),
                ),
                MaterialRequestItemData(
                    description="Bond paper", uom="ream",
                    quantity=Decimal("10"), unit_price=Decimal("250.00"),
                ),
            ),
            department_id=org.department.id,
            purpose="Office supplies",
            **approvers,
        )
        fields.update(overrides)
        return MaterialRequestData(**fields)

    return _make


@pytest.fixture
def submitted(material_request_service, org, make_data):
    """Factory: create and submit a request as the requester."""

    def _submit(**overrides):
        requester = org.actor("requester")
        request = material_request_service.create_request(requester, make_data(**overrides))
        return material_request_service.submit_request(requester, request.id)

    return _submit


def _serve_all(service, actor, request):
    return service.mark_served(
        actor, request.id, {item.id: item.quantity for item in request.items},
    )


# =============================================================================
# Drafting
# =============================================================================


class TestCreateRequest:
    def test_doc_number_preview_and_allocation(self, material_request_service, org, make_data):
        assert material_request_service.get_next_document_number() == "MRS-24-00001"
        first = material_request_service.create_request(org.actor("requester"), make_data())
        second = material_request_service.create_request(org.actor("requester"), make_data())
        assert first.doc_no == "MRS-24-00001"
        assert second.doc_no == "MRS-24-00002"
        assert material_request_service.get_next_document_number() == "MRS-24-00003"

    def test_series_is_normalized_and_counted_separately(
        self, material_request_service, org, make_data,
    ):
        material_request_service.create_request(org.actor("requester"), make_data())
        request = material_request_service.create_request(
            org.actor("requester"), make_data(series=" srv "),
        )
        assert request.doc_no == "SRV-24-00001"
        assert request.series == "SRV"

    def test_totals_and_lines(self, material_request_service, org, make_data):
        request = material_request_service.create_request(
            org.actor("requester"),
            make_data(freight=Decimal("200"), discount=Decimal("100")),
        )
        assert request.status == "DRAFT"
        assert request.total == Decimal("5600.00")
        assert [item.line_number for item in request.items] == [1, 2]
        assert request.items[0].total_price == Decimal("3000.00")
        assert request.items[1].quantity_served == Decimal("0")
        assert request.requested_by_id == org.user("requester").id

    def test_required_before_prepared(self, material_request_service, org, make_data):
        with pytest.raises(ValidationError) as exc_info:
            material_request_service.create_request(
                org.actor("requester"), make_data(date_required=date(2024, 1, 1)),
            )
        assert exc_info.value.field == "date_required"

    def test_negative_freight(self, material_request_service, org, make_data):
        with pytest.raises(ValidationError) as exc_info:
            material_request_service.create_request(
                org.actor("requester"), make_data(freight=Decimal("-1")),
            )
        assert exc_info.value.field == "freight"

    def test_other_business_unit_refused(self, material_request_service, org, make_data):
        with pytest.raises(BusinessUnitAccessError):
            material_request_service.create_request(
                org.actor("branch_user"), make_data(),
            )

    def test_creation_is_audited(self, material_request_service, session, deterministic_clock,
                                 org, make_data):
        request = material_request_service.create_request(org.actor("requester"), make_data())
        history = AuditService(session, deterministic_clock).history(
            "material_requests", request.id,
        )
        assert [entry.action for entry in history] == ["CREATE"]


class TestUpdateAndDelete:
    def test_update_replaces_lines(self, material_request_service, org, make_data):
        requester = org.actor("requester")
        request = material_request_service.create_request(requester, make_data())
        updated = material_request_service.update_request(
            requester, request.id,
            make_data(items=(
                MaterialRequestItemData(
                    description="Stapler", uom="pc",
                    quantity=Decimal("3"), unit_price=Decimal("120"),
                ),
            )),
        )
        assert updated.status == "DRAFT"
        assert len(updated.items) == 1
        assert updated.total == Decimal("360.00")

    def test_other_user_cannot_update(self, material_request_service, org, make_data):
        request = material_request_service.create_request(org.actor("requester"), make_data())
        with pytest.raises(NotRequestOwnerError):
            material_request_service.update_request(org.actor("reviewer"), request.id, make_data())

    def test_manager_may_update(self, material_request_service, org, make_data):
        request = material_request_service.create_request(org.actor("requester"), make_data())
        material_request_service.update_request(
            org.actor("manager"), request.id, make_data(purpose="Revised"),
        )
        assert request.purpose == "Revised"

    def test_submitted_request_not_editable(self, material_request_service, submitted, org,
                                            make_data):
        request = submitted()
        with pytest.raises(RequestNotEditableError) as exc_info:
            material_request_service.update_request(
                org.actor("requester"), request.id, make_data(),
            )
        assert exc_info.value.status == "FOR_FINAL_APPROVAL"

    def test_delete_draft(self, material_request_service, org, make_data):
        request = material_request_service.create_request(org.actor("requester"), make_data())
        material_request_service.delete_request(org.actor("requester"), request.id)
        with pytest.raises(EntityNotFoundError):
            material_request_service.get_request(org.actor("admin"), request.id)

    def test_delete_submitted_refused(self, material_request_service, submitted, org):
        request = submitted()
        with pytest.raises(RequestNotEditableError):
            material_request_service.delete_request(org.actor("requester"), request.id)


# =============================================================================
# Submission routing
# =============================================================================


class TestSubmitRouting:
    def test_store_use_with_reviewer_goes_to_review(self, submitted):
        request = submitted(is_store_use=True, reviewer="reviewer")
        assert request.status == "FOR_REVIEW"
        assert request.review_status == "PENDING"

    def test_reviewer_ignored_unless_store_use(self, submitted):
        request = submitted(reviewer="reviewer", budget_approver="budget_approver")
        assert request.status == "PENDING_BUDGET_APPROVAL"
        assert request.budget_approval_status == "PENDING"

    def test_recommending_stage(self, submitted):
        request = submitted(rec_approver="manager")
        assert request.status == "FOR_REC_APPROVAL"
        assert request.rec_approval_status == "PENDING"

    def test_final_only(self, submitted):
        request = submitted()
        assert request.status == "FOR_FINAL_APPROVAL"
        assert request.final_approval_status == "PENDING"

    def test_no_approver(self, material_request_service, org, make_data):
        requester = org.actor("requester")
        request = material_request_service.create_request(
            requester, make_data(final_approver_id=None),
        )
        with pytest.raises(MissingApproverError):
            material_request_service.submit_request(requester, request.id)

    def test_only_owner_submits(self, material_request_service, org, make_data):
        request = material_request_service.create_request(org.actor("requester"), make_data())
        with pytest.raises(NotRequestOwnerError):
            material_request_service.submit_request(org.actor("admin"), request.id)

    def test_submit_twice(self, material_request_service, submitted, org):
        request = submitted()
        with pytest.raises(InvalidTransitionError) as exc_info:
            material_request_service.submit_request(org.actor("requester"), request.id)
        assert exc_info.value.from_state == "FOR_FINAL_APPROVAL"
        assert exc_info.value.action == "submit"

    def test_transition_is_logged(self, submitted, captured_logs):
        request = submitted()
        changes = [r for r in captured_logs() if r["message"] == "material_request_status_changed"]
        assert changes[-1]["to_status"] == "FOR_FINAL_APPROVAL"
        assert changes[-1]["doc_no"] == request.doc_no


# =============================================================================
# Approvals
# =============================================================================


class TestApprovalChain:
    def test_full_chain(self, material_request_service, submitted, org):
        service = material_request_service
        request = submitted(
            is_store_use=True, reviewer="reviewer",
            budget_approver="budget_approver", rec_approver="manager",
        )
        assert request.status == "FOR_REVIEW"

        service.review_request(org.actor("reviewer"), request.id, approve=True, remarks="ok")
        assert request.status == "PENDING_BUDGET_APPROVAL"
        assert request.review_status == "APPROVED"

        service.approve_budget(
            org.actor("budget_approver"), request.id, approve=True, is_within_budget=True,
        )
        assert request.status == "FOR_REC_APPROVAL"
        assert request.is_within_budget is True

        service.approve_request(org.actor("manager"), request.id, remarks="recommended")
        assert request.status == "FOR_FINAL_APPROVAL"
        assert request.rec_approval_status == "APPROVED"
        assert request.date_approved is None

        service.approve_request(org.actor("final_approver"), request.id)
        assert request.status == "FOR_SERVING"
        assert request.final_approval_status == "APPROVED"
        assert request.date_approved is not None

    def test_recommending_without_final_goes_to_serving(self, material_request_service, submitted,
                                                       org):
        request = submitted(rec_approver="manager", final_approver_id=None)
        material_request_service.approve_request(org.actor("manager"), request.id)
        assert request.status == "FOR_SERVING"

    def test_review_disapproval(self, material_request_service, submitted, org):
        request = submitted(is_store_use=True, reviewer="reviewer")
        material_request_service.review_request(
            org.actor("reviewer"), request.id, approve=False, remarks="not stocked",
        )
        assert request.status == "DISAPPROVED"
        assert request.review_status == "DISAPPROVED"

    def test_budget_disapproval(self, material_request_service, submitted, org):
        request = submitted(budget_approver="budget_approver")
        material_request_service.approve_budget(
            org.actor("budget_approver"), request.id, approve=False, is_within_budget=False,
            remarks="over budget",
        )
        assert request.status == "DISAPPROVED"
        assert request.budget_approval_remarks == "over budget"

    @pytest.mark.parametrize("remarks", [None, "", "   "])
    def test_review_and_budget_disapproval_need_remarks(
        self, material_request_service, submitted, org, remarks,
    ):
        reviewed = submitted(is_store_use=True, reviewer="reviewer")
        with pytest.raises(ValidationError) as exc_info:
            material_request_service.review_request(
                org.actor("reviewer"), reviewed.id, approve=False, remarks=remarks,
            )
        assert exc_info.value.field == "remarks"
        assert reviewed.status == "FOR_REVIEW"

        budgeted = submitted(budget_approver="budget_approver")
        with pytest.raises(ValidationError):
            material_request_service.approve_budget(
                org.actor("budget_approver"), budgeted.id, approve=False, remarks=remarks,
            )
        assert budgeted.status == "PENDING_BUDGET_APPROVAL"

    def test_wrong_reviewer(self, material_request_service, submitted, org):
        request = submitted(is_store_use=True, reviewer="reviewer")
        with pytest.raises(NotAssignedApproverError) as exc_info:
            material_request_service.review_request(org.actor("admin"), request.id, approve=True)
        assert exc_info.value.stage == "FOR_REVIEW"

    def test_wrong_budget_approver(self, material_request_service, submitted, org):
        request = submitted(budget_approver="budget_approver")
        with pytest.raises(NotAssignedApproverError):
            material_request_service.approve_budget(org.actor("manager"), request.id, approve=True)

    def test_final_approver_cannot_act_at_recommending_stage(
        self, material_request_service, submitted, org,
    ):
        request = submitted(rec_approver="manager")
        with pytest.raises(NotAssignedApproverError):
            material_request_service.approve_request(org.actor("final_approver"), request.id)

    def test_draft_cannot_be_approved(self, material_request_service, org, make_data):
        request = material_request_service.create_request(org.actor("requester"), make_data())
        with pytest.raises(NotAssignedApproverError):
            material_request_service.approve_request(org.actor("final_approver"), request.id)


class TestReject:
    def test_remarks_required(self, material_request_service, submitted, org):
        request = submitted()
        with pytest.raises(ValidationError) as exc_info:
            material_request_service.reject_request(org.actor("final_approver"), request.id, "  ")
        assert exc_info.value.field == "remarks"
        assert request.status == "FOR_FINAL_APPROVAL"

    def test_final_rejection(self, material_request_service, submitted, org):
        request = submitted()
        material_request_service.reject_request(
            org.actor("final_approver"), request.id, "over budget",
        )
        assert request.status == "DISAPPROVED"
        assert request.final_approval_status == "DISAPPROVED"
        assert request.final_approval_remarks == "over budget"

    def test_recommending_rejection(self, material_request_service, submitted, org):
        request = submitted(rec_approver="manager")
        material_request_service.reject_request(org.actor("manager"), request.id, "duplicate")
        assert request.status == "DISAPPROVED"
        assert request.rec_approval_status == "DISAPPROVED"

    def test_reject_through_review_stage(self, material_request_service, submitted, org):
        request = submitted(is_store_use=True, reviewer="reviewer")
        material_request_service.reject_request(org.actor("reviewer"), request.id, "no")
        assert request.status == "DISAPPROVED"
        assert request.review_status == "DISAPPROVED"

    def test_unassigned_user(self, material_request_service, submitted, org):
        request = submitted()
        with pytest.raises(NotAssignedApproverError):
            material_request_service.reject_request(org.actor("manager"), request.id, "no")

    def test_disapproved_is_terminal(self, material_request_service, submitted, org):
        request = submitted()
        material_request_service.reject_request(org.actor("final_approver"), request.id, "no")
        with pytest.raises(InvalidTransitionError):
            material_request_service.cancel_request(org.actor("requester"), request.id)


class TestCancel:
    def test_owner_cancels_pending_request(self, material_request_service, submitted, org):
        request = submitted()
        material_request_service.cancel_request(org.actor("requester"), request.id, "not needed")
        assert request.status == "CANCELLED"
        assert request.cancelled_at is not None
        assert request.cancellation_reason == "not needed"

    def test_manager_cancels(self, material_request_service, submitted, org):
        request = submitted()
        material_request_service.cancel_request(org.actor("manager"), request.id)
        assert request.status == "CANCELLED"

    def test_other_user_refused(self, material_request_service, submitted, org):
        request = submitted()
        with pytest.raises(NotRequestOwnerError):
            material_request_service.cancel_request(org.actor("reviewer"), request.id)

    def test_cannot_cancel_once_approved(self, material_request_service, submitted, org):
        request = submitted()
        material_request_service.approve_request(org.actor("final_approver"), request.id)
        with pytest.raises(InvalidTransitionError):
            material_request_service.cancel_request(org.actor("requester"), request.id)


# =============================================================================
# Purchaser edits and fulfillment
# =============================================================================


@pytest.fixture
def approved(material_request_service, submitted, org):
    """Factory: a request approved through to FOR_SERVING."""

    def _approve(**overrides):
        request = submitted(**overrides)
        return material_request_service.approve_request(org.actor("final_approver"), request.id)

    return _approve


class TestPurchaserEdit:
    def test_edit_round_trip(self, material_request_service, approved, org):
        purchaser = org.actor("purchaser")
        request = approved()
        material_request_service.mark_for_edit(purchaser, request.id, "wrong part numbers")
        assert request.status == "FOR_EDIT"
        assert request.is_marked_for_edit
        assert request.marked_for_edit_at is not None

        first = request.items[0]
        material_request_service.update_item_descriptions(
            purchaser, request.id, {first.id: "  Toner cartridge TN-2480  "},
        )
        assert first.description == "Toner cartridge TN-2480"

        material_request_service.complete_edit(purchaser, request.id)
        assert request.status == "FOR_SERVING"
        assert not request.is_marked_for_edit
        assert request.edit_completed_at is not None

    def test_reason_required(self, material_request_service, approved, org):
        request = approved()
        with pytest.raises(ValidationError):
            material_request_service.mark_for_edit(org.actor("purchaser"), request.id, "")

    def test_requester_cannot_mark_for_edit(self, material_request_service, approved, org):
        request = approved()
        with pytest.raises(PermissionDeniedError):
            material_request_service.mark_for_edit(org.actor("requester"), request.id, "x")

    def test_descriptions_outside_edit(self, material_request_service, approved, org):
        request = approved()
        with pytest.raises(RequestNotEditableError):
            material_request_service.update_item_descriptions(
                org.actor("purchaser"), request.id, {request.items[0].id: "x"},
            )

    def test_unknown_item(self, material_request_service, approved, org):
        request = approved()
        material_request_service.mark_for_edit(org.actor("purchaser"), request.id, "fix")
        with pytest.raises(EntityNotFoundError):
            material_request_service.update_item_descriptions(
                org.actor("purchaser"), request.id, {uuid4(): "x"},
            )

    def test_requester_resubmits_from_edit(self, material_request_service, approved, org,
                                           make_data):
        request = approved()
        material_request_service.mark_for_edit(org.actor("purchaser"), request.id, "fix")
        material_request_service.update_request(org.actor("requester"), request.id, make_data())
        assert request.status == "DRAFT"
        assert request.final_approval_status is None
        assert not request.is_marked_for_edit


class TestServing:
    def test_partial_then_full(self, material_request_service, approved, org):
        purchaser = org.actor("purchaser")
        request = approved()
        toner, paper = request.items

        result = material_request_service.mark_served(
            purchaser, request.id, {toner.id: Decimal("2"), paper.id: Decimal("4")},
            supplier=SupplierInfo(bp_code="V-100", name="Paper Co", purchase_order_number="PO-9"),
        )
        assert result.status == MaterialRequestStatus.FOR_SERVING
        assert not result.fully_served
        assert result.served_quantities == {toner.id: Decimal("2"), paper.id: Decimal("4")}
        assert request.supplier_name == "Paper Co"

        result = material_request_service.mark_served(
            purchaser, request.id, {paper.id: Decimal("6")},
        )
        assert result.status == MaterialRequestStatus.FOR_POSTING
        assert result.fully_served
        assert paper.quantity_served == Decimal("10")
        assert request.served_at is not None
        assert request.supplier_bp_code == "V-100"

    def test_over_served(self, material_request_service, approved, org):
        request = approved()
        toner = request.items[0]
        with pytest.raises(OverServedQuantityError) as exc_info:
            material_request_service.mark_served(
                org.actor("purchaser"), request.id, {toner.id: Decimal("3")},
            )
        assert exc_info.value.item_id == str(toner.id)

    def test_over_served_line_leaves_other_lines_untouched(
        self, material_request_service, approved, org,
    ):
        request = approved()
        toner, paper = request.items
        with pytest.raises(OverServedQuantityError):
            material_request_service.mark_served(
                org.actor("purchaser"), request.id,
                {paper.id: Decimal("4"), toner.id: Decimal("99")},
            )
        assert (paper.quantity_served or Decimal("0")) == Decimal("0")
        assert (toner.quantity_served or Decimal("0")) == Decimal("0")
        assert request.status == "FOR_SERVING"

    def test_over_served_across_calls(self, material_request_service, approved, org):
        purchaser = org.actor("purchaser")
        request = approved()
        toner = request.items[0]
        material_request_service.mark_served(purchaser, request.id, {toner.id: Decimal("1.5")})
        with pytest.raises(OverServedQuantityError):
            material_request_service.mark_served(purchaser, request.id, {toner.id: Decimal("1")})

    def test_negative_quantity(self, material_request_service, approved, org):
        request = approved()
        with pytest.raises(ValidationError):
            material_request_service.mark_served(
                org.actor("purchaser"), request.id, {request.items[0].id: Decimal("-1")},
            )

    def test_not_in_serving(self, material_request_service, submitted, org):
        request = submitted()
        with pytest.raises(InvalidTransitionError):
            material_request_service.mark_served(org.actor("purchaser"), request.id, {})

    def test_stockroom_cannot_serve(self, material_request_service, approved, org):
        request = approved()
        with pytest.raises(PermissionDeniedError):
            material_request_service.mark_served(org.actor("stockroom"), request.id, {})


class TestPostingAndReceiving:
    def test_post_and_receive(self, material_request_service, approved, org):
        request = approved()
        _serve_all(material_request_service, org.actor("purchaser"), request)

        material_request_service.mark_posted(org.actor("acctg"), request.id)
        assert request.status == "POSTED"
        assert request.date_posted is not None
        assert request.processed_by_id == org.user("acctg").id

        material_request_service.mark_received(org.actor("stockroom"), request.id)
        assert request.status == "RECEIVED"
        assert request.date_received is not None

    def test_only_accounting_posts(self, material_request_service, approved, org):
        request = approved()
        _serve_all(material_request_service, org.actor("purchaser"), request)
        with pytest.raises(PermissionDeniedError):
            material_request_service.mark_posted(org.actor("purchaser"), request.id)

    def test_post_before_serving(self, material_request_service, approved, org):
        request = approved()
        with pytest.raises(InvalidTransitionError):
            material_request_service.mark_posted(org.actor("acctg"), request.id)

    def test_requester_cannot_receive(self, material_request_service, approved, org):
        request = approved()
        _serve_all(material_request_service, org.actor("purchaser"), request)
        material_request_service.mark_posted(org.actor("acctg"), request.id)
        with pytest.raises(PermissionDeniedError):
            material_request_service.mark_received(org.actor("requester"), request.id)


class TestAcknowledgement:
    @pytest.fixture
    def posted(self, material_request_service, approved, org):
        request = approved()
        _serve_all(material_request_service, org.actor("purchaser"), request)
        return material_request_service.mark_posted(org.actor("acctg"), request.id)

    def test_requester_signs(self, material_request_service, posted, org):
        material_request_service.save_acknowledgement(
            org.actor("requester"), posted.id, "data:image/png;base64,AAAA",
        )
        assert posted.acknowledged_by_id == org.user("requester").id
        assert posted.acknowledged_at is not None

    def test_admin_may_sign(self, material_request_service, posted, org):
        material_request_service.save_acknowledgement(org.actor("admin"), posted.id, "sig")
        assert posted.acknowledged_by_id == org.user("admin").id

    def test_other_user_refused(self, material_request_service, posted, org):
        with pytest.raises(PermissionDeniedError):
            material_request_service.save_acknowledgement(org.actor("manager"), posted.id, "sig")

    def test_signature_required(self, material_request_service, posted, org):
        with pytest.raises(ValidationError) as exc_info:
            material_request_service.save_acknowledgement(org.actor("requester"), posted.id, " ")
        assert exc_info.value.field == "signature"

    def test_not_yet_posted(self, material_request_service, approved, org):
        request = approved()
        with pytest.raises(InvalidTransitionError):
            material_request_service.save_acknowledgement(
                org.actor("requester"), request.id, "sig",
            )


# =============================================================================
# Queries
# =============================================================================


class TestQueries:
    def test_get_request_visibility(self, material_request_service, submitted, org):
        request = submitted()
        assert material_request_service.get_request(org.actor("requester"), request.id) is request
        assert material_request_service.get_request(org.actor("hr"), request.id) is request
        with pytest.raises(BusinessUnitAccessError):
            material_request_service.get_request(org.actor("branch_user"), request.id)

    def test_assigned_approver_sees_other_unit_request(self, material_request_service, submitted,
                                                       org):
        request = submitted(final_approver="branch_manager")
        found = material_request_service.get_request(org.actor("branch_manager"), request.id)
        assert found.id == request.id

    def test_unknown_request(self, material_request_service, org):
        with pytest.raises(EntityNotFoundError):
            material_request_service.get_request(org.actor("admin"), uuid4())

    def test_list_filters_and_pages(self, material_request_service, submitted, org, make_data):
        requester = org.actor("requester")
        for _ in range(3):
            material_request_service.create_request(requester, make_data())
        submitted(purpose="Printer ink")

        page = material_request_service.list_requests(
            requester, org.hq.id, page=1, page_size=2,
        )
        assert page.total_count == 4
        assert len(page.items) == 2
        assert page.has_next

        drafts = material_request_service.list_requests(
            requester, org.hq.id, status=MaterialRequestStatus.DRAFT,
        )
        assert drafts.total_count == 3

        found = material_request_service.list_requests(requester, org.hq.id, search="ink")
        assert [r.purpose for r in found.items] == ["Printer ink"]

    def test_list_other_unit_refused(self, material_request_service, org):
        with pytest.raises(BusinessUnitAccessError):
            material_request_service.list_requests(org.actor("requester"), org.branch.id)

    def test_pending_approvals_follow_stage(self, material_request_service, submitted, org):
        request = submitted(rec_approver="manager")
        manager, final = org.actor("manager"), org.actor("final_approver")

        assert material_request_service.get_pending_approvals(manager).total_count == 1
        assert material_request_service.get_pending_approvals(final).total_count == 0

        material_request_service.approve_request(manager, request.id)
        assert material_request_service.get_pending_approvals(manager).total_count == 0
        pending = material_request_service.get_pending_approvals(final)
        assert [r.id for r in pending.items] == [request.id]

    def test_pending_approvals_limited_to_own_unit(self, material_request_service, submitted,
                                                  org):
        submitted(final_approver="branch_manager")
        pending = material_request_service.get_pending_approvals(org.actor("branch_manager"))
        assert pending.total_count == 0

    def test_cross_unit_approver(self, session, deterministic_clock, submitted, org):
        submitted(final_approver="branch_manager")
        service = MaterialRequestService(
            session, deterministic_clock,
            MaterialRequestSettings(cross_unit_approver_ids=("C-002",)),
        )
        pending = service.get_pending_approvals(org.actor("branch_manager"))
        assert pending.total_count == 1
