"""
Material Request Module Service (``backoffice_modules.material_requests.service``).

Responsibility
--------------
Orchestrates the material-request lifecycle: drafting and editing,
submission and routing through review, budget, recommending and final
approval, purchaser edits, serving, posting, receipt and acknowledgement.
Also serves the approver queue and request listings.

Architecture position
---------------------
**Modules layer** -- ``MaterialRequestService`` is the sole public entry
point for material requests.  Every status change goes through
``WorkflowExecutor`` against ``MATERIAL_REQUEST_WORKFLOW`` and is written
to the audit log.  Totals and serving predicates come from the pure
``helpers`` module.

Invariants enforced
-------------------
* Status only changes through declared workflow transitions.
* ``total`` always equals the line sum plus freight minus discount.
* Served quantity never exceeds requested quantity.
* Only the assigned approver of the current stage can approve or reject.
* The service flushes and never commits; the caller owns the transaction.

Failure modes
-------------
* ``EntityNotFoundError`` -- unknown request or item.
* ``ValidationError`` -- invalid lines, dates or missing remarks.
* ``NotRequestOwnerError`` / ``NotAssignedApproverError`` /
  ``PermissionDeniedError`` -- caller may not act on the request.
* ``MissingApproverError`` -- submission without any approver.
* ``RequestNotEditableError`` -- content change outside DRAFT / FOR_EDIT.
* ``OverServedQuantityError`` -- serving more than requested.
* ``InvalidTransitionError`` -- action not allowed in the current status.

Usage::

    service = MaterialRequestService(session, clock, settings.material_requests)
    request = service.create_request(actor, MaterialRequestData(...))
    service.submit_request(actor, request.id)
    service.approve_request(approver, request.id, remarks="ok")
"""

from __future__ import annotations

from decimal import Decimal
from typing import Mapping, Sequence
from uuid import UUID

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session

from backoffice_config.schema import MaterialRequestSettings
from backoffice_kernel.domain.access import (
    Actor,
    UserRole,
    require_business_unit_access,
    require_role,
)
from backoffice_kernel.domain.clock import Clock, SystemClock
from backoffice_kernel.exceptions import (
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
from backoffice_kernel.logging_config import LogContext, get_logger
from backoffice_kernel.models.audit_log import AuditAction
from backoffice_kernel.services.audit_service import AuditService
from backoffice_kernel.services.sequence_service import SequenceService, format_document_number
from backoffice_modules.material_requests.helpers import (
    is_fully_served,
    line_total,
    request_total,
    validate_items,
)
from backoffice_modules.material_requests.models import (
    ACKNOWLEDGEABLE_STATUSES,
    EDITABLE_STATUSES,
    ApprovalStatus,
    MaterialRequestData,
    MaterialRequestItemData,
    MaterialRequestStatus,
    Page,
    ServeResult,
    SupplierInfo,
)
from backoffice_modules.material_requests.orm import (
    MaterialRequestItemModel,
    MaterialRequestModel,
)
from backoffice_modules.material_requests.workflows import (
    MATERIAL_REQUEST_WORKFLOW,
    register_material_request_guards,
)
from backoffice_services.workflow_executor import GuardExecutor, WorkflowExecutor

logger = get_logger("modules.material_requests.service")

ENTITY_TYPE = "material_request"
TABLE_NAME = "material_requests"

_PENDING_OR_UNSET = (None, ApprovalStatus.PENDING.value)

# Status -> approval-status column opened when the request enters that stage
_STAGE_STATUS_COLUMN = {
    MaterialRequestStatus.FOR_REVIEW: "review_status",
    MaterialRequestStatus.PENDING_BUDGET_APPROVAL: "budget_approval_status",
    MaterialRequestStatus.FOR_REC_APPROVAL: "rec_approval_status",
    MaterialRequestStatus.FOR_FINAL_APPROVAL: "final_approval_status",
}


def _pending(column):
    return or_(column.is_(None), column == ApprovalStatus.PENDING.value)


def _require_disapproval_remarks(remarks: str | None) -> None:
    if not (remarks or "").strip():
        raise ValidationError("Remarks are required when disapproving", field="remarks")


class MaterialRequestService:
    """
    Material request lifecycle operations.

    Contract
    --------
    * Every mutating method takes the acting ``Actor`` first.
    * Returns ORM rows or frozen DTOs; raises typed ``BackOfficeError``
      subclasses on every rule violation.

    Non-goals
    ---------
    * Does NOT send notifications.
    * Does NOT commit.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        settings: MaterialRequestSettings | None = None,
        workflow_executor: WorkflowExecutor | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._settings = settings or MaterialRequestSettings()
        self._sequences = SequenceService(session)
        self._audit = AuditService(session, self._clock)
        self._workflow = workflow_executor or WorkflowExecutor(
            register_material_request_guards(GuardExecutor()),
        )

    # =========================================================================
    # Internals
    # =========================================================================

    def _get(self, request_id: UUID) -> MaterialRequestModel:
        request = self._session.get(MaterialRequestModel, request_id)
        if request is None:
            raise EntityNotFoundError("MaterialRequest", str(request_id))
        return request

    def _context(self, request: MaterialRequestModel) -> dict[str, bool]:
        return {
            "store_use_review": bool(request.is_store_use and request.reviewer_id),
            "has_budget_approver": request.budget_approver_id is not None,
            "has_rec_approver": request.rec_approver_id is not None,
            "has_final_approver": request.final_approver_id is not None,
            "fully_served": is_fully_served(request.items),
        }

    def _transition(
        self,
        request: MaterialRequestModel,
        action: str,
        actor: Actor,
        audit_action: AuditAction = AuditAction.STATUS_CHANGE,
    ) -> MaterialRequestStatus:
        """Apply ``action``; return the new status."""
        transition = self._workflow.require_transition(
            MATERIAL_REQUEST_WORKFLOW, ENTITY_TYPE, request.id,
            request.status, action, self._context(request),
        )
        previous = request.status
        request.status = transition.to_state
        now = self._clock.now()
        if transition.sets_timestamp:
            setattr(request, transition.sets_timestamp, now)
        request.updated_by_id = actor.user_id
        self._session.flush()

        self._audit.record(
            TABLE_NAME, request.id, audit_action, actor.user_id,
            old_values={"status": previous},
            new_values={"status": request.status, "action": action},
            business_unit_id=request.business_unit_id,
        )
        logger.info("material_request_status_changed", extra={
            "request_id": str(request.id),
            "doc_no": request.doc_no,
            "from_status": previous,
            "to_status": request.status,
            "action": action,
        })
        return MaterialRequestStatus(request.status)

    def _open_stage(self, request: MaterialRequestModel) -> None:
        column = _STAGE_STATUS_COLUMN.get(MaterialRequestStatus(request.status))
        if column is not None:
            setattr(request, column, ApprovalStatus.PENDING.value)

    def _require_status(
        self, request: MaterialRequestModel, action: str, *statuses: MaterialRequestStatus,
    ) -> None:
        if MaterialRequestStatus(request.status) not in statuses:
            raise InvalidTransitionError(MATERIAL_REQUEST_WORKFLOW.name, request.status, action)

    def _is_owner(self, actor: Actor, request: MaterialRequestModel) -> bool:
        return request.requested_by_id == actor.user_id

    def _require_owner_or_roles(
        self, actor: Actor, request: MaterialRequestModel, *roles: UserRole,
    ) -> None:
        if self._is_owner(actor, request) or actor.role in roles:
            return
        raise NotRequestOwnerError(request.doc_no, str(actor.user_id))

    def _build_items(
        self, items: Sequence[MaterialRequestItemData], actor: Actor,
    ) -> list[MaterialRequestItemModel]:
        return [
            MaterialRequestItemModel(
                line_number=number,
                item_code=(item.item_code or "").strip() or None,
                description=item.description.strip(),
                uom=item.uom.strip(),
                quantity=item.quantity,
                unit_price=item.unit_price,
                total_price=line_total(item.quantity, item.unit_price),
                remarks=item.remarks,
                is_new_item=item.is_new_item,
                quantity_served=Decimal("0"),
                created_by_id=actor.user_id,
            )
            for number, item in enumerate(items, start=1)
        ]

    def _validate(self, data: MaterialRequestData) -> None:
        validate_items(data.items)
        if data.date_required < data.date_prepared:
            raise ValidationError(
                "Date required cannot be before date prepared", field="date_required",
            )
        if data.freight < 0:
            raise ValidationError("Freight cannot be negative", field="freight")
        if data.discount < 0:
            raise ValidationError("Discount cannot be negative", field="discount")

    def _apply(self, request: MaterialRequestModel, data: MaterialRequestData) -> None:
        request.type = data.type.value
        request.date_prepared = data.date_prepared
        request.date_required = data.date_required
        request.department_id = data.department_id
        request.charge_to = data.charge_to
        request.purpose = data.purpose
        request.remarks = data.remarks
        request.deliver_to = data.deliver_to
        request.is_store_use = data.is_store_use
        request.freight = data.freight
        request.discount = data.discount
        request.total = request_total(data.items, data.freight, data.discount)
        request.confirmation_no = data.confirmation_no
        request.reviewer_id = data.reviewer_id
        request.budget_approver_id = data.budget_approver_id
        request.rec_approver_id = data.rec_approver_id
        request.final_approver_id = data.final_approver_id

    def _sequence_name(self, series: str, year: int) -> str:
        return f"material_request:{series}:{year % 100:02d}"

    # =========================================================================
    # Drafting
    # =========================================================================

    def get_next_document_number(self, series: str | None = None, year: int | None = None) -> str:
        """The doc number the next request in ``series`` would get; nothing is allocated."""
        series = series or self._settings.default_series
        year = year or self._clock.today().year
        value = self._sequences.peek_next(self._sequence_name(series, year))
        return format_document_number(series, year, value, self._settings.document_number_width)

    def create_request(self, actor: Actor, data: MaterialRequestData) -> MaterialRequestModel:
        """
        Create a DRAFT request owned by ``actor``.

        Postconditions:
            - doc_no = ``{series}-{YY}-{NNNNN}`` from the series counter.
            - total = sum(unit_price * quantity) + freight - discount.
        """
        require_business_unit_access(actor, data.business_unit_id)
        self._validate(data)

        series = (data.series or self._settings.default_series).strip().upper()
        year = self._clock.today().year
        value = self._sequences.next_value(self._sequence_name(series, year))
        doc_no = format_document_number(series, year, value, self._settings.document_number_width)

        request = MaterialRequestModel(
            doc_no=doc_no,
            series=series,
            status=MaterialRequestStatus.DRAFT.value,
            business_unit_id=data.business_unit_id,
            requested_by_id=actor.user_id,
            created_by_id=actor.user_id,
        )
        self._apply(request, data)
        request.items = self._build_items(data.items, actor)
        self._session.add(request)
        self._session.flush()

        self._audit.record(
            TABLE_NAME, request.id, AuditAction.CREATE, actor.user_id,
            new_values={"doc_no": doc_no, "total": request.total, "items": len(data.items)},
            business_unit_id=request.business_unit_id,
        )
        logger.info("material_request_created", extra={
            "request_id": str(request.id),
            "doc_no": doc_no,
            "item_count": len(data.items),
            "total": str(request.total),
        })
        return request

    def update_request(
        self, actor: Actor, request_id: UUID, data: MaterialRequestData,
    ) -> MaterialRequestModel:
        """Replace the content of a DRAFT or FOR_EDIT request; it returns to DRAFT."""
        request = self._get(request_id)
        self._require_owner_or_roles(actor, request, UserRole.ADMIN, UserRole.MANAGER)
        if MaterialRequestStatus(request.status) not in EDITABLE_STATUSES:
            raise RequestNotEditableError(request.doc_no, request.status)
        self._validate(data)
        require_business_unit_access(actor, data.business_unit_id)

        old_total = request.total
        self._apply(request, data)
        request.business_unit_id = data.business_unit_id
        request.items = self._build_items(data.items, actor)
        for column in _STAGE_STATUS_COLUMN.values():
            setattr(request, column, None)
        request.is_marked_for_edit = False
        self._session.flush()

        self._transition(request, "update", actor, AuditAction.UPDATE)
        logger.info("material_request_updated", extra={
            "request_id": str(request.id),
            "old_total": str(old_total),
            "new_total": str(request.total),
        })
        return request

    def delete_request(self, actor: Actor, request_id: UUID) -> None:
        request = self._get(request_id)
        self._require_owner_or_roles(actor, request, UserRole.ADMIN, UserRole.MANAGER)
        if request.status != MaterialRequestStatus.DRAFT.value:
            raise RequestNotEditableError(request.doc_no, request.status)
        self._audit.record(
            TABLE_NAME, request.id, AuditAction.DELETE, actor.user_id,
            old_values={"doc_no": request.doc_no, "status": request.status},
            business_unit_id=request.business_unit_id,
        )
        self._session.delete(request)
        self._session.flush()
        logger.info("material_request_deleted", extra={"doc_no": request.doc_no})

    # =========================================================================
    # Submission and approval
    # =========================================================================

    def submit_request(self, actor: Actor, request_id: UUID) -> MaterialRequestModel:
        """
        Route a DRAFT into its first approval stage.

        FOR_REVIEW for store use with a reviewer, else PENDING_BUDGET_APPROVAL
        when a budget approver is assigned, else FOR_REC_APPROVAL; with no
        recommending approver the request goes straight to FOR_FINAL_APPROVAL.
        """
        request = self._get(request_id)
        if not self._is_owner(actor, request):
            raise NotRequestOwnerError(request.doc_no, str(actor.user_id))
        self._require_status(request, "submit", MaterialRequestStatus.DRAFT)
        if request.rec_approver_id is None and request.final_approver_id is None:
            raise MissingApproverError(request.doc_no)

        with LogContext.bind_actor(actor, document_id=request.doc_no):
            self._transition(request, "submit", actor)
            self._open_stage(request)
            self._session.flush()
        return request

    def review_request(
        self, actor: Actor, request_id: UUID, approve: bool, remarks: str | None = None,
    ) -> MaterialRequestModel:
        if not approve:
            _require_disapproval_remarks(remarks)
        request = self._get(request_id)
        if (
            request.status != MaterialRequestStatus.FOR_REVIEW.value
            or request.reviewer_id != actor.user_id
        ):
            raise NotAssignedApproverError(request.doc_no, str(actor.user_id), request.status)

        request.review_status = (
            ApprovalStatus.APPROVED if approve else ApprovalStatus.DISAPPROVED
        ).value
        request.review_remarks = remarks
        request.reviewed_at = self._clock.now()
        self._transition(
            request, "review_approve" if approve else "review_disapprove", actor,
            AuditAction.APPROVE if approve else AuditAction.REJECT,
        )
        if approve:
            self._open_stage(request)
            self._session.flush()
        return request

    def approve_budget(
        self,
        actor: Actor,
        request_id: UUID,
        approve: bool,
        is_within_budget: bool | None = None,
        remarks: str | None = None,
    ) -> MaterialRequestModel:
        if not approve:
            _require_disapproval_remarks(remarks)
        request = self._get(request_id)
        if (
            request.status != MaterialRequestStatus.PENDING_BUDGET_APPROVAL.value
            or request.budget_approver_id != actor.user_id
        ):
            raise NotAssignedApproverError(request.doc_no, str(actor.user_id), request.status)

        request.budget_approval_status = (
            ApprovalStatus.APPROVED if approve else ApprovalStatus.DISAPPROVED
        ).value
        request.budget_approval_remarks = remarks
        request.budget_approval_date = self._clock.now()
        request.is_within_budget = is_within_budget
        self._transition(
            request, "budget_approve" if approve else "budget_disapprove", actor,
            AuditAction.APPROVE if approve else AuditAction.REJECT,
        )
        if approve:
            self._open_stage(request)
            self._session.flush()
        return request

    def _final_stage_open(self, request: MaterialRequestModel) -> bool:
        if request.rec_approver_id is None:
            return True
        return request.rec_approval_status == ApprovalStatus.APPROVED.value

    def approve_request(
        self, actor: Actor, request_id: UUID, remarks: str | None = None,
    ) -> MaterialRequestModel:
        """
        Recommending or final approval, whichever stage belongs to ``actor``.

        Recommending approval moves to FOR_FINAL_APPROVAL when a final
        approver exists, else to FOR_SERVING.  Final approval moves to
        FOR_SERVING and stamps ``date_approved``.
        """
        request = self._get(request_id)
        now = self._clock.now()
        status = MaterialRequestStatus(request.status)

        if (
            status == MaterialRequestStatus.FOR_REC_APPROVAL
            and request.rec_approver_id == actor.user_id
            and request.rec_approval_status in _PENDING_OR_UNSET
        ):
            request.rec_approval_status = ApprovalStatus.APPROVED.value
            request.rec_approval_remarks = remarks
            request.rec_approval_date = now
            stage = "RECOMMENDING"
        elif (
            status == MaterialRequestStatus.FOR_FINAL_APPROVAL
            and request.final_approver_id == actor.user_id
            and self._final_stage_open(request)
            and request.final_approval_status in _PENDING_OR_UNSET
        ):
            request.final_approval_status = ApprovalStatus.APPROVED.value
            request.final_approval_remarks = remarks
            request.final_approval_date = now
            stage = "FINAL"
        else:
            raise NotAssignedApproverError(request.doc_no, str(actor.user_id), request.status)

        new_status = self._transition(request, "approve", actor, AuditAction.APPROVE)
        self._open_stage(request)
        self._session.flush()
        logger.info("material_request_approved", extra={
            "request_id": str(request.id),
            "doc_no": request.doc_no,
            "stage": stage,
            "to_status": new_status.value,
        })
        return request

    def reject_request(
        self, actor: Actor, request_id: UUID, remarks: str,
    ) -> MaterialRequestModel:
        """Disapprove at whichever stage belongs to ``actor``; remarks are required."""
        _require_disapproval_remarks(remarks)
        request = self._get(request_id)
        status = MaterialRequestStatus(request.status)
        now = self._clock.now()
        disapproved = ApprovalStatus.DISAPPROVED.value

        if status == MaterialRequestStatus.FOR_REVIEW and request.reviewer_id == actor.user_id:
            request.review_status, request.review_remarks = disapproved, remarks
            request.reviewed_at = now
            action = "review_disapprove"
        elif (
            status == MaterialRequestStatus.PENDING_BUDGET_APPROVAL
            and request.budget_approver_id == actor.user_id
        ):
            request.budget_approval_status, request.budget_approval_remarks = disapproved, remarks
            request.budget_approval_date = now
            action = "budget_disapprove"
        elif (
            status == MaterialRequestStatus.FOR_REC_APPROVAL
            and request.rec_approver_id == actor.user_id
        ):
            request.rec_approval_status, request.rec_approval_remarks = disapproved, remarks
            request.rec_approval_date = now
            action = "reject"
        elif (
            status == MaterialRequestStatus.FOR_FINAL_APPROVAL
            and request.final_approver_id == actor.user_id
        ):
            request.final_approval_status, request.final_approval_remarks = disapproved, remarks
            request.final_approval_date = now
            action = "reject"
        else:
            raise NotAssignedApproverError(request.doc_no, str(actor.user_id), request.status)

        self._transition(request, action, actor, AuditAction.REJECT)
        logger.info("material_request_disapproved", extra={
            "request_id": str(request.id), "doc_no": request.doc_no, "stage": status.value,
        })
        return request

    def cancel_request(
        self, actor: Actor, request_id: UUID, reason: str | None = None,
    ) -> MaterialRequestModel:
        request = self._get(request_id)
        roles = tuple(UserRole(r) for r in self._settings.cancellable_by_roles)
        self._require_owner_or_roles(actor, request, *roles)
        request.cancellation_reason = reason
        self._transition(request, "cancel", actor)
        return request

    # =========================================================================
    # Purchaser edits
    # =========================================================================

    def mark_for_edit(self, actor: Actor, request_id: UUID, reason: str) -> MaterialRequestModel:
        require_role(actor, "mark_for_edit", UserRole.ADMIN, allow_purchaser=True)
        if not (reason or "").strip():
            raise ValidationError("A reason is required", field="reason")
        request = self._get(request_id)
        self._transition(request, "mark_for_edit", actor)
        request.is_marked_for_edit = True
        request.edit_reason = reason
        request.marked_for_edit_by_id = actor.user_id
        request.edit_completed_at = None
        self._session.flush()
        return request

    def update_item_descriptions(
        self, actor: Actor, request_id: UUID, descriptions: Mapping[UUID, str],
    ) -> MaterialRequestModel:
        """Rewrite line descriptions while a purchaser edit is open."""
        require_role(actor, "update_item_descriptions", UserRole.ADMIN, allow_purchaser=True)
        request = self._get(request_id)
        if (
            request.status != MaterialRequestStatus.FOR_EDIT.value
            or not request.is_marked_for_edit
            or request.edit_completed_at is not None
        ):
            raise RequestNotEditableError(request.doc_no, request.status)

        items = {item.id: item for item in request.items}
        for item_id, description in descriptions.items():
            item = items.get(item_id)
            if item is None:
                raise EntityNotFoundError("MaterialRequestItem", str(item_id))
            if not (description or "").strip():
                raise ValidationError("Description is required", field="description")
            item.description = description.strip()
            item.updated_by_id = actor.user_id
        self._session.flush()
        logger.info("material_request_items_edited", extra={
            "request_id": str(request.id), "item_count": len(descriptions),
        })
        return request

    def complete_edit(self, actor: Actor, request_id: UUID) -> MaterialRequestModel:
        require_role(actor, "complete_edit", UserRole.ADMIN, allow_purchaser=True)
        request = self._get(request_id)
        self._transition(request, "complete_edit", actor)
        request.is_marked_for_edit = False
        self._session.flush()
        return request

    # =========================================================================
    # Fulfillment
    # =========================================================================

    def mark_served(
        self,
        actor: Actor,
        request_id: UUID,
        served_quantities: Mapping[UUID, Decimal] | None = None,
        supplier: SupplierInfo | None = None,
        notes: str | None = None,
    ) -> ServeResult:
        """
        Record served quantities; FOR_POSTING once every line is fully served.

        Quantities accumulate across calls.
        """
        require_role(actor, "mark_served", UserRole.ADMIN, allow_purchaser=True)
        request = self._get(request_id)
        require_business_unit_access(actor, request.business_unit_id)
        self._require_status(request, "serve", MaterialRequestStatus.FOR_SERVING)

        items = {item.id: item for item in request.items}
        served: dict[UUID, Decimal] = {}
        for item_id, quantity in (served_quantities or {}).items():
            item = items.get(item_id)
            if item is None:
                raise EntityNotFoundError("MaterialRequestItem", str(item_id))
            if quantity < 0:
                raise ValidationError("Served quantity cannot be negative", field="quantity")
            if quantity == 0:
                continue
            new_served = (item.quantity_served or Decimal("0")) + quantity
            if new_served > item.quantity:
                raise OverServedQuantityError(str(item.id), str(item.quantity), str(new_served))
            served[item_id] = new_served

        # every line is checked before any is changed
        for item_id, new_served in served.items():
            items[item_id].quantity_served = new_served

        supplier = supplier or SupplierInfo()
        request.served_by_id = actor.user_id
        request.served_notes = notes
        request.supplier_bp_code = supplier.bp_code or request.supplier_bp_code
        request.supplier_name = supplier.name or request.supplier_name
        request.purchase_order_number = (
            supplier.purchase_order_number or request.purchase_order_number
        )
        self._session.flush()

        new_status = self._transition(request, "serve", actor)
        fully = new_status == MaterialRequestStatus.FOR_POSTING
        logger.info("material_request_served", extra={
            "request_id": str(request.id),
            "doc_no": request.doc_no,
            "fully_served": fully,
            "lines_served": len(served),
        })
        return ServeResult(
            request_id=request.id,
            status=new_status,
            fully_served=fully,
            served_quantities=served,
        )

    def mark_posted(self, actor: Actor, request_id: UUID) -> MaterialRequestModel:
        require_role(actor, "mark_posted", UserRole.ADMIN, allow_acctg=True)
        request = self._get(request_id)
        self._transition(request, "post", actor)
        request.processed_by_id = actor.user_id
        request.processed_at = request.date_posted
        self._session.flush()
        return request

    def mark_received(self, actor: Actor, request_id: UUID) -> MaterialRequestModel:
        roles = tuple(UserRole(r) for r in self._settings.receive_roles)
        require_role(actor, "mark_received", *roles, allow_purchaser=True)
        request = self._get(request_id)
        self._transition(request, "receive", actor)
        return request

    def save_acknowledgement(
        self, actor: Actor, request_id: UUID, signature: str,
    ) -> MaterialRequestModel:
        """Requester (or ADMIN) signs for a POSTED or RECEIVED request."""
        request = self._get(request_id)
        if not (self._is_owner(actor, request) or actor.is_admin):
            raise PermissionDeniedError(
                str(actor.user_id), "save_acknowledgement", ("requester", UserRole.ADMIN.value),
            )
        self._require_status(request, "acknowledge", *ACKNOWLEDGEABLE_STATUSES)
        if not (signature or "").strip():
            raise ValidationError("Signature is required", field="signature")

        request.signature = signature
        request.acknowledged_at = self._clock.now()
        request.acknowledged_by_id = actor.user_id
        request.updated_by_id = actor.user_id
        self._session.flush()
        self._audit.record(
            TABLE_NAME, request.id, AuditAction.UPDATE, actor.user_id,
            new_values={"acknowledged_by_id": actor.user_id},
            business_unit_id=request.business_unit_id,
        )
        logger.info("material_request_acknowledged", extra={
            "request_id": str(request.id), "doc_no": request.doc_no,
        })
        return request

    # =========================================================================
    # Queries
    # =========================================================================

    def get_request(self, actor: Actor, request_id: UUID) -> MaterialRequestModel:
        request = self._get(request_id)
        if not (
            self._is_owner(actor, request)
            or actor.user_id in (
                request.reviewer_id, request.budget_approver_id,
                request.rec_approver_id, request.final_approver_id,
            )
        ):
            require_business_unit_access(actor, request.business_unit_id)
        return request

    def _paginate(self, stmt, page: int, page_size: int | None) -> Page[MaterialRequestModel]:
        page = max(1, page)
        page_size = page_size or self._settings.default_page_size
        total = self._session.execute(
            select(func.count()).select_from(stmt.order_by(None).subquery())
        ).scalar_one()
        rows = self._session.execute(
            stmt.offset((page - 1) * page_size).limit(page_size)
        ).scalars().all()
        return Page(items=tuple(rows), total_count=total, page=page, page_size=page_size)

    def _search(self, stmt, search: str | None):
        if search and search.strip():
            pattern = f"%{search.strip()}%"
            stmt = stmt.where(or_(
                MaterialRequestModel.doc_no.ilike(pattern),
                MaterialRequestModel.purpose.ilike(pattern),
                MaterialRequestModel.charge_to.ilike(pattern),
            ))
        return stmt

    def list_requests(
        self,
        actor: Actor,
        business_unit_id: UUID,
        status: MaterialRequestStatus | None = None,
        search: str | None = None,
        page: int = 1,
        page_size: int | None = None,
        requested_by_id: UUID | None = None,
    ) -> Page[MaterialRequestModel]:
        require_business_unit_access(actor, business_unit_id)
        stmt = (
            select(MaterialRequestModel)
            .where(MaterialRequestModel.business_unit_id == business_unit_id)
            .order_by(MaterialRequestModel.created_at.desc(), MaterialRequestModel.doc_no.desc())
        )
        if status is not None:
            stmt = stmt.where(MaterialRequestModel.status == status.value)
        if requested_by_id is not None:
            stmt = stmt.where(MaterialRequestModel.requested_by_id == requested_by_id)
        return self._paginate(self._search(stmt, search), page, page_size)

    def get_pending_approvals(
        self,
        actor: Actor,
        page: int = 1,
        page_size: int | None = None,
        search: str | None = None,
    ) -> Page[MaterialRequestModel]:
        """
        Requests waiting on ``actor`` at their current stage.

        Limited to the actor's business unit unless the actor's employee id
        is a configured cross-unit approver.
        """
        mr = MaterialRequestModel
        me = actor.user_id
        final_stage_open = or_(
            mr.rec_approver_id.is_(None),
            mr.rec_approval_status == ApprovalStatus.APPROVED.value,
        )
        stmt = select(mr).where(or_(
            and_(mr.reviewer_id == me,
                 mr.status == MaterialRequestStatus.FOR_REVIEW.value,
                 _pending(mr.review_status)),
            and_(mr.budget_approver_id == me,
                 mr.status == MaterialRequestStatus.PENDING_BUDGET_APPROVAL.value,
                 _pending(mr.budget_approval_status)),
            and_(mr.rec_approver_id == me,
                 mr.status == MaterialRequestStatus.FOR_REC_APPROVAL.value,
                 _pending(mr.rec_approval_status)),
            and_(mr.final_approver_id == me,
                 mr.status == MaterialRequestStatus.FOR_FINAL_APPROVAL.value,
                 final_stage_open,
                 _pending(mr.final_approval_status)),
        ))
        if actor.employee_id not in self._settings.cross_unit_approver_ids:
            stmt = stmt.where(mr.business_unit_id == actor.business_unit_id)
        stmt = stmt.order_by(mr.created_at.desc(), mr.doc_no.desc())
        return self._paginate(self._search(stmt, search), page, page_size)
