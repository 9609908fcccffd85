"""
Leave Module Service (``backoffice_modules.leave.service``).

Responsibility
--------------
HR administration of leave types and per-year leave balances, and the
yearly replenishment that opens next year's balances with carry-over.
Employees' leave requests pass manager then HR approval; the final
approval books the days against the balance.

Architecture position
---------------------
**Modules layer** -- ``LeaveBalanceService`` and ``LeaveRequestService``
are the public entry points.  Carry-over and day-count arithmetic live in
the pure ``helpers`` module; request statuses follow
``LEAVE_REQUEST_WORKFLOW``.

Invariants enforced
-------------------
* One balance per (user, leave type, year).
* Allocated days are never negative and never below used days.
* Replenishment never overwrites: it fails when any balance of the
  target year already exists in the business unit.
* Carry-over above the configured limit requires acknowledgement.
* Only the requester's direct approver (or an ADMIN of the unit) acts on
  PENDING_MANAGER; only the configured HR roles act on PENDING_HR.
* ``used_days`` changes only on the final (HR) approval.

Failure modes
-------------
* ``DuplicateLeaveBalanceError``, ``AllocationBelowUsedError``,
  ``BalancesAlreadyExistError``, ``ExcessCarryOverNotAcknowledgedError``.
* ``PermissionDeniedError`` -- caller is not ADMIN or HR.
* ``NotAssignedApproverError``, ``NotRequestOwnerError``,
  ``InsufficientLeaveBalanceError``, ``InvalidTransitionError``.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Sequence
from uuid import UUID

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session

from backoffice_config.schema import LeaveSettings
from backoffice_kernel.domain.access import (
    Actor,
    UserRole,
    can_access_business_unit,
    require_business_unit_access,
    require_role,
)
from backoffice_kernel.domain.clock import Clock, SystemClock
from backoffice_kernel.domain.pagination import Page
from backoffice_kernel.exceptions import (
    AllocationBelowUsedError,
    BalancesAlreadyExistError,
    DuplicateLeaveBalanceError,
    EntityNotFoundError,
    ExcessCarryOverNotAcknowledgedError,
    InsufficientLeaveBalanceError,
    InvalidTransitionError,
    NotAssignedApproverError,
    NotRequestOwnerError,
    ValidationError,
)
from backoffice_kernel.logging_config import get_logger
from backoffice_kernel.models.audit_log import AuditAction
from backoffice_kernel.models.organization import User
from backoffice_kernel.services.audit_service import AuditService
from backoffice_modules.leave.helpers import (
    carry_over,
    leave_days,
    name_matches,
    replenished_allocation,
)
from backoffice_modules.leave.models import (
    CarryOverInfo,
    LeaveBalanceUpdate,
    LeaveRequestData,
    LeaveRequestStatus,
    LeaveTypeData,
    PENDING_LEAVE_STATUSES,
    ReplenishmentPreview,
    ReplenishmentResult,
)
from backoffice_modules.leave.orm import LeaveBalanceModel, LeaveRequestModel, LeaveTypeModel
from backoffice_modules.leave.workflows import LEAVE_REQUEST_WORKFLOW
from backoffice_services.workflow_executor import GuardExecutor, WorkflowExecutor

logger = get_logger("modules.leave.service")

TABLE_NAME = "leave_balances"
REQUEST_TABLE_NAME = "leave_requests"
REQUEST_ENTITY_TYPE = "leave_request"


class LeaveBalanceService:
    """Leave types, balances and replenishment.  Flushes; never commits."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        settings: LeaveSettings | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._settings = settings or LeaveSettings()
        self._admin_roles = tuple(UserRole(r) for r in self._settings.admin_roles)
        self._audit = AuditService(session, self._clock)

    def _require_admin(self, actor: Actor, operation: str) -> None:
        require_role(actor, operation, *self._admin_roles)

    # =========================================================================
    # Leave types
    # =========================================================================

    def create_leave_type(self, actor: Actor, data: LeaveTypeData) -> LeaveTypeModel:
        self._require_admin(actor, "create_leave_type")
        name = data.name.strip()
        if not name:
            raise ValidationError("Leave type name is required", field="name")
        if data.default_allocated_days < 0:
            raise ValidationError(
                "Default allocated days cannot be negative", field="default_allocated_days",
            )
        existing = self._session.execute(
            select(LeaveTypeModel.id).where(func.upper(LeaveTypeModel.name) == name.upper())
        ).first()
        if existing is not None:
            raise ValidationError(f"Leave type {name} already exists", field="name")

        leave_type = LeaveTypeModel(
            name=name,
            description=data.description,
            default_allocated_days=data.default_allocated_days,
            is_active=data.is_active,
            created_by_id=actor.user_id,
        )
        self._session.add(leave_type)
        self._session.flush()
        logger.info("leave_type_created", extra={
            "leave_type_id": str(leave_type.id), "leave_type_name": name,
        })
        return leave_type

    def list_leave_types(self, active_only: bool = True) -> list[LeaveTypeModel]:
        stmt = select(LeaveTypeModel).order_by(LeaveTypeModel.name)
        if active_only:
            stmt = stmt.where(LeaveTypeModel.is_active.is_(True))
        return list(self._session.execute(stmt).scalars())

    def _managed_leave_types(self) -> list[LeaveTypeModel]:
        return [
            lt for lt in self.list_leave_types()
            if name_matches(lt.name, self._settings.managed_keywords)
        ]

    def _default_days(self, leave_type: LeaveTypeModel) -> Decimal:
        return self._settings.default_allocations.get(
            leave_type.name.upper(), leave_type.default_allocated_days,
        )

    # =========================================================================
    # Balances
    # =========================================================================

    def _employee(self, business_unit_id: UUID, user_id: UUID) -> User:
        user = self._session.get(User, user_id)
        if (
            user is None
            or user.business_unit_id != business_unit_id
            or user.employee_id in self._settings.excluded_employee_ids
        ):
            raise EntityNotFoundError("User", str(user_id))
        return user

    def _balance(self, business_unit_id: UUID, balance_id: UUID) -> LeaveBalanceModel:
        balance = self._session.get(LeaveBalanceModel, balance_id)
        if balance is None or balance.user.business_unit_id != business_unit_id:
            raise EntityNotFoundError("LeaveBalance", str(balance_id))
        return balance

    def create_balance(
        self,
        actor: Actor,
        business_unit_id: UUID,
        user_id: UUID,
        leave_type_id: UUID,
        year: int,
        allocated_days: Decimal,
    ) -> LeaveBalanceModel:
        self._require_admin(actor, "create_leave_balance")
        require_business_unit_access(actor, business_unit_id)
        if allocated_days < 0:
            raise ValidationError("Allocated days cannot be negative", field="allocated_days")
        self._employee(business_unit_id, user_id)
        if self._session.get(LeaveTypeModel, leave_type_id) is None:
            raise EntityNotFoundError("LeaveType", str(leave_type_id))

        existing = self._session.execute(
            select(LeaveBalanceModel.id)
            .where(LeaveBalanceModel.user_id == user_id)
            .where(LeaveBalanceModel.leave_type_id == leave_type_id)
            .where(LeaveBalanceModel.year == year)
        ).first()
        if existing is not None:
            raise DuplicateLeaveBalanceError(str(user_id), str(leave_type_id), year)

        balance = LeaveBalanceModel(
            user_id=user_id,
            leave_type_id=leave_type_id,
            year=year,
            allocated_days=allocated_days,
            used_days=Decimal("0"),
            created_by_id=actor.user_id,
        )
        self._session.add(balance)
        self._session.flush()
        self._audit.record(
            TABLE_NAME, balance.id, AuditAction.CREATE, actor.user_id,
            new_values={"year": year, "allocated_days": allocated_days},
            business_unit_id=business_unit_id,
        )
        logger.info("leave_balance_created", extra={
            "balance_id": str(balance.id), "year": year, "allocated_days": str(allocated_days),
        })
        return balance

    def _set_allocation(
        self, actor: Actor, balance: LeaveBalanceModel, allocated_days: Decimal,
        business_unit_id: UUID,
    ) -> None:
        if allocated_days < 0:
            raise ValidationError("Allocated days cannot be negative", field="allocated_days")
        if allocated_days < balance.used_days:
            raise AllocationBelowUsedError(
                str(balance.id), str(allocated_days), str(balance.used_days),
            )
        old = balance.allocated_days
        balance.allocated_days = allocated_days
        balance.updated_by_id = actor.user_id
        self._audit.record(
            TABLE_NAME, balance.id, AuditAction.UPDATE, actor.user_id,
            old_values={"allocated_days": old},
            new_values={"allocated_days": allocated_days},
            business_unit_id=business_unit_id,
        )

    def update_balance(
        self, actor: Actor, business_unit_id: UUID, balance_id: UUID, allocated_days: Decimal,
    ) -> LeaveBalanceModel:
        self._require_admin(actor, "update_leave_balance")
        require_business_unit_access(actor, business_unit_id)
        balance = self._balance(business_unit_id, balance_id)
        self._set_allocation(actor, balance, allocated_days, business_unit_id)
        self._session.flush()
        logger.info("leave_balance_updated", extra={
            "balance_id": str(balance.id), "allocated_days": str(allocated_days),
        })
        return balance

    def bulk_update_balances(
        self, actor: Actor, business_unit_id: UUID, updates: Sequence[LeaveBalanceUpdate],
    ) -> list[LeaveBalanceModel]:
        """All-or-nothing: every balance is checked before any is changed."""
        self._require_admin(actor, "bulk_update_leave_balances")
        require_business_unit_access(actor, business_unit_id)
        pairs = []
        for update in updates:
            if update.allocated_days < 0:
                raise ValidationError("Allocated days cannot be negative", field="allocated_days")
            pairs.append((self._balance(business_unit_id, update.balance_id), update))
        for balance, update in pairs:
            if update.allocated_days < balance.used_days:
                raise AllocationBelowUsedError(
                    str(balance.id), str(update.allocated_days), str(balance.used_days),
                )
        for balance, update in pairs:
            self._set_allocation(actor, balance, update.allocated_days, business_unit_id)
        self._session.flush()
        logger.info("leave_balances_bulk_updated", extra={"balance_count": len(pairs)})
        return [balance for balance, _ in pairs]

    def delete_balance(self, actor: Actor, business_unit_id: UUID, balance_id: UUID) -> None:
        self._require_admin(actor, "delete_leave_balance")
        require_business_unit_access(actor, business_unit_id)
        balance = self._balance(business_unit_id, balance_id)
        self._audit.record(
            TABLE_NAME, balance.id, AuditAction.DELETE, actor.user_id,
            old_values={
                "user_id": balance.user_id,
                "year": balance.year,
                "allocated_days": balance.allocated_days,
                "used_days": balance.used_days,
            },
            business_unit_id=business_unit_id,
        )
        self._session.delete(balance)
        self._session.flush()
        logger.info("leave_balance_deleted", extra={"balance_id": str(balance_id)})

    def list_balances(
        self,
        actor: Actor,
        business_unit_id: UUID,
        year: int | None = None,
        leave_type_id: UUID | None = None,
        user_id: UUID | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Page[LeaveBalanceModel]:
        self._require_admin(actor, "list_leave_balances")
        require_business_unit_access(actor, business_unit_id)
        stmt = (
            select(LeaveBalanceModel)
            .join(User, LeaveBalanceModel.user_id == User.id)
            .join(LeaveTypeModel, LeaveBalanceModel.leave_type_id == LeaveTypeModel.id)
            .where(User.business_unit_id == business_unit_id)
        )
        if self._settings.excluded_employee_ids:
            stmt = stmt.where(User.employee_id.not_in(self._settings.excluded_employee_ids))
        if year is not None:
            stmt = stmt.where(LeaveBalanceModel.year == year)
        if leave_type_id is not None:
            stmt = stmt.where(LeaveBalanceModel.leave_type_id == leave_type_id)
        if user_id is not None:
            stmt = stmt.where(LeaveBalanceModel.user_id == user_id)

        page = max(1, page)
        total = self._session.execute(
            select(func.count()).select_from(stmt.subquery())
        ).scalar_one()
        rows = self._session.execute(
            stmt.order_by(User.name, LeaveTypeModel.name, LeaveBalanceModel.year)
            .offset((page - 1) * page_size)
            .limit(page_size)
        ).scalars().all()
        return Page(items=tuple(rows), total_count=total, page=page, page_size=page_size)

    # =========================================================================
    # Replenishment
    # =========================================================================

    def _employees(self, business_unit_id: UUID) -> list[User]:
        stmt = (
            select(User)
            .where(User.business_unit_id == business_unit_id)
            .where(User.is_active.is_(True))
            .order_by(User.name)
        )
        if self._settings.excluded_employee_ids:
            stmt = stmt.where(User.employee_id.not_in(self._settings.excluded_employee_ids))
        return list(self._session.execute(stmt).scalars())

    def preview_replenishment(
        self, actor: Actor, business_unit_id: UUID, from_year: int, to_year: int,
    ) -> ReplenishmentPreview:
        """Who carries how many days from ``from_year`` into ``to_year``."""
        self._require_admin(actor, "preview_leave_replenishment")
        require_business_unit_access(actor, business_unit_id)
        if to_year <= from_year:
            raise ValidationError("Target year must be after source year", field="to_year")

        leave_types = self._managed_leave_types()
        employees = self._employees(business_unit_id)
        eligible = {
            lt.id: lt for lt in leave_types
            if name_matches(lt.name, self._settings.carry_over_keywords)
        }
        by_user = {user.id: user for user in employees}

        carry_overs: list[CarryOverInfo] = []
        if eligible and by_user:
            balances = self._session.execute(
                select(LeaveBalanceModel)
                .where(LeaveBalanceModel.year == from_year)
                .where(LeaveBalanceModel.leave_type_id.in_(list(eligible)))
                .where(LeaveBalanceModel.user_id.in_(list(by_user)))
            ).scalars().all()
            for balance in balances:
                remaining = balance.remaining_days
                days, excess = carry_over(remaining, self._settings.carry_over_limit)
                if days <= 0:
                    continue
                user = by_user[balance.user_id]
                carry_overs.append(CarryOverInfo(
                    user_id=user.id,
                    employee_id=user.employee_id,
                    user_name=user.name,
                    leave_type_id=balance.leave_type_id,
                    leave_type_name=eligible[balance.leave_type_id].name,
                    remaining_days=remaining,
                    carry_over_days=days,
                    excess_days=excess,
                ))
        carry_overs.sort(key=lambda c: (c.user_name, c.leave_type_name))

        return ReplenishmentPreview(
            business_unit_id=business_unit_id,
            from_year=from_year,
            to_year=to_year,
            total_users=len(employees),
            leave_type_names=tuple(lt.name for lt in leave_types),
            carry_overs=tuple(carry_overs),
        )

    def replenish_balances(
        self,
        actor: Actor,
        business_unit_id: UUID,
        from_year: int,
        to_year: int,
        acknowledge_excess: bool = False,
    ) -> ReplenishmentResult:
        """
        Open ``to_year`` balances for every employee and managed leave type.

        New allocation = default days + every remaining day carried from
        ``from_year`` for carry-over eligible types.
        """
        preview = self.preview_replenishment(actor, business_unit_id, from_year, to_year)
        if preview.excess and not acknowledge_excess:
            raise ExcessCarryOverNotAcknowledgedError(
                to_year,
                str(self._settings.carry_over_limit),
                sorted({c.employee_id for c in preview.excess}),
            )

        employees = self._employees(business_unit_id)
        existing = self._session.execute(
            select(func.count(LeaveBalanceModel.id))
            .join(User, LeaveBalanceModel.user_id == User.id)
            .where(LeaveBalanceModel.year == to_year)
            .where(User.business_unit_id == business_unit_id)
        ).scalar_one()
        if existing:
            raise BalancesAlreadyExistError(to_year, existing)

        carried = {(c.user_id, c.leave_type_id): c.carry_over_days for c in preview.carry_overs}
        leave_types = self._managed_leave_types()
        created = 0
        for user in employees:
            for leave_type in leave_types:
                self._session.add(LeaveBalanceModel(
                    user_id=user.id,
                    leave_type_id=leave_type.id,
                    year=to_year,
                    allocated_days=replenished_allocation(
                        self._default_days(leave_type),
                        carried.get((user.id, leave_type.id), Decimal("0")),
                    ),
                    used_days=Decimal("0"),
                    created_by_id=actor.user_id,
                ))
                created += 1
        self._session.flush()

        result = ReplenishmentResult(
            to_year=to_year,
            balances_created=created,
            users=len(employees),
            users_with_carry_over=len({c.user_id for c in preview.carry_overs}),
        )
        logger.info("leave_balances_replenished", extra={
            "business_unit_id": str(business_unit_id),
            "from_year": from_year,
            "to_year": to_year,
            "balances_created": created,
            "users_with_carry_over": result.users_with_carry_over,
            "excess_acknowledged": bool(preview.excess),
        })
        return result


class LeaveRequestService:
    """
    Leave requests from submission through manager and HR approval.

    Contract
    --------
    * Every mutating method takes the acting ``Actor`` first.
    * The HR approval deducts the request's days from the balance of the
      leave type for the year the leave starts in.

    Non-goals
    ---------
    * Does NOT send notifications.
    * Does NOT commit.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        settings: LeaveSettings | None = None,
        workflow_executor: WorkflowExecutor | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._settings = settings or LeaveSettings()
        self._hr_roles = tuple(UserRole(r) for r in self._settings.hr_approver_roles)
        self._audit = AuditService(session, self._clock)
        self._workflow = workflow_executor or WorkflowExecutor(GuardExecutor())

    # =========================================================================
    # Internals
    # =========================================================================

    def _get(self, request_id: UUID) -> LeaveRequestModel:
        request = self._session.get(LeaveRequestModel, request_id)
        if request is None:
            raise EntityNotFoundError("LeaveRequest", str(request_id))
        return request

    def _get_own(self, actor: Actor, request_id: UUID) -> LeaveRequestModel:
        request = self._get(request_id)
        if request.user_id != actor.user_id:
            raise NotRequestOwnerError(str(request.id), str(actor.user_id))
        return request

    def _transition(
        self,
        request: LeaveRequestModel,
        action: str,
        actor: Actor,
        audit_action: AuditAction = AuditAction.STATUS_CHANGE,
    ) -> LeaveRequestStatus:
        transition = self._workflow.require_transition(
            LEAVE_REQUEST_WORKFLOW, REQUEST_ENTITY_TYPE, request.id,
            request.status, action,
        )
        previous = request.status
        request.status = transition.to_state
        if transition.sets_timestamp:
            setattr(request, transition.sets_timestamp, self._clock.now())
        request.updated_by_id = actor.user_id
        self._session.flush()

        self._audit.record(
            REQUEST_TABLE_NAME, request.id, audit_action, actor.user_id,
            old_values={"status": previous},
            new_values={"status": request.status, "action": action},
            business_unit_id=request.user.business_unit_id,
        )
        logger.info("leave_request_status_changed", extra={
            "request_id": str(request.id),
            "user_id": str(request.user_id),
            "from_status": previous,
            "to_status": request.status,
            "action": action,
        })
        return LeaveRequestStatus(request.status)

    def _validate(self, data: LeaveRequestData) -> LeaveTypeModel:
        if not (data.reason or "").strip():
            raise ValidationError("Reason is required", field="reason")
        if data.start_date > data.end_date:
            raise ValidationError("End date must not be before start date", field="end_date")
        leave_type = self._session.get(LeaveTypeModel, data.leave_type_id)
        if leave_type is None or not leave_type.is_active:
            raise ValidationError("Invalid leave type", field="leave_type_id")
        return leave_type

    def _apply(self, request: LeaveRequestModel, data: LeaveRequestData) -> None:
        request.leave_type_id = data.leave_type_id
        request.start_date = data.start_date
        request.end_date = data.end_date
        request.session = data.session.value
        request.reason = data.reason.strip()
        request.days = leave_days(data.start_date, data.end_date, data.session.value)

    def _stage(self, actor: Actor, request: LeaveRequestModel, action: str) -> str:
        """
        ``"manager"`` or ``"hr"``: the stage ``actor`` decides at.

        Raises ``InvalidTransitionError`` once the request is no longer
        pending, ``NotAssignedApproverError`` when the actor has no say at
        the current stage.
        """
        status = LeaveRequestStatus(request.status)
        if status is LeaveRequestStatus.PENDING_MANAGER:
            if actor.user_id == request.user.approver_id or (
                actor.is_admin
                and can_access_business_unit(actor, request.user.business_unit_id)
            ):
                return "manager"
        elif status is LeaveRequestStatus.PENDING_HR:
            if actor.role in self._hr_roles and can_access_business_unit(
                actor, request.user.business_unit_id,
            ):
                return "hr"
        else:
            raise InvalidTransitionError(LEAVE_REQUEST_WORKFLOW.name, request.status, action)
        raise NotAssignedApproverError(str(request.id), str(actor.user_id), request.status)

    def _balance_for(self, request: LeaveRequestModel) -> LeaveBalanceModel:
        year = request.start_date.year
        balance = self._session.execute(
            select(LeaveBalanceModel)
            .where(LeaveBalanceModel.user_id == request.user_id)
            .where(LeaveBalanceModel.leave_type_id == request.leave_type_id)
            .where(LeaveBalanceModel.year == year)
        ).scalar_one_or_none()
        if balance is None:
            raise EntityNotFoundError(
                "LeaveBalance", f"{request.user_id}/{request.leave_type_id}/{year}",
            )
        return balance

    def _check_balance(self, request: LeaveRequestModel, balance: LeaveBalanceModel) -> None:
        remaining = balance.remaining_days
        if request.days <= remaining:
            return
        if not self._settings.allow_negative_balance:
            raise InsufficientLeaveBalanceError(
                str(request.id), str(request.days), str(remaining),
            )
        logger.warning("leave_balance_overdrawn", extra={
            "request_id": str(request.id),
            "balance_id": str(balance.id),
            "requested_days": str(request.days),
            "remaining_days": str(remaining),
        })

    # =========================================================================
    # Requester operations
    # =========================================================================

    def create_request(self, actor: Actor, data: LeaveRequestData) -> LeaveRequestModel:
        self._validate(data)
        request = LeaveRequestModel(
            user_id=actor.user_id,
            status=LEAVE_REQUEST_WORKFLOW.initial_state,
            created_by_id=actor.user_id,
        )
        self._apply(request, data)
        self._session.add(request)
        self._session.flush()

        self._audit.record(
            REQUEST_TABLE_NAME, request.id, AuditAction.CREATE, actor.user_id,
            new_values={
                "leave_type_id": str(request.leave_type_id),
                "start_date": request.start_date.isoformat(),
                "end_date": request.end_date.isoformat(),
                "days": str(request.days),
            },
            business_unit_id=actor.business_unit_id,
        )
        logger.info("leave_request_created", extra={
            "request_id": str(request.id),
            "user_id": str(actor.user_id),
            "days": str(request.days),
        })
        return request

    def update_request(
        self, actor: Actor, request_id: UUID, data: LeaveRequestData,
    ) -> LeaveRequestModel:
        request = self._get_own(actor, request_id)
        if (
            request.status != LeaveRequestStatus.PENDING_MANAGER.value
            or request.manager_action_by_id is not None
        ):
            raise InvalidTransitionError(LEAVE_REQUEST_WORKFLOW.name, request.status, "update")
        self._validate(data)
        self._apply(request, data)
        self._transition(request, "update", actor, AuditAction.UPDATE)
        return request

    def cancel_request(self, actor: Actor, request_id: UUID) -> LeaveRequestModel:
        request = self._get_own(actor, request_id)
        self._transition(request, "cancel", actor)
        return request

    # =========================================================================
    # Approvals
    # =========================================================================

    def approve_request(
        self, actor: Actor, request_id: UUID, comments: str | None = None,
    ) -> LeaveRequestModel:
        request = self._get(request_id)
        stage = self._stage(actor, request, "approve")
        comments = (comments or "").strip() or None

        if stage == "manager":
            request.manager_action_by_id = actor.user_id
            request.manager_comments = comments
            self._transition(request, "manager_approve", actor, AuditAction.APPROVE)
            return request

        balance = self._balance_for(request)
        self._check_balance(request, balance)
        request.hr_action_by_id = actor.user_id
        request.hr_comments = comments
        self._transition(request, "hr_approve", actor, AuditAction.APPROVE)
        balance.used_days = (balance.used_days or Decimal("0")) + request.days
        balance.updated_by_id = actor.user_id
        self._session.flush()
        logger.info("leave_balance_deducted", extra={
            "request_id": str(request.id),
            "balance_id": str(balance.id),
            "days": str(request.days),
            "used_days": str(balance.used_days),
        })
        return request

    def reject_request(self, actor: Actor, request_id: UUID, comments: str) -> LeaveRequestModel:
        if not (comments or "").strip():
            raise ValidationError("Comments are required when rejecting", field="comments")
        request = self._get(request_id)
        stage = self._stage(actor, request, "reject")

        if stage == "manager":
            request.manager_action_by_id = actor.user_id
            request.manager_comments = comments.strip()
            request.hr_action_by_id = None
            request.hr_comments = None
            self._transition(request, "manager_reject", actor, AuditAction.REJECT)
        else:
            request.hr_action_by_id = actor.user_id
            request.hr_comments = comments.strip()
            self._transition(request, "hr_reject", actor, AuditAction.REJECT)
        return request

    # =========================================================================
    # Queries
    # =========================================================================

    def get_request(self, actor: Actor, request_id: UUID) -> LeaveRequestModel:
        request = self._get(request_id)
        if request.user_id != actor.user_id and actor.user_id != request.user.approver_id:
            require_business_unit_access(actor, request.user.business_unit_id)
        return request

    def _paginate(self, stmt, page: int, page_size: int) -> Page[LeaveRequestModel]:
        page = max(1, page)
        total = self._session.execute(
            select(func.count()).select_from(stmt.order_by(None).subquery())
        ).scalar_one()
        rows = self._session.execute(
            stmt.offset((page - 1) * page_size).limit(page_size)
        ).scalars().all()
        return Page(items=tuple(rows), total_count=total, page=page, page_size=page_size)

    def list_my_requests(
        self,
        actor: Actor,
        status: LeaveRequestStatus | None = None,
        leave_type_id: UUID | None = None,
        page: int = 1,
        page_size: int = 10,
    ) -> Page[LeaveRequestModel]:
        lr = LeaveRequestModel
        stmt = (
            select(lr)
            .where(lr.user_id == actor.user_id)
            .order_by(lr.created_at.desc(), lr.start_date.desc())
        )
        if status is not None:
            stmt = stmt.where(lr.status == status.value)
        if leave_type_id is not None:
            stmt = stmt.where(lr.leave_type_id == leave_type_id)
        return self._paginate(stmt, page, page_size)

    def get_pending_approvals(
        self,
        actor: Actor,
        leave_type_id: UUID | None = None,
        page: int = 1,
        page_size: int = 10,
    ) -> Page[LeaveRequestModel]:
        """
        Requests waiting on ``actor``.

        ADMIN sees every pending request of its business unit; HR roles see
        requests the manager has passed on; anyone sees their direct
        reports' requests still waiting on the manager.
        """
        lr = LeaveRequestModel
        stmt = select(lr).join(User, lr.user_id == User.id)
        if actor.is_admin:
            stmt = stmt.where(
                User.business_unit_id == actor.business_unit_id,
                lr.status.in_([s.value for s in PENDING_LEAVE_STATUSES]),
            )
        else:
            waiting = [and_(
                User.approver_id == actor.user_id,
                lr.status == LeaveRequestStatus.PENDING_MANAGER.value,
            )]
            if actor.role in self._hr_roles:
                waiting.append(and_(
                    lr.status == LeaveRequestStatus.PENDING_HR.value,
                    lr.manager_action_by_id.is_not(None),
                ))
            stmt = stmt.where(or_(*waiting))
        if self._settings.excluded_employee_ids:
            stmt = stmt.where(User.employee_id.not_in(self._settings.excluded_employee_ids))
        if leave_type_id is not None:
            stmt = stmt.where(lr.leave_type_id == leave_type_id)
        stmt = stmt.order_by(lr.created_at.desc(), lr.start_date.desc())
        return self._paginate(stmt, page, page_size)
