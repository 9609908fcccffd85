"""
Depreciation Module Service (``backoffice_modules.depreciation.service``).

Responsibility
--------------
Runs depreciation for single assets and for batches, manages recurring
depreciation schedules and their executions, and serves depreciation
history and summaries.

Architecture position
---------------------
**Modules layer** -- ``DepreciationService`` is the sole public entry
point for depreciation.  Period arithmetic is delegated to the pure
``backoffice_modules.assets.helpers``; schedule timing to the pure
``backoffice_modules.depreciation.schedule``.

Invariants enforced
-------------------
* Book value never drops below salvage value.
* A fully depreciated asset is never depreciated again.
* Batch calculation runs only inside the end-of-month window unless an
  override role forces it.
* Each asset in a batch or schedule run is isolated in its own SAVEPOINT:
  one failure never rolls back another asset's posting.
* An execution is FAILED only when every attempted asset failed.

Failure modes
-------------
* ``DepreciationWindowClosedError`` -- batch outside the window.
* ``PermissionDeniedError`` -- caller lacks a calculation or override role.
* ``AssetFullyDepreciatedError`` / ``AssetAtSalvageValueError`` /
  ``DepreciationNotConfiguredError`` -- per asset; collected in batches.

Usage::

    service = DepreciationService(session, clock, settings.depreciation)
    result = service.calculate_batch(actor, business_unit_id)
    for error in result.errors:
        print(error.item_code, error.code)
"""

from __future__ import annotations

import time
from collections import defaultdict
from datetime import date, timedelta
from decimal import Decimal
from typing import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from backoffice_config.schema import DepreciationSettings
from backoffice_kernel.domain.access import (
    Actor,
    UserRole,
    require_business_unit_access,
    require_role,
)
from backoffice_kernel.domain.clock import Clock, SystemClock
from backoffice_kernel.exceptions import (
    AssetAtSalvageValueError,
    AssetFullyDepreciatedError,
    BackOfficeError,
    DepreciationAlreadyCalculatedError,
    DepreciationNotConfiguredError,
    DepreciationWindowClosedError,
    EntityNotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from backoffice_kernel.logging_config import LogContext, get_logger
from backoffice_modules.assets.helpers import (
    ScheduleLine,
    build_depreciation_schedule,
    calculate_period_depreciation,
    first_of_next_month,
    is_end_of_month_window,
)
from backoffice_modules.assets.models import AssetHistoryAction, DepreciationMethod
from backoffice_modules.assets.orm import AssetCategoryModel, AssetModel
from backoffice_modules.assets.service import record_asset_history
from backoffice_modules.depreciation.models import (
    AssetDepreciationError,
    BatchDepreciationResult,
    DepreciationScheduleData,
    DepreciationSummary,
    DepreciationTotals,
    ExecutionAssetResult,
    ExecutionAssetStatus,
    ExecutionStatus,
    ScheduleExecutionResult,
    ScheduleType,
)
from backoffice_modules.depreciation.orm import (
    AssetDepreciationModel,
    DepreciationExecutionAssetModel,
    DepreciationExecutionModel,
    DepreciationScheduleModel,
)
from backoffice_modules.depreciation.schedule import (
    is_schedule_due,
    next_execution_date,
    should_depreciate,
)

logger = get_logger("modules.depreciation.service")

ZERO = Decimal("0")

SCHEDULE_MANAGER_ROLES = (UserRole.ADMIN, UserRole.MANAGER, UserRole.HR)


def _roles(names: Sequence[str]) -> tuple[UserRole, ...]:
    return tuple(UserRole(name) for name in names)


class DepreciationService:
    """
    Depreciation runs, schedules and reports.

    Contract
    --------
    * ``calculate_asset_depreciation`` raises on any per-asset problem.
    * ``calculate_batch`` and ``execute_schedule`` never raise for
      per-asset problems; they report them in their result.

    Non-goals
    ---------
    * Does NOT commit; the caller owns the transaction.
    * Does NOT post journal entries.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        settings: DepreciationSettings | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._settings = settings or DepreciationSettings()
        self._calculation_roles = _roles(self._settings.calculation_roles)
        self._override_roles = _roles(self._settings.override_roles)

    # =========================================================================
    # Asset selection
    # =========================================================================

    def _eligible_assets_query(self, business_unit_id: UUID):
        return (
            select(AssetModel)
            .where(AssetModel.business_unit_id == business_unit_id)
            .where(AssetModel.status.in_(self._settings.eligible_statuses))
            .where(AssetModel.purchase_price.is_not(None))
            .where(AssetModel.depreciation_start_date.is_not(None))
            .where(AssetModel.depreciation_method.is_not(None))
            .where(AssetModel.is_fully_depreciated.is_(False))
            .order_by(AssetModel.item_code)
        )

    def get_assets_due(
        self, business_unit_id: UUID, as_of: date | None = None,
    ) -> list[AssetModel]:
        """
        Assets that should be depreciated on ``as_of``.

        Eligible status, price and start date set, not fully depreciated,
        start date reached, and either never depreciated or the next
        depreciation date reached.
        """
        as_of = as_of or self._clock.today()
        assets = self._session.execute(
            self._eligible_assets_query(business_unit_id)
            .where(AssetModel.depreciation_start_date <= as_of)
        ).scalars().all()
        return [
            asset for asset in assets
            if asset.last_depreciation_date is None
            or asset.next_depreciation_date is None
            or asset.next_depreciation_date <= as_of
        ]

    # =========================================================================
    # Single-asset calculation
    # =========================================================================

    def _check_ready(
        self, asset: AssetModel, calculation_date: date, units_used: Decimal | None,
    ) -> None:
        if asset.is_fully_depreciated:
            raise AssetFullyDepreciatedError(str(asset.id))
        last = asset.last_depreciation_date
        if last is not None and (last.year, last.month) >= (
            calculation_date.year, calculation_date.month,
        ):
            raise DepreciationAlreadyCalculatedError(
                str(asset.id), last.isoformat(), calculation_date.isoformat(),
            )
        for attr in ("depreciation_method", "purchase_price", "depreciation_start_date"):
            if getattr(asset, attr) is None:
                raise DepreciationNotConfiguredError(str(asset.id), attr)
        method = DepreciationMethod(asset.depreciation_method)
        if method == DepreciationMethod.UNITS_OF_PRODUCTION:
            if units_used is None:
                raise DepreciationNotConfiguredError(str(asset.id), "units_used")
        elif not asset.monthly_depreciation or asset.monthly_depreciation <= ZERO:
            raise DepreciationNotConfiguredError(str(asset.id), "monthly_depreciation")
        book_value = asset.current_book_value or ZERO
        salvage = asset.salvage_value or ZERO
        if book_value <= salvage:
            raise AssetAtSalvageValueError(str(asset.id), str(book_value), str(salvage))

    def _depreciate(
        self,
        actor_id: UUID,
        asset: AssetModel,
        calculation_date: date,
        period_months: int = 1,
        units_used: Decimal | None = None,
        notes: str | None = None,
        execution_id: UUID | None = None,
    ) -> AssetDepreciationModel:
        self._check_ready(asset, calculation_date, units_used)

        period = calculate_period_depreciation(
            asset.to_terms(),
            book_value=asset.current_book_value,
            accumulated_depreciation=asset.accumulated_depreciation or ZERO,
            calculation_date=calculation_date,
            last_depreciation_date=asset.last_depreciation_date,
            period_months=period_months,
            units_used=units_used,
        )

        record = AssetDepreciationModel(
            asset_id=asset.id,
            business_unit_id=asset.business_unit_id,
            execution_id=execution_id,
            depreciation_date=calculation_date,
            period_start_date=period.period_start,
            period_end_date=period.period_end,
            book_value_start=period.book_value_start,
            depreciation_amount=period.depreciation_amount,
            book_value_end=period.book_value_end,
            accumulated_depreciation=period.accumulated_depreciation,
            method=asset.depreciation_method,
            units_used=units_used,
            calculated_by_id=actor_id,
            calculated_at=self._clock.now(),
            notes=notes,
            created_by_id=actor_id,
        )
        self._session.add(record)

        asset.current_book_value = period.book_value_end
        asset.accumulated_depreciation = period.accumulated_depreciation
        asset.last_depreciation_date = calculation_date
        asset.next_depreciation_date = period.next_depreciation_date
        asset.is_fully_depreciated = period.is_fully_depreciated
        if units_used is not None:
            asset.units_used = (asset.units_used or ZERO) + units_used
        asset.updated_by_id = actor_id

        record_asset_history(
            self._session, asset, AssetHistoryAction.DEPRECIATED, actor_id,
            self._clock.now(),
            notes=(
                f"Depreciation {period.depreciation_amount} for "
                f"{period.period_start.isoformat()} to {period.period_end.isoformat()}; "
                f"book value {period.book_value_end}"
            ),
        )
        self._session.flush()

        logger.info("asset_depreciated", extra={
            "asset_id": str(asset.id),
            "item_code": asset.item_code,
            "depreciation_amount": str(period.depreciation_amount),
            "book_value_end": str(period.book_value_end),
            "fully_depreciated": period.is_fully_depreciated,
        })
        return record

    def calculate_asset_depreciation(
        self,
        actor: Actor,
        asset_id: UUID,
        calculation_date: date | None = None,
        units_used: Decimal | None = None,
        notes: str | None = None,
    ) -> AssetDepreciationModel:
        """Depreciate one asset for the month of ``calculation_date``."""
        require_role(actor, "calculate_depreciation", *self._calculation_roles, allow_acctg=True)
        asset = self._session.get(AssetModel, asset_id)
        if asset is None:
            raise EntityNotFoundError("Asset", str(asset_id))
        require_business_unit_access(actor, asset.business_unit_id)
        if units_used is not None and units_used < 0:
            raise ValidationError("Units used cannot be negative", field="units_used")
        return self._depreciate(
            actor.user_id, asset, calculation_date or self._clock.today(),
            units_used=units_used, notes=notes,
        )

    def preview_schedule(self, asset_id: UUID) -> tuple[ScheduleLine, ...]:
        """Remaining monthly schedule of an asset from its current book value."""
        asset = self._session.get(AssetModel, asset_id)
        if asset is None:
            raise EntityNotFoundError("Asset", str(asset_id))
        if asset.depreciation_method is None or asset.depreciation_start_date is None:
            raise DepreciationNotConfiguredError(str(asset.id), "depreciation_method")
        start = (
            first_of_next_month(asset.last_depreciation_date)
            if asset.last_depreciation_date else None
        )
        return build_depreciation_schedule(
            asset.to_terms(),
            book_value=asset.current_book_value,
            accumulated_depreciation=asset.accumulated_depreciation or ZERO,
            first_period_start=start,
        )

    # =========================================================================
    # Batch calculation
    # =========================================================================

    def calculate_batch(
        self,
        actor: Actor,
        business_unit_id: UUID,
        asset_ids: Sequence[UUID] | None = None,
        calculation_date: date | None = None,
        override: bool = False,
    ) -> BatchDepreciationResult:
        """
        Depreciate many assets at once.

        Without ``asset_ids`` every asset due on ``calculation_date`` is
        processed.  Outside the end-of-month window the call is refused
        unless ``override`` is set by an override role.
        """
        require_role(actor, "calculate_depreciation_batch", *self._calculation_roles,
                     allow_acctg=True)
        require_business_unit_access(actor, business_unit_id)
        calculation_date = calculation_date or self._clock.today()

        if not is_end_of_month_window(calculation_date, self._settings.window_days):
            if not override:
                raise DepreciationWindowClosedError(calculation_date.isoformat())
            if actor.role not in self._override_roles:
                raise PermissionDeniedError(
                    str(actor.user_id), "override_depreciation_window",
                    tuple(r.value for r in self._override_roles),
                )
            logger.warning("depreciation_window_overridden", extra={
                "calculation_date": calculation_date.isoformat(),
                "override_by": str(actor.user_id),
            })

        if asset_ids is None:
            asset_ids = [a.id for a in self.get_assets_due(business_unit_id, calculation_date)]

        record_ids: list[UUID] = []
        errors: list[AssetDepreciationError] = []
        total = ZERO

        with LogContext.bind(business_unit_id=str(business_unit_id)):
            logger.info("depreciation_batch_started", extra={
                "asset_count": len(asset_ids),
                "calculation_date": calculation_date.isoformat(),
            })
            for asset_id in asset_ids:
                asset = self._session.get(AssetModel, asset_id)
                if asset is None or asset.business_unit_id != business_unit_id:
                    errors.append(AssetDepreciationError(
                        asset_id=asset_id,
                        code=EntityNotFoundError.code,
                        message=f"Asset {asset_id} not found",
                    ))
                    continue

                savepoint = self._session.begin_nested()
                try:
                    record = self._depreciate(actor.user_id, asset, calculation_date)
                    savepoint.commit()
                except BackOfficeError as exc:
                    savepoint.rollback()
                    errors.append(AssetDepreciationError(
                        asset_id=asset_id, code=exc.code, message=str(exc),
                        item_code=asset.item_code,
                    ))
                    continue
                record_ids.append(record.id)
                total += record.depreciation_amount

            result = BatchDepreciationResult(
                calculation_date=calculation_date,
                processed=len(asset_ids),
                successful=len(record_ids),
                total_depreciation=total,
                record_ids=tuple(record_ids),
                errors=tuple(errors),
            )
            logger.info("depreciation_batch_completed", extra={
                "processed": result.processed,
                "successful": result.successful,
                "failed": result.failed,
                "total_depreciation": str(total),
            })
        return result

    # =========================================================================
    # Schedules
    # =========================================================================

    def _validate_schedule(self, data: DepreciationScheduleData) -> None:
        if not data.name.strip() or len(data.name) > 100:
            raise ValidationError("Schedule name is required (max 100 characters)", field="name")
        if data.execution_day is not None and not 1 <= data.execution_day <= 31:
            raise ValidationError("Execution day must be between 1 and 31", field="execution_day")

    def _get_schedule(self, schedule_id: UUID) -> DepreciationScheduleModel:
        schedule = self._session.get(DepreciationScheduleModel, schedule_id)
        if schedule is None:
            raise EntityNotFoundError("DepreciationSchedule", str(schedule_id))
        return schedule

    def _apply_schedule_data(
        self, schedule: DepreciationScheduleModel, data: DepreciationScheduleData,
    ) -> None:
        schedule.name = data.name.strip()
        schedule.description = data.description
        schedule.schedule_type = data.schedule_type.value
        schedule.execution_day = data.execution_day or self._settings.default_execution_day
        schedule.include_categories = [str(c) for c in data.include_categories]
        schedule.exclude_categories = [str(c) for c in data.exclude_categories]
        schedule.is_active = data.is_active
        schedule.next_execution_date = next_execution_date(
            data.schedule_type, schedule.execution_day,
            schedule.last_executed_on or (self._clock.today() - timedelta(days=1)),
        )

    def create_schedule(
        self, actor: Actor, business_unit_id: UUID, data: DepreciationScheduleData,
    ) -> DepreciationScheduleModel:
        require_role(actor, "create_depreciation_schedule", *SCHEDULE_MANAGER_ROLES)
        require_business_unit_access(actor, business_unit_id)
        self._validate_schedule(data)

        schedule = DepreciationScheduleModel(
            business_unit_id=business_unit_id,
            created_by_id=actor.user_id,
        )
        self._apply_schedule_data(schedule, data)
        self._session.add(schedule)
        self._session.flush()
        logger.info("depreciation_schedule_created", extra={
            "schedule_id": str(schedule.id),
            "schedule_name": schedule.name,
            "schedule_type": schedule.schedule_type,
            "execution_day": schedule.execution_day,
        })
        return schedule

    def update_schedule(
        self, actor: Actor, schedule_id: UUID, data: DepreciationScheduleData,
    ) -> DepreciationScheduleModel:
        require_role(actor, "update_depreciation_schedule", *SCHEDULE_MANAGER_ROLES)
        schedule = self._get_schedule(schedule_id)
        require_business_unit_access(actor, schedule.business_unit_id)
        self._validate_schedule(data)
        self._apply_schedule_data(schedule, data)
        schedule.updated_by_id = actor.user_id
        self._session.flush()
        logger.info("depreciation_schedule_updated", extra={"schedule_id": str(schedule.id)})
        return schedule

    def toggle_schedule(self, actor: Actor, schedule_id: UUID) -> DepreciationScheduleModel:
        require_role(actor, "toggle_depreciation_schedule", *SCHEDULE_MANAGER_ROLES)
        schedule = self._get_schedule(schedule_id)
        require_business_unit_access(actor, schedule.business_unit_id)
        schedule.is_active = not schedule.is_active
        schedule.updated_by_id = actor.user_id
        self._session.flush()
        logger.info("depreciation_schedule_toggled", extra={
            "schedule_id": str(schedule.id), "is_active": schedule.is_active,
        })
        return schedule

    def delete_schedule(self, actor: Actor, schedule_id: UUID) -> None:
        """Delete a schedule; its past executions are kept and detached."""
        require_role(actor, "delete_depreciation_schedule", *SCHEDULE_MANAGER_ROLES)
        schedule = self._get_schedule(schedule_id)
        require_business_unit_access(actor, schedule.business_unit_id)
        for execution in schedule.executions:
            execution.schedule_id = None
        self._session.delete(schedule)
        self._session.flush()
        logger.info("depreciation_schedule_deleted", extra={"schedule_id": str(schedule_id)})

    def list_schedules(
        self, business_unit_id: UUID, active_only: bool = False,
    ) -> list[DepreciationScheduleModel]:
        stmt = (
            select(DepreciationScheduleModel)
            .where(DepreciationScheduleModel.business_unit_id == business_unit_id)
            .order_by(DepreciationScheduleModel.name)
        )
        if active_only:
            stmt = stmt.where(DepreciationScheduleModel.is_active.is_(True))
        return list(self._session.execute(stmt).scalars())

    def is_schedule_due(
        self, schedule: DepreciationScheduleModel, as_of: date | None = None,
    ) -> bool:
        return is_schedule_due(
            ScheduleType(schedule.schedule_type),
            schedule.execution_day,
            as_of or self._clock.today(),
            last_executed_on=schedule.last_executed_on,
            is_active=schedule.is_active,
        )

    # =========================================================================
    # Schedule execution
    # =========================================================================

    def _schedule_assets(self, schedule: DepreciationScheduleModel) -> list[AssetModel]:
        stmt = self._eligible_assets_query(schedule.business_unit_id)
        if schedule.include_categories:
            stmt = stmt.where(AssetModel.category_id.in_(
                [UUID(c) for c in schedule.include_categories]
            ))
        if schedule.exclude_categories:
            stmt = stmt.where(AssetModel.category_id.not_in(
                [UUID(c) for c in schedule.exclude_categories]
            ))
        return list(self._session.execute(stmt).scalars())

    def _has_setup(self, asset: AssetModel) -> bool:
        method = DepreciationMethod(asset.depreciation_method)
        if method == DepreciationMethod.UNITS_OF_PRODUCTION:
            return False
        return bool(asset.monthly_depreciation) and asset.monthly_depreciation > ZERO

    def execute_schedule(
        self,
        schedule_id: UUID,
        actor: Actor,
        as_of: date | None = None,
    ) -> ScheduleExecutionResult:
        """
        Run one schedule for its business unit.

        Every selected asset yields one execution row: SUCCESS, SKIPPED (not
        due for this period), NO_SETUP, FULLY_DEPRECIATED or FAILED.
        """
        start_time = time.monotonic()
        schedule = self._get_schedule(schedule_id)
        require_business_unit_access(actor, schedule.business_unit_id)
        as_of = as_of or self._clock.today()
        schedule_type = ScheduleType(schedule.schedule_type)
        period_months = schedule_type.period_months

        execution = DepreciationExecutionModel(
            schedule_id=schedule.id,
            business_unit_id=schedule.business_unit_id,
            execution_date=as_of,
            status=ExecutionStatus.PENDING.value,
            executed_by_id=actor.user_id,
            created_by_id=actor.user_id,
        )
        self._session.add(execution)
        self._session.flush()

        execution.status = ExecutionStatus.RUNNING.value
        execution.started_at = self._clock.now()
        self._session.flush()

        assets = self._schedule_assets(schedule)
        successful = failed = skipped = 0
        total = ZERO
        results: list[ExecutionAssetResult] = []

        with LogContext.bind(business_unit_id=str(schedule.business_unit_id)):
            logger.info("depreciation_schedule_execution_started", extra={
                "schedule_id": str(schedule.id),
                "execution_id": str(execution.id),
                "asset_count": len(assets),
            })
            for asset in assets:
                before = asset.current_book_value
                should, reason = should_depreciate(
                    as_of, period_months, asset.depreciation_start_date,
                    asset.last_depreciation_date, asset.is_fully_depreciated,
                    asset.next_depreciation_date,
                )
                if not should:
                    skipped += 1
                    result = ExecutionAssetResult(
                        asset_id=asset.id, status=ExecutionAssetStatus.SKIPPED,
                        book_value_before=before, book_value_after=before,
                        error_message=reason,
                    )
                elif not self._has_setup(asset):
                    skipped += 1
                    result = ExecutionAssetResult(
                        asset_id=asset.id, status=ExecutionAssetStatus.NO_SETUP,
                        book_value_before=before, book_value_after=before,
                        error_message="Missing depreciation setup",
                    )
                else:
                    result = self._execute_one(
                        actor.user_id, asset, as_of, period_months, schedule_type,
                        execution.id,
                    )
                    if result.status == ExecutionAssetStatus.SUCCESS:
                        successful += 1
                        total += result.depreciation_amount
                    elif result.status == ExecutionAssetStatus.FAILED:
                        failed += 1
                    else:
                        skipped += 1

                results.append(result)
                self._session.add(DepreciationExecutionAssetModel(
                    execution_id=execution.id,
                    asset_id=result.asset_id,
                    status=result.status.value,
                    depreciation_amount=result.depreciation_amount,
                    book_value_before=result.book_value_before,
                    book_value_after=result.book_value_after,
                    error_message=result.error_message,
                    created_by_id=actor.user_id,
                ))

            if failed > 0 and successful == 0:
                status = ExecutionStatus.FAILED
                execution.error_message = f"{failed} asset(s) failed"
            else:
                status = ExecutionStatus.COMPLETED
                if failed:
                    execution.error_message = f"{failed} asset(s) failed"

            completed_at = self._clock.now()
            duration_ms = int((time.monotonic() - start_time) * 1000)
            execution.status = status.value
            execution.total_assets_processed = len(assets)
            execution.successful_count = successful
            execution.failed_count = failed
            execution.skipped_count = skipped
            execution.total_depreciation_amount = total
            execution.completed_at = completed_at
            execution.duration_ms = duration_ms

            schedule.last_executed_on = as_of
            schedule.next_execution_date = next_execution_date(
                schedule_type, schedule.execution_day, as_of,
            )
            self._session.flush()

            logger.info("depreciation_schedule_execution_completed", extra={
                "schedule_id": str(schedule.id),
                "execution_id": str(execution.id),
                "execution_status": status.value,
                "successful": successful,
                "failed": failed,
                "skipped": skipped,
                "total_depreciation": str(total),
                "duration_ms": duration_ms,
            })

        return ScheduleExecutionResult(
            execution_id=execution.id,
            schedule_id=schedule.id,
            status=status,
            total_assets=len(assets),
            successful=successful,
            failed=failed,
            skipped=skipped,
            total_depreciation=total,
            duration_ms=duration_ms,
            started_at=execution.started_at,
            completed_at=completed_at,
            asset_results=tuple(results),
        )

    def _execute_one(
        self,
        actor_id: UUID,
        asset: AssetModel,
        as_of: date,
        period_months: int,
        schedule_type: ScheduleType,
        execution_id: UUID,
    ) -> ExecutionAssetResult:
        before = asset.current_book_value
        asset_id = asset.id
        savepoint = self._session.begin_nested()
        try:
            record = self._depreciate(
                actor_id, asset, as_of, period_months=period_months,
                notes=f"Automated {schedule_type.value.lower()} depreciation",
                execution_id=execution_id,
            )
            savepoint.commit()
        except (AssetAtSalvageValueError, AssetFullyDepreciatedError):
            savepoint.rollback()
            asset.is_fully_depreciated = True
            return ExecutionAssetResult(
                asset_id=asset_id, status=ExecutionAssetStatus.FULLY_DEPRECIATED,
                book_value_before=before, book_value_after=before,
            )
        except Exception as exc:
            savepoint.rollback()
            logger.warning("depreciation_asset_failed", extra={
                "asset_id": str(asset_id), "error": str(exc),
            })
            return ExecutionAssetResult(
                asset_id=asset_id, status=ExecutionAssetStatus.FAILED,
                book_value_before=before, book_value_after=before,
                error_message=str(exc),
            )
        return ExecutionAssetResult(
            asset_id=asset_id,
            status=ExecutionAssetStatus.SUCCESS,
            depreciation_amount=record.depreciation_amount,
            book_value_before=before,
            book_value_after=record.book_value_end,
        )

    def run_due_schedules(
        self, actor: Actor, as_of: date | None = None,
    ) -> list[ScheduleExecutionResult]:
        """Execute every active schedule due on ``as_of``, across business units."""
        as_of = as_of or self._clock.today()
        schedules = self._session.execute(
            select(DepreciationScheduleModel)
            .where(DepreciationScheduleModel.is_active.is_(True))
            .order_by(DepreciationScheduleModel.name)
        ).scalars().all()
        results = [
            self.execute_schedule(schedule.id, actor, as_of)
            for schedule in schedules
            if self.is_schedule_due(schedule, as_of)
        ]
        logger.info("due_schedules_executed", extra={
            "as_of": as_of.isoformat(),
            "schedules_checked": len(schedules),
            "schedules_executed": len(results),
        })
        return results

    # =========================================================================
    # Reports
    # =========================================================================

    def get_execution(self, execution_id: UUID) -> DepreciationExecutionModel:
        execution = self._session.get(DepreciationExecutionModel, execution_id)
        if execution is None:
            raise EntityNotFoundError("DepreciationExecution", str(execution_id))
        return execution

    def list_executions(
        self, business_unit_id: UUID, schedule_id: UUID | None = None,
    ) -> list[DepreciationExecutionModel]:
        stmt = (
            select(DepreciationExecutionModel)
            .where(DepreciationExecutionModel.business_unit_id == business_unit_id)
            .order_by(DepreciationExecutionModel.execution_date.desc())
        )
        if schedule_id is not None:
            stmt = stmt.where(DepreciationExecutionModel.schedule_id == schedule_id)
        return list(self._session.execute(stmt).scalars())

    def get_depreciation_history(self, asset_id: UUID) -> list[AssetDepreciationModel]:
        return list(self._session.execute(
            select(AssetDepreciationModel)
            .where(AssetDepreciationModel.asset_id == asset_id)
            .order_by(AssetDepreciationModel.depreciation_date)
        ).scalars())

    def get_depreciation_summary(self, business_unit_id: UUID) -> DepreciationSummary:
        """Totals for every asset with a depreciation setup, by method and by category."""
        rows = self._session.execute(
            select(AssetModel, AssetCategoryModel.name)
            .join(AssetCategoryModel, AssetModel.category_id == AssetCategoryModel.id)
            .where(AssetModel.business_unit_id == business_unit_id)
            .where(AssetModel.depreciation_method.is_not(None))
            .where(AssetModel.purchase_price.is_not(None))
        ).all()

        by_method: dict[str, list[AssetModel]] = defaultdict(list)
        by_category: dict[str, list[AssetModel]] = defaultdict(list)
        for asset, category_name in rows:
            by_method[asset.depreciation_method].append(asset)
            by_category[category_name].append(asset)

        assets = [asset for asset, _ in rows]
        return DepreciationSummary(
            business_unit_id=business_unit_id,
            asset_count=len(assets),
            fully_depreciated_count=sum(1 for a in assets if a.is_fully_depreciated),
            total_cost=sum((a.purchase_price for a in assets), ZERO),
            accumulated_depreciation=sum((a.accumulated_depreciation or ZERO for a in assets), ZERO),
            book_value=sum((a.current_book_value or ZERO for a in assets), ZERO),
            by_method=tuple(_totals(k, v) for k, v in sorted(by_method.items())),
            by_category=tuple(_totals(k, v) for k, v in sorted(by_category.items())),
        )


def _totals(key: str, assets: list[AssetModel]) -> DepreciationTotals:
    return DepreciationTotals(
        key=key,
        asset_count=len(assets),
        total_cost=sum((a.purchase_price or ZERO for a in assets), ZERO),
        accumulated_depreciation=sum((a.accumulated_depreciation or ZERO for a in assets), ZERO),
        book_value=sum((a.current_book_value or ZERO for a in assets), ZERO),
        monthly_depreciation=sum((a.monthly_depreciation or ZERO for a in assets), ZERO),
    )
