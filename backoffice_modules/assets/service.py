"""
Asset Module Service (``backoffice_modules.assets.service``).

Responsibility
--------------
Orchestrates the asset register -- categories, asset creation with the
initial depreciation setup, deployment under transmittal numbers,
returns, transfers, disposal and retirement -- and keeps the per-asset
history trail.

Architecture position
---------------------
**Modules layer** -- ``AssetService`` is the sole public entry point for
asset lifecycle operations.  Status changes go through
``WorkflowExecutor`` against ``ASSET_WORKFLOW`` / ``DEPLOYMENT_WORKFLOW``;
depreciation arithmetic comes from the pure ``helpers`` module.

Invariants enforced
-------------------
* Item code is unique per business unit.
* An asset has at most one active deployment (pending, approved or
  deployed, not returned).
* Only AVAILABLE assets are deployed.
* Disposal gain/loss = (value - cost) - book value.
* The service flushes and never commits; the caller owns the transaction.

Failure modes
-------------
* ``EntityNotFoundError`` -- unknown asset, category, employee, deployment.
* ``DuplicateItemCodeError`` -- item code already used in the business unit.
* ``AssetNotAvailableError`` / ``AssetAlreadyDeployedError`` -- deployment
  preconditions.
* ``NoActiveDeploymentError`` -- return or employee transfer without custody.
* ``AssetNotDisposableError`` -- disposal from a non-disposable state.
* ``BusinessUnitAccessError`` -- actor outside the asset's business unit.

Usage::

    service = AssetService(session, clock)
    asset = service.create_asset(actor, AssetData(...))
    result = service.deploy_assets(actor, [asset.id], employee_id=user.id)
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Sequence
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from backoffice_config.schema import AssetSettings
from backoffice_kernel.domain.access import Actor, UserRole, require_business_unit_access, require_role
from backoffice_kernel.domain.clock import Clock, SystemClock
from backoffice_kernel.exceptions import (
    AssetAlreadyDeployedError,
    AssetNotAvailableError,
    AssetNotDisposableError,
    DuplicateItemCodeError,
    EntityNotFoundError,
    NoActiveDeploymentError,
    ValidationError,
)
from backoffice_kernel.logging_config import get_logger
from backoffice_kernel.models.organization import BusinessUnit, User
from backoffice_kernel.services.sequence_service import SequenceService
from backoffice_modules.assets.helpers import (
    DepreciationTerms,
    add_months,
    disposal_gain_loss,
    initial_monthly_depreciation,
)
from backoffice_modules.assets.models import (
    ACTIVE_DEPLOYMENT_STATUSES,
    DISPOSABLE_STATUSES,
    AssetCategoryData,
    AssetCondition,
    AssetData,
    AssetHistoryAction,
    AssetHistoryEntry,
    AssetStatus,
    DeploymentResult,
    DeploymentStatus,
    DepreciationMethod,
    DisposalMethod,
    DisposalReason,
    DisposalResult,
    RetirementMethod,
    RetirementReason,
    TransferType,
)
from backoffice_modules.assets.orm import (
    AssetCategoryModel,
    AssetDeploymentModel,
    AssetDisposalModel,
    AssetHistoryModel,
    AssetModel,
    AssetRetirementModel,
    AssetTransferModel,
)
from backoffice_modules.assets.workflows import (
    ASSET_WORKFLOW,
    DEPLOYMENT_WORKFLOW,
    register_asset_guards,
)
from backoffice_services.workflow_executor import GuardExecutor, WorkflowExecutor

logger = get_logger("modules.assets.service")

_DAMAGED_CONDITIONS = (AssetCondition.DAMAGED, AssetCondition.NON_FUNCTIONAL)


def record_asset_history(
    session: Session,
    asset: AssetModel,
    action: AssetHistoryAction,
    actor_id: UUID,
    performed_at,
    notes: str | None = None,
    previous_status: str | None = None,
    new_status: str | None = None,
) -> AssetHistoryModel:
    """Append one history row for ``asset``."""
    entry = AssetHistoryModel(
        asset_id=asset.id,
        action=action.value,
        notes=notes,
        previous_status=previous_status,
        new_status=new_status,
        performed_by_id=actor_id,
        business_unit_id=asset.business_unit_id,
        performed_at=performed_at,
        created_by_id=actor_id,
    )
    session.add(entry)
    return entry


class AssetService:
    """
    Asset register and custody operations.

    Contract
    --------
    * Every mutating method takes the acting ``Actor`` first and checks
      business-unit access before touching data.
    * Returns ORM rows or frozen result DTOs; raises typed
      ``BackOfficeError`` subclasses on every business rule violation.

    Non-goals
    ---------
    * Does NOT run depreciation (``DepreciationService`` does).
    * Does NOT commit.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        settings: AssetSettings | None = None,
        workflow_executor: WorkflowExecutor | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._settings = settings or AssetSettings()
        self._sequences = SequenceService(session)
        self._workflow = workflow_executor or WorkflowExecutor(
            register_asset_guards(GuardExecutor()),
        )

    # =========================================================================
    # Lookups
    # =========================================================================

    def _get_asset(self, asset_id: UUID) -> AssetModel:
        asset = self._session.get(AssetModel, asset_id)
        if asset is None:
            raise EntityNotFoundError("Asset", str(asset_id))
        return asset

    def get_asset(self, actor: Actor, asset_id: UUID) -> AssetModel:
        asset = self._get_asset(asset_id)
        require_business_unit_access(actor, asset.business_unit_id)
        return asset

    def _get_user(self, user_id: UUID) -> User:
        user = self._session.get(User, user_id)
        if user is None or not user.is_active:
            raise EntityNotFoundError("User", str(user_id))
        return user

    def _business_unit_code(self, business_unit_id: UUID) -> str:
        unit = self._session.get(BusinessUnit, business_unit_id)
        return unit.code if unit is not None else "BU"

    def _active_deployment(self, asset_id: UUID) -> AssetDeploymentModel | None:
        return self._session.execute(
            select(AssetDeploymentModel)
            .where(AssetDeploymentModel.asset_id == asset_id)
            .where(AssetDeploymentModel.status.in_(
                [s.value for s in ACTIVE_DEPLOYMENT_STATUSES]
            ))
            .where(AssetDeploymentModel.returned_date.is_(None))
            .order_by(AssetDeploymentModel.created_at.desc())
        ).scalars().first()

    def _transition_asset(self, asset: AssetModel, action: str, context=None) -> str:
        transition = self._workflow.require_transition(
            ASSET_WORKFLOW, "asset", asset.id, asset.status, action, context,
        )
        previous = asset.status
        asset.status = transition.to_state
        return previous

    def _period_code(self, on: date) -> str:
        return f"{on.year}{on.month:02d}"

    # =========================================================================
    # Categories and creation
    # =========================================================================

    def create_category(self, actor: Actor, data: AssetCategoryData) -> AssetCategoryModel:
        require_role(actor, "create_asset_category", UserRole.ADMIN, UserRole.MANAGER,
                     allow_acctg=True)
        if not data.code.strip() or not data.name.strip():
            raise ValidationError("Category code and name are required", field="code")
        code = data.code.strip().upper()
        existing = self._session.execute(
            select(AssetCategoryModel).where(AssetCategoryModel.code == code)
        ).scalar_one_or_none()
        if existing is not None:
            raise ValidationError(f"Category code {code} already exists", field="code")

        category = AssetCategoryModel(
            code=code,
            name=data.name.strip(),
            description=data.description,
            business_unit_id=data.business_unit_id,
            default_depreciation_method=(
                data.default_depreciation_method.value
                if data.default_depreciation_method else None
            ),
            default_useful_life_years=data.default_useful_life_years,
            created_by_id=actor.user_id,
        )
        self._session.add(category)
        self._session.flush()
        logger.info("asset_category_created", extra={
            "category_id": str(category.id), "category_code": code,
        })
        return category

    def generate_item_code(self, category_id: UUID) -> str:
        """Next ``{CATEGORY}{NNN}`` item code for a category."""
        category = self._session.get(AssetCategoryModel, category_id)
        if category is None:
            raise EntityNotFoundError("AssetCategory", str(category_id))
        codes = self._session.execute(
            select(AssetModel.item_code).where(AssetModel.item_code.startswith(category.code))
        ).scalars().all()
        highest = 0
        for code in codes:
            suffix = code[len(category.code):]
            if suffix.isdigit():
                highest = max(highest, int(suffix))
        return f"{category.code}{highest + 1:03d}"

    def _validate_asset(self, data: AssetData) -> None:
        if not data.item_code.strip():
            raise ValidationError("Item code is required", field="item_code")
        if not data.description.strip():
            raise ValidationError("Description is required", field="description")
        if data.purchase_price is not None and data.purchase_price < 0:
            raise ValidationError("Purchase price cannot be negative", field="purchase_price")
        if data.salvage_value < 0:
            raise ValidationError("Salvage value cannot be negative", field="salvage_value")
        if data.purchase_price is not None and data.salvage_value > data.purchase_price:
            raise ValidationError(
                "Salvage value cannot exceed purchase price", field="salvage_value",
            )
        method = data.depreciation_method
        if method is None:
            return
        if method in (DepreciationMethod.STRAIGHT_LINE, DepreciationMethod.SUM_OF_YEARS_DIGITS):
            if (data.useful_life_years or 0) * 12 + data.useful_life_months <= 0:
                raise ValidationError(
                    "Useful life is required for this depreciation method",
                    field="useful_life_years",
                )
        elif method == DepreciationMethod.DECLINING_BALANCE:
            if not data.depreciation_rate or data.depreciation_rate <= 0:
                raise ValidationError(
                    "Depreciation rate is required for declining balance",
                    field="depreciation_rate",
                )
        elif method == DepreciationMethod.UNITS_OF_PRODUCTION:
            if not data.total_expected_units or data.total_expected_units <= 0:
                raise ValidationError(
                    "Total expected units are required for units of production",
                    field="total_expected_units",
                )

    def create_asset(self, actor: Actor, data: AssetData) -> AssetModel:
        """
        Register a new asset.

        Postconditions:
            - current_book_value = purchase_price.
            - monthly_depreciation from ``initial_monthly_depreciation``.
            - next_depreciation_date = depreciation start date + 1 month.
            - One CREATED history row.
        """
        require_business_unit_access(actor, data.business_unit_id)
        self._validate_asset(data)

        category = self._session.get(AssetCategoryModel, data.category_id)
        if category is None:
            raise EntityNotFoundError("AssetCategory", str(data.category_id))

        item_code = data.item_code.strip()
        duplicate = self._session.execute(
            select(AssetModel.id)
            .where(AssetModel.business_unit_id == data.business_unit_id)
            .where(AssetModel.item_code == item_code)
        ).first()
        if duplicate is not None:
            raise DuplicateItemCodeError(item_code, str(data.business_unit_id))

        start_date = data.depreciation_start_date or data.purchase_date
        monthly = None
        per_unit = None
        next_date = None
        if data.depreciation_method is not None and data.purchase_price is not None and start_date:
            terms = DepreciationTerms(
                method=data.depreciation_method,
                cost=data.purchase_price,
                salvage_value=data.salvage_value,
                useful_life_years=data.useful_life_years or 0,
                useful_life_months=data.useful_life_months,
                start_date=start_date,
                depreciation_rate=data.depreciation_rate,
                total_expected_units=data.total_expected_units,
            )
            monthly = initial_monthly_depreciation(terms)
            if data.depreciation_method == DepreciationMethod.UNITS_OF_PRODUCTION:
                per_unit = terms.per_unit
            next_date = add_months(start_date, 1)

        asset = AssetModel(
            item_code=item_code,
            description=data.description.strip(),
            serial_number=data.serial_number,
            brand=data.brand,
            category_id=category.id,
            business_unit_id=data.business_unit_id,
            department_id=data.department_id,
            location=data.location,
            notes=data.notes,
            status=AssetStatus.AVAILABLE.value,
            purchase_price=data.purchase_price,
            purchase_date=data.purchase_date,
            useful_life_years=data.useful_life_years,
            useful_life_months=data.useful_life_months,
            salvage_value=data.salvage_value,
            depreciation_method=(
                data.depreciation_method.value if data.depreciation_method else None
            ),
            depreciation_rate=data.depreciation_rate,
            depreciation_start_date=start_date,
            monthly_depreciation=monthly,
            total_expected_units=data.total_expected_units,
            depreciation_per_unit=per_unit,
            units_used=Decimal("0"),
            current_book_value=data.purchase_price,
            accumulated_depreciation=Decimal("0"),
            next_depreciation_date=next_date,
            is_fully_depreciated=False,
            created_by_id=actor.user_id,
        )
        self._session.add(asset)
        self._session.flush()

        record_asset_history(
            self._session, asset, AssetHistoryAction.CREATED, actor.user_id,
            self._clock.now(), notes=f"Asset {item_code} created",
            new_status=asset.status,
        )
        self._session.flush()

        logger.info("asset_created", extra={
            "asset_id": str(asset.id),
            "item_code": item_code,
            "depreciation_method": asset.depreciation_method,
            "monthly_depreciation": str(monthly) if monthly is not None else None,
        })
        return asset

    # =========================================================================
    # Deployment
    # =========================================================================

    def deploy_assets(
        self,
        actor: Actor,
        asset_ids: Sequence[UUID],
        employee_id: UUID,
        deployed_date: date | None = None,
        expected_return_date: date | None = None,
        notes: str | None = None,
        condition: AssetCondition | None = None,
    ) -> DeploymentResult:
        """
        Deploy one or more AVAILABLE assets to an employee.

        All assets share a base transmittal ``{BU}-{YYYYMM}-{NNN}``; each
        deployment gets the suffix ``-01``, ``-02``...  When the installation
        requires accounting approval, deployments start in
        PENDING_ACCOUNTING_APPROVAL and the assets stay AVAILABLE until
        ``approve_deployment``.
        """
        if not asset_ids:
            raise ValidationError("At least one asset is required", field="asset_ids")

        assets = [self._get_asset(asset_id) for asset_id in asset_ids]
        business_unit_id = assets[0].business_unit_id
        require_business_unit_access(actor, business_unit_id)

        for asset in assets:
            if asset.business_unit_id != business_unit_id:
                raise ValidationError(
                    "All assets must belong to the same business unit", field="asset_ids",
                )
            if not asset.is_active or asset.status != AssetStatus.AVAILABLE.value:
                raise AssetNotAvailableError(str(asset.id), asset.status)
            if self._active_deployment(asset.id) is not None:
                raise AssetAlreadyDeployedError(str(asset.id))

        employee = self._get_user(employee_id)
        deployed_on = deployed_date or self._clock.today()
        require_approval = self._settings.require_deployment_approval

        bu_code = self._business_unit_code(business_unit_id)
        prefix = f"{bu_code}-{self._period_code(deployed_on)}"
        seq = self._sequences.next_value(f"transmittal:{prefix}")
        base_number = f"{prefix}-{seq:0{self._settings.transmittal_width}d}"

        deployment_ids: list[UUID] = []
        status = DeploymentStatus.DEPLOYED
        for index, asset in enumerate(assets, start=1):
            transition = self._workflow.require_transition(
                DEPLOYMENT_WORKFLOW, "asset_deployment", asset.id, "NEW", "deploy",
                {"require_accounting_approval": require_approval},
            )
            status = DeploymentStatus(transition.to_state)
            transmittal = f"{base_number}-{index:02d}"
            deployment = AssetDeploymentModel(
                asset_id=asset.id,
                employee_id=employee.id,
                business_unit_id=business_unit_id,
                transmittal_number=transmittal,
                status=status.value,
                deployed_date=deployed_on,
                expected_return_date=expected_return_date,
                deployment_notes=notes,
                deployment_condition=condition.value if condition else None,
                created_by_id=actor.user_id,
            )
            self._session.add(deployment)
            self._session.flush()
            deployment_ids.append(deployment.id)

            previous = asset.status
            if status == DeploymentStatus.DEPLOYED:
                self._transition_asset(asset, "deploy")
                asset.currently_assigned_to_id = employee.id
                asset.last_assigned_date = deployed_on
            asset.current_deployment_id = deployment.id
            asset.updated_by_id = actor.user_id

            record_asset_history(
                self._session, asset, AssetHistoryAction.DEPLOYED, actor.user_id,
                self._clock.now(),
                notes=f"Deployed to {employee.name} ({employee.employee_id}) via transmittal {transmittal}",
                previous_status=previous, new_status=asset.status,
            )

        self._session.flush()
        logger.info("assets_deployed", extra={
            "transmittal_number": base_number,
            "asset_count": len(assets),
            "employee_id": employee.employee_id,
            "deployment_status": status.value,
        })
        return DeploymentResult(
            transmittal_number=base_number,
            deployment_ids=tuple(deployment_ids),
            status=status,
        )

    def _get_deployment(self, deployment_id: UUID) -> AssetDeploymentModel:
        deployment = self._session.get(AssetDeploymentModel, deployment_id)
        if deployment is None:
            raise EntityNotFoundError("AssetDeployment", str(deployment_id))
        return deployment

    def approve_deployment(self, actor: Actor, deployment_id: UUID) -> AssetDeploymentModel:
        """Accounting approval of a pending deployment; the asset becomes DEPLOYED."""
        require_role(actor, "approve_deployment", UserRole.ADMIN, allow_acctg=True)
        deployment = self._get_deployment(deployment_id)
        require_business_unit_access(actor, deployment.business_unit_id)

        transition = self._workflow.require_transition(
            DEPLOYMENT_WORKFLOW, "asset_deployment", deployment.id, deployment.status, "approve",
        )
        deployment.status = transition.to_state
        deployment.accounting_approved_by_id = actor.user_id
        deployment.accounting_approved_at = self._clock.now()
        deployment.updated_by_id = actor.user_id

        asset = self._get_asset(deployment.asset_id)
        previous = self._transition_asset(asset, "deploy")
        asset.currently_assigned_to_id = deployment.employee_id
        asset.last_assigned_date = deployment.deployed_date
        asset.current_deployment_id = deployment.id
        record_asset_history(
            self._session, asset, AssetHistoryAction.DEPLOYMENT_APPROVED, actor.user_id,
            self._clock.now(), notes=f"Transmittal {deployment.transmittal_number} approved",
            previous_status=previous, new_status=asset.status,
        )
        self._session.flush()
        logger.info("deployment_approved", extra={
            "deployment_id": str(deployment.id),
            "transmittal_number": deployment.transmittal_number,
        })
        return deployment

    def cancel_deployment(
        self, actor: Actor, deployment_id: UUID, reason: str | None = None,
    ) -> AssetDeploymentModel:
        require_role(actor, "cancel_deployment", UserRole.ADMIN, allow_acctg=True)
        deployment = self._get_deployment(deployment_id)
        require_business_unit_access(actor, deployment.business_unit_id)

        previous_deployment_status = deployment.status
        transition = self._workflow.require_transition(
            DEPLOYMENT_WORKFLOW, "asset_deployment", deployment.id, deployment.status, "cancel",
        )
        deployment.status = transition.to_state
        deployment.return_notes = reason
        deployment.updated_by_id = actor.user_id

        asset = self._get_asset(deployment.asset_id)
        previous = asset.status
        if previous_deployment_status == DeploymentStatus.DEPLOYED.value:
            self._transition_asset(asset, "cancel_deployment")
        asset.currently_assigned_to_id = None
        asset.current_deployment_id = None
        record_asset_history(
            self._session, asset, AssetHistoryAction.DEPLOYMENT_CANCELLED, actor.user_id,
            self._clock.now(), notes=reason,
            previous_status=previous, new_status=asset.status,
        )
        self._session.flush()
        logger.info("deployment_cancelled", extra={
            "deployment_id": str(deployment.id),
            "previous_status": previous_deployment_status,
        })
        return deployment

    def return_asset(
        self,
        actor: Actor,
        asset_id: UUID,
        condition: AssetCondition = AssetCondition.GOOD,
        notes: str | None = None,
        returned_date: date | None = None,
    ) -> AssetDeploymentModel:
        """
        Close the active deployment.

        The asset becomes AVAILABLE, or DAMAGED when returned DAMAGED or
        NON_FUNCTIONAL.
        """
        asset = self._get_asset(asset_id)
        require_business_unit_access(actor, asset.business_unit_id)
        deployment = self._active_deployment(asset.id)
        if deployment is None or asset.status != AssetStatus.DEPLOYED.value:
            raise NoActiveDeploymentError(str(asset.id))

        transition = self._workflow.require_transition(
            DEPLOYMENT_WORKFLOW, "asset_deployment", deployment.id, deployment.status, "return",
        )
        deployment.status = transition.to_state
        deployment.returned_date = returned_date or self._clock.today()
        deployment.return_condition = condition.value
        deployment.return_notes = notes
        deployment.updated_by_id = actor.user_id

        previous = self._transition_asset(
            asset, "return", {"returned_damaged": condition in _DAMAGED_CONDITIONS},
        )
        asset.currently_assigned_to_id = None
        asset.current_deployment_id = None
        asset.updated_by_id = actor.user_id
        record_asset_history(
            self._session, asset, AssetHistoryAction.RETURNED, actor.user_id,
            self._clock.now(),
            notes=f"Returned in {condition.value} condition" + (f": {notes}" if notes else ""),
            previous_status=previous, new_status=asset.status,
        )
        self._session.flush()
        logger.info("asset_returned", extra={
            "asset_id": str(asset.id),
            "condition": condition.value,
            "new_status": asset.status,
        })
        return deployment

    # =========================================================================
    # Transfer
    # =========================================================================

    def transfer_asset(
        self,
        actor: Actor,
        asset_id: UUID,
        to_employee_id: UUID | None = None,
        to_business_unit_id: UUID | None = None,
        reason: str | None = None,
        notes: str | None = None,
        transfer_date: date | None = None,
    ) -> AssetTransferModel:
        """
        Transfer custody to another employee, or the asset to another unit.

        Exactly one of ``to_employee_id`` / ``to_business_unit_id`` is given.
        Employee transfers need an active deployment; the old deployment is
        RETURNED and a new one DEPLOYED.  Business-unit transfers close any
        deployment and leave the asset AVAILABLE in the target unit.
        Transfer number: ``{BU}-TXF{EMP|BU}-{YYYYMM}-{NNN}``.
        """
        if (to_employee_id is None) == (to_business_unit_id is None):
            raise ValidationError(
                "Specify either a target employee or a target business unit",
                field="to_employee_id",
            )
        asset = self._get_asset(asset_id)
        require_business_unit_access(actor, asset.business_unit_id)
        on = transfer_date or self._clock.today()
        from_unit = asset.business_unit_id
        current = self._active_deployment(asset.id)
        if to_employee_id is not None and current is None:
            raise NoActiveDeploymentError(str(asset.id))

        transfer_type = TransferType.EMPLOYEE if to_employee_id else TransferType.BUSINESS_UNIT
        bu_code = self._business_unit_code(from_unit)
        prefix = f"{bu_code}-TXF{transfer_type.value}-{self._period_code(on)}"
        seq = self._sequences.next_value(f"transfer:{prefix}")
        transfer_number = f"{prefix}-{seq:0{self._settings.transmittal_width}d}"

        from_employee = asset.currently_assigned_to_id
        if current is not None:
            current.status = DeploymentStatus.RETURNED.value
            current.returned_date = on
            current.return_notes = f"Transferred under {transfer_number}"
            current.updated_by_id = actor.user_id

        if transfer_type == TransferType.EMPLOYEE:
            employee = self._get_user(to_employee_id)
            previous = self._transition_asset(asset, "transfer_employee")
            deployment = AssetDeploymentModel(
                asset_id=asset.id,
                employee_id=employee.id,
                business_unit_id=from_unit,
                transmittal_number=f"{transfer_number}-01",
                status=DeploymentStatus.DEPLOYED.value,
                deployed_date=on,
                deployment_notes=notes,
                created_by_id=actor.user_id,
            )
            self._session.add(deployment)
            self._session.flush()
            asset.currently_assigned_to_id = employee.id
            asset.current_deployment_id = deployment.id
            asset.last_assigned_date = on
            history_note = f"Transferred to {employee.name} ({employee.employee_id}) via {transfer_number}"
            to_unit = from_unit
        else:
            target = self._session.get(BusinessUnit, to_business_unit_id)
            if target is None:
                raise EntityNotFoundError("BusinessUnit", str(to_business_unit_id))
            if target.id == from_unit:
                raise ValidationError(
                    "Asset already belongs to that business unit", field="to_business_unit_id",
                )
            previous = self._transition_asset(asset, "transfer_business_unit")
            asset.business_unit_id = target.id
            asset.currently_assigned_to_id = None
            asset.current_deployment_id = None
            history_note = f"Transferred to business unit {target.code} via {transfer_number}"
            to_unit = target.id

        asset.updated_by_id = actor.user_id
        transfer = AssetTransferModel(
            asset_id=asset.id,
            transfer_number=transfer_number,
            transfer_type=transfer_type.value,
            transfer_date=on,
            from_business_unit_id=from_unit,
            to_business_unit_id=to_unit,
            from_employee_id=from_employee,
            to_employee_id=to_employee_id,
            reason=reason,
            notes=notes,
            created_by_id=actor.user_id,
        )
        self._session.add(transfer)
        record_asset_history(
            self._session, asset, AssetHistoryAction.TRANSFERRED, actor.user_id,
            self._clock.now(), notes=history_note,
            previous_status=previous, new_status=asset.status,
        )
        self._session.flush()
        logger.info("asset_transferred", extra={
            "asset_id": str(asset.id),
            "transfer_number": transfer_number,
            "transfer_type": transfer_type.value,
        })
        return transfer

    # =========================================================================
    # Disposal and retirement
    # =========================================================================

    def dispose_asset(
        self,
        actor: Actor,
        asset_id: UUID,
        method: DisposalMethod,
        reason: DisposalReason,
        disposal_date: date | None = None,
        disposal_value: Decimal = Decimal("0"),
        disposal_cost: Decimal = Decimal("0"),
        location: str | None = None,
        approved_by: str | None = None,
        notes: str | None = None,
    ) -> DisposalResult:
        """
        Dispose of an asset.

        Allowed from AVAILABLE, DEPLOYED (with no active deployment),
        IN_MAINTENANCE, DAMAGED and FULLY_DEPRECIATED.
        """
        asset = self._get_asset(asset_id)
        require_business_unit_access(actor, asset.business_unit_id)

        if asset.status not in {s.value for s in DISPOSABLE_STATUSES}:
            raise AssetNotDisposableError(str(asset.id), f"status {asset.status}")
        has_active = self._active_deployment(asset.id) is not None
        if has_active:
            raise AssetNotDisposableError(str(asset.id), "asset has an active deployment")
        if disposal_value < 0 or disposal_cost < 0:
            raise ValidationError("Disposal value and cost cannot be negative", field="disposal_value")

        book_value = asset.current_book_value or Decimal("0")
        net, gain_loss = disposal_gain_loss(disposal_value, disposal_cost, book_value)

        previous = self._transition_asset(
            asset, "dispose", {"has_active_deployment": has_active},
        )
        asset.is_active = False
        asset.updated_by_id = actor.user_id

        disposal = AssetDisposalModel(
            asset_id=asset.id,
            business_unit_id=asset.business_unit_id,
            disposal_date=disposal_date or self._clock.today(),
            disposal_method=method.value,
            disposal_reason=reason.value,
            disposal_location=location,
            disposal_value=disposal_value,
            disposal_cost=disposal_cost,
            net_proceeds=net,
            book_value_at_disposal=book_value,
            gain_loss=gain_loss,
            approved_by=approved_by,
            notes=notes,
            created_by_id=actor.user_id,
        )
        self._session.add(disposal)
        record_asset_history(
            self._session, asset, AssetHistoryAction.DISPOSED, actor.user_id,
            self._clock.now(),
            notes=f"Disposed by {method.value} ({reason.value}); gain/loss {gain_loss}",
            previous_status=previous, new_status=asset.status,
        )
        self._session.flush()
        logger.info("asset_disposed", extra={
            "asset_id": str(asset.id),
            "disposal_method": method.value,
            "book_value": str(book_value),
            "gain_loss": str(gain_loss),
        })
        return DisposalResult(
            disposal_id=disposal.id,
            asset_id=asset.id,
            book_value_at_disposal=book_value,
            net_proceeds=net,
            gain_loss=gain_loss,
        )

    def retire_asset(
        self,
        actor: Actor,
        asset_id: UUID,
        reason: RetirementReason,
        method: RetirementMethod | None = None,
        condition: AssetCondition | None = None,
        replacement_asset_id: UUID | None = None,
        retirement_date: date | None = None,
        notes: str | None = None,
    ) -> AssetRetirementModel:
        """
        Retire an asset from service.

        An active deployment is returned first.  A replacement asset, when
        given, must be AVAILABLE.
        """
        asset = self._get_asset(asset_id)
        require_business_unit_access(actor, asset.business_unit_id)
        on = retirement_date or self._clock.today()

        if replacement_asset_id is not None:
            replacement = self._get_asset(replacement_asset_id)
            if replacement.id == asset.id:
                raise ValidationError(
                    "An asset cannot replace itself", field="replacement_asset_id",
                )
            if replacement.status != AssetStatus.AVAILABLE.value:
                raise AssetNotAvailableError(str(replacement.id), replacement.status)

        deployment = self._active_deployment(asset.id)
        if deployment is not None:
            deployment.status = DeploymentStatus.RETURNED.value
            deployment.returned_date = on
            deployment.return_condition = condition.value if condition else None
            deployment.return_notes = "Returned on retirement"
            deployment.updated_by_id = actor.user_id

        previous = self._transition_asset(asset, "retire")
        asset.currently_assigned_to_id = None
        asset.current_deployment_id = None
        asset.is_active = False
        asset.updated_by_id = actor.user_id

        retirement = AssetRetirementModel(
            asset_id=asset.id,
            business_unit_id=asset.business_unit_id,
            retirement_date=on,
            reason=reason.value,
            retirement_method=method.value if method else None,
            condition_at_retirement=condition.value if condition else None,
            book_value_at_retirement=asset.current_book_value or Decimal("0"),
            replacement_asset_id=replacement_asset_id,
            notes=notes,
            created_by_id=actor.user_id,
        )
        self._session.add(retirement)
        record_asset_history(
            self._session, asset, AssetHistoryAction.RETIRED, actor.user_id,
            self._clock.now(), notes=f"Retired: {reason.value}",
            previous_status=previous, new_status=asset.status,
        )
        self._session.flush()
        logger.info("asset_retired", extra={
            "asset_id": str(asset.id),
            "retirement_reason": reason.value,
            "returned_deployment": deployment is not None,
        })
        return retirement

    # =========================================================================
    # Queries
    # =========================================================================

    def get_asset_history(self, asset_id: UUID) -> list[AssetHistoryEntry]:
        self._get_asset(asset_id)
        rows = self._session.execute(
            select(AssetHistoryModel)
            .where(AssetHistoryModel.asset_id == asset_id)
            .order_by(AssetHistoryModel.performed_at, AssetHistoryModel.created_at)
        ).scalars().all()
        return [row.to_dto() for row in rows]

    def count_by_status(self, business_unit_id: UUID) -> dict[str, int]:
        """Asset counts per status in a business unit."""
        rows = self._session.execute(
            select(AssetModel.status, func.count(AssetModel.id))
            .where(AssetModel.business_unit_id == business_unit_id)
            .group_by(AssetModel.status)
        ).all()
        return {status: count for status, count in rows}
