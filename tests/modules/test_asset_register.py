"""
Tests for AssetService (backoffice_modules.assets.service).

Covers registration, deployment under transmittal numbers (with and
without accounting approval), returns, transfers, disposal, retirement
and the per-asset history.
"""

from datetime import date
from decimal import Decimal

import pytest

from backoffice_config.schema import AssetSettings
from backoffice_kernel.exceptions import (
    AssetAlreadyDeployedError,
    AssetNotAvailableError,
    AssetNotDisposableError,
    BusinessUnitAccessError,
    DuplicateItemCodeError,
    InvalidTransitionError,
    NoActiveDeploymentError,
    PermissionDeniedError,
    ValidationError,
)
from backoffice_modules.assets.models import (
    AssetCondition,
    AssetData,
    AssetHistoryAction,
    DeploymentStatus,
    DepreciationMethod,
    DisposalMethod,
    DisposalReason,
    RetirementReason,
)
from backoffice_modules.assets.orm import AssetDeploymentModel
from backoffice_modules.assets.service import AssetService


class TestCreateAsset:
    def test_initial_depreciation_setup(self, make_asset):
        asset = make_asset()
        assert asset.status == "AVAILABLE"
        assert asset.current_book_value == Decimal("12000")
        assert asset.accumulated_depreciation == Decimal("0")
        assert asset.monthly_depreciation == Decimal("200.00")
        assert asset.depreciation_start_date == date(2024, 1, 15)
        assert asset.next_depreciation_date == date(2024, 2, 15)
        assert not asset.is_fully_depreciated

    def test_units_of_production_rate(self, make_asset):
        asset = make_asset(
            depreciation_method=DepreciationMethod.UNITS_OF_PRODUCTION,
            salvage_value=Decimal("2000"),
            total_expected_units=Decimal("5000"),
        )
        assert asset.depreciation_per_unit == Decimal("2")
        assert asset.monthly_depreciation == Decimal("0")

    def test_without_depreciation_setup(self, make_asset):
        asset = make_asset(depreciation_method=None)
        assert asset.monthly_depreciation is None
        assert asset.next_depreciation_date is None

    def test_duplicate_item_code_in_same_unit(self, make_asset):
        make_asset(item_code="LAP100")
        with pytest.raises(DuplicateItemCodeError) as exc_info:
            make_asset(item_code="LAP100")
        assert exc_info.value.item_code == "LAP100"

    def test_same_item_code_in_other_unit(self, make_asset, org):
        make_asset(item_code="LAP100")
        other = make_asset(item_code="LAP100", business_unit_id=org.branch.id)
        assert other.business_unit_id == org.branch.id

    def test_salvage_above_price(self, make_asset):
        with pytest.raises(ValidationError) as exc_info:
            make_asset(salvage_value=Decimal("20000"))
        assert exc_info.value.field == "salvage_value"

    def test_declining_balance_needs_rate(self, make_asset):
        with pytest.raises(ValidationError) as exc_info:
            make_asset(depreciation_method=DepreciationMethod.DECLINING_BALANCE)
        assert exc_info.value.field == "depreciation_rate"

    def test_other_unit_denied(self, asset_service, it_category, org):
        with pytest.raises(BusinessUnitAccessError):
            asset_service.create_asset(org.actor("branch_user"), AssetData(
                item_code="X1", description="Desk", category_id=it_category.id,
                business_unit_id=org.hq.id,
            ))

    def test_generate_item_code(self, asset_service, make_asset, it_category):
        assert asset_service.generate_item_code(it_category.id) == "LAP001"
        make_asset(item_code="LAP001")
        make_asset(item_code="LAP007")
        assert asset_service.generate_item_code(it_category.id) == "LAP008"

    def test_created_history(self, asset_service, make_asset):
        asset = make_asset()
        history = asset_service.get_asset_history(asset.id)
        assert [h.action for h in history] == [AssetHistoryAction.CREATED]
        assert history[0].new_status == "AVAILABLE"


class TestDeployment:
    def test_deploy_single(self, asset_service, make_asset, org):
        asset = make_asset()
        result = asset_service.deploy_assets(
            org.actor("stockroom"), [asset.id], employee_id=org.user("requester").id,
        )
        assert result.transmittal_number == "HQ-202401-001"
        assert result.status == DeploymentStatus.DEPLOYED
        assert asset.status == "DEPLOYED"
        assert asset.currently_assigned_to_id == org.user("requester").id
        assert asset.current_deployment_id == result.deployment_ids[0]
        assert asset.last_assigned_date == date(2024, 1, 31)

    def test_batch_shares_transmittal(self, asset_service, make_asset, session, org):
        first, second = make_asset(), make_asset()
        result = asset_service.deploy_assets(
            org.actor("admin"), [first.id, second.id], employee_id=org.user("requester").id,
        )
        numbers = [
            session.get(AssetDeploymentModel, d).transmittal_number
            for d in result.deployment_ids
        ]
        assert numbers == ["HQ-202401-001-01", "HQ-202401-001-02"]

    def test_transmittal_sequence_increments(self, asset_service, make_asset, org):
        actor = org.actor("admin")
        employee = org.user("requester").id
        asset_service.deploy_assets(actor, [make_asset().id], employee_id=employee)
        result = asset_service.deploy_assets(actor, [make_asset().id], employee_id=employee)
        assert result.transmittal_number == "HQ-202401-002"

    def test_deployed_asset_not_available(self, asset_service, make_asset, org):
        asset = make_asset()
        actor = org.actor("admin")
        asset_service.deploy_assets(actor, [asset.id], employee_id=org.user("requester").id)
        with pytest.raises(AssetNotAvailableError):
            asset_service.deploy_assets(actor, [asset.id], employee_id=org.user("reviewer").id)

    def test_empty_batch(self, asset_service, org):
        with pytest.raises(ValidationError):
            asset_service.deploy_assets(org.actor("admin"), [], employee_id=org.user("requester").id)

    def test_cancel_deployed(self, asset_service, make_asset, org):
        asset = make_asset()
        result = asset_service.deploy_assets(
            org.actor("admin"), [asset.id], employee_id=org.user("requester").id,
        )
        deployment = asset_service.cancel_deployment(
            org.actor("admin"), result.deployment_ids[0], reason="wrong employee",
        )
        assert deployment.status == "CANCELLED"
        assert asset.status == "AVAILABLE"
        assert asset.currently_assigned_to_id is None

    @pytest.mark.parametrize("role", ["requester", "manager", "purchaser"])
    def test_cancel_requires_admin_or_accounting(self, asset_service, make_asset, org, role):
        asset = make_asset()
        result = asset_service.deploy_assets(
            org.actor("admin"), [asset.id], employee_id=org.user("requester").id,
        )
        with pytest.raises(PermissionDeniedError):
            asset_service.cancel_deployment(org.actor(role), result.deployment_ids[0])
        assert asset.status == "DEPLOYED"

        asset_service.cancel_deployment(org.actor("acctg"), result.deployment_ids[0])
        assert asset.status == "AVAILABLE"


class TestDeploymentApproval:
    @pytest.fixture
    def approving_service(self, session, deterministic_clock):
        return AssetService(
            session, deterministic_clock, AssetSettings(require_deployment_approval=True),
        )

    def test_pending_until_approved(self, approving_service, make_asset, org):
        asset = make_asset()
        result = approving_service.deploy_assets(
            org.actor("admin"), [asset.id], employee_id=org.user("requester").id,
        )
        assert result.status == DeploymentStatus.PENDING_ACCOUNTING_APPROVAL
        assert asset.status == "AVAILABLE"
        assert asset.currently_assigned_to_id is None

        deployment = approving_service.approve_deployment(
            org.actor("acctg"), result.deployment_ids[0],
        )
        assert deployment.status == "DEPLOYED"
        assert deployment.accounting_approved_by_id == org.user("acctg").id
        assert asset.status == "DEPLOYED"
        assert asset.currently_assigned_to_id == org.user("requester").id

    def test_pending_deployment_blocks_second(self, approving_service, make_asset, org):
        asset = make_asset()
        approving_service.deploy_assets(
            org.actor("admin"), [asset.id], employee_id=org.user("requester").id,
        )
        with pytest.raises(AssetAlreadyDeployedError):
            approving_service.deploy_assets(
                org.actor("admin"), [asset.id], employee_id=org.user("reviewer").id,
            )

    def test_approval_requires_accounting(self, approving_service, make_asset, org):
        result = approving_service.deploy_assets(
            org.actor("admin"), [make_asset().id], employee_id=org.user("requester").id,
        )
        with pytest.raises(PermissionDeniedError):
            approving_service.approve_deployment(org.actor("manager"), result.deployment_ids[0])

    def test_cancel_pending_keeps_available(self, approving_service, make_asset, org):
        asset = make_asset()
        result = approving_service.deploy_assets(
            org.actor("admin"), [asset.id], employee_id=org.user("requester").id,
        )
        approving_service.cancel_deployment(org.actor("admin"), result.deployment_ids[0])
        assert asset.status == "AVAILABLE"

    def test_approve_twice(self, approving_service, make_asset, org):
        result = approving_service.deploy_assets(
            org.actor("admin"), [make_asset().id], employee_id=org.user("requester").id,
        )
        approving_service.approve_deployment(org.actor("acctg"), result.deployment_ids[0])
        with pytest.raises(InvalidTransitionError):
            approving_service.approve_deployment(org.actor("acctg"), result.deployment_ids[0])


@pytest.fixture
def deployed_asset(asset_service, make_asset, org):
    asset = make_asset()
    asset_service.deploy_assets(
        org.actor("admin"), [asset.id], employee_id=org.user("requester").id,
    )
    return asset


class TestReturn:
    def test_good_condition(self, asset_service, deployed_asset, org):
        deployment = asset_service.return_asset(org.actor("stockroom"), deployed_asset.id)
        assert deployment.status == "RETURNED"
        assert deployment.returned_date == date(2024, 1, 31)
        assert deployed_asset.status == "AVAILABLE"
        assert deployed_asset.current_deployment_id is None

    @pytest.mark.parametrize("condition", [AssetCondition.DAMAGED, AssetCondition.NON_FUNCTIONAL])
    def test_damaged_condition(self, asset_service, deployed_asset, org, condition):
        asset_service.return_asset(org.actor("admin"), deployed_asset.id, condition=condition)
        assert deployed_asset.status == "DAMAGED"

    def test_not_deployed(self, asset_service, make_asset, org):
        with pytest.raises(NoActiveDeploymentError):
            asset_service.return_asset(org.actor("admin"), make_asset().id)


class TestTransfer:
    def test_to_employee(self, asset_service, deployed_asset, session, org):
        old_deployment_id = deployed_asset.current_deployment_id
        transfer = asset_service.transfer_asset(
            org.actor("admin"), deployed_asset.id, to_employee_id=org.user("reviewer").id,
        )
        assert transfer.transfer_number == "HQ-TXFEMP-202401-001"
        assert transfer.transfer_type == "EMP"
        assert transfer.from_employee_id == org.user("requester").id
        assert deployed_asset.status == "DEPLOYED"
        assert deployed_asset.currently_assigned_to_id == org.user("reviewer").id
        assert session.get(AssetDeploymentModel, old_deployment_id).status == "RETURNED"
        assert deployed_asset.current_deployment_id != old_deployment_id

    def test_to_business_unit(self, asset_service, deployed_asset, org):
        transfer = asset_service.transfer_asset(
            org.actor("admin"), deployed_asset.id, to_business_unit_id=org.branch.id,
        )
        assert transfer.transfer_number == "HQ-TXFBU-202401-001"
        assert deployed_asset.business_unit_id == org.branch.id
        assert deployed_asset.status == "AVAILABLE"
        assert deployed_asset.currently_assigned_to_id is None

    def test_exactly_one_target(self, asset_service, deployed_asset, org):
        with pytest.raises(ValidationError):
            asset_service.transfer_asset(
                org.actor("admin"), deployed_asset.id,
                to_employee_id=org.user("reviewer").id, to_business_unit_id=org.branch.id,
            )
        with pytest.raises(ValidationError):
            asset_service.transfer_asset(org.actor("admin"), deployed_asset.id)

    def test_employee_transfer_needs_deployment(self, asset_service, make_asset, org):
        with pytest.raises(NoActiveDeploymentError):
            asset_service.transfer_asset(
                org.actor("admin"), make_asset().id, to_employee_id=org.user("reviewer").id,
            )

    def test_same_business_unit(self, asset_service, make_asset, org):
        with pytest.raises(ValidationError):
            asset_service.transfer_asset(
                org.actor("admin"), make_asset().id, to_business_unit_id=org.hq.id,
            )


class TestDisposalAndRetirement:
    def test_dispose_available(self, asset_service, make_asset, org):
        asset = make_asset()
        result = asset_service.dispose_asset(
            org.actor("admin"), asset.id, DisposalMethod.SALE, DisposalReason.SOLD,
            disposal_value=Decimal("5000"), disposal_cost=Decimal("200"),
        )
        assert result.book_value_at_disposal == Decimal("12000")
        assert result.net_proceeds == Decimal("4800")
        assert result.gain_loss == Decimal("-7200")
        assert asset.status == "DISPOSED"
        assert asset.is_active is False

    def test_dispose_with_active_deployment(self, asset_service, deployed_asset, org):
        with pytest.raises(AssetNotDisposableError) as exc_info:
            asset_service.dispose_asset(
                org.actor("admin"), deployed_asset.id, DisposalMethod.SCRAP,
                DisposalReason.SCRAPPED,
            )
        assert "active deployment" in exc_info.value.reason

    def test_dispose_twice(self, asset_service, make_asset, org):
        asset = make_asset()
        actor = org.actor("admin")
        asset_service.dispose_asset(actor, asset.id, DisposalMethod.SCRAP, DisposalReason.SCRAPPED)
        with pytest.raises(AssetNotDisposableError):
            asset_service.dispose_asset(
                actor, asset.id, DisposalMethod.SCRAP, DisposalReason.SCRAPPED,
            )

    def test_dispose_damaged(self, asset_service, deployed_asset, org):
        actor = org.actor("admin")
        asset_service.return_asset(actor, deployed_asset.id, condition=AssetCondition.DAMAGED)
        asset_service.dispose_asset(
            actor, deployed_asset.id, DisposalMethod.SCRAP, DisposalReason.DAMAGED_BEYOND_REPAIR,
        )
        assert deployed_asset.status == "DISPOSED"

    def test_retire_returns_deployment(self, asset_service, deployed_asset, session, org):
        deployment_id = deployed_asset.current_deployment_id
        retirement = asset_service.retire_asset(
            org.actor("admin"), deployed_asset.id, RetirementReason.OBSOLETE,
        )
        assert retirement.book_value_at_retirement == Decimal("12000")
        assert deployed_asset.status == "RETIRED"
        assert deployed_asset.is_active is False
        assert session.get(AssetDeploymentModel, deployment_id).status == "RETURNED"

    def test_retire_replacement_must_be_available(
        self, asset_service, make_asset, deployed_asset, org,
    ):
        with pytest.raises(AssetNotAvailableError):
            asset_service.retire_asset(
                org.actor("admin"), make_asset().id, RetirementReason.UPGRADE_REPLACEMENT,
                replacement_asset_id=deployed_asset.id,
            )


class TestQueries:
    def test_history_records_lifecycle(self, asset_service, deployed_asset, org):
        asset_service.return_asset(org.actor("admin"), deployed_asset.id)
        actions = {h.action for h in asset_service.get_asset_history(deployed_asset.id)}
        assert actions == {
            AssetHistoryAction.CREATED,
            AssetHistoryAction.DEPLOYED,
            AssetHistoryAction.RETURNED,
        }

    def test_count_by_status(self, asset_service, deployed_asset, make_asset, org):
        make_asset()
        make_asset()
        assert asset_service.count_by_status(org.hq.id) == {"AVAILABLE": 2, "DEPLOYED": 1}

    def test_get_asset_checks_business_unit(self, asset_service, make_asset, org):
        asset = make_asset()
        assert asset_service.get_asset(org.actor("requester"), asset.id) is asset
        with pytest.raises(BusinessUnitAccessError):
            asset_service.get_asset(org.actor("branch_user"), asset.id)
