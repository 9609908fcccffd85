"""
Shared fixtures for module tests.

DESIGN RULE: Every fixture is opt-in.  No autouse.  Each test explicitly
declares which parent entities it depends on in its function signature.
"""

from datetime import date
from decimal import Decimal

import pytest

from backoffice_config.schema import (
    AssetSettings,
    DepreciationSettings,
    LeaveSettings,
    MaterialRequestSettings,
)
from backoffice_modules.assets.models import AssetCategoryData, AssetData, DepreciationMethod
from backoffice_modules.assets.service import AssetService
from backoffice_modules.depreciation.service import DepreciationService
from backoffice_modules.leave.service import LeaveBalanceService, LeaveRequestService
from backoffice_modules.material_requests.service import MaterialRequestService
from backoffice_modules.organization.service import DepartmentService, UserAdminService


# ---------------------------------------------------------------------------
# Services (opt-in, individual)
# ---------------------------------------------------------------------------


@pytest.fixture
def asset_service(session, deterministic_clock):
    return AssetService(session, deterministic_clock, AssetSettings())


@pytest.fixture
def depreciation_service(session, deterministic_clock):
    return DepreciationService(session, deterministic_clock, DepreciationSettings())


@pytest.fixture
def material_request_service(session, deterministic_clock):
    return MaterialRequestService(session, deterministic_clock, MaterialRequestSettings())


@pytest.fixture
def leave_service(session, deterministic_clock):
    return LeaveBalanceService(session, deterministic_clock, LeaveSettings())


@pytest.fixture
def leave_request_service(session, deterministic_clock):
    return LeaveRequestService(session, deterministic_clock, LeaveSettings())


@pytest.fixture
def department_service(session, deterministic_clock):
    return DepartmentService(session, deterministic_clock)


@pytest.fixture
def user_admin_service(session, deterministic_clock, access_settings):
    return UserAdminService(session, deterministic_clock, access_settings)


# ---------------------------------------------------------------------------
# Asset fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def it_category(asset_service, org):
    """Category ``LAP`` owned by head office."""
    return asset_service.create_category(
        org.actor("admin"),
        AssetCategoryData(
            code="lap",
            name="Laptops",
            business_unit_id=org.hq.id,
            default_depreciation_method=DepreciationMethod.STRAIGHT_LINE,
            default_useful_life_years=5,
        ),
    )


@pytest.fixture
def make_asset(asset_service, it_category, org):
    """
    Factory for head-office assets.

    Defaults to a 12,000 straight-line laptop over five years with no
    salvage value, depreciating from 2024-01-15 (200.00 a month).
    """
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        fields = dict(
            item_code=f"LAP{counter['n']:03d}",
            description="Laptop",
            category_id=it_category.id,
            business_unit_id=org.hq.id,
            purchase_price=Decimal("12000"),
            purchase_date=date(2024, 1, 15),
            useful_life_years=5,
            salvage_value=Decimal("0"),
            depreciation_method=DepreciationMethod.STRAIGHT_LINE,
        )
        fields.update(overrides)
        return asset_service.create_asset(org.actor("admin"), AssetData(**fields))

    return _make
