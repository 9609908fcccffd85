"""
Settings schema (``backoffice_config.schema``).

Frozen dataclasses for every configuration section.  Parsed by
``backoffice_config.loader`` and handed out by
``backoffice_config.get_active_settings()``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal


@dataclass(frozen=True)
class DatabaseSettings:
    url: str = "sqlite://"
    echo: bool = False
    pool_size: int = 10
    max_overflow: int = 5


@dataclass(frozen=True)
class MaterialRequestSettings:
    default_series: str = "MRS"
    document_number_width: int = 5
    # Employee IDs whose pending-approval queue spans every business unit
    cross_unit_approver_ids: tuple[str, ...] = ()
    cancellable_by_roles: tuple[str, ...] = ("ADMIN", "MANAGER")
    receive_roles: tuple[str, ...] = ("ADMIN", "MANAGER", "PURCHASER", "STOCKROOM")
    default_page_size: int = 10


@dataclass(frozen=True)
class DepreciationSettings:
    # Days of month on which batch calculation is allowed (month end always is)
    window_days: tuple[int, ...] = (30, 31)
    calculation_roles: tuple[str, ...] = ("ADMIN", "ACCTG")
    override_roles: tuple[str, ...] = ("ADMIN",)
    eligible_statuses: tuple[str, ...] = ("AVAILABLE", "DEPLOYED", "IN_MAINTENANCE")
    default_execution_day: int = 30


@dataclass(frozen=True)
class AssetSettings:
    require_deployment_approval: bool = False
    transmittal_width: int = 3


@dataclass(frozen=True)
class LeaveSettings:
    carry_over_limit: Decimal = Decimal("20")
    carry_over_keywords: tuple[str, ...] = ("VACATION", "SICK", "ANNUAL LEAVE")
    # Leave types replenished each year (name contains one of these)
    managed_keywords: tuple[str, ...] = ("VACATION", "SICK", "MANDATORY", "CTO")
    excluded_employee_ids: tuple[str, ...] = ()
    default_allocations: dict[str, Decimal] = field(default_factory=dict)
    admin_roles: tuple[str, ...] = ("ADMIN", "HR")
    # Roles that give the second (HR) approval of a leave request
    hr_approver_roles: tuple[str, ...] = ("HR", "ADMIN")
    allow_negative_balance: bool = False


@dataclass(frozen=True)
class AccessSettings:
    bcrypt_rounds: int = 12
    min_password_length: int = 8


@dataclass(frozen=True)
class BackOfficeSettings:
    """Complete settings snapshot."""

    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    material_requests: MaterialRequestSettings = field(default_factory=MaterialRequestSettings)
    depreciation: DepreciationSettings = field(default_factory=DepreciationSettings)
    assets: AssetSettings = field(default_factory=AssetSettings)
    leave: LeaveSettings = field(default_factory=LeaveSettings)
    access: AccessSettings = field(default_factory=AccessSettings)
    source: str | None = None
