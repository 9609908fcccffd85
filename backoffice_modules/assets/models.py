"""
Asset Domain Models.

The nouns of asset management: assets, categories, deployments,
transfers, disposals, retirements.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID


class AssetStatus(Enum):
    """Asset lifecycle states."""
    AVAILABLE = "AVAILABLE"
    DEPLOYED = "DEPLOYED"
    IN_MAINTENANCE = "IN_MAINTENANCE"
    RETIRED = "RETIRED"
    LOST = "LOST"
    DAMAGED = "DAMAGED"
    FULLY_DEPRECIATED = "FULLY_DEPRECIATED"
    DISPOSED = "DISPOSED"


class DepreciationMethod(Enum):
    """Supported depreciation methods."""
    STRAIGHT_LINE = "STRAIGHT_LINE"
    DECLINING_BALANCE = "DECLINING_BALANCE"
    UNITS_OF_PRODUCTION = "UNITS_OF_PRODUCTION"
    SUM_OF_YEARS_DIGITS = "SUM_OF_YEARS_DIGITS"


class DeploymentStatus(Enum):
    PENDING_ACCOUNTING_APPROVAL = "PENDING_ACCOUNTING_APPROVAL"
    APPROVED = "APPROVED"
    DEPLOYED = "DEPLOYED"
    RETURNED = "RETURNED"
    CANCELLED = "CANCELLED"


# A deployment in one of these states holds the asset
ACTIVE_DEPLOYMENT_STATUSES = (
    DeploymentStatus.PENDING_ACCOUNTING_APPROVAL,
    DeploymentStatus.APPROVED,
    DeploymentStatus.DEPLOYED,
)


class DisposalMethod(Enum):
    SALE = "SALE"
    SCRAP = "SCRAP"
    DONATION = "DONATION"
    TRADE_IN = "TRADE_IN"
    DESTRUCTION = "DESTRUCTION"
    OTHER = "OTHER"


class DisposalReason(Enum):
    SOLD = "SOLD"
    DONATED = "DONATED"
    SCRAPPED = "SCRAPPED"
    LOST = "LOST"
    STOLEN = "STOLEN"
    TRANSFERRED = "TRANSFERRED"
    END_OF_LIFE = "END_OF_LIFE"
    DAMAGED_BEYOND_REPAIR = "DAMAGED_BEYOND_REPAIR"
    OBSOLETE = "OBSOLETE"
    REGULATORY_COMPLIANCE = "REGULATORY_COMPLIANCE"


class RetirementReason(Enum):
    END_OF_USEFUL_LIFE = "END_OF_USEFUL_LIFE"
    FULLY_DEPRECIATED = "FULLY_DEPRECIATED"
    OBSOLETE = "OBSOLETE"
    DAMAGED_BEYOND_REPAIR = "DAMAGED_BEYOND_REPAIR"
    POLICY_CHANGE = "POLICY_CHANGE"
    UPGRADE_REPLACEMENT = "UPGRADE_REPLACEMENT"


class RetirementMethod(Enum):
    NORMAL_RETIREMENT = "NORMAL_RETIREMENT"
    EARLY_RETIREMENT = "EARLY_RETIREMENT"
    EMERGENCY_RETIREMENT = "EMERGENCY_RETIREMENT"
    PLANNED_REPLACEMENT = "PLANNED_REPLACEMENT"
    POLICY_DRIVEN = "POLICY_DRIVEN"


class AssetCondition(Enum):
    EXCELLENT = "EXCELLENT"
    GOOD = "GOOD"
    FAIR = "FAIR"
    POOR = "POOR"
    DAMAGED = "DAMAGED"
    NON_FUNCTIONAL = "NON_FUNCTIONAL"


class TransferType(Enum):
    """Transfer to another employee or to another business unit."""
    EMPLOYEE = "EMP"
    BUSINESS_UNIT = "BU"


class AssetHistoryAction(Enum):
    CREATED = "CREATED"
    UPDATED = "UPDATED"
    DEPLOYED = "DEPLOYED"
    DEPLOYMENT_APPROVED = "DEPLOYMENT_APPROVED"
    DEPLOYMENT_CANCELLED = "DEPLOYMENT_CANCELLED"
    RETURNED = "RETURNED"
    TRANSFERRED = "TRANSFERRED"
    DEPRECIATED = "DEPRECIATED"
    DISPOSED = "DISPOSED"
    RETIRED = "RETIRED"


# Statuses from which an asset may be disposed
DISPOSABLE_STATUSES = (
    AssetStatus.AVAILABLE,
    AssetStatus.DEPLOYED,
    AssetStatus.IN_MAINTENANCE,
    AssetStatus.DAMAGED,
    AssetStatus.FULLY_DEPRECIATED,
)


@dataclass(frozen=True)
class AssetCategoryData:
    """Input for a new asset category."""
    code: str
    name: str
    business_unit_id: UUID | None = None
    description: str | None = None
    default_depreciation_method: DepreciationMethod | None = None
    default_useful_life_years: int | None = None


@dataclass(frozen=True)
class AssetData:
    """Input for a new asset."""
    item_code: str
    description: str
    category_id: UUID
    business_unit_id: UUID
    serial_number: str | None = None
    brand: str | None = None
    purchase_price: Decimal | None = None
    purchase_date: date | None = None
    useful_life_years: int | None = None
    useful_life_months: int = 0
    salvage_value: Decimal = Decimal("0")
    depreciation_method: DepreciationMethod | None = None
    depreciation_rate: Decimal | None = None
    depreciation_start_date: date | None = None
    total_expected_units: Decimal | None = None
    department_id: UUID | None = None
    location: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class DeploymentResult:
    """Batch deployment outcome."""
    transmittal_number: str
    deployment_ids: tuple[UUID, ...] = field(default_factory=tuple)
    status: DeploymentStatus = DeploymentStatus.DEPLOYED


@dataclass(frozen=True)
class DisposalResult:
    disposal_id: UUID
    asset_id: UUID
    book_value_at_disposal: Decimal
    net_proceeds: Decimal
    gain_loss: Decimal


@dataclass(frozen=True)
class AssetHistoryEntry:
    asset_id: UUID
    action: AssetHistoryAction
    notes: str | None
    performed_by_id: UUID
    business_unit_id: UUID | None
    previous_status: str | None = None
    new_status: str | None = None
