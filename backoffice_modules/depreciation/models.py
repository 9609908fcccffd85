"""
Depreciation Domain Models.

The nouns of depreciation runs: schedules, executions, per-asset outcomes
and the batch/summary results handed back to callers.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID


class ScheduleType(Enum):
    """How often a depreciation schedule runs."""
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    ANNUALLY = "ANNUALLY"

    @property
    def period_months(self) -> int:
        return _PERIOD_MONTHS[self]


_PERIOD_MONTHS = {
    ScheduleType.MONTHLY: 1,
    ScheduleType.QUARTERLY: 3,
    ScheduleType.ANNUALLY: 12,
}


class ExecutionStatus(Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class ExecutionAssetStatus(Enum):
    """Outcome for one asset inside a schedule execution."""
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"
    FULLY_DEPRECIATED = "FULLY_DEPRECIATED"
    NO_SETUP = "NO_SETUP"


@dataclass(frozen=True)
class DepreciationScheduleData:
    """Input for creating or updating a depreciation schedule."""
    name: str
    schedule_type: ScheduleType = ScheduleType.MONTHLY
    execution_day: int | None = None
    description: str | None = None
    include_categories: tuple[UUID, ...] = ()
    exclude_categories: tuple[UUID, ...] = ()
    is_active: bool = True


@dataclass(frozen=True)
class AssetDepreciationError:
    """Why one asset in a batch was not depreciated."""
    asset_id: UUID
    code: str
    message: str
    item_code: str | None = None


@dataclass(frozen=True)
class BatchDepreciationResult:
    """Outcome of ``DepreciationService.calculate_batch``."""
    calculation_date: date
    processed: int
    successful: int
    total_depreciation: Decimal
    record_ids: tuple[UUID, ...] = field(default_factory=tuple)
    errors: tuple[AssetDepreciationError, ...] = field(default_factory=tuple)

    @property
    def failed(self) -> int:
        return len(self.errors)


@dataclass(frozen=True)
class ExecutionAssetResult:
    asset_id: UUID
    status: ExecutionAssetStatus
    depreciation_amount: Decimal = Decimal("0")
    book_value_before: Decimal | None = None
    book_value_after: Decimal | None = None
    error_message: str | None = None


@dataclass(frozen=True)
class ScheduleExecutionResult:
    """Outcome of one schedule run."""
    execution_id: UUID
    schedule_id: UUID | None
    status: ExecutionStatus
    total_assets: int
    successful: int
    failed: int
    skipped: int
    total_depreciation: Decimal
    duration_ms: int
    started_at: datetime
    completed_at: datetime | None
    asset_results: tuple[ExecutionAssetResult, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class DepreciationTotals:
    """Asset count, cost, accumulated depreciation and book value of a group."""
    key: str
    asset_count: int = 0
    total_cost: Decimal = Decimal("0")
    accumulated_depreciation: Decimal = Decimal("0")
    book_value: Decimal = Decimal("0")
    monthly_depreciation: Decimal = Decimal("0")


@dataclass(frozen=True)
class DepreciationSummary:
    business_unit_id: UUID
    asset_count: int
    fully_depreciated_count: int
    total_cost: Decimal
    accumulated_depreciation: Decimal
    book_value: Decimal
    by_method: tuple[DepreciationTotals, ...] = field(default_factory=tuple)
    by_category: tuple[DepreciationTotals, ...] = field(default_factory=tuple)
