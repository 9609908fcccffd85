"""
Depreciation Module (``backoffice_modules.depreciation``).

Monthly, quarterly and annual depreciation runs over the asset register:
single-asset and batch calculation, recurring schedules with per-asset
execution results, and depreciation history and summaries.
"""

from backoffice_modules.depreciation.models import (
    BatchDepreciationResult,
    DepreciationScheduleData,
    DepreciationSummary,
    ExecutionAssetStatus,
    ExecutionStatus,
    ScheduleExecutionResult,
    ScheduleType,
)

__all__ = [
    "BatchDepreciationResult",
    "DepreciationScheduleData",
    "DepreciationSummary",
    "ExecutionAssetStatus",
    "ExecutionStatus",
    "ScheduleExecutionResult",
    "ScheduleType",
]
