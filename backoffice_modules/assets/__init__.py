"""
Asset Module (``backoffice_modules.assets``).

Responsibility
--------------
Asset register and custody: categories, assets with their depreciation
setup, deployments under transmittal numbers, returns, transfers,
disposals and retirements, plus the pure depreciation helpers shared with
``backoffice_modules.depreciation``.

Architecture position
---------------------
**Modules layer** -- domain models, ORM, workflows, pure helpers and the
``AssetService`` facade.

Failure modes
-------------
* Typed ``AssetError`` subclasses from ``backoffice_kernel.exceptions``.
* Depreciation helpers return ``Decimal("0")`` for zero/negative useful life.
"""

from backoffice_modules.assets.models import (
    AssetCategoryData,
    AssetCondition,
    AssetData,
    AssetStatus,
    DeploymentStatus,
    DepreciationMethod,
    DisposalMethod,
    DisposalReason,
    RetirementMethod,
    RetirementReason,
)
from backoffice_modules.assets.workflows import ASSET_WORKFLOW, DEPLOYMENT_WORKFLOW

__all__ = [
    "AssetCategoryData",
    "AssetCondition",
    "AssetData",
    "AssetStatus",
    "DeploymentStatus",
    "DepreciationMethod",
    "DisposalMethod",
    "DisposalReason",
    "RetirementMethod",
    "RetirementReason",
    "ASSET_WORKFLOW",
    "DEPLOYMENT_WORKFLOW",
]
