"""
Material Request Module (``backoffice_modules.material_requests``).

Responsibility
--------------
Internal procurement requests with line items, routed through optional
review and budget approval, recommending and final approval, then served
by purchasing, posted by accounting and received by the requester's unit.

Architecture position
---------------------
**Modules layer** -- domain models, ORM, workflow, pure helpers and the
``MaterialRequestService`` facade.
"""

from backoffice_modules.material_requests.models import (
    ApprovalStatus,
    ApproverType,
    MaterialRequestData,
    MaterialRequestItemData,
    MaterialRequestStatus,
    Page,
    RequestType,
    ServeResult,
    SupplierInfo,
)
from backoffice_modules.material_requests.workflows import MATERIAL_REQUEST_WORKFLOW

__all__ = [
    "ApprovalStatus",
    "ApproverType",
    "MaterialRequestData",
    "MaterialRequestItemData",
    "MaterialRequestStatus",
    "Page",
    "RequestType",
    "ServeResult",
    "SupplierInfo",
    "MATERIAL_REQUEST_WORKFLOW",
]
