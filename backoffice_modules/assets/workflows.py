"""
Asset Workflows.

State machines for the asset lifecycle and for a single deployment.
"""

from backoffice_kernel.domain.workflow import Guard, Transition, Workflow
from backoffice_kernel.logging_config import get_logger
from backoffice_services.workflow_executor import (
    GuardExecutor,
    flag_guard,
    negated_flag_guard,
)

logger = get_logger("modules.assets.workflows")


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

RETURNED_DAMAGED = Guard(
    name="returned_damaged",
    description="Asset came back in DAMAGED or NON_FUNCTIONAL condition",
)

NO_ACTIVE_DEPLOYMENT = Guard(
    name="no_active_deployment",
    description="Asset has no deployment that is pending, approved or deployed",
)

ACCOUNTING_APPROVAL_REQUIRED = Guard(
    name="accounting_approval_required",
    description="Deployments in this installation wait for accounting approval",
)


# -----------------------------------------------------------------------------
# Asset Workflow
# -----------------------------------------------------------------------------

_DISPOSABLE = ("AVAILABLE", "IN_MAINTENANCE", "DAMAGED", "FULLY_DEPRECIATED")
_RETIRABLE = ("AVAILABLE", "DEPLOYED", "IN_MAINTENANCE", "DAMAGED", "FULLY_DEPRECIATED", "LOST")

ASSET_WORKFLOW = Workflow(
    name="asset",
    description="Asset lifecycle",
    initial_state="AVAILABLE",
    states=(
        "AVAILABLE",
        "DEPLOYED",
        "IN_MAINTENANCE",
        "RETIRED",
        "LOST",
        "DAMAGED",
        "FULLY_DEPRECIATED",
        "DISPOSED",
    ),
    transitions=(
        Transition("AVAILABLE", "DEPLOYED", action="deploy"),
        Transition("DEPLOYED", "AVAILABLE", action="cancel_deployment"),
        Transition("DEPLOYED", "DAMAGED", action="return", guard=RETURNED_DAMAGED),
        Transition("DEPLOYED", "AVAILABLE", action="return"),
        Transition("DEPLOYED", "DEPLOYED", action="transfer_employee"),
        Transition("DEPLOYED", "AVAILABLE", action="transfer_business_unit"),
        Transition("AVAILABLE", "AVAILABLE", action="transfer_business_unit"),
        Transition("DEPLOYED", "DISPOSED", action="dispose", guard=NO_ACTIVE_DEPLOYMENT),
        *(Transition(s, "DISPOSED", action="dispose") for s in _DISPOSABLE),
        *(Transition(s, "RETIRED", action="retire") for s in _RETIRABLE),
    ),
    terminal_states=("RETIRED", "DISPOSED"),
)


# -----------------------------------------------------------------------------
# Deployment Workflow
# -----------------------------------------------------------------------------

DEPLOYMENT_WORKFLOW = Workflow(
    name="asset_deployment",
    description="One asset handed to one employee",
    initial_state="NEW",
    states=(
        "NEW",
        "PENDING_ACCOUNTING_APPROVAL",
        "APPROVED",
        "DEPLOYED",
        "RETURNED",
        "CANCELLED",
    ),
    transitions=(
        Transition("NEW", "PENDING_ACCOUNTING_APPROVAL", action="deploy",
                   guard=ACCOUNTING_APPROVAL_REQUIRED),
        Transition("NEW", "DEPLOYED", action="deploy"),
        Transition("PENDING_ACCOUNTING_APPROVAL", "DEPLOYED", action="approve",
                   sets_timestamp="accounting_approved_at"),
        Transition("PENDING_ACCOUNTING_APPROVAL", "CANCELLED", action="cancel"),
        Transition("APPROVED", "CANCELLED", action="cancel"),
        Transition("DEPLOYED", "CANCELLED", action="cancel"),
        Transition("APPROVED", "RETURNED", action="return", sets_timestamp="returned_date"),
        Transition("DEPLOYED", "RETURNED", action="return", sets_timestamp="returned_date"),
    ),
    terminal_states=("RETURNED", "CANCELLED"),
)


def register_asset_guards(guards: GuardExecutor) -> GuardExecutor:
    """Register the evaluators for every asset and deployment guard."""
    guards.register(RETURNED_DAMAGED.name, flag_guard("returned_damaged"))
    guards.register(NO_ACTIVE_DEPLOYMENT.name, negated_flag_guard("has_active_deployment"))
    guards.register(
        ACCOUNTING_APPROVAL_REQUIRED.name, flag_guard("require_accounting_approval"),
    )
    return guards


logger.info(
    "asset_workflows_registered",
    extra={
        "workflows": [ASSET_WORKFLOW.name, DEPLOYMENT_WORKFLOW.name],
        "transition_count": len(ASSET_WORKFLOW.transitions) + len(DEPLOYMENT_WORKFLOW.transitions),
    },
)
