"""
Leave Request Workflow.

A request waits first on the employee's direct approver and then on HR.
Either stage may reject; the requester may cancel while it is pending and
edit it until the manager has acted.
"""

from backoffice_kernel.domain.workflow import Transition, Workflow
from backoffice_kernel.logging_config import get_logger

logger = get_logger("modules.leave.workflows")


LEAVE_REQUEST_WORKFLOW = Workflow(
    name="leave_request",
    description="Manager then HR approval of a leave request",
    initial_state="PENDING_MANAGER",
    states=(
        "PENDING_MANAGER",
        "PENDING_HR",
        "APPROVED",
        "REJECTED",
        "CANCELLED",
    ),
    transitions=(
        Transition("PENDING_MANAGER", "PENDING_MANAGER", action="update"),
        Transition("PENDING_MANAGER", "PENDING_HR", action="manager_approve",
                   sets_timestamp="manager_action_at"),
        Transition("PENDING_MANAGER", "REJECTED", action="manager_reject",
                   sets_timestamp="manager_action_at"),
        Transition("PENDING_HR", "APPROVED", action="hr_approve",
                   sets_timestamp="hr_action_at"),
        Transition("PENDING_HR", "REJECTED", action="hr_reject",
                   sets_timestamp="hr_action_at"),
        Transition("PENDING_MANAGER", "CANCELLED", action="cancel",
                   sets_timestamp="cancelled_at"),
        Transition("PENDING_HR", "CANCELLED", action="cancel",
                   sets_timestamp="cancelled_at"),
    ),
    terminal_states=("APPROVED", "REJECTED", "CANCELLED"),
)


logger.info(
    "leave_request_workflow_registered",
    extra={
        "workflow": LEAVE_REQUEST_WORKFLOW.name,
        "state_count": len(LEAVE_REQUEST_WORKFLOW.states),
        "transition_count": len(LEAVE_REQUEST_WORKFLOW.transitions),
    },
)
