"""
Material Request Workflow.

State machine for a material request from draft through approval,
serving, posting and receipt.  Routing branches (review, budget and final
approval stages that apply only when an approver is assigned) are guarded
transitions sharing one action; the first passing guard wins.
"""

from backoffice_kernel.domain.workflow import Guard, Transition, Workflow
from backoffice_kernel.logging_config import get_logger
from backoffice_services.workflow_executor import GuardExecutor, flag_guard

logger = get_logger("modules.material_requests.workflows")


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

STORE_USE_REVIEW = Guard(
    name="store_use_review",
    description="Request is for store use and a reviewer is assigned",
)

BUDGET_APPROVER_ASSIGNED = Guard(
    name="budget_approver_assigned",
    description="A budget approver is assigned",
)

REC_APPROVER_ASSIGNED = Guard(
    name="rec_approver_assigned",
    description="A recommending approver is assigned",
)

FINAL_APPROVER_ASSIGNED = Guard(
    name="final_approver_assigned",
    description="A final approver is assigned",
)

FULLY_SERVED = Guard(
    name="fully_served",
    description="Every line has been served in full",
)


# -----------------------------------------------------------------------------
# Material Request Workflow
# -----------------------------------------------------------------------------

_CANCELLABLE = (
    "DRAFT",
    "FOR_REVIEW",
    "PENDING_BUDGET_APPROVAL",
    "FOR_REC_APPROVAL",
    "FOR_FINAL_APPROVAL",
    "FOR_EDIT",
)


def _route(from_state: str, action: str, *, review: bool) -> tuple[Transition, ...]:
    """Transitions into the next approval stage after ``from_state``."""
    routes = []
    if review:
        routes.append(Transition(from_state, "FOR_REVIEW", action=action, guard=STORE_USE_REVIEW))
    routes.extend((
        Transition(from_state, "PENDING_BUDGET_APPROVAL", action=action,
                   guard=BUDGET_APPROVER_ASSIGNED),
        Transition(from_state, "FOR_REC_APPROVAL", action=action, guard=REC_APPROVER_ASSIGNED),
        Transition(from_state, "FOR_FINAL_APPROVAL", action=action),
    ))
    return tuple(routes)


MATERIAL_REQUEST_WORKFLOW = Workflow(
    name="material_request",
    description="Material request approval and fulfillment",
    initial_state="DRAFT",
    states=(
        "DRAFT",
        "FOR_REVIEW",
        "PENDING_BUDGET_APPROVAL",
        "FOR_REC_APPROVAL",
        "FOR_FINAL_APPROVAL",
        "FOR_SERVING",
        "FOR_POSTING",
        "POSTED",
        "RECEIVED",
        "CANCELLED",
        "DISAPPROVED",
        "FOR_EDIT",
    ),
    transitions=(
        # Editing
        Transition("DRAFT", "DRAFT", action="update"),
        Transition("FOR_EDIT", "DRAFT", action="update"),

        # Submission and pre-approval stages
        *_route("DRAFT", "submit", review=True),
        *_route("FOR_REVIEW", "review_approve", review=False),
        Transition("FOR_REVIEW", "DISAPPROVED", action="review_disapprove"),
        *(t for t in _route("PENDING_BUDGET_APPROVAL", "budget_approve", review=False)
          if t.to_state != "PENDING_BUDGET_APPROVAL"),
        Transition("PENDING_BUDGET_APPROVAL", "DISAPPROVED", action="budget_disapprove"),

        # Recommending and final approval
        Transition("FOR_REC_APPROVAL", "FOR_FINAL_APPROVAL", action="approve",
                   guard=FINAL_APPROVER_ASSIGNED),
        Transition("FOR_REC_APPROVAL", "FOR_SERVING", action="approve",
                   sets_timestamp="date_approved"),
        Transition("FOR_FINAL_APPROVAL", "FOR_SERVING", action="approve",
                   sets_timestamp="date_approved"),
        Transition("FOR_REC_APPROVAL", "DISAPPROVED", action="reject"),
        Transition("FOR_FINAL_APPROVAL", "DISAPPROVED", action="reject"),

        # Cancellation
        *(Transition(s, "CANCELLED", action="cancel", sets_timestamp="cancelled_at")
          for s in _CANCELLABLE),

        # Purchaser edit
        Transition("FOR_SERVING", "FOR_EDIT", action="mark_for_edit",
                   sets_timestamp="marked_for_edit_at"),
        Transition("FOR_EDIT", "FOR_SERVING", action="complete_edit",
                   sets_timestamp="edit_completed_at"),

        # Fulfillment
        Transition("FOR_SERVING", "FOR_POSTING", action="serve", guard=FULLY_SERVED,
                   sets_timestamp="served_at"),
        Transition("FOR_SERVING", "FOR_SERVING", action="serve", sets_timestamp="served_at"),
        Transition("FOR_POSTING", "POSTED", action="post", sets_timestamp="date_posted"),
        Transition("POSTED", "RECEIVED", action="receive", sets_timestamp="date_received"),
    ),
    terminal_states=("RECEIVED", "CANCELLED", "DISAPPROVED"),
)


def register_material_request_guards(guards: GuardExecutor) -> GuardExecutor:
    """Register the evaluators for every material-request guard."""
    guards.register(STORE_USE_REVIEW.name, flag_guard("store_use_review"))
    guards.register(BUDGET_APPROVER_ASSIGNED.name, flag_guard("has_budget_approver"))
    guards.register(REC_APPROVER_ASSIGNED.name, flag_guard("has_rec_approver"))
    guards.register(FINAL_APPROVER_ASSIGNED.name, flag_guard("has_final_approver"))
    guards.register(FULLY_SERVED.name, flag_guard("fully_served"))
    return guards


logger.info(
    "material_request_workflow_registered",
    extra={
        "workflow": MATERIAL_REQUEST_WORKFLOW.name,
        "state_count": len(MATERIAL_REQUEST_WORKFLOW.states),
        "transition_count": len(MATERIAL_REQUEST_WORKFLOW.transitions),
    },
)
