"""
Transition resolution for declared workflows.

``WorkflowExecutor`` finds the transitions leaving ``current_state`` on
``action``, tries them in declaration order and takes the first whose guard
passes.  Several transitions may share a state and action to express routing
("submit goes to budget approval when a budget approver is assigned,
otherwise to recommending approval").  Every attempt is logged as one
``workflow_transition`` record whatever the outcome.

The executor performs no ORM work; module services call
``require_transition`` and write the returned state onto their own models.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable
from uuid import UUID

from backoffice_kernel.domain.workflow import Guard, Transition, Workflow
from backoffice_kernel.exceptions import GuardNotSatisfiedError, InvalidTransitionError
from backoffice_kernel.logging_config import get_logger

logger = get_logger("services.workflow_executor")

OUTCOME_SUCCESS = "success"
OUTCOME_GUARD_FAILED = "guard_failed"
OUTCOME_NO_TRANSITION = "no_transition"


@dataclass(frozen=True)
class TransitionResult:
    success: bool
    new_state: str | None = None
    transition: Transition | None = None
    reason: str = ""
    failed_guard: str | None = None


def context_value(context: Any, key: str, default: Any = None) -> Any:
    """Read ``key`` from a dict context or an attribute of an object context."""
    if context is None:
        return default
    if isinstance(context, dict):
        return context.get(key, default)
    return getattr(context, key, default)


def flag_guard(key: str) -> Callable[[Any], bool]:
    return lambda ctx: bool(context_value(ctx, key, False))


def negated_flag_guard(key: str) -> Callable[[Any], bool]:
    return lambda ctx: not context_value(ctx, key, False)


class GuardExecutor:
    """
    Guard evaluators keyed by guard name.

    Workflows only declare guards by name; the owning module registers the
    callable that decides them.  A guard with no evaluator fails.
    """

    def __init__(self) -> None:
        self._evaluators: dict[str, Callable[[Any], bool]] = {}

    def register(self, guard_name: str, evaluator: Callable[[Any], bool]) -> None:
        self._evaluators[guard_name] = evaluator

    def is_registered(self, guard_name: str) -> bool:
        return guard_name in self._evaluators

    def evaluate(self, guard: Guard, context: Any = None) -> bool:
        evaluator = self._evaluators.get(guard.name)
        if evaluator is None:
            logger.warning("guard_no_evaluator", extra={"guard_name": guard.name})
            return False
        return bool(evaluator(context))


class WorkflowExecutor:
    def __init__(self, guard_executor: GuardExecutor | None = None) -> None:
        self._guard_executor = guard_executor or GuardExecutor()

    @property
    def guards(self) -> GuardExecutor:
        return self._guard_executor

    def execute_transition(
        self,
        workflow: Workflow,
        entity_type: str,
        entity_id: UUID,
        current_state: str,
        action: str,
        context: Any = None,
    ) -> TransitionResult:
        """Resolve a transition.  Business outcomes are returned, not raised."""
        started = time.monotonic()

        def trace(outcome: str, reason: str, to_state: str | None = None) -> None:
            record: dict[str, Any] = {
                "workflow": workflow.name,
                "action": action,
                "entity_type": entity_type,
                "entity_id": str(entity_id),
                "from_state": current_state,
                "outcome": outcome,
                "reason": reason,
                "duration_ms": round((time.monotonic() - started) * 1000, 3),
            }
            if to_state is not None:
                record["to_state"] = to_state
            logger.info("workflow_transition", extra=record)

        candidates = [
            t for t in workflow.transitions
            if t.from_state == current_state and t.action == action
        ]
        if not candidates:
            reason = (
                f"{workflow.name} has no '{action}' transition "
                f"from '{current_state}'"
            )
            trace(OUTCOME_NO_TRANSITION, reason)
            return TransitionResult(success=False, reason=reason)

        rejected_by: Guard | None = None
        for transition in candidates:
            guard = transition.guard
            if guard is None or self._guard_executor.evaluate(guard, context):
                trace(OUTCOME_SUCCESS, "allowed", transition.to_state)
                return TransitionResult(
                    success=True,
                    new_state=transition.to_state,
                    transition=transition,
                    reason="allowed",
                )
            rejected_by = guard

        assert rejected_by is not None
        reason = f"guard '{rejected_by.name}' not satisfied"
        trace(OUTCOME_GUARD_FAILED, reason)
        return TransitionResult(success=False, reason=reason, failed_guard=rejected_by.name)

    def require_transition(
        self,
        workflow: Workflow,
        entity_type: str,
        entity_id: UUID,
        current_state: str,
        action: str,
        context: Any = None,
    ) -> Transition:
        """
        ``execute_transition`` that raises ``InvalidTransitionError`` when no
        transition exists and ``GuardNotSatisfiedError`` when every candidate's
        guard failed.
        """
        result = self.execute_transition(
            workflow, entity_type, entity_id, current_state, action, context,
        )
        if result.success:
            assert result.transition is not None
            return result.transition
        if result.failed_guard is not None:
            raise GuardNotSatisfiedError(workflow.name, action, result.failed_guard)
        raise InvalidTransitionError(workflow.name, current_state, action)
