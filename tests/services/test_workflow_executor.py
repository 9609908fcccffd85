"""
Tests for WorkflowExecutor (backoffice_services.workflow_executor).

Covers:
- execute_transition() for unguarded, guarded and routed transitions
- require_transition() error types
- GuardExecutor registration and the flag helpers
- workflow_transition trace records
"""

from uuid import uuid4

import pytest

from backoffice_kernel.domain.workflow import Guard, Transition, Workflow
from backoffice_kernel.exceptions import GuardNotSatisfiedError, InvalidTransitionError
from backoffice_services.workflow_executor import (
    OUTCOME_GUARD_FAILED,
    OUTCOME_NO_TRANSITION,
    OUTCOME_SUCCESS,
    GuardExecutor,
    WorkflowExecutor,
    flag_guard,
    negated_flag_guard,
)

HAS_BUDGET = Guard(name="has_budget", description="budget approver assigned")
HAS_FINAL = Guard(name="has_final", description="final approver assigned")
IS_READY = Guard(name="is_ready", description="document is ready")


def _routing_workflow() -> Workflow:
    return Workflow(
        name="routing_wf",
        description="",
        initial_state="draft",
        states=("draft", "budget", "final", "serving", "closed"),
        transitions=(
            Transition("draft", "budget", action="submit", guard=HAS_BUDGET),
            Transition("draft", "final", action="submit", guard=HAS_FINAL),
            Transition("draft", "serving", action="submit"),
            Transition("serving", "closed", action="close", guard=IS_READY),
        ),
        terminal_states=("closed",),
    )


@pytest.fixture
def executor() -> WorkflowExecutor:
    guards = GuardExecutor()
    guards.register(HAS_BUDGET.name, flag_guard("has_budget"))
    guards.register(HAS_FINAL.name, flag_guard("has_final"))
    guards.register(IS_READY.name, flag_guard("ready"))
    return WorkflowExecutor(guards)


class TestRouting:
    """First passing guard wins; unguarded transition is the fallback."""

    def test_first_guard_wins(self, executor):
        result = executor.execute_transition(
            _routing_workflow(), "doc", uuid4(), "draft", "submit",
            {"has_budget": True, "has_final": True},
        )
        assert result.success
        assert result.new_state == "budget"

    def test_second_guard(self, executor):
        result = executor.execute_transition(
            _routing_workflow(), "doc", uuid4(), "draft", "submit", {"has_final": True},
        )
        assert result.new_state == "final"

    def test_fallback(self, executor):
        result = executor.execute_transition(
            _routing_workflow(), "doc", uuid4(), "draft", "submit", {},
        )
        assert result.new_state == "serving"
        assert result.transition.guard is None

    def test_context_may_be_object(self, executor):
        class Ctx:
            has_budget = False
            has_final = True

        result = executor.execute_transition(
            _routing_workflow(), "doc", uuid4(), "draft", "submit", Ctx(),
        )
        assert result.new_state == "final"


class TestFailures:
    def test_no_transition(self, executor):
        result = executor.execute_transition(
            _routing_workflow(), "doc", uuid4(), "draft", "close", {},
        )
        assert not result.success
        assert result.failed_guard is None
        assert "no 'close' transition" in result.reason

    def test_guard_failed(self, executor):
        result = executor.execute_transition(
            _routing_workflow(), "doc", uuid4(), "serving", "close", {"ready": False},
        )
        assert not result.success
        assert result.failed_guard == "is_ready"

    def test_require_raises_invalid_transition(self, executor):
        with pytest.raises(InvalidTransitionError) as exc_info:
            executor.require_transition(
                _routing_workflow(), "doc", uuid4(), "closed", "submit", {},
            )
        assert exc_info.value.from_state == "closed"
        assert exc_info.value.action == "submit"

    def test_require_raises_guard_not_satisfied(self, executor):
        with pytest.raises(GuardNotSatisfiedError) as exc_info:
            executor.require_transition(
                _routing_workflow(), "doc", uuid4(), "serving", "close", {},
            )
        assert exc_info.value.guard == "is_ready"

    def test_require_returns_transition(self, executor):
        transition = executor.require_transition(
            _routing_workflow(), "doc", uuid4(), "serving", "close", {"ready": True},
        )
        assert transition.to_state == "closed"


class TestGuardExecutor:
    def test_unregistered_guard_fails_closed(self, captured_logs):
        guards = GuardExecutor()
        assert not guards.evaluate(Guard(name="unknown", description=""), {})
        assert any(
            r["message"] == "guard_no_evaluator" and r["guard_name"] == "unknown"
            for r in captured_logs()
        )

    def test_is_registered(self):
        guards = GuardExecutor()
        guards.register("g", lambda ctx: True)
        assert guards.is_registered("g")
        assert not guards.is_registered("h")

    def test_flag_helpers(self):
        assert flag_guard("x")({"x": 1})
        assert not flag_guard("x")({})
        assert not flag_guard("x")(None)
        assert negated_flag_guard("x")({})
        assert not negated_flag_guard("x")({"x": True})


class TestTrace:
    def test_outcomes_logged(self, executor, captured_logs):
        wf = _routing_workflow()
        entity_id = uuid4()
        executor.execute_transition(wf, "doc", entity_id, "draft", "submit", {})
        executor.execute_transition(wf, "doc", entity_id, "serving", "close", {})
        executor.execute_transition(wf, "doc", entity_id, "closed", "close", {})

        traces = [r for r in captured_logs() if r["message"] == "workflow_transition"]
        assert [t["outcome"] for t in traces] == [
            OUTCOME_SUCCESS, OUTCOME_GUARD_FAILED, OUTCOME_NO_TRANSITION,
        ]
        assert traces[0]["to_state"] == "serving"
        assert traces[0]["entity_id"] == str(entity_id)
        assert "to_state" not in traces[1]
