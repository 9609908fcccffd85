"""Tests for workflow value objects and the declared document workflows."""

import pytest

from backoffice_kernel.domain.workflow import Guard, Transition, Workflow
from backoffice_modules.assets.workflows import ASSET_WORKFLOW, DEPLOYMENT_WORKFLOW
from backoffice_modules.material_requests.workflows import MATERIAL_REQUEST_WORKFLOW

ALL_WORKFLOWS = [MATERIAL_REQUEST_WORKFLOW, ASSET_WORKFLOW, DEPLOYMENT_WORKFLOW]


class TestWorkflowValidation:
    """Workflow refuses inconsistent definitions."""

    def test_initial_state_must_be_declared(self):
        with pytest.raises(ValueError, match="initial state"):
            Workflow(
                name="w", description="", initial_state="X",
                states=("A",), transitions=(),
            )

    def test_transition_to_unknown_state(self):
        with pytest.raises(ValueError, match="unknown state 'Z'"):
            Workflow(
                name="w", description="", initial_state="A",
                states=("A", "B"),
                transitions=(Transition("A", "Z", action="go"),),
            )

    def test_terminal_state_cannot_have_outgoing_transition(self):
        with pytest.raises(ValueError, match="terminal state"):
            Workflow(
                name="w", description="", initial_state="A",
                states=("A", "B"),
                transitions=(Transition("B", "A", action="reopen"),),
                terminal_states=("B",),
            )

    def test_actions_from_deduplicates(self):
        guard = Guard(name="g", description="")
        wf = Workflow(
            name="w", description="", initial_state="A",
            states=("A", "B", "C"),
            transitions=(
                Transition("A", "B", action="go", guard=guard),
                Transition("A", "C", action="go"),
                Transition("A", "C", action="skip"),
            ),
        )
        assert wf.actions_from("A") == ("go", "skip")
        assert len(wf.transitions_from("A")) == 3


class TestDeclaredWorkflows:
    """The document workflows shipped with the modules."""

    @pytest.mark.parametrize("workflow", ALL_WORKFLOWS, ids=lambda w: w.name)
    def test_terminal_states_have_no_exits(self, workflow):
        for state in workflow.states:
            if state in workflow.terminal_states:
                assert workflow.transitions_from(state) == ()

    @pytest.mark.parametrize("workflow", ALL_WORKFLOWS, ids=lambda w: w.name)
    def test_unguarded_fallback_is_last_per_action(self, workflow):
        """For each (state, action) a guarded branch never follows the unguarded one."""
        for state in workflow.states:
            for action in workflow.actions_from(state):
                candidates = [
                    t for t in workflow.transitions_from(state) if t.action == action
                ]
                unguarded = [i for i, t in enumerate(candidates) if t.guard is None]
                if unguarded:
                    assert unguarded[0] == len(candidates) - 1

    def test_material_request_terminal_states(self):
        assert set(MATERIAL_REQUEST_WORKFLOW.terminal_states) == {
            "RECEIVED", "CANCELLED", "DISAPPROVED",
        }

    def test_material_request_cannot_cancel_after_approval(self):
        for state in ("FOR_SERVING", "FOR_POSTING", "POSTED"):
            assert "cancel" not in MATERIAL_REQUEST_WORKFLOW.actions_from(state)

    def test_asset_terminal_states(self):
        assert set(ASSET_WORKFLOW.terminal_states) == {"RETIRED", "DISPOSED"}

    def test_deployment_starts_new(self):
        assert DEPLOYMENT_WORKFLOW.initial_state == "NEW"
        targets = {t.to_state for t in DEPLOYMENT_WORKFLOW.transitions_from("NEW")}
        assert targets == {"PENDING_ACCOUNTING_APPROVAL", "DEPLOYED"}
