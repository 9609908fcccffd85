"""
State-machine declarations for document lifecycles.

Material requests, asset deployments and depreciation executions declare
their states and transitions with these frozen value objects.  Nothing here
touches the database; ``backoffice_services.workflow_executor`` decides
which transition fires.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Guard:
    """Named precondition on a transition.  Evaluated by the executor, not here."""

    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    """
    ``from_state --action--> to_state``.

    ``sets_timestamp`` names the document attribute stamped with the clock
    when the transition is applied (``date_approved``, ``cancelled_at``).
    """

    from_state: str
    to_state: str
    action: str
    guard: Guard | None = None
    sets_timestamp: str | None = None


@dataclass(frozen=True)
class Workflow:
    """
    A document lifecycle.

    Construction fails with ``ValueError`` when the initial state or a
    transition endpoint is undeclared, or when a terminal state has an
    outgoing transition.
    """

    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        declared = set(self.states)
        if self.initial_state not in declared:
            raise ValueError(
                f"{self.name}: initial state '{self.initial_state}' is not declared"
            )
        for t in self.transitions:
            undeclared = [s for s in (t.from_state, t.to_state) if s not in declared]
            if undeclared:
                raise ValueError(
                    f"{self.name}: '{t.action}' uses unknown state '{undeclared[0]}'"
                )
            if t.from_state in self.terminal_states:
                raise ValueError(
                    f"{self.name}: terminal state '{t.from_state}' "
                    f"cannot leave via '{t.action}'"
                )

    def transitions_from(self, state: str) -> tuple[Transition, ...]:
        return tuple(t for t in self.transitions if t.from_state == state)

    def actions_from(self, state: str) -> tuple[str, ...]:
        """Action names available in ``state``, first-declared order, no repeats."""
        return tuple(dict.fromkeys(t.action for t in self.transitions_from(state)))
