"""Step-by-step execution of plans against a world state."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from goapplan.models import WorldState, coerce_facts

if TYPE_CHECKING:
    from collections.abc import Iterable

    from goapplan.models import Conditions
    from goapplan.schemas import Action

__all__ = [
    "ActionExecutionError",
    "ExecutionError",
    "GoalNotReachedError",
    "execute_plan",
]


_LOGGER = logging.getLogger(__name__)


class ExecutionError(RuntimeError):
    """Base exception raised when executing a GOAP plan fails."""


class ActionExecutionError(ExecutionError):
    """Raised when a plan step is not applicable to the current state."""

    def __init__(self, action_name: str, step: int, missing: dict[str, bool]) -> None:
        """Store the failing action, its position and the unmet preconditions."""
        message = (
            f"Action '{action_name}' at step {step} is not applicable; "
            f"unmet preconditions: {missing}"
        )
        super().__init__(message)
        self.action_name = action_name
        self.step = step
        self.missing = missing


class GoalNotReachedError(ExecutionError):
    """Raised when the plan ran to completion without satisfying the goal."""

    def __init__(self, missing: dict[str, bool]) -> None:
        """Store the goal facts that still do not hold."""
        super().__init__(f"Plan finished without satisfying goal facts: {missing}")
        self.missing = missing


def _unmet(state: WorldState, conditions: Conditions) -> dict[str, bool]:
    """Return the conditions that do not hold in ``state``."""
    facts = conditions.facts if isinstance(conditions, WorldState) else coerce_facts(conditions)
    return {
        name: value
        for name, value in sorted(facts.items())
        if state.get(name) != value
    }


def execute_plan(
    *,
    state: Conditions,
    plan: Iterable[Action],
    goal: Conditions | None = None,
) -> WorldState:
    """Apply each action of ``plan`` in order and return the final state.

    ``state`` is copied, never modified. Every step checks the action's
    preconditions before overlaying its postconditions. When ``goal`` is
    given the final state must satisfy it.
    """
    current = WorldState.from_mapping(state)

    for step, action in enumerate(plan):
        missing = _unmet(current, action.preconditions)
        if missing:
            _LOGGER.error(
                "Action '%s' is not applicable.",
                action.name,
                extra={
                    "event": "action_failure",
                    "action": action.name,
                    "step": step,
                    "missing": missing,
                },
            )
            raise ActionExecutionError(action.name, step, missing)

        current = action.apply(current)
        _LOGGER.debug(
            "Action applied.",
            extra={"event": "action_complete", "action": action.name, "step": step},
        )

    if goal is not None:
        missing = _unmet(current, goal)
        if missing:
            _LOGGER.error(
                "Goal not satisfied after executing the plan.",
                extra={"event": "goal_not_reached", "missing": missing},
            )
            raise GoalNotReachedError(missing)

    return current
