"""Tests for step-by-step plan execution."""

from __future__ import annotations

import pytest

from goapplan.engine import ActionExecutionError, GoalNotReachedError, execute_plan
from goapplan.models import WorldState
from goapplan.schemas import Action


def _fire_actions() -> tuple[Action, Action, Action]:
    grab = Action(name="grab_bucket", postconditions={"has_bucket": True})
    fetch = Action(
        name="fetch_water",
        preconditions={"has_bucket": True},
        postconditions={"has_water": True},
    )
    douse = Action(
        name="put_out_fire",
        cost=2,
        preconditions={"has_water": True},
        postconditions={"on_fire": False},
    )
    return grab, fetch, douse


def test_execute_plan_applies_actions_in_order() -> None:
    """Each step overlays its postconditions on a copy of the state."""
    grab, fetch, douse = _fire_actions()
    initial = WorldState(facts={"on_fire": True})

    final = execute_plan(state=initial, plan=[grab, fetch, douse], goal={"on_fire": False})

    assert final.as_dict() == {
        "has_bucket": True,
        "has_water": True,
        "on_fire": False,
    }
    assert initial == WorldState(facts={"on_fire": True})


def test_execute_plan_rejects_inapplicable_step() -> None:
    """A step whose preconditions fail stops execution with the step index."""
    grab, fetch, douse = _fire_actions()

    with pytest.raises(ActionExecutionError) as exc_info:
        execute_plan(state={"on_fire": True}, plan=[grab, douse, fetch])

    error = exc_info.value
    assert error.action_name == "put_out_fire"
    assert error.step == 1
    assert error.missing == {"has_water": True}


def test_execute_plan_reports_unreached_goal() -> None:
    """Finishing the plan without meeting the goal is an execution error."""
    grab, fetch, _ = _fire_actions()

    with pytest.raises(GoalNotReachedError) as exc_info:
        execute_plan(state={"on_fire": True}, plan=[grab, fetch], goal={"on_fire": False})

    assert exc_info.value.missing == {"on_fire": False}


def test_execute_empty_plan_returns_copy() -> None:
    """An empty plan returns an equal but independent state."""
    initial = WorldState(facts={"on_fire": False})

    final = execute_plan(state=initial, plan=[], goal={"on_fire": False})

    assert final == initial
    assert final is not initial


def test_execute_plan_parses_textual_goal_values() -> None:
    """A goal spelled with "false" is checked as a boolean."""
    grab, fetch, douse = _fire_actions()

    final = execute_plan(
        state={"on_fire": True},
        plan=[grab, fetch, douse],
        goal={"on_fire": "false"},
    )

    assert final.get("on_fire") is False
