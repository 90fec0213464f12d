"""JSON planning problems and expected-plan test cases."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from goapplan.models import WorldState
from goapplan.planner import plan
from goapplan.schemas import Action

if TYPE_CHECKING:
    from goapplan.models import PlannerPolicy
    from goapplan.planner import PlanResult

__all__ = [
    "CaseOutcome",
    "PlanningProblem",
    "ProblemLoadError",
    "check_case",
    "load_problem",
    "load_problems",
    "solve",
]


_LOGGER = logging.getLogger(__name__)


class ProblemLoadError(RuntimeError):
    """Raised when a problem file cannot be read or does not validate."""

    def __init__(self, path: Path, reason: str) -> None:
        """Record the offending path alongside the failure reason."""
        super().__init__(f"Unable to load planning problem '{path}': {reason}")
        self.path = path
        self.reason = reason


def _empty_state() -> dict[str, bool]:
    return {}


class PlanningProblem(BaseModel):
    """A planning request, optionally annotated with the plan it should yield.

    The JSON layout is ``{"actions": [...], "initial_state": {...},
    "goal_state": {...}, "expected_actions": [...]}`` where each action is
    ``{"name", "cost", "pre_conditions", "post_conditions"}``.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str = ""
    actions: list[Action] = Field(default_factory=list)
    initial_state: dict[str, bool] = Field(
        default_factory=_empty_state,
        validation_alias=AliasChoices("initial_state", "initial"),
    )
    goal_state: dict[str, bool] = Field(
        default_factory=_empty_state,
        validation_alias=AliasChoices("goal_state", "goal"),
    )
    expected_actions: list[str] | None = None

    def initial(self) -> WorldState:
        """Return the initial state as a world state."""
        return WorldState.from_mapping(self.initial_state)

    def goal(self) -> WorldState:
        """Return the goal as a world state."""
        return WorldState.from_mapping(self.goal_state)


class CaseOutcome(BaseModel):
    """Comparison between a case's expected plan and the computed one.

    ``expected`` is ``None`` when the problem names no expected actions; such
    cases are solved and reported but always pass.
    """

    name: str
    passed: bool
    expected: list[str] | None
    actual: list[str] | None
    failure: str | None = None


def load_problem(path: Path | str) -> PlanningProblem:
    """Read and validate a single JSON problem file."""
    source = Path(path)
    try:
        text = source.read_text(encoding="utf-8")
    except OSError as exc:
        raise ProblemLoadError(source, str(exc)) from exc

    try:
        problem = PlanningProblem.model_validate_json(text)
    except ValidationError as exc:
        raise ProblemLoadError(source, str(exc)) from exc

    if not problem.name:
        problem.name = source.name
    _LOGGER.debug(
        "Loaded planning problem.",
        extra={
            "event": "problem_loaded",
            "problem": problem.name,
            "actions": len(problem.actions),
        },
    )
    return problem


def load_problems(directory: Path | str) -> list[PlanningProblem]:
    """Load every ``*.json`` problem in ``directory`` sorted by file name."""
    root = Path(directory)
    if not root.is_dir():
        raise ProblemLoadError(root, "not a directory")
    return [load_problem(path) for path in sorted(root.glob("*.json"))]


def solve(problem: PlanningProblem, policy: PlannerPolicy | None = None) -> PlanResult:
    """Plan for ``problem`` with the given planner policy."""
    return plan(problem.initial_state, problem.goal_state, problem.actions, policy=policy)


def check_case(problem: PlanningProblem, policy: PlannerPolicy | None = None) -> CaseOutcome:
    """Solve ``problem`` and compare the plan with its expected action names.

    A search that finds no plan passes only when an empty action list is
    expected. Problems without ``expected_actions`` have nothing to compare
    and pass whatever the planner returns.
    """
    expected = problem.expected_actions
    result = solve(problem, policy)

    if result.plan is None:
        failure = result.failure.value if result.failure is not None else None
        outcome = CaseOutcome(
            name=problem.name,
            passed=not expected,
            expected=expected,
            actual=None,
            failure=failure,
        )
    else:
        actual = result.plan.names
        outcome = CaseOutcome(
            name=problem.name,
            passed=expected is None or actual == expected,
            expected=expected,
            actual=actual,
        )

    if not outcome.passed:
        _LOGGER.warning(
            "Case '%s' produced an unexpected plan.",
            problem.name,
            extra={
                "event": "case_failed",
                "expected": outcome.expected,
                "actual": outcome.actual,
            },
        )
    return outcome
