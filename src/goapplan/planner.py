"""A* planning over partial boolean world states."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from heapq import heappop, heappush
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

from goapplan.models import HeuristicKind, PlannerPolicy, WorldState, coerce_facts
from goapplan.schemas import Action

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping

    from goapplan.models import Conditions

__all__ = [
    "CompiledAction",
    "GoalDefinition",
    "Plan",
    "PlanExhaustedError",
    "PlanNotFoundError",
    "PlanResult",
    "PlannerEngine",
    "PlannerState",
    "PlanningError",
    "PlanningFailure",
    "SearchContext",
    "plan",
]


_LOGGER = logging.getLogger(__name__)

Fact = tuple[str, bool]


class PlanningError(RuntimeError):
    """Base exception raised when a plan is requested but none is available."""


class PlanNotFoundError(PlanningError):
    """Raised when the search space was exhausted without reaching the goal."""

    def __init__(self, expansions: int) -> None:
        """Store the number of expanded states."""
        super().__init__(
            f"No sequence of actions reaches the goal ({expansions} states expanded).",
        )
        self.expansions = expansions


class PlanExhaustedError(PlanningError):
    """Raised when the expansion budget ran out before the search finished."""

    def __init__(self, expansions: int) -> None:
        """Store the number of expanded states."""
        super().__init__(f"Expansion budget of {expansions} states exhausted.")
        self.expansions = expansions


class PlanningFailure(StrEnum):
    """Reasons a search can end without a plan."""

    NOT_FOUND = "not_found"
    EXHAUSTED = "exhausted"


def _freeze(conditions: Conditions) -> frozenset[Fact]:
    if isinstance(conditions, WorldState):
        return frozenset(conditions.facts.items())
    return frozenset(coerce_facts(conditions).items())


class PlannerState(BaseModel):
    """Immutable snapshot of a world state used as a search node.

    Facts are kept as a frozenset of ``(name, value)`` pairs, which is the
    canonical form: two snapshots with the same facts are equal and hash
    alike whatever order the facts were asserted in.
    """

    model_config = ConfigDict(frozen=True)

    facts: frozenset[tuple[str, bool]]

    @classmethod
    def from_conditions(cls, conditions: Conditions) -> PlannerState:
        """Snapshot a world state or plain fact mapping."""
        return cls(facts=_freeze(conditions))

    def apply(self, action: CompiledAction) -> PlannerState:
        """Return the successor state after overlaying the action's effects."""
        overwritten = {name for name, _ in action.provides}
        kept = frozenset(fact for fact in self.facts if fact[0] not in overwritten)
        return PlannerState(facts=kept.union(action.provides))

    def satisfies(self, conditions: frozenset[Fact]) -> bool:
        """Return whether every condition is asserted with the same value."""
        return conditions.issubset(self.facts)

    def to_world_state(self) -> WorldState:
        """Return a mutable copy of the snapshot."""
        return WorldState(facts=dict(self.facts))

    def __hash__(self) -> int:
        """Allow planner states to be used as dictionary keys."""
        return hash(self.facts)


class CompiledAction(BaseModel):
    """Frozen view of a caller's action taken when the search starts."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    action: Action
    requires: frozenset[tuple[str, bool]]
    provides: frozenset[tuple[str, bool]]
    cost: float

    @classmethod
    def from_action(cls, action: Action) -> CompiledAction:
        """Snapshot the action's conditions and cost."""
        return cls(
            action=action,
            requires=_freeze(action.preconditions),
            provides=_freeze(action.postconditions),
            cost=action.cost,
        )

    @property
    def name(self) -> str:
        """Return the name of the underlying action."""
        return self.action.name


class GoalDefinition(BaseModel):
    """Goal specification with helper heuristics."""

    model_config = ConfigDict(frozen=True)

    facts: frozenset[tuple[str, bool]]
    heuristic_kind: HeuristicKind = HeuristicKind.MISMATCH

    @classmethod
    def from_conditions(
        cls,
        conditions: Conditions,
        heuristic_kind: HeuristicKind = HeuristicKind.MISMATCH,
    ) -> GoalDefinition:
        """Construct a goal definition from a world state or fact mapping."""
        return cls(facts=_freeze(conditions), heuristic_kind=heuristic_kind)

    def is_satisfied(self, state: PlannerState) -> bool:
        """Return whether the goal is satisfied for the given state."""
        return state.satisfies(self.facts)

    def heuristic(self, state: PlannerState) -> float:
        """Estimate the remaining cost from ``state`` to the goal.

        The mismatch estimate assumes each unmatched goal fact needs at least
        one unit of cost. It overestimates when a single cheap action settles
        several goal facts at once; the zero estimate turns the search into a
        uniform-cost search and is always admissible.
        """
        if self.heuristic_kind is HeuristicKind.ZERO:
            return 0.0
        return float(len(self.facts.difference(state.facts)))


class TransitionRecord(BaseModel):
    """Record describing how a planner state was reached."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    previous_state: PlannerState
    action: Action


class FrontierEntry(BaseModel):
    """Item stored in the frontier priority queue."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    priority: float
    order: int
    cost: float
    state: PlannerState

    def __lt__(self, other: object) -> bool:
        """Order frontier entries by priority, then insertion order."""
        if not isinstance(other, FrontierEntry):
            return NotImplemented
        if self.priority != other.priority:
            return self.priority < other.priority
        return self.order < other.order


def _frontier_factory() -> list[FrontierEntry]:
    """Return a new empty frontier list."""
    return []


def _score_factory() -> dict[PlannerState, float]:
    """Return a fresh score mapping."""
    return {}


def _transition_factory() -> dict[PlannerState, TransitionRecord]:
    """Return a fresh transition mapping."""
    return {}


def _closed_factory() -> set[PlannerState]:
    return set()


class SearchContext(BaseModel):
    """Mutable structures required to perform A* search."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    frontier: list[FrontierEntry] = Field(default_factory=_frontier_factory)
    g_score: dict[PlannerState, float] = Field(default_factory=_score_factory)
    came_from: dict[PlannerState, TransitionRecord] = Field(default_factory=_transition_factory)
    closed: set[PlannerState] = Field(default_factory=_closed_factory)
    next_order: int = Field(default=0)
    expansions: int = Field(default=0)

    def has_entries(self) -> bool:
        """Return whether the frontier still contains entries."""
        return bool(self.frontier)

    def push(self, *, state: PlannerState, priority: float, cost: float = 0.0) -> None:
        """Insert a new entry into the frontier with the given priority."""
        order = self.next_order
        self.next_order += 1
        heappush(
            self.frontier,
            FrontierEntry(priority=priority, order=order, cost=cost, state=state),
        )

    def pop(self) -> FrontierEntry:
        """Remove and return the next frontier entry."""
        return heappop(self.frontier)

    def is_stale(self, entry: FrontierEntry) -> bool:
        """Return whether a cheaper path superseded the entry or it was expanded."""
        known_cost = self.g_score.get(entry.state, float("inf"))
        return entry.cost > known_cost or entry.state in self.closed

    def record_transition(
        self,
        *,
        next_state: PlannerState,
        previous_state: PlannerState,
        action: CompiledAction,
        cost: float,
        goal: GoalDefinition,
    ) -> None:
        """Register the best known path to a successor state."""
        self.came_from[next_state] = TransitionRecord(
            previous_state=previous_state,
            action=action.action,
        )
        self.g_score[next_state] = cost
        self.push(
            state=next_state,
            priority=cost + goal.heuristic(next_state),
            cost=cost,
        )


@dataclass(frozen=True, slots=True)
class Plan:
    """Ordered actions that transform the initial state into a goal state.

    The actions are the caller's own :class:`Action` objects, in execution
    order. An empty plan means the goal already held.
    """

    actions: tuple[Action, ...] = ()
    cost: float = 0.0
    expansions: int = 0

    @property
    def names(self) -> list[str]:
        """Return the action names in execution order."""
        return [action.name for action in self.actions]

    def __iter__(self) -> Iterator[Action]:
        return iter(self.actions)

    def __len__(self) -> int:
        return len(self.actions)


@dataclass(frozen=True, slots=True)
class PlanResult:
    """Outcome of a planning call: either a plan or a failure reason."""

    plan: Plan | None = None
    failure: PlanningFailure | None = None
    expansions: int = 0

    def __post_init__(self) -> None:
        if (self.plan is None) == (self.failure is None):
            message = "PlanResult requires exactly one of plan or failure."
            raise ValueError(message)

    @property
    def ok(self) -> bool:
        """Return whether a plan was found."""
        return self.plan is not None

    def unwrap(self) -> Plan:
        """Return the plan or raise the matching :class:`PlanningError`."""
        if self.plan is not None:
            return self.plan
        if self.failure is PlanningFailure.EXHAUSTED:
            raise PlanExhaustedError(self.expansions)
        raise PlanNotFoundError(self.expansions)


def _reconstruct_plan(
    came_from: Mapping[PlannerState, TransitionRecord],
    current: PlannerState,
    start: PlannerState,
) -> list[Action]:
    """Backtrack the plan from the goal state to the start state."""
    actions: list[Action] = []
    state = current
    while state != start:
        transition = came_from[state]
        actions.append(transition.action)
        state = transition.previous_state
    actions.reverse()
    return actions


class PlannerEngine(BaseModel):
    """Coordinator responsible for executing the A* planning algorithm.

    A closed state is reopened when a strictly cheaper path to it turns up,
    unless the policy disables ``reopen_closed``; closed-once search is
    faster but can miss the optimum when the heuristic is inconsistent.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    goal: GoalDefinition
    actions: list[CompiledAction]
    policy: PlannerPolicy
    context: SearchContext

    def initialize(self, start_state: PlannerState) -> None:
        """Seed the search context with the starting state."""
        self.context.g_score[start_state] = 0.0
        self.context.push(state=start_state, priority=self.goal.heuristic(start_state))

    def execute(self, start_state: PlannerState) -> PlanResult:
        """Perform the A* search and return the resulting plan or failure."""
        if self.goal.is_satisfied(start_state):
            _LOGGER.debug(
                "Goal already satisfied by the initial state.",
                extra={"event": "plan_trivial"},
            )
            return PlanResult(plan=Plan())

        self.initialize(start_state)
        budget = self.policy.max_expansions

        while self.context.has_entries():
            entry = self.context.pop()
            if self.context.is_stale(entry):
                continue

            current_state = entry.state
            if self.goal.is_satisfied(current_state):
                return self._success(current_state, start_state)

            if budget is not None and self.context.expansions >= budget:
                _LOGGER.info(
                    "Expansion budget exhausted before reaching the goal.",
                    extra={
                        "event": "plan_exhausted",
                        "expansions": self.context.expansions,
                    },
                )
                return PlanResult(
                    failure=PlanningFailure.EXHAUSTED,
                    expansions=self.context.expansions,
                )

            self.context.expansions += 1
            self.context.closed.add(current_state)
            self._expand_from(current_state)

        _LOGGER.info(
            "Unable to produce a plan to reach the goal.",
            extra={
                "event": "plan_not_found",
                "expansions": self.context.expansions,
            },
        )
        return PlanResult(
            failure=PlanningFailure.NOT_FOUND,
            expansions=self.context.expansions,
        )

    def _success(self, goal_state: PlannerState, start_state: PlannerState) -> PlanResult:
        actions = _reconstruct_plan(self.context.came_from, goal_state, start_state)
        found = Plan(
            actions=tuple(actions),
            cost=self.context.g_score[goal_state],
            expansions=self.context.expansions,
        )
        _LOGGER.info(
            "Plan generated successfully.",
            extra={
                "event": "plan_found",
                "actions": found.names,
                "cost": found.cost,
                "expansions": found.expansions,
            },
        )
        return PlanResult(plan=found, expansions=found.expansions)

    def _expand_from(self, state: PlannerState) -> None:
        """Explore applicable actions from the provided state."""
        current_cost = self.context.g_score[state]
        for action in self.actions:
            if not state.satisfies(action.requires):
                continue

            next_state = state.apply(action)
            tentative_cost = current_cost + action.cost
            known_cost = self.context.g_score.get(next_state, float("inf"))

            if tentative_cost >= known_cost:
                continue

            if next_state in self.context.closed:
                if not self.policy.reopen_closed:
                    continue
                self.context.closed.discard(next_state)
                _LOGGER.debug(
                    "Reopening state on a cheaper path.",
                    extra={
                        "event": "state_reopened",
                        "action": action.name,
                        "previous_cost": known_cost,
                        "cost": tentative_cost,
                    },
                )

            self.context.record_transition(
                next_state=next_state,
                previous_state=state,
                action=action,
                cost=tentative_cost,
                goal=self.goal,
            )


def _resolve_policy(policy: PlannerPolicy | None, overrides: dict[str, Any]) -> PlannerPolicy:
    base = policy or PlannerPolicy()
    updates = {key: value for key, value in overrides.items() if value is not None}
    if not updates:
        return base
    return PlannerPolicy.model_validate({**base.model_dump(), **updates})


def plan(
    initial_state: Conditions,
    goal_state: Conditions,
    actions: Iterable[Action],
    *,
    policy: PlannerPolicy | None = None,
    heuristic: HeuristicKind | None = None,
    max_expansions: int | None = None,
    reopen_closed: bool | None = None,
) -> PlanResult:
    """Find the cheapest sequence of ``actions`` turning ``initial_state`` into ``goal_state``.

    States may be :class:`WorldState` instances or plain ``{fact: bool}``
    mappings. Keyword arguments override the matching fields of ``policy``.
    Failure is reported through :attr:`PlanResult.failure`; call
    :meth:`PlanResult.unwrap` to turn it into an exception instead.
    """
    resolved = _resolve_policy(
        policy,
        {
            "heuristic": heuristic,
            "max_expansions": max_expansions,
            "reopen_closed": reopen_closed,
        },
    )
    start_state = PlannerState.from_conditions(initial_state)
    goal = GoalDefinition.from_conditions(goal_state, resolved.heuristic)
    compiled = [CompiledAction.from_action(action) for action in actions]

    _LOGGER.debug(
        "Starting GOAP search.",
        extra={
            "event": "plan_start",
            "available_actions": [action.name for action in compiled],
            "goal": sorted(name for name, _ in goal.facts),
            "heuristic": resolved.heuristic.value,
        },
    )

    engine = PlannerEngine(
        goal=goal,
        actions=compiled,
        policy=resolved,
        context=SearchContext(),
    )
    return engine.execute(start_state)
