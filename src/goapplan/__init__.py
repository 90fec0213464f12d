"""Goal-oriented action planning over boolean world states."""

from .engine import ActionExecutionError, ExecutionError, GoalNotReachedError, execute_plan
from .models import HeuristicKind, PlannerPolicy, WorldState
from .planner import (
    Plan,
    PlanExhaustedError,
    PlanNotFoundError,
    PlanResult,
    PlanningError,
    PlanningFailure,
    plan,
)
from .problems import PlanningProblem, ProblemLoadError, check_case, load_problem, load_problems, solve
from .schemas import Action

__all__ = [
    "Action",
    "ActionExecutionError",
    "ExecutionError",
    "GoalNotReachedError",
    "HeuristicKind",
    "Plan",
    "PlanExhaustedError",
    "PlanNotFoundError",
    "PlanResult",
    "PlannerPolicy",
    "PlanningError",
    "PlanningFailure",
    "PlanningProblem",
    "ProblemLoadError",
    "WorldState",
    "check_case",
    "execute_plan",
    "load_problem",
    "load_problems",
    "plan",
    "solve",
]
