"""Typer-based command line interface for solving GOAP planning problems."""

from __future__ import annotations

import json
from enum import StrEnum
from pathlib import Path
from typing import Annotated

import typer
from pydantic import ValidationError

from goapplan.logging import configure_logging as configure_structured_logging
from goapplan.models import HeuristicKind, PlannerPolicy
from goapplan.problems import ProblemLoadError, check_case, load_problem, load_problems, solve

__all__ = ["app"]


class LogLevel(StrEnum):
    """Logging levels offered as CLI options."""

    CRITICAL = "CRITICAL"
    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"
    DEBUG = "DEBUG"


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="Compute least-cost GOAP plans from JSON problem files.",
)


HeuristicOption = Annotated[
    HeuristicKind,
    typer.Option(help="Remaining-cost estimate used to order the search.", case_sensitive=False),
]
MaxExpansionsOption = Annotated[
    int | None,
    typer.Option(min=1, help="Give up after expanding this many states."),
]
ClosedOnceOption = Annotated[
    bool,
    typer.Option(
        "--closed-once/--reopen",
        help="Never revisit an expanded state, even on a cheaper path.",
    ),
]
JsonOutOption = Annotated[
    Path | None,
    typer.Option(dir_okay=False, help="Optional path for saving the JSON output."),
]
LogLevelOption = Annotated[
    LogLevel,
    typer.Option(help="Logging verbosity for the run.", case_sensitive=False),
]


def _configure_logging(level: LogLevel) -> None:
    """Initialise structured logging according to the requested level."""
    configure_structured_logging(level.value)


def _build_policy(
    heuristic: HeuristicKind,
    max_expansions: int | None,
    *,
    closed_once: bool,
) -> PlannerPolicy:
    """Translate CLI options into a planner policy."""
    try:
        return PlannerPolicy(
            heuristic=heuristic,
            max_expansions=max_expansions,
            reopen_closed=not closed_once,
        )
    except ValidationError as exc:
        message = f"Invalid planner configuration: {exc}"
        raise typer.BadParameter(message) from exc


def _emit_json(payload: dict[str, object], json_out: Path | None) -> None:
    """Write ``payload`` to stdout and, optionally, a JSON file."""
    text = json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True)
    typer.echo(text)
    if json_out is None:
        return
    try:
        json_out.parent.mkdir(parents=True, exist_ok=True)
        json_out.write_text(text + "\n", encoding="utf-8")
    except OSError as exc:
        message = f"Unable to write JSON output ({json_out}): {exc}"
        typer.echo(message, err=True)
        raise typer.Exit(code=1) from exc


@app.command("solve")
def solve_command(
    problem_path: Annotated[
        Path,
        typer.Argument(
            metavar="PROBLEM",
            exists=True,
            dir_okay=False,
            readable=True,
            help="JSON file describing actions, initial state and goal.",
        ),
    ],
    *,
    heuristic: HeuristicOption = HeuristicKind.MISMATCH,
    max_expansions: MaxExpansionsOption = None,
    closed_once: ClosedOnceOption = False,
    json_out: JsonOutOption = None,
    log_level: LogLevelOption = LogLevel.WARNING,
) -> None:
    """Plan a single problem and print the resulting actions as JSON."""
    _configure_logging(log_level)
    policy = _build_policy(heuristic, max_expansions, closed_once=closed_once)

    try:
        problem = load_problem(problem_path)
    except ProblemLoadError as exc:
        typer.echo(str(exc), err=True)
        _emit_json({"status": "error", "error": exc.reason}, json_out)
        raise typer.Exit(code=1) from exc

    result = solve(problem, policy)
    if result.plan is None:
        status = result.failure.value if result.failure is not None else "error"
        _emit_json(
            {"status": status, "problem": problem.name, "expansions": result.expansions},
            json_out,
        )
        raise typer.Exit(code=1)

    _emit_json(
        {
            "status": "ok",
            "problem": problem.name,
            "actions": result.plan.names,
            "cost": result.plan.cost,
            "expansions": result.plan.expansions,
        },
        json_out,
    )


@app.command("check")
def check_command(
    cases_dir: Annotated[
        Path,
        typer.Argument(
            metavar="DIRECTORY",
            exists=True,
            file_okay=False,
            help="Directory of JSON cases; those without expected_actions are solved but not compared.",
        ),
    ],
    *,
    heuristic: HeuristicOption = HeuristicKind.MISMATCH,
    max_expansions: MaxExpansionsOption = None,
    closed_once: ClosedOnceOption = False,
    json_out: JsonOutOption = None,
    log_level: LogLevelOption = LogLevel.WARNING,
) -> None:
    """Run every case in a directory and report which ones match expectations."""
    _configure_logging(log_level)
    policy = _build_policy(heuristic, max_expansions, closed_once=closed_once)

    try:
        problems = load_problems(cases_dir)
    except ProblemLoadError as exc:
        typer.echo(str(exc), err=True)
        _emit_json({"status": "error", "error": exc.reason}, json_out)
        raise typer.Exit(code=1) from exc

    outcomes = [check_case(problem, policy) for problem in problems]
    failed = [outcome for outcome in outcomes if not outcome.passed]
    for outcome in failed:
        typer.echo(
            f"{outcome.name} failed: expected {outcome.expected}, got {outcome.actual}",
            err=True,
        )

    _emit_json(
        {
            "status": "ok" if not failed else "failed",
            "total": len(outcomes),
            "passed": [outcome.name for outcome in outcomes if outcome.passed],
            "unchecked": [outcome.name for outcome in outcomes if outcome.expected is None],
            "failed": [outcome.model_dump() for outcome in failed],
        },
        json_out,
    )
    if failed:
        raise typer.Exit(code=1)


if __name__ == "__main__":  # pragma: no cover - script entry point
    app()
