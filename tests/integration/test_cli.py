"""Integration tests for the Typer CLI."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from typer.testing import CliRunner

from goapplan.cli import app

DATA_DIR = Path(__file__).resolve().parents[1] / "data"


pytestmark = pytest.mark.integration


def test_cli_solve_creates_json_result(tmp_path: Path) -> None:
    """The CLI should plan the problem and persist the plan to JSON."""
    runner = CliRunner()
    problem_path = DATA_DIR / "dog.json"
    json_path = tmp_path / "result.json"

    result = runner.invoke(
        app,
        ["solve", str(problem_path), "--json-out", str(json_path)],
    )

    assert result.exit_code == 0, result.output
    payload = json.loads(json_path.read_text(encoding="utf-8"))
    assert payload["status"] == "ok"
    assert payload["actions"] == ["walk_to_dog", "pet_dog", "dog_wiggles_tail"]
    assert payload["cost"] == 3.0
    assert payload["problem"] == "dog.json"


def test_cli_solve_reports_unreachable_goal(tmp_path: Path) -> None:
    """An unreachable goal exits with status 1 and a not_found payload."""
    runner = CliRunner()
    json_path = tmp_path / "result.json"

    result = runner.invoke(
        app,
        ["solve", str(DATA_DIR / "flying.json"), "--json-out", str(json_path)],
    )

    assert result.exit_code == 1
    payload = json.loads(json_path.read_text(encoding="utf-8"))
    assert payload["status"] == "not_found"


def test_cli_solve_honours_expansion_budget(tmp_path: Path) -> None:
    """A tight budget yields an exhausted payload."""
    runner = CliRunner()
    json_path = tmp_path / "result.json"

    result = runner.invoke(
        app,
        [
            "solve",
            str(DATA_DIR / "dog.json"),
            "--max-expansions",
            "1",
            "--json-out",
            str(json_path),
        ],
    )

    assert result.exit_code == 1
    payload = json.loads(json_path.read_text(encoding="utf-8"))
    assert payload == {"expansions": 1, "problem": "dog.json", "status": "exhausted"}


def test_cli_solve_rejects_invalid_problem(tmp_path: Path) -> None:
    """Malformed problem files are reported as errors."""
    runner = CliRunner()
    problem_path = tmp_path / "broken.json"
    problem_path.write_text('{"actions": [{"name": "free", "cost": -1}]}', encoding="utf-8")
    json_path = tmp_path / "result.json"

    result = runner.invoke(
        app,
        ["solve", str(problem_path), "--json-out", str(json_path)],
    )

    assert result.exit_code == 1
    payload = json.loads(json_path.read_text(encoding="utf-8"))
    assert payload["status"] == "error"


@pytest.mark.parametrize("heuristic", ["mismatch", "zero"])
def test_cli_check_passes_bundled_cases(tmp_path: Path, heuristic: str) -> None:
    """Every bundled case produces its expected plan."""
    runner = CliRunner()
    json_path = tmp_path / "summary.json"

    result = runner.invoke(
        app,
        ["check", str(DATA_DIR), "--heuristic", heuristic, "--json-out", str(json_path)],
    )

    assert result.exit_code == 0, result.output
    payload = json.loads(json_path.read_text(encoding="utf-8"))
    assert payload["status"] == "ok"
    assert payload["failed"] == []
    assert payload["unchecked"] == []
    assert payload["total"] == len(list(DATA_DIR.glob("*.json")))


def test_cli_check_reports_failing_case(tmp_path: Path) -> None:
    """A case whose expectation is wrong makes the command fail."""
    runner = CliRunner()
    cases = tmp_path / "cases"
    cases.mkdir()
    case = json.loads((DATA_DIR / "dog.json").read_text(encoding="utf-8"))
    case["expected_actions"] = ["pet_dog"]
    (cases / "wrong.json").write_text(json.dumps(case), encoding="utf-8")
    json_path = tmp_path / "summary.json"

    result = runner.invoke(app, ["check", str(cases), "--json-out", str(json_path)])

    assert result.exit_code == 1
    payload = json.loads(json_path.read_text(encoding="utf-8"))
    assert payload["status"] == "failed"
    assert payload["failed"][0]["name"] == "wrong.json"
    assert payload["failed"][0]["expected"] == ["pet_dog"]


def test_cli_check_lists_cases_without_expectation(tmp_path: Path) -> None:
    """Plain problem files are solved and reported as unchecked, not failed."""
    runner = CliRunner()
    cases = tmp_path / "cases"
    cases.mkdir()
    case = json.loads((DATA_DIR / "dog.json").read_text(encoding="utf-8"))
    del case["expected_actions"]
    (cases / "plain.json").write_text(json.dumps(case), encoding="utf-8")
    json_path = tmp_path / "summary.json"

    result = runner.invoke(app, ["check", str(cases), "--json-out", str(json_path)])

    assert result.exit_code == 0, result.output
    payload = json.loads(json_path.read_text(encoding="utf-8"))
    assert payload["status"] == "ok"
    assert payload["failed"] == []
    assert payload["unchecked"] == ["plain.json"]
    assert payload["passed"] == ["plain.json"]
