"""Tests for the `workspace-smoke list` command."""

from pathlib import Path

from typer.testing import CliRunner

from workspace_smoke.cli import app


runner = CliRunner()


def test_list_shows_cases_without_running_them(tmp_path: Path) -> None:
    """Cases from a file are tabulated and counted."""
    cases_file = tmp_path / "cases.yaml"
    cases_file.write_text(
        """
cases:
  - name: first
    working_directory: one
    run_command: [./check.sh]
  - name: second
    working_directory: two
    setup_command: uv venv
    run_command: [./check.sh]
""",
        encoding="utf-8",
    )

    result = runner.invoke(app, ["list", "--cases-file", str(cases_file)], catch_exceptions=False)

    assert result.exit_code == 0
    assert "Test Cases" in result.stdout
    assert "first" in result.stdout
    assert "second" in result.stdout
    assert "2 test case(s)" in result.stdout


def test_list_builtin_suite_with_explicit_root(tmp_path: Path) -> None:
    """The built-in suite is listed relative to --root without consulting git."""
    result = runner.invoke(app, ["list", "--root", str(tmp_path)], catch_exceptions=False)

    assert result.exit_code == 0
    assert "8 test case(s)" in result.stdout
    assert "built-in" in result.stdout


def test_list_rejects_invalid_cases_file(tmp_path: Path) -> None:
    """Load errors surface as usage errors."""
    cases_file = tmp_path / "cases.yaml"
    cases_file.write_text("scenarios: []\n", encoding="utf-8")

    result = runner.invoke(app, ["list", "-c", str(cases_file)])

    assert result.exit_code == 2
