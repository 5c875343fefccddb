"""Tests for the harness domain models."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from workspace_smoke.domain.models import (
    CaseResult,
    CommandResult,
    FailureKind,
    HarnessFailure,
    HarnessOutcome,
    Phase,
    TestCase,
)


def _case() -> TestCase:
    return TestCase(working_directory=Path("pkg"), setup_command=["uv", "venv"], run_command="cargo run -- run x.py")


def test_test_case_is_immutable() -> None:
    """Test cases are frozen once constructed."""
    case = _case()
    with pytest.raises(ValidationError):
        case.name = "renamed"  # type: ignore[misc]


def test_commands_accept_lists_and_strings() -> None:
    """Lists become tuples and strings are split like a shell would."""
    case = _case()
    assert case.setup_command == ("uv", "venv")
    assert case.run_command == ("cargo", "run", "--", "run", "x.py")
    assert case.command_for(Phase.SETUP) == ("uv", "venv")
    assert case.command_for(Phase.RUN) == case.run_command


def test_run_command_is_required() -> None:
    """A case without a run command is rejected."""
    with pytest.raises(ValidationError, match="run_command"):
        TestCase(working_directory=Path("pkg"), run_command=[])


def test_label_falls_back_to_directory() -> None:
    """Unnamed cases are labelled by their directory."""
    assert _case().label == "pkg"
    assert _case().model_copy(update={"name": "named"}).label == "named"


def test_case_result_passed_tracks_exit_codes() -> None:
    """A case passes only if every recorded command exited zero."""
    result = CaseResult(case=_case())
    result.commands.append(CommandResult(phase=Phase.SETUP, argv=("uv", "venv"), returncode=0))
    assert result.passed is True
    result.commands.append(CommandResult(phase=Phase.RUN, argv=("cargo",), returncode=101))
    assert result.passed is False


@pytest.mark.parametrize(
    ("kind", "expected"),
    [
        (FailureKind.SETUP_FAILED, 1),
        (FailureKind.RUN_FAILED, 1),
        (FailureKind.DIRECTORY_NOT_FOUND, 1),
        (FailureKind.SPAWN_ERROR, 1),
        (FailureKind.TIMEOUT, 1),
        (FailureKind.INTERRUPTED, 130),
    ],
)
def test_outcome_exit_codes(kind: FailureKind, expected: int) -> None:
    """Failures exit 1, interrupts exit 130, success exits 0."""
    failure = HarnessFailure(index=0, case=_case(), kind=kind, message="boom")
    assert HarnessOutcome(failure=failure).exit_code == expected
    assert HarnessOutcome().exit_code == 0
    assert HarnessOutcome().success is True


def test_outcome_serializes_to_json() -> None:
    """Outcomes can be dumped for machine-readable reporting."""
    failure = HarnessFailure(
        index=0,
        case=_case(),
        kind=FailureKind.RUN_FAILED,
        phase=Phase.RUN,
        command=("cargo",),
        returncode=101,
        message="boom",
    )
    payload = HarnessOutcome(failure=failure).model_dump(mode="json")
    assert payload["failure"]["kind"] == "run_failed"
    assert payload["failure"]["phase"] == "run"
    assert payload["failure"]["case"]["working_directory"] == "pkg"
