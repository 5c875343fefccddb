"""Tests for the fail-fast harness runner."""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path

import pytest

from workspace_smoke.domain.errors import CommandTimeoutError, SpawnError
from workspace_smoke.domain.models import FailureKind, Phase, TestCase
from workspace_smoke.orchestration import HarnessRunner
from workspace_smoke.tools.process import ProcessResult


@dataclass
class RecordingExecutor:
    """Fake executor that treats ``false`` as failing and records every call."""

    calls: list[tuple[tuple[str, ...], Path]] = field(default_factory=list)
    timeouts: list[float | None] = field(default_factory=list)
    raise_for: dict[tuple[str, ...], BaseException] = field(default_factory=dict)

    def __call__(self, argv: tuple[str, ...], *, cwd: Path, timeout: float | None = None) -> ProcessResult:
        command = tuple(argv)
        self.calls.append((command, cwd))
        self.timeouts.append(timeout)
        error = self.raise_for.get(command)
        if error is not None:
            raise error
        return ProcessResult(returncode=1 if command[0] == "false" else 0, elapsed_ms=1)


def _case(directory: Path, setup: tuple[str, ...], run: tuple[str, ...]) -> TestCase:
    directory.mkdir(parents=True, exist_ok=True)
    return TestCase(working_directory=directory, setup_command=setup, run_command=run)


def test_all_cases_pass_in_order(tmp_path: Path) -> None:
    """Every command runs in list order with the case directory as cwd."""
    executor = RecordingExecutor()
    cases = [
        _case(tmp_path / "a", ("true", "setup-a"), ("true", "run-a")),
        _case(tmp_path / "b", ("true", "setup-b"), ("true", "run-b")),
    ]

    outcome = HarnessRunner(executor=executor).run(cases)

    assert outcome.success is True
    assert outcome.exit_code == 0
    assert executor.calls == [
        (("true", "setup-a"), tmp_path / "a"),
        (("true", "run-a"), tmp_path / "a"),
        (("true", "setup-b"), tmp_path / "b"),
        (("true", "run-b"), tmp_path / "b"),
    ]
    assert [result.passed for result in outcome.completed] == [True, True]


def test_run_failure_stops_before_later_cases(tmp_path: Path) -> None:
    """A failing run command halts the harness; later cases are never touched."""
    executor = RecordingExecutor()
    cases = [
        _case(tmp_path / "a", ("true",), ("true",)),
        _case(tmp_path / "b", ("true",), ("false",)),
        _case(tmp_path / "c", ("true",), ("true",)),
    ]

    outcome = HarnessRunner(executor=executor).run(cases)

    assert outcome.success is False
    assert outcome.exit_code == 1
    assert [cwd for _, cwd in executor.calls] == [tmp_path / "a", tmp_path / "a", tmp_path / "b", tmp_path / "b"]
    failure = outcome.failure
    assert failure is not None
    assert failure.index == 1
    assert failure.kind is FailureKind.RUN_FAILED
    assert failure.phase is Phase.RUN
    assert failure.command == ("false",)
    assert failure.returncode == 1
    assert str(tmp_path / "b") in failure.message
    assert len(outcome.completed) == 2


def test_setup_failure_skips_run_command(tmp_path: Path) -> None:
    """A failing setup command is reported and the run command never executes."""
    executor = RecordingExecutor()
    cases = [_case(tmp_path / "a", ("false",), ("true",))]

    outcome = HarnessRunner(executor=executor).run(cases)

    assert executor.calls == [(("false",), tmp_path / "a")]
    assert outcome.failure is not None
    assert outcome.failure.kind is FailureKind.SETUP_FAILED
    assert outcome.failure.phase is Phase.SETUP


def test_empty_case_list_succeeds() -> None:
    """Nothing to run is a trivial success."""
    executor = RecordingExecutor()
    outcome = HarnessRunner(executor=executor).run([])
    assert outcome.success is True
    assert executor.calls == []


def test_repeated_runs_are_stable(tmp_path: Path) -> None:
    """Running the same passing list twice succeeds both times."""
    cases = [_case(tmp_path / "a", ("true",), ("true",))]
    runner = HarnessRunner(executor=RecordingExecutor())
    assert runner.run(cases).success is True
    assert runner.run(cases).success is True


def test_empty_setup_command_is_skipped(tmp_path: Path) -> None:
    """Cases without a setup command only execute their run command."""
    executor = RecordingExecutor()
    cases = [_case(tmp_path / "a", (), ("true", "check"))]

    outcome = HarnessRunner(executor=executor).run(cases)

    assert outcome.success is True
    assert executor.calls == [(("true", "check"), tmp_path / "a")]
    assert [command.phase for command in outcome.completed[0].commands] == [Phase.RUN]


def test_missing_directory_fails_without_running(tmp_path: Path) -> None:
    """A missing working directory halts the run before any command launches."""
    executor = RecordingExecutor()
    missing = TestCase(working_directory=tmp_path / "missing", run_command=("true",))

    outcome = HarnessRunner(executor=executor).run([missing])

    assert executor.calls == []
    assert outcome.failure is not None
    assert outcome.failure.kind is FailureKind.DIRECTORY_NOT_FOUND
    assert outcome.failure.phase is None


def test_relative_directories_resolve_against_root(tmp_path: Path) -> None:
    """Relative case directories are joined onto the runner root."""
    (tmp_path / "nested" / "project").mkdir(parents=True)
    executor = RecordingExecutor()
    case = TestCase(working_directory=Path("nested/project"), run_command=("true",))

    HarnessRunner(executor=executor, root=tmp_path).run([case])

    assert executor.calls == [(("true",), tmp_path / "nested" / "project")]


def test_spawn_error_is_fatal(tmp_path: Path) -> None:
    """Executables that cannot launch fail the case like a non-zero exit."""
    directory = tmp_path / "a"
    command = ("no-such-tool", "venv")
    executor = RecordingExecutor(
        raise_for={command: SpawnError(command, directory, FileNotFoundError(2, "No such file or directory"))},
    )
    cases = [_case(directory, command, ("true",)), _case(tmp_path / "b", ("true",), ("true",))]

    outcome = HarnessRunner(executor=executor).run(cases)

    assert outcome.failure is not None
    assert outcome.failure.kind is FailureKind.SPAWN_ERROR
    assert outcome.failure.phase is Phase.SETUP
    assert outcome.failure.command == command
    assert len(executor.calls) == 1


def test_timeout_is_reported_and_forwarded(tmp_path: Path) -> None:
    """The configured timeout reaches the executor and expiry fails the case."""
    command = ("true", "slow")
    executor = RecordingExecutor(raise_for={command: CommandTimeoutError(command, 2.5)})
    cases = [_case(tmp_path / "a", ("true",), command)]

    outcome = HarnessRunner(executor=executor, timeout=2.5).run(cases)

    assert executor.timeouts == [2.5, 2.5]
    assert outcome.failure is not None
    assert outcome.failure.kind is FailureKind.TIMEOUT
    assert outcome.failure.phase is Phase.RUN


def test_keyboard_interrupt_returns_interrupted_outcome(tmp_path: Path) -> None:
    """An interrupt stops the harness with the conventional exit status 130."""
    command = ("true", "long")
    executor = RecordingExecutor(raise_for={command: KeyboardInterrupt()})
    cases = [_case(tmp_path / "a", command, ("true",)), _case(tmp_path / "b", ("true",), ("true",))]

    outcome = HarnessRunner(executor=executor).run(cases)

    assert outcome.failure is not None
    assert outcome.failure.kind is FailureKind.INTERRUPTED
    assert outcome.exit_code == 130
    assert len(executor.calls) == 1


def test_interrupt_while_logging_is_contained(tmp_path: Path) -> None:
    """An interrupt raised by the log sink still yields an interrupted outcome."""
    executor = RecordingExecutor()
    cases = [_case(tmp_path / "a", ("true",), ("true",)), _case(tmp_path / "b", ("true",), ("true",))]

    def interrupting_log(message: str) -> None:
        if "[2/2]" in message:
            raise KeyboardInterrupt

    outcome = HarnessRunner(executor=executor, log=interrupting_log).run(cases)

    assert outcome.failure is not None
    assert outcome.failure.kind is FailureKind.INTERRUPTED
    assert outcome.failure.index == 1
    assert outcome.failure.phase is None
    assert outcome.exit_code == 130
    assert [cwd.name for _, cwd in executor.calls] == ["a", "a"]


def test_process_working_directory_is_untouched(tmp_path: Path) -> None:
    """Running cases never changes the harness process's current directory."""
    before = Path.cwd()
    HarnessRunner(executor=RecordingExecutor()).run([_case(tmp_path / "a", ("true",), ("true",))])
    assert Path(os.getcwd()) == before


def test_log_reports_progress_and_failure(tmp_path: Path) -> None:
    """Harness-level messages identify each case, its commands, and the failure."""
    messages: list[str] = []
    cases = [
        TestCase(name="first", working_directory=tmp_path, setup_command=("true",), run_command=("false",)),
    ]

    HarnessRunner(executor=RecordingExecutor(), log=messages.append).run(cases)

    assert any("[1/1]" in message and "first" in message and str(tmp_path) in message for message in messages)
    assert any("+ true" in message for message in messages)
    failure_lines = [message for message in messages if "FAILED" in message]
    assert len(failure_lines) == 1
    assert "run phase" in failure_lines[0]


@pytest.mark.parametrize("failing_index", [0, 1, 2])
def test_only_cases_up_to_failure_are_invoked(tmp_path: Path, failing_index: int) -> None:
    """Commands run for cases 0..k only when case k fails."""
    executor = RecordingExecutor()
    cases = [
        _case(tmp_path / f"case{index}", ("true",), ("false",) if index == failing_index else ("true",))
        for index in range(4)
    ]

    outcome = HarnessRunner(executor=executor).run(cases)

    touched = {cwd for _, cwd in executor.calls}
    assert touched == {tmp_path / f"case{index}" for index in range(failing_index + 1)}
    assert outcome.failure is not None
    assert outcome.failure.index == failing_index
