"""Sequential fail-fast execution of workspace test cases."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Protocol

from rich.markup import escape

from workspace_smoke.domain.errors import (
    CommandTimeoutError,
    DirectoryNotFoundError,
    HarnessError,
    RunFailedError,
    SetupFailedError,
    SpawnError,
)
from workspace_smoke.domain.models import (
    CaseResult,
    CommandResult,
    FailureKind,
    HarnessFailure,
    HarnessOutcome,
    Phase,
    TestCase,
)
from workspace_smoke.tools.process import ProcessResult, run_command

if TYPE_CHECKING:
    from collections.abc import Sequence

__all__ = ["CommandExecutor", "HarnessRunner"]

_PHASE_ERRORS: dict[Phase, type[SetupFailedError] | type[RunFailedError]] = {
    Phase.SETUP: SetupFailedError,
    Phase.RUN: RunFailedError,
}


class CommandExecutor(Protocol):
    """Callable that runs one command to completion in ``cwd``."""

    def __call__(
        self,
        argv: Sequence[str],
        *,
        cwd: Path,
        timeout: float | None = None,
    ) -> ProcessResult:  # pragma: no cover - protocol definition
        """Run ``argv`` and return its exit status."""
        ...


@dataclass(slots=True)
class HarnessRunner:
    """Run test cases in order and stop at the first failure.

    Every command receives the case directory as an explicit working
    directory, so the process-wide current directory is never modified.
    Relative case directories resolve against ``root`` (the current
    directory when omitted).
    """

    executor: CommandExecutor = run_command
    root: Path | None = None
    timeout: float | None = None
    log: Callable[[str], None] | None = None

    def run(self, cases: Sequence[TestCase]) -> HarnessOutcome:
        """Execute ``cases`` sequentially, returning success or the first failure.

        An interrupt arriving anywhere in the loop, including while progress
        lines are written, ends the run with an ``interrupted`` failure.
        """
        completed: list[CaseResult] = []
        failure: HarnessFailure | None = None
        total = len(cases)
        position = 0
        try:
            for position, case in enumerate(cases):
                self._emit(_announce(position, total, case))
                result = CaseResult(case=case)
                completed.append(result)
                failure = self._execute_case(position, case, result)
                if failure is not None:
                    break
            if failure is not None:
                self._emit(f"[red]FAILED:[/red] {escape(failure.message)}")
            else:
                self._emit(f"[green]{total} test case(s) passed[/green]")
        except KeyboardInterrupt:
            if not cases:
                raise
            if failure is None:
                failure = _interrupted(position, cases[position], None)
        return HarnessOutcome(completed=completed, failure=failure)

    def _execute_case(self, index: int, case: TestCase, result: CaseResult) -> HarnessFailure | None:
        phase: Phase | None = None
        try:
            directory = self._resolve_directory(case)
            for phase in (Phase.SETUP, Phase.RUN):
                argv = case.command_for(phase)
                if not argv:
                    continue
                self._emit(f"[dim]+ {escape(' '.join(argv))}[/dim]")
                process = self.executor(argv, cwd=directory, timeout=self.timeout)
                result.commands.append(
                    CommandResult(
                        phase=phase,
                        argv=tuple(argv),
                        returncode=process.returncode,
                        elapsed_ms=process.elapsed_ms,
                    ),
                )
                if process.returncode != 0:
                    raise _PHASE_ERRORS[phase](argv, process.returncode)
        except HarnessError as exc:
            return _failure_from_error(index, case, phase, exc)
        except KeyboardInterrupt:
            return _interrupted(index, case, phase)
        return None

    def _resolve_directory(self, case: TestCase) -> Path:
        directory = case.working_directory.expanduser()
        if not directory.is_absolute():
            directory = (self.root or Path.cwd()) / directory
        if not directory.is_dir():
            raise DirectoryNotFoundError(directory)
        return directory

    def _emit(self, message: str) -> None:
        if self.log is not None:
            self.log(message)


def _announce(index: int, total: int, case: TestCase) -> str:
    line = f"[bold][{index + 1}/{total}][/bold] {escape(case.label)}"
    if case.name:
        line += f" [dim]({escape(str(case.working_directory))})[/dim]"
    return line


def _describe(case: TestCase, phase: Phase | None) -> str:
    where = f"Test case '{case.label}' ({case.working_directory})"
    if phase is None:
        return where
    return f"{where} {phase.value} phase"


def _interrupted(index: int, case: TestCase, phase: Phase | None) -> HarnessFailure:
    return HarnessFailure(
        index=index,
        case=case,
        kind=FailureKind.INTERRUPTED,
        phase=phase,
        command=case.command_for(phase) if phase is not None else (),
        message=f"{_describe(case, phase)} interrupted",
    )


def _failure_from_error(
    index: int,
    case: TestCase,
    phase: Phase | None,
    error: HarnessError,
) -> HarnessFailure:
    kind = _classify(error, phase)
    returncode = getattr(error, "returncode", None)
    command = tuple(getattr(error, "argv", ()))
    return HarnessFailure(
        index=index,
        case=case,
        kind=kind,
        phase=phase,
        command=command,
        returncode=returncode,
        message=f"{_describe(case, phase)}: {error}",
    )


def _classify(error: HarnessError, phase: Phase | None) -> FailureKind:
    if isinstance(error, DirectoryNotFoundError):
        return FailureKind.DIRECTORY_NOT_FOUND
    if isinstance(error, SpawnError):
        return FailureKind.SPAWN_ERROR
    if isinstance(error, CommandTimeoutError):
        return FailureKind.TIMEOUT
    if phase is Phase.SETUP:
        return FailureKind.SETUP_FAILED
    return FailureKind.RUN_FAILED
