"""Pydantic domain models for the workspace smoke harness."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
import shlex

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Phase(str, Enum):
    """Step of a test case being executed."""

    SETUP = "setup"
    RUN = "run"


class FailureKind(str, Enum):
    """Reason a harness invocation stopped before completing every case."""

    DIRECTORY_NOT_FOUND = "directory_not_found"
    SETUP_FAILED = "setup_failed"
    RUN_FAILED = "run_failed"
    SPAWN_ERROR = "spawn_error"
    TIMEOUT = "timeout"
    INTERRUPTED = "interrupted"


class TestCase(BaseModel):
    """One example project: a directory plus its setup and run commands."""

    __test__ = False

    model_config = ConfigDict(frozen=True)

    working_directory: Path
    setup_command: tuple[str, ...] = ()
    run_command: tuple[str, ...]
    name: str | None = None

    @field_validator("setup_command", "run_command", mode="before")
    @classmethod
    def _split_command_string(cls, value: object) -> object:
        if isinstance(value, str):
            return tuple(shlex.split(value))
        return value

    @field_validator("run_command")
    @classmethod
    def _require_run_command(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if not value:
            message = "run_command must contain at least one token"
            raise ValueError(message)
        return value

    @property
    def label(self) -> str:
        """Display name, falling back to the working directory."""
        return self.name or str(self.working_directory)

    def command_for(self, phase: Phase) -> tuple[str, ...]:
        """Return the argument tokens executed during ``phase``."""
        if phase is Phase.SETUP:
            return self.setup_command
        return self.run_command


class CommandResult(BaseModel):
    """A single command that ran to completion."""

    phase: Phase
    argv: tuple[str, ...]
    returncode: int
    elapsed_ms: int = 0


class CaseResult(BaseModel):
    """Commands executed for one test case, in order."""

    case: TestCase
    commands: list[CommandResult] = Field(default_factory=list)

    @property
    def passed(self) -> bool:
        """True when every executed command exited with status zero."""
        return all(command.returncode == 0 for command in self.commands)


class HarnessFailure(BaseModel):
    """Description of the failure that halted the harness."""

    index: int
    case: TestCase
    kind: FailureKind
    message: str
    phase: Phase | None = None
    command: tuple[str, ...] = ()
    returncode: int | None = None


class HarnessOutcome(BaseModel):
    """Binary result of a harness invocation: all passed or first failure."""

    completed: list[CaseResult] = Field(default_factory=list)
    failure: HarnessFailure | None = None

    @property
    def success(self) -> bool:
        """True when no case failed."""
        return self.failure is None

    @property
    def exit_code(self) -> int:
        """Process exit status matching the outcome."""
        if self.failure is None:
            return 0
        if self.failure.kind is FailureKind.INTERRUPTED:
            return 130
        return 1
