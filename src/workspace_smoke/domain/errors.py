"""Exception hierarchy raised while executing test cases."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

__all__ = [
    "CommandFailedError",
    "CommandTimeoutError",
    "DirectoryNotFoundError",
    "HarnessError",
    "RunFailedError",
    "SetupFailedError",
    "SpawnError",
]


def _render(argv: Sequence[str]) -> str:
    return " ".join(argv)


class HarnessError(RuntimeError):
    """Base class for failures that halt the harness."""


class DirectoryNotFoundError(HarnessError):
    """Raised when a test case points at a missing working directory."""

    def __init__(self, directory: Path) -> None:
        """Keep the missing directory for reporting."""
        super().__init__(f"Working directory not found: {directory}")
        self.directory = directory


class SpawnError(HarnessError):
    """Raised when an executable cannot be launched."""

    def __init__(self, argv: Sequence[str], cwd: Path, error: OSError) -> None:
        """Capture the command and the underlying OS error."""
        reason = error.strerror or str(error)
        super().__init__(f"Failed to launch '{_render(argv)}' in {cwd}: {reason}")
        self.argv = tuple(argv)
        self.cwd = cwd
        self.error = error


class CommandTimeoutError(HarnessError):
    """Raised when a command exceeds the configured timeout and is killed."""

    def __init__(self, argv: Sequence[str], timeout: float) -> None:
        """Capture the command and the timeout that expired."""
        super().__init__(f"'{_render(argv)}' timed out after {timeout:g}s")
        self.argv = tuple(argv)
        self.timeout = timeout


class CommandFailedError(HarnessError):
    """Raised when a command exits with a non-zero status."""

    phase_name = "command"

    def __init__(self, argv: Sequence[str], returncode: int) -> None:
        """Capture the command and its exit status."""
        super().__init__(f"{self.phase_name} command '{_render(argv)}' exited with status {returncode}")
        self.argv = tuple(argv)
        self.returncode = returncode


class SetupFailedError(CommandFailedError):
    """Setup command of a test case exited non-zero."""

    phase_name = "setup"


class RunFailedError(CommandFailedError):
    """Run command of a test case exited non-zero."""

    phase_name = "run"
