"""Availability probes for the external tools the suite drives."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import shutil
import warnings
from typing import TYPE_CHECKING, Iterable, Sequence

if TYPE_CHECKING:
    from rich.console import Console

__all__ = [
    "DEFAULT_BINARIES",
    "BinaryCheckResult",
    "ToolingWarning",
    "check_binary",
    "check_required_binaries",
    "warn_if_missing_binaries",
]

CHECK_TIMEOUT_SECONDS = 5.0
"""Maximum time to wait for ``--version`` calls."""

DEFAULT_BINARIES: tuple[str, ...] = ("uv", "cargo")


class ToolingWarning(UserWarning):
    """Warning emitted when a tool used by the suite is unavailable."""


@dataclass(frozen=True, slots=True)
class BinaryCheckResult:
    """Outcome of probing an external binary."""

    name: str
    available: bool
    version: str | None = None
    error: str | None = None

    @property
    def message(self) -> str:
        """Human readable status string."""
        if self.available:
            version = self.version or "unknown version"
            return f"{self.name} detected ({version})"
        reason = self.error or "not found on PATH"
        return f"{self.name} unavailable: {reason}"


def check_binary(name: str, *, version_args: Sequence[str] | None = None) -> BinaryCheckResult:
    """Inspect ``name`` returning availability and version metadata."""
    resolved = shutil.which(name)
    if not resolved:
        return BinaryCheckResult(name=name, available=False, error="not found on PATH")

    args = [resolved, *(version_args or ("--version",))]
    try:
        returncode, stdout, stderr = _run_version_command(tuple(args))
    except TimeoutError as exc:
        return BinaryCheckResult(name=name, available=False, error=str(exc))
    except OSError as exc:
        return BinaryCheckResult(name=name, available=False, error=str(exc))

    if returncode != 0:
        return BinaryCheckResult(name=name, available=False, error=stderr.strip() or stdout.strip())

    output = stdout.strip() or stderr.strip()
    version_line = output.splitlines()[0] if output else ""
    return BinaryCheckResult(name=name, available=True, version=version_line or None)


async def _async_version_probe(args: Sequence[str]) -> tuple[int, str, str]:
    process = await asyncio.create_subprocess_exec(
        *args,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=CHECK_TIMEOUT_SECONDS)
    except TimeoutError as exc:
        process.kill()
        await process.communicate()
        message = f"version probe timed out after {CHECK_TIMEOUT_SECONDS:.1f}s"
        raise TimeoutError(message) from exc
    returncode = process.returncode if process.returncode is not None else -1
    return (
        returncode,
        stdout.decode("utf-8", errors="replace"),
        stderr.decode("utf-8", errors="replace"),
    )


def _run_version_command(args: Sequence[str]) -> tuple[int, str, str]:
    """Execute the ``--version`` command capturing decoded output."""
    return asyncio.run(_async_version_probe(args))


def check_required_binaries(names: Iterable[str] | None = None) -> list[BinaryCheckResult]:
    """Probe every binary in ``names`` (``uv`` and ``cargo`` by default)."""
    targets = list(names) if names is not None else list(DEFAULT_BINARIES)
    return [check_binary(name) for name in targets]


def warn_if_missing_binaries(
    *,
    console: Console | None = None,
    names: Iterable[str] | None = None,
) -> list[BinaryCheckResult]:
    """Emit warnings for missing binaries and optionally log to ``console``."""
    results = check_required_binaries(names)
    for result in results:
        if result.available:
            continue
        message = f"Binary '{result.name}' is unavailable; test cases invoking it will fail to launch."
        warnings.warn(message, ToolingWarning, stacklevel=2)
        if console is not None:
            console.print(f"[yellow]{result.message}[/yellow]")
    return results
