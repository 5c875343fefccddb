"""Blocking subprocess execution with inherited output streams."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
import signal
import subprocess
import threading
import time
from typing import TYPE_CHECKING

from workspace_smoke.domain.errors import CommandTimeoutError, SpawnError

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping, Sequence
    from pathlib import Path
    from types import FrameType

__all__ = ["TERMINATE_GRACE_SECONDS", "ProcessResult", "run_command", "terminate_as_interrupt"]

TERMINATE_GRACE_SECONDS = 5.0
"""Time a child gets to exit after SIGTERM before it is killed."""


@dataclass(frozen=True, slots=True)
class ProcessResult:
    """Exit status and wall time of a finished command."""

    returncode: int
    elapsed_ms: int


def run_command(
    argv: Sequence[str],
    *,
    cwd: Path,
    timeout: float | None = None,
    env: Mapping[str, str] | None = None,
) -> ProcessResult:
    """Run ``argv`` in ``cwd`` and wait for it, forwarding stdout/stderr verbatim.

    The caller's working directory is never changed. On timeout the child is
    stopped and :class:`CommandTimeoutError` is raised. A ``KeyboardInterrupt``
    stops the child before propagating.
    """
    if not argv:
        message = "Cannot run an empty command"
        raise ValueError(message)
    start = time.perf_counter()
    try:
        process = subprocess.Popen(list(argv), cwd=cwd, env=dict(env) if env is not None else None)  # noqa: S603
    except OSError as exc:
        raise SpawnError(argv, cwd, exc) from exc
    try:
        returncode = process.wait(timeout=timeout)
    except subprocess.TimeoutExpired as exc:
        _stop(process)
        raise CommandTimeoutError(argv, timeout or 0.0) from exc
    except KeyboardInterrupt:
        _stop(process)
        raise
    elapsed_ms = int((time.perf_counter() - start) * 1000)
    return ProcessResult(returncode=returncode, elapsed_ms=elapsed_ms)


def _stop(process: subprocess.Popen[bytes]) -> None:
    if process.poll() is not None:
        return
    process.terminate()
    try:
        process.wait(timeout=TERMINATE_GRACE_SECONDS)
    except (subprocess.TimeoutExpired, KeyboardInterrupt):
        process.kill()
        process.wait()


def _raise_interrupt(signum: int, _frame: FrameType | None) -> None:
    raise KeyboardInterrupt(signal.Signals(signum).name)


@contextmanager
def terminate_as_interrupt() -> Iterator[None]:
    """Treat SIGTERM like Ctrl-C while the block runs.

    A terminated harness then stops its running child instead of orphaning it.
    Handlers can only be installed from the main thread; elsewhere this is a
    no-op. The previous handler is restored on exit.
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return
    previous = signal.signal(signal.SIGTERM, _raise_interrupt)
    try:
        yield
    finally:
        signal.signal(signal.SIGTERM, previous)
