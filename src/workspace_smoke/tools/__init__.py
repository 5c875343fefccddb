"""Wrappers around external processes and developer tooling."""

from .process import ProcessResult, run_command, terminate_as_interrupt
from .safety import (
    BinaryCheckResult,
    ToolingWarning,
    check_binary,
    check_required_binaries,
    warn_if_missing_binaries,
)

__all__ = [
    "BinaryCheckResult",
    "ProcessResult",
    "ToolingWarning",
    "check_binary",
    "check_required_binaries",
    "run_command",
    "terminate_as_interrupt",
    "warn_if_missing_binaries",
]
