"""Harness orchestration for running test case batches."""

from .runner import CommandExecutor, HarnessRunner

__all__ = ["CommandExecutor", "HarnessRunner"]
