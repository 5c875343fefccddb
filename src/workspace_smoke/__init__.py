"""Fail-fast smoke-test harness for workspace example projects."""

from .config import default_test_cases, load_test_cases
from .domain.models import HarnessOutcome, TestCase
from .orchestration import HarnessRunner

__all__ = [
    "HarnessOutcome",
    "HarnessRunner",
    "TestCase",
    "default_test_cases",
    "load_test_cases",
]
