"""Test case configuration: YAML loading and the built-in workspace suite."""

from .loader import (
    LoadError,
    LoadResult,
    load_environment,
    load_test_cases,
)
from .suite import (
    WORKSPACE_SPECS,
    CommandProfile,
    RepositoryRootError,
    WorkspaceSpec,
    default_test_cases,
    find_repository_root,
)

__all__ = [
    "WORKSPACE_SPECS",
    "CommandProfile",
    "LoadError",
    "LoadResult",
    "RepositoryRootError",
    "WorkspaceSpec",
    "default_test_cases",
    "find_repository_root",
    "load_environment",
    "load_test_cases",
]
