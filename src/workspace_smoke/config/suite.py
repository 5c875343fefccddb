"""Built-in workspace smoke suite and the command profile used to assemble it."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
import subprocess
from pathlib import Path
from typing import TYPE_CHECKING

from workspace_smoke.domain.models import TestCase

if TYPE_CHECKING:
    from collections.abc import Sequence

__all__ = [
    "WORKSPACES_SUBDIR",
    "WORKSPACE_SPECS",
    "CommandProfile",
    "RepositoryRootError",
    "WorkspaceSpec",
    "default_test_cases",
    "find_repository_root",
]

WORKSPACES_SUBDIR = Path("scripts", "workspaces")
VENDORED_DIRNAME = "vendored"


class RepositoryRootError(RuntimeError):
    """Raised when the repository root cannot be determined."""


@dataclass(frozen=True)
class WorkspaceSpec:
    """A workspace example project exercised by the built-in suite."""

    directory: str
    checker: str
    venv_destination: str | None = None


WORKSPACE_SPECS: tuple[WorkspaceSpec, ...] = (
    WorkspaceSpec("albatross-in-example/examples/bird-feeder", "check_installed_bird_feeder.py"),
    WorkspaceSpec("albatross-in-example", "check_installed_albatross.py"),
    WorkspaceSpec("albatross-just-project", "check_installed_albatross.py"),
    WorkspaceSpec("albatross-project-in-excluded/excluded/bird-feeder", "check_installed_bird_feeder.py"),
    WorkspaceSpec("albatross-root-workspace", "check_installed_albatross.py"),
    WorkspaceSpec(
        "albatross-root-workspace/packages/bird-feeder",
        "check_installed_bird_feeder.py",
        venv_destination="../../.venv",
    ),
    WorkspaceSpec(
        "albatross-virtual-workspace/packages/albatross",
        "check_installed_albatross.py",
        venv_destination="../../.venv",
    ),
    WorkspaceSpec(
        "albatross-virtual-workspace/packages/bird-feeder",
        "check_installed_bird_feeder.py",
        venv_destination="../../.venv",
    ),
)


@dataclass(frozen=True)
class CommandProfile:
    """How setup and run commands are assembled for each workspace."""

    venv_command: tuple[str, ...] = ("uv", "venv")
    build_command: tuple[str, ...] = ("cargo", "run")
    build_profile: str | None = "fast-build"
    run_arguments: tuple[str, ...] = ("run", "--preview")
    offline: bool = False
    find_links: Path | None = None
    extra_arguments: tuple[str, ...] = field(default_factory=tuple)

    def binaries(self) -> list[str]:
        """Executables every built-in case launches."""
        return [self.venv_command[0], self.build_command[0]]

    def setup_command(self, venv_destination: str | None = None) -> tuple[str, ...]:
        """Return the virtual environment creation command."""
        if venv_destination is None:
            return self.venv_command
        return (*self.venv_command, venv_destination)

    def run_command(self, checker: str) -> tuple[str, ...]:
        """Return the build-and-run command for ``checker``."""
        argv = list(self.build_command)
        if self.build_profile:
            argv.extend(["--profile", self.build_profile])
        argv.append("--")
        argv.extend(self.run_arguments)
        if self.offline:
            argv.append("--offline")
        if self.find_links is not None:
            argv.extend(["--find-links", str(self.find_links)])
        argv.extend(self.extra_arguments)
        argv.append(checker)
        return tuple(argv)


def find_repository_root(start: Path | None = None) -> Path:
    """Return the top level of the git checkout containing ``start``."""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--show-toplevel"],  # noqa: S607
            cwd=start,
            capture_output=True,
            text=True,
            check=True,
        )
    except FileNotFoundError as exc:
        message = "git is not available; pass --root explicitly"
        raise RepositoryRootError(message) from exc
    except subprocess.CalledProcessError as exc:
        location = start or Path.cwd()
        message = f"{location} is not inside a git repository: {exc.stderr.strip()}"
        raise RepositoryRootError(message) from exc
    return Path(result.stdout.strip())


def default_test_cases(
    root: Path | None = None,
    *,
    profile: CommandProfile | None = None,
    specs: Sequence[WorkspaceSpec] = WORKSPACE_SPECS,
) -> list[TestCase]:
    """Build the workspace suite rooted at ``root`` (the git top level by default).

    In offline mode without explicit find-links, the vendored wheel directory
    next to the workspaces is used.
    """
    repository_root = root if root is not None else find_repository_root()
    workspaces_dir = repository_root / WORKSPACES_SUBDIR
    profile = profile or CommandProfile()
    if profile.offline and profile.find_links is None:
        profile = replace(profile, find_links=workspaces_dir / VENDORED_DIRNAME)
    return [
        TestCase(
            name=spec.directory,
            working_directory=workspaces_dir / spec.directory,
            setup_command=profile.setup_command(spec.venv_destination),
            run_command=profile.run_command(spec.checker),
        )
        for spec in specs
    ]
