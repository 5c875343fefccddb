from __future__ import annotations

from pathlib import Path
import platform
import sys
from typing import TYPE_CHECKING

import nox

if TYPE_CHECKING:
    from nox.sessions import Session

nox.options.default_venv_backend = "uv"
nox.options.reuse_existing_virtualenvs = True
nox.options.sessions = ["lint", "typing", "test"]

PYTHON_VERSIONS = ["3.12", "3.13"]
COVER_MIN = 80


def constraints(session: Session) -> Path:
    """Generate constraints file path for the session."""
    filename = f"python{session.python}-{sys.platform}-{platform.machine()}.txt"
    return Path("constraints", filename)


def install_dev(session: Session) -> None:
    """Install the project with its dev extra, honouring constraints when locked."""
    lock_file = constraints(session)
    if lock_file.exists():
        session.install("-c", lock_file.as_posix(), ".[dev]")
    else:
        session.install(".[dev]")


@nox.session(python=PYTHON_VERSIONS[-1], venv_backend="uv")
def lock(session: Session) -> None:
    """Lock dependencies."""
    filename = constraints(session)
    filename.parent.mkdir(exist_ok=True)
    session.run(
        "uv",
        "pip",
        "compile",
        "pyproject.toml",
        "--upgrade",
        "--quiet",
        "--all-extras",
        f"--output-file={filename}",
    )


@nox.session(python=PYTHON_VERSIONS[-1], tags=["lint"])
def lint(session: Session) -> None:
    """Run Ruff checks, import sorting included."""
    session.install("ruff")
    session.run("ruff", "check", "--fix")
    session.run("ruff", "format", "--check")


@nox.session(python=PYTHON_VERSIONS[-1], tags=["typing"])
def typing(session: Session) -> None:
    """Run type checking with Pyright."""
    install_dev(session)
    session.run("pyright")


@nox.session(python=PYTHON_VERSIONS, tags=["test"])
def test(session: Session) -> None:
    """Run the unit and integration tests with coverage."""
    install_dev(session)
    session.run("pytest", "--cov=workspace_smoke", f"--cov-fail-under={COVER_MIN}", *session.posargs)


@nox.session(python=PYTHON_VERSIONS[-1], tags=["smoke"])
def smoke(session: Session) -> None:
    """Run the built-in workspace suite against the current checkout."""
    session.install(".")
    session.run("workspace-smoke", "check")
    session.run("workspace-smoke", "run", *session.posargs)
