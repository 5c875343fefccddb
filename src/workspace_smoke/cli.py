"""Typer CLI entry points for the workspace smoke harness."""

from __future__ import annotations

from dataclasses import replace
import os
from pathlib import Path
from typing import TYPE_CHECKING

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import (
    CommandProfile,
    LoadError,
    RepositoryRootError,
    default_test_cases,
    load_test_cases,
)
from .orchestration import CommandExecutor, HarnessRunner
from .tools import check_required_binaries, run_command, terminate_as_interrupt, warn_if_missing_binaries
from .tools.safety import DEFAULT_BINARIES

if TYPE_CHECKING:
    from .domain.models import HarnessOutcome, TestCase

app = typer.Typer(help="Smoke-test workspace example projects, stopping at the first failure.")
console = Console()


def _positive_timeout(value: float | None) -> float | None:
    if value is not None and value <= 0:
        message = "Timeout must be greater than zero seconds."
        raise typer.BadParameter(message)
    return value


CASES_FILE_OPTION = typer.Option(
    None,
    "--cases-file",
    "-c",
    exists=True,
    file_okay=True,
    dir_okay=False,
    readable=True,
    resolve_path=True,
    help=(
        "YAML file with test cases. Defaults to the built-in workspace suite. "
        "Cannot be combined with --root, --offline, --find-links or --profile."
    ),
)
ENV_FILE_OPTION = typer.Option(
    None,
    "--env-file",
    "-e",
    resolve_path=True,
    file_okay=True,
    dir_okay=False,
    help="Optional .env file(s) used to resolve ${VAR} placeholders in the cases file.",
)
ROOT_OPTION = typer.Option(
    None,
    "--root",
    file_okay=False,
    resolve_path=True,
    help="Repository root for the built-in suite (defaults to `git rev-parse --show-toplevel`).",
)
TIMEOUT_OPTION = typer.Option(
    None,
    "--timeout",
    callback=_positive_timeout,
    help="Per-command timeout in seconds. Commands exceeding it are killed and fail the run.",
)
OFFLINE_OPTION = typer.Option(
    default=False,
    help="Run checkers offline against the vendored wheel directory.",
)
FIND_LINKS_OPTION = typer.Option(
    None,
    "--find-links",
    file_okay=False,
    resolve_path=True,
    help="Directory of distributions passed to the run command via --find-links.",
)
PROFILE_OPTION = typer.Option(
    None,
    "--profile",
    help="Build profile used when compiling the tool under test (default: fast-build; empty to omit).",
)
REQUIRE_OPTION = typer.Option(
    list(DEFAULT_BINARIES),
    "--require",
    help="Executables that must be available on PATH.",
)
INIT_TARGET_ARGUMENT = typer.Argument(
    Path(),
    file_okay=False,
    resolve_path=True,
    help="Directory where the configuration templates should be generated.",
)
INIT_FORCE_OPTION = typer.Option(
    default=False,
    help="Overwrite existing scaffold files if they are already present.",
)

DEFAULT_EXECUTOR: CommandExecutor = run_command

INIT_CASES_TEMPLATE = """
cases:
  - name: albatross-just-project
    working_directory: ${WORKSPACES_ROOT:-scripts/workspaces}/albatross-just-project
    setup_command: [uv, venv]
    run_command: [cargo, run, --profile, fast-build, "--", run, --preview, check_installed_albatross.py]

  - name: virtual-workspace-bird-feeder
    working_directory: ${WORKSPACES_ROOT:-scripts/workspaces}/albatross-virtual-workspace/packages/bird-feeder
    setup_command: uv venv ../../.venv
    run_command: cargo run --profile fast-build -- run --preview check_installed_bird_feeder.py
""".strip()

INIT_ENV_TEMPLATE = """
# Environment variables consumed by workspace-smoke cases files
WORKSPACES_ROOT=scripts/workspaces
""".strip()


def _reject_suite_options(
    cases_file: Path | None,
    *,
    root: Path | None,
    offline: bool,
    find_links: Path | None,
    build_profile: str | None,
) -> None:
    if cases_file is None:
        return
    given = {
        "--root": root is not None,
        "--offline": offline,
        "--find-links": find_links is not None,
        "--profile": build_profile is not None,
    }
    conflicting = [flag for flag, present in given.items() if present]
    if conflicting:
        message = f"{', '.join(conflicting)} only apply to the built-in suite, not to --cases-file."
        raise typer.BadParameter(message)


def _resolve_cases(
    cases_file: Path | None,
    env_file: list[Path] | None,
    root: Path | None,
    profile: CommandProfile,
) -> tuple[list[TestCase], str]:
    if cases_file is not None:
        env_files = list(env_file) if env_file else None
        try:
            result = load_test_cases(cases_file, env_files=env_files, overrides=os.environ)
        except LoadError as exc:
            raise typer.BadParameter(str(exc)) from exc
        return list(result.items), str(result.source)
    try:
        cases = default_test_cases(root, profile=profile)
    except RepositoryRootError as exc:
        raise typer.BadParameter(str(exc)) from exc
    return cases, "built-in workspace suite"


def _build_profile(*, build_profile: str | None, offline: bool, find_links: Path | None) -> CommandProfile:
    profile = CommandProfile(offline=offline, find_links=find_links)
    if build_profile is None:
        return profile
    return replace(profile, build_profile=build_profile or None)


def _print_outcome_table(outcome: HarnessOutcome, total: int) -> None:
    table = Table(title="Smoke Test Results")
    table.add_column("#", justify="right")
    table.add_column("Test Case", style="bold")
    table.add_column("Status")
    table.add_column("Elapsed (ms)", justify="right")

    failed_index = outcome.failure.index if outcome.failure is not None else None
    for index, result in enumerate(outcome.completed):
        elapsed = sum(command.elapsed_ms for command in result.commands)
        status = "[red]failed[/red]" if index == failed_index else "[green]passed[/green]"
        table.add_row(str(index + 1), escape(result.case.label), status, str(elapsed))
    for index in range(len(outcome.completed), total):
        table.add_row(str(index + 1), "", "[dim]not run[/dim]", "")
    console.print(table)


def execute(
    *,
    cases_file: Path | None = None,
    env_file: list[Path] | None = None,
    root: Path | None = None,
    timeout: float | None = None,
    offline: bool = False,
    find_links: Path | None = None,
    build_profile: str | None = None,
) -> HarnessOutcome:
    """Resolve the test cases, run them, and exit non-zero on failure.

    SIGTERM is handled like Ctrl-C for the duration of the run, so the running
    command is stopped and the exit status is 130 in both cases.
    """
    _reject_suite_options(cases_file, root=root, offline=offline, find_links=find_links, build_profile=build_profile)
    profile = _build_profile(build_profile=build_profile, offline=offline, find_links=find_links)
    cases, source = _resolve_cases(cases_file, env_file, root, profile)
    console.print(f"[dim]Test cases loaded from {escape(source)}[/dim]")
    if cases_file is None:
        warn_if_missing_binaries(console=console, names=profile.binaries())
    if not cases:
        console.print("[yellow]No test cases configured; nothing to run.[/yellow]")

    runner = HarnessRunner(executor=DEFAULT_EXECUTOR, timeout=timeout, log=console.print)
    with terminate_as_interrupt():
        outcome = runner.run(cases)

    if cases:
        _print_outcome_table(outcome, len(cases))
    if outcome.failure is not None:
        failure = outcome.failure
        phase = failure.phase.value if failure.phase is not None else "-"
        console.print(
            f"[red]Smoke run failed at case {failure.index + 1} "
            f"({failure.kind.value}, phase: {phase}).[/red]",
        )
        raise typer.Exit(code=outcome.exit_code)
    console.print("[green]All smoke tests passed.[/green]")
    return outcome


@app.callback(invoke_without_command=True)
def default(ctx: typer.Context) -> None:
    """Run the built-in workspace suite when no command is given."""
    if ctx.invoked_subcommand is None:
        execute()


@app.command()
def run(
    cases_file: Path | None = CASES_FILE_OPTION,
    env_file: list[Path] | None = ENV_FILE_OPTION,
    root: Path | None = ROOT_OPTION,
    timeout: float | None = TIMEOUT_OPTION,
    offline: bool = OFFLINE_OPTION,
    find_links: Path | None = FIND_LINKS_OPTION,
    profile: str | None = PROFILE_OPTION,
) -> None:
    """Run every test case in order, halting at the first failure."""
    execute(
        cases_file=cases_file,
        env_file=env_file,
        root=root,
        timeout=timeout,
        offline=offline,
        find_links=find_links,
        build_profile=profile,
    )


@app.command(name="list")
def list_cases(
    cases_file: Path | None = CASES_FILE_OPTION,
    env_file: list[Path] | None = ENV_FILE_OPTION,
    root: Path | None = ROOT_OPTION,
    offline: bool = OFFLINE_OPTION,
    find_links: Path | None = FIND_LINKS_OPTION,
    profile: str | None = PROFILE_OPTION,
) -> None:
    """Show the resolved test cases without running them."""
    _reject_suite_options(cases_file, root=root, offline=offline, find_links=find_links, build_profile=profile)
    command_profile = _build_profile(build_profile=profile, offline=offline, find_links=find_links)
    cases, source = _resolve_cases(cases_file, env_file, root, command_profile)

    table = Table(title="Test Cases")
    table.add_column("#", justify="right")
    table.add_column("Name", style="bold")
    table.add_column("Directory", overflow="fold")
    table.add_column("Setup", overflow="fold")
    table.add_column("Run", overflow="fold")
    for index, case in enumerate(cases, start=1):
        table.add_row(
            str(index),
            escape(case.label),
            escape(str(case.working_directory)),
            escape(" ".join(case.setup_command)) or "[dim](none)[/dim]",
            escape(" ".join(case.run_command)),
        )
    console.print(table)
    console.print(f"[dim]{len(cases)} test case(s) from {escape(source)}[/dim]")


@app.command()
def check(require: list[str] = REQUIRE_OPTION) -> None:
    """Verify the executables invoked by the suite are installed."""
    results = check_required_binaries(require)

    table = Table(title="Tool Check")
    table.add_column("Binary", style="bold")
    table.add_column("Status")
    table.add_column("Version", overflow="fold")

    missing: list[str] = []
    for result in results:
        if result.available:
            table.add_row(result.name, "[green]available[/green]", escape(result.version or ""))
        else:
            table.add_row(result.name, "[red]missing[/red]", escape(result.error or ""))
            missing.append(result.name)

    console.print(table)

    if missing:
        console.print("[yellow]Missing required binaries: " + ", ".join(missing) + "[/yellow]")
        raise typer.Exit(code=1)

    console.print("[green]All required binaries are available.[/green]")


def _write_template(path: Path, content: str, *, force: bool) -> bool:
    if path.exists() and not force:
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content.rstrip() + "\n", encoding="utf-8")
    return True


@app.command()
def init(target: Path = INIT_TARGET_ARGUMENT, force: bool = INIT_FORCE_OPTION) -> None:
    """Bootstrap a cases file and environment scaffolding."""
    target = target.resolve()
    target.mkdir(parents=True, exist_ok=True)
    templates = {
        "cases.yaml": INIT_CASES_TEMPLATE,
        ".env.example": INIT_ENV_TEMPLATE,
    }
    skipped: list[str] = []
    for name, content in templates.items():
        path = target / name
        created = _write_template(path, content, force=force)
        status = "created" if created else "skipped"
        color = "green" if created else "yellow"
        console.print(f"[{color}]{status.capitalize()} {path}[/]")
        if not created:
            skipped.append(name)
    if skipped and not force:
        console.print(
            "[yellow]Some files already existed. Use --force to overwrite them.[/yellow]",
        )
        raise typer.Exit(code=1)
    console.print(f"[green]Scaffolding written to {target}[/green]")


def main() -> None:  # pragma: no cover - Typer entry point
    """Invoke the Typer application."""
    app()


if __name__ == "__main__":  # pragma: no cover - script entry point
    main()
