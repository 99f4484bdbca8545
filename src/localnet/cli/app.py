"""
Root Typer application for the ``localnet`` CLI.

Usage::

    localnet setup              # bootstrap NCN, operators, token, vault, handshake
    localnet advance 864000     # warp the validator forward by N slots
    localnet run                # fresh validator + setup + advance two epochs
    localnet --version

Exit codes follow the error raised: 1 for setup failures, 2 when the
validator's slot query returns garbage, 130 when a wait is cancelled.
"""

from __future__ import annotations

import signal
from typing import NoReturn

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from localnet.bootstrap.orchestrator import SetupOrchestrator
from localnet.bootstrap.results import SetupRunResult, StageStatus
from localnet.bootstrap.runner import LocalnetRunner
from localnet.core.errors import LocalnetError
from localnet.core.logging import configure_logging
from localnet.core.settings import LocalnetSettings
from localnet.validator.clock import ClockAdvancer
from localnet.validator.process import ValidatorProcess

app = typer.Typer(
    name="localnet",
    help="localnet: bootstrap a restaking network on a local Solana test validator.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
console = Console()
err_console = Console(stderr=True)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from localnet import get_version

        typer.echo(f"localnet-bootstrap {get_version()}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """localnet CLI: set up, run and time-travel a local restaking network."""


# ── Commands ─────────────────────────────────────────────────────────────


@app.command()
def setup() -> None:
    """Run the bootstrap pipeline in the working directory.

    Re-running resumes: stages whose records already exist are skipped.
    """
    settings = _load_settings()
    console.print(f"[bold]localnet setup[/] in {settings.workdir}")

    result = SetupOrchestrator(settings).run()
    _print_setup_result(result)

    if not result.success:
        err_console.print(
            f"[bold red]Setup failed[/] at stage [bold]{result.failed_stage}[/]: {result.error}\n"
            f"See {settings.logs_path / 'error.log'} for details."
        )
        raise typer.Exit(code=result.exit_code)


@app.command()
def advance(
    slots: int | None = typer.Argument(None, help="Number of slots to advance.", show_default=False),
) -> None:
    """Restart the validator warped forward by SLOTS slots."""
    if slots is None:
        err_console.print("Usage: localnet advance SLOTS\nExample: localnet advance 864000")
        raise typer.Exit(code=1)
    if slots < 0:
        err_console.print(f"[bold red]Error[/]: SLOTS must be >= 0, got {slots}")
        raise typer.Exit(code=1)

    settings = _load_settings()
    validator = ValidatorProcess(settings)
    try:
        target = ClockAdvancer(validator, settle=settings.clock_settle).advance(slots)
    except LocalnetError as exc:
        _fail(exc)
    console.print(f"Validator restarted at slot [bold]{target}[/]")


@app.command()
def run() -> None:
    """Start a fresh validator, run setup, then advance two epochs."""
    settings = _load_settings()
    runner = LocalnetRunner(settings)
    previous = signal.signal(signal.SIGTERM, lambda *_: runner.sleeper.cancel())

    try:
        result = runner.run()
    except LocalnetError as exc:
        _fail(exc)
    finally:
        signal.signal(signal.SIGTERM, previous)

    if result.setup is not None:
        _print_setup_result(result.setup)
    if not result.success:
        raise typer.Exit(code=result.exit_code)
    console.print(f"[bold green]Local network ready[/], clock advanced to slot {result.target_slot}")


# ── Helpers ──────────────────────────────────────────────────────────────


def _load_settings() -> LocalnetSettings:
    try:
        settings = LocalnetSettings()
    except ValidationError as exc:
        err_console.print(f"[bold red]Invalid configuration[/]:\n{exc}")
        raise typer.Exit(code=1) from exc
    configure_logging(settings.log_level, settings.log_json)
    return settings


def _fail(exc: LocalnetError) -> NoReturn:
    err_console.print(f"[bold red]Error[/] ({type(exc).__name__}): {exc.message}")
    raise typer.Exit(code=exc.exit_code) from exc


def _print_setup_result(result: SetupRunResult) -> None:
    """Pretty-print a SetupRunResult."""
    table = Table(title=f"Setup {result.run_id}")
    table.add_column("Stage", style="bold")
    table.add_column("Status")
    table.add_column("Time")
    table.add_column("Detail")

    for stage in result.stages:
        style = {
            StageStatus.PASSED: "green",
            StageStatus.SKIPPED: "dim",
            StageStatus.FAILED: "red bold",
        }.get(stage.status, "white")
        table.add_row(
            stage.name,
            f"[{style}]{stage.status.value}[/{style}]",
            f"{stage.duration_seconds:.1f}s",
            stage.detail,
        )
    console.print(table)

    if result.identifiers:
        ids = Table(title="Identifiers")
        ids.add_column("Record", style="bold")
        ids.add_column("Value")
        for name, value in result.identifiers.items():
            ids.add_row(name, value)
        console.print(ids)

    console.print(f"[bold]{result.summary}[/] in {result.duration_seconds:.1f}s")
