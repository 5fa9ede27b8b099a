"""
gamemover - CLI Interface.

A command-line interface for moving a game installation between the
directories of different distribution platforms (Steam, Rockstar Games,
Epic Games), across drives if necessary, with verification and rollback.

Usage Examples:
    # List detected installations
    python -m gamemover detect

    # Move the detected installation to Epic Games
    python -m gamemover move epic

    # Move an explicit directory, skipping the confirmation prompt
    python -m gamemover move steam --source "D:/Games/GTAV" --source-platform epic --yes

    # Check whether a drive can hold 60 GB
    python -m gamemover check-space D:/ 60000000000

    # Show or clear the event log
    python -m gamemover logs
    python -m gamemover logs --clear
"""

import logging
from concurrent.futures import TimeoutError as FutureTimeout
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from gamemover import __version__
from gamemover.discovery import KnownPathsDiscovery
from gamemover.models import InstallationRecord, OutcomeKind, PlatformId, RelocationOutcome
from gamemover.operations import CancelToken
from gamemover.orchestration import EventLog, MemoryEventLog, RelocationOrchestrator
from gamemover.scanning import TreeSnapshot
from gamemover.ui import RelocationTUI

# Initialize Typer app
app = typer.Typer(
    name="gamemover",
    help="Move a game installation between Steam, Rockstar Games and Epic Games.",
    add_completion=False,
    no_args_is_help=True,
)

# Rich console for consistent output formatting
console = Console()

EXIT_CODES = {
    OutcomeKind.SUCCEEDED: 0,
    OutcomeKind.PREFLIGHT_FAILED: 1,
    OutcomeKind.FAILED: 1,
    OutcomeKind.ROLLED_BACK: 1,
    OutcomeKind.ROLLBACK_FAILED: 2,
    OutcomeKind.CANCELLED: 130,
}


def version_callback(value: bool) -> None:
    """Display version information and exit."""
    if value:
        console.print(f"gamemover v{__version__}")
        raise typer.Exit()


def parse_platform(value: str) -> PlatformId:
    """
    Convert a platform argument to PlatformId.

    Raises:
        typer.BadParameter: If the value is not a known platform.
    """
    try:
        return PlatformId.parse(value)
    except ValueError as e:
        raise typer.BadParameter(str(e))


def configure_logging(verbose: bool) -> None:
    """Route module loggers through Rich when verbose output is requested."""
    if not verbose:
        return
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def build_orchestrator(
    discovery: KnownPathsDiscovery,
    event_log: EventLog,
    target_path: Optional[Path] = None,
) -> RelocationOrchestrator:
    """Create the orchestrator used by the CLI commands."""
    resolver = None
    if target_path is not None:
        def resolver(_platform: PlatformId) -> Path:
            return target_path

    return RelocationOrchestrator(
        discovery=discovery,
        event_log=event_log,
        target_resolver=resolver,
    )


def run_with_cancellation(
    orchestrator: RelocationOrchestrator,
    record: Optional[InstallationRecord],
    target: PlatformId,
    tui: RelocationTUI,
) -> RelocationOutcome:
    """
    Run a relocation on the worker thread, cancelling it on Ctrl+C.

    The first Ctrl+C sets the cancel token and keeps waiting so the
    orchestrator can clean up; the outcome is then returned normally.
    """
    cancel_token = CancelToken()
    progress, callback = tui.create_progress_callback(f"Moving to {target.display_name}")

    with progress:
        future = orchestrator.relocate_async(
            record, target, on_progress=callback, cancel_token=cancel_token
        )
        try:
            while True:
                try:
                    return future.result(timeout=0.2)
                except FutureTimeout:
                    continue
                except KeyboardInterrupt:
                    if not cancel_token.is_cancelled:
                        cancel_token.cancel()
                        tui.console.print(
                            "\n[yellow]Cancelling - waiting for the copy to stop...[/yellow]"
                        )
        finally:
            orchestrator.shutdown(wait=True)


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """gamemover - Move a game installation between launcher platforms."""
    pass


@app.command()
def detect(
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-V",
        help="Enable verbose output.",
    ),
) -> None:
    """
    List the installations found on this system.

    Exits with code 1 when no installation is found.
    """
    configure_logging(verbose)
    tui = RelocationTUI(console=console)
    records = KnownPathsDiscovery().find_all()
    tui.display_installations(records)
    if not records:
        raise typer.Exit(1)


@app.command()
def move(
    target: str = typer.Argument(
        ...,
        help="Platform to move the game to: steam, rockstar or epic.",
    ),
    source: Optional[Path] = typer.Option(
        None,
        "--source",
        "-s",
        help="Installation directory to move (default: first detected installation).",
    ),
    source_platform: Optional[str] = typer.Option(
        None,
        "--source-platform",
        "-p",
        help="Platform the --source directory currently belongs to.",
    ),
    target_path: Optional[Path] = typer.Option(
        None,
        "--target-path",
        "-t",
        help="Override the destination directory for the target platform.",
    ),
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Do not ask for confirmation.",
    ),
    log_file: Optional[Path] = typer.Option(
        None,
        "--log-file",
        "-l",
        help="Path for the event log (default: per-user gamemover/logs.txt).",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-V",
        help="Enable verbose output.",
    ),
) -> None:
    """
    Move the game installation to another platform's directory.

    Runs the pre-flight checks (platform, launcher, running processes,
    target collision, free space), then moves the tree with a progress bar.
    Ctrl+C cancels a cross-drive copy and restores the original layout.

    Exit codes: 0 success, 1 not moved, 2 rollback failed, 130 cancelled.
    """
    configure_logging(verbose)
    target_platform = parse_platform(target)
    tui = RelocationTUI(console=console)
    discovery = KnownPathsDiscovery()

    record: Optional[InstallationRecord] = None
    if source is not None:
        if source_platform is None:
            console.print("[red]Error:[/red] --source requires --source-platform.")
            raise typer.Exit(1)
        if not source.is_dir():
            console.print(f"[red]Error:[/red] Source is not a directory: {source}")
            raise typer.Exit(1)
        record = InstallationRecord(
            path=source,
            platform=parse_platform(source_platform),
            size_bytes=TreeSnapshot.total_size(TreeSnapshot().snapshot(source)),
        )
    else:
        records = discovery.find_all()
        tui.display_installations(records)
        if not records:
            raise typer.Exit(1)
        record = records[0]

    if not yes and not tui.confirm_move(record, target_platform):
        console.print("[yellow]Move aborted.[/yellow]")
        raise typer.Exit(0)

    with EventLog(log_file) as event_log:
        orchestrator = build_orchestrator(discovery, event_log, target_path)
        outcome = run_with_cancellation(orchestrator, record, target_platform, tui)

    tui.display_outcome(outcome)
    if verbose:
        console.print(f"[dim]Log file: {event_log.get_log_path()}[/dim]")

    exit_code = EXIT_CODES[outcome.kind]
    if exit_code:
        raise typer.Exit(exit_code)


@app.command("check-space")
def check_space(
    path: Path = typer.Argument(
        ...,
        help="Destination directory (need not exist yet).",
    ),
    required_bytes: int = typer.Argument(
        ...,
        min=0,
        help="Size of the installation in bytes.",
    ),
) -> None:
    """
    Check whether a destination volume can hold an installation.

    Applies the same 10% safety margin as the move command.
    Exits with code 1 when there is not enough space.
    """
    tui = RelocationTUI(console=console)
    orchestrator = build_orchestrator(KnownPathsDiscovery(), MemoryEventLog())
    try:
        result = orchestrator.check_space(path, required_bytes)
    except OSError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    tui.display_space_check(result)
    if not result.has_space:
        raise typer.Exit(1)


@app.command()
def logs(
    clear: bool = typer.Option(
        False,
        "--clear",
        help="Erase the event log.",
    ),
    log_file: Optional[Path] = typer.Option(
        None,
        "--log-file",
        "-l",
        help="Path of the event log to read.",
    ),
) -> None:
    """Show (or clear) the relocation event log."""
    event_log = EventLog(log_file)

    if clear:
        try:
            event_log.clear()
        except OSError as e:
            console.print(f"[red]Error:[/red] Could not clear log: {e}")
            raise typer.Exit(1)
        console.print("[green]Log cleared.[/green]")
        return

    try:
        content = event_log.read()
    except OSError as e:
        console.print(f"[red]Error:[/red] Could not read log: {e}")
        raise typer.Exit(1)

    if not content.strip():
        console.print(f"[dim]No log entries ({event_log.get_log_path()}).[/dim]")
        return
    console.print(content, end="", markup=False, highlight=False)


if __name__ == "__main__":
    app()
