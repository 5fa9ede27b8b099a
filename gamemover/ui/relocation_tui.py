"""Terminal User Interface for installation relocation.

This module provides the RelocationTUI class, a Rich-based presentation
layer for the CLI: installation tables, a confirmation prompt, the live
transfer progress bar and the final outcome panel.

Example:
    from gamemover.ui import RelocationTUI

    tui = RelocationTUI()
    tui.display_installations(records)
    progress, callback = tui.create_progress_callback("Moving to Epic Games")
    with progress:
        outcome = orchestrator.relocate(record, PlatformId.EPIC, on_progress=callback)
    tui.display_outcome(outcome)
"""

from typing import Callable, List, Optional, Tuple

from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn
from rich.prompt import Confirm
from rich.table import Table

from gamemover.models import (
    InstallationRecord,
    OutcomeKind,
    PlatformId,
    RelocationOutcome,
    SpaceCheck,
    TransferProgress,
)


def format_size(bytes_size: int) -> str:
    """Convert bytes to human-readable format (e.g. "10.5 MB", "61.2 GB")."""
    if bytes_size < 1024:
        return f"{bytes_size} B"
    elif bytes_size < 1024 * 1024:
        return f"{bytes_size / 1024:.1f} KB"
    elif bytes_size < 1024 * 1024 * 1024:
        return f"{bytes_size / (1024 * 1024):.1f} MB"
    else:
        return f"{bytes_size / (1024 * 1024 * 1024):.1f} GB"


def format_duration(seconds: Optional[float]) -> str:
    """Format seconds as "45s", "5m 23s" or "1h 5m 30s"; "--" when unknown."""
    if seconds is None:
        return "--"
    total_seconds = max(0, int(seconds))

    if total_seconds < 60:
        return f"{total_seconds}s"

    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    secs = total_seconds % 60

    if hours > 0:
        return f"{hours}h {minutes}m {secs}s"
    return f"{minutes}m {secs}s"


class RelocationTUI:
    """Rich-based terminal output for relocation commands.

    Args:
        console: Optional Rich Console instance for output. Pass a Console
            writing to a StringIO to capture output in tests.

    Attributes:
        console: The Rich Console instance used for all output.
    """

    _OUTCOME_STYLES = {
        OutcomeKind.SUCCEEDED: ("Move complete", "green"),
        OutcomeKind.PREFLIGHT_FAILED: ("Move not started", "yellow"),
        OutcomeKind.FAILED: ("Move failed - original installation intact", "red"),
        OutcomeKind.CANCELLED: ("Move cancelled - original installation intact", "yellow"),
        OutcomeKind.ROLLED_BACK: ("Move failed - rolled back to original location", "red"),
        OutcomeKind.ROLLBACK_FAILED: ("Move failed - ROLLBACK FAILED, manual action required", "bold red"),
    }

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()

    def display_installations(self, records: List[InstallationRecord]) -> None:
        """Show discovered installations, warning when there is more than one."""
        if not records:
            self.console.print("[red]No installation found on this system.[/red]")
            return

        table = Table(title="Installations")
        table.add_column("#", justify="right", style="cyan", no_wrap=True)
        table.add_column("Platform", style="magenta")
        table.add_column("Path", style="white")
        table.add_column("Size", justify="right")

        for idx, record in enumerate(records, start=1):
            table.add_row(
                str(idx),
                record.platform.display_name,
                str(record.path),
                format_size(record.size_bytes),
            )
        self.console.print(table)

        if len(records) > 1:
            platforms = ", ".join(r.platform.display_name for r in records)
            self.console.print(
                Panel(
                    f"{len(records)} installations detected ({platforms}).\n"
                    f"Only the first one ({records[0].path}) will be moved. "
                    "Remove unneeded copies to avoid confusion.",
                    title="Multiple installations",
                    border_style="yellow",
                )
            )

    def confirm_move(self, record: InstallationRecord, target: PlatformId) -> bool:
        """Ask the user to confirm moving record to the target platform."""
        panel = Panel(
            f"[bold]From:[/bold] {record.platform.display_name} ({record.path})\n"
            f"[bold]To:[/bold] {target.display_name}\n"
            f"[bold]Size:[/bold] {format_size(record.size_bytes)}\n\n"
            "[yellow]This can take several minutes depending on the game size.[/yellow]",
            title="Confirm move",
            border_style="yellow",
        )
        self.console.print(panel)
        return Confirm.ask("Proceed with move?", default=False, console=self.console)

    def create_progress_callback(
        self, description: str
    ) -> Tuple[Progress, Callable[[TransferProgress], None]]:
        """Create a progress bar and a TransferProgress callback that drives it.

        The returned Progress MUST be used as a context manager around the
        relocation. The callback is safe to call from the worker thread.

        Returns:
            tuple[Progress, Callable[[TransferProgress], None]]
        """
        progress = Progress(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            TextColumn("{task.fields[speed]}"),
            TextColumn("ETA {task.fields[eta]}"),
            console=self.console,
        )
        task_id = progress.add_task(description, total=None, speed="", eta="--")

        def callback(update: TransferProgress) -> None:
            progress.update(
                task_id,
                total=max(update.total_bytes, 1),
                completed=update.processed_bytes if update.total_bytes else 1,
                speed=f"{update.speed_mbps:.1f} MB/s" if update.speed_mbps > 0 else "",
                eta=format_duration(update.eta_seconds),
            )

        return progress, callback

    def display_space_check(self, check: SpaceCheck) -> None:
        table = Table(show_header=True, header_style="bold")
        table.add_column("Metric", style="cyan")
        table.add_column("Value", justify="right")
        table.add_row("Available", format_size(check.available_bytes))
        table.add_row("Required (with margin)", format_size(check.required_bytes_with_margin))
        if check.has_space:
            table.add_row("Result", "[green]enough space[/green]")
        else:
            table.add_row("Result", f"[red]{format_size(check.shortfall_bytes)} short[/red]")
        self.console.print(table)

    def display_outcome(self, outcome: RelocationOutcome) -> None:
        """Show the terminal result of a relocation attempt."""
        title, style = self._OUTCOME_STYLES[outcome.kind]

        lines = []
        if outcome.source_path is not None:
            lines.append(f"Source: {outcome.source_path}")
        if outcome.target_path is not None:
            lines.append(f"Target: {outcome.target_path}")
        if outcome.method is not None:
            lines.append(f"Method: {outcome.method.value}")
        lines.append(f"Duration: {format_duration(outcome.duration_seconds)}")
        if outcome.reason:
            lines.append("")
            lines.append(outcome.reason)
        if outcome.preflight is not None and "shortfall_bytes" in outcome.preflight.details:
            lines.append(
                f"Free up {format_size(outcome.preflight.details['shortfall_bytes'])} and retry."
            )

        self.console.print(Panel("\n".join(lines), title=title, border_style=style))
