"""gamemover - Game installation relocation tool.

Moves a large game installation between the directories used by different
distribution platforms, across drives if needed, verifying the result and
rolling back on failure.
"""

__version__ = "0.1.0"

from .models import (
    InstallationRecord,
    OutcomeKind,
    PlatformId,
    RelocationOutcome,
    TransferProgress,
)

__all__ = [
    "__version__",
    "InstallationRecord",
    "OutcomeKind",
    "PlatformId",
    "RelocationOutcome",
    "TransferProgress",
]


def main() -> None:
    """Entry point for the gamemover CLI application.

    Imports and runs the Typer app from the gamemover.cli module.
    """
    from gamemover.cli import app
    app()
