"""Rich-based terminal presentation for the gamemover CLI."""

from .relocation_tui import RelocationTUI, format_duration, format_size

__all__ = ["RelocationTUI", "format_duration", "format_size"]
