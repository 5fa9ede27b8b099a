"""Tree scanning package for the relocation engine.

This package provides TreeSnapshot, which captures a (relative path, size)
baseline of a directory tree and verifies another tree against it.

Example:
    >>> from gamemover.scanning import TreeSnapshot
    >>> from pathlib import Path
    >>>
    >>> snapshotter = TreeSnapshot()
    >>> baseline = snapshotter.snapshot(Path("/games/GTAV"))
    >>> snapshotter.verify(Path("/games/GTAV"), baseline).passed
    True
"""

from .tree_snapshot import TreeSnapshot

__all__ = ["TreeSnapshot"]
