"""Tree snapshot and verification for relocation baselines.

This module provides the TreeSnapshot class, which enumerates a directory
tree into (relative path, size) records and later checks another tree
against that baseline.

Verification compares paths and sizes only. A file whose bytes were
corrupted without changing its length passes verification; content hashing
is deliberately not performed so that multi-gigabyte trees verify quickly.

Example:
    >>> from gamemover.scanning import TreeSnapshot
    >>> snapshotter = TreeSnapshot()
    >>> baseline = snapshotter.snapshot(Path("/games/GTAV"))
    >>> result = snapshotter.verify(Path("/mnt/d/GTAV"), baseline)
    >>> result.passed
    True
"""

import logging
import os
import stat
from pathlib import Path
from typing import Dict, Iterable, List

from gamemover.models import FileSnapshotEntry, SizeMismatch, VerificationResult

logger = logging.getLogger("gamemover.snapshot")


class TreeSnapshot:
    """Captures and verifies (relative path, size) baselines of directory trees.

    Snapshotting is a pure read. Files that disappear or become unreadable
    while the walk is in progress are skipped and recorded in the error list
    rather than raised, since an installation may hold transient lock files.

    Attributes:
        _errors: List of error messages encountered during snapshotting.

    Example:
        >>> snapshotter = TreeSnapshot()
        >>> entries = snapshotter.snapshot(Path("/games/GTAV"))
        >>> print(f"{len(entries)} files, {TreeSnapshot.total_size(entries)} bytes")
    """

    def __init__(self) -> None:
        self._errors: List[str] = []

    def snapshot(self, root_path: Path) -> List[FileSnapshotEntry]:
        """Enumerate every regular file under root_path.

        Walks the full tree without following symlinks. Relative paths use
        forward slashes regardless of the host separator.

        Args:
            root_path: Root directory of the tree.

        Returns:
            One FileSnapshotEntry per regular file. Order is unspecified.
        """
        root = Path(root_path)
        entries: List[FileSnapshotEntry] = []

        def _on_walk_error(error: OSError) -> None:
            self._errors.append(f"Error reading directory {error.filename}: {error}")

        for dirpath, _dirnames, filenames in os.walk(
            root, followlinks=False, onerror=_on_walk_error
        ):
            for filename in filenames:
                file_path = Path(dirpath) / filename
                try:
                    st = file_path.lstat()
                except PermissionError:
                    self._errors.append(f"Permission denied: {file_path}")
                    continue
                except OSError as e:
                    # Deleted between listing and stat
                    self._errors.append(f"Error accessing {file_path}: {e}")
                    continue

                if not stat.S_ISREG(st.st_mode):
                    continue

                entries.append(
                    FileSnapshotEntry(
                        relative_path=self.relative_key(file_path, root),
                        size_bytes=st.st_size,
                    )
                )

        logger.debug(f"Snapshot of {root}: {len(entries)} files")
        return entries

    def verify(
        self, root_path: Path, snapshot: Iterable[FileSnapshotEntry]
    ) -> VerificationResult:
        """Check a tree against a snapshot baseline.

        Every baseline entry must exist under root_path with exactly the
        recorded size. Files present under root_path but absent from the
        baseline are ignored.

        Args:
            root_path: Root directory to verify.
            snapshot: Baseline entries, typically taken from the source tree.

        Returns:
            VerificationResult listing missing files and size mismatches.
        """
        root = Path(root_path)
        result = VerificationResult()

        for entry in snapshot:
            candidate = root.joinpath(*entry.relative_path.split("/"))
            try:
                st = candidate.lstat()
            except OSError:
                result.missing.append(entry.relative_path)
                continue

            if not stat.S_ISREG(st.st_mode):
                result.missing.append(entry.relative_path)
                continue

            if st.st_size != entry.size_bytes:
                result.size_mismatches.append(
                    SizeMismatch(
                        relative_path=entry.relative_path,
                        expected=entry.size_bytes,
                        actual=st.st_size,
                    )
                )

        if not result.passed:
            logger.warning(f"Verification of {root} failed: {result.describe()}")
        return result

    @staticmethod
    def relative_key(file_path: Path, root: Path) -> str:
        """Return file_path relative to root with forward-slash separators."""
        return file_path.relative_to(root).as_posix()

    @staticmethod
    def total_size(snapshot: Iterable[FileSnapshotEntry]) -> int:
        """Sum of all entry sizes in a snapshot."""
        return sum(entry.size_bytes for entry in snapshot)

    @staticmethod
    def as_mapping(snapshot: Iterable[FileSnapshotEntry]) -> Dict[str, int]:
        """Key a snapshot by relative path, mapping to size."""
        return {entry.relative_path: entry.size_bytes for entry in snapshot}

    def get_errors(self) -> List[str]:
        """Get list of errors encountered during snapshotting.

        Returns:
            List of error message strings.
        """
        return self._errors.copy()

    def clear_errors(self) -> None:
        """Clear the list of accumulated errors."""
        self._errors.clear()
