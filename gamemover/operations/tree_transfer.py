"""
Tree transfer module for the relocation engine.

This module contains the TreeTransfer class, which moves a directory tree
from one root to another. A same-volume move is a single atomic rename;
when the rename fails because the paths are on different devices the tree
is copied file by file and the source removed afterwards.
"""

import errno
import logging
import os
import shutil
import stat
import time
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from gamemover.models import TransferMethod, TransferProgress
from gamemover.scanning import TreeSnapshot

from .cancellation import CancelToken
from .errors import TransferCancelled, TransferError

# Configure module logger
logger = logging.getLogger("gamemover.transfer")

ProgressCallback = Callable[[TransferProgress], None]


class TreeTransfer:
    """
    Moves a directory tree, falling back to copy + delete across volumes.

    Only the fallback copy reports progress and honors cancellation; the
    rename path completes near-instantly and cannot be interrupted.
    """

    # Minimum wall time between two progress callbacks during the copy
    DEFAULT_PROGRESS_INTERVAL = 0.5

    def __init__(
        self,
        progress_interval: float = DEFAULT_PROGRESS_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Create a TreeTransfer.

        Parameters:
            progress_interval (float): Seconds that must elapse between two throttled progress reports.
            clock (Callable[[], float]): Monotonic time source, injectable for tests.
        """
        self.progress_interval = progress_interval
        self._clock = clock

    def transfer(
        self,
        source_root: Path,
        dest_root: Path,
        on_progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> TransferMethod:
        """
        Move source_root to dest_root.

        Tries an atomic rename first. If the rename fails with EXDEV (source and
        destination on different devices) the tree is copied depth-first into
        dest_root, then source_root is deleted. Any other rename failure is fatal.

        Parameters:
            source_root (Path): Existing directory to move.
            dest_root (Path): Destination path; its parent must already exist.
            on_progress (Optional[ProgressCallback]): Receives TransferProgress values during the fallback copy.
            cancel_token (Optional[CancelToken]): Polled before each file and directory during the fallback copy.

        Returns:
            TransferMethod: FAST_RENAME or COPY_THEN_DELETE.

        Raises:
            TransferError: The source is unreadable, the destination unwritable, or deleting the source failed.
            TransferCancelled: The cancel token was set during the fallback copy.
        """
        source_root = Path(source_root)
        dest_root = Path(dest_root)

        try:
            os.rename(source_root, dest_root)
        except OSError as e:
            if e.errno != errno.EXDEV:
                raise TransferError(
                    f"Cannot move {source_root} to {dest_root}: {e}", cause=e
                ) from e
            logger.info(
                f"Rename crosses devices, falling back to copy: {source_root} -> {dest_root}"
            )
        else:
            logger.info(f"Renamed {source_root} -> {dest_root}")
            return TransferMethod.FAST_RENAME

        self._copy_tree(source_root, dest_root, on_progress, cancel_token)
        self._delete_source(source_root)
        return TransferMethod.COPY_THEN_DELETE

    def _copy_tree(
        self,
        source_root: Path,
        dest_root: Path,
        on_progress: Optional[ProgressCallback],
        cancel_token: Optional[CancelToken],
    ) -> None:
        """
        Copy every file and directory under source_root into dest_root.

        Uses an explicit stack of (source_dir, dest_dir) pairs so depth is bounded
        only by the filesystem. Files are overwritten if they already exist at the
        destination. Symlinks are recreated as symlinks, not followed.

        Raises:
            TransferError: On any read or write failure; no cleanup is attempted.
            TransferCancelled: When the cancel token is set.
        """
        if not source_root.is_dir():
            raise TransferError(f"Source is not a readable directory: {source_root}")

        total_bytes = TreeSnapshot.total_size(TreeSnapshot().snapshot(source_root))
        reporter = _ProgressReporter(
            total_bytes, on_progress, self.progress_interval, self._clock
        )

        try:
            dest_root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise TransferError(
                f"Cannot create destination {dest_root}: {e}", cause=e
            ) from e

        stack: List[Tuple[Path, Path]] = [(source_root, dest_root)]
        while stack:
            src_dir, dst_dir = stack.pop()
            self._check_cancelled(cancel_token, reporter)

            try:
                dst_dir.mkdir(exist_ok=True)
                with os.scandir(src_dir) as it:
                    entries = sorted(it, key=lambda e: e.name)
            except OSError as e:
                raise TransferError(f"Error copying {src_dir}: {e}", cause=e) from e

            subdirs: List[Tuple[Path, Path]] = []
            for entry in entries:
                src_path = Path(entry.path)
                dst_path = dst_dir / entry.name
                try:
                    st = entry.stat(follow_symlinks=False)
                    if stat.S_ISDIR(st.st_mode):
                        subdirs.append((src_path, dst_path))
                        continue
                    if not (stat.S_ISREG(st.st_mode) or stat.S_ISLNK(st.st_mode)):
                        logger.debug(f"Skipping special file: {src_path}")
                        continue

                    self._check_cancelled(cancel_token, reporter)
                    if stat.S_ISLNK(st.st_mode):
                        self._copy_symlink(src_path, dst_path)
                    else:
                        shutil.copy2(src_path, dst_path, follow_symlinks=False)
                except OSError as e:
                    raise TransferError(
                        f"Error copying {src_path}: {e}", cause=e
                    ) from e

                if stat.S_ISREG(st.st_mode):
                    reporter.advance(
                        st.st_size, TreeSnapshot.relative_key(src_path, source_root)
                    )

            # Reversed so the stack pops subdirectories in name order
            stack.extend(reversed(subdirs))

        reporter.finish()
        logger.info(
            f"Copied {reporter.processed_bytes} bytes from {source_root} to {dest_root}"
        )

    def _delete_source(self, source_root: Path) -> None:
        """
        Remove the source tree after a complete copy.

        Raises:
            TransferError: With source_vacated=True, since a partial delete leaves
                the original location without a complete installation.
        """
        try:
            shutil.rmtree(source_root)
        except OSError as e:
            raise TransferError(
                f"Copied successfully but could not remove source {source_root}: {e}",
                cause=e,
                source_vacated=True,
            ) from e
        logger.info(f"Removed source tree {source_root}")

    def _copy_symlink(self, src_path: Path, dst_path: Path) -> None:
        if dst_path.is_symlink() or dst_path.exists():
            dst_path.unlink()
        os.symlink(os.readlink(src_path), dst_path)

    def _check_cancelled(
        self, cancel_token: Optional[CancelToken], reporter: "_ProgressReporter"
    ) -> None:
        if cancel_token is not None and cancel_token.is_cancelled:
            logger.info(
                f"Copy cancelled at {reporter.processed_bytes}/{reporter.total_bytes} bytes"
            )
            raise TransferCancelled(reporter.processed_bytes, reporter.total_bytes)


class _ProgressReporter:
    """Accumulates copied bytes and throttles progress callbacks.

    Intermediate reports are emitted at most once per interval and never at
    100%; finish() always emits the single final report.
    """

    def __init__(
        self,
        total_bytes: int,
        callback: Optional[ProgressCallback],
        interval: float,
        clock: Callable[[], float],
    ) -> None:
        self.total_bytes = total_bytes
        self.processed_bytes = 0
        self._callback = callback
        self._interval = interval
        self._clock = clock
        self._start = clock()
        self._last_emit = self._start
        self._current_file = ""

    def advance(self, size: int, current_file: str) -> None:
        self.processed_bytes += size
        self._current_file = current_file

        if self.processed_bytes >= self.total_bytes:
            return
        now = self._clock()
        if now - self._last_emit >= self._interval:
            self._emit(now)

    def finish(self) -> None:
        self._emit(self._clock())

    def _emit(self, now: float) -> None:
        self._last_emit = now
        if self._callback is None:
            return

        progress = TransferProgress(
            total_bytes=self.total_bytes,
            processed_bytes=self.processed_bytes,
            current_file=self._current_file,
            start_monotonic=self._start,
            elapsed_seconds=now - self._start,
        )
        try:
            self._callback(progress)
        except Exception as e:
            logger.warning(f"Progress callback raised, ignoring: {e}")
