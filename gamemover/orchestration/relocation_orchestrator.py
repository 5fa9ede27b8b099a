"""RelocationOrchestrator for moving an installation to another platform's location.

This module provides the RelocationOrchestrator class that composes
TreeSnapshot, TreeTransfer and the discovery collaborators into a single
relocation attempt: pre-flight checks, snapshot, transfer, verification and,
when something goes wrong after the source was vacated, rollback.

Example:
    from gamemover.discovery import KnownPathsDiscovery
    from gamemover.models import PlatformId
    from gamemover.orchestration import RelocationOrchestrator

    orchestrator = RelocationOrchestrator(discovery=KnownPathsDiscovery())
    outcome = orchestrator.relocate(None, PlatformId.EPIC)
    print(outcome.kind.value)
"""

import logging
import shutil
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

from gamemover.discovery import (
    InstallationDiscovery,
    ProcessProbe,
    blocking_process_names,
    default_target_path,
)
from gamemover.models import (
    FileSnapshotEntry,
    InstallationRecord,
    OutcomeKind,
    PlatformId,
    PreflightErrorKind,
    PreflightFailure,
    RelocationOutcome,
    RelocationState,
    SpaceCheck,
    TransferMethod,
    VerificationResult,
)
from gamemover.operations import (
    CancelToken,
    ProgressCallback,
    TransferCancelled,
    TransferError,
    TreeTransfer,
)
from gamemover.orchestration.event_log import EventLog
from gamemover.scanning import TreeSnapshot

logger = logging.getLogger("gamemover.orchestrator")

TargetResolver = Callable[[PlatformId], Optional[Path]]


class RelocationOrchestrator:
    """Orchestrates one relocation of an installation at a time.

    Pre-flight rejections are returned as RelocationOutcome values carrying a
    tagged PreflightFailure; filesystem errors are caught at the transfer
    boundary and translated into outcome kinds. Nothing raised by the
    filesystem reaches the caller of relocate().

    A relocation attempt walks the states in RelocationState. While one
    attempt is in flight, a second call to relocate() is rejected with
    PreflightErrorKind.ALREADY_RUNNING.

    Attributes:
        SPACE_MARGIN: Default multiplier applied to the installation size when
            checking free space on the destination volume.

    Example:
        orchestrator = RelocationOrchestrator(discovery=KnownPathsDiscovery())
        future = orchestrator.relocate_async(record, PlatformId.STEAM, on_progress=print)
        outcome = future.result()
    """

    SPACE_MARGIN = 1.1

    def __init__(
        self,
        discovery: InstallationDiscovery,
        process_probe: Optional[ProcessProbe] = None,
        event_log: Optional[EventLog] = None,
        transfer: Optional[TreeTransfer] = None,
        snapshotter: Optional[TreeSnapshot] = None,
        target_resolver: Optional[TargetResolver] = None,
        blocking_processes: Optional[Sequence[str]] = None,
        space_margin: float = SPACE_MARGIN,
    ) -> None:
        """Initialize the RelocationOrchestrator.

        Args:
            discovery: Finds installations and reports installed launchers.
            process_probe: Detects running game/launcher processes. Defaults
                to a ProcessProbe using the host's process list.
            event_log: Sink for timestamped events. Defaults to EventLog()
                at the standard log location.
            transfer: TreeTransfer used for both the move and the rollback.
            snapshotter: TreeSnapshot used for the baseline and verification.
            target_resolver: Maps a platform to its installation directory.
                Defaults to discovery.target_path_for when available, else
                the built-in platform layouts.
            blocking_processes: Process names that must not be running.
            space_margin: Free-space multiplier, at least 1.0.

        Raises:
            ValueError: If space_margin is below 1.0.
        """
        if space_margin < 1.0:
            raise ValueError(f"space_margin must be at least 1.0, got {space_margin}")

        self.discovery = discovery
        self.space_margin = space_margin
        self._probe = process_probe if process_probe is not None else ProcessProbe()
        self._event_log = event_log if event_log is not None else EventLog()
        self._transfer = transfer if transfer is not None else TreeTransfer()
        self._snapshotter = snapshotter if snapshotter is not None else TreeSnapshot()
        self._target_resolver = target_resolver or getattr(
            discovery, "target_path_for", default_target_path
        )
        self._blocking_processes: List[str] = (
            list(blocking_processes)
            if blocking_processes is not None
            else blocking_process_names()
        )

        self._run_lock = threading.Lock()
        self._state = RelocationState.IDLE
        self._executor: Optional[ThreadPoolExecutor] = None

    @property
    def state(self) -> RelocationState:
        """State of the current (or most recent) relocation attempt."""
        return self._state

    @property
    def is_running(self) -> bool:
        return self._run_lock.locked()

    def relocate(
        self,
        current_installation: Optional[InstallationRecord],
        target_platform: PlatformId,
        on_progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> RelocationOutcome:
        """Move an installation to the target platform's location.

        Args:
            current_installation: The installation to move. If None, the
                first record from discovery.find_all() is used.
            target_platform: Platform whose location the tree moves to.
            on_progress: Receives TransferProgress values during a
                cross-volume copy. Called on the relocating thread.
            cancel_token: Stops a cross-volume copy between files.

        Returns:
            RelocationOutcome describing the terminal state.
        """
        if not self._run_lock.acquire(blocking=False):
            failure = PreflightFailure(
                kind=PreflightErrorKind.ALREADY_RUNNING,
                message="Another relocation is already in progress",
            )
            self._log(f"Rejected relocation: {failure.message}")
            return RelocationOutcome(
                kind=OutcomeKind.PREFLIGHT_FAILED,
                reason=failure.message,
                preflight=failure,
            )

        try:
            return self._run(current_installation, target_platform, on_progress, cancel_token)
        finally:
            self._run_lock.release()

    def relocate_async(
        self,
        current_installation: Optional[InstallationRecord],
        target_platform: PlatformId,
        on_progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> "Future[RelocationOutcome]":
        """Run relocate() on the orchestrator's dedicated worker thread."""
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="gamemover-relocation"
            )
        return self._executor.submit(
            self.relocate, current_installation, target_platform, on_progress, cancel_token
        )

    def shutdown(self, wait: bool = True) -> None:
        """Stop the worker thread created by relocate_async()."""
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
            self._executor = None

    def check_space(self, target_root: Path, required_bytes: int) -> SpaceCheck:
        """Compare free space on target_root's volume with required_bytes plus margin.

        target_root need not exist; the nearest existing ancestor is measured.

        Raises:
            OSError: If no ancestor of target_root can be measured.
        """
        probe = Path(target_root)
        while not probe.exists() and probe != probe.parent:
            probe = probe.parent

        available = shutil.disk_usage(str(probe)).free
        required_with_margin = int(required_bytes * self.space_margin)
        return SpaceCheck(
            has_space=available >= required_with_margin,
            available_bytes=available,
            required_bytes_with_margin=required_with_margin,
        )

    def preflight(
        self,
        current_installation: Optional[InstallationRecord],
        target_platform: PlatformId,
    ) -> Tuple[Optional[InstallationRecord], Optional[Path], Optional[PreflightFailure]]:
        """Run every pre-flight check without touching the filesystem.

        Returns:
            (installation, target_path, failure). failure is None when every
            check passed; installation and target_path are filled in as far
            as the checks got.
        """
        installation = current_installation
        if installation is None:
            found = self.discovery.find_all()
            installation = found[0] if found else None

        if installation is None or not installation.path.is_dir():
            where = f" at {installation.path}" if installation is not None else ""
            return installation, None, PreflightFailure(
                kind=PreflightErrorKind.NO_INSTALLATION,
                message=f"No installation found{where}",
            )

        if installation.platform == target_platform:
            return installation, None, PreflightFailure(
                kind=PreflightErrorKind.SAME_PLATFORM,
                message=f"Installation is already on {target_platform.display_name}",
                details={"platform": target_platform.value},
            )

        if not self.discovery.is_launcher_installed(target_platform):
            return installation, None, PreflightFailure(
                kind=PreflightErrorKind.LAUNCHER_MISSING,
                message=(
                    f"{target_platform.display_name} launcher is not installed; "
                    "the moved game could not be launched"
                ),
                details={"launcher": target_platform.value},
            )

        running = self._probe.running(self._blocking_processes)
        if running:
            return installation, None, PreflightFailure(
                kind=PreflightErrorKind.PROCESS_RUNNING,
                message=f"Close these programs before moving: {', '.join(running)}",
                details={"processes": running},
            )

        target_path, failure = self._resolve_target(installation, target_platform)
        if failure is not None:
            return installation, target_path, failure

        try:
            space = self.check_space(target_path.parent, installation.size_bytes)
        except OSError as e:
            return installation, target_path, PreflightFailure(
                kind=PreflightErrorKind.TARGET_UNRESOLVED,
                message=f"Cannot measure free space for {target_path}: {e}",
            )
        if not space.has_space:
            return installation, target_path, PreflightFailure(
                kind=PreflightErrorKind.INSUFFICIENT_SPACE,
                message=(
                    f"Not enough free space at {target_path.parent}: "
                    f"{space.shortfall_bytes:,} bytes short"
                ),
                details={
                    "required_bytes": space.required_bytes_with_margin,
                    "available_bytes": space.available_bytes,
                    "shortfall_bytes": space.shortfall_bytes,
                },
            )

        return installation, target_path, None

    def _resolve_target(
        self, installation: InstallationRecord, target_platform: PlatformId
    ) -> Tuple[Optional[Path], Optional[PreflightFailure]]:
        try:
            resolved = self._target_resolver(target_platform)
        except (OSError, ValueError) as e:
            resolved = None
            logger.warning(f"Target resolver failed for {target_platform.value}: {e}")

        if resolved is None:
            return None, PreflightFailure(
                kind=PreflightErrorKind.TARGET_UNRESOLVED,
                message=f"Could not determine a target path for {target_platform.display_name}",
            )

        target_path = Path(resolved).expanduser().absolute()
        source_path = installation.path.absolute()
        if (
            target_path == source_path
            or source_path in target_path.parents
            or target_path in source_path.parents
        ):
            return target_path, PreflightFailure(
                kind=PreflightErrorKind.TARGET_UNRESOLVED,
                message=f"Target {target_path} overlaps the installation at {source_path}",
            )

        if target_path.exists() or target_path.is_symlink():
            return target_path, PreflightFailure(
                kind=PreflightErrorKind.TARGET_EXISTS,
                message=f"Target directory already exists: {target_path}",
                details={"target_path": str(target_path)},
            )

        return target_path, None

    def _run(
        self,
        current_installation: Optional[InstallationRecord],
        target_platform: PlatformId,
        on_progress: Optional[ProgressCallback],
        cancel_token: Optional[CancelToken],
    ) -> RelocationOutcome:
        start_time = time.monotonic()
        self._state = RelocationState.PREFLIGHT_CHECKING

        installation, target_path, failure = self.preflight(
            current_installation, target_platform
        )
        if failure is not None:
            self._state = RelocationState.PREFLIGHT_FAILED
            self._log(f"Pre-flight failed ({failure.kind.value}): {failure.message}")
            return RelocationOutcome(
                kind=OutcomeKind.PREFLIGHT_FAILED,
                reason=failure.message,
                preflight=failure,
                source_path=installation.path if installation is not None else None,
                target_path=target_path,
                duration_seconds=time.monotonic() - start_time,
            )

        source_path = installation.path
        self._log(f"Moving from {source_path} to {target_path}")

        try:
            target_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            self._state = RelocationState.FAILED
            reason = f"Cannot create {target_path.parent}: {e}"
            self._log(f"Error during move: {reason}")
            return self._outcome(OutcomeKind.FAILED, reason, source_path, target_path, start_time)

        self._state = RelocationState.SNAPSHOTTING
        baseline = self._snapshotter.snapshot(source_path)
        self._log(
            f"Snapshot: {len(baseline)} files, {TreeSnapshot.total_size(baseline):,} bytes"
        )

        self._state = RelocationState.TRANSFERRING
        try:
            method = self._transfer.transfer(
                source_path, target_path, on_progress=on_progress, cancel_token=cancel_token
            )
        except TransferCancelled as e:
            self._state = RelocationState.CANCELLED
            self._log(f"Move cancelled: {e}")
            return self._recover(
                OutcomeKind.CANCELLED, "Cancelled by user", source_path, target_path,
                baseline, start_time, source_vacated=False,
            )
        except TransferError as e:
            self._state = RelocationState.FAILED
            self._log(f"Error during move: {e}")
            return self._recover(
                OutcomeKind.FAILED, str(e), source_path, target_path, baseline,
                start_time, source_vacated=e.source_vacated or not source_path.exists(),
            )
        except OSError as e:
            self._state = RelocationState.FAILED
            self._log(f"Unexpected error during move: {e}")
            return self._recover(
                OutcomeKind.FAILED, str(e), source_path, target_path, baseline,
                start_time, source_vacated=not source_path.exists(),
            )

        self._log(f"Transfer finished via {method.value}")

        self._state = RelocationState.VERIFYING
        verification = self._snapshotter.verify(target_path, baseline)
        if not verification.passed:
            self._state = RelocationState.VERIFICATION_FAILED
            reason = f"Verification failed: {verification.describe()}"
            self._log(reason)
            return self._recover(
                OutcomeKind.FAILED, reason, source_path, target_path, baseline,
                start_time, source_vacated=True, method=method, verification=verification,
            )

        self._state = RelocationState.SUCCEEDED
        self._log("Move completed successfully")
        return self._outcome(
            OutcomeKind.SUCCEEDED, "", source_path, target_path, start_time,
            method=method, verification=verification,
        )

    def _recover(
        self,
        kind: OutcomeKind,
        reason: str,
        source_path: Path,
        target_path: Path,
        baseline: List[FileSnapshotEntry],
        start_time: float,
        source_vacated: bool,
        method: Optional[TransferMethod] = None,
        verification: Optional[VerificationResult] = None,
    ) -> RelocationOutcome:
        """Restore the original layout after a failed or cancelled transfer.

        If the source is still in place, only the partial destination is
        removed. Otherwise the destination is moved back to the source path,
        after clearing anything a partial source delete left there, and the
        restored tree is verified against the baseline. Failure at any of
        these steps is reported as ROLLBACK_FAILED.
        """
        self._state = RelocationState.ROLLING_BACK

        if not source_vacated:
            cleaned = self._discard_partial_target(target_path)
            self._state = (
                RelocationState.CANCELLED if kind is OutcomeKind.CANCELLED
                else RelocationState.FAILED
            )
            return self._outcome(
                kind, reason, source_path, target_path, start_time,
                rollback_performed=cleaned, method=method, verification=verification,
            )

        self._log(f"Rolling back: moving {target_path} back to {source_path}")
        if source_path.exists() or source_path.is_symlink():
            problem = self._clear_leftover_source(source_path, target_path, baseline)
            if problem is not None:
                return self._rollback_failed(
                    reason, problem, source_path, target_path, start_time,
                    method=method, verification=verification,
                )

        try:
            self._transfer.transfer(target_path, source_path)
        except (TransferError, TransferCancelled, OSError) as e:
            return self._rollback_failed(
                reason, str(e), source_path, target_path, start_time,
                method=method, verification=verification,
            )

        restored = self._snapshotter.verify(source_path, baseline)
        if not restored.passed:
            return self._rollback_failed(
                reason, f"restored installation is incomplete: {restored.describe()}",
                source_path, target_path, start_time, method=method,
                verification=verification, rollback_verification=restored,
            )
        self._state = RelocationState.ROLLED_BACK
        self._log("Rollback successful")
        return self._outcome(
            OutcomeKind.ROLLED_BACK, reason, source_path, target_path, start_time,
            rollback_performed=True, method=method, verification=verification,
            rollback_verification=restored,
        )

    def _clear_leftover_source(
        self, source_path: Path, target_path: Path, baseline: List[FileSnapshotEntry]
    ) -> Optional[str]:
        """Remove what a failed source delete left behind, if the copy is complete.

        Returns:
            None when the source path is clear, else why the rollback cannot proceed.
        """
        target_check = self._snapshotter.verify(target_path, baseline)
        if not target_check.passed:
            return (
                f"source is partially deleted and the copy is incomplete "
                f"({target_check.describe()})"
            )
        self._log(f"Removing leftover files at {source_path}")
        try:
            if source_path.is_symlink() or not source_path.is_dir():
                source_path.unlink()
            else:
                shutil.rmtree(source_path)
        except OSError as e:
            return f"cannot remove leftover files at {source_path}: {e}"
        return None

    def _rollback_failed(
        self,
        reason: str,
        problem: str,
        source_path: Path,
        target_path: Path,
        start_time: float,
        method: Optional[TransferMethod] = None,
        verification: Optional[VerificationResult] = None,
        rollback_verification: Optional[VerificationResult] = None,
    ) -> RelocationOutcome:
        self._state = RelocationState.ROLLBACK_FAILED
        message = (
            f"{reason}; rollback failed: {problem}. "
            f"Check both {source_path} and {target_path} manually"
        )
        logger.critical(message)
        self._log(f"Rollback failed: {problem}")
        return self._outcome(
            OutcomeKind.ROLLBACK_FAILED, message, source_path, target_path,
            start_time, rollback_performed=True, method=method,
            verification=verification, rollback_verification=rollback_verification,
        )

    def _discard_partial_target(self, target_path: Path) -> bool:
        """Remove a partially copied destination; True if anything was removed."""
        if not target_path.exists():
            return False
        try:
            shutil.rmtree(target_path)
        except OSError as e:
            logger.warning(f"Could not remove partial copy at {target_path}: {e}")
            self._log(f"Partial copy left at {target_path}: {e}")
            return False
        self._log(f"Removed partial copy at {target_path}")
        return True

    def _outcome(
        self,
        kind: OutcomeKind,
        reason: str,
        source_path: Path,
        target_path: Path,
        start_time: float,
        rollback_performed: bool = False,
        method: Optional[TransferMethod] = None,
        verification: Optional[VerificationResult] = None,
        rollback_verification: Optional[VerificationResult] = None,
    ) -> RelocationOutcome:
        return RelocationOutcome(
            kind=kind,
            reason=reason,
            rollback_performed=rollback_performed,
            method=method,
            verification=verification,
            rollback_verification=rollback_verification,
            source_path=source_path,
            target_path=target_path,
            duration_seconds=time.monotonic() - start_time,
        )

    def _log(self, message: str) -> None:
        """Write to the event log; logging never fails a relocation."""
        logger.info(message)
        try:
            self._event_log.log(message)
        except Exception as e:
            logger.debug(f"Event log write failed: {e}")
