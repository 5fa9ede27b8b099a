"""
Core data models for the relocation engine.

This module contains the following types:
- InstallationRecord: One located installation (input to the orchestrator)
- FileSnapshotEntry: One (relative path, size) baseline record
- SizeMismatch / VerificationResult: Outcome of verifying a tree against a snapshot
- TransferProgress: Immutable progress value handed to progress callbacks
- TransferMethod: Which path the tree transfer took
- SpaceCheck: Result of the destination free-space check
- PreflightErrorKind / PreflightFailure: Tagged pre-flight rejection
- OutcomeKind / RelocationOutcome: Terminal result of a relocation attempt
- RelocationState: States of a single relocation attempt
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from .platform_id import PlatformId

BYTES_PER_MB = 1024 * 1024


@dataclass(frozen=True)
class InstallationRecord:
    """One on-disk installation, as produced by discovery."""
    path: Path                        # Root directory of the installation
    platform: PlatformId              # Owning distribution platform
    size_bytes: int                   # Total bytes under path


@dataclass(frozen=True)
class FileSnapshotEntry:
    """A single file in a snapshot baseline."""
    relative_path: str                # POSIX-style path relative to the snapshot root
    size_bytes: int                   # File length in bytes


@dataclass(frozen=True)
class SizeMismatch:
    """A file whose size after transfer differs from the baseline."""
    relative_path: str
    expected: int
    actual: int


@dataclass
class VerificationResult:
    """Differences between a tree on disk and a snapshot baseline."""
    missing: List[str] = field(default_factory=list)
    size_mismatches: List[SizeMismatch] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.missing and not self.size_mismatches

    def describe(self, limit: int = 5) -> str:
        """Short human-readable description of the failures."""
        if self.passed:
            return "verification passed"
        parts = []
        if self.missing:
            shown = ", ".join(self.missing[:limit])
            parts.append(f"{len(self.missing)} missing ({shown})")
        if self.size_mismatches:
            shown = ", ".join(
                f"{m.relative_path} {m.expected}->{m.actual}"
                for m in self.size_mismatches[:limit]
            )
            parts.append(f"{len(self.size_mismatches)} size mismatches ({shown})")
        return "; ".join(parts)


@dataclass(frozen=True)
class TransferProgress:
    """Point-in-time progress of a fallback copy.

    Percent, speed and ETA are derived from the byte counters and elapsed
    time; they cannot be set independently.
    """
    total_bytes: int
    processed_bytes: int
    current_file: str
    start_monotonic: float            # time.monotonic() at copy start (not wall-clock)
    elapsed_seconds: float

    @property
    def percent_complete(self) -> float:
        if self.total_bytes <= 0:
            return 100.0
        return min(100.0, self.processed_bytes * 100.0 / self.total_bytes)

    @property
    def bytes_per_second(self) -> float:
        if self.elapsed_seconds <= 0:
            return 0.0
        return self.processed_bytes / self.elapsed_seconds

    @property
    def speed_mbps(self) -> float:
        return self.bytes_per_second / BYTES_PER_MB

    @property
    def eta_seconds(self) -> Optional[float]:
        """Seconds remaining at the current throughput, None while unknown."""
        remaining = max(0, self.total_bytes - self.processed_bytes)
        if remaining == 0:
            return 0.0
        throughput = self.bytes_per_second
        if throughput <= 0:
            return None
        return remaining / throughput


class TransferMethod(Enum):
    """How a tree transfer completed."""
    FAST_RENAME = "fast_rename"            # Same-volume atomic rename
    COPY_THEN_DELETE = "copy_then_delete"  # Cross-volume recursive copy + delete


@dataclass(frozen=True)
class SpaceCheck:
    """Free-space comparison for a destination volume."""
    has_space: bool
    available_bytes: int
    required_bytes_with_margin: int

    @property
    def shortfall_bytes(self) -> int:
        return max(0, self.required_bytes_with_margin - self.available_bytes)


class PreflightErrorKind(Enum):
    """Why a relocation was rejected before touching the filesystem."""
    NO_INSTALLATION = "no_installation"
    SAME_PLATFORM = "same_platform"
    LAUNCHER_MISSING = "launcher_missing"
    PROCESS_RUNNING = "process_running"
    TARGET_UNRESOLVED = "target_unresolved"
    TARGET_EXISTS = "target_exists"
    INSUFFICIENT_SPACE = "insufficient_space"
    ALREADY_RUNNING = "already_running"


@dataclass(frozen=True)
class PreflightFailure:
    """A tagged pre-flight rejection with optional remediation data."""
    kind: PreflightErrorKind
    message: str
    details: Dict[str, Any] = field(default_factory=dict)


class OutcomeKind(Enum):
    """Terminal result categories for a relocation attempt."""
    SUCCEEDED = "succeeded"
    PREFLIGHT_FAILED = "preflight_failed"  # Nothing was touched
    FAILED = "failed"                      # Failed before the source was vacated
    CANCELLED = "cancelled"                # Cancelled, original install intact
    ROLLED_BACK = "rolled_back"            # Failed, restored to the original path
    ROLLBACK_FAILED = "rollback_failed"    # Failed and could not restore; manual help needed


class RelocationState(Enum):
    """States of a single relocation attempt."""
    IDLE = "idle"
    PREFLIGHT_CHECKING = "preflight_checking"
    PREFLIGHT_FAILED = "preflight_failed"
    SNAPSHOTTING = "snapshotting"
    TRANSFERRING = "transferring"
    VERIFYING = "verifying"
    SUCCEEDED = "succeeded"
    VERIFICATION_FAILED = "verification_failed"
    CANCELLED = "cancelled"
    FAILED = "failed"
    ROLLING_BACK = "rolling_back"
    ROLLED_BACK = "rolled_back"
    ROLLBACK_FAILED = "rollback_failed"


@dataclass
class RelocationOutcome:
    """Terminal result returned by RelocationOrchestrator.relocate()."""
    kind: OutcomeKind
    reason: str = ""
    rollback_performed: bool = False
    method: Optional[TransferMethod] = None
    preflight: Optional[PreflightFailure] = None
    verification: Optional[VerificationResult] = None
    rollback_verification: Optional[VerificationResult] = None  # Restored tree vs. baseline
    source_path: Optional[Path] = None
    target_path: Optional[Path] = None
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return self.kind is OutcomeKind.SUCCEEDED

    @property
    def installation_intact(self) -> bool:
        """Whether exactly one complete installation is known to exist."""
        return self.kind is not OutcomeKind.ROLLBACK_FAILED
