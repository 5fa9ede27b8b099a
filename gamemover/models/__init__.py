"""
Models package for the relocation engine.

This package provides convenient imports for all data models:
- PlatformId: Enum of distribution platforms
- InstallationRecord: Located installation
- FileSnapshotEntry, SizeMismatch, VerificationResult: Snapshot and verification
- TransferProgress, TransferMethod: Tree transfer reporting
- SpaceCheck, PreflightErrorKind, PreflightFailure: Pre-flight checks
- OutcomeKind, RelocationOutcome, RelocationState: Relocation results
"""

from .platform_id import PlatformId
from .data_models import (
    BYTES_PER_MB,
    FileSnapshotEntry,
    InstallationRecord,
    OutcomeKind,
    PreflightErrorKind,
    PreflightFailure,
    RelocationOutcome,
    RelocationState,
    SizeMismatch,
    SpaceCheck,
    TransferMethod,
    TransferProgress,
    VerificationResult,
)

__all__ = [
    "BYTES_PER_MB",
    "PlatformId",
    "InstallationRecord",
    "FileSnapshotEntry",
    "SizeMismatch",
    "VerificationResult",
    "TransferProgress",
    "TransferMethod",
    "SpaceCheck",
    "PreflightErrorKind",
    "PreflightFailure",
    "OutcomeKind",
    "RelocationOutcome",
    "RelocationState",
]
