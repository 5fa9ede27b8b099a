"""Workflow orchestration package for the relocation engine.

This package contains the components that run a relocation:
- EventLog: Append-only timestamped log of relocation events.
- MemoryEventLog: In-memory EventLog for embedding and tests.
- RelocationOrchestrator: Pre-flight, transfer, verification and rollback.
"""

from gamemover.orchestration.event_log import EventLog, MemoryEventLog, default_log_path
from gamemover.orchestration.relocation_orchestrator import RelocationOrchestrator

__all__ = ["EventLog", "MemoryEventLog", "RelocationOrchestrator", "default_log_path"]
