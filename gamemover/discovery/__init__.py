"""Installation discovery package for the relocation engine.

This package contains the pluggable collaborators the orchestrator consults
before moving anything:
- InstallationDiscovery: Protocol for locating installations and launchers.
- KnownPathsDiscovery: Default discovery over fixed per-platform paths.
- ProcessProbe: Detects running game or launcher processes.
"""

from .installation_discovery import (
    DEFAULT_LAYOUTS,
    GAME_EXE,
    GAME_FOLDER_NAME,
    GAME_PROCESS_NAMES,
    InstallationDiscovery,
    KnownPathsDiscovery,
    PlatformLayout,
    blocking_process_names,
    default_target_path,
)
from .process_probe import ProcessProbe, StaticProcessProbe

__all__ = [
    "DEFAULT_LAYOUTS",
    "GAME_EXE",
    "GAME_FOLDER_NAME",
    "GAME_PROCESS_NAMES",
    "InstallationDiscovery",
    "KnownPathsDiscovery",
    "PlatformLayout",
    "ProcessProbe",
    "StaticProcessProbe",
    "blocking_process_names",
    "default_target_path",
]
