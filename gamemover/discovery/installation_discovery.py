"""Installation discovery for the relocation engine.

The orchestrator never hardcodes where installations live. It receives an
object satisfying the InstallationDiscovery protocol and asks it for the
installations it can see and whether a platform's launcher is present.

KnownPathsDiscovery is the default implementation: it probes a fixed list of
candidate directories per platform and accepts any that contain the game
executable.

Example:
    >>> from gamemover.discovery import KnownPathsDiscovery
    >>> discovery = KnownPathsDiscovery()
    >>> for record in discovery.find_all():
    ...     print(record.platform.display_name, record.path)
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Tuple

from gamemover.models import InstallationRecord, PlatformId
from gamemover.scanning import TreeSnapshot

logger = logging.getLogger("gamemover.discovery")

GAME_FOLDER_NAME = "Grand Theft Auto V"
GAME_EXE = "GTA5.exe"

# Executables that hold files open inside the installation while running
GAME_PROCESS_NAMES: Tuple[str, ...] = ("GTA5.exe", "PlayGTAV.exe", "GTAVLauncher.exe")


@dataclass(frozen=True)
class PlatformLayout:
    """Where a platform keeps the game and how to tell its launcher is present."""
    platform: PlatformId
    install_paths: Tuple[Path, ...]          # Candidates; the first is the relocation target
    launcher_markers: Tuple[Path, ...]       # Any existing marker means the launcher is installed
    launcher_processes: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def target_path(self) -> Path:
        return self.install_paths[0]


DEFAULT_LAYOUTS: Dict[PlatformId, PlatformLayout] = {
    PlatformId.STEAM: PlatformLayout(
        platform=PlatformId.STEAM,
        install_paths=(
            Path(r"C:\Program Files (x86)\Steam\steamapps\common") / GAME_FOLDER_NAME,
            Path(r"D:\Steam\steamapps\common") / GAME_FOLDER_NAME,
            Path(r"E:\Steam\steamapps\common") / GAME_FOLDER_NAME,
        ),
        launcher_markers=(
            Path(r"C:\Program Files (x86)\Steam\steam.exe"),
            Path(r"C:\Program Files\Steam\steam.exe"),
        ),
        launcher_processes=("steam.exe", "steamwebhelper.exe"),
    ),
    PlatformId.ROCKSTAR: PlatformLayout(
        platform=PlatformId.ROCKSTAR,
        install_paths=(
            Path(r"C:\Program Files\Rockstar Games") / GAME_FOLDER_NAME,
            Path(r"C:\Program Files (x86)\Rockstar Games") / GAME_FOLDER_NAME,
            Path(r"D:\Rockstar Games") / GAME_FOLDER_NAME,
        ),
        launcher_markers=(
            Path(r"C:\Program Files\Rockstar Games\Launcher\Launcher.exe"),
        ),
        launcher_processes=("Launcher.exe", "RockstarService.exe", "SocialClubHelper.exe"),
    ),
    PlatformId.EPIC: PlatformLayout(
        platform=PlatformId.EPIC,
        install_paths=(
            Path(r"C:\Program Files\Epic Games\GTAV"),
            Path(r"C:\Program Files (x86)\Epic Games\GTAV"),
            Path(r"D:\Epic Games\GTAV"),
        ),
        launcher_markers=(
            Path(r"C:\Program Files (x86)\Epic Games\Launcher\Portal\Binaries\Win64\EpicGamesLauncher.exe"),
            Path(r"C:\Program Files\Epic Games\Launcher\Portal\Binaries\Win64\EpicGamesLauncher.exe"),
        ),
        launcher_processes=("EpicGamesLauncher.exe", "EpicWebHelper.exe"),
    ),
}


class InstallationDiscovery(Protocol):
    """Capability the orchestrator uses to locate installations and launchers."""

    def find_all(self) -> List[InstallationRecord]:
        ...

    def is_launcher_installed(self, platform: PlatformId) -> bool:
        ...


class KnownPathsDiscovery:
    """Discovers installations by probing known directories per platform.

    Attributes:
        layouts: PlatformLayout per platform, in platform enumeration order.
        game_exe: File whose presence marks a directory as a valid installation.
    """

    def __init__(
        self,
        layouts: Optional[Dict[PlatformId, PlatformLayout]] = None,
        game_exe: str = GAME_EXE,
    ) -> None:
        self.layouts = dict(layouts) if layouts is not None else dict(DEFAULT_LAYOUTS)
        self.game_exe = game_exe

    def find_all(self) -> List[InstallationRecord]:
        """Return every valid installation, Steam first, then Rockstar, then Epic."""
        records: List[InstallationRecord] = []
        for platform in PlatformId:
            layout = self.layouts.get(platform)
            if layout is None:
                continue
            for path in layout.install_paths:
                if not self.is_valid_installation(path):
                    continue
                size = TreeSnapshot.total_size(TreeSnapshot().snapshot(path))
                records.append(
                    InstallationRecord(path=path, platform=platform, size_bytes=size)
                )
                logger.debug(f"Found {platform.display_name} installation at {path}")
        return records

    def find_current(self) -> Optional[InstallationRecord]:
        """The first installation found, or None."""
        records = self.find_all()
        return records[0] if records else None

    def is_valid_installation(self, path: Path) -> bool:
        try:
            return path.is_dir() and (path / self.game_exe).is_file()
        except OSError:
            return False

    def is_launcher_installed(self, platform: PlatformId) -> bool:
        layout = self.layouts.get(platform)
        if layout is None:
            return False
        for marker in layout.launcher_markers:
            try:
                if marker.exists():
                    return True
            except OSError:
                continue
        return False

    def target_path_for(self, platform: PlatformId) -> Optional[Path]:
        """Canonical relocation target for a platform, or None if unknown."""
        layout = self.layouts.get(platform)
        if layout is None or not layout.install_paths:
            return None
        return layout.target_path


def blocking_process_names(
    layouts: Optional[Dict[PlatformId, PlatformLayout]] = None,
) -> List[str]:
    """Game and launcher process names that must not be running during a move."""
    names = list(GAME_PROCESS_NAMES)
    for layout in (layouts if layouts is not None else DEFAULT_LAYOUTS).values():
        names.extend(layout.launcher_processes)
    return names


def default_target_path(platform: PlatformId) -> Optional[Path]:
    """Canonical relocation target from DEFAULT_LAYOUTS."""
    layout = DEFAULT_LAYOUTS.get(platform)
    return layout.target_path if layout is not None else None
