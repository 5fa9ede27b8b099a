"""Pytest fixtures for gamemover tests."""

import errno
import os
import tempfile
from pathlib import Path
from typing import Callable, Dict, Generator, Iterable, List, Optional

import pytest

from gamemover.discovery import StaticProcessProbe
from gamemover.models import InstallationRecord, PlatformId
from gamemover.operations import TreeTransfer
from gamemover.orchestration import MemoryEventLog, RelocationOrchestrator
from gamemover.scanning import TreeSnapshot

# Files of a small fake installation: relative path -> size in bytes
GAME_TREE_FILES: Dict[str, int] = {
    "GTA5.exe": 4096,
    "PlayGTAV.exe": 1024,
    "common.rpf": 64 * 1024,
    "x64a.rpf": 128 * 1024,
    "update/update.rpf": 32 * 1024,
    "update/x64/dlcpacks/mpheist/dlc.rpf": 16 * 1024,
    "update/x64/dlcpacks/mpbeach/dlc.rpf": 8 * 1024,
    "x64/audio/sfx/RESIDENT.rpf": 20 * 1024,
    "empty.log": 0,
}


class FakeDiscovery:
    """InstallationDiscovery over fixed records, launchers and target paths."""

    def __init__(
        self,
        records: Optional[List[InstallationRecord]] = None,
        launchers: Optional[Iterable[PlatformId]] = None,
        targets: Optional[Dict[PlatformId, Path]] = None,
    ) -> None:
        self.records = list(records or [])
        self.launchers = set(launchers if launchers is not None else PlatformId)
        self.targets = dict(targets or {})

    def find_all(self) -> List[InstallationRecord]:
        return list(self.records)

    def is_launcher_installed(self, platform: PlatformId) -> bool:
        return platform in self.launchers

    def target_path_for(self, platform: PlatformId) -> Optional[Path]:
        return self.targets.get(platform)


def build_tree(root: Path, files: Dict[str, int]) -> Path:
    """Create files under root with deterministic content of the given sizes."""
    for relative, size in files.items():
        path = root.joinpath(*relative.split("/"))
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(bytes((i * 7 + len(relative)) % 256 for i in range(size)))
    return root


def cross_device_rename(source_root: Path) -> Callable[..., None]:
    """os.rename replacement that reports EXDEV for moves of source_root only."""
    real_rename = os.rename

    def fake_rename(src, dst, *args, **kwargs):
        if Path(src) == Path(source_root):
            raise OSError(errno.EXDEV, "Invalid cross-device link", str(src))
        return real_rename(src, dst, *args, **kwargs)

    return fake_rename


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for isolated test environments.

    Yields:
        Path to the temporary directory.
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def game_tree(temp_dir: Path) -> Path:
    """Create a nested fake installation under temp_dir/steam/Grand Theft Auto V.

    Returns:
        Path to the installation root.
    """
    return build_tree(temp_dir / "steam" / "Grand Theft Auto V", GAME_TREE_FILES)


@pytest.fixture
def game_record(game_tree: Path) -> InstallationRecord:
    """InstallationRecord for the game_tree fixture, on Steam."""
    return InstallationRecord(
        path=game_tree,
        platform=PlatformId.STEAM,
        size_bytes=sum(GAME_TREE_FILES.values()),
    )


@pytest.fixture
def epic_target(temp_dir: Path) -> Path:
    """Destination path for an Epic Games relocation (not created)."""
    return temp_dir / "epic" / "GTAV"


@pytest.fixture
def event_log() -> MemoryEventLog:
    return MemoryEventLog()


@pytest.fixture
def make_orchestrator(
    game_record: InstallationRecord,
    epic_target: Path,
    event_log: MemoryEventLog,
) -> Callable[..., RelocationOrchestrator]:
    """Factory for an orchestrator wired to fakes around the game_tree fixture.

    Keyword arguments override the defaults: discovery, process_probe,
    transfer, snapshotter, space_margin.
    """

    def factory(**overrides) -> RelocationOrchestrator:
        options = {
            "discovery": FakeDiscovery(
                records=[game_record],
                targets={PlatformId.EPIC: epic_target},
            ),
            "process_probe": StaticProcessProbe([]),
            "event_log": event_log,
            "transfer": TreeTransfer(progress_interval=0.0),
            "snapshotter": TreeSnapshot(),
        }
        options.update(overrides)
        return RelocationOrchestrator(**options)

    return factory
