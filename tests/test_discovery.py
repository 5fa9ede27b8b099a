"""Unit tests for installation discovery and process detection."""

import subprocess
from pathlib import Path
from typing import Dict
from unittest.mock import MagicMock, patch

import pytest

from conftest import build_tree
from gamemover.discovery import (
    DEFAULT_LAYOUTS,
    GAME_PROCESS_NAMES,
    KnownPathsDiscovery,
    PlatformLayout,
    ProcessProbe,
    StaticProcessProbe,
    blocking_process_names,
    default_target_path,
)
from gamemover.models import PlatformId


@pytest.fixture
def layouts(temp_dir: Path) -> Dict[PlatformId, PlatformLayout]:
    """Platform layouts rooted under temp_dir, with nothing installed."""
    result = {}
    for platform in PlatformId:
        base = temp_dir / platform.value
        result[platform] = PlatformLayout(
            platform=platform,
            install_paths=(base / "primary" / "GTAV", base / "secondary" / "GTAV"),
            launcher_markers=(base / "launcher.exe",),
            launcher_processes=(f"{platform.value}-launcher.exe",),
        )
    return result


def install(path: Path) -> Path:
    return build_tree(path, {"GTA5.exe": 100, "common.rpf": 900})


class TestKnownPathsDiscovery:
    """Tests for KnownPathsDiscovery."""

    def test_nothing_installed(self, layouts):
        discovery = KnownPathsDiscovery(layouts)

        assert discovery.find_all() == []
        assert discovery.find_current() is None

    def test_finds_installation_with_size(self, layouts):
        install(layouts[PlatformId.ROCKSTAR].install_paths[1])

        records = KnownPathsDiscovery(layouts).find_all()

        assert len(records) == 1
        assert records[0].platform is PlatformId.ROCKSTAR
        assert records[0].path == layouts[PlatformId.ROCKSTAR].install_paths[1]
        assert records[0].size_bytes == 1000

    def test_platform_order(self, layouts):
        """Steam first, then Rockstar, then Epic; the first is current."""
        install(layouts[PlatformId.EPIC].install_paths[0])
        install(layouts[PlatformId.STEAM].install_paths[1])

        discovery = KnownPathsDiscovery(layouts)
        records = discovery.find_all()

        assert [r.platform for r in records] == [PlatformId.STEAM, PlatformId.EPIC]
        assert discovery.find_current().platform is PlatformId.STEAM

    def test_directory_without_executable_is_ignored(self, layouts):
        build_tree(layouts[PlatformId.STEAM].install_paths[0], {"common.rpf": 10})

        assert KnownPathsDiscovery(layouts).find_all() == []

    def test_custom_game_exe(self, layouts):
        build_tree(layouts[PlatformId.STEAM].install_paths[0], {"Game.exe": 10})

        records = KnownPathsDiscovery(layouts, game_exe="Game.exe").find_all()

        assert len(records) == 1

    def test_launcher_markers(self, layouts):
        marker = layouts[PlatformId.EPIC].launcher_markers[0]
        marker.parent.mkdir(parents=True)
        marker.write_bytes(b"")
        discovery = KnownPathsDiscovery(layouts)

        assert discovery.is_launcher_installed(PlatformId.EPIC)
        assert not discovery.is_launcher_installed(PlatformId.STEAM)

    def test_missing_layout(self, layouts):
        del layouts[PlatformId.ROCKSTAR]
        discovery = KnownPathsDiscovery(layouts)

        assert not discovery.is_launcher_installed(PlatformId.ROCKSTAR)
        assert discovery.target_path_for(PlatformId.ROCKSTAR) is None

    def test_target_path_is_first_install_path(self, layouts):
        discovery = KnownPathsDiscovery(layouts)

        assert discovery.target_path_for(PlatformId.EPIC) == \
            layouts[PlatformId.EPIC].install_paths[0]


class TestDefaultLayouts:
    def test_every_platform_has_a_layout(self):
        assert set(DEFAULT_LAYOUTS) == set(PlatformId)

    def test_epic_uses_short_folder_name(self):
        assert default_target_path(PlatformId.EPIC).name.endswith("GTAV")
        assert default_target_path(PlatformId.STEAM).name == "Grand Theft Auto V"

    def test_blocking_process_names(self, layouts):
        names = blocking_process_names(layouts)

        assert names[:len(GAME_PROCESS_NAMES)] == list(GAME_PROCESS_NAMES)
        assert "epic-launcher.exe" in names
        assert "steam.exe" in blocking_process_names()


class TestProcessProbe:
    """Tests for ProcessProbe with a fake subprocess runner."""

    def make_runner(self, stdout: str, returncode: int = 0) -> MagicMock:
        return MagicMock(
            return_value=subprocess.CompletedProcess(
                args=[], returncode=returncode, stdout=stdout, stderr=""
            )
        )

    def test_posix_process_list(self):
        runner = self.make_runner("systemd\n/usr/bin/wine\n/opt/games/GTA5.exe\n")

        with patch("gamemover.discovery.process_probe.sys.platform", "linux"):
            probe = ProcessProbe(runner=runner)
            running = probe.running(["GTA5.exe", "steam.exe"])

        assert running == ["GTA5.exe"]
        assert runner.call_args[0][0] == ["ps", "-A", "-o", "comm="]

    def test_posix_truncated_command_names(self):
        """ps comm= cuts names to 15 characters; long names still match."""
        runner = self.make_runner("GTAVLauncher.ex\nEpicGamesLaunch\nsteamwebhelper.\nbash\n")
        names = ["GTAVLauncher.exe", "EpicGamesLauncher.exe", "steamwebhelper.exe", "GTA5.exe"]

        with patch("gamemover.discovery.process_probe.sys.platform", "linux"):
            running = ProcessProbe(runner=runner).running(names)

        assert running == ["GTAVLauncher.exe", "EpicGamesLauncher.exe", "steamwebhelper.exe"]

    def test_short_names_are_not_prefix_matched(self):
        """Only names at the truncation width match by prefix."""
        runner = self.make_runner("steam\nGTA5\n")

        with patch("gamemover.discovery.process_probe.sys.platform", "linux"):
            running = ProcessProbe(runner=runner).running(["steam.exe", "GTA5.exe"])

        assert running == []

    def test_windows_process_list(self):
        stdout = (
            '"System Idle Process","0","Services","0","8 K"\n'
            '"EpicGamesLauncher.exe","4242","Console","1","120,000 K"\n'
        )
        runner = self.make_runner(stdout)

        with patch("gamemover.discovery.process_probe.sys.platform", "win32"):
            running = ProcessProbe(runner=runner).running(["epicgameslauncher.EXE"])

        assert running == ["epicgameslauncher.EXE"]
        assert runner.call_args[0][0][0] == "tasklist"

    def test_runner_failure_reports_nothing_running(self):
        runner = MagicMock(side_effect=FileNotFoundError("ps"))

        assert ProcessProbe(runner=runner).running(["GTA5.exe"]) == []

    def test_timeout_reports_nothing_running(self):
        runner = MagicMock(side_effect=subprocess.TimeoutExpired("ps", 5.0))

        assert ProcessProbe(runner=runner).list_processes() == []

    def test_nonzero_exit_reports_nothing_running(self):
        runner = self.make_runner("GTA5.exe\n", returncode=1)

        assert ProcessProbe(runner=runner).list_processes() == []

    def test_empty_names_skip_listing(self):
        runner = self.make_runner("")

        assert ProcessProbe(runner=runner).running([]) == []
        runner.assert_not_called()

    def test_static_probe(self):
        probe = StaticProcessProbe(["C:\\Games\\PlayGTAV.exe"])

        assert probe.running(["playgtav.exe", "GTA5.exe"]) == ["playgtav.exe"]
