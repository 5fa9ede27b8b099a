"""Running-process detection used by the relocation pre-flight checks.

Lists process image names with the platform's own tool (tasklist on
Windows, ps elsewhere) and reports which of a set of names are running.
"""

import csv
import io
import logging
import os
import subprocess
import sys
from typing import Callable, Iterable, List, Optional

logger = logging.getLogger("gamemover.discovery")

Runner = Callable[..., subprocess.CompletedProcess]

# Linux truncates the command name reported by ps comm= to this many characters
COMM_NAME_LIMIT = 15


class ProcessProbe:
    """Reports which of a set of process names are currently running.

    Names are compared case-insensitively on their base name, so
    "GTA5.exe" matches a ps entry of "/opt/wine/GTA5.exe". A listed name of
    exactly COMM_NAME_LIMIT characters is treated as truncated and matches
    any wanted name it is a prefix of ("EpicGamesLaunch" matches
    "EpicGamesLauncher.exe"). If the process list cannot be obtained the
    probe logs a warning and reports nothing running.
    """

    def __init__(self, runner: Runner = subprocess.run, timeout: float = 5.0) -> None:
        self._runner = runner
        self._timeout = timeout

    def running(self, names: Iterable[str]) -> List[str]:
        """Return the subset of names with at least one running process."""
        wanted = {name.lower(): name for name in names}
        if not wanted:
            return []

        active = {self._base_name(p) for p in self.list_processes()}
        truncated = [a for a in active if len(a) == COMM_NAME_LIMIT]
        return [
            original for lowered, original in wanted.items()
            if lowered in active or any(lowered.startswith(t) for t in truncated)
        ]

    def list_processes(self) -> List[str]:
        """Image names of all running processes, or an empty list on failure."""
        try:
            if sys.platform == "win32":
                return self._list_windows()
            return self._list_posix()
        except (OSError, subprocess.SubprocessError) as e:
            logger.warning(f"Could not list running processes: {e}")
            return []

    def _list_windows(self) -> List[str]:
        result = self._runner(
            ["tasklist", "/FO", "CSV", "/NH"],
            capture_output=True, text=True, timeout=self._timeout
        )
        if result.returncode != 0:
            logger.warning(f"tasklist exited with {result.returncode}")
            return []
        names = []
        for row in csv.reader(io.StringIO(result.stdout)):
            if row:
                names.append(row[0].strip().strip('"'))
        return names

    def _list_posix(self) -> List[str]:
        result = self._runner(
            ["ps", "-A", "-o", "comm="],
            capture_output=True, text=True, timeout=self._timeout
        )
        if result.returncode != 0:
            logger.warning(f"ps exited with {result.returncode}")
            return []
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    @staticmethod
    def _base_name(process: str) -> str:
        return os.path.basename(process.replace("\\", "/")).lower()


class StaticProcessProbe(ProcessProbe):
    """ProcessProbe over a fixed list of names, for tests and dry runs."""

    def __init__(self, running_names: Optional[Iterable[str]] = None) -> None:
        super().__init__()
        self._names = list(running_names or [])

    def list_processes(self) -> List[str]:
        return list(self._names)
