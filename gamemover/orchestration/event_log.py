"""EventLog for recording relocation events as timestamped lines.

This module provides the EventLog class, an append-only sink that writes one
"[YYYY-MM-DD HH:MM:SS] message" line per event. Writing is best-effort: a
log that cannot be written never causes a relocation to fail.
"""

import os
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional, TextIO, Tuple

LOG_FILE_ENV_VAR = "GAMEMOVER_LOG_FILE"

Event = Tuple[datetime, str]


def default_log_path() -> Path:
    """Location of the shared log file.

    Honors the GAMEMOVER_LOG_FILE environment variable; otherwise uses
    %APPDATA%/gamemover/logs.txt on Windows and
    $XDG_DATA_HOME/gamemover/logs.txt (default ~/.local/share) elsewhere.
    """
    override = os.environ.get(LOG_FILE_ENV_VAR)
    if override:
        return Path(override)

    if sys.platform == "win32" and os.environ.get("APPDATA"):
        base = Path(os.environ["APPDATA"])
    else:
        base = Path(os.environ.get("XDG_DATA_HOME") or Path.home() / ".local" / "share")
    return base / "gamemover" / "logs.txt"


class EventLog:
    """Append-only log of relocation events.

    Can be used directly, in which case each event opens, appends and closes
    the file, or as a context manager that keeps the file open.

    Usage:
        with EventLog() as event_log:
            event_log.log("Moving from A to B")

    Attributes:
        TIMESTAMP_FORMAT: strftime format of the bracketed line prefix.
    """

    TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

    def __init__(self, log_file_path: Optional[Path] = None) -> None:
        """Initialize the EventLog.

        Args:
            log_file_path: Optional path for the log file. Defaults to
                default_log_path(). Parent directories are created on the
                first write.
        """
        self._log_file_path = Path(log_file_path) if log_file_path else default_log_path()
        self._file_handle: Optional[TextIO] = None

    def __enter__(self) -> "EventLog":
        """Open the log file for appending.

        An unopenable file is reported on stderr; events then fall back to
        per-call appends, which will also fail quietly.
        """
        try:
            self._ensure_parent()
            self._file_handle = open(self._log_file_path, "a", encoding="utf-8")
        except OSError as e:
            print(f"Warning: Cannot open log file for writing: {e}", file=sys.stderr)
            self._file_handle = None
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        if self._file_handle is not None:
            try:
                self._file_handle.close()
            except OSError as e:
                print(f"Warning: Error closing log file: {e}", file=sys.stderr)
            finally:
                self._file_handle = None

    def get_log_path(self) -> Path:
        """Get the path to the log file."""
        return self._log_file_path

    def log(self, message: str) -> Event:
        """Record one event.

        Args:
            message: Single-line event text. Embedded newlines are flattened.

        Returns:
            The (timestamp, message) pair that was recorded.
        """
        event = (datetime.now(), " ".join(message.splitlines()))
        self._write_line(self.format_event(event))
        return event

    def read(self) -> str:
        """Return the full log contents, or an empty string if there is no log yet."""
        try:
            return self._log_file_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return ""

    def clear(self) -> None:
        """Truncate the log file."""
        if self._file_handle is not None:
            self._file_handle.seek(0)
            self._file_handle.truncate()
            return
        if self._log_file_path.exists():
            self._log_file_path.write_text("", encoding="utf-8")

    @classmethod
    def format_event(cls, event: Event) -> str:
        timestamp, message = event
        return f"[{timestamp.strftime(cls.TIMESTAMP_FORMAT)}] {message}"

    def _ensure_parent(self) -> None:
        self._log_file_path.parent.mkdir(parents=True, exist_ok=True)

    def _write_line(self, text: str) -> None:
        try:
            if self._file_handle is not None:
                self._file_handle.write(text + "\n")
                self._file_handle.flush()
                return
            self._ensure_parent()
            with open(self._log_file_path, "a", encoding="utf-8") as handle:
                handle.write(text + "\n")
        except OSError as e:
            print(f"Warning: Error writing to log file: {e}", file=sys.stderr)


class MemoryEventLog(EventLog):
    """EventLog that keeps events in memory instead of writing a file."""

    def __init__(self) -> None:
        super().__init__(log_file_path=Path(os.devnull))
        self.events: List[Event] = []

    def __enter__(self) -> "MemoryEventLog":
        return self

    def read(self) -> str:
        return "".join(self.format_event(event) + "\n" for event in self.events)

    def clear(self) -> None:
        self.events.clear()

    @property
    def messages(self) -> List[str]:
        return [message for _, message in self.events]

    def _write_line(self, text: str) -> None:
        pass

    def log(self, message: str) -> Event:
        event = super().log(message)
        self.events.append(event)
        return event
