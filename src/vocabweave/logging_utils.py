"""Custom logging utilities for the VocabWeave application."""
# src/vocabweave/logging_utils.py

import logging
import sys
import time
from logging import FileHandler
from pathlib import Path

from . import paths


class _UtcMicrosecondFormatter(logging.Formatter):
    """Formatter rendering timestamps in UTC with microseconds and a 'Z' suffix."""

    def __init__(self, fmt: str) -> None:
        super().__init__(fmt=fmt, datefmt="%Y-%m-%dT%H:%M:%S")
        self.converter = time.gmtime

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:  # noqa: N802
        """Format the time with 6-digit microseconds and a 'Z' for UTC."""
        ct = self.converter(record.created)
        s = time.strftime(datefmt, ct) if datefmt else time.strftime(self.default_time_format, ct)
        microseconds = int((record.created - int(record.created)) * 1_000_000)
        return f"{s}.{microseconds:06d}Z"


class ConsoleFormatter(_UtcMicrosecondFormatter):
    """A custom formatter for console output to provide clean, user-friendly logs."""

    def __init__(self, version: str) -> None:
        """
        Initialize the formatter with the application version.

        Args:
            version: The VocabWeave application version.

        """
        super().__init__(f"%(asctime)s | VocabWeave - {version} | %(message)s")


class FileFormatter(_UtcMicrosecondFormatter):
    """A detailed formatter for debug log files, aimed at developers."""

    def __init__(self) -> None:
        """Initialize the detailed file formatter."""
        super().__init__("%(asctime)s | %(name)-24s | %(funcName)-20s:%(lineno)-4d | %(levelname)-8s | %(message)s")


def setup_logging(version: str, *, debug: bool = False, project_root: Path | None = None) -> None:
    """
    Configure the root logger for the VocabWeave application.

    1.  Console: User-facing messages. Level is INFO by default, DEBUG if debug=True.
    2.  File (DEBUG): Detailed logs written to '.vocabweave/logs/debug.log'
        under the project root when debug=True.

    Args:
        version: The application version, included in console logs.
        debug: If True, enables detailed file logging and sets console level to DEBUG.
        project_root: Where to look for the project anchor. Defaults to CWD.

    """
    root_logger = logging.getLogger()
    if root_logger.hasHandlers():
        root_logger.handlers.clear()

    console_level = logging.DEBUG if debug else logging.INFO
    root_logger.setLevel(console_level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(ConsoleFormatter(version))
    root_logger.addHandler(console_handler)

    if debug:
        try:
            log_dir = paths.get_log_dir(project_root)
            paths.ensure_dir_exists(log_dir)
            log_file_path = log_dir / "debug.log"

            file_handler = FileHandler(log_file_path, mode="w", encoding="utf-8")
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(FileFormatter())
            root_logger.addHandler(file_handler)

            logging.getLogger().info(
                "Debug mode enabled. Console level set to DEBUG. Detailed logs will be written to %s",
                log_file_path,
            )
        except Exception:
            # The console handler is already installed; keep going without the file.
            logging.getLogger().exception("Failed to create debug log file. Continuing with console logging only.")
