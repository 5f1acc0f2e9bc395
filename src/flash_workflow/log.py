"""
Logging facility - Serialized console and stdlib logging output.

A WorkflowLogger is constructed once per run and passed to every component.
Output drain threads of spawned tools write through the same instance, so
every write is serialized under one lock and lines never interleave.
"""

import logging
import threading
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.markup import escape

LOGGER_NAME = "flash_workflow"

logger = logging.getLogger(LOGGER_NAME)

_LEVEL_STYLES = {
    "DEBUG": "dim",
    "INFO": "white",
    "SUCCESS": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "PROGRESS": "cyan",
}

_STDLIB_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "SUCCESS": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "PROGRESS": logging.INFO,
}


class WorkflowLogger:
    """
    Thread-safe logger for workflow runs.

    Writes coloured lines to a Rich console and mirrors each record to the
    ``flash_workflow`` stdlib logger so file handlers and test capture work.
    """

    def __init__(self, console: Console | None = None, verbose: bool = False):
        """
        Initialize the logger.

        Args:
            console: Rich console to write to (default: a new stdout console)
            verbose: If True, debug lines are also printed to the console
        """
        self.console = console or Console(highlight=False)
        self.verbose = verbose
        self._lock = threading.Lock()

    def debug(self, message: str, step: str | None = None) -> None:
        self._write("DEBUG", message, step, show=self.verbose)

    def info(self, message: str, step: str | None = None) -> None:
        self._write("INFO", message, step)

    def success(self, message: str, step: str | None = None) -> None:
        self._write("SUCCESS", message, step)

    def warning(self, message: str, step: str | None = None) -> None:
        self._write("WARNING", message, step)

    def error(self, message: str, step: str | None = None) -> None:
        self._write("ERROR", message, step)

    def progress(self, step: str, percent: int, status: str = "") -> None:
        """Report coarse progress for a long-running step."""
        message = f"{percent}%"
        if status:
            message = f"{message} - {status}"
        self._write("PROGRESS", message, step)

    def _write(self, level: str, message: str, step: str | None, show: bool = True) -> None:
        timestamp = datetime.now().strftime("%H:%M:%S")
        style = _LEVEL_STYLES[level]
        step_part = f"[yellow]\\[{escape(step)}][/yellow] " if step else ""
        line = (
            f"[cyan]\\[{timestamp}][/cyan] [{style}]\\[{level}][/{style}] "
            f"{step_part}[{style}]{escape(message)}[/{style}]"
        )

        with self._lock:
            if show:
                self.console.print(line)
            prefix = f"[{step}] " if step else ""
            logger.log(_STDLIB_LEVELS[level], "%s%s", prefix, message)


def configure_file_logging(path: Path, level: str = "INFO") -> logging.Handler:
    """
    Attach a file handler to the flash_workflow logger.

    Args:
        path: Log file to append to (parent directories are created)
        level: Minimum stdlib level name for the file

    Returns:
        The installed handler (callers may remove it when done)
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(getattr(logging, level.upper(), logging.INFO))
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
    logger.addHandler(handler)
    if logger.level == logging.NOTSET or logger.level > handler.level:
        logger.setLevel(handler.level)
    return handler
