"""Session directory lifecycle - create, then always clean up."""

from __future__ import annotations

import shutil
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from ..constants import SESSION_PREFIX, SESSION_TIMESTAMP_FORMAT

if TYPE_CHECKING:
    from ..log import WorkflowLogger


def session_dir_name(now: datetime | None = None) -> str:
    """Name a session directory after its creation time."""
    return f"{SESSION_PREFIX}{(now or datetime.now()).strftime(SESSION_TIMESTAMP_FORMAT)}"


def create_session_dir(temp_root: Path) -> Path:
    """
    Create a new, uniquely named session directory under temp_root.

    A name collision (two sessions in the same microsecond) retries with a
    fresh timestamp, so a directory is never shared between runs.
    """
    temp_root.mkdir(parents=True, exist_ok=True)
    while True:
        session_dir = temp_root / session_dir_name()
        try:
            session_dir.mkdir()
        except FileExistsError:
            continue
        return session_dir


def cleanup_session_dir(session_dir: Path, logger: WorkflowLogger) -> bool:
    """
    Delete a session directory.

    Failures are logged and never raised.

    Returns:
        True if the directory is gone afterwards
    """
    if not session_dir.exists():
        return True
    try:
        shutil.rmtree(session_dir)
    except OSError as e:
        logger.warning(f"Failed to clean up session directory {session_dir}: {e}")
        return False
    logger.info(f"Cleaned up session directory: {session_dir}")
    return True
