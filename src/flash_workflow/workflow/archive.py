"""
Archive extraction - Unpacks a task bundle into the session directory.

Entries that would land outside the destination are rejected so a bundle
can never write over the host filesystem.
"""

import shutil
import zipfile
import zlib
from pathlib import Path

from ..constants import EXTRACT_PROGRESS_EVERY
from ..errors import ConfigurationError, NotFoundError, WorkflowIOError
from ..log import WorkflowLogger

STEP_LABEL = "extract"


def _safe_target(dest: Path, entry_name: str) -> Path:
    target = (dest / entry_name).resolve()
    if target != dest and dest not in target.parents:
        raise ConfigurationError(f"Archive entry escapes the session directory: {entry_name}")
    return target


def extract_archive(archive: Path, dest: Path, logger: WorkflowLogger | None = None) -> int:
    """
    Extract a ZIP archive into a directory.

    Args:
        archive: ZIP file to extract
        dest: Destination directory (created if absent)
        logger: Optional logger for progress reporting

    Returns:
        Number of archive entries processed

    Raises:
        NotFoundError: The archive does not exist
        WorkflowIOError: The archive is not a readable ZIP file or its data is corrupt
        ConfigurationError: An entry points outside the destination
    """
    if not archive.is_file():
        raise NotFoundError(f"Archive not found: {archive}")

    dest.mkdir(parents=True, exist_ok=True)
    dest = dest.resolve()

    if logger:
        logger.info(f"Extracting archive: {archive.name}", STEP_LABEL)

    try:
        with zipfile.ZipFile(archive) as zf:
            entries = zf.infolist()
            total = len(entries)

            for index, entry in enumerate(entries, start=1):
                target = _safe_target(dest, entry.filename)

                if entry.is_dir():
                    target.mkdir(parents=True, exist_ok=True)
                else:
                    target.parent.mkdir(parents=True, exist_ok=True)
                    with zf.open(entry) as src, open(target, "wb") as dst:
                        shutil.copyfileobj(src, dst)

                if logger and (index % EXTRACT_PROGRESS_EVERY == 0 or index == total):
                    logger.progress(STEP_LABEL, index * 100 // total, f"Extracted: {entry.filename}")
    except (zipfile.BadZipFile, zlib.error, EOFError) as e:
        raise WorkflowIOError(f"Invalid archive {archive}: {e}") from e
    except (RuntimeError, NotImplementedError) as e:
        # encrypted entries and unsupported compression methods
        raise WorkflowIOError(f"Cannot extract {archive}: {e}") from e
    except OSError as e:
        raise WorkflowIOError(f"Failed to extract {archive}: {e}") from e

    if logger:
        logger.success(f"Extraction complete, {total} entries", STEP_LABEL)
    return total
