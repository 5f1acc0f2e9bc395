"""File operation executor - Copy, move, delete and create files and directories."""

from __future__ import annotations

import shutil
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

from ..constants import STEP_FILE_OPERATION
from ..errors import ConfigurationError, NotFoundError, WorkflowError, WorkflowIOError
from ..workflow.models import StepResult
from .base import failure_from, require_param

if TYPE_CHECKING:
    from ..log import WorkflowLogger
    from ..workflow.models import ExecutionContext, Step


def _ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def _reject_directory_target(destination: Path) -> None:
    # shutil would place the file inside the directory instead of at the given path
    if destination.is_dir():
        raise WorkflowIOError(f"Destination is an existing directory: {destination}")


def copy_file(source: Path, destination: Path, log: WorkflowLogger, step_name: str) -> None:
    if not source.is_file():
        raise NotFoundError(f"Source file does not exist: {source}")
    _reject_directory_target(destination)
    _ensure_parent(destination)
    log.info(f"Copying file: {source.name} -> {destination}", step_name)
    shutil.copy2(source, destination)


def move_file(source: Path, destination: Path, log: WorkflowLogger, step_name: str) -> None:
    if not source.is_file():
        raise NotFoundError(f"Source file does not exist: {source}")
    _reject_directory_target(destination)
    _ensure_parent(destination)
    log.info(f"Moving file: {source.name} -> {destination}", step_name)
    shutil.move(str(source), str(destination))


def delete_file(source: Path, log: WorkflowLogger, step_name: str) -> None:
    if not source.is_file():
        log.warning(f"File does not exist, skipping delete: {source}", step_name)
        return
    log.info(f"Deleting file: {source.name}", step_name)
    source.unlink()


def copy_directory(source: Path, destination: Path, log: WorkflowLogger, step_name: str) -> None:
    """
    Replace destination with a copy of source.

    An existing destination is removed in full first, so files that only
    exist in the old destination do not survive.
    """
    if not source.is_dir():
        raise NotFoundError(f"Source directory does not exist: {source}")
    log.info(f"Copying directory: {source.name} -> {destination}", step_name)

    if destination.is_dir():
        shutil.rmtree(destination)
    elif destination.exists():
        destination.unlink()
    _ensure_parent(destination)
    shutil.copytree(source, destination, dirs_exist_ok=True)


def move_directory(source: Path, destination: Path, log: WorkflowLogger, step_name: str) -> None:
    if not source.is_dir():
        raise NotFoundError(f"Source directory does not exist: {source}")
    if destination.exists():
        raise WorkflowIOError(f"Destination already exists: {destination}")
    _ensure_parent(destination)
    log.info(f"Moving directory: {source.name} -> {destination}", step_name)
    shutil.move(str(source), str(destination))


def delete_directory(source: Path, log: WorkflowLogger, step_name: str) -> None:
    if not source.is_dir():
        log.warning(f"Directory does not exist, skipping delete: {source}", step_name)
        return
    log.info(f"Deleting directory: {source.name}", step_name)
    shutil.rmtree(source)


def create_directory(source: Path, log: WorkflowLogger, step_name: str) -> None:
    if source.is_dir():
        log.warning(f"Directory already exists, skipping create: {source}", step_name)
        return
    log.info(f"Creating directory: {source}", step_name)
    source.mkdir(parents=True)


# Operations taking (source, destination, ...)
TWO_PATH_OPERATIONS: dict[str, Callable[..., None]] = {
    "CopyFile": copy_file,
    "MoveFile": move_file,
    "CopyDirectory": copy_directory,
    "MoveDirectory": move_directory,
}

# Operations taking (source, ...)
ONE_PATH_OPERATIONS: dict[str, Callable[..., None]] = {
    "DeleteFile": delete_file,
    "DeleteDirectory": delete_directory,
    "CreateDirectory": create_directory,
}

OPERATIONS = (*TWO_PATH_OPERATIONS, *ONE_PATH_OPERATIONS)


class FileOperationExecutor:
    """
    Executor for ``FileOperation`` steps.

    Parameters: Operation, Source, and Destination for copy/move operations.
    """

    step_type = STEP_FILE_OPERATION

    def execute(self, step: Step, context: ExecutionContext) -> StepResult:
        try:
            operation = self._apply(step, context)
        except (WorkflowError, OSError) as e:
            return failure_from(e, context, step, "File operation failed")

        context.logger.success(f"File operation complete: {operation}", step.name)
        return StepResult.ok()

    def _apply(self, step: Step, context: ExecutionContext) -> str:
        log = context.logger
        operation = step.get("Operation")
        if not operation:
            raise ConfigurationError("FileOperation requires the Operation parameter")

        log.info(f"File operation: {operation}", step.name)

        try:
            if operation in TWO_PATH_OPERATIONS:
                source = Path(require_param(step, context, "Source", operation))
                destination = Path(require_param(step, context, "Destination", operation))
                TWO_PATH_OPERATIONS[operation](source, destination, log, step.name)
            elif operation in ONE_PATH_OPERATIONS:
                source = Path(require_param(step, context, "Source", operation))
                ONE_PATH_OPERATIONS[operation](source, log, step.name)
            else:
                raise ConfigurationError(
                    f"Unsupported file operation: {operation} (expected one of {', '.join(OPERATIONS)})"
                )
        except (OSError, shutil.Error) as e:
            raise WorkflowIOError(f"{operation} failed: {e}") from e

        return operation
