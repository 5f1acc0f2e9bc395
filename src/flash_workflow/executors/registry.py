"""Executor registry - Static mapping from step type to executor."""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from .download import DownloadExecutor
from .file_operation import FileOperationExecutor
from .tool import ToolExecutor

if TYPE_CHECKING:
    from ..config import AppConfig
    from .base import StepExecutor


class ExecutorRegistry:
    """
    Lookup table of step executors.

    Step types are matched case-insensitively.
    """

    def __init__(self, executors: Iterable[StepExecutor] = ()):
        self._executors: dict[str, StepExecutor] = {}
        for executor in executors:
            self.register(executor)

    def register(self, executor: StepExecutor) -> None:
        self._executors[executor.step_type.casefold()] = executor

    def get(self, step_type: str) -> StepExecutor | None:
        return self._executors.get(step_type.casefold())

    def __contains__(self, step_type: object) -> bool:
        return isinstance(step_type, str) and step_type.casefold() in self._executors

    @property
    def step_types(self) -> list[str]:
        return [executor.step_type for executor in self._executors.values()]


def build_registry(config: AppConfig | None = None) -> ExecutorRegistry:
    """
    Build the default registry with the tool, Download and FileOperation executors.

    Args:
        config: Optional configuration for timeouts and download tuning
    """
    if config is None:
        return ExecutorRegistry([ToolExecutor(), DownloadExecutor(), FileOperationExecutor()])

    return ExecutorRegistry(
        [
            ToolExecutor(
                timeout=config.tool.timeout_seconds,
                kill_grace=config.tool.kill_grace_seconds,
            ),
            DownloadExecutor(
                timeout=config.download.timeout_seconds,
                chunk_size=config.download.chunk_size,
                backoff_ms=config.download.backoff_ms,
                retry_count=config.download.retry_count,
            ),
            FileOperationExecutor(),
        ]
    )
