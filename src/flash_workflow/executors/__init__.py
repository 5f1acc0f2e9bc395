"""
Executors layer - One handler per step type.

All executors are CLI-agnostic and return typed StepResults.
They never raise: faults are converted into failed results.
"""

from .base import StepExecutor
from .download import DownloadExecutor
from .file_operation import FileOperationExecutor
from .registry import ExecutorRegistry, build_registry
from .tool import ToolExecutor

__all__ = [
    "DownloadExecutor",
    "ExecutorRegistry",
    "FileOperationExecutor",
    "StepExecutor",
    "ToolExecutor",
    "build_registry",
]
