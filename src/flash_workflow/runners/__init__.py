"""
Runners layer - Execution engines for workflows.

Runners execute workflows, handling session lifecycle and progress reporting.
They dispatch steps to the registered executors.
"""

from .base import RunnerCallbacks, RunnerProtocol
from .sequential import SequentialRunner, build_variables
from .session import cleanup_session_dir, create_session_dir

__all__ = [
    "RunnerCallbacks",
    "RunnerProtocol",
    "SequentialRunner",
    "build_variables",
    "cleanup_session_dir",
    "create_session_dir",
]
