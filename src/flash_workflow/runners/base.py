"""Base runner classes and protocols."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ..workflow import ExecutionOptions, ExecutionResult, StepResult


@dataclass
class RunnerCallbacks:
    """
    Hooks fired by a runner as a workflow progresses.

    The CLI uses them for display so runners stay free of Rich/UI code.
    Any hook left as None is simply not called.
    """

    # Workflow lifecycle
    on_workflow_start: Callable[[str, int], None] | None = None  # name, total_steps
    on_workflow_complete: Callable[[ExecutionResult], None] | None = None

    # Step lifecycle
    on_step_start: Callable[[str, str], None] | None = None  # step name, step type
    on_step_skipped: Callable[[str, str], None] | None = None  # step name, condition
    on_step_complete: Callable[[str, StepResult], None] | None = None


class RunnerProtocol(Protocol):
    """Protocol for workflow runners."""

    def run_archive(
        self,
        archive: Path,
        options: ExecutionOptions,
        callbacks: RunnerCallbacks | None = None,
    ) -> ExecutionResult:
        """
        Execute the workflow packaged in an archive.

        Args:
            archive: Task bundle to extract and run
            options: Output/temp paths, variable overrides, retention flag
            callbacks: Optional callbacks for progress reporting

        Returns:
            ExecutionResult with per-step results
        """
        ...
