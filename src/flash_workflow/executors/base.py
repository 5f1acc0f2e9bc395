"""Base executor protocol and shared fault conversion."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from ..errors import ConfigurationError, WorkflowError, WorkflowIOError
from ..workflow.models import StepResult

if TYPE_CHECKING:
    from ..workflow.models import ExecutionContext, Step


class StepExecutor(Protocol):
    """Protocol for step executors."""

    step_type: str

    def execute(self, step: Step, context: ExecutionContext) -> StepResult:
        """
        Execute a step.

        Executors never raise: every fault is reported in the returned result.

        Args:
            step: The step to execute
            context: Per-run context (session dir, variables, logger)

        Returns:
            StepResult describing the outcome
        """
        ...


def require_param(step: Step, context: ExecutionContext, key: str, action: str | None = None) -> str:
    """Get a resolved parameter or raise ConfigurationError when it is missing or empty."""
    value = context.resolve(step.get(key))
    if not value:
        raise ConfigurationError(f"{action or step.type} requires the {key} parameter")
    return value


def failure_from(error: Exception, context: ExecutionContext, step: Step, summary: str) -> StepResult:
    """
    Convert an exception into a failed StepResult and log it.

    WorkflowError subclasses keep their kind; stray OSErrors become IO errors.
    """
    if not isinstance(error, WorkflowError):
        error = WorkflowIOError(str(error))
    context.logger.error(f"{summary}: {error}", step.name)
    return StepResult.failed(error.to_step_error(), exit_code=getattr(error, "exit_code", None))
