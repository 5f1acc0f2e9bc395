"""Workflow, step and result data structures."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from ..constants import DEFAULT_WORKFLOW_FILE
from ..errors import ErrorKind
from .variables import VariableStore

if TYPE_CHECKING:
    from ..log import WorkflowLogger


@dataclass(frozen=True)
class Step:
    """
    A single typed step of a workflow.

    Steps are data - they describe what to do, not how to do it.
    The executor registered for ``type`` interprets the parameters.

    ``params`` is key-unique: when a manifest repeats a parameter element the
    last occurrence wins. ``entries`` keeps every element in manifest order so
    repeatable parameters (such as several ``Command`` elements) survive.
    """

    type: str
    name: str
    condition: str | None = None
    params: dict[str, str] = field(default_factory=dict)
    entries: tuple[tuple[str, str], ...] = ()

    def get(self, key: str, default: str | None = None) -> str | None:
        """Get a parameter value by exact key."""
        return self.params.get(key, default)

    def get_all(self, key: str) -> list[str]:
        """Get every value of a repeatable parameter, matching the key case-insensitively."""
        wanted = key.casefold()
        values = [value for name, value in self.entries if name.casefold() == wanted]
        if not values:
            values = [value for name, value in self.params.items() if name.casefold() == wanted]
        return values


@dataclass(frozen=True)
class Workflow:
    """
    A parsed workflow manifest.

    Produced once by the manifest parser and never modified afterwards.
    """

    name: str
    version: str
    variables: dict[str, str] = field(default_factory=dict)
    steps: tuple[Step, ...] = ()


@dataclass(frozen=True)
class StepError:
    """Structured error carried by a failed step."""

    kind: ErrorKind
    message: str
    timed_out: bool = False

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class StepResult:
    """Result of executing one step."""

    success: bool
    exit_code: int | None = None
    output: str = ""
    error: StepError | None = None
    interactive_wait: bool = False

    @classmethod
    def ok(cls, output: str = "", exit_code: int | None = None, interactive_wait: bool = False) -> "StepResult":
        return cls(success=True, exit_code=exit_code, output=output, interactive_wait=interactive_wait)

    @classmethod
    def failed(
        cls,
        error: StepError,
        exit_code: int | None = None,
        output: str = "",
        interactive_wait: bool = False,
    ) -> "StepResult":
        return cls(
            success=False,
            exit_code=exit_code,
            output=output,
            error=error,
            interactive_wait=interactive_wait,
        )


@dataclass
class ExecutionResult:
    """Result of running a workflow."""

    success: bool = False
    error_message: str | None = None
    step_results: dict[str, StepResult] = field(default_factory=dict)
    interactive_wait: bool = False
    workflow_name: str | None = None
    session_dir: Path | None = None

    @property
    def steps_executed(self) -> int:
        return len(self.step_results)

    @property
    def steps_failed(self) -> int:
        return sum(1 for r in self.step_results.values() if not r.success)


@dataclass
class ExecutionContext:
    """
    Per-run state handed to every executor.

    The variable store is frozen before the first step runs.
    """

    session_dir: Path
    output_dir: Path
    variables: VariableStore
    logger: "WorkflowLogger"

    def resolve(self, text: str | None) -> str | None:
        """Resolve variable references in text."""
        return self.variables.resolve(text)


@dataclass
class ExecutionOptions:
    """Caller-supplied options for one run."""

    output_path: Path
    temp_path: Path
    workflow_file: str = DEFAULT_WORKFLOW_FILE
    variables: dict[str, str] = field(default_factory=dict)
    verbose: bool = False
    keep_temp: bool = False
