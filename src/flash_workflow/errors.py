"""Error taxonomy shared by the engine, executors and collaborators."""

from enum import Enum


class ErrorKind(Enum):
    """Category of a failure, reported in step results."""

    CONFIGURATION = "configuration"
    NOT_FOUND = "not_found"
    NETWORK = "network"
    VERIFICATION = "verification"
    PROCESS = "process"
    IO = "io"


class WorkflowError(Exception):
    """Base class for all workflow failures."""

    kind = ErrorKind.IO

    def to_step_error(self):
        """Convert to the structured error stored in a StepResult."""
        from .workflow.models import StepError

        return StepError(kind=self.kind, message=str(self))


class ConfigurationError(WorkflowError):
    """Missing or invalid parameters, unknown step type or operation."""

    kind = ErrorKind.CONFIGURATION


class NotFoundError(WorkflowError):
    """A required file, directory or manifest does not exist."""

    kind = ErrorKind.NOT_FOUND


class NetworkError(WorkflowError):
    """Transport failure while downloading."""

    kind = ErrorKind.NETWORK


class VerificationError(WorkflowError):
    """Downloaded content does not match the declared checksum."""

    kind = ErrorKind.VERIFICATION


class ProcessError(WorkflowError):
    """External command exited non-zero or was killed after a timeout."""

    kind = ErrorKind.PROCESS

    def __init__(self, message: str, exit_code: int | None = None, output: str = "", timed_out: bool = False):
        super().__init__(message)
        self.exit_code = exit_code
        self.output = output
        self.timed_out = timed_out

    def to_step_error(self):
        from .workflow.models import StepError

        return StepError(kind=self.kind, message=str(self), timed_out=self.timed_out)


class WorkflowIOError(WorkflowError):
    """Filesystem failure."""

    kind = ErrorKind.IO
