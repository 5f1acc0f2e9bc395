"""
Tool executor - Runs external commands through the platform shell.

Commands run one after another with the session directory as working
directory. Interactive commands (pause, choice, read, input) are not spawned:
the executor waits for a key press instead.
"""

from __future__ import annotations

import os
import shlex
import signal
import subprocess
import threading
import time
from collections.abc import Callable
from typing import IO, TYPE_CHECKING

import click

from ..constants import (
    INTERACTIVE_EXACT,
    INTERACTIVE_MARKERS,
    INTERACTIVE_PREFIXES,
    STEP_TOOL,
    TOOL_KILL_GRACE_SECONDS,
    TOOL_TIMEOUT_SECONDS,
)
from ..errors import ConfigurationError, ProcessError, WorkflowError, WorkflowIOError
from ..workflow.models import StepResult
from .base import failure_from

if TYPE_CHECKING:
    from pathlib import Path

    from ..log import WorkflowLogger
    from ..workflow.models import ExecutionContext, Step

IS_WINDOWS = os.name == "nt"


def is_interactive_command(command: str) -> bool:
    """Check whether a command waits for operator input."""
    if not command:
        return False
    lowered = command.strip().lower()
    return (
        lowered in INTERACTIVE_EXACT
        or lowered.startswith(INTERACTIVE_PREFIXES)
        or any(marker in lowered for marker in INTERACTIVE_MARKERS)
    )


def is_rooted_command(command: str) -> bool:
    """
    Check whether a command names an absolute or quoted program path.

    Drive-qualified paths (anything containing ':') count as rooted,
    as do quoted commands and absolute POSIX paths.
    """
    stripped = command.lstrip()
    return ":" in stripped or stripped.startswith(('"', "'")) or os.path.isabs(stripped)


def build_shell_command(command: str, session_dir: Path) -> str:
    """
    Build the shell line for a command.

    Relative commands are prefixed with an explicit ``cd`` into the session
    directory and get '/' normalized to the platform separator.
    """
    if is_rooted_command(command):
        return command

    if os.sep != "/":
        command = command.replace("/", os.sep)

    if IS_WINDOWS:
        return f'cd /d "{session_dir}" && {command}'
    return f"cd {shlex.quote(str(session_dir))} && {command}"


def _kill(process: subprocess.Popen) -> None:
    """Force-terminate a process and, on POSIX, the shell's children in its session."""
    if IS_WINDOWS:
        process.kill()
        return
    try:
        os.killpg(process.pid, signal.SIGKILL)
    except (ProcessLookupError, PermissionError):
        pass


def wait_for_keypress() -> None:
    """Block until the operator presses any key."""
    click.getchar()


def _drain(stream: IO[str], sink: list[str], emit: Callable[[str], None]) -> None:
    for line in iter(stream.readline, ""):
        line = line.rstrip("\r\n")
        if line:
            sink.append(line)
            emit(line)
    stream.close()


class ToolExecutor:
    """
    Executor for ``tool`` steps.

    Parameters: one or more Command elements, executed in manifest order.
    """

    step_type = STEP_TOOL

    def __init__(
        self,
        timeout: float = TOOL_TIMEOUT_SECONDS,
        kill_grace: float = TOOL_KILL_GRACE_SECONDS,
        acknowledge: Callable[[], None] = wait_for_keypress,
    ):
        """
        Initialize the executor.

        Args:
            timeout: Wall-clock limit per spawned command in seconds
            kill_grace: Seconds to wait for a killed process to exit
            acknowledge: Blocks until the operator acknowledges an interactive command
        """
        self.timeout = timeout
        self.kill_grace = kill_grace
        self.acknowledge = acknowledge

    def execute(self, step: Step, context: ExecutionContext) -> StepResult:
        try:
            return self._run_commands(step, context)
        except (WorkflowError, OSError) as e:
            return failure_from(e, context, step, "Command execution error")

    def _run_commands(self, step: Step, context: ExecutionContext) -> StepResult:
        log = context.logger
        commands = step.get_all("Command")
        if not commands:
            raise ConfigurationError("tool step requires at least one Command parameter")

        outputs: list[str] = []
        interactive = False

        for raw in commands:
            command = context.resolve(raw)
            log.info(f"Running command: {command}", step.name)

            if is_interactive_command(command):
                interactive = True
                log.info("Interactive command detected, waiting for operator confirmation", step.name)
                log.info(f"Command: {command}", step.name)
                log.info("Press any key to continue with the remaining commands...", step.name)
                self.acknowledge()
                continue

            try:
                exit_code, stdout = self._run_process(command, context.session_dir, step.name, log)
            except ProcessError as e:
                log.warning(str(e), step.name)
                return StepResult.failed(
                    e.to_step_error(),
                    exit_code=e.exit_code,
                    output=e.output,
                    interactive_wait=interactive,
                )
            outputs.append(stdout)

        log.success("Commands completed", step.name)
        return StepResult.ok(output="\n".join(o for o in outputs if o), exit_code=0, interactive_wait=interactive)

    def _run_process(self, command: str, session_dir: Path, step_name: str, log: WorkflowLogger) -> tuple[int, str]:
        """
        Spawn one command and wait for it.

        Both output streams are drained by reader threads that start before
        the wait, so a full pipe can never block the child.

        Returns:
            Tuple of (exit code, captured stdout)

        Raises:
            ProcessError: Non-zero exit code or timeout
            WorkflowIOError: The shell could not be started
        """
        shell_line = build_shell_command(command, session_dir)
        log.debug(f"Shell line: {shell_line}", step_name)

        try:
            process = subprocess.Popen(
                shell_line,
                shell=True,
                cwd=session_dir,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                start_new_session=not IS_WINDOWS,
            )
        except OSError as e:
            raise WorkflowIOError(f"Failed to start command {command}: {e}") from e

        stdout_lines: list[str] = []
        stderr_lines: list[str] = []
        readers = [
            threading.Thread(
                target=_drain,
                args=(process.stdout, stdout_lines, lambda line: log.info(f"[CMD] {line}", step_name)),
                daemon=True,
            ),
            threading.Thread(
                target=_drain,
                args=(process.stderr, stderr_lines, lambda line: log.warning(f"[CMD-ERROR] {line}", step_name)),
                daemon=True,
            ),
        ]
        for reader in readers:
            reader.start()

        deadline = time.monotonic() + self.timeout
        try:
            exit_code = process.wait(timeout=self.timeout)
        except subprocess.TimeoutExpired:
            self._terminate(process, readers, step_name, log)
            raise self._timeout_error(command, stdout_lines) from None

        # a background child that inherited the pipes keeps them open after the shell exits
        for reader in readers:
            reader.join(timeout=max(0.0, deadline - time.monotonic()))
        if any(reader.is_alive() for reader in readers):
            log.warning("Command exited but its output pipes are still held open", step_name)
            self._terminate(process, readers, step_name, log)
            raise self._timeout_error(command, stdout_lines)

        stdout = "\n".join(stdout_lines)
        if exit_code != 0:
            raise ProcessError(
                f"Command failed with exit code {exit_code}: {command}", exit_code=exit_code, output=stdout
            )
        return exit_code, stdout

    def _terminate(
        self, process: subprocess.Popen, readers: list[threading.Thread], step_name: str, log: WorkflowLogger
    ) -> None:
        """Kill the command's process group and give the readers the grace period to finish."""
        _kill(process)
        try:
            process.wait(timeout=self.kill_grace)
        except subprocess.TimeoutExpired:
            log.warning(f"Process {process.pid} did not exit after kill", step_name)
        for reader in readers:
            reader.join(timeout=self.kill_grace)

    def _timeout_error(self, command: str, stdout_lines: list[str]) -> ProcessError:
        return ProcessError(
            f"Command timed out after {self.timeout:g}s: {command}",
            exit_code=-1,
            output="\n".join(stdout_lines),
            timed_out=True,
        )
