"""Sequential runner - Executes workflow steps one at a time in manifest order."""

from __future__ import annotations

from pathlib import Path

from ..constants import VAR_OUTPUT_DIR, VAR_SESSION_DIR, VAR_TEMP_DIR
from ..errors import ConfigurationError, WorkflowError
from ..executors import ExecutorRegistry, build_registry
from ..log import WorkflowLogger
from ..workflow import (
    ExecutionContext,
    ExecutionOptions,
    ExecutionResult,
    VariableStore,
    Workflow,
    evaluate_condition,
    extract_archive,
    parse_workflow,
)
from .base import RunnerCallbacks
from .session import cleanup_session_dir, create_session_dir


def build_variables(workflow: Workflow, session_dir: Path, options: ExecutionOptions) -> VariableStore:
    """
    Layer variables for a run and freeze the store.

    Precedence (lowest first): built-ins, workflow-declared, caller overrides.
    """
    variables = VariableStore()
    variables.update(
        {
            VAR_SESSION_DIR: str(session_dir),
            VAR_OUTPUT_DIR: str(options.output_path),
            VAR_TEMP_DIR: str(options.temp_path),
        }
    )
    variables.update(workflow.variables)
    variables.update(options.variables)
    variables.freeze()
    return variables


class SequentialRunner:
    """
    Sequential workflow runner.

    Owns the session lifecycle: creates the session directory, extracts the
    bundle, parses the manifest, runs the steps and removes the directory
    afterwards unless retention was requested. Uses callbacks for progress
    reporting without coupling to UI.
    """

    def __init__(self, logger: WorkflowLogger | None = None, registry: ExecutorRegistry | None = None):
        """
        Initialize the runner.

        Args:
            logger: Logging facility shared with executors
            registry: Step type to executor mapping (default: built-in executors)
        """
        self.logger = logger or WorkflowLogger()
        self.registry = registry or build_registry()

    def run_archive(
        self,
        archive: Path,
        options: ExecutionOptions,
        callbacks: RunnerCallbacks | None = None,
    ) -> ExecutionResult:
        """
        Execute the workflow packaged in an archive.

        Setup failures (missing archive, missing or invalid manifest) are
        reported in the result rather than raised.

        Args:
            archive: Task bundle to extract and run
            options: Output/temp paths, variable overrides, retention flag
            callbacks: Optional callbacks for progress reporting

        Returns:
            ExecutionResult with per-step results
        """
        log = self.logger
        if options.verbose:
            log.verbose = True

        try:
            session_dir = create_session_dir(options.temp_path)
        except OSError as e:
            log.error(f"Cannot create session directory under {options.temp_path}: {e}")
            return ExecutionResult(success=False, error_message=f"Cannot create session directory: {e}")

        log.info(f"Created session directory: {session_dir}")

        try:
            try:
                context, workflow = self._prepare(archive, session_dir, options)
            except (WorkflowError, OSError) as e:
                log.error(f"Workflow setup failed: {e}")
                return ExecutionResult(success=False, error_message=str(e), session_dir=session_dir)

            result = self.run_workflow(workflow, context, callbacks)
            result.session_dir = session_dir
            return result
        finally:
            if options.keep_temp:
                log.info(f"Keeping session directory: {session_dir}")
            else:
                cleanup_session_dir(session_dir, log)

    def _prepare(
        self, archive: Path, session_dir: Path, options: ExecutionOptions
    ) -> tuple[ExecutionContext, Workflow]:
        log = self.logger

        log.info(f"Extracting archive: {archive}")
        extract_archive(archive, session_dir, log)

        workflow_path = session_dir / options.workflow_file
        log.info(f"Parsing workflow file: {workflow_path}")
        workflow = parse_workflow(workflow_path, log)

        context = ExecutionContext(
            session_dir=session_dir,
            output_dir=options.output_path,
            variables=build_variables(workflow, session_dir, options),
            logger=log,
        )
        for name, value in context.variables.as_dict().items():
            log.debug(f"Variable {name} = {value}")

        options.output_path.mkdir(parents=True, exist_ok=True)
        return context, workflow

    def run_workflow(
        self,
        workflow: Workflow,
        context: ExecutionContext,
        callbacks: RunnerCallbacks | None = None,
    ) -> ExecutionResult:
        """
        Run the steps of a parsed workflow.

        Steps run strictly in order. A step whose condition is false is
        skipped and gets no result entry. The first failing step, or a step
        with an unregistered type, stops the run.
        """
        cb = callbacks or RunnerCallbacks()
        log = self.logger
        result = ExecutionResult(workflow_name=workflow.name)

        log.info(f"Starting workflow: {workflow.name}")
        if cb.on_workflow_start:
            cb.on_workflow_start(workflow.name, len(workflow.steps))

        for step in workflow.steps:
            if step.condition and not evaluate_condition(step.condition, context.variables):
                log.info(f"Skipping step: {step.name} (condition not met: {step.condition})")
                if cb.on_step_skipped:
                    cb.on_step_skipped(step.name, step.condition)
                continue

            executor = self.registry.get(step.type)
            if executor is None:
                error = ConfigurationError(f"Unsupported step type: {step.type}")
                log.error(str(error), step.name)
                result.success = False
                result.error_message = str(error)
                break

            log.info(f"Running step: {step.name} ({step.type})")
            if cb.on_step_start:
                cb.on_step_start(step.name, step.type)

            step_result = executor.execute(step, context)
            result.step_results[step.name] = step_result
            if step_result.interactive_wait:
                result.interactive_wait = True

            if cb.on_step_complete:
                cb.on_step_complete(step.name, step_result)

            if not step_result.success:
                log.error(f"Step failed: {step.name}", step.name)
                result.success = False
                result.error_message = f"Step '{step.name}' failed: {step_result.error or 'unknown error'}"
                break
        else:
            result.success = True
            log.success(f"Workflow complete: {workflow.name}")

        if cb.on_workflow_complete:
            cb.on_workflow_complete(result)

        return result
