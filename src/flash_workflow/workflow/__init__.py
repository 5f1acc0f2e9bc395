"""
Workflow layer - Manifest data structures and the variable sub-language.

Workflows are DATA STRUCTURES that define what to do.
They do NOT execute anything - that's the runner's job.
"""

from .archive import extract_archive
from .conditions import evaluate_condition
from .models import (
    ExecutionContext,
    ExecutionOptions,
    ExecutionResult,
    Step,
    StepError,
    StepResult,
    Workflow,
)
from .parser import parse_workflow, parse_workflow_text
from .variables import VariableStore

__all__ = [
    "ExecutionContext",
    "ExecutionOptions",
    "ExecutionResult",
    "Step",
    "StepError",
    "StepResult",
    "VariableStore",
    "Workflow",
    "evaluate_condition",
    "extract_archive",
    "parse_workflow",
    "parse_workflow_text",
]
