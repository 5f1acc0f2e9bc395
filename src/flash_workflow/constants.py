"""
Centralized constants for Flash Workflow.

Defaults for paths, timeouts and the manifest vocabulary live here
to avoid duplication across modules.
"""

import tempfile
from pathlib import Path

# Default locations
DEFAULT_TEMP_ROOT = Path(tempfile.gettempdir()) / "fwf"
DEFAULT_OUTPUT_DIR = Path.home() / ".local" / "share" / "flash-workflow" / "output"
DEFAULT_WORKFLOW_FILE = "workflow.xml"

# Session directory naming
SESSION_PREFIX = "session_"
SESSION_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S_%f"

# Built-in variable names (lowest precedence layer)
VAR_SESSION_DIR = "SessionDir"
VAR_OUTPUT_DIR = "OutputDir"
VAR_TEMP_DIR = "TempDir"

# Step types
STEP_TOOL = "tool"
STEP_DOWNLOAD = "Download"
STEP_FILE_OPERATION = "FileOperation"

# Download defaults
DEFAULT_RETRY_COUNT = 3
DOWNLOAD_TIMEOUT_SECONDS = 600
DOWNLOAD_CHUNK_SIZE = 8192
DOWNLOAD_BACKOFF_MS = 2000
PROGRESS_INTERVAL_BYTES = 1024 * 1024

# Tool defaults (30 minutes suits flashing operations)
TOOL_TIMEOUT_SECONDS = 30 * 60
TOOL_KILL_GRACE_SECONDS = 5

# Commands that wait for operator input instead of being spawned
INTERACTIVE_EXACT = ("pause",)
INTERACTIVE_PREFIXES = ("pause ",)
INTERACTIVE_MARKERS = ("choice", "read", "input")

# Manifest defaults
DEFAULT_WORKFLOW_NAME = "Unnamed workflow"
DEFAULT_WORKFLOW_VERSION = "1.0"

# Archive extraction progress
EXTRACT_PROGRESS_EVERY = 10
