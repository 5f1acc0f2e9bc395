"""
Flash Workflow (fwf) - Declarative automation engine for task bundles

Runs packaged workflows (a ZIP archive with a workflow.xml manifest) with:
- Ordered, condition-gated steps
- HTTP downloads with retry and checksum verification
- File and directory operations
- External tool invocation with timeouts
- Guaranteed cleanup of the per-run session directory
"""

__version__ = "0.1.0"
__package_name__ = "flash-workflow"
__short_name__ = "fwf"
