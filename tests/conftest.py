"""Shared pytest fixtures for flash-workflow tests."""

import io
import zipfile

import pytest
from rich.console import Console
from typer.testing import CliRunner

from flash_workflow.log import WorkflowLogger
from flash_workflow.workflow import ExecutionContext, VariableStore


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    return CliRunner()


@pytest.fixture
def console_buffer():
    """In-memory text buffer backing a Rich console."""
    return io.StringIO()


@pytest.fixture
def logger(console_buffer):
    """Logger writing to an in-memory console."""
    console = Console(file=console_buffer, width=200, color_system=None, highlight=False)
    return WorkflowLogger(console=console)


@pytest.fixture
def session_dir(tmp_path):
    """Session directory for executor tests."""
    path = tmp_path / "session"
    path.mkdir()
    return path


@pytest.fixture
def make_context(session_dir, tmp_path, logger):
    """Factory for execution contexts with optional extra variables."""

    def _make(**variables):
        store = VariableStore(
            {
                "SessionDir": str(session_dir),
                "OutputDir": str(tmp_path / "output"),
                "TempDir": str(tmp_path),
            }
        )
        store.update(variables)
        store.freeze()
        return ExecutionContext(
            session_dir=session_dir,
            output_dir=tmp_path / "output",
            variables=store,
            logger=logger,
        )

    return _make


@pytest.fixture
def make_bundle(tmp_path):
    """Factory building a ZIP task bundle from a manifest and extra files."""

    def _make(
        manifest: str | None,
        files: dict[str, str] | None = None,
        name: str = "bundle.zip",
        manifest_name: str = "workflow.xml",
    ):
        path = tmp_path / name
        with zipfile.ZipFile(path, "w") as zf:
            if manifest is not None:
                zf.writestr(manifest_name, manifest)
            for entry, content in (files or {}).items():
                zf.writestr(entry, content)
        return path

    return _make
