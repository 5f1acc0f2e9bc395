"""
Configuration management with YAML loading and environment variable support.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .constants import (
    DEFAULT_OUTPUT_DIR,
    DEFAULT_RETRY_COUNT,
    DEFAULT_TEMP_ROOT,
    DEFAULT_WORKFLOW_FILE,
    DOWNLOAD_BACKOFF_MS,
    DOWNLOAD_CHUNK_SIZE,
    DOWNLOAD_TIMEOUT_SECONDS,
    TOOL_KILL_GRACE_SECONDS,
    TOOL_TIMEOUT_SECONDS,
)

SECTIONS = ["paths", "download", "tool", "logging"]
PATH_KEYS = {"temp_root", "output", "file"}


def _env_path(env_var: str, default: Path) -> Path:
    """Get path from environment variable or return default."""
    if value := os.environ.get(env_var):
        return Path(value)
    return default


@dataclass
class PathsConfig:
    """Paths configuration - temp root and output can be overridden via environment variables."""

    temp_root: Path = field(default_factory=lambda: _env_path("FWF_TEMP_ROOT", DEFAULT_TEMP_ROOT))
    output: Path = field(default_factory=lambda: _env_path("FWF_OUTPUT", DEFAULT_OUTPUT_DIR))
    workflow_file: str = DEFAULT_WORKFLOW_FILE


@dataclass
class DownloadConfig:
    retry_count: int = DEFAULT_RETRY_COUNT
    timeout_seconds: float = DOWNLOAD_TIMEOUT_SECONDS
    chunk_size: int = DOWNLOAD_CHUNK_SIZE
    backoff_ms: int = DOWNLOAD_BACKOFF_MS


@dataclass
class ToolConfig:
    timeout_seconds: float = TOOL_TIMEOUT_SECONDS
    kill_grace_seconds: float = TOOL_KILL_GRACE_SECONDS


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file: Path | None = None
    verbose: bool = False


@dataclass
class AppConfig:
    paths: PathsConfig = field(default_factory=PathsConfig)
    download: DownloadConfig = field(default_factory=DownloadConfig)
    tool: ToolConfig = field(default_factory=ToolConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_yaml(cls, path: Path) -> AppConfig:
        """Load configuration from YAML file."""
        if not path.exists():
            return cls()

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict) -> AppConfig:
        """Create config from dictionary, ignoring unknown sections and keys."""
        config = cls()

        for section_name in SECTIONS:
            section_data = data.get(section_name)
            if not isinstance(section_data, dict):
                continue
            section = getattr(config, section_name)
            for key, value in section_data.items():
                if not hasattr(section, key):
                    continue
                if key in PATH_KEYS and isinstance(value, str):
                    value = Path(value).expanduser()
                setattr(section, key, value)

        return config

    def to_dict(self) -> dict:
        """Convert config to dictionary."""
        result = {}
        for attr in SECTIONS:
            section = getattr(self, attr)
            result[attr] = {
                key: str(value) if isinstance(value, Path) else value for key, value in vars(section).items()
            }
        return result


def _get_default_config_dir() -> Path:
    """Get default config directory."""
    if config_dir := os.environ.get("FWF_CONFIG_DIR"):
        return Path(config_dir)

    if xdg_config := os.environ.get("XDG_CONFIG_HOME"):
        return Path(xdg_config) / "flash-workflow"

    return Path.home() / ".config" / "flash-workflow"


def find_config_file(config_dir: Path | None = None) -> Path | None:
    """Search standard locations for a config file."""
    if config_dir is None:
        config_dir = _get_default_config_dir()

    search_paths = [
        config_dir / "config.yaml",
        Path.cwd() / "fwf.yaml",
    ]
    for path in search_paths:
        if path.exists():
            return path
    return None


def load_config(config_path: Path | None = None, config_dir: Path | None = None) -> AppConfig:
    """
    Load configuration.

    Args:
        config_path: Path to config file (default: searches standard locations)
        config_dir: Config directory to search when config_path is not given

    Returns:
        AppConfig (defaults when no file is found)
    """
    if config_path is None:
        config_path = find_config_file(config_dir)

    return AppConfig.from_yaml(config_path) if config_path else AppConfig()
