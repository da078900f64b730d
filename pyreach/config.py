"""Configuration system for PyReach.
Supports TOML configuration files with project-level and user-level settings.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pyreach.core.exceptions import ConfigError

CONFIG_FILES = [
    "pyreach.toml",
    ".pyreach.toml",
    "pyproject.toml",
]

# A 64-bit enumeration counter minus headroom for sign and overflow.
EXECUTOR_PARAM_LIMIT = 62

VECTOR_ENCODINGS = ("reference", "padded")
OUTPUT_FORMATS = ("text", "json")


@dataclass
class AnalysisConfig:
    """Configuration for static analysis and strategy selection."""

    literal_cap: int = 10
    max_param_count: int = 50
    static_threshold: int = 20
    entry_point: str = "evaluate"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "literal_cap": self.literal_cap,
            "max_param_count": self.max_param_count,
            "static_threshold": self.static_threshold,
            "entry_point": self.entry_point,
        }


@dataclass
class ExecutorConfig:
    """Configuration for exhaustive execution."""

    max_workers: int = field(default_factory=lambda: os.cpu_count() or 1)
    max_params: int = EXECUTOR_PARAM_LIMIT
    vector_encoding: str = "reference"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "max_workers": self.max_workers,
            "max_params": self.max_params,
            "vector_encoding": self.vector_encoding,
        }


@dataclass
class OutputConfig:
    """Configuration for output and reporting."""

    format: str = "text"
    color: bool = True
    verbose: bool = False
    quiet: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "format": self.format,
            "color": self.color,
            "verbose": self.verbose,
            "quiet": self.quiet,
        }


@dataclass
class SolverConfig:
    """Settings a single solve depends on."""

    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    executor: ExecutorConfig = field(default_factory=ExecutorConfig)

    def validate(self) -> None:
        """Reject values the solver cannot honor."""
        if self.analysis.literal_cap < 1:
            raise ConfigError("analysis.literal_cap must be at least 1")
        if self.analysis.max_param_count < 0:
            raise ConfigError("analysis.max_param_count must not be negative")
        if self.executor.max_workers < 1:
            raise ConfigError("executor.max_workers must be at least 1")
        if not 0 <= self.executor.max_params <= EXECUTOR_PARAM_LIMIT:
            raise ConfigError(f"executor.max_params must be within 0..{EXECUTOR_PARAM_LIMIT}")
        if self.executor.vector_encoding not in VECTOR_ENCODINGS:
            raise ConfigError(
                f"executor.vector_encoding must be one of {', '.join(VECTOR_ENCODINGS)}"
            )


@dataclass
class PyReachConfig:
    """Main configuration for PyReach."""

    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    executor: ExecutorConfig = field(default_factory=ExecutorConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    project_root: Path | None = None
    config_file: Path | None = None

    @property
    def solver(self) -> SolverConfig:
        return SolverConfig(analysis=self.analysis, executor=self.executor)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "analysis": self.analysis.to_dict(),
            "executor": self.executor.to_dict(),
            "output": self.output.to_dict(),
        }

    def to_toml(self) -> str:
        """Generate TOML configuration string."""
        lines = ["[tool.pyreach]", ""]
        for section, values in self.to_dict().items():
            lines.append(f"[tool.pyreach.{section}]")
            for key, value in values.items():
                if isinstance(value, bool):
                    lines.append(f"{key} = {str(value).lower()}")
                elif isinstance(value, str):
                    lines.append(f'{key} = "{value}"')
                else:
                    lines.append(f"{key} = {value}")
            lines.append("")
        return "\n".join(lines).rstrip() + "\n"


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Find configuration file by walking up directory tree."""
    if start_dir is None:
        start_dir = Path.cwd()
    current = start_dir.resolve()
    while current != current.parent:
        for config_name in CONFIG_FILES:
            config_path = current / config_name
            if config_path.exists():
                return config_path
        current = current.parent
    home = Path.home()
    for config_name in [".pyreach.toml", "pyreach.toml"]:
        config_path = home / config_name
        if config_path.exists():
            return config_path
    return None


def load_config(
    config_path: Path | None = None,
    start_dir: Path | None = None,
) -> PyReachConfig:
    """Load configuration from file or use defaults.
    Args:
        config_path: Explicit path to config file
        start_dir: Directory to start searching for config
    Returns:
        Loaded configuration
    Raises:
        ConfigError: The file is not valid TOML or holds invalid values
    """
    config = PyReachConfig()
    if config_path is None:
        config_path = find_config_file(start_dir)
    if config_path is None or not config_path.exists():
        return config
    config.config_file = config_path
    config.project_root = config_path.parent
    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"failed to parse config file {config_path}: {e}") from e
    if config_path.name == "pyproject.toml":
        reach_data = data.get("tool", {}).get("pyreach", {})
    else:
        reach_data = data.get("tool", {}).get("pyreach", data)
    _apply_config(config, reach_data)
    config.solver.validate()
    if config.output.format not in OUTPUT_FORMATS:
        raise ConfigError(f"output.format must be one of {', '.join(OUTPUT_FORMATS)}")
    return config


def _apply_section(target: Any, data: dict[str, Any], types: dict[str, type]) -> None:
    for key, expected in types.items():
        if key not in data:
            continue
        value = data[key]
        if (expected is int and isinstance(value, bool)) or not isinstance(value, expected):
            raise ConfigError(f"'{key}' must be of type {expected.__name__}")
        setattr(target, key, value)


def _apply_config(config: PyReachConfig, data: dict[str, Any]) -> None:
    """Apply configuration data to config object."""
    if "analysis" in data:
        _apply_section(
            config.analysis,
            data["analysis"],
            {
                "literal_cap": int,
                "max_param_count": int,
                "static_threshold": int,
                "entry_point": str,
            },
        )
    if "executor" in data:
        _apply_section(
            config.executor,
            data["executor"],
            {"max_workers": int, "max_params": int, "vector_encoding": str},
        )
    if "output" in data:
        _apply_section(
            config.output,
            data["output"],
            {"format": str, "color": bool, "verbose": bool, "quiet": bool},
        )


def generate_default_config() -> str:
    """Generate default configuration file content."""
    config = PyReachConfig()
    return config.to_toml()


def init_config(directory: Path | None = None) -> Path:
    """Initialize a new configuration file in the given directory.
    Args:
        directory: Directory to create config in (default: current)
    Returns:
        Path to created config file
    """
    if directory is None:
        directory = Path.cwd()
    config_path = directory / "pyreach.toml"
    if config_path.exists():
        raise FileExistsError(f"Config file already exists: {config_path}")
    content = generate_default_config()
    config_path.write_text(content, encoding="utf-8")
    return config_path


__all__ = [
    "PyReachConfig",
    "SolverConfig",
    "AnalysisConfig",
    "ExecutorConfig",
    "OutputConfig",
    "EXECUTOR_PARAM_LIMIT",
    "load_config",
    "find_config_file",
    "generate_default_config",
    "init_config",
]
