"""Tests for configuration loading."""

from __future__ import annotations

import tomllib

import pytest

from pyreach.config import (
    PyReachConfig,
    find_config_file,
    generate_default_config,
    init_config,
    load_config,
)
from pyreach.core.exceptions import ConfigError


def write_config(path, text):
    path.write_text(text, encoding="utf-8")
    return path


class TestLoadConfig:
    def test_defaults_without_file(self, tmp_path):
        config = load_config(tmp_path / "absent.toml")
        assert config.config_file is None
        assert config.analysis.literal_cap == 10
        assert config.analysis.static_threshold == 20
        assert config.executor.vector_encoding == "reference"

    def test_standalone_file(self, tmp_path):
        path = write_config(
            tmp_path / "pyreach.toml",
            "[analysis]\nstatic_threshold = 8\nentry_point = \"decide\"\n"
            "[executor]\nvector_encoding = \"padded\"\n",
        )
        config = load_config(path)
        assert config.config_file == path
        assert config.project_root == tmp_path
        assert config.analysis.static_threshold == 8
        assert config.analysis.entry_point == "decide"
        assert config.executor.vector_encoding == "padded"

    def test_pyproject_section(self, tmp_path):
        path = write_config(
            tmp_path / "pyproject.toml",
            "[project]\nname = \"rules\"\n\n[tool.pyreach.executor]\nmax_workers = 3\n",
        )
        assert load_config(path).executor.max_workers == 3

    def test_pyproject_without_section_uses_defaults(self, tmp_path):
        path = write_config(tmp_path / "pyproject.toml", "[project]\nname = \"rules\"\n")
        assert load_config(path).to_dict() == PyReachConfig().to_dict()

    @pytest.mark.parametrize(
        "text, message",
        [
            ("[analysis]\nliteral_cap = \"ten\"\n", "'literal_cap' must be of type int"),
            ("[executor]\nmax_workers = true\n", "'max_workers' must be of type int"),
            ("[analysis]\nliteral_cap = 0\n", "literal_cap must be at least 1"),
            ("[executor]\nmax_params = 63\n", "max_params must be within 0..62"),
            ("[executor]\nvector_encoding = \"gray\"\n", "vector_encoding must be one of"),
            ("[output]\nformat = \"xml\"\n", "output.format must be one of"),
            ("[analysis\n", "failed to parse config file"),
        ],
    )
    def test_invalid_values(self, tmp_path, text, message):
        path = write_config(tmp_path / "pyreach.toml", text)
        with pytest.raises(ConfigError, match=message):
            load_config(path)

    def test_solver_view_shares_sections(self):
        config = PyReachConfig()
        solver = config.solver
        assert solver.analysis is config.analysis
        assert solver.executor is config.executor


class TestDiscovery:
    def test_finds_file_in_parent(self, tmp_path):
        path = write_config(tmp_path / "pyreach.toml", "")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        assert find_config_file(nested) == path

    def test_prefers_dedicated_file_over_pyproject(self, tmp_path):
        write_config(tmp_path / "pyproject.toml", "")
        path = write_config(tmp_path / "pyreach.toml", "")
        assert find_config_file(tmp_path) == path


class TestGeneration:
    def test_default_config_round_trips(self, tmp_path):
        data = tomllib.loads(generate_default_config())
        assert data["tool"]["pyreach"]["analysis"]["literal_cap"] == 10
        path = write_config(tmp_path / "pyreach.toml", generate_default_config())
        assert load_config(path).to_dict() == PyReachConfig().to_dict()

    def test_init_config(self, tmp_path):
        path = init_config(tmp_path)
        assert path == tmp_path / "pyreach.toml"
        assert "[tool.pyreach.executor]" in path.read_text(encoding="utf-8")
        with pytest.raises(FileExistsError):
            init_config(tmp_path)
