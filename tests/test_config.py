"""Tests for apibuilder.config -- atomic writes, project config, precedence."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from apibuilder.config import PROJECT_CONFIG_FILENAME, atomic_write, load_project_config, resolve_config
from apibuilder.exceptions import ConfigError
from apibuilder.models import BuilderConfig


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_json(path: Path, data: Any) -> None:
    """Write a dict as JSON to *path*, creating parent dirs."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


# ---------------------------------------------------------------------------
# Atomic writes
# ---------------------------------------------------------------------------


class TestAtomicWrite:
    def test_creates_file_and_parents(self, tmp_path: Path) -> None:
        target = tmp_path / "a" / "b" / "out.ts"
        atomic_write(target, "export {};\n")
        assert target.read_text(encoding="utf-8") == "export {};\n"

    def test_replaces_existing(self, tmp_path: Path) -> None:
        target = tmp_path / "out.ts"
        target.write_text("old", encoding="utf-8")
        atomic_write(target, "new")
        assert target.read_text(encoding="utf-8") == "new"

    def test_newlines_written_verbatim(self, tmp_path: Path) -> None:
        target = tmp_path / "out.ts"
        atomic_write(target, "a\r\nb\n")
        assert target.read_bytes() == b"a\r\nb\n"

    def test_no_temp_file_left_on_failure(self, tmp_path: Path) -> None:
        target = tmp_path / "out.ts"
        with patch("apibuilder.config.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(OSError, match="disk full"):
                atomic_write(target, "data")
        assert os.listdir(tmp_path) == []


# ---------------------------------------------------------------------------
# Project config file
# ---------------------------------------------------------------------------


class TestLoadProjectConfig:
    def test_missing_returns_none(self, tmp_path: Path) -> None:
        assert load_project_config(tmp_path) is None

    def test_loads_object(self, tmp_path: Path) -> None:
        _write_json(tmp_path / PROJECT_CONFIG_FILENAME, {"specs_dir": "specs"})
        assert load_project_config(tmp_path) == {"specs_dir": "specs"}

    def test_invalid_json(self, tmp_path: Path) -> None:
        (tmp_path / PROJECT_CONFIG_FILENAME).write_text("{", encoding="utf-8")
        with pytest.raises(ConfigError, match="Invalid project config"):
            load_project_config(tmp_path)

    def test_not_an_object(self, tmp_path: Path) -> None:
        _write_json(tmp_path / PROJECT_CONFIG_FILENAME, ["specs"])
        with pytest.raises(ConfigError, match="must be a JSON object"):
            load_project_config(tmp_path)


# ---------------------------------------------------------------------------
# Precedence
# ---------------------------------------------------------------------------


class TestResolveConfig:
    def test_defaults(self, project: Path) -> None:
        config = resolve_config()
        assert config.root == project.resolve()
        assert config.specs_dir == "api-builder/json"
        assert config.output_root == "src/builder"
        assert config.aggregator == "src/index.ts"
        assert config.fail_fast is True
        assert config.clean_match == "both"
        assert config.import_base == "./builder"

    def test_explicit_root(self, tmp_path: Path, project: Path) -> None:
        other = tmp_path / "other"
        other.mkdir()
        assert resolve_config(root=other).root == other.resolve()

    def test_project_file_over_defaults(self, project: Path) -> None:
        _write_json(project / PROJECT_CONFIG_FILENAME, {"specs_dir": "specs", "service_import": "~/find"})
        config = resolve_config()
        assert config.specs_dir == "specs"
        assert config.service_import == "~/find"

    def test_env_over_project_file(self, project: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        _write_json(project / PROJECT_CONFIG_FILENAME, {"specs_dir": "specs", "output_root": "gen"})
        monkeypatch.setenv("APIBUILDER_SPECS_DIR", "env-specs")
        config = resolve_config()
        assert config.specs_dir == "env-specs"
        assert config.output_root == "gen"

    def test_cli_over_env(self, project: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("APIBUILDER_AGGREGATOR", "src/env.ts")
        monkeypatch.setenv("APIBUILDER_FAIL_FAST", "true")
        config = resolve_config(aggregator="src/main.ts", fail_fast=False)
        assert config.aggregator == "src/main.ts"
        assert config.fail_fast is False

    @pytest.mark.parametrize(("raw", "expected"), [("0", False), ("no", False), ("YES", True), (" on ", True)])
    def test_fail_fast_env_values(self, project: Path, monkeypatch: pytest.MonkeyPatch, raw: str, expected: bool) -> None:
        monkeypatch.setenv("APIBUILDER_FAIL_FAST", raw)
        assert resolve_config().fail_fast is expected

    def test_bad_fail_fast_env(self, project: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("APIBUILDER_FAIL_FAST", "sometimes")
        with pytest.raises(ConfigError, match="APIBUILDER_FAIL_FAST"):
            resolve_config()

    def test_unknown_key_rejected(self, project: Path) -> None:
        _write_json(project / PROJECT_CONFIG_FILENAME, {"spec_dir": "typo"})
        with pytest.raises(ConfigError, match="Invalid configuration"):
            resolve_config()

    def test_bad_clean_match_rejected(self, project: Path) -> None:
        _write_json(project / PROJECT_CONFIG_FILENAME, {"clean_match": "everything"})
        with pytest.raises(ConfigError):
            resolve_config()

    def test_root_in_project_file_ignored(self, project: Path) -> None:
        _write_json(project / PROJECT_CONFIG_FILENAME, {"root": "/elsewhere"})
        assert resolve_config().root == project.resolve()


class TestDerivedPaths:
    def test_paths_relative_to_root(self, tmp_path: Path) -> None:
        config = BuilderConfig(root=tmp_path)
        assert config.specs_path == tmp_path / "api-builder" / "json"
        assert config.output_path == tmp_path / "src" / "builder"
        assert config.aggregator_path == tmp_path / "src" / "index.ts"

    @pytest.mark.parametrize(
        ("aggregator", "output_root", "expected"),
        [
            ("src/index.ts", "src/builder", "./builder"),
            ("index.ts", "src/builder", "./src/builder"),
            ("src/app/main.ts", "src/builder", "../builder"),
        ],
    )
    def test_import_base(self, tmp_path: Path, aggregator: str, output_root: str, expected: str) -> None:
        config = BuilderConfig(root=tmp_path, aggregator=aggregator, output_root=output_root)
        assert config.import_base == expected
