"""Shared test fixtures for apibuilder.

Provides reusable fixtures for loading route spec fixtures, laying out an
isolated project tree, managing output state, and running the CLI. These
fixtures are automatically discovered by pytest and available to all test
modules without explicit imports.
"""

from __future__ import annotations

import json
import shutil
from pathlib import Path
from typing import Any

import pytest

from apibuilder.models import BuilderConfig, RouteSpec
from apibuilder.output import OutputManager, reset_output, set_output


FIXTURES_DIR = Path(__file__).parent / "fixtures"
SPECS_FIXTURES_DIR = FIXTURES_DIR / "specs"


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager's console keeps a reference to sys.stderr from the
    time it was created. When Typer's CliRunner swaps the stream out and
    the test finishes, that reference goes stale. Resetting forces a fresh
    manager on next use.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Route spec fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def roles_raw() -> dict[str, Any]:
    """Load the raw roles/v1 spec dict."""
    with open(SPECS_FIXTURES_DIR / "roles-v1.json") as f:
        return json.load(f)


@pytest.fixture
def roles_spec(roles_raw: dict[str, Any]) -> RouteSpec:
    """Parsed roles/v1 spec: a path lookup and a dynamic-filter lookup."""
    return RouteSpec.model_validate(roles_raw)


@pytest.fixture
def aggregator_text() -> str:
    """The sample aggregator file, with one hand-written route module."""
    return (FIXTURES_DIR / "index.ts").read_text(encoding="utf-8")


# ---------------------------------------------------------------------------
# Project isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Lay out a project tree in a temporary directory.

    Copies the fixture specs into ``api-builder/json`` and the sample
    aggregator to ``src/index.ts``, clears all APIBUILDER_* environment
    variables, and changes the working directory to tmp_path.

    Returns:
        The project root.
    """
    specs_dir = tmp_path / "api-builder" / "json"
    specs_dir.mkdir(parents=True)
    for spec in SPECS_FIXTURES_DIR.glob("*.json"):
        shutil.copy(spec, specs_dir / spec.name)

    (tmp_path / "src").mkdir()
    shutil.copy(FIXTURES_DIR / "index.ts", tmp_path / "src" / "index.ts")

    for var in [
        "APIBUILDER_SPECS_DIR",
        "APIBUILDER_OUTPUT_ROOT",
        "APIBUILDER_AGGREGATOR",
        "APIBUILDER_FAIL_FAST",
        "NO_COLOR",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def config(project: Path) -> BuilderConfig:
    """Default configuration rooted at the ``project`` fixture."""
    return BuilderConfig(root=project)


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Set up a quiet, colourless output manager.

    Warnings and errors still print; info and success do not.
    """
    output = OutputManager(no_color=True, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def plain_output() -> OutputManager:
    """Set up a colourless output manager for tests that inspect stderr text."""
    output = OutputManager(no_color=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner.

    Returns a CliRunner instance that captures stdout/stderr and
    provides a consistent interface for invoking Typer apps in tests.
    """
    from typer.testing import CliRunner

    return CliRunner()
