"""Configuration loading, precedence resolution, and atomic writes.

This module turns the scattered sources of settings into one
:class:`~apibuilder.models.BuilderConfig`:

* **Project config** -- ``<root>/apibuilder.json``, a JSON object whose keys
  are :class:`~apibuilder.models.BuilderConfig` field names. See
  :func:`load_project_config`.
* **Environment variables** -- ``APIBUILDER_SPECS_DIR``,
  ``APIBUILDER_OUTPUT_ROOT``, ``APIBUILDER_AGGREGATOR`` and
  ``APIBUILDER_FAIL_FAST``.
* **CLI flags** -- passed to :func:`resolve_config` by :mod:`apibuilder.app`.

It also provides :func:`atomic_write`, used for every file the builder
writes, so a crash never leaves a half-written module or aggregator file.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from apibuilder.exceptions import ConfigError
from apibuilder.models import BuilderConfig

PROJECT_CONFIG_FILENAME = "apibuilder.json"

_ENV_FIELDS: dict[str, str] = {
    "APIBUILDER_SPECS_DIR": "specs_dir",
    "APIBUILDER_OUTPUT_ROOT": "output_root",
    "APIBUILDER_AGGREGATOR": "aggregator",
}
_ENV_FAIL_FAST = "APIBUILDER_FAIL_FAST"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


# --- Atomic file writes ---


def atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. On any failure the
    temp file is removed and the original exception propagates.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
            newline="",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close below
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Project-local config ---


def load_project_config(root: Path) -> Optional[dict[str, Any]]:
    """Load ``<root>/apibuilder.json``.

    Returns:
        The parsed JSON object, or ``None`` if the file does not exist.

    Raises:
        ConfigError: If the file cannot be read, is not valid JSON, or is
            not a JSON object.
    """
    path = root / PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Invalid project config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Project config at {path} must be a JSON object")
    return data


def _env_overrides() -> dict[str, Any]:
    """Collect overrides from ``APIBUILDER_*`` environment variables."""
    overrides: dict[str, Any] = {}
    for var, field_name in _ENV_FIELDS.items():
        value = os.environ.get(var)
        if value:
            overrides[field_name] = value

    raw = os.environ.get(_ENV_FAIL_FAST)
    if raw:
        lowered = raw.strip().lower()
        if lowered in _TRUE_VALUES:
            overrides["fail_fast"] = True
        elif lowered in _FALSE_VALUES:
            overrides["fail_fast"] = False
        else:
            raise ConfigError(f"{_ENV_FAIL_FAST} must be a boolean, got {raw!r}")
    return overrides


# --- Precedence resolution ---


def resolve_config(
    root: Optional[Path] = None,
    specs_dir: Optional[str] = None,
    output_root: Optional[str] = None,
    aggregator: Optional[str] = None,
    fail_fast: Optional[bool] = None,
) -> BuilderConfig:
    """Resolve the effective configuration.

    Precedence (high to low):
        1. CLI flags (the keyword arguments)
        2. Environment variables (``APIBUILDER_*``)
        3. Project config (``<root>/apibuilder.json``)
        4. Defaults

    Args:
        root: Project root; defaults to the current directory.

    Returns:
        The validated :class:`~apibuilder.models.BuilderConfig`.

    Raises:
        ConfigError: If any source holds an invalid value.
    """
    project_root = (root or Path.cwd()).resolve()

    values: dict[str, Any] = {}
    project = load_project_config(project_root)
    if project is not None:
        values.update(project)
    values.update(_env_overrides())

    cli = {
        "specs_dir": specs_dir,
        "output_root": output_root,
        "aggregator": aggregator,
        "fail_fast": fail_fast,
    }
    values.update({key: value for key, value in cli.items() if value is not None})
    values["root"] = project_root

    try:
        return BuilderConfig.model_validate(values)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
