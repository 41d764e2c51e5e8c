"""Load route specification documents from the specs directory.

A route spec is a JSON object (or, when ``.yaml``/``.yml`` is among the
configured extensions, a YAML mapping) with ``module``, ``version`` and
``routes`` keys. Loading checks structure only: the document must parse,
be an object, carry the three required keys, and fit the
:class:`~apibuilder.models.RouteSpec` shape. Semantic checks -- condition
fields declared in the payload, placeholder counts -- belong to the
emitters.

The public functions are:

* :func:`list_spec_files` -- The documents to process, in listing order.
* :func:`load_route_spec` -- Read and parse one document.
* :func:`parse_route_spec` -- Validate an already-decoded document.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable

import yaml
from pydantic import ValidationError

from apibuilder.exceptions import FileSystemError, SpecParseError
from apibuilder.models import RouteSpec

REQUIRED_KEYS = ("module", "version", "routes")

_YAML_SUFFIXES = (".yaml", ".yml")


def list_spec_files(specs_dir: Path, extensions: Iterable[str]) -> list[Path]:
    """Return the spec documents in *specs_dir*, sorted by file name.

    Files whose suffix is not in *extensions* are ignored, as are
    sub-directories. A missing directory yields an empty list.

    Raises:
        FileSystemError: If the directory exists but cannot be listed.
    """
    if not specs_dir.is_dir():
        return []
    suffixes = {ext.lower() for ext in extensions}
    try:
        entries = sorted(specs_dir.iterdir(), key=lambda p: p.name)
    except OSError as exc:
        raise FileSystemError(f"Cannot list specs directory {specs_dir}: {exc}", specs_dir) from exc
    return [p for p in entries if p.is_file() and p.suffix.lower() in suffixes]


def load_route_spec(path: Path) -> RouteSpec:
    """Read and structurally validate one route spec document.

    Args:
        path: A ``.json`` file, or a ``.yaml``/``.yml`` file.

    Returns:
        The parsed :class:`~apibuilder.models.RouteSpec`.

    Raises:
        FileSystemError: If the file cannot be read.
        SpecParseError: If the content is not valid JSON/YAML, is not an
            object, or misses ``module``, ``version`` or ``routes``.
    """
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise FileSystemError(f"Failed to read spec file {path}: {exc}", path) from exc

    if not content.strip():
        raise SpecParseError(f"Spec file is empty: {path}")

    if path.suffix.lower() in _YAML_SUFFIXES:
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as exc:
            raise SpecParseError(f"Invalid YAML in {path}: {exc}") from exc
    else:
        try:
            data = json.loads(content)
        except json.JSONDecodeError as exc:
            raise SpecParseError(f"Invalid JSON in {path}: {exc}") from exc

    return parse_route_spec(data, source=str(path))


def parse_route_spec(data: Any, source: str = "<spec>") -> RouteSpec:
    """Validate a decoded document and build a :class:`~apibuilder.models.RouteSpec`.

    Raises:
        SpecParseError: If *data* is not an object, misses a required key,
            or does not fit the route spec shape.
    """
    if not isinstance(data, dict):
        raise SpecParseError(f"Spec must be an object (got {type(data).__name__}): {source}")

    missing = [key for key in REQUIRED_KEYS if key not in data]
    if missing:
        raise SpecParseError(f"Spec {source} is missing required key(s): {', '.join(missing)}")

    try:
        return RouteSpec.model_validate(data)
    except ValidationError as exc:
        raise SpecParseError(f"Spec {source} has an invalid structure: {exc}") from exc
