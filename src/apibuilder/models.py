"""Canonical Pydantic models shared across all apibuilder modules.

This is the single source of truth for data shapes in the project. Every other
module imports from here rather than defining its own models. The models fall
into three groups:

**Route spec models** -- the declarative input documents, deserialised by
:func:`~apibuilder.parser.loader.load_route_spec`:
    :class:`FieldType`, :class:`FieldSpec`, :class:`ConditionRule`,
    :class:`OpenAPIDetail`, :class:`HandlerSpec`, :class:`ResponseSpec`,
    :class:`RouteDefinition`, and :class:`RouteSpec`.

**Aggregator models** -- derived state recomputed every time the aggregator
file is parsed, plus the manifest persisted next to each generated module:
    :class:`ImportRecord`, :class:`UseRecord`, :class:`AggregatorInfo`, and
    :class:`ModuleManifest`.

**Run models** -- configuration and workflow results:
    :class:`BuilderConfig`, :class:`SpecFailure`, :class:`BatchResult`, and
    :class:`CleanResult`.

Route spec documents use camelCase keys (``requestType``, ``minLength``);
the models expose snake_case attributes and accept either spelling.
"""

from __future__ import annotations

import enum
import os
from pathlib import Path, PurePosixPath
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Route Spec ---

MODULE_PATTERN = r"^[a-z][a-z0-9_]*$"
VERSION_PATTERN = r"^[A-Za-z_][A-Za-z0-9_]*$"


class FieldType(str, enum.Enum):
    """Payload field types understood by the schema emitter.

    Any other ``type`` string in a spec is kept as-is on :class:`FieldSpec`
    and rendered as :attr:`STRING`.
    """

    STRING = "String"
    NUMBER = "Number"
    BOOLEAN = "Boolean"
    ARRAY = "Array"
    OBJECT = "Object"


class FieldSpec(BaseModel):
    """One payload field's type and validation constraints.

    Example::

        FieldSpec(type="String", optional=True, maxLength=50)
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    type: str = Field(default=FieldType.STRING.value, description="String, Number, Boolean, Array, Object")
    optional: bool = False
    format: Optional[str] = None
    description: Optional[str] = None
    minimum: Optional[int | float] = None
    maximum: Optional[int | float] = None
    min_length: Optional[int] = Field(default=None, alias="minLength")
    max_length: Optional[int] = Field(default=None, alias="maxLength")
    items: Optional[str] = Field(
        default=None, description="Verbatim item schema source for Array fields, e.g. 't.String()'"
    )

    @property
    def field_type(self) -> FieldType:
        """The recognised field type, degrading unknown values to String."""
        try:
            return FieldType(self.type)
        except ValueError:
            return FieldType.STRING


class ConditionRule(BaseModel):
    """A declarative operator applied to one payload field to build a WHERE fragment."""

    operator: str = "="
    type: Optional[str] = Field(default=None, description="Informational only")


class OpenAPIDetail(BaseModel):
    """OpenAPI metadata copied verbatim into each handler's ``detail`` block."""

    summary: str = ""
    description: str = ""
    tags: list[str] = Field(default_factory=list)


class HandlerSpec(BaseModel):
    """How a route's handler looks up its record."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    request_type: Optional[str] = Field(default=None, alias="requestType")
    query: str = ""
    conditions: Optional[dict[str, ConditionRule]] = None
    is_generated: Optional[bool] = Field(default=None, alias="isGenerated")


class ResponseSpec(BaseModel):
    """Response field mapping. Carried through but not emitted."""

    mapping: dict[str, str] = Field(default_factory=dict)


class RouteDefinition(BaseModel):
    """A single route inside a :class:`RouteSpec`."""

    model_config = ConfigDict(extra="allow")

    path: str
    method: str = "GET"
    name: Optional[str] = Field(
        default=None, description="Prefix for the route's payload schema constant"
    )
    openapi: OpenAPIDetail = Field(default_factory=OpenAPIDetail)
    payload: Optional[dict[str, FieldSpec]] = None
    handler: HandlerSpec = Field(default_factory=HandlerSpec)
    response: ResponseSpec = Field(default_factory=ResponseSpec)

    @property
    def is_dynamic(self) -> bool:
        """Whether the route builds its WHERE clause from the request body."""
        return self.handler.request_type == "findOne"


class RouteSpec(BaseModel):
    """A Route Spec document: one module/version and its ordered routes.

    The ``(module, version)`` pair determines one output module and one
    aggregator variable name. Both are identifiers, so the variable name is
    one too and the aggregator patterns can find it again.
    """

    module: str = Field(pattern=MODULE_PATTERN, description="Lowercase identifier, e.g. roles")
    version: str = Field(pattern=VERSION_PATTERN, description="Identifier, e.g. v1")
    routes: list[RouteDefinition]

    @property
    def variable_name(self) -> str:
        """The router variable exported by the generated module, e.g. ``rolesV1Routes``."""
        return route_variable_name(self.module, self.version)

    @property
    def prefix(self) -> str:
        """The router's URL prefix, e.g. ``/roles/v1``."""
        return f"/{self.module}/{self.version}"


def route_variable_name(module: str, version: str) -> str:
    """Return ``{module}{Version}Routes`` (only the version's first letter is capitalised)."""
    return f"{module}{version[:1].upper()}{version[1:]}Routes"


# --- Aggregator ---


class ImportRecord(BaseModel):
    """One ``import x from "...routes"`` line of the aggregator file."""

    variable_name: str
    import_path: str
    line_number: int = Field(description="1-based")


class UseRecord(BaseModel):
    """One ``.use(x)`` registration call of the aggregator file."""

    variable_name: str
    line_number: int = Field(description="1-based")


class AggregatorInfo(BaseModel):
    """Parsed view of the aggregator file text.

    ``last_import_line`` and ``last_use_line`` are 1-based and ``0`` when no
    line of that kind was recognised.
    """

    content: str
    imports: list[ImportRecord] = Field(default_factory=list)
    uses: list[UseRecord] = Field(default_factory=list)
    last_import_line: int = 0
    last_use_line: int = 0

    def has_import(self, variable_name: str) -> bool:
        return any(imp.variable_name == variable_name for imp in self.imports)

    def has_use(self, variable_name: str) -> bool:
        return any(use.variable_name == variable_name for use in self.uses)


class ModuleManifest(BaseModel):
    """What the builder generated for one ``(module, version)`` pair.

    Written as ``{module}-{version}.manifest.json`` next to the generated
    module. Upsert takes its variable name and import path from here, and
    clean reads every manifest to know which aggregator lines it owns.
    """

    module: str
    version: str
    variable_name: str
    import_path: str
    module_path: str = Field(description="Generated module path, relative to the project root")
    source_spec: Optional[str] = None

    def import_statement(self) -> str:
        return f'import {self.variable_name} from "{self.import_path}";'

    def use_statement(self) -> str:
        return f"  .use({self.variable_name})"


# --- Run configuration and results ---


class BuilderConfig(BaseModel):
    """Effective configuration of one apibuilder run.

    Relative paths resolve against :attr:`root`. Built by
    :func:`~apibuilder.config.resolve_config` from CLI flags, environment
    variables, the project config file and these defaults.
    """

    model_config = ConfigDict(extra="forbid")

    root: Path = Field(default_factory=Path.cwd)
    specs_dir: str = Field(default="api-builder/json", description="Directory scanned for route specs")
    spec_extensions: list[str] = Field(default_factory=lambda: [".json"])
    output_root: str = Field(default="src/builder", description="Root of the generated module tree")
    aggregator: str = Field(default="src/index.ts", description="File wiring every route module")
    module_suffix: str = Field(default="routes.ts")
    service_import: str = Field(
        default="@/core/services/find.service",
        description="Module exporting findOneById and findOne",
    )
    not_null_sentinel: str = Field(
        default="NOT_NULL", description="Payload value requesting an IS NOT NULL condition"
    )
    fail_fast: bool = Field(default=True, description="Abort the batch on the first failing spec")
    clean_match: Literal["manifest", "prefix", "both"] = "both"

    @property
    def specs_path(self) -> Path:
        return self.root / self.specs_dir

    @property
    def output_path(self) -> Path:
        return self.root / self.output_root

    @property
    def aggregator_path(self) -> Path:
        return self.root / self.aggregator

    @property
    def import_base(self) -> str:
        """Import specifier of :attr:`output_root` as seen from the aggregator, e.g. ``./builder``."""
        relative = os.path.relpath(self.output_path, self.aggregator_path.parent)
        posix = PurePosixPath(*Path(relative).parts).as_posix()
        if posix.startswith("."):
            return posix
        return f"./{posix}"


class SpecFailure(BaseModel):
    """A spec that failed during a best-effort ``generate`` run."""

    spec_path: Path
    message: str


class BatchResult(BaseModel):
    """Outcome of a ``generate`` run."""

    processed: list[Path] = Field(default_factory=list)
    written: list[Path] = Field(default_factory=list)
    failures: list[SpecFailure] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


class CleanResult(BaseModel):
    """Outcome of a ``clean`` run."""

    removed_paths: list[Path] = Field(default_factory=list)
    removed_imports: int = 0
    removed_uses: int = 0
    manifests: list[ModuleManifest] = Field(default_factory=list)

