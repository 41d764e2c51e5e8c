"""Render Route Specs into TypeScript modules and keep their manifests.

Every ``(module, version)`` pair owns one directory under the output root::

    src/builder/roles/v1/
        roles-v1.routes.ts          # the generated Elysia router
        roles-v1.manifest.json      # what the builder wrote, for upsert/clean

The module body is built as IR by :mod:`apibuilder.emitter` and printed by
:class:`~apibuilder.emitter.printer.TypeScriptPrinter`; the Jinja2 template
``templates/routes.ts.j2`` only lays out the file skeleton (header, imports,
schema constants, router, default export).
"""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined
from pydantic import ValidationError

from apibuilder.config import atomic_write
from apibuilder.emitter import nodes as n
from apibuilder.emitter.handler import FIND_ONE, FIND_ONE_BY_ID, EmittedRoute, emit_route
from apibuilder.emitter.printer import TypeScriptPrinter
from apibuilder.exceptions import FileSystemError
from apibuilder.models import BuilderConfig, ModuleManifest, RouteSpec
from apibuilder.output import debug, warning

TEMPLATE_DIR = Path(__file__).parent / "templates"
MODULE_TEMPLATE = "routes.ts.j2"
MANIFEST_SUFFIX = "manifest.json"

_SERVICE_ORDER = (FIND_ONE_BY_ID, FIND_ONE)


def _create_jinja_env() -> Environment:
    """Create the Jinja2 environment for module templates.

    Autoescape is off since the output is TypeScript, not HTML.
    """
    return Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
        undefined=StrictUndefined,
    )


class ModuleWriter:
    """Writes generated modules and manifests below ``config.output_path``.

    Args:
        config: The effective run configuration.
    """

    def __init__(self, config: BuilderConfig) -> None:
        self.config = config
        self._printer = TypeScriptPrinter()
        self._env = _create_jinja_env()

    # ------------------------------------------------------------------ #
    # Naming
    # ------------------------------------------------------------------ #

    def module_dir(self, spec: RouteSpec) -> Path:
        return self.config.output_path / spec.module / spec.version

    def module_filename(self, spec: RouteSpec) -> str:
        return f"{spec.module}-{spec.version}.{self.config.module_suffix}"

    def module_path(self, spec: RouteSpec) -> Path:
        return self.module_dir(spec) / self.module_filename(spec)

    def manifest_path(self, spec: RouteSpec) -> Path:
        return self.module_dir(spec) / f"{spec.module}-{spec.version}.{MANIFEST_SUFFIX}"

    def import_path_for(self, spec: RouteSpec) -> str:
        """Import specifier of the module as written in the aggregator, without extension.

        Example: ``./builder/roles/v1/roles-v1.routes``.
        """
        stem = self.module_filename(spec)
        if stem.endswith(".ts"):
            stem = stem[: -len(".ts")]
        return f"{self.config.import_base}/{spec.module}/{spec.version}/{stem}"

    def build_manifest(self, spec: RouteSpec, source: Optional[Path] = None) -> ModuleManifest:
        return ModuleManifest(
            module=spec.module,
            version=spec.version,
            variable_name=spec.variable_name,
            import_path=self.import_path_for(spec),
            module_path=self._relative(self.module_path(spec)),
            source_spec=self._relative(source) if source is not None else None,
        )

    # ------------------------------------------------------------------ #
    # Rendering
    # ------------------------------------------------------------------ #

    def render_module(self, spec: RouteSpec, source: Optional[Path] = None) -> str:
        """Return the full TypeScript source of *spec*'s module.

        Raises:
            TemplateMismatchError: If a ``findOne`` route's query and
                conditions disagree.
        """
        emitted: list[EmittedRoute] = [
            emit_route(route, spec.module, index, self.config.not_null_sentinel)
            for index, route in enumerate(spec.routes, start=1)
        ]

        services: set[str] = set()
        for route in emitted:
            services |= route.services
        imports: list[n.Stmt] = []
        used = [name for name in _SERVICE_ORDER if name in services]
        if used:
            imports.append(n.Import(self.config.service_import, names=used))
        validates = any(route.validates for route in emitted)
        imports.append(n.Import("elysia", default="Elysia", names=["t"] if validates else []))

        router = n.Const(
            spec.variable_name,
            n.Chain(
                n.New(n.Ident("Elysia"), [n.Obj([n.Prop("prefix", n.Str(spec.prefix))], multiline=False)]),
                [route.call for route in emitted],
            ),
        )

        origin = self._relative(source) if source is not None else f"{spec.module}/{spec.version}"
        template = self._env.get_template(MODULE_TEMPLATE)
        return template.render(
            header=self._printer.statement(n.Comment(f"Generated by apibuilder from {origin}. Do not edit by hand."), 0),
            imports=[self._printer.statement(stmt, 0) for stmt in imports],
            schemas=[self._printer.statement(route.schema, 0) for route in emitted if route.schema is not None],
            router=self._printer.statement(router, 0),
            export=self._printer.statement(n.ExportDefault(n.Ident(spec.variable_name)), 0),
        )

    # ------------------------------------------------------------------ #
    # Filesystem
    # ------------------------------------------------------------------ #

    def write_module(self, spec: RouteSpec, source: Optional[Path] = None) -> ModuleManifest:
        """Render and write *spec*'s module and manifest, replacing earlier output.

        Returns:
            The manifest that was written.

        Raises:
            TemplateMismatchError: See :meth:`render_module`.
            FileSystemError: If the directory or files cannot be written.
        """
        content = self.render_module(spec, source)
        manifest = self.build_manifest(spec, source)

        directory = self.module_dir(spec)
        try:
            if not directory.is_dir():
                directory.mkdir(parents=True, exist_ok=True)
                debug(f"Created directory {self._relative(directory)}")
            atomic_write(self.module_path(spec), content)
            atomic_write(self.manifest_path(spec), manifest.model_dump_json(indent=2) + "\n")
        except OSError as exc:
            raise FileSystemError(f"Cannot write module for {spec.prefix}: {exc}", path=directory) from exc
        return manifest

    def read_manifests(self) -> list[ModuleManifest]:
        """Load every manifest below the output root, in path order.

        Unreadable or invalid manifests are skipped with a warning.
        """
        root = self.config.output_path
        if not root.is_dir():
            return []
        manifests: list[ModuleManifest] = []
        for path in sorted(root.rglob(f"*.{MANIFEST_SUFFIX}")):
            try:
                manifests.append(ModuleManifest.model_validate_json(path.read_text(encoding="utf-8")))
            except (OSError, ValidationError) as exc:
                warning(f"Ignoring unreadable manifest {self._relative(path)}: {exc}")
        return manifests

    def remove_output_tree(self) -> list[Path]:
        """Delete everything below the output root; the root itself is kept.

        Returns:
            The removed top-level entries.

        Raises:
            FileSystemError: If an entry cannot be removed.
        """
        root = self.config.output_path
        if not root.is_dir():
            return []
        removed: list[Path] = []
        for entry in sorted(root.iterdir()):
            try:
                if entry.is_dir() and not entry.is_symlink():
                    shutil.rmtree(entry)
                else:
                    entry.unlink()
            except OSError as exc:
                raise FileSystemError(f"Cannot remove {entry}: {exc}", path=entry) from exc
            removed.append(entry)
        return removed

    def _relative(self, path: Path) -> str:
        try:
            return path.resolve().relative_to(self.config.root.resolve()).as_posix()
        except ValueError:
            return path.as_posix()
