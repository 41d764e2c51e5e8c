"""Keep the aggregator file's route imports and ``.use()`` registrations in sync.

The aggregator (``src/index.ts`` by default) is hand-maintained; the builder
only ever touches two kinds of lines in it::

    import rolesV1Routes from "./builder/roles/v1/roles-v1.routes";
    ...
      .use(rolesV1Routes)

:func:`parse_aggregator` recognises those lines, :func:`apply_upsert` adds
the pair for one module when missing, and :func:`apply_reverse` removes the
pairs of generated modules. The three are pure text functions;
:class:`IndexPatcher` wraps them with file I/O.

Line numbers in :class:`~apibuilder.models.AggregatorInfo` are 1-based and
only valid for the text they were parsed from. Removal therefore runs in
two phases: imports are deleted bottom-up, the text is parsed again, and
only then are the registrations deleted bottom-up.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Callable, Iterable

from apibuilder.config import atomic_write
from apibuilder.exceptions import AggregatorNotFoundError, FileSystemError
from apibuilder.models import (
    AggregatorInfo,
    BuilderConfig,
    ImportRecord,
    ModuleManifest,
    UseRecord,
)
from apibuilder.output import debug, info, warning

_IMPORT_RE = re.compile(r"""^import\s+(\w+)\s+from\s+["'](.+routes)["'];?$""")
_USE_RE = re.compile(r"\.use\((\w+)\)")

ROUTES_MARKER = "Routes"

ImportMatcher = Callable[[ImportRecord], bool]


def parse_aggregator(text: str) -> AggregatorInfo:
    """Scan *text* for route imports and ``.use(x)`` registrations."""
    imports: list[ImportRecord] = []
    uses: list[UseRecord] = []
    for number, raw in enumerate(text.split("\n"), start=1):
        line = raw.strip()
        match = _IMPORT_RE.match(line)
        if match:
            imports.append(ImportRecord(variable_name=match.group(1), import_path=match.group(2), line_number=number))
            continue
        match = _USE_RE.search(line)
        if match:
            uses.append(UseRecord(variable_name=match.group(1), line_number=number))
    return AggregatorInfo(
        content=text,
        imports=imports,
        uses=uses,
        last_import_line=imports[-1].line_number if imports else 0,
        last_use_line=uses[-1].line_number if uses else 0,
    )


def _line_ending(text: str) -> str:
    return "\r" if "\r\n" in text else ""


def apply_upsert(text: str, manifest: ModuleManifest) -> tuple[str, bool, bool]:
    """Add *manifest*'s import and registration to *text* where missing.

    The import goes right after the last recognised route import (or at the
    top of the file). The registration goes right after the last line that
    holds a ``.use(`` call on a ``...Routes`` variable; when that line ends
    the chain, its ``;`` moves to the new line.

    Returns:
        ``(new_text, import_added, use_added)``. Running it again on
        ``new_text`` changes nothing.
    """
    parsed = parse_aggregator(text)
    variable = manifest.variable_name
    need_import = not parsed.has_import(variable)
    need_use = not parsed.has_use(variable)
    if not need_import and not need_use:
        return text, False, False

    cr = _line_ending(text)
    lines = text.split("\n")

    if need_import:
        lines.insert(parsed.last_import_line, manifest.import_statement() + cr)

    use_added = False
    if need_use:
        anchor = _registration_anchor(lines)
        if anchor is None:
            warning(f"No '.use(...{ROUTES_MARKER})' line to anchor {variable}; register it by hand")
        else:
            statement = manifest.use_statement()
            line = lines[anchor]
            code = line.rstrip()
            if code.endswith(";"):
                lines[anchor] = code[:-1] + line[len(code):]
                statement += ";"
            lines.insert(anchor + 1, statement + cr)
            use_added = True

    return "\n".join(lines), need_import, use_added


def _registration_anchor(lines: list[str]) -> int | None:
    """0-based index of the last ``.use(`` line naming a ``Routes`` variable."""
    for index in range(len(lines) - 1, -1, -1):
        if ".use(" in lines[index] and ROUTES_MARKER in lines[index]:
            return index
    return None


def _is_chain_link(code: str) -> bool:
    """Whether *code* continues a fluent chain, e.g. ``  .use(authRoutes)``."""
    return code.lstrip().startswith(".")


def apply_reverse(text: str, is_generated: ImportMatcher) -> tuple[str, list[ImportRecord], list[UseRecord]]:
    """Remove every import accepted by *is_generated* and the registrations of its variables.

    Returns:
        ``(new_text, removed_imports, removed_uses)``.
    """
    parsed = parse_aggregator(text)
    targets = [record for record in parsed.imports if is_generated(record)]
    if not targets:
        return text, [], []
    names = {record.variable_name for record in targets}

    lines = text.split("\n")
    for record in sorted(targets, key=lambda r: r.line_number, reverse=True):
        del lines[record.line_number - 1]

    text = "\n".join(lines)
    reparsed = parse_aggregator(text)
    uses = [record for record in reparsed.uses if record.variable_name in names]
    for record in sorted(uses, key=lambda r: r.line_number, reverse=True):
        index = record.line_number - 1
        removed = lines.pop(index).rstrip("\r").rstrip()
        if removed.endswith(";") and index > 0:
            previous = lines[index - 1]
            code = previous.rstrip()
            if _is_chain_link(code) and not code.endswith(";"):
                lines[index - 1] = code + ";" + previous[len(code):]

    return "\n".join(lines), targets, uses


def prefix_matcher(config: BuilderConfig) -> ImportMatcher:
    """Match imports that point into the output root.

    An import counts when its path starts with the derived import base
    (``./builder/``) or contains ``/<output root name>/``.
    """
    base = config.import_base.rstrip("/") + "/"
    marker = f"/{Path(config.output_root).name}/"

    def matches(record: ImportRecord) -> bool:
        return record.import_path.startswith(base) or marker in record.import_path

    return matches


def manifest_matcher(manifests: Iterable[ModuleManifest]) -> ImportMatcher:
    """Match imports whose variable a manifest records."""
    names = {manifest.variable_name for manifest in manifests}

    def matches(record: ImportRecord) -> bool:
        return record.variable_name in names

    return matches


class IndexPatcher:
    """File-level upsert and reverse patching of the aggregator file.

    Args:
        config: The effective run configuration.
    """

    def __init__(self, config: BuilderConfig) -> None:
        self.config = config
        self.path = config.aggregator_path

    def read(self) -> str:
        """Return the aggregator text with its original line endings.

        Raises:
            AggregatorNotFoundError: If the file does not exist.
            FileSystemError: If it cannot be read.
        """
        if not self.path.is_file():
            raise AggregatorNotFoundError(f"Aggregator file not found: {self.config.aggregator}")
        try:
            with self.path.open(encoding="utf-8", newline="") as fh:
                return fh.read()
        except OSError as exc:
            raise FileSystemError(f"Cannot read {self.path}: {exc}", path=self.path) from exc

    def write(self, text: str) -> None:
        try:
            atomic_write(self.path, text)
        except OSError as exc:
            raise FileSystemError(f"Cannot write {self.path}: {exc}", path=self.path) from exc

    def upsert(self, manifest: ModuleManifest) -> bool:
        """Wire *manifest*'s module into the aggregator.

        Returns:
            True if the file changed.
        """
        original = self.read()
        updated, import_added, use_added = apply_upsert(original, manifest)
        if updated == original:
            debug(f"{manifest.variable_name} already wired in {self.config.aggregator}")
            return False
        self.write(updated)
        if import_added:
            info(f"Added import {manifest.variable_name} to {self.config.aggregator}")
        if use_added:
            info(f"Registered .use({manifest.variable_name}) in {self.config.aggregator}")
        return True

    def matcher(self, manifests: Iterable[ModuleManifest]) -> ImportMatcher:
        """Build the import matcher selected by ``config.clean_match``."""
        by_manifest = manifest_matcher(manifests)
        by_prefix = prefix_matcher(self.config)
        mode = self.config.clean_match
        if mode == "manifest":
            return by_manifest
        if mode == "prefix":
            return by_prefix
        return lambda record: by_manifest(record) or by_prefix(record)

    def reverse(self, manifests: Iterable[ModuleManifest]) -> tuple[int, int]:
        """Remove generated imports and registrations.

        Returns:
            ``(removed_imports, removed_uses)``.
        """
        original = self.read()
        updated, imports, uses = apply_reverse(original, self.matcher(manifests))
        for record in imports:
            info(f"Removed import {record.variable_name} ({record.import_path})")
        for record in uses:
            info(f"Removed .use({record.variable_name})")
        if updated != original:
            self.write(updated)
        return len(imports), len(uses)
