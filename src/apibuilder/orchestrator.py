"""The two workflows the CLI runs: ``generate`` and ``clean``.

``generate`` walks the specs directory in name order and, per document,
parses it, writes its module and manifest, then wires the module into the
aggregator. ``clean`` undoes all of that: it reads the manifests, deletes
the generated tree and strips the matching aggregator lines.

A missing aggregator file never fails a run; it is reported and patching
is skipped.
"""

from __future__ import annotations

from pathlib import Path

from apibuilder.exceptions import AggregatorNotFoundError, ApiBuilderError, BatchError
from apibuilder.models import BatchResult, BuilderConfig, CleanResult, SpecFailure
from apibuilder.output import debug, error, info, progress, success, warning
from apibuilder.parser import list_spec_files, load_route_spec
from apibuilder.patcher import IndexPatcher
from apibuilder.writer import ModuleWriter


def generate(config: BuilderConfig) -> BatchResult:
    """Generate a module for every spec document and wire it into the aggregator.

    With ``config.fail_fast`` the first failing document aborts the run by
    re-raising its error. Otherwise every document is attempted and a
    :class:`~apibuilder.exceptions.BatchError` is raised at the end if any
    failed.

    Returns:
        The :class:`~apibuilder.models.BatchResult` of a run without failures.
    """
    result = BatchResult()
    specs = list_spec_files(config.specs_path, config.spec_extensions)
    if not specs:
        info(f"No spec documents found in {config.specs_dir}")
        return result

    writer = ModuleWriter(config)
    patcher = IndexPatcher(config)
    aggregator_missing = False

    for spec_path in specs:
        progress(f"Processing {spec_path.name}")
        result.processed.append(spec_path)
        try:
            spec = load_route_spec(spec_path)
            manifest = writer.write_module(spec, spec_path)
            result.written.append(config.root / manifest.module_path)
            success(f"Wrote {manifest.module_path}")
            if aggregator_missing:
                continue
            try:
                patcher.upsert(manifest)
            except AggregatorNotFoundError as exc:
                warning(f"{exc}; skipping route registration")
                aggregator_missing = True
        except ApiBuilderError as exc:
            if config.fail_fast:
                raise
            error(f"{spec_path.name}: {exc}")
            result.failures.append(SpecFailure(spec_path=spec_path, message=str(exc)))

    if result.failures:
        raise BatchError(
            f"{len(result.failures)} of {len(result.processed)} spec(s) failed: "
            + ", ".join(failure.spec_path.name for failure in result.failures)
        )
    info(f"Generated {len(result.written)} module(s)")
    return result


def clean(config: BuilderConfig) -> CleanResult:
    """Delete every generated module and remove its aggregator wiring."""
    writer = ModuleWriter(config)
    manifests = writer.read_manifests()
    debug(f"Found {len(manifests)} manifest(s) under {config.output_root}")

    result = CleanResult(manifests=manifests)
    for path in writer.remove_output_tree():
        result.removed_paths.append(path)
        info(f"Removed {_display(path, config.root)}")

    try:
        result.removed_imports, result.removed_uses = IndexPatcher(config).reverse(manifests)
    except AggregatorNotFoundError as exc:
        warning(f"{exc}; nothing to unregister")

    success(
        f"Cleaned {len(result.removed_paths)} path(s), "
        f"{result.removed_imports} import(s), {result.removed_uses} registration(s)"
    )
    return result


def _display(path: Path, root: Path) -> str:
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return str(path)
