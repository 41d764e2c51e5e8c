"""Typer application and CLI entry point for apibuilder.

Invoked without a mode flag the tool runs :func:`~apibuilder.orchestrator.generate`;
with ``--clean`` (or its alias ``--reset``) it runs
:func:`~apibuilder.orchestrator.clean`. Diagnostics go to stderr through
:mod:`apibuilder.output`; the exit code is 0 on success and 1 on any
failure.

The tool edits the aggregator file in place without locking, so only one
invocation may run against a project at a time.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``.
"""

from __future__ import annotations

import signal
import sys
import traceback
from pathlib import Path
from typing import Any, Optional

import typer

from apibuilder import __version__
from apibuilder.exit_codes import EXIT_CANCELLED, EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="apibuilder",
    help="Generate Elysia route modules from JSON route specs and wire them into the app.",
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"apibuilder {__version__}")
        raise typer.Exit()


@app.command()
def run(
    clean: bool = typer.Option(
        False, "--clean", "--reset", help="Delete generated modules and unregister them."
    ),
    root: Optional[Path] = typer.Option(
        None, "--root", help="Project root. Defaults to the current directory.",
        file_okay=False,
    ),
    specs_dir: Optional[str] = typer.Option(
        None, "--specs-dir", help="Directory holding route spec documents."
    ),
    output_root: Optional[str] = typer.Option(
        None, "--output-root", help="Root of the generated module tree."
    ),
    aggregator: Optional[str] = typer.Option(
        None, "--aggregator", help="File that imports and registers every route module."
    ),
    keep_going: bool = typer.Option(
        False, "--keep-going", help="Process every spec even after one fails."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Generate route modules, or remove them with --clean."""
    from apibuilder.config import resolve_config
    from apibuilder.exceptions import ApiBuilderError
    from apibuilder.orchestrator import clean as clean_workflow
    from apibuilder.orchestrator import generate
    from apibuilder.output import OutputManager, debug, error, set_output

    set_output(OutputManager(no_color=no_color, quiet=quiet, verbose=verbose))

    try:
        config = resolve_config(
            root=root,
            specs_dir=specs_dir,
            output_root=output_root,
            aggregator=aggregator,
            fail_fast=False if keep_going else None,
        )
        debug(f"Project root: {config.root}")
        if clean:
            clean_workflow(config)
        else:
            generate(config)
    except ApiBuilderError as exc:
        error(str(exc))
        if verbose:
            sys.stderr.write(traceback.format_exc())
        raise typer.Exit(exc.exit_code)


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_CANCELLED)

    signal.signal(signal.SIGINT, _handler)


def main() -> None:
    """CLI entry point invoked by the ``apibuilder`` console script.

    :class:`~apibuilder.exceptions.ApiBuilderError` is reported inside
    :func:`run`. Ctrl-C exits with 130; any other exception prints a
    generic message (and the traceback with ``--verbose``) and exits 1.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_CANCELLED)
    except Exception as exc:
        from apibuilder.output import error

        error(f"Unexpected error: {exc}")
        if "-v" in sys.argv or "--verbose" in sys.argv:
            sys.stderr.write(traceback.format_exc())
        sys.exit(EXIT_GENERIC_FAILURE)
