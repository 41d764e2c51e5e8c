"""apibuilder -- compile declarative route specifications into Elysia route modules.

This package reads JSON (or YAML) *route specifications* describing one
module/version and its routes, emits a TypeScript route module per spec, and
keeps the application's aggregator file (``src/index.ts``) wired to those
modules without hand editing. A ``--clean`` run reverses every edit.

Typical workflow::

    apibuilder            # generate modules and wire them into src/index.ts
    apibuilder --clean    # delete generated modules and unwire them

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models shared across the entire package.
    config: Project config file, environment and CLI precedence resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric process exit codes.
    output: stderr diagnostics with Rich support.
    orchestrator: The ``generate`` and ``clean`` workflows.
    writer: Module rendering and output layout.
    patcher: Aggregator file parsing and patching.
"""

__version__ = "0.3.0"
