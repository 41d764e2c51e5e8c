"""Code emitter -- turn route specs into TypeScript statement trees.

Sub-modules:

* :mod:`~apibuilder.emitter.nodes` -- The TypeScript expression/statement
  nodes every emitter builds.
* :mod:`~apibuilder.emitter.printer` -- Renders node trees to source; owns
  escaping and indentation.
* :mod:`~apibuilder.emitter.schema` -- Payload and path-parameter ``t.*``
  validation schemas.
* :mod:`~apibuilder.emitter.conditions` -- Compiles condition rules into
  WHERE-clause-building statements.
* :mod:`~apibuilder.emitter.handler` -- Assembles one route's handler,
  options and schema constant.
"""

from apibuilder.emitter.conditions import compile_dynamic_query, evaluate_conditions
from apibuilder.emitter.handler import EmittedRoute, emit_route
from apibuilder.emitter.printer import TypeScriptPrinter, render

__all__ = [
    "EmittedRoute",
    "TypeScriptPrinter",
    "compile_dynamic_query",
    "emit_route",
    "evaluate_conditions",
    "render",
]
