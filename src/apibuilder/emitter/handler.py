"""Assemble one route's Elysia handler from its spec.

Two request shapes are supported:

* **Path-based lookup** (``requestType`` unset) -- every ``:name`` path
  segment is validated by an inline ``t.Object`` schema. The lookup key
  (the ``id`` segment, else the first one) is destructured from ``params``
  and passed to ``findOneById`` together with the route's literal query.
  A route without path segments but with a payload reads the key from the
  body instead.
* **Dynamic-filter lookup** (``requestType == "findOne"``) -- the body is
  copied into ``payload``, the condition compiler builds ``query``, and
  ``findOne(payload, query)`` is returned.

Every handler carries a ``detail`` block copied from the route's
``openapi`` metadata. The result is a :class:`~apibuilder.emitter.nodes.ChainCall`
ready to hang off the module's ``new Elysia({ prefix })`` router.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional

from apibuilder.emitter import nodes as n
from apibuilder.emitter.conditions import PAYLOAD_VAR, compile_dynamic_query
from apibuilder.emitter.schema import params_schema, schema_declaration
from apibuilder.models import RouteDefinition
from apibuilder.output import warning

FIND_ONE_BY_ID = "findOneById"
FIND_ONE = "findOne"

_BODY_METHODS = {"post", "put", "patch"}
_PARAM_SEGMENT_RE = re.compile(r"^:([A-Za-z_$][A-Za-z0-9_$]*)\??$")


@dataclass
class EmittedRoute:
    """The pieces one route contributes to its module."""

    call: n.ChainCall
    schema: Optional[n.Const] = None
    services: set[str] = field(default_factory=set)
    validates: bool = False


def extract_path_params(path: str) -> list[str]:
    """Return the ``:name`` segments of *path*, in path order."""
    params: list[str] = []
    for segment in path.split("/"):
        match = _PARAM_SEGMENT_RE.match(segment)
        if match:
            params.append(match.group(1))
    return params


def lookup_key(params: list[str]) -> str:
    """The path segment passed to ``findOneById``: ``id`` when present, else the first one."""
    return "id" if "id" in params else params[0]


def schema_constant_name(route: RouteDefinition, module: str, index: int) -> str:
    """Name of the route's payload schema constant; *index* is 1-based."""
    base = route.name or f"{module}Route{index}"
    return f"{base}PayloadSchema"


def detail_block(route: RouteDefinition) -> n.Obj:
    """Build the ``detail`` option from the route's OpenAPI metadata."""
    meta = route.openapi
    return n.Obj([
        n.Prop("summary", n.Str(meta.summary)),
        n.Prop("description", n.Str(meta.description)),
        n.Prop("tags", n.Arr([n.Str(tag) for tag in meta.tags])),
    ])


def emit_route(
    route: RouteDefinition,
    module: str,
    index: int,
    not_null_sentinel: str = "NOT_NULL",
) -> EmittedRoute:
    """Build the handler, options and schema constant of one route.

    Args:
        route: The route definition.
        module: The spec's module name, used for default schema names.
        index: 1-based position of the route inside its spec.
        not_null_sentinel: Payload value that requests ``IS NOT NULL``.

    Raises:
        TemplateMismatchError: If a ``findOne`` route's conditions and query
            placeholder disagree.
    """
    if route.is_dynamic:
        return _emit_dynamic(route, module, index, not_null_sentinel)
    return _emit_lookup(route, module, index)


def _emit_dynamic(route: RouteDefinition, module: str, index: int, not_null_sentinel: str) -> EmittedRoute:
    conditions = route.handler.conditions or {}
    declared = route.payload or {}
    for name in conditions:
        if name not in declared:
            warning(f"Condition field '{name}' on {route.method.upper()} {route.path} is not declared in payload")

    schema_name = schema_constant_name(route, module, index)
    body: list[n.Stmt] = [
        n.Const(PAYLOAD_VAR, n.Ident("body"), annotation="Record<string, any>"),
        *compile_dynamic_query(route.handler.conditions, route.handler.query, not_null_sentinel),
        n.Blank(),
        n.Return(n.call(FIND_ONE, n.Ident(PAYLOAD_VAR), n.Ident("query"))),
    ]
    handler = n.Arrow([n.Param(n.Obj([n.Prop("body")], multiline=False))], body)
    options = n.Obj([n.Prop("body", n.Ident(schema_name)), n.Prop("detail", detail_block(route))])
    return EmittedRoute(
        call=n.ChainCall(route.method.lower(), [n.Str(route.path), handler, options]),
        schema=schema_declaration(schema_name, route.payload),
        services={FIND_ONE},
        validates=True,
    )


def _emit_lookup(route: RouteDefinition, module: str, index: int) -> EmittedRoute:
    method = route.method.lower()
    query = n.Str(route.handler.query)
    path_params = extract_path_params(route.path)
    schema_name = schema_constant_name(route, module, index)
    schema: Optional[n.Const] = None
    option_props: list[n.Prop] = []

    if path_params:
        key = lookup_key(path_params)
        pattern = n.Obj([n.Prop("params", n.Obj([n.Prop(key)], multiline=False))], multiline=False)
        params = [n.Param(pattern)]
        args: list[n.Expr] = [n.Ident(key)]
        option_props.append(n.Prop("params", params_schema(path_params)))
        if route.payload and method in _BODY_METHODS:
            schema = schema_declaration(schema_name, route.payload)
            option_props.append(n.Prop("body", n.Ident(schema_name)))
    elif route.payload:
        first_field = next(iter(route.payload))
        params = [n.Param(n.Obj([n.Prop("body")], multiline=False))]
        args = [n.Member(n.Ident("body"), first_field)]
        schema = schema_declaration(schema_name, route.payload)
        option_props.append(n.Prop("body", n.Ident(schema_name)))
    else:
        params = []
        args = []

    option_props.append(n.Prop("detail", detail_block(route)))
    handler = n.Arrow(params, [n.Return(n.call(FIND_ONE_BY_ID, *args, query))])
    return EmittedRoute(
        call=n.ChainCall(method, [n.Str(route.path), handler, n.Obj(option_props)]),
        schema=schema,
        services={FIND_ONE_BY_ID},
        validates=bool(path_params) or schema is not None,
    )
