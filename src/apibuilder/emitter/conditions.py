"""Compile declarative condition rules into WHERE-clause-building TypeScript.

A ``findOne`` route declares ``handler.conditions`` -- a map of payload field
to operator -- and a base query holding exactly one ``{dynamic_conditions}``
token. :func:`compile_dynamic_query` emits statements that, at request time,
inspect the payload, collect one SQL fragment per active rule, bind the
matching named parameters, and splice the fragments into the base query::

    const whereConditions: string[] = [];
    const queryParams: Record<string, any> = {};
    if (Array.isArray(payload.access) && payload.access.length > 0) {
      ...
    }
    const dynamicWhere = whereConditions.length > 0 ? whereConditions.join(" AND ") : "1=1";
    const query = `SELECT ... WHERE ${dynamicWhere}`;
    Object.assign(payload, queryParams);

Per-operator behaviour (field ``f``):

=====================  ==============================  =========================
operator               fragment                        parameters
=====================  ==============================  =========================
``=`` ``>=`` ``<=``    ``f <op> :f``                   ``payload.f`` as-is
``>`` ``<``
``LIKE`` ``ILIKE``     ``f <op> :f``                   ``%value%`` replaces ``f``
``IN``                 ``f IN (:f_0, :f_1, ...)``      one per element, ``f`` removed
``IS NULL``            ``f IS NULL``                   ``f`` removed
``IS NOT NULL``        ``f IS NOT NULL``               ``f`` removed
anything else          ``f = :f``                      ``payload.f`` as-is
=====================  ==============================  =========================

Fragments keep the declaration order of ``conditions``; with no active
fragment the clause is the tautology ``1=1``.

:func:`evaluate_conditions` applies the same table in Python. It is what
the emitted code computes for a given payload, and drives the tests.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from apibuilder.emitter import nodes as n
from apibuilder.exceptions import TemplateMismatchError
from apibuilder.models import ConditionRule

DYNAMIC_TOKEN = "{dynamic_conditions}"
"""Placeholder in a base query replaced by the compiled WHERE clause."""

TAUTOLOGY = "1=1"

PAYLOAD_VAR = "payload"
_WHERE_VAR = "whereConditions"
_PARAMS_VAR = "queryParams"
_CLAUSE_VAR = "dynamicWhere"


class OperatorKind(str, enum.Enum):
    """How a rule guards, renders and binds its field."""

    COMPARE = "compare"
    LIKE = "like"
    IN = "in"
    IS_NULL = "is_null"
    IS_NOT_NULL = "is_not_null"


@dataclass(frozen=True)
class OperatorPlan:
    kind: OperatorKind
    sql: str


_PLANS: dict[str, OperatorPlan] = {
    "=": OperatorPlan(OperatorKind.COMPARE, "="),
    ">=": OperatorPlan(OperatorKind.COMPARE, ">="),
    "<=": OperatorPlan(OperatorKind.COMPARE, "<="),
    ">": OperatorPlan(OperatorKind.COMPARE, ">"),
    "<": OperatorPlan(OperatorKind.COMPARE, "<"),
    "LIKE": OperatorPlan(OperatorKind.LIKE, "LIKE"),
    "ILIKE": OperatorPlan(OperatorKind.LIKE, "ILIKE"),
    "IN": OperatorPlan(OperatorKind.IN, "IN"),
    "IS NULL": OperatorPlan(OperatorKind.IS_NULL, "IS NULL"),
    "IS NOT NULL": OperatorPlan(OperatorKind.IS_NOT_NULL, "IS NOT NULL"),
}


def plan_for(operator: str) -> OperatorPlan:
    """Look up an operator, ignoring case and repeated spaces; unknown ones compare with ``=``."""
    normalized = " ".join(operator.split()).upper()
    return _PLANS.get(normalized, _PLANS["="])


def split_query(base_query: str, has_conditions: bool) -> tuple[str, str]:
    """Split *base_query* around its ``{dynamic_conditions}`` token.

    Returns:
        ``(before, after)``; ``(base_query, "")`` when there are no conditions.

    Raises:
        TemplateMismatchError: If conditions exist and the token does not
            occur exactly once, or the token occurs without conditions.
    """
    count = base_query.count(DYNAMIC_TOKEN)
    if has_conditions:
        if count == 0:
            raise TemplateMismatchError(
                f"Query declares conditions but has no {DYNAMIC_TOKEN} placeholder: {base_query!r}"
            )
        if count > 1:
            raise TemplateMismatchError(
                f"Query has {count} {DYNAMIC_TOKEN} placeholders, expected exactly one: {base_query!r}"
            )
        before, after = base_query.split(DYNAMIC_TOKEN)
        return before, after
    if count:
        raise TemplateMismatchError(
            f"Query has a {DYNAMIC_TOKEN} placeholder but the route declares no conditions: {base_query!r}"
        )
    return base_query, ""


# ---------------------------------------------------------------------------
# Emission
# ---------------------------------------------------------------------------


def compile_dynamic_query(
    conditions: Optional[Mapping[str, ConditionRule]],
    base_query: str,
    not_null_sentinel: str = "NOT_NULL",
) -> list[n.Stmt]:
    """Emit the statements that build ``query`` (and finish ``payload``) at request time.

    The statements expect a mutable ``payload`` object in scope and leave a
    ``query`` constant behind.

    Raises:
        TemplateMismatchError: See :func:`split_query`.
    """
    before, after = split_query(base_query, conditions is not None)
    if conditions is None:
        return [n.Const("query", n.Str(base_query))]

    statements: list[n.Stmt] = [
        n.Const(_WHERE_VAR, n.Arr(), annotation="string[]"),
        n.Const(_PARAMS_VAR, n.Obj(), annotation="Record<string, any>"),
        n.Blank(),
    ]
    for name, rule in conditions.items():
        statements.append(_condition_block(name, plan_for(rule.operator), not_null_sentinel))

    where = n.Ident(_WHERE_VAR)
    statements += [
        n.Blank(),
        n.Const(
            _CLAUSE_VAR,
            n.Conditional(
                n.Binary(n.Member(where, "length"), ">", n.Num(0)),
                n.call(n.Member(where, "join"), n.Str(" AND ")),
                n.Str(TAUTOLOGY),
            ),
        ),
        n.Const("query", n.Template([before, after], [n.Ident(_CLAUSE_VAR)])),
        n.ExprStmt(n.call("Object.assign", n.Ident(PAYLOAD_VAR), n.Ident(_PARAMS_VAR))),
    ]
    return statements


def _condition_block(name: str, plan: OperatorPlan, not_null_sentinel: str) -> n.If:
    value = n.Member(n.Ident(PAYLOAD_VAR), name)
    push = n.Member(n.Ident(_WHERE_VAR), "push")
    params = n.Ident(_PARAMS_VAR)

    if plan.kind is OperatorKind.IN:
        index = n.Ident("index")
        placeholder = n.Template([f":{name}_", ""], [index])
        return n.If(
            n.Binary(
                n.call("Array.isArray", value),
                "&&",
                n.Binary(n.Member(value, "length"), ">", n.Num(0)),
            ),
            [
                n.Const(
                    "placeholders",
                    n.call(
                        n.Member(
                            n.call(
                                n.Member(value, "map"),
                                n.Arrow([n.Param("_", "unknown"), n.Param("index", "number")], placeholder),
                            ),
                            "join",
                        ),
                        n.Str(", "),
                    ),
                ),
                n.ExprStmt(n.call(push, n.Template([f"{name} IN (", ")"], [n.Ident("placeholders")]))),
                n.ExprStmt(
                    n.call(
                        n.Member(value, "forEach"),
                        n.Arrow(
                            [n.Param("value", "unknown"), n.Param("index", "number")],
                            [n.ExprStmt(n.Binary(n.Index(params, placeholder_key(name)), "=", n.Ident("value")))],
                        ),
                    )
                ),
                n.Delete(value),
            ],
        )

    if plan.kind is OperatorKind.IS_NULL:
        return n.If(
            n.Binary(value, "===", n.Null()),
            [n.ExprStmt(n.call(push, n.Str(f"{name} IS NULL"))), n.Delete(value)],
        )

    if plan.kind is OperatorKind.IS_NOT_NULL:
        return n.If(
            n.Binary(value, "===", n.Str(not_null_sentinel)),
            [n.ExprStmt(n.call(push, n.Str(f"{name} IS NOT NULL"))), n.Delete(value)],
        )

    present = n.Binary(
        n.Binary(value, "!==", n.Undefined()),
        "&&",
        n.Binary(value, "!==", n.Null()),
    )
    body: list[n.Stmt] = [n.ExprStmt(n.call(push, n.Str(f"{name} {plan.sql} :{name}")))]
    if plan.kind is OperatorKind.LIKE:
        body += [
            n.ExprStmt(n.Binary(n.Member(params, name), "=", n.Template(["%", "%"], [value]))),
            n.Delete(value),
        ]
    return n.If(present, body)


def placeholder_key(name: str) -> n.Template:
    """The ``${name}_${index}`` key an IN element is bound under."""
    return n.Template([f"{name}_", ""], [n.Ident("index")])


# ---------------------------------------------------------------------------
# Reference evaluation
# ---------------------------------------------------------------------------


@dataclass
class CompiledQuery:
    """The query, WHERE clause and bound parameters for one payload."""

    query: str
    where: str
    params: dict[str, Any] = field(default_factory=dict)


_MISSING = object()


def evaluate_conditions(
    conditions: Optional[Mapping[str, ConditionRule]],
    payload: Mapping[str, Any],
    base_query: str,
    not_null_sentinel: str = "NOT_NULL",
) -> CompiledQuery:
    """Compute what the code emitted by :func:`compile_dynamic_query` produces for *payload*.

    ``None`` plays the role of ``null``; a key absent from *payload* is
    ``undefined``.

    Example::

        rules = {"access": ConditionRule(operator="IN")}
        result = evaluate_conditions(rules, {"access": ["a", "b"]}, "SELECT * FROM roles WHERE {dynamic_conditions}")
        # result.where == "access IN (:access_0, :access_1)"
        # result.params == {"access_0": "a", "access_1": "b"}

    Raises:
        TemplateMismatchError: See :func:`split_query`.
    """
    before, after = split_query(base_query, conditions is not None)
    bound = dict(payload)
    if conditions is None:
        return CompiledQuery(query=base_query, where="", params=bound)

    fragments: list[str] = []
    extra: dict[str, Any] = {}
    for name, rule in conditions.items():
        plan = plan_for(rule.operator)
        value = bound.get(name, _MISSING)

        if plan.kind is OperatorKind.IN:
            if isinstance(value, (list, tuple)) and value:
                keys = [f"{name}_{i}" for i in range(len(value))]
                fragments.append(f"{name} IN ({', '.join(':' + key for key in keys)})")
                extra.update(zip(keys, value))
                del bound[name]
        elif plan.kind is OperatorKind.IS_NULL:
            if value is None:
                fragments.append(f"{name} IS NULL")
                del bound[name]
        elif plan.kind is OperatorKind.IS_NOT_NULL:
            if value == not_null_sentinel:
                fragments.append(f"{name} IS NOT NULL")
                del bound[name]
        elif value is not _MISSING and value is not None:
            fragments.append(f"{name} {plan.sql} :{name}")
            if plan.kind is OperatorKind.LIKE:
                extra[name] = f"%{value}%"
                del bound[name]

    where = " AND ".join(fragments) if fragments else TAUTOLOGY
    bound.update(extra)
    return CompiledQuery(query=f"{before}{where}{after}", where=where, params=bound)
