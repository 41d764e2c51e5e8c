"""Render :mod:`apibuilder.emitter.nodes` trees as TypeScript source.

Escaping and indentation live here and nowhere else:

* string literals are emitted double-quoted with JSON escaping;
* template literals escape backslashes, backticks and ``${``;
* property names and member accesses fall back to quoted/bracket form when
  the name is not a valid identifier;
* nested blocks, multi-line objects and call chains indent by two spaces
  per level, relative to the line they start on.

The output is a pure function of the tree, so regenerating from the same
spec is byte-identical.
"""

from __future__ import annotations

import json
import re

from apibuilder.emitter import nodes as n

INDENT = "  "

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")

# Binding strength of binary operators; higher binds tighter.
_PRECEDENCE: dict[str, int] = {
    "||": 1,
    "??": 1,
    "&&": 2,
    "===": 3,
    "!==": 3,
    "==": 3,
    "!=": 3,
    "<": 4,
    "<=": 4,
    ">": 4,
    ">=": 4,
    "+": 5,
    "-": 5,
    "*": 6,
    "/": 6,
}
_CONDITIONAL_PRECEDENCE = 0
_ATOM_PRECEDENCE = 100


def is_identifier(name: str) -> bool:
    """Return True if *name* can be used as a bare TypeScript identifier."""
    return bool(_IDENTIFIER_RE.match(name))


def quote(value: str) -> str:
    """Return *value* as a double-quoted TypeScript string literal."""
    return json.dumps(value, ensure_ascii=False)


def escape_template(text: str) -> str:
    """Escape literal text for use inside a template literal."""
    return text.replace("\\", "\\\\").replace("`", "\\`").replace("${", "\\${")


class TypeScriptPrinter:
    """Stateless renderer for expression and statement nodes.

    Every method takes the indentation *level* of the line the construct
    starts on; nested lines are indented relative to it.
    """

    def module(self, statements: list[n.Stmt]) -> str:
        """Render top-level statements, terminated by a single newline."""
        return "\n".join(self.statement(stmt, 0) for stmt in statements) + "\n"

    def block(self, statements: list[n.Stmt], level: int) -> str:
        return "\n".join(self.statement(stmt, level) for stmt in statements)

    # ------------------------------------------------------------------ #
    # Statements
    # ------------------------------------------------------------------ #

    def statement(self, stmt: n.Stmt, level: int) -> str:
        pad = INDENT * level
        if isinstance(stmt, n.Blank):
            return ""
        if isinstance(stmt, n.Comment):
            return f"{pad}// {stmt.text}"
        if isinstance(stmt, n.Const):
            annotation = f": {stmt.annotation}" if stmt.annotation else ""
            return f"{pad}const {stmt.name}{annotation} = {self.expr(stmt.value, level)};"
        if isinstance(stmt, n.ExprStmt):
            return f"{pad}{self.expr(stmt.expr, level)};"
        if isinstance(stmt, n.Return):
            if stmt.value is None:
                return f"{pad}return;"
            return f"{pad}return {self.expr(stmt.value, level)};"
        if isinstance(stmt, n.Delete):
            return f"{pad}delete {self.expr(stmt.target, level)};"
        if isinstance(stmt, n.If):
            body = self.block(stmt.body, level + 1)
            return f"{pad}if ({self.expr(stmt.test, level)}) {{\n{body}\n{pad}}}"
        if isinstance(stmt, n.Import):
            return f"{pad}{self._import(stmt)}"
        if isinstance(stmt, n.ExportDefault):
            return f"{pad}export default {self.expr(stmt.value, level)};"
        raise TypeError(f"Unsupported statement node: {type(stmt).__name__}")

    def _import(self, stmt: n.Import) -> str:
        clauses: list[str] = []
        if stmt.default:
            clauses.append(stmt.default)
        if stmt.names:
            clauses.append("{ " + ", ".join(stmt.names) + " }")
        if not clauses:
            return f"import {quote(stmt.source)};"
        return f"import {', '.join(clauses)} from {quote(stmt.source)};"

    # ------------------------------------------------------------------ #
    # Expressions
    # ------------------------------------------------------------------ #

    def expr(self, node: n.Expr, level: int) -> str:
        if isinstance(node, n.Ident):
            return node.name
        if isinstance(node, n.Raw):
            return node.code
        if isinstance(node, n.Str):
            return quote(node.value)
        if isinstance(node, n.Num):
            return _format_number(node.value)
        if isinstance(node, n.Null):
            return "null"
        if isinstance(node, n.Undefined):
            return "undefined"
        if isinstance(node, n.Template):
            return self._template(node, level)
        if isinstance(node, n.Member):
            obj = self._operand(node.obj, _ATOM_PRECEDENCE, level)
            if is_identifier(node.prop):
                return f"{obj}.{node.prop}"
            return f"{obj}[{quote(node.prop)}]"
        if isinstance(node, n.Index):
            obj = self._operand(node.obj, _ATOM_PRECEDENCE, level)
            return f"{obj}[{self.expr(node.key, level)}]"
        if isinstance(node, n.Call):
            callee = self._operand(node.callee, _ATOM_PRECEDENCE, level)
            return f"{callee}({self._args(node.args, level)})"
        if isinstance(node, n.New):
            return f"new {self.expr(node.callee, level)}({self._args(node.args, level)})"
        if isinstance(node, n.Obj):
            return self._object(node, level)
        if isinstance(node, n.Arr):
            return f"[{self._args(node.items, level)}]"
        if isinstance(node, n.Arrow):
            return self._arrow(node, level)
        if isinstance(node, n.Binary):
            prec = _PRECEDENCE.get(node.op, _CONDITIONAL_PRECEDENCE + 1)
            left = self._operand(node.left, prec, level)
            right = self._operand(node.right, prec + 1, level)
            return f"{left} {node.op} {right}"
        if isinstance(node, n.Conditional):
            test = self._operand(node.test, _CONDITIONAL_PRECEDENCE + 1, level)
            return (
                f"{test} ? {self.expr(node.consequent, level)}"
                f" : {self.expr(node.alternate, level)}"
            )
        if isinstance(node, n.Chain):
            return self._chain(node, level)
        raise TypeError(f"Unsupported expression node: {type(node).__name__}")

    def _args(self, args: list[n.Expr], level: int) -> str:
        return ", ".join(self.expr(arg, level) for arg in args)

    def _operand(self, node: n.Expr, min_precedence: int, level: int) -> str:
        """Render *node*, parenthesised if it binds looser than *min_precedence*."""
        text = self.expr(node, level)
        if _precedence(node) < min_precedence:
            return f"({text})"
        return text

    def _template(self, node: n.Template, level: int) -> str:
        if len(node.quasis) != len(node.exprs) + 1:
            raise ValueError("Template literal needs exactly one more quasi than expressions")
        parts = [escape_template(node.quasis[0])]
        for expr, quasi in zip(node.exprs, node.quasis[1:]):
            parts.append("${" + self.expr(expr, level) + "}")
            parts.append(escape_template(quasi))
        return "`" + "".join(parts) + "`"

    def _object(self, node: n.Obj, level: int) -> str:
        if not node.props:
            return "{}"
        if not node.multiline:
            entries = ", ".join(self._prop(prop, level) for prop in node.props)
            return "{ " + entries + " }"
        pad = INDENT * level
        inner = INDENT * (level + 1)
        lines = [f"{inner}{self._prop(prop, level + 1)}," for prop in node.props]
        return "{\n" + "\n".join(lines) + f"\n{pad}}}"

    def _prop(self, prop: n.Prop, level: int) -> str:
        key = prop.key if is_identifier(prop.key) else quote(prop.key)
        if prop.value is None:
            return key
        return f"{key}: {self.expr(prop.value, level)}"

    def _arrow(self, node: n.Arrow, level: int) -> str:
        params = ", ".join(self._param(param, level) for param in node.params)
        if isinstance(node.body, list):
            pad = INDENT * level
            body = self.block(node.body, level + 1)
            return f"({params}) => {{\n{body}\n{pad}}}"
        body_text = self.expr(node.body, level)
        if isinstance(node.body, n.Obj):
            body_text = f"({body_text})"
        return f"({params}) => {body_text}"

    def _param(self, param: n.Param, level: int) -> str:
        if isinstance(param.pattern, n.Obj):
            text = self.expr(param.pattern, level)
        else:
            text = param.pattern
        if param.annotation:
            return f"{text}: {param.annotation}"
        return text

    def _chain(self, node: n.Chain, level: int) -> str:
        inner = INDENT * (level + 1)
        links = [self.expr(node.base, level)]
        for link in node.calls:
            links.append(f"\n{inner}.{link.method}({self._args(link.args, level + 1)})")
        return "".join(links)


def _precedence(node: n.Expr) -> int:
    if isinstance(node, n.Binary):
        return _PRECEDENCE.get(node.op, _CONDITIONAL_PRECEDENCE + 1)
    if isinstance(node, (n.Conditional, n.Arrow)):
        return _CONDITIONAL_PRECEDENCE
    return _ATOM_PRECEDENCE


def _format_number(value: int | float) -> str:
    if isinstance(value, bool):
        raise TypeError("Booleans are not numeric literals")
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return repr(value)


def render(statements: list[n.Stmt]) -> str:
    """Render a full module with a default :class:`TypeScriptPrinter`."""
    return TypeScriptPrinter().module(statements)


def render_expr(node: n.Expr, level: int = 0) -> str:
    """Render a single expression with a default :class:`TypeScriptPrinter`."""
    return TypeScriptPrinter().expr(node, level)
