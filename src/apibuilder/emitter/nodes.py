"""TypeScript statement/expression nodes rendered by :mod:`apibuilder.emitter.printer`.

The emitters never concatenate source text. They build trees of these
nodes and hand them to :class:`~apibuilder.emitter.printer.TypeScriptPrinter`,
which owns escaping and indentation. Only the constructs the generated route
modules need are modelled.

Example::

    from apibuilder.emitter.nodes import Call, Ident, Str

    Call(Ident("findOneById"), [Ident("id"), Str("SELECT 1")])
    # findOneById(id, "SELECT 1")
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Union


# --- Expressions ---


@dataclass
class Ident:
    """A bare identifier such as ``payload`` or ``findOne``."""

    name: str


@dataclass
class Raw:
    """Source text inserted verbatim (used for spec-supplied ``items`` schemas)."""

    code: str


@dataclass
class Str:
    """A double-quoted string literal."""

    value: str


@dataclass
class Num:
    value: Union[int, float]


@dataclass
class Null:
    pass


@dataclass
class Undefined:
    pass


@dataclass
class Template:
    """A template literal: ``quasis[0] ${exprs[0]} quasis[1] ...``.

    ``quasis`` always holds exactly one more entry than ``exprs``.
    """

    quasis: list[str]
    exprs: list["Expr"] = field(default_factory=list)


@dataclass
class Member:
    """Property access; printed as ``obj.prop`` or ``obj["prop"]``."""

    obj: "Expr"
    prop: str


@dataclass
class Index:
    """Computed property access ``obj[key]``."""

    obj: "Expr"
    key: "Expr"


@dataclass
class Call:
    callee: "Expr"
    args: list["Expr"] = field(default_factory=list)


@dataclass
class New:
    callee: "Expr"
    args: list["Expr"] = field(default_factory=list)


@dataclass
class Prop:
    """An object literal entry. A ``None`` value prints the shorthand ``{ key }``."""

    key: str
    value: Optional["Expr"] = None


@dataclass
class Obj:
    """An object literal (or destructuring pattern when used as a parameter).

    Multi-line objects print one entry per line with a trailing comma;
    inline objects print as ``{ a, b: c }``.
    """

    props: list[Prop] = field(default_factory=list)
    multiline: bool = True


@dataclass
class Arr:
    items: list["Expr"] = field(default_factory=list)


@dataclass
class Param:
    """An arrow-function parameter, optionally type-annotated."""

    pattern: Union[str, Obj]
    annotation: Optional[str] = None


@dataclass
class Arrow:
    """An arrow function with an expression body or a block body."""

    params: list[Param]
    body: Union["Expr", list["Stmt"]]


@dataclass
class Binary:
    left: "Expr"
    op: str
    right: "Expr"


@dataclass
class Conditional:
    test: "Expr"
    consequent: "Expr"
    alternate: "Expr"


@dataclass
class ChainCall:
    """One ``.method(args)`` link of a :class:`Chain`."""

    method: str
    args: list["Expr"] = field(default_factory=list)


@dataclass
class Chain:
    """A fluent call chain printed one link per line under ``base``."""

    base: "Expr"
    calls: list[ChainCall] = field(default_factory=list)


Expr = Union[
    Ident, Raw, Str, Num, Null, Undefined, Template, Member, Index, Call, New,
    Obj, Arr, Arrow, Binary, Conditional, Chain,
]


# --- Statements ---


@dataclass
class Const:
    name: str
    value: Expr
    annotation: Optional[str] = None


@dataclass
class ExprStmt:
    expr: Expr


@dataclass
class Return:
    value: Optional[Expr] = None


@dataclass
class If:
    test: Expr
    body: list["Stmt"] = field(default_factory=list)


@dataclass
class Delete:
    target: Expr


@dataclass
class Comment:
    text: str


@dataclass
class Blank:
    """An empty line between statements."""


@dataclass
class Import:
    """``import default, { names } from "source";``"""

    source: str
    default: Optional[str] = None
    names: list[str] = field(default_factory=list)


@dataclass
class ExportDefault:
    value: Expr


Stmt = Union[Const, ExprStmt, Return, If, Delete, Comment, Blank, Import, ExportDefault]


# --- Helpers ---


def call(callee: Union[str, Expr], *args: Expr) -> Call:
    """Shorthand for :class:`Call`, accepting a dotted name such as ``"t.String"``."""
    if isinstance(callee, str):
        callee = dotted(callee)
    return Call(callee, list(args))


def dotted(name: str) -> Expr:
    """Build a member chain from ``"a.b.c"``."""
    head, *rest = name.split(".")
    expr: Expr = Ident(head)
    for part in rest:
        expr = Member(expr, part)
    return expr
