"""Render payload field specs into Elysia ``t.*`` validation schemas.

Each field becomes ``t.<Type>(<constraints>)``, wrapped in ``t.Optional(...)``
when the field is optional. Constraints render in a fixed order --
``format``, ``description``, ``minimum``, ``maximum``, ``minLength``,
``maxLength`` -- and only when present; no constraints render as ``{}``.
Array fields take their ``items`` source verbatim (``t.String()`` when
absent) instead of a constraint object. Unrecognised field types degrade to
``t.String``.

Example::

    payload_schema({"name": FieldSpec(type="String", maxLength=50)})
    # t.Object({
    #   name: t.String({
    #     maxLength: 50,
    #   }),
    # })
"""

from __future__ import annotations

from typing import Optional

from apibuilder.emitter import nodes as n
from apibuilder.models import FieldSpec, FieldType

DEFAULT_ARRAY_ITEMS = "t.String()"

_TYPE_FACTORIES: dict[FieldType, str] = {
    FieldType.STRING: "t.String",
    FieldType.NUMBER: "t.Number",
    FieldType.BOOLEAN: "t.Boolean",
    FieldType.ARRAY: "t.Array",
    FieldType.OBJECT: "t.Object",
}


def constraint_object(field: FieldSpec) -> n.Obj:
    """Build the constraint object of a non-array field, in the fixed key order."""
    props: list[n.Prop] = []
    if field.format:
        props.append(n.Prop("format", n.Str(field.format)))
    if field.description:
        props.append(n.Prop("description", n.Str(field.description)))
    if field.minimum is not None:
        props.append(n.Prop("minimum", n.Num(field.minimum)))
    if field.maximum is not None:
        props.append(n.Prop("maximum", n.Num(field.maximum)))
    if field.min_length is not None:
        props.append(n.Prop("minLength", n.Num(field.min_length)))
    if field.max_length is not None:
        props.append(n.Prop("maxLength", n.Num(field.max_length)))
    return n.Obj(props)


def field_schema(field: FieldSpec) -> n.Expr:
    """Build the ``t.*`` schema expression of a single field."""
    field_type = field.field_type
    if field_type is FieldType.ARRAY:
        schema: n.Expr = n.call(_TYPE_FACTORIES[field_type], n.Raw(field.items or DEFAULT_ARRAY_ITEMS))
    else:
        schema = n.call(_TYPE_FACTORIES[field_type], constraint_object(field))
    if field.optional:
        return n.call("t.Optional", schema)
    return schema


def payload_schema(payload: Optional[dict[str, FieldSpec]]) -> n.Expr:
    """Build ``t.Object({...})`` for a payload; no fields gives ``t.Object({})``."""
    props = [n.Prop(name, field_schema(field)) for name, field in (payload or {}).items()]
    return n.call("t.Object", n.Obj(props))


def schema_declaration(name: str, payload: Optional[dict[str, FieldSpec]]) -> n.Const:
    """Build ``const <name> = t.Object({...});``."""
    return n.Const(name, payload_schema(payload))


def params_schema(params: list[str]) -> n.Expr:
    """Build the path-parameter schema for the ``:name`` segments of a route.

    A segment literally named ``id`` is a UUID described as ``"Id ID"``;
    any other segment only gets a capitalised description.
    """
    props: list[n.Prop] = []
    for param in params:
        label = param[:1].upper() + param[1:]
        if param == "id":
            field = FieldSpec(type="String", format="uuid", description=f"{label} ID")
        else:
            field = FieldSpec(type="String", description=label)
        props.append(n.Prop(param, field_schema(field)))
    return n.call("t.Object", n.Obj(props))
