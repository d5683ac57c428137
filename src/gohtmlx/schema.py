"""Prop schemas and the cross-component CompInfo snapshot.

A component's props come from two places: the ``props`` block (a flat YAML
mapping of ``key: GoType``) and every ``<slot name="x">`` in its own markup,
which adds an implicit ``slotX: Element`` prop.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType

import yaml

from gohtmlx.errors import SchemaError
from gohtmlx.markup import Document, iter_elements, parse_markup
from gohtmlx.paths import is_identifier

SLOT_TYPE = "Element"
RESERVED_FIELDS = frozenset({"attrs"})


def capitalize(s: str) -> str:
    return s[:1].upper() + s[1:]


def slot_prop_key(name: str) -> str:
    return "slot" + capitalize(name)


@dataclass(frozen=True, slots=True)
class PropField:
    key: str
    field: str
    type: str
    slot: bool = False


@dataclass(frozen=True)
class PropSchema:
    props: Mapping[str, PropField]

    def get(self, key: str) -> PropField | None:
        return self.props.get(key.lower())

    def fields(self) -> list[PropField]:
        return sorted(self.props.values(), key=lambda p: p.field)

    def field_map(self) -> dict[str, str]:
        return {k: p.field for k, p in self.props.items()}


def parse_declared_props(text: str | None) -> dict[str, str]:
    """Parse a ``props`` block into ``{key: go_type}`` preserving declaration order."""

    if text is None or not text.strip():
        return {}

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise SchemaError(
            f"invalid props block: {e} (quote types that start with '[', '*' or '&')"
        ) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise SchemaError("props block must be a mapping of `name: type` pairs")

    out: dict[str, str] = {}
    for key, value in data.items():
        if not isinstance(key, str) or not is_identifier(key):
            raise SchemaError(f"invalid prop name {key!r}: must be an identifier")
        if key.lower() in RESERVED_FIELDS:
            raise SchemaError(f"prop name {key!r} is reserved for passthrough attributes")
        if not isinstance(value, str) or not value.strip():
            raise SchemaError(f"prop {key!r} must declare a Go type as a string, got {value!r}")
        out[key] = value.strip()
    return out


def slot_names(markup: Document) -> list[str]:
    """Return unique slot names in order of first appearance."""

    names: list[str] = []
    for el in iter_elements(markup):
        if el.tag != "slot":
            continue
        name = el.get("name")
        if not name:
            raise SchemaError('<slot> requires a name attribute (e.g. <slot name="header"/>)')
        if name not in names:
            names.append(name)
    return names


def build_prop_schema(props_text: str | None, markup: str | Document | None) -> PropSchema:
    declared = parse_declared_props(props_text)

    props: dict[str, PropField] = {}
    for key, typ in declared.items():
        lower = key.lower()
        if lower in props:
            raise SchemaError(f"prop {key!r} declared twice (prop names are case-insensitive)")
        props[lower] = PropField(key=key, field=capitalize(key), type=typ)

    if markup is not None:
        doc = parse_markup(markup) if isinstance(markup, str) else markup
        for name in slot_names(doc):
            key = slot_prop_key(name)
            if not is_identifier(key):
                raise SchemaError(f"invalid slot name {name!r}: must be an identifier")
            if key.lower() in props:
                continue
            props[key.lower()] = PropField(key=key, field=capitalize(key), type=SLOT_TYPE, slot=True)

    return PropSchema(props=MappingProxyType(props))


@dataclass(frozen=True, slots=True)
class ComponentInfo:
    name: str
    props: Mapping[str, str]


CompInfo = Mapping[str, ComponentInfo]


def build_comp_info(schemas: Iterable[tuple[str, PropSchema]]) -> CompInfo:
    """Freeze the lower-cased component name -> ComponentInfo snapshot."""

    info: dict[str, ComponentInfo] = {}
    for name, schema in schemas:
        info[name.lower()] = ComponentInfo(
            name=name, props=MappingProxyType(schema.field_map())
        )
    return MappingProxyType(info)
