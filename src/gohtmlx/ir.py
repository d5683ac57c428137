"""Expression tree for generated Go code.

The compiler builds these values; `gohtmlx.printer` is the only place that turns
them into Go text. Each node knows its `Shape`, which decides whether it can be
passed where an ``Element`` is expected or must be wrapped in ``R(...)`` first.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass


class Shape(enum.Enum):
    STRING = "string"
    NODE = "node"
    # Arbitrary user expression; only the runtime knows what it holds.
    VALUE = "value"


@dataclass(frozen=True, slots=True)
class Str:
    value: str

    shape = Shape.STRING


@dataclass(frozen=True, slots=True)
class Code:
    """Verbatim Go code taken from a template expression."""

    text: str
    shape: Shape = Shape.VALUE


@dataclass(frozen=True, slots=True)
class Index:
    """Dynamic keyed lookup, ``name["key"]``."""

    name: str
    key: str

    shape = Shape.VALUE


@dataclass(frozen=True, slots=True)
class Field:
    base: str
    name: str
    shape: Shape = Shape.VALUE


@dataclass(frozen=True, slots=True)
class Call:
    func: str
    args: tuple[Expr, ...] = ()
    spread: bool = False
    shape: Shape = Shape.NODE


@dataclass(frozen=True, slots=True)
class MapLit:
    type: str
    entries: tuple[tuple[Expr, Expr], ...] = ()

    shape = Shape.VALUE


@dataclass(frozen=True, slots=True)
class StructLit:
    type: str
    fields: tuple[tuple[str, Expr], ...] = ()

    shape = Shape.VALUE


@dataclass(frozen=True, slots=True)
class Loop:
    """Iterate `source`, binding `var`, collecting `body` nodes for each item."""

    var: str
    source: Expr
    body: tuple[Expr, ...]

    shape = Shape.NODE


@dataclass(frozen=True, slots=True)
class Conditional:
    """First branch whose condition holds wins; `otherwise` is None for no fallback."""

    branches: tuple[tuple[Expr, tuple[Expr, ...]], ...]
    otherwise: tuple[Expr, ...] | None = None

    shape = Shape.NODE


Expr = Str | Code | Index | Field | Call | MapLit | StructLit | Loop | Conditional


def R(*items: Expr) -> Call:
    return Call("R", tuple(items))


def as_node(expr: Expr) -> Expr:
    """Return an expression usable as an ``Element`` child."""

    if expr.shape is Shape.NODE:
        return expr
    return R(expr)
