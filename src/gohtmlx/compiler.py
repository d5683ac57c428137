"""Node compiler: markup tree -> Go expression tree.

Each component's ``html`` block compiles to one expression that evaluates to a
single ``Element``. Control tags are resolved here, at build time:

- ``<for items={expr} as="name">`` becomes an inline loop collecting children;
- ``<if condition={c}>``, ``<elseif condition={c}>`` and ``<else>`` become one
  first-match conditional;
- ``<slot name="x">`` inside a component body reads the ``SlotX`` prop, and a
  direct ``<slot name="x">`` child of a component call fills that prop;
- any other tag is either a registered component or a standard HTML element.
"""

from __future__ import annotations

import logging
import re

from gohtmlx.errors import CompileError
from gohtmlx.ir import (
    Call,
    Code,
    Conditional,
    Expr,
    Field,
    Index,
    Loop,
    MapLit,
    R,
    Shape,
    Str,
    StructLit,
    as_node,
)
from gohtmlx.markup import RAW_TEXT_ELEMENTS, Document, Element, Node, Text, parse_markup
from gohtmlx.paths import is_identifier
from gohtmlx.schema import (
    SLOT_TYPE,
    CompInfo,
    ComponentInfo,
    PropSchema,
    capitalize,
    slot_prop_key,
)

logger = logging.getLogger(__name__)

STANDARD_TAGS = frozenset(
    """
    html head body title meta link style script noscript base template
    main header footer nav section article aside address hgroup search
    h1 h2 h3 h4 h5 h6 p hr pre blockquote ol ul li dl dt dd menu
    figure figcaption div a em strong small s cite q dfn abbr ruby rt rp
    data time code var samp kbd sub sup i b u mark bdi bdo span br wbr
    ins del picture source img iframe embed object param video audio track
    map area canvas table caption colgroup col tbody thead tfoot tr td th
    form label input button select datalist optgroup option textarea
    output progress meter fieldset legend details summary dialog
    svg g path circle ellipse line polyline polygon rect text tspan defs use
    symbol lineargradient radialgradient stop clippath mask pattern image
    foreignobject marker filter math
    """.split()
)

_BRACED_RE = re.compile(r"\{([^{}]*)\}")
_DOUBLE_BRACED_RE = re.compile(r"\{\{.*?\}\}", re.S)

# Loop variables the printed loop closure cannot bind.
RESERVED_LOOP_VARS = frozenset({"resp", "_"})


def expression_token(raw: str) -> Expr | None:
    """Rewrite the inside of one ``{...}`` placeholder; None when it is empty.

    ``$name.key`` is a keyed lookup on ``name``. The key is quoted by the
    printer but otherwise unchecked: templates are trusted build inputs.
    """

    val = raw.strip()
    if not val:
        return None
    if val.startswith("$"):
        name, dot, key = val[1:].partition(".")
        if not dot or not name or not key:
            raise CompileError(f"dynamic lookup {{{val}}} must have the form {{$name.key}}")
        return Index(name, key)
    if val.startswith("props.") and len(val) > len("props."):
        rest = val[len("props.") :]
        if is_identifier(rest):
            return Field("props", capitalize(rest))
        return Code("props." + capitalize(rest))
    return Code(val)


def _merge_literals(tokens: list[Expr]) -> list[Expr]:
    out: list[Expr] = []
    for tok in tokens:
        if isinstance(tok, Str) and out and isinstance(out[-1], Str):
            out[-1] = Str(out[-1].value + tok.value)
        else:
            out.append(tok)
    return out


def _split_braced(text: str) -> list[Expr]:
    tokens: list[Expr] = []
    pos = 0
    for m in _BRACED_RE.finditer(text):
        if m.start() > pos:
            tokens.append(Str(text[pos : m.start()]))
        tok = expression_token(m.group(1))
        if tok is not None:
            tokens.append(tok)
        pos = m.end()
    if pos < len(text):
        tokens.append(Str(text[pos:]))
    return tokens


def split_tokens(text: str, *, literal_double_braces: bool = False) -> list[Expr]:
    """Split text into alternating literal and expression tokens, in order."""

    if not literal_double_braces:
        return _merge_literals(_split_braced(text))

    tokens: list[Expr] = []
    pos = 0
    for m in _DOUBLE_BRACED_RE.finditer(text):
        tokens.extend(_split_braced(text[pos : m.start()]))
        tokens.append(Str(m.group(0)))
        pos = m.end()
    tokens.extend(_split_braced(text[pos:]))
    return _merge_literals(tokens)


def escape_attribute(value: str) -> str:
    """Re-escape a parsed attribute literal for a double-quoted attribute."""
    return value.replace("&", "&amp;").replace('"', "&quot;")


def join_tokens(tokens: list[Expr]) -> Expr | None:
    if not tokens:
        return None
    if len(tokens) == 1:
        return tokens[0]
    return R(*tokens)


class NodeCompiler:
    def __init__(
        self,
        comp_info: CompInfo,
        *,
        schema: PropSchema | None = None,
        component: str = "",
        log: logging.Logger | None = None,
    ) -> None:
        self.comp_info = comp_info
        self.schema = schema
        self.component = component
        self.log = log or logger

    def compile_document(self, doc: Document) -> Expr:
        return R(*self.children(doc.children))

    def children(self, nodes: list[Node]) -> list[Expr]:
        """Compile sibling nodes for a child position, folding if/elseif/else chains."""

        out: list[Expr] = []
        i = 0
        while i < len(nodes):
            node = nodes[i]
            if isinstance(node, Element) and node.tag == "if":
                expr, i = self._if_chain(nodes, i)
                out.append(expr)
                continue
            expr = self.node(node)
            if expr is not None:
                out.append(as_node(expr))
            i += 1
        return out

    def node(self, node: Node) -> Expr | None:
        if isinstance(node, Text):
            return self.text(node.data)
        return self.element(node)

    def text(self, data: str) -> Expr | None:
        return join_tokens(split_tokens(data, literal_double_braces=True))

    def attr_value(self, raw: str) -> Expr:
        expr = join_tokens(split_tokens(raw))
        return expr if expr is not None else Str(raw)

    def html_attr_value(self, raw: str) -> Expr:
        """Compile a value bound for an ``Attrs`` map; literal parts come back escaped.

        The parser has already decoded character references and the runtime
        writes string attributes verbatim between double quotes.
        """

        tokens = [
            Str(escape_attribute(t.value)) if isinstance(t, Str) else t for t in split_tokens(raw)
        ]
        expr = join_tokens(tokens)
        return expr if expr is not None else Str(escape_attribute(raw))

    def element(self, el: Element) -> Expr:
        tag = el.tag
        if tag == "for":
            return self._for(el)
        if tag in ("elseif", "else"):
            raise CompileError(f"<{tag}> must directly follow an <if> or <elseif>")
        if tag == "slot":
            return self._slot_placeholder(el)

        comp = self.comp_info.get(tag)
        if comp is not None:
            return self._component(el, comp)
        if tag in STANDARD_TAGS or "-" in tag:
            return self._standard(el)
        raise CompileError(f"unknown element <{tag}>: not a standard HTML tag or a defined component")

    def _attrs(self, pairs: list[tuple[str, str]]) -> MapLit:
        return MapLit("Attrs", tuple((Str(k), self.html_attr_value(v)) for k, v in pairs))

    def _standard(self, el: Element) -> Call:
        if el.tag in RAW_TEXT_ELEMENTS:
            raw = el.text()
            children: list[Expr] = [R(Str(raw))] if raw else []
        else:
            children = self.children(el.children)
        return Call("E", (Str(el.tag), self._attrs(el.attrs), *children))

    def _component(self, el: Element, comp: ComponentInfo) -> Call:
        fields: list[tuple[str, Expr]] = []
        passthrough: list[tuple[str, str]] = []
        for key, value in el.attrs:
            field = comp.props.get(key)
            if field is None:
                passthrough.append((key, value))
            else:
                fields.append((field, self.attr_value(value)))

        given = {f for f, _ in fields}
        slots: dict[str, Expr] = {}
        rest: list[Node] = []
        for child in el.children:
            if not (isinstance(child, Element) and child.tag == "slot"):
                rest.append(child)
                continue
            name = child.get("name")
            if not name:
                raise CompileError(f'<slot> passed to <{comp.name}> requires a name attribute')
            field = comp.props.get(slot_prop_key(name).lower())
            if field is None:
                self.log.warning(
                    "%s: <%s> declares no slot %r; slot content dropped",
                    self.component or "<markup>",
                    comp.name,
                    name,
                )
                continue
            if field in given or field in slots:
                raise CompileError(f"<{comp.name}> prop {field} is given more than once")
            slots[field] = R(*self.children(child.children))

        for field in sorted(slots):
            fields.append((field, slots[field]))

        return Call(
            f"{comp.name}Comp",
            (StructLit(comp.name, tuple(fields)), self._attrs(passthrough), *self.children(rest)),
        )

    def _single_expression(self, el: Element, attr: str, example: str) -> Expr:
        raw = el.get(attr)
        if raw is None or not raw.strip():
            raise CompileError(f"<{el.tag}> requires a {attr} attribute, e.g. {example}")
        m = _BRACED_RE.fullmatch(raw.strip())
        tok = expression_token(m.group(1)) if m else None
        if tok is None:
            raise CompileError(
                f"invalid {attr} {raw!r} in <{el.tag}>: expected one {{expression}}, e.g. {example}"
            )
        return tok

    def _for(self, el: Element) -> Loop:
        source = self._single_expression(el, "items", "<for items={props.Items} as=\"item\">")
        if isinstance(source, Index) and source.name == "attrs":
            raise CompileError("cannot iterate $attrs in <for>; declare the collection as a prop")

        var = (el.get("as") or "").strip() or "item"
        if not is_identifier(var):
            raise CompileError(f"invalid loop variable {var!r} in <for as=...>")
        if var in RESERVED_LOOP_VARS:
            raise CompileError(
                f"loop variable {var!r} is reserved in <for as=...>; pick another name"
            )
        return Loop(var=var, source=source, body=tuple(self.children(el.children)))

    def _if_chain(self, nodes: list[Node], start: int) -> tuple[Conditional, int]:
        """Compile the chain starting at ``nodes[start]``; return it and the next index."""

        first = nodes[start]
        assert isinstance(first, Element)
        branches = [(self._condition(first), tuple(self.children(first.children)))]
        otherwise: tuple[Expr, ...] | None = None

        last = start
        j = start + 1
        while j < len(nodes):
            sib = nodes[j]
            if isinstance(sib, Text) and not sib.data.strip():
                j += 1
                continue
            if isinstance(sib, Element) and sib.tag == "elseif":
                branches.append((self._condition(sib), tuple(self.children(sib.children))))
                last = j
                j += 1
                continue
            if isinstance(sib, Element) and sib.tag == "else":
                otherwise = tuple(self.children(sib.children))
                last = j
            break

        return Conditional(branches=tuple(branches), otherwise=otherwise), last + 1

    def _condition(self, el: Element) -> Expr:
        return self._single_expression(el, "condition", f"<{el.tag} condition={{props.Show}}>")

    def _slot_placeholder(self, el: Element) -> Expr:
        name = el.get("name")
        if not name:
            raise CompileError('<slot> requires a name attribute (e.g. <slot name="header"/>)')
        prop = self.schema.get(slot_prop_key(name)) if self.schema is not None else None
        if prop is not None and prop.type != SLOT_TYPE:
            # Declared with its own type in the props block; render it as a value.
            return R(Field("props", prop.field))
        field = prop.field if prop is not None else capitalize(slot_prop_key(name))
        # An unfilled slot is a nil Element and must render nothing.
        return Conditional(
            branches=((Code(f"props.{field} != nil"), (Field("props", field, Shape.NODE),)),),
        )


def compile_markup(
    doc: Document,
    comp_info: CompInfo,
    *,
    schema: PropSchema | None = None,
    component: str = "",
    log: logging.Logger | None = None,
) -> Expr:
    """Compile a parsed document; `schema` is the compiled component's own props."""

    compiler = NodeCompiler(comp_info, schema=schema, component=component, log=log)
    return compiler.compile_document(doc)


def compile_component(
    markup: str,
    comp_info: CompInfo,
    *,
    schema: PropSchema | None = None,
    component: str = "",
    log: logging.Logger | None = None,
) -> Expr:
    """Parse and compile one component's ``html`` block."""

    return compile_markup(
        parse_markup(markup), comp_info, schema=schema, component=component, log=log
    )
