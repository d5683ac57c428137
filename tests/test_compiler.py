from __future__ import annotations

import logging

import pytest

from gohtmlx.compiler import compile_component, expression_token, split_tokens
from gohtmlx.errors import CompileError
from gohtmlx.ir import Code, Conditional, Field, Index, Str
from gohtmlx.printer import print_expr
from gohtmlx.schema import CompInfo, build_comp_info, build_prop_schema


def _info(*components: tuple[str, str | None, str]) -> CompInfo:
    return build_comp_info(
        (name, build_prop_schema(props, markup)) for name, props, markup in components
    )


def _go(markup: str, info: CompInfo | None = None, **kwargs) -> str:
    return print_expr(compile_component(markup, info or _info(), **kwargs))


# --- expression tokens ---


def test_expression_token_rewrites() -> None:
    assert expression_token("props.name") == Field("props", "Name")
    assert expression_token("$data.title") == Index("data", "title")
    assert expression_token("len(xs)") == Code("len(xs)")
    assert expression_token("   ") is None


def test_props_path_keeps_rest_verbatim() -> None:
    assert expression_token("props.user.Name") == Code("props.User.Name")


@pytest.mark.parametrize("raw", ["$data", "$.x", "$data."])
def test_dynamic_lookup_requires_a_key(raw: str) -> None:
    with pytest.raises(CompileError, match=r"\$name\.key"):
        expression_token(raw)


def test_split_tokens_keeps_order_and_drops_empty() -> None:
    assert split_tokens("a {x} b {} c {y}") == [
        Str("a "),
        Code("x"),
        Str(" b  c "),
        Code("y"),
    ]


def test_double_braces_are_literal_in_text() -> None:
    assert split_tokens("{{ .Name }} and {x}", literal_double_braces=True) == [
        Str("{{ .Name }} and "),
        Code("x"),
    ]


# --- text and standard tags ---


def test_props_scenario_matches_expected_go() -> None:
    assert _go('<div class="x">{props.Name}</div>') == (
        "R(E(`div`, Attrs{`class`: `x`}, R(props.Name)))"
    )


def test_multi_expression_text_keeps_both_in_order() -> None:
    assert _go("<p>{a} - {b}</p>") == "R(E(`p`, Attrs{}, R(a, ` - `, b)))"


def test_plain_text_and_nested_elements() -> None:
    assert _go("<ul><li>one</li><li>two</li></ul>") == (
        "R(E(`ul`, Attrs{}, E(`li`, Attrs{}, R(`one`)), E(`li`, Attrs{}, R(`two`))))"
    )


def test_dynamic_lookup_in_text() -> None:
    assert _go("<span>{$data.title}</span>") == 'R(E(`span`, Attrs{}, R(data["title"])))'


def test_attribute_values_use_token_rule() -> None:
    out = _go('<a href={props.Url} class="btn {props.Kind}" title="plain" hidden>x</a>')
    assert out == (
        "R(E(`a`, Attrs{`href`: props.Url, `class`: R(`btn `, props.Kind), "
        "`title`: `plain`, `hidden`: ``}, R(`x`)))"
    )


def test_attribute_literals_are_reescaped() -> None:
    out = _go('<a title="say &quot;hi&quot; &amp; go" href="/q?a=1&b={props.B}">x</a>')
    assert "`title`: `say &quot;hi&quot; &amp; go`" in out
    assert "`href`: R(`/q?a=1&amp;b=`, props.B)" in out


def test_text_entities_are_not_reescaped() -> None:
    assert _go("<p>a &amp; b</p>") == "R(E(`p`, Attrs{}, R(`a &amp; b`)))"


def test_double_braces_in_text_are_kept() -> None:
    assert _go("<p>{{x}}</p>") == "R(E(`p`, Attrs{}, R(`{{x}}`)))"


def test_script_and_style_are_raw() -> None:
    assert _go("<script>var o = {a: 1};</script>") == (
        "R(E(`script`, Attrs{}, R(`var o = {a: 1};`)))"
    )
    assert _go("<style></style>") == "R(E(`style`, Attrs{}))"


def test_hyphenated_custom_element_is_generic() -> None:
    assert _go("<my-widget></my-widget>") == "R(E(`my-widget`, Attrs{}))"


def test_unknown_tag_is_a_compile_error() -> None:
    with pytest.raises(CompileError, match="unknown element <cardd>"):
        _go("<cardd></cardd>")


def test_top_level_siblings_are_joined() -> None:
    assert _go("<b>1</b><i>2</i>") == "R(E(`b`, Attrs{}, R(`1`)), E(`i`, Attrs{}, R(`2`)))"


# --- components ---


CARD = ("Card", "title: string", '<div><slot name="header"/><slot name="footer"/></div>')


def test_component_call_routes_attrs_slots_and_children() -> None:
    out = _go(
        '<Card title="Hi" id="c1">'
        '<slot name="header"><b>H</b></slot>'
        "<i>d</i>"
        "</Card>",
        _info(CARD),
    )
    assert out == (
        "R(CardComp(Card{Title: `Hi`, SlotHeader: R(E(`b`, Attrs{}, R(`H`)))}, "
        "Attrs{`id`: `c1`}, E(`i`, Attrs{}, R(`d`))))"
    )


def test_slot_fields_are_sorted_not_document_order() -> None:
    out = _go(
        '<card><slot name="header">h</slot><slot name="footer">f</slot></card>',
        _info(CARD),
    )
    assert "Card{SlotFooter: R(R(`f`)), SlotHeader: R(R(`h`))}" in out


def test_empty_call_site_slot() -> None:
    out = _go('<Card><slot name="header"></slot></Card>', _info(CARD))
    assert out == "R(CardComp(Card{SlotHeader: R()}, Attrs{}))"


def test_undeclared_call_site_slot_is_dropped_with_warning(caplog) -> None:
    log = logging.getLogger("tests.compiler")
    with caplog.at_level(logging.WARNING, logger="tests.compiler"):
        out = _go(
            '<Card><slot name="sidebar">x</slot></Card>',
            _info(CARD),
            component="Page",
            log=log,
        )
    assert out == "R(CardComp(Card{}, Attrs{}))"
    assert "no slot 'sidebar'" in caplog.text
    assert "Page" in caplog.text


def test_nameless_call_site_slot_is_an_error() -> None:
    with pytest.raises(CompileError, match="requires a name"):
        _go("<Card><slot>x</slot></Card>", _info(CARD))


def test_prop_given_twice_is_an_error() -> None:
    info = _info(("Box", "slotBody: Element", ""))
    with pytest.raises(CompileError, match="more than once"):
        _go('<Box slotbody={x}><slot name="body">y</slot></Box>', info)


def test_component_takes_priority_over_standard_tag() -> None:
    info = _info(("Button", "label: string", "<button>{props.Label}</button>"))
    assert _go('<button label="Go"></button>', info) == (
        "R(ButtonComp(Button{Label: `Go`}, Attrs{}))"
    )


def test_component_attributes_are_case_insensitive() -> None:
    info = _info(("UserCard", "userName: string", "<p/>"))
    assert _go("<UserCard USERNAME={u.Name}/>", info) == (
        "R(UserCardComp(UserCard{UserName: u.Name}, Attrs{}))"
    )


# --- slot placeholders ---


def test_slot_placeholder_is_nil_guarded() -> None:
    expr = compile_component('<div><slot name="header"/></div>', _info())
    div = expr.args[0]
    guard = div.args[2]
    assert isinstance(guard, Conditional)
    (cond, body), = guard.branches
    assert cond == Code("props.SlotHeader != nil")
    assert print_expr(body[0]) == "props.SlotHeader"
    assert guard.otherwise is None


def test_slot_placeholder_with_declared_value_type_renders_the_value() -> None:
    markup = '<div><slot name="header"/></div>'
    schema = build_prop_schema("slotHeader: string", markup)
    out = _go(markup, schema=schema)
    assert out == "R(E(`div`, Attrs{}, R(props.SlotHeader)))"
    assert "!= nil" not in out


def test_slot_placeholder_uses_declared_field_spelling() -> None:
    markup = '<div><slot name="header"/></div>'
    out = _go(markup, schema=build_prop_schema("slotheader: Element", markup))
    assert "props.Slotheader != nil" in out


def test_slot_placeholder_requires_name() -> None:
    with pytest.raises(CompileError, match="requires a name"):
        _go("<div><slot/></div>")


# --- for ---


def test_for_scenario() -> None:
    assert _go('<ul><for items={props.Items} as="row"><li>{row}</li></for></ul>') == (
        "R(E(`ul`, Attrs{}, R(func() []Element {\n"
        "\tresp := []Element{}\n"
        "\tfor _, row := range props.Items {\n"
        "\t\tresp = append(resp, E(`li`, Attrs{}, R(row)))\n"
        "\t}\n"
        "\treturn resp\n"
        "}())))"
    )


def test_for_defaults_variable_to_item() -> None:
    out = _go("<for items={xs}><b>{item}</b></for>")
    assert "for _, item := range xs {" in out


@pytest.mark.parametrize(
    ("markup", "match"),
    [
        ("<for><b/></for>", "requires a items attribute"),
        ("<for items={$attrs.list}></for>", r"cannot iterate \$attrs"),
        ('<for items="{ $attrs.rows }"><li>{item}</li></for>', r"cannot iterate \$attrs"),
        ('<for items="props.Items"></for>', "expected one"),
        ("<for items={a}{b}></for>", "expected one"),
        ("<for items={}></for>", "expected one"),
        ('<for items={xs} as="1x"></for>', "invalid loop variable"),
        ('<for items={xs} as="resp"><b/></for>', "reserved"),
        ('<for items={xs} as="_"><b/></for>', "reserved"),
    ],
)
def test_for_errors(markup: str, match: str) -> None:
    with pytest.raises(CompileError, match=match):
        _go(markup)


# --- if / elseif / else ---


def test_if_chain_is_one_conditional() -> None:
    expr = compile_component(
        "<if condition={a}>1</if>\n<elseif condition={b}>2</elseif>\n<else>3</else>",
        _info(),
    )
    (chain,) = expr.args
    assert isinstance(chain, Conditional)
    assert [c for c, _ in chain.branches] == [Code("a"), Code("b")]
    assert chain.otherwise is not None
    assert print_expr(chain) == (
        "R(func() []Element {\n"
        "\tif a {\n"
        "\t\treturn []Element{R(`1`)}\n"
        "\t}\n"
        "\tif b {\n"
        "\t\treturn []Element{R(`2`)}\n"
        "\t}\n"
        "\treturn []Element{R(`3`)}\n"
        "}())"
    )


def test_if_without_else_ends_in_empty_return() -> None:
    out = _go("<div><if condition={props.Show}>yes</if></div>")
    assert "if props.Show {" in out
    assert "\treturn []Element{}\n" in out


def test_chain_stops_at_non_chain_sibling() -> None:
    expr = compile_component(
        "<if condition={a}>1</if><p>x</p><if condition={b}>2</if><else>3</else>", _info()
    )
    kinds = [type(c).__name__ for c in expr.args]
    assert kinds == ["Conditional", "Call", "Conditional"]
    assert expr.args[0].otherwise is None
    assert expr.args[2].otherwise is not None


def test_if_chains_fold_in_nested_child_positions() -> None:
    info = _info(CARD)
    out = _go(
        '<for items={xs}><if condition={item}>a</if><else>b</else></for>'
        '<Card><slot name="header"><if condition={c}>h</if></slot><if condition={d}>x</if></Card>',
        info,
    )
    assert out.count("\treturn []Element{R(`b`)}") == 1
    assert "if c {" in out and "if d {" in out


@pytest.mark.parametrize("markup", ["<else>x</else>", "<p>a</p><elseif condition={b}>x</elseif>"])
def test_stray_else_is_an_error(markup: str) -> None:
    with pytest.raises(CompileError, match="must directly follow"):
        _go(markup)


def test_if_requires_condition() -> None:
    with pytest.raises(CompileError, match="requires a condition"):
        _go("<if>x</if>")
