"""Print `gohtmlx.ir` expression trees as Go source text."""

from __future__ import annotations

import json
import re

from gohtmlx.ir import Call, Code, Conditional, Expr, Field, Index, Loop, MapLit, Str, StructLit


def go_string(s: str) -> str:
    """Quote `s` as a Go string literal.

    Raw (backtick) strings cannot hold a backtick, and Go drops carriage returns
    from them, so those fall back to an escaped interpreted string.
    """

    if "`" not in s and "\r" not in s:
        return f"`{s}`"
    # JSON string escapes are a subset of Go's.
    return json.dumps(s, ensure_ascii=False)


class GoPrinter:
    def __init__(self, *, indent: str = "\t") -> None:
        self.indent = indent

    def expr(self, node: Expr, depth: int = 0) -> str:
        if isinstance(node, Str):
            return go_string(node.value)
        if isinstance(node, Code):
            return node.text
        if isinstance(node, Index):
            return f"{node.name}[{json.dumps(node.key, ensure_ascii=False)}]"
        if isinstance(node, Field):
            return f"{node.base}.{node.name}"
        if isinstance(node, Call):
            args = [self.expr(a, depth) for a in node.args]
            if node.spread and args:
                args[-1] += "..."
            return f"{node.func}({', '.join(args)})"
        if isinstance(node, MapLit):
            entries = ", ".join(
                f"{self.expr(k, depth)}: {self.expr(v, depth)}" for k, v in node.entries
            )
            return f"{node.type}{{{entries}}}"
        if isinstance(node, StructLit):
            fields = ", ".join(f"{name}: {self.expr(v, depth)}" for name, v in node.fields)
            return f"{node.type}{{{fields}}}"
        if isinstance(node, Loop):
            return self._loop(node, depth)
        if isinstance(node, Conditional):
            return self._conditional(node, depth)
        raise TypeError(f"cannot print {type(node).__name__}")

    def _elements(self, items: tuple[Expr, ...], depth: int) -> str:
        return "[]Element{" + ", ".join(self.expr(i, depth) for i in items) + "}"

    def _loop(self, node: Loop, depth: int) -> str:
        ind = self.indent
        pad = ind * depth
        body = [self.expr(item, depth + 2) for item in node.body]

        lines = [
            "R(func() []Element {",
            f"{pad}{ind}resp := []Element{{}}",
            f"{pad}{ind}for _, {node.var} := range {self.expr(node.source, depth + 1)} {{",
        ]
        if node.var != "_" and not any(
            re.search(rf"\b{re.escape(node.var)}\b", b) for b in body
        ):
            lines.append(f"{pad}{ind * 2}_ = {node.var}")
        for b in body:
            lines.append(f"{pad}{ind * 2}resp = append(resp, {b})")
        lines += [
            f"{pad}{ind}}}",
            f"{pad}{ind}return resp",
            f"{pad}}}())",
        ]
        return "\n".join(lines)

    def _conditional(self, node: Conditional, depth: int) -> str:
        ind = self.indent
        pad = ind * depth
        lines = ["R(func() []Element {"]
        for cond, body in node.branches:
            lines += [
                f"{pad}{ind}if {self.expr(cond, depth + 1)} {{",
                f"{pad}{ind * 2}return {self._elements(body, depth + 2)}",
                f"{pad}{ind}}}",
            ]
        fallback = node.otherwise if node.otherwise is not None else ()
        lines.append(f"{pad}{ind}return {self._elements(fallback, depth + 1)}")
        lines.append(f"{pad}}}())")
        return "\n".join(lines)


def print_expr(node: Expr, *, depth: int = 0) -> str:
    return GoPrinter().expr(node, depth)
