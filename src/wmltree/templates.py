"""Macro body dump: each definition as an unexpanded template tree.

Invocations inside a body become ``[@merge]`` children carrying the called
macro in ``@call`` and each argument bound to the lower-cased parameter
name. Parameter references in values become ``@eval`` expressions, e.g.
``{IMAGESTEM}[1~3].png`` turns into ``@eval imagestem + '[1~3].png'``.
"""

from __future__ import annotations

import logging
import re

from wmltree.builder import _MACRO, Builder, _Frame
from wmltree.coerce import TypedNode, TypedValue
from wmltree.errors import SemanticError
from wmltree.expand import EMPTY_ARGUMENT, split_invocation, unwrap_argument
from wmltree.macros import MacroDefinition, MacroTable
from wmltree.tree import Document, Node, RawValue

logger = logging.getLogger(__name__)

_REFERENCE = re.compile(r"\{([A-Za-z0-9_]+)\}")


def eval_expression(text: str) -> str:
    """Rewrite ``{PARAM}`` references in *text* into an ``@eval`` expression.

    Text without references is returned unchanged.
    """
    terms: list[str] = []
    pos = 0
    for m in _REFERENCE.finditer(text):
        if m.start() > pos:
            terms.append(_quote(text[pos : m.start()]))
        terms.append(m.group(1).lower())
        pos = m.end()
    if not terms:
        return text
    if pos < len(text):
        terms.append(_quote(text[pos:]))
    return "@eval " + " + ".join(terms)


def _quote(literal: str) -> str:
    return "'" + literal.replace("\\", "\\\\").replace("'", "\\'") + "'"


class MacroBodyBuilder(Builder):
    """Builder that keeps invocation lines as ``[@merge]`` nodes.

    A ``[+name]`` with no earlier ``[name]`` in the body refers to a tag the
    caller provides, so it opens a node named ``+name`` instead of failing.
    """

    def __init__(self, definition: MacroDefinition, table: MacroTable) -> None:
        # pad so line numbers match the file the macro was defined in
        source = "\n" * (definition.line - 1) + definition.body
        super().__init__(source, definition.filename)
        self.definition = definition
        self.table = table

    def _dispatch(self, code: str) -> None:
        if _MACRO.fullmatch(code):
            self._call(code[1:-1])
            return
        super()._dispatch(code)

    def _open_merge(self, name: str) -> None:
        if name in self._last:
            super()._open_merge(name)
            return
        node = self._doc.add_node("+" + name, self._stack[-1].node, self._line)
        self._stack.append(_Frame(node.index, True, self._line))

    def _call(self, inner: str) -> None:
        tokens = split_invocation(inner)
        if not tokens:
            raise self._structural("empty macro invocation '{}'")
        name, args = tokens[0], [_argument(arg) for arg in tokens[1:]]
        node = self._doc.add_node("@merge", self._stack[-1].node, self._line)

        if name in self.definition.params:
            node.set_attr("@call", RawValue("{" + name + "}"))
            return

        called = self.table.get(name)
        if called is None:
            logger.warning(
                "no macro definition for: %s (in macro %s, %s:%d)",
                name,
                self.definition.name,
                self._filename,
                self._line,
            )
            node.set_attr("@call", RawValue(name))
            for i, arg in enumerate(args, start=1):
                node.set_attr(f"@{i}", RawValue(arg))
            return

        if len(args) != len(called.params):
            raise SemanticError(
                f"macro {name} given the wrong number of arguments: "
                f"expected {len(called.params)}, given {len(args)}",
                self._line,
                self._source,
                self._filename,
                call_stack=[self.definition.name],
            )
        node.set_attr("@call", RawValue(name))
        for param, arg in zip(called.params, args):
            node.set_attr(param.lower(), RawValue(arg))


def _argument(arg: str) -> str:
    value = unwrap_argument(arg)
    return "" if value == EMPTY_ARGUMENT else value


def _to_typed(doc: Document) -> TypedNode:
    stack: list[TypedNode] = []
    done: list[TypedNode] = []

    def enter(node: Node) -> None:
        stack.append(TypedNode(node.name))

    def exit(node: Node) -> None:
        typed = stack.pop()
        for key, value in node.attributes.items():
            typed.attributes[key] = eval_expression(value.text)
        if stack:
            stack[-1].children.append(typed)
        else:
            done.append(typed)

    doc.walk(enter, exit)
    return done[0]


def dump_macro(definition: MacroDefinition, table: MacroTable) -> dict[str, TypedValue]:
    """Template tree of one definition as a plain mapping."""
    doc = MacroBodyBuilder(definition, table).build()
    return {
        "params": [p.lower() for p in definition.params],
        "body": _to_typed(doc).to_dict(),
    }


def dump_macros(table: MacroTable) -> dict[str, TypedValue]:
    """Template trees of every definition in *table*, keyed by macro name."""
    return {name: dump_macro(table[name], table) for name in sorted(table)}
