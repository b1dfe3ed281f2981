"""Macro expander: substitutes {NAME arg ...} invocations with macro bodies."""

from __future__ import annotations

import logging

from wmltree.errors import LookupWarning, SemanticError, StructuralError
from wmltree.lines import find_comment
from wmltree.macros import MacroTable

logger = logging.getLogger(__name__)

# Stands in for an empty "()" argument until the final cleanup pass.
EMPTY_ARGUMENT = "()"


class Expander:
    """Expand macro invocations in text against a MacroTable."""

    def __init__(self, table: MacroTable, filename: str = "input.cfg", max_depth: int = 64) -> None:
        self.table = table
        self.filename = filename
        self.max_depth = max_depth
        self.warnings: list[LookupWarning] = []
        self.call_stack: list[str] = []
        self._source = ""
        self._line = 0

    def expand(self, text: str) -> str:
        """Return *text* with every invocation replaced, recursively."""
        self._source = text
        self._line = 0
        self.call_stack.clear()
        return self._expand_text(text).replace(EMPTY_ARGUMENT, "")

    # ------------------------------------------------------------------
    # Scanning
    # ------------------------------------------------------------------

    def _expand_text(self, text: str) -> str:
        out_lines: list[str] = []
        buffer: list[str] | None = None

        for number, raw in enumerate(text.split("\n"), start=1):
            pos = find_comment(raw)
            code, comment = (raw, "") if pos == -1 else (raw[:pos], raw[pos:])
            if not self.call_stack and buffer is None:
                self._line = number

            out: list[str] = []
            for ch in code:
                if ch == "{":
                    if buffer is not None:
                        raise self._structural("'{' inside a macro invocation")
                    buffer = []
                    if not self.call_stack:
                        self._line = number
                elif ch == "}":
                    if buffer is None:
                        raise self._structural("'}' without a matching '{'")
                    out.append(self._invoke("".join(buffer)))
                    buffer = None
                elif buffer is not None:
                    buffer.append(ch)
                else:
                    out.append(ch)

            if buffer is not None:
                # invocation continues on the next line
                buffer.append(" ")
            out.append(comment)
            out_lines.append("".join(out))

        if buffer is not None:
            raise self._structural("unterminated macro invocation (missing '}')")

        return "\n".join(out_lines)

    # ------------------------------------------------------------------
    # Invocation
    # ------------------------------------------------------------------

    def _invoke(self, inner: str) -> str:
        tokens = split_invocation(inner)
        if not tokens:
            raise self._structural("empty macro invocation '{}'")
        name, args = tokens[0], tokens[1:]

        definition = self.table.get(name)
        if definition is None:
            warning = LookupWarning(name, self.filename, self._line)
            self.warnings.append(warning)
            logger.warning("%s (%s:%d)", warning.message, self.filename, self._line)
            return ""

        if len(args) != len(definition.params):
            raise SemanticError(
                f"macro {name} given the wrong number of arguments: "
                f"expected {len(definition.params)}, given {len(args)}",
                self._line,
                self._source,
                self.filename,
                call_stack=list(self.call_stack),
            )

        body = definition.body
        for param, arg in zip(definition.params, args):
            body = body.replace("{" + param + "}", unwrap_argument(arg))

        if "{" not in body:
            return body

        if len(self.call_stack) >= self.max_depth:
            raise SemanticError(
                f"macro expansion depth limit ({self.max_depth}) exceeded",
                self._line,
                self._source,
                self.filename,
                call_stack=[*self.call_stack, name],
            )

        self.call_stack.append(name)
        try:
            return self._expand_text(body)
        finally:
            self.call_stack.pop()

    def _structural(self, message: str) -> StructuralError:
        if self.call_stack:
            message += f" in the body of macro {self.call_stack[-1]}"
        return StructuralError(message, self._line, self._source, self.filename)


def split_invocation(text: str) -> list[str]:
    """Split an invocation into ``[name, arg, ...]`` on whitespace runs.

    Whitespace inside parentheses or double quotes does not split; inside
    parentheses it is collapsed to single spaces.
    """
    tokens: list[str] = []
    current: list[str] = []
    depth = 0
    in_quotes = False

    for ch in text:
        if ch == '"':
            in_quotes = not in_quotes
        elif not in_quotes:
            if ch == "(":
                depth += 1
            elif ch == ")" and depth > 0:
                depth -= 1
            elif ch.isspace():
                if depth == 0:
                    if current:
                        tokens.append("".join(current))
                        current = []
                    continue
                if current and current[-1] == " ":
                    continue
                ch = " "
        current.append(ch)

    if current:
        tokens.append("".join(current))
    return tokens


def unwrap_argument(arg: str) -> str:
    """Strip one layer of enclosing parentheses or quotes from *arg*.

    ``()`` becomes the empty-argument placeholder so positional text
    survives nested expansion.
    """
    if len(arg) >= 2 and arg[0] == "(" and arg[-1] == ")":
        inner = arg[1:-1].strip()
        return inner if inner else EMPTY_ARGUMENT
    if len(arg) >= 2 and arg[0] == '"' and arg[-1] == '"':
        return arg[1:-1]
    return arg


def expand(
    text: str,
    table: MacroTable,
    filename: str = "input.cfg",
    max_depth: int = 64,
) -> str:
    """Convenience function: expand *text* and return macro-free text."""
    return Expander(table, filename, max_depth).expand(text)
