"""Document builder: turns macro-free text into a tree of tag nodes."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum, auto

from wmltree.errors import StructuralError, WmlSyntaxError
from wmltree.lines import SourceLine, split_lines
from wmltree.tree import ROOT, Document, RawValue, ValueKind

_OPEN_TAG = re.compile(r"\[(\+?)([A-Za-z0-9_]+)\]")
_CLOSE_TAG = re.compile(r"\[/([A-Za-z0-9_]+)\]")
_MACRO = re.compile(r"\{.*\}")
_NUMBER = re.compile(r"\d+(\.\d*)?")
_BOOLEANS = frozenset({"yes", "no", "true", "false"})


class _State(Enum):
    DEFAULT = auto()
    MULTILINE_STRING = auto()


@dataclass(slots=True)
class _Frame:
    node: int
    merge: bool
    line: int


class Builder:
    """Line-driven stack machine building a Document.

    Each frame on the stack is the current write target at one nesting
    level. ``[+name]`` pushes the most recently opened ``[name]`` node as a
    merge frame instead of creating a new node.
    """

    def __init__(self, source: str, filename: str = "input.cfg") -> None:
        self._source = source
        self._filename = filename
        self._doc = Document(filename, source)
        self._stack: list[_Frame] = [_Frame(ROOT, False, 0)]
        self._last: dict[str, int] = {}
        self._state = _State.DEFAULT
        self._line = 0

        # multiline string in progress
        self._ml_key = ""
        self._ml_parts: list[str] = []
        self._ml_translatable = False
        self._ml_line = 0

    def build(self) -> Document:
        for line in split_lines(self._source):
            self._line = line.number
            if self._state == _State.MULTILINE_STRING:
                self._continue_string(line)
            elif not line.is_blank:
                self._dispatch(line.code)

        if self._state == _State.MULTILINE_STRING:
            raise self._syntax(
                f"missing closing quote for attribute '{self._ml_key}'", self._ml_line
            )
        if len(self._stack) > 1:
            frame = self._stack[-1]
            name = self._doc.node(frame.node).name
            raise self._structural(f"unclosed tag [{name}]", frame.line)
        return self._doc

    # ------------------------------------------------------------------
    # Line dispatch
    # ------------------------------------------------------------------

    def _dispatch(self, code: str) -> None:
        m = _OPEN_TAG.fullmatch(code)
        if m:
            if m.group(1):
                self._open_merge(m.group(2))
            else:
                self._open_tag(m.group(2))
            return

        m = _CLOSE_TAG.fullmatch(code)
        if m:
            self._close_tag(m.group(1))
            return

        if _MACRO.fullmatch(code):
            raise self._structural(f"found an unexpanded macro: {code}")

        self._attribute(code)

    def _open_tag(self, name: str) -> None:
        node = self._doc.add_node(name, self._stack[-1].node, self._line)
        self._last[name] = node.index
        self._stack.append(_Frame(node.index, False, self._line))

    def _open_merge(self, name: str) -> None:
        index = self._last.get(name)
        if index is None:
            raise self._structural(f"no earlier [{name}] to merge [+{name}] into")
        self._stack.append(_Frame(index, True, self._line))

    def _close_tag(self, name: str) -> None:
        if len(self._stack) == 1:
            raise self._structural(f"closing tag [/{name}] with no open tag")
        frame = self._stack[-1]
        if not frame.merge:
            open_name = self._doc.node(frame.node).name
            if name != open_name:
                raise self._structural(f"tag name mismatch: [/{name}] closes [{open_name}]")
        self._stack.pop()

    # ------------------------------------------------------------------
    # Attributes
    # ------------------------------------------------------------------

    def _attribute(self, code: str) -> None:
        key, sep, value = code.partition("=")
        if not sep:
            raise self._syntax(f"expected '=' in attribute line: {code}")
        key = key.strip()
        if not key:
            raise self._syntax(f"missing attribute name before '=': {code}")
        value = value.strip()

        if value.count('"') == 1:
            quote = value.index('"')
            self._state = _State.MULTILINE_STRING
            self._ml_key = key
            self._ml_parts = [value[quote + 1 :]]
            self._ml_translatable = value[:quote].strip() == "_"
            self._ml_line = self._line
            return

        if value in _BOOLEANS:
            self._write(key, RawValue(value, ValueKind.BOOLEAN))
            return

        if _NUMBER.fullmatch(value):
            self._write(key, RawValue(value, ValueKind.NUMBER))
            return

        translatable = False
        first = value.find('"')
        if first != -1:
            translatable = value[:first].strip() == "_"
            value = value[first + 1 : value.rfind('"')]
        self._write(key, RawValue(_mark(value, translatable)))

    def _continue_string(self, line: SourceLine) -> None:
        text = line.raw.strip()
        quote = text.find('"')
        if quote == -1:
            self._ml_parts.append(text)
            return
        self._ml_parts.append(text[:quote])
        self._state = _State.DEFAULT
        value = "\n".join(self._ml_parts)
        self._write(self._ml_key, RawValue(_mark(value, self._ml_translatable)))
        self._ml_parts = []

    def _write(self, key: str, value: RawValue) -> None:
        self._doc.node(self._stack[-1].node).set_attr(key, value)

    # ------------------------------------------------------------------
    # Errors
    # ------------------------------------------------------------------

    def _structural(self, message: str, line: int | None = None) -> StructuralError:
        return StructuralError(
            message, self._line if line is None else line, self._source, self._filename
        )

    def _syntax(self, message: str, line: int | None = None) -> WmlSyntaxError:
        return WmlSyntaxError(
            message, self._line if line is None else line, self._source, self._filename
        )


def _mark(value: str, translatable: bool) -> str:
    """Wrap translatable strings in ``~`` sentinels."""
    return f"~{value}~" if translatable else value


def build(source: str, filename: str = "input.cfg") -> Document:
    """Convenience function: build a Document from macro-free text."""
    return Builder(source, filename).build()
