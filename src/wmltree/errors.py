"""Error types with formatted source context."""

from __future__ import annotations

from dataclasses import dataclass


class WmlError(Exception):
    """Base class for fatal errors, carrying file, line and source context."""

    kind = "error"

    def __init__(
        self,
        message: str,
        line: int = 0,
        source: str = "",
        filename: str = "input.cfg",
    ) -> None:
        self.message = message
        self.line = line
        self.source = source
        self.filename = filename
        super().__init__(self.format())

    def format(self, filename: str | None = None) -> str:
        if filename is None:
            filename = self.filename
        lines = self.source.splitlines()
        line_idx = self.line - 1

        if 0 <= line_idx < len(lines):
            source_line = lines[line_idx].rstrip("\r")
        else:
            source_line = ""

        line_num = str(self.line)
        gutter_width = len(line_num) + 1

        blank_gutter = " " * gutter_width + "|"
        line_gutter = f"{line_num:>{gutter_width - 1}} |"

        result = f"{self.kind}: {self.message}\n{' ' * gutter_width}--> {filename}:{self.line}"
        if source_line:
            result += f"\n{blank_gutter}\n{line_gutter} {source_line}"
        return result


class StructuralError(WmlError):
    """Tag open/close mismatch, missing merge target, or unbalanced braces."""

    kind = "structural error"


class WmlSyntaxError(WmlError):
    """Malformed attribute, string, number, or image expression."""

    kind = "syntax error"


class SemanticError(WmlError):
    """Duplicate macro, arity mismatch, or runaway expansion."""

    kind = "semantic error"

    def __init__(
        self,
        message: str,
        line: int = 0,
        source: str = "",
        filename: str = "input.cfg",
        call_stack: list[str] | None = None,
    ) -> None:
        self.call_stack = call_stack or []
        super().__init__(message, line, source, filename)

    def format(self, filename: str | None = None) -> str:
        result = super().format(filename)
        if self.call_stack:
            chain = " -> ".join(f"{{{name}}}" for name in self.call_stack)
            result += f"\n  in expansion chain: {chain}"
        return result


@dataclass(frozen=True, slots=True)
class LookupWarning:
    """A macro invocation naming an undefined macro. Recoverable."""

    name: str
    filename: str
    line: int

    @property
    def message(self) -> str:
        return f"no macro definition for: {self.name}"

    def format(self) -> str:
        return f"warning: {self.message}\n  --> {self.filename}:{self.line}"
