"""Macro table and the #define/#enddef preprocessing pass."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path

from wmltree.errors import SemanticError, StructuralError, WmlSyntaxError
from wmltree.lines import split_lines

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MacroDefinition:
    """A named text template: parameter names plus the verbatim body."""

    name: str
    params: tuple[str, ...]
    body: str
    filename: str
    line: int


@dataclass
class MacroTable(Mapping[str, MacroDefinition]):
    """Name → definition mapping, filled once by preprocessing then frozen."""

    _definitions: dict[str, MacroDefinition] = field(default_factory=dict)
    frozen: bool = False

    def __getitem__(self, name: str) -> MacroDefinition:
        return self._definitions[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._definitions)

    def __len__(self) -> int:
        return len(self._definitions)

    def register(self, definition: MacroDefinition, source: str = "") -> None:
        """Add a definition. Duplicate names are fatal, never shadowed."""
        if self.frozen:
            raise SemanticError(
                f"cannot define macro {definition.name}: macro table is frozen",
                definition.line - 1,
                source,
                definition.filename,
            )
        existing = self._definitions.get(definition.name)
        if existing is not None:
            raise SemanticError(
                f"duplicate macro definition: {definition.name} "
                f"(first defined at {existing.filename}:{existing.line})",
                # the #define line sits just above the body
                definition.line - 1,
                source,
                definition.filename,
            )
        self._definitions[definition.name] = definition

    def freeze(self) -> MacroTable:
        self.frozen = True
        return self


def preprocess(text: str, filename: str, table: MacroTable) -> str:
    """Collect ``#define``/``#enddef`` blocks from *text* into *table*.

    Returns the text with each definition block blanked out, one empty line
    per consumed line, so later passes keep the input line numbers.
    """
    output: list[str] = []
    name: str | None = None
    params: tuple[str, ...] = ()
    body: list[str] = []
    start_line = 0
    define_line = 0

    for line in split_lines(text):
        if line.directive == "define":
            if name is not None:
                raise StructuralError(
                    f"found #define inside the definition of {name} "
                    f"(opened on line {define_line})",
                    line.number,
                    text,
                    filename,
                )
            if not line.directive_args:
                raise WmlSyntaxError("#define without a macro name", line.number, text, filename)
            name = line.directive_args[0]
            if name in table:
                existing = table[name]
                raise SemanticError(
                    f"duplicate macro definition: {name} "
                    f"(first defined at {existing.filename}:{existing.line})",
                    line.number,
                    text,
                    filename,
                )
            params = line.directive_args[1:]
            body = []
            define_line = line.number
            start_line = line.number + 1
            output.append("")
            continue

        if line.directive == "enddef":
            if name is None:
                raise StructuralError(
                    "found #enddef outside of a macro definition", line.number, text, filename
                )
            if line.code:
                body.append(line.code + "\n")
            table.register(
                MacroDefinition(name, params, "".join(body), filename, start_line), text
            )
            logger.debug("defined macro %s%s at %s:%d", name, list(params), filename, define_line)
            name = None
            output.append("")
            continue

        if name is not None:
            body.append(line.raw + "\n")
            output.append("")
        else:
            output.append(line.raw)

    if name is not None:
        raise StructuralError(
            f"unterminated definition of {name} (missing #enddef)",
            define_line,
            text,
            filename,
        )

    return "\n".join(output)


def preprocess_files(paths: Iterable[Path], table: MacroTable) -> MacroTable:
    """Preprocess every file in *paths* into one shared table.

    Files are visited in sorted order so the run is deterministic.
    """
    from wmltree.files import read_file

    for path in sorted(paths):
        preprocess(read_file(path), str(path), table)
    return table
