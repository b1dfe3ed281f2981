"""WML-style config parser: macro expansion, tag tree building, value coercion."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from wmltree.coerce import TypedNode
    from wmltree.macros import MacroTable
    from wmltree.tree import Document

__version__ = "0.1.0"


def expand_source(
    source: str,
    filename: str = "input.cfg",
    table: MacroTable | None = None,
    max_depth: int = 64,
) -> str:
    """Preprocess and expand *source*, returning macro-free text.

    Definitions found in *source* are added to *table*, which is then frozen.    """
    from wmltree.expand import expand
    from wmltree.macros import MacroTable, preprocess

    if table is None:
        table = MacroTable()
    text = preprocess(source, filename, table)
    table.freeze()
    return expand(text, table, filename, max_depth)


def parse_document(
    source: str,
    filename: str = "input.cfg",
    table: MacroTable | None = None,
    max_depth: int = 64,
) -> Document:
    """Preprocess, expand, and build *source* into an untyped Document."""
    from wmltree.builder import build

    return build(expand_source(source, filename, table, max_depth), filename)


def load(
    source: str,
    filename: str = "input.cfg",
    table: MacroTable | None = None,
    max_depth: int = 64,
) -> TypedNode:
    """Run the whole pipeline on *source* and return the typed tree."""
    from wmltree.coerce import coerce

    return coerce(parse_document(source, filename, table, max_depth))
