"""--debug tree dump to stderr."""

from __future__ import annotations

import sys
from typing import TextIO

from wmltree.tree import Document, Node


def dump_document(doc: Document, *, file: TextIO = sys.stderr) -> None:
    """Print a human-readable tag tree with raw attributes to *file*."""
    depth = 0

    def enter(node: Node) -> None:
        nonlocal depth
        if node.parent is None:
            file.write(f"Document {doc.filename}\n")
        else:
            file.write(f"{_indent(depth)}[{node.name}]  (line {node.line})\n")
        for key, value in node.attributes.items():
            file.write(f"{_indent(depth + 1)}{key}={value.text!r} {value.kind.name}\n")
        depth += 1

    def exit(node: Node) -> None:
        nonlocal depth
        depth -= 1

    doc.walk(enter, exit)


def _indent(depth: int) -> str:
    return "  " * depth
