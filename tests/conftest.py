"""Shared test fixtures and helpers."""

from __future__ import annotations

import pytest

from wmltree.builder import build
from wmltree.macros import MacroTable, preprocess
from wmltree.tree import Document, Node


@pytest.fixture
def table() -> MacroTable:
    """Return an empty macro table."""
    return MacroTable()


@pytest.fixture
def define(table: MacroTable):
    """Return a helper that preprocesses macro source into the shared table."""

    def _define(source: str, filename: str = "macros.cfg") -> MacroTable:
        preprocess(source, filename, table)
        return table

    return _define


@pytest.fixture
def build_source():
    """Return a helper that builds macro-free source into a Document."""

    def _build(source: str, filename: str = "test.cfg") -> Document:
        return build(source, filename)

    return _build


def assert_tag(
    node: Node,
    name: str,
    num_children: int | None = None,
    num_attrs: int | None = None,
) -> None:
    """Assert basic properties of a Node."""
    assert node.name == name, f"Expected name '{name}', got '{node.name}'"
    if num_children is not None:
        assert len(node.children) == num_children, (
            f"Expected {num_children} children, got {len(node.children)}"
        )
    if num_attrs is not None:
        assert len(node.attributes) == num_attrs, (
            f"Expected {num_attrs} attributes, got {len(node.attributes)}"
        )


def attr_text(node: Node, key: str) -> str:
    """Raw text of an attribute."""
    return node.attributes[key].text
