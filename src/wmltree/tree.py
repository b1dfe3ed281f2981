"""Document tree: an arena of tag nodes addressed by index."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from enum import Enum, auto

ROOT = 0


class ValueKind(Enum):
    TEXT = auto()
    NUMBER = auto()  # matched \d+(\.\d*)? unquoted
    BOOLEAN = auto()  # yes / no / true / false


@dataclass(frozen=True, slots=True)
class RawValue:
    """Attribute text as written, tagged with what the builder recognized."""

    text: str
    kind: ValueKind = ValueKind.TEXT


@dataclass(slots=True)
class Node:
    """One opened tag. ``parent`` is an arena index, not an owner."""

    index: int
    name: str
    parent: int | None = None
    children: list[int] = field(default_factory=list)
    attributes: dict[str, RawValue] = field(default_factory=dict)
    line: int = 0

    def set_attr(self, key: str, value: RawValue) -> None:
        """Store an attribute; a repeated key replaces the earlier value."""
        self.attributes[key] = value


@dataclass
class Document:
    """Owns every Node. Index 0 is the anonymous root."""

    filename: str = "input.cfg"
    source: str = ""
    nodes: list[Node] = field(default_factory=lambda: [Node(ROOT, "")])

    @property
    def root(self) -> Node:
        return self.nodes[ROOT]

    def node(self, index: int) -> Node:
        return self.nodes[index]

    def add_node(self, name: str, parent: int, line: int = 0) -> Node:
        node = Node(len(self.nodes), name, parent, line=line)
        self.nodes.append(node)
        self.nodes[parent].children.append(node.index)
        return node

    def children(self, node: Node) -> list[Node]:
        return [self.nodes[i] for i in node.children]

    def parent(self, node: Node) -> Node | None:
        if node.parent is None:
            return None
        return self.nodes[node.parent]

    def find(self, name: str) -> list[Node]:
        """All nodes named *name*, in document order."""
        return [n for n in self.iter_preorder() if n.name == name]

    def iter_preorder(self, start: int = ROOT) -> Iterator[Node]:
        """Yield *start* and its descendants, parents before children."""
        stack = [start]
        while stack:
            node = self.nodes[stack.pop()]
            yield node
            stack.extend(reversed(node.children))

    def walk(
        self,
        enter: Callable[[Node], None],
        exit: Callable[[Node], None] | None = None,
        start: int = ROOT,
    ) -> None:
        """Depth-first walk calling *enter* on the way down, *exit* on the way up.

        ``exit`` sees a node only after all its children have been exited,
        which lets consumers assemble nested structures bottom-up.
        """
        stack: list[tuple[int, bool]] = [(start, False)]
        while stack:
            index, done = stack.pop()
            node = self.nodes[index]
            if done:
                if exit is not None:
                    exit(node)
                continue
            enter(node)
            stack.append((index, True))
            stack.extend((child, False) for child in reversed(node.children))
