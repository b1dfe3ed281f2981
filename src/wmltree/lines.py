"""Line normalization: comment stripping, directive detection, list splitting."""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass

_WS_RUN = re.compile(r"\s+")


@dataclass(frozen=True, slots=True)
class SourceLine:
    """One input line after comment stripping.

    ``code`` is the trimmed text before the first unquoted ``#``.
    ``directive`` is the preprocessor keyword following that ``#`` (e.g.
    ``define``), or None when the tail is a plain comment or absent.
    """

    number: int
    raw: str
    code: str
    directive: str | None = None
    directive_args: tuple[str, ...] = ()

    @property
    def is_blank(self) -> bool:
        return not self.code


def find_comment(line: str) -> int:
    """Return the index of the first ``#`` outside double quotes, or -1."""
    in_quotes = False
    for i, ch in enumerate(line):
        if ch == '"':
            in_quotes = not in_quotes
        elif ch == "#" and not in_quotes:
            return i
    return -1


def normalize_line(raw: str, number: int = 1) -> SourceLine:
    """Strip the comment from *raw* and classify what followed the ``#``.

    A tail that is empty or starts with a space or another ``#`` is a plain
    comment. Anything else names a preprocessor directive.
    """
    raw = raw.rstrip("\r\n")
    pos = find_comment(raw)
    if pos == -1:
        return SourceLine(number, raw, raw.strip())

    code = raw[:pos].strip()
    tail = raw[pos + 1 :]
    if not tail or tail[0] in " \t#":
        return SourceLine(number, raw, code)

    words = _WS_RUN.split(tail.strip())
    return SourceLine(number, raw, code, words[0], tuple(words[1:]))


def split_lines(text: str) -> Iterator[SourceLine]:
    """Yield normalized lines with 1-based line numbers."""
    for number, raw in enumerate(text.split("\n"), start=1):
        yield normalize_line(raw, number)


def split_list(text: str, separators: str = ",", *, keep_empty: bool = False) -> list[str]:
    """Split *text* on any of *separators*, trimming each item.

    Empty items are dropped unless *keep_empty* is set.
    """
    pattern = "[" + re.escape(separators) + "]"
    items = [item.strip() for item in re.split(pattern, text)]
    if keep_empty:
        return items
    return [item for item in items if item]
