"""Image-expression mini-parser.

An image name such as::

    water/water[01~17].png~CROP(0,0,72,72):100

decomposes into a base path (with ``@A`` standing in for the animation
range), the expanded frame list, an optional timing after ``:``, and a tree
of modifier commands. Command names are not interpreted here: ``BLIT``,
``MASK``, ``CROP``, ``O`` and any unknown name are all stored the same way.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from wmltree.errors import WmlSyntaxError
from wmltree.lines import split_list

FRAME_PLACEHOLDER = "@A"


@dataclass(frozen=True, slots=True)
class ImageCommand:
    """A modifier call ``NAME(param, ...)``, possibly holding nested calls."""

    name: str
    params: tuple[str, ...] = ()
    commands: tuple[ImageCommand, ...] = ()

    def to_value(self) -> dict[str, Any]:
        value: dict[str, Any] = {}
        if self.params:
            value["param"] = list(self.params)
        _add_commands(value, self.commands)
        return value


@dataclass(frozen=True, slots=True)
class ImageExpression:
    """Structured form of an image ``name`` attribute."""

    name: str | None = None
    frames: tuple[int, ...] | None = None
    timing: float | None = None
    commands: tuple[ImageCommand, ...] = ()

    def to_value(self) -> dict[str, Any]:
        value: dict[str, Any] = {}
        if self.name is not None:
            value["name"] = self.name
        if self.frames is not None:
            value["animation-frames"] = list(self.frames)
        if self.timing is not None:
            value["animation_timing"] = self.timing
        _add_commands(value, self.commands)
        return value


def _add_commands(value: dict[str, Any], commands: tuple[ImageCommand, ...]) -> None:
    """Attach commands under their names; a repeated name collects a list."""
    grouped: dict[str, list[dict[str, Any]]] = {}
    for command in commands:
        grouped.setdefault(command.name, []).append(command.to_value())
    for name, items in grouped.items():
        value[name] = items[0] if len(items) == 1 else items


@dataclass
class _Frame:
    name: str
    params: list[str] = field(default_factory=list)
    commands: list[ImageCommand] = field(default_factory=list)


class ImageParser:
    """Single left-to-right scan with an explicit stack of open commands."""

    def __init__(self, text: str) -> None:
        self._text = text
        self._acc: list[str] = []
        self._range: list[str] = []
        self._in_brackets = False
        self._stack: list[_Frame] = []
        self._name: str | None = None
        self._frames: tuple[int, ...] | None = None
        self._commands: list[ImageCommand] = []

    def parse(self) -> ImageExpression:
        timing_text: str | None = None

        for pos, ch in enumerate(self._text):
            if self._in_brackets:
                if ch == "]":
                    self._close_range()
                elif ch == "[":
                    raise self._error("nested '[' in animation range")
                else:
                    self._range.append(ch)
            elif ch == "[":
                self._in_brackets = True
                self._range = []
            elif ch == "]":
                raise self._error("closing bracket with no matching open bracket")
            elif ch == "~":
                self._end_field()
            elif ch == "(":
                self._open_command()
            elif ch == ")":
                self._close_command()
            elif ch == "," and self._stack:
                self._end_field()
            elif ch == ":" and not self._stack:
                self._end_field()
                timing_text = self._text[pos + 1 :]
                break
            else:
                self._acc.append(ch)

        if self._in_brackets:
            raise self._error("unclosed '[' in animation range")
        if self._stack:
            raise self._error(f"unclosed '(' for command {self._stack[-1].name}")
        self._end_field()

        timing = None
        if timing_text is not None:
            try:
                timing = float(timing_text)
            except ValueError:
                raise self._error(f"bad number for animation timing: '{timing_text}'") from None

        return ImageExpression(self._name, self._frames, timing, tuple(self._commands))

    # ------------------------------------------------------------------
    # Fields and commands
    # ------------------------------------------------------------------

    def _end_field(self) -> None:
        text = "".join(self._acc)
        self._acc = []
        if not text:
            return
        if self._stack:
            self._stack[-1].params.append(text)
        elif self._name is None:
            self._name = text
        else:
            # bare top-level modifier without parentheses
            self._commands.append(ImageCommand(text))

    def _open_command(self) -> None:
        name = "".join(self._acc)
        if not name:
            raise self._error("no command name before '('")
        self._acc = []
        self._stack.append(_Frame(name))

    def _close_command(self) -> None:
        if not self._stack:
            raise self._error("')' with no matching '('")
        self._end_field()
        frame = self._stack.pop()
        command = ImageCommand(frame.name, tuple(frame.params), tuple(frame.commands))
        if self._stack:
            self._stack[-1].commands.append(command)
        else:
            self._commands.append(command)

    def _close_range(self) -> None:
        self._in_brackets = False
        text = "".join(self._range)
        bounds = split_list(text, "~")
        if len(bounds) != 2:
            raise self._error(f"animation range malformed: '{text}'")
        try:
            low, high = int(bounds[0]), int(bounds[1])
        except ValueError:
            raise self._error(f"animation range is not two integers: '{text}'") from None
        if low > high:
            low, high = high, low
        self._frames = tuple(range(low, high + 1))
        self._acc.append(FRAME_PLACEHOLDER)

    def _error(self, message: str) -> WmlSyntaxError:
        return WmlSyntaxError(f"{message} in image expression '{self._text}'")


def parse_image(text: str) -> ImageExpression:
    """Convenience function: parse an image expression."""
    return ImageParser(text).parse()
