"""Attribute value coercion: maps raw attribute text to typed values."""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, field

from wmltree.errors import WmlSyntaxError
from wmltree.images import parse_image
from wmltree.lines import split_list
from wmltree.tree import Document, Node, RawValue, ValueKind

TypedValue = None | bool | int | float | str | list | dict

# A rule maps (attribute name, raw value) to the attributes it produces.
# Most produce exactly one; "x,y" produces two and "name" several.
Rule = Callable[[str, RawValue], dict[str, TypedValue]]

_NUMBER = re.compile(r"-?\d+(\.\d*)?")
_MACRO = re.compile(r"\{.*\}")


@dataclass(slots=True)
class TypedNode:
    """A tag with its attributes coerced to typed values."""

    name: str
    attributes: dict[str, TypedValue] = field(default_factory=dict)
    children: list[TypedNode] = field(default_factory=list)

    def to_dict(self) -> dict[str, TypedValue]:
        """Plain nested mapping; child tags are grouped under their name.

        A tag that occurs once maps to a dict, one that repeats to a list.
        An attribute sharing its name with child tags is collected into the
        same list, ahead of the children.
        """
        result: dict[str, TypedValue] = dict(self.attributes)
        grouped: dict[str, list[dict[str, TypedValue]]] = {}
        for child in self.children:
            grouped.setdefault(child.name, []).append(child.to_dict())
        for name, items in grouped.items():
            if name in result:
                # an attribute and child tags share the name
                result[name] = [result[name], *items]
            else:
                result[name] = items[0] if len(items) == 1 else items
        return result


# ---------------------------------------------------------------------------
# Scalar and list conversions
# ---------------------------------------------------------------------------


def to_int(text: str) -> int | str:
    """Integer value; an unexpanded ``{...}`` reference is kept as text."""
    if _MACRO.fullmatch(text):
        return text
    try:
        return int(text)
    except ValueError:
        raise ValueError(f"unable to convert '{text}' to integer") from None


def to_number(text: str) -> int | float:
    m = _NUMBER.fullmatch(text)
    if m is None:
        raise ValueError(f"not a numeric value: '{text}'")
    if m.group(1) is None:
        return int(text)
    return float(text)


def to_number_list(text: str, separators: str = ",") -> list[int | float]:
    return [to_number(item) for item in split_list(text, separators)]


def to_string_list(text: str, separators: str = ",", *, keep_empty: bool = False) -> list[str]:
    return split_list(text, separators, keep_empty=keep_empty)


def generic_value(value: RawValue) -> TypedValue:
    if value.kind == ValueKind.BOOLEAN:
        return value.text in ("yes", "true")
    if value.kind == ValueKind.NUMBER:
        return to_number(value.text)
    return value.text


# ---------------------------------------------------------------------------
# Rule registry
# ---------------------------------------------------------------------------


@dataclass
class CoercionRules:
    """Attribute-name-keyed coercion rules with a generic fallback."""

    rules: dict[str, Rule] = field(default_factory=dict)

    def register(self, rule: Rule, *names: str) -> None:
        for name in names:
            self.rules[name] = rule

    def apply(self, key: str, value: RawValue) -> dict[str, TypedValue]:
        rule = self.rules.get(key)
        if rule is None:
            return {key: generic_value(value)}
        return rule(key, value)

    def copy(self) -> CoercionRules:
        return CoercionRules(dict(self.rules))


def _make_rules() -> CoercionRules:
    rules = CoercionRules()

    def d(*names: str) -> Callable[[Rule], Rule]:
        def register(rule: Rule) -> Rule:
            rules.register(rule, *names)
            return rule

        return register

    @d("center", "base")
    def _number_list(key: str, value: RawValue) -> dict[str, TypedValue]:
        return {key: to_number_list(value.text)}

    @d("layer", "pos", "probability")
    def _integer(key: str, value: RawValue) -> dict[str, TypedValue]:
        return {key: to_int(value.text)}

    @d("rotations", "type")
    def _string_list(key: str, value: RawValue) -> dict[str, TypedValue]:
        return {key: to_string_list(value.text)}

    @d("set_flag", "set_no_flag", "has_flag", "no_flag")
    def _flag_list(key: str, value: RawValue) -> dict[str, TypedValue]:
        if not value.text:
            return {}
        return {key: to_string_list(value.text)}

    @d("variations")
    def _variations(key: str, value: RawValue) -> dict[str, TypedValue]:
        return {key: to_string_list(value.text, ";", keep_empty=True)}

    @d("map")
    def _map_rows(key: str, value: RawValue) -> dict[str, TypedValue]:
        return {key: to_string_list(value.text, "\n")}

    @d("x,y")
    def _coordinates(key: str, value: RawValue) -> dict[str, TypedValue]:
        numbers = to_number_list(value.text)
        if len(numbers) != 2:
            raise ValueError(f"expected two numbers, got '{value.text}'")
        return {"x": numbers[0], "y": numbers[1]}

    @d("name")
    def _image_name(key: str, value: RawValue) -> dict[str, TypedValue]:
        return parse_image(value.text).to_value()

    return rules


DEFAULT_RULES: CoercionRules = _make_rules()


# ---------------------------------------------------------------------------
# Tree walk
# ---------------------------------------------------------------------------


def coerce(
    doc: Document,
    rules: CoercionRules | None = None,
) -> TypedNode:
    """Post-order walk producing the typed tree rooted at the anonymous root."""
    if rules is None:
        rules = DEFAULT_RULES
    stack: list[TypedNode] = []
    done: list[TypedNode] = []

    def enter(node: Node) -> None:
        stack.append(TypedNode(node.name))

    def exit(node: Node) -> None:
        typed = stack.pop()
        for key, value in node.attributes.items():
            try:
                typed.attributes.update(rules.apply(key, value))
            except (ValueError, WmlSyntaxError) as exc:
                message = exc.message if isinstance(exc, WmlSyntaxError) else str(exc)
                raise WmlSyntaxError(
                    f"bad value for '{key}' in [{node.name}]: {message}",
                    node.line,
                    doc.source,
                    doc.filename,
                ) from None
        if stack:
            stack[-1].children.append(typed)
        else:
            done.append(typed)

    doc.walk(enter, exit)
    return done[0]
