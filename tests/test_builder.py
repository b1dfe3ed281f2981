"""Tests for the document builder: tags, merges, attributes, strings."""

from __future__ import annotations

import pytest

from tests.conftest import assert_tag, attr_text
from wmltree.errors import StructuralError, WmlSyntaxError
from wmltree.tree import RawValue, ValueKind

# ---------------------------------------------------------------------------
# Tags
# ---------------------------------------------------------------------------


class TestTags:
    def test_single_tag(self, build_source) -> None:
        doc = build_source("[terrain]\nsymbol_image=grass\nid=grassland\n[/terrain]\n")
        assert_tag(doc.root, "", num_children=1)
        terrain = doc.children(doc.root)[0]
        assert_tag(terrain, "terrain", num_children=0, num_attrs=2)
        assert attr_text(terrain, "id") == "grassland"

    def test_nesting_and_counts(self, build_source) -> None:
        doc = build_source(
            "[terrain_graphics]\n"
            "    probability=40\n"
            "    [tile]\n"
            "        x=0\n"
            "    [/tile]\n"
            "    [tile]\n"
            "        x=1\n"
            "    [/tile]\n"
            "    [image]\n"
            "        name=a.png\n"
            "    [/image]\n"
            "[/terrain_graphics]\n"
        )
        graphics = doc.children(doc.root)[0]
        assert_tag(graphics, "terrain_graphics", num_children=3, num_attrs=1)
        assert [c.name for c in doc.children(graphics)] == ["tile", "tile", "image"]
        assert len(doc.nodes) == 5

    def test_parent_links(self, build_source) -> None:
        doc = build_source("[a]\n[b]\n[/b]\n[/a]")
        a = doc.children(doc.root)[0]
        b = doc.children(a)[0]
        assert doc.parent(b) is a
        assert doc.parent(a) is doc.root
        assert doc.parent(doc.root) is None

    def test_blank_and_comment_lines_skipped(self, build_source) -> None:
        doc = build_source("\n# header\n[a]  # trailing\n\n   \n[/a]\n")
        assert_tag(doc.children(doc.root)[0], "a", num_children=0, num_attrs=0)

    def test_line_numbers_recorded(self, build_source) -> None:
        doc = build_source("\n[a]\n[b]\n[/b]\n[/a]")
        assert [n.line for n in doc.iter_preorder()] == [0, 2, 3]

    def test_root_attributes(self, build_source) -> None:
        doc = build_source("version=1")
        assert attr_text(doc.root, "version") == "1"


class TestTagErrors:
    def test_mismatched_close(self, build_source) -> None:
        with pytest.raises(StructuralError, match="mismatch") as exc_info:
            build_source("[a]\n[/b]")
        assert exc_info.value.line == 2

    def test_close_with_nothing_open(self, build_source) -> None:
        with pytest.raises(StructuralError, match="no open tag"):
            build_source("[/a]")

    def test_unclosed_at_end(self, build_source) -> None:
        with pytest.raises(StructuralError, match=r"unclosed tag \[b\]") as exc_info:
            build_source("[a]\n[b]\nk=v\n")
        assert exc_info.value.line == 2

    def test_unexpanded_macro(self, build_source) -> None:
        with pytest.raises(StructuralError, match="unexpanded macro"):
            build_source("[a]\n{LEFTOVER}\n[/a]")

    def test_error_carries_source(self, build_source) -> None:
        with pytest.raises(StructuralError) as exc_info:
            build_source("[a]\n[/b]", "terrain.cfg")
        text = exc_info.value.format()
        assert "--> terrain.cfg:2" in text
        assert "[/b]" in text


# ---------------------------------------------------------------------------
# Merge blocks
# ---------------------------------------------------------------------------


class TestMerge:
    def test_merge_adds_attributes(self, build_source) -> None:
        doc = build_source("[tile]\nx=1\n[/tile]\n[+tile]\ny=2\n[/tile]")
        assert_tag(doc.root, "", num_children=1)
        tile = doc.children(doc.root)[0]
        assert attr_text(tile, "x") == "1"
        assert attr_text(tile, "y") == "2"

    def test_merge_overwrites(self, build_source) -> None:
        doc = build_source("[tile]\nx=1\n[/tile]\n[+tile]\nx=3\n[/tile]")
        assert attr_text(doc.find("tile")[0], "x") == "3"

    def test_merge_adds_children(self, build_source) -> None:
        doc = build_source(
            "[tile]\n[/tile]\n[+tile]\n[image]\nname=a.png\n[/image]\n[/tile]"
        )
        assert_tag(doc.root, "", num_children=1)
        tile = doc.children(doc.root)[0]
        assert_tag(tile, "tile", num_children=1)
        assert attr_text(doc.children(tile)[0], "name") == "a.png"

    def test_merge_targets_most_recent(self, build_source) -> None:
        doc = build_source("[a]\nv=1\n[/a]\n[a]\nv=2\n[/a]\n[+a]\nw=3\n[/a]")
        first, second = doc.find("a")
        assert "w" not in first.attributes
        assert attr_text(second, "w") == "3"

    def test_merge_into_nested_tag(self, build_source) -> None:
        doc = build_source("[outer]\n[inner]\n[/inner]\n[/outer]\n[+inner]\nz=1\n[/inner]")
        assert_tag(doc.root, "", num_children=1)
        assert attr_text(doc.find("inner")[0], "z") == "1"

    def test_merge_close_name_not_checked(self, build_source) -> None:
        doc = build_source("[a]\n[/a]\n[+a]\nk=v\n[/whatever]")
        assert attr_text(doc.find("a")[0], "k") == "v"

    def test_child_inside_merge_still_checked(self, build_source) -> None:
        with pytest.raises(StructuralError, match="mismatch"):
            build_source("[a]\n[/a]\n[+a]\n[b]\n[/c]\n[/a]")

    def test_merge_without_target(self, build_source) -> None:
        with pytest.raises(StructuralError, match=r"no earlier \[tile\]") as exc_info:
            build_source("[a]\n[/a]\n[+tile]\n[/tile]")
        assert exc_info.value.line == 3

    def test_unclosed_merge(self, build_source) -> None:
        with pytest.raises(StructuralError, match="unclosed"):
            build_source("[a]\n[/a]\n[+a]\n")


# ---------------------------------------------------------------------------
# Attributes
# ---------------------------------------------------------------------------


class TestAttributes:
    @pytest.mark.parametrize("text", ["yes", "no", "true", "false"])
    def test_booleans(self, build_source, text: str) -> None:
        value = build_source(f"flag={text}").root.attributes["flag"]
        assert value.kind == ValueKind.BOOLEAN
        assert value.text == text

    @pytest.mark.parametrize("text", ["5", "0.5", "12.", "144"])
    def test_numbers(self, build_source, text: str) -> None:
        value = build_source(f"n={text}").root.attributes["n"]
        assert value.kind == ValueKind.NUMBER
        assert value.text == text

    def test_negative_number_is_text(self, build_source) -> None:
        assert build_source("layer=-80").root.attributes["layer"].kind == ValueKind.TEXT

    def test_quoted_number_is_text(self, build_source) -> None:
        value = build_source('layer="5"').root.attributes["layer"]
        assert value == RawValue("5", ValueKind.TEXT)

    def test_value_whitespace_trimmed(self, build_source) -> None:
        assert attr_text(build_source("  key =  some value  ").root, "key") == "some value"

    def test_quoted_string(self, build_source) -> None:
        assert attr_text(build_source('name="hello world"').root, "name") == "hello world"

    def test_empty_value(self, build_source) -> None:
        assert attr_text(build_source("no_flag=").root, "no_flag") == ""

    def test_value_with_equals(self, build_source) -> None:
        assert attr_text(build_source("expr=a=b").root, "expr") == "a=b"

    def test_last_write_wins(self, build_source) -> None:
        assert attr_text(build_source("k=1\nk=2").root, "k") == "2"

    def test_comma_key(self, build_source) -> None:
        assert attr_text(build_source("x,y=3,4").root, "x,y") == "3,4"

    def test_missing_equals(self, build_source) -> None:
        with pytest.raises(WmlSyntaxError, match="expected '='") as exc_info:
            build_source("[a]\nbroken\n[/a]")
        assert exc_info.value.line == 2

    def test_missing_key(self, build_source) -> None:
        with pytest.raises(WmlSyntaxError, match="missing attribute name"):
            build_source("=value")


class TestTranslatable:
    def test_marked_with_tildes(self, build_source) -> None:
        assert attr_text(build_source('name= _ "Grassland"').root, "name") == "~Grassland~"

    def test_no_space(self, build_source) -> None:
        assert attr_text(build_source('name=_"Hills"').root, "name") == "~Hills~"

    def test_underscore_inside_value_is_plain(self, build_source) -> None:
        assert attr_text(build_source("id=_none").root, "id") == "_none"


class TestMultilineStrings:
    def test_lines_joined(self, build_source) -> None:
        doc = build_source('text="first line\n   second line\n   third"')
        assert attr_text(doc.root, "text") == "first line\nsecond line\nthird"

    def test_translatable(self, build_source) -> None:
        doc = build_source('text=_ "a\nb"')
        assert attr_text(doc.root, "text") == "~a\nb~"

    def test_underscore_prefix_of_word_not_translatable(self, build_source) -> None:
        doc = build_source('b=_x "multi\nline"')
        assert attr_text(doc.root, "b") == "multi\nline"

    def test_blank_line_kept(self, build_source) -> None:
        doc = build_source('text="a\n\nb"')
        assert attr_text(doc.root, "text") == "a\n\nb"

    def test_hash_inside_string_kept(self, build_source) -> None:
        doc = build_source('text="a\n# not a comment\nb"')
        assert attr_text(doc.root, "text") == "a\n# not a comment\nb"

    def test_tags_inside_string_are_text(self, build_source) -> None:
        doc = build_source('[a]\ntext="\n[b]\n"\n[/a]')
        a = doc.children(doc.root)[0]
        assert_tag(a, "a", num_children=0)
        assert attr_text(a, "text") == "\n[b]\n"

    def test_map_block(self, build_source) -> None:
        doc = build_source('map="\n    , *\n    *, 1\n"')
        assert attr_text(doc.root, "map") == "\n, *\n*, 1\n"

    def test_unterminated(self, build_source) -> None:
        with pytest.raises(WmlSyntaxError, match="missing closing quote") as exc_info:
            build_source('[a]\ntext="never\nclosed\n[/a]')
        assert exc_info.value.line == 2
