"""
Tests for codex/markup/parser.py -- images, tables, links, malformed input.
"""

from codex.markup.parser import find_images, find_tables, parse, parse_spans
from codex.markup.segments import ImageSegment, LinkToken, TableSegment, TextRun


# ==================================================================
# Basics
# ==================================================================


class TestParseBasics:
    def test_empty_string_gives_no_segments(self):
        assert parse("") == []

    def test_plain_text_is_single_run(self):
        assert parse("not markup at all") == [TextRun(content="not markup at all")]

    def test_parse_is_pure(self):
        text = "A @{Bob|characters|1} ![x](a.png width=10)"
        first = parse(text)
        second = parse(text)
        assert first == second
        assert first is not second

    def test_mixed_example(self):
        text = "Hello @{Bob|characters|123} visit ![map](http://x/m.png width=200 height=100) today"
        assert parse(text) == [
            TextRun(content="Hello "),
            LinkToken(display_name="Bob", category="characters", target_id="123"),
            TextRun(content=" visit "),
            ImageSegment(url="http://x/m.png", alt="map", width=200, height=100),
            TextRun(content=" today"),
        ]

    def test_spans_cover_the_whole_text(self):
        text = "Intro ![a](a.png) mid @{N|c|i} end\n| h |\n|---|\n| v |\n"
        spans = parse_spans(text)
        assert spans[0].start == 0
        assert spans[-1].end == len(text)
        for before, after in zip(spans, spans[1:]):
            assert before.end == after.start


# ==================================================================
# Images
# ==================================================================


class TestImages:
    def test_image_without_attributes(self):
        assert parse("![alt text](pics/a.png)") == [
            ImageSegment(url="pics/a.png", alt="alt text"),
        ]

    def test_attributes_in_any_order(self):
        segments = parse('![m](u.png "The map" height=50 width=120)')
        assert segments == [
            ImageSegment(url="u.png", alt="m", caption="The map", width=120, height=50),
        ]

    def test_caption_only(self):
        (image,) = parse('![](u.png "Caption here")')
        assert image.caption == "Caption here"
        assert image.width is None and image.height is None

    def test_consecutive_images_are_independent(self):
        segments = parse("![a](1.png)![b](2.png)")
        assert segments == [
            ImageSegment(url="1.png", alt="a"),
            ImageSegment(url="2.png", alt="b"),
        ]

    def test_empty_url_stays_text(self):
        assert parse("![alt]()") == [TextRun(content="![alt]()")]

    def test_zero_width_stays_text(self):
        assert parse("![a](u.png width=0)") == [TextRun(content="![a](u.png width=0)")]

    def test_duplicate_attribute_stays_text(self):
        text = "![a](u.png width=10 width=20)"
        assert parse(text) == [TextRun(content=text)]

    def test_unknown_attribute_stays_text(self):
        text = "![a](u.png depth=3)"
        assert parse(text) == [TextRun(content=text)]

    def test_unclosed_image_stays_text(self):
        text = "![a](u.png width=10"
        assert parse(text) == [TextRun(content=text)]

    def test_malformed_image_before_good_one(self):
        segments = parse("![broken] ![ok](u.png)")
        assert segments == [
            TextRun(content="![broken] "),
            ImageSegment(url="u.png", alt="ok"),
        ]

    def test_find_images_reports_source_order(self):
        text = "![a](1.png) text ![b](2.png) ![c](3.png)"
        urls = [span.segment.url for span in find_images(text)]
        assert urls == ["1.png", "2.png", "3.png"]


# ==================================================================
# Tables
# ==================================================================


class TestTables:
    def test_table_with_title(self):
        text = "**Tides**\n\n| Month | Height |\n|---|---|\n| Jan | 3 |\n| Feb | 5 |\n"
        assert parse(text) == [
            TableSegment(
                title="Tides",
                headers=["Month", "Height"],
                rows=[["Jan", "3"], ["Feb", "5"]],
            ),
        ]

    def test_table_without_title_or_rows(self):
        assert parse("| a | b |\n|---|---|\n") == [
            TableSegment(headers=["a", "b"], rows=[]),
        ]

    def test_header_without_separator_stays_text(self):
        text = "| a | b |\n| 1 | 2 |\n"
        assert parse(text) == [TextRun(content=text)]

    def test_single_row_stays_text(self):
        text = "| a | b |"
        assert parse(text) == [TextRun(content=text)]

    def test_table_must_start_a_line(self):
        text = "Intro | a |\n|---|\n"
        assert find_tables(text) == []

    def test_table_between_text(self):
        text = "Before\n| a |\n|---|\n| 1 |\nAfter"
        assert parse(text) == [
            TextRun(content="Before\n"),
            TableSegment(headers=["a"], rows=[["1"]]),
            TextRun(content="After"),
        ]

    def test_title_without_blank_line_is_not_a_title(self):
        text = "**Tides**\n| a |\n|---|\n"
        segments = parse(text)
        assert segments == [
            TextRun(content="**Tides**\n"),
            TableSegment(headers=["a"], rows=[]),
        ]

    def test_short_rows_are_kept(self):
        (table,) = parse("| a | b | c |\n|---|---|---|\n| 1 |\n")
        assert table.rows == [["1"]]

    def test_image_inside_table_line_breaks_the_table(self):
        text = "| a |\n|---|\n| ![x](x.png) |\n"
        segments = parse(text)
        assert any(isinstance(s, ImageSegment) for s in segments)
        assert TableSegment(headers=["a"], rows=[]) in segments


# ==================================================================
# Links
# ==================================================================


class TestLinks:
    def test_link_preserves_surrounding_whitespace(self):
        assert parse("  @{A|b|c}\t") == [
            TextRun(content="  "),
            LinkToken(display_name="A", category="b", target_id="c"),
            TextRun(content="\t"),
        ]

    def test_adjacent_links(self):
        segments = parse("@{A|x|1}@{B|y|2}")
        assert [type(s) for s in segments] == [LinkToken, LinkToken]

    def test_missing_part_stays_text(self):
        assert parse("@{A|b}") == [TextRun(content="@{A|b}")]

    def test_empty_part_stays_text(self):
        assert parse("@{A||c}") == [TextRun(content="@{A||c}")]

    def test_link_across_newline_stays_text(self):
        text = "@{A|b\n|c}"
        assert parse(text) == [TextRun(content=text)]
