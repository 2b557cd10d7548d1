"""Tests for line and chapter assembly."""

import pytest
from svgbook.assembler import ChapterAssembler, assemble_chapter, line_style, wrap_text
from svgbook.context import BookContext
from svgbook.emitters import EpubEmitter, HtmlEmitter, PdfEmitter
from svgbook.errors import ChapterParseError
from svgbook.footnotes import FootnoteDelimiterPair
from svgbook.headings import HeadingIndex
from svgbook.models import ChapterSource, FootnoteTarget, Glyph, Line, TocEntry

PAGE_WIDTH = 60000


def make_context(*toc: TocEntry) -> BookContext:
    return BookContext(
        footnotes=FootnoteDelimiterPair(),
        headings=HeadingIndex.from_toc(toc),
        toc=tuple(toc),
    )


def text(content: str, style: str = "", x: float = 100, **flags) -> Glyph:
    return Glyph(name="text", x=x, y=10, content=content, style=style, **flags)


def image(x: float = 100, width: float = 300, height: float = 200, **attrs) -> Glyph:
    attrs.setdefault("href", "http://img.example/a.png")
    attrs.setdefault("alt", "figure")
    return Glyph(name="image", x=x, y=10, width=width, height=height, **attrs)


def assemble(*glyphs: Glyph, context: BookContext | None = None, emitter=None, index: int = 1) -> str:
    assembler = ChapterAssembler(index, context or make_context(), emitter or HtmlEmitter())
    return assembler.assemble_line(Line(key=10, glyphs=list(glyphs)))


class TestImagePlacement:
    """Tests for block image alignment and scaling."""

    def test_centered(self):
        """An image at half the page width is centered."""
        result = assemble(image(x=PAGE_WIDTH * 0.5))
        assert 'style="display: block;text-align:center;"' in result

    def test_right_aligned(self):
        """An image near the right edge is right-aligned."""
        result = assemble(image(x=PAGE_WIDTH * 0.95))
        assert 'style="display: block;text-align:right;"' in result

    def test_left_has_no_override(self):
        """An image on the left keeps the default alignment."""
        result = assemble(image(x=PAGE_WIDTH * 0.1))
        assert "text-align" not in result
        assert "<div" not in result

    def test_oversized_image_scaled(self):
        """Images wider than 900 are scaled proportionally."""
        result = assemble(image(width=1200, height=600))
        assert 'width="900" height="450"' in result

    def test_image_only_line_has_no_paragraph(self):
        """A line without text is not wrapped in a paragraph."""
        result = assemble(image())
        assert "<p>" not in result


class TestTextRuns:
    """Tests for text wrapping within a line."""

    def test_paragraph(self):
        """Unmatched text becomes a paragraph."""
        result = assemble(text("Hello"))
        assert result == "\n\t<p>Hello</p>"

    def test_line_style_wrapper(self):
        """The line style wraps the whole line."""
        result = assemble(text("Hello", style="color:red;"))
        assert result == '\n\t<p><span style="color:red;">Hello</span></p>'

    def test_text_escaped(self):
        """Text content is HTML-escaped."""
        result = assemble(text("a<b"))
        assert "a&lt;b" in result

    def test_inline_tags_nest(self):
        """Bold, italic and superscript nest outward to inward."""
        result = assemble(text("x", bold=True, italic=True, superscript=True))
        assert "<b><i><sup>x</sup></i></b>" in result

    def test_subscript(self):
        """Subscript glyphs use sub tags."""
        result = assemble(text("H"), text("2", subscript=True), text("O"))
        assert "H<sub>2</sub>O" in result

    def test_style_change_spans_balanced(self):
        """Style runs open and close spans in matching pairs."""
        result = assemble(
            text("A", style="a;"),
            text("B", style="a;"),
            text("C", style="b;"),
            text("D", style="b;"),
        )
        assert '<span style="a;">AB</span>CD' in result
        assert result.count("<span") == result.count("</span>")

    def test_span_closed_at_line_end(self):
        """A style run reaching the end of the line is closed."""
        result = assemble(text("A", style="b;"), text("B", style="a;"), image(width=10, height=10))
        # Line style comes from the glyph before the trailing image
        assert result.count("<span") == result.count("</span>")

    def test_declared_newline(self):
        """A forced newline inside a line becomes a line break."""
        result = assemble(text("A"), text("B", newline=True))
        assert "A<br/>B" in result

    def test_newline_on_first_glyph_ignored(self):
        """A line never starts with a break."""
        result = assemble(text("A", newline=True))
        assert "<br/>" not in result

    def test_footnote_link(self):
        """Footnote targets add an inner anchor."""
        glyph = text("1", superscript=True, id="ch1_fwd1")
        glyph.footnote = FootnoteTarget(href="#ch2.xhtml_back1", style="color:blue;")
        result = assemble(glyph)
        assert '<sup><a id="ch1_fwd1" href="#ch2.xhtml_back1" style="color:blue;">1</a></sup>' in result


class TestHeadings:
    """Tests for heading detection during assembly."""

    def test_matched_line_is_heading(self):
        """A line contained in a TOC entry is wrapped at that level."""
        context = make_context(TocEntry(href="ch1#s1", level=1, order=1, text="Chapter One"))
        result = assemble(text("Chapter"), text(" "), text("One"), context=context)
        assert result.startswith("\n</div><div class='header1'><h2>")
        assert result.endswith('</h2></div>\n<div class="part">')
        assert "<p>" not in result

    def test_unmatched_line_is_paragraph(self):
        """Other lines stay paragraphs."""
        context = make_context(TocEntry(href="ch1#s1", level=1, order=1, text="Chapter One"))
        result = assemble(text("Something else"), context=context)
        assert result.startswith("\n\t<p>")

    def test_deep_level_has_no_tag(self):
        """TOC levels past 5 keep the wrapper but no h tag."""
        context = make_context(TocEntry(href="ch1#s1", level=7, order=1, text="Deep"))
        result = assemble(text("Deep"), context=context)
        assert "<div class='header7'>" in result
        assert "<h" not in result.replace("<div class='header7'>", "")


class TestInlineImages:
    """Tests for footnote-sized images."""

    def test_marker_folded_into_text(self):
        """A small image joins the text run as a superscript marker."""
        result = assemble(
            text("word"),
            image(width=15, height=15, css_class="fn", href="http://img.example/n.png", alt="note"),
        )
        assert result.startswith("\n\t<p>word")
        assert '<sup><img width="15" src="http://img.example/n.png"' in result
        assert result.endswith("</p>")

    def test_epub_marker_ids_unique(self):
        """Each EPUB note gets its own id within the chapter."""
        assembler = ChapterAssembler(2, make_context(), EpubEmitter())
        marker = dict(width=12, height=12, css_class="fn", alt="note")
        first = assembler.assemble_line(Line(10, [text("a"), image(**marker)]))
        second = assembler.assemble_line(Line(20, [text("b"), image(**marker)]))
        assert 'id="footnote-2-1"' in first
        assert 'id="footnote-2-3"' in second


class TestCover:
    """Tests for cover capture on chapter 0."""

    def test_pdf_cover_removed_from_flow(self):
        """The first large chapter 0 image becomes the PDF cover."""
        assembler = ChapterAssembler(0, make_context(), PdfEmitter())
        result = assembler.assemble_line(Line(10, [image(href="http://img.example/cover.jpg")]))
        assert result == ""
        assert "cover.jpg" in assembler.cover
        assert assembler.cover.startswith("<!DOCTYPE html>")

    def test_epub_cover_is_url(self):
        """EPUB keeps only the cover image URL."""
        assembler = ChapterAssembler(0, make_context(), EpubEmitter())
        assembler.assemble_line(Line(10, [image(href="http://img.example/cover.jpg")]))
        assembler.assemble_line(Line(20, [image(href="http://img.example/second.jpg")]))
        assert assembler.cover == "http://img.example/cover.jpg"

    def test_html_keeps_images(self):
        """HTML has no separate cover; chapter 0 images stay in place."""
        assembler = ChapterAssembler(0, make_context(), HtmlEmitter())
        result = assembler.assemble_line(Line(10, [image(href="http://img.example/cover.jpg")]))
        assert "cover.jpg" in result
        assert assembler.cover == ""

    def test_later_chapters_have_no_cover(self):
        """Only chapter 0 provides a cover."""
        assembler = ChapterAssembler(3, make_context(), PdfEmitter())
        result = assembler.assemble_line(Line(10, [image()]))
        assert "<img" in result
        assert assembler.cover == ""


class TestAssembleChapter:
    """Tests for whole-chapter assembly."""

    SVG = (
        '<svg xmlns="http://www.w3.org/2000/svg">'
        '<text x="100" y="200" top="180" height="20">second</text>'
        '<text x="100" y="100" top="80" height="20">first</text>'
        "</svg>"
    )

    def test_fragments_wrapped(self):
        """Each fragment is a div with lines in vertical order."""
        source = ChapterSource("ch1", (self.SVG, self.SVG), 1)
        result = assemble_chapter(source, 1, make_context(), HtmlEmitter())
        assert result.markup.count('<div id="ch1">') == 2
        assert result.markup.index("first") < result.markup.index("second")
        assert result.index == 1
        assert result.chapter_id == "ch1"

    def test_prefix_and_suffix_once(self):
        """Chapter documents are opened and closed once per chapter."""
        source = ChapterSource("ch1", (self.SVG, self.SVG), 1)
        result = assemble_chapter(source, 1, make_context(), PdfEmitter())
        assert result.markup.count("<!DOCTYPE html>") == 1
        assert result.markup.count("</body>") == 1

    def test_malformed_fragment_raises(self):
        """Broken markup is reported with its chapter."""
        source = ChapterSource("ch9", ("<svg><text></svg>",), 9)
        with pytest.raises(ChapterParseError) as excinfo:
            assemble_chapter(source, 9, make_context(), HtmlEmitter())
        assert excinfo.value.chapter_id == "ch9"


class TestHelpers:
    """Tests for module helpers."""

    def test_line_style_skips_trailing_image(self):
        """The glyph before a trailing image decides the line style."""
        glyphs = [text("a", style="x;"), text("b", style="y;"), image()]
        assert line_style(glyphs) == "y;"

    def test_wrap_text_plain(self):
        """Plain glyphs are returned as is."""
        assert wrap_text(text("a"), "a") == "a"
