"""Tests for the HTML, PDF and EPUB emitters."""

import pytest
from svgbook.config import ConverterConfig
from svgbook.emitters import (
    EMITTERS,
    EpubEmitter,
    HtmlEmitter,
    PdfEmitter,
    attr,
    emitter_for,
)
from svgbook.models import AssembledDocument, ChapterMarkup, Glyph, TocEntry
from svgbook.templates import PAGE_BREAK_AFTER, head_html, tail_html, toc_html

TOC = (
    TocEntry(href="ch1#intro", level=0, order=1, text="Intro"),
    TocEntry(href="ch1#part", level=1, order=2, text="Part"),
    TocEntry(href="ch2", level=0, order=3, text="Two"),
)


def footnote_image() -> Glyph:
    return Glyph(name="image", width=12, height=12, href="http://img.example/n.png", alt="See p. 3", css_class="fn")


class TestAttr:
    """Tests for attribute escaping."""

    def test_quotes_survive_entity_decoding(self):
        """Double quotes use a numeric reference."""
        assert attr('a"b<c&') == "a&#34;b&lt;c&amp;"


class TestTemplates:
    """Tests for shared markup snippets."""

    def test_toc_indentation_and_links(self):
        """Nested entries are indented and link to their fragment."""
        result = toc_html(TOC)
        assert '<div id="toc">' in result
        assert 'href="#intro"' in result
        assert "&nbsp;" * 4 + "Part" in result
        # Entries without a fragment have no link target
        assert '<a style="' in result

    def test_empty_toc(self):
        """No entries, no block."""
        assert toc_html(()) == ""

    def test_head_title(self):
        """Titles are escaped into the head."""
        assert "<title>A &amp; B</title>" in head_html("en", "A & B")
        assert 'lang="en"' in head_html("en")


class TestHtmlEmitter:
    """Tests for the single-document emitter."""

    def test_toc_before_second_chapter(self):
        """The TOC block opens chapter index 1 only."""
        emitter = HtmlEmitter()
        assert emitter.chapter_prefix(0, TOC) == ""
        assert '<div id="toc">' in emitter.chapter_prefix(1, TOC)
        assert emitter.chapter_prefix(2, TOC) == ""

    def test_no_toc_block_without_entries(self):
        """An empty TOC adds nothing."""
        assert HtmlEmitter().chapter_prefix(1, ()) == ""

    def test_page_break_after_chapters(self):
        """Every chapter ends with a page break."""
        assert HtmlEmitter().chapter_suffix(0) == PAGE_BREAK_AFTER

    def test_render_single_document(self):
        """Chapters are joined between one head and one tail, entities decoded."""
        document = AssembledDocument([
            ChapterMarkup(0, "ch0", "<p>a&nbsp;b</p>"),
            ChapterMarkup(1, "ch1", "<p>&lt;script&gt;</p>"),
        ])
        result = HtmlEmitter().render(document, TOC, "Book")
        assert result.startswith("<!DOCTYPE html>")
        assert result.endswith("</html>")
        assert result.count("<body>") == 1
        assert "<p>a b</p>" in result
        assert "<p>&lt;script&gt;</p>" in result

    def test_publish_writes_utf8(self, tmp_path):
        """The document is written as UTF-8, creating directories."""
        document = AssembledDocument([ChapterMarkup(0, "ch0", "<p>目录</p>")])
        path = HtmlEmitter().publish(document, (), "Book", tmp_path / "Ebook" / "book.html")
        assert path.read_text(encoding="utf-8").count("目录") == 1


class TestPdfEmitter:
    """Tests for the paginated emitter."""

    def test_chapter_documents(self):
        """Each chapter is a full document."""
        emitter = PdfEmitter()
        assert emitter.chapter_prefix(3, TOC).startswith("<!DOCTYPE html>")
        assert emitter.chapter_suffix(3) == tail_html()

    def test_chapter_zero_images_suppressed(self):
        """Block images of chapter 0 leave the flow."""
        emitter = PdfEmitter()
        assert not emitter.keeps_block_image(0)
        assert emitter.keeps_block_image(1)

    def test_render_with_toc_and_back_links(self):
        """The TOC comes first and headings link back to it."""
        document = AssembledDocument([
            ChapterMarkup(0, "ch0", "<p>cover page</p>", cover="<html>cover</html>"),
            ChapterMarkup(1, "ch1", "<h1>Intro</h1><p>text</p>"),
        ])
        pdf = PdfEmitter().render(document, TOC)
        assert pdf.body.index('<div id="toc">') < pdf.body.index("cover page")
        assert '<h1><a class="toc-back-link" href="#toc">Intro</a></h1>' in pdf.body
        assert pdf.body.count('<p style="page-break-before: always"></p>') == 2
        assert pdf.cover == "<html>cover</html>"

    def test_render_without_toc(self):
        """Disabling the TOC also drops the back-links."""
        document = AssembledDocument([ChapterMarkup(0, "ch0", "<h2>Intro</h2>")])
        pdf = PdfEmitter(include_toc=False).render(document, TOC)
        assert 'id="toc"' not in pdf.body
        assert "<h2>Intro</h2>" in pdf.body
        assert pdf.cover == ""

    def test_no_break_after_last_chapter(self):
        """Page breaks only separate chapters."""
        document = AssembledDocument([
            ChapterMarkup(0, "ch0", "<p>one</p>"),
            ChapterMarkup(1, "ch1", "<p>two</p>"),
        ])
        pdf = PdfEmitter(include_toc=False).render(document, ())
        assert pdf.body == '<p>one</p><p style="page-break-before: always"></p><p>two</p>'

    def test_publish_hands_off_to_renderer(self, tmp_path, monkeypatch):
        """Body and cover documents go to the PDF renderer."""
        calls = {}

        def fake_render(self, body_html, cover_html, output_path):
            calls["body"] = body_html
            calls["cover"] = cover_html
            calls["page_size"] = self.options.page_size
            return output_path

        monkeypatch.setattr("svgbook.pdf_renderer.PdfRenderer.render", fake_render)
        document = AssembledDocument([ChapterMarkup(0, "ch0", "<p>x</p>", cover="<html>c</html>")])
        path = PdfEmitter(page_size="A5").publish(document, (), "Book", tmp_path / "b.pdf")

        assert path == tmp_path / "b.pdf"
        assert calls["cover"] == "<html>c</html>"
        assert "<p>x</p>" in calls["body"]
        assert calls["page_size"] == "A5"


class TestEpubEmitter:
    """Tests for the EPUB emitter."""

    def test_footnote_image_becomes_noteref(self):
        """Marker images link to an aside holding the note text."""
        placement = EpubEmitter().render_image(footnote_image(), 12, 12, "", "footnote-2-5")
        assert 'epub:type="noteref" href="#footnote-2-5"' in placement.markup
        assert '<aside epub:type="footnote" id="footnote-2-5">' in placement.aside
        assert "See p. 3" in placement.aside
        assert placement.aside.count('id="footnote-2-5"') == 1

    def test_large_image_plain(self):
        """Large images carry no note."""
        glyph = Glyph(name="image", width=300, height=200, href="http://img.example/a.png", alt="a")
        placement = EpubEmitter().render_image(glyph, 300, 200, "", "footnote-0-0")
        assert placement.aside == ""
        assert 'width="300" height="200"' in placement.markup

    def test_cover_is_image_url(self):
        """The cover reference is the image URL."""
        glyph = Glyph(name="image", href="http://img.example/c.jpg")
        assert EpubEmitter().cover_from(glyph, None) == "http://img.example/c.jpg"

    def test_render_groups_toc_by_chapter(self):
        """Each chapter document carries its own TOC entries."""
        document = AssembledDocument([
            ChapterMarkup(0, "ch1", "<p>one&nbsp;</p>", cover="http://img.example/c.jpg"),
            ChapterMarkup(1, "ch2", "<p>two</p>"),
        ])
        package = EpubEmitter().render(document, TOC)
        assert [c.chapter_id for c in package.chapters] == ["ch1", "ch2"]
        assert [e.text for e in package.chapters[0].toc] == ["Intro", "Part"]
        assert [e.text for e in package.chapters[1].toc] == ["Two"]
        assert package.chapters[0].content == "<p>one </p>"
        assert package.cover_url == "http://img.example/c.jpg"

    def test_render_drops_toc_outside_book(self):
        """Entries for chapters that are not in the document are not attached."""
        document = AssembledDocument([ChapterMarkup(0, "ch2", "<p>two</p>")])
        package = EpubEmitter().render(document, TOC)
        assert [e.text for e in package.chapters[0].toc] == ["Two"]

    def test_render_keeps_xml_escapes(self):
        """Chapter documents stay well-formed XHTML when text holds ampersands."""
        document = AssembledDocument([
            ChapterMarkup(0, "ch1", "<p>Q&amp;A &lt;b&gt; &amp;copy;&nbsp;</p>"),
        ])
        package = EpubEmitter().render(document, ())
        assert package.chapters[0].content == "<p>Q&amp;A &lt;b&gt; &amp;copy; </p>"

    def test_html_still_decodes_ampersands(self):
        """The single HTML document keeps the plain entity table."""
        document = AssembledDocument([ChapterMarkup(0, "ch1", "<p>Q&amp;A</p>")])
        assert "<p>Q&A</p>" in HtmlEmitter().render(document)

    def test_publish_without_cover_on_fetch_failure(self, tmp_path, monkeypatch):
        """A failed cover download is not fatal."""
        monkeypatch.setattr("svgbook.fetch.fetch_image", lambda url, timeout=30.0, client=None: None)
        document = AssembledDocument([ChapterMarkup(0, "ch1", head_html() + "<p>x</p>" + tail_html(),
                                                    cover="http://img.example/c.jpg")])
        emitter = EpubEmitter(embed_images=False)
        path = emitter.publish(document, TOC, "Book", tmp_path / "book.epub")
        assert path.exists()


class TestEmitterFor:
    """Tests for emitter selection."""

    @pytest.mark.parametrize("fmt,cls", [("html", HtmlEmitter), ("pdf", PdfEmitter), ("epub", EpubEmitter)])
    def test_selects_by_format(self, tmp_path, fmt, cls):
        """The configured format picks the strategy."""
        config = ConverterConfig(output_dir=tmp_path, book_title="Book", output_format=fmt)
        assert type(emitter_for(config)) is cls
        assert EMITTERS[fmt] is cls

    def test_config_options_passed(self, tmp_path):
        """Format options reach the emitter."""
        config = ConverterConfig(
            output_dir=tmp_path,
            book_title="Book",
            output_format="epub",
            book_author="Someone",
            embed_images=False,
            language="en",
        )
        emitter = emitter_for(config)
        assert emitter.author == "Someone"
        assert emitter.embed_images is False
        assert emitter.language == "en"
