"""
Format strategies: HTML, PDF and EPUB flavours of the assembled chapters.

Every emitter answers the same questions for the assembler (how a chapter
starts and ends, how an image is written, what becomes the cover) and then
turns the assembled document into its output.
"""

import html
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from .config import ConverterConfig, LayoutConfig
from .entities import escape_bare_ampersands, preserve_escaped_tags
from .models import AssembledDocument, Glyph, TocEntry
from .templates import PAGE_BREAK_AFTER, PAGE_BREAK_BEFORE, head_html, tail_html, toc_html

logger = logging.getLogger(__name__)

_HEADING_RE = re.compile(r"<h([1-6])>(.*?)</h\1>", re.DOTALL)


def attr(value: str) -> str:
    """Escape an attribute value.

    Quotes use a numeric reference so entity decoding cannot reopen the value.
    """
    return html.escape(value, quote=False).replace('"', "&#34;")


@dataclass
class ImagePlacement:
    """Markup for one image glyph, plus an optional note body (EPUB)."""

    markup: str
    aside: str = ""


@dataclass
class PdfDocument:
    """Intermediate HTML handed to the PDF renderer."""

    body: str
    cover: str = ""


@dataclass
class EpubChapter:
    """One standalone chapter document for the EPUB container."""

    content: str
    chapter_id: str
    toc: list[TocEntry] = field(default_factory=list)


@dataclass
class EpubPackage:
    """Chapters and cover reference for the EPUB builder."""

    chapters: list[EpubChapter]
    cover_url: str = ""


class FormatEmitter:
    """Base strategy; subclasses fill in the format specifics."""

    name = ""
    extension = ""

    def __init__(
        self,
        layout: LayoutConfig | None = None,
        language: str = "zh-CN",
        toc_title: str = "目 录",
    ) -> None:
        self.layout = layout or LayoutConfig()
        self.language = language
        self.toc_title = toc_title

    # Assembly hooks

    def chapter_prefix(self, index: int, toc: Sequence[TocEntry]) -> str:
        return ""

    def chapter_suffix(self, index: int) -> str:
        return ""

    def keeps_block_image(self, chapter_index: int) -> bool:
        """Whether a large image stays in the chapter flow."""
        return True

    def cover_from(self, glyph: Glyph, placement: ImagePlacement) -> str:
        """Cover captured from a large image of chapter 0 ('' for none)."""
        return ""

    def render_image(
        self,
        glyph: Glyph,
        width: float,
        height: float,
        style: str,
        footnote_id: str,
    ) -> ImagePlacement:
        img = (
            f'\n\t<img width="{width:.0f}" height="{height:.0f}" src="{attr(glyph.href)}" '
            f'alt="{attr(glyph.alt)}" title="{attr(glyph.alt)}"/>'
        )
        if style:
            img = f'<div style="{attr(style)}">{img}</div>'
        is_marker = width < self.layout.footnote_image_width or height < self.layout.footnote_image_height
        if is_marker and glyph.css_class:
            img = (
                f'\n\t<sup><img width="{width:.0f}" src="{attr(glyph.href)}" '
                f'alt="{attr(glyph.alt)}" title="{attr(glyph.alt)}" class="{attr(glyph.css_class)}"/></sup>'
            )
        return ImagePlacement(markup=img)

    # Output

    def publish(
        self,
        document: AssembledDocument,
        toc: Sequence[TocEntry],
        title: str,
        output_path: Path,
    ) -> Path:
        raise NotImplementedError


class HtmlEmitter(FormatEmitter):
    """One self-contained HTML document for the whole book."""

    name = "html"
    extension = "html"

    def chapter_prefix(self, index: int, toc: Sequence[TocEntry]) -> str:
        # The anchor list follows the cover chapter
        if index == 1 and toc:
            return toc_html(toc, self.toc_title)
        return ""

    def chapter_suffix(self, index: int) -> str:
        return PAGE_BREAK_AFTER

    def render(self, document: AssembledDocument, toc: Sequence[TocEntry] = (), title: str = "") -> str:
        parts = [head_html(self.language, title)]
        parts.extend(chapter.markup for chapter in document.chapters)
        parts.append(tail_html())
        return preserve_escaped_tags("".join(parts))

    def publish(self, document, toc, title, output_path):
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(self.render(document, toc, title), encoding="utf-8")
        logger.info(f"HTML saved: {output_path}")
        return output_path


class PdfEmitter(FormatEmitter):
    """Chapter documents joined by page breaks, plus a cover document."""

    name = "pdf"
    extension = "pdf"

    def __init__(
        self,
        layout: LayoutConfig | None = None,
        language: str = "zh-CN",
        toc_title: str = "目 录",
        page_size: str = "A4",
        margin_mm: float = 15,
        include_toc: bool = True,
        toc_back_links: bool = True,
    ) -> None:
        super().__init__(layout, language, toc_title)
        self.page_size = page_size
        self.margin_mm = margin_mm
        self.include_toc = include_toc
        self.toc_back_links = toc_back_links

    def chapter_prefix(self, index, toc):
        return head_html(self.language)

    def chapter_suffix(self, index):
        return tail_html()

    def keeps_block_image(self, chapter_index: int) -> bool:
        # Chapter 0 images become the cover page instead
        return chapter_index != 0

    def cover_from(self, glyph, placement):
        return head_html(self.language) + placement.markup + "</body></html>"

    def render(self, document: AssembledDocument, toc: Sequence[TocEntry] = ()) -> PdfDocument:
        sections = []
        with_toc = self.include_toc and bool(toc)
        if with_toc:
            sections.append(head_html(self.language) + toc_html(toc, self.toc_title) + tail_html())
        sections.extend(chapter.markup for chapter in document.chapters)

        # Breaks separate sections; none after the last one
        body = PAGE_BREAK_BEFORE.join(sections)
        if with_toc and self.toc_back_links:
            body = _HEADING_RE.sub(
                r'<h\1><a class="toc-back-link" href="#toc">\2</a></h\1>', body
            )

        cover = preserve_escaped_tags(document.cover) if document.cover else ""
        return PdfDocument(body=preserve_escaped_tags(body), cover=cover)

    def publish(self, document, toc, title, output_path):
        from .pdf_renderer import PdfOptions, PdfRenderer

        pdf = self.render(document, toc)
        renderer = PdfRenderer(PdfOptions(page_size=self.page_size, margin_mm=self.margin_mm))
        return renderer.render(pdf.body, pdf.cover, Path(output_path))


class EpubEmitter(FormatEmitter):
    """Standalone chapter documents with pop-up footnotes."""

    name = "epub"
    extension = "epub"

    def __init__(
        self,
        layout: LayoutConfig | None = None,
        language: str = "zh-CN",
        toc_title: str = "目 录",
        author: str = "Unknown",
        fetch_timeout: float = 30.0,
        embed_images: bool = True,
    ) -> None:
        super().__init__(layout, language, toc_title)
        self.author = author
        self.fetch_timeout = fetch_timeout
        self.embed_images = embed_images

    def chapter_prefix(self, index, toc):
        return head_html(self.language)

    def chapter_suffix(self, index):
        return tail_html()

    def keeps_block_image(self, chapter_index: int) -> bool:
        return chapter_index != 0

    def cover_from(self, glyph, placement):
        return glyph.href

    def render_image(self, glyph, width, height, style, footnote_id):
        img = (
            f'\n\t<img width="{width:.0f}" height="{height:.0f}" src="{attr(glyph.href)}" '
            f'alt="{attr(glyph.alt)}"/>'
        )
        if style:
            img = f'<div style="{attr(style)}">{img}</div>'
        if width < self.layout.footnote_image_width and glyph.css_class:
            img = (
                f'\n\t<sup><a class="duokan-footnote" epub:type="noteref" href="#{footnote_id}">'
                f'<img width="{width:.0f}" src="{attr(glyph.href)}" alt="{attr(glyph.alt)}" '
                f'zy-footnote="{attr(glyph.alt)}" '
                f'class="{attr(glyph.css_class)} zhangyue-footnote qqreader-footnote"/></a></sup>'
            )
            aside = (
                f'<aside epub:type="footnote" id="{footnote_id}">'
                '<ol class="duokan-footnote-content" style="list-style:none;padding:0px;margin:0px;">'
                f'<li class="duokan-footnote-item">{html.escape(glyph.alt, quote=False)}</li>'
                "</ol></aside>"
            )
            return ImagePlacement(markup=img, aside=aside)
        return ImagePlacement(markup=img)

    def render(self, document: AssembledDocument, toc: Sequence[TocEntry] = ()) -> EpubPackage:
        by_chapter: dict[str, list[TocEntry]] = {}
        for entry in toc:
            by_chapter.setdefault(entry.chapter_id, []).append(entry)

        known = {chapter.chapter_id for chapter in document.chapters}
        for chapter_id in sorted(by_chapter.keys() - known):
            logger.debug(f"TOC entries point outside the book: {chapter_id}")

        chapters = [
            EpubChapter(
                content=escape_bare_ampersands(preserve_escaped_tags(chapter.markup)),
                chapter_id=chapter.chapter_id,
                toc=by_chapter.get(chapter.chapter_id, []),
            )
            for chapter in document.chapters
        ]
        return EpubPackage(chapters=chapters, cover_url=document.cover)

    def publish(self, document, toc, title, output_path):
        from .epub_builder import EPUBBuilder, EPUBMetadata
        from .fetch import fetch_image

        package = self.render(document, toc)

        cover = None
        if package.cover_url:
            cover = fetch_image(package.cover_url, timeout=self.fetch_timeout)
            if cover is None:
                logger.warning("Cover could not be fetched, building EPUB without it")

        metadata = EPUBMetadata(title=title, author=self.author, language=self.language)
        builder = EPUBBuilder(
            metadata,
            embed_images=self.embed_images,
            fetch_timeout=self.fetch_timeout,
        )
        return builder.build(package.chapters, Path(output_path), cover=cover)


EMITTERS: dict[str, type[FormatEmitter]] = {
    HtmlEmitter.name: HtmlEmitter,
    PdfEmitter.name: PdfEmitter,
    EpubEmitter.name: EpubEmitter,
}


def emitter_for(config: ConverterConfig) -> FormatEmitter:
    """Build the emitter selected by the configuration."""
    common = dict(layout=config.layout, language=config.language, toc_title=config.toc_title)
    if config.output_format == "pdf":
        return PdfEmitter(
            **common,
            page_size=config.page_size,
            margin_mm=config.margin_mm,
            include_toc=config.pdf_toc,
            toc_back_links=config.pdf_toc_back_links,
        )
    if config.output_format == "epub":
        return EpubEmitter(
            **common,
            author=config.book_author,
            fetch_timeout=config.fetch_timeout,
            embed_images=config.embed_images,
        )
    return HtmlEmitter(**common)
