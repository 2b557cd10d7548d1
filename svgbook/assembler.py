"""
Line and paragraph assembly: glyph lines to chapter markup.
"""

import html
import itertools
import logging

from .config import LayoutConfig
from .context import BookContext
from .emitters import FormatEmitter, attr
from .extractor import extract_lines
from .headings import heading_tag
from .models import ChapterMarkup, ChapterSource, Glyph, Line
from .svgtree import parse_fragment

logger = logging.getLogger(__name__)

# Outermost first; closed in reverse
INLINE_TAGS = (
    ("bold", "b"),
    ("italic", "i"),
    ("superscript", "sup"),
    ("subscript", "sub"),
)


def line_style(glyphs: list[Glyph]) -> str:
    """Style shared by most of a line: the last glyph's, skipping a trailing image."""
    last = glyphs[-1]
    if not last.is_image:
        return last.style
    if len(glyphs) > 1:
        return glyphs[-2].style
    return glyphs[0].style


def wrap_text(glyph: Glyph, text: str) -> str:
    """Wrap escaped text in the glyph's inline tags and footnote link."""
    active = [tag for flag, tag in INLINE_TAGS if getattr(glyph, flag)]
    if glyph.footnote.href:
        link = f'<a id="{attr(glyph.id)}" href="{attr(glyph.footnote.href)}"'
        if glyph.footnote.style:
            link += f' style="{attr(glyph.footnote.style)}"'
        text = f"{link}>{text}</a>"
    opening = "".join(f"<{tag}>" for tag in active)
    closing = "".join(f"</{tag}>" for tag in reversed(active))
    return opening + text + closing


class ChapterAssembler:
    """Builds the markup of one chapter.

    Holds only per-chapter state; the book context is shared read-only.
    """

    def __init__(
        self,
        index: int,
        context: BookContext,
        emitter: FormatEmitter,
        layout: LayoutConfig | None = None,
    ) -> None:
        self.index = index
        self.context = context
        self.emitter = emitter
        self.layout = layout or emitter.layout
        self.cover = ""
        self._glyph_numbers = itertools.count()

    def assemble(self, source: ChapterSource) -> ChapterMarkup:
        parts = [self.emitter.chapter_prefix(self.index, self.context.toc)]
        for content in source.contents:
            root = parse_fragment(content, source.chapter_id)
            lines = extract_lines(source.chapter_id, root, self.context.footnotes, self.layout)
            parts.append(f'\n<div id="{attr(source.chapter_id)}">')
            parts.extend(self.assemble_line(line) for line in lines)
            parts.append("</div>")
        parts.append(self.emitter.chapter_suffix(self.index))

        logger.debug(f"Assembled chapter {self.index} ({source.chapter_id})")
        return ChapterMarkup(
            index=self.index,
            chapter_id=source.chapter_id,
            markup="".join(parts),
            cover=self.cover,
        )

    def assemble_line(self, line: Line) -> str:
        """Markup of one visual line: block images, note bodies, then the paragraph."""
        glyphs = line.glyphs
        if not glyphs:
            return ""

        layout = self.layout
        out: list[str] = []
        inline: list[str] = []
        plain: list[str] = []

        base_style = line_style(glyphs)
        alignment = layout.alignment(glyphs[0].x)
        open_span: str | None = None
        style = ""

        for i, glyph in enumerate(glyphs):
            number = next(self._glyph_numbers)
            style = glyph.style + alignment
            width, height = layout.scale_image(glyph.width, glyph.height)

            if glyph.is_image:
                placement = self.emitter.render_image(
                    glyph, width, height, style, f"footnote-{self.index}-{number}"
                )
                out.append(placement.aside)
                if width < layout.footnote_image_width:
                    inline.append(placement.markup)
                    continue
                if self.index == 0 and not self.cover:
                    self.cover = self.emitter.cover_from(glyph, placement)
                if self.emitter.keeps_block_image(self.index):
                    out.append(placement.markup)
                continue

            if open_span is not None and glyph.style != open_span:
                inline.append("</span>")
                open_span = None
            if glyph.style != base_style and open_span is None:
                inline.append(f'<span style="{attr(glyph.style)}">')
                open_span = glyph.style

            if glyph.newline and i > 0:
                inline.append("<br/>")

            text = html.escape(glyph.content)
            inline.append(wrap_text(glyph, text))
            plain.append(text)

        if open_span is not None:
            inline.append("</span>")

        if len(glyphs) > 2 and glyphs[-1].is_image:
            style = glyphs[-2].style

        text = html.unescape("".join(plain))
        level = self.context.headings.match(text) if text else None

        if text:
            if level is not None:
                out.append(f"\n</div><div class='header{level}'>{heading_tag(level)}")
            else:
                out.append("\n\t<p>")

        if inline:
            out.append(self._wrap_line("".join(inline), glyphs[0].id, style))

        if text:
            if level is not None:
                out.append(f'{heading_tag(level, closing=True)}</div>\n<div class="part">')
            else:
                out.append("</p>")

        return "".join(out)

    @staticmethod
    def _wrap_line(content: str, line_id: str, style: str) -> str:
        attrs = ""
        if line_id:
            attrs += f' id="{attr(line_id)}"'
        if style:
            attrs += f' style="{attr(style)}"'
        if not attrs:
            return content
        return f"<span{attrs}>{content}</span>"


def assemble_chapter(
    source: ChapterSource,
    index: int,
    context: BookContext,
    emitter: FormatEmitter,
    layout: LayoutConfig | None = None,
) -> ChapterMarkup:
    """Assemble one chapter.

    Depends only on its arguments, so chapters can be assembled concurrently.

    Args:
        source: The chapter's raw fragments
        index: Position of the chapter in reading order
        context: Shared book context
        emitter: Target format strategy
        layout: Thresholds (defaults to the emitter's)

    Raises:
        ChapterParseError: If a fragment is not well-formed
    """
    return ChapterAssembler(index, context, emitter, layout).assemble(source)
