"""
Glyph extraction and line grouping for one chapter fragment.
"""

import logging

from lxml import etree

from .classifier import ScriptClassifier, ScriptKind, style_flags, to_float
from .config import LayoutConfig
from .footnotes import FootnoteDelimiterPair
from .models import FootnoteTarget, Glyph, Line
from .svgtree import anchors, attributes, local_name, own_text, split_anchor_href

logger = logging.getLogger(__name__)

NBSP = "\u00a0"

# Element names that become glyphs; other positioned shapes are skipped
GLYPH_NAMES = ("text", "image")


def _anchor_content(
    chapter_id: str,
    element: etree._Element,
    attrs: dict[str, str],
    footnotes: FootnoteDelimiterPair,
) -> tuple[str, FootnoteTarget]:
    """Recover text and footnote target from `a` children of a text element.

    Sets `attrs["id"]` so the glyph can be jumped to from its counterpart.
    """
    content = ""
    target = FootnoteTarget()
    for anchor in anchors(element):
        content += anchor.text or ""
        anchor_attrs = attributes(anchor)
        href = anchor_attrs.get("href")
        if href is None:
            continue
        filename, fragment = split_anchor_href(href)
        if fragment:
            target.href = f"#{filename}_{footnotes.counterpart(fragment)}"
            attrs["id"] = f"{chapter_id}_{fragment}"
        else:
            target.href = f"#{filename}"
            attrs["id"] = chapter_id
        target.style = anchor_attrs.get("style", "")
    return content, target


def extract_lines(
    chapter_id: str,
    root: etree._Element,
    footnotes: FootnoteDelimiterPair | None = None,
    layout: LayoutConfig | None = None,
) -> list[Line]:
    """Flatten a fragment into glyphs grouped by line.

    Args:
        chapter_id: Identifier of the chapter being processed
        root: Parsed fragment root
        footnotes: Book-wide footnote marker pair
        layout: Thresholds for script and footnote-image detection

    Returns:
        Lines in ascending `y`, glyphs in document order within each line
    """
    footnotes = footnotes or FootnoteDelimiterPair()
    layout = layout or LayoutConfig()
    classifier = ScriptClassifier(layout)

    lines: dict[float, Line] = {}
    children = list(root)
    offset = ""

    for k, child in enumerate(children):
        attrs = attributes(child)
        if "y" not in attrs:
            continue
        name = local_name(child)
        glyph = Glyph(name=name)
        content = own_text(child)

        if name == "text":
            if content:
                glyph.content = content
            elif len(child):
                glyph.content, glyph.footnote = _anchor_content(chapter_id, child, attrs, footnotes)
            else:
                # Keeps the line height of blank lines
                glyph.content = NBSP

        decision = classifier.observe(name, attrs, content)
        glyph.superscript = decision.kind is ScriptKind.SUPERSCRIPT
        glyph.subscript = decision.kind is ScriptKind.SUBSCRIPT
        glyph.newline = decision.newline

        glyph.length = attrs.get("len", "")
        glyph.css_class = attrs.get("class", "")
        if "style" in attrs:
            glyph.style = attrs["style"].replace("fill", "color")
            glyph.bold, glyph.italic = style_flags(glyph.style)

        glyph.x = to_float(attrs.get("x"))
        glyph.width = to_float(attrs.get("width"))
        glyph.height = to_float(attrs.get("height"))

        line_y = decision.y
        # Footnote images sit on the text line they annotate
        if name == "image" and glyph.width < layout.footnote_image_width and k > 0:
            previous_y = attributes(children[k - 1]).get("y")
            if previous_y is not None:
                line_y = previous_y
        glyph.y = to_float(line_y)

        if "id" in attrs:
            glyph.id = attrs["id"]
            if "offset" in attrs:
                offset = attrs["offset"]
        glyph.offset = offset
        glyph.href = attrs.get("href", "")
        glyph.alt = attrs.get("alt", "")

        if name in GLYPH_NAMES:
            lines.setdefault(glyph.y, Line(key=glyph.y)).glyphs.append(glyph)

    return [lines[key] for key in sorted(lines)]
