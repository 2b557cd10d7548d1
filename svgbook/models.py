"""
Data records shared by the conversion stages.
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ChapterSource:
    """Raw SVG fragments of one chapter, as fetched."""

    chapter_id: str
    contents: tuple[str, ...]
    order_index: int
    path_in_epub: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ChapterSource":
        contents = data.get("contents", data.get("Contents")) or ()
        if isinstance(contents, str):
            contents = (contents,)
        return cls(
            chapter_id=str(data.get("chapter_id", data.get("ChapterID", ""))),
            contents=tuple(contents),
            order_index=int(data.get("order_index", data.get("OrderIndex", 0))),
            path_in_epub=str(data.get("path_in_epub", data.get("PathInEpub", ""))),
        )


@dataclass(frozen=True)
class TocEntry:
    """One node of the book's table of contents."""

    href: str
    level: int
    order: int
    text: str
    offset: int = 0

    @property
    def chapter_id(self) -> str:
        return self.href.split("#")[0]

    @property
    def fragment(self) -> str:
        parts = self.href.split("#")
        return parts[1] if len(parts) > 1 else ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TocEntry":
        return cls(
            href=str(data.get("href", "")),
            level=int(data.get("level", 0)),
            order=int(data.get("playOrder", data.get("order", 0))),
            text=str(data.get("text", "")),
            offset=int(data.get("offset", 0)),
        )


@dataclass
class FootnoteTarget:
    """Where a footnote anchor jumps to."""

    href: str = ""
    style: str = ""


@dataclass
class Glyph:
    """One positioned text or image element of a chapter snapshot."""

    name: str  # "text" or "image"
    x: float = 0.0
    y: float = 0.0  # Line key (may be borrowed from the baseline)
    width: float = 0.0
    height: float = 0.0
    style: str = ""
    content: str = ""
    css_class: str = ""
    alt: str = ""
    id: str = ""
    href: str = ""
    length: str = ""
    offset: str = ""

    bold: bool = False
    italic: bool = False
    superscript: bool = False  # Rendered as <sup>, footnote references included
    subscript: bool = False
    newline: bool = False

    footnote: FootnoteTarget = field(default_factory=FootnoteTarget)

    @property
    def is_image(self) -> bool:
        return self.name == "image"

    @property
    def is_text(self) -> bool:
        return self.name == "text"


@dataclass
class Line:
    """Glyphs sharing one vertical position, in document order."""

    key: float
    glyphs: list[Glyph] = field(default_factory=list)


@dataclass
class ChapterMarkup:
    """Assembled markup of one chapter."""

    index: int
    chapter_id: str
    markup: str
    cover: str = ""  # Cover document (pdf) or cover URL (epub) found in this chapter


@dataclass
class AssembledDocument:
    """Chapters in reading order, ready for a format emitter."""

    chapters: list[ChapterMarkup] = field(default_factory=list)

    @property
    def cover(self) -> str:
        if self.chapters and self.chapters[0].index == 0:
            return self.chapters[0].cover
        return ""


@dataclass
class Book:
    """A loaded input dump: title, chapters and table of contents."""

    title: str
    chapters: list[ChapterSource]
    toc: list[TocEntry] = field(default_factory=list)
