"""
Heading detection against the table of contents.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping

from .models import TocEntry

NBSP = "\u00a0"


def normalize_line(text: str) -> str:
    """Drop every kind of space so glyph-per-character lines compare to TOC text."""
    return text.replace("&nbsp;", "").replace(NBSP, "").replace(" ", "")


@dataclass(frozen=True)
class HeadingIndex:
    """TOC text -> heading level, in TOC order.

    When several TOC texts contain a line, the first one in TOC order wins.
    """

    levels: Mapping[str, int] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def from_toc(cls, toc: Iterable[TocEntry]) -> "HeadingIndex":
        levels: dict[str, int] = {}
        for entry in toc:
            levels[entry.text.strip()] = entry.level
        return cls(MappingProxyType(levels))

    def __len__(self) -> int:
        return len(self.levels)

    def match(self, line_text: str) -> int | None:
        """Heading level for an assembled line, or None for a paragraph.

        Args:
            line_text: Unescaped plain text of the line
        """
        needle = normalize_line(line_text)
        if not needle:
            return None
        for text, level in self.levels.items():
            if needle in text.replace(" ", ""):
                return level
        return None


def heading_tag(level: int, closing: bool = False) -> str:
    """`<h1>`..`<h6>` for TOC levels 0-5; deeper levels get no tag."""
    if not 0 <= level <= 5:
        return ""
    return f"</h{level + 1}>" if closing else f"<h{level + 1}>"
