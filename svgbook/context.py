"""
Run-scoped context shared read-only by every chapter.
"""

import logging
from dataclasses import dataclass
from typing import Sequence

from .footnotes import FootnoteDelimiterPair, learn_footnote_delimiters
from .headings import HeadingIndex
from .models import ChapterSource, TocEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookContext:
    """Footnote convention, heading index and TOC of one book.

    Built once before any chapter is assembled and never changed afterwards.
    """

    footnotes: FootnoteDelimiterPair
    headings: HeadingIndex
    toc: tuple[TocEntry, ...] = ()

    @classmethod
    def build(cls, chapters: Sequence[ChapterSource], toc: Sequence[TocEntry]) -> "BookContext":
        """Run the whole-book passes.

        Args:
            chapters: Every chapter of the book
            toc: Table of contents entries, in order
        """
        footnotes = learn_footnote_delimiters(chapters)
        headings = HeadingIndex.from_toc(toc)
        logger.info(
            f"Book context: {len(headings)} headings, "
            f"footnote markers {footnotes.marker_a!r}/{footnotes.marker_b!r}"
        )
        return cls(footnotes=footnotes, headings=headings, toc=tuple(toc))
