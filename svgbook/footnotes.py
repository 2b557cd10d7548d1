"""
Book-wide footnote anchor conventions.

Footnote links in a book share one naming scheme, for example `note-fwd-3`
for the reference in the text and `note-back-3` for the link back from the
note. Both marker tokens are learned once from the whole book and used to
turn every anchor into a link to its counterpart.
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterable

from .errors import ChapterParseError
from .models import ChapterSource
from .svgtree import anchors, attributes, local_name, own_text, parse_fragment, split_anchor_href

logger = logging.getLogger(__name__)

FOOTNOTE_TOKEN = re.compile(r"([a-zA-Z_-]+)")


@dataclass(frozen=True)
class FootnoteDelimiterPair:
    """The two anchor marker tokens of a book.

    `marker_b` is empty when the book uses a single convention; translation
    is then a no-op.
    """

    marker_a: str = ""
    marker_b: str = ""

    @property
    def is_complete(self) -> bool:
        return bool(self.marker_a and self.marker_b)

    def counterpart(self, fragment: str) -> str:
        """Translate an anchor fragment into its matching back/forward fragment."""
        if not self.is_complete:
            return fragment
        if self.marker_a in fragment:
            return fragment.replace(self.marker_a, self.marker_b)
        return fragment.replace(self.marker_b, self.marker_a)


def fragment_token(fragment: str) -> str:
    """First letter/underscore/hyphen run of a fragment, or ''."""
    match = FOOTNOTE_TOKEN.search(fragment)
    return match.group(1) if match else ""


def _anchor_tokens(root) -> Iterable[str]:
    """Tokens of every footnote anchor in one parsed fragment, in order."""
    for child in root:
        if local_name(child) != "text" or own_text(child) or not len(child):
            continue
        for anchor in anchors(child):
            href = attributes(anchor).get("href")
            if href is None:
                continue
            _, fragment = split_anchor_href(href)
            token = fragment_token(fragment)
            if token:
                yield token


def learn_footnote_delimiters(chapters: Iterable[ChapterSource]) -> FootnoteDelimiterPair:
    """Discover the book's footnote marker pair.

    Args:
        chapters: All chapters of the book, in reading order

    Returns:
        The first two distinct anchor tokens found
    """
    found: list[str] = []
    for chapter in chapters:
        for content in chapter.contents:
            try:
                root = parse_fragment(content, chapter.chapter_id)
            except ChapterParseError as e:
                # Reported by the assembler, which parses every fragment again
                logger.debug(f"Skipping unparsable fragment while learning footnotes: {e}")
                continue
            for token in _anchor_tokens(root):
                if token not in found:
                    found.append(token)
                if len(found) == 2:
                    pair = FootnoteDelimiterPair(found[0], found[1])
                    logger.debug(f"Footnote delimiters: {pair.marker_a!r} <-> {pair.marker_b!r}")
                    return pair

    if found:
        logger.debug(f"Single footnote convention {found[0]!r}, back-links disabled")
        return FootnoteDelimiterPair(found[0])
    return FootnoteDelimiterPair()
