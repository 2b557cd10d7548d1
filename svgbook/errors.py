"""
Exceptions raised while converting a book.
"""


class SvgBookError(Exception):
    """Base class for conversion errors."""


class ChapterParseError(SvgBookError):
    """A chapter fragment could not be parsed as markup.

    Fatal for the whole run: no partial document is written.
    """

    def __init__(self, chapter_id: str, content: str, reason: str) -> None:
        self.chapter_id = chapter_id
        self.content = content
        self.reason = reason
        super().__init__(f"Failed to parse chapter {chapter_id!r}: {reason}")

    @property
    def snippet(self) -> str:
        """Start of the failing content, for reports."""
        return self.content[:200] + "..." if len(self.content) > 200 else self.content
