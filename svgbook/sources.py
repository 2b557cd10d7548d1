"""
Loading of chapter snapshot dumps.

A dump is a JSON object:

    {
        "title": "Book title",
        "toc": [{"href": "ch1#sec", "level": 0, "playOrder": 1, "text": "..."}],
        "chapters": [{"chapter_id": "ch1", "order_index": 0, "contents": ["<svg>...</svg>"]}]
    }
"""

import json
import logging
from pathlib import Path

from .errors import SvgBookError
from .models import Book, ChapterSource, TocEntry

logger = logging.getLogger(__name__)


def load_book(path: Path) -> Book:
    """Read a dump from disk.

    Args:
        path: JSON file

    Returns:
        Book with chapters sorted by order index

    Raises:
        FileNotFoundError: If the file does not exist
        SvgBookError: If the file is not a valid dump
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise SvgBookError(f"Invalid JSON in {path}: {e}") from e

    if not isinstance(data, dict):
        raise SvgBookError(f"Expected a JSON object in {path}")

    raw_chapters = data.get("chapters") or []
    if not isinstance(raw_chapters, list):
        raise SvgBookError(f"'chapters' must be a list in {path}")

    try:
        chapters = [ChapterSource.from_dict(item) for item in raw_chapters]
        toc = [TocEntry.from_dict(item) for item in data.get("toc") or []]
    except (TypeError, ValueError, AttributeError) as e:
        raise SvgBookError(f"Malformed entry in {path}: {e}") from e

    chapters.sort(key=lambda c: c.order_index)
    title = str(data.get("title") or path.stem)

    logger.info(f"Loaded {path.name}: {len(chapters)} chapters, {len(toc)} TOC entries")
    return Book(title=title, chapters=chapters, toc=toc)
