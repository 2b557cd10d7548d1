"""
svgbook - Rebuild books from SVG chapter snapshots

Turns chapters captured as absolutely positioned text and image glyphs back
into structured documents:
1. Learning the book's footnote anchor convention and heading index
2. Grouping glyphs into visual lines
3. Detecting bold, italic, superscript and subscript runs
4. Assembling paragraphs, headings, images and footnote links
5. Generating HTML, PDF or EPUB output
"""

__version__ = "1.0.0"
__author__ = "svgbook"

from .config import ConverterConfig, LayoutConfig
from .errors import ChapterParseError, SvgBookError
from .pipeline import BookConverter, ConversionResult
from .sources import load_book

__all__ = [
    "BookConverter",
    "ConversionResult",
    "ConverterConfig",
    "LayoutConfig",
    "ChapterParseError",
    "SvgBookError",
    "load_book",
]
