#!/usr/bin/env python3
"""
Command-line interface for svgbook.

Usage:
    # Chapter snapshot dump -> single HTML document
    svgbook convert ./book.json --output ./output

    # Paginated PDF or EPUB
    svgbook convert ./book.json -f pdf --title "My Book"
    svgbook convert ./book.json -f epub --author "Author Name" --workers 8

    # Show what the whole-book passes learn from a dump
    svgbook inspect ./book.json
"""

import argparse
import logging
import sys
from pathlib import Path

from .emitters import EMITTERS

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


def cmd_convert(args: argparse.Namespace) -> int:
    """Convert a dump into a book."""
    from .config import ConverterConfig
    from .errors import SvgBookError
    from .pipeline import BookConverter
    from .sources import load_book

    input_path = Path(args.input)
    if not input_path.exists():
        print(f"Input file not found: {input_path}", file=sys.stderr)
        return 1

    try:
        book = load_book(input_path)
    except SvgBookError as e:
        print(f"✗ {e}", file=sys.stderr)
        return 1

    try:
        config = ConverterConfig(
            output_dir=Path(args.output),
            book_title=args.title or book.title,
            output_format=args.format,
            book_author=args.author,
            language=args.language,
            workers=args.workers,
            embed_images=not args.no_embed_images,
        )
    except ValueError as e:
        print(f"✗ {e}", file=sys.stderr)
        return 1

    converter = BookConverter(config)
    result = converter.run(book.chapters, book.toc)

    if result.success:
        print(f"\n✓ Success: {result.message}")
        print(f"  Output: {result.output_path}")
        return 0
    else:
        print(f"\n✗ Failed: {result.message}", file=sys.stderr)
        return 1


def cmd_inspect(args: argparse.Namespace) -> int:
    """Print the learned book context and per-chapter line counts."""
    from .context import BookContext
    from .errors import ChapterParseError, SvgBookError
    from .extractor import extract_lines
    from .sources import load_book
    from .svgtree import parse_fragment

    input_path = Path(args.input)
    if not input_path.exists():
        print(f"Input file not found: {input_path}", file=sys.stderr)
        return 1

    try:
        book = load_book(input_path)
    except SvgBookError as e:
        print(f"✗ {e}", file=sys.stderr)
        return 1

    context = BookContext.build(book.chapters, book.toc)

    print(f"Title: {book.title}")
    markers = context.footnotes
    if markers.is_complete:
        print(f"Footnote markers: {markers.marker_a!r} <-> {markers.marker_b!r}")
    elif markers.marker_a:
        print(f"Footnote markers: {markers.marker_a!r} (no counterpart)")
    else:
        print("Footnote markers: none")

    print(f"Headings: {len(context.headings)}")
    for text, level in context.headings.levels.items():
        print(f"  {'  ' * level}[{level}] {text}")

    failed = 0
    print(f"Chapters: {len(book.chapters)}")
    for chapter in book.chapters:
        lines = 0
        try:
            for content in chapter.contents:
                root = parse_fragment(content, chapter.chapter_id)
                lines += len(extract_lines(chapter.chapter_id, root, context.footnotes))
        except ChapterParseError as e:
            failed += 1
            print(f"  {chapter.order_index:>4} {chapter.chapter_id}: {e.reason}")
            continue
        print(f"  {chapter.order_index:>4} {chapter.chapter_id}: {len(chapter.contents)} fragments, {lines} lines")

    if failed:
        print(f"\n⚠ {failed} chapters cannot be parsed", file=sys.stderr)
        return 1
    return 0


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="svgbook",
        description="Rebuild books from SVG chapter snapshots",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # convert command
    p_convert = subparsers.add_parser(
        "convert",
        help="Convert a snapshot dump to HTML, PDF or EPUB",
    )
    p_convert.add_argument("input", help="JSON dump with title, toc and chapters")
    p_convert.add_argument("-f", "--format", choices=sorted(EMITTERS), default="html", help="Output format")
    p_convert.add_argument("-o", "--output", default="./output", help="Output directory")
    p_convert.add_argument("-t", "--title", help="Book title (defaults to the dump's title)")
    p_convert.add_argument("-a", "--author", default="Unknown", help="Book author")
    p_convert.add_argument("-l", "--language", default="zh-CN", help="Language code")
    p_convert.add_argument("--workers", type=int, default=4, help="Chapter assembly threads")
    p_convert.add_argument("--no-embed-images", action="store_true",
                           help="Keep remote image URLs in the EPUB instead of downloading them")
    p_convert.set_defaults(func=cmd_convert)

    # inspect command
    p_inspect = subparsers.add_parser(
        "inspect",
        help="Show footnote markers, headings and line counts of a dump",
    )
    p_inspect.add_argument("input", help="JSON dump with title, toc and chapters")
    p_inspect.set_defaults(func=cmd_inspect)

    args = parser.parse_args()
    setup_logging(args.verbose)

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
