"""
Conversion orchestration: chapters in, one book out.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from .assembler import assemble_chapter
from .config import ConverterConfig
from .context import BookContext
from .emitters import FormatEmitter, emitter_for
from .errors import SvgBookError
from .models import AssembledDocument, ChapterMarkup, ChapterSource, TocEntry
from .progress import ProgressReporter

logger = logging.getLogger(__name__)


@dataclass
class ConversionResult:
    """Result of one conversion run."""

    success: bool
    output_path: Path | None
    chapters: int
    message: str
    error: Exception | None = None


class BookConverter:
    """Turns chapter snapshots into an HTML, PDF or EPUB book.

    Usage:
        config = ConverterConfig(
            output_dir="./output",
            book_title="My Book",
            output_format="epub",
        )
        converter = BookConverter(config)
        result = converter.run(book.chapters, book.toc)
    """

    def __init__(self, config: ConverterConfig, show_progress: bool = True) -> None:
        """Initialize the converter.

        Args:
            config: Conversion configuration
            show_progress: Draw a progress line while chapters are assembled
        """
        self.config = config
        self.show_progress = show_progress
        self.emitter: FormatEmitter = emitter_for(config)
        self._setup_logging()

    def _setup_logging(self) -> None:
        """Ensure logging is configured.

        Only sets up a basic config if no handlers are configured,
        allowing the CLI to control logging setup.
        """
        if not logging.root.handlers:
            logging.basicConfig(
                level=logging.INFO,
                format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                datefmt="%H:%M:%S",
            )

    def assemble(self, chapters: Sequence[ChapterSource], toc: Sequence[TocEntry]) -> AssembledDocument:
        """Assemble every chapter, in order.

        The book context is built before the first chapter starts. Chapters
        are independent afterwards and run on a thread pool.

        Raises:
            ChapterParseError: If any fragment is not well-formed
        """
        ordered = sorted(chapters, key=lambda c: c.order_index)
        context = BookContext.build(ordered, toc)
        layout = self.config.layout
        slots: list[ChapterMarkup | None] = [None] * len(ordered)

        progress = None
        if self.show_progress and ordered:
            progress = ProgressReporter(len(ordered), desc="Assembling", unit="chapters")

        try:
            if self.config.workers == 1:
                for i, source in enumerate(ordered):
                    slots[i] = assemble_chapter(source, i, context, self.emitter, layout)
                    if progress:
                        progress.update(item_name=source.chapter_id)
            else:
                with ThreadPoolExecutor(max_workers=self.config.workers) as executor:
                    futures = {
                        executor.submit(assemble_chapter, source, i, context, self.emitter, layout): i
                        for i, source in enumerate(ordered)
                    }
                    for future in as_completed(futures):
                        i = futures[future]
                        try:
                            slots[i] = future.result()
                        except Exception:
                            if progress:
                                progress.update(success=False, item_name=ordered[i].chapter_id)
                            for pending in futures:
                                pending.cancel()
                            raise
                        if progress:
                            progress.update(item_name=ordered[i].chapter_id)
        finally:
            if progress:
                progress.finish()

        return AssembledDocument(chapters=[markup for markup in slots if markup is not None])

    def convert(
        self,
        chapters: Sequence[ChapterSource],
        toc: Sequence[TocEntry] = (),
    ) -> Path:
        """Assemble and write the book.

        Returns:
            Path of the written document

        Raises:
            SvgBookError: If there is nothing to convert or a chapter fails to parse
            OSError: If the output cannot be written
        """
        if not chapters:
            raise SvgBookError("No chapters to convert")

        logger.info(
            f"Converting {self.config.book_title!r}: {len(chapters)} chapters "
            f"-> {self.config.output_format}"
        )
        document = self.assemble(chapters, toc)
        return self.emitter.publish(document, toc, self.config.book_title, self.config.output_path)

    def run(
        self,
        chapters: Sequence[ChapterSource],
        toc: Sequence[TocEntry] = (),
    ) -> ConversionResult:
        """Run a conversion, reporting failure instead of raising.

        Returns:
            ConversionResult with the output path and status
        """
        try:
            output_path = self.convert(chapters, toc)
        except Exception as e:
            logger.exception("Conversion failed")
            return ConversionResult(
                success=False,
                output_path=None,
                chapters=len(chapters),
                message=f"Conversion failed: {e}",
                error=e,
            )

        return ConversionResult(
            success=True,
            output_path=output_path,
            chapters=len(chapters),
            message=f"Converted {len(chapters)} chapters to {self.config.output_format}",
        )
