"""
PDF rendering of the intermediate HTML through WeasyPrint.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class PdfOptions:
    """Page setup for the renderer."""

    page_size: str = "A4"
    margin_mm: float = 15
    footer_font_size: int = 10
    page_numbers: bool = True

    def page_css(self) -> str:
        footer = ""
        if self.page_numbers:
            footer = (
                "@bottom-right { content: counter(page); "
                f"font-size: {self.footer_font_size}pt; }}"
            )
        return f"@page {{ size: {self.page_size}; margin: {self.margin_mm}mm; {footer} }}"


class PdfRenderer:
    """Paginates the body document and prepends the cover pages.

    Headings become PDF bookmarks, which serve as the document outline.
    """

    def __init__(self, options: PdfOptions | None = None, base_url: str | None = None) -> None:
        self.options = options or PdfOptions()
        self.base_url = base_url

    def render(self, body_html: str, cover_html: str, output_path: Path) -> Path:
        """Write the PDF.

        Args:
            body_html: Chapters joined by page breaks
            cover_html: Standalone cover document ('' for none)
            output_path: Destination file

        Returns:
            Path to the written PDF
        """
        from weasyprint import CSS, HTML

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        stylesheets = [CSS(string=self.options.page_css())]

        main = HTML(string=body_html, base_url=self.base_url).render(stylesheets=stylesheets)
        pages = list(main.pages)
        if cover_html:
            cover = HTML(string=cover_html, base_url=self.base_url).render(stylesheets=stylesheets)
            pages = list(cover.pages) + pages

        main.copy(pages).write_pdf(output_path)
        logger.info(f"PDF saved: {output_path} ({len(pages)} pages)")
        return output_path
