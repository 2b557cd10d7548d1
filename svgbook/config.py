"""
Configuration for the conversion engine.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal


@dataclass(frozen=True)
class LayoutConfig:
    """Geometry bands and heuristic thresholds used on glyph coordinates.

    Attributes:
        page_width: Width of the rendered page in source units
        center_low: Lower bound of the centered band, as a fraction of half the page
        center_high: Upper bound of the centered band, as a fraction of half the page
        right_low: Lower bound of the right-aligned band, as a fraction of the page
        max_image_width: Images wider than this are scaled down to it
        footnote_image_width: Images narrower than this are inline footnote markers
        footnote_image_height: Images shorter than this are inline markers (html/pdf)

        script_height_ratio: Glyphs below this fraction of the baseline height
            may be superscript/subscript
        script_max_chars: Longest numeric/math content accepted as a script
        script_max_declared_len: Longest declared `len` accepted with a small font
        small_font_sizes: Style fragments that mark a small (script) font
        raised_offset: Minimum rise over the baseline `y` that marks a candidate
        newline_max_script_height: Glyphs at or below this height never force a newline
        math_symbols: Characters allowed, besides digits, in script content
    """

    page_width: float = 60000
    center_low: float = 0.9
    center_high: float = 1.1
    right_low: float = 0.9
    max_image_width: float = 900
    footnote_image_width: float = 20
    footnote_image_height: float = 20

    script_height_ratio: float = 0.8
    script_max_chars: int = 3
    script_max_declared_len: float = 5
    small_font_sizes: tuple[str, ...] = ("font-size:11px", "font-size:12px", "font-size:13px")
    raised_offset: float = 2.0
    newline_max_script_height: float = 16
    math_symbols: str = "+-*/^()[]{}.,"

    @property
    def center_band(self) -> tuple[float, float]:
        half = self.page_width / 2
        return half * self.center_low, half * self.center_high

    @property
    def right_edge(self) -> float:
        return self.page_width * self.right_low

    def alignment(self, x: float) -> str:
        """Inline style fragment for a line starting at `x` (may be empty)."""
        low, high = self.center_band
        if low <= x <= high:
            return "display: block;text-align:center;"
        if x >= self.right_edge:
            return "display: block;text-align:right;"
        return ""

    def scale_image(self, width: float, height: float) -> tuple[float, float]:
        """Shrink oversized images, keeping the aspect ratio."""
        if width > self.max_image_width:
            height = self.max_image_width * height / width
            width = self.max_image_width
        return width, height

    def has_small_font(self, style: str) -> bool:
        return any(size in style for size in self.small_font_sizes)


@dataclass
class ConverterConfig:
    """Configuration for one conversion run.

    Attributes:
        output_dir: Directory for all outputs
        book_title: Title of the book (file name and metadata)
        output_format: Target format ('html', 'pdf' or 'epub')

        book_author: Author of the book (EPUB metadata)
        language: Language code used in documents and metadata

        # Processing
        workers: Threads used to assemble chapters (1 = sequential)

        # Collaborators
        fetch_timeout: Seconds allowed for each cover/image download
        embed_images: Download remote images into the EPUB container
        toc_title: Heading of the generated table of contents

        # PDF
        page_size: Paper size handed to the renderer
        margin_mm: Page margin on every side, in millimetres
        pdf_toc: Prepend a table of contents to the PDF body
        pdf_toc_back_links: Link every heading back to the table of contents

        layout: Geometry and heuristic thresholds
    """

    # Required
    output_dir: Path
    book_title: str

    output_format: Literal["html", "pdf", "epub"] = "html"

    # Optional metadata
    book_author: str = "Unknown"
    language: str = "zh-CN"

    # Processing
    workers: int = 4

    # Collaborators
    fetch_timeout: float = 30.0
    embed_images: bool = True
    toc_title: str = "目 录"

    # PDF
    page_size: str = "A4"
    margin_mm: float = 15
    pdf_toc: bool = True
    pdf_toc_back_links: bool = True

    layout: LayoutConfig = field(default_factory=LayoutConfig)

    def __post_init__(self) -> None:
        """Validate and convert paths."""
        self.output_dir = Path(self.output_dir)

        if not self.book_title or not self.book_title.strip():
            raise ValueError("book_title cannot be empty")

        valid_formats = {"html", "pdf", "epub"}
        if self.output_format not in valid_formats:
            raise ValueError(f"Invalid output format: {self.output_format!r}. Valid: {valid_formats}")

        if self.workers < 1:
            raise ValueError(f"workers must be >= 1, got {self.workers}")

        if self.fetch_timeout <= 0:
            raise ValueError(f"fetch_timeout must be > 0, got {self.fetch_timeout}")

        if self.margin_mm < 0:
            raise ValueError(f"margin_mm must be >= 0, got {self.margin_mm}")

    @property
    def ebook_dir(self) -> Path:
        """Directory that receives the generated books."""
        return self.output_dir / "Ebook"

    @property
    def output_path(self) -> Path:
        """Path of the final document."""
        return self.ebook_dir / f"{self._safe_filename}.{self.output_format}"

    @property
    def _safe_filename(self) -> str:
        """Generate safe filename from book title."""
        safe = "".join(c if c.isalnum() or c in " -_" else "_" for c in self.book_title)
        return safe.strip().replace(" ", "_")[:100]
