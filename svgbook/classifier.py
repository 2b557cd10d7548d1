"""
Superscript/subscript, newline and font-style heuristics for text glyphs.

Snapshots carry no markup for scripts: a footnote number or an exponent is
just a smaller glyph sitting higher (or lower) than the text around it. The
classifier follows the running baseline of a chapter and decides for every
glyph whether it belongs on that baseline.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from .config import LayoutConfig

logger = logging.getLogger(__name__)


class ScriptKind(Enum):
    """Vertical placement of a text glyph relative to the baseline."""

    BASELINE = "baseline"
    SUPERSCRIPT = "superscript"
    SUBSCRIPT = "subscript"


@dataclass
class ScriptDecision:
    """Outcome of classifying one element."""

    kind: ScriptKind
    y: str  # Line key to group the glyph under
    newline: bool


def to_float(value: str | None) -> float:
    """Parse a coordinate attribute; missing or malformed values are 0."""
    try:
        return float(value) if value else 0.0
    except ValueError:
        return 0.0


def is_numeric_or_math(text: str, symbols: str = LayoutConfig.math_symbols) -> bool:
    """True when every character is a digit or a math symbol."""
    return all(ch.isdigit() or ch in symbols for ch in text)


def style_flags(style: str) -> tuple[bool, bool]:
    """(bold, italic) from an inline style string."""
    bold = "font-weight: bold;" in style
    italic = "font-style: oblique" in style or "font-style: italic" in style
    return bold, italic


def resolve_newline(attrs: dict[str, str], layout: LayoutConfig) -> bool:
    """Whether a declared `newline="true"` should be honored.

    Short, small or low glyphs that look like scripts never start a new line.
    """
    if attrs.get("newline") != "true":
        return False
    if "top" in attrs:
        if "height" in attrs and to_float(attrs["height"]) <= layout.newline_max_script_height:
            return False
        if layout.has_small_font(attrs.get("style", "")):
            return False
        if "len" in attrs and to_float(attrs["len"]) <= layout.script_max_declared_len:
            return False
    return True


class ScriptClassifier:
    """Tracks the baseline of one chapter fragment.

    Feed every positioned element to `observe()` in document order.
    """

    def __init__(self, layout: LayoutConfig | None = None) -> None:
        self.layout = layout or LayoutConfig()
        self._last_y = ""
        self._last_top = ""
        self._last_height = ""
        self._last_name = ""

    def observe(self, name: str, attrs: dict[str, str], content: str) -> ScriptDecision:
        """Classify one element and advance the baseline.

        Args:
            name: Element name ('text', 'image', ...)
            attrs: Element attributes
            content: The element's own text (not recovered from anchors)

        Returns:
            ScriptDecision with the placement, line key and newline flag
        """
        newline = resolve_newline(attrs, self.layout)
        kind = ScriptKind.BASELINE

        if name == "text" and "top" in attrs:
            kind = self._classify_text(name, attrs, content)
            if kind is not ScriptKind.BASELINE:
                newline = False

        y = attrs.get("y", "")
        if kind is not ScriptKind.BASELINE and self._last_y:
            y = self._last_y
        elif kind is ScriptKind.BASELINE and name == "text":
            self._last_y = y

        self._last_name = name
        return ScriptDecision(kind=kind, y=y, newline=newline)

    def _is_short_number(self, content: str) -> bool:
        return (
            content != ""
            and len(content) <= self.layout.script_max_chars
            and is_numeric_or_math(content, self.layout.math_symbols)
        )

    def _classify_text(self, name: str, attrs: dict[str, str], content: str) -> ScriptKind:
        layout = self.layout
        top = to_float(attrs.get("top"))
        height = to_float(attrs.get("height"))
        declared_len = to_float(attrs.get("len"))
        last_top = to_float(self._last_top)
        last_height = to_float(self._last_height)

        candidate = height < last_height * layout.script_height_ratio and (
            name == self._last_name or self._is_short_number(content)
        )

        small_font = layout.has_small_font(attrs.get("style", ""))
        if small_font:
            candidate = True

        y = to_float(attrs.get("y"))
        last_y = to_float(self._last_y)
        if y and last_y and last_y - y > layout.raised_offset:
            candidate = True

        if candidate:
            confirmed = self._is_short_number(content) or (
                declared_len <= layout.script_max_declared_len and small_font
            )
            if confirmed:
                if top < last_top:
                    return ScriptKind.SUPERSCRIPT
                return ScriptKind.SUBSCRIPT

        self._last_top = attrs["top"]
        self._last_height = attrs.get("height", "")
        return ScriptKind.BASELINE
