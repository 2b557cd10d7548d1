"""
Parsing of chapter SVG fragments into element trees.
"""

import logging
import re
from html.entities import name2codepoint

from lxml import etree

from .errors import ChapterParseError

logger = logging.getLogger(__name__)

# Named entities XML knows without a DTD
XML_ENTITIES = {"lt", "gt", "amp", "quot", "apos"}

_NAMED_ENTITY_RE = re.compile(r"&([a-zA-Z][a-zA-Z0-9]*);")


def _numeric_entities(content: str) -> str:
    """Rewrite HTML named entities (`&nbsp;`) as numeric references."""

    def replace(match: re.Match) -> str:
        name = match.group(1)
        if name in XML_ENTITIES or name not in name2codepoint:
            return match.group(0)
        return f"&#{name2codepoint[name]};"

    return _NAMED_ENTITY_RE.sub(replace, content)


def parse_fragment(content: str, chapter_id: str) -> etree._Element:
    """Parse one chapter fragment.

    Args:
        content: Raw SVG markup of the fragment
        chapter_id: Chapter identifier, reported on failure

    Returns:
        Root element of the fragment

    Raises:
        ChapterParseError: If the markup is not well-formed
    """
    data = _numeric_entities(content).encode("utf-8", errors="ignore")
    parser = etree.XMLParser(
        resolve_entities=False,
        remove_comments=True,
        remove_pis=True,
        huge_tree=True,
    )
    try:
        root = etree.fromstring(data, parser)
    except etree.XMLSyntaxError as e:
        raise ChapterParseError(chapter_id, content, str(e)) from e
    if root is None:
        raise ChapterParseError(chapter_id, content, "empty document")
    return root


def local_name(element: etree._Element) -> str:
    """Tag name without namespace."""
    return etree.QName(element).localname


def attributes(element: etree._Element) -> dict[str, str]:
    """Attributes keyed by local name (`xlink:href` becomes `href`)."""
    return {etree.QName(key).localname: value for key, value in element.attrib.items()}


def own_text(element: etree._Element) -> str:
    """Character data directly inside the element.

    Whitespace-only text in front of child elements is indentation, not content.
    """
    text = element.text or ""
    if len(element) and not text.strip():
        return ""
    return text


def anchors(element: etree._Element) -> list[etree._Element]:
    """Direct `a` children of an element."""
    return [child for child in element if local_name(child) == "a"]


def split_anchor_href(href: str) -> tuple[str, str]:
    """Split `/OEBPS/Text/chapter_00001.xhtml#abc123` into file and fragment.

    Returns:
        Tuple of (file name, fragment); the fragment is empty when absent
    """
    last = href.split("/")[-1]
    parts = last.split("#")
    return parts[0], parts[1] if len(parts) > 1 else ""
