"""
Entity decoding that leaves intentionally escaped markup alone.

Chapter text is escaped before assembly, so a book that shows `<script>` as
literal text carries `&lt;script&gt;` in the output. Cosmetic entities such as
`&nbsp;` or `&mdash;` are decoded to their characters; escaped tags are not.
"""

import re

ENTITY_TABLE: dict[str, str] = {
    "&nbsp;": " ",
    "&ensp;": " ",
    "&emsp;": " ",
    "&quot;": '"',
    "&apos;": "'",
    "&amp;": "&",
    "&mdash;": "—",
    "&ndash;": "–",
    "&hellip;": "…",
    "&copy;": "©",
    "&reg;": "®",
    "&trade;": "™",
    "&deg;": "°",
    "&plusmn;": "±",
}

# Escaped open, close and self-closing tags, protected in this order
ESCAPED_TAG_PATTERNS = (
    re.compile(r"&lt;[a-zA-Z][^&]*&gt;"),
    re.compile(r"&lt;/[a-zA-Z][^&]*&gt;"),
    re.compile(r"&lt;[a-zA-Z][^&]*/&gt;"),
)

_ENTITY_RE = re.compile("|".join(re.escape(entity) for entity in ENTITY_TABLE))

# NUL never appears in markup, so placeholders cannot collide with content
_PLACEHOLDER_RE = re.compile(r"\x00(\d+)\x00")


def decode_entities(text: str) -> str:
    """Decode the fixed entity table in one pass (no double decoding)."""
    return _ENTITY_RE.sub(lambda m: ENTITY_TABLE[m.group(0)], text)


def preserve_escaped_tags(markup: str) -> str:
    """Decode cosmetic entities while keeping escaped tags byte-identical.

    Args:
        markup: Fully assembled document markup

    Returns:
        Markup with the entity table applied outside escaped tags
    """
    preserved: list[str] = []

    def protect(match: re.Match) -> str:
        preserved.append(match.group(0))
        return f"\x00{len(preserved) - 1}\x00"

    result = markup
    for pattern in ESCAPED_TAG_PATTERNS:
        result = pattern.sub(protect, result)

    result = decode_entities(result)

    # A later pattern may have swallowed an earlier placeholder
    while _PLACEHOLDER_RE.search(result):
        result = _PLACEHOLDER_RE.sub(lambda m: preserved[int(m.group(1))], result)
    return result


# An ampersand that does not start one of the five XML entities or a character reference
_BARE_AMPERSAND_RE = re.compile(r"&(?!(?:amp|lt|gt|quot|apos|#[0-9]+|#x[0-9a-fA-F]+);)")


def escape_bare_ampersands(markup: str) -> str:
    """Re-escape ampersands left bare by decoding, for XHTML output.

    `&amp;` decodes to `&`, and decoded text such as `&copy;` would read as an
    entity XML does not define. Both become `&amp;` again.
    """
    return _BARE_AMPERSAND_RE.sub("&amp;", markup)
