"""
Markup snippets shared by the format emitters.
"""

import html
from typing import Sequence

from .models import TocEntry

STYLESHEET = """\
table, tr, td, th, tbody, thead, tfoot {page-break-inside: avoid !important;}
img { page-break-inside: avoid; max-width: 100% !important;}
img.epub-footnote { margin-right:5px;display: inline;font-size: 12px;}
a.toc-back-link { color: inherit; text-decoration: none;}"""

PAGE_BREAK_AFTER = '\n\t<div style="page-break-after: always;"></div>'
PAGE_BREAK_BEFORE = '<p style="page-break-before: always"></p>'

TOC_STYLE = "font-size:18px;color:rgb(0, 0, 0);font-family:'PingFang SC';text-decoration: none;"
TOC_STYLE_TOP = "font-size:20px;font-weight: bold;color:rgb(0, 0, 0);font-family:'PingFang SC';text-decoration: none;"
TOC_TITLE_STYLE = "font-size:24px;font-weight: bold;color:rgb(0, 0, 0);font-family:'PingFang SC';"


def head_html(language: str = "zh-CN", title: str = "") -> str:
    """Document preamble up to and including `<body>`."""
    title_tag = f"\n\t<title>{html.escape(title)}</title>" if title else ""
    return f"""<!DOCTYPE html>
<html lang="{language}" xmlns="http://www.w3.org/1999/xhtml" xmlns:epub="http://www.idpf.org/2007/ops">
<head>
	<meta charset="UTF-8"/>
	<meta name="viewport" content="width=device-width, initial-scale=1.0"/>
	<meta http-equiv="Content-Type" content="text/html; charset=utf-8"/>{title_tag}
	<style>
{STYLESHEET}
	</style>
</head>
<body>"""


def tail_html() -> str:
    return "\n</body>\n</html>"


def toc_html(toc: Sequence[TocEntry], title: str = "目 录") -> str:
    """Anchor list linking to every TOC fragment.

    Entries without a fragment are listed without a link target.
    """
    if not toc:
        return ""

    parts = [
        '\n<div id="toc">',
        f'\n\t<p><span style="{TOC_TITLE_STYLE}">{html.escape(title)}</span></p>',
    ]
    for entry in toc:
        style = TOC_STYLE_TOP if entry.level == 0 else TOC_STYLE
        text = "&nbsp;" * (entry.level * 4) + html.escape(entry.text)
        if entry.fragment:
            parts.append(f'\n\t<p><a href="#{entry.fragment}" style="{style}">{text}</a></p>')
        else:
            parts.append(f'\n\t<p><a style="{style}">{text}</a></p>')
    parts.append("\n</div>")
    return "".join(parts)
