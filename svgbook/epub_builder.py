"""
EPUB packaging of assembled chapter documents.
"""

import logging
import re
import uuid
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Sequence

import httpx

from .fetch import fetch_image, sniff_image

if TYPE_CHECKING:
    from .emitters import EpubChapter

logger = logging.getLogger(__name__)

_REMOTE_IMG_SRC = re.compile(r'(<img\b[^>]*?\bsrc=")(https?://[^"]+)(")')


@dataclass
class EPUBMetadata:
    """Metadata for EPUB file."""

    title: str
    author: str = "Unknown"
    language: str = "zh-CN"
    identifier: str = ""
    publisher: str = ""
    description: str = ""
    date: str = ""

    def __post_init__(self) -> None:
        if not self.identifier:
            self.identifier = f"urn:uuid:{uuid.uuid4()}"
        if not self.date:
            self.date = datetime.now().strftime("%Y-%m-%d")


@dataclass
class _Resource:
    """A binary file stored in the container."""

    item_id: str
    href: str
    media_type: str
    data: bytes
    properties: str = ""


class EPUBBuilder:
    """Builds EPUB 3 files from standalone chapter documents."""

    def __init__(
        self,
        metadata: EPUBMetadata,
        embed_images: bool = True,
        fetch_timeout: float = 30.0,
    ) -> None:
        """Initialize EPUB builder.

        Args:
            metadata: Book metadata
            embed_images: Download remote images into the container
            fetch_timeout: Seconds allowed for each image download
        """
        self.metadata = metadata
        self.embed_images = embed_images
        self.fetch_timeout = fetch_timeout

    def build(
        self,
        chapters: Sequence["EpubChapter"],
        output_path: Path,
        cover: bytes | None = None,
    ) -> Path:
        """Build EPUB from chapter documents.

        Navigation comes from the TOC entries each chapter carries.

        Args:
            chapters: Chapter documents in reading order
            output_path: Where to save the EPUB
            cover: Cover image bytes, if any

        Returns:
            Path to created EPUB file
        """
        import zipfile

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        chapter_files = [f"chapter{i}.xhtml" for i in range(len(chapters))]
        contents = [chapter.content for chapter in chapters]

        resources: list[_Resource] = []
        if cover:
            cover_resource = self._cover_resource(cover)
            if cover_resource:
                resources.append(cover_resource)
        if self.embed_images:
            contents = self._embed_remote_images(contents, resources)

        nav_entries = self._nav_entries(chapters, chapter_files)

        with zipfile.ZipFile(output_path, 'w', zipfile.ZIP_DEFLATED) as epub:
            # Mimetype must be first and uncompressed
            epub.writestr('mimetype', 'application/epub+zip', compress_type=zipfile.ZIP_STORED)
            epub.writestr('META-INF/container.xml', self._container_xml())
            epub.writestr('OEBPS/content.opf', self._content_opf(chapter_files, resources))
            epub.writestr('OEBPS/toc.ncx', self._toc_ncx(nav_entries))
            epub.writestr('OEBPS/nav.xhtml', self._nav_xhtml(nav_entries))
            epub.writestr('OEBPS/stylesheet.css', self._stylesheet())

            for resource in resources:
                epub.writestr(f'OEBPS/{resource.href}', resource.data)

            for filename, content in zip(chapter_files, contents):
                epub.writestr(f'OEBPS/{filename}', self._as_xhtml(content))

        logger.info(f"Created EPUB with {len(chapters)} chapters: {output_path}")
        return output_path

    def _cover_resource(self, data: bytes) -> _Resource | None:
        kind = sniff_image(data)
        if kind is None:
            logger.warning("Cover is not a readable image, skipping it")
            return None
        extension, media_type = kind
        return _Resource(
            item_id="cover-image",
            href=f"images/cover.{extension}",
            media_type=media_type,
            data=data,
            properties="cover-image",
        )

    def _embed_remote_images(self, contents: list[str], resources: list[_Resource]) -> list[str]:
        """Download remote `<img>` sources and point them at container files.

        Images that cannot be fetched keep their remote URL.
        """
        local: dict[str, str | None] = {}

        with httpx.Client(follow_redirects=True) as client:

            def localize(match: re.Match) -> str:
                url = match.group(2)
                if url not in local:
                    local[url] = self._store_image(url, client, resources)
                href = local[url]
                if href is None:
                    return match.group(0)
                return f"{match.group(1)}{href}{match.group(3)}"

            embedded = [_REMOTE_IMG_SRC.sub(localize, content) for content in contents]

        stored = sum(1 for href in local.values() if href)
        if local:
            logger.info(f"Embedded {stored}/{len(local)} images")
        return embedded

    def _store_image(self, url: str, client: httpx.Client, resources: list[_Resource]) -> str | None:
        data = fetch_image(url, timeout=self.fetch_timeout, client=client)
        if data is None:
            return None
        kind = sniff_image(data)
        if kind is None:
            logger.warning(f"Skipping unreadable image: {url}")
            return None
        extension, media_type = kind
        number = sum(1 for r in resources if r.item_id.startswith("img"))
        resource = _Resource(
            item_id=f"img{number}",
            href=f"images/img{number}.{extension}",
            media_type=media_type,
            data=data,
        )
        resources.append(resource)
        return resource.href

    def _nav_entries(
        self,
        chapters: Sequence["EpubChapter"],
        chapter_files: list[str],
    ) -> list[tuple[str, str, int]]:
        """(title, href, level) for every navigation point."""
        entries = []
        for chapter, filename in zip(chapters, chapter_files):
            for entry in chapter.toc:
                href = f"{filename}#{entry.fragment}" if entry.fragment else filename
                entries.append((entry.text, href, entry.level))

        if not entries:
            entries = [(chapter.chapter_id, name, 0) for chapter, name in zip(chapters, chapter_files)]
        return entries

    def _as_xhtml(self, content: str) -> str:
        if content.startswith("<?xml"):
            return content
        return '<?xml version="1.0" encoding="UTF-8"?>\n' + content

    def _container_xml(self) -> str:
        """Generate META-INF/container.xml."""
        return '''<?xml version="1.0" encoding="UTF-8"?>
<container version="1.0" xmlns="urn:oasis:names:tc:opendocument:xmlns:container">
    <rootfiles>
        <rootfile full-path="OEBPS/content.opf" media-type="application/oebps-package+xml"/>
    </rootfiles>
</container>'''

    def _content_opf(self, chapter_files: list[str], resources: list[_Resource]) -> str:
        """Generate OEBPS/content.opf (package document)."""
        manifest_items = ['<item id="nav" href="nav.xhtml" media-type="application/xhtml+xml" properties="nav"/>']
        manifest_items.append('<item id="ncx" href="toc.ncx" media-type="application/x-dtbncx+xml"/>')
        manifest_items.append('<item id="css" href="stylesheet.css" media-type="text/css"/>')

        for resource in resources:
            properties = f' properties="{resource.properties}"' if resource.properties else ""
            manifest_items.append(
                f'<item id="{resource.item_id}" href="{resource.href}" '
                f'media-type="{resource.media_type}"{properties}/>'
            )

        spine_items = []
        for i, filename in enumerate(chapter_files):
            manifest_items.append(
                f'<item id="chapter{i}" href="{filename}" media-type="application/xhtml+xml"/>'
            )
            spine_items.append(f'<itemref idref="chapter{i}"/>')

        optional_meta = ""
        if self.metadata.publisher:
            optional_meta += f'\n        <dc:publisher>{self._escape_xml(self.metadata.publisher)}</dc:publisher>'
        if self.metadata.description:
            optional_meta += f'\n        <dc:description>{self._escape_xml(self.metadata.description)}</dc:description>'
        if any(r.properties == "cover-image" for r in resources):
            optional_meta += '\n        <meta name="cover" content="cover-image"/>'

        return f'''<?xml version="1.0" encoding="UTF-8"?>
<package xmlns="http://www.idpf.org/2007/opf" version="3.0" unique-identifier="BookId">
    <metadata xmlns:dc="http://purl.org/dc/elements/1.1/">
        <dc:identifier id="BookId">{self._escape_xml(self.metadata.identifier)}</dc:identifier>
        <dc:title>{self._escape_xml(self.metadata.title)}</dc:title>
        <dc:creator>{self._escape_xml(self.metadata.author)}</dc:creator>
        <dc:language>{self.metadata.language}</dc:language>
        <dc:date>{self.metadata.date}</dc:date>
        <meta property="dcterms:modified">{datetime.now().strftime("%Y-%m-%dT%H:%M:%SZ")}</meta>{optional_meta}
    </metadata>
    <manifest>
        {chr(10).join(manifest_items)}
    </manifest>
    <spine toc="ncx">
        {chr(10).join(spine_items)}
    </spine>
</package>'''

    def _toc_ncx(self, entries: list[tuple[str, str, int]]) -> str:
        """Generate OEBPS/toc.ncx (for EPUB2 compatibility)."""
        nav_points = []
        for i, (title, href, _) in enumerate(entries):
            nav_points.append(f'''
        <navPoint id="navpoint{i}" playOrder="{i+1}">
            <navLabel><text>{self._escape_xml(title)}</text></navLabel>
            <content src="{self._escape_xml(href)}"/>
        </navPoint>''')

        depth = max((level for _, _, level in entries), default=0) + 1
        return f'''<?xml version="1.0" encoding="UTF-8"?>
<ncx xmlns="http://www.daisy.org/z3986/2005/ncx/" version="2005-1">
    <head>
        <meta name="dtb:uid" content="{self._escape_xml(self.metadata.identifier)}"/>
        <meta name="dtb:depth" content="{depth}"/>
        <meta name="dtb:totalPageCount" content="0"/>
        <meta name="dtb:maxPageNumber" content="0"/>
    </head>
    <docTitle><text>{self._escape_xml(self.metadata.title)}</text></docTitle>
    <navMap>
        {''.join(nav_points)}
    </navMap>
</ncx>'''

    def _nav_xhtml(self, entries: list[tuple[str, str, int]]) -> str:
        """Generate OEBPS/nav.xhtml (EPUB3 navigation)."""
        nav_items = []
        for title, href, level in entries:
            nav_items.append(
                f'<li class="toc-level-{level}"><a href="{self._escape_xml(href)}">'
                f'{self._escape_xml(title)}</a></li>'
            )

        return f'''<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE html>
<html xmlns="http://www.w3.org/1999/xhtml" xmlns:epub="http://www.idpf.org/2007/ops" xml:lang="{self.metadata.language}">
<head>
    <meta charset="UTF-8"/>
    <title>Table of Contents</title>
    <link rel="stylesheet" type="text/css" href="stylesheet.css"/>
</head>
<body>
    <nav epub:type="toc">
        <h1>Table of Contents</h1>
        <ol>
            {chr(10).join(nav_items)}
        </ol>
    </nav>
</body>
</html>'''

    def _stylesheet(self) -> str:
        """Generate default stylesheet."""
        return '''body {
    line-height: 1.6;
    margin: 1em;
}

h1, h2, h3, h4, h5, h6 {
    line-height: 1.3;
    margin-top: 1.5em;
    margin-bottom: 0.5em;
}

p {
    margin: 0.5em 0;
}

img {
    max-width: 100%;
}

aside[epub|type~="footnote"] {
    font-size: 0.9em;
}

.toc-level-1 { margin-left: 1em; }
.toc-level-2 { margin-left: 2em; }
.toc-level-3 { margin-left: 3em; }
'''

    def _escape_xml(self, text: str) -> str:
        """Escape special XML characters."""
        return (
            text
            .replace("&", "&amp;")
            .replace("<", "&lt;")
            .replace(">", "&gt;")
            .replace('"', "&quot;")
            .replace("'", "&apos;")
        )
