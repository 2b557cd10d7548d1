"""Tests for loading chapter snapshot dumps."""

import json

import pytest
from svgbook.errors import SvgBookError
from svgbook.models import ChapterSource, TocEntry
from svgbook.sources import load_book


def write_dump(tmp_path, data, name="book.json"):
    path = tmp_path / name
    path.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
    return path


class TestLoadBook:
    """Tests for dump loading."""

    def test_loads_and_sorts(self, tmp_path):
        """Chapters come back in order index order."""
        path = write_dump(tmp_path, {
            "title": "书名",
            "toc": [{"href": "c1#a", "level": 0, "playOrder": 1, "text": "One", "offset": 3}],
            "chapters": [
                {"chapter_id": "c2", "order_index": 2, "contents": ["<svg/>"]},
                {"chapter_id": "c1", "order_index": 1, "contents": ["<svg/>", "<svg/>"]},
            ],
        })
        book = load_book(path)
        assert book.title == "书名"
        assert [c.chapter_id for c in book.chapters] == ["c1", "c2"]
        assert book.chapters[0].contents == ("<svg/>", "<svg/>")
        assert book.toc == [TocEntry(href="c1#a", level=0, order=1, text="One", offset=3)]

    def test_title_defaults_to_file_name(self, tmp_path):
        """Dumps without a title use the file stem."""
        path = write_dump(tmp_path, {"chapters": []}, name="my-book.json")
        assert load_book(path).title == "my-book"

    def test_invalid_json(self, tmp_path):
        """Broken JSON is a conversion error."""
        path = tmp_path / "book.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(SvgBookError, match="Invalid JSON"):
            load_book(path)

    def test_not_an_object(self, tmp_path):
        """The top level must be an object."""
        path = write_dump(tmp_path, [1, 2])
        with pytest.raises(SvgBookError):
            load_book(path)

    def test_malformed_entry(self, tmp_path):
        """Non-numeric order values are reported."""
        path = write_dump(tmp_path, {"chapters": [{"chapter_id": "c1", "order_index": "first"}]})
        with pytest.raises(SvgBookError, match="Malformed"):
            load_book(path)

    def test_missing_file(self, tmp_path):
        """Missing files raise FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_book(tmp_path / "nope.json")


class TestFromDict:
    """Tests for record parsing."""

    def test_go_style_keys(self):
        """Capitalized dump keys are accepted."""
        source = ChapterSource.from_dict({"ChapterID": "c9", "OrderIndex": 4, "Contents": "<svg/>"})
        assert source == ChapterSource("c9", ("<svg/>",), 4)

    def test_toc_fragment(self):
        """Hrefs split into chapter id and fragment."""
        entry = TocEntry.from_dict({"href": "c1#sec2", "level": 1, "order": 5, "text": "S"})
        assert (entry.chapter_id, entry.fragment, entry.order) == ("c1", "sec2", 5)
        assert TocEntry.from_dict({"href": "c1"}).fragment == ""
