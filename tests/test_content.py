import datetime as dt
from pathlib import Path

from sitelist.content import (
    extract_title,
    get_categories,
    normalize_list_spacing,
    parse_date,
    parse_front_matter,
    slugify,
    summarize,
)
from sitelist.utils import as_list, parse_bool, rfc822_date


def test_front_matter_is_parsed_and_lowercased():
    meta, body = parse_front_matter("\ufeff---\nTitle: Hi\nDraft: yes\n---\nBody\n")
    assert meta == {"title": "Hi", "draft": True}
    assert body == "Body"


def test_invalid_front_matter_is_ignored(caplog):
    meta, body = parse_front_matter("---\ntitle: [oops\n---\nBody\n")
    assert meta == {}
    assert body == "Body"
    assert "invalid front matter" in caplog.text


def test_extract_title_from_heading():
    assert extract_title({}, "# Hello\n\nText") == ("Hello", "Text")
    assert extract_title({"title": "Meta"}, "# Hello") == ("Meta", "# Hello")
    assert extract_title({}, "Text only") == ("Untitled", "Text only")


def test_parse_date_sources(tmp_path: Path):
    path = tmp_path / "a.md"
    path.write_text("x", encoding="utf-8")
    assert parse_date({"date": dt.date(2024, 1, 2)}, path) == dt.datetime(2024, 1, 2)
    assert parse_date({"date": "2024-01-02T10:00:00+02:00"}, path) == dt.datetime(2024, 1, 2, 8, 0)
    assert parse_date({"date": "someday"}, path) == dt.datetime.fromtimestamp(path.stat().st_mtime)


def test_categories_and_summary():
    assert get_categories({"tags": "one"}) == ["one"]
    assert get_categories({"categories": ["a", " ", "b"]}) == ["a", "b"]
    assert summarize({"description": "Given"}, "ignored") == "Given"
    assert summarize({}, "# Heading\n\nFirst <b>real</b>\nparagraph.") == "First real paragraph."
    assert summarize({}, "x" * 210, limit=10) == "x" * 10 + "..."


def test_normalize_list_spacing_outside_fences():
    text = "Intro\n- item\n```\nText\n- not a list\n```"
    assert normalize_list_spacing(text) == "Intro\n\n- item\n```\nText\n- not a list\n```"


def test_slugify_and_utils():
    assert slugify("Hello, World!") == "hello-world"
    assert slugify("!!!") == "item"
    assert parse_bool("On") is True
    assert as_list(None) == []
    assert rfc822_date(dt.datetime(2024, 1, 2, 3, 4, 5)) == "Tue, 02 Jan 2024 03:04:05 +0000"
