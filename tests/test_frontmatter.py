"""Tests for front matter parsing and rendering."""

from datetime import UTC, datetime, timedelta

import yaml
from postbridge.frontmatter import (
    format_date,
    normalize_date,
    parse_document,
    render_document,
    split_front_matter,
)


class TestSplitFrontMatter:
    def test_fenced(self):
        meta, body = split_front_matter("---\ntitle: Hello\ntags: [a, b]\n---\nBody text\n")
        assert meta == {"title": "Hello", "tags": ["a", "b"]}
        assert body == "Body text\n"

    def test_unfenced(self):
        meta, body = split_front_matter("title: Hello\n---\nBody text")
        assert meta == {"title": "Hello"}
        assert body == "Body text"

    def test_empty_fence(self):
        meta, body = split_front_matter("---\n---\nJust body")
        assert meta == {}
        assert body == "Just body"

    def test_no_front_matter(self):
        raw = "# Heading\n\nSome prose.\n"
        assert split_front_matter(raw) == ({}, raw)

    def test_horizontal_rule_in_prose_is_body(self):
        raw = "Some prose, with a comma.\n---\nMore prose."
        assert split_front_matter(raw) == ({}, raw)

    def test_invalid_yaml_is_body(self):
        raw = "---\ntitle: [unclosed\n---\nbody"
        assert split_front_matter(raw) == ({}, raw)


class TestDates:
    def test_date_only(self):
        assert format_date(normalize_date("2024-03-01")) == "2024-03-01T00:00:00.000Z"

    def test_offset_converted_to_utc(self):
        value = normalize_date("2024-03-01T10:30:00+02:00")
        assert format_date(value) == "2024-03-01T08:30:00.000Z"

    def test_yaml_datetime(self):
        value = normalize_date(datetime(2024, 3, 1, 12, 0, 0, 250000))
        assert format_date(value) == "2024-03-01T12:00:00.250Z"

    def test_invalid_falls_back_to_now(self):
        value = normalize_date("not a date")
        assert abs(value - datetime.now(tz=UTC)) < timedelta(seconds=5)

    def test_missing_falls_back_to_now(self):
        assert abs(normalize_date(None) - datetime.now(tz=UTC)) < timedelta(seconds=5)


class TestParseDocument:
    def test_fills_defaults(self):
        meta, body = parse_document("Plain body", "My Note.md")
        assert meta["title"] == "My Note"
        assert meta["slug"] == "my-note"
        assert meta["date"].endswith("Z")
        assert body == "Plain body"

    def test_keeps_given_values(self):
        raw = "---\ntitle: Trip Report\ndate: 2024-03-01\nauthor: sam\n---\nHello\n"
        meta, body = parse_document(raw, "ignored.md")
        assert meta["title"] == "Trip Report"
        assert meta["slug"] == "trip-report"
        assert meta["date"] == "2024-03-01T00:00:00.000Z"
        assert meta["author"] == "sam"
        assert body == "Hello\n"

    def test_explicit_slug_is_slugified(self):
        meta, _ = parse_document("---\ntitle: X\nslug: Custom Slug\n---\n", "x.md")
        assert meta["slug"] == "custom-slug"


class TestRenderDocument:
    def test_round_trip(self):
        meta = {"title": "Über", "date": "2024-03-01T00:00:00.000Z", "tags": ["a"]}
        text = render_document(meta, "Body\n")
        assert text.startswith("---\ntitle: Über\n")
        parsed, body = split_front_matter(text)
        assert parsed == meta
        assert body == "Body\n"

    def test_keeps_key_order(self):
        text = render_document({"z": 1, "a": 2}, "")
        header = text.split("---\n")[1]
        assert list(yaml.safe_load(header)) == ["z", "a"]
