"""Tests for reqlog.docs.serializer."""

from datetime import UTC, datetime

import pytest
import yaml

from reqlog.core.exceptions import DocumentParseError, NotARequestLogError
from reqlog.docs.serializer import parse, serialize

DOC_ID = "REQ-20250101-app"

LEGACY = """\
---
type: request-log
doc_id: REQ-20251203-capture-app
title: Capture App Request Log
project_id: capture-app
item_count: 1
tags: [ux]
items_index:
  - id: REQ-20251203-capture-app-01
    type: enhancement
    title: Add dark mode toggle
created_at: 2025-12-03T10:00:00Z
updated_at: 2025-12-03T14:30:00Z
---

## REQ-20251203-capture-app-01 - Add dark mode toggle

**Type:** enhancement | **Domain:** web | **Priority:** medium | **Status:** triage
**Tags:** ux
**Context:** Settings page redesign

### Problem/Goal
Users need dark mode for better readability at night.
"""


def _front(text: str) -> dict:
    return yaml.safe_load(text.split("---\n")[1])


class TestRoundTrip:
    def test_document_with_items(self, make_document, make_item):
        doc = make_document(
            [
                make_item(DOC_ID, 1, tags=["api", "ux"], context="Settings page", notes="First line\n\nSecond line"),
                make_item(DOC_ID, 2, title="Title - with dash", status=""),
                make_item(DOC_ID, 3, notes="Has a rule\n---\nin the middle"),
            ]
        )
        assert parse(serialize(doc)) == doc

    def test_empty_document(self, make_document):
        doc = make_document()
        text = serialize(doc)
        assert "##" not in text
        assert parse(text) == doc

    def test_unicode(self, make_document, make_item):
        doc = make_document([make_item(DOC_ID, 1, title="Überprüfung ✓", tags=["ümlaut"])], title="Café log")
        text = serialize(doc)
        assert "Café log" in text
        assert parse(text) == doc

    def test_crlf_and_bom(self, make_document, make_item):
        doc = make_document([make_item(DOC_ID, 1, notes="a\nb")])
        text = "\ufeff" + serialize(doc).replace("\n", "\r\n")
        assert parse(text) == doc

    def test_multiline_single_line_fields_are_inlined(self, make_document, make_item):
        doc = make_document([make_item(DOC_ID, 1, title="Two\nlines", context="ctx\r\nmore")])
        parsed = parse(serialize(doc))
        assert parsed.items[0].title == "Two lines"
        assert parsed.items[0].context == "ctx more"


class TestSerialize:
    def test_header_regenerated_from_items(self, make_document, make_item):
        doc = make_document([make_item(DOC_ID, 1, tags=["b", "a"]), make_item(DOC_ID, 2, type="bug", tags=["a"])])
        front = _front(serialize(doc))
        assert front["type"] == "request-log"
        assert front["doc_id"] == DOC_ID
        assert front["item_count"] == 2
        assert front["tags"] == ["a", "b"]
        assert front["items_index"] == [
            {"id": f"{DOC_ID}-01", "type": "task", "title": "Item 1"},
            {"id": f"{DOC_ID}-02", "type": "bug", "title": "Item 2"},
        ]

    def test_item_layout(self, make_document, make_item):
        doc = make_document([make_item(DOC_ID, 1, tags=["api", "ux"], context="ctx", notes="Do the thing")])
        text = serialize(doc)
        assert f"## {DOC_ID}-01 - Item 1\n" in text
        assert "**Type:** task | **Domain:** core | **Priority:** medium | **Status:** backlog\n" in text
        assert "**Tags:** api, ux\n" in text
        assert "**Context:** ctx\n" in text
        assert "### Problem/Goal\nDo the thing\n" in text

    def test_items_separated_by_rule(self, make_document, make_item):
        text = serialize(make_document([make_item(DOC_ID, 1), make_item(DOC_ID, 2)]))
        assert "\n\n---\n\n## REQ-20250101-app-02" in text

    def test_frontmatter_keys_in_order(self, make_document):
        text = serialize(make_document())
        keys = [line.split(":")[0] for line in text.splitlines()[1:] if line and not line.startswith((" ", "-"))]
        assert keys[:9] == [
            "type",
            "doc_id",
            "title",
            "project_id",
            "item_count",
            "tags",
            "items_index",
            "created_at",
            "updated_at",
        ]


class TestParseLegacy:
    def test_flow_tags_and_unquoted_timestamps(self):
        doc = parse(LEGACY)
        assert doc.doc_id == "REQ-20251203-capture-app"
        assert doc.title == "Capture App Request Log"
        assert doc.created_at == datetime(2025, 12, 3, 10, 0, tzinfo=UTC)
        assert doc.updated_at == datetime(2025, 12, 3, 14, 30, tzinfo=UTC)
        assert doc.tags == ["ux"]

        item = doc.items[0]
        assert item.title == "Add dark mode toggle"
        assert item.type == "enhancement"
        assert item.domain == "web"
        assert item.status == "triage"
        assert item.context == "Settings page redesign"
        assert item.notes == "Users need dark mode for better readability at night."

    def test_missing_created_line_falls_back_to_id_date(self):
        assert parse(LEGACY).items[0].created_at == datetime(2025, 12, 3, tzinfo=UTC)

    def test_stale_header_body_wins(self, log_messages):
        stale = LEGACY.replace("item_count: 1", "item_count: 4").replace(
            "  - id: REQ-20251203-capture-app-01", "  - id: REQ-20251203-capture-app-07"
        )
        doc = parse(stale, source="stale.md")
        assert doc.item_count == 1
        assert [e.id for e in doc.items_index] == ["REQ-20251203-capture-app-01"]
        assert any("item_count=4" in m for m in log_messages)
        assert any("items_index" in m for m in log_messages)

        front = _front(serialize(doc))
        assert front["item_count"] == 1
        assert front["items_index"][0]["id"] == "REQ-20251203-capture-app-01"

    def test_missing_type_tolerated(self):
        doc = parse(LEGACY.replace("type: request-log\n", ""))
        assert doc.doc_id == "REQ-20251203-capture-app"


class TestParseErrors:
    @pytest.mark.parametrize(
        "text",
        [
            "# Just some notes\n\nNothing to see.\n",
            "",
            "---\ntype: task\nid: T-1\n---\nbody\n",
            "---\ntitle: meeting notes\n---\n",
            "---\n- a\n- b\n---\n",
            "---\n: : :\n  bad: [\n---\n",
            "---\ndate: 2025-02-30\n---\nA stray note with an impossible date.\n",
        ],
    )
    def test_not_a_request_log(self, text):
        with pytest.raises(NotARequestLogError):
            parse(text)

    def test_not_a_request_log_is_a_parse_error(self):
        with pytest.raises(DocumentParseError):
            parse("plain text")

    @pytest.mark.parametrize(
        "old,new",
        [
            ("created_at: 2025-12-03T10:00:00Z", "created_at: yesterday"),
            ("created_at: 2025-12-03T10:00:00Z", "created_at: 2025-02-30"),
            ("updated_at: 2025-12-03T14:30:00Z", "updated_at: 2025-13-01T14:30:00Z"),
            ("updated_at: 2025-12-03T14:30:00Z", "updated_at: ''"),
            ("doc_id: REQ-20251203-capture-app", "doc_id: bogus"),
            ("tags: [ux]", "tags: ux"),
            ("**Type:** enhancement | **Domain:** web | **Priority:** medium | **Status:** triage\n", ""),
            ("title: Capture App Request Log", "title: [unclosed"),
        ],
    )
    def test_malformed_request_log(self, old, new):
        with pytest.raises(DocumentParseError) as exc_info:
            parse(LEGACY.replace(old, new), source="broken.md")
        assert not isinstance(exc_info.value, NotARequestLogError)
        assert exc_info.value.source == "broken.md"

    def test_duplicate_item_id(self):
        body = LEGACY.split("---\n\n", 1)[1]
        with pytest.raises(DocumentParseError, match="duplicate"):
            parse(LEGACY + "\n---\n\n" + body)

    def test_foreign_item_header(self):
        text = LEGACY.replace("## REQ-20251203-capture-app-01", "## REQ-20251203-other-01")
        with pytest.raises(DocumentParseError, match="does not belong"):
            parse(text)

    def test_invalid_created_line(self):
        text = LEGACY.replace("**Context:** Settings page redesign", "**Context:** x\n**Created:** not-a-date")
        with pytest.raises(DocumentParseError, match="created"):
            parse(text)

    def test_impossible_timestamp_reports_yaml_error(self):
        text = LEGACY.replace("created_at: 2025-12-03T10:00:00Z", "created_at: 2025-02-30")
        with pytest.raises(DocumentParseError, match="invalid YAML frontmatter") as exc_info:
            parse(text)
        assert isinstance(exc_info.value.__cause__, ValueError)
