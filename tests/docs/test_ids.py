"""Tests for reqlog.docs.ids."""

from datetime import date, datetime

import pytest

from reqlog.core.exceptions import InvalidInputError
from reqlog.docs.ids import (
    generate_default_project_path,
    generate_doc_id,
    generate_item_id,
    get_next_item_number,
    is_valid_doc_id,
    is_valid_item_id,
    parse_doc_id,
    parse_item_id,
    sanitize_path_segment,
    slugify,
)


class TestSlugify:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("My Project Name", "my-project-name"),
            ("Special!@#$%Characters", "specialcharacters"),
            ("  Multiple   Spaces  ", "multiple-spaces"),
            ("under_score_text", "under-score-text"),
            ("Mixed-CASE_Text 123", "mixed-case-text-123"),
            ("--already--hyphenated--", "already-hyphenated"),
            ("tab\tand\nnewline", "tab-and-newline"),
        ],
    )
    def test_examples(self, text, expected):
        assert slugify(text) == expected

    @pytest.mark.parametrize("text", ["", "   ", "!!!", "___", "-"])
    def test_empty_result(self, text):
        assert slugify(text) == ""

    def test_non_string(self):
        assert slugify(None) == ""  # type: ignore[arg-type]

    @pytest.mark.parametrize(
        "text",
        ["Hello World", "a - b", "Ünïcödé tëxt", "x__y--z", "  -lead and trail-  ", "a.b/c\\d", "İstanbul"],
    )
    def test_idempotent(self, text):
        once = slugify(text)
        assert slugify(once) == once


class TestSanitizePathSegment:
    def test_plain(self):
        assert sanitize_path_segment("My Project") == "my-project"

    def test_traversal(self):
        assert sanitize_path_segment("../etc/passwd") == "etcpasswd"
        assert sanitize_path_segment("project/../../bad") == "projectbad"

    def test_backslashes_and_control_chars(self):
        result = sanitize_path_segment("..\\win\x00dows\x1f")
        assert result == "windows"

    @pytest.mark.parametrize("payload", ["../../x", "a/b\\c", "....//", "\x00..\x00/..", "~/..//.."])
    def test_never_contains_separators_or_traversal(self, payload):
        result = sanitize_path_segment(payload)
        assert "/" not in result
        assert "\\" not in result
        assert ".." not in result

    def test_default_project_path(self):
        assert generate_default_project_path("~/projects/{name}", "My Project") == "~/projects/my-project"
        assert generate_default_project_path("~/projects/{name}", "../..") == "~/projects/untitled"


class TestGenerateDocId:
    def test_format(self):
        assert generate_doc_id("capture-app", date(2025, 12, 3)) == "REQ-20251203-capture-app"

    def test_slugifies_project(self):
        assert generate_doc_id("My App", datetime(2025, 1, 5, 23, 59)) == "REQ-20250105-my-app"

    def test_defaults_to_today(self):
        today = date.today().strftime("%Y%m%d")
        assert generate_doc_id("app") == f"REQ-{today}-app"

    @pytest.mark.parametrize("slug", ["", "!!!", "   "])
    def test_empty_slug_raises(self, slug):
        with pytest.raises(InvalidInputError):
            generate_doc_id(slug, date(2025, 1, 1))


class TestGenerateItemId:
    def test_zero_padded(self):
        assert generate_item_id("REQ-20251203-capture-app", 1) == "REQ-20251203-capture-app-01"
        assert generate_item_id("REQ-20251203-capture-app", 15) == "REQ-20251203-capture-app-15"
        assert generate_item_id("REQ-20251203-capture-app", 99) == "REQ-20251203-capture-app-99"

    @pytest.mark.parametrize("doc_id", ["INVALID", "REQ-2025-app", "REQ-20251301-app", ""])
    def test_invalid_doc_id(self, doc_id):
        with pytest.raises(InvalidInputError, match="Invalid document ID"):
            generate_item_id(doc_id, 1)

    @pytest.mark.parametrize("n", [0, 100, -1, 1.5, "1", True])
    def test_invalid_number(self, n):
        with pytest.raises(InvalidInputError, match="between 1 and 99"):
            generate_item_id("REQ-20251203-app", n)


class TestParseDocId:
    def test_valid(self):
        parsed = parse_doc_id("REQ-20251203-capture-app")
        assert parsed is not None
        assert parsed.date == date(2025, 12, 3)
        assert parsed.project_slug == "capture-app"

    @pytest.mark.parametrize(
        "value",
        [
            "INVALID-ID",
            "REQ-2025-capture-app",
            "REQ-20251301-project",
            "REQ-20250231-project",
            "REQ-20250100-project",
            "req-20250101-project",
            "REQ-20250101-Project",
            "REQ-20250101-",
            "",
            None,
            42,
        ],
    )
    def test_invalid_returns_none(self, value):
        assert parse_doc_id(value) is None
        assert not is_valid_doc_id(value)

    def test_leap_day(self):
        assert parse_doc_id("REQ-20240229-app") is not None
        assert parse_doc_id("REQ-20250229-app") is None


class TestParseItemId:
    def test_valid(self):
        parsed = parse_item_id("REQ-20251203-capture-app-07")
        assert parsed is not None
        assert parsed.doc_id == "REQ-20251203-capture-app"
        assert parsed.item_number == 7
        assert parsed.date == date(2025, 12, 3)
        assert parsed.project_slug == "capture-app"

    @pytest.mark.parametrize(
        "value",
        [
            "REQ-20251203-capture-app",
            "REQ-20251203-project-100",
            "REQ-20250231-app-01",
            "INVALID-ID",
            "REQ-20251203-app-1",
            None,
        ],
    )
    def test_invalid_returns_none(self, value):
        assert parse_item_id(value) is None
        assert not is_valid_item_id(value)

    def test_usable_as_filter(self):
        ids = ["REQ-20250101-app-01", "junk", "REQ-20250101-app-02", "REQ-20250230-app-03"]
        assert [i for i in ids if parse_item_id(i)] == ["REQ-20250101-app-01", "REQ-20250101-app-02"]


class TestGetNextItemNumber:
    def test_empty(self):
        assert get_next_item_number([]) == 1

    def test_gaps_use_max(self):
        items = [{"id": "REQ-20251203-app-01"}, {"id": "REQ-20251203-app-05"}]
        assert get_next_item_number(items) == 6

    def test_only_unparseable(self):
        assert get_next_item_number([{"id": "INVALID-ID"}, {"id": "REQ-bad-01"}]) == 1

    def test_ignores_unparseable(self):
        assert get_next_item_number(["INVALID-ID", "REQ-20251203-app-03"]) == 4

    def test_objects_with_id(self, make_item):
        items = [make_item("REQ-20250101-app", 2), make_item("REQ-20250101-app", 9)]
        assert get_next_item_number(items) == 10

    def test_order_does_not_matter(self):
        assert get_next_item_number(["REQ-20250101-app-08", "REQ-20250101-app-02"]) == 9
