"""Tests for DataTables-style listing."""

from __future__ import annotations

from mock_servers.hrm_mock.listing import compare_values, paginate, select_page

ROWS = [
    {"id": 1, "name": "bravo", "age": 30},
    {"id": 2, "name": "Alpha", "age": 25},
    {"id": 3, "name": "charlie"},
    {"id": 4, "name": "delta", "age": 41},
]


class TestCompareValues:
    def test_missing_last_in_both_directions(self):
        assert compare_values(None, 1) == 1
        assert compare_values(None, 1, descending=True) == 1
        assert compare_values(1, None, descending=True) == -1

    def test_numbers_numeric(self):
        assert compare_values(9, 10) < 0
        assert compare_values(9, 10, descending=True) > 0

    def test_strings_case_insensitive(self):
        assert compare_values("alpha", "Bravo") < 0


class TestSelectPage:
    def test_defaults(self):
        page, filtered = select_page(ROWS, {})
        assert [r["id"] for r in page] == [1, 2, 3, 4]
        assert filtered == 4

    def test_slice(self):
        page, filtered = select_page(ROWS, {"start": "1", "length": "2"})
        assert [r["id"] for r in page] == [2, 3]
        assert filtered == 4

    def test_invalid_numbers_fall_back(self):
        page, _ = select_page(ROWS, {"start": "abc", "length": ""})
        assert len(page) == 4

    def test_filter_substring_case_insensitive(self):
        page, filtered = select_page(ROWS, {"name": "AL"})
        assert [r["id"] for r in page] == [2]
        assert filtered == 1

    def test_filter_excludes_rows_without_field(self):
        page, filtered = select_page(ROWS, {"age": "4"})
        assert [r["id"] for r in page] == [4]
        assert filtered == 1

    def test_sort_asc_missing_last(self):
        page, _ = select_page(ROWS, {"sortBy": "age"})
        assert [r["id"] for r in page] == [2, 1, 4, 3]

    def test_sort_desc_missing_last(self):
        page, _ = select_page(ROWS, {"sortBy": "age", "sortDir": "desc"})
        assert [r["id"] for r in page] == [4, 1, 2, 3]

    def test_sort_strings(self):
        page, _ = select_page(ROWS, {"sortBy": "name"})
        assert [r["name"] for r in page] == ["Alpha", "bravo", "charlie", "delta"]


def test_paginate_envelope():
    envelope = paginate(
        ROWS,
        {"length": "2"},
        total=len(ROWS),
        message="ok",
        decorate=lambda row: {**row, "actions": 1},
    )
    body = envelope.model_dump()
    assert body["status"] == "success"
    assert body["recordsTotal"] == 4
    assert body["recordsFiltered"] == 4
    assert [r["actions"] for r in body["data"]] == [1, 1]
