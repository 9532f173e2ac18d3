"""
Unit tests for storage page helpers.
"""

from __future__ import annotations

import pytest

from clinic_dashboard.core.storage import (
    MB,
    category_label,
    filter_and_sort_files,
    format_file_size,
    storage_breakdown_rows,
    storage_file_stats,
)
from clinic_dashboard.core.subscription.models import StorageUsage

FILES = [
    {"id": "f1", "fileName": "Intake.pdf", "category": "attachment", "fileSize": 2 * MB,
     "createdAt": "2026-03-01T10:00:00Z"},
    {"id": "f2", "fileName": "me.png", "category": "avatar", "fileSize": 200 * 1024,
     "createdAt": "2026-03-05T10:00:00Z"},
    {"id": "f3", "fileName": "march.xlsx", "category": "export", "fileSize": 15 * MB,
     "createdAt": "2026-02-20T10:00:00Z"},
]


class TestFormatting:
    @pytest.mark.parametrize(
        "size, expected",
        [
            (0, "0 B"),
            (None, "0 B"),
            (512, "512 B"),
            (2048, "2.0 KB"),
            (3 * MB, "3.0 MB"),
            (5 * 1024 * MB, "5.00 GB"),
        ],
    )
    def test_format_file_size(self, size, expected) -> None:
        assert format_file_size(size) == expected

    def test_category_label(self) -> None:
        assert category_label("attachment") == "Attachments"
        assert category_label("other") == "other"


class TestFileList:
    def test_default_sort_is_largest_first(self) -> None:
        assert [f["id"] for f in filter_and_sort_files(FILES)] == ["f3", "f1", "f2"]

    def test_sort_by_date_ascending(self) -> None:
        result = filter_and_sort_files(FILES, sort_by="date", sort_order="asc")
        assert [f["id"] for f in result] == ["f3", "f1", "f2"]

    def test_sort_by_date_descending(self) -> None:
        result = filter_and_sort_files(FILES, sort_by="date")
        assert [f["id"] for f in result] == ["f2", "f1", "f3"]

    def test_search_matches_name_or_category(self) -> None:
        assert [f["id"] for f in filter_and_sort_files(FILES, search="INTAKE")] == ["f1"]
        assert [f["id"] for f in filter_and_sort_files(FILES, search="avat")] == ["f2"]

    def test_category_filter(self) -> None:
        assert [f["id"] for f in filter_and_sort_files(FILES, category="export")] == ["f3"]

    def test_does_not_mutate_input(self) -> None:
        original = list(FILES)
        filter_and_sort_files(FILES, sort_order="asc")
        assert FILES == original

    @pytest.mark.parametrize("kwargs", [{"sort_by": "name"}, {"sort_order": "up"}])
    def test_invalid_sort(self, kwargs) -> None:
        with pytest.raises(ValueError):
            filter_and_sort_files(FILES, **kwargs)

    def test_stats_count_large_files(self) -> None:
        assert storage_file_stats(FILES) == {
            "total_files": 3,
            "total_size": 2 * MB + 200 * 1024 + 15 * MB,
            "large_files": 1,
        }


class TestBreakdown:
    def test_rows_per_category(self) -> None:
        rows = storage_breakdown_rows(
            StorageUsage(used_gb=1.5, limit_gb=10, attachments_gb=1.0, avatars_gb=0.5)
        )
        assert [r["category"] for r in rows] == ["attachment", "avatar", "export"]
        assert rows[0]["percent_of_limit"] == pytest.approx(10.0)
        assert rows[2]["gb"] == 0

    def test_zero_limit(self) -> None:
        rows = storage_breakdown_rows(StorageUsage(attachments_gb=1.0))
        assert all(r["percent_of_limit"] == 0 for r in rows)
