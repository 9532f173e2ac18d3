# clinic_dashboard/core/storage.py
"""
Storage page helpers: file size formatting, file list filtering and
the per-category breakdown.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from clinic_dashboard.core.subscription.guards import parse_datetime
from clinic_dashboard.core.subscription.models import StorageUsage
from clinic_dashboard.utils.config import FILE_CATEGORY_LABELS, LARGE_FILE_THRESHOLD_BYTES
from clinic_dashboard.utils.logging_config import get_logger

logger = get_logger(__name__)

KB = 1024
MB = KB * 1024
GB = MB * 1024

SORT_FIELDS = ("size", "date")
SORT_ORDERS = ("asc", "desc")


def format_file_size(size_bytes: Optional[int]) -> str:
    """
    Format a byte count for display.

    Examples:
        0 -> "0 B", 2048 -> "2.0 KB", 5 * 1024**3 -> "5.00 GB"
    """
    size_bytes = size_bytes or 0
    if size_bytes < KB:
        return f"{size_bytes} B"
    if size_bytes < MB:
        return f"{size_bytes / KB:.1f} KB"
    if size_bytes < GB:
        return f"{size_bytes / MB:.1f} MB"
    return f"{size_bytes / GB:.2f} GB"


def category_label(category: Optional[str]) -> str:
    """Display label for a file category, the raw value for unknown ones."""
    return FILE_CATEGORY_LABELS.get(category or "", category or "")


def is_large_file(file: Dict[str, Any]) -> bool:
    return (file.get("fileSize") or 0) > LARGE_FILE_THRESHOLD_BYTES


def filter_and_sort_files(
    files: List[Dict[str, Any]],
    search: str = "",
    category: str = "all",
    sort_by: str = "size",
    sort_order: str = "desc",
) -> List[Dict[str, Any]]:
    """
    Filter the file list and sort it.

    Args:
        files: Storage file dictionaries (fileName, category, fileSize, createdAt)
        search: Case-insensitive match on file name or category
        category: Category to keep, or "all"
        sort_by: "size" or "date"
        sort_order: "asc" or "desc"

    Returns:
        New sorted list
    """
    if sort_by not in SORT_FIELDS:
        raise ValueError(f"Invalid sort field: {sort_by}")
    if sort_order not in SORT_ORDERS:
        raise ValueError(f"Invalid sort order: {sort_order}")

    term = (search or "").strip().lower()
    result = []
    for file in files:
        if category != "all" and file.get("category") != category:
            continue
        name = (file.get("fileName") or "").lower()
        file_category = (file.get("category") or "").lower()
        if term and term not in name and term not in file_category:
            continue
        result.append(file)

    epoch = datetime.min.replace(tzinfo=timezone.utc)

    def key(file: Dict[str, Any]):
        if sort_by == "size":
            return file.get("fileSize") or 0
        return parse_datetime(file.get("createdAt")) or epoch

    result.sort(key=key, reverse=sort_order == "desc")
    logger.debug(f"Filtered files: {len(result)} of {len(files)} (sort {sort_by} {sort_order})")
    return result


def storage_file_stats(files: List[Dict[str, Any]]) -> Dict[str, int]:
    """Totals for the storage page header: count, total bytes and large files."""
    return {
        "total_files": len(files),
        "total_size": sum(f.get("fileSize") or 0 for f in files),
        "large_files": sum(1 for f in files if is_large_file(f)),
    }


def storage_breakdown_rows(storage: StorageUsage) -> List[Dict[str, Any]]:
    """
    One row per category with GB used and share of the plan limit.

    Args:
        storage: Storage usage from the usage metrics

    Returns:
        List of dicts with category, label, gb and percent_of_limit
    """
    values = {
        "attachment": storage.attachments_gb,
        "avatar": storage.avatars_gb,
        "export": storage.exports_gb,
    }
    rows = []
    for category, gb in values.items():
        percent = gb / storage.limit_gb * 100 if storage.limit_gb > 0 else 0
        rows.append(
            {
                "category": category,
                "label": category_label(category),
                "gb": gb,
                "percent_of_limit": percent,
            }
        )
    return rows
