# clinic_dashboard/core/export.py
"""
Excel export of tenant data.

Builds one formatted sheet per dataset plus a summary sheet with openpyxl.
"""

import io
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from clinic_dashboard.core.records import (
    appointment_status_label,
    format_datetime,
    full_name,
    task_priority_label,
    task_status_label,
)
from clinic_dashboard.core.subscription.guards import is_feature_available
from clinic_dashboard.core.subscription.models import Subscription
from clinic_dashboard.utils.logging_config import get_logger

logger = get_logger(__name__)

EXCEL_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

HEADER_FILL = PatternFill(start_color="E6E6FA", end_color="E6E6FA", fill_type="solid")
HEADER_FONT = Font(bold=True, size=11)
TITLE_FONT = Font(bold=True, size=14)
THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin"),
)

MIN_COLUMN_WIDTH = 8
MAX_COLUMN_WIDTH = 40

Column = Tuple[str, Callable[[Dict[str, Any]], Any]]


class ExportError(Exception):
    """Raised when an export is requested but cannot be produced"""

    pass


PATIENT_COLUMNS: List[Column] = [
    ("First name", lambda p: p.get("firstName")),
    ("Last name", lambda p: p.get("lastName")),
    ("Email", lambda p: p.get("email")),
    ("Phone", lambda p: p.get("phone")),
    ("Date of birth", lambda p: (p.get("dateOfBirth") or "")[:10]),
    ("Gender", lambda p: p.get("gender")),
    ("Active", lambda p: "Yes" if p.get("isActive", True) else "No"),
    ("Created", lambda p: format_datetime(p.get("createdAt"), "%d/%m/%Y")),
]

APPOINTMENT_COLUMNS: List[Column] = [
    ("Title", lambda a: a.get("title")),
    ("Patient", lambda a: full_name(a.get("patient"))),
    ("Psychologist", lambda a: full_name(a.get("psychologist"))),
    ("Start", lambda a: format_datetime(a.get("startTime"))),
    ("Duration (min)", lambda a: a.get("duration")),
    ("Status", lambda a: appointment_status_label(a.get("status"))),
    ("Online", lambda a: "Yes" if a.get("isOnline") else "No"),
]

TASK_COLUMNS: List[Column] = [
    ("Title", lambda t: t.get("title")),
    ("Patient", lambda t: full_name(t.get("patient"))),
    ("Assigned to", lambda t: full_name(t.get("assignedTo"))),
    ("Priority", lambda t: task_priority_label(t.get("priority"))),
    ("Status", lambda t: task_status_label(t.get("status"))),
    ("Due", lambda t: format_datetime(t.get("dueDate"), "%d/%m/%Y")),
]

DATASETS = {
    "patients": ("Patients", PATIENT_COLUMNS),
    "appointments": ("Appointments", APPOINTMENT_COLUMNS),
    "tasks": ("Tasks", TASK_COLUMNS),
}


def can_export(subscription: Optional[Subscription]) -> bool:
    return is_feature_available("data_export", subscription)


def write_dataset_sheet(ws, title: str, columns: List[Column], records: List[Dict]) -> None:
    """
    Fill a worksheet with a styled header row and one row per record.

    Args:
        ws: Worksheet object
        title: Sheet title shown above the table
        columns: (header, value getter) pairs
        records: Record dictionaries
    """
    logger.debug(f"Writing sheet {title} with {len(records)} rows")

    ws["A1"] = title
    ws["A1"].font = TITLE_FONT

    for col_num, (header, _) in enumerate(columns, 1):
        cell = ws.cell(row=3, column=col_num, value=header)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.border = THIN_BORDER
        cell.alignment = Alignment(horizontal="center")

    for row_num, record in enumerate(records, 4):
        for col_num, (_, getter) in enumerate(columns, 1):
            value = getter(record)
            cell = ws.cell(row=row_num, column=col_num, value=value if value != "" else None)
            cell.border = THIN_BORDER

    ws.freeze_panes = "A4"
    auto_adjust_column_widths(ws, len(columns))


def auto_adjust_column_widths(ws, column_count: int) -> None:
    """Size each column to its longest value, within fixed bounds"""
    for col_num in range(1, column_count + 1):
        max_length = 0
        for row in ws.iter_rows(min_row=3, min_col=col_num, max_col=col_num):
            value = row[0].value
            if value is not None:
                max_length = max(max_length, len(str(value)))

        width = min(max(max_length + 2, MIN_COLUMN_WIDTH), MAX_COLUMN_WIDTH)
        ws.column_dimensions[get_column_letter(col_num)].width = width


def write_summary_sheet(
    ws, tenant_name: str, counts: Dict[str, int], generated_at: datetime
) -> None:
    ws["A1"] = f"{tenant_name} - Data export"
    ws["A1"].font = TITLE_FONT
    ws["A2"] = f"Generated at {generated_at.strftime('%d/%m/%Y %H:%M')}"

    for row_num, (label, count) in enumerate(counts.items(), 4):
        label_cell = ws.cell(row=row_num, column=1, value=label)
        label_cell.font = HEADER_FONT
        label_cell.border = THIN_BORDER
        ws.cell(row=row_num, column=2, value=count).border = THIN_BORDER

    ws.column_dimensions["A"].width = 24
    ws.column_dimensions["B"].width = 12


def create_export_workbook(
    tenant_name: str,
    data: Dict[str, List[Dict[str, Any]]],
    generated_at: Optional[datetime] = None,
) -> Workbook:
    """
    Create the export workbook.

    Args:
        tenant_name: Clinic name for the summary sheet
        data: Records keyed by dataset name (patients, appointments, tasks);
            missing datasets are skipped
        generated_at: Timestamp printed on the summary sheet

    Returns:
        Workbook with a Summary sheet followed by one sheet per dataset
    """
    generated_at = generated_at or datetime.now()
    logger.info(f"Creating export workbook for {tenant_name}")

    wb = Workbook()
    summary = wb.active
    summary.title = "Summary"

    counts = {}
    for key, (title, columns) in DATASETS.items():
        if key not in data:
            continue
        records = data[key] or []
        write_dataset_sheet(wb.create_sheet(title=title), title, columns, records)
        counts[title] = len(records)

    write_summary_sheet(summary, tenant_name, counts, generated_at)
    logger.info(f"Export workbook created: {counts}")
    return wb


def generate_export_bytes(
    subscription: Optional[Subscription],
    tenant_name: str,
    data: Dict[str, List[Dict[str, Any]]],
) -> io.BytesIO:
    """
    Generate the export file for download.

    Raises:
        ExportError: If the plan does not include data export
    """
    if not can_export(subscription):
        logger.warning("Export requested without the data export feature")
        raise ExportError("Data export is not included in your plan")

    wb = create_export_workbook(tenant_name, data)
    excel_file = io.BytesIO()
    wb.save(excel_file)
    excel_file.seek(0)
    return excel_file


def generate_export_filename(tenant_slug: str, generated_at: Optional[datetime] = None) -> str:
    generated_at = generated_at or datetime.now()
    slug = (tenant_slug or "clinic").replace(" ", "_")
    return f"clinic_export_{slug}_{generated_at.strftime('%Y%m%d_%H%M')}.xlsx"
