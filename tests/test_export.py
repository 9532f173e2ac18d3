"""
Unit tests for the Excel data export.
"""

from __future__ import annotations

from datetime import datetime

import pytest
from openpyxl import load_workbook

from clinic_dashboard.core.export import (
    ExportError,
    can_export,
    create_export_workbook,
    generate_export_bytes,
    generate_export_filename,
)

DATA = {
    "patients": [
        {"firstName": "Eva", "lastName": "Gil", "email": "eva@mail.test",
         "dateOfBirth": "1990-05-01T00:00:00Z", "isActive": True},
        {"firstName": "Leo", "lastName": "Paz", "isActive": False},
    ],
    "tasks": [
        {"title": "Call back", "priority": "HIGH", "status": "PENDING",
         "patient": {"firstName": "Eva", "lastName": "Gil"}},
    ],
}


class TestWorkbook:
    def test_sheets_follow_requested_datasets(self) -> None:
        wb = create_export_workbook("Calm Mind", DATA, datetime(2026, 3, 11, 10, 0))
        assert wb.sheetnames == ["Summary", "Patients", "Tasks"]

    def test_summary_counts(self) -> None:
        wb = create_export_workbook("Calm Mind", DATA, datetime(2026, 3, 11, 10, 0))
        summary = wb["Summary"]
        assert summary["A1"].value == "Calm Mind - Data export"
        assert summary["A2"].value == "Generated at 11/03/2026 10:00"
        assert (summary["A4"].value, summary["B4"].value) == ("Patients", 2)
        assert (summary["A5"].value, summary["B5"].value) == ("Tasks", 1)

    def test_patient_rows(self) -> None:
        ws = create_export_workbook("Calm Mind", DATA)["Patients"]
        assert ws["A3"].value == "First name"
        assert ws["A4"].value == "Eva"
        assert ws["E4"].value == "1990-05-01"
        assert ws["G5"].value == "No"
        # Empty values are written as blank cells
        assert ws["C5"].value is None
        assert ws.freeze_panes == "A4"

    def test_empty_dataset_still_gets_a_sheet(self) -> None:
        wb = create_export_workbook("Calm Mind", {"appointments": []})
        assert wb["Appointments"]["A4"].value is None
        assert wb["Summary"]["B4"].value == 0


class TestGenerate:
    def test_requires_data_export_feature(self, basic_subscription) -> None:
        assert not can_export(basic_subscription)
        with pytest.raises(ExportError):
            generate_export_bytes(basic_subscription, "Calm Mind", DATA)

    def test_no_subscription(self) -> None:
        with pytest.raises(ExportError):
            generate_export_bytes(None, "Calm Mind", DATA)

    def test_bytes_open_as_workbook(self, pro_subscription) -> None:
        excel_file = generate_export_bytes(pro_subscription, "Calm Mind", DATA)
        wb = load_workbook(excel_file)
        assert wb["Tasks"]["D4"].value is not None
        assert wb["Tasks"]["A4"].value == "Call back"

    def test_filename(self) -> None:
        name = generate_export_filename("calm mind", datetime(2026, 3, 11, 9, 5))
        assert name == "clinic_export_calm_mind_20260311_0905.xlsx"
        assert generate_export_filename("", datetime(2026, 1, 2, 3, 4)).startswith(
            "clinic_export_clinic_"
        )
