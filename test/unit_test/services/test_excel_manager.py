"""
Unit tests for the invoice spreadsheet export.
"""

from unittest.mock import patch

import pandas as pd
import pytest
from filelock import Timeout

from restaurant_api.services import excel_manager
from restaurant_api.services.excel_manager import ExcelManager, audit_invoice_frame


@pytest.fixture(autouse=True)
def workbook_paths(tmp_path, monkeypatch):
    """Point the export at a temporary directory."""
    data_dir = tmp_path / "data"
    monkeypatch.setattr(excel_manager, "DATA_DIR", data_dir)
    monkeypatch.setattr(excel_manager, "INVOICES_FILE", data_dir / "invoices.xlsx")
    monkeypatch.setattr(excel_manager, "INVOICES_LOCK", data_dir / "invoices.xlsx.lock")
    return data_dir


def _invoice(invoice_id: str, total: float) -> dict:
    return {
        "invoice_id": invoice_id,
        "order_id": "order-001",
        "table_id": "table-001",
        "created_at": "2024-05-01T19:30:00",
        "payment_method": "card",
        "payment_status": "pending",
        "payment_due_date": "2024-05-08T19:30:00",
        "total_amount": total,
    }


class TestExportInvoice:

    def test_creates_workbook_with_all_columns(self, workbook_paths):
        result = ExcelManager.export_invoice(_invoice("invoice-001", 32.05))

        assert result["success"] is True
        assert result["invoice_id"] == "invoice-001"
        assert result["exported_at"] is not None
        assert (workbook_paths / "invoices.xlsx").exists()

        rows = ExcelManager.get_all_invoices()
        assert len(rows) == 1
        assert set(ExcelManager.INVOICE_COLUMNS) <= set(rows[0])
        assert rows[0]["table_id"] == "table-001"
        assert rows[0]["total_amount"] == pytest.approx(32.05)

    def test_appends_rows(self):
        ExcelManager.export_invoice(_invoice("invoice-001", 10.0))
        ExcelManager.export_invoice(_invoice("invoice-002", 20.0))

        rows = ExcelManager.get_all_invoices()
        assert [r["invoice_id"] for r in rows] == ["invoice-001", "invoice-002"]

    def test_lock_timeout_reports_failure(self):
        with patch.object(excel_manager, "FileLock") as file_lock:
            file_lock.return_value.__enter__.side_effect = Timeout("invoices.xlsx.lock")
            result = ExcelManager.export_invoice(_invoice("invoice-001", 10.0))

        assert result["success"] is False
        assert "Lock timeout" in result["message"]

    def test_write_error_reports_failure(self):
        with patch.object(excel_manager.pd.DataFrame, "to_excel", side_effect=OSError("disk full")):
            result = ExcelManager.export_invoice(_invoice("invoice-001", 10.0))

        assert result["success"] is False
        assert "disk full" in result["message"]


class TestReadAndClear:

    def test_no_workbook_means_no_rows(self):
        assert ExcelManager.get_all_invoices() == []

    def test_clear_all_removes_workbook(self, workbook_paths):
        ExcelManager.export_invoice(_invoice("invoice-001", 10.0))

        assert ExcelManager.clear_all() is True
        assert not (workbook_paths / "invoices.xlsx").exists()
        assert ExcelManager.get_all_invoices() == []


def _sheet(**overrides) -> pd.DataFrame:
    row = {
        "invoice_id": "invoice-001",
        "order_id": "order-001",
        "table_id": "table-001",
        "date_time": "2024-05-01T19:30:00+00:00",
        "payment_method": "card",
        "payment_status": "pending",
        "payment_due_date": "2024-05-08T19:30:00+00:00",
        "total_amount": 32.05,
        "exported_at": "2024-05-01T19:30:05",
    }
    second = {**row, "invoice_id": "invoice-002", "order_id": "order-002", "total_amount": 12.5}
    return pd.DataFrame([{**row, **overrides}, second])


class TestAuditInvoiceFrame:

    def test_consistent_sheet(self):
        assert audit_invoice_frame(_sheet()) == []

    def test_exported_workbook_is_consistent(self):
        ExcelManager.export_invoice(_invoice("invoice-001", 10.0))
        frame = pd.DataFrame(ExcelManager.get_all_invoices())
        assert audit_invoice_frame(frame) == []

    def test_missing_columns(self):
        problems = audit_invoice_frame(_sheet().drop(columns=["payment_due_date"]))
        assert problems == ["Missing columns: payment_due_date"]

    @pytest.mark.parametrize(
        "overrides, expected",
        [
            ({"invoice_id": "invoice-002"}, "Duplicate invoice IDs: invoice-002"),
            ({"order_id": "order-002"}, "Orders invoiced more than once: order-002"),
            ({"invoice_id": "INV-7"}, "Invoice IDs not of the form invoice-NNN: INV-7"),
            ({"total_amount": -4.0}, "Negative totals: invoice-001"),
            ({"total_amount": "free"}, "Non-numeric totals: invoice-001"),
            ({"payment_status": "settled"}, "Unknown payment status: invoice-001"),
            ({"payment_due_date": "2024-04-30T00:00:00+00:00"}, "Due date before invoice date: invoice-001"),
            ({"date_time": "yesterday"}, "Unreadable dates: invoice-001"),
        ],
    )
    def test_reports_problem(self, overrides, expected):
        assert expected in audit_invoice_frame(_sheet(**overrides))
