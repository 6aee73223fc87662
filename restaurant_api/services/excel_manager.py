"""
Excel File Manager with Concurrency Control

Appends invoices to a spreadsheet for the accounting team. Several Celery
workers may export at once, so every read-modify-write of the workbook
happens under a file lock.

Version: 1.0.0
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any

import pandas as pd
from filelock import FileLock, Timeout

from restaurant_api.core.config import get_settings
from restaurant_api.models import PaymentStatus
from restaurant_api.services.identifiers import parse_sequential_number

settings = get_settings()
logger = logging.getLogger(__name__)

DATA_DIR = Path(settings.data_directory)
INVOICES_FILE = DATA_DIR / settings.invoices_excel_filename
INVOICES_LOCK = DATA_DIR / f"{settings.invoices_excel_filename}.lock"


class ExcelManager:
    """Thread-safe Excel file manager."""

    LOCK_TIMEOUT = settings.excel_lock_timeout

    INVOICE_COLUMNS = [
        "invoice_id",
        "order_id",
        "table_id",
        "date_time",
        "payment_method",
        "payment_status",
        "payment_due_date",
        "total_amount",
        "exported_at",
    ]

    @classmethod
    def _ensure_data_dir(cls) -> None:
        """Create data directory if needed."""
        if not DATA_DIR.exists():
            DATA_DIR.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created data directory: {DATA_DIR}")

    @classmethod
    def _load_or_create_df(cls, file_path: Path, columns: list) -> pd.DataFrame:
        """Load existing file or create new DataFrame."""
        if file_path.exists():
            try:
                return pd.read_excel(file_path, engine="openpyxl")
            except Exception as e:
                logger.warning(f"Error reading {file_path}: {e}")
                return pd.DataFrame(columns=columns)
        return pd.DataFrame(columns=columns)

    @classmethod
    def export_invoice(cls, invoice_data: dict[str, Any]) -> dict[str, Any]:
        """Append one invoice row to the workbook under the file lock."""
        cls._ensure_data_dir()

        invoice_id = invoice_data.get("invoice_id", "unknown")
        result = {
            "success": False,
            "message": "",
            "invoice_id": invoice_id,
            "exported_at": None,
        }

        try:
            lock = FileLock(str(INVOICES_LOCK), timeout=cls.LOCK_TIMEOUT)

            with lock:
                logger.debug(f"Lock acquired for Invoice {invoice_id}")

                df = cls._load_or_create_df(INVOICES_FILE, cls.INVOICE_COLUMNS)

                export_time = datetime.now().isoformat()
                new_row = {
                    "invoice_id": invoice_id,
                    "order_id": invoice_data.get("order_id"),
                    "table_id": invoice_data.get("table_id"),
                    "date_time": invoice_data.get("created_at", export_time),
                    "payment_method": invoice_data.get("payment_method"),
                    "payment_status": invoice_data.get("payment_status", "pending"),
                    "payment_due_date": invoice_data.get("payment_due_date"),
                    "total_amount": invoice_data.get("total_amount", 0.0),
                    "exported_at": export_time,
                }

                if df.empty:
                    df = pd.DataFrame([new_row], columns=cls.INVOICE_COLUMNS)
                else:
                    df = pd.concat([df, pd.DataFrame([new_row])], ignore_index=True)
                df.to_excel(str(INVOICES_FILE), index=False, engine="openpyxl")

                logger.info(f"Invoice {invoice_id} exported to Excel")

                result["success"] = True
                result["message"] = f"Invoice {invoice_id} exported"
                result["exported_at"] = export_time

            logger.debug(f"Lock released for Invoice {invoice_id}")

        except Timeout:
            result["message"] = f"Lock timeout ({cls.LOCK_TIMEOUT}s)"
            logger.error(f"Lock timeout for Invoice {invoice_id}")

        except Exception as e:
            result["message"] = str(e)
            logger.exception(f"Error exporting Invoice {invoice_id}")

        return result

    @classmethod
    def get_all_invoices(cls) -> list[dict[str, Any]]:
        """Get all exported invoices."""
        cls._ensure_data_dir()

        if not INVOICES_FILE.exists():
            return []

        try:
            df = pd.read_excel(INVOICES_FILE, engine="openpyxl")
            return df.to_dict("records")
        except Exception as e:
            logger.error(f"Error reading invoices: {e}")
            return []

    @classmethod
    def clear_all(cls) -> bool:
        """Delete the workbook and its lock file."""
        try:
            for f in [INVOICES_FILE, INVOICES_LOCK]:
                if f.exists():
                    f.unlink()
            logger.info("Invoice export cleared")
            return True
        except Exception as e:
            logger.error(f"Error clearing files: {e}")
            return False


def audit_invoice_frame(df: pd.DataFrame) -> list[str]:
    """
    Check an exported invoice sheet for integrity problems.

    Returns one human-readable line per problem; an empty list means the
    sheet is consistent.
    """
    missing = [col for col in ExcelManager.INVOICE_COLUMNS if col not in df.columns]
    if missing:
        return [f"Missing columns: {', '.join(missing)}"]

    problems = []

    duplicates = df.loc[df["invoice_id"].duplicated(), "invoice_id"].tolist()
    if duplicates:
        problems.append(f"Duplicate invoice IDs: {', '.join(map(str, duplicates))}")

    reinvoiced = df.loc[df["order_id"].duplicated(), "order_id"].unique().tolist()
    if reinvoiced:
        problems.append(f"Orders invoiced more than once: {', '.join(map(str, reinvoiced))}")

    malformed = [
        str(v) for v in df["invoice_id"]
        if parse_sequential_number("invoice", v if isinstance(v, str) else None) is None
    ]
    if malformed:
        problems.append(f"Invoice IDs not of the form invoice-NNN: {', '.join(malformed)}")

    amounts = pd.to_numeric(df["total_amount"], errors="coerce")
    unreadable = df.loc[amounts.isna(), "invoice_id"].tolist()
    if unreadable:
        problems.append(f"Non-numeric totals: {', '.join(map(str, unreadable))}")
    negative = df.loc[amounts < 0, "invoice_id"].tolist()
    if negative:
        problems.append(f"Negative totals: {', '.join(map(str, negative))}")

    valid_statuses = {s.value for s in PaymentStatus}
    bad_status = df.loc[~df["payment_status"].isin(valid_statuses), "invoice_id"].tolist()
    if bad_status:
        problems.append(f"Unknown payment status: {', '.join(map(str, bad_status))}")

    issued = pd.to_datetime(df["date_time"], errors="coerce", utc=True, format="ISO8601")
    due = pd.to_datetime(df["payment_due_date"], errors="coerce", utc=True, format="ISO8601")
    overdue_at_issue = df.loc[due < issued, "invoice_id"].tolist()
    if overdue_at_issue:
        problems.append(f"Due date before invoice date: {', '.join(map(str, overdue_at_issue))}")
    undated = df.loc[issued.isna() | due.isna(), "invoice_id"].tolist()
    if undated:
        problems.append(f"Unreadable dates: {', '.join(map(str, undated))}")

    return problems
