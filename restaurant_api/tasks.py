"""
Celery Tasks
Background tasks that keep slow file I/O out of the request path.
"""

import time
from datetime import datetime

from restaurant_api.celery_worker import celery_app
from restaurant_api.core.config import get_logger
from restaurant_api.services.excel_manager import ExcelManager

logger = get_logger(__name__)


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    autoretry_for=(Exception,),
    retry_backoff=True
)
def export_invoice_to_excel(self, invoice_data: dict) -> dict:
    """
    Export an invoice to the Excel workbook.

    Args:
        invoice_data: Invoice row keyed by ExcelManager.INVOICE_COLUMNS

    Returns:
        dict: Result of the export operation
    """
    task_id = self.request.id
    invoice_id = invoice_data.get('invoice_id', 'unknown')

    logger.info(f"Task {task_id}: Exporting invoice {invoice_id}")
    start_time = time.time()

    try:
        result = ExcelManager.export_invoice(invoice_data)

        elapsed = round(time.time() - start_time, 3)
        result['task_id'] = task_id
        result['processing_time_seconds'] = elapsed

        if result['success']:
            logger.info(f"Task {task_id}: Invoice {invoice_id} exported in {elapsed}s")
        else:
            logger.warning(f"Task {task_id}: Invoice {invoice_id} failed - {result['message']}")

        return result

    except Exception as e:
        elapsed = round(time.time() - start_time, 3)
        logger.error(f"Task {task_id}: Invoice {invoice_id} error after {elapsed}s - {e}")
        raise


@celery_app.task
def clear_invoice_export() -> dict:
    """
    Clear the invoice workbook (for testing/reset purposes).
    """
    success = ExcelManager.clear_all()
    return {
        'success': success,
        'message': 'Invoice export cleared' if success else 'Failed to clear invoice export',
        'timestamp': datetime.now().isoformat()
    }
