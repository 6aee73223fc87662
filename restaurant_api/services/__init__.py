"""
                        Services Module

Business logic shared across the API routers.

Services:
    - identifiers: server-side sequential business ids
    - pagination: page/limit parsing and metadata
    - orders: order activity rules and total recalculation
    - excel_manager: lock-guarded Excel export of invoices
"""

from restaurant_api.services.excel_manager import ExcelManager

__all__ = ["ExcelManager"]
