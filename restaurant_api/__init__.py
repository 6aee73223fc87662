"""
                Restaurant Management API

Async REST backend for a restaurant admin dashboard: menus, foods,
tables, orders, order items, invoices and user accounts.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
