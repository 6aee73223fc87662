"""
API router - combines the public and authenticated sub-routers.

- health: root links and health check (public)
- auth: signup, login and token refresh (public)
- users: account listing, profile and password
- menus, foods, tables: catalogue and seating
- orders, order_items: ordering at a table
- invoices: billing and spreadsheet export
- dashboard: admin statistics
"""

from fastapi import APIRouter

from .health import router as health_router
from .auth import router as auth_router
from .users import router as users_router
from .menus import router as menus_router
from .foods import router as foods_router
from .tables import router as tables_router
from .orders import router as orders_router
from .order_items import router as order_items_router
from .invoices import router as invoices_router
from .dashboard import router as dashboard_router


router = APIRouter()

# Public
router.include_router(health_router)
router.include_router(auth_router)

# Authenticated
router.include_router(users_router)
router.include_router(menus_router)
router.include_router(foods_router)
router.include_router(tables_router)
router.include_router(orders_router)
router.include_router(order_items_router)
router.include_router(invoices_router)
router.include_router(dashboard_router)
