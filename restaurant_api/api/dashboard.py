"""
Dashboard Endpoint
"""

import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_api.api.deps import get_current_user, check_user_type
from restaurant_api.core.security import TokenClaims
from restaurant_api.database import get_db
from restaurant_api.models import (
    Order,
    Table,
    Menu,
    Food,
    OrderStatus,
    UserType,
    CLOSED_ORDER_STATUSES,
)
from restaurant_api.services.orders import active_table_ids

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Dashboard"])


async def _count(db: AsyncSession, query) -> int:
    result = await db.execute(query)
    return result.scalar() or 0


@router.get("/dashboard-data")
async def dashboard_data(
    current_user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Get aggregated dashboard statistics."""
    check_user_type(current_user, UserType.ADMIN.value, "Unauthorized to access this resource")

    # Counts
    total_orders = await _count(db, select(func.count(Order.id)))
    pending_orders = await _count(
        db, select(func.count(Order.id)).where(Order.order_status == OrderStatus.PENDING.value)
    )
    completed_orders = await _count(
        db, select(func.count(Order.id)).where(Order.order_status == OrderStatus.COMPLETED.value)
    )
    active_orders = await _count(
        db, select(func.count(Order.id)).where(Order.order_status.notin_(CLOSED_ORDER_STATUSES))
    )

    # Revenue
    not_cancelled = Order.order_status != OrderStatus.CANCELLED.value
    revenue_result = await db.execute(select(func.sum(Order.order_total)).where(not_cancelled))
    total_revenue = revenue_result.scalar() or 0.0

    avg_result = await db.execute(select(func.avg(Order.order_total)).where(not_cancelled))
    avg_order_value = avg_result.scalar() or 0.0

    today_start = datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    today_result = await db.execute(
        select(func.sum(Order.order_total)).where(not_cancelled, Order.order_date >= today_start)
    )
    today_revenue = today_result.scalar() or 0.0

    # Tables
    tables_total = await _count(db, select(func.count(Table.id)))
    tables_occupied = len(await active_table_ids(db))

    # Recent orders
    recent_result = await db.execute(select(Order).order_by(Order.id.desc()).limit(10))
    recent_orders = recent_result.scalars().all()

    return {
        "total_orders": total_orders,
        "pending_orders": pending_orders,
        "completed_orders": completed_orders,
        "active_orders": active_orders,
        "total_revenue": round(total_revenue, 2),
        "today_revenue": round(today_revenue, 2),
        "avg_order_value": round(avg_order_value, 2),
        "tables_total": tables_total,
        "tables_occupied": tables_occupied,
        "tables_available": max(tables_total - tables_occupied, 0),
        "menus": await _count(db, select(func.count(Menu.id))),
        "foods": await _count(db, select(func.count(Food.id))),
        "recent_orders": [
            {
                "order_id": o.order_id,
                "table_id": o.table_id,
                "user_id": o.user_id,
                "order_status": o.order_status,
                "order_total": o.order_total,
                "order_date": o.order_date.isoformat(),
            }
            for o in recent_orders
        ],
    }
