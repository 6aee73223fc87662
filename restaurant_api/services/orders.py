"""
Order bookkeeping shared by the order, order item, table and invoice routes.
"""

import logging
from typing import Optional

from sqlalchemy import select, func, update
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_api.models import (
    Order,
    OrderItem,
    Food,
    CLOSED_ORDER_STATUSES,
    EDITABLE_ORDER_STATUSES,
)

logger = logging.getLogger(__name__)


def is_active_status(status: str) -> bool:
    """An active order occupies its table."""
    return status not in CLOSED_ORDER_STATUSES


def is_editable_status(status: str) -> bool:
    """Customers may only change items on orders in these states."""
    return status in EDITABLE_ORDER_STATUSES


async def active_table_ids(db: AsyncSession) -> set[str]:
    result = await db.execute(
        select(Order.table_id)
        .where(Order.order_status.notin_(CLOSED_ORDER_STATUSES))
        .distinct()
    )
    return set(result.scalars().all())


async def table_has_active_order(
    db: AsyncSession,
    table_id: str,
    exclude_order_id: Optional[str] = None,
) -> bool:
    query = select(func.count(Order.id)).where(
        Order.table_id == table_id,
        Order.order_status.notin_(CLOSED_ORDER_STATUSES),
    )
    if exclude_order_id is not None:
        query = query.where(Order.order_id != exclude_order_id)
    result = await db.execute(query)
    return (result.scalar() or 0) > 0


async def recalculate_order_total(db: AsyncSession, order_id: str) -> float:
    """
    Recompute an order's total from its items and current food prices.

    The caller owns the transaction; nothing is committed here.
    """
    result = await db.execute(
        select(func.coalesce(func.sum(OrderItem.quantity * Food.price), 0.0))
        .select_from(OrderItem)
        .join(Food, Food.food_id == OrderItem.food_id)
        .where(OrderItem.order_id == order_id)
    )
    total = round(float(result.scalar() or 0.0), 2)

    await db.execute(
        update(Order)
        .where(Order.order_id == order_id)
        .values(order_total=total)
        .execution_options(synchronize_session="fetch")
    )
    logger.debug(f"Order {order_id} total recalculated: {total:.2f}")
    return total
