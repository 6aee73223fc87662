"""
Order Endpoints

Orders are seated at a table. A table carries at most one active order
(any status other than completed or cancelled); placing a second one fails
with 409 until the first is closed. Moving an order to another table or
reopening a closed one is held to the same rule.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, func, delete
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_api.api.deps import (
    get_current_user,
    get_or_404,
    check_user_type,
    match_user_type_to_uid,
    ensure_matching_id,
    apply_updates,
)
from restaurant_api.api.order_items import add_item
from restaurant_api.core.security import TokenClaims
from restaurant_api.database import get_db
from restaurant_api.models import Order, OrderItem, Invoice, Table, User, OrderStatus, UserType
from restaurant_api.schemas import (
    OrderCreate,
    OrderUpdate,
    OrderResponse,
    OrderPage,
    OrderItemCreate,
    OrderItemResponse,
    NextIdResponse,
    MessageResponse,
)
from restaurant_api.services.identifiers import next_sequential_id, insert_with_sequential_id
from restaurant_api.services.orders import is_active_status, is_editable_status, table_has_active_order
from restaurant_api.services.pagination import (
    PaginationParams,
    get_pagination_params,
    build_pagination,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Orders"], dependencies=[Depends(get_current_user)])

ORDER_PREFIX = "order"


async def _ensure_table_exists(db: AsyncSession, table_id: str, lock: bool = False) -> None:
    query = select(Table.id).where(Table.table_id == table_id)
    if lock:
        # Held until commit so concurrent orders for one table are serialized
        query = query.with_for_update()
    result = await db.execute(query)
    if result.first() is None:
        raise HTTPException(status_code=400, detail="The table referenced does not exist")


async def _ensure_user_exists(db: AsyncSession, user_id: str) -> None:
    result = await db.execute(select(User.id).where(User.user_id == user_id))
    if result.first() is None:
        raise HTTPException(status_code=400, detail="The user referenced does not exist")


@router.get("/orders", response_model=OrderPage)
async def list_orders(
    status: Optional[str] = Query(None, description="Filter by order status"),
    pagination: PaginationParams = Depends(get_pagination_params),
    current_user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> OrderPage:
    """List all orders with pagination (admin only)."""
    check_user_type(current_user, UserType.ADMIN.value, "Unauthorized to access this resource")

    count_query = select(func.count(Order.id))
    query = select(Order)

    if status:
        valid = [s.value for s in OrderStatus]
        if status not in valid:
            raise HTTPException(
                status_code=400,
                detail=f"Invalid status. Valid options: {', '.join(valid)}",
            )
        count_query = count_query.where(Order.order_status == status)
        query = query.where(Order.order_status == status)

    total_result = await db.execute(count_query)
    total = total_result.scalar() or 0

    result = await db.execute(
        query.order_by(Order.id.desc()).offset(pagination.offset).limit(pagination.limit)
    )

    return OrderPage(
        data=[OrderResponse.model_validate(o) for o in result.scalars().all()],
        pagination=build_pagination(pagination.page, pagination.limit, total),
    )


@router.get("/user/orders", response_model=List[OrderResponse])
async def list_user_orders(
    current_user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> List[OrderResponse]:
    result = await db.execute(
        select(Order).where(Order.user_id == current_user.uid).order_by(Order.id.desc())
    )
    return [OrderResponse.model_validate(o) for o in result.scalars().all()]


@router.get("/orders/next-id", response_model=NextIdResponse)
async def get_next_order_id(db: AsyncSession = Depends(get_db)) -> NextIdResponse:
    return NextIdResponse(next_id=await next_sequential_id(db, Order.order_id, ORDER_PREFIX))


@router.get("/orders/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: str,
    current_user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> OrderResponse:
    order = await get_or_404(db, Order.order_id, order_id, "order not found")
    match_user_type_to_uid(current_user, order.user_id, "Unauthorized to access this order")
    return OrderResponse.model_validate(order)


@router.post("/orders", response_model=OrderResponse, status_code=201)
async def create_order(
    payload: OrderCreate,
    current_user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> OrderResponse:
    """
    Place a new order at a table.

    Customers always order for themselves; admins may order on behalf of a
    user or leave `user_id` empty for walk-in guests.
    """
    if not payload.table_id:
        raise HTTPException(status_code=400, detail="Table ID is required")

    await _ensure_table_exists(db, payload.table_id, lock=True)

    if await table_has_active_order(db, payload.table_id):
        raise HTTPException(
            status_code=409,
            detail="This table already has an active order. Please choose another table.",
        )

    user_id = payload.user_id
    if not current_user.is_admin:
        user_id = current_user.uid
    elif user_id:
        await _ensure_user_exists(db, user_id)

    order = Order(
        order_id=payload.order_id,
        order_date=datetime.now(timezone.utc),
        table_id=payload.table_id,
        user_id=user_id,
        order_status=OrderStatus.PENDING.value,
        order_total=0.0,
    )
    order = await insert_with_sequential_id(db, order, "order_id", ORDER_PREFIX)
    await db.commit()

    logger.info(f"Order {order.order_id} placed at {order.table_id} by {current_user.uid}")
    return OrderResponse.model_validate(order)


@router.patch("/orders/{order_id}", response_model=OrderResponse)
async def update_order(
    order_id: str,
    payload: OrderUpdate,
    current_user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> OrderResponse:
    check_user_type(current_user, UserType.ADMIN.value, "Only admins can update orders")
    ensure_matching_id(payload.order_id, order_id, "order")

    order = await get_or_404(db, Order.order_id, order_id, "order not found")
    updates = payload.model_dump(exclude_unset=True, exclude_none=True, exclude={"order_id"})
    if "order_status" in updates:
        updates["order_status"] = updates["order_status"].value

    table_id = updates.get("table_id", order.table_id)
    status = updates.get("order_status", order.order_status)
    moving = table_id != order.table_id
    reopening = not is_active_status(order.order_status) and is_active_status(status)

    if is_active_status(status) and (moving or reopening):
        await _ensure_table_exists(db, table_id, lock=True)
        if await table_has_active_order(db, table_id, exclude_order_id=order.order_id):
            raise HTTPException(
                status_code=409,
                detail="This table already has an active order. Please choose another table.",
            )
    elif moving:
        await _ensure_table_exists(db, table_id)

    apply_updates(order, updates)
    await db.commit()
    await db.refresh(order)

    logger.info(f"Order {order_id} updated (status={order.order_status})")
    return OrderResponse.model_validate(order)


@router.delete("/orders/{order_id}", response_model=MessageResponse)
async def delete_order(
    order_id: str,
    current_user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    check_user_type(current_user, UserType.ADMIN.value, "Only admins can delete orders")
    order = await get_or_404(db, Order.order_id, order_id, "order not found")

    invoice_count = await db.execute(
        select(func.count(Invoice.id)).where(Invoice.order_id == order_id)
    )
    if invoice_count.scalar():
        raise HTTPException(
            status_code=400,
            detail="Cannot delete an order that has invoices",
        )

    await db.execute(delete(OrderItem).where(OrderItem.order_id == order_id))
    await db.delete(order)
    await db.commit()

    logger.info(f"Order {order_id} deleted")
    return MessageResponse(message="Order deleted successfully")


@router.get("/orders/{order_id}/items", response_model=List[OrderItemResponse])
async def list_order_items_for_order(
    order_id: str,
    current_user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> List[OrderItemResponse]:
    order = await get_or_404(db, Order.order_id, order_id, "order not found")
    match_user_type_to_uid(current_user, order.user_id, "Unauthorized to access this order")

    result = await db.execute(
        select(OrderItem).where(OrderItem.order_id == order_id).order_by(OrderItem.id)
    )
    return [OrderItemResponse.model_validate(i) for i in result.scalars().all()]


@router.post("/orders/{order_id}/items", response_model=OrderItemResponse, status_code=201)
async def add_item_to_order(
    order_id: str,
    payload: OrderItemCreate,
    current_user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> OrderItemResponse:
    ensure_matching_id(payload.order_id, order_id, "order")

    result = await db.execute(select(Order).where(Order.order_id == order_id))
    order = result.scalar_one_or_none()
    if order is None or (
        not current_user.is_admin and order.user_id != current_user.uid
    ):
        raise HTTPException(status_code=404, detail="You don't have an order with this ID")

    if not is_editable_status(order.order_status):
        raise HTTPException(
            status_code=400,
            detail="Cannot modify order once it has been processed",
        )

    item = await add_item(
        db,
        order_id,
        payload.food_id,
        payload.quantity,
        order_item_id=payload.order_item_id,
    )
    return OrderItemResponse.model_validate(item)
