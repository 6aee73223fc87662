"""
Order Item Endpoints

An order holds at most one item per food. Adding a food that is already on
the order raises the existing item's quantity instead of inserting a second
row. Every change to an order's items recomputes the order total in the same
transaction.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_api.api.deps import (
    get_current_user,
    get_or_404,
    check_user_type,
    match_user_type_to_uid,
    ensure_matching_id,
)
from restaurant_api.core.security import TokenClaims
from restaurant_api.database import get_db
from restaurant_api.models import Order, OrderItem, Food, UserType
from restaurant_api.schemas import (
    OrderItemCreate,
    OrderItemUpdate,
    OrderItemResponse,
    NextIdResponse,
    MessageResponse,
)
from restaurant_api.services.identifiers import next_sequential_id, insert_with_sequential_id
from restaurant_api.services.orders import is_editable_status, recalculate_order_total

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Order Items"], dependencies=[Depends(get_current_user)])

ORDER_ITEM_PREFIX = "item"


async def _load_order(db: AsyncSession, order_id: str) -> Order:
    result = await db.execute(select(Order).where(Order.order_id == order_id))
    order = result.scalar_one_or_none()
    if order is None:
        raise HTTPException(status_code=400, detail="The order referenced does not exist")
    return order


async def _ensure_food_exists(db: AsyncSession, food_id: str) -> None:
    result = await db.execute(select(Food.id).where(Food.food_id == food_id))
    if result.first() is None:
        raise HTTPException(status_code=400, detail="The food item referenced does not exist")


def _guard_customer_access(user: TokenClaims, order: Order, forbidden_message: str) -> None:
    """Customers may only change items on their own orders that are still open for edits."""
    if user.is_admin:
        return
    match_user_type_to_uid(user, order.user_id, forbidden_message)
    if not is_editable_status(order.order_status):
        raise HTTPException(
            status_code=400,
            detail="This order cannot be modified in its current state",
        )


async def _find_item(db: AsyncSession, order_id: str, food_id: str) -> Optional[OrderItem]:
    result = await db.execute(
        select(OrderItem).where(OrderItem.order_id == order_id, OrderItem.food_id == food_id)
    )
    return result.scalar_one_or_none()


async def _merge_quantity(db: AsyncSession, item: OrderItem, quantity: int) -> None:
    item.quantity += quantity
    await db.flush()
    logger.info(f"Merged {quantity} x {item.food_id} into {item.order_item_id}")


async def add_item(
    db: AsyncSession,
    order_id: str,
    food_id: str,
    quantity: int,
    order_item_id: str = None,
) -> OrderItem:
    """
    Put `quantity` of a food on an order and refresh the order total.

    Merges into the existing (order, food) item when there is one.
    """
    await _ensure_food_exists(db, food_id)

    item = await _find_item(db, order_id, food_id)
    if item is None:
        try:
            item = await insert_with_sequential_id(
                db,
                OrderItem(
                    order_item_id=order_item_id,
                    order_id=order_id,
                    food_id=food_id,
                    quantity=quantity,
                ),
                "order_item_id",
                ORDER_ITEM_PREFIX,
            )
        except IntegrityError:
            # A concurrent request put the same food on the order first
            item = await _find_item(db, order_id, food_id)
            if item is None:
                raise
            await _merge_quantity(db, item, quantity)
        else:
            logger.info(f"Item {item.order_item_id} added to {order_id}")
    else:
        await _merge_quantity(db, item, quantity)

    await recalculate_order_total(db, order_id)
    await db.commit()
    await db.refresh(item)
    return item


@router.get("/order-items", response_model=List[OrderItemResponse])
@router.get("/orderItems", response_model=List[OrderItemResponse], include_in_schema=False)
async def list_order_items(
    current_user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> List[OrderItemResponse]:
    check_user_type(current_user, UserType.ADMIN.value, "Unauthorized to access this resource")
    result = await db.execute(select(OrderItem).order_by(OrderItem.id))
    return [OrderItemResponse.model_validate(i) for i in result.scalars().all()]


@router.get("/order-items/next-id", response_model=NextIdResponse)
async def get_next_order_item_id(db: AsyncSession = Depends(get_db)) -> NextIdResponse:
    return NextIdResponse(
        next_id=await next_sequential_id(db, OrderItem.order_item_id, ORDER_ITEM_PREFIX)
    )


@router.get("/order-items/{order_item_id}", response_model=OrderItemResponse)
async def get_order_item(
    order_item_id: str,
    current_user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> OrderItemResponse:
    item = await get_or_404(db, OrderItem.order_item_id, order_item_id, "order item not found")
    order = await get_or_404(db, Order.order_id, item.order_id, "order not found")
    match_user_type_to_uid(current_user, order.user_id, "Unauthorized to access this resource")
    return OrderItemResponse.model_validate(item)


@router.post("/order-items", response_model=OrderItemResponse, status_code=201)
async def create_order_item(
    payload: OrderItemCreate,
    current_user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> OrderItemResponse:
    if not payload.order_id:
        raise HTTPException(status_code=400, detail="The order referenced does not exist")

    order = await _load_order(db, payload.order_id)
    _guard_customer_access(current_user, order, "You can only add items to your own orders")

    item = await add_item(
        db,
        order.order_id,
        payload.food_id,
        payload.quantity,
        order_item_id=payload.order_item_id,
    )
    return OrderItemResponse.model_validate(item)


@router.patch("/order-items/{order_item_id}", response_model=OrderItemResponse)
async def update_order_item(
    order_item_id: str,
    payload: OrderItemUpdate,
    current_user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> OrderItemResponse:
    ensure_matching_id(payload.order_item_id, order_item_id, "order item")

    item = await get_or_404(db, OrderItem.order_item_id, order_item_id, "order item not found")
    order = await _load_order(db, item.order_id)
    _guard_customer_access(current_user, order, "You can only update items in your own orders")

    updates = payload.model_dump(exclude_unset=True, exclude_none=True, exclude={"order_item_id"})
    if not current_user.is_admin and set(updates) - {"quantity"}:
        raise HTTPException(
            status_code=403,
            detail="You can only change the quantity of an order item",
        )

    old_order_id = item.order_id
    new_order_id = updates.get("order_id") or item.order_id
    new_food_id = updates.get("food_id") or item.food_id

    if new_order_id != old_order_id:
        await _load_order(db, new_order_id)
    if new_food_id != item.food_id:
        await _ensure_food_exists(db, new_food_id)

    if (new_order_id, new_food_id) != (item.order_id, item.food_id):
        clash = await db.execute(
            select(OrderItem.id).where(
                OrderItem.order_id == new_order_id,
                OrderItem.food_id == new_food_id,
            )
        )
        if clash.first() is not None:
            raise HTTPException(
                status_code=409,
                detail="That food is already on the order; update its quantity instead",
            )

    item.order_id = new_order_id
    item.food_id = new_food_id
    if updates.get("quantity") is not None:
        item.quantity = updates["quantity"]
    await db.flush()

    await recalculate_order_total(db, new_order_id)
    if old_order_id != new_order_id:
        await recalculate_order_total(db, old_order_id)
    await db.commit()
    await db.refresh(item)

    logger.info(f"Order item {order_item_id} updated")
    return OrderItemResponse.model_validate(item)


@router.delete("/order-items/{order_item_id}", response_model=MessageResponse)
async def delete_order_item(
    order_item_id: str,
    current_user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    item = await get_or_404(db, OrderItem.order_item_id, order_item_id, "order item not found")
    order = await _load_order(db, item.order_id)
    _guard_customer_access(current_user, order, "You can only delete items from your own orders")

    await db.delete(item)
    await db.flush()
    await recalculate_order_total(db, order.order_id)
    await db.commit()

    logger.info(f"Order item {order_item_id} deleted from {order.order_id}")
    return MessageResponse(message="Order item deleted successfully")
