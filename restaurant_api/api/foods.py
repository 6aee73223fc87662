"""
Food Endpoints

Foods belong to a menu; the menu's category is what `/foods/category/...`
filters on.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_api.api.deps import (
    get_current_user,
    get_or_404,
    check_user_type,
    ensure_matching_id,
    apply_updates,
)
from restaurant_api.core.security import TokenClaims
from restaurant_api.database import get_db
from restaurant_api.models import Food, Menu, OrderItem, UserType
from restaurant_api.schemas import (
    FoodCreate,
    FoodUpdate,
    FoodResponse,
    NextIdResponse,
    MessageResponse,
)
from restaurant_api.services.identifiers import next_sequential_id, insert_with_sequential_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/foods", tags=["Foods"], dependencies=[Depends(get_current_user)])

FOOD_PREFIX = "food"


async def _ensure_menu_exists(db: AsyncSession, menu_id: str) -> None:
    result = await db.execute(select(Menu.id).where(Menu.menu_id == menu_id))
    if result.first() is None:
        raise HTTPException(status_code=400, detail="The menu referenced does not exist")


@router.get("", response_model=List[FoodResponse])
async def list_foods(
    menu_id: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> List[FoodResponse]:
    query = select(Food).order_by(Food.id)
    if menu_id:
        query = query.where(Food.menu_id == menu_id)
    result = await db.execute(query)
    return [FoodResponse.model_validate(f) for f in result.scalars().all()]


@router.get("/next-id", response_model=NextIdResponse)
async def get_next_food_id(db: AsyncSession = Depends(get_db)) -> NextIdResponse:
    return NextIdResponse(next_id=await next_sequential_id(db, Food.food_id, FOOD_PREFIX))


@router.get("/search", response_model=List[FoodResponse])
async def search_foods(
    q: Optional[str] = Query(None, description="Case-insensitive name fragment"),
    db: AsyncSession = Depends(get_db),
) -> List[FoodResponse]:
    if not q or not q.strip():
        raise HTTPException(status_code=400, detail="Search query is required")

    # `%` and `_` in the query match themselves
    fragment = q.strip().lower()
    result = await db.execute(
        select(Food)
        .where(func.lower(Food.name).contains(fragment, autoescape=True))
        .order_by(Food.name)
    )
    return [FoodResponse.model_validate(f) for f in result.scalars().all()]


@router.get("/category/{category}", response_model=List[FoodResponse])
async def list_foods_by_category(
    category: str,
    db: AsyncSession = Depends(get_db),
) -> List[FoodResponse]:
    result = await db.execute(
        select(Food)
        .join(Menu, Menu.menu_id == Food.menu_id)
        .where(Menu.category == category)
        .order_by(Food.id)
    )
    return [FoodResponse.model_validate(f) for f in result.scalars().all()]


@router.get("/{food_id}", response_model=FoodResponse)
async def get_food(food_id: str, db: AsyncSession = Depends(get_db)) -> FoodResponse:
    food = await get_or_404(db, Food.food_id, food_id, "food not found")
    return FoodResponse.model_validate(food)


@router.post("", response_model=FoodResponse, status_code=201)
async def create_food(
    payload: FoodCreate,
    current_user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> FoodResponse:
    check_user_type(current_user, UserType.ADMIN.value, "Only admins can create foods")
    await _ensure_menu_exists(db, payload.menu_id)

    food = Food(
        food_id=payload.food_id,
        name=payload.name,
        price=round(payload.price, 2),
        food_image=payload.food_image,
        menu_id=payload.menu_id,
    )
    food = await insert_with_sequential_id(db, food, "food_id", FOOD_PREFIX)
    await db.commit()

    logger.info(f"Food {food.food_id} created on {food.menu_id} at ${food.price:.2f}")
    return FoodResponse.model_validate(food)


@router.patch("/{food_id}", response_model=FoodResponse)
async def update_food(
    food_id: str,
    payload: FoodUpdate,
    current_user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> FoodResponse:
    check_user_type(current_user, UserType.ADMIN.value, "Only admins can update foods")
    ensure_matching_id(payload.food_id, food_id, "food")

    food = await get_or_404(db, Food.food_id, food_id, "food not found")
    updates = payload.model_dump(exclude_unset=True, exclude_none=True, exclude={"food_id"})

    if updates.get("menu_id") and updates["menu_id"] != food.menu_id:
        await _ensure_menu_exists(db, updates["menu_id"])
    if "price" in updates:
        updates["price"] = round(updates["price"], 2)

    apply_updates(food, updates)
    await db.commit()
    await db.refresh(food)

    logger.info(f"Food {food_id} updated")
    return FoodResponse.model_validate(food)


@router.delete("/{food_id}", response_model=MessageResponse)
async def delete_food(
    food_id: str,
    current_user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    check_user_type(current_user, UserType.ADMIN.value, "Only admins can delete foods")
    food = await get_or_404(db, Food.food_id, food_id, "food not found")

    in_use = await db.execute(select(func.count(OrderItem.id)).where(OrderItem.food_id == food_id))
    if in_use.scalar():
        raise HTTPException(
            status_code=400,
            detail="Cannot delete food that is part of existing orders",
        )

    await db.delete(food)
    await db.commit()

    logger.info(f"Food {food_id} deleted")
    return MessageResponse(message="Food deleted successfully")
