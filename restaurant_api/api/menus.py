"""
Menu Endpoints
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException
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
from restaurant_api.models import Menu, Food, UserType
from restaurant_api.schemas import (
    MenuCreate,
    MenuUpdate,
    MenuResponse,
    NextIdResponse,
    MessageResponse,
    check_date_window,
)
from restaurant_api.services.identifiers import next_sequential_id, insert_with_sequential_id

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Menus"], dependencies=[Depends(get_current_user)])

MENU_PREFIX = "menu"


@router.get("/menus", response_model=List[MenuResponse])
async def list_menus(db: AsyncSession = Depends(get_db)) -> List[MenuResponse]:
    result = await db.execute(select(Menu).order_by(Menu.id))
    return [MenuResponse.model_validate(m) for m in result.scalars().all()]


@router.get("/menu-categories", response_model=List[str])
async def list_menu_categories(db: AsyncSession = Depends(get_db)) -> List[str]:
    """Distinct menu categories, sorted alphabetically."""
    result = await db.execute(select(Menu.category).distinct().order_by(Menu.category))
    return [c for c in result.scalars().all() if c]


@router.get("/menus/next-id", response_model=NextIdResponse)
async def get_next_menu_id(db: AsyncSession = Depends(get_db)) -> NextIdResponse:
    return NextIdResponse(next_id=await next_sequential_id(db, Menu.menu_id, MENU_PREFIX))


@router.get("/menus/{menu_id}", response_model=MenuResponse)
async def get_menu(menu_id: str, db: AsyncSession = Depends(get_db)) -> MenuResponse:
    menu = await get_or_404(db, Menu.menu_id, menu_id, "menu not found")
    return MenuResponse.model_validate(menu)


@router.post("/menus", response_model=MenuResponse, status_code=201)
async def create_menu(
    payload: MenuCreate,
    current_user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> MenuResponse:
    check_user_type(current_user, UserType.ADMIN.value, "Only admins can create menus")

    menu = Menu(
        menu_id=payload.menu_id,
        name=payload.name,
        category=payload.category,
        start_date=payload.start_date,
        end_date=payload.end_date,
    )
    menu = await insert_with_sequential_id(db, menu, "menu_id", MENU_PREFIX)
    await db.commit()

    logger.info(f"Menu {menu.menu_id} created")
    return MenuResponse.model_validate(menu)


@router.patch("/menus/{menu_id}", response_model=MenuResponse)
async def update_menu(
    menu_id: str,
    payload: MenuUpdate,
    current_user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> MenuResponse:
    check_user_type(current_user, UserType.ADMIN.value, "Only admins can update menus")
    ensure_matching_id(payload.menu_id, menu_id, "menu")

    menu = await get_or_404(db, Menu.menu_id, menu_id, "menu not found")
    updates = payload.model_dump(exclude_unset=True, exclude_none=True, exclude={"menu_id"})

    try:
        check_date_window(
            updates.get("start_date", menu.start_date),
            updates.get("end_date", menu.end_date),
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    apply_updates(menu, updates)
    await db.commit()
    await db.refresh(menu)

    logger.info(f"Menu {menu_id} updated")
    return MenuResponse.model_validate(menu)


@router.delete("/menus/{menu_id}", response_model=MessageResponse)
async def delete_menu(
    menu_id: str,
    current_user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    check_user_type(current_user, UserType.ADMIN.value, "Only admins can delete menus")
    menu = await get_or_404(db, Menu.menu_id, menu_id, "menu not found")

    food_count = await db.execute(select(func.count(Food.id)).where(Food.menu_id == menu_id))
    if food_count.scalar():
        raise HTTPException(
            status_code=400,
            detail="Cannot delete menu while foods are attached to it",
        )

    await db.delete(menu)
    await db.commit()

    logger.info(f"Menu {menu_id} deleted")
    return MessageResponse(message="Menu deleted successfully")
