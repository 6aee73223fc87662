"""
Table Endpoints

A table is available while no active order (anything not completed or
cancelled) is seated at it.
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
from restaurant_api.models import Table, Order, UserType
from restaurant_api.schemas import (
    TableCreate,
    TableUpdate,
    TableResponse,
    TablePage,
    NextIdResponse,
    MessageResponse,
)
from restaurant_api.services.identifiers import next_sequential_id, insert_with_sequential_id
from restaurant_api.services.orders import active_table_ids
from restaurant_api.services.pagination import (
    PaginationParams,
    get_pagination_params,
    build_pagination,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Tables"], dependencies=[Depends(get_current_user)])

TABLE_PREFIX = "table"


@router.get("/tables", response_model=TablePage)
async def list_tables(
    pagination: PaginationParams = Depends(get_pagination_params),
    db: AsyncSession = Depends(get_db),
) -> TablePage:
    total_result = await db.execute(select(func.count(Table.id)))
    total = total_result.scalar() or 0

    result = await db.execute(
        select(Table).order_by(Table.id).offset(pagination.offset).limit(pagination.limit)
    )

    return TablePage(
        data=[TableResponse.model_validate(t) for t in result.scalars().all()],
        pagination=build_pagination(pagination.page, pagination.limit, total),
    )


@router.get("/available-tables", response_model=List[TableResponse])
async def list_available_tables(db: AsyncSession = Depends(get_db)) -> List[TableResponse]:
    occupied = await active_table_ids(db)

    query = select(Table).order_by(Table.id)
    if occupied:
        query = query.where(Table.table_id.notin_(occupied))
    result = await db.execute(query)
    tables = result.scalars().all()

    if not tables:
        raise HTTPException(
            status_code=404,
            detail="No available tables at the moment. Please try again later.",
        )
    return [TableResponse.model_validate(t) for t in tables]


@router.get("/tables/next-id", response_model=NextIdResponse)
async def get_next_table_id(db: AsyncSession = Depends(get_db)) -> NextIdResponse:
    return NextIdResponse(next_id=await next_sequential_id(db, Table.table_id, TABLE_PREFIX))


@router.get("/tables/{table_id}", response_model=TableResponse)
async def get_table(table_id: str, db: AsyncSession = Depends(get_db)) -> TableResponse:
    table = await get_or_404(db, Table.table_id, table_id, "table not found")
    return TableResponse.model_validate(table)


@router.post("/tables", response_model=TableResponse, status_code=201)
async def create_table(
    payload: TableCreate,
    current_user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> TableResponse:
    check_user_type(current_user, UserType.ADMIN.value, "Only admins can create tables")

    table = Table(
        table_id=payload.table_id,
        table_name=payload.table_name,
        table_number=payload.table_number,
        capacity=payload.capacity,
    )
    table = await insert_with_sequential_id(db, table, "table_id", TABLE_PREFIX)
    await db.commit()

    logger.info(f"Table {table.table_id} created")
    return TableResponse.model_validate(table)


@router.patch("/tables/{table_id}", response_model=TableResponse)
async def update_table(
    table_id: str,
    payload: TableUpdate,
    current_user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> TableResponse:
    check_user_type(current_user, UserType.ADMIN.value, "Only admins can update tables")
    ensure_matching_id(payload.table_id, table_id, "table")

    table = await get_or_404(db, Table.table_id, table_id, "table not found")
    apply_updates(table, payload.model_dump(exclude_unset=True, exclude_none=True, exclude={"table_id"}))
    await db.commit()
    await db.refresh(table)

    return TableResponse.model_validate(table)


@router.delete("/tables/{table_id}", response_model=MessageResponse)
async def delete_table(
    table_id: str,
    current_user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    check_user_type(current_user, UserType.ADMIN.value, "Only admins can delete tables")
    table = await get_or_404(db, Table.table_id, table_id, "table not found")

    order_count = await db.execute(select(func.count(Order.id)).where(Order.table_id == table_id))
    if order_count.scalar():
        raise HTTPException(
            status_code=400,
            detail="Cannot delete table that has orders",
        )

    await db.delete(table)
    await db.commit()

    logger.info(f"Table {table_id} deleted")
    return MessageResponse(message="Table deleted successfully")
