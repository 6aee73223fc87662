"""
Server-side Sequential Identifiers

Business ids look like `food-001`, `order-014`, `item-1203`: a prefix, a dash
and a number zero-padded to three digits. The next id is one past the
largest well-formed id already stored under that prefix.

Uniqueness is enforced by the unique constraint on each business-id column.
Two writers may compute the same candidate; the loser's insert fails with an
IntegrityError, only its savepoint is rolled back and allocation runs again.
Row locks and earlier writes of the surrounding transaction survive the retry.
"""

import logging
import re
from typing import Any, Optional

from fastapi import HTTPException
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_api.core.config import get_settings

logger = logging.getLogger(__name__)

ID_WIDTH = 3


def format_sequential_id(prefix: str, number: int) -> str:
    """Render `number` under `prefix`, e.g. ("food", 7) -> "food-007"."""
    return f"{prefix}-{number:0{ID_WIDTH}d}"


def parse_sequential_number(prefix: str, value: Optional[str]) -> Optional[int]:
    """Extract the number from a well-formed id, or None if it does not match."""
    if not value:
        return None
    match = re.fullmatch(rf"{re.escape(prefix)}-(\d+)", value)
    return int(match.group(1)) if match else None


async def next_sequential_id(db: AsyncSession, column: Any, prefix: str) -> str:
    """
    Compute the next free id for `prefix` from the values stored in `column`.

    Ids that do not follow the `prefix-NNN` pattern are ignored.
    """
    result = await db.execute(select(column).where(column.like(f"{prefix}-%")))
    numbers = [
        n for n in (parse_sequential_number(prefix, v) for v in result.scalars().all())
        if n is not None
    ]
    return format_sequential_id(prefix, max(numbers, default=0) + 1)


async def _id_taken(db: AsyncSession, column: Any, value: str) -> bool:
    result = await db.execute(select(func.count(column)).where(column == value))
    return (result.scalar() or 0) > 0


async def insert_with_sequential_id(
    db: AsyncSession,
    instance: Any,
    attribute: str,
    prefix: str,
) -> Any:
    """
    Insert `instance` inside a savepoint, allocating its business id if it has none.

    Nothing is committed here; the caller commits together with its other
    writes. An explicit id that is already taken is rejected with 409.
    Allocated ids are retried on collision up to `id_allocation_attempts`
    times. Any other integrity failure propagates unchanged.
    """
    column = getattr(type(instance), attribute)
    explicit_id = getattr(instance, attribute)

    if explicit_id:
        if await _id_taken(db, column, explicit_id):
            raise HTTPException(status_code=409, detail=f"The ID {explicit_id} is already in use")
        try:
            async with db.begin_nested():
                db.add(instance)
        except IntegrityError:
            if await _id_taken(db, column, explicit_id):
                raise HTTPException(status_code=409, detail=f"The ID {explicit_id} is already in use")
            raise
        await db.refresh(instance)
        return instance

    attempts = get_settings().id_allocation_attempts
    for attempt in range(1, attempts + 1):
        candidate = await next_sequential_id(db, column, prefix)
        setattr(instance, attribute, candidate)
        try:
            async with db.begin_nested():
                db.add(instance)
        except IntegrityError:
            if not await _id_taken(db, column, candidate):
                raise
            logger.warning(f"Id collision on {candidate} (attempt {attempt}/{attempts})")
            continue
        await db.refresh(instance)
        logger.debug(f"Allocated {candidate}")
        return instance

    setattr(instance, attribute, None)
    raise HTTPException(
        status_code=409,
        detail="Unable to allocate a unique ID. Please try again.",
    )
