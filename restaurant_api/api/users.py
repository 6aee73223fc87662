"""
User Endpoints

Account listing for admins plus profile and password management for the
account owner.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_api.api.deps import (
    get_current_user,
    get_or_404,
    check_user_type,
    match_user_type_to_uid,
    apply_updates,
)
from restaurant_api.core.security import TokenClaims, hash_password, verify_password
from restaurant_api.database import get_db
from restaurant_api.models import User, UserType
from restaurant_api.schemas import (
    UserResponse,
    UserListResponse,
    UserUpdate,
    PasswordChangeRequest,
    MessageResponse,
)
from restaurant_api.services.pagination import resolve_pagination

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("", response_model=UserListResponse)
async def list_users(
    record_per_page: Optional[str] = Query(None, alias="recordPerPage"),
    page: Optional[str] = Query(None),
    current_user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> UserListResponse:
    """List customer accounts (admin only)."""
    check_user_type(current_user, UserType.ADMIN.value, "Unauthorized to access this resource")

    pagination = resolve_pagination(page, record_per_page)

    total_result = await db.execute(
        select(func.count(User.id)).where(User.user_type == UserType.USER.value)
    )
    total = total_result.scalar() or 0

    result = await db.execute(
        select(User)
        .where(User.user_type == UserType.USER.value)
        .order_by(User.id)
        .offset(pagination.offset)
        .limit(pagination.limit)
    )

    return UserListResponse(
        total_count=total,
        user_items=[UserResponse.model_validate(u) for u in result.scalars().all()],
    )


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    current_user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    match_user_type_to_uid(current_user, user_id, "Unauthorized to access this resource")
    user = await get_or_404(db, User.user_id, user_id, "user not found")
    return UserResponse.model_validate(user)


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    payload: UserUpdate,
    current_user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    """Update the caller's profile (or any profile, for admins)."""
    match_user_type_to_uid(current_user, user_id, "You can only update your own profile")
    user = await get_or_404(db, User.user_id, user_id, "user not found")

    updates = payload.model_dump(exclude_none=True)
    if "phone" in updates and updates["phone"] != user.phone:
        taken = await db.execute(
            select(User.id).where(User.phone == updates["phone"], User.user_id != user_id)
        )
        if taken.first() is not None:
            raise HTTPException(status_code=400, detail="user with this phone already exists")

    apply_updates(user, updates)
    await db.commit()
    await db.refresh(user)

    logger.info(f"User {user_id} profile updated")
    return UserResponse.model_validate(user)


@router.put("/{user_id}/password", response_model=MessageResponse)
async def change_password(
    user_id: str,
    payload: PasswordChangeRequest,
    current_user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    match_user_type_to_uid(current_user, user_id, "You can only change your own password")
    user = await get_or_404(db, User.user_id, user_id, "user not found")

    if not verify_password(payload.current_password, user.password):
        raise HTTPException(status_code=400, detail="Current password is incorrect")

    user.password = hash_password(payload.new_password)
    await db.commit()

    logger.info(f"User {user_id} changed password")
    return MessageResponse(message="Password has been successfully updated")
