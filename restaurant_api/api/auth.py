"""
Authentication Endpoints

Public routes for creating an account, logging in and rotating tokens.
Every successful login or refresh stores the newly issued tokens on the
user row, which is what makes a refresh token single-use.

The first ADMIN account may be created anonymously. After that only an
admin may sign up further admins.
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_api.api.deps import get_optional_user
from restaurant_api.core.security import (
    REFRESH_TOKEN,
    InvalidTokenError,
    TokenClaims,
    generate_all_tokens,
    hash_password,
    validate_token,
    verify_password,
)
from restaurant_api.database import get_db
from restaurant_api.models import User, UserType
from restaurant_api.schemas import (
    SignupRequest,
    SignupResponse,
    LoginRequest,
    RefreshTokenRequest,
    AuthenticatedUserResponse,
    ErrorResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Auth"])


def _issue_tokens(user: User) -> None:
    token, refresh_token = generate_all_tokens(
        user.email,
        user.first_name,
        user.last_name,
        user.user_type,
        user.user_id,
    )
    user.token = token
    user.refresh_token = refresh_token


async def _may_create_admin(db: AsyncSession, caller: Optional[TokenClaims]) -> bool:
    if caller is not None and caller.is_admin:
        return True
    result = await db.execute(select(User.id).where(User.user_type == UserType.ADMIN.value).limit(1))
    return result.first() is None


@router.post(
    "/signup",
    response_model=SignupResponse,
    responses={400: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
    summary="Create an account",
)
async def signup(
    payload: SignupRequest,
    caller: Optional[TokenClaims] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
) -> SignupResponse:
    if payload.user_type == UserType.ADMIN and not await _may_create_admin(db, caller):
        raise HTTPException(status_code=403, detail="Only an admin can create admin accounts")

    existing = await db.execute(select(User.id).where(User.email == payload.email))
    if existing.first() is not None:
        raise HTTPException(status_code=400, detail="user with this email already exists")

    existing = await db.execute(select(User.id).where(User.phone == payload.phone))
    if existing.first() is not None:
        raise HTTPException(status_code=400, detail="user with this phone already exists")

    user = User(
        user_id=str(uuid.uuid4()),
        first_name=payload.first_name,
        last_name=payload.last_name,
        email=payload.email,
        phone=payload.phone,
        password=hash_password(payload.password),
        user_type=payload.user_type.value,
    )
    _issue_tokens(user)

    db.add(user)
    await db.commit()
    await db.refresh(user)

    logger.info(f"User {user.user_id} signed up ({user.user_type})")
    return SignupResponse(id=user.id, user_id=user.user_id, email=user.email)


@router.post(
    "/login",
    response_model=AuthenticatedUserResponse,
    responses={401: {"model": ErrorResponse}},
    summary="Log in with email and password",
)
async def login(
    payload: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> AuthenticatedUserResponse:
    result = await db.execute(select(User).where(User.email == payload.email))
    user = result.scalar_one_or_none()
    if user is None:
        raise HTTPException(status_code=401, detail="user not found")

    if not verify_password(payload.password, user.password):
        logger.info(f"Failed login for {payload.email}")
        raise HTTPException(status_code=401, detail="invalid credentials")

    _issue_tokens(user)
    await db.commit()
    await db.refresh(user)

    logger.info(f"User {user.user_id} logged in")
    return AuthenticatedUserResponse.model_validate(user)


@router.post(
    "/refresh-token",
    response_model=AuthenticatedUserResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
    summary="Exchange a refresh token for a new token pair",
)
async def refresh_token(
    payload: RefreshTokenRequest,
    db: AsyncSession = Depends(get_db),
) -> AuthenticatedUserResponse:
    if not payload.refresh_token:
        raise HTTPException(status_code=400, detail="refresh_token is required")

    try:
        validate_token(payload.refresh_token, expected_type=REFRESH_TOKEN)
    except InvalidTokenError:
        raise HTTPException(status_code=401, detail="invalid or expired refresh token")

    result = await db.execute(select(User).where(User.refresh_token == payload.refresh_token))
    user = result.scalar_one_or_none()
    if user is None:
        raise HTTPException(status_code=401, detail="refresh token not recognized")

    _issue_tokens(user)
    await db.commit()
    await db.refresh(user)

    return AuthenticatedUserResponse.model_validate(user)
