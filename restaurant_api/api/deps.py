"""
Request dependencies and authorization helpers shared by the routers.
"""

import logging
from typing import Any, Optional

from fastapi import Header, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_api.core.security import TokenClaims, InvalidTokenError, validate_token

logger = logging.getLogger(__name__)


def _extract_token(authorization: Optional[str], token: Optional[str]) -> Optional[str]:
    if authorization and authorization.lower().startswith("bearer "):
        return authorization[7:].strip()
    if token:
        return token.removeprefix("Bearer ").strip()
    return None


async def get_current_user(
    authorization: Optional[str] = Header(None),
    token: Optional[str] = Header(None),
) -> TokenClaims:
    """
    Authenticate the request from its access token.

    Accepts `Authorization: Bearer <jwt>` or the legacy `token` header.
    """
    raw_token = _extract_token(authorization, token)
    if not raw_token:
        raise HTTPException(status_code=401, detail="No Authorization header provided")

    try:
        return validate_token(raw_token)
    except InvalidTokenError as e:
        logger.debug(f"Rejected token: {e}")
        raise HTTPException(status_code=401, detail=str(e))


async def get_optional_user(
    authorization: Optional[str] = Header(None),
    token: Optional[str] = Header(None),
) -> Optional[TokenClaims]:
    """Like `get_current_user`, but anonymous requests yield None."""
    if not _extract_token(authorization, token):
        return None
    return await get_current_user(authorization, token)


def check_user_type(user: TokenClaims, role: str, message: str) -> None:
    """Reject the request with 403 unless the caller has `role`."""
    if user.user_type != role:
        raise HTTPException(status_code=403, detail=message)


def match_user_type_to_uid(user: TokenClaims, owner_uid: Optional[str], message: str) -> None:
    """Customers may only reach their own resources; admins reach everything."""
    if not user.is_admin and user.uid != owner_uid:
        raise HTTPException(status_code=403, detail=message)


def ensure_matching_id(body_id: Optional[str], url_id: str, label: str) -> None:
    if body_id is not None and body_id != url_id:
        raise HTTPException(
            status_code=400,
            detail=f"The {label} ID in the request does not match the URL",
        )


async def get_or_404(db: AsyncSession, column: Any, value: Any, message: str) -> Any:
    """Fetch the single row whose `column` equals `value`, or raise 404."""
    model = column.class_
    result = await db.execute(select(model).where(column == value))
    instance = result.scalar_one_or_none()
    if instance is None:
        raise HTTPException(status_code=404, detail=message)
    return instance


def apply_updates(instance: Any, updates: dict[str, Any]) -> None:
    for field, value in updates.items():
        setattr(instance, field, value)
