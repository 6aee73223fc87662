"""
Pydantic Schemas for Request/Response Validation

Create schemas validate required fields; update schemas make every field
optional so PATCH bodies only carry what changes. An update body may repeat
the business id, in which case it must match the id in the URL.

Version: 1.0.0
"""

import re
from datetime import datetime, timezone
from typing import Any, Optional, List

from pydantic import BaseModel, Field, field_validator, model_validator

from restaurant_api.models import UserType, OrderStatus, PaymentStatus


def _as_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so they can be compared."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _check_phone(v: str) -> str:
    cleaned = re.sub(r'[^\d]', '', v)
    if len(cleaned) < 10:
        raise ValueError('Phone number must have at least 10 digits')
    return v


def check_date_window(start: Optional[datetime], end: Optional[datetime]) -> None:
    if start and end and _as_aware(end) < _as_aware(start):
        raise ValueError('end_date must not be before start_date')


# =============================================================================
# AUTH / USER SCHEMAS
# =============================================================================

class SignupRequest(BaseModel):
    """Request schema for creating an account."""
    first_name: str = Field(..., min_length=2, max_length=100, examples=["Jane"])
    last_name: str = Field(..., min_length=2, max_length=100, examples=["Doe"])
    email: str = Field(..., max_length=255, examples=["jane@example.com"])
    password: str = Field(..., min_length=6, max_length=128)
    phone: str = Field(..., min_length=10, max_length=20, examples=["555-123-4567"])
    user_type: UserType = Field(default=UserType.USER, examples=["ADMIN"])

    @field_validator('email')
    @classmethod
    def validate_email(cls, v: str) -> str:
        if not re.match(r'^[\w\.\+-]+@[\w\.-]+\.\w+$', v):
            raise ValueError('Invalid email format')
        return v.lower()

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, v: str) -> str:
        return _check_phone(v)


class LoginRequest(BaseModel):
    """Credentials for logging in."""
    email: str
    password: str

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class RefreshTokenRequest(BaseModel):
    refresh_token: str = ""


class SignupResponse(BaseModel):
    id: int
    user_id: str
    email: str


class UserResponse(BaseModel):
    """A user account. The password hash is never serialized."""
    id: int
    user_id: str
    first_name: str
    last_name: str
    email: str
    phone: str
    user_type: str
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class AuthenticatedUserResponse(UserResponse):
    """User returned from login/refresh, including fresh tokens."""
    token: Optional[str]
    refresh_token: Optional[str]


class UserListResponse(BaseModel):
    total_count: int
    user_items: List[UserResponse]


class UserUpdate(BaseModel):
    """Profile fields a user may change."""
    first_name: Optional[str] = Field(None, min_length=2, max_length=100)
    last_name: Optional[str] = Field(None, min_length=2, max_length=100)
    phone: Optional[str] = Field(None, min_length=10, max_length=20)

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return _check_phone(v)


class PasswordChangeRequest(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=6, max_length=128)
    confirm_password: str

    @model_validator(mode='after')
    def passwords_match(self) -> 'PasswordChangeRequest':
        if self.new_password != self.confirm_password:
            raise ValueError('New password and confirmation do not match')
        return self


# =============================================================================
# MENU SCHEMAS
# =============================================================================

class MenuCreate(BaseModel):
    """Request schema for creating a menu. `menu_id` is allocated when omitted."""
    menu_id: Optional[str] = Field(None, max_length=50, examples=["menu-001"])
    name: str = Field(..., min_length=2, max_length=100, examples=["Dinner"])
    category: str = Field(..., min_length=1, max_length=100, examples=["Main Course"])
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @model_validator(mode='after')
    def check_dates(self) -> 'MenuCreate':
        check_date_window(self.start_date, self.end_date)
        return self


class MenuUpdate(BaseModel):
    menu_id: Optional[str] = None
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @model_validator(mode='after')
    def check_dates(self) -> 'MenuUpdate':
        check_date_window(self.start_date, self.end_date)
        return self


class MenuResponse(BaseModel):
    id: int
    menu_id: str
    name: str
    category: str
    start_date: Optional[datetime]
    end_date: Optional[datetime]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


# =============================================================================
# FOOD SCHEMAS
# =============================================================================

class FoodCreate(BaseModel):
    """Request schema for creating a food. `food_id` is allocated when omitted."""
    food_id: Optional[str] = Field(None, max_length=50, examples=["food-001"])
    name: str = Field(..., min_length=2, max_length=100, examples=["Pizza Margherita"])
    price: float = Field(..., gt=0, examples=[14.99])
    food_image: Optional[str] = Field(None, max_length=500)
    menu_id: str = Field(..., min_length=1, max_length=50, examples=["menu-001"])


class FoodUpdate(BaseModel):
    food_id: Optional[str] = None
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    price: Optional[float] = Field(None, gt=0)
    food_image: Optional[str] = Field(None, max_length=500)
    menu_id: Optional[str] = Field(None, min_length=1, max_length=50)


class FoodResponse(BaseModel):
    id: int
    food_id: str
    name: str
    price: float
    food_image: Optional[str]
    menu_id: str
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


# =============================================================================
# TABLE SCHEMAS
# =============================================================================

class TableCreate(BaseModel):
    """Request schema for creating a table. `table_id` is allocated when omitted."""
    table_id: Optional[str] = Field(None, max_length=50, examples=["table-001"])
    table_name: str = Field(..., min_length=1, max_length=100, examples=["Window 1"])
    table_number: Optional[int] = Field(None, ge=1)
    capacity: Optional[int] = Field(None, ge=1, le=100)


class TableUpdate(BaseModel):
    table_id: Optional[str] = None
    table_name: Optional[str] = Field(None, min_length=1, max_length=100)
    table_number: Optional[int] = Field(None, ge=1)
    capacity: Optional[int] = Field(None, ge=1, le=100)


class TableResponse(BaseModel):
    id: int
    table_id: str
    table_name: str
    table_number: Optional[int]
    capacity: Optional[int]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


# =============================================================================
# ORDER SCHEMAS
# =============================================================================

class OrderCreate(BaseModel):
    """Request schema for placing an order. `order_id` is allocated when omitted."""
    order_id: Optional[str] = Field(None, max_length=50, examples=["order-001"])
    table_id: Optional[str] = Field(None, max_length=50, examples=["table-001"])
    user_id: Optional[str] = Field(None, max_length=36)


class OrderUpdate(BaseModel):
    order_id: Optional[str] = None
    table_id: Optional[str] = Field(None, min_length=1, max_length=50)
    order_status: Optional[OrderStatus] = None
    order_date: Optional[datetime] = None


class OrderResponse(BaseModel):
    id: int
    order_id: str
    order_date: datetime
    table_id: str
    user_id: Optional[str]
    order_status: str
    order_total: float
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


# =============================================================================
# ORDER ITEM SCHEMAS
# =============================================================================

class OrderItemCreate(BaseModel):
    """A quantity of one food on an order. `order_item_id` is allocated when omitted."""
    order_item_id: Optional[str] = Field(None, max_length=50, examples=["item-001"])
    order_id: Optional[str] = Field(None, max_length=50, examples=["order-001"])
    food_id: str = Field(..., min_length=1, max_length=50, examples=["food-001"])
    quantity: int = Field(default=1, ge=1, le=99)


class OrderItemUpdate(BaseModel):
    order_item_id: Optional[str] = None
    order_id: Optional[str] = Field(None, min_length=1, max_length=50)
    food_id: Optional[str] = Field(None, min_length=1, max_length=50)
    quantity: Optional[int] = Field(None, ge=1, le=99)


class OrderItemResponse(BaseModel):
    id: int
    order_item_id: str
    order_id: str
    food_id: str
    quantity: int
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


# =============================================================================
# INVOICE SCHEMAS
# =============================================================================

class InvoiceCreate(BaseModel):
    """Request schema for invoicing an order. `invoice_id` is allocated when omitted."""
    invoice_id: Optional[str] = Field(None, max_length=50, examples=["invoice-001"])
    order_id: str = Field(..., min_length=1, max_length=50, examples=["order-001"])
    payment_method: Optional[str] = Field(None, max_length=50, examples=["card", "cash"])
    payment_status: Optional[PaymentStatus] = None
    payment_due_date: Optional[datetime] = None
    total_amount: Optional[float] = Field(None, ge=0)


class InvoiceUpdate(BaseModel):
    invoice_id: Optional[str] = None
    payment_method: Optional[str] = Field(None, max_length=50)
    payment_status: Optional[PaymentStatus] = None
    payment_due_date: Optional[datetime] = None
    total_amount: Optional[float] = Field(None, ge=0)


class InvoiceResponse(BaseModel):
    id: int
    invoice_id: str
    order_id: str
    payment_method: Optional[str]
    payment_status: str
    payment_due_date: datetime
    total_amount: float
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


# =============================================================================
# SHARED RESPONSE SCHEMAS
# =============================================================================

class Pagination(BaseModel):
    """Pagination metadata returned alongside a page of records."""
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool
    next_page: int
    prev_page: int


class TablePage(BaseModel):
    data: List[TableResponse]
    pagination: Pagination


class OrderPage(BaseModel):
    data: List[OrderResponse]
    pagination: Pagination


class InvoicePage(BaseModel):
    data: List[InvoiceResponse]
    pagination: Pagination


class NextIdResponse(BaseModel):
    next_id: str


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[Any] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    redis: str
    timestamp: datetime
