"""
SQLAlchemy Database Models

Every entity carries an integer surrogate key (`id`) plus a human-facing
business id (`menu_id`, `food_id`, ...) that the API exposes in URLs.
Business ids are unique and allocated server-side (see
services/identifiers.py); user ids are UUID4 strings.

Version: 1.0.0
"""

import enum

from sqlalchemy import Column, Integer, String, Float, DateTime, Text, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func

from restaurant_api.database import Base


class UserType(str, enum.Enum):
    """Account roles."""
    ADMIN = "ADMIN"
    USER = "USER"


class OrderStatus(str, enum.Enum):
    """Order status workflow."""
    DRAFT = "draft"
    PENDING = "pending"
    PREPARING = "preparing"
    READY = "ready"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    INVOICED = "invoiced"


# An order on any other status holds its table
CLOSED_ORDER_STATUSES = (OrderStatus.COMPLETED.value, OrderStatus.CANCELLED.value)

# Items may only be changed by customers while the order is on one of these
EDITABLE_ORDER_STATUSES = (OrderStatus.PENDING.value, OrderStatus.DRAFT.value)


class PaymentStatus(str, enum.Enum):
    """Invoice payment status."""
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class User(Base):
    """Dashboard and customer accounts."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(String(36), nullable=False, unique=True, index=True)

    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    phone = Column(String(20), nullable=False, unique=True)
    password = Column(String(255), nullable=False)  # scrypt hash, never plaintext
    user_type = Column(String(10), nullable=False, default=UserType.USER.value)

    token = Column(Text, nullable=True)
    refresh_token = Column(Text, nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<User {self.user_id} - {self.email} - {self.user_type}>"


class Menu(Base):
    """A named, categorised menu with an optional validity window."""
    __tablename__ = "menus"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    menu_id = Column(String(50), nullable=False, unique=True, index=True)

    name = Column(String(100), nullable=False)
    category = Column(String(100), nullable=False, index=True)
    start_date = Column(DateTime(timezone=True), nullable=True)
    end_date = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<Menu {self.menu_id} - {self.name} - {self.category}>"


class Food(Base):
    """A dish on a menu."""
    __tablename__ = "foods"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    food_id = Column(String(50), nullable=False, unique=True, index=True)

    name = Column(String(100), nullable=False, index=True)
    price = Column(Float, nullable=False)
    food_image = Column(String(500), nullable=True)
    menu_id = Column(String(50), ForeignKey("menus.menu_id"), nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<Food {self.food_id} - {self.name} - {self.price}>"


class Table(Base):
    """A dining table orders are placed against."""
    __tablename__ = "tables"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    table_id = Column(String(50), nullable=False, unique=True, index=True)

    table_name = Column(String(100), nullable=False)
    table_number = Column(Integer, nullable=True)
    capacity = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<Table {self.table_id} - {self.table_name}>"


class Order(Base):
    """
    An order placed at a table.

    `order_total` is derived data: it is recomputed from the order's items
    and the current food prices every time an item changes.
    """
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    order_id = Column(String(50), nullable=False, unique=True, index=True)

    order_date = Column(DateTime(timezone=True), nullable=False)
    table_id = Column(String(50), ForeignKey("tables.table_id"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.user_id"), nullable=True, index=True)
    order_status = Column(
        String(20),
        default=OrderStatus.PENDING.value,
        nullable=False,
        index=True
    )
    order_total = Column(Float, nullable=False, default=0.0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<Order {self.order_id} - {self.table_id} - {self.order_status}>"


class OrderItem(Base):
    """A quantity of one food on one order."""
    __tablename__ = "order_items"
    __table_args__ = (
        UniqueConstraint("order_id", "food_id", name="uq_order_items_order_food"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    order_item_id = Column(String(50), nullable=False, unique=True, index=True)

    quantity = Column(Integer, nullable=False, default=1)
    food_id = Column(String(50), ForeignKey("foods.food_id"), nullable=False, index=True)
    order_id = Column(String(50), ForeignKey("orders.order_id"), nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<OrderItem {self.order_item_id} - {self.order_id} - {self.food_id} x{self.quantity}>"


class Invoice(Base):
    """Bill raised against an order."""
    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    invoice_id = Column(String(50), nullable=False, unique=True, index=True)

    order_id = Column(String(50), ForeignKey("orders.order_id"), nullable=False, index=True)
    payment_method = Column(String(50), nullable=True)
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value)
    payment_due_date = Column(DateTime(timezone=True), nullable=False)
    total_amount = Column(Float, nullable=False, default=0.0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<Invoice {self.invoice_id} - {self.order_id} - {self.payment_status}>"
