# bakery/models.py
from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from .db import Base

STATUS_PENDING = "pending"
STATUS_FULFILLED = "fulfilled"
STATUS_CANCELED = "canceled"
ORDER_STATUSES = (STATUS_PENDING, STATUS_FULFILLED, STATUS_CANCELED)
TERMINAL_STATUSES = {STATUS_FULFILLED, STATUS_CANCELED}


def utcnow() -> datetime:
    # Stored naive, always UTC.
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Product(Base):
    __tablename__ = "products"
    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    price_cents = Column(Integer, nullable=False)
    image_url = Column(String, nullable=False, default="")
    weight_grams = Column(Integer, nullable=True)

    # display grouping only, e.g. "Pain" / "600g"
    variant_group = Column(String, nullable=True)
    variant_label = Column(String, nullable=True)
    variant_sort = Column(Integer, nullable=True)

    is_available = Column(Boolean, nullable=False, default=True)
    unavailable_reason = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class Order(Base):
    __tablename__ = "orders"
    id = Column(Integer, primary_key=True)
    public_code = Column(String, unique=True, index=True, nullable=False)
    customer_name = Column(String, nullable=False)
    customer_email = Column(String, index=True, nullable=False)
    customer_phone = Column(String, nullable=False, default="")
    pickup_date = Column(Date, index=True, nullable=False)
    pickup_location = Column(String, nullable=False)
    status = Column(String, nullable=False, default=STATUS_PENDING)  # pending | fulfilled | canceled
    edit_token_hash = Column(String, nullable=False)
    edit_token_expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=utcnow, index=True)

    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )

    @property
    def total_cents(self) -> int:
        return sum(it.line_total_cents for it in self.items)


class OrderItem(Base):
    __tablename__ = "order_items"
    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), index=True, nullable=False)
    # Not a FK: deleting a product must leave order history untouched.
    product_id = Column(Integer, nullable=False)
    product_name_snapshot = Column(String, nullable=False)
    unit_price_cents_snapshot = Column(Integer, nullable=False)
    quantity = Column(Integer, nullable=False)

    order = relationship("Order", back_populates="items")

    @property
    def line_total_cents(self) -> int:
        return self.unit_price_cents_snapshot * self.quantity


class Customer(Base):
    __tablename__ = "customers"
    email = Column(String, primary_key=True)
    name = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
