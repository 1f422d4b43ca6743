# bakery/ordering/orders.py
"""
Order lifecycle.

    pending -> fulfilled   (staff)
    pending -> canceled    (customer before cutoff, or staff)
    any     -> pending     (staff reschedule)

Customers act through their edit token and only until the weekend cutoff;
staff operations never consult the cutoff.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable
from urllib.parse import quote
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import Settings
from ..emailer import send_order_email
from ..errors import ApiError, NotFound, Unauthorized
from ..models import (
    ORDER_STATUSES,
    STATUS_CANCELED,
    STATUS_PENDING,
    TERMINAL_STATUSES,
    Order,
    OrderItem,
    Product,
)
from ..pickup import is_locked_by_cutoff, is_weekend_date, weekend_cutoff
from ..schemas import CreateOrderIn, PatchOrderIn
from ..tokens import generate_edit_token, generate_public_code, hash_token, tokens_match
from .cart import build_summary
from .catalog import CatalogRepository

logger = logging.getLogger(__name__)

PUBLIC_CODE_ATTEMPTS = 5

Clock = Callable[[], datetime]


def system_clock() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CreatedOrder:
    order: Order
    public_code: str
    edit_token: str
    edit_url: str


def _snapshot(product: Product, quantity: int) -> OrderItem:
    return OrderItem(
        product_id=product.id,
        product_name_snapshot=product.name,
        unit_price_cents_snapshot=product.price_cents,
        quantity=quantity,
    )


def _utc_iso(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def item_dict(it: OrderItem) -> dict[str, Any]:
    return {
        "product_id": it.product_id,
        "name": it.product_name_snapshot,
        "price_cents": it.unit_price_cents_snapshot,
        "quantity": it.quantity,
    }


def order_dict(o: Order) -> dict[str, Any]:
    return {
        "id": o.id,
        "public_code": o.public_code,
        "customer_name": o.customer_name,
        "customer_email": o.customer_email,
        "customer_phone": o.customer_phone,
        "pickup_date": o.pickup_date.isoformat(),
        "pickup_location": o.pickup_location,
        "status": o.status,
        "created_at": o.created_at.isoformat() if o.created_at else None,
    }


class OrderService:
    def __init__(self, db: Session, settings: Settings, clock: Clock | None = None) -> None:
        self.db = db
        self.settings = settings
        self.tz = ZoneInfo(settings.timezone)
        self.clock = clock or system_clock
        self.catalog = CatalogRepository(db)

    # -------------------
    # Helpers
    # -------------------
    def now(self) -> datetime:
        now = self.clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=self.tz)
        return now

    def _now_utc_naive(self) -> datetime:
        return self.now().astimezone(timezone.utc).replace(tzinfo=None)

    def is_locked(self, pickup_date: date) -> bool:
        return is_locked_by_cutoff(pickup_date, self.now(), self.tz)

    def _check_location(self, location: str) -> None:
        if location not in self.settings.pickup_locations:
            raise ApiError(
                "BAD_BODY",
                details=[{"field": "pickupLocation", "message": f"must be one of {self.settings.pickup_locations}"}],
            )

    def _check_bookable(self, pickup_date: date) -> None:
        if not is_weekend_date(pickup_date):
            raise ApiError("PICKUP_NOT_WEEKEND")
        if self.is_locked(pickup_date):
            raise ApiError("ORDER_CLOSED_FOR_WEEKEND")

    def _edit_url(self, public_code: str, token: str, origin: str | None) -> str:
        base = self.settings.public_base_url
        if origin and origin.rstrip("/") in self.settings.cors_origins:
            base = origin
        return f"{base.rstrip('/')}/edit/{public_code}?token={quote(token, safe='')}"

    def get(self, order_id: int) -> Order:
        o = self.db.get(Order, order_id)
        if o is None:
            raise NotFound()
        return o

    # -------------------
    # Customer
    # -------------------
    def create_order(self, data: CreateOrderIn, origin: str | None = None) -> CreatedOrder:
        self._check_location(data.pickup_location)
        self._check_bookable(data.pickup_date)

        products = self.catalog.by_ids([line.product_id for line in data.items])
        for line in data.items:
            if line.product_id not in products:
                raise ApiError("UNKNOWN_PRODUCT", productId=line.product_id)
        for line in data.items:
            if not products[line.product_id].is_available:
                raise ApiError("PRODUCT_UNAVAILABLE", productId=line.product_id)

        expires_at = self._now_utc_naive() + timedelta(days=self.settings.edit_token_ttl_days)

        for attempt in range(1, PUBLIC_CODE_ATTEMPTS + 1):
            edit_token = generate_edit_token()
            order = Order(
                public_code=generate_public_code(6),
                customer_name=data.customer_name,
                customer_email=str(data.customer_email),
                customer_phone=data.customer_phone,
                pickup_date=data.pickup_date,
                pickup_location=data.pickup_location,
                status=STATUS_PENDING,
                edit_token_hash=hash_token(edit_token),
                edit_token_expires_at=expires_at,
            )
            order.items = [_snapshot(products[line.product_id], line.quantity) for line in data.items]
            self.db.add(order)
            try:
                self.db.commit()
                break
            except IntegrityError:
                # public_code is the only unique column we write
                self.db.rollback()
                if attempt == PUBLIC_CODE_ATTEMPTS:
                    raise
                logger.warning("Public code collision, retrying (%d)", attempt)

        edit_url = self._edit_url(order.public_code, edit_token, origin)
        logger.info(
            "Order %s created for %s at %s (%d lines)",
            order.public_code,
            order.pickup_date.isoformat(),
            order.pickup_location,
            len(order.items),
        )
        self._send_confirmation(order, edit_url)
        return CreatedOrder(order=order, public_code=order.public_code, edit_token=edit_token, edit_url=edit_url)

    def _send_confirmation(self, order: Order, edit_url: str) -> None:
        summary, _total = build_summary(list(order.items), currency_symbol=self.settings.currency_symbol)
        body = (
            f"Hello {order.customer_name},\n\n"
            f"Order code: {order.public_code}\n"
            f"Pickup: {order.pickup_date.isoformat()} at {order.pickup_location}\n"
            f"Phone: {order.customer_phone}\n\n"
            f"{summary}\n\n"
            f"Edit or cancel until the weekend starts:\n{edit_url}\n"
        )
        send_order_email(
            self.settings,
            to_email=order.customer_email,
            subject=f"Your pickup order {order.public_code}",
            body=body,
        )

    def authorize(self, public_code: str, token: str | None) -> Order:
        if not token:
            raise Unauthorized("MISSING_TOKEN")

        code = (public_code or "").strip().upper()
        order = self.db.execute(select(Order).where(Order.public_code == code)).scalar_one_or_none()
        if order is None:
            raise Unauthorized("NOT_FOUND")
        if order.edit_token_expires_at < self._now_utc_naive():
            raise Unauthorized("TOKEN_EXPIRED")
        if not tokens_match(token, order.edit_token_hash):
            raise Unauthorized("BAD_TOKEN")
        return order

    def read_order(self, order: Order) -> dict[str, Any]:
        locked = self.is_locked(order.pickup_date)
        can_cancel = not locked and order.status not in TERMINAL_STATUSES
        data = order_dict(order)
        data.pop("id")
        return {
            "order": data,
            "items": [item_dict(it) for it in order.items],
            "edit": {
                "locked": locked,
                "cutoff_iso": _utc_iso(weekend_cutoff(order.pickup_date, self.tz)),
                "canCancel": can_cancel,
            },
        }

    def patch_order(self, order: Order, data: PatchOrderIn) -> Order:
        if self.is_locked(order.pickup_date) or order.status in TERMINAL_STATUSES:
            raise ApiError("ORDER_LOCKED")

        if data.pickup_location is not None:
            self._check_location(data.pickup_location)
        if data.pickup_date is not None:
            self._check_bookable(data.pickup_date)

        if data.customer_name:
            order.customer_name = data.customer_name
        if data.customer_email:
            order.customer_email = str(data.customer_email)
        if data.customer_phone:
            order.customer_phone = data.customer_phone
        if data.pickup_date is not None:
            order.pickup_date = data.pickup_date
        if data.pickup_location:
            order.pickup_location = data.pickup_location

        if data.items is not None:
            wanted = [line for line in data.items if line.quantity > 0]
            products = self.catalog.by_ids([line.product_id for line in wanted])

            order.items.clear()
            self.db.flush()
            for line in wanted:
                product = products.get(line.product_id)
                if product is None:
                    logger.warning("Order %s: skipping unknown product %s", order.public_code, line.product_id)
                    continue
                order.items.append(_snapshot(product, line.quantity))

        self.db.commit()
        logger.info("Order %s updated by customer", order.public_code)
        return order

    def cancel_order(self, order: Order) -> Order:
        if self.is_locked(order.pickup_date):
            raise ApiError("ORDER_LOCKED")
        if order.status == STATUS_CANCELED:
            return order
        if order.status != STATUS_PENDING:
            raise ApiError("ORDER_LOCKED")

        order.status = STATUS_CANCELED
        self.db.commit()
        logger.info("Order %s canceled by customer", order.public_code)
        return order

    # -------------------
    # Staff
    # -------------------
    def set_status(self, order_id: int, status: str) -> Order:
        if status not in ORDER_STATUSES:
            raise ApiError("BAD_BODY", details=[{"field": "status", "message": "unknown status"}])
        order = self.get(order_id)
        order.status = status
        self.db.commit()
        logger.info("Order %s status -> %s", order.public_code, status)
        return order

    def reschedule(self, order_id: int, pickup_date: date, pickup_location: str) -> Order:
        if not is_weekend_date(pickup_date):
            raise ApiError("PICKUP_NOT_WEEKEND")
        self._check_location(pickup_location)
        order = self.get(order_id)

        order.pickup_date = pickup_date
        order.pickup_location = pickup_location
        order.status = STATUS_PENDING
        self.db.commit()
        logger.info("Order %s rescheduled to %s at %s", order.public_code, pickup_date.isoformat(), pickup_location)
        return order

