# bakery/ordering/reports.py
"""
Read-only views over orders + snapshot items.

Two audiences: the weekend operational view (what to bake, who picks up
where) and the date-range accounting view (who bought what, for how much).
Everything is computed on demand from the order_items snapshots, so product
edits never move historical totals.
"""
from __future__ import annotations

import csv
import io
from datetime import date
from typing import Any, Iterable

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from ..errors import ApiError
from ..models import Customer, Order, utcnow
from ..pickup import SATURDAY, add_days, parse_ymd
from .cart import format_cents
from .orders import item_dict, order_dict

ALL = "all"


def _by_quantity_then_name(row: dict[str, Any]):
    return (-row["quantity"], row["name"].casefold())


def _orders_query(location: str, status: str):
    q = select(Order).options(selectinload(Order.items))
    if location != ALL:
        q = q.where(Order.pickup_location == location)
    if status != ALL:
        q = q.where(Order.status == status)
    return q


# -------------------
# Weekend view
# -------------------
def summarize_weekend(orders: Iterable[dict[str, Any]]) -> dict[str, Any]:
    customers = set()
    by_product: dict[str, dict[str, Any]] = {}
    total_qty = 0
    total_cents = 0
    count = 0

    for o in orders:
        count += 1
        email = str(o.get("customer_email") or "")
        customers.add(email)
        for it in o.get("items") or []:
            name = str(it.get("name") or "Product")
            qty = int(it.get("quantity") or 0)
            total_qty += qty
            total_cents += int(it.get("price_cents") or 0) * qty

            cur = by_product.setdefault(name, {"quantity": 0, "customers": set()})
            cur["quantity"] += qty
            cur["customers"].add(email)

    products = [
        {"name": name, "quantity": v["quantity"], "customers": len(v["customers"])}
        for name, v in by_product.items()
    ]
    products.sort(key=_by_quantity_then_name)

    return {
        "ordersCount": count,
        "customersCount": len(customers),
        "totalItemsQuantity": total_qty,
        "totalAmountCents": total_cents,
        "byProduct": products,
    }


def weekend_view(
    db: Session,
    week_start: date,
    location: str = ALL,
    status: str = "pending",
    day: str = "both",
    sort: str = "date",
) -> dict[str, Any]:
    if week_start.weekday() != SATURDAY:
        raise ApiError("BAD_QUERY", details=[{"field": "weekStart", "message": "must be a Saturday"}])

    sat = week_start
    sun = parse_ymd(add_days(week_start, 1))
    days = {"both": [sat, sun], "sat": [sat], "sun": [sun]}[day]

    q = _orders_query(location, status).where(Order.pickup_date.in_(days))
    if sort == "location":
        q = q.order_by(Order.pickup_location.asc(), Order.pickup_date.asc(), Order.created_at.asc(), Order.id.asc())
    else:
        q = q.order_by(Order.pickup_date.asc(), Order.created_at.asc(), Order.id.asc())

    rows = db.execute(q).scalars().all()
    orders = [dict(order_dict(o), items=[item_dict(it) for it in o.items]) for o in rows]

    summary = {"weekStart": sat.isoformat(), "weekEnd": sun.isoformat()}
    summary.update(summarize_weekend(orders))
    return {"orders": orders, "summary": summary}


# -------------------
# Accounting view ("stats")
# -------------------
def aggregate_stats(orders: Iterable[Order], annotations: dict[str, Customer]) -> dict[str, Any]:
    customers: dict[str, dict[str, Any]] = {}
    products: dict[str, dict[str, Any]] = {}
    order_ids = set()
    total_qty = 0
    total_cents = 0

    for o in orders:
        email = o.customer_email or ""
        pickup = o.pickup_date.isoformat()
        for it in o.items:
            qty = it.quantity
            amount = it.unit_price_cents_snapshot * qty
            name = it.product_name_snapshot or "Product"

            order_ids.add(o.id)
            total_qty += qty
            total_cents += amount

            c = customers.setdefault(
                email,
                {
                    "email": email,
                    "nameGuess": o.customer_name or "",
                    "orders": set(),
                    "totalItemsQuantity": 0,
                    "totalAmountCents": 0,
                    "lastPickupDate": None,
                    "byProduct": {},
                },
            )
            c["orders"].add(o.id)
            c["totalItemsQuantity"] += qty
            c["totalAmountCents"] += amount
            c["byProduct"][name] = c["byProduct"].get(name, 0) + qty
            if c["lastPickupDate"] is None or pickup > c["lastPickupDate"]:
                c["lastPickupDate"] = pickup

            p = products.setdefault(name, {"name": name, "quantity": 0, "amountCents": 0, "customers": set()})
            p["quantity"] += qty
            p["amountCents"] += amount
            p["customers"].add(email)

    customer_rows = []
    for c in customers.values():
        extra = annotations.get(c["email"])
        customer_rows.append(
            {
                "email": c["email"],
                "name": extra.name if extra else None,
                "phone": extra.phone if extra else None,
                "notes": extra.notes if extra else None,
                "nameGuess": c["nameGuess"],
                "ordersCount": len(c["orders"]),
                "totalItemsQuantity": c["totalItemsQuantity"],
                "totalAmountCents": c["totalAmountCents"],
                "lastPickupDate": c["lastPickupDate"],
                "byProduct": c["byProduct"],
            }
        )
    customer_rows.sort(key=lambda r: (-r["totalAmountCents"], -r["ordersCount"], r["email"].casefold()))

    product_rows = [
        {"name": p["name"], "quantity": p["quantity"], "amountCents": p["amountCents"], "customers": len(p["customers"])}
        for p in products.values()
    ]
    product_rows.sort(key=_by_quantity_then_name)

    return {
        "totals": {
            "ordersCount": len(order_ids),
            "customersCount": len(customer_rows),
            "totalItemsQuantity": total_qty,
            "totalAmountCents": total_cents,
        },
        "products": product_rows,
        "customers": customer_rows,
    }


def accounting_view(
    db: Session,
    date_from: date,
    date_to: date,
    location: str = ALL,
    status: str = "fulfilled",
) -> dict[str, Any]:
    if date_from > date_to:
        raise ApiError("BAD_QUERY", details=[{"field": "from", "message": "must not be after 'to'"}])

    q = (
        _orders_query(location, status)
        .where(Order.pickup_date.between(date_from, date_to))
        .order_by(Order.pickup_date.asc(), Order.created_at.asc(), Order.id.asc())
    )
    orders = db.execute(q).scalars().all()

    emails = {o.customer_email for o in orders}
    annotations: dict[str, Customer] = {}
    if emails:
        rows = db.execute(select(Customer).where(Customer.email.in_(emails))).scalars().all()
        annotations = {c.email: c for c in rows}

    out: dict[str, Any] = {
        "meta": {"from": date_from.isoformat(), "to": date_to.isoformat(), "location": location, "status": status}
    }
    out.update(aggregate_stats(orders, annotations))
    return out


_FORMULA_PREFIXES = ("=", "+", "-", "@", "\t", "\r")


def _cell(value: Any) -> Any:
    """Keep spreadsheet apps from evaluating customer text as a formula."""
    if isinstance(value, str) and value.startswith(_FORMULA_PREFIXES):
        return "'" + value
    return value


def stats_csv(stats: dict[str, Any]) -> str:
    """Spreadsheet export: one row per customer, one column per product."""
    product_cols = [p["name"] for p in stats["products"]]

    buf = io.StringIO()
    w = csv.writer(buf, lineterminator="\n")
    w.writerow(["Email", "Name", "Phone", "Orders", "Items", "Total", *[_cell(n) for n in product_cols]])
    for c in stats["customers"]:
        w.writerow(
            [
                _cell(c["email"]),
                _cell(c["name"] or c["nameGuess"] or ""),
                _cell(c["phone"] or ""),
                c["ordersCount"],
                c["totalItemsQuantity"],
                format_cents(c["totalAmountCents"]),
                *[c["byProduct"].get(name, 0) for name in product_cols],
            ]
        )
    return buf.getvalue()


# -------------------
# Customers directory
# -------------------
def list_customers(db: Session, q: str = "", limit: int = 50) -> list[dict[str, Any]]:
    limit = min(200, max(10, limit))
    needle = (q or "").strip().lower()

    rows = db.execute(
        select(
            Order.customer_email,
            func.max(Order.customer_name),
            func.count(Order.id),
            func.max(Order.pickup_date),
            Customer.phone,
        )
        .outerjoin(Customer, Customer.email == Order.customer_email)
        .group_by(Order.customer_email, Customer.phone)
        .order_by(func.max(Order.pickup_date).desc())
    ).all()

    out = []
    for email, name_guess, count, last_pickup, phone in rows:
        row = {
            "email": email or "",
            "name": name_guess or "",
            "phone": phone or None,
            "ordersCount": int(count or 0),
            "lastPickupDate": last_pickup.isoformat() if last_pickup else None,
        }
        if needle and not (
            needle in row["email"].lower() or needle in row["name"].lower() or needle in (row["phone"] or "")
        ):
            continue
        out.append(row)
    return out[:limit]


def customer_detail(db: Session, email: str) -> dict[str, Any]:
    cust = db.get(Customer, email)
    orders = (
        db.execute(
            select(Order)
            .options(selectinload(Order.items))
            .where(Order.customer_email == email)
            .order_by(Order.pickup_date.desc(), Order.created_at.desc(), Order.id.desc())
        )
        .scalars()
        .all()
    )
    return {
        "customer": {
            "email": email,
            "name": cust.name if cust else None,
            "phone": cust.phone if cust else None,
            "notes": cust.notes if cust else None,
            "nameGuess": orders[0].customer_name if orders else None,
        },
        "orders": [dict(order_dict(o), items=[item_dict(it) for it in o.items]) for o in orders],
    }


def upsert_customer(
    db: Session,
    email: str,
    name: str | None = None,
    phone: str | None = None,
    notes: str | None = None,
) -> Customer:
    cust = db.get(Customer, email)
    if cust is None:
        cust = Customer(email=email, name=name or None, phone=phone or None, notes=notes or None)
        db.add(cust)
    else:
        if name:
            cust.name = name
        # phone and notes are replaced as sent, including clearing them
        cust.phone = phone or None
        cust.notes = notes or None
        cust.updated_at = utcnow()
    db.commit()
    return cust
