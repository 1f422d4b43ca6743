# bakery/ordering/cart.py
from __future__ import annotations

from typing import Iterable

from ..models import OrderItem


def format_cents(cents: int) -> str:
    sign = "-" if cents < 0 else ""
    cents = abs(int(cents))
    return f"{sign}{cents // 100}.{cents % 100:02d}"


def cart_total(items: Iterable[OrderItem]) -> int:
    return sum(it.unit_price_cents_snapshot * it.quantity for it in items)


def build_summary(items: list[OrderItem], currency_symbol: str = "€") -> tuple[str, int]:
    if not items:
        return ("Your order is empty.", 0)

    lines: list[str] = []
    for i, it in enumerate(items, start=1):
        lt = it.unit_price_cents_snapshot * it.quantity
        lines.append(f"{i}. x{it.quantity} {it.product_name_snapshot} = {format_cents(lt)} {currency_symbol}")

    total = cart_total(items)
    return ("Order summary:\n" + "\n".join(lines) + f"\n\nTotal: {format_cents(total)} {currency_symbol}", total)
