# bakery/ordering/catalog.py
from __future__ import annotations

import logging
import re
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..errors import ApiError, NotFound
from ..models import Product, utcnow
from ..schemas import ProductIn, ProductPatch
from ..uploads import delete_uploaded_file

logger = logging.getLogger(__name__)

DEFAULT_UNAVAILABLE_REASON = "Unavailable"


def price_per_kg_cents(price_cents: int, weight_grams: int | None) -> int | None:
    if not weight_grams or weight_grams <= 0:
        return None
    # half up, like SQL ROUND
    return (price_cents * 1000 * 2 + weight_grams) // (weight_grams * 2)


def public_product(p: Product) -> dict[str, Any]:
    return {
        "id": p.id,
        "name": p.name,
        "description": p.description or "",
        "price_cents": p.price_cents,
        "image_url": p.image_url or "",
        "weight_grams": p.weight_grams,
        "price_per_kg_cents": price_per_kg_cents(p.price_cents, p.weight_grams),
        "variant_group": p.variant_group,
        "variant_label": p.variant_label,
        "variant_sort": p.variant_sort,
        "is_available": bool(p.is_available),
        "unavailable_reason": p.unavailable_reason,
    }


def admin_product(p: Product) -> dict[str, Any]:
    out = public_product(p)
    out["created_at"] = p.created_at.isoformat() if p.created_at else None
    out["updated_at"] = p.updated_at.isoformat() if p.updated_at else None
    return out


def _reason_for(is_available: bool, reason: str | None) -> str | None:
    if is_available:
        return None
    return (reason or "").strip() or DEFAULT_UNAVAILABLE_REASON


class CatalogRepository:
    def __init__(self, db: Session, upload_dir: str | None = None) -> None:
        self.db = db
        self.upload_dir = upload_dir

    def get(self, product_id: int) -> Product:
        p = self.db.get(Product, product_id)
        if p is None:
            raise NotFound()
        return p

    def by_ids(self, ids: list[int]) -> dict[int, Product]:
        if not ids:
            return {}
        rows = self.db.execute(select(Product).where(Product.id.in_(set(ids)))).scalars().all()
        return {p.id: p for p in rows}

    def list_public(self) -> list[dict[str, Any]]:
        rows = self.db.execute(select(Product).order_by(Product.id.asc())).scalars().all()
        return [public_product(p) for p in rows]

    def list_admin(self) -> list[dict[str, Any]]:
        rows = (
            self.db.execute(
                select(Product).order_by(
                    func.coalesce(Product.variant_group, "").asc(),
                    func.coalesce(Product.variant_sort, 0).asc(),
                    Product.id.desc(),
                )
            )
            .scalars()
            .all()
        )
        return [admin_product(p) for p in rows]

    def create(self, data: ProductIn) -> Product:
        p = Product(
            name=data.name,
            description=data.description,
            price_cents=data.price_cents,
            image_url=data.image_url,
            weight_grams=data.weight_grams,
            variant_group=data.variant_group,
            variant_label=data.variant_label,
            variant_sort=data.variant_sort,
            is_available=data.is_available,
            unavailable_reason=_reason_for(data.is_available, data.unavailable_reason),
        )
        self.db.add(p)
        self.db.commit()
        logger.info("Product %s created (%s)", p.id, p.name)
        return p

    def update(self, product_id: int, data: ProductPatch) -> Product:
        p = self.get(product_id)
        sent = data.model_fields_set

        # required columns: null means "keep"
        for field in ("name", "description", "price_cents", "image_url"):
            value = getattr(data, field)
            if field in sent and value is not None:
                setattr(p, field, value)

        # optional columns: explicit null clears
        for field in ("weight_grams", "variant_group", "variant_label", "variant_sort"):
            if field in sent:
                setattr(p, field, getattr(data, field))

        if p.variant_group and not p.variant_label:
            self.db.rollback()
            raise ApiError(
                "BAD_BODY",
                details=[{"field": "variant_label", "message": "required when variant_group is set"}],
            )

        if "is_available" in sent and data.is_available is not None:
            p.is_available = data.is_available
        reason = data.unavailable_reason if "unavailable_reason" in sent else p.unavailable_reason
        p.unavailable_reason = _reason_for(bool(p.is_available), reason)
        p.updated_at = utcnow()

        self.db.commit()
        return p

    def delete(self, product_id: int) -> None:
        p = self.db.get(Product, product_id)
        if p is None:
            return
        image_url = p.image_url
        self.db.delete(p)
        self.db.commit()
        if self.upload_dir:
            delete_uploaded_file(image_url, self.upload_dir)
        logger.info("Product %s deleted", product_id)


# -------------------
# Grouped catalog (display)
# -------------------
_PAREN_NAME_RE = re.compile(r"^(.*?)\s*\(([^)]+)\)\s*$")


def parse_paren_name(name: str) -> tuple[str | None, str | None]:
    """Legacy "Pain (600g)" -> ("Pain", "600g"). Only used for rows without explicit variant columns."""
    m = _PAREN_NAME_RE.match((name or "").strip())
    if not m:
        return None, None
    base = m.group(1).strip()
    opt = m.group(2).strip()
    if not base:
        return None, None
    return base, opt or None


def _explicit_group(p: dict[str, Any]) -> str | None:
    g = p.get("variant_group")
    return g.strip() if isinstance(g, str) and g.strip() else None


def group_name_of(p: dict[str, Any], parse_legacy_names: bool = False) -> str | None:
    g = _explicit_group(p)
    if g or not parse_legacy_names:
        return g
    return parse_paren_name(p.get("name", ""))[0]


def option_label_of(p: dict[str, Any], parse_legacy_names: bool = False) -> str:
    label = p.get("variant_label")
    if isinstance(label, str) and label.strip():
        return label.strip()
    if parse_legacy_names:
        opt = parse_paren_name(p.get("name", ""))[1]
        if opt:
            return opt
    if p.get("weight_grams"):
        return f"{p['weight_grams']}g"
    return p.get("name", "")


def _option_key(p: dict[str, Any]):
    sort = p.get("variant_sort")
    if sort is None:
        sort = p.get("weight_grams") or 0
    return (sort, p.get("price_cents", 0), p.get("id", 0))


def _first_non_blank(options: list[dict[str, Any]], field: str) -> str:
    for o in options:
        v = str(o.get(field) or "").strip()
        if v:
            return v
    return str(options[0].get(field) or "") if options else ""


def build_catalog(products: list[dict[str, Any]], parse_legacy_names: bool = False) -> list[dict[str, Any]]:
    groups: dict[str, dict[str, Any]] = {}
    singles: list[dict[str, Any]] = []

    for p in products:
        key = group_name_of(p, parse_legacy_names)
        if not key:
            singles.append(p)
            continue
        g = groups.setdefault(key, {"explicit": False, "items": []})
        g["explicit"] = g["explicit"] or _explicit_group(p) is not None
        g["items"].append(p)

    # a group that only exists because of name parsing and has one member stays a single card
    for key in list(groups):
        g = groups[key]
        if len(g["items"]) <= 1 and not g["explicit"]:
            singles.extend(g["items"])
            del groups[key]

    cards: list[dict[str, Any]] = []
    for key, g in groups.items():
        options = sorted(g["items"], key=_option_key)
        cards.append(
            {
                "kind": "group",
                "name": key,
                "image_url": _first_non_blank(options, "image_url"),
                "description": _first_non_blank(options, "description"),
                "options": [
                    dict(o, option_label=option_label_of(o, parse_legacy_names)) for o in options
                ],
            }
        )
    for p in singles:
        cards.append({"kind": "single", "name": p.get("name", ""), "product": p})

    def _card_key(c: dict[str, Any]):
        first = c["options"][0] if c["kind"] == "group" else c["product"]
        return (c["name"].casefold(), first.get("id", 0))

    cards.sort(key=_card_key)
    return cards
