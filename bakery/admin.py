# bakery/admin.py
from __future__ import annotations

from datetime import date
from typing import Literal

from fastapi import APIRouter, Depends, File, Query, UploadFile
from fastapi.responses import Response
from sqlalchemy.orm import Session

from .auth import SessionTokenAuth, check_admin_password, require_admin
from .config import Settings
from .db import get_db
from .deps import get_app_settings, get_catalog, get_order_service
from .errors import ApiError, Unauthorized
from .ordering import reports
from .ordering.catalog import CatalogRepository
from .ordering.orders import OrderService
from .schemas import AdminLoginIn, CustomerIn, ProductIn, ProductPatch, RescheduleIn, SetStatusIn
from .uploads import MAX_UPLOAD_BYTES, save_product_image

# login is the only admin route reachable without a credential
router = APIRouter(prefix="/admin", tags=["admin"])
protected = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])

StatusFilter = Literal["pending", "fulfilled", "canceled", "all"]


def _location_filter(location: str, settings: Settings) -> str:
    if location != reports.ALL and location not in settings.pickup_locations:
        raise ApiError("BAD_QUERY", details=[{"field": "location", "message": "unknown pickup location"}])
    return location


@router.post("/login")
def login(payload: AdminLoginIn, settings: Settings = Depends(get_app_settings)):
    if not check_admin_password(settings, payload.password):
        raise Unauthorized()
    session_auth = SessionTokenAuth(settings.jwt_secret, settings.jwt_alg, settings.jwt_expire_minutes)
    return {"ok": True, "token": session_auth.create_token()}


# -------------------
# Products
# -------------------
@protected.get("/products")
def admin_products(catalog: CatalogRepository = Depends(get_catalog)):
    return {"ok": True, "products": catalog.list_admin()}


@protected.post("/products")
def create_product(payload: ProductIn, catalog: CatalogRepository = Depends(get_catalog)):
    p = catalog.create(payload)
    return {"ok": True, "id": p.id}


@protected.patch("/products/{product_id}")
def update_product(product_id: int, payload: ProductPatch, catalog: CatalogRepository = Depends(get_catalog)):
    catalog.update(product_id, payload)
    return {"ok": True}


@protected.delete("/products/{product_id}")
def delete_product(product_id: int, catalog: CatalogRepository = Depends(get_catalog)):
    catalog.delete(product_id)
    return {"ok": True}


@protected.post("/upload")
async def upload_image(
    image: UploadFile | None = File(default=None),
    settings: Settings = Depends(get_app_settings),
):
    if image is None:
        raise ApiError("MISSING_IMAGE")
    data = await image.read(MAX_UPLOAD_BYTES + 1)
    image_url = save_product_image(data, image.content_type or "", settings.upload_dir)
    return {"ok": True, "image_url": image_url}


# -------------------
# Orders
# -------------------
@protected.get("/orders")
def weekend_orders(
    week_start: date = Query(alias="weekStart"),
    location: str = "all",
    status: StatusFilter = "pending",
    sort: Literal["date", "location"] = "date",
    day: Literal["both", "sat", "sun"] = "both",
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    view = reports.weekend_view(
        db,
        week_start,
        location=_location_filter(location, settings),
        status=status,
        day=day,
        sort=sort,
    )
    return {"ok": True, **view}


@protected.post("/orders/{order_id}/status")
def set_order_status(order_id: int, payload: SetStatusIn, service: OrderService = Depends(get_order_service)):
    service.set_status(order_id, payload.status)
    return {"ok": True}


@protected.patch("/orders/{order_id}")
def reschedule_order(order_id: int, payload: RescheduleIn, service: OrderService = Depends(get_order_service)):
    service.reschedule(order_id, payload.pickup_date, payload.pickup_location)
    return {"ok": True}


# -------------------
# Customers
# -------------------
@protected.patch("/customers")
def upsert_customer(payload: CustomerIn, db: Session = Depends(get_db)):
    reports.upsert_customer(db, payload.email, name=payload.name, phone=payload.phone, notes=payload.notes)
    return {"ok": True}


@protected.get("/customers")
def list_customers(q: str = "", limit: int = 50, db: Session = Depends(get_db)):
    return {"ok": True, "customers": reports.list_customers(db, q=q, limit=limit)}


@protected.get("/customer")
def customer_detail(email: str = "", db: Session = Depends(get_db)):
    email = email.strip()
    if not email:
        raise ApiError("MISSING_EMAIL")
    return {"ok": True, **reports.customer_detail(db, email)}


# -------------------
# Stats
# -------------------
def _stats(db: Session, settings: Settings, date_from: date, date_to: date, location: str, status: str):
    return reports.accounting_view(
        db, date_from, date_to, location=_location_filter(location, settings), status=status
    )


@protected.get("/stats")
def stats(
    date_from: date = Query(alias="from"),
    date_to: date = Query(alias="to"),
    location: str = "all",
    status: StatusFilter = "fulfilled",
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    return {"ok": True, **_stats(db, settings, date_from, date_to, location, status)}


@protected.get("/stats.csv")
def stats_csv(
    date_from: date = Query(alias="from"),
    date_to: date = Query(alias="to"),
    location: str = "all",
    status: StatusFilter = "fulfilled",
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    data = _stats(db, settings, date_from, date_to, location, status)
    filename = f"bakery_stats_{date_from.isoformat()}_{date_to.isoformat()}.csv"
    return Response(
        content=reports.stats_csv(data),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
