# bakery/public.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Header

from .config import Settings
from .deps import get_app_settings, get_catalog, get_order_service
from .ordering.catalog import CatalogRepository, build_catalog
from .ordering.orders import OrderService
from .schemas import CreateOrderIn, PatchOrderIn

router = APIRouter(tags=["public"])


@router.get("/health")
def health():
    return {"ok": True}


@router.get("/products")
def list_products(catalog: CatalogRepository = Depends(get_catalog)):
    return {"ok": True, "products": catalog.list_public()}


@router.get("/catalog")
def grouped_catalog(
    catalog: CatalogRepository = Depends(get_catalog),
    settings: Settings = Depends(get_app_settings),
):
    products = catalog.list_public()
    return {"ok": True, "catalog": build_catalog(products, parse_legacy_names=settings.legacy_variant_names)}


@router.post("/orders")
def create_order(
    payload: CreateOrderIn,
    service: OrderService = Depends(get_order_service),
    origin: str | None = Header(default=None),
):
    created = service.create_order(payload, origin=origin)
    return {"ok": True, "publicCode": created.public_code, "editUrl": created.edit_url}


@router.get("/orders/{public_code}")
def read_order(
    public_code: str,
    token: str | None = None,
    service: OrderService = Depends(get_order_service),
):
    order = service.authorize(public_code, token)
    return {"ok": True, **service.read_order(order)}


@router.patch("/orders/{public_code}")
def patch_order(
    public_code: str,
    payload: PatchOrderIn,
    token: str | None = None,
    service: OrderService = Depends(get_order_service),
):
    order = service.authorize(public_code, token)
    service.patch_order(order, payload)
    return {"ok": True}


@router.post("/orders/{public_code}/cancel")
def cancel_order(
    public_code: str,
    token: str | None = None,
    service: OrderService = Depends(get_order_service),
):
    order = service.authorize(public_code, token)
    service.cancel_order(order)
    return {"ok": True}
