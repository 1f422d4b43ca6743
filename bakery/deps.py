# bakery/deps.py
from __future__ import annotations

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from .config import Settings
from .db import get_db
from .ordering.catalog import CatalogRepository
from .ordering.orders import OrderService


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_order_service(request: Request, db: Session = Depends(get_db)) -> OrderService:
    return OrderService(db, request.app.state.settings, clock=request.app.state.clock)


def get_catalog(request: Request, db: Session = Depends(get_db)) -> CatalogRepository:
    return CatalogRepository(db, upload_dir=request.app.state.settings.upload_dir)
