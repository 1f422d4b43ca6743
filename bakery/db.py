# bakery/db.py
from __future__ import annotations

import logging
from typing import Any, Iterator

from fastapi import Request
from sqlalchemy import create_engine, event, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

Base = declarative_base()


def create_db_engine(database_url: str) -> Engine:
    kwargs: dict[str, Any] = {}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            # one shared connection, otherwise every session sees an empty db
            kwargs["poolclass"] = StaticPool

    engine = create_engine(database_url, **kwargs)

    if database_url.startswith("sqlite"):

        @event.listens_for(engine, "connect")
        def _sqlite_pragmas(dbapi_conn, _record):
            cur = dbapi_conn.cursor()
            cur.execute("PRAGMA foreign_keys=ON")
            cur.close()

    return engine


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def get_db(request: Request) -> Iterator[Session]:
    """One session per request, taken from the factory the app was built with."""
    db: Session = request.app.state.session_factory()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db(engine: Engine, seed: bool = True) -> None:
    from . import models  # noqa: F401  (register tables)

    Base.metadata.create_all(bind=engine)
    if seed:
        with make_session_factory(engine)() as db:
            seed_catalog(db)


# -------------------
# Seed menu (bread)
# -------------------
_BREAD_IMG = "https://source.unsplash.com/800x600/?bread"
_GRAIN_IMG = "https://source.unsplash.com/800x600/?whole-grain-bread"
_BRIOCHE_IMG = "https://source.unsplash.com/800x600/?brioche"
_CAKE_IMG = "https://source.unsplash.com/800x600/?cake"

SEED_PRODUCTS: list[dict[str, Any]] = [
    dict(name="Pain (600g)", description="Pain artisanal.", weight_grams=600, price_cents=280,
         image_url=_BREAD_IMG, variant_group="Pain", variant_label="600g", variant_sort=10),
    dict(name="Pain (800g)", description="Pain artisanal.", weight_grams=800, price_cents=350,
         image_url=_BREAD_IMG, variant_group="Pain", variant_label="800g", variant_sort=20),
    dict(name="Pain (1000g)", description="Pain artisanal.", weight_grams=1000, price_cents=420,
         image_url=_BREAD_IMG, variant_group="Pain", variant_label="1000g", variant_sort=30),
    dict(name="Miche (1000g)", description="Miche artisanale.", weight_grams=1000, price_cents=420,
         image_url=_BREAD_IMG, variant_group="Miche", variant_label="1000g", variant_sort=10),
    dict(name="Couronne (600g)", description="Couronne artisanale.", weight_grams=600, price_cents=300,
         image_url=_BREAD_IMG, variant_group="Couronne", variant_label="600g", variant_sort=10),
    dict(name="Tonic Céréales (600g)", description="Pain céréales.", weight_grams=600, price_cents=350,
         image_url=_GRAIN_IMG, variant_group="Tonic Céréales", variant_label="600g", variant_sort=10),
    dict(name="Tonic Céréales (1000g)", description="Pain céréales.", weight_grams=1000, price_cents=550,
         image_url=_GRAIN_IMG, variant_group="Tonic Céréales", variant_label="1000g", variant_sort=20),
    dict(name="Brioche Nanterre (petite)", description="Brioche.", price_cents=600,
         image_url=_BRIOCHE_IMG, variant_group="Brioche Nanterre", variant_label="petite", variant_sort=10),
    dict(name="Brioche Nanterre (grande)", description="Brioche.", price_cents=700,
         image_url=_BRIOCHE_IMG, variant_group="Brioche Nanterre", variant_label="grande", variant_sort=20),
    dict(name="Galette sèche", description="Galette.", price_cents=700, image_url=_CAKE_IMG),
    dict(name="Galette crème", description="Galette.", price_cents=800, image_url=_CAKE_IMG),
    dict(name="Brioche ronde", description="Brioche.", price_cents=700, image_url=_BRIOCHE_IMG),
    dict(name="Galette pralines", description="Galette.", price_cents=900, image_url=_CAKE_IMG),
]


def seed_catalog(db: Session) -> int:
    """Fill an empty products table with the bakery's standard menu."""
    from .models import Product

    if db.execute(select(Product.id).limit(1)).first() is not None:
        return 0

    for row in SEED_PRODUCTS:
        db.add(Product(is_available=True, **row))
    db.commit()
    logger.info("Seeded %d products", len(SEED_PRODUCTS))
    return len(SEED_PRODUCTS)
