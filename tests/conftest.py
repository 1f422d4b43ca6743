from __future__ import annotations

from datetime import datetime
from urllib.parse import parse_qs, urlparse
from zoneinfo import ZoneInfo

import pytest
from fastapi.testclient import TestClient

from bakery.config import Settings
from bakery.main import create_app
from bakery.models import Product

PARIS = ZoneInfo("Europe/Paris")
# Monday of the week before the 2025-03-08/09 weekend
MONDAY = datetime(2025, 3, 3, 12, 0, tzinfo=PARIS)
SATURDAY = "2025-03-08"
SUNDAY = "2025-03-09"

ADMIN = {"x-admin-password": "secret"}


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock():
    return FakeClock(MONDAY)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'test.sqlite'}",
        timezone="Europe/Paris",
        pickup_locations=["Lombard", "Village X"],
        public_base_url="http://shop.test",
        cors_origins=["http://localhost:5174"],
        admin_password="secret",
        admin_key="",
        jwt_secret="test-secret",
        upload_dir=str(tmp_path / "uploads"),
        smtp_host="",
        seed_catalog=False,
        legacy_variant_names=False,
        api_prefix="",
    )


@pytest.fixture
def app(settings, clock):
    return create_app(settings, clock=clock)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def db(app):
    session = app.state.session_factory()
    yield session
    session.close()


@pytest.fixture
def products(db):
    rows = [
        Product(id=1, name="Pain (600g)", description="Pain artisanal.", price_cents=280, weight_grams=600,
                variant_group="Pain", variant_label="600g", variant_sort=10, is_available=True),
        Product(id=2, name="Galette crème", description="Galette.", price_cents=600, is_available=True),
        Product(id=3, name="Brioche ronde", description="Brioche.", price_cents=700, is_available=False,
                unavailable_reason="Sold out"),
    ]
    db.add_all(rows)
    db.commit()
    return {p.id: p for p in rows}


def order_body(**overrides):
    body = {
        "customerName": "Alice Martin",
        "customerEmail": "alice@example.com",
        "customerPhone": "0601020304",
        "pickupDate": SATURDAY,
        "pickupLocation": "Lombard",
        "items": [{"productId": 1, "quantity": 2}, {"productId": 2, "quantity": 1}],
    }
    body.update(overrides)
    return body


def token_from(edit_url: str) -> str:
    return parse_qs(urlparse(edit_url).query)["token"][0]


@pytest.fixture
def place_order(client, products):
    def _place(**overrides):
        res = client.post("/orders", json=order_body(**overrides))
        assert res.status_code == 200, res.json()
        data = res.json()
        return data["publicCode"], token_from(data["editUrl"])

    return _place
