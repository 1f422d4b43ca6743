import re
from datetime import datetime, timedelta

from sqlalchemy import select

from bakery.models import Order, Product
from tests.conftest import PARIS, SATURDAY, SUNDAY, order_body, token_from

CODE_RE = re.compile(r"^[ABCDEFGHJKLMNPQRSTUVWXYZ23456789]{6}$")


def _order(db, code):
    db.expire_all()
    return db.execute(select(Order).where(Order.public_code == code)).scalar_one()


def test_health(client):
    assert client.get("/health").json() == {"ok": True}


def test_products_include_price_per_kg(client, products):
    res = client.get("/products")
    assert res.status_code == 200
    rows = {p["id"]: p for p in res.json()["products"]}
    # 280 cents for 600 g -> 466.67 -> 467
    assert rows[1]["price_per_kg_cents"] == 467
    assert rows[2]["price_per_kg_cents"] is None
    assert rows[3]["is_available"] is False
    assert rows[3]["unavailable_reason"] == "Sold out"


def test_catalog_groups_variants(client, products):
    cards = client.get("/catalog").json()["catalog"]
    kinds = {c["name"]: c["kind"] for c in cards}
    assert kinds["Pain"] == "group"
    assert kinds["Galette crème"] == "single"


def test_create_order_snapshots_items(client, db, products):
    res = client.post("/orders", json=order_body())
    assert res.status_code == 200
    data = res.json()
    assert data["ok"] is True
    assert CODE_RE.match(data["publicCode"])
    assert data["editUrl"].startswith(f"http://shop.test/edit/{data['publicCode']}?token=")

    order = _order(db, data["publicCode"])
    assert order.status == "pending"
    assert order.pickup_date.isoformat() == SATURDAY
    assert order.total_cents == 2 * 280 + 600
    assert [(it.product_name_snapshot, it.unit_price_cents_snapshot, it.quantity) for it in order.items] == [
        ("Pain (600g)", 280, 2),
        ("Galette crème", 600, 1),
    ]


def test_edit_token_stored_hashed_with_30_day_expiry(client, db, products):
    data = client.post("/orders", json=order_body()).json()
    token = token_from(data["editUrl"])
    order = _order(db, data["publicCode"])

    assert order.edit_token_hash != token
    assert len(order.edit_token_hash) == 64
    created = datetime(2025, 3, 3, 11, 0)  # Monday noon Paris, in UTC
    assert order.edit_token_expires_at == created + timedelta(days=30)


def test_edit_url_uses_known_origin(client, products):
    res = client.post("/orders", json=order_body(), headers={"origin": "http://localhost:5174"})
    assert res.json()["editUrl"].startswith("http://localhost:5174/edit/")

    res = client.post("/orders", json=order_body(), headers={"origin": "http://evil.test"})
    assert res.json()["editUrl"].startswith("http://shop.test/edit/")


def test_later_price_change_does_not_move_order_total(client, db, place_order):
    code, token = place_order()

    db.get(Product, 1).price_cents = 999
    db.commit()

    items = client.get(f"/orders/{code}", params={"token": token}).json()["items"]
    assert sum(it["price_cents"] * it["quantity"] for it in items) == 1160
    assert _order(db, code).total_cents == 1160


def test_create_rejects_weekday(client, products):
    res = client.post("/orders", json=order_body(pickupDate="2025-03-07"))
    assert res.status_code == 400
    assert res.json() == {"ok": False, "error": "PICKUP_NOT_WEEKEND"}


def test_create_rejects_after_cutoff(client, clock, products):
    clock.now = datetime(2025, 3, 8, 0, 0, tzinfo=PARIS)
    res = client.post("/orders", json=order_body(pickupDate=SUNDAY))
    assert res.status_code == 400
    assert res.json()["error"] == "ORDER_CLOSED_FOR_WEEKEND"


def test_create_accepts_one_millisecond_before_cutoff(client, clock, products):
    clock.now = datetime(2025, 3, 8, 0, 0, tzinfo=PARIS) - timedelta(milliseconds=1)
    assert client.post("/orders", json=order_body()).status_code == 200


def test_create_rejects_unknown_product(client, products):
    res = client.post("/orders", json=order_body(items=[{"productId": 42, "quantity": 1}]))
    assert res.status_code == 400
    assert res.json()["error"] == "UNKNOWN_PRODUCT"


def test_create_rejects_unavailable_product(client, products):
    res = client.post("/orders", json=order_body(items=[{"productId": 3, "quantity": 1}]))
    assert res.status_code == 400
    assert res.json() == {"ok": False, "error": "PRODUCT_UNAVAILABLE", "productId": 3}


def test_create_validates_body(client, products):
    res = client.post("/orders", json=order_body(customerEmail="not-an-email", items=[]))
    assert res.status_code == 400
    body = res.json()
    assert body["error"] == "BAD_BODY"
    fields = {d["field"] for d in body["details"]}
    assert "customerEmail" in fields
    assert "items" in fields


def test_create_rejects_unknown_location(client, products):
    res = client.post("/orders", json=order_body(pickupLocation="Moon"))
    assert res.status_code == 400
    assert res.json()["error"] == "BAD_BODY"


def test_create_failure_leaves_no_rows(client, db, products):
    client.post("/orders", json=order_body(items=[{"productId": 1, "quantity": 1}, {"productId": 3, "quantity": 1}]))
    db.expire_all()
    assert db.execute(select(Order)).first() is None


def test_read_order(client, place_order):
    code, token = place_order(pickupDate=SUNDAY)
    res = client.get(f"/orders/{code.lower()}", params={"token": token})
    assert res.status_code == 200
    body = res.json()
    assert body["order"]["public_code"] == code
    assert body["order"]["pickup_date"] == SUNDAY
    assert body["edit"] == {"locked": False, "cutoff_iso": "2025-03-07T23:00:00.000Z", "canCancel": True}
    assert len(body["items"]) == 2


def test_read_requires_token(client, place_order):
    code, _ = place_order()
    res = client.get(f"/orders/{code}")
    assert res.status_code == 401
    assert res.json()["error"] == "MISSING_TOKEN"


def test_read_unknown_code(client, products):
    res = client.get("/orders/ZZZZZZ", params={"token": "whatever"})
    assert res.status_code == 401
    assert res.json()["error"] == "NOT_FOUND"


def test_token_only_authorizes_its_own_order(client, place_order):
    code_a, token_a = place_order()
    code_b, token_b = place_order(customerEmail="bob@example.com")

    assert client.get(f"/orders/{code_a}", params={"token": token_a}).status_code == 200
    res = client.get(f"/orders/{code_b}", params={"token": token_a})
    assert res.status_code == 401
    assert res.json()["error"] == "BAD_TOKEN"


def test_expired_token(client, db, place_order):
    code, token = place_order()
    order = _order(db, code)
    order.edit_token_expires_at = datetime(2025, 3, 1)
    db.commit()

    res = client.get(f"/orders/{code}", params={"token": token})
    assert res.status_code == 401
    assert res.json() == {"ok": False, "error": "TOKEN_EXPIRED"}


def test_read_after_cutoff_is_locked(client, clock, place_order):
    code, token = place_order()
    clock.now = datetime(2025, 3, 8, 9, 0, tzinfo=PARIS)
    edit = client.get(f"/orders/{code}", params={"token": token}).json()["edit"]
    assert edit["locked"] is True
    assert edit["canCancel"] is False


def test_patch_replaces_items_and_contact(client, db, place_order):
    code, token = place_order()
    res = client.patch(
        f"/orders/{code}",
        params={"token": token},
        json={
            "customerPhone": "0699999999",
            "pickupLocation": "Village X",
            "pickupDate": SUNDAY,
            "items": [
                {"productId": 2, "quantity": 3},
                {"productId": 1, "quantity": 0},
                {"productId": 77, "quantity": 1},
            ],
        },
    )
    assert res.status_code == 200, res.json()

    order = _order(db, code)
    assert order.customer_phone == "0699999999"
    assert order.customer_name == "Alice Martin"
    assert order.pickup_location == "Village X"
    assert order.pickup_date.isoformat() == SUNDAY
    assert [(it.product_id, it.quantity) for it in order.items] == [(2, 3)]


def test_patch_resnapshots_current_price(client, db, place_order):
    code, token = place_order()
    db.get(Product, 2).price_cents = 650
    db.commit()

    client.patch(f"/orders/{code}", params={"token": token}, json={"items": [{"productId": 2, "quantity": 1}]})
    assert _order(db, code).total_cents == 650


def test_patch_rejects_weekday(client, place_order):
    code, token = place_order()
    res = client.patch(f"/orders/{code}", params={"token": token}, json={"pickupDate": "2025-03-12"})
    assert res.status_code == 400
    assert res.json()["error"] == "PICKUP_NOT_WEEKEND"


def test_patch_rejects_closed_weekend(client, clock, place_order):
    code, token = place_order(pickupDate="2025-03-15")
    clock.now = datetime(2025, 3, 8, 10, 0, tzinfo=PARIS)
    res = client.patch(f"/orders/{code}", params={"token": token}, json={"pickupDate": SUNDAY})
    assert res.status_code == 400
    assert res.json()["error"] == "ORDER_CLOSED_FOR_WEEKEND"


def test_patch_and_cancel_locked_after_cutoff(client, clock, place_order):
    code, token = place_order()
    clock.now = datetime(2025, 3, 8, 0, 0, tzinfo=PARIS)

    res = client.patch(f"/orders/{code}", params={"token": token}, json={"customerPhone": "0611111111"})
    assert res.status_code == 400
    assert res.json()["error"] == "ORDER_LOCKED"

    res = client.post(f"/orders/{code}/cancel", params={"token": token})
    assert res.status_code == 400
    assert res.json()["error"] == "ORDER_LOCKED"


def test_cancel_is_idempotent(client, db, place_order):
    code, token = place_order()
    assert client.post(f"/orders/{code}/cancel", params={"token": token}).json() == {"ok": True}
    assert client.post(f"/orders/{code}/cancel", params={"token": token}).json() == {"ok": True}
    assert _order(db, code).status == "canceled"


def test_patch_canceled_order_is_locked(client, place_order):
    code, token = place_order()
    client.post(f"/orders/{code}/cancel", params={"token": token})
    res = client.patch(f"/orders/{code}", params={"token": token}, json={"customerPhone": "0611111111"})
    assert res.status_code == 400
    assert res.json()["error"] == "ORDER_LOCKED"


def test_cancel_fulfilled_order_is_refused(client, db, place_order):
    code, token = place_order()
    order = _order(db, code)
    order.status = "fulfilled"
    db.commit()

    res = client.post(f"/orders/{code}/cancel", params={"token": token})
    assert res.status_code == 400
    assert res.json()["error"] == "ORDER_LOCKED"
    assert _order(db, code).status == "fulfilled"
