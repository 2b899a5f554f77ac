# Overview: Pytest coverage for the purchase and warehouse HTTP endpoints.

"""
Warehouse API Tests

Exercise the blueprints end to end through the Flask test client:
request parsing, status codes and the error body shape.
"""

from datetime import timedelta

from lotledger.time_utils import to_utc_z, utcnow


def _create_draft(client, product, qty=10, unit_cost_cents=100, **extra):
    body = {"items": [{"product_id": product.id, "qty": qty, "unit_cost_cents": unit_cost_cents}]}
    body.update(extra)
    return client.post("/api/warehouse/purchases", json=body)


class TestPurchaseEndpoints:

    def test_create_returns_draft(self, client, db_session, product):
        """POST creates a DRAFT purchase with its items."""
        resp = _create_draft(client, product, supplier="Acme")

        assert resp.status_code == 201
        data = resp.get_json()
        assert data["status"] == "DRAFT"
        assert data["supplier"] == "Acme"
        assert data["items"][0]["product"]["title"] == "Test Product"
        assert data["total_cost_cents"] == 1000

    def test_create_invalid_items(self, client, db_session, product):
        """Validation failures map to 400 with an error message."""
        resp = client.post("/api/warehouse/purchases", json={"items": []})
        assert resp.status_code == 400
        assert "error" in resp.get_json()

        resp = _create_draft(client, product, qty=0)
        assert resp.status_code == 400

    def test_get_missing(self, client, db_session):
        """Unknown purchase id maps to 404."""
        resp = client.get("/api/warehouse/purchases/999")
        assert resp.status_code == 404

    def test_patch_replaces_items(self, client, db_session, product):
        purchase_id = _create_draft(client, product).get_json()["id"]

        resp = client.patch(
            f"/api/warehouse/purchases/{purchase_id}",
            json={"items": [{"product_id": product.id, "qty": 3, "unit_cost_cents": 70}]},
        )

        assert resp.status_code == 200
        items = resp.get_json()["items"]
        assert [(i["qty"], i["unit_cost_cents"]) for i in items] == [(3, 70)]

    def test_post_then_post_again(self, client, db_session, product):
        """Posting returns counts; a second post is a 409 state error."""
        purchase_id = _create_draft(client, product).get_json()["id"]

        resp = client.post(f"/api/warehouse/purchases/{purchase_id}/post", json={})
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["status"] == "POSTED"
        assert data["lots_created"] == 1
        assert data["movements_created"] == 1
        assert data["posted_at"].endswith("Z")

        resp = client.post(f"/api/warehouse/purchases/{purchase_id}/post")
        assert resp.status_code == 409

    def test_post_update_cost_price_must_be_boolean(self, client, db_session, product):
        """A string flag is rejected and leaves the purchase a DRAFT."""
        purchase_id = _create_draft(client, product, unit_cost_cents=250).get_json()["id"]

        resp = client.post(f"/api/warehouse/purchases/{purchase_id}/post", json={"update_cost_price": "false"})
        assert resp.status_code == 400
        assert "boolean" in resp.get_json()["error"]
        assert client.get(f"/api/warehouse/purchases/{purchase_id}").get_json()["status"] == "DRAFT"

        resp = client.post(f"/api/warehouse/purchases/{purchase_id}/post", json={"update_cost_price": False})
        assert resp.status_code == 200
        db_session.refresh(product)
        assert product.cost_price_cents is None

    def test_cancel(self, client, db_session, product):
        purchase_id = _create_draft(client, product).get_json()["id"]

        resp = client.post(f"/api/warehouse/purchases/{purchase_id}/cancel")
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "CANCELED"

        resp = client.post(f"/api/warehouse/purchases/{purchase_id}/cancel")
        assert resp.status_code == 409

    def test_list_by_status(self, client, db_session, product):
        _create_draft(client, product)
        posted_id = _create_draft(client, product).get_json()["id"]
        client.post(f"/api/warehouse/purchases/{posted_id}/post")

        resp = client.get("/api/warehouse/purchases?status=POSTED")
        data = resp.get_json()
        assert resp.status_code == 200
        assert data["total"] == 1
        assert data["items"][0]["id"] == posted_id
        assert "items" not in data["items"][0]


class TestWarehouseEndpoints:

    def test_lots_and_stock(self, client, db_session, product, post_purchase):
        post_purchase([{"product_id": product.id, "qty": 10, "unit_cost_cents": 100}])

        resp = client.get(f"/api/warehouse/products/{product.id}/lots")
        data = resp.get_json()
        assert resp.status_code == 200
        assert data["stock_from_lots"] == 10
        assert data["inventory_value_cents"] == 1000

        resp = client.get("/api/warehouse/stock")
        [row] = resp.get_json()["items"]
        assert row["current_stock"] == 10

    def test_lots_unknown_product(self, client, db_session):
        assert client.get("/api/warehouse/products/9999/lots").status_code == 404

    def test_write_off_insufficient_stock(self, client, db_session, product, post_purchase):
        """Insufficient stock maps to 409 with requested/available details."""
        post_purchase([{"product_id": product.id, "qty": 2, "unit_cost_cents": 100}])

        resp = client.post("/api/warehouse/writeoffs", json={"product_id": product.id, "qty": 3})

        assert resp.status_code == 409
        assert resp.get_json()["details"] == {
            "product_id": product.id, "requested": 3, "available": 2,
        }

    def test_write_off_created(self, client, db_session, product, post_purchase):
        post_purchase([{"product_id": product.id, "qty": 5, "unit_cost_cents": 120}])

        resp = client.post(
            "/api/warehouse/writeoffs",
            json={"product_id": product.id, "qty": 2, "reason": "broken"},
        )

        assert resp.status_code == 201
        assert resp.get_json()["total_cost_cents"] == 240

    def test_adjust_and_reconcile(self, client, db_session, product):
        resp = client.post(
            "/api/warehouse/movements/adjust",
            json={"product_id": product.id, "quantity_delta": 3, "note": "recount"},
        )
        assert resp.status_code == 201
        assert resp.get_json()["type"] == "ADJUST"

        resp = client.get(f"/api/warehouse/reconciliation?product_id={product.id}")
        [row] = resp.get_json()["items"]
        assert row["uncosted_quantity"] == 3

    def test_adjust_requires_fields(self, client, db_session):
        resp = client.post("/api/warehouse/movements/adjust", json={"quantity_delta": 1})
        assert resp.status_code == 400

    def test_movements_bad_date(self, client, db_session):
        resp = client.get("/api/warehouse/movements?from=yesterday")
        assert resp.status_code == 400

    def test_fulfill_and_profit(self, client, db_session, product, post_purchase, make_order):
        post_purchase([{"product_id": product.id, "qty": 10, "unit_cost_cents": 100}])
        order = make_order([(product, 4, 250)])

        resp = client.post(f"/api/warehouse/orders/{order.id}/fulfill")
        assert resp.status_code == 200
        assert resp.get_json()["cogs_cents"] == 400

        now = utcnow()
        resp = client.get(
            "/api/warehouse/profit",
            query_string={
                "from": to_utc_z(now - timedelta(days=1)),
                "to": to_utc_z(now + timedelta(days=1)),
            },
        )
        data = resp.get_json()
        assert resp.status_code == 200
        assert data["revenue_cents"] == 1000
        assert data["cogs_cents"] == 400
        assert data["gross_profit_cents"] == 600

    def test_profit_requires_range(self, client, db_session):
        assert client.get("/api/warehouse/profit").status_code == 400


class TestHealth:

    def test_health_ok(self, client, db_session):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "healthy"
