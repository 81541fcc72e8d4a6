"""
HTTP API tests

Drive the blueprints through the Flask test client and check status codes
and JSON bodies:
- Products: create with opening stock, no stock edits afterwards
- Sales: create / approve / reject, error mapping
- Commissions: rules, assignment, ledger, mark-paid, summaries
- Reports and health
"""

from vendorpro.models import Commission


def _create_sale(client, shop, product, quantity=1, price=10000, salesman=None):
    body = {
        "shop_id": shop.id,
        "items": [{"product_id": product.id, "quantity": quantity, "sold_at_cents": price}],
    }
    if salesman is not None:
        body["salesman_id"] = salesman.id
    return client.post("/api/sales", json=body)


class TestProductsApi:
    def test_create_records_opening_stock(self, client, db_session, shop):
        """POST stores the product and one OPENING movement."""
        resp = client.post("/api/products", json={
            "shop_id": shop.id,
            "name": "Earbuds",
            "base_price_cents": 1500,
            "selling_price_cents": 2500,
            "stock_quantity": 12,
        })
        assert resp.status_code == 201
        product_id = resp.get_json()["product"]["id"]

        resp = client.get(f"/api/products/{product_id}/movements")
        data = resp.get_json()
        assert data["stock_quantity"] == 12
        assert [m["type"] for m in data["items"]] == ["OPENING"]

    def test_stock_is_not_patchable(self, client, db_session, phone):
        """stock_quantity is not in the update allowlist."""
        resp = client.patch(f"/api/products/{phone.id}", json={"stock_quantity": 500})
        assert resp.status_code == 400

    def test_patch_price(self, client, db_session, phone):
        resp = client.patch(f"/api/products/{phone.id}", json={"selling_price_cents": 11000})
        assert resp.status_code == 200
        assert resp.get_json()["product"]["selling_price_cents"] == 11000

    def test_list_requires_shop(self, client, db_session):
        assert client.get("/api/products").status_code == 400

    def test_list_paginated(self, client, db_session, shop, phone, charger):
        resp = client.get(f"/api/products?shop_id={shop.id}&page=1&per_page=1")
        data = resp.get_json()
        assert data["count"] == 1
        assert data["pagination"]["total"] == 2
        assert data["pagination"]["has_next"] is True

    def test_missing_product(self, client, db_session):
        assert client.get("/api/products/99999").status_code == 404


class TestSalesApi:
    def test_create_and_read(self, client, db_session, shop, salesman, phone):
        resp = _create_sale(client, shop, phone, quantity=2, salesman=salesman)
        assert resp.status_code == 201
        sale = resp.get_json()["sale"]
        assert sale["status"] == "pending"
        assert sale["total_amount_cents"] == 20000
        assert sale["items"][0]["product_name"] == "Phone"

        resp = client.get(f"/api/sales/{sale['id']}")
        assert resp.status_code == 200
        assert "commission" not in resp.get_json()

    def test_owner_sale_omits_salesman(self, client, db_session, shop, phone):
        resp = _create_sale(client, shop, phone)
        assert resp.status_code == 201
        assert resp.get_json()["sale"]["salesman_id"] is None

    def test_insufficient_stock_is_conflict(self, client, db_session, shop, charger):
        resp = _create_sale(client, shop, charger, quantity=4, price=2000)
        assert resp.status_code == 409
        details = resp.get_json()["details"]
        assert details["product_id"] == charger.id
        assert details["requested_quantity"] == 4

    def test_invalid_items(self, client, db_session, shop):
        resp = client.post("/api/sales", json={"shop_id": shop.id, "items": []})
        assert resp.status_code == 400

        resp = client.post("/api/sales", json={
            "shop_id": shop.id,
            "items": [{"product_id": 1, "quantity": 0, "sold_at_cents": 100}],
        })
        assert resp.status_code == 400
        assert resp.get_json()["details"]["index"] == 0

    def test_approve_returns_commission(self, client, db_session, shop, salesman, phone, assigned_ten_percent):
        sale_id = _create_sale(client, shop, phone, quantity=2, salesman=salesman).get_json()["sale"]["id"]

        resp = client.post(f"/api/sales/{sale_id}/approve")
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["sale"]["status"] == "approved"
        assert data["commission"]["amount_cents"] == 2000

        resp = client.post(f"/api/sales/{sale_id}/approve")
        assert resp.status_code == 409

    def test_reject_with_reason(self, client, db_session, shop, phone):
        sale_id = _create_sale(client, shop, phone, quantity=3).get_json()["sale"]["id"]

        resp = client.post(f"/api/sales/{sale_id}/reject", json={"reason": "Cancelled"})
        assert resp.status_code == 200
        assert resp.get_json()["sale"]["rejection_reason"] == "Cancelled"

        resp = client.get(f"/api/products/{phone.id}")
        assert resp.get_json()["product"]["stock_quantity"] == 10

    def test_reject_without_body(self, client, db_session, shop, phone):
        sale_id = _create_sale(client, shop, phone).get_json()["sale"]["id"]

        resp = client.post(f"/api/sales/{sale_id}/reject")
        assert resp.get_json()["sale"]["rejection_reason"] == "No reason provided"

    def test_filter_by_status(self, client, db_session, shop, phone):
        first = _create_sale(client, shop, phone).get_json()["sale"]["id"]
        _create_sale(client, shop, phone)
        client.post(f"/api/sales/{first}/approve")

        resp = client.get(f"/api/sales?shop_id={shop.id}&status=pending")
        assert resp.get_json()["count"] == 1

        resp = client.get("/api/sales?status=cancelled")
        assert resp.status_code == 400

    def test_filter_by_salesman(self, client, db_session, shop, salesman, second_salesman, phone):
        first = _create_sale(client, shop, phone, salesman=salesman).get_json()["sale"]["id"]
        _create_sale(client, shop, phone, salesman=second_salesman)
        _create_sale(client, shop, phone)
        second = _create_sale(client, shop, phone, salesman=salesman).get_json()["sale"]["id"]

        resp = client.get(f"/api/sales?salesman_id={salesman.id}")
        assert [s["id"] for s in resp.get_json()["items"]] == [second, first]

    def test_shop_listing_is_isolated(self, client, db_session, shop, other_shop, phone, foreign_product):
        mine = _create_sale(client, shop, phone).get_json()["sale"]["id"]
        _create_sale(client, other_shop, foreign_product, price=30000)

        resp = client.get(f"/api/sales?shop_id={shop.id}")
        assert [s["id"] for s in resp.get_json()["items"]] == [mine]

    def test_oversized_quantity_is_bad_request(self, client, db_session, shop, phone):
        """A quantity no shop could hold is refused before touching the database."""
        resp = _create_sale(client, shop, phone, quantity=10**10, price=999_999_999)

        assert resp.status_code == 400
        assert resp.get_json()["details"]["index"] == 0
        assert client.get(f"/api/products/{phone.id}").get_json()["product"]["stock_quantity"] == 10

    def test_missing_sale(self, client, db_session):
        assert client.post("/api/sales/99999/approve").status_code == 404


class TestCommissionsApi:
    def test_rule_create_and_assign(self, client, db_session, salesman):
        resp = client.post("/api/commissions/rules", json={"type": "FIXED_AMOUNT", "value": 5})
        assert resp.status_code == 201
        rule_id = resp.get_json()["rule"]["id"]

        resp = client.post("/api/commissions/rules/assign", json={
            "salesman_id": salesman.id,
            "commission_rule_id": rule_id,
        })
        assert resp.status_code == 201

        resp = client.get(f"/api/commissions/rules/salesman/{salesman.id}")
        assert resp.get_json()["rule"]["id"] == rule_id

    def test_rule_unknown_type(self, client, db_session):
        resp = client.post("/api/commissions/rules", json={"type": "BONUS", "value": 5})
        assert resp.status_code == 400

    def test_no_active_rule(self, client, db_session, salesman):
        assert client.get(f"/api/commissions/rules/salesman/{salesman.id}").status_code == 404

    def test_mark_paid_twice(self, client, db_session, shop, salesman, phone, assigned_ten_percent):
        sale_id = _create_sale(client, shop, phone, salesman=salesman).get_json()["sale"]["id"]
        client.post(f"/api/sales/{sale_id}/approve")
        commission_id = db_session.query(Commission.id).filter_by(sale_id=sale_id).scalar()

        resp = client.post(f"/api/commissions/{commission_id}/mark-paid")
        assert resp.status_code == 200
        assert resp.get_json()["commission"]["is_paid"] is True

        resp = client.post(f"/api/commissions/{commission_id}/mark-paid")
        assert resp.status_code == 409

        resp = client.get(f"/api/commissions?salesman_id={salesman.id}&is_paid=true")
        assert resp.get_json()["count"] == 1

    def test_summary(self, client, db_session, shop, salesman, phone, assigned_ten_percent):
        _create_sale(client, shop, phone, quantity=1, salesman=salesman)

        resp = client.get(f"/api/commissions/summary?salesman_id={salesman.id}")
        assert resp.status_code == 200
        assert resp.get_json()["summary"]["pending_total_cents"] == 1000

        assert client.get("/api/commissions/summary").status_code == 400

    def test_date_range(self, client, db_session, shop, salesman, phone, assigned_ten_percent):
        sale_id = _create_sale(client, shop, phone, quantity=2, salesman=salesman).get_json()["sale"]["id"]
        client.post(f"/api/sales/{sale_id}/approve")

        resp = client.get("/api/commissions/date-range?start=2000-01-01&end=2999-12-31")
        assert resp.status_code == 200
        assert resp.get_json()["total_commission_cents"] == 2000

        resp = client.get("/api/commissions/date-range?start=yesterday&end=2999-12-31")
        assert resp.status_code == 400


class TestReportsApi:
    def test_shop_dashboard(self, client, db_session, shop, phone):
        _create_sale(client, shop, phone, quantity=2, price=9000)

        resp = client.get(f"/api/reports/shops/{shop.id}/dashboard")
        assert resp.status_code == 200
        assert resp.get_json()["dashboard"]["total_revenue_cents"] == 18000

    def test_salesman_dashboard_missing(self, client, db_session):
        assert client.get("/api/reports/salesmen/99999/dashboard").status_code == 404


def test_health(client, db_session, shop, phone):
    resp = client.get("/health")
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["status"] == "healthy"
    assert data["checks"]["stock_ledger"]["status"] == "healthy"
