"""
API tests through the Flask test client.

Covers the status-code mapping (400/404/409), the stock balance endpoints,
the supplier/order flows end to end and the CSV downloads.
"""

import pytest


def _create_item(client, name="Mango Juice 500ml", family="product", **extra):
    response = client.post("/api/items", json={"name": name, "family": family, **extra})
    assert response.status_code == 201, response.get_json()
    return response.get_json()


class TestSystem:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.get_json()["checks"]["database"]["status"] == "healthy"

    def test_version(self, client):
        assert client.get("/version").get_json()["api_version"] == "1.0.0"


class TestItemRoutes:
    def test_create_and_fetch(self, client):
        item = _create_item(client)

        response = client.get(f"/api/items/{item['id']}")

        assert response.status_code == 200
        assert response.get_json()["quantity_on_hand"] == 0

    def test_unknown_field_is_400(self, client):
        response = client.post("/api/items", json={"name": "Water", "family": "product", "price": 5})

        assert response.status_code == 400
        assert "Field not allowed" in response.get_json()["error"]

    def test_missing_item_is_404(self, client):
        assert client.get("/api/items/9999").status_code == 404
        assert client.get("/api/items/9999/balance").status_code == 404

    def test_duplicate_name_is_409(self, client):
        _create_item(client)
        response = client.post("/api/items", json={"name": "Mango Juice 500ml", "family": "product"})

        assert response.status_code == 409

    def test_family_listing_carries_quantities(self, client):
        item = _create_item(client)
        client.post(f"/api/items/{item['id']}/inflows", json={"quantity": 12, "source": "Production"})

        body = client.get("/api/items?family=product").get_json()

        assert body["items"][0]["quantity_on_hand"] == 12
        assert body["total_quantity"] == 12


class TestMovementRoutes:
    def test_balance_after_movements(self, client):
        item = _create_item(client)
        base = f"/api/items/{item['id']}"

        assert client.post(f"{base}/opening-stocks", json={"date": "2024-01-01", "quantity": 100}).status_code == 201
        inflow = client.post(f"{base}/inflows", json={"date": "2024-01-10", "quantity": 50, "source": "Production"})
        outflow = client.post(f"{base}/outflows", json={"date": "2024-01-20", "quantity": 30, "reason": "Sold"})

        assert inflow.status_code == 201
        assert outflow.get_json()["quantity_on_hand"] == 120

        body = client.get(f"{base}/balance?as_of=2024-01-25").get_json()
        assert body["quantity_on_hand"] == 120
        assert body["baseline"]["date"] == "2024-01-01"

    def test_duplicate_opening_stock_is_409(self, client):
        item = _create_item(client)
        url = f"/api/items/{item['id']}/opening-stocks"

        client.post(url, json={"date": "2024-01-01", "quantity": 100})
        response = client.post(url, json={"date": "2024-01-01", "quantity": 5})

        assert response.status_code == 409
        rows = client.get(url).get_json()["items"]
        assert [r["quantity"] for r in rows] == [100]

    def test_opening_stock_check_in_response(self, client):
        item = _create_item(client)
        base = f"/api/items/{item['id']}"
        client.post(f"{base}/inflows", json={"date": "2024-01-05", "quantity": 40, "source": "Production"})

        body = client.post(f"{base}/opening-stocks", json={"date": "2024-02-01", "quantity": 35}).get_json()

        assert body["check"]["status"] == "mismatch"
        assert body["check"]["difference"] == -5

    def test_product_outflow_over_balance_is_409(self, client):
        item = _create_item(client)
        base = f"/api/items/{item['id']}"
        client.post(f"{base}/inflows", json={"quantity": 5, "source": "Production"})

        response = client.post(f"{base}/outflows", json={"quantity": 6, "reason": "Sold"})

        assert response.status_code == 409
        assert client.get(f"{base}/outflows").get_json()["count"] == 0

    def test_negative_outflow_is_400(self, client):
        item = _create_item(client, name="Sugar", family="material")

        response = client.post(
            f"/api/items/{item['id']}/outflows", json={"quantity": -3, "reason": "Damaged"}
        )

        assert response.status_code == 400

    def test_bad_date_is_400(self, client):
        item = _create_item(client)

        assert client.get(f"/api/items/{item['id']}/balance?as_of=yesterday").status_code == 400

    def test_transactions_listing(self, client):
        item = _create_item(client)
        base = f"/api/items/{item['id']}"
        client.post(f"{base}/inflows", json={"date": "2024-01-01", "quantity": 10, "source": "Production"})
        client.post(f"{base}/outflows", json={"date": "2024-01-02", "quantity": 4, "reason": "Sold"})

        body = client.get(f"{base}/transactions").get_json()

        assert [r["type"] for r in body["items"]] == ["outflow", "inflow"]


def test_purchase_and_delivery_flow(client):
    material = _create_item(client, name="Sugar", family="material", unit="kg")
    supplier = client.post("/api/suppliers", json={"name": "Kakira"}).get_json()

    purchase = client.post(
        f"/api/suppliers/{supplier['id']}/purchases",
        json={"item_id": material["id"], "quantity": 100, "unit_price": 3500, "amount_paid": 100000},
    )
    assert purchase.status_code == 201
    purchase_id = purchase.get_json()["id"]

    delivered = client.post(f"/api/suppliers/purchases/{purchase_id}/deliveries", json={"quantity": 60})
    over = client.post(f"/api/suppliers/purchases/{purchase_id}/deliveries", json={"quantity": 41})

    assert delivered.status_code == 201
    assert over.status_code == 409
    assert client.get(f"/api/items/{material['id']}").get_json()["quantity_on_hand"] == 60

    statement = client.get(f"/api/suppliers/{supplier['id']}").get_json()
    assert statement["outstanding"] == 250000


def test_order_and_payment_flow(client):
    product = _create_item(client)
    marketer = client.post("/api/marketers", json={"name": "Aisha"}).get_json()

    order = client.post(
        "/api/orders",
        json={
            "marketer_id": marketer["id"],
            "lines": [{"item_id": product["id"], "quantity": 24}],
            "total_amount": 120000,
            "order_date": "2024-04-01",
        },
    )
    assert order.status_code == 201
    order_id = order.get_json()["id"]

    payment = client.post(
        "/api/payments",
        json={"order_id": order_id, "amount_paid": 20000, "mode_of_payment": "Mobile Money",
              "mobile_provider": "MTN", "paid_on": "2024-04-02"},
    )
    assert payment.status_code == 201

    ledger = client.get(f"/api/marketers/{marketer['id']}/ledger").get_json()
    assert ledger["outstanding"] == 100000

    bad_mode = client.post(
        "/api/payments", json={"order_id": order_id, "amount_paid": 1, "mode_of_payment": "Cheque"}
    )
    assert bad_mode.status_code == 400


def test_ledger_period_filter(client):
    client.post("/api/ledgers/expenses", json={"date": "2024-05-15", "amount_spent": 300, "category": "Fuel"})
    client.post("/api/ledgers/expenses", json={"date": "2024-04-30", "amount_spent": 100, "category": "Fuel"})

    body = client.get("/api/ledgers/expenses?period=monthly&reference=2024-05-20").get_json()

    assert body["count"] == 1
    assert body["total"] == 300
    assert client.get("/api/ledgers/expenses?period=hourly").status_code == 400


def test_general_ledger_and_cash(client):
    marketer = client.post("/api/marketers", json={"name": "Brian"}).get_json()
    client.post("/api/payments", json={"marketer_id": marketer["id"], "amount_paid": 500,
                                       "mode_of_payment": "Cash", "paid_on": "2024-01-01"})
    client.post("/api/ledgers/expenses", json={"date": "2024-01-02", "amount_spent": 200, "category": "Fuel"})

    ledger = client.get("/api/ledgers/general").get_json()
    cash = client.get("/api/ledgers/cash").get_json()

    assert [e["balance"] for e in ledger["entries"]] == [300, 500]
    assert cash["cash"] == 300


class TestAnalyticsRoutes:
    def test_overview(self, client):
        _create_item(client)

        body = client.get("/api/analytics/overview").get_json()

        assert body["items"]["product"] == 1

    def test_forecast(self, client):
        for day, amount in [("2024-01-10", 100), ("2024-02-10", 200), ("2024-03-10", 300)]:
            client.post("/api/ledgers/expenses", json={"date": day, "amount_spent": amount, "category": "Fuel"})

        body = client.get("/api/analytics/forecast/expenses?months=2").get_json()

        assert [f["month"] for f in body["forecast"]] == ["2024-04", "2024-05"]
        assert body["forecast"][0]["amount"] == pytest.approx(400.0)

    def test_forecast_unknown_series(self, client):
        assert client.get("/api/analytics/forecast/weather").status_code == 400


class TestExportRoutes:
    def test_items_csv(self, client):
        item = _create_item(client)
        client.post(f"/api/items/{item['id']}/inflows", json={"quantity": 7, "source": "Production"})

        response = client.get("/api/exports/items.csv?family=product")

        assert response.status_code == 200
        assert response.mimetype == "text/csv"
        assert "attachment; filename=products-" in response.headers["Content-Disposition"]
        lines = response.get_data(as_text=True).splitlines()
        assert lines[0] == "id,name,family,category_name,unit,quantity_on_hand"
        assert lines[1].endswith(",7")

    def test_transactions_csv_missing_item(self, client):
        assert client.get("/api/exports/items/9999/transactions.csv").status_code == 404


def test_malformed_integer_query_args_are_400(client):
    assert client.get("/api/analytics/forecast/expenses?months=abc").status_code == 400
    assert client.get("/api/orders?marketer_id=x").status_code == 400
    assert client.get("/api/items?category_id=1.5").status_code == 400


def test_financial_health_route(client):
    client.post("/api/ledgers/expenses", json={"date": "2024-03-03", "amount_spent": 500, "category": "Fuel"})

    response = client.get("/api/analytics/financial-health?start=2024-03-01&end=2024-04-01")

    assert response.status_code == 200
    body = response.get_json()
    assert body["burn_rate"] == 500
    assert body["liquidity_ratio"] == 0.0
    assert client.get("/api/analytics/cost-breakdown").get_json()["buckets"]["other"]["total"] == 500


def test_patch_opening_stock_clears_note(client):
    item = _create_item(client)
    created = client.post(
        f"/api/items/{item['id']}/opening-stocks",
        json={"date": "2024-01-01", "quantity": 10, "note": "count sheet 4"},
    ).get_json()["opening_stock"]

    response = client.patch(f"/api/opening-stocks/{created['id']}", json={"note": None})

    assert response.status_code == 200
    assert response.get_json()["note"] is None
    assert response.get_json()["quantity"] == 10
