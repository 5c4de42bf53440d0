from datetime import date

import pytest

from bevledger.models import OpeningStock, StockInflow, StockOutflow, TrackedItem
from bevledger.services import stock_service, supplier_service
from bevledger.validation import ConflictError, NotFoundError, ValidationError


class TestItems:
    def test_create_and_list_by_family(self, store, material, product):
        materials = stock_service.list_items(family="material", store=store)
        products = stock_service.list_items(family="product", store=store)

        assert [m.name for m in materials] == ["Sugar"]
        assert [p.name for p in products] == ["Mango Juice 500ml"]

    def test_duplicate_name_within_family_conflicts(self, store, material):
        with pytest.raises(ConflictError):
            stock_service.create_item(name="Sugar", family="material", store=store)

        # Same name is fine in the other family
        stock_service.create_item(name="Sugar", family="product", store=store)

    def test_unknown_family_rejected(self, store):
        with pytest.raises(ValidationError):
            stock_service.create_item(name="Water", family="service", store=store)

    def test_blank_name_rejected(self, store):
        with pytest.raises(ValidationError):
            stock_service.create_item(name="   ", family="material", store=store)

    def test_update_name_and_category(self, store, material):
        category = stock_service.create_category(name="Sweeteners", store=store)

        stock_service.update_item(
            material.id, {"name": "Cane sugar", "category_id": category.id, "family": "product"}, store=store
        )

        item = stock_service.get_item(material.id, store=store)
        assert item.name == "Cane sugar"
        assert item.category_id == category.id
        assert item.family == "material"

    def test_get_missing_item(self, store):
        with pytest.raises(NotFoundError):
            stock_service.get_item(9999, store=store)

    def test_delete_removes_history(self, store, product):
        stock_service.record_opening_stock(item_id=product.id, date="2024-01-01", quantity=10, store=store)
        stock_service.record_inflow(item_id=product.id, quantity=5, source="Production", date="2024-01-02", store=store)
        stock_service.record_outflow(item_id=product.id, quantity=3, reason="Sold", date="2024-01-03", store=store)

        stock_service.delete_item(product.id, store=store)

        assert store.query(TrackedItem) == []
        assert store.query(OpeningStock) == []
        assert store.query(StockInflow) == []
        assert store.query(StockOutflow) == []

    def test_delete_refused_when_purchased(self, store, material):
        supplier = supplier_service.create_supplier(name="Kakira", store=store)
        supplier_service.record_purchase(
            supplier_id=supplier.id, item_id=material.id, quantity=10, unit_price=100, store=store
        )

        with pytest.raises(ConflictError):
            stock_service.delete_item(material.id, store=store)


class TestCategories:
    def test_delete_refused_while_in_use(self, store):
        category = stock_service.create_category(name="Juices", store=store)
        stock_service.create_item(name="Passion 300ml", family="product", category_id=category.id, store=store)

        with pytest.raises(ConflictError):
            stock_service.delete_category(category.id, store=store)

    def test_duplicate_name_conflicts(self, store):
        stock_service.create_category(name="Juices", store=store)
        with pytest.raises(ConflictError):
            stock_service.create_category(name="Juices", store=store)


class TestMovements:
    def test_balance_scenario(self, store, product):
        stock_service.record_opening_stock(item_id=product.id, date="2024-01-01", quantity=100, store=store)
        stock_service.record_inflow(item_id=product.id, quantity=50, source="Production", date="2024-01-10", store=store)
        stock_service.record_outflow(item_id=product.id, quantity=30, reason="Sold", date="2024-01-20", store=store)

        assert stock_service.get_balance(product.id, "2024-01-25", store=store) == 120
        assert stock_service.get_balance(product.id, store=store) == 120

    def test_outflow_stored_as_magnitude(self, store, material):
        row = stock_service.record_outflow(
            item_id=material.id, quantity=7, reason="Used in production", date="2024-01-02", store=store
        )

        assert row.quantity == 7
        assert stock_service.get_balance(material.id, store=store) == -7

    def test_negative_outflow_rejected(self, store, material):
        with pytest.raises(ValidationError):
            stock_service.record_outflow(item_id=material.id, quantity=-5, reason="Damaged", store=store)
        assert store.query(StockOutflow) == []

    def test_zero_inflow_rejected(self, store, material):
        with pytest.raises(ValidationError):
            stock_service.record_inflow(item_id=material.id, quantity=0, source="Return", store=store)

    def test_material_reason_must_be_known(self, store, material):
        with pytest.raises(ValidationError):
            stock_service.record_outflow(item_id=material.id, quantity=1, reason="Lost", store=store)

    def test_product_outflow_cannot_exceed_balance(self, store, product):
        stock_service.record_inflow(item_id=product.id, quantity=10, source="Production", date="2024-01-01", store=store)

        with pytest.raises(ConflictError, match="not enough quantity"):
            stock_service.record_outflow(item_id=product.id, quantity=11, reason="Sold", store=store)

        stock_service.record_outflow(item_id=product.id, quantity=10, reason="Sold", store=store)
        assert stock_service.get_balance(product.id, store=store) == 0

    def test_transactions_newest_first(self, store, product):
        stock_service.record_inflow(item_id=product.id, quantity=10, source="Production", date="2024-01-01", store=store)
        stock_service.record_outflow(item_id=product.id, quantity=4, reason="Sold", date="2024-01-03", store=store)
        stock_service.record_inflow(item_id=product.id, quantity=2, source="Return", date="2024-01-02", store=store)

        rows = stock_service.list_transactions(product.id, store=store)

        assert [(r["type"], r["date"]) for r in rows] == [
            ("outflow", "2024-01-03"),
            ("inflow", "2024-01-02"),
            ("inflow", "2024-01-01"),
        ]

    def test_movement_summary(self, store, product):
        stock_service.record_opening_stock(item_id=product.id, date="2024-01-01", quantity=100, store=store)
        stock_service.record_inflow(item_id=product.id, quantity=20, source="Production", date="2024-01-12", store=store)

        summary = stock_service.get_movement_summary(
            product.id, start="2024-01-10", end="2024-01-20", store=store
        )

        assert summary["opening_balance"] == 100
        assert summary["inflow_total"] == 20
        assert summary["closing_balance"] == 120

    def test_delivery_inflow_cannot_be_deleted_directly(self, store, material):
        supplier = supplier_service.create_supplier(name="Kakira", store=store)
        purchase = supplier_service.record_purchase(
            supplier_id=supplier.id, item_id=material.id, quantity=10, unit_price=100, store=store
        )
        supplier_service.record_delivery(purchase_id=purchase.id, quantity=4, store=store)
        inflow = store.first(StockInflow)

        with pytest.raises(ConflictError):
            stock_service.delete_inflow(inflow.id, store=store)


class TestOpeningStocks:
    def test_duplicate_rejected_without_mutation(self, store, product):
        stock_service.record_opening_stock(item_id=product.id, date="2024-01-01", quantity=100, store=store)

        with pytest.raises(ConflictError):
            stock_service.record_opening_stock(item_id=product.id, date="2024-01-01", quantity=5, store=store)

        rows = stock_service.list_opening_stocks(product.id, store=store)
        assert [r.quantity for r in rows] == [100]

    def test_product_opening_on_as_of_is_returned(self, store, product):
        stock_service.record_inflow(item_id=product.id, quantity=40, source="Production", date="2024-01-05", store=store)
        stock_service.record_opening_stock(item_id=product.id, date="2024-02-01", quantity=35, store=store)

        assert stock_service.get_balance(product.id, "2024-02-01", store=store) == 35

    def test_material_boundary_is_strict(self, store, material):
        stock_service.record_inflow(item_id=material.id, quantity=40, source="Return", date="2024-01-05", store=store)
        stock_service.record_opening_stock(item_id=material.id, date="2024-02-01", quantity=35, store=store)

        assert stock_service.get_balance(material.id, "2024-02-01", store=store) == 40
        assert stock_service.get_balance(material.id, "2024-02-02", store=store) == 35

    def test_check_reports_mismatch(self, store, product):
        first = stock_service.record_opening_stock(item_id=product.id, date="2024-01-01", quantity=100, store=store)
        stock_service.record_inflow(item_id=product.id, quantity=20, source="Production", date="2024-01-10", store=store)
        second = stock_service.record_opening_stock(item_id=product.id, date="2024-02-01", quantity=110, store=store)

        assert stock_service.check_opening_stock(first.id, store=store)["status"] == "initial"
        check = stock_service.check_opening_stock(second.id, store=store)
        assert check["status"] == "mismatch"
        assert check["calculated"] == 120
        assert check["difference"] == -10

    def test_update_quantity_and_delete(self, store, product):
        row = stock_service.record_opening_stock(item_id=product.id, date="2024-01-01", quantity=100, store=store)

        stock_service.update_opening_stock(row.id, quantity=90, store=store)
        assert stock_service.get_balance(product.id, store=store) == 90

        stock_service.delete_opening_stock(row.id, store=store)
        assert stock_service.get_balance(product.id, store=store) == 0

    def test_note_kept_unless_cleared(self, store, product):
        row = stock_service.record_opening_stock(
            item_id=product.id, date="2024-01-01", quantity=100, note="year-end count", store=store
        )

        stock_service.update_opening_stock(row.id, quantity=90, store=store)
        assert stock_service.get_opening_stock(row.id, store=store).note == "year-end count"

        stock_service.update_opening_stock(row.id, note=None, store=store)
        cleared = stock_service.get_opening_stock(row.id, store=store)
        assert cleared.note is None
        assert cleared.quantity == 90

    def test_negative_quantity_rejected(self, store, product):
        with pytest.raises(ValidationError):
            stock_service.record_opening_stock(item_id=product.id, date="2024-01-01", quantity=-1, store=store)


def test_stock_summary_category_totals(store):
    juices = stock_service.create_category(name="Juices", store=store)
    a = stock_service.create_item(name="Mango", family="product", category_id=juices.id, store=store)
    b = stock_service.create_item(name="Passion", family="product", category_id=juices.id, store=store)
    c = stock_service.create_item(name="Water", family="product", store=store)
    for item, qty in [(a, 30), (b, 10), (c, 60)]:
        stock_service.record_inflow(item_id=item.id, quantity=qty, source="Production", date=date(2024, 1, 1), store=store)

    summary = stock_service.stock_summary(family="product", store=store)

    assert summary["total_quantity"] == 100
    totals = {t["category_name"]: t for t in summary["category_totals"]}
    assert totals["Juices"]["quantity_on_hand"] == 40
    assert totals["Juices"]["item_count"] == 2
    assert totals["Juices"]["share_pct"] == 40.0
    assert totals["Uncategorized"]["quantity_on_hand"] == 60
