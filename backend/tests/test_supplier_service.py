import pytest

from bevledger.models import Delivery, StockInflow
from bevledger.services import stock_service, supplier_service
from bevledger.validation import ConflictError, NotFoundError, ValidationError


@pytest.fixture
def supplier(store):
    return supplier_service.create_supplier(name="Kakira Sugar", phone="0700000000", store=store)


@pytest.fixture
def purchase(store, supplier, material):
    return supplier_service.record_purchase(
        supplier_id=supplier.id,
        item_id=material.id,
        quantity=100,
        unit_price=3500,
        amount_paid=200000,
        purchase_date="2024-03-01",
        store=store,
    )


def test_purchase_totals(purchase):
    assert purchase.total_cost == 350000
    assert purchase.balance == 150000


def test_purchase_requires_material(store, supplier, product):
    with pytest.raises(NotFoundError):
        supplier_service.record_purchase(
            supplier_id=supplier.id, item_id=product.id, quantity=1, unit_price=1, store=store
        )


def test_overpayment_rejected(store, supplier, material):
    with pytest.raises(ValidationError):
        supplier_service.record_purchase(
            supplier_id=supplier.id, item_id=material.id, quantity=1, unit_price=100,
            amount_paid=101, store=store,
        )


def test_pay_purchase_accumulates(store, purchase):
    supplier_service.pay_purchase(purchase.id, amount=100000, store=store)
    assert supplier_service.get_purchase(purchase.id, store=store).amount_paid == 300000

    with pytest.raises(ValidationError):
        supplier_service.pay_purchase(purchase.id, amount=50001, store=store)


def test_delivery_posts_inflow(store, purchase, material):
    delivery = supplier_service.record_delivery(
        purchase_id=purchase.id, quantity=60, date="2024-03-05", store=store
    )

    inflows = store.query(StockInflow)
    assert len(inflows) == 1
    assert inflows[0].source == "Delivery"
    assert inflows[0].delivery_id == delivery.id
    assert stock_service.get_balance(material.id, store=store) == 60


def test_delivery_cannot_exceed_undelivered(store, purchase):
    supplier_service.record_delivery(purchase_id=purchase.id, quantity=60, store=store)

    with pytest.raises(ConflictError, match="40 remaining"):
        supplier_service.record_delivery(purchase_id=purchase.id, quantity=41, store=store)

    assert supplier_service.delivered_quantity(purchase.id, store=store) == 60
    assert len(store.query(StockInflow)) == 1


def test_delete_delivery_removes_inflow(store, purchase, material):
    delivery = supplier_service.record_delivery(purchase_id=purchase.id, quantity=10, store=store)

    supplier_service.delete_delivery(delivery.id, store=store)

    assert store.query(Delivery) == []
    assert store.query(StockInflow) == []
    assert stock_service.get_balance(material.id, store=store) == 0


def test_purchase_with_deliveries_cannot_be_deleted(store, purchase):
    supplier_service.record_delivery(purchase_id=purchase.id, quantity=10, store=store)

    with pytest.raises(ConflictError):
        supplier_service.delete_purchase(purchase.id, store=store)


def test_supplier_statement(store, supplier, purchase, material):
    supplier_service.record_purchase(
        supplier_id=supplier.id, item_id=material.id, quantity=10, unit_price=1000, store=store
    )
    supplier_service.record_delivery(purchase_id=purchase.id, quantity=25, store=store)

    statement = supplier_service.supplier_statement(supplier.id, store=store)

    assert statement["total_spend"] == 360000
    assert statement["total_paid"] == 200000
    assert statement["outstanding"] == 160000
    first = next(p for p in statement["purchases"] if p["id"] == purchase.id)
    assert first["delivered_quantity"] == 25
    assert first["undelivered_quantity"] == 75


def test_duplicate_supplier_and_delete_guard(store, supplier, purchase):
    with pytest.raises(ConflictError):
        supplier_service.create_supplier(name="Kakira Sugar", store=store)

    with pytest.raises(ConflictError):
        supplier_service.delete_supplier(supplier.id, store=store)
