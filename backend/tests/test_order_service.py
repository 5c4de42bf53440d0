import pytest

from bevledger.models import Order, OrderLine
from bevledger.services import order_service
from bevledger.validation import ConflictError, NotFoundError, ValidationError


@pytest.fixture
def marketer(store):
    return order_service.create_marketer(name="Aisha", phone="0772000000", store=store)


@pytest.fixture
def order(store, marketer, product):
    return order_service.create_order(
        marketer_id=marketer.id,
        lines=[{"item_id": product.id, "quantity": 24}],
        total_amount=120000,
        order_date="2024-04-01",
        store=store,
    )


def test_create_order_with_lines(store, order, product):
    assert order.status == "pending"
    lines = order_service.order_lines(order.id, store=store)
    assert [(line.item_id, line.quantity) for line in lines] == [(product.id, 24)]


def test_order_needs_product_lines(store, marketer, material):
    with pytest.raises(ValidationError):
        order_service.create_order(marketer_id=marketer.id, lines=[], total_amount=0, store=store)

    with pytest.raises(NotFoundError):
        order_service.create_order(
            marketer_id=marketer.id,
            lines=[{"item_id": material.id, "quantity": 1}],
            total_amount=1000,
            store=store,
        )
    assert store.query(Order) == []


def test_status_transitions(store, order):
    order_service.set_order_status(order.id, "confirmed", store=store)
    order_service.set_order_status(order.id, "delivered", store=store)

    with pytest.raises(ConflictError):
        order_service.set_order_status(order.id, "pending", store=store)

    with pytest.raises(ValidationError):
        order_service.set_order_status(order.id, "shipped", store=store)


def test_payment_against_order(store, order, marketer):
    payment = order_service.record_payment(
        order_id=order.id,
        amount_paid=50000,
        mode_of_payment="Mobile Money",
        mobile_provider="MTN",
        paid_on="2024-04-02",
        store=store,
    )

    assert payment.marketer_id == marketer.id
    balance = order_service.order_balance(order.id, store=store)
    assert balance["amount_paid"] == 50000
    assert balance["balance"] == 70000


def test_payment_cannot_exceed_order_balance(store, order):
    with pytest.raises(ConflictError):
        order_service.record_payment(
            order_id=order.id, amount_paid=120001, mode_of_payment="Cash", store=store
        )


def test_payment_mode_details(store, marketer):
    with pytest.raises(ValidationError):
        order_service.record_payment(
            marketer_id=marketer.id, amount_paid=100, mode_of_payment="Cheque", store=store
        )
    with pytest.raises(ValidationError):
        order_service.record_payment(
            marketer_id=marketer.id, amount_paid=100, mode_of_payment="Bank", store=store
        )
    with pytest.raises(ValidationError):
        order_service.record_payment(
            marketer_id=marketer.id, amount_paid=100, mode_of_payment="Mobile Money",
            mobile_provider="Safaricom", store=store,
        )

    cash = order_service.record_payment(
        marketer_id=marketer.id, amount_paid=100, mode_of_payment="Cash",
        bank_name="Stanbic", store=store,
    )
    assert cash.bank_name is None


def test_cancelled_order_takes_no_payment(store, order):
    order_service.set_order_status(order.id, "cancelled", store=store)

    with pytest.raises(ConflictError):
        order_service.record_payment(order_id=order.id, amount_paid=10, mode_of_payment="Cash", store=store)


def test_order_with_payment_cannot_be_deleted(store, order):
    order_service.record_payment(order_id=order.id, amount_paid=10, mode_of_payment="Cash", store=store)

    with pytest.raises(ConflictError):
        order_service.delete_order(order.id, store=store)


def test_delete_order_removes_lines(store, order):
    order_service.delete_order(order.id, store=store)

    assert store.query(Order) == []
    assert store.query(OrderLine) == []


def test_marketer_ledger(store, marketer, order, product):
    second = order_service.create_order(
        marketer_id=marketer.id,
        lines=[{"item_id": product.id, "quantity": 5}],
        total_amount=30000,
        order_date="2024-04-10",
        store=store,
    )
    order_service.record_payment(order_id=order.id, amount_paid=120000, mode_of_payment="Cash", store=store)
    order_service.record_payment(
        marketer_id=marketer.id, amount_paid=5000, mode_of_payment="Bank", bank_name="Centenary", store=store
    )

    ledger = order_service.marketer_ledger(marketer.id, store=store)

    assert ledger["total_ordered"] == 150000
    assert ledger["total_paid"] == 125000
    assert ledger["outstanding"] == 25000
    balances = {o["id"]: o["balance"] for o in ledger["orders"]}
    assert balances == {order.id: 0, second.id: 30000}
