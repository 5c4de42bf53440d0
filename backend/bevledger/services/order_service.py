# Overview: Service-layer operations for marketers, orders and payments.

# backend/bevledger/services/order_service.py
from __future__ import annotations

import logging

from ..models import Marketer, Order, OrderLine, Payment
from ..models.sales import (
    ORDER_STATUSES,
    PAYMENT_MODES,
    PAYMENT_MODE_BANK,
    PAYMENT_MODE_MOBILE,
    MOBILE_PROVIDERS,
)
from ..models.stock import FAMILY_PRODUCT
from ..store import Store, eq, where, resolve
from ..time_utils import today
from ..validation import (
    ValidationError,
    ConflictError,
    NotFoundError,
    MAX_AMOUNT,
    MAX_QUANTITY,
    require_date,
    optional_date,
    require_text,
)
from . import stock_service
from .concurrency import run_with_retry


logger = logging.getLogger(__name__)

# Allowed status moves; delivered and cancelled are final.
STATUS_TRANSITIONS = {
    "pending": {"confirmed", "cancelled"},
    "confirmed": {"delivered", "cancelled"},
    "delivered": set(),
    "cancelled": set(),
}

MARKETER_FIELDS = ("name", "phone", "email")


def _positive_int(value, field: str, limit: int) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if value <= 0:
        raise ValidationError(f"{field} must be > 0")
    if value > limit:
        raise ValidationError(f"{field} cannot exceed {limit}")
    return value


# ---------------------------------------------------------------------------
# Marketers
# ---------------------------------------------------------------------------

def get_marketer(marketer_id: int, *, store: Store | None = None) -> Marketer:
    marketer = resolve(store).get(Marketer, marketer_id)
    if marketer is None:
        raise NotFoundError("marketer not found")
    return marketer


def list_marketers(*, store: Store | None = None) -> list[Marketer]:
    return resolve(store).query(Marketer, order_by="name")


def create_marketer(
    *,
    name: str,
    phone: str | None = None,
    email: str | None = None,
    store: Store | None = None,
) -> Marketer:
    store = resolve(store)
    name = require_text(name, "name")

    def _op():
        marketer = store.insert(Marketer, name=name, phone=phone, email=email)
        store.commit()
        return marketer

    return run_with_retry(_op, store=store)


def update_marketer(marketer_id: int, patch: dict, *, store: Store | None = None) -> Marketer:
    store = resolve(store)
    marketer = get_marketer(marketer_id, store=store)
    changes = {k: v for k, v in patch.items() if k in MARKETER_FIELDS}
    if "name" in changes:
        changes["name"] = require_text(changes["name"], "name")

    def _op():
        store.update(marketer, **changes)
        store.commit()
        return marketer

    return run_with_retry(_op, store=store)


def delete_marketer(marketer_id: int, *, store: Store | None = None) -> None:
    store = resolve(store)
    get_marketer(marketer_id, store=store)
    if store.first(Order, eq("marketer_id", marketer_id)) is not None:
        raise ConflictError("marketer has orders")
    if store.first(Payment, eq("marketer_id", marketer_id)) is not None:
        raise ConflictError("marketer has payments")

    def _op():
        store.delete(Marketer, eq("id", marketer_id))
        store.commit()

    run_with_retry(_op, store=store)


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------

def get_order(order_id: int, *, store: Store | None = None) -> Order:
    order = resolve(store).get(Order, order_id)
    if order is None:
        raise NotFoundError("order not found")
    return order


def list_orders(
    *,
    marketer_id: int | None = None,
    status: str | None = None,
    store: Store | None = None,
) -> list[Order]:
    criteria = []
    if marketer_id is not None:
        criteria.append(eq("marketer_id", marketer_id))
    if status is not None:
        if status not in ORDER_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(ORDER_STATUSES)}")
        criteria.append(eq("status", status))
    return resolve(store).query(Order, *criteria, order_by="order_date", descending=True)


def order_lines(order_id: int, *, store: Store | None = None) -> list[OrderLine]:
    return resolve(store).query(OrderLine, eq("order_id", order_id))


def create_order(
    *,
    marketer_id: int,
    lines: list[dict],
    total_amount: int,
    order_date=None,
    notes: str | None = None,
    store: Store | None = None,
) -> Order:
    """
    Create an order with its lines.

    lines: [{"item_id": int, "quantity": int}, ...], each item a product.
    """
    store = resolve(store)
    if marketer_id is None:
        raise ValidationError("marketer_id is required")
    get_marketer(marketer_id, store=store)
    if not lines:
        raise ValidationError("an order needs at least one line")

    cleaned = []
    for line in lines:
        if not isinstance(line, dict):
            raise ValidationError("each line must be an object")
        item_id = line.get("item_id")
        if item_id is None:
            raise ValidationError("line item_id is required")
        stock_service.get_item(item_id, family=FAMILY_PRODUCT, store=store)
        cleaned.append((item_id, _positive_int(line.get("quantity"), "quantity", MAX_QUANTITY)))

    if not isinstance(total_amount, int) or isinstance(total_amount, bool) or total_amount < 0:
        raise ValidationError("total_amount must be a non-negative integer")
    if total_amount > MAX_AMOUNT:
        raise ValidationError(f"total_amount cannot exceed {MAX_AMOUNT}")
    ordered_on = require_date(order_date, "order_date", default=today())

    def _op():
        order = store.insert(
            Order,
            marketer_id=marketer_id,
            total_amount=total_amount,
            order_date=ordered_on,
            notes=notes,
        )
        for item_id, quantity in cleaned:
            store.insert(OrderLine, order_id=order.id, item_id=item_id, quantity=quantity)
        store.commit()
        logger.info("Order %s created for marketer %s", order.id, marketer_id)
        return order

    return run_with_retry(_op, store=store)


def set_order_status(order_id: int, status: str, *, store: Store | None = None) -> Order:
    store = resolve(store)
    order = get_order(order_id, store=store)
    if status not in ORDER_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(ORDER_STATUSES)}")
    if status == order.status:
        return order
    if status not in STATUS_TRANSITIONS[order.status]:
        raise ConflictError(f"cannot move order from {order.status} to {status}")

    def _op():
        store.update(order, status=status)
        store.commit()
        return order

    return run_with_retry(_op, store=store)


def delete_order(order_id: int, *, store: Store | None = None) -> None:
    store = resolve(store)
    get_order(order_id, store=store)
    if store.first(Payment, eq("order_id", order_id)) is not None:
        raise ConflictError("order has payments recorded")

    def _op():
        store.delete(OrderLine, eq("order_id", order_id))
        store.delete(Order, eq("id", order_id))
        store.commit()

    run_with_retry(_op, store=store)


def order_detail(order_id: int, *, store: Store | None = None) -> dict:
    store = resolve(store)
    order = get_order(order_id, store=store)
    result = order.to_dict()
    result["lines"] = [line.to_dict() for line in order_lines(order.id, store=store)]
    result.update(order_balance(order.id, store=store))
    return result


def order_balance(order_id: int, *, store: Store | None = None) -> dict:
    """Amount paid against the order and what remains (total - paid)."""
    store = resolve(store)
    order = get_order(order_id, store=store)
    paid = sum(p.amount_paid for p in store.query(Payment, eq("order_id", order.id)))
    return {
        "order_id": order.id,
        "total_amount": order.total_amount,
        "amount_paid": paid,
        "balance": order.total_amount - paid,
    }


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------

def record_payment(
    *,
    amount_paid: int,
    mode_of_payment: str,
    marketer_id: int | None = None,
    order_id: int | None = None,
    bank_name: str | None = None,
    mobile_provider: str | None = None,
    purpose: str | None = None,
    paid_on=None,
    store: Store | None = None,
) -> Payment:
    """
    Record money received.

    A payment against an order takes the order's marketer and may not
    exceed the order's outstanding balance. Bank payments name the bank;
    mobile money payments name the provider.
    """
    store = resolve(store)
    amount_paid = _positive_int(amount_paid, "amount_paid", MAX_AMOUNT)

    if mode_of_payment not in PAYMENT_MODES:
        raise ValidationError(f"mode_of_payment must be one of: {', '.join(PAYMENT_MODES)}")
    if mode_of_payment == PAYMENT_MODE_BANK:
        bank_name = require_text(bank_name, "bank_name")
    else:
        bank_name = None
    if mode_of_payment == PAYMENT_MODE_MOBILE:
        if mobile_provider not in MOBILE_PROVIDERS:
            raise ValidationError(f"mobile_provider must be one of: {', '.join(MOBILE_PROVIDERS)}")
    else:
        mobile_provider = None

    order = None
    if order_id is not None:
        order = get_order(order_id, store=store)
        if order.status == "cancelled":
            raise ConflictError("cannot take payment for a cancelled order")
        if marketer_id is not None and marketer_id != order.marketer_id:
            raise ValidationError("marketer_id does not match the order")
        marketer_id = order.marketer_id
    elif marketer_id is None:
        raise ValidationError("marketer_id or order_id is required")
    else:
        get_marketer(marketer_id, store=store)

    received_on = require_date(paid_on, "paid_on", default=today())

    def _op():
        if order is not None:
            outstanding = order_balance(order.id, store=store)["balance"]
            if amount_paid > outstanding:
                raise ConflictError(f"payment exceeds order balance ({outstanding} outstanding)")
        payment = store.insert(
            Payment,
            marketer_id=marketer_id,
            order_id=order_id,
            amount_paid=amount_paid,
            mode_of_payment=mode_of_payment,
            bank_name=bank_name,
            mobile_provider=mobile_provider,
            purpose=purpose,
            paid_on=received_on,
        )
        store.commit()
        return payment

    return run_with_retry(_op, store=store)


def list_payments(
    *,
    marketer_id: int | None = None,
    order_id: int | None = None,
    mode_of_payment: str | None = None,
    start=None,
    end=None,
    store: Store | None = None,
) -> list[Payment]:
    criteria = []
    if marketer_id is not None:
        criteria.append(eq("marketer_id", marketer_id))
    if order_id is not None:
        criteria.append(eq("order_id", order_id))
    if mode_of_payment is not None:
        criteria.append(eq("mode_of_payment", mode_of_payment))
    start_date = optional_date(start, "start")
    end_date = optional_date(end, "end")
    if start_date is not None:
        criteria.append(where("paid_on", "ge", start_date))
    if end_date is not None:
        criteria.append(where("paid_on", "lt", end_date))
    return resolve(store).query(Payment, *criteria, order_by="paid_on", descending=True)


def delete_payment(payment_id: int, *, store: Store | None = None) -> None:
    store = resolve(store)
    if store.get(Payment, payment_id) is None:
        raise NotFoundError("payment not found")

    def _op():
        store.delete(Payment, eq("id", payment_id))
        store.commit()

    run_with_retry(_op, store=store)


def marketer_ledger(marketer_id: int, *, store: Store | None = None) -> dict:
    """Orders (with balances) and payments of a marketer, plus the amount outstanding."""
    store = resolve(store)
    marketer = get_marketer(marketer_id, store=store)
    orders = store.query(Order, eq("marketer_id", marketer_id), order_by="order_date")
    payments = store.query(Payment, eq("marketer_id", marketer_id), order_by="paid_on")

    paid_by_order: dict[int, int] = {}
    for p in payments:
        if p.order_id is not None:
            paid_by_order[p.order_id] = paid_by_order.get(p.order_id, 0) + p.amount_paid

    order_rows = []
    for o in orders:
        row = o.to_dict()
        row["amount_paid"] = paid_by_order.get(o.id, 0)
        row["balance"] = o.total_amount - row["amount_paid"]
        order_rows.append(row)

    billable = [o for o in orders if o.status != "cancelled"]
    total_ordered = sum(o.total_amount for o in billable)
    total_paid = sum(p.amount_paid for p in payments)
    return {
        "marketer": marketer.to_dict(),
        "orders": order_rows,
        "payments": [p.to_dict() for p in payments],
        "total_ordered": total_ordered,
        "total_paid": total_paid,
        "outstanding": total_ordered - total_paid,
    }
