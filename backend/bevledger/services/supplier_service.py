# Overview: Service-layer operations for suppliers, purchases and deliveries.

# backend/bevledger/services/supplier_service.py
"""
Supplier Service

Purchases (SupplyItem) record what was bought and paid for. Deliveries
record what physically arrived; each delivery posts a StockInflow with
source "Delivery" in the same transaction, so the material balance only
moves when goods arrive.

Paid-for but undelivered quantity is "prepaid" stock (see analytics).
"""
from __future__ import annotations

import logging

from ..models import Supplier, SupplyItem, Delivery, StockInflow
from ..models.stock import FAMILY_MATERIAL
from ..store import Store, IntegrityViolation, eq, where, resolve
from ..time_utils import today
from ..validation import (
    ValidationError,
    ConflictError,
    NotFoundError,
    MAX_AMOUNT,
    require_date,
    require_text,
)
from . import stock_service
from .concurrency import run_with_retry


logger = logging.getLogger(__name__)

DELIVERY_SOURCE = "Delivery"

SUPPLIER_FIELDS = ("name", "contact_name", "phone", "email", "address", "notes")


def _check_amount(value, field: str, *, positive: bool = False) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if value < 0 or (positive and value == 0):
        raise ValidationError(f"{field} must be > 0" if positive else f"{field} must be >= 0")
    if value > MAX_AMOUNT:
        raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT}")
    return value


# ---------------------------------------------------------------------------
# Suppliers
# ---------------------------------------------------------------------------

def get_supplier(supplier_id: int, *, store: Store | None = None) -> Supplier:
    supplier = resolve(store).get(Supplier, supplier_id)
    if supplier is None:
        raise NotFoundError("supplier not found")
    return supplier


def list_suppliers(*, store: Store | None = None) -> list[Supplier]:
    return resolve(store).query(Supplier, order_by="name")


def create_supplier(*, name: str, store: Store | None = None, **details) -> Supplier:
    store = resolve(store)
    name = require_text(name, "name")
    values = {k: v for k, v in details.items() if k in SUPPLIER_FIELDS and k != "name"}

    def _op():
        try:
            supplier = store.insert(Supplier, name=name, **values)
        except IntegrityViolation:
            raise ConflictError(f"supplier {name!r} already exists")
        store.commit()
        return supplier

    return run_with_retry(_op, store=store)


def update_supplier(supplier_id: int, patch: dict, *, store: Store | None = None) -> Supplier:
    store = resolve(store)
    supplier = get_supplier(supplier_id, store=store)
    changes = {k: v for k, v in patch.items() if k in SUPPLIER_FIELDS}
    if "name" in changes:
        changes["name"] = require_text(changes["name"], "name")

    def _op():
        try:
            store.update(supplier, **changes)
        except IntegrityViolation:
            raise ConflictError(f"supplier {changes.get('name')!r} already exists")
        store.commit()
        return supplier

    return run_with_retry(_op, store=store)


def delete_supplier(supplier_id: int, *, store: Store | None = None) -> None:
    store = resolve(store)
    get_supplier(supplier_id, store=store)
    if store.first(SupplyItem, eq("supplier_id", supplier_id)) is not None:
        raise ConflictError("supplier has purchases recorded")

    def _op():
        store.delete(Supplier, eq("id", supplier_id))
        store.commit()

    run_with_retry(_op, store=store)


# ---------------------------------------------------------------------------
# Purchases
# ---------------------------------------------------------------------------

def get_purchase(purchase_id: int, *, store: Store | None = None) -> SupplyItem:
    purchase = resolve(store).get(SupplyItem, purchase_id)
    if purchase is None:
        raise NotFoundError("purchase not found")
    return purchase


def list_purchases(
    *,
    supplier_id: int | None = None,
    item_id: int | None = None,
    store: Store | None = None,
) -> list[SupplyItem]:
    criteria = []
    if supplier_id is not None:
        criteria.append(eq("supplier_id", supplier_id))
    if item_id is not None:
        criteria.append(eq("item_id", item_id))
    return resolve(store).query(SupplyItem, *criteria, order_by="purchase_date", descending=True)


def record_purchase(
    *,
    supplier_id: int,
    item_id: int,
    quantity: int,
    unit_price: int,
    amount_paid: int = 0,
    purchase_date=None,
    notes: str | None = None,
    store: Store | None = None,
) -> SupplyItem:
    store = resolve(store)
    get_supplier(supplier_id, store=store)
    stock_service.get_item(item_id, family=FAMILY_MATERIAL, store=store)
    quantity = _check_amount(quantity, "quantity", positive=True)
    unit_price = _check_amount(unit_price, "unit_price")
    amount_paid = _check_amount(amount_paid or 0, "amount_paid")
    if amount_paid > quantity * unit_price:
        raise ValidationError("amount_paid cannot exceed the total cost")
    bought_on = require_date(purchase_date, "purchase_date", default=today())

    def _op():
        purchase = store.insert(
            SupplyItem,
            supplier_id=supplier_id,
            item_id=item_id,
            quantity=quantity,
            unit_price=unit_price,
            amount_paid=amount_paid,
            purchase_date=bought_on,
            notes=notes,
        )
        store.commit()
        return purchase

    return run_with_retry(_op, store=store)


def pay_purchase(purchase_id: int, *, amount: int, store: Store | None = None) -> SupplyItem:
    """Add a payment to a purchase; the running total may not exceed its cost."""
    store = resolve(store)
    purchase = get_purchase(purchase_id, store=store)
    amount = _check_amount(amount, "amount", positive=True)
    new_total = (purchase.amount_paid or 0) + amount
    if new_total > purchase.total_cost:
        raise ValidationError(f"payment exceeds the outstanding balance of {purchase.balance}")

    def _op():
        store.update(purchase, amount_paid=new_total)
        store.commit()
        return purchase

    return run_with_retry(_op, store=store)


def delete_purchase(purchase_id: int, *, store: Store | None = None) -> None:
    store = resolve(store)
    get_purchase(purchase_id, store=store)
    if store.first(Delivery, eq("supply_item_id", purchase_id)) is not None:
        raise ConflictError("purchase has deliveries; delete them first")

    def _op():
        store.delete(SupplyItem, eq("id", purchase_id))
        store.commit()

    run_with_retry(_op, store=store)


# ---------------------------------------------------------------------------
# Deliveries
# ---------------------------------------------------------------------------

def delivered_quantity(purchase_id: int, *, store: Store | None = None) -> int:
    rows = resolve(store).query(Delivery, eq("supply_item_id", purchase_id))
    return sum(r.quantity for r in rows)


def list_deliveries(purchase_id: int, *, store: Store | None = None) -> list[Delivery]:
    store = resolve(store)
    get_purchase(purchase_id, store=store)
    return store.query(Delivery, eq("supply_item_id", purchase_id), order_by="date")


def record_delivery(
    *,
    purchase_id: int,
    quantity: int,
    date=None,
    notes: str | None = None,
    created_by: str | None = None,
    store: Store | None = None,
) -> Delivery:
    """
    Receive goods against a purchase.

    The delivery row and its stock inflow are written together; the
    quantity may not exceed what is still undelivered on the purchase.
    """
    store = resolve(store)
    purchase = get_purchase(purchase_id, store=store)
    quantity = _check_amount(quantity, "quantity", positive=True)
    received_on = require_date(date, "date", default=today())

    def _op():
        remaining = purchase.quantity - delivered_quantity(purchase.id, store=store)
        if quantity > remaining:
            raise ConflictError(f"delivery exceeds undelivered quantity ({remaining} remaining)")

        delivery = store.insert(
            Delivery,
            supply_item_id=purchase.id,
            quantity=quantity,
            date=received_on,
            notes=notes,
        )
        stock_service.record_inflow(
            item_id=purchase.item_id,
            quantity=quantity,
            source=DELIVERY_SOURCE,
            date=received_on,
            note=notes,
            created_by=created_by,
            delivery_id=delivery.id,
            store=store,
            commit=False,
        )
        store.commit()
        logger.info("Delivery %s received %s of purchase %s", delivery.id, quantity, purchase.id)
        return delivery

    return run_with_retry(_op, store=store)


def delete_delivery(delivery_id: int, *, store: Store | None = None) -> None:
    """Remove a delivery and the inflow it posted."""
    store = resolve(store)
    if store.get(Delivery, delivery_id) is None:
        raise NotFoundError("delivery not found")

    def _op():
        store.delete(StockInflow, eq("delivery_id", delivery_id))
        store.delete(Delivery, eq("id", delivery_id))
        store.commit()

    run_with_retry(_op, store=store)


# ---------------------------------------------------------------------------
# Statements
# ---------------------------------------------------------------------------

def supplier_statement(supplier_id: int, *, store: Store | None = None) -> dict:
    store = resolve(store)
    supplier = get_supplier(supplier_id, store=store)
    purchases = store.query(SupplyItem, eq("supplier_id", supplier_id), order_by="purchase_date")

    deliveries = []
    if purchases:
        deliveries = store.query(Delivery, where("supply_item_id", "in", [p.id for p in purchases]))
    delivered: dict[int, int] = {}
    for d in deliveries:
        delivered[d.supply_item_id] = delivered.get(d.supply_item_id, 0) + d.quantity

    lines = []
    for p in purchases:
        row = p.to_dict()
        row["delivered_quantity"] = delivered.get(p.id, 0)
        row["undelivered_quantity"] = p.quantity - row["delivered_quantity"]
        lines.append(row)

    total_spend = sum(p.total_cost for p in purchases)
    total_paid = sum(p.amount_paid or 0 for p in purchases)
    return {
        "supplier": supplier.to_dict(),
        "purchases": lines,
        "total_spend": total_spend,
        "total_paid": total_paid,
        "outstanding": total_spend - total_paid,
    }
