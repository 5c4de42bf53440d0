# Overview: Service-layer operations for stock; encapsulates business logic and store access.

# backend/bevledger/services/stock_service.py
"""
Stock service: categories, tracked items, movements and opening stocks.

Quantity on hand is never stored. Every balance is computed by
services.reconciliation from the item's opening stocks, inflows and outflows.

Family rules:
- material: outflow reason must be one of MATERIAL_OUTFLOW_REASONS;
  outflows are not checked against the balance.
- product: an outflow larger than the current on-hand quantity is refused.
- The opening-stock boundary (exact vs strict) comes from the
  OPENING_STOCK_MATCH config per family.

Every public write commits before returning. Pass store= to run against a
specific Store (tests use MemoryStore); otherwise the app's store is used.
"""
from __future__ import annotations

import logging

from flask import current_app, has_app_context

from ..models import (
    Category,
    TrackedItem,
    OpeningStock,
    StockInflow,
    StockOutflow,
    SupplyItem,
    OrderLine,
)
from ..models.stock import FAMILIES, FAMILY_MATERIAL, FAMILY_PRODUCT, MATERIAL_OUTFLOW_REASONS
from ..store import Store, IntegrityViolation, eq, where, resolve
from ..time_utils import today, to_iso_date
from ..validation import (
    ValidationError,
    ConflictError,
    NotFoundError,
    MAX_QUANTITY,
    require_date,
    optional_date,
    require_text,
)
from . import reconciliation
from .concurrency import run_with_retry


logger = logging.getLogger(__name__)

DEFAULT_OPENING_STOCK_MATCH = {FAMILY_MATERIAL: "strict", FAMILY_PRODUCT: "exact"}

# Distinguishes "argument not given" from an explicit None (clear the value)
_UNSET = object()


def exact_match_for(family: str) -> bool:
    """Whether an opening stock dated exactly on as_of short-circuits the balance."""
    mapping = DEFAULT_OPENING_STOCK_MATCH
    if has_app_context():
        mapping = current_app.config.get("OPENING_STOCK_MATCH", mapping)
    mode = mapping.get(family, "exact")
    if mode not in ("exact", "strict"):
        raise ValueError(f"invalid opening stock match mode for {family}: {mode}")
    return mode == "exact"


def _check_quantity(quantity, *, allow_zero: bool = False) -> int:
    if not isinstance(quantity, int) or isinstance(quantity, bool):
        raise ValidationError("quantity must be an integer")
    if quantity < 0 or (quantity == 0 and not allow_zero):
        raise ValidationError("quantity must be >= 0" if allow_zero else "quantity must be > 0")
    if quantity > MAX_QUANTITY:
        raise ValidationError(f"quantity cannot exceed {MAX_QUANTITY}")
    return quantity


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------

def get_category(category_id: int, *, store: Store | None = None) -> Category:
    store = resolve(store)
    category = store.get(Category, category_id)
    if category is None:
        raise NotFoundError("category not found")
    return category


def list_categories(*, store: Store | None = None) -> list[Category]:
    return resolve(store).query(Category, order_by="name")


def create_category(*, name: str, description: str | None = None, store: Store | None = None) -> Category:
    store = resolve(store)
    name = require_text(name, "name")

    def _op():
        try:
            category = store.insert(Category, name=name, description=description)
        except IntegrityViolation:
            raise ConflictError(f"category {name!r} already exists")
        store.commit()
        return category

    return run_with_retry(_op, store=store)


def update_category(category_id: int, patch: dict, *, store: Store | None = None) -> Category:
    store = resolve(store)
    category = get_category(category_id, store=store)
    changes = {k: v for k, v in patch.items() if k in ("name", "description")}
    if "name" in changes:
        changes["name"] = require_text(changes["name"], "name")

    def _op():
        try:
            store.update(category, **changes)
        except IntegrityViolation:
            raise ConflictError(f"category {changes.get('name')!r} already exists")
        store.commit()
        return category

    return run_with_retry(_op, store=store)


def delete_category(category_id: int, *, store: Store | None = None) -> None:
    store = resolve(store)
    get_category(category_id, store=store)
    if store.first(TrackedItem, eq("category_id", category_id)) is not None:
        raise ConflictError("category is still assigned to items")

    def _op():
        store.delete(Category, eq("id", category_id))
        store.commit()

    run_with_retry(_op, store=store)


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------

def get_item(item_id: int, *, family: str | None = None, store: Store | None = None) -> TrackedItem:
    store = resolve(store)
    item = store.get(TrackedItem, item_id)
    if item is None or (family is not None and item.family != family):
        raise NotFoundError("item not found")
    return item


def list_items(
    *,
    family: str | None = None,
    category_id: int | None = None,
    store: Store | None = None,
) -> list[TrackedItem]:
    criteria = []
    if family is not None:
        criteria.append(eq("family", family))
    if category_id is not None:
        criteria.append(eq("category_id", category_id))
    return resolve(store).query(TrackedItem, *criteria, order_by="name")


def create_item(
    *,
    name: str,
    family: str,
    category_id: int | None = None,
    unit: str | None = None,
    store: Store | None = None,
) -> TrackedItem:
    store = resolve(store)
    name = require_text(name, "name")
    if family not in FAMILIES:
        raise ValidationError(f"family must be one of: {', '.join(FAMILIES)}")
    if category_id is not None:
        get_category(category_id, store=store)

    def _op():
        try:
            item = store.insert(
                TrackedItem, name=name, family=family, category_id=category_id, unit=unit
            )
        except IntegrityViolation:
            raise ConflictError(f"{family} {name!r} already exists")
        store.commit()
        logger.info("Created %s item %s (%s)", family, item.id, name)
        return item

    return run_with_retry(_op, store=store)


def update_item(item_id: int, patch: dict, *, store: Store | None = None) -> TrackedItem:
    """Only name, category and unit are editable; family is fixed at creation."""
    store = resolve(store)
    item = get_item(item_id, store=store)
    changes = {k: v for k, v in patch.items() if k in ("name", "category_id", "unit")}
    if "name" in changes:
        changes["name"] = require_text(changes["name"], "name")
    if changes.get("category_id") is not None:
        get_category(changes["category_id"], store=store)

    def _op():
        try:
            store.update(item, **changes)
        except IntegrityViolation:
            raise ConflictError(f"{item.family} {changes.get('name')!r} already exists")
        store.commit()
        return item

    return run_with_retry(_op, store=store)


def delete_item(item_id: int, *, store: Store | None = None) -> None:
    """
    Delete an item together with its opening stocks and movements.

    Items referenced by purchases or orders are kept; those records are the
    financial history and must be removed first.
    """
    store = resolve(store)
    get_item(item_id, store=store)
    if store.first(SupplyItem, eq("item_id", item_id)) is not None:
        raise ConflictError("item has purchases recorded against it")
    if store.first(OrderLine, eq("item_id", item_id)) is not None:
        raise ConflictError("item appears on orders")

    def _op():
        store.delete(StockInflow, eq("item_id", item_id))
        store.delete(StockOutflow, eq("item_id", item_id))
        store.delete(OpeningStock, eq("item_id", item_id))
        store.delete(TrackedItem, eq("id", item_id))
        store.commit()
        logger.info("Deleted item %s with its stock history", item_id)

    run_with_retry(_op, store=store)


# ---------------------------------------------------------------------------
# History & balances
# ---------------------------------------------------------------------------

def _history(store: Store, item_ids: list[int]) -> tuple[list, list, list]:
    if not item_ids:
        return [], [], []
    scope = where("item_id", "in", item_ids)
    return (
        store.query(OpeningStock, scope, order_by="date"),
        store.query(StockInflow, scope, order_by="date"),
        store.query(StockOutflow, scope, order_by="date"),
    )


def get_balance(item_id: int, as_of=None, *, store: Store | None = None) -> int:
    """Quantity on hand for the item as of a date (None: everything recorded)."""
    store = resolve(store)
    item = get_item(item_id, store=store)
    as_of_date = optional_date(as_of, "as_of")
    openings, inflows, outflows = _history(store, [item.id])
    return reconciliation.compute_balance(
        item.id, as_of_date, openings, inflows, outflows,
        exact_match=exact_match_for(item.family),
    )


def get_balance_summary(item_id: int, as_of=None, *, store: Store | None = None) -> dict:
    store = resolve(store)
    item = get_item(item_id, store=store)
    as_of_date = optional_date(as_of, "as_of")
    exact = exact_match_for(item.family)
    openings, inflows, outflows = _history(store, [item.id])

    baseline = reconciliation.select_baseline(item.id, as_of_date, openings, exact_match=exact)
    quantity = reconciliation.compute_balance(
        item.id, as_of_date, openings, inflows, outflows, exact_match=exact
    )
    if quantity < 0:
        logger.warning("Item %s has a negative balance %s as of %s", item.id, quantity, as_of_date)

    return {
        "item_id": item.id,
        "name": item.name,
        "family": item.family,
        "as_of": to_iso_date(as_of_date),
        "quantity_on_hand": quantity,
        "opening_stock_match": "exact" if exact else "strict",
        "baseline": baseline.to_dict() if baseline is not None else None,
    }


def get_movement_summary(item_id: int, *, start, end, store: Store | None = None) -> dict:
    store = resolve(store)
    item = get_item(item_id, store=store)
    start_date = require_date(start, "start")
    end_date = require_date(end, "end")
    if end_date < start_date:
        raise ValidationError("end must not be before start")

    openings, inflows, outflows = _history(store, [item.id])
    summary = reconciliation.movement_summary(
        item.id, start_date, end_date, openings, inflows, outflows,
        exact_match=exact_match_for(item.family),
    )
    return summary.to_dict()


def list_transactions(item_id: int, *, limit: int = 200, store: Store | None = None) -> list[dict]:
    """Inflows and outflows of an item merged, newest first."""
    store = resolve(store)
    get_item(item_id, store=store)
    _, inflows, outflows = _history(store, [item_id])
    rows = [r.to_dict() for r in inflows] + [r.to_dict() for r in outflows]
    rows.sort(key=lambda r: (r["date"], r["created_at"] or "", r["id"]), reverse=True)
    return rows[:limit]


def stock_summary(*, family: str, as_of=None, store: Store | None = None) -> dict:
    """Every item of a family with its balance, plus totals per category."""
    store = resolve(store)
    if family not in FAMILIES:
        raise ValidationError(f"family must be one of: {', '.join(FAMILIES)}")
    as_of_date = optional_date(as_of, "as_of")
    exact = exact_match_for(family)

    items = list_items(family=family, store=store)
    categories = {c.id: c.name for c in list_categories(store=store)}
    openings, inflows, outflows = _history(store, [i.id for i in items])

    rows = []
    totals: dict = {}
    for item in items:
        qty = reconciliation.compute_balance(
            item.id, as_of_date, openings, inflows, outflows, exact_match=exact
        )
        if qty < 0:
            logger.warning("Item %s has a negative balance %s", item.id, qty)
        category_name = categories.get(item.category_id, "Uncategorized")
        row = item.to_dict()
        row["category_name"] = category_name
        row["quantity_on_hand"] = qty
        rows.append(row)

        bucket = totals.setdefault(
            item.category_id,
            {"category_id": item.category_id, "category_name": category_name,
             "item_count": 0, "quantity_on_hand": 0},
        )
        bucket["item_count"] += 1
        bucket["quantity_on_hand"] += qty

    grand_total = sum(r["quantity_on_hand"] for r in rows)
    category_totals = sorted(totals.values(), key=lambda b: b["category_name"])
    for bucket in category_totals:
        bucket["share_pct"] = (
            round(bucket["quantity_on_hand"] / grand_total * 100.0, 2) if grand_total > 0 else None
        )

    return {
        "family": family,
        "as_of": to_iso_date(as_of_date),
        "items": rows,
        "category_totals": category_totals,
        "total_quantity": grand_total,
    }


# ---------------------------------------------------------------------------
# Movements
# ---------------------------------------------------------------------------

def record_inflow(
    *,
    item_id: int,
    quantity: int,
    source: str,
    date=None,
    note: str | None = None,
    created_by: str | None = None,
    delivery_id: int | None = None,
    store: Store | None = None,
    commit: bool = True,
) -> StockInflow:
    store = resolve(store)
    get_item(item_id, store=store)
    quantity = _check_quantity(quantity)
    source = require_text(source, "source")
    movement_date = require_date(date, "date", default=today())

    def _op():
        row = store.insert(
            StockInflow,
            item_id=item_id,
            date=movement_date,
            quantity=quantity,
            source=source,
            note=note,
            created_by=created_by,
            delivery_id=delivery_id,
        )
        if commit:
            store.commit()
        return row

    if not commit:
        return _op()
    return run_with_retry(_op, store=store)


def record_outflow(
    *,
    item_id: int,
    quantity: int,
    reason: str,
    date=None,
    note: str | None = None,
    created_by: str | None = None,
    store: Store | None = None,
) -> StockOutflow:
    """
    Record an outflow as an unsigned magnitude.

    Negative input is refused rather than flipped: a negative outflow is
    almost always a legacy pre-negated value and must be corrected at the
    source.
    """
    store = resolve(store)
    item = get_item(item_id, store=store)
    if isinstance(quantity, int) and quantity < 0:
        raise ValidationError("quantity must be a positive magnitude; outflows are stored unsigned")
    quantity = _check_quantity(quantity)
    reason = require_text(reason, "reason")
    movement_date = require_date(date, "date", default=today())

    if item.family == FAMILY_MATERIAL and reason not in MATERIAL_OUTFLOW_REASONS:
        raise ValidationError(f"reason must be one of: {', '.join(MATERIAL_OUTFLOW_REASONS)}")

    def _op():
        if item.family == FAMILY_PRODUCT:
            available = get_balance(item.id, store=store)
            if available < quantity:
                raise ConflictError(f"not enough quantity available ({available} on hand)")

        row = store.insert(
            StockOutflow,
            item_id=item_id,
            date=movement_date,
            quantity=quantity,
            reason=reason,
            note=note,
            created_by=created_by,
        )
        store.commit()
        return row

    return run_with_retry(_op, store=store)


def list_inflows(item_id: int, *, start=None, end=None, store: Store | None = None) -> list[StockInflow]:
    return _list_movements(StockInflow, item_id, start=start, end=end, store=store)


def list_outflows(item_id: int, *, start=None, end=None, store: Store | None = None) -> list[StockOutflow]:
    return _list_movements(StockOutflow, item_id, start=start, end=end, store=store)


def _list_movements(model, item_id: int, *, start, end, store: Store | None) -> list:
    store = resolve(store)
    get_item(item_id, store=store)
    criteria = [eq("item_id", item_id)]
    start_date = optional_date(start, "start")
    end_date = optional_date(end, "end")
    if start_date is not None:
        criteria.append(where("date", "ge", start_date))
    if end_date is not None:
        criteria.append(where("date", "lt", end_date))
    return store.query(model, *criteria, order_by="date", descending=True)


def delete_inflow(inflow_id: int, *, store: Store | None = None) -> None:
    store = resolve(store)
    row = store.get(StockInflow, inflow_id)
    if row is None:
        raise NotFoundError("inflow not found")
    if row.delivery_id is not None:
        raise ConflictError("inflow belongs to a delivery; delete the delivery instead")

    def _op():
        store.delete(StockInflow, eq("id", inflow_id))
        store.commit()

    run_with_retry(_op, store=store)


def delete_outflow(outflow_id: int, *, store: Store | None = None) -> None:
    store = resolve(store)
    if store.get(StockOutflow, outflow_id) is None:
        raise NotFoundError("outflow not found")

    def _op():
        store.delete(StockOutflow, eq("id", outflow_id))
        store.commit()

    run_with_retry(_op, store=store)


# ---------------------------------------------------------------------------
# Opening stocks
# ---------------------------------------------------------------------------

def record_opening_stock(
    *,
    item_id: int,
    date,
    quantity: int,
    note: str | None = None,
    store: Store | None = None,
) -> OpeningStock:
    """
    Declare the balance of an item on a date.

    The (item_id, date) unique constraint rejects a second declaration for
    the same day; nothing is written in that case.
    """
    store = resolve(store)
    get_item(item_id, store=store)
    quantity = _check_quantity(quantity, allow_zero=True)
    stock_date = require_date(date, "date")

    def _op():
        try:
            row = store.insert(
                OpeningStock, item_id=item_id, date=stock_date, quantity=quantity, note=note
            )
        except IntegrityViolation:
            raise ConflictError(
                f"opening stock already recorded for item {item_id} on {stock_date.isoformat()}"
            )
        store.commit()
        return row

    return run_with_retry(_op, store=store)


def get_opening_stock(opening_id: int, *, store: Store | None = None) -> OpeningStock:
    row = resolve(store).get(OpeningStock, opening_id)
    if row is None:
        raise NotFoundError("opening stock not found")
    return row


def list_opening_stocks(item_id: int, *, store: Store | None = None) -> list[OpeningStock]:
    store = resolve(store)
    get_item(item_id, store=store)
    return store.query(OpeningStock, eq("item_id", item_id), order_by="date", descending=True)


def update_opening_stock(
    opening_id: int,
    *,
    quantity: int | None = None,
    note=_UNSET,
    store: Store | None = None,
) -> OpeningStock:
    """
    The date is part of the key; move a snapshot by deleting and re-recording it.

    note=None clears the note; leaving it out keeps the current one.
    """
    store = resolve(store)
    row = get_opening_stock(opening_id, store=store)
    changes: dict = {}
    if quantity is not None:
        changes["quantity"] = _check_quantity(quantity, allow_zero=True)
    if note is not _UNSET:
        changes["note"] = note

    def _op():
        store.update(row, **changes)
        store.commit()
        return row

    return run_with_retry(_op, store=store)


def delete_opening_stock(opening_id: int, *, store: Store | None = None) -> None:
    store = resolve(store)
    get_opening_stock(opening_id, store=store)

    def _op():
        store.delete(OpeningStock, eq("id", opening_id))
        store.commit()

    run_with_retry(_op, store=store)


def check_opening_stock(opening_id: int, *, store: Store | None = None) -> dict:
    """Recorded vs calculated quantity for an opening stock (match / mismatch / initial)."""
    store = resolve(store)
    row = get_opening_stock(opening_id, store=store)
    openings, inflows, outflows = _history(store, [row.item_id])
    check = reconciliation.opening_stock_status(row, openings, inflows, outflows)
    if check.status == reconciliation.STATUS_MISMATCH:
        logger.warning(
            "Opening stock %s for item %s differs from calculated balance by %s",
            row.id, row.item_id, check.difference,
        )
    result = check.to_dict()
    result["item_id"] = row.item_id
    result["date"] = to_iso_date(row.date)
    return result
