# Overview: Service-layer aggregation for the analytics dashboards; read-only.

# backend/bevledger/services/analytics_service.py
"""
Analytics (read-only)

- Current assets: per material, available = reconciled balance (all
  history) and prepaid = purchased - delivered, clamped to >= 0. Cash
  assets = payments - expenses + accounts receivable, where receivable only
  counts orders with a positive balance.
- Financial health over a window: liquidity = cash / supplier liabilities,
  cash flow = (income - expenses) / liabilities (both 0 with no
  liabilities), burn = expenses - income, runway = cash / max(burn, 1).
- Cost breakdown: expenses bucketed by item/department (Salary, Tax or URA,
  NSSF, other tax/fee/levy items, other).
- Payment status per order: days from order_date to the first payment.
  No payment -> Unpaid; days <= PAYMENT_GRACE_DAYS -> On Time; else Late.
- Forecasts: monthly sums fitted with a straight line (LinearRegression on
  the month index) and projected FORECAST_MONTHS ahead. Fewer than two
  months of data gives a flat projection of the last value.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Optional

import numpy as np
from flask import current_app, has_app_context
from sklearn.linear_model import LinearRegression

from ..models import (
    TrackedItem,
    OpeningStock,
    StockInflow,
    StockOutflow,
    Supplier,
    SupplyItem,
    Delivery,
    Marketer,
    Order,
    OrderLine,
    Payment,
    Expense,
)
from ..models.stock import FAMILY_MATERIAL, FAMILY_PRODUCT, FAMILIES
from ..store import Store, eq, where, resolve
from ..time_utils import month_key, add_months, to_iso_date
from ..validation import ValidationError
from . import ledger_service, reconciliation
from .stock_service import exact_match_for, stock_summary


logger = logging.getLogger(__name__)

STATUS_UNPAID = "Unpaid"
STATUS_ON_TIME = "On Time"
STATUS_LATE = "Late"

FORECAST_SERIES = ("expenses", "payments", "product_outflows")


def _config(key: str, default):
    if has_app_context():
        return current_app.config.get(key, default)
    return default


# ---------------------------------------------------------------------------
# Current assets
# ---------------------------------------------------------------------------

def material_assets(*, store: Store | None = None) -> list[dict]:
    store = resolve(store)
    materials = store.query(TrackedItem, eq("family", FAMILY_MATERIAL), order_by="name")
    if not materials:
        return []
    ids = [m.id for m in materials]
    scope = where("item_id", "in", ids)
    openings = store.query(OpeningStock, scope)
    inflows = store.query(StockInflow, scope)
    outflows = store.query(StockOutflow, scope)
    purchases = store.query(SupplyItem, scope)
    deliveries = []
    if purchases:
        deliveries = store.query(Delivery, where("supply_item_id", "in", [p.id for p in purchases]))

    purchased: dict[int, int] = {}
    purchase_item = {}
    for p in purchases:
        purchased[p.item_id] = purchased.get(p.item_id, 0) + p.quantity
        purchase_item[p.id] = p.item_id
    delivered: dict[int, int] = {}
    for d in deliveries:
        item_id = purchase_item[d.supply_item_id]
        delivered[item_id] = delivered.get(item_id, 0) + d.quantity

    exact = exact_match_for(FAMILY_MATERIAL)
    rows = []
    for m in materials:
        available = reconciliation.compute_balance(
            m.id, None, openings, inflows, outflows, exact_match=exact
        )
        prepaid = max(0, purchased.get(m.id, 0) - delivered.get(m.id, 0))
        rows.append({
            "item_id": m.id,
            "name": m.name,
            "available": available,
            "prepaid": prepaid,
            "total": available + prepaid,
        })
    return rows


def order_balances(*, store: Store | None = None) -> list[dict]:
    """Balance (total - paid) of every non-cancelled order."""
    store = resolve(store)
    orders = [o for o in store.query(Order, order_by="order_date") if o.status != "cancelled"]
    paid: dict[int, int] = {}
    for p in store.query(Payment, where("order_id", "ne", None)):
        if p.order_id is not None:
            paid[p.order_id] = paid.get(p.order_id, 0) + p.amount_paid
    return [
        {
            "order_id": o.id,
            "marketer_id": o.marketer_id,
            "total_amount": o.total_amount,
            "amount_paid": paid.get(o.id, 0),
            "balance": o.total_amount - paid.get(o.id, 0),
        }
        for o in orders
    ]


def current_assets(*, store: Store | None = None) -> dict:
    store = resolve(store)
    materials = material_assets(store=store)

    received = sum(p.amount_paid for p in store.query(Payment))
    spent = sum(e.amount_spent for e in store.query(Expense))
    available_cash = received - spent

    receivables = [b for b in order_balances(store=store) if b["balance"] > 0]
    accounts_receivable = sum(b["balance"] for b in receivables)

    return {
        "materials": materials,
        "material_totals": {
            "available": sum(m["available"] for m in materials),
            "prepaid": sum(m["prepaid"] for m in materials),
        },
        "cash": {
            "available": available_cash,
            "accounts_receivable": accounts_receivable,
            "total": available_cash + accounts_receivable,
        },
        "receivables": receivables,
    }


def _window(column: str, start: Optional[date], end: Optional[date]) -> list:
    criteria = []
    if start is not None:
        criteria.append(where(column, "ge", start))
    if end is not None:
        criteria.append(where(column, "lt", end))
    return criteria


# ---------------------------------------------------------------------------
# Financial health
# ---------------------------------------------------------------------------

def financial_health(
    *,
    start: Optional[date] = None,
    end: Optional[date] = None,
    store: Store | None = None,
) -> dict:
    """
    Liquidity over [start, end).

    Income, expenses and supplier liabilities are taken inside the window;
    cash available is the cash position at `end` (all earlier history).
    Ratios against liabilities are 0 when nothing is owed.
    """
    store = resolve(store)
    payments = store.query(Payment, *_window("paid_on", start, end))
    expenses = store.query(Expense, *_window("date", start, end))
    purchases = store.query(SupplyItem, *_window("purchase_date", start, end))

    income = sum(p.amount_paid for p in payments)
    spent = sum(e.amount_spent for e in expenses)
    cash = ledger_service.cash_position(end=end, store=store)["cash"]
    liabilities = sum(p.balance for p in purchases)
    liabilities_paid = sum(p.amount_paid or 0 for p in purchases)
    burn_rate = spent - income

    by_item: dict[str, int] = {}
    for e in expenses:
        name = e.item or e.category
        by_item[name] = by_item.get(name, 0) + e.amount_spent
    expense_by_item = [
        {"name": name, "total": total}
        for name, total in sorted(by_item.items(), key=lambda kv: (-kv[1], kv[0]))
    ]

    return {
        "start": to_iso_date(start),
        "end": to_iso_date(end),
        "income": income,
        "expenses": spent,
        "cash_available": cash,
        "liabilities": liabilities,
        "liquidity_ratio": round(cash / liabilities, 4) if liabilities > 0 else 0.0,
        "cash_flow_ratio": round((income - spent) / liabilities, 4) if liabilities > 0 else 0.0,
        "burn_rate": burn_rate,
        "runway": int(round(cash / max(burn_rate, 1))),
        "cash_flow": {"inflow": income, "outflow": spent, "net": income - spent},
        "expense_by_item": expense_by_item,
        "largest_expenses": expense_by_item[:3],
        "liabilities_status": {"paid": liabilities_paid, "pending": liabilities},
    }


# ---------------------------------------------------------------------------
# Cost breakdown
# ---------------------------------------------------------------------------

COST_SALARY = "salary"
COST_TAX = "tax"
COST_NSSF = "nssf"
COST_OTHER_TAXES = "other_taxes"
COST_OTHER = "other"
COST_BUCKETS = (COST_SALARY, COST_TAX, COST_NSSF, COST_OTHER_TAXES, COST_OTHER)

APPROVED_ORDER_STATUSES = ("confirmed", "delivered")


def expense_bucket(expense) -> str:
    """Cost bucket of one expense, judged by its item and paying department."""
    item = (expense.item or "").strip()
    department = (expense.department or "").strip()
    if item == "Salary":
        return COST_SALARY
    if item == "NSSF" or department == "NSSF":
        return COST_NSSF
    if item == "Tax" or department == "URA":
        return COST_TAX
    lowered = item.lower()
    if any(word in lowered for word in ("tax", "fee", "levy")):
        return COST_OTHER_TAXES
    return COST_OTHER


def cost_breakdown(
    *,
    start: Optional[date] = None,
    end: Optional[date] = None,
    store: Store | None = None,
) -> dict:
    """
    Expenses split into salary / tax / NSSF / other taxes / other, the
    effective tax rate against payments received, and material purchase
    cost per unit sold on approved orders.
    """
    store = resolve(store)
    expenses = ledger_service.list_expenses(start=start, end=end, store=store)

    buckets = {name: {"total": 0, "count": 0} for name in COST_BUCKETS}
    for e in expenses:
        bucket = buckets[expense_bucket(e)]
        bucket["total"] += e.amount_spent
        bucket["count"] += 1

    taxes_paid = sum(buckets[name]["total"] for name in (COST_TAX, COST_NSSF, COST_OTHER_TAXES))
    revenue = sum(p.amount_paid for p in store.query(Payment, *_window("paid_on", start, end)))
    nssf = buckets[COST_NSSF]

    material_cost = sum(p.total_cost for p in store.query(SupplyItem, *_window("purchase_date", start, end)))
    approved = [
        o.id for o in store.query(Order, *_window("order_date", start, end))
        if o.status in APPROVED_ORDER_STATUSES
    ]
    sales_volume = 0
    if approved:
        sales_volume = sum(line.quantity for line in store.query(OrderLine, where("order_id", "in", approved)))

    return {
        "start": to_iso_date(start),
        "end": to_iso_date(end),
        "buckets": buckets,
        "total_expenses": sum(b["total"] for b in buckets.values()),
        "taxes_paid": taxes_paid,
        "revenue": revenue,
        "effective_tax_rate": round(taxes_paid / revenue, 4) if revenue else None,
        "average_nssf_payment": round(nssf["total"] / nssf["count"], 2) if nssf["count"] else None,
        "material_cost": material_cost,
        "sales_volume": sales_volume,
        "cost_per_unit": round(material_cost / sales_volume, 2) if sales_volume else None,
    }


# ---------------------------------------------------------------------------
# Payment punctuality
# ---------------------------------------------------------------------------

def classify_payment(order_date: date, first_paid_on: Optional[date], *, grace_days: int = 0) -> tuple[str, Optional[int]]:
    """(status, days_late) for one order; days_late is None when unpaid."""
    if first_paid_on is None:
        return STATUS_UNPAID, None
    days = (first_paid_on - order_date).days
    return (STATUS_ON_TIME if days <= grace_days else STATUS_LATE), days


def payment_status(*, store: Store | None = None) -> dict:
    store = resolve(store)
    grace = int(_config("PAYMENT_GRACE_DAYS", 0))
    orders = [o for o in store.query(Order, order_by="order_date") if o.status != "cancelled"]
    marketers = {m.id: m.name for m in store.query(Marketer)}

    first_payment: dict[int, date] = {}
    for p in store.query(Payment, order_by="paid_on"):
        if p.order_id is not None and p.order_id not in first_payment:
            first_payment[p.order_id] = p.paid_on

    rows = []
    by_marketer: dict[int, dict] = {}
    for o in orders:
        status, days = classify_payment(o.order_date, first_payment.get(o.id), grace_days=grace)
        rows.append({
            "order_id": o.id,
            "marketer_id": o.marketer_id,
            "marketer_name": marketers.get(o.marketer_id, "Unknown"),
            "order_date": to_iso_date(o.order_date),
            "first_payment_date": to_iso_date(first_payment.get(o.id)),
            "days_late": days,
            "status": status,
        })
        counts = by_marketer.setdefault(
            o.marketer_id,
            {"marketer_id": o.marketer_id, "marketer_name": marketers.get(o.marketer_id, "Unknown"),
             STATUS_ON_TIME: 0, STATUS_LATE: 0, STATUS_UNPAID: 0},
        )
        counts[status] += 1

    on_time = sum(1 for r in rows if r["status"] == STATUS_ON_TIME)
    late = [r for r in rows if r["status"] == STATUS_LATE]
    paid_count = on_time + len(late)
    return {
        "grace_days": grace,
        "orders": rows,
        "on_time": on_time,
        "late": len(late),
        "unpaid": len(rows) - paid_count,
        "on_time_pct": round(on_time / paid_count * 100.0, 2) if paid_count else 0.0,
        "average_days_late": round(sum(r["days_late"] for r in late) / len(late), 2) if late else 0.0,
        "by_marketer": sorted(by_marketer.values(), key=lambda c: c["marketer_name"]),
    }


# ---------------------------------------------------------------------------
# Suppliers & categories
# ---------------------------------------------------------------------------

def supplier_analysis(*, store: Store | None = None) -> dict:
    store = resolve(store)
    names = {s.id: s.name for s in store.query(Supplier)}
    stats: dict[int, dict] = {}
    for p in store.query(SupplyItem):
        row = stats.setdefault(
            p.supplier_id,
            {"supplier_id": p.supplier_id, "name": names.get(p.supplier_id, "Unknown"),
             "total_spend": 0, "total_paid": 0, "items": 0},
        )
        row["total_spend"] += p.total_cost
        row["total_paid"] += p.amount_paid or 0
        row["items"] += 1
    for row in stats.values():
        row["outstanding"] = row["total_spend"] - row["total_paid"]

    suppliers = sorted(stats.values(), key=lambda r: (-r["total_spend"], r["name"]))
    return {
        "suppliers": suppliers,
        "total_spend": sum(r["total_spend"] for r in suppliers),
        "total_paid": sum(r["total_paid"] for r in suppliers),
        "outstanding": sum(r["outstanding"] for r in suppliers),
    }


def category_totals(*, family: str, store: Store | None = None) -> list[dict]:
    return stock_summary(family=family, store=store)["category_totals"]


# ---------------------------------------------------------------------------
# Forecasts
# ---------------------------------------------------------------------------

def monthly_series(values: list[tuple[date, int]]) -> list[tuple[str, int]]:
    """
    Sum (date, amount) pairs into consecutive calendar months.

    Months without data inside the covered range are present with 0.
    """
    if not values:
        return []
    buckets: dict[str, int] = {}
    for d, amount in values:
        key = month_key(d)
        buckets[key] = buckets.get(key, 0) + amount
    first = min(d for d, _ in values).replace(day=1)
    last = max(d for d, _ in values).replace(day=1)
    series = []
    cursor = first
    while cursor <= last:
        key = month_key(cursor)
        series.append((key, buckets.get(key, 0)))
        cursor = add_months(cursor, 1)
    return series


def linear_forecast(series: list[tuple[str, int]], *, months: int) -> dict:
    """Fit amount ~ month index and project `months` further months."""
    if not series:
        return {"history": [], "forecast": [], "slope": 0.0, "intercept": 0.0}

    history = [{"month": k, "amount": v} for k, v in series]
    last_year, last_month = (int(part) for part in series[-1][0].split("-"))
    last_start = date(last_year, last_month, 1)
    future_keys = [month_key(add_months(last_start, i)) for i in range(1, months + 1)]

    if len(series) < 2:
        flat = float(series[-1][1])
        return {
            "history": history,
            "forecast": [{"month": k, "amount": round(flat, 2)} for k in future_keys],
            "slope": 0.0,
            "intercept": flat,
        }

    X = np.array(range(len(series))).reshape(-1, 1)
    y = np.array([v for _, v in series], dtype=float)
    model = LinearRegression()
    model.fit(X, y)

    future_X = np.array(range(len(series), len(series) + months)).reshape(-1, 1)
    predicted = model.predict(future_X) if months > 0 else []

    return {
        "history": history,
        "forecast": [
            {"month": k, "amount": round(float(v), 2)} for k, v in zip(future_keys, predicted)
        ],
        "slope": round(float(model.coef_[0]), 4),
        "intercept": round(float(model.intercept_), 4),
    }


def forecast(series_name: str, *, months: int | None = None, store: Store | None = None) -> dict:
    store = resolve(store)
    if series_name not in FORECAST_SERIES:
        raise ValidationError(f"series must be one of: {', '.join(FORECAST_SERIES)}")
    if months is None:
        months = int(_config("FORECAST_MONTHS", 3))
    if months < 0 or months > 36:
        raise ValidationError("months must be between 0 and 36")

    if series_name == "expenses":
        values = [(e.date, e.amount_spent) for e in store.query(Expense)]
    elif series_name == "payments":
        values = [(p.paid_on, p.amount_paid) for p in store.query(Payment)]
    else:
        products = store.query(TrackedItem, eq("family", FAMILY_PRODUCT))
        values = []
        if products:
            rows = store.query(StockOutflow, where("item_id", "in", [p.id for p in products]))
            values = [(r.date, r.quantity) for r in rows]

    result = linear_forecast(monthly_series(values), months=months)
    result["series"] = series_name
    result["months"] = months
    if result["forecast"] and result["forecast"][-1]["amount"] < 0:
        logger.warning("Forecast for %s projects a negative value", series_name)
    return result


def overview(*, store: Store | None = None) -> dict:
    """Headline numbers for the dashboard landing page."""
    store = resolve(store)
    assets = current_assets(store=store)
    return {
        "items": {family: len(store.query(TrackedItem, eq("family", family))) for family in FAMILIES},
        "suppliers": len(store.query(Supplier)),
        "marketers": len(store.query(Marketer)),
        "open_orders": len([o for o in store.query(Order) if o.status in ("pending", "confirmed")]),
        "cash": assets["cash"],
        "material_totals": assets["material_totals"],
    }
