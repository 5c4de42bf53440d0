# Overview: Service-layer operations for expenses and the cash-flow ledgers.

# backend/bevledger/services/ledger_service.py
"""
Bookkeeping Ledgers (authoritative)

- Money in: Payment rows (paid_on). Money out: Expense rows (date).
- General ledger = payments and expenses merged by date, oldest first for
  the running balance, presented newest first.
- Period windows are half-open: start <= date < end.
- Cash position = SUM(payments) - SUM(expenses); it may be negative.
"""
from __future__ import annotations

from datetime import date, timedelta
from typing import Optional

from ..models import Expense, Payment
from ..models.sales import PAYMENT_MODES, PAYMENT_MODE_BANK, PAYMENT_MODE_MOBILE
from ..store import Store, eq, where, resolve
from ..time_utils import today, add_months, to_iso_date
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    NotFoundError,
    validate_payload,
    enforce_amount,
)
from .concurrency import run_with_retry
from .reconciliation import LedgerEntry, running_balance


PERIODS = ("all", "daily", "weekly", "monthly", "yearly")

EXPENSE_POLICY = ModelValidationPolicy(
    writable_fields={"date", "amount_spent", "category", "department", "item", "description"},
    required_on_create={"date", "amount_spent", "category"},
)


def period_window(period: str, *, reference: Optional[date] = None) -> tuple[Optional[date], Optional[date]]:
    """[start, end) for a named period around the reference day; (None, None) for all."""
    if period not in PERIODS:
        raise ValidationError(f"period must be one of: {', '.join(PERIODS)}")
    ref = reference or today()
    if period == "all":
        return None, None
    if period == "daily":
        return ref, ref + timedelta(days=1)
    if period == "weekly":
        start = ref - timedelta(days=ref.weekday())
        return start, start + timedelta(days=7)
    if period == "monthly":
        start = ref.replace(day=1)
        return start, add_months(start, 1)
    start = date(ref.year, 1, 1)
    return start, date(ref.year + 1, 1, 1)


def _date_criteria(column: str, start: Optional[date], end: Optional[date]) -> list:
    criteria = []
    if start is not None:
        criteria.append(where(column, "ge", start))
    if end is not None:
        criteria.append(where(column, "lt", end))
    return criteria


# ---------------------------------------------------------------------------
# Expenses
# ---------------------------------------------------------------------------

def get_expense(expense_id: int, *, store: Store | None = None) -> Expense:
    expense = resolve(store).get(Expense, expense_id)
    if expense is None:
        raise NotFoundError("expense not found")
    return expense


def list_expenses(
    *,
    start: Optional[date] = None,
    end: Optional[date] = None,
    category: str | None = None,
    store: Store | None = None,
) -> list[Expense]:
    criteria = _date_criteria("date", start, end)
    if category:
        criteria.append(eq("category", category))
    return resolve(store).query(Expense, *criteria, order_by="date", descending=True)


def create_expense(payload: dict, *, store: Store | None = None) -> Expense:
    store = resolve(store)
    patch = validate_payload(model=Expense, payload=payload, policy=EXPENSE_POLICY, partial=False)
    enforce_amount(patch, "amount_spent", positive=True)

    def _op():
        expense = store.insert(Expense, **patch)
        store.commit()
        return expense

    return run_with_retry(_op, store=store)


def update_expense(expense_id: int, payload: dict, *, store: Store | None = None) -> Expense:
    store = resolve(store)
    expense = get_expense(expense_id, store=store)
    patch = validate_payload(model=Expense, payload=payload, policy=EXPENSE_POLICY, partial=True)
    enforce_amount(patch, "amount_spent", positive=True)

    def _op():
        store.update(expense, **patch)
        store.commit()
        return expense

    return run_with_retry(_op, store=store)


def delete_expense(expense_id: int, *, store: Store | None = None) -> None:
    store = resolve(store)
    get_expense(expense_id, store=store)

    def _op():
        store.delete(Expense, eq("id", expense_id))
        store.commit()

    run_with_retry(_op, store=store)


def expense_totals_by_category(
    *,
    start: Optional[date] = None,
    end: Optional[date] = None,
    store: Store | None = None,
) -> dict:
    expenses = list_expenses(start=start, end=end, store=store)
    totals: dict[str, int] = {}
    for e in expenses:
        totals[e.category] = totals.get(e.category, 0) + e.amount_spent
    grand_total = sum(totals.values())
    categories = [
        {
            "category": name,
            "total": amount,
            "share_pct": round(amount / grand_total * 100.0, 2) if grand_total else 0.0,
        }
        for name, amount in sorted(totals.items(), key=lambda kv: (-kv[1], kv[0]))
    ]
    return {
        "start": to_iso_date(start),
        "end": to_iso_date(end),
        "categories": categories,
        "total": grand_total,
    }


# ---------------------------------------------------------------------------
# General ledger & accounts
# ---------------------------------------------------------------------------

def general_ledger(
    *,
    start: Optional[date] = None,
    end: Optional[date] = None,
    store: Store | None = None,
) -> dict:
    """
    Payments and expenses in one list with a running balance.

    The running balance starts at the cash position before `start`, so a
    filtered view carries the earlier history forward.
    """
    store = resolve(store)
    payments = store.query(Payment, *_date_criteria("paid_on", start, end), order_by="paid_on")
    expenses = store.query(Expense, *_date_criteria("date", start, end), order_by="date")

    rows = []
    for p in payments:
        rows.append({
            "date": p.paid_on,
            "kind": "payment",
            "source_id": p.id,
            "description": p.purpose or p.mode_of_payment,
            "inflow": p.amount_paid,
            "outflow": 0,
        })
    for e in expenses:
        rows.append({
            "date": e.date,
            "kind": "expense",
            "source_id": e.id,
            "description": e.description or e.item or e.category,
            "inflow": 0,
            "outflow": e.amount_spent,
        })
    # Same-day money in is booked before money out
    rows.sort(key=lambda r: (r["date"], r["kind"] != "payment", r["source_id"]))

    opening = cash_position(end=start, store=store)["cash"] if start is not None else 0
    balances = running_balance(
        (LedgerEntry(r["date"], r["inflow"], r["outflow"]) for r in rows),
        opening=opening,
    )

    entries = []
    for row, balance in zip(rows, balances):
        entries.append({
            "date": to_iso_date(row["date"]),
            "kind": row["kind"],
            "source_id": row["source_id"],
            "description": row["description"],
            "inflow": row["inflow"],
            "outflow": row["outflow"],
            "balance": balance,
        })
    entries.reverse()

    total_in = sum(r["inflow"] for r in rows)
    total_out = sum(r["outflow"] for r in rows)
    return {
        "start": to_iso_date(start),
        "end": to_iso_date(end),
        "opening_balance": opening,
        "total_inflow": total_in,
        "total_outflow": total_out,
        "closing_balance": opening + total_in - total_out,
        "entries": entries,
    }


def accounts_summary(
    *,
    start: Optional[date] = None,
    end: Optional[date] = None,
    store: Store | None = None,
) -> dict:
    """Payment totals by mode, by bank name and by mobile money provider."""
    payments = resolve(store).query(Payment, *_date_criteria("paid_on", start, end))

    by_mode = {mode: 0 for mode in PAYMENT_MODES}
    by_bank: dict[str, int] = {}
    by_provider: dict[str, int] = {}
    for p in payments:
        by_mode[p.mode_of_payment] = by_mode.get(p.mode_of_payment, 0) + p.amount_paid
        if p.mode_of_payment == PAYMENT_MODE_BANK and p.bank_name:
            by_bank[p.bank_name] = by_bank.get(p.bank_name, 0) + p.amount_paid
        if p.mode_of_payment == PAYMENT_MODE_MOBILE and p.mobile_provider:
            by_provider[p.mobile_provider] = by_provider.get(p.mobile_provider, 0) + p.amount_paid

    return {
        "start": to_iso_date(start),
        "end": to_iso_date(end),
        "by_mode": by_mode,
        "by_bank": dict(sorted(by_bank.items())),
        "by_mobile_provider": dict(sorted(by_provider.items())),
        "total": sum(p.amount_paid for p in payments),
    }


def cash_position(
    *,
    start: Optional[date] = None,
    end: Optional[date] = None,
    store: Store | None = None,
) -> dict:
    store = resolve(store)
    received = sum(
        p.amount_paid for p in store.query(Payment, *_date_criteria("paid_on", start, end))
    )
    spent = sum(
        e.amount_spent for e in store.query(Expense, *_date_criteria("date", start, end))
    )
    return {"payments": received, "expenses": spent, "cash": received - spent}
