# Overview: CSV rendering of tables and reports for download.

# backend/bevledger/services/export_service.py
from __future__ import annotations

import csv
import io
from typing import Iterable

from ..store import Store, resolve
from . import ledger_service, order_service, stock_service


ITEM_COLUMNS = ("id", "name", "family", "category_name", "unit", "quantity_on_hand")
TRANSACTION_COLUMNS = ("id", "date", "type", "quantity", "source", "reason", "note", "created_by")
EXPENSE_COLUMNS = ("id", "date", "amount_spent", "category", "department", "item", "description")
LEDGER_COLUMNS = ("date", "kind", "source_id", "description", "inflow", "outflow", "balance")
PAYMENT_COLUMNS = (
    "id", "paid_on", "marketer_id", "order_id", "amount_paid",
    "mode_of_payment", "bank_name", "mobile_provider", "purpose",
)


def to_csv(rows: Iterable[dict], columns: Iterable[str]) -> str:
    """Header row plus one line per dict; missing keys are left blank."""
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=list(columns), extrasaction="ignore", lineterminator="\n")
    writer.writeheader()
    for row in rows:
        writer.writerow({k: ("" if v is None else v) for k, v in row.items()})
    return buf.getvalue()


def items_csv(*, family: str, store: Store | None = None) -> str:
    summary = stock_service.stock_summary(family=family, store=resolve(store))
    return to_csv(summary["items"], ITEM_COLUMNS)


def transactions_csv(item_id: int, *, store: Store | None = None) -> str:
    rows = stock_service.list_transactions(item_id, limit=100_000, store=resolve(store))
    return to_csv(rows, TRANSACTION_COLUMNS)


def expenses_csv(*, start=None, end=None, store: Store | None = None) -> str:
    rows = ledger_service.list_expenses(start=start, end=end, store=resolve(store))
    return to_csv((e.to_dict() for e in rows), EXPENSE_COLUMNS)


def ledger_csv(*, start=None, end=None, store: Store | None = None) -> str:
    ledger = ledger_service.general_ledger(start=start, end=end, store=resolve(store))
    return to_csv(ledger["entries"], LEDGER_COLUMNS)


def payments_csv(*, start=None, end=None, store: Store | None = None) -> str:
    rows = order_service.list_payments(start=start, end=end, store=resolve(store))
    return to_csv((p.to_dict() for p in rows), PAYMENT_COLUMNS)
