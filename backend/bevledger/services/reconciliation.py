# Overview: Point-in-time stock balance computation over opening stocks and movements.

# backend/bevledger/services/reconciliation.py
"""
Stock Reconciliation Invariants & Date Semantics (authoritative)

Inputs are plain row sequences (ORM rows or anything with item_id, date and
quantity attributes). Nothing here touches the database.

Balance:
- balance(item, as_of) = baseline + SUM(inflows) - SUM(outflows)
  where baseline is the latest opening stock dated before as_of and the
  movement window is [baseline.date, as_of).
- With no opening stock the baseline is 0 and the window starts at date.min.
- Movements dated exactly on as_of are excluded (strict <).
- exact_match: an opening stock dated exactly on as_of is returned as-is.
  Without exact_match that record is ignored and the previous one is used.
- as_of=None means "everything recorded": the latest opening stock overall
  is the baseline and every movement from its date onwards counts.

Sign convention:
- Outflow rows hold unsigned magnitudes. The sign is applied here, never in
  storage.

Negative balances are returned as-is.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional, Sequence


EARLIEST = date.min

STATUS_MATCH = "match"
STATUS_MISMATCH = "mismatch"
STATUS_INITIAL = "initial"


def _for_item(rows: Iterable, item_id: int) -> list:
    return [r for r in rows if r.item_id == item_id]


def select_baseline(
    item_id: int,
    as_of: Optional[date],
    opening_stocks: Iterable,
    *,
    exact_match: bool = True,
):
    """Return the opening-stock row that anchors balance(item_id, as_of), or None."""
    candidates = _for_item(opening_stocks, item_id)
    if as_of is None:
        eligible = candidates
    else:
        if exact_match:
            for row in candidates:
                if row.date == as_of:
                    return row
        eligible = [r for r in candidates if r.date < as_of]
    if not eligible:
        return None
    return max(eligible, key=lambda r: (r.date, r.id or 0))


def window_total(
    rows: Iterable,
    item_id: int,
    start: date,
    end: Optional[date],
) -> int:
    """SUM(quantity) of the item's rows with start <= date < end (end=None: open)."""
    return sum(
        r.quantity
        for r in rows
        if r.item_id == item_id
        and r.date >= start
        and (end is None or r.date < end)
    )


def compute_balance(
    item_id: int,
    as_of: Optional[date],
    opening_stocks: Iterable,
    inflows: Iterable,
    outflows: Iterable,
    *,
    exact_match: bool = True,
) -> int:
    opening_stocks = list(opening_stocks)
    baseline = select_baseline(item_id, as_of, opening_stocks, exact_match=exact_match)

    if baseline is not None and as_of is not None and baseline.date == as_of:
        return baseline.quantity

    start = baseline.date if baseline is not None else EARLIEST
    quantity = baseline.quantity if baseline is not None else 0

    return (
        quantity
        + window_total(inflows, item_id, start, as_of)
        - window_total(outflows, item_id, start, as_of)
    )


@dataclass(frozen=True)
class MovementSummary:
    item_id: int
    start: date
    end: date
    opening_balance: int
    inflow_total: int
    outflow_total: int
    closing_balance: int

    @property
    def snapshot_adjustment(self) -> int:
        """Effect of opening stocks declared inside the window."""
        return self.closing_balance - (
            self.opening_balance + self.inflow_total - self.outflow_total
        )

    def to_dict(self) -> dict:
        return {
            "item_id": self.item_id,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "opening_balance": self.opening_balance,
            "inflow_total": self.inflow_total,
            "outflow_total": self.outflow_total,
            "closing_balance": self.closing_balance,
            "snapshot_adjustment": self.snapshot_adjustment,
        }


def movement_summary(
    item_id: int,
    start: date,
    end: date,
    opening_stocks: Sequence,
    inflows: Sequence,
    outflows: Sequence,
    *,
    exact_match: bool = True,
) -> MovementSummary:
    """Balances at start and end plus the movement totals of [start, end)."""
    if end < start:
        raise ValueError("end must not be before start")

    opening = compute_balance(
        item_id, start, opening_stocks, inflows, outflows, exact_match=exact_match
    )
    closing = compute_balance(
        item_id, end, opening_stocks, inflows, outflows, exact_match=exact_match
    )
    return MovementSummary(
        item_id=item_id,
        start=start,
        end=end,
        opening_balance=opening,
        inflow_total=window_total(inflows, item_id, start, end),
        outflow_total=window_total(outflows, item_id, start, end),
        closing_balance=closing,
    )


@dataclass(frozen=True)
class OpeningStockCheck:
    record_id: int
    recorded: int
    calculated: int
    status: str

    @property
    def difference(self) -> int:
        return self.recorded - self.calculated

    def to_dict(self) -> dict:
        return {
            "opening_stock_id": self.record_id,
            "recorded": self.recorded,
            "calculated": self.calculated,
            "difference": self.difference,
            "status": self.status,
        }


def opening_stock_status(
    record,
    opening_stocks: Sequence,
    inflows: Sequence,
    outflows: Sequence,
) -> OpeningStockCheck:
    """
    Compare a declared opening stock against the balance the earlier history
    implies for the same date. A mismatch is informational, not an error.
    """
    others = [o for o in opening_stocks if o.id != record.id]
    calculated = compute_balance(
        record.item_id, record.date, others, inflows, outflows, exact_match=False
    )

    has_history = (
        select_baseline(record.item_id, record.date, others, exact_match=False) is not None
        or any(r.item_id == record.item_id and r.date < record.date for r in inflows)
        or any(r.item_id == record.item_id and r.date < record.date for r in outflows)
    )
    if not has_history:
        status = STATUS_INITIAL
    elif calculated == record.quantity:
        status = STATUS_MATCH
    else:
        status = STATUS_MISMATCH

    return OpeningStockCheck(
        record_id=record.id,
        recorded=record.quantity,
        calculated=calculated,
        status=status,
    )


@dataclass(frozen=True)
class LedgerEntry:
    date: date
    inflow: int = 0
    outflow: int = 0

    @property
    def net(self) -> int:
        return self.inflow - self.outflow


def running_balance(entries: Iterable[LedgerEntry], *, opening: int = 0) -> list[int]:
    """Cumulative balance after each entry, in the order given."""
    balances = []
    balance = opening
    for entry in entries:
        balance += entry.net
        balances.append(balance)
    return balances
