from datetime import date

import pytest

from bevledger.services import ledger_service, order_service
from bevledger.validation import NotFoundError, ValidationError


@pytest.fixture
def marketer(store):
    return order_service.create_marketer(name="Brian", store=store)


def _pay(store, marketer, amount, day, mode="Cash", **extra):
    return order_service.record_payment(
        marketer_id=marketer.id, amount_paid=amount, mode_of_payment=mode,
        paid_on=day, store=store, **extra,
    )


def _spend(store, amount, day, category="Fuel"):
    return ledger_service.create_expense(
        {"date": day, "amount_spent": amount, "category": category}, store=store
    )


class TestPeriodWindow:
    reference = date(2024, 5, 15)  # a Wednesday

    def test_named_periods(self):
        assert ledger_service.period_window("all", reference=self.reference) == (None, None)
        assert ledger_service.period_window("daily", reference=self.reference) == (
            date(2024, 5, 15), date(2024, 5, 16))
        assert ledger_service.period_window("weekly", reference=self.reference) == (
            date(2024, 5, 13), date(2024, 5, 20))
        assert ledger_service.period_window("monthly", reference=self.reference) == (
            date(2024, 5, 1), date(2024, 6, 1))
        assert ledger_service.period_window("yearly", reference=self.reference) == (
            date(2024, 1, 1), date(2025, 1, 1))

    def test_december_rolls_into_next_year(self):
        assert ledger_service.period_window("monthly", reference=date(2024, 12, 31)) == (
            date(2024, 12, 1), date(2025, 1, 1))

    def test_unknown_period(self):
        with pytest.raises(ValidationError):
            ledger_service.period_window("hourly")


class TestExpenses:
    def test_create_validates_payload(self, store):
        with pytest.raises(ValidationError, match="Missing required fields: category"):
            ledger_service.create_expense({"date": "2024-01-01", "amount_spent": 10}, store=store)
        with pytest.raises(ValidationError):
            ledger_service.create_expense(
                {"date": "2024-01-01", "amount_spent": 0, "category": "Fuel"}, store=store
            )
        with pytest.raises(ValidationError, match="Field not allowed"):
            ledger_service.create_expense(
                {"date": "2024-01-01", "amount_spent": 5, "category": "Fuel", "id": 3}, store=store
            )

    def test_update_and_delete(self, store):
        expense = _spend(store, 100, "2024-01-01")

        ledger_service.update_expense(expense.id, {"amount_spent": 250, "department": "Logistics"}, store=store)
        updated = ledger_service.get_expense(expense.id, store=store)
        assert updated.amount_spent == 250
        assert updated.department == "Logistics"

        ledger_service.delete_expense(expense.id, store=store)
        with pytest.raises(NotFoundError):
            ledger_service.get_expense(expense.id, store=store)

    def test_totals_by_category(self, store):
        _spend(store, 300, "2024-01-01", "Fuel")
        _spend(store, 100, "2024-01-02", "Salaries")
        _spend(store, 100, "2024-02-01", "Fuel")

        report = ledger_service.expense_totals_by_category(
            start=date(2024, 1, 1), end=date(2024, 2, 1), store=store
        )

        assert report["total"] == 400
        assert [(c["category"], c["total"], c["share_pct"]) for c in report["categories"]] == [
            ("Fuel", 300, 75.0),
            ("Salaries", 100, 25.0),
        ]


def test_general_ledger_running_balance(store, marketer):
    _pay(store, marketer, 100, "2024-01-01")
    _spend(store, 30, "2024-01-02")
    _pay(store, marketer, 50, "2024-01-03")

    ledger = ledger_service.general_ledger(store=store)

    assert [e["balance"] for e in ledger["entries"]] == [120, 70, 100]
    assert [e["kind"] for e in ledger["entries"]] == ["payment", "expense", "payment"]
    assert ledger["closing_balance"] == 120


def test_general_ledger_window_carries_opening_balance(store, marketer):
    _pay(store, marketer, 100, "2024-01-01")
    _spend(store, 30, "2024-01-02")
    _pay(store, marketer, 50, "2024-01-03")

    ledger = ledger_service.general_ledger(start=date(2024, 1, 2), store=store)

    assert ledger["opening_balance"] == 100
    assert [e["balance"] for e in ledger["entries"]] == [120, 70]


def test_same_day_payment_booked_before_expense(store, marketer):
    _spend(store, 80, "2024-01-01")
    _pay(store, marketer, 100, "2024-01-01")

    ledger = ledger_service.general_ledger(store=store)

    # newest first: the expense comes after the payment on the same day
    assert [(e["kind"], e["balance"]) for e in ledger["entries"]] == [("expense", 20), ("payment", 100)]


def test_accounts_summary(store, marketer):
    _pay(store, marketer, 100, "2024-01-01")
    _pay(store, marketer, 200, "2024-01-02", mode="Bank", bank_name="Stanbic")
    _pay(store, marketer, 300, "2024-01-03", mode="Bank", bank_name="Centenary")
    _pay(store, marketer, 400, "2024-01-04", mode="Mobile Money", mobile_provider="Airtel")

    summary = ledger_service.accounts_summary(store=store)

    assert summary["by_mode"] == {"Cash": 100, "Bank": 500, "Mobile Money": 400}
    assert summary["by_bank"] == {"Centenary": 300, "Stanbic": 200}
    assert summary["by_mobile_provider"] == {"Airtel": 400}
    assert summary["total"] == 1000


def test_cash_position_may_go_negative(store, marketer):
    _pay(store, marketer, 100, "2024-01-01")
    _spend(store, 250, "2024-01-02")

    assert ledger_service.cash_position(store=store) == {"payments": 100, "expenses": 250, "cash": -150}
