# Overview: Flask API routes for expenses, the general ledger and account summaries.

# backend/bevledger/routes/ledgers.py
"""
Ledger routes.

Every listing accepts either an explicit start/end window (end exclusive)
or a named period (all, daily, weekly, monthly, yearly) relative to today.
"""
from flask import Blueprint, request

from ..services import ledger_service
from .common import json_error, date_arg, json_body


ledgers_bp = Blueprint("ledgers", __name__, url_prefix="/api/ledgers")


def _window():
    period = request.args.get("period")
    if period:
        return ledger_service.period_window(period, reference=date_arg("reference"))
    return date_arg("start"), date_arg("end")


@ledgers_bp.get("/expenses")
def list_expenses_route():
    try:
        start, end = _window()
        expenses = ledger_service.list_expenses(
            start=start, end=end, category=request.args.get("category")
        )
    except Exception as e:
        return json_error(e)
    return {
        "items": [x.to_dict() for x in expenses],
        "count": len(expenses),
        "total": sum(x.amount_spent for x in expenses),
    }, 200


@ledgers_bp.post("/expenses")
def create_expense_route():
    try:
        expense = ledger_service.create_expense(json_body())
    except Exception as e:
        return json_error(e)
    return expense.to_dict(), 201


@ledgers_bp.patch("/expenses/<int:expense_id>")
def update_expense_route(expense_id: int):
    try:
        expense = ledger_service.update_expense(expense_id, json_body())
    except Exception as e:
        return json_error(e)
    return expense.to_dict(), 200


@ledgers_bp.delete("/expenses/<int:expense_id>")
def delete_expense_route(expense_id: int):
    try:
        ledger_service.delete_expense(expense_id)
    except Exception as e:
        return json_error(e)
    return "", 204


@ledgers_bp.get("/expenses/by-category")
def expense_categories_route():
    try:
        start, end = _window()
        return ledger_service.expense_totals_by_category(start=start, end=end), 200
    except Exception as e:
        return json_error(e)


@ledgers_bp.get("/general")
def general_ledger_route():
    try:
        start, end = _window()
        return ledger_service.general_ledger(start=start, end=end), 200
    except Exception as e:
        return json_error(e)


@ledgers_bp.get("/accounts")
def accounts_summary_route():
    try:
        start, end = _window()
        return ledger_service.accounts_summary(start=start, end=end), 200
    except Exception as e:
        return json_error(e)


@ledgers_bp.get("/cash")
def cash_position_route():
    try:
        start, end = _window()
        return ledger_service.cash_position(start=start, end=end), 200
    except Exception as e:
        return json_error(e)
