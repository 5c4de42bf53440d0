# Overview: CSV download endpoints.

# backend/bevledger/routes/exports.py
from flask import Blueprint, Response, request

from ..services import export_service
from ..time_utils import today
from .common import json_error, date_arg


exports_bp = Blueprint("exports", __name__, url_prefix="/api/exports")


def _csv_response(body: str, name: str) -> Response:
    filename = f"{name}-{today().isoformat()}.csv"
    return Response(
        body,
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@exports_bp.get("/items.csv")
def export_items_route():
    family = request.args.get("family", "product")
    try:
        body = export_service.items_csv(family=family)
    except Exception as e:
        return json_error(e)
    return _csv_response(body, f"{family}s")


@exports_bp.get("/items/<int:item_id>/transactions.csv")
def export_transactions_route(item_id: int):
    try:
        body = export_service.transactions_csv(item_id)
    except Exception as e:
        return json_error(e)
    return _csv_response(body, f"item-{item_id}-transactions")


@exports_bp.get("/expenses.csv")
def export_expenses_route():
    try:
        body = export_service.expenses_csv(start=date_arg("start"), end=date_arg("end"))
    except Exception as e:
        return json_error(e)
    return _csv_response(body, "expenses")


@exports_bp.get("/ledger.csv")
def export_ledger_route():
    try:
        body = export_service.ledger_csv(start=date_arg("start"), end=date_arg("end"))
    except Exception as e:
        return json_error(e)
    return _csv_response(body, "general-ledger")


@exports_bp.get("/payments.csv")
def export_payments_route():
    try:
        body = export_service.payments_csv(start=date_arg("start"), end=date_arg("end"))
    except Exception as e:
        return json_error(e)
    return _csv_response(body, "payments")
