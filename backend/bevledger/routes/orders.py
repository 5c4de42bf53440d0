# Overview: Flask API routes for marketers, orders and payments.

# backend/bevledger/routes/orders.py
from flask import Blueprint, request

from ..models import Marketer, Payment
from ..services import order_service
from ..validation import ModelValidationPolicy, validate_payload
from .common import json_error, date_arg, int_arg, json_body


orders_bp = Blueprint("orders", __name__, url_prefix="/api")

MARKETER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "phone", "email"},
    required_on_create={"name"},
)

PAYMENT_POLICY = ModelValidationPolicy(
    writable_fields={
        "marketer_id",
        "order_id",
        "amount_paid",
        "mode_of_payment",
        "bank_name",
        "mobile_provider",
        "purpose",
        "paid_on",
    },
    required_on_create={"amount_paid", "mode_of_payment"},
)


# ---------------------------------------------------------------------------
# Marketers
# ---------------------------------------------------------------------------

@orders_bp.get("/marketers")
def list_marketers_route():
    try:
        marketers = order_service.list_marketers()
    except Exception as e:
        return json_error(e)
    return {"items": [m.to_dict() for m in marketers], "count": len(marketers)}, 200


@orders_bp.post("/marketers")
def create_marketer_route():
    try:
        patch = validate_payload(model=Marketer, payload=json_body(), policy=MARKETER_POLICY, partial=False)
        marketer = order_service.create_marketer(**patch)
    except Exception as e:
        return json_error(e)
    return marketer.to_dict(), 201


@orders_bp.patch("/marketers/<int:marketer_id>")
def update_marketer_route(marketer_id: int):
    try:
        patch = validate_payload(model=Marketer, payload=json_body(), policy=MARKETER_POLICY, partial=True)
        marketer = order_service.update_marketer(marketer_id, patch)
    except Exception as e:
        return json_error(e)
    return marketer.to_dict(), 200


@orders_bp.delete("/marketers/<int:marketer_id>")
def delete_marketer_route(marketer_id: int):
    try:
        order_service.delete_marketer(marketer_id)
    except Exception as e:
        return json_error(e)
    return "", 204


@orders_bp.get("/marketers/<int:marketer_id>/ledger")
def marketer_ledger_route(marketer_id: int):
    try:
        return order_service.marketer_ledger(marketer_id), 200
    except Exception as e:
        return json_error(e)


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------

@orders_bp.get("/orders")
def list_orders_route():
    try:
        orders = order_service.list_orders(
            marketer_id=int_arg("marketer_id"),
            status=request.args.get("status") or None,
        )
    except Exception as e:
        return json_error(e)
    return {"items": [o.to_dict() for o in orders], "count": len(orders)}, 200


@orders_bp.post("/orders")
def create_order_route():
    """
    Create an order.

    Request body:
    {
        "marketer_id": 1,                          // required
        "lines": [{"item_id": 3, "quantity": 10}], // required, products only
        "total_amount": 250000,                    // required
        "order_date": "2024-03-01",                // optional, default today
        "notes": "..."                             // optional
    }
    """
    try:
        data = json_body()
        order = order_service.create_order(
            marketer_id=data.get("marketer_id"),
            lines=data.get("lines") or [],
            total_amount=data.get("total_amount"),
            order_date=data.get("order_date"),
            notes=data.get("notes"),
        )
        return order_service.order_detail(order.id), 201
    except Exception as e:
        return json_error(e)


@orders_bp.get("/orders/<int:order_id>")
def get_order_route(order_id: int):
    try:
        return order_service.order_detail(order_id), 200
    except Exception as e:
        return json_error(e)


@orders_bp.post("/orders/<int:order_id>/status")
def set_order_status_route(order_id: int):
    try:
        status = json_body().get("status")
        order = order_service.set_order_status(order_id, status)
    except Exception as e:
        return json_error(e)
    return order.to_dict(), 200


@orders_bp.delete("/orders/<int:order_id>")
def delete_order_route(order_id: int):
    try:
        order_service.delete_order(order_id)
    except Exception as e:
        return json_error(e)
    return "", 204


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------

@orders_bp.get("/payments")
def list_payments_route():
    try:
        payments = order_service.list_payments(
            marketer_id=int_arg("marketer_id"),
            order_id=int_arg("order_id"),
            mode_of_payment=request.args.get("mode") or None,
            start=date_arg("start"),
            end=date_arg("end"),
        )
    except Exception as e:
        return json_error(e)
    return {"items": [p.to_dict() for p in payments], "count": len(payments)}, 200


@orders_bp.post("/payments")
def record_payment_route():
    try:
        patch = validate_payload(model=Payment, payload=json_body(), policy=PAYMENT_POLICY, partial=False)
        payment = order_service.record_payment(**patch)
    except Exception as e:
        return json_error(e)
    return payment.to_dict(), 201


@orders_bp.delete("/payments/<int:payment_id>")
def delete_payment_route(payment_id: int):
    try:
        order_service.delete_payment(payment_id)
    except Exception as e:
        return json_error(e)
    return "", 204
