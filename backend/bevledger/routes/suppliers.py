# Overview: Flask API routes for suppliers, purchases and deliveries.

# backend/bevledger/routes/suppliers.py
from flask import Blueprint

from ..models import Supplier, SupplyItem, Delivery
from ..services import supplier_service
from ..validation import ModelValidationPolicy, validate_payload
from .common import json_error, int_arg, json_body


suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")

SUPPLIER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "contact_name", "phone", "email", "address", "notes"},
    required_on_create={"name"},
)

PURCHASE_POLICY = ModelValidationPolicy(
    writable_fields={"item_id", "quantity", "unit_price", "amount_paid", "purchase_date", "notes"},
    required_on_create={"item_id", "quantity", "unit_price"},
)

DELIVERY_POLICY = ModelValidationPolicy(
    writable_fields={"quantity", "date", "notes"},
    required_on_create={"quantity"},
)


@suppliers_bp.get("")
def list_suppliers_route():
    try:
        suppliers = supplier_service.list_suppliers()
    except Exception as e:
        return json_error(e)
    return {"items": [s.to_dict() for s in suppliers], "count": len(suppliers)}, 200


@suppliers_bp.post("")
def create_supplier_route():
    """
    Create a supplier.

    Request body:
    {
        "name": "Supplier Name",  // required, unique
        "contact_name": "...",    // optional
        "phone": "...",           // optional
        "email": "...",           // optional
        "address": "...",         // optional
        "notes": "..."            // optional
    }
    """
    try:
        patch = validate_payload(model=Supplier, payload=json_body(), policy=SUPPLIER_POLICY, partial=False)
        supplier = supplier_service.create_supplier(**patch)
    except Exception as e:
        return json_error(e)
    return supplier.to_dict(), 201


@suppliers_bp.get("/<int:supplier_id>")
def get_supplier_route(supplier_id: int):
    """Supplier with its purchases and spend / paid / outstanding totals."""
    try:
        return supplier_service.supplier_statement(supplier_id), 200
    except Exception as e:
        return json_error(e)


@suppliers_bp.patch("/<int:supplier_id>")
def update_supplier_route(supplier_id: int):
    try:
        patch = validate_payload(model=Supplier, payload=json_body(), policy=SUPPLIER_POLICY, partial=True)
        supplier = supplier_service.update_supplier(supplier_id, patch)
    except Exception as e:
        return json_error(e)
    return supplier.to_dict(), 200


@suppliers_bp.delete("/<int:supplier_id>")
def delete_supplier_route(supplier_id: int):
    try:
        supplier_service.delete_supplier(supplier_id)
    except Exception as e:
        return json_error(e)
    return "", 204


# ---------------------------------------------------------------------------
# Purchases
# ---------------------------------------------------------------------------

@suppliers_bp.get("/<int:supplier_id>/purchases")
def list_purchases_route(supplier_id: int):
    try:
        supplier_service.get_supplier(supplier_id)
        purchases = supplier_service.list_purchases(
            supplier_id=supplier_id, item_id=int_arg("item_id")
        )
    except Exception as e:
        return json_error(e)
    return {"items": [p.to_dict() for p in purchases], "count": len(purchases)}, 200


@suppliers_bp.post("/<int:supplier_id>/purchases")
def record_purchase_route(supplier_id: int):
    try:
        patch = validate_payload(model=SupplyItem, payload=json_body(), policy=PURCHASE_POLICY, partial=False)
        purchase = supplier_service.record_purchase(supplier_id=supplier_id, **patch)
    except Exception as e:
        return json_error(e)
    return purchase.to_dict(), 201


@suppliers_bp.post("/purchases/<int:purchase_id>/payments")
def pay_purchase_route(purchase_id: int):
    try:
        data = json_body()
        purchase = supplier_service.pay_purchase(purchase_id, amount=data.get("amount"))
    except Exception as e:
        return json_error(e)
    return purchase.to_dict(), 200


@suppliers_bp.delete("/purchases/<int:purchase_id>")
def delete_purchase_route(purchase_id: int):
    try:
        supplier_service.delete_purchase(purchase_id)
    except Exception as e:
        return json_error(e)
    return "", 204


# ---------------------------------------------------------------------------
# Deliveries
# ---------------------------------------------------------------------------

@suppliers_bp.get("/purchases/<int:purchase_id>/deliveries")
def list_deliveries_route(purchase_id: int):
    try:
        rows = supplier_service.list_deliveries(purchase_id)
    except Exception as e:
        return json_error(e)
    return {"items": [d.to_dict() for d in rows], "count": len(rows)}, 200


@suppliers_bp.post("/purchases/<int:purchase_id>/deliveries")
def record_delivery_route(purchase_id: int):
    """Receive goods; posts a "Delivery" inflow for the purchased material."""
    try:
        patch = validate_payload(model=Delivery, payload=json_body(), policy=DELIVERY_POLICY, partial=False)
        delivery = supplier_service.record_delivery(purchase_id=purchase_id, **patch)
    except Exception as e:
        return json_error(e)
    return delivery.to_dict(), 201


@suppliers_bp.delete("/deliveries/<int:delivery_id>")
def delete_delivery_route(delivery_id: int):
    try:
        supplier_service.delete_delivery(delivery_id)
    except Exception as e:
        return json_error(e)
    return "", 204
