# Overview: Flask API routes for categories, items, stock movements and balances.

# backend/bevledger/routes/stock.py
"""
Stock routes.

Time semantics:
- Dates are business dates ("YYYY-MM-DD"; a full ISO datetime is reduced to
  its UTC date).
- Balance as_of is exclusive for movements: rows dated on as_of are not
  counted. Omit as_of for the current on-hand quantity.
"""
from flask import Blueprint, request

from ..models import TrackedItem, OpeningStock, StockInflow, StockOutflow
from ..services import stock_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_positive_quantity,
    enforce_non_negative_quantity,
)
from .common import json_error, date_arg, int_arg, json_body


stock_bp = Blueprint("stock", __name__, url_prefix="/api")

ITEM_POLICY = ModelValidationPolicy(
    writable_fields={"name", "family", "category_id", "unit"},
    required_on_create={"name", "family"},
)

ITEM_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "category_id", "unit"},
)

INFLOW_POLICY = ModelValidationPolicy(
    writable_fields={"date", "quantity", "source", "note", "created_by"},
    required_on_create={"quantity", "source"},
)

OUTFLOW_POLICY = ModelValidationPolicy(
    writable_fields={"date", "quantity", "reason", "note", "created_by"},
    required_on_create={"quantity", "reason"},
)

OPENING_STOCK_POLICY = ModelValidationPolicy(
    writable_fields={"date", "quantity", "note"},
    required_on_create={"date", "quantity"},
)

OPENING_STOCK_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={"quantity", "note"},
)


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------

@stock_bp.get("/categories")
def list_categories_route():
    try:
        categories = stock_service.list_categories()
    except Exception as e:
        return json_error(e)
    return {"items": [c.to_dict() for c in categories], "count": len(categories)}, 200


@stock_bp.post("/categories")
def create_category_route():
    try:
        data = json_body()
        category = stock_service.create_category(
            name=data.get("name"),
            description=data.get("description"),
        )
    except Exception as e:
        return json_error(e)
    return category.to_dict(), 201


@stock_bp.patch("/categories/<int:category_id>")
def update_category_route(category_id: int):
    try:
        category = stock_service.update_category(category_id, json_body())
    except Exception as e:
        return json_error(e)
    return category.to_dict(), 200


@stock_bp.delete("/categories/<int:category_id>")
def delete_category_route(category_id: int):
    try:
        stock_service.delete_category(category_id)
    except Exception as e:
        return json_error(e)
    return "", 204


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------

@stock_bp.get("/items")
def list_items_route():
    """
    List items.

    Query parameters:
    - family: material | product. When given, each item carries its
      quantity_on_hand and the response includes category totals.
    - category_id: filter by category (only without family)
    """
    family = request.args.get("family")
    try:
        if family:
            return stock_service.stock_summary(family=family, as_of=date_arg("as_of")), 200
        items = stock_service.list_items(category_id=int_arg("category_id"))
    except Exception as e:
        return json_error(e)
    return {"items": [i.to_dict() for i in items], "count": len(items)}, 200


@stock_bp.post("/items")
def create_item_route():
    try:
        patch = validate_payload(model=TrackedItem, payload=json_body(), policy=ITEM_POLICY, partial=False)
        item = stock_service.create_item(
            name=patch["name"],
            family=patch["family"],
            category_id=patch.get("category_id"),
            unit=patch.get("unit"),
        )
    except Exception as e:
        return json_error(e)
    return item.to_dict(), 201


@stock_bp.get("/items/<int:item_id>")
def get_item_route(item_id: int):
    try:
        item = stock_service.get_item(item_id)
        result = item.to_dict()
        result["quantity_on_hand"] = stock_service.get_balance(item_id)
    except Exception as e:
        return json_error(e)
    return result, 200


@stock_bp.patch("/items/<int:item_id>")
def update_item_route(item_id: int):
    try:
        patch = validate_payload(
            model=TrackedItem, payload=json_body(), policy=ITEM_UPDATE_POLICY, partial=True
        )
        item = stock_service.update_item(item_id, patch)
    except Exception as e:
        return json_error(e)
    return item.to_dict(), 200


@stock_bp.delete("/items/<int:item_id>")
def delete_item_route(item_id: int):
    try:
        stock_service.delete_item(item_id)
    except Exception as e:
        return json_error(e)
    return "", 204


@stock_bp.get("/items/<int:item_id>/balance")
def item_balance_route(item_id: int):
    try:
        return stock_service.get_balance_summary(item_id, as_of=date_arg("as_of")), 200
    except Exception as e:
        return json_error(e)


@stock_bp.get("/items/<int:item_id>/movement-summary")
def movement_summary_route(item_id: int):
    """Opening balance at start, movements in [start, end), closing balance at end."""
    try:
        return stock_service.get_movement_summary(
            item_id, start=date_arg("start"), end=date_arg("end")
        ), 200
    except Exception as e:
        return json_error(e)


@stock_bp.get("/items/<int:item_id>/transactions")
def item_transactions_route(item_id: int):
    try:
        limit = max(1, min(int_arg("limit", 200), 1000))
        rows = stock_service.list_transactions(item_id, limit=limit)
    except Exception as e:
        return json_error(e)
    return {"items": rows, "count": len(rows)}, 200


@stock_bp.get("/stock/summary")
def stock_summary_route():
    try:
        return stock_service.stock_summary(
            family=request.args.get("family", ""), as_of=date_arg("as_of")
        ), 200
    except Exception as e:
        return json_error(e)


# ---------------------------------------------------------------------------
# Inflows / outflows
# ---------------------------------------------------------------------------

@stock_bp.get("/items/<int:item_id>/inflows")
def list_inflows_route(item_id: int):
    try:
        rows = stock_service.list_inflows(item_id, start=date_arg("start"), end=date_arg("end"))
    except Exception as e:
        return json_error(e)
    return {"items": [r.to_dict() for r in rows], "count": len(rows)}, 200


@stock_bp.post("/items/<int:item_id>/inflows")
def record_inflow_route(item_id: int):
    try:
        patch = validate_payload(model=StockInflow, payload=json_body(), policy=INFLOW_POLICY, partial=False)
        enforce_positive_quantity(patch)
        inflow = stock_service.record_inflow(item_id=item_id, **patch)
        balance = stock_service.get_balance(item_id)
    except Exception as e:
        return json_error(e)
    return {"inflow": inflow.to_dict(), "quantity_on_hand": balance}, 201


@stock_bp.delete("/inflows/<int:inflow_id>")
def delete_inflow_route(inflow_id: int):
    try:
        stock_service.delete_inflow(inflow_id)
    except Exception as e:
        return json_error(e)
    return "", 204


@stock_bp.get("/items/<int:item_id>/outflows")
def list_outflows_route(item_id: int):
    try:
        rows = stock_service.list_outflows(item_id, start=date_arg("start"), end=date_arg("end"))
    except Exception as e:
        return json_error(e)
    return {"items": [r.to_dict() for r in rows], "count": len(rows)}, 200


@stock_bp.post("/items/<int:item_id>/outflows")
def record_outflow_route(item_id: int):
    """
    Record an outflow. quantity is a positive magnitude; negative values are
    rejected rather than flipped.
    """
    try:
        patch = validate_payload(model=StockOutflow, payload=json_body(), policy=OUTFLOW_POLICY, partial=False)
        outflow = stock_service.record_outflow(item_id=item_id, **patch)
        balance = stock_service.get_balance(item_id)
    except Exception as e:
        return json_error(e)
    return {"outflow": outflow.to_dict(), "quantity_on_hand": balance}, 201


@stock_bp.delete("/outflows/<int:outflow_id>")
def delete_outflow_route(outflow_id: int):
    try:
        stock_service.delete_outflow(outflow_id)
    except Exception as e:
        return json_error(e)
    return "", 204


# ---------------------------------------------------------------------------
# Opening stocks
# ---------------------------------------------------------------------------

@stock_bp.get("/items/<int:item_id>/opening-stocks")
def list_opening_stocks_route(item_id: int):
    try:
        rows = stock_service.list_opening_stocks(item_id)
    except Exception as e:
        return json_error(e)
    return {"items": [r.to_dict() for r in rows], "count": len(rows)}, 200


@stock_bp.post("/items/<int:item_id>/opening-stocks")
def record_opening_stock_route(item_id: int):
    """
    Declare the item's balance on a date.

    Returns 409 if an opening stock already exists for the item and date.
    The response includes the match/mismatch check against earlier history.
    """
    try:
        patch = validate_payload(
            model=OpeningStock, payload=json_body(), policy=OPENING_STOCK_POLICY, partial=False
        )
        enforce_non_negative_quantity(patch)
        row = stock_service.record_opening_stock(item_id=item_id, **patch)
        check = stock_service.check_opening_stock(row.id)
    except Exception as e:
        return json_error(e)
    return {"opening_stock": row.to_dict(), "check": check}, 201


@stock_bp.patch("/opening-stocks/<int:opening_id>")
def update_opening_stock_route(opening_id: int):
    try:
        patch = validate_payload(
            model=OpeningStock, payload=json_body(), policy=OPENING_STOCK_UPDATE_POLICY, partial=True
        )
        enforce_non_negative_quantity(patch)
        row = stock_service.update_opening_stock(opening_id, **patch)
    except Exception as e:
        return json_error(e)
    return row.to_dict(), 200


@stock_bp.delete("/opening-stocks/<int:opening_id>")
def delete_opening_stock_route(opening_id: int):
    try:
        stock_service.delete_opening_stock(opening_id)
    except Exception as e:
        return json_error(e)
    return "", 204


@stock_bp.get("/opening-stocks/<int:opening_id>/status")
def opening_stock_status_route(opening_id: int):
    try:
        return stock_service.check_opening_stock(opening_id), 200
    except Exception as e:
        return json_error(e)
