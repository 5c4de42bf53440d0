# Overview: Flask API routes for analytics dashboards; read-only.

# backend/bevledger/routes/analytics.py
from flask import Blueprint, request

from ..services import analytics_service
from .common import json_error, date_arg, int_arg


analytics_bp = Blueprint("analytics", __name__, url_prefix="/api/analytics")


@analytics_bp.get("/overview")
def overview_route():
    try:
        return analytics_service.overview(), 200
    except Exception as e:
        return json_error(e)


@analytics_bp.get("/current-assets")
def current_assets_route():
    try:
        return analytics_service.current_assets(), 200
    except Exception as e:
        return json_error(e)


@analytics_bp.get("/financial-health")
def financial_health_route():
    """Liquidity, cash-flow ratio, burn rate and runway over [start, end)."""
    try:
        return analytics_service.financial_health(start=date_arg("start"), end=date_arg("end")), 200
    except Exception as e:
        return json_error(e)


@analytics_bp.get("/cost-breakdown")
def cost_breakdown_route():
    try:
        return analytics_service.cost_breakdown(start=date_arg("start"), end=date_arg("end")), 200
    except Exception as e:
        return json_error(e)


@analytics_bp.get("/payment-status")
def payment_status_route():
    try:
        return analytics_service.payment_status(), 200
    except Exception as e:
        return json_error(e)


@analytics_bp.get("/suppliers")
def supplier_analysis_route():
    try:
        return analytics_service.supplier_analysis(), 200
    except Exception as e:
        return json_error(e)


@analytics_bp.get("/categories")
def category_totals_route():
    family = request.args.get("family", "product")
    try:
        totals = analytics_service.category_totals(family=family)
    except Exception as e:
        return json_error(e)
    return {"family": family, "items": totals, "count": len(totals)}, 200


@analytics_bp.get("/forecast/<series>")
def forecast_route(series: str):
    """
    Monthly linear forecast.

    series: expenses | payments | product_outflows
    months: projection horizon (default FORECAST_MONTHS)
    """
    try:
        return analytics_service.forecast(series, months=int_arg("months")), 200
    except Exception as e:
        return json_error(e)
