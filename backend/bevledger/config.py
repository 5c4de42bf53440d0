# backend/bevledger/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/bevledger.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///bevledger.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Opening-stock boundary per item family:
    # "exact"  -> an opening stock dated exactly on as_of is returned as the balance
    # "strict" -> only opening stocks dated before as_of are used as a baseline
    OPENING_STOCK_MATCH = {
        "material": os.environ.get("MATERIAL_OPENING_STOCK_MATCH", "strict"),
        "product": os.environ.get("PRODUCT_OPENING_STOCK_MATCH", "exact"),
    }

    # Days after the order date a first payment still counts as on time
    PAYMENT_GRACE_DAYS = int(os.environ.get("PAYMENT_GRACE_DAYS", "0"))

    # Months projected by the regression forecasts
    FORECAST_MONTHS = int(os.environ.get("FORECAST_MONTHS", "3"))

    # Browser origins allowed to call the API (comma-separated)
    CORS_ORIGINS = tuple(
        o.strip()
        for o in os.environ.get(
            "CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000"
        ).split(",")
        if o.strip()
    )
