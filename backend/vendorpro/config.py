# backend/vendorpro/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/vendorpro.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///vendorpro.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Products with 0 < stock <= threshold count as "low stock" on dashboards
    LOW_STOCK_THRESHOLD = int(os.environ.get("LOW_STOCK_THRESHOLD", "10"))

    # Stored when a sale is rejected without a reason
    DEFAULT_REJECTION_REASON = os.environ.get("DEFAULT_REJECTION_REASON", "No reason provided")

    # Transport-level retry for transient persistence failures (routes only)
    TRANSPORT_RETRY_ATTEMPTS = int(os.environ.get("TRANSPORT_RETRY_ATTEMPTS", "3"))
