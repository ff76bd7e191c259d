# stockbook/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",  # optional alternative location
        "sqlite:///stockbook.sqlite3",  # default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Document number prefixes (INV-26-..., PO-...)
    ORDER_NUMBER_PREFIX = os.environ.get("ORDER_NUMBER_PREFIX", "INV")
    PURCHASE_NUMBER_PREFIX = os.environ.get("PURCHASE_NUMBER_PREFIX", "PO")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
