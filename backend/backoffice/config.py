# backend/backoffice/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/backoffice.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///backoffice.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Display formatting only; amounts are always stored as integer cents
    MONEY_DECIMAL_SEPARATOR = os.environ.get("MONEY_DECIMAL_SEPARATOR", ".")
    MONEY_THOUSANDS_SEPARATOR = os.environ.get("MONEY_THOUSANDS_SEPARATOR", ",")

    # Label stored on every purchase/sale header
    HEADER_TITLE_FORMAT = os.environ.get("HEADER_TITLE_FORMAT", "%d/%m/%Y %H:%M")

    LIST_PAGE_SIZE = int(os.environ.get("LIST_PAGE_SIZE", "9"))
    LIST_MAX_PAGE_SIZE = int(os.environ.get("LIST_MAX_PAGE_SIZE", "100"))

    COMMIT_RETRY_ATTEMPTS = int(os.environ.get("COMMIT_RETRY_ATTEMPTS", "3"))
