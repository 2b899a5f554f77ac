# backend/lotledger/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/lotledger.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///lotledger.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Whole-operation retries on lock/version conflicts
    TX_RETRY_ATTEMPTS = int(os.environ.get("TX_RETRY_ATTEMPTS", "3"))
    TX_RETRY_BACKOFF_SECONDS = float(os.environ.get("TX_RETRY_BACKOFF_SECONDS", "0.1"))

    DEFAULT_PAGE_SIZE = 20
    MAX_PAGE_SIZE = 100

    # Orders counted by the profit report when no status is given
    PROFIT_DEFAULT_ORDER_STATUS = os.environ.get("PROFIT_DEFAULT_ORDER_STATUS", "DONE")
