# backend/stockledger/config.py
from __future__ import annotations
import os


DEFAULT_CORS_ORIGINS = (
    "https://web.telegram.org,"
    "http://localhost:5173,http://127.0.0.1:5173,"
    "http://localhost:3000,http://127.0.0.1:3000"
)


class Config:
    # Optional "SECRET_KEY", with default dev key. Signs the session cookie.
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/stockledger.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///stockledger.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Upper bound for one unit of work (lock wait / statement time).
    # Exceeding it surfaces as PersistenceError; nothing retries internally.
    LEDGER_DB_TIMEOUT_SECONDS = float(os.environ.get("LEDGER_DB_TIMEOUT_SECONDS", "5"))

    CORS_ALLOWED_ORIGINS = os.environ.get("CORS_ALLOWED_ORIGINS", DEFAULT_CORS_ORIGINS)


def engine_options_for(database_uri: str, timeout_seconds: float) -> dict:
    """
    Build SQLALCHEMY_ENGINE_OPTIONS that bound lock waits and statements.

    - sqlite: driver busy timeout (seconds)
    - postgresql: server-side statement_timeout (milliseconds)
    """
    if database_uri.startswith("sqlite"):
        return {"connect_args": {"timeout": timeout_seconds}}
    if database_uri.startswith("postgresql"):
        timeout_ms = int(timeout_seconds * 1000)
        return {
            "connect_args": {"options": f"-c statement_timeout={timeout_ms}"},
            "pool_pre_ping": True,
        }
    return {"pool_pre_ping": True}


def parse_origins(value: str | None) -> set[str]:
    if not value:
        return set()
    return {origin.strip() for origin in value.split(",") if origin.strip()}
