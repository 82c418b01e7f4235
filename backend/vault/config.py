# backend/vault/config.py
from __future__ import annotations
import os


def _split_env(name: str, default: str = "") -> list[str]:
    raw = os.environ.get(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/vault.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///vault.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Fernet keys, comma separated. The first key encrypts, every key decrypts.
    VAULT_ENCRYPTION_KEYS = _split_env("VAULT_ENCRYPTION_KEYS")

    # Set by the identity-aware proxy after the identity provider verified the user
    PRINCIPAL_HEADER = os.environ.get("PRINCIPAL_HEADER", "X-Authenticated-Email")

    # "retain" keeps history rows of deleted credentials, "cascade" removes them
    HISTORY_ON_DELETE = os.environ.get("HISTORY_ON_DELETE", "retain").strip().lower()

    CORS_ALLOWED_ORIGINS = _split_env(
        "CORS_ALLOWED_ORIGINS",
        "http://localhost:5173,http://127.0.0.1:5173,http://localhost:4173,http://127.0.0.1:4173",
    )
