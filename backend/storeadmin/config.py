# backend/storeadmin/config.py
from __future__ import annotations
import os


def _origins(raw: str) -> set[str]:
    return {o.strip() for o in raw.split(",") if o.strip()}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/storeadmin.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///storeadmin.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Payment provider (Stripe secret key). Checkout fails with a generic
    # provider error when unset.
    STRIPE_API_KEY = os.environ.get("STRIPE_API_KEY")

    # Storefront base URL used for checkout success/cancel redirects
    FRONTEND_STORE_URL = os.environ.get("FRONTEND_STORE_URL", "http://localhost:3001")

    # Currency assigned to newly created stores
    DEFAULT_CURRENCY = os.environ.get("DEFAULT_CURRENCY", "AUD")

    # Lowest stock count a variant may be saved with (applies to every variant write)
    VARIANT_MIN_QUANTITY = int(os.environ.get("VARIANT_MIN_QUANTITY", "0"))

    # Dashboard origins; storefront routes answer any origin
    CORS_ALLOWED_ORIGINS = _origins(os.environ.get(
        "CORS_ALLOWED_ORIGINS",
        "http://localhost:3000,http://127.0.0.1:3000",
    ))
