"""
Store ownership helpers

SECURITY INVARIANTS:
1. Every dashboard write names a store_id in its URL
2. That store must exist and be owned by the authenticated user
3. Store-owned rows (products, variants, orders) are always looked up
   through the validated store_id, never by id alone
"""

from __future__ import annotations

from ..extensions import db
from ..models import Store, User


class StoreNotFoundError(Exception):
    """Raised when a store id does not exist."""


class StoreAccessError(Exception):
    """Raised when the caller does not own the store."""


def get_store(store_id: int) -> Store | None:
    return db.session.query(Store).filter_by(id=store_id).first()


def require_store_owner(store_id: int, user_id: int) -> Store:
    """
    Validate that the user owns the store.

    Raises:
        StoreNotFoundError: If the store does not exist
        StoreAccessError: If it belongs to someone else
    """
    store = get_store(store_id)
    if store is None:
        raise StoreNotFoundError(f"Store {store_id} not found")
    if store.user_id != user_id:
        raise StoreAccessError(f"User {user_id} does not own store {store_id}")
    return store


def list_user_stores(user_id: int) -> list[Store]:
    return db.session.query(Store).filter_by(user_id=user_id).order_by(Store.id.asc()).all()


def create_store(*, user_id: int, name: str, currency: str) -> Store:
    """Create a store (seeding/CLI only; there is no store provisioning API)."""
    if not db.session.query(User).filter_by(id=user_id).first():
        raise ValueError("User not found")
    name = (name or "").strip()
    if not name:
        raise ValueError("Store name is required")
    currency = (currency or "").strip().upper()
    if len(currency) != 3 or not currency.isalpha():
        raise ValueError("currency must be a 3-letter ISO-4217 code")

    store = Store(user_id=user_id, name=name, currency=currency)
    db.session.add(store)
    db.session.commit()
    return store
