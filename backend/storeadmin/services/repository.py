# Overview: Persistence collaborator for variant reconciliation and checkout.

"""
Catalog repository

WHY: The variant and checkout services never reach for db.session
themselves. A repository wrapping an explicit SQLAlchemy session is passed
in by the caller (routes pass one over db.session, tests may pass their own),
so the services stay request-scoped and free of process-wide state.

TRANSACTIONS:
- Methods only add/flush; nothing here commits on its own.
- The calling service decides when the unit of work ends (commit/rollback).
"""

from __future__ import annotations

from sqlalchemy.orm import contains_eager

from ..models import Color, Order, OrderItem, Product, Size, Store, Variant
from .concurrency import lock_for_update


class CatalogRepository:
    def __init__(self, session):
        self.session = session

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_store(self, store_id: int) -> Store | None:
        return self.session.query(Store).filter_by(id=store_id).first()

    def get_product(self, store_id: int, product_id: int, *, lock: bool = False) -> Product | None:
        query = self.session.query(Product).filter(
            Product.id == product_id,
            Product.store_id == store_id,
        )
        if lock:
            query = lock_for_update(query)
        return query.first()

    def find_variants(self, product_id: int) -> list[Variant]:
        """Every variant of the product, archived ones included, oldest first."""
        return (
            self.session.query(Variant)
            .filter(Variant.product_id == product_id)
            .order_by(Variant.id.asc())
            .all()
        )

    def existing_size_ids(self, store_id: int, size_ids: set[int]) -> set[int]:
        if not size_ids:
            return set()
        rows = (
            self.session.query(Size.id)
            .filter(Size.store_id == store_id, Size.id.in_(size_ids))
            .all()
        )
        return {r[0] for r in rows}

    def existing_color_ids(self, store_id: int, color_ids: set[int]) -> set[int]:
        if not color_ids:
            return set()
        rows = (
            self.session.query(Color.id)
            .filter(Color.store_id == store_id, Color.id.in_(color_ids))
            .all()
        )
        return {r[0] for r in rows}

    def find_checkout_variants(self, store_id: int, variant_ids: list[int]) -> list[Variant]:
        """
        Live (non-archived) variants of the store whose id is in variant_ids,
        with their products loaded. Set-membership filter: duplicates in
        variant_ids yield a single row.
        """
        query = (
            self.session.query(Variant)
            .join(Variant.product)
            .options(contains_eager(Variant.product))
            .filter(
                Variant.id.in_(set(variant_ids)),
                Variant.is_archived.is_(False),
                Product.store_id == store_id,
            )
            .order_by(Variant.id.asc())
        )
        return lock_for_update(query).all()

    def get_variant(self, variant_id: int) -> Variant | None:
        return self.session.query(Variant).filter_by(id=variant_id).first()

    def get_order(self, order_id: int) -> Order | None:
        return self.session.query(Order).filter_by(id=order_id).first()

    # ------------------------------------------------------------------
    # Writes (flush only)
    # ------------------------------------------------------------------

    def create_variant(self, *, product_id: int, size_id: int, color_id: int, quantity: int) -> Variant:
        variant = Variant(
            product_id=product_id,
            size_id=size_id,
            color_id=color_id,
            quantity=quantity,
            is_archived=False,
        )
        self.session.add(variant)
        self.session.flush()
        return variant

    def update_variant(self, variant: Variant, *, size_id: int, color_id: int, quantity: int) -> Variant:
        # Only dirty the row when something changed, so version_id stays put
        # for an identical resubmission.
        changes = {"size_id": size_id, "color_id": color_id, "quantity": quantity}
        for key, value in changes.items():
            if getattr(variant, key) != value:
                setattr(variant, key, value)
        self.session.flush()
        return variant

    def archive_variant(self, variant: Variant) -> Variant:
        if not variant.is_archived:
            variant.is_archived = True
            self.session.flush()
        return variant

    def reserve_stock(self, variant_id: int) -> bool:
        """
        Conditional decrement: quantity = quantity - 1 WHERE quantity > 0.

        Returns False when no unit was left (another checkout took it).
        """
        updated = (
            self.session.query(Variant)
            .filter(
                Variant.id == variant_id,
                Variant.quantity > 0,
                Variant.is_archived.is_(False),
            )
            .update(
                {
                    Variant.quantity: Variant.quantity - 1,
                    Variant.version_id: Variant.version_id + 1,
                },
                synchronize_session=False,
            )
        )
        return updated == 1

    def release_stock(self, variant_id: int, quantity: int = 1) -> None:
        (
            self.session.query(Variant)
            .filter(Variant.id == variant_id)
            .update(
                {
                    Variant.quantity: Variant.quantity + quantity,
                    Variant.version_id: Variant.version_id + 1,
                },
                synchronize_session=False,
            )
        )

    def create_order(self, *, store_id: int, variant_ids: list[int]) -> Order:
        order = Order(
            store_id=store_id,
            is_paid=False,
            items=[OrderItem(variant_id=vid, quantity=1) for vid in variant_ids],
        )
        self.session.add(order)
        self.session.flush()  # ensure order.id exists for session metadata
        return order

    def set_payment_session(self, order_id: int, session_id: str) -> None:
        order = self.get_order(order_id)
        if order is not None:
            order.payment_session_id = session_id
            self.session.flush()

    def delete_order(self, order: Order) -> None:
        self.session.delete(order)
        self.session.flush()

    # ------------------------------------------------------------------
    # Unit of work
    # ------------------------------------------------------------------

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()
