# Overview: Service-layer operations for storefront checkout; encapsulates business logic and database work.

"""
Checkout Service

WHY: Turns a cart (a flat list of variant ids) into a priced order and a
payment-provider checkout session the shopper is redirected to.

DESIGN PRINCIPLES:
- Validation first: an empty cart, unknown variants or any out-of-stock
  variant is rejected before anything is written.
- One line item and one order item per distinct variant (quantity 1).
  Duplicate ids in the cart collapse to a single line.
- Stock is reserved with a conditional decrement in the same transaction
  that creates the order, so two shoppers cannot buy the last unit.
- The order is committed before the provider is called (its id travels in
  the session metadata). If the provider fails, the reservation is undone:
  stock is restored and the order deleted.
- Prices are converted to minor units with Decimal arithmetic only.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

from flask import current_app

from ..models import Variant
from .concurrency import run_with_retry
from .payment_provider import LineItem, PaymentProvider, PaymentProviderError
from .repository import CatalogRepository


CHECKOUT_MODE = "payment"


class CheckoutError(Exception):
    """Raised for checkout requests the storefront must correct."""
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class MissingStoreIdError(CheckoutError):
    pass


class MissingCartError(CheckoutError):
    pass


class StoreNotFoundError(CheckoutError):
    status_code = 404


class ProductsNotFoundError(CheckoutError):
    pass


class OutOfStockError(CheckoutError):
    def __init__(self, variant_ids: list[int]):
        super().__init__("Out of stock", {"outOfStockProductIds": list(variant_ids)})
        self.variant_ids = list(variant_ids)


@dataclass(frozen=True)
class CheckoutResult:
    order_id: int
    url: str
    session_id: str


def to_minor_units(price) -> int:
    """Major-unit decimal price -> integer minor units (x100, half-up)."""
    return int((Decimal(price) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def build_line_items(variants: list[Variant], currency: str) -> list[LineItem]:
    return [
        LineItem(
            name=v.product.name,
            unit_amount=to_minor_units(v.product.price),
            currency=currency,
            quantity=1,
        )
        for v in variants
    ]


def _dedupe(variant_ids: list[int]) -> list[int]:
    return list(dict.fromkeys(variant_ids))


def _reserve_order(repo: CatalogRepository, *, store_id: int, cart: list[int], currency: str):
    """
    Load, validate, reserve stock and create the unpaid order in one
    transaction. Returns (order_id, line_items).
    """
    def _op():
        variants = repo.find_checkout_variants(store_id, cart)
        if not variants:
            raise ProductsNotFoundError("Product not found")

        by_id = {v.id: v for v in variants}
        ordered = [by_id[i] for i in cart if i in by_id]

        out_of_stock = [v.id for v in ordered if v.quantity <= 0]
        if out_of_stock:
            raise OutOfStockError(out_of_stock)

        line_items = build_line_items(ordered, currency)

        for v in ordered:
            if not repo.reserve_stock(v.id):
                raise OutOfStockError([v.id])

        order = repo.create_order(store_id=store_id, variant_ids=[v.id for v in ordered])
        order_id = order.id
        repo.commit()
        return order_id, line_items

    try:
        return run_with_retry(repo.session, _op)
    except Exception:
        repo.rollback()
        raise


def release_order(repo: CatalogRepository, order_id: int) -> None:
    """
    Compensating action for a reservation whose payment session could not
    be created: return each reserved unit and delete the order.
    """
    def _op():
        order = repo.get_order(order_id)
        if order is None:
            return
        for item in order.items:
            repo.release_stock(item.variant_id, item.quantity)
        repo.delete_order(order)
        repo.commit()

    try:
        run_with_retry(repo.session, _op)
    except Exception:
        repo.rollback()
        raise


def checkout(
    repo: CatalogRepository,
    provider: PaymentProvider,
    *,
    store_id: int | None,
    variant_ids: list[int] | None,
    storefront_url: str,
) -> CheckoutResult:
    """
    Create an unpaid order for the cart and a provider checkout session.

    Args:
        repo: Persistence collaborator
        provider: Payment-provider collaborator
        store_id: Store the cart belongs to
        variant_ids: Cart as a flat list of variant ids (duplicates allowed)
        storefront_url: Base URL for the success/cancel redirects

    Returns:
        CheckoutResult with the order id and the provider redirect URL

    Raises:
        MissingStoreIdError, MissingCartError, StoreNotFoundError,
        ProductsNotFoundError, OutOfStockError: nothing was written
        PaymentProviderError: the reservation was rolled back
    """
    if not store_id:
        raise MissingStoreIdError("Store ID is required")
    if not variant_ids:
        raise MissingCartError("Product ID is required")

    store = repo.get_store(store_id)
    if store is None:
        raise StoreNotFoundError("Store not found")
    currency = store.currency

    order_id, line_items = _reserve_order(
        repo,
        store_id=store_id,
        cart=_dedupe(variant_ids),
        currency=currency,
    )
    current_app.logger.info(
        "Reserved order %s for store %s (%d line items)", order_id, store_id, len(line_items)
    )

    base_url = storefront_url.rstrip("/")
    try:
        session = provider.create_checkout_session(
            line_items=line_items,
            mode=CHECKOUT_MODE,
            billing_address_required=True,
            phone_collection_enabled=True,
            success_url=f"{base_url}/cart?success=1",
            cancel_url=f"{base_url}/cart?canceled=1",
            metadata={"orderId": str(order_id)},
        )
    except Exception as exc:
        current_app.logger.exception("Checkout session failed for order %s; releasing reservation", order_id)
        try:
            release_order(repo, order_id)
        except Exception:
            current_app.logger.exception("Failed to release order %s", order_id)
        raise PaymentProviderError("Payment provider error") from exc

    repo.set_payment_session(order_id, session.id)
    repo.commit()

    current_app.logger.info("Created checkout session %s for order %s", session.id, order_id)
    return CheckoutResult(order_id=order_id, url=session.url, session_id=session.id)
