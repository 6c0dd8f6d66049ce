# Overview: Service-layer read operations for orders shown on the dashboard.

from __future__ import annotations

from decimal import Decimal

from sqlalchemy.orm import joinedload, selectinload

from ..extensions import db
from ..models import Order, OrderItem, Variant
from ..time_utils import to_utc_z


def _describe_item(item: OrderItem) -> str:
    variant = item.variant
    parts = [variant.product.name]
    if variant.size is not None:
        parts.append(variant.size.name)
    if variant.color is not None:
        parts.append(variant.color.name)
    return f"{', '.join(parts)} x {item.quantity}"


def order_total(order: Order) -> Decimal:
    """Sum of product price x quantity over the order's items."""
    return sum(
        (Decimal(item.variant.product.price) * item.quantity for item in order.items),
        Decimal("0.00"),
    )


def list_orders(store_id: int) -> list[dict]:
    """
    Dashboard order rows for a store, newest first.

    Each row carries a one-line products summary ("Name, Size, Color x 1")
    and the order total in the store's major currency unit.
    """
    orders = (
        db.session.query(Order)
        .options(
            joinedload(Order.store),
            selectinload(Order.items).joinedload(OrderItem.variant).joinedload(Variant.product),
        )
        .filter(Order.store_id == store_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )

    return [
        {
            "id": o.id,
            "phone": o.phone,
            "address": o.address,
            "is_paid": o.is_paid,
            "products": ", ".join(_describe_item(i) for i in o.items),
            "total_price": str(order_total(o)),
            "currency": o.store.currency if o.store else None,
            "created_at": to_utc_z(o.created_at),
        }
        for o in orders
    ]
