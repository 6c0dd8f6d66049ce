# Overview: Service-layer operations for product variants; encapsulates business logic and database work.

"""
Variant Reconciliation Service

WHY: The dashboard edits a product's variants as one list. Saving that list
must bring the persisted variant set in line with it without ever losing
rows that historical orders still point at.

RULES:
- A submitted entry whose id matches a live (non-archived) variant of the
  product updates that row in place.
- Any other submitted entry (no id, unknown id, or the id of an archived
  variant) creates a new row.
- Live variants missing from the submission are archived, never deleted.
- The whole reconciliation is one transaction: either every change lands
  or none does.
"""

from __future__ import annotations

from flask import current_app

from ..models import Variant
from ..validation import ValidationError, VariantInput
from .concurrency import run_with_retry
from .repository import CatalogRepository


class ProductNotFoundError(Exception):
    """Raised when a product does not exist in the given store."""


class VariantNotFoundError(Exception):
    """Raised when a variant does not exist in the given store."""


def _require_attributes(repo: CatalogRepository, store_id: int, variants: list[VariantInput]) -> None:
    size_ids = {v.size_id for v in variants}
    color_ids = {v.color_id for v in variants}

    missing_sizes = size_ids - repo.existing_size_ids(store_id, size_ids)
    if missing_sizes:
        raise ValidationError(f"Size not found: {', '.join(str(i) for i in sorted(missing_sizes))}")

    missing_colors = color_ids - repo.existing_color_ids(store_id, color_ids)
    if missing_colors:
        raise ValidationError(f"Color not found: {', '.join(str(i) for i in sorted(missing_colors))}")


def reconcile_variants(
    repo: CatalogRepository,
    *,
    store_id: int,
    product_id: int,
    variants: list[VariantInput],
) -> list[Variant]:
    """
    Bring a product's persisted variants in line with a submitted list.

    Args:
        repo: Persistence collaborator (owns the session/transaction)
        store_id: Store the product must belong to
        product_id: Product whose variants are being edited
        variants: Validated submission, in client order

    Returns:
        Every variant of the product after reconciliation (archived
        included), ordered by id.

    Raises:
        ProductNotFoundError: If the product is not in the store
        ValidationError: If a size/color id is not a row of the store
    """
    def _op():
        product = repo.get_product(store_id, product_id, lock=True)
        if product is None:
            raise ProductNotFoundError(f"Product {product_id} not found")

        _require_attributes(repo, store_id, variants)

        existing = {v.id: v for v in repo.find_variants(product.id) if not v.is_archived}

        kept: set[int] = set()
        created = 0
        for item in variants:
            current = existing.get(item.id) if item.id is not None else None
            if current is not None:
                repo.update_variant(
                    current,
                    size_id=item.size_id,
                    color_id=item.color_id,
                    quantity=item.quantity,
                )
                kept.add(current.id)
            else:
                repo.create_variant(
                    product_id=product.id,
                    size_id=item.size_id,
                    color_id=item.color_id,
                    quantity=item.quantity,
                )
                created += 1

        archived = 0
        for variant_id, variant in existing.items():
            if variant_id not in kept:
                repo.archive_variant(variant)
                archived += 1

        repo.commit()

        current_app.logger.info(
            "Reconciled variants for product %s: %d updated, %d created, %d archived",
            product_id, len(kept), created, archived,
        )
        return repo.find_variants(product_id)

    try:
        return run_with_retry(repo.session, _op)
    except Exception:
        repo.rollback()
        raise


def list_product_variants(repo: CatalogRepository, *, store_id: int, product_id: int) -> list[Variant]:
    """All variants of a product (archived included); filtering is left to the caller."""
    product = repo.get_product(store_id, product_id)
    if product is None:
        raise ProductNotFoundError(f"Product {product_id} not found")
    return repo.find_variants(product.id)


def get_variant_detail(repo: CatalogRepository, *, store_id: int, variant_id: int) -> dict:
    """
    Storefront view of one variant: the variant with its size, color and
    product (including images).
    """
    variant = repo.get_variant(variant_id)
    if variant is None or variant.product.store_id != store_id:
        raise VariantNotFoundError(f"Variant {variant_id} not found")

    data = variant.to_dict()
    data["size"] = variant.size.to_dict() if variant.size else None
    data["color"] = variant.color.to_dict() if variant.color else None
    data["product"] = variant.product.to_dict(variants=[])
    return data
