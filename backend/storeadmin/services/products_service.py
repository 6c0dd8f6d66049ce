# backend/storeadmin/services/products_service.py
"""
Products Service

All product operations are store-scoped: a product is only visible or
mutable through the store it belongs to. Storefront reads hide archived
products and variants; dashboard writes go through the store owner check
in the routes before reaching this module.
"""
from __future__ import annotations

from sqlalchemy.orm import joinedload, selectinload

from ..extensions import db
from ..models import Category, Image, OrderItem, Product, Variant
from ..validation import ConflictError, ImageInput, ValidationError
from .variant_service import ProductNotFoundError

PRODUCT_MUTABLE_FIELDS = {"name", "price", "category_id", "is_featured", "is_archived"}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _require_category(store_id: int, category_id: int) -> Category:
    category = (
        db.session.query(Category)
        .filter(Category.id == category_id, Category.store_id == store_id)
        .first()
    )
    if category is None:
        raise ValidationError("Category not found")
    return category


def _get_product(store_id: int, product_id: int) -> Product:
    p = (
        db.session.query(Product)
        .filter(Product.id == product_id, Product.store_id == store_id)
        .first()
    )
    if p is None:
        raise ProductNotFoundError(f"Product {product_id} not found")
    return p


def list_storefront_products(
    *,
    store_id: int,
    category_id: int | None = None,
    size_id: int | None = None,
    color_id: int | None = None,
    featured_only: bool = False,
) -> list[dict]:
    """
    Storefront product listing, newest first.

    - Archived products are hidden.
    - Each product embeds only its live variants matching size_id/color_id.
    - Products left with no matching live variant are dropped.
    """
    query = (
        db.session.query(Product)
        .options(
            selectinload(Product.images),
            selectinload(Product.variants),
            joinedload(Product.category),
        )
        .filter(Product.store_id == store_id, Product.is_archived.is_(False))
    )
    if category_id is not None:
        query = query.filter(Product.category_id == category_id)
    if featured_only:
        query = query.filter(Product.is_featured.is_(True))

    products = query.order_by(Product.created_at.desc(), Product.id.desc()).all()

    items = []
    for p in products:
        variants = [
            v for v in p.variants
            if not v.is_archived
            and (size_id is None or v.size_id == size_id)
            and (color_id is None or v.color_id == color_id)
        ]
        if not variants:
            continue
        items.append(p.to_dict(variants=variants, include_category=True))
    return items


def get_storefront_product(*, store_id: int, product_id: int) -> dict:
    """Product with images, category and its purchasable (live, in-stock) variants."""
    p = _get_product(store_id, product_id)
    variants = [v for v in p.variants if not v.is_archived and v.quantity > 0]
    return p.to_dict(variants=variants, include_category=True)


def create_product(*, store_id: int, patch: dict, images: list[ImageInput]) -> dict:
    """
    Create product using a validated patch dict.

    Raises:
        ValidationError: If category_id is not a category of the store
    """
    _require_category(store_id, patch["category_id"])

    p = Product(store_id=store_id)
    apply_product_patch(p, patch)
    p.images = [Image(url=i.url) for i in images]

    db.session.add(p)
    db.session.commit()
    return p.to_dict(include_category=True)


def update_product(*, store_id: int, product_id: int, patch: dict, images: list[ImageInput] | None) -> dict:
    """
    Update a product. When images is given the product's images are
    replaced wholesale.

    Raises:
        ProductNotFoundError: If the product is not in the store
        ValidationError: If a new category_id is not a category of the store
    """
    p = _get_product(store_id, product_id)

    if patch.get("category_id") is not None and patch["category_id"] != p.category_id:
        _require_category(store_id, patch["category_id"])

    apply_product_patch(p, patch)
    if images is not None:
        p.images = [Image(url=i.url) for i in images]

    db.session.commit()
    return p.to_dict(include_category=True)


def delete_product(*, store_id: int, product_id: int) -> None:
    """
    Hard-delete a product with its images and variants.

    Raises:
        ProductNotFoundError: If the product is not in the store
        ConflictError: If any of its variants was ordered (archive it instead)
    """
    p = _get_product(store_id, product_id)

    ordered = (
        db.session.query(OrderItem.id)
        .join(Variant, OrderItem.variant_id == Variant.id)
        .filter(Variant.product_id == p.id)
        .first()
    )
    if ordered:
        raise ConflictError("Product has orders; archive it instead.")

    db.session.delete(p)
    db.session.commit()
