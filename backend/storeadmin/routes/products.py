# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/storeadmin/routes/products.py
"""
Product routes.

Storefront reads (list, detail) are public. Writes require authentication
and ownership of the store in the URL (@require_store_owner).
"""
from flask import Blueprint, request, jsonify, current_app

from ..services import products_service
from ..services.variant_service import ProductNotFoundError
from ..models import Product
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    parse_images,
    ValidationError,
    ConflictError,
    coerce_int,
)
from ..decorators import require_auth, require_store_owner, storefront_route

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "price", "category_id", "is_featured", "is_archived"},
    required_on_create={"name", "price", "category_id"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/stores/<int:store_id>/products")


def _split_payload(payload: dict, *, partial: bool):
    """Validate product fields and images separately; images are not a column."""
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    fields = {k: v for k, v in payload.items() if k != "images"}
    patch = validate_payload(model=Product, payload=fields, policy=PRODUCT_POLICY, partial=partial)
    enforce_rules_product(patch)

    if "images" in payload:
        images = parse_images(payload["images"])
    elif partial:
        images = None
    else:
        raise ValidationError("Images are required")
    return patch, images


def _arg(name: str, alias: str):
    """Query arg by its storefront (camelCase) name, falling back to snake_case."""
    raw = request.args.get(name)
    if raw in (None, ""):
        raw = request.args.get(alias)
    return raw


def _optional_int_arg(name: str, alias: str) -> int | None:
    raw = _arg(name, alias)
    if raw in (None, ""):
        return None
    return coerce_int(raw, name)


@products_bp.get("")
@storefront_route
def list_products(store_id: int):
    """
    Storefront product listing.

    Query params (snake_case names are accepted as aliases):
    - categoryId: int (optional)
    - sizeId: int (optional) - only products with a live variant of this size
    - colorId: int (optional) - only products with a live variant of this color
    - isFeatured: any non-empty value restricts to featured products
    """
    try:
        items = products_service.list_storefront_products(
            store_id=store_id,
            category_id=_optional_int_arg("categoryId", "category_id"),
            size_id=_optional_int_arg("sizeId", "size_id"),
            color_id=_optional_int_arg("colorId", "color_id"),
            featured_only=bool(_arg("isFeatured", "is_featured")),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to list products")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(items), 200


@products_bp.get("/<int:product_id>")
@storefront_route
def get_product(store_id: int, product_id: int):
    """Product detail with images, category and in-stock live variants."""
    try:
        product = products_service.get_storefront_product(store_id=store_id, product_id=product_id)
    except ProductNotFoundError:
        return jsonify({"error": "Product not found"}), 404
    except Exception:
        current_app.logger.exception("Failed to load product")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(product), 200


@products_bp.post("")
@require_auth
@require_store_owner
def create_product_route(store_id: int):
    """Create a new product in the caller's store."""
    payload = request.get_json(silent=True) or {}

    try:
        patch, images = _split_payload(payload, partial=False)
        created = products_service.create_product(store_id=store_id, patch=patch, images=images)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(created), 201


@products_bp.patch("/<int:product_id>")
@require_auth
@require_store_owner
def update_product_route(store_id: int, product_id: int):
    """Update a product. Sending images replaces the product's images."""
    payload = request.get_json(silent=True) or {}

    try:
        patch, images = _split_payload(payload, partial=True)
        updated = products_service.update_product(
            store_id=store_id,
            product_id=product_id,
            patch=patch,
            images=images,
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ProductNotFoundError:
        return jsonify({"error": "Product not found"}), 404
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(updated), 200


@products_bp.delete("/<int:product_id>")
@require_auth
@require_store_owner
def delete_product_route(store_id: int, product_id: int):
    """Delete a product with its images and variants."""
    try:
        products_service.delete_product(store_id=store_id, product_id=product_id)
    except ProductNotFoundError:
        return jsonify({"error": "Product not found"}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"ok": True}), 200
