# Overview: Flask API routes for product variants; parses input and returns JSON responses.

"""
Variant routes.

- GET   /api/stores/<store_id>/products/<product_id>/variants  (auth)
- PATCH /api/stores/<store_id>/products/<product_id>/variants  (store owner)
- GET   /api/stores/<store_id>/variants/<variant_id>           (storefront)
"""

from flask import Blueprint, request, jsonify, current_app

from ..extensions import db
from ..services import variant_service
from ..services.repository import CatalogRepository
from ..services.variant_service import ProductNotFoundError, VariantNotFoundError
from ..validation import ValidationError, parse_variant_inputs
from ..decorators import require_auth, require_store_owner, storefront_route


variants_bp = Blueprint("variants", __name__, url_prefix="/api/stores/<int:store_id>")


@variants_bp.get("/products/<int:product_id>/variants")
@require_auth
def list_variants_route(store_id: int, product_id: int):
    """Every variant of the product, archived ones included."""
    try:
        variants = variant_service.list_product_variants(
            CatalogRepository(db.session),
            store_id=store_id,
            product_id=product_id,
        )
    except ProductNotFoundError:
        return jsonify({"error": "Product not found"}), 404

    return jsonify([v.to_dict() for v in variants]), 200


@variants_bp.patch("/products/<int:product_id>/variants")
@require_auth
@require_store_owner
def reconcile_variants_route(store_id: int, product_id: int):
    """
    Save the product's variant list.

    Body: {"variants": [{"id"?, "sizeId", "colorId", "quantity"}, ...]}
    ("size_id" and "color_id" are accepted too)

    Entries with the id of a live variant update it, other entries create
    new variants, and live variants left out are archived. Responds with
    the product and its full variant list.
    """
    payload = request.get_json(silent=True)

    try:
        variants = parse_variant_inputs(
            payload,
            min_quantity=current_app.config["VARIANT_MIN_QUANTITY"],
        )
        repo = CatalogRepository(db.session)
        result = variant_service.reconcile_variants(
            repo,
            store_id=store_id,
            product_id=product_id,
            variants=variants,
        )
        product = repo.get_product(store_id, product_id)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ProductNotFoundError:
        return jsonify({"error": "Product not found"}), 404
    except Exception:
        current_app.logger.exception("Failed to reconcile variants")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(product.to_dict(variants=result)), 200


@variants_bp.get("/variants/<int:variant_id>")
@storefront_route
def get_variant_route(store_id: int, variant_id: int):
    """Single variant with its size, color and product (with images)."""
    try:
        data = variant_service.get_variant_detail(
            CatalogRepository(db.session),
            store_id=store_id,
            variant_id=variant_id,
        )
    except VariantNotFoundError:
        return jsonify({"error": "Variant not found"}), 404
    except Exception:
        current_app.logger.exception("Failed to load variant")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(data), 200
