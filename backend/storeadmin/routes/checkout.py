# Overview: Flask API route for storefront checkout; parses input and returns JSON responses.

"""
Storefront checkout.

POST /api/stores/<store_id>/checkout
Body: {"productId": [variant ids]} ("variant_ids" also accepted)

200: {"url": "<payment provider redirect>"}
400: {"error": "Out of stock", "outOfStockProductIds": [...]} or {"error": "..."}
500: {"error": "Payment provider error"} (details are logged, never returned)
"""

from flask import Blueprint, request, jsonify, current_app

from ..extensions import db
from ..services import checkout_service
from ..services.checkout_service import CheckoutError, OutOfStockError
from ..services.payment_provider import PaymentProviderError
from ..services.repository import CatalogRepository
from ..validation import ValidationError, parse_cart
from ..decorators import storefront_route


checkout_bp = Blueprint("checkout", __name__, url_prefix="/api/stores/<int:store_id>/checkout")


@checkout_bp.post("")
@storefront_route
def checkout_route(store_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        variant_ids = parse_cart(payload)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        result = checkout_service.checkout(
            CatalogRepository(db.session),
            current_app.extensions["payment_provider"],
            store_id=store_id,
            variant_ids=variant_ids,
            storefront_url=current_app.config["FRONTEND_STORE_URL"],
        )
    except OutOfStockError as e:
        return jsonify({"error": "Out of stock", "outOfStockProductIds": e.variant_ids}), 400
    except CheckoutError as e:
        return jsonify({"error": str(e)}), e.status_code
    except PaymentProviderError:
        return jsonify({"error": "Payment provider error"}), 500
    except Exception:
        current_app.logger.exception("Failed to create checkout")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"url": result.url}), 200
