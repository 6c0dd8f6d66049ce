# Overview: Flask API routes for orders; parses input and returns JSON responses.

from flask import Blueprint, jsonify, current_app

from ..services import order_service
from ..decorators import require_auth, require_store_owner


orders_bp = Blueprint("orders", __name__, url_prefix="/api/stores/<int:store_id>/orders")


@orders_bp.get("")
@require_auth
@require_store_owner
def list_orders_route(store_id: int):
    """Dashboard order table for the caller's store, newest first."""
    try:
        rows = order_service.list_orders(store_id)
    except Exception:
        current_app.logger.exception("Failed to list orders")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(rows), 200
