# Overview: Request decorators for authenticated and store-owner API routes.

from functools import wraps
from flask import request, jsonify, g

from .services import session_service, store_service
from .services.store_service import StoreAccessError, StoreNotFoundError


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user')


def require_auth(f):
    """
    Require a valid bearer session.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.session_token: The SessionToken row backing the request

    SECURITY: Returns 401 if:
    - No Authorization header
    - Invalid, expired, idle or revoked token
    - User account deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1]

        session = session_service.validate_session(token)
        if not session:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = session.user
        g.session_token = session

        return f(*args, **kwargs)

    return decorated_function


def require_store_owner(f):
    """
    Require the authenticated user to own the store named by the route's
    store_id argument. Sets g.store.

    Must be applied after @require_auth.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _is_authenticated():
            return jsonify({"error": "Authentication required"}), 401

        store_id = kwargs.get("store_id")
        if store_id is None:
            return jsonify({"error": "Store ID is required"}), 400

        try:
            g.store = store_service.require_store_owner(store_id, g.current_user.id)
        except StoreNotFoundError:
            return jsonify({"error": "Store not found"}), 404
        except StoreAccessError:
            return jsonify({"error": "Unauthorized"}), 403

        return f(*args, **kwargs)

    return decorated_function


def storefront_route(f):
    """
    Mark a view as part of the public storefront API: no authentication,
    and CORS is answered for any origin (see create_app).
    """
    f.storefront_cors = True
    return f
