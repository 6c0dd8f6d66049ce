# backend/storeadmin/routes/auth.py
"""
Dashboard login.

Accounts are created from the CLI (flask users create); there is no
self-registration endpoint. Clients send the returned token as
"Authorization: Bearer <token>".
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service, session_service, store_service
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """Body: {"username" | "email", "password"} -> {user, token, session}."""
    data = request.get_json(silent=True) or {}
    identifier = data.get("username") or data.get("email")
    password = data.get("password")
    if not identifier or not password:
        return jsonify({"error": "username/email and password required"}), 400

    try:
        user = auth_service.authenticate(identifier, password)
        if user is None:
            current_app.logger.info("Rejected login for %r", identifier)
            return jsonify({"error": "Invalid credentials"}), 401

        record, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
    except Exception:
        current_app.logger.exception("Login failed")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"user": user.to_dict(), "token": token, "session": record.to_dict()}), 200


@auth_bp.post("/logout")
@require_auth
def logout_route():
    token = request.headers["Authorization"].split(" ", 1)[1]
    session_service.revoke_session(token)
    return jsonify({"ok": True}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    stores = store_service.list_user_stores(g.current_user.id)
    return jsonify({
        "user": g.current_user.to_dict(),
        "stores": [s.to_dict() for s in stores],
    }), 200
