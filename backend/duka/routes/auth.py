# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

Admins (and developers) and workers log in through separate entry points
that share one credential interface; the principal decides which roles
are accepted. Successful logins return a bearer token.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..services import permission_service
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _login(principal: str):
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    password = data.get("password")

    if not all([email, password]):
        return jsonify({"error": "email and password required"}), 400

    user_agent = request.headers.get("User-Agent")
    ip_address = request.remote_addr

    user = auth_service.authenticate(email, password, principal=principal)

    if not user:
        permission_service.log_security_event(
            user_id=None,
            event_type="LOGIN_FAILED",
            success=False,
            resource=request.path,
            action="LOGIN",
            reason=f"Invalid {principal} credentials for {email}",
            ip_address=ip_address,
            user_agent=user_agent,
        )
        return jsonify({"error": "Invalid credentials"}), 401

    session, token = session_service.create_session(
        user_id=user.id,
        user_agent=user_agent,
        ip_address=ip_address,
    )
    permission_service.log_security_event(
        user_id=user.id,
        event_type="LOGIN_SUCCEEDED",
        success=True,
        resource=request.path,
        action="LOGIN",
        ip_address=ip_address,
        user_agent=user_agent,
        org_id=user.org_id,
    )

    return jsonify({
        "user": user.to_dict(),
        "permissions": sorted(permission_service.get_role_permissions(user.role)),
        "token": token,
        "session": session.to_dict(),
        "org_id": session.org_id,
        "message": "Login successful",
    }), 200


@auth_bp.post("/login")
def login_route():
    """Admin / developer login."""
    try:
        return _login("admin")
    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/worker-login")
def worker_login_route():
    try:
        return _login("worker")
    except Exception:
        current_app.logger.exception("Failed to login worker")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
def logout_route():
    """
    Revoke session token (logout).

    Expects Authorization header: Bearer <token>
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return jsonify({"error": "Authorization header required"}), 401

    token = auth_header.split(" ", 1)[1]

    if not session_service.revoke_session(token, reason="User logout"):
        return jsonify({"error": "Invalid or expired token"}), 401

    return jsonify({"message": "Logout successful"}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    user = g.current_user
    return jsonify({
        "user": user.to_dict(),
        "permissions": sorted(permission_service.get_role_permissions(g.role)),
        "org_id": g.org_id,
        "shop": user.shop.to_dict() if user.shop else None,
    }), 200
