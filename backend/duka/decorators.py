# Overview: Request and permission decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .services import session_service, permission_service
from .services.permission_service import PermissionDeniedError


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user') and hasattr(g, 'org_id')


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1]


def require_auth(f):
    """
    Require authentication and establish tenant context.

    Sets on flask.g:
    - g.current_user: the authenticated User
    - g.org_id: the tenant the request runs in
    - g.role: role captured on the session
    - g.session_context: the full SessionContext

    Returns 401 for a missing/invalid/expired token, a deactivated user or
    organization, or a non-developer session without an org_id.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if not token:
            return jsonify({"error": "Authentication required"}), 401

        context = session_service.validate_session(token)

        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        # Only developers may act without an organization
        if not context.org_id and not (context.user and context.user.is_developer):
            permission_service.log_security_event(
                user_id=context.user.id if context.user else None,
                event_type="TENANT_CONTEXT_MISSING",
                success=False,
                resource=request.path,
                action=request.method,
                reason="Session missing org_id",
                ip_address=request.remote_addr,
                user_agent=request.headers.get("User-Agent"),
                org_id=None,
            )
            return jsonify({"error": "Invalid session: missing tenant context"}), 401

        g.current_user = context.user
        g.org_id = context.org_id
        g.role = context.role
        g.session_context = context

        return f(*args, **kwargs)

    return decorated_function


def require_permission(permission_code: str):
    """Require a permission granted to the session's role. Denials are audited."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            try:
                permission_service.require_permission(
                    user_id=g.current_user.id,
                    role=g.role,
                    permission_code=permission_code,
                    resource=request.path,
                    ip_address=request.remote_addr,
                    user_agent=request.headers.get("User-Agent"),
                    org_id=g.org_id,
                )
            except PermissionDeniedError as e:
                return jsonify({
                    "error": "Permission denied",
                    "required_permission": permission_code,
                    "message": str(e)
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_org_context(f):
    """Reject requests (developer sessions) that have no organization selected."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _is_authenticated():
            return jsonify({"error": "Authentication required"}), 401
        if not g.org_id:
            return jsonify({"error": "Organization context required"}), 400
        return f(*args, **kwargs)
    return decorated_function
