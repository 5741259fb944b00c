# Overview: Permission checks and security event logging.

"""
Permission Checking and Security Event Logging

Roles map to a fixed permission set (see duka/permissions.py). Denials are
written to security_events together with the tenant context so an admin can
audit who tried what.

DESIGN PRINCIPLES:
- Fail closed: unknown roles have no permissions
- Log denials only: grants are not logged
"""

from ..extensions import db
from ..models import SecurityEvent
from ..permissions import permissions_for_role
from duka.time_utils import utcnow


class PermissionDeniedError(Exception):
    """Raised when user lacks required permission."""
    pass


def log_security_event(
    user_id: int | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    org_id: int | None = None,
) -> SecurityEvent:
    """
    Log security event to audit trail with tenant context.

    event_type examples:
    - LOGIN_FAILED
    - LOGIN_SUCCEEDED
    - LOGOUT
    - PERMISSION_DENIED
    - TENANT_CONTEXT_MISSING
    - CROSS_TENANT_ACCESS_DENIED
    """
    event = SecurityEvent(
        user_id=user_id,
        org_id=org_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow(),
    )

    db.session.add(event)
    db.session.commit()

    return event


def get_role_permissions(role: str) -> set[str]:
    return permissions_for_role(role)


def has_permission(role: str, permission_code: str) -> bool:
    return permission_code in permissions_for_role(role)


def require_permission(
    *,
    user_id: int,
    role: str,
    permission_code: str,
    resource: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    org_id: int | None = None,
) -> None:
    """
    Raise PermissionDeniedError if the role lacks the permission.

    The denial is logged before raising.
    """
    if has_permission(role, permission_code):
        return

    log_security_event(
        user_id=user_id,
        event_type="PERMISSION_DENIED",
        success=False,
        resource=resource,
        action=permission_code,
        reason=f"Role '{role}' lacks {permission_code}",
        ip_address=ip_address,
        user_agent=user_agent,
        org_id=org_id,
    )
    raise PermissionDeniedError(f"Missing permission: {permission_code}")
