"""
Multi-Tenant Service: Tenant Validation and Scoping Helpers

Every entity carries org_id. Services never filter on org_id by hand; they
resolve ids through this module so that a missing filter cannot leak data
from another organization.

SECURITY INVARIANTS:
1. Every authenticated request has g.org_id set (developers excepted)
2. Ids from client input are resolved with get_in_org / require_* helpers
3. List queries start from scoped_query
4. Cross-tenant access attempts are logged as security events and reported
   as "not found" so the caller learns nothing about other tenants

USAGE:
    from duka.services.tenant_service import require_shop_in_org, scoped_query

    shop = require_shop_in_org(shop_id, org_id)
    products = scoped_query(Product, org_id).filter_by(shop_id=shop.id).all()
"""

from flask import g, has_request_context, request

from ..extensions import db
from ..models import Shop, User, Product
from ..models.auth import ROLE_WORKER
from .permission_service import log_security_event


class TenantAccessError(Exception):
    """Raised when cross-tenant access is attempted."""
    pass


def get_current_org_id() -> int:
    """
    Get current tenant's org_id from Flask g context.

    SECURITY: Raises TenantAccessError if org_id not set.
    """
    if not hasattr(g, 'org_id') or g.org_id is None:
        raise TenantAccessError("Tenant context not established")
    return g.org_id


def scoped_query(model, org_id: int = None):
    """
    Base query for `model` restricted to one organization.

    Args:
        model: SQLAlchemy model class with an org_id column
        org_id: Organization ID (defaults to g.org_id)
    """
    if org_id is None:
        org_id = get_current_org_id()

    return db.session.query(model).filter(model.org_id == org_id)


def get_in_org(model, entity_id, org_id: int, *, label: str | None = None):
    """
    Load one row by primary key, but only if it belongs to org_id.

    Raises TenantAccessError("<Label> not found") when the row is missing or
    belongs to another organization. The second case is logged.
    """
    label = label or model.__name__
    if entity_id is None:
        raise TenantAccessError(f"{label} not found")

    entity = db.session.get(model, entity_id)

    if entity is None:
        raise TenantAccessError(f"{label} not found")

    if entity.org_id != org_id:
        _log_cross_tenant_attempt(
            f"{label} {entity_id} belongs to org {entity.org_id}, not {org_id}",
            org_id=org_id,
        )
        raise TenantAccessError(f"{label} not found")  # Don't reveal it exists in another org

    return entity


def require_shop_in_org(shop_id: int, org_id: int) -> Shop:
    return get_in_org(Shop, shop_id, org_id, label="Shop")


def require_worker_in_org(worker_id: int, org_id: int) -> User:
    """A user of role worker in org_id."""
    user = get_in_org(User, worker_id, org_id, label="Worker")
    if user.role != ROLE_WORKER:
        raise TenantAccessError("Worker not found")
    return user


def require_product_in_shop(product_id: int, shop_id: int, org_id: int) -> Product:
    """A product in org_id that is stocked in shop_id."""
    product = get_in_org(Product, product_id, org_id, label="Product")
    if product.shop_id != shop_id:
        raise TenantAccessError("Product not found")
    return product


def _log_cross_tenant_attempt(reason: str, org_id: int | None = None) -> None:
    """
    Log a cross-tenant access attempt as a security event.

    Works outside a request (CLI, tests) with no client details.
    """
    user_id = None
    resource = action = ip_address = user_agent = None

    if has_request_context():
        current_user = getattr(g, 'current_user', None)
        user_id = current_user.id if current_user is not None else None
        resource = request.path
        action = request.method
        ip_address = request.remote_addr
        user_agent = request.headers.get("User-Agent")

    log_security_event(
        user_id=user_id,
        event_type="CROSS_TENANT_ACCESS_DENIED",
        success=False,
        resource=resource,
        action=action,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        org_id=org_id,
    )
