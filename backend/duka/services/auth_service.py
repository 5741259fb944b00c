# Overview: Credential hashing, verification and account creation.

"""
Authentication Service

Admins and workers are two classes of principals with different trust
levels, but they share one verification path. Each role is bound to a
CredentialStrategy that decides how strong a new secret must be; every
strategy stores bcrypt hashes and verifies with bcrypt.checkpw. Plaintext
secrets are never stored and never compared directly.

MULTI-TENANT: Users belong to exactly one organization (org_id), except
developers. Email uniqueness is tenant-scoped.
"""

import re

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import User, Organization, Shop
from ..models.auth import ROLE_ADMIN, ROLE_DEVELOPER, ROLE_WORKER
from duka.time_utils import utcnow


class PasswordValidationError(Exception):
    """Raised when a secret doesn't meet its strategy's requirements."""
    pass


BCRYPT_ROUNDS = 12


class CredentialStrategy:
    """
    How a class of principal proves who it is.

    Subclasses override validate_secret; hashing and verification are shared
    so both principal classes get the same storage guarantees.
    """
    name = "base"

    def validate_secret(self, secret: str) -> None:
        raise NotImplementedError

    def hash_secret(self, secret: str) -> str:
        self.validate_secret(secret)
        salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
        hashed = bcrypt.hashpw(secret.encode('utf-8'), salt)
        return hashed.decode('utf-8')

    def verify(self, secret: str, secret_hash: str) -> bool:
        """
        Timing-safe verification against a stored bcrypt hash.

        Malformed hashes (e.g. rows copied from a plaintext column) never match.
        """
        if not secret or not secret_hash:
            return False
        try:
            return bcrypt.checkpw(secret.encode('utf-8'), secret_hash.encode('utf-8'))
        except ValueError:
            return False


class AdminPasswordStrategy(CredentialStrategy):
    """
    Admins and developers.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)
    """
    name = "admin_password"

    def validate_secret(self, secret: str) -> None:
        if not secret or len(secret) < 8:
            raise PasswordValidationError("Password must be at least 8 characters long")

        if not re.search(r'[A-Z]', secret):
            raise PasswordValidationError("Password must contain at least one uppercase letter")

        if not re.search(r'[a-z]', secret):
            raise PasswordValidationError("Password must contain at least one lowercase letter")

        if not re.search(r'\d', secret):
            raise PasswordValidationError("Password must contain at least one digit")

        if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", secret):
            raise PasswordValidationError("Password must contain at least one special character")


class WorkerPasswordStrategy(CredentialStrategy):
    """Workers sign in at a shared till; a 6+ character secret is enough."""
    name = "worker_password"

    MIN_LENGTH = 6

    def validate_secret(self, secret: str) -> None:
        if not secret or len(secret) < self.MIN_LENGTH:
            raise PasswordValidationError(
                f"Password must be at least {self.MIN_LENGTH} characters long"
            )
        if secret.strip() != secret:
            raise PasswordValidationError("Password cannot start or end with whitespace")


CREDENTIAL_STRATEGIES: dict[str, CredentialStrategy] = {
    ROLE_DEVELOPER: AdminPasswordStrategy(),
    ROLE_ADMIN: AdminPasswordStrategy(),
    ROLE_WORKER: WorkerPasswordStrategy(),
}

# Login entry points and the roles each one accepts
PRINCIPAL_ROLES = {
    "admin": (ROLE_ADMIN, ROLE_DEVELOPER),
    "worker": (ROLE_WORKER,),
}


def get_strategy(role: str) -> CredentialStrategy:
    strategy = CREDENTIAL_STRATEGIES.get(role)
    if strategy is None:
        raise ValueError(f"Unknown role: {role}")
    return strategy


def hash_password(password: str, role: str = ROLE_ADMIN) -> str:
    """Hash a secret with the strategy for `role` (validates strength first)."""
    return get_strategy(role).hash_secret(password)


def _normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def _require_active_org(org_id: int) -> Organization:
    org = db.session.query(Organization).filter_by(id=org_id).first()
    if not org:
        raise ValueError("Organization not found")
    if not org.is_active:
        raise ValueError("Organization is not active")
    return org


def _ensure_email_free(org_id: int | None, email: str) -> None:
    existing = db.session.query(User).filter(
        User.org_id == org_id,
        User.email == email,
    ).first()
    if existing:
        raise ValueError("Email already exists in this organization")


def create_admin(
    name: str,
    email: str,
    password: str,
    org_id: int,
    phone: str | None = None,
    created_by_user_id: int | None = None,
) -> User:
    """
    Create an admin for an organization.

    Raises:
        ValueError: org missing/inactive or email taken
        PasswordValidationError: weak password
    """
    email = _normalize_email(email)
    if not name or not email:
        raise ValueError("name and email are required")

    _require_active_org(org_id)
    _ensure_email_free(org_id, email)

    user = User(
        org_id=org_id,
        role=ROLE_ADMIN,
        name=name.strip(),
        email=email,
        phone=phone,
        password_hash=hash_password(password, ROLE_ADMIN),
        created_by_user_id=created_by_user_id,
    )

    db.session.add(user)
    db.session.commit()
    return user


def create_developer(name: str, email: str, password: str) -> User:
    """Cross-org superuser with no organization."""
    email = _normalize_email(email)
    _ensure_email_free(None, email)

    user = User(
        org_id=None,
        role=ROLE_DEVELOPER,
        name=name.strip(),
        email=email,
        password_hash=hash_password(password, ROLE_DEVELOPER),
    )
    db.session.add(user)
    db.session.commit()
    return user


def create_worker(
    name: str,
    email: str,
    password: str,
    org_id: int,
    shop_id: int,
    phone: str | None = None,
    created_by_user_id: int | None = None,
) -> User:
    """
    Create a worker assigned to one shop of the organization.

    Raises:
        ValueError: org missing/inactive, shop not in org, or email taken
        PasswordValidationError: secret too short
    """
    email = _normalize_email(email)
    if not name or not email:
        raise ValueError("name and email are required")

    _require_active_org(org_id)

    shop = db.session.query(Shop).filter_by(id=shop_id).first()
    if not shop or shop.org_id != org_id:
        raise ValueError("Shop not found")

    _ensure_email_free(org_id, email)

    user = User(
        org_id=org_id,
        role=ROLE_WORKER,
        name=name.strip(),
        email=email,
        phone=phone,
        password_hash=hash_password(password, ROLE_WORKER),
        shop_id=shop.id,
        created_by_user_id=created_by_user_id,
    )

    db.session.add(user)
    db.session.commit()
    return user


def authenticate(
    email: str,
    password: str,
    principal: str = "admin",
    org_id: int | None = None,
) -> User | None:
    """
    Authenticate a principal by email and secret.

    principal selects which roles may log in through this entry point
    ("admin" accepts admins and developers, "worker" accepts workers).
    Verification always goes through the role's CredentialStrategy.

    Returns the User on success (and stamps last_login_at), None otherwise.
    """
    roles = PRINCIPAL_ROLES.get(principal)
    if roles is None:
        raise ValueError(f"Unknown principal: {principal}")

    query = db.session.query(User).filter(
        User.email == _normalize_email(email),
        User.role.in_(roles),
        User.is_active.is_(True),
    )
    if org_id is not None:
        query = query.filter(User.org_id == org_id)

    candidates = query.all()

    for user in candidates:
        if user.org_id is not None:
            org = db.session.get(Organization, user.org_id)
            if not org or not org.is_active:
                continue

        if get_strategy(user.role).verify(password, user.password_hash):
            user.last_login_at = utcnow()
            db.session.commit()
            return user

    current_app.logger.warning("Failed %s login for %s", principal, _normalize_email(email))
    return None


def set_password(user: User, new_password: str) -> User:
    user.password_hash = hash_password(new_password, user.role)
    db.session.commit()
    return user
