# Overview: Bearer session tokens with tenant context.

"""
Session Token Management Service

Tokens are 32 random bytes (hex) handed to the client once; only their
SHA-256 hash is stored. Sessions capture org_id and role at login so each
request knows its tenant without re-reading the user.

- 24-hour absolute timeout (SESSION_ABSOLUTE_TIMEOUT)
- 2-hour idle timeout (SESSION_IDLE_TIMEOUT)
- Revoked on logout, on idle timeout, and when the user or org is deactivated
"""

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta

from ..extensions import db
from ..models import SessionToken, User, Organization
from duka.time_utils import utcnow


SESSION_ABSOLUTE_TIMEOUT = timedelta(hours=24)
SESSION_IDLE_TIMEOUT = timedelta(hours=2)


@dataclass
class SessionContext:
    """Identity and tenant context for one authenticated request."""
    user: User
    session: SessionToken
    org_id: int | None
    role: str


def generate_token() -> str:
    return secrets.token_hex(32)  # 32 bytes = 64 hex characters


def hash_token(token: str) -> str:
    """
    SHA-256 of the token. Tokens are already high-entropy, so a fast hash
    is sufficient here (unlike passwords).
    """
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def create_session(
    user_id: int,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[SessionToken, str]:
    """
    Create a session for user_id.

    Returns (session_record, plaintext_token). The database stores only the hash.

    Raises ValueError if the user is missing, or belongs to an inactive org.
    Non-developers must belong to an organization.
    """
    user = db.session.get(User, user_id)
    if not user:
        raise ValueError("User not found")

    if user.org_id is None and not user.is_developer:
        raise ValueError("User must belong to an organization")

    if user.org_id is not None:
        org = db.session.get(Organization, user.org_id)
        if not org or not org.is_active:
            raise ValueError("Organization is not active")

    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        user_id=user.id,
        org_id=user.org_id,
        role=user.role,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + SESSION_ABSOLUTE_TIMEOUT,
        user_agent=user_agent,
        ip_address=ip_address,
        is_revoked=False,
    )

    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def _revoke(session: SessionToken, reason: str) -> None:
    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason
    db.session.commit()


def validate_session(token: str) -> SessionContext | None:
    """
    Return the SessionContext for a token, or None if it cannot be used.

    None when the token is unknown, revoked, expired, idle too long, or its
    user or organization has been deactivated. Updates last_used_at.
    """
    now = utcnow()

    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()

    if not session:
        return None

    if session.expires_at < now:
        return None

    if now - session.last_used_at > SESSION_IDLE_TIMEOUT:
        _revoke(session, "Idle timeout")
        return None

    user = session.user
    if not user or not user.is_active:
        _revoke(session, "User account deactivated")
        return None

    if session.org_id is not None:
        org = session.organization
        if not org or not org.is_active:
            _revoke(session, "Organization deactivated")
            return None

    session.last_used_at = now
    db.session.commit()

    return SessionContext(
        user=user,
        session=session,
        org_id=session.org_id,
        role=session.role,
    )


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """Revoke a token. Returns False if it was unknown or already revoked."""
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()

    if not session:
        return False

    _revoke(session, reason)
    return True


def revoke_all_user_sessions(user_id: int, reason: str) -> int:
    sessions = db.session.query(SessionToken).filter_by(user_id=user_id, is_revoked=False).all()
    now = utcnow()
    for session in sessions:
        session.is_revoked = True
        session.revoked_at = now
        session.revoked_reason = reason
    db.session.commit()
    return len(sessions)
