from __future__ import annotations

from ..extensions import db
from duka.time_utils import to_utc_z


ROLE_DEVELOPER = "developer"
ROLE_ADMIN = "admin"
ROLE_WORKER = "worker"
ROLES = (ROLE_DEVELOPER, ROLE_ADMIN, ROLE_WORKER)


class User(db.Model):
    """
    Every principal that can log in: developers, admins and workers.

    MULTI-TENANT: Users belong to exactly one organization (org_id).
    Email is unique within an organization, not globally.
    Developers may have a null org_id.

    Workers are assigned to a single shop (shop_id) and record sales there.
    created_by_user_id is the admin who created the account; expense requests
    from a worker are routed to that admin.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.UniqueConstraint("org_id", "email", name="uq_users_org_email"),
        db.Index("ix_users_org_role", "org_id", "role"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=True, index=True)

    role = db.Column(db.String(16), nullable=False, default=ROLE_WORKER, index=True)

    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False, index=True)
    phone = db.Column(db.String(32), nullable=True)

    # Bcrypt hashed secret, for every role
    password_hash = db.Column(db.String(255), nullable=False)

    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=True, index=True)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    organization = db.relationship("Organization", backref=db.backref("users", lazy=True))
    shop = db.relationship("Shop", backref=db.backref("workers", lazy=True))
    created_by = db.relationship("User", remote_side=[id])

    @property
    def is_developer(self) -> bool:
        return self.role == ROLE_DEVELOPER

    @property
    def is_worker(self) -> bool:
        return self.role == ROLE_WORKER

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "org_id": self.org_id,
            "role": self.role,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "shop_id": self.shop_id,
            "created_by_user_id": self.created_by_user_id,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }


class SessionToken(db.Model):
    """
    Bearer session tokens with tenant context.

    Tokens are stored as SHA-256 hashes; org_id and role are captured at login
    and stay fixed for the session lifetime.
    """
    __tablename__ = "session_tokens"
    __table_args__ = (
        db.Index("ix_session_tokens_user_active", "user_id", "is_revoked"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=True, index=True)
    role = db.Column(db.String(16), nullable=False)

    token_hash = db.Column(db.String(255), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False, index=True)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revoked_reason = db.Column(db.String(255), nullable=True)

    user_agent = db.Column(db.String(512), nullable=True)
    ip_address = db.Column(db.String(45), nullable=True)  # IPv6 max length

    user = db.relationship("User", backref=db.backref("sessions", lazy=True))
    organization = db.relationship("Organization")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "org_id": self.org_id,
            "role": self.role,
            "created_at": to_utc_z(self.created_at),
            "last_used_at": to_utc_z(self.last_used_at),
            "expires_at": to_utc_z(self.expires_at),
            "is_revoked": self.is_revoked,
        }
