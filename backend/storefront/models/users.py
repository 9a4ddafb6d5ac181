from __future__ import annotations

from sqlalchemy.ext.hybrid import hybrid_property

from ..extensions import db
from ..time_utils import to_utc_z


ROLE_USER = "user"
ROLE_ADMIN = "admin"
ROLES = (ROLE_USER, ROLE_ADMIN)

LIFECYCLE_ACTIVE = "ACTIVE"
LIFECYCLE_DEACTIVATED = "DEACTIVATED"
LIFECYCLE_STATES = (LIFECYCLE_ACTIVE, LIFECYCLE_DEACTIVATED)


class User(db.Model):
    """
    Customer and administrator accounts.

    Accounts are never hard-deleted; lifecycle_state moves between ACTIVE and
    DEACTIVATED. token_version only increases: bumping it invalidates every
    access and refresh token issued before the bump.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.UniqueConstraint("email", name="uq_users_email"),
        db.Index("ix_users_role_lifecycle", "role", "lifecycle_state"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(50), nullable=False)
    email = db.Column(db.String(254), nullable=False)
    phone = db.Column(db.String(20), nullable=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    role = db.Column(db.String(16), nullable=False, default=ROLE_USER)
    lifecycle_state = db.Column(db.String(16), nullable=False, default=LIFECYCLE_ACTIVE)

    token_version = db.Column(db.Integer, nullable=False, default=0)
    email_verified = db.Column(db.Boolean, nullable=False, default=False)

    # SHA-256 of the outstanding reset token; cleared once used
    password_reset_token_hash = db.Column(db.String(64), nullable=True)
    password_reset_expires_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True, onupdate=db.func.now())
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    @hybrid_property
    def is_active(self):
        return self.lifecycle_state == LIFECYCLE_ACTIVE

    @is_active.expression
    def is_active(cls):
        return cls.lifecycle_state == LIFECYCLE_ACTIVE

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "role": self.role,
            "is_active": self.is_active,
            "lifecycle_state": self.lifecycle_state,
            "email_verified": self.email_verified,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "last_login_at": to_utc_z(self.last_login_at),
        }
