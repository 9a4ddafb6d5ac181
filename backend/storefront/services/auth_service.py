# Overview: Service-layer operations for accounts; registration, credentials, sessions and reset flow.

"""
Account Service

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS)
- Password policy: 6-128 characters, at least one digit
- Sessions are stateless signed tokens; token_version is the revocation
  counter. Logout, password change and password reset all bump it.
- Reset tokens are stored only as SHA-256 hashes with a 1 hour expiry
"""

import hashlib

import bcrypt
from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import AuthenticationError, ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import User
from ..models.users import LIFECYCLE_ACTIVE, LIFECYCLE_DEACTIVATED, ROLE_ADMIN, ROLE_USER, ROLES
from ..time_utils import utcnow
from ..validation import normalize_email, password_problem
from . import email_service, outbox_service, token_service


class PasswordValidationError(ValidationError):
    """Raised when a password doesn't meet the policy."""
    def __init__(self, message: str):
        super().__init__(message, field="password")


def validate_password_strength(password: str) -> None:
    problem = password_problem(password)
    if problem:
        raise PasswordValidationError(problem)


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt.

    Password is validated against the policy before hashing.
    """
    validate_password_strength(password)
    rounds = int(current_app.config.get("BCRYPT_ROUNDS", 12))
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt comparison; malformed hashes never match."""
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def hash_reset_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def get_user_by_email(email: str) -> User | None:
    return db.session.query(User).filter_by(email=normalize_email(email)).first()


def create_user(*, name: str, email: str, password: str, phone: str | None = None,
                role: str = ROLE_USER) -> User:
    """
    Create an account. Raises ConflictError if the email is taken.
    Caller commits.
    """
    if role not in ROLES:
        raise ValidationError(f"role must be one of: {', '.join(ROLES)}", field="role")
    email = normalize_email(email)
    if get_user_by_email(email) is not None:
        raise ConflictError("User already exists with this email")

    user = User(
        name=name.strip(),
        email=email,
        phone=phone,
        password_hash=hash_password(password),
        role=role,
        lifecycle_state=LIFECYCLE_ACTIVE,
        token_version=0,
        email_verified=False,
    )
    db.session.add(user)
    try:
        db.session.flush()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("User already exists with this email")
    return user


def register(*, name: str, email: str, password: str, phone: str | None = None) -> tuple[User, dict]:
    """
    Self-registration. Returns the user and a fresh token pair.
    Welcome and verification emails are published after the commit.
    """
    user = create_user(name=name, email=email, password=password, phone=phone)
    db.session.commit()

    tokens = token_service.issue_session_tokens(user)
    welcome_subject, welcome_body = email_service.welcome_email(user)
    verify_subject, verify_body = email_service.verification_email(
        user, token_service.issue_verification_token(user)
    )
    outbox_service.publish([
        {"kind": email_service.KIND_WELCOME, "recipient": user.email,
         "subject": welcome_subject, "body": welcome_body},
        {"kind": email_service.KIND_EMAIL_VERIFICATION, "recipient": user.email,
         "subject": verify_subject, "body": verify_body},
    ])
    return user, tokens


def authenticate(email: str, password: str) -> User | None:
    """
    Returns the user on valid credentials, None otherwise.

    Deactivated accounts are reported separately by the caller, after the
    password has been checked, so deactivation never leaks on a wrong password.
    """
    user = get_user_by_email(email)
    if user is None or not verify_password(password, user.password_hash):
        return None
    if user.is_active:
        user.last_login_at = utcnow()
        db.session.commit()
    return user


def load_user_for_token(claims: dict, purpose: str) -> User:
    """
    Resolve the account behind access/refresh claims.

    Raises TokenInvalid on wrong purpose, AuthenticationError when the account
    is missing or deactivated, TokenRevoked on token_version mismatch.
    """
    token_service.require_purpose(claims, purpose)
    user = db.session.get(User, claims.get("user_id"))
    if user is None:
        raise AuthenticationError("User not found")
    if not user.is_active:
        raise AuthenticationError("Account is deactivated")
    token_service.check_token_version(claims, user)
    return user


def refresh_access_token(refresh_token: str) -> tuple[User, str]:
    claims = token_service.verify(refresh_token)
    user = load_user_for_token(claims, token_service.PURPOSE_REFRESH)
    return user, token_service.issue_access_token(user)


def revoke_all_sessions(user: User) -> int:
    """Invalidate every outstanding access/refresh token for `user`."""
    user.token_version = (user.token_version or 0) + 1
    db.session.commit()
    return user.token_version


def change_password(user: User, current_password: str, new_password: str) -> dict:
    if not verify_password(current_password or "", user.password_hash):
        raise ValidationError("Current password is incorrect", field="current_password")
    user.password_hash = hash_password(new_password)
    user.token_version = (user.token_version or 0) + 1
    db.session.commit()
    return token_service.issue_session_tokens(user)


def update_profile(user: User, patch: dict) -> User:
    if "name" in patch and patch["name"]:
        user.name = patch["name"]
    if "phone" in patch:
        user.phone = patch["phone"]
    db.session.commit()
    return user


def request_password_reset(email: str) -> bool:
    """
    Start the reset flow for an active account. Returns whether a reset email
    was queued; the HTTP response never reveals this.
    """
    user = get_user_by_email(email)
    if user is None or not user.is_active:
        return False

    token = token_service.issue_password_reset_token(user)
    user.password_reset_token_hash = hash_reset_token(token)
    user.password_reset_expires_at = utcnow() + token_service.ttl_for(token_service.PURPOSE_PASSWORD_RESET)
    db.session.commit()

    subject, body = email_service.password_reset_email(user, token)
    outbox_service.publish([
        {"kind": email_service.KIND_PASSWORD_RESET, "recipient": user.email,
         "subject": subject, "body": body},
    ])
    return True


def reset_password(token: str, new_password: str) -> User:
    claims = token_service.verify(token)
    token_service.require_purpose(claims, token_service.PURPOSE_PASSWORD_RESET)

    user = db.session.get(User, claims.get("user_id"))
    if (
        user is None
        or not user.is_active
        or user.password_reset_token_hash != hash_reset_token(token)
        or user.password_reset_expires_at is None
        or user.password_reset_expires_at.replace(tzinfo=None) < utcnow()
    ):
        raise ValidationError("Invalid or expired reset token", field="token")

    user.password_hash = hash_password(new_password)
    user.password_reset_token_hash = None
    user.password_reset_expires_at = None
    user.token_version = (user.token_version or 0) + 1
    db.session.commit()
    return user


def verify_email(token: str) -> User:
    claims = token_service.verify(token)
    token_service.require_purpose(claims, token_service.PURPOSE_VERIFICATION)
    user = db.session.get(User, claims.get("user_id"))
    if user is None or normalize_email(claims.get("email")) != user.email:
        raise ValidationError("Invalid verification token", field="token")
    user.email_verified = True
    db.session.commit()
    return user


def set_active(user: User, active: bool) -> User:
    user.lifecycle_state = LIFECYCLE_ACTIVE if active else LIFECYCLE_DEACTIVATED
    db.session.commit()
    return user


def get_active_user(user_id: int) -> User:
    """Target account for admin order-on-behalf; must exist and be active."""
    user = db.session.get(User, user_id)
    if user is None or not user.is_active:
        raise ValidationError("Target user not found or inactive", field="user_id")
    return user


def create_admin(*, name: str, email: str, password: str) -> User:
    user = create_user(name=name, email=email, password=password, role=ROLE_ADMIN)
    user.email_verified = True
    db.session.commit()
    return user


def require_user_by_email(email: str) -> User:
    user = get_user_by_email(email)
    if user is None:
        raise NotFoundError(f"User not found: {email}")
    return user
