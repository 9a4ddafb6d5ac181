# Overview: Signed token issue/verify for access, refresh, verification and password-reset purposes.

"""
Signed Token Service

Tokens are itsdangerous URL-safe timed signatures over a small JSON payload:

    {"user_id", "email", "purpose", ...extra}

The signature carries its own issue timestamp. Each purpose has its own TTL
(see Config), applied as `max_age` when the token is loaded.

Callers check two things beyond the signature:
- the purpose matches the use (require_purpose)
- for access/refresh tokens, the embedded token_version equals the account's
  current version (check_token_version)
"""

from __future__ import annotations

from datetime import timedelta

from flask import current_app
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from ..errors import AuthenticationError


PURPOSE_ACCESS = "access"
PURPOSE_REFRESH = "refresh"
PURPOSE_VERIFICATION = "verification"
PURPOSE_PASSWORD_RESET = "password-reset"

_TTL_CONFIG = {
    PURPOSE_ACCESS: "ACCESS_TOKEN_TTL_SECONDS",
    PURPOSE_REFRESH: "REFRESH_TOKEN_TTL_SECONDS",
    PURPOSE_VERIFICATION: "VERIFICATION_TOKEN_TTL_SECONDS",
    PURPOSE_PASSWORD_RESET: "RESET_TOKEN_TTL_SECONDS",
}

_REQUIRED_CLAIMS = ("user_id", "email", "purpose")


class TokenError(AuthenticationError):
    """Base class for token failures (all 401)."""


class TokenInvalid(TokenError):
    pass


class TokenExpired(TokenError):
    pass


class TokenRevoked(TokenError):
    pass


def _serializer() -> URLSafeTimedSerializer:
    secret = current_app.config.get("TOKEN_SECRET") or current_app.config["SECRET_KEY"]
    return URLSafeTimedSerializer(secret, salt="storefront-token")


def ttl_for(purpose: str) -> timedelta:
    return timedelta(seconds=int(current_app.config[_TTL_CONFIG[purpose]]))


def issue(purpose: str, claims: dict) -> str:
    """Sign `claims` with a purpose tag; the purpose decides how long it lives."""
    if purpose not in _TTL_CONFIG:
        raise ValueError(f"Unknown token purpose: {purpose}")
    payload = dict(claims)
    payload["purpose"] = purpose
    return _serializer().dumps(payload)


def verify(token: str) -> dict:
    """
    Decode and validate signature, structure and age.

    The purpose is read from the unverified payload only to pick the TTL;
    the signature check happens in the second, verified load. Raises
    TokenInvalid for any cryptographic or structural problem and
    TokenExpired once the token is older than its purpose's TTL.
    """
    if not token or not isinstance(token, str):
        raise TokenInvalid("Invalid token")

    serializer = _serializer()
    _, unverified = serializer.loads_unsafe(token)
    purpose = unverified.get("purpose") if isinstance(unverified, dict) else None
    if purpose not in _TTL_CONFIG:
        raise TokenInvalid("Invalid token")

    try:
        claims = serializer.loads(token, max_age=int(ttl_for(purpose).total_seconds()))
    except SignatureExpired:
        raise TokenExpired("Token has expired")
    except BadSignature:
        raise TokenInvalid("Invalid token")

    if not isinstance(claims, dict) or any(k not in claims for k in _REQUIRED_CLAIMS):
        raise TokenInvalid("Invalid token")
    return claims


def require_purpose(claims: dict, purpose: str) -> dict:
    if claims.get("purpose") != purpose:
        raise TokenInvalid("Invalid token type")
    return claims


def check_token_version(claims: dict, user) -> None:
    version = claims.get("token_version")
    if not isinstance(version, int) or version != user.token_version:
        raise TokenRevoked("Token has been revoked")


def _account_claims(user) -> dict:
    return {"user_id": user.id, "email": user.email}


def issue_access_token(user) -> str:
    claims = _account_claims(user)
    claims["role"] = user.role
    claims["token_version"] = user.token_version
    return issue(PURPOSE_ACCESS, claims)


def issue_refresh_token(user) -> str:
    claims = _account_claims(user)
    claims["token_version"] = user.token_version
    return issue(PURPOSE_REFRESH, claims)


def issue_verification_token(user) -> str:
    return issue(PURPOSE_VERIFICATION, _account_claims(user))


def issue_password_reset_token(user) -> str:
    return issue(PURPOSE_PASSWORD_RESET, _account_claims(user))


def issue_session_tokens(user) -> dict:
    return {
        "access_token": issue_access_token(user),
        "refresh_token": issue_refresh_token(user),
        "token_type": "Bearer",
        "expires_in": int(ttl_for(PURPOSE_ACCESS).total_seconds()),
    }
