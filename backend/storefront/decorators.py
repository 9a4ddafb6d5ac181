# Overview: Request decorators for API routes; bearer authentication, role gates and rate limiting.

from functools import wraps

from flask import current_app, g, request

from .errors import AuthenticationError
from .responses import failure, from_error
from .services import auth_service, rate_limit_service, token_service


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    token = auth_header.split(" ", 1)[1].strip()
    return token or None


def resolve_current_user():
    """
    Resolve the access token on the current request.

    Raises AuthenticationError (or a TokenError subclass) for: no token,
    bad/expired token, wrong purpose, unknown account, deactivated account,
    token_version mismatch.
    """
    token = _bearer_token()
    if token is None:
        raise AuthenticationError("Access denied. No token provided.")
    claims = token_service.verify(token)
    user = auth_service.load_user_for_token(claims, token_service.PURPOSE_ACCESS)
    return user, claims


def require_auth(f):
    """
    Require a valid access token.

    Sets g.current_user (the User) and g.token_claims. Returns 401 otherwise.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            user, claims = resolve_current_user()
        except AuthenticationError as e:
            return from_error(e)

        g.current_user = user
        g.token_claims = claims
        return f(*args, **kwargs)

    return decorated_function


def optional_auth(f):
    """Same resolution as require_auth, but any failure yields an anonymous request."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            user, claims = resolve_current_user()
        except AuthenticationError:
            user, claims = None, None

        g.current_user = user
        g.token_claims = claims
        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles: str):
    """
    Gate on the authenticated user's role. Apply after @require_auth.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user = getattr(g, "current_user", None)
            if user is None:
                return failure("Authentication required", 401)
            if user.role not in roles:
                return failure("Access denied. Insufficient permissions.", 403)
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def rate_limit(scope: str, *, max_attempts_key: str, window_key: str, message: str = "Too many requests"):
    """
    Sliding-window limit keyed on scope + client IP + submitted email.

    Limits are read from config at request time so tests can tune them.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            payload = request.get_json(silent=True)
            email = payload.get("email") if isinstance(payload, dict) else None
            window_seconds = int(current_app.config[window_key])
            decision = rate_limit_service.check(
                scope,
                request.remote_addr,
                email if isinstance(email, str) else None,
                max_attempts=int(current_app.config[max_attempts_key]),
                window_seconds=window_seconds,
            )
            if not decision.allowed:
                minutes = (decision.retry_after_seconds + 59) // 60
                response, status = failure(
                    f"{message}. Try again in {minutes} minutes.",
                    429,
                    retry_after_seconds=decision.retry_after_seconds,
                    retry_after_minutes=minutes,
                )
                response.headers["Retry-After"] = str(decision.retry_after_seconds)
                return response, status
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def auth_rate_limit(f):
    """Shared by register, login and forgot-password."""
    return rate_limit(
        "auth",
        max_attempts_key="AUTH_RATE_LIMIT_MAX_ATTEMPTS",
        window_key="AUTH_RATE_LIMIT_WINDOW_SECONDS",
        message="Too many authentication attempts",
    )(f)


def contact_rate_limit(f):
    return rate_limit(
        "contact",
        max_attempts_key="CONTACT_RATE_LIMIT_MAX_ATTEMPTS",
        window_key="CONTACT_RATE_LIMIT_WINDOW_SECONDS",
        message="Too many contact requests",
    )(f)
