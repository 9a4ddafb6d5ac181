# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

SECURITY FEATURES:
- register, login and forgot-password share one rate limit (IP + email)
- login failures are non-specific ("Invalid email or password")
- forgot-password always answers with the same generic message
- logout, password change and password reset revoke outstanding tokens
"""

from flask import Blueprint, current_app, g, request

from ..decorators import auth_rate_limit, require_auth
from ..errors import ApiError, ValidationError
from ..responses import failure, from_error, success
from ..services import auth_service, token_service
from ..validation import (
    normalize_email,
    require_json_object,
    validate_login,
    validate_new_password,
    validate_profile_patch,
    validate_registration,
)


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")

GENERIC_RESET_MESSAGE = "If an account with that email exists, a password reset link has been sent."


@auth_bp.post("/register")
@auth_rate_limit
def register_route():
    """Self-registration. Returns the new user and a token pair."""
    try:
        data = validate_registration(request.get_json(silent=True))
        user, tokens = auth_service.register(**data)
        return success("User registered successfully", {"user": user.to_dict(), **tokens}, 201)

    except ApiError as e:
        return from_error(e)
    except Exception:
        current_app.logger.exception("Failed to register user")
        return failure("Internal server error", 500)


@auth_bp.post("/login")
@auth_rate_limit
def login_route():
    try:
        email, password = validate_login(request.get_json(silent=True))

        user = auth_service.authenticate(email, password)
        if user is None:
            return failure("Invalid email or password", 401)
        if not user.is_active:
            return failure("Account has been deactivated. Please contact support.", 401)

        tokens = token_service.issue_session_tokens(user)
        return success("Login successful", {"user": user.to_dict(), **tokens})

    except ApiError as e:
        return from_error(e)
    except Exception:
        current_app.logger.exception("Failed to login user")
        return failure("Internal server error", 500)


@auth_bp.post("/refresh")
def refresh_route():
    try:
        payload = require_json_object(request.get_json(silent=True))
        refresh_token = payload.get("refresh_token")
        if not refresh_token:
            raise ValidationError("Refresh token is required", field="refresh_token")

        user, access_token = auth_service.refresh_access_token(refresh_token)
        return success("Token refreshed successfully", {
            "access_token": access_token,
            "token_type": "Bearer",
            "expires_in": int(token_service.ttl_for(token_service.PURPOSE_ACCESS).total_seconds()),
        })

    except ApiError as e:
        return from_error(e)
    except Exception:
        current_app.logger.exception("Failed to refresh token")
        return failure("Internal server error", 500)


@auth_bp.post("/logout")
@require_auth
def logout_route():
    """Revoke every outstanding token for the caller."""
    try:
        auth_service.revoke_all_sessions(g.current_user)
        return success("Logged out successfully")
    except Exception:
        current_app.logger.exception("Failed to logout user")
        return failure("Internal server error", 500)


@auth_bp.post("/forgot-password")
@auth_rate_limit
def forgot_password_route():
    try:
        payload = require_json_object(request.get_json(silent=True))
        email = normalize_email(payload.get("email"))
        if not email:
            raise ValidationError("Email is required", field="email")

        auth_service.request_password_reset(email)
        return success(GENERIC_RESET_MESSAGE)

    except ApiError as e:
        return from_error(e)
    except Exception:
        current_app.logger.exception("Failed to process password reset request")
        return failure("Internal server error", 500)


@auth_bp.post("/reset-password")
def reset_password_route():
    try:
        payload = require_json_object(request.get_json(silent=True))
        token = payload.get("token")
        if not token:
            raise ValidationError("Reset token is required", field="token")
        password = validate_new_password(payload.get("password"))

        auth_service.reset_password(token, password)
        return success("Password has been reset successfully")

    except ApiError as e:
        return from_error(e)
    except Exception:
        current_app.logger.exception("Failed to reset password")
        return failure("Internal server error", 500)


@auth_bp.post("/verify-email")
def verify_email_route():
    try:
        payload = require_json_object(request.get_json(silent=True))
        token = payload.get("token")
        if not token:
            raise ValidationError("Verification token is required", field="token")

        user = auth_service.verify_email(token)
        return success("Email verified successfully", {"user": user.to_dict()})

    except ApiError as e:
        return from_error(e)
    except Exception:
        current_app.logger.exception("Failed to verify email")
        return failure("Internal server error", 500)


@auth_bp.get("/me")
@require_auth
def me_route():
    return success("Current user", {"user": g.current_user.to_dict()})


@auth_bp.put("/profile")
@require_auth
def update_profile_route():
    try:
        patch = validate_profile_patch(request.get_json(silent=True))
        user = auth_service.update_profile(g.current_user, patch)
        return success("Profile updated successfully", {"user": user.to_dict()})

    except ApiError as e:
        return from_error(e)
    except Exception:
        current_app.logger.exception("Failed to update profile")
        return failure("Internal server error", 500)


@auth_bp.put("/change-password")
@require_auth
def change_password_route():
    """Change password; all earlier tokens stop working and a new pair is returned."""
    try:
        payload = require_json_object(request.get_json(silent=True))
        current_password = payload.get("current_password")
        if not current_password:
            raise ValidationError("Current password is required", field="current_password")
        new_password = validate_new_password(payload.get("new_password"), field="new_password")

        tokens = auth_service.change_password(g.current_user, current_password, new_password)
        return success("Password changed successfully", tokens)

    except ApiError as e:
        return from_error(e)
    except Exception:
        current_app.logger.exception("Failed to change password")
        return failure("Internal server error", 500)
